"""
Core session package for FocusFy.

Contains the headless SessionEngine (core.engine) plus the clock and
background-work primitives it is built from. Zero UI dependencies.

Submodules are imported directly; the engine depends on camera.sampler,
which itself uses core.periodic and core.best_effort.
"""

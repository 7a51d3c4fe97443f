"""
Tests for the background-work primitives: PeriodicTask, Clock and the
best-effort dispatcher. These run real threads with short intervals.
"""

import sys
import threading
import time
import unittest
from pathlib import Path
from unittest.mock import MagicMock

# Ensure project root is on the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core.best_effort import BestEffortDispatcher, send_best_effort
from core.clock import Clock
from core.periodic import PeriodicTask


class TestPeriodicTask(unittest.TestCase):

    def test_fires_repeatedly_until_stopped(self):
        fired = threading.Event()
        calls = []

        def callback():
            calls.append(1)
            if len(calls) >= 3:
                fired.set()

        task = PeriodicTask("test-task", 0.01, callback)
        task.start()
        self.assertTrue(fired.wait(2))
        task.stop()
        task.join(timeout=2)

        count = len(calls)
        time.sleep(0.05)
        self.assertEqual(len(calls), count)
        self.assertFalse(task.is_running)

    def test_run_immediately(self):
        fired = threading.Event()
        task = PeriodicTask("test-immediate", 60, fired.set, run_immediately=True)
        task.start()
        self.assertTrue(fired.wait(2))
        task.stop()
        task.join(timeout=2)

    def test_stop_from_callback(self):
        calls = []
        task = PeriodicTask("test-self-stop", 0.01, lambda: (calls.append(1), task.stop()))
        task.start()
        time.sleep(0.1)
        task.join(timeout=2)
        self.assertEqual(len(calls), 1)

    def test_callback_errors_do_not_kill_loop(self):
        fired = threading.Event()
        calls = []

        def callback():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("first call fails")
            fired.set()

        task = PeriodicTask("test-errors", 0.01, callback)
        task.start()
        self.assertTrue(fired.wait(2))
        task.stop()
        task.join(timeout=2)

    def test_start_twice_single_thread(self):
        task = PeriodicTask("test-double", 60, MagicMock())
        task.start()
        first = task._thread
        task.start()
        self.assertIs(task._thread, first)
        task.stop()
        task.join(timeout=2)

    def test_restart_after_stop(self):
        fired = threading.Event()
        task = PeriodicTask("test-restart", 0.01, fired.set)
        task.start()
        task.stop()
        task.join(timeout=2)
        fired.clear()

        task.start()
        self.assertTrue(task.is_running)
        self.assertTrue(fired.wait(2))
        task.stop()
        task.join(timeout=2)

    def test_callback_receives_generation(self):
        received = []
        fired = threading.Event()

        def callback(generation):
            received.append(generation)
            fired.set()

        task = PeriodicTask("test-generation", 0.01, callback, pass_generation=True)
        task.start()
        self.assertTrue(fired.wait(2))
        current = task.generation
        task.stop()
        task.join(timeout=2)

        self.assertEqual(received[0], current)
        self.assertFalse(task.is_current(current))

    def test_generation_retired_across_stop_and_start(self):
        task = PeriodicTask("test-retire", 60, MagicMock())
        task.start()
        first = task.generation
        self.assertTrue(task.is_current(first))

        task.stop()
        task.start()

        self.assertTrue(task.is_running)
        self.assertFalse(task.is_current(first))
        self.assertTrue(task.is_current(task.generation))
        task.stop()
        task.join(timeout=2)


class TestClock(unittest.TestCase):

    def test_reset_and_decrement(self):
        clock = Clock(on_tick=MagicMock())
        clock.reset(3)
        self.assertEqual(clock.total_seconds, 3)
        self.assertEqual(clock.decrement(), 2)
        self.assertEqual(clock.elapsed_seconds, 1)
        clock.decrement()
        clock.decrement()
        self.assertEqual(clock.decrement(), 0)
        self.assertEqual(clock.remaining_seconds, 0)
        self.assertEqual(clock.elapsed_seconds, 3)

    def test_ticks_drive_callback(self):
        ticked = threading.Event()
        clock = Clock(on_tick=lambda generation: ticked.set(), interval=0.01)
        clock.start()
        self.assertTrue(clock.is_ticking)
        self.assertTrue(ticked.wait(2))
        clock.stop()
        clock.join(timeout=2)
        self.assertFalse(clock.is_ticking)

    def test_tick_generation_retired_by_pause(self):
        generations = []
        ticked = threading.Event()

        def on_tick(generation):
            generations.append(generation)
            ticked.set()

        clock = Clock(on_tick=on_tick, interval=0.01)
        clock.start()
        self.assertTrue(ticked.wait(2))
        clock.stop()
        clock.start()

        self.assertFalse(clock.is_current(generations[0]))
        self.assertTrue(clock.is_current(clock.generation))
        clock.stop()
        clock.join(timeout=2)


class TestBestEffort(unittest.TestCase):

    def test_send_best_effort_returns_result(self):
        self.assertEqual(send_best_effort("add", lambda a, b: a + b, 2, 3), 5)

    def test_send_best_effort_swallows_errors(self):
        def broken():
            raise ConnectionError("down")
        self.assertIsNone(send_best_effort("broken", broken))

    def test_single_worker_preserves_order(self):
        lane = BestEffortDispatcher("test-order", max_workers=1)
        self.addCleanup(lane.shutdown)
        seen = []
        for i in range(20):
            lane.submit("append", seen.append, i)
        self.assertTrue(lane.drain(timeout=5))
        self.assertEqual(seen, list(range(20)))

    def test_on_result_called(self):
        lane = BestEffortDispatcher("test-result")
        self.addCleanup(lane.shutdown)
        results = []
        lane.submit("value", lambda: 42, on_result=results.append)
        lane.drain(timeout=5)
        self.assertEqual(results, [42])

    def test_failure_skips_on_result(self):
        lane = BestEffortDispatcher("test-failure")
        self.addCleanup(lane.shutdown)
        on_result = MagicMock()

        def broken():
            raise TimeoutError("slow")

        lane.submit("broken", broken, on_result=on_result)
        lane.drain(timeout=5)
        on_result.assert_not_called()
        self.assertEqual(lane.in_flight, 0)

    def test_submit_returns_immediately(self):
        lane = BestEffortDispatcher("test-async")
        self.addCleanup(lane.shutdown)
        release = threading.Event()
        started = time.monotonic()
        lane.submit("slow", release.wait, 5)
        self.assertLess(time.monotonic() - started, 1)
        self.assertEqual(lane.in_flight, 1)
        release.set()
        self.assertTrue(lane.drain(timeout=5))

    def test_closed_lane_drops_work(self):
        lane = BestEffortDispatcher("test-closed")
        lane.shutdown()
        self.assertIsNone(lane.submit("late", MagicMock()))


if __name__ == "__main__":
    unittest.main()

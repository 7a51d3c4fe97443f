"""
Sync package — remote focus collector client.

Provides FocusSyncClient for session creation, sample upload, sample fetch
and frame analysis.
"""

from sync.focus_client import FocusSyncClient, SyncError

__all__ = ["FocusSyncClient", "SyncError"]

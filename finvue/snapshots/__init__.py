"""Snapshot recording package."""

from finvue.snapshots.recorder import SnapshotRecorder

__all__ = ["SnapshotRecorder"]

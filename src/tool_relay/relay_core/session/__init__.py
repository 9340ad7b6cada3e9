"""Transcript persistence for finalized tool calls."""

from .snapshot import Snapshot, SnapshotBridge
from .transcript import InMemoryTranscript, TranscriptSink

__all__ = ["Snapshot", "SnapshotBridge", "InMemoryTranscript", "TranscriptSink"]

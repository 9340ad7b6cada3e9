"""Append-only transcript sinks."""

from typing import List, Protocol

from ..messages import SessionRecord


class TranscriptSink(Protocol):
    """Persistence collaborator receiving ``{role, content}`` records in order."""

    def append(self, record: SessionRecord) -> None: ...


class InMemoryTranscript:
    """Keeps records in a list. Useful for tests and for UIs that persist elsewhere."""

    def __init__(self) -> None:
        self.records: List[SessionRecord] = []

    def append(self, record: SessionRecord) -> None:
        self.records.append(record)

    def __len__(self) -> int:
        return len(self.records)

"""In-memory collaborators shared by the unit tests."""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from logship_verify.domain.models import LogEntry
from logship_verify.errors import TransportError

RUN_ID = 424242
FIXED_CLOCK = 1_700_000_000.5


class FakeIngress:
    """Records every body sent; optionally fails at a given send."""

    def __init__(self, fail_at: Optional[int] = None, error: Optional[Exception] = None) -> None:
        self.fail_at = fail_at
        self.error = error or TransportError("broker rejected message")
        self.bodies: List[str] = []
        self.connected = False
        self.connect_calls = 0
        self.close_calls = 0

    def connect(self) -> None:
        self.connect_calls += 1
        self.connected = True

    def send(self, body: str) -> None:
        if self.fail_at is not None and len(self.bodies) == self.fail_at:
            raise self.error
        self.bodies.append(body)

    def close(self) -> None:
        self.close_calls += 1
        self.connected = False


class FakeBackend:
    """Returns queued answers, one per query; the last answer repeats."""

    def __init__(self, *answers: Sequence[LogEntry], error: Optional[Exception] = None) -> None:
        self.answers = [list(a) for a in answers] or [[]]
        self.error = error
        self.queries: List[tuple] = []
        self.connect_calls = 0
        self.close_calls = 0

    def connect(self) -> None:
        self.connect_calls += 1

    def query(self, selector: str, limit: int, start_ns: int) -> List[LogEntry]:
        self.queries.append((selector, limit, start_ns))
        if self.error is not None:
            raise self.error
        index = min(len(self.queries), len(self.answers)) - 1
        return self.answers[index][:limit]

    def close(self) -> None:
        self.close_calls += 1


def entries(messages: Iterable[str]) -> List[LogEntry]:
    return [LogEntry(message=m, timestamp_ns=i) for i, m in enumerate(messages)]

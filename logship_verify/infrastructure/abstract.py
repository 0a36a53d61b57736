"""
Collaborator interfaces for the verification harness.

The harness only needs two things from the outside world: an ingress that
accepts a serialized record (and optionally confirms receipt), and a backend
that returns up to `limit` entries matching a selector. Concrete adapters
implement these Protocols; tests substitute in-memory fakes.
"""

from __future__ import annotations

from typing import List, Protocol, runtime_checkable

from logship_verify.domain.models import LogEntry


@runtime_checkable
class MessageIngress(Protocol):
    """
    Message-queue ingress.

    `send` returns once the transport acknowledged the message, or
    immediately in fire-and-forget mode. Failures raise TransportError.
    """

    def connect(self) -> None:
        ...

    def send(self, body: str) -> None:
        ...

    def close(self) -> None:
        ...


@runtime_checkable
class LogQueryBackend(Protocol):
    """
    Log aggregation backend.

    `query` returns up to `limit` entries matching `selector`, in any order,
    newer than `start_ns`. Failures raise QueryError.
    """

    def connect(self) -> None:
        ...

    def query(self, selector: str, limit: int, start_ns: int) -> List[LogEntry]:
        ...

    def close(self) -> None:
        ...


__all__ = ["MessageIngress", "LogQueryBackend"]

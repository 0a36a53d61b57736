"""
Error taxonomy for the log-shipping verification harness.

Every fatal condition is a HarnessError subclass carrying a ``context`` dict with
the triggering values (failing index, URL, selector, ...). A failed comparison is
NOT an error: it is a Verdict with ``passed=False`` and never raises.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class HarnessError(Exception):
    """Base class for fatal harness errors; aborts the run without a verdict."""

    stage: str = "run"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{key}={value!r}" for key, value in self.context.items())
        return f"{self.message} ({details})"


class ConfigError(HarnessError):
    """Bad CLI argument or configuration value; raised before any network I/O."""

    stage = "config"


class ConnectError(HarnessError):
    """Ingress or backend could not be reached."""

    stage = "connect"


class SerializationError(HarnessError):
    """A record could not be encoded for the ingress."""

    stage = "publish"

    def __init__(self, message: str, index: int, **context: Any) -> None:
        super().__init__(message, index=index, **context)
        self.index = index


class TransportError(HarnessError):
    """Send or acknowledgment failure on the ingress."""

    stage = "publish"

    def __init__(self, message: str, index: Optional[int] = None, **context: Any) -> None:
        super().__init__(message, index=index, **context)
        self.index = index


class QueryError(HarnessError):
    """Backend query failed or returned a malformed response."""

    stage = "query"


__all__ = [
    "HarnessError",
    "ConfigError",
    "ConnectError",
    "SerializationError",
    "TransportError",
    "QueryError",
]

"""
Loki query adapter built on httpx.

`connect` probes the readiness endpoint; `query` runs a LogQL stream selector
through `/loki/api/v1/query_range` and flattens the `streams` result into
LogEntry values. Transport-level failures are retried with exponential backoff
(tenacity); HTTP status errors and malformed payloads are not.
"""

from __future__ import annotations

from typing import Any, List, Optional

import httpx
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from logship_verify.config import Settings, get_settings
from logship_verify.domain.models import LogEntry
from logship_verify.errors import ConnectError, QueryError
from logship_verify.utils.logging import get_logger

log = get_logger(__name__)

READY_PATH = "/ready"
QUERY_RANGE_PATH = "/loki/api/v1/query_range"


def parse_streams(payload: Any) -> List[LogEntry]:
    """
    Flatten a Loki `query_range` response body into LogEntry values.

    Raises
    ------
    QueryError
        If the body is not a successful `streams` result.
    """
    if not isinstance(payload, dict) or payload.get("status") != "success":
        raise QueryError("Loki query did not succeed", status=_get(payload, "status"))
    data = payload.get("data")
    if not isinstance(data, dict) or data.get("resultType") != "streams":
        raise QueryError("Unexpected Loki result type", result_type=_get(data, "resultType"))

    result = data.get("result")
    if result is None:
        result = []
    if not isinstance(result, list):
        raise QueryError("Malformed Loki stream", result=result)

    entries: List[LogEntry] = []
    for stream in result:
        try:
            labels = {str(k): str(v) for k, v in (stream.get("stream") or {}).items()}
            for ts, line in stream.get("values") or []:
                entries.append(LogEntry(message=str(line), timestamp_ns=int(ts), labels=labels))
        except (AttributeError, TypeError, ValueError) as exc:
            raise QueryError("Malformed Loki stream", stream=stream, error=str(exc)) from exc
    return entries


def _get(obj: Any, key: str) -> Any:
    return obj.get(key) if isinstance(obj, dict) else None


class LokiClient:
    """
    Minimal read-only Loki client.

    Parameters
    ----------
    base_url : str
        Loki root URL (e.g. ``http://localhost:3100``).
    timeout : float
        Per-request timeout in seconds.
    retries : int
        Attempts per request on transport errors.
    transport : httpx.BaseTransport, optional
        Injected transport (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        retries: int = 3,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._retrying = Retrying(
            stop=stop_after_attempt(retries),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        )
        self._client: Optional[httpx.Client] = None

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "LokiClient":
        settings = settings or get_settings()
        return cls(
            base_url=settings.loki_connection,
            timeout=settings.loki_timeout_s,
            retries=settings.connect_retries,
        )

    def _http(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            )
        return self._client

    def _get(self, path: str, params: Optional[dict] = None) -> httpx.Response:
        return self._retrying(self._http().get, path, params=params)

    def connect(self) -> None:
        try:
            response = self._get(READY_PATH)
        except httpx.TransportError as exc:
            raise ConnectError("Could not reach Loki", url=self.base_url, error=str(exc)) from exc
        if response.status_code != httpx.codes.OK:
            raise ConnectError(
                "Loki is not ready",
                url=self.base_url,
                status_code=response.status_code,
                body=response.text[:200],
            )
        log.info("Loki backend ready", extra={"url": self.base_url})

    def query(self, selector: str, limit: int, start_ns: int) -> List[LogEntry]:
        params = {
            "query": selector,
            "limit": limit,
            "start": start_ns,
            "direction": "backward",
        }
        try:
            response = self._get(QUERY_RANGE_PATH, params=params)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as exc:
            raise QueryError(
                "Loki query failed",
                selector=selector,
                status_code=exc.response.status_code,
                body=exc.response.text[:200],
            ) from exc
        except httpx.HTTPError as exc:
            raise QueryError("Loki unreachable during query", selector=selector, error=str(exc)) from exc
        except ValueError as exc:
            raise QueryError("Loki returned invalid JSON", selector=selector, error=str(exc)) from exc
        return parse_streams(payload)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "LokiClient":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["LokiClient", "parse_streams"]

"""
Result verifier: query the backend for one run's records and judge them.

Verification runs in two steps:

- `ResultVerifier.query` builds the selector for the run's tag and fetches up
  to `expected_count` entries. By default this is a single query; with
  `attempts > 1` it re-queries with exponential backoff (tenacity) while the
  backend still returns fewer entries than expected, bounded by an overall
  deadline, and keeps the last answer.
- `evaluate` is pure: count check, then membership of every index in
  [0, expected_count). Duplicates pass unless `strict_unique` is set, and
  tolerated duplicates do not count as extra entries. A message that does not
  decode is reported but only fails the run through the index it leaves
  uncovered.

A FAIL is returned as a Verdict, never raised.
"""

from __future__ import annotations

import time
from collections import Counter
from typing import Callable, List, Optional

from tenacity import Retrying, retry_if_result, stop_after_attempt, stop_after_delay, wait_exponential

from logship_verify.config import Settings
from logship_verify.domain.models import Batch, LogEntry, QueryResult, Verdict
from logship_verify.generator import decode_message
from logship_verify.infrastructure.abstract import LogQueryBackend
from logship_verify.utils.logging import get_logger

log = get_logger(__name__)


def _logql_quote(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def build_selector(source_tag: str, level: Optional[str] = None) -> str:
    """LogQL stream selector isolating one run: ``{source="<tag>"[,level="<level>"]}``."""
    matchers = [f"source={_logql_quote(source_tag)}"]
    if level is not None:
        matchers.append(f"level={_logql_quote(level)}")
    return "{" + ",".join(matchers) + "}"


def evaluate(batch: Batch, result: QueryResult, strict_unique: bool = False) -> Verdict:
    expected = batch.expected_count
    actual = result.actual_count

    seen: Counter[int] = Counter()
    undecodable: List[str] = []
    for entry in result.entries:
        try:
            index = decode_message(entry.message, batch.level)
        except ValueError:
            undecodable.append(entry.message)
            log.info(
                "A wrong message format returned from the backend",
                extra={"expected": f"[{batch.level}] number", "got": entry.message},
            )
            continue
        if index >= expected:
            undecodable.append(entry.message)
            log.info(
                "Message index outside the batch",
                extra={"index": index, "expected_count": expected, "got": entry.message},
            )
            continue
        seen[index] += 1

    missing = tuple(i for i in range(expected) if seen[i] == 0)
    duplicates = tuple(sorted(i for i, n in seen.items() if n > 1))
    # Tolerated duplicates are not extra entries; in strict mode every entry counts.
    surplus = 0 if strict_unique else sum(seen[i] - 1 for i in duplicates)
    counted = actual - surplus

    reasons: List[str] = []
    if counted != expected:
        reasons.append(f"backend returned {actual} entries, expected {expected}")
    if missing:
        reasons.append(f"missing indices {list(missing)}")
    if strict_unique and duplicates:
        reasons.append(f"duplicate indices {list(duplicates)}")
    passed = not reasons

    if counted != expected:
        log.info(
            "Different amount of messages in the backend than expected",
            extra={"actual_count": actual, "expected_count": expected},
        )
    if missing:
        log.info(
            "Didn't find messages in the backend",
            extra={"missing_indices": list(missing), "messages": [e.message for e in result.entries]},
        )
    if duplicates:
        log.info("Duplicate messages in the backend", extra={"duplicate_indices": list(duplicates)})

    return Verdict(
        passed=passed,
        run_id=batch.run_id,
        source_tag=batch.source_tag,
        expected_count=expected,
        actual_count=actual,
        missing_indices=missing,
        duplicate_indices=duplicates,
        undecodable_messages=tuple(undecodable),
        reason="all records found" if passed else "; ".join(reasons),
    )


class ResultVerifier:
    """
    Parameters
    ----------
    include_level : bool
        Also match the `level` label in the selector.
    strict_unique : bool
        Fail when any index is returned more than once.
    limit_slack : int
        Extra entries to request beyond the expected count.
    lookback_s : int
        How far before the batch timestamp the query window starts.
    attempts : int
        Query attempts; 1 means a single query.
    backoff_ms : int
        Initial wait between attempts, doubled each time.
    deadline_s : float
        Overall time budget for repeated attempts.
    sleep : callable
        Sleep function used between attempts.
    """

    def __init__(
        self,
        include_level: bool = False,
        strict_unique: bool = False,
        limit_slack: int = 0,
        lookback_s: int = 300,
        attempts: int = 1,
        backoff_ms: int = 500,
        deadline_s: float = 10.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.include_level = include_level
        self.strict_unique = strict_unique
        self.limit_slack = limit_slack
        self.lookback_s = lookback_s
        self.attempts = attempts
        self.backoff_ms = backoff_ms
        self.deadline_s = deadline_s
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings, sleep: Callable[[float], None] = time.sleep) -> "ResultVerifier":
        return cls(
            include_level=settings.selector_include_level,
            strict_unique=settings.strict_unique,
            limit_slack=settings.query_limit_slack,
            lookback_s=settings.loki_lookback_s,
            attempts=settings.query_attempts,
            backoff_ms=settings.query_backoff_ms,
            deadline_s=settings.query_deadline_s,
            sleep=sleep,
        )

    def query(self, batch: Batch, backend: LogQueryBackend) -> QueryResult:
        selector = build_selector(batch.source_tag, batch.level if self.include_level else None)
        limit = batch.expected_count + self.limit_slack
        start_ns = max(batch.timestamp - self.lookback_s * 1000, 0) * 1_000_000
        attempts = 0

        def _once() -> List[LogEntry]:
            nonlocal attempts
            attempts += 1
            log.debug(
                f"[QUERY] Attempt {attempts}/{self.attempts}",
                extra={"selector": selector, "limit": limit},
            )
            return backend.query(selector, limit, start_ns)

        backoff = self.backoff_ms / 1000.0
        retrying = Retrying(
            stop=stop_after_attempt(self.attempts) | stop_after_delay(self.deadline_s),
            wait=wait_exponential(multiplier=backoff, min=backoff),
            retry=retry_if_result(lambda entries: len(entries) < batch.expected_count),
            retry_error_callback=lambda state: state.outcome.result(),
            sleep=self._sleep,
        )
        entries = retrying(_once)
        log.info(
            "[QUERY] Backend returned entries",
            extra={"selector": selector, "returned": len(entries), "attempts": attempts},
        )
        return QueryResult(entries=tuple(entries), attempts=attempts)

    def evaluate(self, batch: Batch, result: QueryResult) -> Verdict:
        return evaluate(batch, result, strict_unique=self.strict_unique)

    def verify(self, batch: Batch, backend: LogQueryBackend) -> Verdict:
        return self.evaluate(batch, self.query(batch, backend))


__all__ = ["ResultVerifier", "build_selector", "evaluate"]

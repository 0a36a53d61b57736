"""
Run controller: one end-to-end verification pass.

    from logship_verify.config import load_settings
    from logship_verify.orchestrator import run_check

    report = run_check(load_settings("loggingTest.ini"), count=5)
    print(report["verdict"].passed)

Stages run strictly in sequence: generate -> publish -> settle -> query/verify.
Any HarnessError aborts the run before the verdict stage; only a completed query
yields a Verdict (PASS or FAIL). Ingress and backend are closed once opened,
whatever happens afterwards.
"""

from __future__ import annotations

import time
from typing import Callable, Optional, TypedDict

from logship_verify.config import Settings, get_settings
from logship_verify.domain.models import Verdict
from logship_verify.errors import ConfigError
from logship_verify.generator import BatchGenerator, new_run_id
from logship_verify.infrastructure.abstract import LogQueryBackend, MessageIngress
from logship_verify.infrastructure.amqp_ingress import AmqpIngress
from logship_verify.infrastructure.loki_client import LokiClient
from logship_verify.publisher import IngressPublisher
from logship_verify.settle import settle
from logship_verify.utils.logging import get_logger
from logship_verify.verifier import ResultVerifier

log = get_logger(__name__)


class RunReport(TypedDict):
    """
    Outcome of a completed run, consumed by the reporter and the CLI.
    """

    verdict: Verdict
    run_id: int
    source_tag: str
    count: int
    records_sent: int
    publish_seconds: float
    query_seconds: float
    query_attempts: int


def _round_float(value: float, decimals: int = 3) -> float:
    return round(value, decimals)


def run_check(
    settings: Optional[Settings] = None,
    count: Optional[int] = None,
    *,
    run_id: Optional[int] = None,
    ingress: Optional[MessageIngress] = None,
    backend: Optional[LogQueryBackend] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> RunReport:
    """
    Publish one tagged batch and verify it reached the log backend.

    Parameters
    ----------
    settings : Settings | None
        Effective configuration. Defaults to environment settings.
    count : int | None
        Records to send. Defaults to settings.record_count.
    run_id : int | None
        Run identifier; a random one is drawn when omitted.
    ingress : MessageIngress | None
        Message ingress. Defaults to an AMQP 1.0 adapter built from settings.
    backend : LogQueryBackend | None
        Log backend. Defaults to a Loki client built from settings.
    sleep : callable
        Sleep used by the settle timer and query backoff.

    Returns
    -------
    RunReport
        Verdict plus run diagnostics.

    Raises
    ------
    HarnessError
        ConfigError, ConnectError, SerializationError, TransportError or
        QueryError; no verdict is produced.
    """
    settings = settings or get_settings()
    effective_count = settings.record_count if count is None else count
    if isinstance(effective_count, bool) or not isinstance(effective_count, int) or effective_count <= 0:
        raise ConfigError("Record count must be a positive integer", count=effective_count)

    run_id = new_run_id() if run_id is None else run_id
    generator = BatchGenerator(
        run_id, level=settings.record_level, source_prefix=settings.source_prefix
    )
    batch = generator.generate(effective_count)
    log.info(
        f"[RUN START] {batch.source_tag}",
        extra={"run_id": run_id, "source": batch.source_tag, "count": effective_count},
    )

    ingress = ingress if ingress is not None else AmqpIngress.from_settings(settings)
    publish_start = time.perf_counter()
    ingress.connect()
    try:
        sent = IngressPublisher(ingress).publish(batch)
    finally:
        ingress.close()
    publish_seconds = time.perf_counter() - publish_start

    settle(settings.settle_ms, sleep=sleep)

    backend = backend if backend is not None else LokiClient.from_settings(settings)
    verifier = ResultVerifier.from_settings(settings, sleep=sleep)
    query_start = time.perf_counter()
    backend.connect()
    try:
        result = verifier.query(batch, backend)
    finally:
        backend.close()
    query_seconds = time.perf_counter() - query_start

    verdict = verifier.evaluate(batch, result)
    log.info(
        f"[VERDICT] {'PASS' if verdict.passed else 'FAIL'}",
        extra={
            "source": batch.source_tag,
            "expected_count": verdict.expected_count,
            "actual_count": verdict.actual_count,
            "missing_indices": list(verdict.missing_indices),
            "reason": verdict.reason,
        },
    )

    return RunReport(
        verdict=verdict,
        run_id=run_id,
        source_tag=batch.source_tag,
        count=effective_count,
        records_sent=sent,
        publish_seconds=_round_float(publish_seconds),
        query_seconds=_round_float(query_seconds),
        query_attempts=result.attempts,
    )


__all__ = ["RunReport", "run_check"]

"""
Integration test for the full verification pass.

Runs against a live AMQP 1.0 broker feeding Loki through the log-shipping
pipeline and verifies that:
1. A default batch is published and found (PASS)
2. Two concurrent-style runs never see each other's records

Run with: RUN_INTEGRATION_TESTS=1 pytest tests/integration/
"""

from __future__ import annotations

import os

import pytest

from logship_verify.config import Settings
from logship_verify.orchestrator import run_check

DEFAULT_COUNT = 5
SETTLE_MS = 2_000
QUERY_ATTEMPTS = 5

pytestmark = pytest.mark.skipif(
    os.getenv("RUN_INTEGRATION_TESTS", "0") != "1",
    reason="Integration tests require RUN_INTEGRATION_TESTS=1 and a reachable AMQP/Loki stack",
)


@pytest.fixture
def live_settings(stack_urls: dict, loki_available: bool) -> Settings:
    if not loki_available:
        pytest.skip("Loki not available for integration tests")
    return Settings(
        amqp_connection=stack_urls["amqp"],
        loki_connection=stack_urls["loki"],
        settle_ms=SETTLE_MS,
        query_attempts=QUERY_ATTEMPTS,
    )


def test_default_batch_reaches_loki(live_settings: Settings):
    report = run_check(live_settings, DEFAULT_COUNT)

    verdict = report["verdict"]
    assert verdict.passed, verdict.reason
    assert verdict.actual_count == DEFAULT_COUNT
    assert report["records_sent"] == DEFAULT_COUNT


def test_runs_are_isolated_by_source_tag(live_settings: Settings):
    first = run_check(live_settings, 2)
    second = run_check(live_settings, 3)

    assert first["source_tag"] != second["source_tag"]
    assert first["verdict"].actual_count == 2
    assert second["verdict"].actual_count == 3

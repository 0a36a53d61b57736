"""
Pytest configuration for the log-shipping verification harness.

Provides fixtures for:
- Settings tuned for fast, offline unit tests
- Deterministic batches and an in-memory ingress
- Live-stack availability checks for integration tests
"""

from __future__ import annotations

import os

import httpx
import pytest

from logship_verify.config import Settings
from logship_verify.domain.models import Batch
from logship_verify.generator import BatchGenerator

from tests.fakes import FIXED_CLOCK, RUN_ID, FakeIngress


@pytest.fixture
def test_settings() -> Settings:
    """
    Settings fixture with no settle wait and single-attempt retries.
    """
    return Settings(
        settle_ms=0,
        connect_retries=1,
        query_attempts=1,
        query_backoff_ms=0,
        log_level="DEBUG",
    )


@pytest.fixture
def make_batch():
    def _make(count: int = 5, run_id: int = RUN_ID) -> Batch:
        return BatchGenerator(run_id, clock=lambda: FIXED_CLOCK).generate(count)

    return _make


@pytest.fixture
def fake_ingress() -> FakeIngress:
    return FakeIngress()


@pytest.fixture(scope="session")
def stack_urls() -> dict:
    """
    Endpoints of a live AMQP/Loki stack, overridable via environment.
    """
    return {
        "amqp": os.getenv("AMQP_CONNECTION", "amqp://localhost:5672/lokean/logs"),
        "loki": os.getenv("LOKI_CONNECTION", "http://localhost:3100"),
    }


@pytest.fixture(scope="session")
def loki_available(stack_urls: dict) -> bool:
    """
    Check if Loki is reachable.

    Used to conditionally skip integration tests when the stack is not running.
    """
    try:
        response = httpx.get(stack_urls["loki"].rstrip("/") + "/ready", timeout=5)
    except httpx.HTTPError:
        return False
    return response.status_code == httpx.codes.OK

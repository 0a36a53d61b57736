"""
Settle timer: a fixed pause between publishing and querying.

The backend indexes asynchronously, so querying right after the last send is a
known source of false negatives. This is a plain blocking sleep, not a
synchronization point; see the verifier's poll options for a bounded retry.
"""

from __future__ import annotations

import time
from typing import Callable

from logship_verify.utils.logging import get_logger

log = get_logger(__name__)

DEFAULT_SETTLE_MS = 500


def settle(duration_ms: int = DEFAULT_SETTLE_MS, sleep: Callable[[float], None] = time.sleep) -> None:
    if duration_ms <= 0:
        log.debug("[SETTLE] Skipped")
        return
    log.info(f"[SETTLE] Waiting {duration_ms} ms for indexing", extra={"settle_ms": duration_ms})
    sleep(duration_ms / 1000.0)


__all__ = ["settle", "DEFAULT_SETTLE_MS"]

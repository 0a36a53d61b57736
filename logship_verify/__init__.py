"""
logship-verify - End-to-end verification harness for a log-shipping pipeline.

One invocation emits a batch of uniquely tagged synthetic log records into an
AMQP 1.0 ingress, waits for the pipeline to index them, then queries Loki to
confirm every record arrived intact:

- Batch generation with a run-unique source tag
- Ordered publishing with per-message acknowledgment (or fire-and-forget)
- A settle pause and an optional bounded query poll
- Count and membership checks producing a PASS/FAIL verdict

Fatal errors (config, connection, publish, query) abort without a verdict and
are never conflated with a FAIL.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from logship_verify.config import Settings, get_settings, load_settings
from logship_verify.domain.models import Batch, LogEntry, QueryResult, SyntheticRecord, Verdict
from logship_verify.errors import (
    ConfigError,
    ConnectError,
    HarnessError,
    QueryError,
    SerializationError,
    TransportError,
)
from logship_verify.generator import BatchGenerator, decode_message, encode_message, new_run_id
from logship_verify.orchestrator import RunReport, run_check
from logship_verify.publisher import IngressPublisher
from logship_verify.utils.logging import configure_logging, get_logger
from logship_verify.verifier import ResultVerifier, build_selector, evaluate

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    "load_settings",
    # Domain
    "Batch",
    "LogEntry",
    "QueryResult",
    "SyntheticRecord",
    "Verdict",
    # Errors
    "HarnessError",
    "ConfigError",
    "ConnectError",
    "SerializationError",
    "TransportError",
    "QueryError",
    # Pipeline
    "BatchGenerator",
    "encode_message",
    "decode_message",
    "new_run_id",
    "IngressPublisher",
    "ResultVerifier",
    "build_selector",
    "evaluate",
    "RunReport",
    "run_check",
    # Logging
    "configure_logging",
    "get_logger",
]

"""
Domain package for the log-shipping verification harness.

Exports the core domain models shared by the generator, publisher, verifier
and run controller. Keep this package focused on data definitions.
"""

from logship_verify.domain.models import Batch, LogEntry, QueryResult, SyntheticRecord, Verdict

__all__ = [
    "Batch",
    "LogEntry",
    "QueryResult",
    "SyntheticRecord",
    "Verdict",
]

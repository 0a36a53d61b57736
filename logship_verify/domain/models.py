"""
Domain models for the log-shipping verification harness.

Records travel to the ingress in the JSON shape the shipping pipeline consumes
(`timestamp`, `message`, `source`, `level`); the sequence index rides inside
`message` only. Entries come back from the backend as LogEntry values and are
judged into a Verdict.
"""
from __future__ import annotations

from typing import Dict, Tuple

from pydantic import BaseModel, Field, model_validator


class SyntheticRecord(BaseModel):
    """
    A single tagged log line emitted by one run.
    """

    timestamp: int = Field(..., description="Batch emission time, epoch millis.")
    sequence_index: int = Field(..., ge=0, exclude=True, description="Position in the batch.")
    source_tag: str = Field(..., alias="source", description="Run-unique tag.")
    level: str = Field(..., description="Fixed level marker.")
    message: str = Field(..., description="Encodes sequence_index as text.")

    model_config = {
        "frozen": True,
        "populate_by_name": True,
    }


class Batch(BaseModel):
    """
    The bounded set of records generated and verified in one run.
    """

    run_id: int = Field(..., ge=0)
    source_tag: str
    level: str
    timestamp: int
    records: Tuple[SyntheticRecord, ...]
    expected_count: int = Field(..., gt=0)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_count(self) -> "Batch":
        if len(self.records) != self.expected_count:
            raise ValueError(
                f"expected_count={self.expected_count} but batch holds {len(self.records)} records"
            )
        return self


class LogEntry(BaseModel):
    """
    One line returned by the log backend.
    """

    message: str
    timestamp_ns: int = 0
    labels: Dict[str, str] = Field(default_factory=dict)

    model_config = {"frozen": True}


class QueryResult(BaseModel):
    """
    Entries matched by one (possibly polled) backend query, in backend order.
    """

    entries: Tuple[LogEntry, ...] = ()
    attempts: int = Field(1, ge=1)

    model_config = {"frozen": True}

    @property
    def actual_count(self) -> int:
        return len(self.entries)


class Verdict(BaseModel):
    """
    Final PASS/FAIL outcome of a completed query.
    """

    passed: bool
    run_id: int
    source_tag: str
    expected_count: int
    actual_count: int
    missing_indices: Tuple[int, ...] = ()
    duplicate_indices: Tuple[int, ...] = ()
    undecodable_messages: Tuple[str, ...] = ()
    reason: str = ""

    model_config = {"frozen": True}


__all__ = ["SyntheticRecord", "Batch", "LogEntry", "QueryResult", "Verdict"]

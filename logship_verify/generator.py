"""
Batch generator: builds the uniquely tagged synthetic records for one run.

The run identifier is passed in explicitly so a generator is a pure function of
(run_id, count, clock); `new_run_id()` is the only place randomness enters.
"""

from __future__ import annotations

import random
import re
import time
from typing import Callable, Optional

from logship_verify.domain.models import Batch, SyntheticRecord
from logship_verify.errors import ConfigError

DEFAULT_COUNT = 5
DEFAULT_LEVEL = "TEST"
DEFAULT_SOURCE_PREFIX = "loggingTest"

_RUN_ID_BITS = 63


def new_run_id(rng: Optional[random.Random] = None) -> int:
    """Draw a random non-negative 63-bit run identifier."""
    rng = rng or random.SystemRandom()
    return rng.getrandbits(_RUN_ID_BITS)


def source_tag_for(run_id: int, prefix: str = DEFAULT_SOURCE_PREFIX) -> str:
    return f"{prefix}{run_id}"


def encode_message(index: int) -> str:
    return str(index)


def decode_message(text: str, level: str = DEFAULT_LEVEL) -> int:
    """
    Recover the sequence index from a message as stored by the backend.

    Accepts the bare decimal index ("3") or the level-prefixed form the
    pipeline writes ("[TEST] 3").

    Raises
    ------
    ValueError
        If the text is not one of those forms.
    """
    pattern = rf"\s*(?:\[{re.escape(level)}\]\s*)?(\d+)\s*"
    match = re.fullmatch(pattern, text)
    if match is None:
        raise ValueError(f"not a sequence index message: {text!r}")
    return int(match.group(1))


class BatchGenerator:
    """
    Produce the records of one run, all sharing one tag and one timestamp.
    """

    def __init__(
        self,
        run_id: int,
        level: str = DEFAULT_LEVEL,
        source_prefix: str = DEFAULT_SOURCE_PREFIX,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.run_id = run_id
        self.level = level
        self.source_tag = source_tag_for(run_id, source_prefix)
        self._clock = clock

    def generate(self, count: int = DEFAULT_COUNT) -> Batch:
        if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
            raise ConfigError("Record count must be a positive integer", count=count)

        timestamp = int(self._clock() * 1000)
        records = tuple(
            SyntheticRecord(
                timestamp=timestamp,
                sequence_index=index,
                source_tag=self.source_tag,
                level=self.level,
                message=encode_message(index),
            )
            for index in range(count)
        )
        return Batch(
            run_id=self.run_id,
            source_tag=self.source_tag,
            level=self.level,
            timestamp=timestamp,
            records=records,
            expected_count=count,
        )


__all__ = [
    "BatchGenerator",
    "decode_message",
    "encode_message",
    "new_run_id",
    "source_tag_for",
]

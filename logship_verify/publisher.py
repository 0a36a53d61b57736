"""
Ingress publisher: hands each record of a batch to the message ingress in order.

Publication is not transactional. If record N fails to serialize or send, records
0..N-1 are already queued and stay there; the error names the failing index.
"""

from __future__ import annotations

from typing import Callable

from logship_verify.domain.models import Batch, SyntheticRecord
from logship_verify.errors import SerializationError, TransportError
from logship_verify.infrastructure.abstract import MessageIngress
from logship_verify.utils.logging import get_logger

log = get_logger(__name__)

Serializer = Callable[[SyntheticRecord], str]


def serialize_record(record: SyntheticRecord) -> str:
    """Encode a record in the pipeline's wire shape: timestamp, message, source, level."""
    return record.model_dump_json(by_alias=True)


class IngressPublisher:
    def __init__(self, ingress: MessageIngress, serializer: Serializer = serialize_record) -> None:
        self.ingress = ingress
        self.serializer = serializer

    def publish(self, batch: Batch) -> int:
        """
        Send every record of `batch` in sequence_index order.

        Returns the number of records sent.

        Raises
        ------
        SerializationError
            A record could not be encoded; earlier records were already sent.
        TransportError
            The ingress rejected a send or its acknowledgment failed.
        """
        sent = 0
        for record in sorted(batch.records, key=lambda r: r.sequence_index):
            index = record.sequence_index
            try:
                body = self.serializer(record)
            except Exception as exc:  # noqa: BLE001 - any encoder failure aborts the loop
                raise SerializationError(
                    "Failed to serialize record", index=index, sent=sent, error=str(exc)
                ) from exc

            try:
                self.ingress.send(body)
            except TransportError as exc:
                if exc.index is None:
                    exc.index = index
                    exc.context["index"] = index
                exc.context.setdefault("sent", sent)
                raise
            except Exception as exc:  # noqa: BLE001 - unknown ingress failures are transport failures
                raise TransportError(
                    "Failed to send record", index=index, sent=sent, error=str(exc)
                ) from exc

            sent += 1
            log.debug("Record sent", extra={"index": index, "source": batch.source_tag})

        log.info(
            f"[PUBLISH] Sent {sent} records",
            extra={"source": batch.source_tag, "sent": sent},
        )
        return sent


__all__ = ["IngressPublisher", "serialize_record"]

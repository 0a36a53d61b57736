"""
AMQP 1.0 ingress adapter built on python-qpid-proton's blocking API.

With acknowledgment waiting on, each `send` blocks until the broker settles the
delivery; otherwise the sender link is opened at-most-once (pre-settled) and
`send` returns as soon as the frame is written. Opening the connection is
retried with exponential backoff via tenacity; individual sends are not, since
a resend could duplicate an already delivered record.
"""

from __future__ import annotations

from typing import Optional

from proton import ConnectionException, Message, ProtonException, Timeout
from proton.reactor import AtMostOnce, Container
from proton.utils import BlockingConnection, BlockingSender
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from logship_verify.config import Settings, get_settings
from logship_verify.errors import ConnectError, TransportError
from logship_verify.utils.logging import get_logger

log = get_logger(__name__)


class AmqpIngress:
    """
    Send serialized records to an AMQP 1.0 address.

    Parameters
    ----------
    url : str
        Broker URL without the address path (e.g. ``amqp://localhost:5672``).
    address : str
        Target node (e.g. ``lokean/logs``).
    send_timeout : float
        Seconds to wait for the connection to open and for each settlement.
    client_name : str
        AMQP container id announced to the broker.
    wait_for_ack : bool
        Block on broker settlement per message when True.
    connect_retries : int
        Attempts at opening the connection before giving up.
    """

    def __init__(
        self,
        url: str,
        address: str,
        send_timeout: float = 2.0,
        client_name: str = "test",
        wait_for_ack: bool = True,
        connect_retries: int = 3,
    ) -> None:
        self.url = url
        self.address = address
        self.send_timeout = send_timeout
        self.client_name = client_name
        self.wait_for_ack = wait_for_ack
        self._retrying = Retrying(
            stop=stop_after_attempt(connect_retries),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
            retry=retry_if_exception_type((ConnectionException, Timeout, OSError)),
            reraise=True,
        )
        self._connection: Optional[BlockingConnection] = None
        self._sender: Optional[BlockingSender] = None

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "AmqpIngress":
        settings = settings or get_settings()
        url, address = settings.amqp_endpoint()
        return cls(
            url=url,
            address=address,
            send_timeout=settings.amqp_send_timeout,
            client_name=settings.amqp_client_name,
            wait_for_ack=settings.amqp_wait_for_ack,
            connect_retries=settings.connect_retries,
        )

    def _open(self) -> BlockingConnection:
        container = Container()
        container.container_id = self.client_name
        return BlockingConnection(self.url, timeout=self.send_timeout, container=container)

    def connect(self) -> None:
        if self._sender is not None:
            return
        try:
            self._connection = self._retrying(self._open)
        except (ConnectionException, Timeout, OSError) as exc:
            raise ConnectError("Could not connect to AMQP ingress", url=self.url, error=str(exc)) from exc

        options = None if self.wait_for_ack else AtMostOnce()
        try:
            self._sender = self._connection.create_sender(self.address, options=options)
        except ProtonException as exc:
            self.close()
            raise ConnectError(
                "Could not attach sender", url=self.url, address=self.address, error=str(exc)
            ) from exc
        log.info(
            "AMQP ingress connected",
            extra={"url": self.url, "address": self.address, "wait_for_ack": self.wait_for_ack},
        )

    def send(self, body: str) -> None:
        if self._sender is None:
            raise TransportError("AMQP ingress is not connected", address=self.address)
        try:
            self._sender.send(Message(address=self.address, body=body), timeout=self.send_timeout)
        except (ProtonException, OSError) as exc:
            raise TransportError("AMQP send failed", address=self.address, error=str(exc)) from exc

    def close(self) -> None:
        """Close sender and connection; errors while closing are logged, not raised."""
        sender, connection = self._sender, self._connection
        self._sender = None
        self._connection = None
        if sender is not None:
            try:
                sender.close()
            except ProtonException as exc:
                log.warning("Failed to close AMQP sender", extra={"error": str(exc)})
        if connection is not None:
            try:
                connection.close()
            except ProtonException as exc:
                log.warning("Failed to close AMQP connection", extra={"error": str(exc)})

    def __enter__(self) -> "AmqpIngress":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


__all__ = ["AmqpIngress"]

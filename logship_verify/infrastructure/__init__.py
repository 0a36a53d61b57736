"""
Infrastructure package for the log-shipping verification harness.

Holds the collaborator interfaces and their concrete adapters (AMQP 1.0 ingress,
Loki query client). Keep this layer focused on I/O and resource management,
decoupled from generation and verification logic.
"""

from logship_verify.infrastructure.abstract import LogQueryBackend, MessageIngress
from logship_verify.infrastructure.amqp_ingress import AmqpIngress
from logship_verify.infrastructure.loki_client import LokiClient

__all__ = [
    "AmqpIngress",
    "LogQueryBackend",
    "LokiClient",
    "MessageIngress",
]

"""
Configuration settings for the log-shipping verification harness.

Uses Pydantic Settings to load environment variables for the AMQP ingress, the
Loki backend, logging, and verification defaults. An optional INI file (the
positional CLI argument) overrides the environment; it is validated through the
same model so a bad value surfaces as a ConfigError before any network I/O.
"""
from __future__ import annotations

import configparser
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlsplit, urlunsplit

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from logship_verify.errors import ConfigError
from logship_verify.utils.logging import get_logger

log = get_logger(__name__)

# (section, key) in the INI file -> Settings field name
INI_FIELDS: Dict[Tuple[str, str], str] = {
    ("amqp1", "connection"): "amqp_connection",
    ("amqp1", "address"): "amqp_address",
    ("amqp1", "send_timeout"): "amqp_send_timeout",
    ("amqp1", "client_name"): "amqp_client_name",
    ("amqp1", "wait_for_ack"): "amqp_wait_for_ack",
    ("loki", "connection"): "loki_connection",
    ("loki", "timeout"): "loki_timeout_s",
    ("loki", "lookback"): "loki_lookback_s",
    ("test", "count"): "record_count",
    ("test", "level"): "record_level",
    ("test", "source_prefix"): "source_prefix",
    ("test", "settle_ms"): "settle_ms",
    ("test", "query_attempts"): "query_attempts",
    ("test", "query_backoff_ms"): "query_backoff_ms",
    ("test", "query_deadline_s"): "query_deadline_s",
    ("test", "query_limit_slack"): "query_limit_slack",
    ("test", "selector_include_level"): "selector_include_level",
    ("test", "strict_unique"): "strict_unique",
    ("test", "connect_retries"): "connect_retries",
    ("logging", "level"): "log_level",
    ("logging", "json"): "json_logs",
}


class Settings(BaseSettings):
    # AMQP 1.0 ingress
    amqp_connection: str = Field("amqp://localhost:5672/lokean/logs", alias="AMQP_CONNECTION")
    amqp_address: str = Field("lokean/logs", alias="AMQP_ADDRESS")
    amqp_send_timeout: float = Field(2.0, gt=0, alias="AMQP_SEND_TIMEOUT")
    amqp_client_name: str = Field("test", alias="AMQP_CLIENT_NAME")
    amqp_wait_for_ack: bool = Field(True, alias="AMQP_WAIT_FOR_ACK")

    # Loki backend
    loki_connection: str = Field("http://localhost:3100", alias="LOKI_CONNECTION")
    loki_timeout_s: float = Field(5.0, gt=0, alias="LOKI_TIMEOUT_S")
    loki_lookback_s: int = Field(300, ge=0, alias="LOKI_LOOKBACK_S")

    # Verification
    record_count: int = Field(5, gt=0, alias="RECORD_COUNT")
    record_level: str = Field("TEST", min_length=1, alias="RECORD_LEVEL")
    source_prefix: str = Field("loggingTest", min_length=1, alias="SOURCE_PREFIX")
    settle_ms: int = Field(500, ge=0, alias="SETTLE_MS")
    query_attempts: int = Field(1, ge=1, alias="QUERY_ATTEMPTS")
    query_backoff_ms: int = Field(500, ge=0, alias="QUERY_BACKOFF_MS")
    query_deadline_s: float = Field(10.0, gt=0, alias="QUERY_DEADLINE_S")
    query_limit_slack: int = Field(0, ge=0, alias="QUERY_LIMIT_SLACK")
    selector_include_level: bool = Field(False, alias="SELECTOR_INCLUDE_LEVEL")
    strict_unique: bool = Field(False, alias="STRICT_UNIQUE")
    connect_retries: int = Field(3, ge=1, alias="CONNECT_RETRIES")

    # Application
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    json_logs: bool = Field(False, alias="JSON_LOGS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    def amqp_endpoint(self) -> Tuple[str, str]:
        """
        Split ``amqp_connection`` into (broker URL, target address).

        The URL path names the address (``amqp://host:5672/lokean/logs`` targets
        ``lokean/logs``); without a path, ``amqp_address`` is used.
        """
        parts = urlsplit(self.amqp_connection)
        address = parts.path.lstrip("/") or self.amqp_address
        broker = urlunsplit((parts.scheme, parts.netloc, "", "", ""))
        return broker, address


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


def _read_ini(config_path: Path) -> Dict[str, Any]:
    # Values are taken literally: URLs may carry percent-encoded credentials.
    parser = configparser.ConfigParser(interpolation=None)
    try:
        with config_path.open("r", encoding="utf-8") as f:
            parser.read_file(f)
    except OSError as exc:
        raise ConfigError("Cannot read config file", path=str(config_path), error=str(exc)) from exc
    except configparser.Error as exc:
        raise ConfigError("Malformed config file", path=str(config_path), error=str(exc)) from exc
    if parser.defaults():
        raise ConfigError(
            f"Unsupported [{parser.default_section}] section",
            path=str(config_path),
            keys=sorted(parser.defaults()),
        )

    values: Dict[str, Any] = {}
    for section in parser.sections():
        for key, value in parser.items(section):
            field_name = INI_FIELDS.get((section, key))
            if field_name is None:
                log.warning(
                    "Ignoring unknown config key",
                    extra={"section": section, "key": key, "path": str(config_path)},
                )
                continue
            values[field_name] = value
    return values


def load_settings(config_path: Optional[Path | str] = None) -> Settings:
    """
    Build Settings from the environment, overridden by an optional INI file.

    Raises
    ------
    ConfigError
        If the file is missing/malformed or any value fails validation.
    """
    overrides: Dict[str, Any] = {}
    if config_path is not None:
        overrides = _read_ini(Path(config_path))
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        errors = [
            {"field": ".".join(str(p) for p in err["loc"]), "error": err["msg"]}
            for err in exc.errors()
        ]
        raise ConfigError("Invalid configuration", path=str(config_path), errors=errors) from exc


__all__ = ["Settings", "get_settings", "load_settings", "INI_FIELDS"]

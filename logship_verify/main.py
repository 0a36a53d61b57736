from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import typer

from logship_verify.config import load_settings
from logship_verify.errors import ConfigError, HarnessError
from logship_verify.orchestrator import run_check
from logship_verify.reporter import print_verdict
from logship_verify.utils.logging import configure_logging, get_logger

EXIT_PASS = 0
EXIT_FAIL = 1
EXIT_ERROR = 2

app = typer.Typer(
    help="Verify that logs sent through the AMQP ingress appear in Loki.",
    add_completion=False,
)
log = get_logger("logship_verify")


@app.command()
def run(
    config_path: Optional[Path] = typer.Argument(
        None,
        help="INI config file with [amqp1], [loki], [test] and [logging] sections.",
    ),
    count: Optional[int] = typer.Argument(
        None,
        min=1,
        help="Number of logs to send (default 5, or test.count from the config).",
    ),
) -> None:
    """
    Send a tagged batch of logs and check every one of them was indexed.

    Exit status: 0 on PASS, 1 on FAIL, 2 on a configuration, connection,
    publish or query error.
    """
    configure_logging()
    try:
        settings = load_settings(config_path)
    except ConfigError as exc:
        log.error("Error while parsing config file", extra={"error": str(exc), **exc.context})
        raise typer.Exit(code=EXIT_ERROR)

    configure_logging(level=settings.log_level, json_logs=settings.json_logs)

    try:
        report = run_check(settings, count)
    except HarnessError as exc:
        log.error(
            f"[RUN ABORTED] {exc.stage} stage failed: {exc.message}",
            extra={"stage": exc.stage, "error_type": type(exc).__name__, **exc.context},
        )
        raise typer.Exit(code=EXIT_ERROR)

    print_verdict(report)
    if report["verdict"].passed:
        log.warning("SUCCESS!")
        raise typer.Exit(code=EXIT_PASS)
    log.warning(
        "TEST Failed, the logs sent through amqp didn't appear inside loki",
        extra={"reason": report["verdict"].reason},
    )
    raise typer.Exit(code=EXIT_FAIL)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()

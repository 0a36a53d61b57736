from __future__ import annotations

from typing import Optional

from rich import box
from rich.console import Console
from rich.table import Table

from logship_verify.orchestrator import RunReport


def _format_indices(indices: tuple[int, ...], limit: int = 20) -> str:
    if not indices:
        return "-"
    shown = ", ".join(str(i) for i in indices[:limit])
    if len(indices) > limit:
        shown += f", ... (+{len(indices) - limit})"
    return shown


def build_verdict_table(report: RunReport) -> Table:
    """
    Build the verdict table for one run.

    The title carries PASS/FAIL; rows list the run identity, counts, the
    indices that were missing or duplicated, and stage timings.
    """
    verdict = report["verdict"]
    status = "[bold green]PASS[/bold green]" if verdict.passed else "[bold red]FAIL[/bold red]"

    table = Table(
        title=f"Log Shipping Verification: {status}",
        box=box.ROUNDED,
        caption=verdict.reason,
        show_header=False,
    )
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value", justify="right", style="magenta")

    table.add_row("Run ID", str(report["run_id"]))
    table.add_row("Source tag", report["source_tag"])
    table.add_row("Records sent", f"{report['records_sent']:,}")
    table.add_row("Expected", f"{verdict.expected_count:,}")
    table.add_row("Returned", f"{verdict.actual_count:,}")
    table.add_row("Missing indices", _format_indices(verdict.missing_indices))
    table.add_row("Duplicate indices", _format_indices(verdict.duplicate_indices))
    table.add_row("Undecodable messages", str(len(verdict.undecodable_messages)))
    table.add_row("Publish (s)", f"{report['publish_seconds']:.3f}")
    table.add_row("Query (s)", f"{report['query_seconds']:.3f}")
    table.add_row("Query attempts", str(report["query_attempts"]))
    return table


def print_verdict(report: RunReport, console: Optional[Console] = None) -> None:
    """
    Render the verdict of a completed run as a rich table.
    """
    console = console or Console()
    console.print(build_verdict_table(report))


__all__ = ["build_verdict_table", "print_verdict"]

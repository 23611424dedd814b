"""CLI entry point for the bootup-time audit."""

import json
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from bootup_audit.audit import audit_trace
from bootup_audit.config import THROTTLING_METHODS, AuditOptions, Settings

app = typer.Typer(
    help="Bootup Time Audit - JavaScript execution cost per URL from a page-load trace",
    no_args_is_help=True
)
console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True
    )


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """Bootup Time Audit - JavaScript execution cost per URL from a page-load trace."""


def _render_results(result: dict) -> None:
    table = Table(title="JavaScript execution time by URL")
    table.add_column("URL", overflow="fold")
    table.add_column("Total CPU Time", justify="right")
    table.add_column("Script Evaluation", justify="right")
    table.add_column("Script Parse", justify="right")
    for item in result["details"]["items"]:
        table.add_row(
            item["url"],
            f"{item['total']:.0f} ms",
            f"{item['scripting']:.0f} ms",
            f"{item['scriptParseCompile']:.0f} ms"
        )
    console.print(table)

    console.print(f"[blue]Bootup time:[/blue] {result['displayValue'] or '0 s'}")
    console.print(f"[blue]Score:[/blue] {result['score']:.2f}")
    console.print(f"[blue]TBT impact:[/blue] {result['metricSavings']['TBT']:.0f} ms")
    if result["notApplicable"]:
        console.print("[yellow]Not applicable:[/yellow] no URL exceeded the threshold")
    for warning in result["runWarnings"]:
        console.print(f"[yellow]Warning:[/yellow] {warning}")


@app.command()
def audit(
    trace: Path = typer.Option(..., "--trace", help="Path to a Chrome or Perfetto trace file"),
    out: Path = typer.Option("bootup-time.json", "--out", help="Output JSON file path"),
    threshold_ms: float = typer.Option(50, "--threshold-ms", help="Minimum CPU time for a URL to be reported"),
    p10: float = typer.Option(1282, "--p10", help="Bootup time (ms) that scores 0.9"),
    median: float = typer.Option(3500, "--median", help="Bootup time (ms) that scores 0.5"),
    throttling_method: str = typer.Option(
        "simulate",
        "--throttling-method",
        help="Throttling used for the recorded run: simulate, devtools or provided"
    ),
    cpu_slowdown: float = typer.Option(4, "--cpu-slowdown", help="CPU slowdown multiplier for simulated throttling"),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
):
    """Audit a trace and write the bootup-time result as JSON."""
    _configure_logging(verbose)

    if not trace.exists():
        console.print(f"[red]Error:[/red] Trace file not found: {trace}")
        raise typer.Exit(code=1)

    if not trace.is_file():
        console.print(f"[red]Error:[/red] Path is not a file: {trace}")
        raise typer.Exit(code=1)

    if throttling_method not in THROTTLING_METHODS:
        console.print(f"[red]Error:[/red] Unknown throttling method: {throttling_method}")
        raise typer.Exit(code=1)

    console.print(f"[blue]Auditing trace:[/blue] {trace}")
    console.print(f"[blue]Output file:[/blue] {out}")
    console.print(f"[blue]Threshold:[/blue] {threshold_ms}ms")
    console.print(f"[blue]Throttling:[/blue] {throttling_method} (x{cpu_slowdown})")

    options = AuditOptions(p10=p10, median=median, threshold_in_ms=threshold_ms)
    settings = Settings(throttling_method=throttling_method, cpu_slowdown_multiplier=cpu_slowdown)

    try:
        result = audit_trace(str(trace), options=options, settings=settings)

        with open(out, "w") as f:
            json.dump(result, f, indent=2)

        _render_results(result)
        console.print(f"[green]✓[/green] Audit complete: {out}")

    except Exception as e:
        console.print(f"[red]Error during audit:[/red] {e}")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()

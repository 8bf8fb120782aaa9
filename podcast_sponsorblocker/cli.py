"""Command-line interface for Podcast Sponsorblocker using Typer.

Commands:
- `serve` runs the REST API with uvicorn.
- `analyze` runs the full pipeline for one episode in the foreground.
- `podcasts` and `requested` list the contents of the result database.
"""

from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from podcast_sponsorblocker import __version__
from podcast_sponsorblocker.config import PipelineConfig
from podcast_sponsorblocker.errors import SponsorblockError
from podcast_sponsorblocker.models import AnalysisResult
from podcast_sponsorblocker.pipeline.job_registry import RunStatus
from podcast_sponsorblocker.pipeline.service import ProcessStatus, create_service
from podcast_sponsorblocker.utils.constant import API_SERVER_NAME, API_SERVER_PORT, LOG_LEVEL
from podcast_sponsorblocker.utils.formatting import format_ms
from podcast_sponsorblocker.utils.logging_config import configure_logging

console = Console()


def version_callback(value: bool) -> None:
    """Show the application's version and exit.

    Args:
        value: When True, print the version and exit.

    Raises:
        typer.Exit: Always raised after printing when value is True.

    """
    if value:
        print(f"podcast-sponsorblocker version: {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="podcast-sponsorblocker",
    help="Find sponsor reads and self-promotion in podcast episodes.",
    add_completion=False,
)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show the application's version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """Show help when no subcommand is given.

    Args:
        ctx: Typer context.
        version: Whether to print version and exit.

    """
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


def _configure(verbose: bool, quiet: bool = False) -> None:
    if verbose or quiet:
        configure_logging(verbose=verbose, quiet=quiet)
    else:
        configure_logging(level=LOG_LEVEL)


def _print_result(result: AnalysisResult) -> None:
    table = Table(title=result.title or result.url, show_header=True, header_style="bold magenta")
    table.add_column("Start", style="cyan", no_wrap=True)
    table.add_column("End", style="cyan", no_wrap=True)
    table.add_column("Category", style="green")
    table.add_column("Description", style="yellow")
    for segment in result.segments:
        table.add_row(
            format_ms(segment.start_ms),
            format_ms(segment.end_ms),
            segment.category.value,
            segment.description,
        )
    console.print(table)
    if not result.segments:
        console.print("No advertisement segments found.")
    if result.cost is not None:
        console.print(
            f"Cost: ${result.cost.total_cost_usd:.4f} "
            f"({result.cost.transcription_seconds:.0f}s audio, "
            f"{result.cost.input_tokens} in / {result.cost.output_tokens} out tokens)"
        )


@app.command()
def serve(
    host: Annotated[
        str,
        typer.Option("--host", help="Server hostname or IP address to bind to."),
    ] = API_SERVER_NAME,
    port: Annotated[
        int,
        typer.Option("--port", help="Server port number."),
    ] = API_SERVER_PORT,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Enable debug mode with verbose logging."),
    ] = False,
) -> None:
    """Run the REST API server.

    Examples:
        # Listen on the configured host and port (default 0.0.0.0:3000):
        podcast-sponsorblocker serve

        # Custom port with debug logging:
        podcast-sponsorblocker serve --port 8080 --debug
    """
    import uvicorn

    _configure(verbose=debug)
    uvicorn.run(
        "podcast_sponsorblocker.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        log_level="debug" if debug else "info",
    )


@app.command()
def analyze(
    url: Annotated[str, typer.Argument(help="Episode audio URL.", show_default=False)],
    keep_audio: Annotated[
        bool,
        typer.Option("--keep-audio", help="Keep the downloaded audio and chunk files."),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose output."),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Suppress log output."),
    ] = False,
) -> None:
    """Analyze one episode in the foreground and print its ad segments.

    Cached episodes are printed without processing them again.
    """
    _configure(verbose, quiet)
    try:
        service = create_service(config=PipelineConfig(keep_audio=keep_audio))
        outcome = service.start_processing(url)
    except SponsorblockError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from e

    if outcome.status is ProcessStatus.ALREADY_PROCESSED:
        console.print("[bold]Cached result[/bold]")
        _print_result(outcome.result)
        return
    if outcome.status is ProcessStatus.ALREADY_RUNNING:
        typer.echo(f"Analysis already running as {outcome.run.run_id}", err=True)
        raise typer.Exit(code=1)

    run = service.execute(outcome.run.run_id)
    if run.status is not RunStatus.DONE or run.result is None:
        typer.echo(f"Error: {run.error}", err=True)
        raise typer.Exit(code=1)
    _print_result(run.result)


@app.command()
def podcasts() -> None:
    """List analyzed episodes, newest first."""
    _configure(verbose=False, quiet=True)
    service = create_service()
    table = Table(title="Analyzed podcasts", show_header=True, header_style="bold magenta")
    table.add_column("Title", style="cyan")
    table.add_column("Segments", style="green", justify="right")
    table.add_column("Cost (USD)", style="yellow", justify="right")
    table.add_column("Analyzed", style="white")
    table.add_column("URL", style="dim")
    results = service.list_podcasts()
    for result in results:
        table.add_row(
            result.title,
            str(len(result.segments)),
            f"{result.cost.total_cost_usd:.4f}" if result.cost else "-",
            result.created_at.strftime("%Y-%m-%d %H:%M") if result.created_at else "-",
            result.url,
        )
    console.print(table)
    console.print(f"{len(results)} podcast(s)")


@app.command()
def requested() -> None:
    """List episodes that were requested but not analyzed yet."""
    _configure(verbose=False, quiet=True)
    service = create_service()
    table = Table(title="Requested episodes", show_header=True, header_style="bold magenta")
    table.add_column("Requests", style="green", justify="right")
    table.add_column("Last requested", style="white")
    table.add_column("URL", style="cyan")
    rows = service.list_requested()
    for row in rows:
        table.add_row(
            str(row.request_count),
            row.last_requested_at.strftime("%Y-%m-%d %H:%M"),
            row.url,
        )
    console.print(table)
    console.print(f"{len(rows)} requested URL(s)")


if __name__ == "__main__":
    app()

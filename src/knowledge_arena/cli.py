"""CLI for Knowledge Arena."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated

import pydantic
import structlog
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from knowledge_arena import __version__
from knowledge_arena.attribution import (
    QualityAssessment,
    format_quality_score,
    format_shapley_value,
    quality_tier,
)
from knowledge_arena.core.config import ArenaConfig, load_config
from knowledge_arena.core.errors import EngineError
from knowledge_arena.pipeline import replay_matches, run_attribution
from knowledge_arena.ranking import Glicko2System, format_rating, predict_outcome
from knowledge_arena.services.reporting import (
    generate_attribution_report,
    generate_leaderboard_report,
)

# Configure structlog
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

app = typer.Typer(
    name="knowledge-arena",
    help="Knowledge Arena - Glicko-2 ratings and Shapley attribution for knowledge sources",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"knowledge-arena v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
) -> None:
    """Knowledge Arena CLI."""


def _configure_logging(verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )


def _load(config_path: Path) -> ArenaConfig:
    try:
        return load_config(config_path)
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e
    except pydantic.ValidationError as e:
        console.print(f"[red]Invalid arena file:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e


def _leaderboard_table(system: Glicko2System) -> Table:
    table = Table(title="Leaderboard")
    table.add_column("Rank", justify="right")
    table.add_column("Source")
    table.add_column("Rating (95% CI)")
    table.add_column("RD", justify="right")
    table.add_column("Volatility", justify="right")
    table.add_column("W-L-T", justify="right")
    table.add_column("Win %", justify="right")

    for rank, entry in enumerate(system.get_leaderboard(), 1):
        table.add_row(
            str(rank),
            entry.candidate_id,
            format_rating(system.get_rating_object(entry.candidate_id)),
            f"{entry.phi:.1f}",
            f"{entry.sigma:.5f}",
            f"{entry.wins}-{entry.losses}-{entry.ties}",
            f"{system.win_rate(entry.candidate_id):.1f}",
        )
    return table


def _attribution_table(assessment: QualityAssessment) -> Table:
    table = Table(title=f"Attribution ({assessment.mode})")
    table.add_column("Source")
    table.add_column("Quality", justify="right")
    table.add_column("Shapley", justify="right")
    table.add_column("Expected", justify="right")
    if assessment.mode == "sampled":
        table.add_column("Std. error", justify="right")

    for source in assessment.sources:
        tier = quality_tier(source.overall_score)
        row = [
            source.name,
            f"[{tier.style}]{format_quality_score(source.overall_score)} {tier.label}[/]",
            format_shapley_value(source.shapley_value),
            format_quality_score(source.expected_value),
        ]
        if assessment.mode == "sampled":
            row.append(f"±{source.standard_error * 100:.2f}%")
        table.add_row(*row)
    return table


@app.command()
def rate(
    config_path: Annotated[Path, typer.Argument(help="Path to arena YAML file")],
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write a markdown leaderboard")
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-V", help="Verbose output")] = False,
) -> None:
    """Replay recorded votes and print the resulting leaderboard.

    Args:
        config_path: Path to YAML arena file.
        output: Optional path for a markdown report.
        verbose: Enable verbose logging.
    """
    _configure_logging(verbose)
    config = _load(config_path)

    try:
        system = replay_matches(config)
    except EngineError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1) from e

    console.print(_leaderboard_table(system))
    if output is not None:
        output.write_text(generate_leaderboard_report(system))
        console.print(f"Report saved to: {output}")


@app.command()
def attribute(
    config_path: Annotated[Path, typer.Argument(help="Path to arena YAML file")],
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Write a markdown report")
    ] = None,
    mode: Annotated[
        str | None, typer.Option("--mode", help="Shapley estimator: auto, exact or sampled")
    ] = None,
    samples: Annotated[
        int | None, typer.Option("--samples", help="Permutations for the sampled estimator")
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-V", help="Verbose output")] = False,
) -> None:
    """Attribute the value of a blend across the sources that declare metrics.

    Args:
        config_path: Path to YAML arena file.
        output: Optional path for a markdown report.
        mode: Override the Shapley estimator.
        samples: Override the permutation count.
        verbose: Enable verbose logging.
    """
    _configure_logging(verbose)
    config = _load(config_path)
    if mode is not None:
        config.attribution.mode = mode
    if samples is not None:
        config.attribution.samples = samples

    try:
        assessment = run_attribution(config)
    except EngineError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1) from e

    console.print(_attribution_table(assessment))
    console.print(f"Coalition value: {format_quality_score(assessment.coalition_value)}")
    if output is not None:
        output.write_text(generate_attribution_report(assessment))
        console.print(f"Report saved to: {output}")


@app.command()
def predict(
    config_path: Annotated[Path, typer.Argument(help="Path to arena YAML file")],
    source_a: Annotated[str, typer.Argument(help="Slug of source A")],
    source_b: Annotated[str, typer.Argument(help="Slug of source B")],
) -> None:
    """Show the probability that source A beats source B after replaying votes.

    Args:
        config_path: Path to YAML arena file.
        source_a: Slug of source A.
        source_b: Slug of source B.
    """
    config = _load(config_path)

    try:
        system = replay_matches(config)
        probability = predict_outcome(
            system.get_rating_object(source_a), system.get_rating_object(source_b)
        )
    except EngineError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1) from e

    console.print(f"P({source_a} beats {source_b}) = {probability:.3f}")


@app.command()
def validate(
    config_path: Annotated[Path, typer.Argument(help="Path to arena YAML file")],
) -> None:
    """Validate an arena file without running.

    Args:
        config_path: Path to YAML arena file.
    """
    config = _load(config_path)
    console.print("[green]Arena file is valid![/green]")
    console.print(f"  Sources: {len(config.sources)}")
    console.print(f"  With metrics: {sum(s.metrics is not None for s in config.sources)}")
    console.print(f"  Matches: {len(config.matches)}")
    console.print(f"  Idle sources: {len(config.idle_sources)}")
    console.print(f"  Attribution mode: {config.attribution.mode}")


@app.command()
def info() -> None:
    """Show tool information and example commands."""
    console.print("[bold]Knowledge Arena[/bold]")
    console.print(f"Version: {__version__}\n")

    console.print("[bold]Example Commands:[/bold]")
    console.print("  # Replay votes and show the leaderboard")
    console.print("  knowledge-arena rate arena.yaml\n")

    console.print("  # Save the leaderboard as markdown")
    console.print("  knowledge-arena rate arena.yaml --output leaderboard.md\n")

    console.print("  # Attribute a blend across sources")
    console.print("  knowledge-arena attribute arena.yaml\n")

    console.print("  # Force the sampled Shapley estimator")
    console.print("  knowledge-arena attribute arena.yaml --mode sampled --samples 5000\n")

    console.print("  # Win probability between two sources")
    console.print("  knowledge-arena predict arena.yaml wikipedia britannica\n")

    console.print("  # Validate an arena file")
    console.print("  knowledge-arena validate arena.yaml")


if __name__ == "__main__":
    app()

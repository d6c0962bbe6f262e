"""
stepforge command line.

``stepforge map``        - Map one line of step text and show the primitive.
``stepforge normalize``  - Compile a journey document into IR.
``stepforge blocks``     - List the managed blocks of a generated file.
``stepforge llkb ...``   - Inspect and maintain the learned pattern store.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ._version import __version__
from .codegen.blocks import extract_managed_blocks
from .core.config import StepforgeConfig, load_config
from .core.errors import StepforgeError
from .journey.normalizer import normalize_journey, validate_journey_for_codegen
from .journey.parser import parse_journey
from .llkb.promotion import PromotionCriteria
from .llkb.store import LearnedPatternStore
from .mapping.glossary import DEFAULT_GLOSSARY, GlossaryNormalizer, load_glossary
from .mapping.patterns import match_pattern
from .mapping.step_mapper import StepMapper, suggest_improvements

app = typer.Typer(
    help="stepforge - compile natural-language test journeys into IR",
    no_args_is_help=True,
)
llkb_app = typer.Typer(help="Learned pattern store maintenance", no_args_is_help=True)
app.add_typer(llkb_app, name="llkb")

console = Console()

ProjectOption = Annotated[
    Path, typer.Option("--project", "-p", help="Project root containing stepforge.toml")
]


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"stepforge {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", help="Enable debug logging")] = False,
) -> None:
    """stepforge CLI main callback for global options."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# =============================================================================
# Helpers
# =============================================================================


def _load_config(project: Path) -> StepforgeConfig:
    try:
        return load_config(project.resolve())
    except StepforgeError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1) from e


def _normalizer(config: StepforgeConfig) -> GlossaryNormalizer:
    path = config.glossary_path
    try:
        glossary = load_glossary(path) if path is not None else DEFAULT_GLOSSARY
    except StepforgeError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1) from e
    return GlossaryNormalizer(glossary)


def _store(config: StepforgeConfig, normalizer: GlossaryNormalizer | None = None) -> LearnedPatternStore:
    return LearnedPatternStore(
        config.llkb_root,
        normalizer=normalizer or _normalizer(config),
        cache_ttl=config.llkb.cache_ttl,
    )


def _mapper(config: StepforgeConfig, use_llkb: bool) -> StepMapper:
    normalizer = _normalizer(config)
    store = _store(config, normalizer) if use_llkb else None
    return StepMapper(
        normalizer,
        store,
        min_confidence=config.llkb.min_confidence,
        use_fuzzy_match=config.llkb.fuzzy_match,
        min_similarity=config.llkb.min_similarity,
    )


def _print_json(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False))


# =============================================================================
# Commands
# =============================================================================


@app.command(name="map")
def map_command(
    text: Annotated[str, typer.Argument(help="Step text, e.g. \"User clicks 'Save' button\"")],
    project: ProjectOption = Path("."),
    no_llkb: Annotated[
        bool, typer.Option("--no-llkb", help="Do not consult the learned pattern store")
    ] = False,
) -> None:
    """Map one line of step text to an IR primitive."""
    config = _load_config(project)
    result = _mapper(config, use_llkb=not no_llkb).map_step(text)

    for warning in result.warnings:
        console.print(f"[yellow]warning:[/yellow] {escape(warning)}")

    if result.blocked:
        console.print(f"[red]{escape(result.message or text)}[/red]")
        for suggestion in suggest_improvements([text]):
            console.print(f"  {escape(suggestion)}")
        raise typer.Exit(1)

    source = result.matched_by.value
    if result.pattern:
        source = f"{source} ({result.pattern})"
    console.print(f"[green]Matched by {source}[/green]")
    _print_json(result.primitive.to_dict())


@app.command(name="normalize")
def normalize_command(
    journey_file: Annotated[Path, typer.Argument(help="Journey Markdown file")],
    project: ProjectOption = Path("."),
    strict: Annotated[
        bool, typer.Option("--strict", help="Drop criteria containing unmapped steps")
    ] = False,
    no_blocked: Annotated[
        bool, typer.Option("--no-blocked", help="Leave out criteria containing unmapped steps")
    ] = False,
    output_json: Annotated[bool, typer.Option("--json", help="Output the IR as JSON")] = False,
    no_llkb: Annotated[
        bool, typer.Option("--no-llkb", help="Do not consult the learned pattern store")
    ] = False,
) -> None:
    """Compile a journey document into IR."""
    config = _load_config(project)
    try:
        parsed = parse_journey(journey_file)
    except StepforgeError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1) from e

    result = normalize_journey(
        parsed,
        mapper=_mapper(config, use_llkb=not no_llkb),
        include_blocked=not no_blocked,
        strict=strict,
    )

    if output_json:
        _print_json(result.journey.to_dict())
    else:
        table = Table(title=f"{result.journey.id}: {result.journey.title}")
        table.add_column("Step", style="cyan")
        table.add_column("Description")
        table.add_column("Actions", justify="right")
        table.add_column("Assertions", justify="right")
        for step in result.journey.steps:
            table.add_row(
                step.id, escape(step.description), str(len(step.actions)), str(len(step.assertions))
            )
        console.print(table)

        stats = result.stats
        console.print(
            f"{stats.mapped_steps}/{stats.total_steps} steps, "
            f"{stats.total_actions} actions, {stats.total_assertions} assertions, "
            f"{stats.blocked_steps} blocked"
        )
        for blocked in result.blocked_steps:
            console.print(f"[red]blocked[/red] {blocked.step_id}: {escape(blocked.source_text)}")
        for warning in result.warnings:
            console.print(f"[yellow]warning:[/yellow] {escape(warning)}")

        readiness = validate_journey_for_codegen(result)
        if readiness.valid:
            console.print("[green]Ready for code generation[/green]")
        else:
            for error in readiness.errors:
                console.print(f"[red]not ready:[/red] {escape(error)}")

    if strict and result.dropped_steps:
        raise typer.Exit(1)


@app.command(name="blocks")
def blocks_command(
    generated_file: Annotated[Path, typer.Argument(help="Generated source file")],
) -> None:
    """List the managed blocks of a generated file."""
    try:
        source = generated_file.read_text(encoding="utf-8")
    except OSError as e:
        console.print(f"[red]Cannot read {escape(str(generated_file))}: {escape(str(e))}[/red]")
        raise typer.Exit(1) from e

    extraction = extract_managed_blocks(source)
    if not extraction.has_blocks:
        console.print("No managed blocks found.")
    else:
        table = Table(title=str(generated_file))
        table.add_column("Id", style="cyan")
        table.add_column("Lines", justify="right")
        table.add_column("Content lines", justify="right")
        for block in extraction.blocks:
            content_lines = len(block.content.split("\n")) if block.content else 0
            table.add_row(
                block.id or "-",
                f"{block.start_line + 1}-{block.end_line + 1}",
                str(content_lines),
            )
        console.print(table)
    console.print(f"{len(extraction.preserved_lines)} preserved line(s)")
    for warning in extraction.warnings:
        console.print(f"[yellow]warning:[/yellow] {escape(warning.message)}")


# =============================================================================
# LLKB Commands
# =============================================================================


@llkb_app.command(name="stats")
def llkb_stats(project: ProjectOption = Path(".")) -> None:
    """Show learned pattern store statistics."""
    stats = _store(_load_config(project)).stats()
    table = Table(title="Learned patterns")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Total", str(stats.total))
    table.add_row("Promoted", str(stats.promoted))
    table.add_row("High confidence", str(stats.high_confidence))
    table.add_row("Low confidence", str(stats.low_confidence))
    table.add_row("Average confidence", f"{stats.avg_confidence:.3f}")
    table.add_row("Successes", str(stats.total_successes))
    table.add_row("Failures", str(stats.total_failures))
    console.print(table)


@llkb_app.command(name="prune")
def llkb_prune(
    project: ProjectOption = Path("."),
    max_age_days: Annotated[int, typer.Option("--max-age-days")] = 90,
    min_confidence: Annotated[float, typer.Option("--min-confidence")] = 0.3,
    min_success: Annotated[int, typer.Option("--min-success")] = 1,
) -> None:
    """Remove low-value learned patterns."""
    result = _store(_load_config(project)).prune(
        max_age_days=max_age_days, min_confidence=min_confidence, min_success=min_success
    )
    console.print(f"Removed {result.removed} pattern(s), {result.remaining} remaining")
    for pattern_id in result.removed_ids:
        console.print(f"  {pattern_id}")


@llkb_app.command(name="export")
def llkb_export(
    project: ProjectOption = Path("."),
    output: Annotated[Path | None, typer.Option("--output", "-o", help="Output file")] = None,
    min_confidence: Annotated[float, typer.Option("--min-confidence")] = 0.7,
) -> None:
    """Export confident patterns as trigger regexes."""
    result = _store(_load_config(project)).export(output, min_confidence=min_confidence)
    console.print(f"Exported {result.exported} pattern(s) to {escape(str(result.path))}")


@llkb_app.command(name="promotable")
def llkb_promotable(
    project: ProjectOption = Path("."),
    min_confidence: Annotated[float, typer.Option("--min-confidence")] = 0.9,
    min_success: Annotated[int, typer.Option("--min-success")] = 5,
    min_journeys: Annotated[int, typer.Option("--min-journeys")] = 2,
    mark: Annotated[
        bool, typer.Option("--mark", help="Mark the listed patterns as promoted")
    ] = False,
) -> None:
    """List patterns ready to become grammar rules."""
    store = _store(_load_config(project))
    criteria = PromotionCriteria(
        min_confidence=min_confidence,
        min_success_count=min_success,
        min_source_journeys=min_journeys,
    )
    candidates = store.promotable(criteria)
    if not candidates:
        console.print("No promotable patterns.")
        return

    table = Table(title="Promotable patterns")
    table.add_column("Id", style="cyan")
    table.add_column("Text")
    table.add_column("Priority", justify="right")
    table.add_column("Regex")
    for candidate in candidates:
        table.add_row(
            candidate.pattern.id,
            escape(candidate.pattern.original_text),
            f"{candidate.priority:.2f}",
            escape(candidate.generated_regex),
        )
    console.print(table)

    if mark:
        changed = store.mark_promoted(c.pattern.id for c in candidates)
        console.print(f"Marked {changed} pattern(s) as promoted")


@llkb_app.command(name="learn")
def llkb_learn(
    text: Annotated[str, typer.Argument(help="Step text to teach")],
    as_text: Annotated[
        str, typer.Option("--as", help="Equivalent phrasing the grammar already understands")
    ],
    journey: Annotated[str, typer.Option("--journey", "-j", help="Journey id, e.g. JRN-0001")],
    project: ProjectOption = Path("."),
) -> None:
    """Teach the store that TEXT means the same as a grammar phrasing."""
    primitive = match_pattern(as_text)
    if primitive is None:
        console.print(f'[red]The grammar does not understand "{escape(as_text)}"[/red]')
        raise typer.Exit(1)
    pattern = _store(_load_config(project)).record_success(text, primitive, journey)
    console.print(
        f"Learned {pattern.id} ({pattern.success_count} success(es), "
        f"confidence {pattern.confidence:.3f})"
    )


@llkb_app.command(name="fail")
def llkb_fail(
    text: Annotated[str, typer.Argument(help="Step text whose learned mapping was wrong")],
    journey: Annotated[str, typer.Option("--journey", "-j", help="Journey id, e.g. JRN-0001")],
    project: ProjectOption = Path("."),
) -> None:
    """Record a failure against a learned pattern."""
    pattern = _store(_load_config(project)).record_failure(text, journey)
    if pattern is None:
        console.print(f'[yellow]No learned pattern for "{escape(text)}"[/yellow]')
        raise typer.Exit(1)
    console.print(f"{pattern.id} confidence now {pattern.confidence:.3f}")


@llkb_app.command(name="clear")
def llkb_clear(
    project: ProjectOption = Path("."),
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Delete every learned pattern."""
    store = _store(_load_config(project))
    if not yes and not typer.confirm(f"Delete all learned patterns in {store.root}?"):
        raise typer.Exit(1)
    store.clear()
    console.print("Learned patterns cleared")


def main() -> None:
    app()


if __name__ == "__main__":
    main()

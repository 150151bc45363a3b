"""CLI entry-point: platform specs, enumeration, ordering and export of combination files."""

import asyncio
import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from amx.config import get_settings
from amx.errors import MatrixError
from amx.export.pipeline import save_artifact
from amx.export.platforms import DEFAULT_REGISTRY
from amx.matrix.combination import create
from amx.matrix.ordering import order as order_combinations
from amx.matrix.permutations import VariableSlot, enumerate_assignments
from amx.schemas.export_schemas import ExportStatus
from amx.schemas.models import Combination, SortMode
from amx.services import build_export_pipeline

app = typer.Typer(help="Asset matrix: combinations, ordering and export")


def _load_json(path: str, console: Console):
    p = Path(path)
    if not p.exists():
        console.print(f"[red]Error: file not found: {p}[/red]")
        raise typer.Exit(1)
    try:
        with open(p, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        console.print(f"[red]Error: invalid JSON in {p}: {e}[/red]")
        raise typer.Exit(1)


def _load_combinations(path: str, console: Console) -> list[Combination]:
    data = _load_json(path, console)
    try:
        return [Combination.model_validate(item) for item in data]
    except (TypeError, ValueError) as e:
        console.print(f"[red]Error: {path} is not a list of combinations: {e}[/red]")
        raise typer.Exit(1)


def _write_combinations(combinations: list[Combination], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump([c.model_dump(mode="json") for c in combinations], f, indent=2)


@app.command()
def platforms():
    """List the platform spec registry."""
    console = Console()
    table = Table(title="Platform specs")
    for column in ("Platform", "Placement", "Aspect ratios", "Max duration (s)", "Max size (MB)", "Codec", "Bitrate"):
        table.add_column(column)
    for spec in DEFAULT_REGISTRY.list_specs():
        table.add_row(
            spec.platform.value,
            spec.placement.value,
            ", ".join(spec.aspect_ratios),
            f"{spec.max_duration_seconds:g}",
            f"{spec.max_file_size_mb:g}",
            spec.recommended_codec,
            spec.recommended_bitrate,
        )
    console.print(table)


@app.command()
def resolve(
    platform: str = typer.Argument(..., help="Platform, e.g. instagram"),
    placement: str = typer.Argument("feed", help="Placement, e.g. feed | stories | reels"),
):
    """Print the spec for one platform placement."""
    console = Console()
    try:
        spec = DEFAULT_REGISTRY.resolve(platform, placement)
    except MatrixError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    console.print_json(spec.model_dump_json())


@app.command("enumerate")
def enumerate_combinations(
    slots: str = typer.Option(..., "--slots", help="JSON file: list of {name, candidates, locked}"),
    out: str = typer.Option(..., "--out", help="Output JSON file for the generated combinations"),
    max_combinations: int = typer.Option(None, "--max", help="Cap on the number of combinations"),
    vary: str = typer.Option(None, "--vary", help="Comma-separated variables to vary (default: all unlocked)"),
    aspect_ratio: str = typer.Option(None, "--aspect-ratio", help="Output aspect ratio, e.g. 9:16"),
):
    """Enumerate pending combinations from variable slots."""
    console = Console()
    data = _load_json(slots, console)
    vary_names = [v.strip() for v in vary.split(",") if v.strip()] if vary else None
    try:
        parsed = [VariableSlot.model_validate(s) for s in data]
        assignments = enumerate_assignments(parsed, max_combinations=max_combinations, vary=vary_names)
        combinations = [
            create(a, sequence=i, aspect_ratio=aspect_ratio)
            for i, a in enumerate(assignments, start=1)
        ]
    except (MatrixError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)
    _write_combinations(combinations, Path(out))
    console.print(f"Wrote {out} ({len(combinations)} combinations)")
    console.print("[green]Done.[/green]")


@app.command()
def order(
    combinations: str = typer.Option(..., "--combinations", help="JSON file of combinations"),
    sort: SortMode = typer.Option(SortMode.SCORE, "--sort", help="score | favourite | date"),
):
    """Show combinations in display order."""
    console = Console()
    items = order_combinations(_load_combinations(combinations, console), sort)
    table = Table(title=f"Combinations by {sort.value}")
    for column in ("Id", "Status", "Progress", "Score", "Favourite"):
        table.add_column(column)
    for c in items:
        table.add_row(
            c.id[:8],
            c.status.value,
            f"{c.progress:.0f}%",
            "-" if c.engagement_score is None else f"{c.engagement_score:.2f}",
            "*" if c.is_favourite else "",
        )
    console.print(table)


@app.command()
def export(
    combinations: str = typer.Option(..., "--combinations", help="JSON file of combinations"),
    target: str = typer.Option("download", "--target", help="download | <platform>-<placement>"),
    out: str = typer.Option(None, "--out", help="Directory for the downloaded archive (default: data/exports)"),
    overrides: str = typer.Option(None, "--overrides", help="JSON file: platform -> aspect ratios"),
):
    """Export completed combinations to a zip archive or a distribution platform."""
    console = Console()
    settings = get_settings()
    items = _load_combinations(combinations, console)
    format_overrides = _load_json(overrides, console) if overrides else None
    pipeline = build_export_pipeline(settings)

    result = asyncio.run(pipeline.export_many(items, target, format_overrides))

    table = Table(title=f"Export to {target}")
    for column in ("Id", "Status", "File", "Error"):
        table.add_column(column)
    for outcome in result.outcomes:
        table.add_row(outcome.combination_id[:8], outcome.status.value, outcome.filename or "", outcome.error or "")
    console.print(table)

    if result.archive is not None:
        path = save_artifact(result.archive, Path(out) if out else settings.exports_dir)
        console.print(f"Wrote {path}")
    if result.by_status(ExportStatus.FAILED):
        console.print("[yellow]Some combinations failed to export. See the table above.[/yellow]")
    console.print("[green]Done.[/green]")


if __name__ == "__main__":
    app()

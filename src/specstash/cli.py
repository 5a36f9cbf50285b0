"""
SpecStash CLI - Command-line interface.

Inspect the artifact store and run collection passes from the terminal.
"""

import asyncio
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from specstash.core.config import StashConfig
from specstash.stash import ArtifactStash

app = typer.Typer(
    name="specstash",
    help="SpecStash - Temporary artifact lifecycle manager",
    no_args_is_help=True,
)
console = Console()


def _format_ms(value: int) -> str:
    if not value:
        return "never"
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def _stash(ctx: typer.Context) -> ArtifactStash:
    return ctx.obj["stash"]


@app.callback()
def main(
    ctx: typer.Context,
    root: Optional[Path] = typer.Option(None, "--root", help="Primary storage root"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Configure logging and storage for the selected command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    config = StashConfig.from_env()
    if root is not None:
        config = config.model_copy(update={"primary_root": root})
    ctx.obj = {"stash": ArtifactStash(config)}


@app.command()
def info(ctx: typer.Context):
    """Show the active storage root and manifest summary."""
    stash = _stash(ctx)

    async def _collect():
        root, using_fallback = await stash.locator.resolve_root()
        manifest = await stash.manifest_store.read()
        return root, using_fallback, manifest

    root, using_fallback, manifest = asyncio.run(_collect())

    statuses: dict[str, int] = {}
    for record in manifest.files.values():
        statuses[record.status.value] = statuses.get(record.status.value, 0) + 1
    status_line = ", ".join(f"{k}={v}" for k, v in sorted(statuses.items())) or "none"

    console.print(
        Panel.fit(
            f"[bold blue]SpecStash[/bold blue]\n"
            f"Root: {root}\n"
            f"Fallback: {'yes' if using_fallback else 'no'}\n"
            f"Artifact sets: {len(manifest.files)} ({status_line})\n"
            f"Last cleanup: {_format_ms(manifest.last_cleanup)}",
        )
    )


@app.command("list")
def list_sets(ctx: typer.Context):
    """List tracked artifact sets."""
    stash = _stash(ctx)
    records = asyncio.run(stash.lifecycle.list_sets())

    table = Table(title=f"Artifact Sets ({len(records)})")
    table.add_column("ID", style="cyan")
    table.add_column("Session")
    table.add_column("Status", style="magenta")
    table.add_column("Assets", justify="right")
    table.add_column("Expires", style="green")

    for record in records:
        table.add_row(
            record.set_id,
            record.session_id,
            record.status.value,
            str(len(record.asset_paths)),
            _format_ms(record.expires_at),
        )

    console.print(table)


@app.command()
def show(
    ctx: typer.Context,
    set_id: str = typer.Argument(..., help="Artifact set ID"),
):
    """Show one artifact set."""
    stash = _stash(ctx)
    record = asyncio.run(stash.lifecycle.get_set(set_id))

    if record is None:
        console.print(f"[red]Artifact set not found: {set_id}[/red]")
        raise typer.Exit(1)

    console.print(
        Panel.fit(
            f"[bold blue]Artifact Set {record.set_id}[/bold blue]\n"
            f"Session: {record.session_id}\n"
            f"Status: {record.status.value}\n"
            f"Document: {record.document_path}\n"
            f"Created: {_format_ms(record.created_at)}\n"
            f"Expires: {_format_ms(record.expires_at)}",
        )
    )
    for asset_id, path in record.asset_paths.items():
        console.print(f"  {asset_id}: {path}")


@app.command()
def sweep(
    ctx: typer.Context,
    drafts: bool = typer.Option(False, "--drafts", "-d", help="Also sweep stale drafts"),
):
    """Remove expired artifact sets."""
    stash = _stash(ctx)
    report = asyncio.run(stash.sweep(include_drafts=drafts))

    console.print(f"Removed {len(report.removed_sets)} artifact set(s)")
    for set_id in report.removed_sets:
        console.print(f"  [dim]{set_id}[/dim]")
    if drafts:
        console.print(f"Removed {len(report.removed_drafts)} draft(s)")


@app.command()
def reconcile(ctx: typer.Context):
    """Remove stale directories the manifest does not reference."""
    stash = _stash(ctx)
    report = asyncio.run(stash.reconcile())

    console.print(f"Removed {len(report.removed_directories)} unreferenced director(ies)")
    for name in report.removed_directories:
        console.print(f"  [dim]{name}[/dim]")


@app.command()
def version():
    """Show SpecStash version."""
    from specstash import __version__

    console.print(f"SpecStash v{__version__}")


if __name__ == "__main__":
    app()

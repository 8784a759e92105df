from __future__ import annotations

import asyncio
import importlib.metadata as md
import json
import logging
from pathlib import Path

import typer
from rich.console import Console

from .config import WardriveConfig, load_config, load_config_or_default, resolve_config_path
from .domain.models import Sample
from .infrastructure.database import AsyncSampleStore, SampleStoreError
from .tools.retention import enforce_retention

# Typer application: tests import this
app = typer.Typer(no_args_is_help=True, add_completion=False, help="meshwardrive sample store CLI")
console = Console()

ConfigOption = typer.Option(Path("configs/meshwardrive.yml"), "--config", "-c")
DataDirOption = typer.Option(None, "--data-dir", help="Override store.data_dir")


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _setup(config: Path, data_dir: Path | None) -> tuple[WardriveConfig, AsyncSampleStore]:
    try:
        cfg = load_config_or_default(config)
    except ValueError as exc:
        console.print(f"Config validation failed: {exc}")
        raise typer.Exit(code=1) from exc
    _configure_logging(cfg.logging.level)
    store = AsyncSampleStore(
        data_dir if data_dir is not None else cfg.store.resolved_data_dir,
        file_name=cfg.store.file_name,
        timeout=cfg.store.timeout,
    )
    return cfg, store


def _run(coro):
    try:
        return asyncio.run(coro)
    except (SampleStoreError, ValueError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc


@app.command()
def version() -> None:
    """Print version information."""
    try:
        dist_version = md.version("meshwardrive")
    except md.PackageNotFoundError:
        from . import __version__

        dist_version = __version__
    console.print(f"meshwardrive {dist_version}")


@app.command(name="config-validate")
def config_validate(path: Path = typer.Argument(Path("configs/meshwardrive.yml"))) -> None:
    """Validate and show resolved configuration."""
    resolved = resolve_config_path(path)
    console.print(f"Using config: {resolved}")
    try:
        cfg = load_config(resolved)
    except (OSError, ValueError) as exc:
        console.print(f"Config validation failed: {exc}")
        raise typer.Exit(code=1) from exc
    console.print("Config OK.")
    console.print(f"- database: {cfg.store.db_path}")
    console.print(f"- retention: {'on' if cfg.retention.enabled else 'off'} ({cfg.retention.max_age_days} days)")


@app.command()
def info(config: Path = ConfigOption, data_dir: Path | None = DataDirOption) -> None:
    """Show database location, schema version and sample count."""
    _, store = _setup(config, data_dir)

    async def _info() -> dict:
        async with store:
            latest = await store.get_most_recent()
            return {
                "database": str(store.db_path),
                "schema_version": await store.schema_version(),
                "samples": await store.count(),
                "most_recent": latest.to_export() if latest else None,
            }

    console.print(_run(_info()))


@app.command()
def export(
    output: Path | None = typer.Option(None, "--output", "-o", help="Write JSON here instead of stdout"),
    config: Path = ConfigOption,
    data_dir: Path | None = DataDirOption,
) -> None:
    """Export every sample as a JSON array, most recent first."""
    _, store = _setup(config, data_dir)

    async def _export() -> list[dict]:
        async with store:
            return await store.export_all()

    payload = json.dumps(_run(_export()), indent=2)
    if output is None:
        typer.echo(payload)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(payload + "\n", encoding="utf-8")
    console.print(f"Exported to {output}")


@app.command(name="import")
def import_samples(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON array of exported samples"),
    config: Path = ConfigOption,
    data_dir: Path | None = DataDirOption,
) -> None:
    """Import samples from an export file. Existing ids are left untouched."""
    _, store = _setup(config, data_dir)

    async def _import() -> dict:
        raw = json.loads(source.read_text(encoding="utf-8"))
        if not isinstance(raw, list):
            raise ValueError("import file must contain a JSON array")
        samples = [Sample.from_export(item) for item in raw]
        async with store:
            result = await store.insert_many(samples)
        return {"inserted": result.inserted, "ignored": result.ignored}

    console.print(_run(_import()))


@app.command()
def prune(
    days: int | None = typer.Option(None, "--days", min=1, help="Maximum sample age in days"),
    config: Path = ConfigOption,
    data_dir: Path | None = DataDirOption,
) -> None:
    """Delete samples older than the retention window."""
    cfg, store = _setup(config, data_dir)
    max_age = days if days is not None else cfg.retention.max_age_days

    async def _prune():
        async with store:
            return await enforce_retention(store, max_age)

    stats = _run(_prune())
    console.print({"deleted": stats.deleted, "remaining": stats.remaining, "cutoff_ms": stats.cutoff_ms})


@app.command()
def wipe(
    yes: bool = typer.Option(False, "--yes", help="Confirm deletion of every sample"),
    config: Path = ConfigOption,
    data_dir: Path | None = DataDirOption,
) -> None:
    """Delete every sample. The schema is kept."""
    if not yes:
        console.print("Refusing to wipe without --yes")
        raise typer.Exit(code=1)
    _, store = _setup(config, data_dir)

    async def _wipe() -> int:
        async with store:
            return await store.delete_all()

    console.print({"deleted": _run(_wipe())})


def launch() -> None:
    """Entry point when executed as a module/script."""
    cli()  # use the prepared Click command


cli = typer.main.get_command(app)

__all__ = ["app", "cli"]

if __name__ == "__main__":
    launch()

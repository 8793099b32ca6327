"""CLI entry point for Regenlock."""

import asyncio
import json
from datetime import date
from pathlib import Path
from typing import List, Optional, Tuple

import click
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from regenlock.config import ConfigManager
from regenlock.facts.drift import correct_text
from regenlock.models.export import ExportSummary
from regenlock.models.locked_facts import LockedFacts, NumericFact
from regenlock.models.version_set import VersionSet
from regenlock.services import version_store
from regenlock.services.exceptions import ExportManifestError
from regenlock.services.export_aggregator import ExportAggregator
from regenlock.services.file_operations import DirectoryEmitter
from regenlock.utils.logging import configure_logging, get_logger


logger = get_logger(__name__)
console = Console()


def load_config() -> ConfigManager:
    """
    Load configuration from ~/.config/regenlock/config.yaml (defaults when absent).

    Raises:
        click.ClickException: If config has invalid permissions or fails validation
    """
    try:
        return ConfigManager.load_default()
    except PermissionError as e:
        raise click.ClickException(str(e))
    except ValueError as e:
        raise click.ClickException(str(e))


def load_versions(path: Path) -> Tuple[Tuple[VersionSet, ...], Optional[str]]:
    """
    Load a JSON dump of version sets.

    Accepts either a bare list of version sets or an object with
    "versions" and an optional "active_id".

    Returns:
        (versions, active_id)

    Raises:
        click.ClickException: If the file is not valid JSON or not version sets
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.error("versions_load_error", path=str(path), error=str(e))
        raise click.ClickException(f"Could not read {path}: {e}")

    active_id = None
    if isinstance(data, dict):
        active_id = data.get("active_id")
        data = data.get("versions", [])

    if not isinstance(data, list):
        raise click.ClickException(f"{path} does not contain a list of version sets")

    try:
        versions = tuple(VersionSet.model_validate(v) for v in data)
    except ValidationError as e:
        logger.error("versions_validation_error", path=str(path), error=str(e))
        raise click.ClickException(f"Invalid version data in {path}:\n{e}")

    logger.info("versions_loaded", path=str(path), count=len(versions))
    return versions, active_id


@click.group()
@click.version_option(version="0.1.0", prog_name="regenlock")
def cli():
    """Regenlock: versioned generated content with edits that survive and facts that stay put."""
    configure_logging()


@cli.command()
@click.argument("text")
@click.option("--percent", type=float, help="Locked percentage offer value (e.g. 20)")
@click.option("--amount", type=float, help="Locked currency offer value (e.g. 50)")
@click.option("--expires", help="Locked expiration date (YYYY-MM-DD)")
@click.option("--restricted/--unrestricted", default=None, help="Lock the new-customers-only restriction on or off")
@click.option("--cta", help="Locked call-to-action (also enables the CTA check)")
def drift(
    text: str,
    percent: Optional[float],
    amount: Optional[float],
    expires: Optional[str],
    restricted: Optional[bool],
    cta: Optional[str],
):
    """
    Check TEXT against locked facts and print the corrected wording.

    Examples:
        regenlock drift "Save 15% this week" --percent 20
        regenlock drift "Ends March 3, new customers only" --expires 2025-03-10 --unrestricted
    """
    if percent is not None and amount is not None:
        raise click.UsageError("Use either --percent or --amount, not both")

    numeric = None
    try:
        if percent is not None:
            numeric = NumericFact(value=percent, kind="percent")
        elif amount is not None:
            numeric = NumericFact(value=amount, kind="currency")
        locked = LockedFacts(
            numeric=numeric,
            restriction=restricted,
            expiration=date.fromisoformat(expires) if expires else None,
            cta=cta,
        )
    except (ValueError, ValidationError) as e:
        raise click.BadParameter(str(e))

    drift_config = load_config().drift
    result = correct_text(
        text,
        locked,
        check_cta=locked.cta is not None,
        short_cta_words=drift_config.short_cta_words,
    )
    logger.info("drift_command_completed", corrected=result.corrected, detected=result.drift_detected)

    click.echo(result.text)
    if result.corrected:
        console.print("[yellow]Drift corrected[/yellow]")
    elif result.drift_detected:
        console.print("[red]Drift detected, review needed[/red]")
    else:
        console.print("[green]No drift[/green]")

    for correction in result.corrections:
        detail = f"{correction.before!r} -> {correction.after!r}" if correction.after else repr(correction.before)
        console.print(f"  {correction.fact}: {correction.action} {detail}")


def _display_export_summary(summary: ExportSummary, out_dir: Path, manifest_written: bool = True) -> None:
    """Render the export summary as a rich table."""
    table = Table(title=f"Export {summary.exported_at:%Y-%m-%d %H:%M}")
    table.add_column("Total", justify="right")
    table.add_column("Succeeded", justify="right", style="green")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Skipped", justify="right", style="yellow")
    table.add_row(
        str(summary.total),
        str(summary.success_count),
        str(summary.failure_count),
        str(summary.skipped_count),
    )
    console.print(table)

    if summary.failures:
        failures = Table(title="Failures")
        failures.add_column("Item")
        failures.add_column("Name")
        failures.add_column("Reason")
        for failure in summary.failures:
            failures.add_row(failure.item_id, failure.name, failure.reason)
        console.print(failures)

    if manifest_written:
        console.print(f"Manifest: {out_dir / summary.manifest_name}")


@cli.command()
@click.argument("versions_json", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--out", "out_dir", required=True, type=click.Path(file_okay=False, path_type=Path), help="Output directory")
@click.option("--version", "version_id", help="Version set to export (default: the active one)")
@click.option("--select", "selected", multiple=True, help="Item id to export (repeatable; default: all)")
def export(versions_json: Path, out_dir: Path, version_id: Optional[str], selected: List[str]):
    """
    Export a version set's effective content to a directory.

    Examples:
        regenlock export versions.json --out ./exports
        regenlock export versions.json --out ./exports --select item-1 --select item-3
    """
    logger.info("export_command_started", path=str(versions_json), out_dir=str(out_dir))

    versions, active_id = load_versions(versions_json)
    if version_id is not None:
        if not any(v.id == version_id for v in versions):
            raise click.ClickException(f"Version not found: {version_id}")
        active_id = version_id

    version = version_store.get_active(versions, active_id)
    ok, reason = version_store.can_export(version)
    if not ok:
        raise click.ClickException(reason)

    export_config = load_config().export
    aggregator = ExportAggregator(DirectoryEmitter(out_dir), config=export_config)

    with console.status("[bold green]Exporting...") as status:
        def on_progress(progress):
            status.update(f"[bold green]Exporting {progress.current}/{progress.total}...")

        try:
            summary = asyncio.run(aggregator.run(version, selected or None, on_progress))
        except ExportManifestError as e:
            summary = e.summary
            manifest_error = e
        else:
            manifest_error = None

    _display_export_summary(summary, out_dir, manifest_written=manifest_error is None)
    if manifest_error is not None:
        raise click.ClickException(str(manifest_error))
    logger.info("export_command_completed", failure_count=summary.failure_count)


if __name__ == "__main__":
    cli()

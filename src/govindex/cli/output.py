"""Console rendering for CLI commands."""

from __future__ import annotations

import json
from typing import Any, Mapping

import typer

from govindex.health import HealthSnapshot, HealthStatus
from govindex.modules.search import SearchResult
from govindex.modules.sync import SyncReport

_STATUS_COLORS: dict[HealthStatus, str | None] = {
    HealthStatus.OK: typer.colors.GREEN,
    HealthStatus.UNKNOWN: typer.colors.YELLOW,
    HealthStatus.DEGRADED: typer.colors.BRIGHT_YELLOW,
    HealthStatus.ERROR: typer.colors.RED,
}

EXIT_CODES: dict[HealthStatus, int] = {
    HealthStatus.OK: 0,
    HealthStatus.UNKNOWN: 1,
    HealthStatus.DEGRADED: 1,
    HealthStatus.ERROR: 2,
}

_DESCRIPTION_PREVIEW = 120


def emit_json(payload: Mapping[str, Any]) -> None:
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


def emit_error(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED, err=True)


def emit_sync_report(report: SyncReport) -> None:
    color = typer.colors.GREEN if report.ok else typer.colors.BRIGHT_YELLOW
    typer.secho(
        f"Indexed {report.indexed} of {report.fetched} datasets",
        fg=color,
        bold=True,
    )
    typer.echo(f"  ledger total: {report.total}")
    typer.echo(f"  pages: {report.pages}")
    if report.next_key:
        typer.echo(f"  next key (not followed): {report.next_key}")
    if report.failures:
        typer.echo("  failures:")
        for failure in report.failures:
            typer.echo(
                f"    - {failure.dataset_id or '<no id>'} "
                f"[{failure.kind.value}]: {failure.message}"
            )


def emit_search_result(result: SearchResult) -> None:
    typer.secho(
        f"{result.count} result(s) for {result.query!r}",
        bold=True,
    )
    for rank, dataset in enumerate(result.results, start=1):
        typer.echo(f"{rank:>3}. [{dataset.id}] {dataset.title}")
        typer.echo(f"     {dataset.agency} / {dataset.category}")
        description = dataset.description
        if len(description) > _DESCRIPTION_PREVIEW:
            description = description[: _DESCRIPTION_PREVIEW - 3] + "..."
        if description:
            typer.echo(f"     {description}")


def emit_health(snapshot: HealthSnapshot) -> None:
    typer.secho(
        f"{snapshot.service}: {snapshot.status.value}",
        fg=_STATUS_COLORS.get(snapshot.status),
        bold=True,
    )
    for detail in snapshot.details:
        typer.secho(
            f"  - {detail.name}: {detail.status.value}",
            fg=_STATUS_COLORS.get(detail.status),
        )
        if detail.summary:
            typer.echo(f"    summary: {detail.summary}")
        if detail.last_refresh_at is not None:
            typer.echo(
                f"    last refresh: {detail.last_refresh_at.isoformat()}"
            )
        if detail.actions:
            typer.echo("    actions:")
            for action in detail.actions:
                typer.echo(f"      - {action}")


def emit_collection_info(info: Mapping[str, Any]) -> None:
    typer.secho(f"Collection {info['name']}", bold=True)
    typer.echo(f"  points: {info['count']}")
    typer.echo(f"  embedding model: {info['embeddingModel']}")
    typer.echo(f"  dim: {info['dim']}")


__all__ = [
    "EXIT_CODES",
    "emit_collection_info",
    "emit_error",
    "emit_health",
    "emit_json",
    "emit_search_result",
    "emit_sync_report",
]

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, Iterable, Sequence

import typer

from models.records import DeviceRecord, RequestStats, RunSummary


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _percent(part: int, whole: int) -> str:
    if not whole:
        return "0.0%"
    return f"{part / whole * 100:.1f}%"


def render_records(records: Sequence[DeviceRecord]) -> None:
    for position, record in enumerate(records, start=1):
        typer.echo(
            f"  {position}. {record.sn}: {record.power} [{record.status}] @ {record.last_updated}"
        )


def render_summary(summary: RunSummary, stats: RequestStats, expected_total: int) -> None:
    echo_heading("Summary")
    echo_key_values(
        [
            ("devices", f"{summary.total}/{expected_total}"),
            ("online", f"{summary.online} ({_percent(summary.online, summary.total)})"),
            ("offline", f"{summary.offline} ({_percent(summary.offline, summary.total)})"),
            ("total_power", f"{summary.total_power:.2f} kW"),
            ("average_power", f"{summary.average_power:.2f} kW"),
        ]
    )

    typer.echo()
    echo_heading("Requests")
    echo_key_values(
        [
            ("devices", summary.total),
            ("total", stats.total_requests),
            ("successful", stats.successful_requests),
            ("failed", stats.failed_requests),
            ("retried", stats.retried_requests),
        ]
    )

    typer.echo()
    echo_heading("Timing")
    duration = (summary.duration_ms or 0) / 1000
    echo_key_values(
        [
            ("started_at", summary.started_at.isoformat() if summary.started_at else None),
            ("completed_at", summary.completed_at.isoformat() if summary.completed_at else None),
            ("duration", f"{duration:.2f}s"),
            ("batches", f"{summary.batches_completed}/{summary.batches_total}"),
        ]
    )

    if summary.failed_batches:
        typer.echo()
        typer.secho("Failed Batches", bold=True, fg=typer.colors.YELLOW)
        for failed in summary.failed_batches:
            typer.echo(f"  - batch {failed.batch_index}: {', '.join(failed.devices)} ({failed.error})")

    typer.echo()
    echo_heading("Sample Devices")
    if summary.devices:
        render_records(summary.devices[:3])
    else:
        typer.echo("No device data received.")


def summary_payload(summary: RunSummary, stats: RequestStats) -> Dict[str, Any]:
    """JSON-ready document with the summary and request statistics."""
    payload = asdict(summary)
    for key in ("started_at", "completed_at"):
        value = payload[key]
        payload[key] = value.isoformat() if value is not None else None
    payload["stats"] = asdict(stats)
    payload["stats"]["total_devices"] = summary.total
    return payload

"""Human-readable summary and run metadata."""

from __future__ import annotations

from pathlib import Path

from seclog_stats.common.errors import ExportError
from seclog_stats.common.fs import write_json, write_text
from seclog_stats.common.models import ParsedEntry
from seclog_stats.common.time_utils import epoch_to_local, file_stamp, format_duration, format_local
from seclog_stats.pipeline.engine import RunResult
from seclog_stats.pipeline.rank import top_countries, top_n


def _format_ranked(items: list[tuple[str, int]]) -> list[str]:
    return [f"{key}: {count}" for key, count in items]


def _format_entry(title: str, entry: ParsedEntry) -> list[str]:
    return [
        "",
        f"{title}:",
        f"Time: {format_local(epoch_to_local(entry.timestamp))}",
        f"Content: {entry.content}",
    ]


def render_summary(
    result: RunResult,
    *,
    top_countries_n: int = 20,
    top_ips_per_country: int = 10,
    top_domains: int = 10,
) -> str:
    aggregate = result.aggregate
    lines = [
        "",
        "Processing Summary:",
        f"Window: {format_local(result.window.start)} -> {format_local(result.window.end)}",
        f"Total messages processed: {aggregate.processed}",
        f"Total messages skipped: {aggregate.skipped}",
        f"Total messages outside window: {aggregate.out_of_window}",
        f"Total denied queries: {aggregate.denied}",
        f"Time taken to consume messages: {format_duration(result.consume_duration)}",
        f"Time taken to process messages: {format_duration(result.process_duration)}",
        f"Partitions consumed: {len(result.consumed_partitions)} of {len(result.partitions)}",
    ]
    if result.failed_partitions:
        failed = ", ".join(f"{key} ({code})" for key, code in sorted(result.failed_partitions.items()))
        lines.append(f"Partitions failed: {failed}")
    if result.incomplete_partitions:
        lines.append(f"Partitions interrupted: {', '.join(result.incomplete_partitions)}")
    if result.aborted:
        lines.append(f"Run aborted: {result.abort_reason}; counts are partial")

    ranked_countries = top_countries(aggregate.ip_country, top_countries_n)
    lines.extend(["", f"Top {top_countries_n} Countries with Denied IPs:"])
    lines.extend(_format_ranked(ranked_countries))

    lines.extend(["", f"Top {top_ips_per_country} Denied IPs per Country:"])
    for country, _total in top_countries(aggregate.ip_country, len(aggregate.ip_country)):
        lines.extend(["", f"{country}:"])
        lines.extend(_format_ranked(top_n(aggregate.ip_country[country], top_ips_per_country)))

    lines.extend(["", f"Top {top_domains} Domains Denied:"])
    lines.extend(_format_ranked(top_n(aggregate.domains, top_domains)))

    if aggregate.first is not None:
        lines.extend(_format_entry("First processed message", aggregate.first))
    if aggregate.last is not None:
        lines.extend(_format_entry("Last processed message", aggregate.last))

    return "\n".join(lines) + "\n"


def write_summary(output_dir: Path, summary: str, stamp: str | None = None) -> Path:
    path = output_dir / f"log_analysis_summary_{stamp or file_stamp()}.txt"
    try:
        write_text(path, summary)
    except OSError as exc:
        raise ExportError(f"Error writing summary file {path}: {exc}") from exc
    return path


def write_run_summary(output_dir: Path, run_id: str, result: RunResult, artifacts: dict[str, str]) -> Path:
    if result.aborted:
        status = "error"
    elif result.degraded:
        status = "partial"
    else:
        status = "success"

    payload = {
        "run_id": run_id,
        "status": status,
        "artifacts": artifacts,
        **result.to_dict(),
    }
    path = output_dir / "run_meta" / f"{run_id}.json"
    write_json(path, payload)
    return path

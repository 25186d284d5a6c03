from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

from seclog_stats.common.fs import read_json
from seclog_stats.common.models import Aggregate, ParsedEntry, TimeWindow
from seclog_stats.pipeline.engine import RunResult
from seclog_stats.pipeline.report import render_summary, write_run_summary, write_summary


def _result(**kwargs) -> RunResult:
    aggregate = Aggregate(denied=4, processed=6, skipped=1, out_of_window=2)
    aggregate.count_address("Japan", "203.0.113.7 (ASN: 64501)", 3)
    aggregate.count_address("Thailand", "10.0.0.1 (ASN: 64500)", 1)
    aggregate.count_domain("b.example", 2)
    aggregate.count_domain("a.example", 2)
    aggregate.observe_entry(ParsedEntry("security.log", "early denied (a.example)", 1_700_000_000))
    aggregate.observe_entry(ParsedEntry("security.log", "late denied (b.example)", 1_700_000_600))
    defaults = {
        "aggregate": aggregate,
        "window": TimeWindow(end=datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)),
        "partitions": ["logCentral/0", "logCentral/1"],
        "consume_duration": 1.5,
        "process_duration": 0.002,
    }
    defaults.update(kwargs)
    return RunResult(**defaults)


def test_render_summary_sections_in_order():
    summary = render_summary(_result(), top_countries_n=5, top_ips_per_country=3, top_domains=1)
    lines = summary.splitlines()

    assert "Total messages processed: 6" in lines
    assert "Total messages skipped: 1" in lines
    assert "Total messages outside window: 2" in lines
    assert "Total denied queries: 4" in lines
    assert "Partitions consumed: 2 of 2" in lines
    assert "Window: beginning of stream -> " in summary

    countries = lines.index("Top 5 Countries with Denied IPs:")
    assert lines[countries + 1 : countries + 3] == ["Japan: 3", "Thailand: 1"]

    per_country = lines.index("Top 3 Denied IPs per Country:")
    assert lines[per_country + 2 : per_country + 4] == ["Japan:", "203.0.113.7 (ASN: 64501): 3"]

    domains = lines.index("Top 1 Domains Denied:")
    assert lines[domains + 1] == "a.example: 2"
    assert "b.example: 2" not in lines

    assert lines.index("First processed message:") < lines.index("Last processed message:")
    assert "Content: early denied (a.example)" in lines
    assert "Content: late denied (b.example)" in lines


def test_render_summary_flags_degraded_runs():
    result = _result(
        failed_partitions={"logCentral/1": "PARTITION_ERROR"},
        incomplete_partitions=["logCentral/0"],
        aborted=True,
        abort_reason="SOURCE_CONNECTION_ERROR: reset",
    )

    summary = render_summary(result)

    assert "Partitions consumed: 1 of 2" in summary
    assert "Partitions failed: logCentral/1 (PARTITION_ERROR)" in summary
    assert "Partitions interrupted: logCentral/0" in summary
    assert "Run aborted: SOURCE_CONNECTION_ERROR: reset; counts are partial" in summary


def test_render_summary_empty_aggregate_has_no_message_sections():
    summary = render_summary(_result(aggregate=Aggregate()))
    assert "First processed message" not in summary
    assert "Total messages processed: 0" in summary


def test_write_summary_and_run_summary(tmp_path: Path):
    summary_path = write_summary(tmp_path, "hello\n", stamp="20260301_120000")
    assert summary_path.name == "log_analysis_summary_20260301_120000.txt"
    assert summary_path.read_text(encoding="utf-8") == "hello\n"

    meta_path = write_run_summary(
        tmp_path,
        "run-test",
        _result(failed_partitions={"logCentral/1": "PARTITION_ERROR"}),
        {"summary": str(summary_path)},
    )
    payload = read_json(meta_path)

    assert meta_path == tmp_path / "run_meta" / "run-test.json"
    assert payload["status"] == "partial"
    assert payload["counts"] == {"processed": 6, "skipped": 1, "denied": 4, "out_of_window": 2}
    assert payload["window"]["start"] is None
    assert payload["artifacts"]["summary"] == str(summary_path)


def test_run_summary_status_values(tmp_path: Path):
    ok = read_json(write_run_summary(tmp_path, "run-ok", _result(), {}))
    aborted = read_json(write_run_summary(tmp_path, "run-bad", _result(aborted=True, abort_reason="x"), {}))

    assert ok["status"] == "success"
    assert aborted["status"] == "error"

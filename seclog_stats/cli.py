"""CLI entrypoint for security-log denied-query statistics."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from seclog_stats.common.config_loader import apply_overrides, load_config, secret_from_env
from seclog_stats.common.constants import (
    COMMANDS,
    EXIT_HARD_FAIL,
    EXIT_PARTIAL,
    EXIT_SUCCESS,
    SINCE_PRESETS,
    START_OLDEST,
)
from seclog_stats.common.errors import PipelineError
from seclog_stats.common.ids import generate_run_id
from seclog_stats.common.logging import build_logger, close_logger, log_event
from seclog_stats.common.models import TimeWindow
from seclog_stats.common.time_utils import file_stamp, format_local
from seclog_stats.pipeline.engine import RunResult, list_topic_partitions, run_engine
from seclog_stats.pipeline.enrich import open_enricher
from seclog_stats.pipeline.export import FieldCipher, write_export_csv
from seclog_stats.pipeline.report import render_summary, write_run_summary, write_summary
from seclog_stats.pipeline.worker import RecordRules
from seclog_stats.source.base import RecordSource
from seclog_stats.source.factory import build_source
from seclog_stats.window import prompt_window, resolve_window


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=COMMANDS)
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--topics", default=None, help="Comma-separated topics, overrides config")
    parser.add_argument("--start", default=None, help="Window start, YYYY-MM-DD HH:MM:SS local time")
    parser.add_argument("--end", default=None, help="Window end, YYYY-MM-DD HH:MM:SS local time (default: now)")
    parser.add_argument("--since", default=None, choices=list(SINCE_PRESETS))
    parser.add_argument("--interactive", action="store_true", help="Choose the window from menus")
    parser.add_argument("--from-beginning", action="store_true", help="Read partitions from the oldest offset")
    parser.add_argument("--output-dir", default=None)
    parser.add_argument("--no-export", action="store_true")
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--strict", action="store_true")
    return parser.parse_args(argv)


def _cli_overrides(args: argparse.Namespace) -> dict:
    topics = None
    if args.topics:
        topics = [topic.strip() for topic in args.topics.split(",") if topic.strip()]
    return {
        "source": {
            "topics": topics,
            "start_from": START_OLDEST if args.from_beginning else None,
        },
        "report": {"output_dir": args.output_dir},
        "export": {"enabled": False if args.no_export else None},
    }


def _resolve_window(args: argparse.Namespace) -> TimeWindow:
    if args.interactive:
        return prompt_window()
    return resolve_window(start=args.start, end=args.end, since=args.since)


def _exit_code(result: RunResult, strict: bool) -> int:
    if result.aborted:
        return EXIT_HARD_FAIL
    if result.degraded:
        return EXIT_HARD_FAIL if strict else EXIT_PARTIAL
    return EXIT_SUCCESS


def run_partitions(cfg: dict, source: RecordSource, logger: logging.Logger, run_id: str) -> int:
    tasks, failed = list_topic_partitions(source, cfg["source"]["topics"], logger=logger, run_id=run_id)
    for topic, partition in tasks:
        sys.stdout.write(f"{topic}\t{partition}\n")
    return EXIT_PARTIAL if failed else EXIT_SUCCESS


def run_analyze(
    cfg: dict,
    args: argparse.Namespace,
    source: RecordSource,
    logger: logging.Logger,
    run_id: str,
) -> int:
    window = _resolve_window(args)
    start_from = cfg["source"]["start_from"]
    if window.start is None:
        # An unbounded window means all available data.
        start_from = START_OLDEST

    output_dir = Path(cfg["report"]["output_dir"])
    log_event(
        logger,
        f"processing messages from {format_local(window.start)} to {format_local(window.end)}, start_from={start_from}",
        run_id=run_id,
        stage="analyze",
        event="RUN_START",
        status="ok",
    )

    geoip_cfg = cfg["geoip"]
    with open_enricher(Path(geoip_cfg["country_db"]), Path(geoip_cfg["asn_db"])) as enricher:
        result = run_engine(
            source,
            cfg["source"]["topics"],
            window,
            enricher,
            rules=RecordRules(
                expected_source=cfg["records"]["expected_source"],
                denied_marker=cfg["records"]["denied_marker"],
            ),
            start_from=start_from,
            early_exit=bool(cfg["engine"]["early_exit"]),
            max_workers=cfg["engine"].get("max_workers"),
            logger=logger,
            run_id=run_id,
        )

    report_cfg = cfg["report"]
    summary = render_summary(
        result,
        top_countries_n=report_cfg["top_countries"],
        top_ips_per_country=report_cfg["top_ips_per_country"],
        top_domains=report_cfg["top_domains"],
    )
    sys.stdout.write(summary)

    stamp = file_stamp()
    artifacts: dict[str, str] = {}
    summary_path = write_summary(output_dir, summary, stamp)
    artifacts["summary"] = str(summary_path)
    log_event(logger, f"summary saved to {summary_path}", run_id=run_id, stage="report", event="REPORT_WRITTEN", status="ok")

    if cfg["export"]["enabled"]:
        cipher = FieldCipher(secret_from_env(cfg["export"].get("encryption_key_env")))
        export_path = write_export_csv(output_dir, result.aggregate, cipher, stamp)
        artifacts["export"] = str(export_path)
        log_event(
            logger,
            f"results exported to {export_path}" + (" (encrypted)" if cipher.enabled else ""),
            run_id=run_id,
            stage="export",
            event="EXPORT_WRITTEN",
            status="ok",
        )

    write_run_summary(output_dir, run_id, result, artifacts)
    exit_code = _exit_code(result, args.strict)
    log_event(
        logger,
        "run finished",
        run_id=run_id,
        stage="analyze",
        event="RUN_END",
        status="ok" if exit_code == EXIT_SUCCESS else "error",
        records_in=result.aggregate.observed,
        records_out=result.aggregate.processed,
    )
    return exit_code


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id()
    cfg = load_config(
        Path(args.config_dir),
        overlay_config_dir=Path(args.overlay_config_dir) if args.overlay_config_dir else None,
    )
    cfg = apply_overrides(cfg, _cli_overrides(args))
    logger = build_logger(run_id, output_dir=Path(cfg["report"]["output_dir"]), level=args.log_level)

    source = None
    try:
        source = build_source(cfg["source"])
        if args.command == "partitions":
            return run_partitions(cfg, source, logger, run_id)
        return run_analyze(cfg, args, source, logger, run_id)
    except PipelineError as exc:
        log_event(
            logger,
            f"run failed: {exc}",
            run_id=run_id,
            stage=args.command,
            event="RUN_END",
            status="error",
            error_code=exc.error_code,
        )
        return EXIT_HARD_FAIL
    finally:
        if source is not None:
            source.close()
        close_logger(logger)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    try:
        return run_command(args)
    except PipelineError as exc:
        sys.stderr.write(f"{exc.error_code}: {exc}\n")
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())

"""Minimal strict schemas for YAML config validation."""

from __future__ import annotations

from seclog_stats.common.constants import START_POSITIONS
from seclog_stats.common.errors import ConfigError

SOURCE_TYPES = ("rest_proxy", "file")


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_positive_int(value: object, ctx: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"{ctx} must be a positive integer, got {value!r}")


def _validate_source(cfg: dict, allow_unknown: bool) -> None:
    _assert_required_keys(cfg, {"type", "topics", "start_from"}, "source")
    _assert_no_unknown_keys(cfg, {"type", "topics", "start_from", "rest_proxy", "file"}, "source", allow_unknown)

    if cfg["type"] not in SOURCE_TYPES:
        raise ConfigError(f"source.type must be one of {', '.join(SOURCE_TYPES)}, got {cfg['type']!r}")
    if cfg["start_from"] not in START_POSITIONS:
        raise ConfigError(f"source.start_from must be one of {', '.join(START_POSITIONS)}")

    topics = cfg["topics"]
    if not isinstance(topics, list) or not topics or not all(isinstance(t, str) and t.strip() for t in topics):
        raise ConfigError("source.topics must be a non-empty list of topic names")

    if cfg["type"] == "rest_proxy":
        rest = cfg.get("rest_proxy")
        _assert_required_keys(rest, {"base_url"}, "source.rest_proxy")
        _assert_no_unknown_keys(
            rest,
            {
                "base_url",
                "page_size",
                "follow",
                "poll_interval_seconds",
                "username_env",
                "password_env",
                "verify",
                "requests_per_second",
                "timeout",
                "retry",
            },
            "source.rest_proxy",
            allow_unknown,
        )
        if "page_size" in rest:
            _assert_positive_int(rest["page_size"], "source.rest_proxy.page_size")
    else:
        file_cfg = cfg.get("file")
        _assert_required_keys(file_cfg, {"root"}, "source.file")
        _assert_no_unknown_keys(file_cfg, {"root"}, "source.file", allow_unknown)


def validate_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    top_required = {"source", "records", "geoip", "engine", "report", "export"}
    _assert_required_keys(cfg, top_required, "config")
    _assert_no_unknown_keys(cfg, top_required, "config", allow_unknown)

    _validate_source(cfg["source"], allow_unknown)

    _assert_required_keys(cfg["records"], {"expected_source", "denied_marker"}, "records")
    if not str(cfg["records"]["denied_marker"]):
        raise ConfigError("records.denied_marker must not be empty")

    _assert_required_keys(cfg["geoip"], {"country_db", "asn_db"}, "geoip")

    _assert_required_keys(cfg["engine"], {"early_exit"}, "engine")
    max_workers = cfg["engine"].get("max_workers")
    if max_workers is not None:
        _assert_positive_int(max_workers, "engine.max_workers")

    _assert_required_keys(
        cfg["report"],
        {"output_dir", "top_countries", "top_ips_per_country", "top_domains"},
        "report",
    )
    for key in ("top_countries", "top_ips_per_country", "top_domains"):
        _assert_positive_int(cfg["report"][key], f"report.{key}")

    _assert_required_keys(cfg["export"], {"enabled"}, "export")

    return cfg

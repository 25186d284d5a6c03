import pytest

from seclog_stats.cli import _cli_overrides, _exit_code, parse_args
from seclog_stats.common.models import Aggregate, TimeWindow
from seclog_stats.common.time_utils import local_now
from seclog_stats.pipeline.engine import RunResult


def _result(**kwargs) -> RunResult:
    return RunResult(aggregate=Aggregate(), window=TimeWindow(end=local_now()), **kwargs)


def test_parse_args_defaults():
    args = parse_args(["analyze"])
    assert args.command == "analyze"
    assert args.config_dir == "./config"
    assert args.overlay_config_dir is None
    assert args.since is None
    assert args.interactive is False
    assert args.strict is False


def test_parse_args_accepts_window_and_overlay():
    args = parse_args(["analyze", "--overlay-config-dir", "config/live", "--since", "7d", "--no-export"])
    assert args.overlay_config_dir == "config/live"
    assert args.since == "7d"
    assert args.no_export is True


def test_parse_args_rejects_unknown_preset():
    with pytest.raises(SystemExit):
        parse_args(["analyze", "--since", "2w"])


def test_cli_overrides_only_sets_given_flags():
    overrides = _cli_overrides(parse_args(["analyze", "--topics", "logCentral, logEdge,", "--from-beginning"]))

    assert overrides["source"] == {"topics": ["logCentral", "logEdge"], "start_from": "oldest"}
    assert overrides["report"] == {"output_dir": None}
    assert overrides["export"] == {"enabled": None}


def test_exit_codes():
    assert _exit_code(_result(), strict=False) == 0
    assert _exit_code(_result(failed_partitions={"t/0": "PARTITION_ERROR"}), strict=False) == 10
    assert _exit_code(_result(incomplete_partitions=["t/0"]), strict=True) == 20
    assert _exit_code(_result(aborted=True), strict=False) == 20

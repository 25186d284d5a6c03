"""Build the configured record source."""

from __future__ import annotations

from pathlib import Path

from seclog_stats.common.config_loader import secret_from_env
from seclog_stats.common.errors import ConfigError
from seclog_stats.common.http import HttpClient, RetryConfig, TimeoutConfig
from seclog_stats.source.base import RecordSource
from seclog_stats.source.file_source import FileSource
from seclog_stats.source.rest_proxy import DEFAULT_PAGE_SIZE, RestProxySource


def _build_http_client(rest_cfg: dict) -> HttpClient:
    username = secret_from_env(rest_cfg.get("username_env"))
    password = secret_from_env(rest_cfg.get("password_env"))
    auth = None
    if username or password:
        if not (username and password):
            raise ConfigError("REST proxy credentials need both a username and a password")
        auth = (username, password)

    timeout_cfg = rest_cfg.get("timeout") or {}
    retry_cfg = rest_cfg.get("retry") or {}
    return HttpClient(
        timeout=TimeoutConfig(**timeout_cfg),
        retry=RetryConfig(**retry_cfg),
        auth=auth,
        verify=rest_cfg.get("verify", True),
        requests_per_second=float(rest_cfg.get("requests_per_second") or 0),
    )


def build_source(source_cfg: dict, *, http_client: HttpClient | None = None) -> RecordSource:
    if source_cfg["type"] == "file":
        return FileSource(Path(source_cfg["file"]["root"]))

    rest_cfg = source_cfg["rest_proxy"]
    try:
        client = http_client or _build_http_client(rest_cfg)
    except TypeError as exc:
        raise ConfigError(f"Invalid REST proxy timeout/retry settings: {exc}") from exc
    return RestProxySource(
        client,
        rest_cfg["base_url"],
        page_size=int(rest_cfg.get("page_size", DEFAULT_PAGE_SIZE)),
        follow=bool(rest_cfg.get("follow", False)),
        poll_interval=float(rest_cfg.get("poll_interval_seconds", 1.0)),
    )

"""Tabular export of denied IPs and domains, with optional field encryption."""

from __future__ import annotations

import base64
import logging
import os
from pathlib import Path

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from seclog_stats.common.constants import EXPORT_HEADERS
from seclog_stats.common.errors import ConfigError, ExportError
from seclog_stats.common.fs import write_csv_rows
from seclog_stats.common.models import Aggregate
from seclog_stats.common.time_utils import file_stamp

LOGGER = logging.getLogger(__name__)

NONCE_SIZE = 12
AES_KEY_SIZES = (16, 24, 32)


class FieldCipher:
    """AES-GCM over single fields; output is base64(nonce || ciphertext)."""

    def __init__(self, key: str | bytes | None) -> None:
        if isinstance(key, str):
            key = key.encode("utf-8")
        if key and len(key) not in AES_KEY_SIZES:
            raise ConfigError(f"Encryption key must be 16, 24 or 32 bytes, got {len(key)}")
        self._aead = AESGCM(key) if key else None

    @property
    def enabled(self) -> bool:
        return self._aead is not None

    def encrypt(self, value: str) -> str:
        if self._aead is None:
            return value
        nonce = os.urandom(NONCE_SIZE)
        ciphertext = self._aead.encrypt(nonce, value.encode("utf-8"), None)
        return base64.b64encode(nonce + ciphertext).decode("ascii")

    def decrypt(self, token: str) -> str:
        if self._aead is None:
            return token
        raw = base64.b64decode(token)
        return self._aead.decrypt(raw[:NONCE_SIZE], raw[NONCE_SIZE:], None).decode("utf-8")

    def protect(self, value: str, kind: str) -> str:
        """Encrypt ``value``; on failure log and keep the plain value."""

        try:
            return self.encrypt(value)
        except (ValueError, TypeError, OverflowError) as exc:
            LOGGER.warning("Failed to encrypt %s: %s", kind, exc)
            return value


def export_rows(aggregate: Aggregate, cipher: FieldCipher | None = None) -> list[list[object]]:
    cipher = cipher or FieldCipher(None)
    rows: list[list[object]] = []
    for country in sorted(aggregate.ip_country):
        labels = aggregate.ip_country[country]
        for label in sorted(labels):
            rows.append(["IP", country, cipher.protect(label, "IP"), labels[label]])
    for domain in sorted(aggregate.domains):
        rows.append(["Domain", "", cipher.protect(domain, "domain"), aggregate.domains[domain]])
    return rows


def write_export_csv(
    output_dir: Path,
    aggregate: Aggregate,
    cipher: FieldCipher | None = None,
    stamp: str | None = None,
) -> Path:
    path = output_dir / f"log_analysis_{stamp or file_stamp()}.csv"
    try:
        write_csv_rows(path, EXPORT_HEADERS, export_rows(aggregate, cipher))
    except OSError as exc:
        raise ExportError(f"Error writing export file {path}: {exc}") from exc
    return path

from __future__ import annotations

import base64
import csv
from pathlib import Path

import pytest

from seclog_stats.common.errors import ConfigError, ExportError
from seclog_stats.common.models import Aggregate
from seclog_stats.pipeline.export import FieldCipher, export_rows, write_export_csv

KEY = "0123456789abcdef0123456789abcdef"


def _aggregate() -> Aggregate:
    aggregate = Aggregate()
    aggregate.count_address("Thailand", "10.0.0.1 (ASN: 64500)", 3)
    aggregate.count_address("Japan", "203.0.113.7 (ASN: 64501)")
    aggregate.count_address("Thailand", "10.0.0.2 (ASN: 0)")
    aggregate.count_domain("zeta.example", 2)
    aggregate.count_domain("alpha.example")
    return aggregate


def test_cipher_round_trip_and_nonce_prefix():
    cipher = FieldCipher(KEY)

    token = cipher.encrypt("10.0.0.1 (ASN: 64500)")

    assert cipher.enabled
    assert token != "10.0.0.1 (ASN: 64500)"
    assert len(base64.b64decode(token)) == 12 + len("10.0.0.1 (ASN: 64500)") + 16
    assert cipher.decrypt(token) == "10.0.0.1 (ASN: 64500)"


def test_cipher_uses_fresh_nonce_per_field():
    cipher = FieldCipher(KEY.encode("utf-8"))
    assert cipher.encrypt("example.com") != cipher.encrypt("example.com")


@pytest.mark.parametrize("key", ["short", "x" * 20, "y" * 33])
def test_cipher_rejects_bad_key_length(key):
    with pytest.raises(ConfigError):
        FieldCipher(key)


def test_cipher_without_key_passes_values_through():
    cipher = FieldCipher(None)
    assert not cipher.enabled
    assert cipher.protect("example.com", "domain") == "example.com"


def test_protect_keeps_plain_value_when_encryption_fails(monkeypatch):
    cipher = FieldCipher(KEY)

    def _fail(_value):
        raise ValueError("boom")

    monkeypatch.setattr(cipher, "encrypt", _fail)
    assert cipher.protect("example.com", "domain") == "example.com"


def test_export_rows_are_sorted():
    rows = export_rows(_aggregate())

    assert rows == [
        ["IP", "Japan", "203.0.113.7 (ASN: 64501)", 1],
        ["IP", "Thailand", "10.0.0.1 (ASN: 64500)", 3],
        ["IP", "Thailand", "10.0.0.2 (ASN: 0)", 1],
        ["Domain", "", "alpha.example", 1],
        ["Domain", "", "zeta.example", 2],
    ]


def test_write_export_csv_with_encryption(tmp_path: Path):
    cipher = FieldCipher(KEY)

    path = write_export_csv(tmp_path, _aggregate(), cipher, stamp="20260301_120000")

    assert path.name == "log_analysis_20260301_120000.csv"
    with path.open("r", encoding="utf-8", newline="") as f:
        rows = list(csv.reader(f))
    assert rows[0] == ["Type", "Country", "IP/Domain", "Count"]
    assert [row[0] for row in rows[1:]] == ["IP", "IP", "IP", "Domain", "Domain"]
    assert [cipher.decrypt(row[2]) for row in rows[4:]] == ["alpha.example", "zeta.example"]
    assert rows[2][1] == "Thailand"
    assert rows[2][3] == "3"


def test_write_export_csv_unwritable_directory_is_export_error(tmp_path: Path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")

    with pytest.raises(ExportError):
        write_export_csv(blocker / "result", _aggregate(), stamp="x")

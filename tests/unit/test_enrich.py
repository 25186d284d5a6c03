from __future__ import annotations

from pathlib import Path

import pytest

from seclog_stats.common.errors import LookupOpenError
from seclog_stats.common.models import ExtractedSignal
from seclog_stats.pipeline import enrich
from seclog_stats.pipeline.enrich import GeoIPEnricher, open_enricher


def test_resolve_returns_country_and_asn(enricher):
    assert enricher.resolve("203.0.113.7") == ("Japan", 64501)


def test_resolve_unparsable_address_skips_lookup():
    class ExplodingReader:
        def country(self, ip):
            raise AssertionError("lookup must not run")

        def asn(self, ip):
            raise AssertionError("lookup must not run")

    enricher = GeoIPEnricher(ExplodingReader(), ExplodingReader())
    assert enricher.resolve("999.1.1.1") == ("Unknown", 0)


def test_resolve_country_failure_yields_unknown(enricher):
    assert enricher.resolve("192.0.2.200") == ("Unknown", 0)


def test_resolve_asn_failure_keeps_country(enricher):
    assert enricher.resolve("198.51.100.9") == ("Germany", 0)


def test_enrich_builds_label(enricher):
    enriched = enricher.enrich(ExtractedSignal(address="10.0.0.1", domain="example.com"))

    assert enriched.country == "Thailand"
    assert enriched.label == "10.0.0.1 (ASN: 64500)"


def test_close_closes_both_readers(enricher):
    enricher.close()
    assert enricher._country_reader.closed
    assert enricher._asn_reader.closed


def test_open_enricher_missing_database_is_fatal(tmp_path: Path):
    with pytest.raises(LookupOpenError):
        open_enricher(tmp_path / "missing-country.mmdb", tmp_path / "missing-asn.mmdb")


def test_open_enricher_closes_country_reader_when_asn_fails(monkeypatch, tmp_path: Path):
    opened = []

    class Reader:
        def __init__(self, path):
            if path.endswith("asn.mmdb"):
                raise FileNotFoundError(path)
            self.closed = False
            opened.append(self)

        def close(self):
            self.closed = True

    monkeypatch.setattr(enrich.geoip2.database, "Reader", Reader)

    with pytest.raises(LookupOpenError):
        open_enricher(tmp_path / "country.mmdb", tmp_path / "asn.mmdb")
    assert opened and opened[0].closed

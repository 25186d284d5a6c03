"""Country and ASN enrichment over MaxMind GeoIP2 databases.

Readers are opened once per run and shared read-only by all partition
workers; geoip2 readers support concurrent lookups without locking.
"""

from __future__ import annotations

import ipaddress
import logging
from pathlib import Path
from types import TracebackType
from typing import Any

import geoip2.database
import geoip2.errors

from seclog_stats.common.constants import UNKNOWN_ASN, UNKNOWN_COUNTRY
from seclog_stats.common.errors import LookupOpenError
from seclog_stats.common.models import EnrichedSignal, ExtractedSignal

LOGGER = logging.getLogger(__name__)

LOOKUP_ERRORS = (geoip2.errors.GeoIP2Error, ValueError, TypeError, AttributeError)


class GeoIPEnricher:
    def __init__(self, country_reader: Any, asn_reader: Any) -> None:
        self._country_reader = country_reader
        self._asn_reader = asn_reader

    def resolve_country(self, address: str) -> str:
        """Country name in English; raises on lookup failure."""

        response = self._country_reader.country(address)
        name = response.country.names.get("en")
        if not name:
            raise ValueError(f"No country name recorded for {address}")
        return name

    def resolve_asn(self, address: str) -> int:
        response = self._asn_reader.asn(address)
        return int(response.autonomous_system_number or UNKNOWN_ASN)

    def resolve(self, address: str) -> tuple[str, int]:
        try:
            ip = str(ipaddress.ip_address(address))
        except ValueError:
            return UNKNOWN_COUNTRY, UNKNOWN_ASN

        try:
            country = self.resolve_country(ip)
        except LOOKUP_ERRORS as exc:
            LOGGER.debug("Error looking up country for IP %s: %s", ip, exc)
            return UNKNOWN_COUNTRY, UNKNOWN_ASN

        try:
            asn = self.resolve_asn(ip)
        except LOOKUP_ERRORS as exc:
            LOGGER.debug("Error looking up ASN for IP %s: %s", ip, exc)
            return country, UNKNOWN_ASN

        return country, asn

    def enrich(self, signal: ExtractedSignal) -> EnrichedSignal:
        country, asn = self.resolve(signal.address)
        return EnrichedSignal(address=signal.address, domain=signal.domain, country=country, asn=asn)

    def close(self) -> None:
        for reader in (self._country_reader, self._asn_reader):
            close = getattr(reader, "close", None)
            if close is not None:
                close()

    def __enter__(self) -> "GeoIPEnricher":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def _open_reader(path: Path, label: str) -> geoip2.database.Reader:
    try:
        return geoip2.database.Reader(str(path))
    except (OSError, ValueError, RuntimeError) as exc:
        raise LookupOpenError(f"Error opening GeoIP {label} database {path}: {exc}") from exc


def open_enricher(country_db: Path, asn_db: Path) -> GeoIPEnricher:
    country_reader = _open_reader(country_db, "country")
    try:
        asn_reader = _open_reader(asn_db, "ASN")
    except LookupOpenError:
        country_reader.close()
        raise
    return GeoIPEnricher(country_reader, asn_reader)

"""Pattern extraction for denied-query log lines."""

from __future__ import annotations

import re

from seclog_stats.common.constants import DENIED_MARKER
from seclog_stats.common.models import ExtractedSignal

IP_PATTERN = re.compile(r"\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}")
DOMAIN_PATTERN = re.compile(r"\(([^)]+)\)")


def is_denied(content: str, marker: str = DENIED_MARKER) -> bool:
    return marker in content


def extract_signal(content: str) -> ExtractedSignal:
    """First dotted-quad and first parenthesised token; either may be empty."""

    ip_match = IP_PATTERN.search(content)
    domain_match = DOMAIN_PATTERN.search(content)
    return ExtractedSignal(
        address=ip_match.group(0) if ip_match else "",
        domain=domain_match.group(1) if domain_match else "",
    )

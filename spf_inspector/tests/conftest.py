"""
Pytest configuration and fixtures
"""
import os
from dataclasses import dataclass, field
from typing import Dict, List

import pytest

# Set test environment variables
os.environ["LOG_LEVEL"] = "DEBUG"
os.environ["LOG_TO_FILE"] = "false"
os.environ["DNS_RESOLVER_BACKEND"] = "doh"

from spf_inspector.core.exceptions import ResolutionError  # noqa: E402


@dataclass
class FakeResolver:
    """In-memory resolver returning predefined SPF records"""

    records: Dict[str, List[str]] = field(default_factory=dict)
    failing: Dict[str, ResolutionError] = field(default_factory=dict)
    queries: List[str] = field(default_factory=list)

    async def resolve_spf(self, domain: str) -> List[str]:
        self.queries.append(domain)
        if domain in self.failing:
            raise self.failing[domain]
        return list(self.records.get(domain, []))


@pytest.fixture
def fake_resolver():
    """
    Fixture with SPF records for common domains
    """
    return FakeResolver(
        records={
            "google.com": ["v=spf1 include:_spf.google.com ~all"],
            "_spf.google.com": ["v=spf1 ip4:2.2.2.2 -all"],
            "microsoft.com": ["v=spf1 include:spf.protection.outlook.com -all"],
            "spf.protection.outlook.com": ["v=spf1 ip4:40.92.0.0/15 ip6:2a01:111:f400::/48 -all"],
            "example.com": [
                "v=spf1 include:_spf.google.com mx -all",
                "v=spf1 a -all",
            ],
        },
        failing={
            "broken.example": ResolutionError(
                "DNS query failed - domain may not exist",
                kind=ResolutionError.NXDOMAIN_OR_SERVFAIL,
            ),
        },
    )

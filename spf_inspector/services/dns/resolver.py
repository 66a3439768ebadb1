"""
TXT record resolvers returning SPF records
"""
import asyncio
import logging
import re
from typing import Any, List, Optional

import dns.exception
import dns.resolver
import httpx

from spf_inspector.core.config import settings
from spf_inspector.core.exceptions import ResolutionError

logger = logging.getLogger(__name__)

SPF_PREFIX = "v=spf1"
TXT_RECORD_TYPE = 16

_QUOTED_STRING = re.compile(r'"((?:[^"\\]|\\.)*)"')


def unquote_txt(data: str) -> str:
    """
    Unwrap the quoted character-strings of a TXT answer

    Several strings (``"v=spf1 ip4:1.2.3.4" " -all"``) are joined in order.
    """
    data = data.strip()
    if data.startswith('"'):
        parts = _QUOTED_STRING.findall(data)
        if parts:
            return "".join(parts)
    return re.sub(r'^"|"$', "", data)


def filter_spf_records(txt_records: List[str]) -> List[str]:
    """Keep only the TXT values that are SPF records, in order"""
    return [record for record in txt_records if record.startswith(SPF_PREFIX)]


def parse_doh_answer(payload: Any) -> List[str]:
    """
    Extract SPF records from a DNS JSON API response

    Args:
        payload: Decoded ``application/dns-json`` body

    Returns:
        SPF records in answer order, possibly empty

    Raises:
        ResolutionError: If the body is not a JSON object or the resolver
            reports a failed query
    """
    if not isinstance(payload, dict):
        raise ResolutionError("DNS lookup failed: invalid response from resolver")

    if payload.get("Status") != 0:
        raise ResolutionError(
            "DNS query failed - domain may not exist",
            kind=ResolutionError.NXDOMAIN_OR_SERVFAIL,
        )

    answers = payload.get("Answer")
    if not isinstance(answers, list):
        answers = []
    txt_records = [
        unquote_txt(answer["data"])
        for answer in answers
        if isinstance(answer, dict)
        and answer.get("type") == TXT_RECORD_TYPE
        and isinstance(answer.get("data"), str)
    ]
    return filter_spf_records(txt_records)


class DoHResolver:
    """Resolves SPF records through a DNS-over-HTTPS JSON endpoint"""

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url or settings.DOH_RESOLVER_URL
        self.timeout = timeout if timeout is not None else settings.DNS_RESOLVER_TIMEOUT
        self.transport = transport

    async def resolve_spf(self, domain: str) -> List[str]:
        """
        Lookup the SPF records of a domain

        One request per call, no retries.
        """
        logger.debug(f"Resolving TXT records for {domain} via {self.url}")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(
                    self.url,
                    params={"name": domain, "type": "TXT"},
                    headers={"Accept": "application/dns-json"},
                )
        except httpx.HTTPError as e:
            logger.warning(f"DNS lookup transport error for {domain}: {str(e)}")
            raise ResolutionError(f"DNS lookup failed: {str(e) or type(e).__name__}")

        if not response.is_success:
            logger.warning(f"DNS lookup for {domain} returned HTTP {response.status_code}")
            raise ResolutionError(
                f"DNS lookup failed: {response.reason_phrase or response.status_code}",
                kind=ResolutionError.HTTP,
                http_status=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            logger.warning(f"Invalid DNS JSON response for {domain}: {str(e)}")
            raise ResolutionError("DNS lookup failed: invalid response from resolver")

        records = parse_doh_answer(payload)
        logger.debug(f"Found {len(records)} SPF record(s) for {domain}")
        return records


class SystemResolver:
    """Resolves SPF records with the system nameservers through dnspython"""

    def __init__(self, resolver: Optional[dns.resolver.Resolver] = None):
        if resolver is None:
            resolver = dns.resolver.Resolver()
            resolver.timeout = settings.DNS_RESOLVER_TIMEOUT
            resolver.lifetime = settings.DNS_RESOLVER_LIFETIME
        self.resolver = resolver

    def _lookup_txt(self, domain: str) -> List[str]:
        answer = self.resolver.resolve(domain, "TXT")
        return [
            b"".join(rdata.strings).decode("utf-8", errors="replace")
            for rdata in answer
        ]

    async def resolve_spf(self, domain: str) -> List[str]:
        """Lookup the SPF records of a domain"""
        logger.debug(f"Resolving TXT records for {domain} via system resolver")
        loop = asyncio.get_running_loop()
        try:
            txt_records = await loop.run_in_executor(None, self._lookup_txt, domain)
        except dns.resolver.NoAnswer:
            logger.info(f"No TXT records found for {domain}")
            return []
        except (dns.resolver.NXDOMAIN, dns.resolver.NoNameservers) as e:
            logger.warning(f"DNS query failed for {domain}: {str(e)}")
            raise ResolutionError(
                "DNS query failed - domain may not exist",
                kind=ResolutionError.NXDOMAIN_OR_SERVFAIL,
            )
        except dns.exception.DNSException as e:
            logger.warning(f"DNS error looking up TXT record for {domain}: {str(e)}")
            raise ResolutionError(f"DNS lookup failed: {str(e)}")

        return filter_spf_records(txt_records)


def get_resolver():
    """Build the resolver selected by the DNS_RESOLVER_BACKEND setting"""
    if settings.DNS_RESOLVER_BACKEND == "system":
        return SystemResolver()
    return DoHResolver()

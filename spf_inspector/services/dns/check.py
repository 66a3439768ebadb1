"""
End-to-end SPF check for a domain
"""
import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from spf_inspector.core.config import settings
from spf_inspector.core.exceptions import (
    NoSPFRecord,
    ResolutionError,
    SPFInspectorException,
)
from spf_inspector.services.dns.resolver import get_resolver
from spf_inspector.services.dns.spf import (
    IncludeEdge,
    Mechanism,
    SubResolutionFailure,
    classify_mechanisms,
    count_lookups,
    extract_edges,
)
from spf_inspector.utils.validators import validate_domain

logger = logging.getLogger(__name__)


class CheckState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    RESOLVING = "resolving"
    NOT_FOUND = "not_found"
    COUNTING_LOOKUPS = "counting_lookups"
    READY = "ready"
    FAILED = "failed"


@dataclass
class RecordBreakdown:
    """Annotated view of a single SPF record"""
    record: str
    edges: List[IncludeEdge]
    mechanisms: List[Mechanism]


@dataclass
class SPFCheckResult:
    """Outcome of one SPF check"""
    domain: str
    state: CheckState = CheckState.IDLE
    records: List[str] = field(default_factory=list)
    lookup_count: int = 0
    edges: List[IncludeEdge] = field(default_factory=list)
    mechanism_spans: List[Mechanism] = field(default_factory=list)
    breakdowns: List[RecordBreakdown] = field(default_factory=list)
    mechanism_count: int = 0
    warnings: List[str] = field(default_factory=list)
    unresolved: List[SubResolutionFailure] = field(default_factory=list)
    message: Optional[str] = None
    detail: Optional[str] = None
    error: Optional[SPFInspectorException] = None

    @property
    def record_count(self) -> int:
        return len(self.records)

    @property
    def edge_count(self) -> int:
        return len(self.edges)

    @property
    def exceeds_lookup_budget(self) -> bool:
        return self.lookup_count > settings.LOOKUP_WARNING_THRESHOLD

    def transition(self, state: CheckState) -> None:
        logger.debug(f"SPF check for {self.domain or '<empty>'}: {self.state.value} -> {state.value}")
        self.state = state

    def fail(self, error: SPFInspectorException, state: CheckState = CheckState.FAILED) -> "SPFCheckResult":
        self.error = error
        self.message = error.detail
        self.detail = error.explanation
        self.transition(state)
        return self


def _lookup_warning(lookup_count: int) -> str:
    return (
        f"This SPF record requires {lookup_count} DNS lookups. "
        f"RFC 7208 recommends keeping it under {settings.LOOKUP_WARNING_THRESHOLD} "
        "to avoid email delivery issues. Consider consolidating or using SPF flattening."
    )


async def check_spf(domain: str, resolver=None) -> SPFCheckResult:
    """
    Check the SPF policy of a domain

    Never raises: every failure ends in the ``failed`` or ``not_found``
    state with a short message and an explanatory detail.

    Args:
        domain: Domain as supplied by the user
        resolver: Object with an async ``resolve_spf(domain)`` method

    Returns:
        SPFCheckResult in a terminal state
    """
    result = SPFCheckResult(domain=(domain or "").strip().lower())
    if resolver is None:
        resolver = get_resolver()

    result.transition(CheckState.VALIDATING)
    try:
        result.domain = validate_domain(domain)
    except SPFInspectorException as e:
        return result.fail(e)

    result.transition(CheckState.RESOLVING)
    try:
        records = await resolver.resolve_spf(result.domain)
    except ResolutionError as e:
        logger.error(f"Error looking up SPF record for {result.domain}: {e.detail}")
        error = ResolutionError(
            f"Error checking SPF: {e.detail}",
            kind=e.kind,
            http_status=e.status,
            explanation="Please verify the domain name is correct and try again.",
        )
        return result.fail(error)

    if not records:
        logger.info(f"No SPF record found for {result.domain}")
        return result.fail(
            NoSPFRecord(
                f"No SPF record found for {result.domain}",
                "This domain does not have an SPF record configured.",
            ),
            CheckState.NOT_FOUND,
        )

    result.records = records
    primary = records[0]

    result.transition(CheckState.COUNTING_LOOKUPS)
    try:
        result.lookup_count = await count_lookups(
            primary, resolver, visited=set(), failures=result.unresolved
        )
    except Exception as e:
        logger.exception(f"DNS lookup calculation error for {result.domain}: {str(e)}")
        result.lookup_count = primary.count("include:")

    result.edges = extract_edges(primary)
    result.mechanism_spans = classify_mechanisms(primary)
    result.mechanism_count = len(result.mechanism_spans)
    result.breakdowns = [
        RecordBreakdown(record, extract_edges(record), classify_mechanisms(record))
        for record in records
    ]

    if result.exceeds_lookup_budget:
        result.warnings.append(_lookup_warning(result.lookup_count))
    if len(records) > 1:
        result.warnings.append("Multiple SPF records found (only one allowed)")

    result.transition(CheckState.READY)
    logger.info(
        f"SPF check for {result.domain}: {result.record_count} record(s), "
        f"{result.lookup_count} DNS lookup(s)"
    )
    return result


class CheckSupervisor:
    """
    Runs SPF checks so that only the latest one can deliver a result

    Submitting a new check cancels the previous one if it is still running.
    """

    def __init__(self, resolver=None):
        self.resolver = resolver
        self._current: Optional[asyncio.Task] = None

    def submit(self, domain: str) -> asyncio.Task:
        """Start a check for ``domain``, superseding any check in flight"""
        if self._current is not None and not self._current.done():
            logger.debug("Cancelling superseded SPF check")
            self._current.cancel()
        self._current = asyncio.ensure_future(check_spf(domain, self.resolver))
        return self._current

"""
SPF (Sender Policy Framework) record parsing and DNS lookup counting
"""
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Set

from spf_inspector.core.config import settings
from spf_inspector.core.exceptions import ResolutionError
from spf_inspector.services.dns.catalog import explain

logger = logging.getLogger(__name__)

SPF_VERSION = "v=spf1"

TERM_PATTERN = re.compile(r"\S+")
MECHANISM_PATTERN = re.compile(
    r"^(?P<qualifier>[+\-~?])?(?P<name>[a-z][a-z0-9_.\-]*)(?:(?P<separator>[:=/])(?P<rest>.*))?$",
    re.IGNORECASE,
)


class Qualifier(str, Enum):
    PASS = "+"
    FAIL = "-"
    SOFTFAIL = "~"
    NEUTRAL = "?"


class MechanismKind(str, Enum):
    INCLUDE = "include"
    REDIRECT = "redirect"
    IP4 = "ip4"
    IP6 = "ip6"
    A = "a"
    MX = "mx"
    PTR = "ptr"
    EXISTS = "exists"
    ALL = "all"
    UNKNOWN = "unknown"


# Each of these costs one DNS lookup when present
LOOKUP_KINDS = {
    MechanismKind.INCLUDE,
    MechanismKind.REDIRECT,
    MechanismKind.A,
    MechanismKind.MX,
    MechanismKind.PTR,
    MechanismKind.EXISTS,
}


@dataclass(frozen=True)
class Mechanism:
    """A classified term of an SPF record"""
    kind: MechanismKind
    text: str
    start: int
    end: int
    qualifier: Qualifier = Qualifier.PASS
    argument: Optional[str] = None

    @property
    def catalog_key(self) -> str:
        if self.kind in (MechanismKind.INCLUDE, MechanismKind.IP4, MechanismKind.IP6):
            return f"{self.kind.value}:"
        if self.kind == MechanismKind.REDIRECT:
            return "redirect="
        if self.kind == MechanismKind.ALL:
            return f"{self.qualifier.value}all"
        return self.kind.value

    @property
    def explanation(self) -> str:
        return explain(self.catalog_key)

    @property
    def costs_lookup(self) -> bool:
        if self.kind == MechanismKind.EXISTS:
            return self.argument is not None
        return self.kind in LOOKUP_KINDS


@dataclass(frozen=True)
class IncludeEdge:
    """A reference from one SPF record to another domain's policy"""
    type: str
    domain: str


@dataclass(frozen=True)
class SubResolutionFailure:
    """A nested include whose SPF record could not be resolved"""
    domain: str
    reason: str


def _classify_term(text: str, start: int) -> Mechanism:
    end = start + len(text)
    match = MECHANISM_PATTERN.match(text)
    if not match:
        return Mechanism(MechanismKind.UNKNOWN, text, start, end)

    qualifier = match.group("qualifier")
    name = match.group("name").lower()
    separator = match.group("separator")
    rest = match.group("rest") or ""
    qualified = Qualifier(qualifier) if qualifier else Qualifier.PASS

    def mechanism(kind, argument=None):
        return Mechanism(kind, text, start, end, qualified, argument)

    if name == "include" and separator == ":" and rest:
        return mechanism(MechanismKind.INCLUDE, rest)
    if name == "redirect" and separator == "=" and rest and not qualifier:
        return mechanism(MechanismKind.REDIRECT, rest)
    if name in ("ip4", "ip6") and separator == ":" and rest:
        return mechanism(MechanismKind(name), rest)
    if name == "all" and separator is None:
        return mechanism(MechanismKind.ALL)
    if name in ("a", "mx", "ptr"):
        if separator is None:
            return mechanism(MechanismKind(name))
        if separator == ":" and rest:
            return mechanism(MechanismKind(name), rest)
        if separator == "/" and rest and name != "ptr":
            return mechanism(MechanismKind(name), f"/{rest}")
    if name == "exists":
        if separator is None:
            return mechanism(MechanismKind.EXISTS)
        if separator == ":" and rest:
            return mechanism(MechanismKind.EXISTS, rest)

    return Mechanism(MechanismKind.UNKNOWN, text, start, end, qualified)


def classify_mechanisms(record: str) -> List[Mechanism]:
    """
    Classify every term of an SPF record, left to right

    The leading ``v=spf1`` version tag is skipped. Terms are matched with a
    fixed precedence: ``include:``, ``redirect=``, ``ip4:``/``ip6:``, the
    qualified ``all`` forms, then ``a``, ``mx``, ``ptr`` and ``exists``.
    Anything else is returned as ``MechanismKind.UNKNOWN`` and explained with
    the generic catalog text.

    Args:
        record: Raw SPF record string

    Returns:
        The classified mechanisms with their character offsets
    """
    mechanisms = []
    for index, match in enumerate(TERM_PATTERN.finditer(record or "")):
        text = match.group(0)
        if index == 0 and text.lower() == SPF_VERSION:
            continue
        mechanisms.append(_classify_term(text, match.start()))
    return mechanisms


def extract_edges(record: str) -> List[IncludeEdge]:
    """
    Extract include and redirect references from an SPF record

    All ``include`` edges come first, in order of appearance, followed by all
    ``redirect`` edges in order of appearance.
    """
    mechanisms = classify_mechanisms(record)
    includes = [
        IncludeEdge("include", m.argument)
        for m in mechanisms if m.kind == MechanismKind.INCLUDE
    ]
    redirects = [
        IncludeEdge("redirect", m.argument)
        for m in mechanisms if m.kind == MechanismKind.REDIRECT
    ]
    return includes + redirects


def direct_lookup_cost(record: str) -> int:
    """Count the DNS lookups a record costs by itself, ignoring nested records"""
    return sum(1 for m in classify_mechanisms(record) if m.costs_lookup)


def _include_domains(record: str) -> List[str]:
    return [edge.domain for edge in extract_edges(record) if edge.type == "include"]


async def count_lookups(
    record: str,
    resolver,
    visited: Optional[Set[str]] = None,
    depth: int = 0,
    failures: Optional[List[SubResolutionFailure]] = None,
    max_depth: Optional[int] = None,
) -> int:
    """
    Count the DNS lookups needed to evaluate a record and its includes

    Included domains are resolved one at a time in the order a depth-first
    walk reaches them. A domain already in ``visited`` is never resolved or
    counted again. Records deeper than ``max_depth`` contribute nothing.
    Redirect targets cost one lookup but are not followed.

    Args:
        record: SPF record to evaluate
        resolver: Object with an async ``resolve_spf(domain)`` method
        visited: Domains already counted in this evaluation
        depth: Depth of ``record`` in the include chain
        failures: Receives a ``SubResolutionFailure`` per unresolvable include
        max_depth: Deepest level counted, defaults to MAX_INCLUDE_DEPTH

    Returns:
        The total lookup count
    """
    if max_depth is None:
        max_depth = settings.MAX_INCLUDE_DEPTH
    if visited is None:
        visited = set()

    if depth > max_depth:
        return 0

    total = direct_lookup_cost(record)
    pending = [(domain, depth + 1) for domain in reversed(_include_domains(record))]

    while pending:
        domain, level = pending.pop()
        if domain in visited:
            continue
        visited.add(domain)

        if level > max_depth:
            logger.debug(f"Include depth limit reached at {domain}")
            continue

        try:
            records = await resolver.resolve_spf(domain)
        except ResolutionError as e:
            logger.warning(f"Could not resolve included domain {domain}: {e.detail}")
            if failures is not None:
                failures.append(SubResolutionFailure(domain, e.detail))
            continue

        if not records:
            continue

        nested = records[0]
        total += direct_lookup_cost(nested)
        pending.extend(
            (child, level + 1) for child in reversed(_include_domains(nested))
        )

    return total


async def fetch_first_or_message(domain: str, resolver) -> str:
    """Return the first SPF record of a domain or a displayable message"""
    try:
        records = await resolver.resolve_spf(domain)
    except ResolutionError as e:
        return f"Error: {e.detail}"
    return records[0] if records else "No SPF record found"

"""
Human-readable explanations for SPF mechanisms
"""
from typing import Dict

DEFAULT_EXPLANATION = "SPF mechanism"

MECHANISM_EXPLANATIONS: Dict[str, str] = {
    "include:": "Authorizes another domain's SPF record",
    "redirect=": "Replaces this SPF record with another domain's",
    "ip4:": "Authorizes an IPv4 address or range",
    "ip6:": "Authorizes an IPv6 address or range",
    "a": "Authorizes IP addresses from domain's A/AAAA records",
    "mx": "Authorizes IP addresses from domain's MX records",
    "ptr": "Authorizes if reverse DNS lookup matches (deprecated)",
    "exists": "Performs a DNS A record lookup",
    "-all": "Hard fail - rejects all other sources",
    "~all": "Soft fail - marks as suspicious but accepts",
    "?all": "Neutral - no policy statement",
    "+all": "Pass - allows all (strongly discouraged!)",
}


def explain(token: str) -> str:
    """Return the explanation for a catalog token, or a generic one"""
    return MECHANISM_EXPLANATIONS.get(token, DEFAULT_EXPLANATION)

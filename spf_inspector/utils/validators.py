"""
Validation utilities for user-supplied domains
"""
import re
import logging
from spf_inspector.core.exceptions import InvalidDomainSyntax

logger = logging.getLogger(__name__)

DOMAIN_REGEX = re.compile(
    r'^(?:[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)+[a-zA-Z]{2,}$'
)


def normalize_domain(input_value: str) -> str:
    """Trim whitespace and lowercase a domain"""
    return (input_value or "").strip().lower()


def is_valid_domain(domain: str) -> bool:
    """Return True if the domain matches the accepted domain syntax"""
    return bool(domain) and DOMAIN_REGEX.match(domain) is not None


def validate_domain(input_value: str) -> str:
    """
    Normalize and validate a domain name

    Args:
        input_value: Domain as typed by the user

    Returns:
        The normalized domain name

    Raises:
        InvalidDomainSyntax: If the domain is empty or malformed
    """
    domain = normalize_domain(input_value)

    if not domain:
        raise InvalidDomainSyntax("Please enter a domain name")

    if not is_valid_domain(domain):
        logger.warning(f"Invalid domain format: {domain} (from input: {input_value!r})")
        raise InvalidDomainSyntax(
            "Please enter a valid domain name",
            "Domain must be in the format: example.com",
        )

    return domain

"""
Custom exceptions for the SPF Inspector application
"""
from typing import Optional

from fastapi import status


class SPFInspectorException(Exception):
    """Base exception for the application"""

    def __init__(
        self,
        detail: str,
        explanation: Optional[str] = None,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    ):
        self.detail = detail
        self.explanation = explanation
        self.status_code = status_code
        super().__init__(self.detail)


class InvalidDomainSyntax(SPFInspectorException):
    """Exception raised when a domain fails syntax validation"""

    def __init__(self, detail: str, explanation: Optional[str] = None):
        super().__init__(detail, explanation, status_code=status.HTTP_400_BAD_REQUEST)


class ResolutionError(SPFInspectorException):
    """
    Exception raised when a TXT lookup fails

    ``kind`` is one of ``transport``, ``http`` or ``nxdomain_or_servfail``.
    ``status`` holds the HTTP status code for ``http`` failures.
    """

    TRANSPORT = "transport"
    HTTP = "http"
    NXDOMAIN_OR_SERVFAIL = "nxdomain_or_servfail"

    def __init__(
        self,
        detail: str,
        kind: str = TRANSPORT,
        http_status: Optional[int] = None,
        explanation: Optional[str] = None,
    ):
        self.kind = kind
        self.status = http_status
        super().__init__(detail, explanation, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)


class NoSPFRecord(SPFInspectorException):
    """Exception raised when a domain publishes no v=spf1 TXT record"""

    def __init__(self, detail: str, explanation: Optional[str] = None):
        super().__init__(detail, explanation, status_code=status.HTTP_404_NOT_FOUND)

"""
Health check endpoints for monitoring
"""
import logging
from typing import Dict
from fastapi import APIRouter, Depends, HTTPException

from spf_inspector.core.exceptions import ResolutionError
from spf_inspector.services.dns.resolver import get_resolver

logger = logging.getLogger(__name__)
router = APIRouter()

HEALTH_CHECK_DOMAIN = "google.com"


@router.get("/", response_model=Dict[str, str])
async def health_check():
    """
    Basic health check endpoint to verify API is running
    """
    return {"status": "healthy"}


@router.get("/readiness", response_model=Dict[str, Dict[str, str]])
async def readiness_check(resolver=Depends(get_resolver)):
    """
    Verifies that the DNS resolver answers SPF queries
    """
    health_status = {
        "api": {"status": "healthy"},
    }

    try:
        records = await resolver.resolve_spf(HEALTH_CHECK_DOMAIN)
        health_status["dns_resolver"] = {
            "status": "healthy" if records else "unhealthy"
        }
    except ResolutionError as e:
        logger.error(f"DNS resolver health check failed: {e.detail}")
        health_status["dns_resolver"] = {"status": "unhealthy", "reason": e.detail}

    if all(component["status"] == "healthy" for component in health_status.values()):
        return health_status
    else:
        # Still return the health information but with a 503 status code
        raise HTTPException(status_code=503, detail=health_status)

"""
API router that includes all API endpoint routers
"""
from fastapi import APIRouter
from spf_inspector.api.v1.endpoints import health, spf

api_router = APIRouter()

# spf inspection
api_router.include_router(
    spf.router,
    prefix="/spf",
    tags=["SPF Inspection"]
)

# Health check
api_router.include_router(
    health.router,
    prefix="/health",
    tags=["Health"]
)

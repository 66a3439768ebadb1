"""
SPF Inspector - SPF record and DNS lookup budget checker
Main application entry point
"""

import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from spf_inspector.api.v1.router import api_router
from spf_inspector.core.config import settings
from spf_inspector.core.exceptions import NoSPFRecord, SPFInspectorException
from spf_inspector.core.logging import setup_logging

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)
logger.info("Starting SPF Inspector application...")


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="API for inspecting SPF records and their DNS lookup cost",
    version="0.1.0",
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc",
)

# Set up CORS middleware
if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin).rstrip("/") for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.add_middleware(GZipMiddleware)


# Include API router
app.include_router(api_router, prefix=settings.API_V1_STR)


# Exception handler
@app.exception_handler(SPFInspectorException)
async def spf_inspector_exception_handler(request: Request, exc: SPFInspectorException):
    """Handle application-specific exceptions"""
    logger.error(f"Application error: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "state": "not_found" if isinstance(exc, NoSPFRecord) else "failed",
            "detail": exc.detail,
            "explanation": exc.explanation,
        },
    )


@app.get("/", include_in_schema=False)
async def root():
    """Root endpoint points to the API documentation"""
    return {"message": f"Welcome to {settings.PROJECT_NAME}. See {settings.API_V1_STR}/docs for API documentation."}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("spf_inspector.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)

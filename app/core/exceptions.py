"""
Global Exception Handlers

Custom exceptions and FastAPI exception handlers.
"""

from fastapi import Request
from fastapi.responses import JSONResponse


class CinemaxException(Exception):
    """Base exception for ingestion service errors."""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class NotFoundError(CinemaxException):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            message=f"{resource} not found: {resource_id}",
            status_code=404
        )


class QuotaExceededError(CinemaxException):
    """API quota exceeded."""

    def __init__(self, api_name: str):
        super().__init__(
            message=f"{api_name} API quota exceeded. Try again tomorrow.",
            status_code=429
        )


class PersistenceError(CinemaxException):
    """A durable JSON write could not be completed."""

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(
            message=f"Failed to write {path}: {reason}",
            status_code=500
        )


class EnrichmentError(CinemaxException):
    """AI enrichment call failed or returned an unusable payload."""

    def __init__(self, message: str):
        super().__init__(message=message, status_code=502)


class PosterDownloadError(CinemaxException):
    """Poster image could not be fetched or stored."""

    def __init__(self, url: str, reason: str):
        self.url = url
        super().__init__(
            message=f"Poster download failed for {url}: {reason}",
            status_code=502
        )


async def cinemax_exception_handler(
    request: Request,
    exc: CinemaxException
) -> JSONResponse:
    """Handle CinemaxException and return JSON response."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": True,
            "message": exc.message,
            "status_code": exc.status_code,
        }
    )


def register_exception_handlers(app):
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(CinemaxException, cinemax_exception_handler)

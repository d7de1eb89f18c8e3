"""Core infrastructure modules."""

from .security import verify_admin_access
from .exceptions import (
    CinemaxException,
    NotFoundError,
    QuotaExceededError,
    PersistenceError,
    EnrichmentError,
    PosterDownloadError,
)
from .logging import setup_logging, get_logger

__all__ = [
    "verify_admin_access",
    "CinemaxException",
    "NotFoundError",
    "QuotaExceededError",
    "PersistenceError",
    "EnrichmentError",
    "PosterDownloadError",
    "setup_logging",
    "get_logger",
]

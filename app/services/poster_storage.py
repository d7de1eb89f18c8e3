"""
Poster Storage Service

Downloads a thumbnail and stores it as the movie poster under the
site's public posters directory.
"""

import os
import time
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import httpx

from ..config import get_settings
from ..core.exceptions import PosterDownloadError
from ..core.logging import get_logger
from ..models.movie import slugify_title

logger = get_logger(__name__)

DEFAULT_EXTENSION = ".jpg"


class PosterStorage:
    """
    Stores posters as <slug>-<epoch ms><ext> in the posters directory.

    The returned path is the public URL path (e.g. /posters/anikulapo-1718000000000.jpg),
    which is what the catalog's poster field holds.
    """

    MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB

    def __init__(
        self,
        posters_dir: Optional[str] = None,
        url_prefix: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.posters_dir = Path(posters_dir or settings.posters_dir)
        self.url_prefix = (url_prefix if url_prefix is not None else settings.poster_url_prefix).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    @staticmethod
    def extension_for(url: str) -> str:
        """File extension from the URL path, defaulting to .jpg."""
        extension = os.path.splitext(urlparse(url).path)[1].lower()
        return extension if extension else DEFAULT_EXTENSION

    def filename_for(self, url: str, title: str) -> str:
        return f"{slugify_title(title)}-{int(time.time() * 1000)}{self.extension_for(url)}"

    async def download_poster(self, url: str, title: str) -> str:
        """
        Download an image and persist it.

        Returns:
            Public path of the stored poster

        Raises:
            PosterDownloadError: non-2xx status, non-image content type,
            oversized body, transfer error or disk error
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self.transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            raise PosterDownloadError(url, f"transfer error: {e}") from e

        if not response.is_success:
            raise PosterDownloadError(url, f"HTTP {response.status_code}")

        content_type = response.headers.get("content-type", "").lower()
        if not content_type.startswith("image/"):
            raise PosterDownloadError(url, f"not an image ({content_type or 'no content-type'})")

        content = response.content
        if len(content) > self.MAX_FILE_SIZE:
            raise PosterDownloadError(url, f"image too large ({len(content)} bytes)")

        filename = self.filename_for(url, title)
        target = self.posters_dir / filename

        try:
            self.posters_dir.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except OSError as e:
            target.unlink(missing_ok=True)
            raise PosterDownloadError(url, f"could not write {target}: {e}") from e

        logger.info("poster_saved", path=str(target), size=len(content))
        return f"{self.url_prefix}/{filename}"

    def discard(self, public_path: Optional[str]) -> bool:
        """
        Delete a poster previously returned by download_poster.

        Paths outside this storage's URL prefix are ignored. Returns True
        if a file was removed.
        """
        prefix = f"{self.url_prefix}/"
        if not public_path or not public_path.startswith(prefix):
            return False

        target = self.posters_dir / Path(public_path[len(prefix):]).name
        try:
            target.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning("poster_discard_failed", path=str(target), error=str(e))
            return False

        logger.info("poster_discarded", path=str(target))
        return True


_poster_storage: Optional[PosterStorage] = None


def get_poster_storage() -> PosterStorage:
    """Get singleton PosterStorage instance."""
    global _poster_storage
    if _poster_storage is None:
        _poster_storage = PosterStorage()
    return _poster_storage

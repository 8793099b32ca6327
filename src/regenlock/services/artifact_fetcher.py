"""Remote artifact fetch (e.g. generated logo images) for exports."""

from dataclasses import dataclass
from typing import Optional

import httpx

from regenlock.services.exceptions import ArtifactFetchError
from regenlock.utils.logging import get_logger


logger = get_logger(__name__)

_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "image/svg+xml": "svg",
}


def extension_for_content_type(content_type: Optional[str]) -> str:
    """Map a Content-Type header to a file extension (png when unknown)."""
    ct = (content_type or "").lower()
    for mime, ext in _EXTENSIONS.items():
        if mime in ct:
            return ext
    return "png"


@dataclass(frozen=True)
class FetchedArtifact:
    content: bytes
    content_type: Optional[str]

    @property
    def extension(self) -> str:
        return extension_for_content_type(self.content_type)


class HttpArtifactFetcher:
    """
    Fetch artifacts over HTTP. One attempt per URL, no retries.

    Example:
        >>> fetcher = HttpArtifactFetcher(timeout_seconds=30)
        >>> artifact = await fetcher.fetch("https://cdn.example.com/logo.png")
    """

    def __init__(self, timeout_seconds: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = httpx.Timeout(timeout_seconds)
        self._transport = transport

    async def fetch(self, url: str) -> FetchedArtifact:
        """
        Download one artifact.

        Raises:
            ArtifactFetchError: On non-2xx status or transport error
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, follow_redirects=True, transport=self._transport
            ) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            logger.warning("artifact_fetch_error", url=url, error=str(e))
            raise ArtifactFetchError(url, "image fetch failed") from e

        if not response.is_success:
            logger.warning("artifact_fetch_status", url=url, status_code=response.status_code)
            raise ArtifactFetchError(url, f"image fetch failed ({response.status_code})")

        return FetchedArtifact(
            content=response.content,
            content_type=response.headers.get("content-type"),
        )

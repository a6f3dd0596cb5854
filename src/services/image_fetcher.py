import ipaddress
from urllib.parse import urlparse

import httpx
import structlog

from src.config import settings
from src.core.exceptions import InvalidImageError

logger = structlog.get_logger()


def _is_blocked_ip(hostname: str) -> bool:
    try:
        ip = ipaddress.ip_address(hostname)
    except ValueError:
        return False
    return ip.is_private or ip.is_loopback or ip.is_link_local or ip.is_reserved or ip.is_multicast or ip.is_unspecified


def validate_fetch_url(url: str) -> None:
    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    if scheme not in ("http", "https"):
        raise InvalidImageError("Invalid image url")
    if not parsed.hostname:
        raise InvalidImageError("Invalid image url")
    hostname = parsed.hostname
    if hostname == "localhost" or hostname.endswith(".localhost"):
        raise InvalidImageError("Invalid image url")
    if _is_blocked_ip(hostname):
        raise InvalidImageError("Invalid image url")


async def fetch_image(url: str, client: httpx.AsyncClient | None = None) -> tuple[bytes, str | None]:
    """Download an image, returning its bytes and the declared content type.

    Raises ``httpx.HTTPError`` on transport or status failures and ``ValueError``
    when the body exceeds ``max_fetch_bytes``.
    """
    validate_fetch_url(url)
    if client is None:
        async with httpx.AsyncClient(timeout=settings.fetch_timeout, follow_redirects=True) as own_client:
            return await _download(own_client, url)
    return await _download(client, url)


async def _download(client: httpx.AsyncClient, url: str) -> tuple[bytes, str | None]:
    async with client.stream("GET", url) as response:
        response.raise_for_status()
        chunks: list[bytes] = []
        size = 0
        async for chunk in response.aiter_bytes():
            size += len(chunk)
            if size > settings.max_fetch_bytes:
                logger.warning("image_fetch_too_large", url=url[:80], limit=settings.max_fetch_bytes)
                raise ValueError(f"Image exceeds {settings.max_fetch_bytes} bytes")
            chunks.append(chunk)
        content_type = response.headers.get("content-type")
    mime_type = content_type.split(";")[0].strip() if content_type else None
    logger.info("image_fetched", url=url[:80], size=size)
    return b"".join(chunks), mime_type

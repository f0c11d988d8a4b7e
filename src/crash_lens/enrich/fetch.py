"""Fetch remote source text over HTTPS with httpx.

Redirects are followed by hand so that every hop is checked against the allowlist before
a request is sent. Bodies are streamed and abort once they exceed the byte cap.
"""

import json
import logging
from urllib.parse import urljoin

import httpx

from crash_lens.config import MAX_REMOTE_BYTES
from crash_lens.enrich.urls import is_devops_items_url, validate_remote_url

logger = logging.getLogger(__name__)

MAX_REDIRECTS = 5

_ACCEPT = "text/plain, application/json;q=0.9, */*;q=0.1"
_APPLICATION_TEXT_TYPES = frozenset({"application/json", "application/xml", "application/javascript"})


class SourceFetchError(Exception):
    """Raised when a remote source file cannot be retrieved."""


class SourceUrlNotAllowedError(SourceFetchError):
    pass


class UnsupportedMediaTypeError(SourceFetchError):
    pass


class SourceTooLargeError(SourceFetchError):
    pass


class SourceFetchTimeoutError(SourceFetchError):
    pass


def media_type_of(content_type: str | None) -> str:
    return (content_type or "").split(";", 1)[0].strip().lower()


def is_allowed_media_type(content_type: str | None) -> bool:
    media = media_type_of(content_type)
    if not media or media == "text/html":
        return False
    if media.startswith("text/") or media in _APPLICATION_TEXT_TYPES:
        return True
    return media.endswith(("+json", "+xml"))


def extract_devops_content(url: str, media_type: str, body: str) -> str:
    """Unwrap the ``content`` field of a DevOps items envelope, else return the body."""
    if not is_devops_items_url(url) or "json" not in media_type:
        return body
    try:
        envelope = json.loads(body)
    except ValueError:
        return body
    if isinstance(envelope, dict) and isinstance(envelope.get("content"), str):
        return envelope["content"]
    return body


async def _read_capped(response: httpx.Response, max_bytes: int) -> bytes:
    declared = response.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > max_bytes:
        raise SourceTooLargeError(f"Remote source file exceeds max size cap ({max_bytes} bytes).")
    chunks: list[bytes] = []
    total = 0
    async for chunk in response.aiter_bytes():
        total += len(chunk)
        if total > max_bytes:
            raise SourceTooLargeError(f"Remote source file exceeds max size cap ({max_bytes} bytes).")
        chunks.append(chunk)
    return b"".join(chunks)


async def fetch_source_text(client: httpx.AsyncClient, url: str, *, max_bytes: int = MAX_REMOTE_BYTES) -> str:
    """Return the decoded text at ``url``.

    Raises:
        SourceFetchError: the URL or a redirect target is not allowed, the media type is
            not text-like, or the body exceeds ``max_bytes``.
        httpx.HTTPError: transport failures and non-2xx responses.
    """
    current = validate_remote_url(url)
    if current is None:
        raise SourceUrlNotAllowedError("Source URL is not allowed.")

    for _ in range(MAX_REDIRECTS + 1):
        async with client.stream("GET", current, headers={"Accept": _ACCEPT}, follow_redirects=False) as response:
            if response.is_redirect:
                location = response.headers.get("location", "")
                target = validate_remote_url(urljoin(current, location))
                if target is None:
                    raise SourceUrlNotAllowedError("Redirect target is not allowed.")
                logger.debug("Following redirect from %s to %s", current, target)
                current = target
                continue

            response.raise_for_status()
            content_type = response.headers.get("content-type")
            if not is_allowed_media_type(content_type):
                raise UnsupportedMediaTypeError(f"Unsupported content type '{media_type_of(content_type) or 'none'}'.")
            body = (await _read_capped(response, max_bytes)).decode("utf-8-sig", errors="replace")
            return extract_devops_content(current, media_type_of(content_type), body)

    raise SourceFetchError(f"Too many redirects (more than {MAX_REDIRECTS}).")

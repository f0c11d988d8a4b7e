"""Remote source URL allowlisting and raw-URL inference.

Only a fixed set of hosts is fetched. Query strings are refused everywhere except the
Azure DevOps items API, where a short list of keys is accepted and anything resembling a
credential is rejected outright.
"""

from __future__ import annotations

import re
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

RAW_GITHUB_HOST = "raw.githubusercontent.com"
GITHUB_HOST = "github.com"
GITLAB_HOST = "gitlab.com"
DEVOPS_HOST = "dev.azure.com"
LEGACY_DEVOPS_SUFFIX = ".visualstudio.com"

DEVOPS_API_VERSION = "7.0"

_DEVOPS_QUERY_KEYS = frozenset({"path", "download", "includecontent", "resolvelfs", "api-version"})
_DEVOPS_VERSION_PREFIX = "versiondescriptor."
_CREDENTIAL_MARKERS = ("token", "sig", "secret", "password", "access")

_GITHUB_BLOB_RE = re.compile(r"^/(?P<owner>[^/]+)/(?P<repo>[^/]+)/blob/(?P<rest>.+)$")
_GITLAB_BLOB_RE = re.compile(r"^/(?P<project>.+?)/-/blob/(?P<rest>.+)$")
_DEVOPS_BROWSE_RE = re.compile(r"^/(?:(?P<prefix>.+?)/)?_git/(?P<repo>[^/]+)/?$")
_DEVOPS_ITEMS_RE = re.compile(r"/_apis/git/repositories/[^/]+/items$", re.IGNORECASE)
_LEGACY_ORG_RE = re.compile(r"^[a-z0-9][a-z0-9-]*$")

_VERSION_TYPES = {"GB": "branch", "GC": "commit", "GT": "tag"}


def is_devops_host(host: str) -> bool:
    host = host.lower()
    if host == DEVOPS_HOST:
        return True
    if host.endswith(LEGACY_DEVOPS_SUFFIX):
        return bool(_LEGACY_ORG_RE.match(host[: -len(LEGACY_DEVOPS_SUFFIX)]))
    return False


def is_devops_items_url(url: str) -> bool:
    parts = urlsplit(url)
    return is_devops_host(parts.hostname or "") and bool(_DEVOPS_ITEMS_RE.search(parts.path))


def _devops_query_allowed(query: str) -> bool:
    for key, _ in parse_qsl(query, keep_blank_values=True):
        lowered = key.lower()
        if any(marker in lowered for marker in _CREDENTIAL_MARKERS):
            return False
        if lowered not in _DEVOPS_QUERY_KEYS and not lowered.startswith(_DEVOPS_VERSION_PREFIX):
            return False
    return True


def validate_remote_url(url: str | None) -> str | None:
    """Return the normalized URL when it may be fetched, otherwise None.

    The fragment is dropped. Userinfo, non-HTTPS schemes, non-default ports and
    dot segments are refused.
    """
    if not url or not url.strip():
        return None
    try:
        parts = urlsplit(url.strip())
        port = parts.port
    except ValueError:
        return None
    if parts.scheme != "https" or "@" in parts.netloc:
        return None
    if port not in (None, 443):
        return None
    host = (parts.hostname or "").lower()
    segments = [s for s in parts.path.split("/") if s]
    if any(s in (".", "..") for s in segments):
        return None

    if host == RAW_GITHUB_HOST:
        allowed = not parts.query and len(segments) >= 4
    elif host == GITLAB_HOST:
        allowed = not parts.query and "/-/raw/" in parts.path
    elif is_devops_host(host):
        allowed = bool(_DEVOPS_ITEMS_RE.search(parts.path)) and _devops_query_allowed(parts.query)
    else:
        allowed = False
    if not allowed:
        return None
    return urlunsplit(("https", host, parts.path, parts.query, ""))


def _infer_devops(host: str, path: str, query: str) -> str | None:
    match = _DEVOPS_BROWSE_RE.match(path)
    if not match:
        return None
    prefix = match.group("prefix")
    if host == DEVOPS_HOST and not prefix:
        return None
    params = dict(parse_qsl(query, keep_blank_values=True))
    file_path = params.get("path")
    if not file_path:
        return None

    items: list[tuple[str, str]] = [("path", file_path)]
    version = params.get("version", "")
    version_type = _VERSION_TYPES.get(version[:2].upper())
    if version_type and len(version) > 2:
        items.append(("versionDescriptor.version", version[2:]))
        items.append(("versionDescriptor.versionType", version_type))
    items.append(("includeContent", "true"))
    items.append(("api-version", DEVOPS_API_VERSION))

    base = f"/{prefix}" if prefix else ""
    api_path = f"{base}/_apis/git/repositories/{match.group('repo')}/items"
    return urlunsplit(("https", host, api_path, urlencode(items, quote_via=quote, safe="/"), ""))


def infer_raw_url(source_url: str | None) -> str | None:
    """Map a browse URL (GitHub blob, GitLab blob, DevOps ``_git``) to a fetchable raw URL."""
    if not source_url or not source_url.strip():
        return None
    try:
        parts = urlsplit(source_url.strip())
    except ValueError:
        return None
    if parts.scheme != "https" or "@" in parts.netloc:
        return None
    host = (parts.hostname or "").lower()

    candidate: str | None = None
    if host == GITHUB_HOST and not parts.query:
        match = _GITHUB_BLOB_RE.match(parts.path)
        if match:
            candidate = f"https://{RAW_GITHUB_HOST}/{match['owner']}/{match['repo']}/{match['rest']}"
    elif host == GITLAB_HOST and not parts.query:
        match = _GITLAB_BLOB_RE.match(parts.path)
        if match:
            candidate = f"https://{GITLAB_HOST}/{match['project']}/-/raw/{match['rest']}"
    elif is_devops_host(host):
        if _DEVOPS_ITEMS_RE.search(parts.path):
            candidate = source_url
        else:
            candidate = _infer_devops(host, parts.path, parts.query)
    else:
        candidate = source_url
    return validate_remote_url(candidate)


def resolve_remote_url(source_raw_url: str | None, source_url: str | None) -> str | None:
    """Prefer an allowlisted raw URL, else one inferred from the browse URL."""
    return validate_remote_url(source_raw_url) or infer_raw_url(source_url)

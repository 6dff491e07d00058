"""Shared URL utilities: normalize URLs, classify them, and derive page names."""

from __future__ import annotations

import re
from functools import lru_cache
from urllib.parse import SplitResult, urlsplit, urlunsplit

from argus.models.explorer import CrawlOptions

_DEFAULT_PORTS = {"http": 80, "https": 443}

RESOURCE_EXTENSIONS = (
    ".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".ico",
    ".css", ".js", ".json", ".xml", ".txt", ".pdf",
    ".woff", ".woff2", ".ttf", ".eot", ".otf",
    ".mp3", ".mp4", ".webm", ".ogg", ".wav",
    ".zip", ".tar", ".gz", ".rar",
)


def _split(url: str) -> SplitResult:
    """Parse an absolute URL, raising ValueError if it has no scheme or host."""
    parsed = urlsplit(url)
    if not parsed.scheme or not parsed.hostname:
        raise ValueError(f"Not an absolute URL: {url!r}")
    parsed.port  # raises ValueError for a malformed port
    return parsed


def _origin(parsed: SplitResult) -> tuple[str, str, int | None]:
    scheme = parsed.scheme.lower()
    port = parsed.port if parsed.port is not None else _DEFAULT_PORTS.get(scheme)
    return scheme, (parsed.hostname or "").lower(), port


def _netloc(parsed: SplitResult) -> str:
    scheme, host, port = _origin(parsed)
    if ":" in host:
        host = f"[{host}]"
    netloc = host
    if port is not None and port != _DEFAULT_PORTS.get(scheme):
        netloc += f":{port}"
    userinfo, at, _ = parsed.netloc.rpartition("@")
    if at:
        netloc = f"{userinfo}@{netloc}"
    return netloc


def normalize_url(url: str, remove_query: bool = False) -> str:
    """Canonicalize a URL for deduplication.

    Strips the fragment, optionally the query string, and one trailing slash
    from any non-root path. Scheme and host are lower-cased; path case is kept.
    Input that cannot be parsed is returned unchanged.
    """
    try:
        parsed = _split(url)
    except ValueError:
        return url

    path = parsed.path or "/"
    if path != "/" and path.endswith("/"):
        path = path[:-1]
    query = "" if remove_query else parsed.query
    return urlunsplit((parsed.scheme.lower(), _netloc(parsed), path, query, ""))


def is_internal_url(url: str, base_url: str) -> bool:
    """True iff ``url`` has the same origin (scheme, host, port) as ``base_url``."""
    try:
        return _origin(_split(url)) == _origin(_split(base_url))
    except ValueError:
        return False


@lru_cache(maxsize=256)
def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile a glob (``*`` any run, ``?`` one char) into an anchored regex."""
    escaped = re.escape(pattern).replace(r"\*", ".*").replace(r"\?", ".")
    return re.compile(f"^{escaped}$", re.IGNORECASE)


def matches_pattern(value: str, patterns: list[str]) -> bool:
    return any(glob_to_regex(p).match(value) for p in patterns)


def should_crawl(url: str, options: CrawlOptions) -> bool:
    """Decide whether a discovered URL is an internal page worth capturing."""
    try:
        parsed = _split(url)
    except ValueError:
        return False

    if parsed.scheme.lower() not in ("http", "https"):
        return False
    if not is_internal_url(url, options.base_url):
        return False

    path = parsed.path or "/"
    if path.lower().endswith(RESOURCE_EXTENSIONS):
        return False
    if options.exclude and matches_pattern(path, options.exclude):
        return False
    if options.include and not matches_pattern(path, options.include):
        return False
    return True


def get_path_name(url: str) -> str:
    """Derive a filename-safe page name from a URL path (``home`` for ``/``)."""
    try:
        path = _split(url).path
    except ValueError:
        return "page"

    if path in ("", "/"):
        return "home"
    name = path.strip("/").replace("/", "-")
    name = re.sub(r"[^a-zA-Z0-9-]", "-", name)
    name = re.sub(r"-+", "-", name)
    return name.lower() or "home"

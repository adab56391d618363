"""General-purpose helper utilities for the audit pipeline."""

import math
from urllib.parse import urlparse, urlunparse

from seo_grader.exceptions import FetchError


def ensure_scheme(url: str) -> str:
    """Prefix *url* with ``https://`` when it carries no scheme.

    Examples:
        >>> ensure_scheme("example.com")
        'https://example.com'
        >>> ensure_scheme("http://example.com")
        'http://example.com'
    """
    url = url.strip()
    if url.lower().startswith(("http://", "https://")):
        return url
    return f"https://{url}"


def normalize_url(url: str) -> str:
    """Return the key under which audits and fetches of *url* are shared.

    Scheme and host are lower-cased, a missing scheme becomes ``https``,
    the fragment is dropped and an empty path becomes ``/``.  The path and
    query keep their case.

    Examples:
        >>> normalize_url("HTTPS://Example.COM")
        'https://example.com/'
        >>> normalize_url("example.com/About#team")
        'https://example.com/About'

    Raises:
        FetchError: *url* cannot be parsed (e.g. an unclosed IPv6 bracket).
    """
    try:
        parsed = urlparse(ensure_scheme(url))
    except ValueError as exc:
        raise FetchError(url, exc) from exc
    path = parsed.path or "/"
    return urlunparse((
        parsed.scheme.lower(),
        parsed.netloc.lower(),
        path,
        parsed.params,
        parsed.query,
        "",
    ))


def bytes_to_mb(n: int | float, digits: int = 2) -> float:
    """Convert a byte count to megabytes (1024 * 1024)."""
    return round(n / (1024 * 1024), digits)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves going up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


"""
URL normalization and validation helpers shared by the frontier and the scanner.
"""

from typing import Optional
from urllib.parse import urljoin, urlparse, urlunparse


CRAWLABLE_SCHEMES = ('http', 'https')
DEFAULT_PORTS = {'http': 80, 'https': 443}


def _normalize_netloc(scheme: str, hostname: str, port: Optional[int]) -> str:
    if port is None or DEFAULT_PORTS.get(scheme) == port:
        return hostname
    return f"{hostname}:{port}"


def normalize_url(url: str) -> str:
    """
    Normalize a URL to its identity: scheme, host, path and query.

    The scheme and host are lowercased, default ports and fragments are dropped
    and an empty path becomes '/'. Raises ValueError for URLs urllib cannot parse.
    """
    parsed = urlparse(url.strip())
    scheme = parsed.scheme.lower()
    netloc = parsed.netloc.lower()
    if parsed.hostname:
        # .port raises ValueError on out-of-range or non-numeric ports
        netloc = _normalize_netloc(scheme, parsed.hostname, parsed.port)
    return urlunparse((
        scheme,
        netloc,
        parsed.path or '/',
        parsed.params,
        parsed.query,
        ''  # Remove fragment
    ))


def get_host(url: str) -> str:
    """Return the normalized host (with non-default port) of a URL."""
    return urlparse(normalize_url(url)).netloc


def is_valid_url(url: str) -> bool:
    """Check if URL is valid for crawling."""
    try:
        parsed = urlparse(url)
        if parsed.scheme.lower() not in CRAWLABLE_SCHEMES:
            return False
        if not parsed.hostname:
            return False
        parsed.port  # raises ValueError on a malformed port
        return True
    except ValueError:
        return False


def resolve_link(base_url: str, href: str) -> str:
    """
    Resolve an href against the URL of the page it was found on.

    Returns the normalized absolute URL. Raises ValueError when the href
    cannot be resolved.
    """
    href = href.strip()
    if not href:
        raise ValueError("empty href")
    absolute_url = urljoin(base_url, href)
    if not is_valid_url(absolute_url):
        raise ValueError(f"not a crawlable URL: {absolute_url}")
    return normalize_url(absolute_url)


def is_same_host(url: str, other_url: str) -> bool:
    """Check whether two URLs point at the same host."""
    try:
        return get_host(url) == get_host(other_url)
    except ValueError:
        return False

"""
Address normalization and domain utilities.

Provides canonical address normalization, root domain extraction with
multi-part suffix handling, scheme/www variant generation, and relative
redirect target resolution.
"""

import ipaddress
import re
from typing import Optional
from urllib.parse import urljoin, urlsplit, urlunsplit

import idna

from .suffix_registry import match_multi_part_suffix


HTTP_SCHEME_PATTERN = re.compile(r"^https?://", re.IGNORECASE)
ANY_SCHEME_PATTERN = re.compile(r"^[a-z][a-z0-9+.\-]*://", re.IGNORECASE)
SCHEME_AND_WWW_PATTERN = re.compile(r"^https?://(www\.)?", re.IGNORECASE)
FALLBACK_HOST_PATTERN = re.compile(r"(?:https?://)?(?:www\.)?([^/\s]+)", re.IGNORECASE)

# Characters that can never appear in a host name
FORBIDDEN_HOST_CHARS = re.compile(
    r'[\x00-\x1f\x7f'
    r'\s'
    r'!"#$%&\'()*+,;<=>?@\[\\\]^`{|}~/]'
)

HOST_PATTERN = re.compile(
    r"[a-z0-9_](?:[a-z0-9_-]*[a-z0-9_])?"
    r"(?:\.[a-z0-9_](?:[a-z0-9_-]*[a-z0-9_])?)*\.?"
)

DEFAULT_PORTS = {"http": 80, "https": 443}

# Priority order of the four variants; doubles as the tie-break order
VARIATION_PREFIXES = ("https://", "https://www.", "http://", "http://www.")


def _canonical_host(hostname: Optional[str]) -> Optional[str]:
    """Lower-case and IDNA-encode a host, or None when it is not a host."""
    if not hostname:
        return None

    try:
        ipaddress.ip_address(hostname)
        return hostname
    except ValueError:
        pass

    if FORBIDDEN_HOST_CHARS.search(hostname):
        return None

    if any(ord(c) > 127 for c in hostname):
        try:
            hostname = idna.encode(hostname, uts46=True).decode("ascii")
        except (idna.IDNAError, UnicodeError):
            return None

    hostname = hostname.lower()
    if not HOST_PATTERN.fullmatch(hostname):
        return None
    return hostname


def normalize(raw: Optional[str]) -> Optional[str]:
    """
    Normalize a raw address to an absolute http(s) URL.

    Prefixes ``https://`` when no scheme is given. The trailing slash of a
    bare host is only kept when the raw input ended with one.

    Returns:
        The normalized address, or None if the input does not parse as a host
    """
    url = (raw or "").strip()
    if not url:
        return None

    had_trailing_slash = url.endswith("/")

    if not HTTP_SCHEME_PATTERN.match(url):
        if ANY_SCHEME_PATTERN.match(url):
            return None
        url = "https://" + url

    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError:
        return None

    host = _canonical_host(parts.hostname)
    if host is None:
        return None

    scheme = parts.scheme.lower()
    netloc = f"[{host}]" if ":" in host else host
    if port is not None and port != DEFAULT_PORTS[scheme]:
        netloc = f"{netloc}:{port}"

    path = parts.path or "/"
    normalized = urlunsplit((scheme, netloc, path, parts.query, parts.fragment))

    if not had_trailing_slash and path == "/" and normalized.endswith("/"):
        normalized = normalized[:-1]
    return normalized


def hostname_of(url: Optional[str]) -> str:
    """Host of ``url``, lower-cased, or an empty string."""
    if not url:
        return ""
    try:
        return (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""


def _guess_root_domain(address: str) -> str:
    match = FALLBACK_HOST_PATTERN.search(address)
    if match:
        labels = match.group(1).lower().split(".")
        if len(labels) >= 2:
            return ".".join(labels[-2:])
        return match.group(1).lower()
    return address.lower()


def root_domain(address: str) -> str:
    """
    Extract the registrable root domain of an address.

    ``https://www.sub.example.co.uk/path`` -> ``example.co.uk``.
    Falls back to a regex guess for inputs that are not well-formed URLs.
    """
    url = address.strip()
    if not HTTP_SCHEME_PATTERN.match(url):
        url = "https://" + url

    try:
        host = urlsplit(url).hostname
    except ValueError:
        host = None

    if not host or FORBIDDEN_HOST_CHARS.search(host):
        return _guess_root_domain(address)

    host = host.lower()
    if host.startswith("www."):
        host = host[4:]

    labels = host.split(".")
    suffix = match_multi_part_suffix(host)
    if suffix:
        return ".".join(labels[-(suffix.count(".") + 2):])

    if len(labels) >= 2:
        return ".".join(labels[-2:])
    return host


def same_root_domain(first: str, second: str) -> bool:
    return root_domain(first) == root_domain(second)


def strip_address(address: str) -> str:
    """Drop scheme, a leading ``www.`` and one trailing slash."""
    stripped = SCHEME_AND_WWW_PATTERN.sub("", address.strip()).strip()
    if stripped.endswith("/"):
        stripped = stripped[:-1]
    return stripped


def build_variations(address: str) -> list[str]:
    """Build the four scheme/www variants of an address in priority order."""
    base = strip_address(address)
    return [prefix + base for prefix in VARIATION_PREFIXES]


def resolve_target(location: str, base_url: str) -> Optional[str]:
    """
    Resolve a redirect target against the URL of the response it came from.

    Handles absolute, protocol-relative, root-relative and path-relative
    forms. Returns None for an empty location.
    """
    location = (location or "").strip()
    if not location:
        return None
    if HTTP_SCHEME_PATTERN.match(location):
        return location
    try:
        return urljoin(base_url, location)
    except ValueError:
        return location


def comparison_key(url: str) -> str:
    """Form of ``url`` that ignores trailing slashes and host case."""
    try:
        parts = urlsplit(url)
        if not parts.netloc:
            raise ValueError(url)
        key = f"{parts.scheme}://{parts.netloc.lower()}{parts.path.rstrip('/')}"
        if parts.query:
            key += f"?{parts.query}"
        return key.rstrip("/")
    except ValueError:
        return url.rstrip("/").lower()

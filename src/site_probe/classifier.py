"""
Content Classifier for single-hop responses.

This module turns one HTTP response (status, headers, body prefix) into a
classification. The result is a tagged union so that an unresolved redirect
can never be mistaken for a terminal category:

- Resolved: terminal single-hop category (up, down, cloudflare_block)
- PendingRedirect: a redirect whose destination still has to be fetched
- ParkedDomain: a parked page with no concrete target to follow

Decision order (first match wins):
1. Bot-mitigation challenge (vendor headers + 403/429/503, or challenge body)
2. Protocol redirect (3xx + Location)
3. 200 with embedded meta-refresh or script redirect
4. 200 parked-domain signature
5. 200/302 showing a generic error page
6. 200/302 default up
7. 5xx / 4xx down, anything else up
"""

import re
from dataclasses import dataclass
from typing import Mapping, Optional, Union

from .domain_utils import hostname_of, resolve_target
from .enums import Category, RedirectKind
from .models import FetchResponse


@dataclass(frozen=True)
class Resolved:
    """Terminal single-hop classification."""

    category: Category
    reason: str

    @property
    def needs_further_resolution(self) -> bool:
        return False

    @property
    def redirect_target(self) -> Optional[str]:
        return None


@dataclass(frozen=True)
class PendingRedirect:
    """Redirect whose destination is not yet resolved."""

    target: str
    reason: str
    kind: RedirectKind
    cross_site: bool = False

    @property
    def needs_further_resolution(self) -> bool:
        return True

    @property
    def redirect_target(self) -> Optional[str]:
        return self.target


@dataclass(frozen=True)
class ParkedDomain:
    """Parked page redirecting through a delivery system with no visible target."""

    reason: str

    @property
    def needs_further_resolution(self) -> bool:
        return False

    @property
    def redirect_target(self) -> Optional[str]:
        return None


Classification = Union[Resolved, PendingRedirect, ParkedDomain]


def _compile(*patterns: str) -> list[re.Pattern]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


class ContentClassifier:
    """
    Pattern-based classifier for HTTP responses and rendered pages.

    Stateless; one instance can be shared by every resolver.
    """

    CHALLENGE_STATUSES = frozenset({403, 429, 503})

    CHALLENGE_PATTERNS = _compile(
        r"Just a moment\.\.\.",
        r"Attention Required! \| Cloudflare",
        r"checking your browser",
        r"/cdn-cgi/challenge-platform/",
    )

    META_REFRESH_PATTERN = re.compile(
        r"<meta[^>]*http-equiv\s*=\s*[\"']?refresh[\"']?[^>]*content\s*=\s*[\"']?"
        r"\d+\s*;\s*url\s*=\s*[\"']?([^\"'\s>]+)",
        re.IGNORECASE,
    )

    SCRIPT_REDIRECT_PATTERNS = _compile(
        r"window\.location\s*=\s*[\"']([^\"']+)[\"']",
        r"window\.location\.href\s*=\s*[\"']([^\"']+)[\"']",
        r"window\.location\.replace\s*\(\s*[\"']([^\"']+)[\"']\s*\)",
        r"location\.href\s*=\s*[\"']([^\"']+)[\"']",
        r"location\.replace\s*\(\s*[\"']([^\"']+)[\"']\s*\)",
        r"document\.location\s*=\s*[\"']([^\"']+)[\"']",
        r"document\.location\.href\s*=\s*[\"']([^\"']+)[\"']",
    )

    # JSON delivery systems used by parking providers
    PARKED_SCRIPT_PATTERNS = _compile(
        r"delivery\.method\s*===?\s*['\"]redirect['\"]",
        r"window\.location\.href\s*=\s*data\.delivery\.destination",
        r"\.delivery\.destination",
        r"window\.location\.href\s*=\s*data\.[a-z]+\.destination",
        r"sedoparking",
        r"domainparking",
    )

    PARKED_PATTERNS = PARKED_SCRIPT_PATTERNS + _compile(
        r"hugedomains",
        r"afternic",
        r"\bdan\.com",
        r"buydomains",
        r"This domain.*for sale",
        r"domain.*parked",
        r"parked.*domain",
        r"This domain.*may be for sale",
    )

    ERROR_PAGE_PATTERNS = _compile(
        r"Page Not Found",
        r"404 Not Found",
        r"The page you are looking for",
        r"Welcome to nginx!",
        r"Apache.*Test Page",
        r"Default Web Site Page",
        r"It works!",
    )

    SCRIPT_SRC_PATTERN = re.compile(
        r"<script[^>]+src\s*=\s*[\"']([^\"']+)[\"'][^>]*>",
        re.IGNORECASE,
    )

    # Third-party assets that never carry a parking delivery system
    IGNORED_SCRIPT_MARKERS = ("google.com", "gstatic.com", "cloudflare")

    def classify(
        self,
        status: int,
        headers: Mapping[str, str],
        body: str,
        url: str,
    ) -> Classification:
        """
        Classify one response.

        Args:
            status: HTTP status code
            headers: Response headers (any case)
            body: Body prefix (the first 8 KiB is enough)
            url: URL the response came from; relative targets resolve against it

        Returns:
            Resolved, PendingRedirect or ParkedDomain
        """
        headers = {k.lower(): v for k, v in headers.items()}
        body = body or ""

        challenge = self.detect_challenge(status, headers, body)
        if challenge:
            return Resolved(Category.CLOUDFLARE_BLOCK, challenge)

        if 300 <= status < 400:
            return self._classify_protocol_redirect(status, headers, url)

        if status == 200:
            embedded = self.scan_embedded_redirect(body, url)
            if embedded is not None:
                return embedded

            if self.find_parked_marker(body):
                return ParkedDomain("Parked domain with dynamic JS redirect")

        if status in (200, 302):
            if self.is_error_page(body):
                return Resolved(Category.DOWN, f"HTTP {status} but shows error page")
            return Resolved(Category.UP, f"HTTP {status}")

        if status >= 500:
            return Resolved(Category.DOWN, f"Server error HTTP {status}")
        if status >= 400:
            return Resolved(Category.DOWN, f"Client error HTTP {status}")

        return Resolved(Category.UP, f"HTTP {status}")

    def classify_response(self, response: FetchResponse) -> Classification:
        return self.classify(response.status, response.headers, response.body, response.url)

    def detect_challenge(
        self, status: int, headers: Mapping[str, str], body: str
    ) -> Optional[str]:
        """Return a reason when the response is a bot-mitigation challenge."""
        server = headers.get("server", "")
        has_vendor_headers = (
            any(key.startswith("cf-") for key in headers)
            or "cloudflare" in server.lower()
        )
        if has_vendor_headers and status in self.CHALLENGE_STATUSES:
            return f"HTTP {status} with Cloudflare headers"
        if any(p.search(body) for p in self.CHALLENGE_PATTERNS):
            return "Cloudflare challenge page detected"
        return None

    def _classify_protocol_redirect(
        self, status: int, headers: Mapping[str, str], url: str
    ) -> Classification:
        target = resolve_target(headers.get("location", ""), url)
        if not target:
            return Resolved(
                Category.DOWN, f"HTTP {status} redirect without Location header"
            )

        cross_site = self._is_cross_site(url, target)
        reason = (
            f"Redirecting to other site ({hostname_of(target)})" if cross_site else "Redirect"
        )
        return PendingRedirect(
            target=target,
            reason=reason,
            kind=RedirectKind.HTTP,
            cross_site=cross_site,
        )

    def scan_embedded_redirect(self, body: str, url: str) -> Optional[PendingRedirect]:
        """
        Find a meta-refresh or script redirect in a page body.

        Meta refresh wins over script assignments; fragment-only and
        ``javascript:`` targets are skipped.
        """
        match = self.META_REFRESH_PATTERN.search(body or "")
        if match:
            target = resolve_target(match.group(1).replace('"', "").replace("'", ""), url)
            if target:
                cross_site = self._is_cross_site(url, target)
                reason = (
                    f"Meta refresh redirect to other site ({hostname_of(target)})"
                    if cross_site
                    else "Meta refresh redirect"
                )
                return PendingRedirect(target, reason, RedirectKind.META_REFRESH, cross_site)

        for pattern in self.SCRIPT_REDIRECT_PATTERNS:
            match = pattern.search(body or "")
            if not match:
                continue
            raw_target = match.group(1)
            if raw_target.startswith("#") or raw_target.lower().startswith("javascript:"):
                continue
            target = resolve_target(raw_target, url)
            if not target:
                continue
            cross_site = self._is_cross_site(url, target)
            reason = (
                f"JS redirect to other site ({hostname_of(target)})"
                if cross_site
                else "JavaScript redirect"
            )
            return PendingRedirect(target, reason, RedirectKind.SCRIPT, cross_site)

        return None

    def find_parked_marker(self, body: str) -> bool:
        return any(p.search(body or "") for p in self.PARKED_PATTERNS)

    def find_parked_script_marker(self, script_body: str) -> bool:
        """Check an external script for a parking delivery system."""
        return any(p.search(script_body or "") for p in self.PARKED_SCRIPT_PATTERNS)

    def is_error_page(self, body: str) -> bool:
        return any(p.search(body or "") for p in self.ERROR_PAGE_PATTERNS)

    def same_host_script_sources(self, body: str, url: str) -> list[str]:
        """
        Absolute URLs of ``<script src>`` files served from the page's own host.

        Inline data URLs and well-known third-party assets are skipped.
        """
        page_host = hostname_of(url)
        sources: list[str] = []
        for match in self.SCRIPT_SRC_PATTERN.finditer(body or ""):
            src = match.group(1)
            if src.startswith("data:") or any(m in src for m in self.IGNORED_SCRIPT_MARKERS):
                continue
            script_url = resolve_target(src, url)
            if not script_url or hostname_of(script_url) != page_host:
                continue
            if script_url not in sources:
                sources.append(script_url)
        return sources

    @staticmethod
    def _is_cross_site(source_url: str, target_url: str) -> bool:
        source_host = hostname_of(source_url)
        target_host = hostname_of(target_url)
        return bool(source_host and target_host and source_host != target_host)

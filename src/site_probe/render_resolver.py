"""
Rendering-backed resolver.

Loads an address in a real browser so that scripted redirects and JSON
delivery systems run, then classifies where the browser landed. When the
browser stays on the original root domain, the page source is scanned for
redirect markers the browser did not act on (geo-blocked redirects).
"""

import time
from typing import Iterable, Optional

from .audit_logger import AuditLogger, LoggingMixin
from .classifier import ContentClassifier, ParkedDomain, PendingRedirect, Resolved
from .config import RenderConfig
from .domain_utils import comparison_key, root_domain
from .enums import Category, RedirectKind
from .exceptions import RenderError
from .models import ProbeOutcome, RenderSnapshot
from .page_text import extract_words
from .renderer import Renderer
from .unique_redirect import UniqueRedirectDetector

RENDERED_SUFFIX = "(rendered)"

_SCAN_LABELS = {
    RedirectKind.META_REFRESH: "Meta refresh redirect",
    RedirectKind.SCRIPT: "JS redirect",
    RedirectKind.HTTP: "Redirect",
}


class RenderResolver(LoggingMixin):
    """Resolves one address through the rendering capability."""

    def __init__(
        self,
        renderer: Renderer,
        classifier: Optional[ContentClassifier] = None,
        unique_detector: Optional[UniqueRedirectDetector] = None,
        config: Optional[RenderConfig] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._renderer = renderer
        self._classifier = classifier or ContentClassifier()
        self._unique = unique_detector or UniqueRedirectDetector(enabled=False)
        self._config = config or RenderConfig()
        self._logger = logger

    async def resolve(
        self,
        address: str,
        corpus: Iterable[str] = (),
        *,
        capture_screenshot: bool = False,
        scrape_text: bool = False,
    ) -> ProbeOutcome:
        """
        Render ``address`` and classify the final page.

        Render failures become ``down`` outcomes with status 0.
        """
        corpus = list(corpus or [])
        start_time = time.perf_counter()

        try:
            snapshot = await self._renderer.render(
                address,
                timeout=self._config.timeout_seconds,
                capture_screenshot=capture_screenshot,
            )
        except RenderError as e:
            self._log_info(
                "RenderResolver",
                f"Render failed for {address}: {e.message}",
                {"address": address, "code": e.code},
            )
            return ProbeOutcome(
                address=address,
                http_status=0,
                category=Category.DOWN,
                reason=f"Timeout {RENDERED_SUFFIX}" if e.is_timeout else f"Error: {e.message[:100]}",
                elapsed_ms=(time.perf_counter() - start_time) * 1000,
            )

        outcome = self._classify_snapshot(address, snapshot, corpus)
        outcome.screenshot = snapshot.screenshot
        outcome.scraped_text = extract_words(snapshot.content) if scrape_text else None
        outcome.elapsed_ms = (time.perf_counter() - start_time) * 1000
        return outcome

    def _classify_snapshot(
        self, address: str, snapshot: RenderSnapshot, corpus: list[str]
    ) -> ProbeOutcome:
        final_url = snapshot.final_url or address
        status = snapshot.status or 200
        original_root = root_domain(address)
        final_root = root_domain(final_url)

        url_changed = comparison_key(address) != comparison_key(final_url)
        cross_domain = url_changed and original_root != final_root

        classification = self._classifier.classify(status, {}, snapshot.content, final_url)

        if isinstance(classification, ParkedDomain):
            return ProbeOutcome(
                address=address,
                http_status=status,
                category=Category.REDIRECT_DOWN,
                reason=f"{classification.reason} {RENDERED_SUFFIX}",
                redirect_target=final_url if cross_domain else None,
                final_destination=final_url if cross_domain else None,
                is_parked_domain=True,
            )

        # An embedded marker the browser did not follow still means the page loaded
        page_up = isinstance(classification, PendingRedirect) or (
            isinstance(classification, Resolved) and classification.category == Category.UP
        )

        if cross_domain:
            if page_up:
                category = Category.REDIRECT_UP
                reason = f"Redirect to {final_root} {RENDERED_SUFFIX}"
            else:
                category = Category.REDIRECT_DOWN
                reason = f"Redirect → {classification.reason} {RENDERED_SUFFIX}"
            return ProbeOutcome(
                address=address,
                http_status=status,
                category=category,
                reason=reason,
                redirect_target=final_url,
                final_destination=final_url,
                is_unique_redirect=self._unique.is_unique(final_url, corpus),
            )

        if not page_up:
            return ProbeOutcome(
                address=address,
                http_status=status,
                category=classification.category,
                reason=f"{classification.reason} {RENDERED_SUFFIX}",
            )

        scanned = self._classifier.scan_embedded_redirect(snapshot.content, final_url)
        if scanned is not None and root_domain(scanned.target) != original_root:
            self._log_info(
                "RenderResolver",
                f"Redirect marker found in page source: {scanned.target}",
                {"address": address, "kind": scanned.kind.value},
            )
            return ProbeOutcome(
                address=address,
                http_status=status,
                category=Category.REDIRECT_UP,
                reason=(
                    f"{_SCAN_LABELS[scanned.kind]} to {root_domain(scanned.target)} "
                    f"{RENDERED_SUFFIX}"
                ),
                redirect_target=scanned.target,
                final_destination=scanned.target,
                is_unique_redirect=self._unique.is_unique(scanned.target, corpus),
            )

        return ProbeOutcome(
            address=address,
            http_status=status,
            category=Category.UP,
            reason=f"HTTP {status} {RENDERED_SUFFIX}",
        )

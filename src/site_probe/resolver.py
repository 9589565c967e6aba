"""
Redirect Resolver for plain HTTP probing.

Fetches an address, classifies the response, and follows a redirect chain
for a bounded number of hops until the destination is terminal. Every fetch
failure becomes an outcome; nothing is retried.

States: Start -> Hop1 -> Hop2 -> Hop3 -> Terminal
"""

import time
from typing import Iterable, Optional

from .audit_logger import AuditLogger, LoggingMixin
from .classifier import (
    Classification,
    ContentClassifier,
    ParkedDomain,
    PendingRedirect,
    Resolved,
)
from .config import FetchConfig, ResolverConfig
from .domain_utils import same_root_domain
from .enums import Category
from .exceptions import FetchError
from .fetcher import Fetcher
from .models import FetchResponse, ProbeOutcome
from .page_text import extract_words
from .unique_redirect import UniqueRedirectDetector

HOP_PREFIX = "Redirect → "


def _failure_reason(error: FetchError) -> str:
    return "Timeout" if error.is_timeout else error.message


class RedirectResolver(LoggingMixin):
    """
    Resolves one address to a terminal ProbeOutcome.

    The same instance can resolve many addresses concurrently; it keeps no
    per-address state.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        classifier: Optional[ContentClassifier] = None,
        unique_detector: Optional[UniqueRedirectDetector] = None,
        config: Optional[ResolverConfig] = None,
        fetch_config: Optional[FetchConfig] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        """
        Initialize the resolver.

        Args:
            fetcher: Fetch capability (never follows redirects itself)
            classifier: Content classifier, shared
            unique_detector: Unique redirect detector; disabled when omitted
            config: Hop budget and external script toggle
            fetch_config: Timeouts and body bounds for external script fetches
            logger: Optional audit logger
        """
        self._fetcher = fetcher
        self._classifier = classifier or ContentClassifier()
        self._unique = unique_detector or UniqueRedirectDetector(enabled=False)
        self._config = config or ResolverConfig()
        self._fetch_config = fetch_config or FetchConfig()
        self._logger = logger

    async def resolve(
        self,
        address: str,
        corpus: Iterable[str] = (),
        *,
        check_redirect_destinations: bool = True,
        scrape_text: bool = False,
    ) -> ProbeOutcome:
        """
        Resolve ``address`` to a terminal outcome.

        Args:
            address: Normalized absolute URL
            corpus: Every address of the session, for unique redirect detection
            check_redirect_destinations: Follow redirects to their destination
            scrape_text: Attach the first words of the last fetched page

        Returns:
            ProbeOutcome with a terminal category
        """
        corpus = list(corpus or [])
        start_time = time.perf_counter()

        try:
            response = await self._fetcher.fetch(address)
        except FetchError as e:
            self._log_info(
                "RedirectResolver",
                f"Fetch failed for {address}: {e.message}",
                {"address": address, "code": e.code},
            )
            return ProbeOutcome(
                address=address,
                http_status=0,
                category=Category.DOWN,
                reason=_failure_reason(e),
                elapsed_ms=self._elapsed_ms(start_time),
            )

        classification = self._classifier.classify_response(response)

        if (
            check_redirect_destinations
            and self._config.check_external_scripts
            and response.status == 200
            and isinstance(classification, Resolved)
            and classification.category == Category.UP
            and await self._external_scripts_parked(response)
        ):
            classification = ParkedDomain(
                "Parked domain with dynamic JS redirect detected in external script"
            )

        if isinstance(classification, PendingRedirect):
            if check_redirect_destinations:
                outcome = await self._follow_chain(address, response, classification, corpus, scrape_text)
            else:
                outcome = self._unchecked_redirect(address, response, classification, corpus, scrape_text)
        else:
            outcome = self._terminal_outcome(address, response, classification, scrape_text)

        outcome.elapsed_ms = self._elapsed_ms(start_time)
        self._log_debug(
            "RedirectResolver",
            f"{address} -> {outcome.category.value}",
            {"address": address, "reason": outcome.reason, "target": outcome.redirect_target},
        )
        return outcome

    def _terminal_outcome(
        self,
        address: str,
        response: FetchResponse,
        classification: Classification,
        scrape_text: bool,
    ) -> ProbeOutcome:
        if isinstance(classification, ParkedDomain):
            return ProbeOutcome(
                address=address,
                http_status=response.status,
                category=Category.REDIRECT_DOWN,
                reason=classification.reason,
                is_parked_domain=True,
                scraped_text=self._scrape(response, scrape_text),
            )
        return ProbeOutcome(
            address=address,
            http_status=response.status,
            category=classification.category,
            reason=classification.reason,
            scraped_text=self._scrape(response, scrape_text),
        )

    def _unchecked_redirect(
        self,
        address: str,
        response: FetchResponse,
        pending: PendingRedirect,
        corpus: list[str],
        scrape_text: bool,
    ) -> ProbeOutcome:
        cross_domain = not same_root_domain(address, pending.target)
        return ProbeOutcome(
            address=address,
            http_status=response.status,
            category=Category.REDIRECT_DOWN,
            reason=f"{pending.reason} (destination not checked)",
            redirect_target=pending.target if cross_domain else None,
            is_unique_redirect=(
                self._unique.is_unique(pending.target, corpus) if cross_domain else False
            ),
            scraped_text=self._scrape(response, scrape_text),
        )

    async def _follow_chain(
        self,
        address: str,
        response: FetchResponse,
        pending: PendingRedirect,
        corpus: list[str],
        scrape_text: bool,
    ) -> ProbeOutcome:
        hops = 0
        while True:
            target = pending.target
            hops += 1
            try:
                hop_response = await self._fetcher.fetch(target)
            except FetchError as e:
                self._log_info(
                    "RedirectResolver",
                    f"Redirect destination unreachable: {target}",
                    {"address": address, "target": target, "hop": hops, "code": e.code},
                )
                cross_domain = not same_root_domain(address, target)
                return ProbeOutcome(
                    address=address,
                    http_status=response.status,
                    category=Category.REDIRECT_DOWN,
                    reason=f"{HOP_PREFIX * hops}Unreachable ({_failure_reason(e)})",
                    redirect_target=target if cross_domain else None,
                    is_unique_redirect=(
                        self._unique.is_unique(target, corpus) if cross_domain else False
                    ),
                    scraped_text=self._scrape(response, scrape_text),
                )

            hop_class = self._classifier.classify_response(hop_response)
            if isinstance(hop_class, PendingRedirect) and hops < self._config.max_hops:
                pending = hop_class
                continue
            break

        cross_domain = not same_root_domain(address, target)
        if isinstance(hop_class, Resolved) and hop_class.category == Category.UP:
            if cross_domain:
                category = Category.REDIRECT_UP
                reason = f"{HOP_PREFIX * hops}{hop_class.reason}"
            else:
                category = Category.UP
                reason = hop_class.reason
        else:
            category = Category.REDIRECT_DOWN
            reason = f"{HOP_PREFIX * hops}{hop_class.reason}"
            if isinstance(hop_class, PendingRedirect):
                reason += f" (redirect chain exceeded {self._config.max_hops} hops)"

        return ProbeOutcome(
            address=address,
            http_status=response.status,
            category=category,
            reason=reason,
            redirect_target=target if cross_domain else None,
            redirect_hop_status=hop_response.status,
            is_unique_redirect=self._unique.is_unique(target, corpus) if cross_domain else False,
            scraped_text=self._scrape(hop_response, scrape_text),
        )

    async def _external_scripts_parked(self, response: FetchResponse) -> bool:
        """Look for a parking delivery system in same-host script files."""
        for script_url in self._classifier.same_host_script_sources(response.body, response.url):
            try:
                script = await self._fetcher.fetch(
                    script_url,
                    timeout=self._fetch_config.script_timeout_seconds,
                    max_body_bytes=self._fetch_config.script_body_bytes,
                )
            except FetchError as e:
                self._log_debug(
                    "RedirectResolver",
                    f"External script fetch failed: {script_url}",
                    {"script_url": script_url, "code": e.code},
                )
                continue
            if not 200 <= script.status < 300:
                continue
            if self._classifier.find_parked_script_marker(script.body):
                self._log_info(
                    "RedirectResolver",
                    "Parked delivery system found in external script",
                    {"address": response.url, "script_url": script_url},
                )
                return True
        return False

    @staticmethod
    def _scrape(response: FetchResponse, enabled: bool) -> Optional[str]:
        return extract_words(response.body) if enabled else None

    @staticmethod
    def _elapsed_ms(start_time: float) -> float:
        return (time.perf_counter() - start_time) * 1000

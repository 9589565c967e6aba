"""
Check Orchestrator for the site probe system.

This module provides the batch entry point that coordinates all components
to probe a list of addresses. It integrates:
- Address normalization and corpus preparation
- Mode selection (single, variations, rendered, rendered variations)
- Bounded concurrency in fixed-width batches
- Redirect and rendering resolvers
- Variation aggregation and unique redirect detection
- The dead-site override pass
"""

import asyncio
import dataclasses
import time
from typing import Optional

from .aggregator import VariationAggregator
from .audit_logger import AuditLogger, LoggingMixin
from .classifier import ContentClassifier
from .config import FeatureToggles, SystemConfig
from .dead_sites import first_dead_site
from .domain_utils import normalize
from .enums import Category, ProbeMode
from .exceptions import ValidationError
from .fetcher import Fetcher, HttpFetcher
from .models import CheckRequest, ProbeOutcome
from .render_resolver import RenderResolver
from .renderer import PlaywrightRenderer, Renderer
from .resolver import RedirectResolver
from .unique_redirect import UniqueRedirectDetector


def select_mode(features: FeatureToggles) -> ProbeMode:
    """Pick how a batch is resolved from its feature toggles."""
    if features.use_rendering:
        if features.try_all_variations:
            return ProbeMode.RENDERED_VARIATIONS
        return ProbeMode.RENDERED
    if features.try_all_variations:
        return ProbeMode.VARIATIONS
    return ProbeMode.SINGLE


def apply_dead_site_override(outcome: ProbeOutcome) -> ProbeOutcome:
    """
    Force an outcome to ``down`` when any of its URLs is a dead site.

    The redirect target moves to ``final_destination`` so that ``down``
    outcomes never carry a ``redirect_target``.
    """
    reason = first_dead_site([
        outcome.address,
        outcome.input_address,
        outcome.redirect_target,
        outcome.final_destination,
    ])
    if not reason:
        return outcome

    return dataclasses.replace(
        outcome,
        category=Category.DOWN,
        reason=reason,
        final_destination=outcome.final_destination or outcome.redirect_target,
        redirect_target=None,
        is_unique_redirect=False,
    )


class CheckOrchestrator(LoggingMixin):
    """
    Main orchestrator for batch checks.

    Owns the fetch and rendering capabilities it creates itself and closes
    them on exit; injected capabilities are left to their owner.
    """

    def __init__(
        self,
        config: Optional[SystemConfig] = None,
        fetcher: Optional[Fetcher] = None,
        renderer: Optional[Renderer] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        """
        Initialize the check orchestrator.

        Args:
            config: System configuration
            fetcher: Optional fetch capability (an HttpFetcher is created when omitted)
            renderer: Optional rendering capability (a PlaywrightRenderer is
                created on first rendered batch when omitted)
            logger: Optional audit logger for logging
        """
        self._config = config or SystemConfig()
        self._logger = logger
        self._classifier = ContentClassifier()

        self._owns_fetcher = fetcher is None
        self._fetcher = fetcher
        self._owns_renderer = renderer is None
        self._renderer = renderer
        self._in_flight: set[asyncio.Future] = set()

    async def __aenter__(self) -> "CheckOrchestrator":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        """
        Close capabilities created by this orchestrator.

        Batches still running after their caller was cancelled are awaited
        first; their outcomes are discarded.
        """
        if self._in_flight:
            await asyncio.wait(set(self._in_flight))
        if self._owns_fetcher and isinstance(self._fetcher, HttpFetcher):
            await self._fetcher.close()
            self._fetcher = None
        if self._owns_renderer and isinstance(self._renderer, PlaywrightRenderer):
            await self._renderer.close()
            self._renderer = None

    @property
    def config(self) -> SystemConfig:
        """Get the system configuration."""
        return self._config

    def _get_fetcher(self) -> Fetcher:
        if self._fetcher is None:
            self._fetcher = HttpFetcher(self._config.fetch, logger=self._logger)
        return self._fetcher

    def _get_renderer(self) -> Renderer:
        if self._renderer is None:
            self._renderer = PlaywrightRenderer(self._config.render, logger=self._logger)
        return self._renderer

    def _normalize_all(self, raw_addresses: list[str], label: str) -> list[str]:
        normalized = []
        for raw in raw_addresses:
            address = normalize(raw)
            if address is None:
                self._log_warn(
                    "CheckOrchestrator",
                    f"Dropping unparseable {label} entry",
                    {"raw": raw},
                )
                continue
            normalized.append(address)
        return normalized

    async def check_batch(self, request: CheckRequest) -> list[ProbeOutcome]:
        """
        Probe every address of a request.

        Each valid address yields exactly one outcome, in request order.

        Args:
            request: Addresses, optional session corpus and feature toggles

        Returns:
            One ProbeOutcome per valid address

        Raises:
            ValidationError: If no address survives normalization
        """
        start_time = time.perf_counter()
        addresses = self._normalize_all(request.addresses or [], "address")
        if not addresses:
            raise ValidationError(
                code="no_valid_urls",
                message="No valid URLs provided",
                details={"received": len(request.addresses or [])},
            )

        if request.corpus:
            corpus = self._normalize_all(request.corpus, "corpus")
        else:
            corpus = list(addresses)

        features = request.features
        mode = select_mode(features)
        width = (
            self._config.batch.render_batch_width
            if features.use_rendering
            else self._config.batch.batch_width
        )
        width = max(1, width)

        self._log_info(
            "CheckOrchestrator",
            f"Starting batch of {len(addresses)} addresses",
            {"mode": mode.value, "batch_width": width, "corpus_size": len(corpus)},
        )

        unique_detector = UniqueRedirectDetector(enabled=features.detect_unique_redirects)
        outcomes: list[ProbeOutcome] = []
        for offset in range(0, len(addresses), width):
            chunk = addresses[offset:offset + width]
            batch = asyncio.gather(*(
                self._check_address(address, corpus, features, mode, unique_detector)
                for address in chunk
            ))
            self._in_flight.add(batch)
            batch.add_done_callback(self._in_flight.discard)
            # In-flight resolutions finish even if the caller is cancelled
            outcomes.extend(await asyncio.shield(batch))

        outcomes = [apply_dead_site_override(o) for o in outcomes]

        self._log_info(
            "CheckOrchestrator",
            f"Batch completed: {len(outcomes)} outcomes",
            {
                "duration_ms": round((time.perf_counter() - start_time) * 1000, 1),
                "categories": self._category_counts(outcomes),
            },
        )
        return outcomes

    async def _check_address(
        self,
        address: str,
        corpus: list[str],
        features: FeatureToggles,
        mode: ProbeMode,
        unique_detector: UniqueRedirectDetector,
    ) -> ProbeOutcome:
        try:
            outcome = await self._dispatch(address, corpus, features, mode, unique_detector)
        except Exception as e:
            self._log_error(
                "CheckOrchestrator",
                f"Unexpected error checking {address}: {e}",
                {"address": address},
                error=e,
            )
            outcome = ProbeOutcome(
                address=address,
                http_status=0,
                category=Category.DOWN,
                reason=f"Error: {e}",
            )
        outcome.input_address = address
        return outcome

    async def _dispatch(
        self,
        address: str,
        corpus: list[str],
        features: FeatureToggles,
        mode: ProbeMode,
        unique_detector: UniqueRedirectDetector,
    ) -> ProbeOutcome:
        if mode in (ProbeMode.RENDERED, ProbeMode.RENDERED_VARIATIONS):
            resolver = RenderResolver(
                self._get_renderer(),
                classifier=self._classifier,
                unique_detector=unique_detector,
                config=self._config.render,
                logger=self._logger,
            )

            async def resolve_one(url: str) -> ProbeOutcome:
                return await resolver.resolve(
                    url,
                    corpus,
                    capture_screenshot=features.capture_screenshot,
                    scrape_text=features.scrape_text,
                )
        else:
            resolver = RedirectResolver(
                self._get_fetcher(),
                classifier=self._classifier,
                unique_detector=unique_detector,
                config=self._config.resolver,
                fetch_config=self._config.fetch,
                logger=self._logger,
            )

            async def resolve_one(url: str) -> ProbeOutcome:
                return await resolver.resolve(
                    url,
                    corpus,
                    check_redirect_destinations=features.check_redirect_destinations,
                    scrape_text=features.scrape_text,
                )

        if mode in (ProbeMode.SINGLE, ProbeMode.RENDERED):
            return await resolve_one(address)

        aggregator = VariationAggregator(unique_detector, logger=self._logger)
        return await aggregator.resolve(
            address,
            corpus,
            resolve_one,
            select_screenshots=features.capture_screenshot,
        )

    @staticmethod
    def _category_counts(outcomes: list[ProbeOutcome]) -> dict[str, int]:
        counts: dict[str, int] = {}
        for outcome in outcomes:
            counts[outcome.category.value] = counts.get(outcome.category.value, 0) + 1
        return counts

"""
Variation Aggregator.

Resolves the four scheme/www variants of an address concurrently and merges
them into one representative outcome. The selection rules are pure
functions over ordered lists so they can be tested without any I/O.
"""

import asyncio
import dataclasses
from collections import Counter
from typing import Awaitable, Callable, Iterable, Optional

from .audit_logger import AuditLogger, LoggingMixin
from .domain_utils import build_variations, strip_address
from .enums import Category
from .models import ProbeOutcome, VariationSummary
from .unique_redirect import UniqueRedirectDetector

# Highest first; an address with none of these falls back to its first variant
CATEGORY_PRIORITY = (
    Category.UP,
    Category.REDIRECT_UP,
    Category.CLOUDFLARE_BLOCK,
    Category.REDIRECT_DOWN,
)

SCREENSHOT_PRIORITY = (Category.UP, Category.REDIRECT_UP)


def select_representative(outcomes: list[ProbeOutcome]) -> ProbeOutcome:
    """First outcome of the highest-priority category present."""
    for category in CATEGORY_PRIORITY:
        for outcome in outcomes:
            if outcome.category == category:
                return outcome
    return outcomes[0]


def pick_final_destination(
    outcomes: list[ProbeOutcome], representative: ProbeOutcome
) -> Optional[str]:
    """
    Consensus destination of a variation set.

    The representative's own target wins when it is up or redirect_up;
    otherwise the most frequent target, ties broken by variant order.
    """
    if (
        representative.category in (Category.UP, Category.REDIRECT_UP)
        and representative.redirect_target
    ):
        return representative.redirect_target

    counts = Counter(o.redirect_target for o in outcomes if o.redirect_target)
    if not counts:
        return None

    highest = max(counts.values())
    for outcome in outcomes:
        if outcome.redirect_target and counts[outcome.redirect_target] == highest:
            return outcome.redirect_target
    return None


def select_screenshot(outcomes: list[ProbeOutcome]) -> Optional[str]:
    """Screenshot of the first up variant, else redirect_up, else any."""
    for category in SCREENSHOT_PRIORITY:
        for outcome in outcomes:
            if outcome.category == category and outcome.screenshot:
                return outcome.screenshot
    for outcome in outcomes:
        if outcome.screenshot:
            return outcome.screenshot
    return None


def aggregate(
    address: str,
    outcomes: list[ProbeOutcome],
    corpus: Iterable[str],
    unique_detector: UniqueRedirectDetector,
) -> ProbeOutcome:
    """
    Merge per-variant outcomes into one.

    Args:
        address: The address the variants were built from
        outcomes: One outcome per variant, in variant order
        corpus: Session corpus for the unique check
        unique_detector: Decides uniqueness of the consensus destination

    Returns:
        A copy of the representative carrying the variant summaries
    """
    if not outcomes:
        raise ValueError("aggregate() needs at least one outcome")

    representative = select_representative(outcomes)
    final_destination = pick_final_destination(outcomes, representative)

    return dataclasses.replace(
        representative,
        base_address=strip_address(address),
        final_destination=final_destination,
        is_unique_redirect=(
            unique_detector.is_unique(final_destination, corpus)
            if final_destination
            else False
        ),
        variations=[VariationSummary.from_outcome(o) for o in outcomes],
    )


class VariationAggregator(LoggingMixin):
    """Runs one resolution per variant and aggregates the results."""

    def __init__(
        self,
        unique_detector: Optional[UniqueRedirectDetector] = None,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        self._unique = unique_detector or UniqueRedirectDetector(enabled=False)
        self._logger = logger

    async def resolve(
        self,
        address: str,
        corpus: Iterable[str],
        resolve_one: Callable[[str], Awaitable[ProbeOutcome]],
        *,
        select_screenshots: bool = False,
    ) -> ProbeOutcome:
        """
        Resolve every variant of ``address`` and aggregate.

        Args:
            address: Normalized address
            corpus: Session corpus
            resolve_one: Coroutine function resolving a single variant URL
            select_screenshots: Keep one screenshot chosen across variants

        Returns:
            Aggregated ProbeOutcome
        """
        corpus = list(corpus or [])
        variants = build_variations(address)

        results = await asyncio.gather(
            *(resolve_one(variant) for variant in variants),
            return_exceptions=True,
        )

        outcomes: list[ProbeOutcome] = []
        for variant, result in zip(variants, results):
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result
            if isinstance(result, Exception):
                self._log_error(
                    "VariationAggregator",
                    f"Variant resolution failed: {variant}",
                    {"variant": variant},
                    error=result,
                )
                result = ProbeOutcome(
                    address=variant,
                    http_status=0,
                    category=Category.DOWN,
                    reason=f"Error: {result}",
                )
            outcomes.append(result)

        merged = aggregate(address, outcomes, corpus, self._unique)
        merged.screenshot = select_screenshot(outcomes) if select_screenshots else None

        self._log_debug(
            "VariationAggregator",
            f"{address} -> {merged.category.value} via {merged.address}",
            {"variants": [o.category.value for o in outcomes]},
        )
        return merged

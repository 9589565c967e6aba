"""
Data models for the site probe system.

This module defines the data structures exchanged with the fetch and
rendering collaborators, the per-address probe outcome, and the batch
check request.
"""

from dataclasses import dataclass, field
from typing import Optional

from .config import FeatureToggles
from .enums import Category


@dataclass
class FetchResponse:
    """One HTTP response as seen by the fetch capability."""

    url: str  # URL the response came from
    status: int
    headers: dict[str, str]  # Lower-cased header names
    body: str  # Bounded body prefix
    elapsed_ms: float = 0.0

    def header(self, name: str, default: str = "") -> str:
        return self.headers.get(name.lower(), default)


@dataclass
class RenderSnapshot:
    """Result of a full page render."""

    requested_url: str
    final_url: str
    content: str
    status: int = 200
    screenshot: Optional[str] = None  # data:image/png;base64,...
    elapsed_ms: float = 0.0


@dataclass
class VariationSummary:
    """Display record for one scheme/www variant."""

    url: str
    http_status: int
    category: Category
    reason: str
    elapsed_ms: float
    redirect_target: Optional[str] = None
    final_destination: Optional[str] = None
    is_unique_redirect: bool = False

    @classmethod
    def from_outcome(cls, outcome: "ProbeOutcome") -> "VariationSummary":
        return cls(
            url=outcome.address,
            http_status=outcome.http_status,
            category=outcome.category,
            reason=outcome.reason,
            elapsed_ms=outcome.elapsed_ms,
            redirect_target=outcome.redirect_target,
            final_destination=outcome.final_destination,
            is_unique_redirect=outcome.is_unique_redirect,
        )

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "http_status": self.http_status,
            "category": self.category.value,
            "reason": self.reason,
            "elapsed_ms": round(self.elapsed_ms, 1),
            "redirect_target": self.redirect_target,
            "final_destination": self.final_destination,
            "is_unique_redirect": self.is_unique_redirect,
        }


@dataclass
class ProbeOutcome:
    """
    Result of resolving one address.

    ``category`` is always terminal. ``redirect_target`` is only set for
    ``redirect_up`` and ``redirect_down`` outcomes.
    """

    address: str
    http_status: int
    category: Category
    reason: str
    elapsed_ms: float = 0.0
    redirect_target: Optional[str] = None
    redirect_hop_status: Optional[int] = None
    final_destination: Optional[str] = None
    is_unique_redirect: bool = False
    is_parked_domain: bool = False
    input_address: Optional[str] = None  # Address as submitted, after normalization
    base_address: Optional[str] = None  # Scheme/www-less form, variations only
    scraped_text: Optional[str] = None
    screenshot: Optional[str] = None
    variations: list[VariationSummary] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Flat mapping for the presentation layer."""
        return {
            "address": self.address,
            "input_address": self.input_address or self.address,
            "base_address": self.base_address,
            "http_status": self.http_status,
            "category": self.category.value,
            "reason": self.reason,
            "redirect_target": self.redirect_target,
            "redirect_hop_status": self.redirect_hop_status,
            "final_destination": self.final_destination,
            "is_unique_redirect": self.is_unique_redirect,
            "is_parked_domain": self.is_parked_domain,
            "scraped_text": self.scraped_text,
            "screenshot": self.screenshot,
            "elapsed_ms": round(self.elapsed_ms, 1),
            "variations": [v.to_dict() for v in self.variations] or None,
        }


@dataclass
class CheckRequest:
    """
    A batch of addresses to check.

    ``corpus`` is the full address list of the session, used for unique
    redirect detection; it defaults to ``addresses`` when omitted.
    """

    addresses: list[str]
    corpus: Optional[list[str]] = None
    features: FeatureToggles = field(default_factory=FeatureToggles)

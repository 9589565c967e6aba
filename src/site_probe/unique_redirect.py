"""
Unique redirect detection.

A redirect target is "unique" when its root domain matches none of the root
domains in the session corpus (the full list of addresses being checked).
"""

from typing import Iterable, Optional

from .domain_utils import root_domain


class UniqueRedirectDetector:
    """Decides whether a redirect target leaves the checked corpus."""

    def __init__(self, enabled: bool = True) -> None:
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    def is_unique(self, target: Optional[str], corpus: Iterable[str]) -> bool:
        """
        Check a redirect target against the corpus.

        Args:
            target: Absolute redirect target
            corpus: Every address of the session

        Returns:
            False when disabled, when ``target`` or ``corpus`` is empty, or
            when any corpus entry shares the target's root domain
        """
        if not self._enabled or not target:
            return False

        entries = list(corpus or [])
        if not entries:
            return False

        target_root = root_domain(target).lower()
        for entry in entries:
            if root_domain(entry).lower() == target_root:
                return False
        return True

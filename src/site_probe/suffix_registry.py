"""
Suffix Registry - two-label public suffixes used for root domain extraction.

A host ending in one of these suffixes keeps one extra label in its root
domain (``shop.example.co.uk`` -> ``example.co.uk``). Every other host is
reduced to its last two labels.
"""

from typing import Optional

# ============================================================================
# UNITED KINGDOM
# ============================================================================
UK_SUFFIXES = [
    "co.uk",
    "org.uk",
    "gov.uk",
    "ac.uk",
]


# ============================================================================
# ASIA PACIFIC
# ============================================================================
ASIA_PACIFIC_SUFFIXES = [
    "com.au",
    "org.au",
    "net.au",
    "edu.au",
    "co.nz",
    "co.jp",
    "co.kr",
    "co.in",
    "com.sg",
    "com.hk",
    "com.tw",
    "co.id",
    "com.ph",
    "com.my",
    "com.vn",
]


# ============================================================================
# AMERICAS
# ============================================================================
AMERICAS_SUFFIXES = [
    "com.br",
    "com.mx",
    "com.ar",
    "com.co",
    "com.pe",
    "com.ve",
    "com.ec",
]


# ============================================================================
# MIDDLE EAST & AFRICA
# ============================================================================
MEA_SUFFIXES = [
    "co.za",
]

# ============================================================================
# COMBINE ALL SUFFIXES
# ============================================================================
MULTI_PART_SUFFIXES = tuple(
    UK_SUFFIXES +
    ASIA_PACIFIC_SUFFIXES +
    AMERICAS_SUFFIXES +
    MEA_SUFFIXES
)


def match_multi_part_suffix(host: str) -> Optional[str]:
    """Return the registered suffix ``host`` ends with, if any."""
    for suffix in MULTI_PART_SUFFIXES:
        if host.endswith("." + suffix):
            return suffix
    return None

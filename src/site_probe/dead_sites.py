"""
Dead-site detection for parked, for-sale, seized and expired domains.

The check looks at the URL string only, never at page content, so it can be
applied as a final override to any outcome regardless of its HTTP status.
"""

import re
from typing import Optional

from .domain_utils import hostname_of


# Domain parking & for sale
PARKING_DOMAINS = [
    "forsale.godaddy.com", "godaddy.com", "sedoparking.com", "parkingcrew.net",
    "hugedomains.com", "afternic.com", "dan.com", "sedo.com", "buydomains.com",
    "namecheap.com", "domainmarket.com", "undeveloped.com", "brandpa.com",
    "squadhelp.com", "domainnamesales.com", "uniregistry.com", "parked.com",
    "above.com", "bodis.com", "domainlore.co.uk", "snapnames.com", "pool.com",
    "namejet.com", "dropcatch.com", "porkbun.com",
]

# Seized / law enforcement / legal takedowns
SEIZURE_DOMAINS = [
    "alliance4creativity.com", "usdoj.gov", "ice.gov", "fbi.gov",
    "europol.europa.eu", "ncmec.org", "mpaa.org", "riaa.com",
    "lumendatabase.org", "chillingeffects.org",
]

# ISP / registrar blocks
BLOCKLIST_DOMAINS = [
    "opendns.com", "malwaredomainlist.com", "spamhaus.org",
]

# Expired / suspended pages and known redirect sinks
EXPIRED_DOMAINS = [
    "suspendedsitepreview.com", "suspended.page", "domainexpired.com",
    "searchmagnified.com", "domainnotfound.com", "websitenotfound.com",
]

DEAD_DOMAINS = PARKING_DOMAINS + SEIZURE_DOMAINS + BLOCKLIST_DOMAINS + EXPIRED_DOMAINS

DEAD_URL_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"forsale\.", r"parked\.", r"parking\.", r"domain.*sale", r"buy.*domain",
        r"seized", r"suspended", r"expired.*domain", r"domain.*expired",
        r"this.*domain.*for.*sale", r"alliance4creativity", r"antipiracy",
        r"domain.*available", r"register.*this.*domain", r"premium.*domain",
        r"usdoj\.gov", r"fbi\.gov", r"ice\.gov", r"europol\.europa",
    )
]

GENERIC_DEAD_REASON = "Dead site (seized/parked/expired)"


def is_dead_site(url: Optional[str]) -> Optional[str]:
    """
    Check whether a URL points at a parked, for-sale, seized or expired site.

    Args:
        url: Any absolute URL (original address, redirect target, ...)

    Returns:
        A reason string when the URL is dead, None otherwise
    """
    if not url:
        return None

    host = hostname_of(url)
    if host:
        for dead in DEAD_DOMAINS:
            if host == dead or host.endswith("." + dead):
                return f"Dead site ({dead})"

    full_url = url.lower()
    for pattern in DEAD_URL_PATTERNS:
        if pattern.search(full_url):
            return GENERIC_DEAD_REASON
    return None


def first_dead_site(urls: list[Optional[str]]) -> Optional[str]:
    """Return the dead-site reason of the first matching URL."""
    for url in urls:
        reason = is_dead_site(url)
        if reason:
            return reason
    return None

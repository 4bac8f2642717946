"""Referral URL extraction."""

import re

from cafe_credits.domain import ReferralLink

REFERRAL_HOST = "cursor.com"

# Scheme, host and code all match case-insensitively
REFERRAL_URL_PATTERN = re.compile(
    r"https?://" + re.escape(REFERRAL_HOST) + r"/referral\?code=([A-Z0-9]+)",
    re.IGNORECASE,
)


def extract_code(url: str) -> str | None:
    """Return the referral code embedded in ``url``, or None."""
    match = REFERRAL_URL_PATTERN.search(url)
    return match.group(1) if match else None


def find_referral_urls(content: str) -> list[str]:
    """Find every referral URL in a blob of text.

    Duplicates are dropped on the literal matched text, keeping first-seen
    order, so the same code written with different letter case counts twice.
    """
    seen: set[str] = set()
    urls: list[str] = []
    for match in REFERRAL_URL_PATTERN.finditer(content):
        url = match.group(0)
        if url not in seen:
            seen.add(url)
            urls.append(url)
    return urls


def to_referral_link(url: str) -> ReferralLink | None:
    """Build a ReferralLink, or None when the URL has no code."""
    code = extract_code(url)
    if code is None:
        return None
    return ReferralLink(url=url, code=code)

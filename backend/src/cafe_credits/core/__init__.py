"""Browser-driven referral probing."""

from cafe_credits.core.browser import BrowserSession
from cafe_credits.core.prober import ReferralProber, classify_payload
from cafe_credits.core.scanner import BatchScanner, RecheckSummary, ScanSummary

__all__ = [
    "BrowserSession",
    "ReferralProber",
    "classify_payload",
    "BatchScanner",
    "RecheckSummary",
    "ScanSummary",
]

"""Extraction of referral links and roster rows from input files."""

from cafe_credits.extractors.referral import extract_code, find_referral_urls, to_referral_link
from cafe_credits.extractors.roster import RosterImport, parse_roster

__all__ = [
    "extract_code",
    "find_referral_urls",
    "to_referral_link",
    "RosterImport",
    "parse_roster",
]

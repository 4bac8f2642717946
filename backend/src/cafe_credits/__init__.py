"""Cafe Credits - referral credit verification and allocation for events."""

__version__ = "0.1.0"

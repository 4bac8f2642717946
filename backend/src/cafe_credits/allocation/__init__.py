"""Credit allocation to attendees."""

from cafe_credits.allocation.service import AllocationCoordinator, BulkSendSummary

__all__ = ["AllocationCoordinator", "BulkSendSummary"]

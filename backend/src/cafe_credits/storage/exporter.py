"""Export utilities for scan results and the credit ledger."""

import csv
import json
from pathlib import Path

from cafe_credits.domain import CreditRecord, ProbeResult
from cafe_credits.logging_config import get_logger

logger = get_logger(__name__)


class Exporter:
    """Export scan results and credits to files."""

    @staticmethod
    def available_urls(results: dict[str, ProbeResult]) -> list[str]:
        """URLs classified available, in scan order."""
        return [url for url, result in results.items() if result.available]

    @staticmethod
    def to_json(results: dict[str, ProbeResult], output_path: Path) -> list[str]:
        """Write the available URLs of a scan as a JSON array."""
        urls = Exporter.available_urls(results)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(urls, f, indent=2)
        logger.info("available_urls_exported", path=str(output_path), count=len(urls))
        return urls

    @staticmethod
    def to_csv(credits: list[CreditRecord], output_path: Path) -> None:
        """Export credits to CSV."""
        if not credits:
            logger.warning("no_credits_to_export")
            return

        fieldnames = ["code", "url", "amount", "status", "assigned_to", "checked_at", "sent_at"]

        with open(output_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()

            for credit in credits:
                writer.writerow(
                    {
                        "code": credit.code,
                        "url": credit.url,
                        "amount": credit.amount,
                        "status": credit.status.value,
                        "assigned_to": credit.assigned_to or "",
                        "checked_at": credit.checked_at.isoformat() if credit.checked_at else "",
                        "sent_at": credit.sent_at.isoformat() if credit.sent_at else "",
                    }
                )

        logger.info("credits_exported", path=str(output_path), count=len(credits))

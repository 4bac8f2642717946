"""Attendee roster import."""

import csv
from dataclasses import dataclass, field
from pathlib import Path

from cafe_credits.domain import Attendee
from cafe_credits.errors import RosterFormatError
from cafe_credits.logging_config import get_logger

logger = get_logger(__name__)

# Registration form headers -> Attendee fields
COLUMN_MAP = {
    "first_name": "first_name",
    "last_name": "last_name",
    "email": "email",
    "What is your LinkedIn profile?": "linkedin",
    "What is your X (Twitter) handle?": "twitter",
    "What would you like to drink?": "drink",
    "What would you like for Snacks?": "food",
    "What are you working on?": "working_on",
}

REQUIRED_FIELDS = ("first_name", "last_name", "email")


@dataclass
class RosterImport:
    """Parsed roster: valid attendees plus the number of rows skipped."""
    attendees: list[Attendee] = field(default_factory=list)
    skipped_rows: int = 0


def parse_roster(path: Path) -> RosterImport:
    """Read an attendee CSV export.

    Rows missing a first name, last name or email are skipped and counted.
    Empty optional answers are stored as None.

    Raises:
        RosterFormatError: If a required column is missing or there are no rows
    """
    with open(path, newline="", encoding="utf-8-sig") as f:
        reader = csv.reader(f)
        rows = [row for row in reader if any(cell.strip() for cell in row)]

    if len(rows) < 2:
        raise RosterFormatError("CSV must have a header row and at least one data row")

    headers = [h.strip() for h in rows[0]]
    columns: dict[str, int] = {}
    for index, header in enumerate(headers):
        field_name = COLUMN_MAP.get(header)
        if field_name and field_name not in columns:
            columns[field_name] = index

    for required in REQUIRED_FIELDS:
        if required not in columns:
            raise RosterFormatError(f"Missing required column: {required}")

    result = RosterImport()
    for row in rows[1:]:
        values = {
            name: (row[index].strip() if index < len(row) else "")
            for name, index in columns.items()
        }

        if not all(values.get(name) for name in REQUIRED_FIELDS):
            result.skipped_rows += 1
            continue

        result.attendees.append(
            Attendee(**{name: (value or None) for name, value in values.items()})
        )

    logger.info(
        "roster_parsed",
        path=str(path),
        attendees=len(result.attendees),
        skipped=result.skipped_rows,
    )
    return result

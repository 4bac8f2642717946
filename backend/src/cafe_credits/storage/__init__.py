"""Credit ledger storage backends."""

from pathlib import Path
from typing import Literal

from cafe_credits.settings import settings
from cafe_credits.storage.db import Database
from cafe_credits.storage.flatfile import FlatFileLedger
from cafe_credits.storage.ledger import Ledger
from cafe_credits.storage.repository import SqlLedger

__all__ = ["Database", "FlatFileLedger", "Ledger", "SqlLedger", "build_ledger"]


def build_ledger(
    mode: Literal["local", "cloud"] | None = None,
    data_dir: Path | None = None,
    database_url: str | None = None,
) -> Ledger:
    """Create the ledger for a storage mode.

    Cloud mode checks the database is reachable first and lets
    ``StoreUnavailableError`` propagate when it is not.
    """
    mode = mode or settings.storage_mode
    if mode == "local":
        return FlatFileLedger(data_dir or settings.data_dir)

    database = Database(database_url)
    database.ping()
    database.create_tables()
    return SqlLedger(database)

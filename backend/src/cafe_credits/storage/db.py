"""Database connection and session management."""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from tenacity import RetryError, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from cafe_credits.errors import StoreUnavailableError
from cafe_credits.logging_config import get_logger
from cafe_credits.settings import settings
from cafe_credits.storage.models import Base

logger = get_logger(__name__)


class Database:
    """Database connection manager."""

    def __init__(self, database_url: str | None = None):
        """Initialize database connection.

        Args:
            database_url: Database URL (defaults to settings)
        """
        self.database_url = database_url or settings.database_url
        self.engine = create_engine(self.database_url, pool_pre_ping=True)
        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine,
        )
        logger.info("database_initialized", url=self.engine.url.render_as_string(hide_password=True))

    def create_tables(self) -> None:
        """Create all tables in the database."""
        Base.metadata.create_all(bind=self.engine)
        logger.info("tables_created")

    def ping(self, attempts: int | None = None) -> None:
        """Check the database is reachable, retrying with backoff.

        Raises:
            StoreUnavailableError: If every attempt fails
        """

        @retry(
            stop=stop_after_attempt(attempts or settings.db_connect_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=8),
            retry=retry_if_exception_type(OperationalError),
        )
        def _ping() -> None:
            with self.engine.connect() as connection:
                connection.execute(text("SELECT 1"))

        try:
            _ping()
        except RetryError as e:
            cause = e.last_attempt.exception()
            logger.error("database_unreachable", error=str(cause))
            raise StoreUnavailableError("database", str(cause)) from cause

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """Provide a transactional scope for database operations.

        Yields:
            Database session
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

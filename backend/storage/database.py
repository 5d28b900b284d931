"""
Remote structured-store backend backed by SQLAlchemy.

Each write is a duplicate check followed by an insert. Transient database
errors are retried with exponential backoff before giving up.
"""
import logging
import time
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from db.models import WaitlistRow, get_engine, get_sessionmaker, init_db
from errors import StorageError
from models import AddResult
from storage.base import StorageBackend

logger = logging.getLogger(__name__)


class DatabaseWaitlistStorage(StorageBackend):

    def __init__(
        self,
        url: Optional[str] = None,
        name: str = "database",
        max_retries: int = 3,
        base_delay: float = 0.5,
        engine=None,
    ):
        self.name = name
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.engine = engine if engine is not None else get_engine(url)
        self.Session = get_sessionmaker(self.engine)
        try:
            init_db(self.engine)
        except SQLAlchemyError as exc:
            # Writes will retry and fail over on their own
            logger.warning("Could not create waitlist table: %s", exc)

    def _insert(self, email: str, source: str, metadata: Dict[str, Any]) -> AddResult:
        with self.Session() as session:
            existing = session.execute(
                select(WaitlistRow.id).where(WaitlistRow.email == email).limit(1)
            ).first()
            if existing:
                return self.duplicate()

            session.add(WaitlistRow(email=email, source=source, extra=metadata))
            try:
                session.commit()
            except IntegrityError:
                # Lost a race with a concurrent insert of the same email
                session.rollback()
                return self.duplicate()
        return self.added()

    def add_email(
        self,
        email: str,
        source: str = "waitlist",
        metadata: Optional[Dict[str, Any]] = None,
    ) -> AddResult:
        last_error: Optional[Exception] = None
        for attempt in range(1, self.max_retries + 1):
            try:
                result = self._insert(email, source, metadata or {})
                if result.success:
                    logger.info("Saved waitlist entry to database (attempt %d)", attempt)
                return result
            except SQLAlchemyError as exc:
                last_error = exc
                logger.warning("Database write attempt %d/%d failed: %s", attempt, self.max_retries, exc)
                if attempt < self.max_retries:
                    time.sleep(self.base_delay * 2 ** attempt)
        raise StorageError(self.name, f"giving up after {self.max_retries} attempts: {last_error}")

    def get_emails(self) -> List[str]:
        try:
            with self.Session() as session:
                rows = session.execute(select(WaitlistRow.email).order_by(WaitlistRow.id)).all()
        except SQLAlchemyError as exc:
            logger.error("Could not read waitlist from database: %s", exc)
            return []
        return [row.email for row in rows]

    def last_updated(self) -> Optional[str]:
        try:
            with self.Session() as session:
                latest = session.execute(select(func.max(WaitlistRow.created_at))).scalar()
        except SQLAlchemyError as exc:
            logger.error("Could not read waitlist timestamp from database: %s", exc)
            return None
        return latest.isoformat() if latest else None

    def close(self) -> None:
        self.engine.dispose()

"""
SQLAlchemy models for the Snipit waitlist database.

Tables:
- waitlist: One row per email, the remote copy of the sign-up list
"""
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import (
    create_engine, Column, Integer, String, DateTime, JSON, UniqueConstraint
)
from sqlalchemy.orm import declarative_base, sessionmaker

from config import database_url

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WaitlistRow(Base):
    """
    A waitlist sign-up stored in the remote database.
    """
    __tablename__ = "waitlist"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(320), nullable=False, index=True)
    source = Column(String(100), nullable=True)
    # "metadata" is reserved on declarative classes
    extra = Column("metadata", JSON, default=dict)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        UniqueConstraint("email", name="uq_waitlist_email"),
    )

    def __repr__(self):
        return f"<WaitlistRow {self.email}>"


# Database connection utilities
def get_database_url() -> str:
    """
    Get database URL from environment.

    The SQLite fallback only serves running this module directly to create
    tables locally; the waitlist chain refuses a database backend without
    DATABASE_URL.
    """
    return database_url() or "sqlite:///./data/waitlist.db"


def get_engine(url: Optional[str] = None):
    """Create SQLAlchemy engine. URLs from config are already normalized."""
    return create_engine(url or get_database_url(), echo=False, pool_pre_ping=True)


def get_sessionmaker(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine=None):
    """Create all tables."""
    engine = engine or get_engine()
    Base.metadata.create_all(engine)


if __name__ == "__main__":
    init_db()
    print("Database tables created successfully.")

"""
Database configuration and session management.

This module provides the database engine and per-request sessions
shared by all UniRaum services.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
import os

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./uniraum.db")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() == "true"

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, echo=SQL_ECHO, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """
    Get database session.

    Yields:
        Session: Database session, closed once the request is done

    Example:
        >>> db = next(get_db())
        >>> # Use db session
        >>> db.close()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """
    Initialize database tables.

    Creates all tables defined in the models.
    """
    # models must be imported so their tables are registered on Base
    import shared.models  # noqa: F401

    Base.metadata.create_all(bind=engine)

"""Database package — shared engine and session factory."""

from design2code.db.base import Base, close_db, get_engine, get_session_factory, init_db

__all__ = [
    "Base",
    "close_db",
    "get_engine",
    "get_session_factory",
    "init_db",
]

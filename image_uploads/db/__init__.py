"""Database configuration and session management."""

from .database import create_db_engine, drop_db, get_engine, get_session_factory, init_db

__all__ = ["create_db_engine", "get_engine", "get_session_factory", "init_db", "drop_db"]

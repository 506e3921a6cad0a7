"""Storage module for SQLite database operations."""

from src.storage.database import create_db_engine, get_engine, init_db, session_scope
from src.storage.repository import SantaRepository

__all__ = ["create_db_engine", "get_engine", "init_db", "session_scope", "SantaRepository"]

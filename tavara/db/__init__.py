"""
Tavara.care - Database Package
Relational persistence layer using SQLAlchemy.
"""
from tavara.db.base import Base, engine, get_db, init_db, SessionLocal

__all__ = ["Base", "engine", "get_db", "init_db", "SessionLocal"]

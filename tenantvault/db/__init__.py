"""Database connection management for tenantvault."""

from tenantvault.db.connection import Database

__all__ = ["Database"]

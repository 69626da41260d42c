"""Data models and database access."""

from .database import Database, DatabaseState
from .identity import Identity, IdentitySummary, NewIdentity

__all__ = ["Database", "DatabaseState", "Identity", "IdentitySummary", "NewIdentity"]

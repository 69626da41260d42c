"""Base repository class."""

from abc import ABC, abstractmethod
from typing import Generic, Optional, TypeVar

from medportal.models.database import Database

T = TypeVar("T")


class BaseRepository(ABC, Generic[T]):
    """Repository bound to a Database, keyed by integer primary key."""

    def __init__(self, database: Database):
        self.db = database

    @abstractmethod
    async def get_by_id(self, id: int) -> Optional[T]:
        """Return the entity with this primary key, or None."""

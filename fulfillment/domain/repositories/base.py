"""
Base Repository Interface.

Repositories read and write inside the caller's transaction: they flush so
later statements see their changes, and never commit or roll back.
"""

from typing import Any, List, Optional, Protocol, TypeVar

T = TypeVar("T")


class BaseRepository(Protocol[T]):
    """Operations shared by every aggregate repository."""

    def get_by_id(self, id: Any) -> Optional[T]:
        """Get by primary key (a tuple for composite keys)."""
        ...

    def list(self, skip: int = 0, limit: int = 100) -> List[T]:
        ...

    def create(self, obj_in: Any) -> T:
        """Add a row from a dict or pydantic model and flush it."""
        ...

    def delete(self, id: Any) -> Optional[T]:
        """Delete by primary key; returns the removed row, if any."""
        ...

    def insert(self) -> Any:
        """INSERT construct of the bound dialect, supporting ON CONFLICT."""
        ...

"""
Repository contract shared by users, maintenance requests, feedback and
scheduled emails.
"""

from typing import TypeVar, Any, Optional, Protocol

T = TypeVar("T")


class BaseRepository(Protocol[T]):
    """Row access by primary key; each write commits the session it was given."""

    def get_by_id(self, id: int) -> Optional[T]:
        """The row with this id, or None."""
        ...

    def create(self, obj_in: Any) -> T:
        """Insert from a dict or pydantic model and return the refreshed row."""
        ...

    def delete(self, id: int) -> Optional[T]:
        """Delete by id; returns the removed row, or None when nothing matched."""
        ...

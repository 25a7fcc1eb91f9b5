"""
User Repository Interface.
"""

from typing import List, Optional

from app.domain.repositories.base import BaseRepository
from app.domain.models.user import User


class UserRepository(BaseRepository[User]):
    """Interface for User-specific operations."""

    def get_by_email(self, email: str) -> Optional[User]:
        ...

    def get_by_reset_token_hash(self, token_hash: str) -> Optional[User]:
        ...

    def list_users(self, role: str | None = None) -> List[User]:
        ...

    def list_technicians(self, category: str | None = None) -> List[User]:
        """Technicians serving `category` (those without categories serve all)."""
        ...

    def delete_with_dependents(self, user: User) -> None:
        """Delete a user and everything they own in one transaction."""
        ...

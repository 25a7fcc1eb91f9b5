"""
Maintenance Request Repository Interface.
Defines specific data access operations for requests and their threads.
"""

from datetime import datetime
from typing import List, Optional

from app.domain.repositories.base import BaseRepository
from app.domain.models.maintenance_request import MaintenanceRequest
from app.domain.models.message import Message


class RequestRepository(BaseRepository[MaintenanceRequest]):
    """Interface for MaintenanceRequest-specific operations."""

    def list_all(self, status: str | None = None) -> List[MaintenanceRequest]:
        """All requests, newest first, optionally filtered by status."""
        ...

    def list_for_owner(self, owner_id: int) -> List[MaintenanceRequest]:
        """Requests created by a client, newest first."""
        ...

    def list_for_technician(
        self, technician_id: int, categories: List[str], status: str | None = None
    ) -> List[MaintenanceRequest]:
        """Requests assigned to the technician plus open ones in their categories."""
        ...

    def list_public_completed(self, status: str, limit: int) -> List[MaintenanceRequest]:
        """Requests in `status` that carry feedback, newest first, capped at `limit`."""
        ...

    def list_messages(self, request_id: int, since: Optional[datetime] = None) -> List[Message]:
        """Thread of a request in creation order."""
        ...

    def delete_with_dependents(self, request: MaintenanceRequest) -> None:
        """Delete a request with its messages, feedback and pending emails in one transaction."""
        ...

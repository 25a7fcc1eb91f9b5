"""
Scheduled Email Repository Interface.
"""

from datetime import datetime
from typing import List, Optional

from app.domain.repositories.base import BaseRepository
from app.domain.models.scheduled_email import ScheduledEmail


class ScheduledEmailRepository(BaseRepository[ScheduledEmail]):
    """Interface for the deferred email queue."""

    def list_due(self, now: datetime) -> List[ScheduledEmail]:
        """Pending rows whose send time has passed, oldest first."""
        ...

    def list_all(self, pending: bool | None = None) -> List[ScheduledEmail]:
        ...

    def mark_sent(self, email_id: int, sent_at: datetime) -> bool:
        ...

    def record_failure(self, email_id: int, error: str) -> bool:
        ...

    def delete_pending(self, request_id: int, kind: str, to_email: Optional[str] = None) -> int:
        """Remove unsent rows of `kind` for a request, optionally for one recipient."""
        ...

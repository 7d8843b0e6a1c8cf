"""
Notification feed schemas.
"""

from typing import List
from backend.app.schemas.common import CamelModel
from backend.app.schemas.truck import TruckResponse


class NotificationFeedResponse(CamelModel):
    """Trucks needing the caller's attention, newest first."""
    trucks: List[TruckResponse]
    unread_count: int

"""Domain entity for the hourly notification counter."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class RateLimitWindow:
    """Number of notifications created for a user inside one hour bucket."""

    user_id: int
    window_start: datetime
    window_end: datetime
    notification_count: int = 0


__all__ = ["RateLimitWindow"]

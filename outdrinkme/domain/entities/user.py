"""Domain entity representing a user."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class User:
    """Account identified by the external auth provider's subject."""

    id: int | None
    external_id: str
    username: str
    email: str | None
    is_active: bool
    created_at: datetime | None = None

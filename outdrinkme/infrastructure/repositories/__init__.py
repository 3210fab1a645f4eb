"""Repository implementations for infrastructure layer."""

from .user_repository import UserRepository
from .notification_repository import NotificationRepository
from .preferences_repository import NotificationPreferencesRepository
from .rate_limit_repository import RateLimitRepository
from .template_repository import NotificationTemplateRepository

__all__ = [
    "UserRepository",
    "NotificationRepository",
    "NotificationPreferencesRepository",
    "RateLimitRepository",
    "NotificationTemplateRepository",
]

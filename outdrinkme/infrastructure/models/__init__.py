"""ORM models used by the application infrastructure."""

from .user import FriendshipModel, UserModel
from .notification import NotificationModel
from .notification_preferences import NotificationPreferencesModel
from .notification_template import NotificationTemplateModel
from .rate_limit import NotificationRateLimitModel

__all__ = [
    "FriendshipModel",
    "UserModel",
    "NotificationModel",
    "NotificationPreferencesModel",
    "NotificationTemplateModel",
    "NotificationRateLimitModel",
]

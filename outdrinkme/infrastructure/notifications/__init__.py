"""Notification delivery machinery for the infrastructure layer."""

from .inbox_sockets import InboxSocketRegistry, inbox_sockets
from .realtime import (
    RealtimeNotificationPublisher,
    realtime_publisher,
    serialize_notification,
)
from .push import FirebasePushProvider, PushDeliveryError, PushProvider
from .email import EmailProvider, SendGridEmailProvider
from .dispatcher import (
    DispatchJob,
    DispatcherConfig,
    NotificationDispatcher,
    build_notification_dispatcher,
    get_notification_dispatcher,
    set_notification_dispatcher,
)

__all__ = [
    "InboxSocketRegistry",
    "inbox_sockets",
    "RealtimeNotificationPublisher",
    "realtime_publisher",
    "serialize_notification",
    "FirebasePushProvider",
    "PushDeliveryError",
    "PushProvider",
    "EmailProvider",
    "SendGridEmailProvider",
    "DispatchJob",
    "DispatcherConfig",
    "NotificationDispatcher",
    "build_notification_dispatcher",
    "get_notification_dispatcher",
    "set_notification_dispatcher",
]

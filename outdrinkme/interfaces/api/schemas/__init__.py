from .notification import (
    DeviceTokenRead,
    MarkAllReadResponse,
    MessageResponse,
    NotificationListResponse,
    NotificationPreferencesRead,
    NotificationPreferencesUpdate,
    NotificationRead,
    RegisterDeviceRequest,
    UnreadCountResponse,
)

__all__ = [
    "DeviceTokenRead",
    "MarkAllReadResponse",
    "MessageResponse",
    "NotificationListResponse",
    "NotificationPreferencesRead",
    "NotificationPreferencesUpdate",
    "NotificationRead",
    "RegisterDeviceRequest",
    "UnreadCountResponse",
]

"""Domain entity describing how a notification type is worded."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from .notification import NotificationPriority, NotificationType


def render_template(template: str, data: Mapping[str, Any] | None) -> str:
    """Replace every ``{{key}}`` in ``template`` with ``data[key]``.

    Placeholders without a matching key are left untouched.
    """

    result = template
    for key, value in (data or {}).items():
        result = result.replace("{{" + str(key) + "}}", str(value))
    return result


@dataclass
class NotificationTemplate:
    """Title/body wording, default priority and lifetime for a notification type."""

    id: int | None
    type: NotificationType
    title_template: str
    body_template: str
    default_priority: NotificationPriority = NotificationPriority.MEDIUM
    ttl_hours: int = 168
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def render(self, data: Mapping[str, Any] | None) -> tuple[str, str]:
        """Return the rendered ``(title, body)`` pair."""

        return render_template(self.title_template, data), render_template(
            self.body_template, data
        )


__all__ = ["NotificationTemplate", "render_template"]

"""Email copies of important notifications, delivered via SendGrid."""

from __future__ import annotations

import html
import json
import logging
from typing import Any, Protocol

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail

from outdrinkme.config import Settings

logger = logging.getLogger(__name__)


class EmailProvider(Protocol):
    def send_email(self, to: str, subject: str, body: str) -> bool: ...


def _extract_sendgrid_error_details(body: Any) -> str | None:
    """Return a human readable description for a SendGrid error payload."""

    if body in (None, ""):
        return None

    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError:
            return None

    if isinstance(body, str):
        body = body.strip()
        if not body:
            return None
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError:
            return body
    else:
        parsed = body

    if isinstance(parsed, dict):
        errors = parsed.get("errors")
        if isinstance(errors, list):
            messages = [
                str(item["message"])
                for item in errors
                if isinstance(item, dict) and item.get("message")
            ]
            if messages:
                return "; ".join(messages)
        try:
            return json.dumps(parsed)
        except (TypeError, ValueError):
            return None

    return str(parsed)


def _log_sendgrid_failure(status_code: Any, body: Any) -> None:
    details = _extract_sendgrid_error_details(body)
    if status_code and details:
        logger.error("SendGrid request failed with status %s: %s", status_code, details)
    elif status_code:
        logger.error("SendGrid request failed with status %s", status_code)
    elif details:
        logger.error("SendGrid request failed: %s", details)
    else:
        logger.error("SendGrid request failed")


def build_notification_html(title: str, body: str) -> str:
    """Render a notification as a small HTML email."""

    paragraphs = "".join(
        f"<p>{html.escape(chunk)}</p>" for chunk in body.split("\n\n") if chunk.strip()
    )
    return f"<h2>{html.escape(title)}</h2>{paragraphs}"


class SendGridEmailProvider:
    """Send notification emails through the SendGrid REST API."""

    def __init__(self, api_key: str, sender: str) -> None:
        self._api_key = api_key
        self._sender = sender

    @classmethod
    def from_settings(cls, settings: Settings) -> "SendGridEmailProvider | None":
        if not (settings.sendgrid_api_key and settings.sendgrid_sender):
            logger.info("SendGrid configuration incomplete; notification emails disabled")
            return None
        return cls(settings.sendgrid_api_key, settings.sendgrid_sender)

    def send_email(self, to: str, subject: str, body: str) -> bool:
        message = Mail(
            from_email=self._sender,
            to_emails=to,
            subject=subject,
            html_content=build_notification_html(subject, body),
        )

        try:
            response = SendGridAPIClient(self._api_key).send(message)
        except Exception as exc:  # pragma: no cover - network failures depend on environment
            _log_sendgrid_failure(getattr(exc, "status_code", None), getattr(exc, "body", None))
            return False

        status_code = getattr(response, "status_code", None)
        if not isinstance(status_code, int) or not 200 <= status_code < 300:
            _log_sendgrid_failure(status_code, getattr(response, "body", None))
            return False
        return True


__all__ = ["EmailProvider", "SendGridEmailProvider", "build_notification_html"]

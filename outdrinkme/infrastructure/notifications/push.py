"""Push delivery through Firebase Cloud Messaging."""

from __future__ import annotations

import base64
import binascii
import json
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

import firebase_admin
from firebase_admin import credentials, messaging
from firebase_admin.exceptions import FirebaseError

from outdrinkme.config import Settings
from outdrinkme.domain.entities import DeviceToken
from outdrinkme.domain.exceptions import DeliveryFailedError

logger = logging.getLogger(__name__)

FIREBASE_APP_NAME = "outdrinkme-push"


class PushDeliveryError(DeliveryFailedError):
    """The push transport rejected or could not deliver a message."""


class PushProvider(Protocol):
    """Anything able to deliver a push message to a set of device tokens.

    Implementations raise an exception when delivery failed.
    """

    def send_push(
        self,
        tokens: Sequence[DeviceToken],
        title: str,
        body: str,
        data: Mapping[str, Any],
    ) -> None: ...


def _stringify_data(data: Mapping[str, Any]) -> dict[str, str]:
    """FCM only accepts string values in the data payload."""

    payload: dict[str, str] = {}
    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, (dict, list)):
            payload[str(key)] = json.dumps(value, default=str)
        else:
            payload[str(key)] = str(value)
    return payload


class FirebasePushProvider:
    """Send multicast messages with the Firebase Admin SDK."""

    def __init__(self, app: firebase_admin.App) -> None:
        self._app = app

    @classmethod
    def from_settings(cls, settings: Settings) -> "FirebasePushProvider | None":
        """Build the provider from configured credentials, or ``None`` when absent."""

        certificate: Any
        if settings.firebase_credentials_base64:
            try:
                decoded = base64.b64decode(settings.firebase_credentials_base64)
                certificate = json.loads(decoded)
            except (binascii.Error, ValueError) as exc:
                msg = "FIREBASE_CREDENTIALS_BASE64 is not valid base64 encoded JSON"
                raise ValueError(msg) from exc
            logger.info("FCM: loading credentials from environment variable")
        elif settings.firebase_credentials_file:
            certificate = settings.firebase_credentials_file
            logger.info("FCM: loading credentials from %s", certificate)
        else:
            logger.info("FCM credentials not configured; push delivery disabled")
            return None

        try:
            app = firebase_admin.get_app(FIREBASE_APP_NAME)
        except ValueError:
            app = firebase_admin.initialize_app(
                credentials.Certificate(certificate), name=FIREBASE_APP_NAME
            )
        return cls(app)

    def send_push(
        self,
        tokens: Sequence[DeviceToken],
        title: str,
        body: str,
        data: Mapping[str, Any],
    ) -> None:
        registration_tokens = [device.token for device in tokens if device.token]
        if not registration_tokens:
            return

        message = messaging.MulticastMessage(
            tokens=registration_tokens,
            notification=messaging.Notification(title=title, body=body),
            data=_stringify_data(data),
            android=messaging.AndroidConfig(
                priority="high",
                notification=messaging.AndroidNotification(sound="default"),
            ),
            apns=messaging.APNSConfig(
                payload=messaging.APNSPayload(aps=messaging.Aps(sound="default"))
            ),
        )

        try:
            response = messaging.send_each_for_multicast(message, app=self._app)
        except FirebaseError as exc:
            raise PushDeliveryError(f"FCM request failed: {exc}") from exc

        if response.failure_count:
            logger.warning(
                "FCM: sent %s messages, %s failed",
                response.success_count,
                response.failure_count,
            )
        else:
            logger.info("FCM: successfully sent to %s devices", response.success_count)

        if response.success_count == 0:
            first_error = next(
                (item.exception for item in response.responses if item.exception is not None),
                None,
            )
            raise PushDeliveryError(
                f"FCM rejected all {len(registration_tokens)} device tokens: {first_error}"
            )


__all__ = ["FirebasePushProvider", "PushDeliveryError", "PushProvider"]

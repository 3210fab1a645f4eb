"""Background delivery of notifications.

The dispatcher owns a bounded job queue drained by a fixed pool of worker
threads, plus two periodic threads: one promotes due scheduled notifications
(including re-armed retries) into the queue, the other purges expired and old
read notifications. All of them share one stop event.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from outdrinkme.config import Settings
from outdrinkme.domain.entities import (
    RETRYABLE_PRIORITIES,
    Notification,
    NotificationPreferences,
    NotificationStatus,
)
from outdrinkme.domain.exceptions import (
    DeliveryFailedError,
    PreferencesNotFoundError,
    QueueFullError,
)
from outdrinkme.infrastructure.repositories import (
    NotificationPreferencesRepository,
    NotificationRepository,
    UserRepository,
)
from outdrinkme.utils import now_in_app_timezone

from .email import EmailProvider, SendGridEmailProvider
from .push import FirebasePushProvider, PushProvider
from .realtime import RealtimeNotificationPublisher, realtime_publisher

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


@dataclass(frozen=True)
class DispatcherConfig:
    """Sizing, timeouts and intervals of the dispatcher."""

    worker_count: int = 5
    queue_size: int = 100
    enqueue_timeout: float = 5.0
    processing_timeout: float = 10.0
    scheduled_interval: float = 60.0
    cleanup_interval: float = 24 * 60 * 60
    scheduled_batch_size: int = 100
    retry_delay: timedelta = timedelta(minutes=5)
    max_retries: int = 3
    read_retention: timedelta = timedelta(days=90)
    poll_interval: float = 0.5

    @classmethod
    def from_settings(cls, settings: Settings) -> "DispatcherConfig":
        return cls(
            worker_count=settings.dispatcher_workers,
            queue_size=settings.dispatcher_queue_size,
            enqueue_timeout=settings.dispatcher_enqueue_timeout_seconds,
            processing_timeout=settings.dispatcher_processing_timeout_seconds,
            scheduled_interval=settings.dispatcher_scheduled_interval_seconds,
            cleanup_interval=settings.dispatcher_cleanup_interval_seconds,
            scheduled_batch_size=settings.dispatcher_scheduled_batch_size,
            retry_delay=timedelta(seconds=settings.dispatcher_retry_delay_seconds),
            max_retries=settings.dispatcher_max_retries,
            read_retention=timedelta(days=settings.notification_read_retention_days),
        )


@dataclass
class DispatchJob:
    """A notification paired with the preferences snapshot taken at enqueue time."""

    notification: Notification
    preferences: NotificationPreferences


class NotificationDispatcher:
    """Deliver queued notifications with a fixed pool of worker threads."""

    def __init__(
        self,
        session_factory: SessionFactory,
        *,
        push_provider: PushProvider | None = None,
        email_provider: EmailProvider | None = None,
        realtime_publisher: RealtimeNotificationPublisher | None = None,
        config: DispatcherConfig | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._push_provider = push_provider
        self._email_provider = email_provider
        self._realtime_publisher = realtime_publisher
        self._config = config or DispatcherConfig()
        self._queue: queue.Queue[DispatchJob] = queue.Queue(maxsize=self._config.queue_size)
        self._stop_event = threading.Event()
        self._lock = threading.Lock()
        self._inflight: set[str] = set()
        self._threads: list[threading.Thread] = []
        self._executor: ThreadPoolExecutor | None = None
        self._running = False
        self._stopped = False

    @property
    def config(self) -> DispatcherConfig:
        return self._config

    @property
    def running(self) -> bool:
        return self._running

    def pending_jobs(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        """Start the worker pool and both periodic loops."""

        with self._lock:
            if self._running:
                return
            self._running = True
            self._stopped = False
            self._stop_event = threading.Event()
            stop_event = self._stop_event
            self._threads = [
                threading.Thread(
                    target=self._worker,
                    args=(worker_id, stop_event),
                    name=f"notification-worker-{worker_id}",
                    daemon=True,
                )
                for worker_id in range(self._config.worker_count)
            ]
            periodic = (
                ("scheduler", self._config.scheduled_interval, self.process_due_notifications),
                ("cleanup", self._config.cleanup_interval, self.perform_cleanup),
            )
            for name, interval, task in periodic:
                self._threads.append(
                    threading.Thread(
                        target=self._run_periodic,
                        args=(name, interval, task, stop_event),
                        name=f"notification-{name}",
                        daemon=True,
                    )
                )
            threads = list(self._threads)

        for thread in threads:
            thread.start()
        logger.info(
            "Notification dispatcher started (workers=%s, queue_size=%s)",
            self._config.worker_count,
            self._config.queue_size,
        )

    def stop(self, timeout: float | None = None) -> None:
        """Signal every thread to stop and wait for in-flight jobs to finish."""

        with self._lock:
            if not self._running:
                return
            self._running = False
            self._stopped = True
            threads, self._threads = self._threads, []
            executor, self._executor = self._executor, None

        logger.info("Stopping notification dispatcher...")
        self._stop_event.set()
        for thread in threads:
            thread.join(timeout)
        if executor is not None:
            executor.shutdown(wait=False, cancel_futures=True)

        abandoned = self._drain_queue()
        if abandoned:
            logger.warning("%s queued notification(s) left pending at shutdown", abandoned)
        logger.info("Notification dispatcher stopped")

    def dispatch(
        self, notification: Notification, preferences: NotificationPreferences
    ) -> bool:
        """Queue ``notification`` for delivery.

        Waits at most ``enqueue_timeout`` seconds for room in the queue and
        returns ``False`` when the job was dropped. A notification already
        queued or being processed is not queued twice.
        """

        if notification.id is None:
            raise ValueError("Only persisted notifications can be dispatched")
        if self._stopped:
            logger.warning(
                "Dispatcher stopped; notification %s left pending", notification.id
            )
            return False

        with self._lock:
            if notification.id in self._inflight:
                logger.debug("Notification %s already queued", notification.id)
                return False
            self._inflight.add(notification.id)

        try:
            self._enqueue(DispatchJob(notification=notification, preferences=preferences))
        except QueueFullError as exc:
            self._release(notification.id)
            logger.error("Failed to queue notification %s: %s", notification.id, exc)
            return False

        logger.info("Notification %s queued for dispatch", notification.id)
        return True

    def process_job(self, job: DispatchJob) -> NotificationStatus | None:
        """Deliver one job and record the outcome.

        Returns the status the notification ended in, or ``None`` when the row
        was no longer pending.
        """

        notification = job.notification
        preferences = job.preferences
        logger.info(
            "Processing notification %s for user %s", notification.id, notification.user_id
        )

        session = self._session_factory()
        try:
            repository = NotificationRepository(session)
            if self._should_push(preferences):
                try:
                    self._deliver_push(notification, preferences)
                except Exception as exc:
                    return self._record_failure(repository, notification, exc)
            else:
                logger.info(
                    "Push skipped for notification %s (disabled, no devices or no provider)",
                    notification.id,
                )
            return self._record_success(session, repository, notification, preferences)
        finally:
            session.close()

    def process_due_notifications(self) -> int:
        """Queue scheduled notifications whose time has come; return how many."""

        session = self._session_factory()
        count = 0
        try:
            due = NotificationRepository(session).list_due_scheduled(
                now=now_in_app_timezone(), limit=self._config.scheduled_batch_size
            )
            preferences_repository = NotificationPreferencesRepository(session)
            for notification in due:
                preferences = preferences_repository.get(notification.user_id)
                if preferences is None:
                    logger.warning(
                        "Failed to get preferences for notification %s: %s",
                        notification.id,
                        PreferencesNotFoundError(notification.user_id),
                    )
                    continue
                if self.dispatch(notification, preferences):
                    count += 1
        finally:
            session.close()

        if count:
            logger.info("Processed %s scheduled notifications", count)
        return count

    def perform_cleanup(self) -> tuple[int, int]:
        """Delete expired and old read notifications.

        Returns ``(expired, old_read)`` deletion counts. Each deletion is
        attempted independently.
        """

        now = now_in_app_timezone()
        expired = self._delete_best_effort(
            "expired", lambda repository: repository.delete_expired(now=now)
        )
        old_read = self._delete_best_effort(
            "old read",
            lambda repository: repository.delete_read_before(now - self._config.read_retention),
        )
        return expired, old_read

    def _worker(self, worker_id: int, stop_event: threading.Event) -> None:
        logger.debug("Worker %s started", worker_id)
        while not stop_event.is_set():
            try:
                job = self._queue.get(timeout=self._config.poll_interval)
            except queue.Empty:
                continue
            try:
                self.process_job(job)
            except Exception:
                logger.exception(
                    "Unexpected error processing notification %s", job.notification.id
                )
            finally:
                self._release(job.notification.id)
                self._queue.task_done()
        logger.debug("Worker %s stopping", worker_id)

    def _run_periodic(
        self,
        name: str,
        interval: float,
        task: Callable[[], Any],
        stop_event: threading.Event,
    ) -> None:
        while not stop_event.wait(interval):
            try:
                task()
            except Exception:
                logger.exception("Periodic %s pass failed", name)

    def _enqueue(self, job: DispatchJob) -> None:
        try:
            self._queue.put(job, timeout=self._config.enqueue_timeout)
        except queue.Full as exc:
            raise QueueFullError(
                f"queue full after waiting {self._config.enqueue_timeout}s"
            ) from exc

    def _release(self, notification_id: str | None) -> None:
        with self._lock:
            self._inflight.discard(notification_id)

    def _drain_queue(self) -> int:
        drained = 0
        while True:
            try:
                job = self._queue.get_nowait()
            except queue.Empty:
                return drained
            self._release(job.notification.id)
            self._queue.task_done()
            drained += 1

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._config.worker_count,
                    thread_name_prefix="notification-delivery",
                )
            return self._executor

    def _should_push(self, preferences: NotificationPreferences) -> bool:
        return bool(
            preferences.push_enabled
            and preferences.device_tokens
            and self._push_provider is not None
        )

    def _deliver_push(
        self, notification: Notification, preferences: NotificationPreferences
    ) -> None:
        data = dict(notification.data or {})
        data["notification_id"] = notification.id
        data["type"] = notification.type.value
        if notification.action_url:
            data["action_url"] = notification.action_url

        future = self._get_executor().submit(
            self._push_provider.send_push,
            list(preferences.device_tokens),
            notification.title,
            notification.body,
            data,
        )
        try:
            future.result(timeout=self._config.processing_timeout)
        except FutureTimeoutError as exc:
            future.cancel()
            raise DeliveryFailedError(
                f"push delivery timed out after {self._config.processing_timeout}s"
            ) from exc
        logger.info("Push notification %s sent successfully", notification.id)

    def _record_success(
        self,
        session: Session,
        repository: NotificationRepository,
        notification: Notification,
        preferences: NotificationPreferences,
    ) -> NotificationStatus | None:
        if not repository.mark_sent(notification.id, sent_at=now_in_app_timezone()):
            logger.info("Notification %s is no longer pending; not marked sent", notification.id)
            return None
        sent = repository.get(notification.id) or notification
        self._publish_realtime(sent, preferences)
        self._send_email_copy(session, sent, preferences)
        return NotificationStatus.SENT

    def _record_failure(
        self,
        repository: NotificationRepository,
        notification: Notification,
        error: Exception,
    ) -> NotificationStatus | None:
        reason = str(error) or error.__class__.__name__
        logger.warning("Failed to deliver notification %s: %s", notification.id, reason)

        now = now_in_app_timezone()
        failed = repository.mark_failed(notification.id, reason=reason, failed_at=now)
        if failed is None:
            logger.info("Notification %s is no longer pending; failure not recorded", notification.id)
            return None

        if failed.is_retryable(self._config.max_retries):
            retry_at = now + self._config.retry_delay
            if repository.schedule_retry(notification.id, scheduled_for=retry_at):
                logger.info(
                    "Scheduled retry %s/%s for notification %s at %s",
                    failed.retry_count,
                    self._config.max_retries,
                    notification.id,
                    retry_at.isoformat(),
                )
                return NotificationStatus.PENDING
        return NotificationStatus.FAILED

    def _publish_realtime(
        self, notification: Notification, preferences: NotificationPreferences
    ) -> None:
        if not preferences.in_app_enabled or self._realtime_publisher is None:
            return
        try:
            self._realtime_publisher.publish(notification)
        except Exception as exc:  # pragma: no cover - best effort channel
            logger.warning("Realtime delivery of notification %s failed: %s", notification.id, exc)

    def _send_email_copy(
        self,
        session: Session,
        notification: Notification,
        preferences: NotificationPreferences,
    ) -> None:
        if (
            self._email_provider is None
            or not preferences.email_enabled
            or notification.priority not in RETRYABLE_PRIORITIES
        ):
            return
        try:
            user = UserRepository(session).get(notification.user_id)
            if user is None or not user.email:
                return
            if not self._email_provider.send_email(user.email, notification.title, notification.body):
                logger.warning("Email copy of notification %s was not sent", notification.id)
        except Exception as exc:
            logger.warning("Email copy of notification %s failed: %s", notification.id, exc)

    def _delete_best_effort(
        self, label: str, operation: Callable[[NotificationRepository], int]
    ) -> int:
        session = self._session_factory()
        try:
            deleted = operation(NotificationRepository(session))
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Failed to clean up %s notifications: %s", label, exc)
            return 0
        finally:
            session.close()
        if deleted:
            logger.info("Cleaned up %s %s notifications", deleted, label)
        return deleted


_dispatcher: NotificationDispatcher | None = None


def get_notification_dispatcher() -> NotificationDispatcher | None:
    """Return the process-wide dispatcher, if one was installed."""

    return _dispatcher


def set_notification_dispatcher(dispatcher: NotificationDispatcher | None) -> None:
    global _dispatcher
    _dispatcher = dispatcher


def build_notification_dispatcher(
    settings: Settings, session_factory: SessionFactory | None = None
) -> NotificationDispatcher:
    """Wire a dispatcher with the providers configured in ``settings``."""

    if session_factory is None:
        from outdrinkme.infrastructure.database import SessionLocal

        session_factory = SessionLocal

    return NotificationDispatcher(
        session_factory,
        push_provider=FirebasePushProvider.from_settings(settings),
        email_provider=SendGridEmailProvider.from_settings(settings),
        realtime_publisher=realtime_publisher,
        config=DispatcherConfig.from_settings(settings),
    )


__all__ = [
    "DispatchJob",
    "DispatcherConfig",
    "NotificationDispatcher",
    "build_notification_dispatcher",
    "get_notification_dispatcher",
    "set_notification_dispatcher",
]

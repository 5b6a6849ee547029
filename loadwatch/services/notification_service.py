"""Notification dispatching helpers."""
from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Iterable

from loadwatch.models.schemas import Alert, AlertPriority, StaffMember

if TYPE_CHECKING:
    from loadwatch.services.daily_summary import DailySummary


logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """
    Hand-off point to the delivery layer (push, e-mail, ...).

    The base implementation only logs; delivery transports subclass it.
    """

    def send_alert(self, alert: Alert) -> None:
        logger.info(
            "Notify %s: [%s] %s",
            alert.user_id,
            alert.priority.value,
            alert.title,
        )

    def send_summary(self, recipient: StaffMember, summary: DailySummary) -> None:
        logger.info(
            "Daily summary for %s: %d high risk, %d caution",
            recipient.user_id,
            len(summary.high_risk),
            len(summary.caution),
        )


class NotificationService:
    """Rate-limited notification of newly created high-priority alerts."""

    def __init__(
        self,
        dispatcher: NotificationDispatcher | None = None,
        cooldown: timedelta = timedelta(hours=6),
    ):
        self.dispatcher = dispatcher or NotificationDispatcher()
        self.cooldown = cooldown
        self._last_sent: dict[str, datetime] = {}
        self._lock = threading.Lock()

    def _claim(self, user_id: str, now: datetime) -> bool:
        """Reserve the user's notification slot if the cooldown has passed."""
        with self._lock:
            last = self._last_sent.get(user_id)
            if last is not None and now - last < self.cooldown:
                return False
            self._last_sent[user_id] = now
            return True

    def _release(self, user_id: str, now: datetime) -> None:
        with self._lock:
            if self._last_sent.get(user_id) == now:
                del self._last_sent[user_id]

    def notify_new_alerts(self, alerts: Iterable[Alert], now: datetime) -> int:
        """
        Dispatch newly created high-priority alerts, at most one per user per cooldown.

        Args:
            alerts: Alerts that were just added to the store
            now: Current time (timezone-aware)

        Returns:
            Number of notifications handed to the dispatcher
        """
        sent = 0
        for alert in alerts:
            if alert.priority is not AlertPriority.HIGH:
                continue
            if not self._claim(alert.user_id, now):
                logger.debug("Notification for %s suppressed by cooldown", alert.user_id)
                continue
            try:
                self.dispatcher.send_alert(alert)
            except Exception:
                # Delivery problems must not fail the pipeline run.
                logger.exception("Notification dispatch failed for user %s", alert.user_id)
                self._release(alert.user_id, now)
                continue
            sent += 1
        return sent

    def send_summary(self, recipient: StaffMember, summary: DailySummary) -> bool:
        """Dispatch a daily summary; returns False if delivery raised."""
        try:
            self.dispatcher.send_summary(recipient, summary)
        except Exception:
            logger.exception("Daily summary dispatch failed for %s", recipient.user_id)
            return False
        return True

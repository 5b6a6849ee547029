"""In-process store of generated alerts with per-day deduplication.

Alerts are indexed by ``(user_id, type, created_date)``; at most one alert
per key is live at a time. Dismissed and expired alerts are kept but
filtered out of every view.
"""
from __future__ import annotations

import logging
import threading
from datetime import date, datetime, tzinfo
from typing import Iterable, NamedTuple

from loadwatch.exceptions import AlertNotFoundError
from loadwatch.models.schemas import Alert, AlertPriority, AlertType


logger = logging.getLogger(__name__)


class AlertKey(NamedTuple):
    user_id: str
    type: AlertType
    day: date


class MergeResult(NamedTuple):
    created: list[Alert]
    discarded: int
    active: list[Alert]


def sort_alerts(alerts: Iterable[Alert]) -> list[Alert]:
    """Priority descending, then newest first."""
    return sorted(alerts, key=lambda a: (a.priority.rank, a.created_at), reverse=True)


def filter_active(alerts: Iterable[Alert], now: datetime) -> list[Alert]:
    """Drop dismissed and expired alerts."""
    return [a for a in alerts if not a.is_dismissed and not a.is_expired(now)]


class AlertStore:
    """Thread-safe alert collection; every mutation holds one lock."""

    def __init__(self, tz: tzinfo):
        self.tz = tz
        self._lock = threading.Lock()
        self._alerts: dict[str, Alert] = {}
        self._index: dict[AlertKey, str] = {}

    def key_for(self, alert: Alert) -> AlertKey:
        return AlertKey(alert.user_id, alert.type, alert.created_date(self.tz))

    def _blocks(self, existing: Alert, now: datetime) -> bool:
        # A dismissed alert keeps blocking its key so it cannot come back that day.
        return existing.is_dismissed or not existing.is_expired(now)

    def merge(self, new_alerts: Iterable[Alert], now: datetime) -> MergeResult:
        """
        Merge freshly generated alerts into the collection in one atomic step.

        A new alert whose key is held by a live or dismissed alert is
        discarded; the existing one is left untouched.

        Returns:
            MergeResult with the alerts actually added, the number discarded
            and the resulting active view
        """
        created: list[Alert] = []
        discarded = 0

        today = now.astimezone(self.tz).date()

        with self._lock:
            alerts = dict(self._alerts)
            # Keys of earlier days can no longer collide with new alerts.
            index = {key: alert_id for key, alert_id in self._index.items() if key.day >= today}

            for alert in new_alerts:
                key = self.key_for(alert)
                existing_id = index.get(key)
                if existing_id is not None and self._blocks(alerts[existing_id], now):
                    discarded += 1
                    continue
                alerts[alert.id] = alert
                index[key] = alert.id
                created.append(alert)

            self._alerts = alerts
            self._index = index
            active = sort_alerts(filter_active(alerts.values(), now))

        if created or discarded:
            logger.info("Merged alerts: %d created, %d duplicates discarded", len(created), discarded)
        return MergeResult(created=created, discarded=discarded, active=active)

    def get(self, alert_id: str) -> Alert:
        with self._lock:
            try:
                return self._alerts[alert_id]
            except KeyError:
                raise AlertNotFoundError(alert_id) from None

    def _flip(self, alert_id: str, **flags: bool) -> Alert:
        with self._lock:
            alert = self._alerts.get(alert_id)
            if alert is None:
                raise AlertNotFoundError(alert_id)
            if all(getattr(alert, name) == value for name, value in flags.items()):
                return alert
            updated = alert.model_copy(update=flags)
            self._alerts[alert_id] = updated
            return updated

    def mark_as_read(self, alert_id: str) -> Alert:
        return self._flip(alert_id, is_read=True)

    def dismiss(self, alert_id: str) -> Alert:
        """Hide an alert for good; its key stays blocked for the rest of its day."""
        return self._flip(alert_id, is_dismissed=True)

    def mark_all_as_read(self, user_ids: Iterable[str] | None = None) -> int:
        """Mark every unread alert (optionally limited to ``user_ids``) as read."""
        scope = set(user_ids) if user_ids is not None else None
        changed = 0
        with self._lock:
            for alert_id, alert in list(self._alerts.items()):
                if alert.is_read or (scope is not None and alert.user_id not in scope):
                    continue
                self._alerts[alert_id] = alert.model_copy(update={"is_read": True})
                changed += 1
        return changed

    def active(self, now: datetime, user_ids: Iterable[str] | None = None) -> list[Alert]:
        """Sorted non-dismissed, non-expired alerts, optionally for a set of users."""
        scope = set(user_ids) if user_ids is not None else None
        with self._lock:
            snapshot = list(self._alerts.values())
        if scope is not None:
            snapshot = [a for a in snapshot if a.user_id in scope]
        return sort_alerts(filter_active(snapshot, now))

    def unread(self, now: datetime, user_ids: Iterable[str] | None = None) -> list[Alert]:
        return [a for a in self.active(now, user_ids) if not a.is_read]

    def unread_count(self, now: datetime, user_ids: Iterable[str] | None = None) -> int:
        return len(self.unread(now, user_ids))

    def by_priority(self, priority: AlertPriority, now: datetime) -> list[Alert]:
        return [a for a in self.active(now) if a.priority is priority]

    def by_user(self, user_id: str, now: datetime) -> list[Alert]:
        return self.active(now, [user_id])

    def __len__(self) -> int:
        with self._lock:
            return len(self._alerts)

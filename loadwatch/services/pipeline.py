"""Full risk pipeline: history -> loads -> ACWR -> rules -> alert store."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache

from loadwatch.config import Settings, get_settings
from loadwatch.exceptions import UpstreamFetchError
from loadwatch.models.schemas import (
    AcwrPoint,
    Alert,
    PipelineResult,
    Role,
    RosterMember,
    TeamAcwrPoint,
)
from loadwatch.services.acwr_calculator import calculate_acwr_series, latest_point
from loadwatch.services.alert_rules import AlertRuleEngine, UserEvaluationContext, effective_rules
from loadwatch.services.alert_store import AlertStore
from loadwatch.services.daily_summary import build_daily_summary, summarize_athlete
from loadwatch.services.load_normalizer import normalize_entries
from loadwatch.services.notification_service import NotificationService
from loadwatch.services.team_aggregator import aggregate_team_series
from loadwatch.services.training_repository import SqlTrainingRepository, TrainingDataSource


logger = logging.getLogger(__name__)


class RiskEngine:
    """
    Owns the alert store and runs the pipeline against a data source.

    ``run_pipeline`` is the single entry point for both the interval
    scheduler and on-demand refreshes. Runs may overlap: the store's
    per-day dedup key keeps the outcome idempotent.
    """

    def __init__(
        self,
        source: TrainingDataSource,
        settings: Settings | None = None,
        store: AlertStore | None = None,
        notifier: NotificationService | None = None,
    ):
        self.source = source
        self.settings = settings or get_settings()
        self.tz = self.settings.tzinfo
        self.store = store or AlertStore(self.tz)
        self.notifier = notifier or NotificationService(
            cooldown=timedelta(hours=self.settings.notification_cooldown_hours)
        )

    @staticmethod
    def _now(now: datetime | None) -> datetime:
        if now is None:
            return datetime.now(timezone.utc)
        if now.tzinfo is None:
            raise ValueError("now must be timezone-aware")
        return now

    def _series_for(self, user_id: str) -> tuple[list, list[AcwrPoint]]:
        entries = self.source.fetch_training_history(user_id)
        points = normalize_entries(entries)
        series = calculate_acwr_series(points, maturity_days=self.settings.acwr_maturity_days)
        return entries, series

    def evaluate_user(
        self,
        member: RosterMember,
        engine: AlertRuleEngine,
        now: datetime,
    ) -> list[Alert]:
        """Compute one user's alerts without touching the store."""
        entries, series = self._series_for(member.user_id)
        ctx = UserEvaluationContext(
            user_id=member.user_id,
            display_name=member.display_name,
            latest=latest_point(series),
            entries=entries,
            now=now,
            tz=self.tz,
        )
        return engine.evaluate(ctx)

    def run_pipeline(
        self,
        role: Role = Role.ADMIN,
        scope: str | None = None,
        now: datetime | None = None,
    ) -> PipelineResult:
        """
        Recompute every in-scope user's ratios and merge the resulting alerts.

        Args:
            role: Caller role, selects roster and effective rules
            scope: Caller user id for athlete/staff roles
            now: Evaluation instant (timezone-aware, defaults to current UTC time)

        Returns:
            PipelineResult summarising the run
        """
        now = self._now(now)
        result = PipelineResult(started_at=now)
        logger.info("Pipeline run started | role=%s | scope=%s", role.value, scope)

        try:
            roster = self.source.fetch_roster(role, scope)
        except UpstreamFetchError:
            logger.exception("Roster fetch failed; leaving active alerts untouched")
            result.active_alerts = len(self.store.active(now))
            return result

        rules = effective_rules(self.source.fetch_alert_rule_config(), role)
        engine = AlertRuleEngine(rules)

        generated: list[Alert] = []
        for member in roster:
            try:
                user_alerts = self.evaluate_user(member, engine, now)
            except UpstreamFetchError:
                logger.exception("History fetch failed for user %s; skipping", member.user_id)
                result.users_skipped += 1
                continue
            generated.extend(user_alerts)
            result.users_evaluated += 1

        merge = self.store.merge(generated, now)
        result.alerts_generated = len(generated)
        result.alerts_created = len(merge.created)
        result.active_alerts = len(merge.active)
        result.notifications_sent = self.notifier.notify_new_alerts(merge.created, now)

        logger.info(
            "Pipeline run finished | users=%d | skipped=%d | generated=%d | created=%d | notified=%d",
            result.users_evaluated,
            result.users_skipped,
            result.alerts_generated,
            result.alerts_created,
            result.notifications_sent,
        )
        return result

    def acwr_series(self, user_id: str) -> list[AcwrPoint]:
        """ACWR series of one user, recomputed from full history."""
        _, series = self._series_for(user_id)
        return series

    def team_series_for_roster(self, roster: list[RosterMember]) -> list[TeamAcwrPoint]:
        series_by_user: dict[str, list[AcwrPoint]] = {}
        for member in roster:
            try:
                series_by_user[member.user_id] = self.acwr_series(member.user_id)
            except UpstreamFetchError:
                logger.exception("History fetch failed for user %s; excluded from team", member.user_id)
        return aggregate_team_series([m.user_id for m in roster], series_by_user)

    def team_series(self, team_id: str) -> list[TeamAcwrPoint]:
        """Team ACWR series for every athlete of ``team_id``."""
        return self.team_series_for_roster(self.source.fetch_team_roster(team_id))

    def send_daily_summaries(self, now: datetime | None = None) -> int:
        """
        Build and dispatch the staff risk digest.

        Staff with no athlete in the high or caution band get nothing.

        Returns:
            Number of summaries dispatched
        """
        now = self._now(now)
        today = now.astimezone(self.tz).date()
        sent = 0

        for staff in self.source.fetch_staff():
            try:
                roster = self.source.fetch_roster(Role.STAFF, staff.user_id)
            except UpstreamFetchError:
                logger.exception("Roster fetch failed for staff %s", staff.user_id)
                continue

            rows = []
            for member in roster:
                try:
                    series = self.acwr_series(member.user_id)
                except UpstreamFetchError:
                    logger.exception("History fetch failed for user %s", member.user_id)
                    continue
                row = summarize_athlete(member, series, today)
                if row is not None:
                    rows.append(row)

            summary = build_daily_summary(staff.display_name, today, rows)
            if summary is None:
                continue
            if self.notifier.send_summary(staff, summary):
                sent += 1

        logger.info("Dispatched %d daily risk summaries for %s", sent, today.isoformat())
        return sent


@lru_cache()
def get_risk_engine() -> RiskEngine:
    """Return the process-wide engine bound to the configured database."""

    from loadwatch.database import SessionLocal

    settings = get_settings()
    source = SqlTrainingRepository(SessionLocal, rules_path=settings.alert_rules_path)
    return RiskEngine(source, settings=settings)

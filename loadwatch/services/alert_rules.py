"""Rule-based alert generation for training-load risk."""
from __future__ import annotations

import logging
import math
import uuid
from datetime import date, datetime, timedelta, tzinfo
from pathlib import Path
from typing import Any, Callable, Iterable

import yaml
from pydantic import ValidationError

from loadwatch.exceptions import ConfigurationError
from loadwatch.models.schemas import (
    AcwrPoint,
    Alert,
    AlertPriority,
    AlertRule,
    AlertRuleFile,
    AlertType,
    Role,
    RuleCondition,
    TrainingEntry,
)
from loadwatch.services.load_normalizer import entry_load


logger = logging.getLogger(__name__)

REMINDER_HOUR = 22
SRPE_LOOKBACK_DAYS = 7

ALERT_LIFETIMES: dict[RuleCondition, timedelta] = {
    RuleCondition.ACWR_ABOVE: timedelta(hours=48),
    RuleCondition.ACWR_BELOW: timedelta(hours=72),
    RuleCondition.NO_TRAINING_DAYS: timedelta(days=7),
    RuleCondition.NO_TRAINING_TODAY: timedelta(hours=2),
    RuleCondition.SRPE_ABOVE: timedelta(hours=48),
    RuleCondition.SRPE_SPIKE_RATIO: timedelta(hours=72),
}

DEFAULT_ALERT_RULES: list[dict[str, Any]] = [
    {
        "type": "high_risk",
        "condition": "acwr_above",
        "threshold": 1.5,
        "enabled": True,
        "description": "ACWR above 1.5 (high risk)",
    },
    {
        "type": "caution",
        "condition": "acwr_above",
        "threshold": 1.3,
        "enabled": True,
        "description": "ACWR above 1.3 (caution)",
    },
    {
        "type": "low_load",
        "condition": "acwr_below",
        "threshold": 0.8,
        "enabled": True,
        "description": "ACWR below 0.8 (low load)",
    },
    {
        "type": "no_data",
        "condition": "no_training_days",
        "threshold": 5,
        "enabled": True,
        "description": "No training logged for 5 days",
    },
    {
        "type": "reminder",
        "condition": "no_training_today",
        "threshold": 1,
        "enabled": False,
        "description": "Nothing logged today (after 22:00)",
    },
]


def default_rules() -> list[AlertRule]:
    """Return the built-in rule set with ids ``default-0`` .. ``default-4``."""
    return [
        AlertRule(id=f"default-{index}", **rule)
        for index, rule in enumerate(DEFAULT_ALERT_RULES)
    ]


def parse_rule_config(data: Any) -> list[AlertRule]:
    """
    Validate a rule override document.

    Args:
        data: Parsed YAML, expected to be a mapping with an ``alert_rules`` list

    Returns:
        Validated rules

    Raises:
        ConfigurationError: If the document does not describe a rule set
    """
    if not isinstance(data, dict):
        raise ConfigurationError("Alert rule config must be a mapping with an 'alert_rules' list")
    try:
        return AlertRuleFile.model_validate(data).alert_rules
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid alert rule config: {exc.error_count()} error(s)") from exc


def load_rule_config(path: Path | None) -> list[AlertRule]:
    """
    Load alert rules from a YAML file, falling back to the defaults.

    A missing path, an unreadable file or an invalid document all yield the
    built-in rules; a best-effort alert feed beats none.
    """
    if path is None:
        return default_rules()

    try:
        with Path(path).open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
        rules = parse_rule_config(data)
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
        logger.warning("Could not read alert rules from %s (%s) - using defaults", path, exc)
        return default_rules()
    except ConfigurationError as exc:
        logger.warning("%s in %s - using defaults", exc, path)
        return default_rules()

    logger.info("Loaded %d alert rules from %s", len(rules), path)
    return rules


def effective_rules(rules: Iterable[AlertRule], role: Role) -> list[AlertRule]:
    """Enabled rules for a caller role; coaches and admins get no no-data nagging."""
    result = []
    for rule in rules:
        if not rule.enabled:
            continue
        if role is not Role.ATHLETE and rule.type is AlertType.NO_DATA:
            continue
        result.append(rule)
    return result


class UserEvaluationContext:
    """Everything the rules need to know about one user at one instant."""

    def __init__(
        self,
        user_id: str,
        display_name: str,
        latest: AcwrPoint | None,
        entries: list[TrainingEntry],
        now: datetime,
        tz: tzinfo,
    ):
        self.user_id = user_id
        self.display_name = display_name or user_id
        self.latest = latest
        self.entries = entries
        self.now = now
        self.local_now = now.astimezone(tz)
        self.today = self.local_now.date()

        self.training_dates = {entry.date for entry in entries}
        self.last_training_date: date | None = max(self.training_dates) if self.training_dates else None

        self.daily_loads: dict[date, float] = {}
        for entry in entries:
            load = entry_load(entry)
            if load is not None:
                self.daily_loads[entry.date] = self.daily_loads.get(entry.date, 0.0) + load

    @property
    def days_since_last_training(self) -> int | None:
        if self.last_training_date is None:
            return None
        return (self.today - self.last_training_date).days

    @property
    def trained_today(self) -> bool:
        return self.today in self.training_dates

    @property
    def today_load(self) -> float:
        return self.daily_loads.get(self.today, 0.0)

    def recent_average_load(self, days: int = SRPE_LOOKBACK_DAYS) -> float | None:
        """Mean load of the last ``days`` training days before today."""
        previous = sorted(d for d in self.daily_loads if d < self.today)[-days:]
        values = [self.daily_loads[d] for d in previous if self.daily_loads[d] > 0]
        if not values:
            return None
        return math.fsum(values) / len(values)

    @property
    def mature_ratio(self) -> float | None:
        """Latest ratio, only when the history is long enough to trust it."""
        if self.latest is None or not self.latest.is_mature:
            return None
        return self.latest.ratio


RuleEvaluator = Callable[[AlertRule, UserEvaluationContext], Alert | None]

_EVALUATORS: dict[RuleCondition, RuleEvaluator] = {}


def evaluates(condition: RuleCondition) -> Callable[[RuleEvaluator], RuleEvaluator]:
    """Register the evaluation function for one rule condition."""

    def decorator(func: RuleEvaluator) -> RuleEvaluator:
        if condition in _EVALUATORS:
            raise ValueError(f"Condition '{condition.value}' already has an evaluator")
        _EVALUATORS[condition] = func
        return func

    return decorator


def _build_alert(
    rule: AlertRule,
    ctx: UserEvaluationContext,
    priority: AlertPriority,
    title: str,
    message: str,
    **details: Any,
) -> Alert:
    return Alert(
        id=uuid.uuid4().hex,
        user_id=ctx.user_id,
        user_name=ctx.display_name,
        type=rule.type,
        priority=priority,
        title=title,
        message=message,
        created_at=ctx.now,
        expires_at=ctx.now + ALERT_LIFETIMES[rule.condition],
        **details,
    )


@evaluates(RuleCondition.ACWR_ABOVE)
def _acwr_above(rule: AlertRule, ctx: UserEvaluationContext) -> Alert | None:
    ratio = ctx.mature_ratio
    if ratio is None or not ratio > rule.threshold:
        return None

    is_high = rule.type is AlertType.HIGH_RISK
    return _build_alert(
        rule,
        ctx,
        priority=AlertPriority.HIGH if is_high else AlertPriority.MEDIUM,
        title="High injury risk" if is_high else "Caution: load rising",
        message=(
            f"{ctx.display_name}'s ACWR is {ratio:.2f}, above {rule.threshold:g}. "
            "Injury risk is elevated."
        ),
        acwr_value=round(ratio, 2),
        threshold_exceeded=f"{rule.threshold:g} or above",
    )


@evaluates(RuleCondition.ACWR_BELOW)
def _acwr_below(rule: AlertRule, ctx: UserEvaluationContext) -> Alert | None:
    ratio = ctx.mature_ratio
    if ratio is None or not ratio < rule.threshold:
        return None

    return _build_alert(
        rule,
        ctx,
        priority=AlertPriority.LOW,
        title="Low training load",
        message=(
            f"{ctx.display_name}'s ACWR is {ratio:.2f}, below {rule.threshold:g}. "
            "Training load may be insufficient."
        ),
        acwr_value=round(ratio, 2),
        threshold_exceeded=f"below {rule.threshold:g}",
    )


@evaluates(RuleCondition.NO_TRAINING_DAYS)
def _no_training_days(rule: AlertRule, ctx: UserEvaluationContext) -> Alert | None:
    days = ctx.days_since_last_training
    if days is None or days < rule.threshold:
        return None

    return _build_alert(
        rule,
        ctx,
        priority=AlertPriority.MEDIUM,
        title="No training logged",
        message=(
            f"{ctx.display_name} has not logged training for {days} days. "
            "Please keep the training log up to date."
        ),
        last_training_date=ctx.last_training_date,
        days_since_last_training=days,
    )


@evaluates(RuleCondition.NO_TRAINING_TODAY)
def _no_training_today(rule: AlertRule, ctx: UserEvaluationContext) -> Alert | None:
    if ctx.local_now.hour < REMINDER_HOUR or ctx.trained_today:
        return None

    return _build_alert(
        rule,
        ctx,
        priority=AlertPriority.LOW,
        title="Training log reminder",
        message=f"{ctx.display_name}, today's training has not been logged yet.",
    )


@evaluates(RuleCondition.SRPE_ABOVE)
def _srpe_above(rule: AlertRule, ctx: UserEvaluationContext) -> Alert | None:
    load = ctx.today_load
    if load <= 0 or load < rule.threshold:
        return None

    return _build_alert(
        rule,
        ctx,
        priority=AlertPriority.MEDIUM,
        title="High session load (sRPE)",
        message=(
            f"{ctx.display_name}'s load today is {load:.0f}. "
            "Prioritise sleep, fuelling and recovery."
        ),
        srpe_value=load,
    )


@evaluates(RuleCondition.SRPE_SPIKE_RATIO)
def _srpe_spike_ratio(rule: AlertRule, ctx: UserEvaluationContext) -> Alert | None:
    load = ctx.today_load
    average = ctx.recent_average_load()
    if load <= 0 or not average:
        return None

    spike = round(load / average, 2)
    if spike < rule.threshold:
        return None

    return _build_alert(
        rule,
        ctx,
        priority=AlertPriority.HIGH,
        title="Session load spike (sRPE)",
        message=(
            f"{ctx.display_name}'s load today jumped to {load:.0f} "
            f"({spike:.2f}x the recent average of {average:.0f})."
        ),
        srpe_value=load,
        srpe_avg_7d=round(average, 1),
        srpe_spike_ratio=spike,
    )


class AlertRuleEngine:
    """Evaluates a rule set against one user's latest ACWR point and history."""

    def __init__(self, rules: Iterable[AlertRule] | None = None):
        """
        Initialize the engine.

        Args:
            rules: Rules to evaluate (defaults to the built-in set)
        """
        self.rules = list(rules) if rules is not None else default_rules()

    def evaluate(self, ctx: UserEvaluationContext) -> list[Alert]:
        """
        Evaluate every enabled rule for one user.

        Returns:
            One alert per firing rule, in rule order
        """
        alerts: list[Alert] = []
        for rule in self.rules:
            if not rule.enabled:
                continue
            evaluator = _EVALUATORS.get(rule.condition)
            if evaluator is None:
                logger.warning("No evaluator for condition %s (rule %s)", rule.condition.value, rule.id)
                continue
            alert = evaluator(rule, ctx)
            if alert is None:
                continue
            alerts.append(alert)
            if alert.priority is AlertPriority.HIGH:
                logger.warning("High-priority %s alert for user %s", alert.type.value, ctx.user_id)

        return alerts

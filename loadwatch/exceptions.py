"""Exception types raised at the edges of the engine.

The computation stages never raise for data problems; these types exist for
configuration loading, collaborator failures and alert lookups.
"""
from __future__ import annotations


class LoadwatchError(Exception):
    """Base class for engine errors."""


class ConfigurationError(LoadwatchError):
    """Alert rule configuration could not be read or validated."""


class UpstreamFetchError(LoadwatchError):
    """A history or roster collaborator failed to return data."""

    def __init__(self, what: str, detail: str | None = None):
        self.what = what
        message = f"Failed to fetch {what}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class AlertNotFoundError(LoadwatchError):
    """No alert with the given identifier exists in the store."""

    def __init__(self, alert_id: str):
        self.alert_id = alert_id
        super().__init__(f"Alert {alert_id} not found")

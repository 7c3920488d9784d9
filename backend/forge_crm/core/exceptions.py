"""Error taxonomy for the performance-alert pipeline.

Per-user failures (ConflictError, DeliveryError) are caught inside the
alert runner and reported in the run report. ValidationError and
UnauthorizedError are raised before any side effect happens.
"""


class AlertError(Exception):
    """Base class for alert pipeline errors."""


class ValidationError(AlertError):
    """Bad input, e.g. an unknown alert family or an inverted date range."""


class UnauthorizedError(AlertError):
    """The cron trigger credential did not verify."""


class ConflictError(AlertError):
    """An alert record for (user, kind, period) already exists."""

    def __init__(self, user_id, alert_kind: str, period: str):
        self.user_id = user_id
        self.alert_kind = alert_kind
        self.period = period
        super().__init__(f"alert {alert_kind} already recorded for user {user_id} in {period}")


class DeliveryError(AlertError):
    """The mail transport rejected or timed out on a message."""

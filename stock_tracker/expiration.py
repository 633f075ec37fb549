import math
from datetime import date, datetime, time

from .schemas import ExpirationCheck, ExpirationStatus

SECONDS_PER_DAY = 24 * 60 * 60


def days_until(expiration_date: date, now: datetime | date | None = None) -> int:
    """
    Whole days from `now` to the midnight that starts `expiration_date`.
    Partial days round up, so 1.2 days left counts as 2 and 10 hours past
    midnight of the expiration day still counts as 0.
    """
    if now is None:
        now = datetime.now()
    elif not isinstance(now, datetime):
        now = datetime.combine(now, time.min)

    delta = datetime.combine(expiration_date, time.min) - now
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


def classify(
    expiration_date: date, threshold_days: int, now: datetime | date | None = None
) -> ExpirationCheck:
    """Maps an expiration date and per-item alarm threshold to its current status."""
    days = days_until(expiration_date, now)

    if days < 0:
        return ExpirationCheck(
            status=ExpirationStatus.EXPIRED,
            days_remaining=days,
            message=f"EXPIRED {abs(days)} days ago",
        )
    if days <= threshold_days:
        return ExpirationCheck(
            status=ExpirationStatus.WARNING,
            days_remaining=days,
            message=f"ALERT! Expires in {days} days (threshold: {threshold_days} days)",
        )
    return ExpirationCheck(
        status=ExpirationStatus.OK,
        days_remaining=days,
        message=f"{days} days remaining",
    )

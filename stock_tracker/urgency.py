from datetime import date, datetime
from typing import Iterable

from pydantic import BaseModel

from .expiration import classify
from .schemas import ExpirationStatus, StockItem, UrgencyReport, UrgentEntry


def aggregate(items: Iterable[StockItem], now: datetime | date | None = None) -> UrgencyReport:
    """
    Partitions the urgent subset of `items` into Expired and Warning buckets,
    each item judged against its own alarm threshold.
    """
    if now is None:
        now = datetime.now()
    snapshot = tuple(items)

    expired, warning, urgent = [], [], []
    for item in snapshot:
        check = classify(item.expiration_date, item.alarm_days, now)
        if check.status == ExpirationStatus.OK:
            continue
        entry = UrgentEntry(item=item, check=check)
        urgent.append(entry)
        if check.status == ExpirationStatus.EXPIRED:
            expired.append(entry)
        else:
            warning.append(entry)

    return UrgencyReport(expired=expired, warning=warning, all=urgent)


class AlertGate(BaseModel):
    """
    Decides when the urgent-items alert is presented.
    `pending` rises only when the urgent set goes from empty to non-empty
    and falls only on acknowledgment.
    """

    pending: bool = False
    urgent_seen: bool = False

    class Config:
        frozen = True

    def observe(self, urgent_count: int, loading: bool = False) -> "AlertGate":
        if loading:
            return self
        is_urgent = urgent_count > 0
        fire = is_urgent and not self.urgent_seen
        return AlertGate(pending=self.pending or fire, urgent_seen=is_urgent)

    def acknowledge(self) -> "AlertGate":
        return AlertGate(pending=False, urgent_seen=self.urgent_seen)


def format_urgent_list(report: UrgencyReport) -> str:
    return "\n".join(
        f"[{entry.check.status.value}] {entry.item.name} "
        f"({entry.item.quantity} units, expires in {entry.check.days_remaining} days)"
        for entry in report.all
    )

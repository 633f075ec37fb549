from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from . import settings
from .utils import coerce_positive_int, normalize_category, parse_date, parse_timestamp


class ExpirationStatus(str, Enum):
    OK = "OK"
    WARNING = "Warning"
    EXPIRED = "Expired"


class StockItem(BaseModel):
    """
    A perishable item as stored by the backing store.
    Field aliases match the store's document keys, so documents can be
    validated directly and dumped back with by_alias=True.
    """

    id: str
    name: str = Field(..., min_length=1)
    quantity: int = Field(default=1, ge=1)
    expiration_date: date = Field(..., alias="expirationDate")
    alarm_days: int = Field(default=settings.DEFAULT_ALARM_DAYS, ge=1, alias="alarmDays")
    category: str = Field(default=settings.CATEGORIES[0])
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")

    class Config:
        populate_by_name = True
        frozen = True

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value):
        return str(value or "").strip()

    @field_validator("quantity", mode="before")
    @classmethod
    def _coerce_quantity(cls, value):
        return coerce_positive_int(value)

    @field_validator("alarm_days", mode="before")
    @classmethod
    def _coerce_alarm_days(cls, value):
        return coerce_positive_int(value, fallback=settings.DEFAULT_ALARM_DAYS)

    @field_validator("category", mode="before")
    @classmethod
    def _known_category(cls, value):
        return normalize_category(value)

    @field_validator("created_at", mode="before")
    @classmethod
    def _lenient_created_at(cls, value):
        # Informational; unreadable values become None.
        return parse_timestamp(value)


class ItemDraft(BaseModel):
    """Pending-edit buffer for the new-item form and for an in-flight edit (id set)."""

    id: Optional[str] = None
    name: str = ""
    quantity: int = 1
    expiration_date: Optional[date] = None
    alarm_days: int = settings.DEFAULT_ALARM_DAYS
    category: str = settings.CATEGORIES[0]

    class Config:
        frozen = True

    @field_validator("expiration_date", mode="before")
    @classmethod
    def _parse_expiration(cls, value):
        return parse_date(value)

    @field_validator("category", mode="before")
    @classmethod
    def _known_category(cls, value):
        return normalize_category(value)

    @classmethod
    def from_item(cls, item: StockItem) -> "ItemDraft":
        return cls(
            id=item.id,
            name=item.name,
            quantity=item.quantity,
            expiration_date=item.expiration_date,
            alarm_days=item.alarm_days,
            category=item.category,
        )

    def to_document(self) -> dict:
        """Store payload for this draft. Callers validate the draft first."""
        return {
            "name": self.name.strip(),
            "quantity": self.quantity,
            "expirationDate": self.expiration_date.isoformat(),
            "alarmDays": self.alarm_days,
            "category": self.category,
        }


class CommonName(BaseModel):
    """A curated autocomplete name; `key` is the path-safe document id."""

    key: str
    name: str

    class Config:
        frozen = True


class ExpirationCheck(BaseModel):
    status: ExpirationStatus
    days_remaining: int
    message: str

    class Config:
        frozen = True


class UrgentEntry(BaseModel):
    item: StockItem
    check: ExpirationCheck

    class Config:
        frozen = True


class UrgencyReport(BaseModel):
    expired: list[UrgentEntry] = Field(default_factory=list)
    warning: list[UrgentEntry] = Field(default_factory=list)
    all: list[UrgentEntry] = Field(default_factory=list)

    class Config:
        frozen = True

    @property
    def is_urgent(self) -> bool:
        return bool(self.all)


class UrgentReportRow(BaseModel):
    """
    Defines the data contract for a single row of the exported urgent-items report.
    """

    id: str = Field(..., alias="ID")
    name: str = Field(..., alias="Name")
    category: str = Field(..., alias="Category")
    quantity: int = Field(..., ge=1, alias="Quantity")
    expiration_date: date = Field(..., alias="Expiration Date")
    alarm_days: int = Field(..., ge=1, alias="Alarm Days")
    status: ExpirationStatus = Field(..., alias="Status")
    days_remaining: int = Field(..., alias="Days Remaining")

    class Config:
        populate_by_name = True

    @classmethod
    def from_entry(cls, entry: UrgentEntry) -> "UrgentReportRow":
        return cls(
            id=entry.item.id,
            name=entry.item.name,
            category=entry.item.category,
            quantity=entry.item.quantity,
            expiration_date=entry.item.expiration_date,
            alarm_days=entry.item.alarm_days,
            status=entry.check.status,
            days_remaining=entry.check.days_remaining,
        )

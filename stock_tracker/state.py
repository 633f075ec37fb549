"""
Application state and its transitions.

AppState is immutable; every reducer takes a state and returns a new one.
The controller in app.py is the only place that swaps the current state.
"""

from datetime import date, datetime
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from .errors import DraftValidationError
from .schemas import ItemDraft, StockItem
from .urgency import AlertGate, aggregate
from .utils import coerce_positive_int, normalize_category, parse_date

DRAFT_FIELDS = ("name", "quantity", "expiration_date", "alarm_days", "category")


class AppState(BaseModel):
    user_id: Optional[str] = None
    items: tuple[StockItem, ...] = ()
    common_names: tuple[str, ...] = ()
    loading: bool = True
    error_message: Optional[str] = None

    draft: ItemDraft = Field(default_factory=ItemDraft)
    editing: Optional[ItemDraft] = None
    import_text: str = ""

    alert: AlertGate = Field(default_factory=AlertGate)

    generation_loading: bool = False
    generation_text: Optional[str] = None
    show_generation: bool = False

    class Config:
        frozen = True

    @property
    def alert_pending(self) -> bool:
        return self.alert.pending


def _with(state: AppState, **changes) -> AppState:
    return state.model_copy(update=changes)


def _edit_draft(draft: ItemDraft, field: str, value) -> ItemDraft:
    if field not in DRAFT_FIELDS:
        raise ValueError(f"Unknown draft field: {field}")
    if field in ("quantity", "alarm_days"):
        value = coerce_positive_int(value)
    elif field == "expiration_date":
        value = parse_date(value)
    elif field == "category":
        value = normalize_category(value)
    else:
        value = str(value)
    return draft.model_copy(update={field: value})


def validate_draft(draft: ItemDraft):
    """Raises DraftValidationError unless the draft can be written to the store."""
    if not draft.name.strip() or draft.expiration_date is None or draft.quantity <= 0 or draft.alarm_days <= 0:
        raise DraftValidationError("Please fill in all required fields correctly.")


# --- Drafts & editing ---

def set_draft_field(state: AppState, field: str, value) -> AppState:
    return _with(state, draft=_edit_draft(state.draft, field, value))


def reset_draft(state: AppState) -> AppState:
    return _with(state, draft=ItemDraft())


def begin_edit(state: AppState, item: StockItem) -> AppState:
    return _with(state, editing=ItemDraft.from_item(item))


def set_edit_field(state: AppState, field: str, value) -> AppState:
    if state.editing is None:
        return state
    return _with(state, editing=_edit_draft(state.editing, field, value))


def cancel_edit(state: AppState) -> AppState:
    return _with(state, editing=None)


def set_import_text(state: AppState, text: str) -> AppState:
    return _with(state, import_text=text)


# --- Messages ---

def set_error(state: AppState, message: str) -> AppState:
    return _with(state, error_message=message)


def clear_error(state: AppState) -> AppState:
    return _with(state, error_message=None)


# --- Snapshots & alerts ---

def apply_items_snapshot(
    state: AppState, items: Iterable[StockItem], now: datetime | date | None = None
) -> AppState:
    """Replaces the item view (sorted by expiration date) and feeds the alert gate."""
    ordered = tuple(sorted(items, key=lambda item: item.expiration_date))
    report = aggregate(ordered, now)
    return _with(
        state,
        items=ordered,
        loading=False,
        alert=state.alert.observe(len(report.all), loading=False),
    )


def refresh_alert(state: AppState, now: datetime | date | None = None) -> AppState:
    """Re-evaluates the alert gate for the current items at a new moment."""
    report = aggregate(state.items, now)
    return _with(state, alert=state.alert.observe(len(report.all), loading=state.loading))


def apply_names_snapshot(state: AppState, names: Iterable[str]) -> AppState:
    return _with(state, common_names=tuple(names))


def acknowledge_alert(state: AppState) -> AppState:
    return _with(state, alert=state.alert.acknowledge())


# --- Text generation ---

def start_generation(state: AppState) -> AppState:
    return _with(state, generation_loading=True, generation_text=None)


def finish_generation(state: AppState, text: str) -> AppState:
    return _with(state, generation_loading=False, generation_text=text, show_generation=True)


def dismiss_generation(state: AppState) -> AppState:
    return _with(state, show_generation=False)

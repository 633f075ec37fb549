import logging
from datetime import date, datetime
from typing import Callable, Optional

from pydantic import ValidationError

from . import state as st
from .errors import DraftValidationError, ExternalCallError, StoreWriteError, SubscriptionError
from .expiration import classify
from .identity import IdentityProvider, resolve_user_id
from .importer import apply_import, reconcile, summary_message
from .names import is_known_name, unify_names
from .resilient_caller import ResilientCaller
from .schemas import CommonName, ExpirationCheck, StockItem, UrgencyReport
from .store import StockStore, Subscription
from .suggestions import action_plan_prompts, generate_text, usage_suggestion_prompts
from .urgency import aggregate
from .utils import sanitize_doc_id

logger = logging.getLogger(__name__)


def parse_item_documents(documents: list[dict]) -> list[StockItem]:
    """Validates raw store documents, skipping any that can't be read as a StockItem."""
    items = []
    for document in documents:
        try:
            items.append(StockItem.model_validate(document))
        except ValidationError as e:
            logger.warning(f"⚠️ Skipping unreadable item '{document.get('id')}': {e.error_count()} error(s).")
    return items


class StockTrackerApp:
    """
    Orchestrates the tracker: owns the current AppState, listens to the store,
    and turns every failure into a user-facing error message.
    """

    def __init__(
        self,
        store: StockStore,
        identity: IdentityProvider,
        caller: Optional[ResilientCaller] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.identity = identity
        self.caller = caller or ResilientCaller()
        self.clock = clock
        self.state = st.AppState()
        self._subscriptions: list[Subscription] = []

    # --- Lifecycle ---

    def start(self):
        """Establishes identity, then subscribes to items and common names."""
        user_id = resolve_user_id(self.identity)
        self.state = self.state.model_copy(update={"user_id": user_id})
        logger.info(f"Session started for user {user_id}.")

        self._subscriptions = [
            self.store.subscribe_items(user_id, self._on_items_snapshot, self._on_items_error),
            self.store.subscribe_names(user_id, self._on_names_snapshot, self._on_names_error),
        ]

    def stop(self):
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []

    @property
    def user_id(self) -> Optional[str]:
        return self.state.user_id

    def _on_items_snapshot(self, documents: list[dict]):
        items = parse_item_documents(documents)
        self.state = st.apply_items_snapshot(self.state, items, self.clock())

    def _on_items_error(self, error: SubscriptionError):
        logger.error(f"❌ Item subscription failed: {error}")
        self.state = st.set_error(self.state, "Could not load the items.")
        self.state = self.state.model_copy(update={"loading": False})

    def _on_names_snapshot(self, documents: list[dict]):
        names = [document["name"] for document in documents if document.get("name")]
        self.state = st.apply_names_snapshot(self.state, names)

    def _on_names_error(self, error: SubscriptionError):
        logger.error(f"❌ Common-name subscription failed: {error}")

    # --- Read models ---

    @property
    def unified_names(self) -> list[str]:
        return unify_names((item.name for item in self.state.items), self.state.common_names)

    def urgency_report(self, now: datetime | date | None = None) -> UrgencyReport:
        return aggregate(self.state.items, now or self.clock())

    def check(self, item: StockItem, now: datetime | date | None = None) -> ExpirationCheck:
        return classify(item.expiration_date, item.alarm_days, now or self.clock())

    def find_item(self, item_id: str) -> Optional[StockItem]:
        return next((item for item in self.state.items if item.id == item_id), None)

    def tick(self):
        """Re-checks the alert gate for the current moment (e.g. after midnight)."""
        self.state = st.refresh_alert(self.state, self.clock())

    # --- Drafts ---

    def set_draft_field(self, field: str, value):
        self.state = st.set_draft_field(self.state, field, value)

    def begin_edit(self, item_id: str):
        item = self.find_item(item_id)
        if item is None:
            self.state = st.set_error(self.state, "That item no longer exists.")
            return
        self.state = st.begin_edit(self.state, item)

    def set_edit_field(self, field: str, value):
        self.state = st.set_edit_field(self.state, field, value)

    def cancel_edit(self):
        self.state = st.cancel_edit(self.state)

    # --- Writes ---

    def _ready(self) -> bool:
        return self.state.user_id is not None

    def save_common_name(self, name: str):
        """Remembers a newly used name for autocomplete. Failures are only logged."""
        if not self._ready() or is_known_name(name, self.state.common_names):
            return
        trimmed = name.strip()
        try:
            self.store.set_name(self.state.user_id, CommonName(key=sanitize_doc_id(trimmed), name=trimmed))
        except StoreWriteError as e:
            logger.error(f"❌ Error saving common name '{trimmed}': {e}")

    def add_item(self) -> bool:
        if not self._ready():
            return False
        draft = self.state.draft
        try:
            st.validate_draft(draft)
        except DraftValidationError as e:
            self.state = st.set_error(self.state, str(e))
            return False
        self.state = st.clear_error(self.state)

        document = draft.to_document()
        document["createdAt"] = self.clock().isoformat()
        try:
            item_id = self.store.add_item(self.state.user_id, document)
        except StoreWriteError as e:
            logger.error(f"❌ Error adding item: {e}")
            self.state = st.set_error(self.state, "Error saving the item.")
            return False

        logger.info(f"✅ Added item '{document['name']}' ({item_id}).")
        self.save_common_name(document["name"])
        self.state = st.reset_draft(self.state)
        return True

    def update_item(self) -> bool:
        editing = self.state.editing
        if not self._ready() or editing is None:
            return False
        try:
            st.validate_draft(editing)
        except DraftValidationError:
            self.state = st.set_error(self.state, "Please fill in all edit fields correctly.")
            return False
        self.state = st.clear_error(self.state)

        document = editing.to_document()
        try:
            self.store.update_item(self.state.user_id, editing.id, document)
        except StoreWriteError as e:
            logger.error(f"❌ Error updating item {editing.id}: {e}")
            self.state = st.set_error(self.state, "Error updating the item.")
            return False

        self.save_common_name(document["name"])
        self.state = st.cancel_edit(self.state)
        return True

    def delete_item(self, item_id: str) -> bool:
        if not self._ready():
            return False
        try:
            self.store.delete_item(self.state.user_id, item_id)
        except StoreWriteError as e:
            logger.error(f"❌ Error deleting item {item_id}: {e}")
            self.state = st.set_error(self.state, "Error deleting the item.")
            return False
        return True

    # --- Import ---

    def set_import_text(self, text: str):
        self.state = st.set_import_text(self.state, text)

    def import_names(self) -> bool:
        if not self._ready() or not self.state.import_text.strip():
            self.state = st.set_error(self.state, "There is no data to import or the store is not ready.")
            return False

        result = reconcile(self.state.import_text)
        try:
            apply_import(self.store, self.state.user_id, result)
        except StoreWriteError as e:
            self.state = st.set_error(self.state, f"Saving the imported names failed; nothing was imported. {e}")
            return False

        self.state = st.set_import_text(self.state, "")
        self.state = st.set_error(self.state, summary_message(result))
        return True

    # --- Alerts & suggestions ---

    def acknowledge_alert(self):
        self.state = st.acknowledge_alert(self.state)

    def _generate(self, system_prompt: str, user_query: str):
        self.state = st.start_generation(self.state)
        try:
            text = generate_text(self.caller, system_prompt, user_query)
        except ExternalCallError as e:
            text = str(e)
        self.state = st.finish_generation(self.state, text)

    def generate_usage_suggestion(self, item_id: str):
        item = self.find_item(item_id)
        if item is None:
            self.state = st.set_error(self.state, "That item no longer exists.")
            return
        self._generate(*usage_suggestion_prompts(item, self.check(item)))

    def generate_action_plan(self):
        report = self.urgency_report()
        if not report.is_urgent:
            self.state = st.set_error(self.state, "There are no expired or alarming items to plan for.")
            return
        self._generate(*action_plan_prompts(report))

    def dismiss_generation(self):
        self.state = st.dismiss_generation(self.state)

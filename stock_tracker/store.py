import copy
import json
import logging
import os
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Iterable, Optional

from . import settings
from .errors import StoreWriteError, SubscriptionError
from .schemas import CommonName

logger = logging.getLogger(__name__)

ITEMS_COLLECTION = "stock_items"
NAMES_COLLECTION = "common_names"

SnapshotCallback = Callable[[list[dict]], None]
ErrorCallback = Callable[[SubscriptionError], None]


def collection_path(user_id: str, collection: str, app_id: str = settings.APP_ID) -> str:
    """Per-user namespace: artifacts/{app_id}/users/{user_id}/{collection}."""
    return f"artifacts/{app_id}/users/{user_id}/{collection}"


class Subscription:
    """Handle for a live snapshot feed. The feed runs until unsubscribe() is called."""

    def __init__(self, on_cancel: Callable[[], None]):
        self._on_cancel = on_cancel
        self.active = True

    def unsubscribe(self):
        if self.active:
            self.active = False
            self._on_cancel()


class StockStore(ABC):
    """
    Backing-store collaborator: a per-user collection of stock item documents
    and a sibling collection of common-name documents.
    Every write is a single atomic operation; subscribers always receive the
    full collection, never a diff.
    """

    @abstractmethod
    def subscribe_items(
        self, user_id: str, on_snapshot: SnapshotCallback, on_error: Optional[ErrorCallback] = None
    ) -> Subscription:
        pass

    @abstractmethod
    def subscribe_names(
        self, user_id: str, on_snapshot: SnapshotCallback, on_error: Optional[ErrorCallback] = None
    ) -> Subscription:
        pass

    @abstractmethod
    def add_item(self, user_id: str, document: dict) -> str:
        """Creates an item document and returns its store-assigned id."""
        pass

    @abstractmethod
    def update_item(self, user_id: str, item_id: str, document: dict):
        pass

    @abstractmethod
    def delete_item(self, user_id: str, item_id: str):
        pass

    @abstractmethod
    def set_name(self, user_id: str, common_name: CommonName):
        pass

    @abstractmethod
    def batch_upsert_names(self, user_id: str, names: Iterable[CommonName]):
        """Upserts all names in one all-or-nothing commit."""
        pass


class InMemoryStore(StockStore):
    """Process-local store. Listeners are notified synchronously after each commit."""

    def __init__(self, app_id: str = settings.APP_ID):
        self.app_id = app_id
        self._collections: dict[str, dict[str, dict]] = {}
        self._listeners: dict[str, list[tuple[SnapshotCallback, Optional[ErrorCallback], Subscription]]] = {}

    # --- Reads ---

    def snapshot(self, path: str) -> list[dict]:
        """Returns a detached copy of every document in `path`, with its id."""
        documents = self._collections.get(path, {})
        return [{"id": doc_id, **copy.deepcopy(data)} for doc_id, data in documents.items()]

    def _subscribe(
        self, path: str, on_snapshot: SnapshotCallback, on_error: Optional[ErrorCallback]
    ) -> Subscription:
        listeners = self._listeners.setdefault(path, [])
        subscription = Subscription(lambda: self._drop_listener(path, subscription))
        listeners.append((on_snapshot, on_error, subscription))
        self._deliver(on_snapshot, on_error, path)
        return subscription

    def _drop_listener(self, path: str, subscription: Subscription):
        self._listeners[path] = [
            entry for entry in self._listeners.get(path, []) if entry[2] is not subscription
        ]

    def _deliver(self, on_snapshot: SnapshotCallback, on_error: Optional[ErrorCallback], path: str):
        on_snapshot(self.snapshot(path))

    def _notify(self, path: str):
        for on_snapshot, on_error, subscription in list(self._listeners.get(path, [])):
            if subscription.active:
                self._deliver(on_snapshot, on_error, path)

    def subscribe_items(self, user_id, on_snapshot, on_error=None) -> Subscription:
        return self._subscribe(collection_path(user_id, ITEMS_COLLECTION, self.app_id), on_snapshot, on_error)

    def subscribe_names(self, user_id, on_snapshot, on_error=None) -> Subscription:
        return self._subscribe(collection_path(user_id, NAMES_COLLECTION, self.app_id), on_snapshot, on_error)

    # --- Writes ---

    def _commit(self, path: str, mutate: Callable[[dict[str, dict]], None]):
        """Applies `mutate` to a staged copy and swaps it in only if persisting succeeds."""
        staged = copy.deepcopy(self._collections.get(path, {}))
        mutate(staged)
        try:
            self._persist(path, staged)
        except OSError as e:
            raise StoreWriteError(f"Could not persist {path}: {e}") from e
        self._collections[path] = staged
        self._notify(path)

    def _persist(self, path: str, documents: dict[str, dict]):
        pass

    def add_item(self, user_id, document) -> str:
        item_id = uuid.uuid4().hex
        path = collection_path(user_id, ITEMS_COLLECTION, self.app_id)
        self._commit(path, lambda docs: docs.__setitem__(item_id, dict(document)))
        return item_id

    def update_item(self, user_id, item_id, document):
        path = collection_path(user_id, ITEMS_COLLECTION, self.app_id)
        if item_id not in self._collections.get(path, {}):
            raise StoreWriteError(f"No item with id '{item_id}' to update.")
        self._commit(path, lambda docs: docs[item_id].update(document))

    def delete_item(self, user_id, item_id):
        path = collection_path(user_id, ITEMS_COLLECTION, self.app_id)
        self._commit(path, lambda docs: docs.pop(item_id, None))

    def set_name(self, user_id, common_name):
        self.batch_upsert_names(user_id, [common_name])

    def batch_upsert_names(self, user_id, names):
        path = collection_path(user_id, NAMES_COLLECTION, self.app_id)
        names = list(names)

        def upsert(docs):
            for common_name in names:
                docs[common_name.key] = {"name": common_name.name}

        self._commit(path, upsert)


class JsonFileStore(InMemoryStore):
    """
    Local-mode store persisted to a single JSON file.
    The file is rewritten through a temp file and os.replace, so a failed
    write leaves the previous contents intact.
    """

    def __init__(self, file_path: Path = settings.STORE_FILE, app_id: str = settings.APP_ID):
        super().__init__(app_id)
        self.file_path = Path(file_path)
        self._load_error: Optional[SubscriptionError] = None
        self._load()

    def _load(self):
        if not self.file_path.exists():
            logger.info(f"No store file at {self.file_path}; starting empty.")
            return
        try:
            with open(self.file_path, encoding="utf-8") as f:
                collections = json.load(f)
            _check_layout(collections)
            self._collections = collections
        except (OSError, ValueError) as e:
            logger.error(f"❌ Could not read store file {self.file_path.name}: {e}")
            self._load_error = SubscriptionError(f"Could not load stored data: {e}")

    def _deliver(self, on_snapshot, on_error, path):
        if self._load_error is not None:
            if on_error is not None:
                on_error(self._load_error)
            return
        super()._deliver(on_snapshot, on_error, path)

    def _persist(self, path, documents):
        if self._load_error is not None:
            # Never overwrite a file we could not read.
            raise OSError(f"{self.file_path.name} is unreadable")
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {**self._collections, path: documents}
        tmp_path = self.file_path.with_suffix(self.file_path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, default=str)
        os.replace(tmp_path, self.file_path)


def _check_layout(collections) -> None:
    """Raises ValueError unless the data maps path -> doc id -> document object."""
    if not isinstance(collections, dict):
        raise ValueError(f"expected an object of collections, got {type(collections).__name__}")
    for path, documents in collections.items():
        if not isinstance(documents, dict):
            raise ValueError(f"collection {path!r} is not an object")
        for doc_id, data in documents.items():
            if not isinstance(data, dict):
                raise ValueError(f"document {path}/{doc_id} is not an object")

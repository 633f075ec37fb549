"""
Bulk import of curated names.

Parsing is pure (`reconcile`); writing is a separate, atomic batch
(`apply_import`). Each unique name becomes one upsert keyed by its path-safe
document id, so applying the same import twice leaves the store unchanged.
"""

import logging

from pydantic import BaseModel, Field

from .errors import StoreWriteError
from .schemas import CommonName
from .store import StockStore
from .utils import sanitize_doc_id

logger = logging.getLogger(__name__)


class ImportResult(BaseModel):
    upserts: list[CommonName] = Field(default_factory=list)
    accepted_lines: int = 0
    rejected_count: int = 0

    class Config:
        frozen = True

    @property
    def accepted_count(self) -> int:
        """Number of unique names that will be upserted."""
        return len(self.upserts)


def _first_field(line: str) -> str:
    fields = line.split("\t") if "\t" in line else line.split(",")
    return fields[0].strip()


def reconcile(raw_text: str) -> ImportResult:
    """Parses pasted or exported text into deduplicated name upserts."""
    text = raw_text.strip()
    if not text:
        return ImportResult()

    names: dict[str, None] = {}
    accepted = rejected = 0

    for line in text.split("\n"):
        name = _first_field(line)
        if name:
            names[name] = None
            accepted += 1
        else:
            rejected += 1

    upserts = [CommonName(key=sanitize_doc_id(name), name=name) for name in names]
    return ImportResult(upserts=upserts, accepted_lines=accepted, rejected_count=rejected)


def apply_import(store: StockStore, user_id: str, result: ImportResult):
    """Commits every upsert in one batch. Raises StoreWriteError if nothing was applied."""
    if not result.upserts:
        logger.info("Nothing to import.")
        return
    try:
        store.batch_upsert_names(user_id, result.upserts)
    except StoreWriteError:
        logger.error(f"❌ Batch commit of {result.accepted_count} names failed.")
        raise
    logger.info(f"✅ Imported {result.accepted_count} unique names.")


def summary_message(result: ImportResult) -> str:
    return (
        f"Name import complete: {result.accepted_count} unique names added/updated. "
        f"{result.rejected_count} lines ignored."
    )

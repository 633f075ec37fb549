import logging
import unicodedata
from datetime import date, datetime
from pathlib import Path

from . import settings

logger = logging.getLogger(__name__)


def get_date_suffix_for_filename(now: datetime | None = None) -> str:
    """Returns the current date as a YYYY-MM-DD string for filenames."""
    return (now or datetime.now()).strftime("%Y-%m-%d")


def coerce_positive_int(value, fallback: int = 1) -> int:
    """
    Turns raw form/store input into an integer >= 1.
    Unparsable input and zero fall back to `fallback`; anything below 1 becomes 1.
    """
    try:
        number = int(value)
    except (TypeError, ValueError):
        number = 0
    if number == 0:
        number = fallback
    return max(1, number)


def parse_date(value) -> date | None:
    """Parses an ISO 'YYYY-MM-DD' value (or passes a date through). Returns None if invalid."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value:
        return None
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        return None


def parse_timestamp(value) -> datetime | None:
    """Parses an ISO timestamp (a trailing 'Z' is read as UTC). Returns None if invalid."""
    if isinstance(value, datetime):
        return value
    if not value:
        return None
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def normalize_category(category) -> str:
    """Returns the matching entry of CATEGORIES (case-insensitive), else the first entry."""
    wanted = str(category or "").strip().lower()
    for known in settings.CATEGORIES:
        if known.lower() == wanted:
            return known
    return settings.CATEGORIES[0]


def sanitize_doc_id(name: str) -> str:
    """Makes a name safe to use as a store document id: every '/' becomes '_'."""
    return name.replace("/", "_")


def collation_key(text: str) -> tuple[str, str, str]:
    """
    Sort key approximating locale-aware comparison without depending on the
    process locale: accents and case are ignored first, then accents break
    ties, then lower case sorts before upper case.
    """
    folded = text.casefold()
    decomposed = unicodedata.normalize("NFKD", folded)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return base, folded, text.swapcase()


def load_text(file_path: Path) -> str | None:
    """
    Reads a text export with a multi-stage encoding fallback.
    1. UTF-8 with BOM support ('utf-8-sig').
    2. Latin-1, which can decode any byte sequence.
    """
    try:
        return file_path.read_text(encoding="utf-8-sig")

    except UnicodeDecodeError:
        logger.info(f"UTF-8 decoding failed for {file_path.name}. Retrying with 'latin-1'.")
        return file_path.read_text(encoding="latin-1")

    except FileNotFoundError:
        logger.error(f"File not found at {file_path}, skipping.")
        return None

from typing import Iterable

from .utils import collation_key


def unify_names(stock_item_names: Iterable[str], curated_names: Iterable[str]) -> list[str]:
    """
    Builds the autocomplete candidate list: trimmed stock names plus curated
    names, deduplicated by exact (case-sensitive) match and collation-sorted.
    """
    combined = {name.strip() for name in stock_item_names}
    combined.update(curated_names)
    return sorted(combined, key=collation_key)


def is_known_name(name: str, curated_names: Iterable[str]) -> bool:
    """True when the trimmed name is empty or already saved as a curated name."""
    trimmed = name.strip()
    return not trimmed or trimmed in set(curated_names)

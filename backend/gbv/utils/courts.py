"""
Canonical parser and ordering for tournament court labels.

Handles both string ("1,5,6") and list (["1","5","6"]) inputs so we never
silently corrupt labels (e.g. list("1,5,6") -> ['1', ',', '5', ...]).
"""
import math
from typing import List, Optional, Sequence, Union


def parse_court_names(court_names: Optional[Union[str, List[str]]]) -> List[str]:
    """
    Normalize court_names to a list of non-empty strings.

    - None or "" -> []
    - String (e.g. "1,5,6") -> split on commas, strip whitespace, drop empties -> ["1","5","6"]
    - List (e.g. ["1","5","6"]) -> coerce each to str(x).strip(), drop empties
    """
    if court_names is None:
        return []
    if isinstance(court_names, str):
        s = court_names.strip()
        if not s:
            return []
        return [x.strip() for x in s.split(",") if x.strip()]
    if isinstance(court_names, list):
        return [str(x).strip() for x in court_names if str(x).strip()]
    return []


def _court_sort_key(label: str):
    try:
        value = float(label)
    except ValueError:
        value = math.nan
    # "nan" and "inf" parse as floats but are court names, not numbers
    if math.isfinite(value):
        return (0, value, "")
    return (1, 0.0, label.lower())


def sort_court_labels(labels: Sequence[str]) -> List[str]:
    """
    Order court labels for assignment: numeric labels ascending by value,
    then non-numeric labels alphabetically (case-insensitive).
    """
    return sorted(labels, key=_court_sort_key)


def court_for_index(courts: Sequence[str], index: int) -> Optional[str]:
    """Round-robin court for the index-th played match of a round, or None with no courts."""
    if not courts:
        return None
    return courts[index % len(courts)]

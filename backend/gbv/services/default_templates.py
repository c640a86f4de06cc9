"""
Built-in pool schedule templates (single-court orderings).

Each round plays one matchup of in-pool seed numbers; ref holds the referee
seed aligned by play index. Admins may replace these per tournament.
"""
from typing import Any, Dict, List

# Canonical supported pool sizes for schedule generation and template editing.
SUPPORTED_POOL_SIZES = (4, 5)

_POOL_OF_4: List[Dict[str, Any]] = [
    {"round": 1, "play": [[1, 4]], "ref": [2]},
    {"round": 2, "play": [[2, 3]], "ref": [1]},
    {"round": 3, "play": [[1, 3]], "ref": [4]},
    {"round": 4, "play": [[2, 4]], "ref": [3]},
    {"round": 5, "play": [[1, 2]], "ref": [4]},
    {"round": 6, "play": [[3, 4]], "ref": [2]},
]

_POOL_OF_5: List[Dict[str, Any]] = [
    {"round": 1, "play": [[2, 5]], "ref": [3]},
    {"round": 2, "play": [[1, 4]], "ref": [2]},
    {"round": 3, "play": [[3, 5]], "ref": [1]},
    {"round": 4, "play": [[2, 4]], "ref": [5]},
    {"round": 5, "play": [[1, 3]], "ref": [4]},
    {"round": 6, "play": [[4, 5]], "ref": [1]},
    {"round": 7, "play": [[2, 3]], "ref": [4]},
    {"round": 8, "play": [[1, 5]], "ref": [2]},
    {"round": 9, "play": [[3, 4]], "ref": [5]},
    {"round": 10, "play": [[1, 2]], "ref": [3]},
]

_DEFAULTS = {4: _POOL_OF_4, 5: _POOL_OF_5}


def default_template_for_pool_size(size: int) -> List[Dict[str, Any]]:
    """Default template_data for a pool size, or [] when no default exists."""
    template = _DEFAULTS.get(size)
    if template is None:
        return []
    # Fresh copies so callers can store/mutate them
    return [{"round": r["round"], "play": [list(p) for p in r["play"]], "ref": list(r["ref"])} for r in template]

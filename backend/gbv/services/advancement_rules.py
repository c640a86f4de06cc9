"""
Tournament advancement rules: tiebreaker order and per-pool advance counts.

Stored as JSON on Tournament.advancement_rules and validated here, so the
standings and seeding code receives explicit configuration.
"""
import logging
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

TB_HEAD_TO_HEAD = "head_to_head"
TB_SET_RATIO = "set_ratio"
TB_POINT_DIFF = "point_diff"
TB_RANDOM = "random"

Tiebreaker = Literal["head_to_head", "set_ratio", "point_diff", "random"]

DEFAULT_TIEBREAKERS: List[str] = [TB_HEAD_TO_HEAD, TB_SET_RATIO, TB_POINT_DIFF, TB_RANDOM]

# Pool finishers advancing to the bracket unless a rule overrides it (winners + runners-up).
DEFAULT_ADVANCE_COUNT = 2


class PoolAdvanceRule(BaseModel):
    pool_size: int = Field(ge=2)
    advance_count: int = Field(ge=1)


class AdvancementRules(BaseModel):
    model_config = ConfigDict(extra="ignore")

    tiebreakers: List[Tiebreaker] = Field(default_factory=list)
    pools: List[PoolAdvanceRule] = Field(default_factory=list)
    bracket_format: Literal["single_elimination", "best_of_3_single_elim"] = "single_elimination"

    @property
    def uses_default_tiebreakers(self) -> bool:
        return not self.tiebreakers

    def tiebreaker_order(self) -> List[str]:
        return list(self.tiebreakers) if self.tiebreakers else list(DEFAULT_TIEBREAKERS)

    def advance_counts(self) -> Dict[int, int]:
        return {r.pool_size: r.advance_count for r in self.pools}

    def advance_count_for(self, pool_size: int) -> int:
        return self.advance_counts().get(pool_size, DEFAULT_ADVANCE_COUNT)


def load_advancement_rules(raw: Optional[Dict[str, Any]]) -> AdvancementRules:
    """Parse stored rules. Rules that fail validation are logged and replaced by defaults."""
    if not raw:
        return AdvancementRules()
    try:
        return AdvancementRules.model_validate(raw)
    except ValidationError as e:
        logger.warning("Ignoring invalid advancement_rules, using defaults: %s", e)
        return AdvancementRules()

"""
Bracket seeding across pools.

Finishers are bucketed by pool finishing position (1st place of every pool,
then 2nd place, ...), each bucket is ordered with the cross-pool comparator,
and the buckets are concatenated. Position in the result (1-based) is the
team's tournament seed.
"""
from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import List, Mapping, Optional, Sequence

from gbv.services.advancement_rules import DEFAULT_ADVANCE_COUNT
from gbv.services.standings import Standing, compare_global


@dataclass
class SeedResult:
    seeds: List[int] = field(default_factory=list)
    winners: List[int] = field(default_factory=list)
    runners: List[int] = field(default_factory=list)


def compute_seeds(
    standings_by_pool: Mapping[int, Sequence[Standing]],
    tiebreakers: Sequence[str],
    advance_counts: Optional[Mapping[int, int]] = None,
) -> SeedResult:
    """
    Build the ordered seed list from per-pool standings.

    advance_counts maps pool size -> number of finishers advancing; sizes not
    listed advance DEFAULT_ADVANCE_COUNT (pool winners and runners-up).
    """
    advance_counts = advance_counts or {}
    buckets: List[List[Standing]] = []

    for pool_id in sorted(standings_by_pool):
        standings = list(standings_by_pool[pool_id])
        count = advance_counts.get(len(standings), DEFAULT_ADVANCE_COUNT)
        for pos, st in enumerate(standings[:count]):
            while len(buckets) <= pos:
                buckets.append([])
            buckets[pos].append(st)

    key = cmp_to_key(compare_global(tiebreakers))
    ordered: List[List[int]] = [[st.team_id for st in sorted(group, key=key)] for group in buckets if group]

    seeds = [team_id for group in ordered for team_id in group]
    return SeedResult(
        seeds=seeds,
        winners=ordered[0] if len(ordered) > 0 else [],
        runners=ordered[1] if len(ordered) > 1 else [],
    )

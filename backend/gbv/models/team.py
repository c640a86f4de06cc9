from typing import TYPE_CHECKING, Optional

from sqlalchemy import CheckConstraint
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from gbv.models.pool import Pool
    from gbv.models.tournament import Tournament


class Team(SQLModel, table=True):
    __table_args__ = (
        # Unique seed within a pool (nulls are distinct, so unseeded teams are fine)
        SAUniqueConstraint("pool_id", "seed_in_pool", name="uq_team_pool_seed"),
        SAUniqueConstraint("tournament_id", "seed_global", name="uq_team_tournament_seed_global"),
        CheckConstraint("seed_in_pool IS NULL OR seed_in_pool >= 1", name="ck_team_seed_in_pool_positive"),
        CheckConstraint("seed_global IS NULL OR seed_global >= 1", name="ck_team_seed_global_positive"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    pool_id: Optional[int] = Field(default=None, foreign_key="pool.id", index=True)

    seeded_player_name: str
    partner_name: Optional[str] = None
    # "{seeded_player_name} + {partner_name}" once a partner is assigned; placeholder otherwise
    full_team_name: str

    seed_in_pool: Optional[int] = Field(default=None)  # 1-based within the pool
    seed_global: Optional[int] = Field(default=None)  # import order

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="teams")
    pool: Optional["Pool"] = Relationship(back_populates="teams")


def compose_team_name(seeded_player_name: str, partner_name: Optional[str]) -> str:
    seeded = seeded_player_name.strip()
    partner = (partner_name or "").strip()
    if not partner:
        return seeded
    return f"{seeded} + {partner}"


def has_real_name(team: Team) -> bool:
    """A team is named once a partner is set and its name differs from the seed placeholder."""
    if not (team.partner_name or "").strip():
        return False
    full = (team.full_team_name or "").strip()
    return bool(full) and full != team.seeded_player_name.strip()

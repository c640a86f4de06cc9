from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from gbv.models.tournament import Tournament

MATCH_TYPE_POOL = "pool"
MATCH_TYPE_BRACKET = "bracket"


class Match(SQLModel, table=True):
    __table_args__ = (
        SAUniqueConstraint(
            "tournament_id", "bracket_round", "bracket_match_index", name="uq_match_bracket_round_index"
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    pool_id: Optional[int] = Field(default=None, foreign_key="pool.id", index=True)  # null for bracket
    match_type: str = Field(index=True)  # "pool" | "bracket"

    # Pool context
    round_number: Optional[int] = Field(default=None)

    # Bracket context
    bracket_round: Optional[int] = Field(default=None)  # 1 = first round, last = final
    bracket_match_index: Optional[int] = Field(default=None)  # 0-based within the round

    team1_id: Optional[int] = Field(default=None, foreign_key="team.id")
    team2_id: Optional[int] = Field(default=None, foreign_key="team.id")
    ref_team_id: Optional[int] = Field(default=None, foreign_key="team.id")

    team1_score: Optional[int] = Field(default=None)
    team2_score: Optional[int] = Field(default=None)
    winner_id: Optional[int] = Field(default=None, foreign_key="team.id")

    # Live scoring (lease held by one scorer session at a time)
    is_live: bool = Field(default=False)
    live_score_team1: Optional[int] = Field(default=None)
    live_score_team2: Optional[int] = Field(default=None)
    live_owner_id: Optional[str] = Field(default=None)
    live_last_active_at: Optional[datetime] = Field(default=None)

    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="matches")

from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from gbv.models.team import Team
    from gbv.models.tournament import Tournament


class Pool(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("tournament_id", "name", name="uq_pool_tournament_name"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    name: str  # e.g. "Pool A"
    court_assignment: Optional[str] = None

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="pools")
    teams: List["Team"] = Relationship(back_populates="pool")

from typing import TYPE_CHECKING, Any, List, Optional

from sqlalchemy import JSON
from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from gbv.models.tournament import Tournament


class ScheduleTemplate(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("tournament_id", "pool_size", name="uq_template_tournament_size"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    pool_size: int
    # [{"round": 1, "play": [[1, 4]], "ref": [2]}, ...]; validated by gbv.utils.schedule_template
    template_data: List[Any] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="schedule_templates")

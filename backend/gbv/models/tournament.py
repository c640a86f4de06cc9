from datetime import date, datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from gbv.models.match import Match
    from gbv.models.pool import Pool
    from gbv.models.schedule_template import ScheduleTemplate
    from gbv.models.team import Team

# Tournament phases
STATUS_DRAFT = "draft"
STATUS_SETUP = "setup"
STATUS_POOL_PLAY = "pool_play"
STATUS_BRACKET = "bracket"
STATUS_COMPLETED = "completed"

TOURNAMENT_STATUSES = (STATUS_DRAFT, STATUS_SETUP, STATUS_POOL_PLAY, STATUS_BRACKET, STATUS_COMPLETED)


class Tournament(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    event_date: Optional[date] = None
    access_code: Optional[str] = Field(default=None, unique=True)
    status: str = Field(default=STATUS_DRAFT)  # draft | setup | pool_play | bracket | completed

    # {"tiebreakers": [...], "pools": [{"pool_size": 4, "advance_count": 2}], "bracket_format": "..."}
    advancement_rules: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    court_names: Optional[List[str]] = Field(default=None, sa_column=Column(JSON, nullable=True))

    bracket_generated_at: Optional[datetime] = Field(default=None)
    # Set once the first bracket match goes live or gets a score; blocks rebuild afterwards.
    bracket_started: bool = Field(default=False)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    # Relationships
    pools: List["Pool"] = Relationship(back_populates="tournament")
    teams: List["Team"] = Relationship(back_populates="tournament")
    matches: List["Match"] = Relationship(back_populates="tournament")
    schedule_templates: List["ScheduleTemplate"] = Relationship(back_populates="tournament")

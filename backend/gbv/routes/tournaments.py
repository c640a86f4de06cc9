from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, field_validator
from sqlmodel import Session, select

from gbv.database import get_session
from gbv.models.tournament import TOURNAMENT_STATUSES, Tournament
from gbv.services.advancement_rules import AdvancementRules
from gbv.utils.courts import parse_court_names
from gbv.utils.guards import require_tournament

router = APIRouter()


class TournamentCreate(BaseModel):
    name: str
    event_date: Optional[date] = None
    access_code: Optional[str] = None
    court_names: Optional[Union[str, List[str]]] = None
    advancement_rules: Optional[AdvancementRules] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()


class TournamentUpdate(BaseModel):
    name: Optional[str] = None
    event_date: Optional[date] = None
    access_code: Optional[str] = None
    status: Optional[str] = None
    court_names: Optional[Union[str, List[str]]] = None
    advancement_rules: Optional[AdvancementRules] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v is not None and v not in TOURNAMENT_STATUSES:
            raise ValueError(f"status must be one of {', '.join(TOURNAMENT_STATUSES)}")
        return v


class TournamentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    event_date: Optional[date] = None
    access_code: Optional[str] = None
    status: str
    court_names: Optional[List[str]] = None
    advancement_rules: Optional[Dict[str, Any]] = None
    bracket_generated_at: Optional[datetime] = None
    bracket_started: bool
    created_at: datetime
    updated_at: datetime

    @field_validator("court_names", mode="before")
    @classmethod
    def normalize_court_names(cls, v):
        """Handle legacy storage: court_names may be string '1,2,3' instead of list."""
        if v is None:
            return None
        return parse_court_names(v)


def _rules_json(rules: Optional[AdvancementRules]) -> Optional[Dict[str, Any]]:
    return rules.model_dump(mode="json") if rules is not None else None


@router.get("/tournaments", response_model=List[TournamentResponse])
def list_tournaments(session: Session = Depends(get_session)):
    """List all tournaments"""
    return session.exec(select(Tournament).order_by(Tournament.id)).all()


@router.post("/tournaments", response_model=TournamentResponse, status_code=201)
def create_tournament(tournament_data: TournamentCreate, session: Session = Depends(get_session)):
    """Create a new tournament"""
    tournament = Tournament(
        name=tournament_data.name,
        event_date=tournament_data.event_date,
        access_code=tournament_data.access_code,
        court_names=parse_court_names(tournament_data.court_names) if tournament_data.court_names else None,
        advancement_rules=_rules_json(tournament_data.advancement_rules),
    )
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return tournament


@router.get("/tournaments/{tournament_id}", response_model=TournamentResponse)
def get_tournament(tournament_id: int, session: Session = Depends(get_session)):
    """Get a tournament by ID"""
    return require_tournament(session, tournament_id)


@router.put("/tournaments/{tournament_id}", response_model=TournamentResponse)
def update_tournament(tournament_id: int, tournament_data: TournamentUpdate, session: Session = Depends(get_session)):
    """Update tournament settings. bracket_started is owned by scoring and cannot be set here."""
    tournament = require_tournament(session, tournament_id)

    update_data = tournament_data.model_dump(exclude_unset=True)
    if "advancement_rules" in update_data:
        update_data["advancement_rules"] = _rules_json(tournament_data.advancement_rules)
    if "court_names" in update_data and update_data["court_names"] is not None:
        update_data["court_names"] = parse_court_names(update_data["court_names"])
    if "name" in update_data and not (update_data["name"] or "").strip():
        raise HTTPException(status_code=422, detail="name cannot be empty")

    for field_name, value in update_data.items():
        setattr(tournament, field_name, value)

    tournament.updated_at = datetime.utcnow()
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return tournament

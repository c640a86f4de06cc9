"""
Route guards: lookups that 404 and translation of service failures to HTTP errors.
"""
from typing import List, NoReturn

from fastapi import HTTPException
from sqlmodel import Session

from gbv.models.match import Match
from gbv.models.tournament import Tournament
from gbv.services.errors import HTTP_STATUS_BY_KIND, KIND_VALIDATION


def require_tournament(session: Session, tournament_id: int) -> Tournament:
    """
    Load a tournament or raise 404.

    Raises:
        HTTPException 404: Tournament not found
    """
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return tournament


def require_match(session: Session, tournament_id: int, match_id: int) -> Match:
    """
    Load a match belonging to the tournament or raise 404.

    Raises:
        HTTPException 404: Tournament or match not found
    """
    require_tournament(session, tournament_id)
    match = session.get(Match, match_id)
    if not match or match.tournament_id != tournament_id:
        raise HTTPException(status_code=404, detail="Match not found")
    return match


def raise_for_failure(error_kind: str, errors: List[str]) -> NoReturn:
    """Raise the HTTP error matching a service failure; detail keeps every message."""
    kind = error_kind or KIND_VALIDATION
    raise HTTPException(
        status_code=HTTP_STATUS_BY_KIND.get(kind, 400),
        detail={"kind": kind, "errors": errors},
    )

"""
Pool schedule routes: per-size templates, readiness check, generation and reset.
"""
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session

from gbv.database import get_session
from gbv.models.match import MATCH_TYPE_POOL
from gbv.models.schedule_template import ScheduleTemplate
from gbv.services.default_templates import SUPPORTED_POOL_SIZES, default_template_for_pool_size
from gbv.services.errors import KIND_STATE_GUARD, KIND_VALIDATION
from gbv.services.schedule_generator import (
    check_schedule_prerequisites,
    clear_pool_matches,
    generate_pool_schedule,
    get_template,
)
from gbv.utils.guards import raise_for_failure, require_tournament
from gbv.utils.schedule_template import TemplateFormatError, dump_template, parse_template

logger = logging.getLogger(__name__)

router = APIRouter()


class TemplateResponse(BaseModel):
    tournament_id: int
    pool_size: int
    template_data: List[Dict[str, Any]]
    is_default: bool


class TemplateUpdateRequest(BaseModel):
    template_data: List[Any]


class SchedulePrereqResponse(BaseModel):
    ok: bool
    errors: List[str]
    infos: List[str]
    template_sizes: List[int]


class ScheduleGenerateResponse(BaseModel):
    inserted: int
    created_templates: List[int]


class ClearResponse(BaseModel):
    deleted: int


def _check_pool_size(pool_size: int) -> None:
    if pool_size not in SUPPORTED_POOL_SIZES:
        raise HTTPException(
            status_code=422,
            detail=f"Unsupported pool size {pool_size}. Supported: {', '.join(str(s) for s in SUPPORTED_POOL_SIZES)}",
        )


@router.get("/tournaments/{tournament_id}/schedule-templates/{pool_size}", response_model=TemplateResponse)
def read_template(tournament_id: int, pool_size: int, session: Session = Depends(get_session)):
    """Stored template for a pool size, or the built-in default when none is stored"""
    require_tournament(session, tournament_id)
    _check_pool_size(pool_size)
    tmpl = get_template(session, tournament_id, pool_size)
    if tmpl is None:
        return TemplateResponse(
            tournament_id=tournament_id,
            pool_size=pool_size,
            template_data=default_template_for_pool_size(pool_size),
            is_default=True,
        )
    return TemplateResponse(
        tournament_id=tournament_id, pool_size=pool_size, template_data=tmpl.template_data, is_default=False
    )


@router.put("/tournaments/{tournament_id}/schedule-templates/{pool_size}", response_model=TemplateResponse)
def save_template(
    tournament_id: int, pool_size: int, request: TemplateUpdateRequest, session: Session = Depends(get_session)
):
    """
    Replace the template for a pool size.

    The payload is validated and normalized before storing; every problem is
    reported at once.
    """
    require_tournament(session, tournament_id)
    _check_pool_size(pool_size)
    try:
        rounds = parse_template(request.template_data, pool_size=pool_size)
    except TemplateFormatError as e:
        raise_for_failure(KIND_VALIDATION, e.messages)

    data = dump_template(rounds)
    tmpl = get_template(session, tournament_id, pool_size)
    if tmpl is None:
        tmpl = ScheduleTemplate(tournament_id=tournament_id, pool_size=pool_size, template_data=data)
    else:
        tmpl.template_data = data
    session.add(tmpl)
    session.commit()
    logger.info("Tournament %d: saved schedule template for pool size %d (%d rounds)", tournament_id, pool_size, len(data))
    return TemplateResponse(tournament_id=tournament_id, pool_size=pool_size, template_data=data, is_default=False)


@router.get("/tournaments/{tournament_id}/schedule/prerequisites", response_model=SchedulePrereqResponse)
def schedule_prerequisites(tournament_id: int, session: Session = Depends(get_session)):
    """Read-only readiness check for pool schedule generation"""
    require_tournament(session, tournament_id)
    result = check_schedule_prerequisites(session, tournament_id)
    return SchedulePrereqResponse(
        ok=result.ok, errors=result.errors, infos=result.infos, template_sizes=sorted(result.templates)
    )


@router.post("/tournaments/{tournament_id}/schedule/generate", response_model=ScheduleGenerateResponse)
def generate_schedule(tournament_id: int, session: Session = Depends(get_session)):
    """
    Generate pool matches from templates.

    Raises:
        HTTPException 409: Pool matches already exist (clear them first)
        HTTPException 422: Prerequisites not met
    """
    tournament = require_tournament(session, tournament_id)
    if any(m.match_type == MATCH_TYPE_POOL for m in tournament.matches):
        raise_for_failure(KIND_STATE_GUARD, ["Pool matches already exist. Clear them before generating again."])
    result = generate_pool_schedule(session, tournament_id)
    if not result.ok:
        raise_for_failure(result.error_kind, result.errors)
    return ScheduleGenerateResponse(inserted=result.inserted, created_templates=result.created_templates)


@router.delete("/tournaments/{tournament_id}/schedule/pool-matches", response_model=ClearResponse)
def delete_pool_matches(tournament_id: int, session: Session = Depends(get_session)):
    """Remove all pool matches of a tournament"""
    require_tournament(session, tournament_id)
    return ClearResponse(deleted=clear_pool_matches(session, tournament_id))

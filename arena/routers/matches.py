"""Matches API router."""
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID
import logging

from arena.database import get_db
from arena.dependencies import get_current_user_id
from arena.models.base import MatchStatus
from arena.models.match import Match
from arena.models.match_registration import MatchRegistration
from arena.schemas.match import (
    JoinMatchRequest,
    JoinMatchResponse,
    LeaveMatchResponse,
    MatchRegistrationsResponse,
    MatchResponse,
    MatchResults,
    RegistrationResponse,
)
from arena.services import MatchService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/matches", tags=["matches"])


def build_registrations_response(match: Match, registrations: list[MatchRegistration]) -> MatchRegistrationsResponse:
    return MatchRegistrationsResponse(
        match_id=match.match_id,
        match_name=match.name,
        max_players=match.max_players,
        total_registered=match.active_registrations,
        available_slots=match.available_slots,
        registered_players=[RegistrationResponse.model_validate(item) for item in registrations],
    )


@router.get("", response_model=list[MatchResponse])
async def list_matches(
    status: Optional[MatchStatus] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """List matches, newest start time first."""
    matches = await MatchService(db).list_matches(status)
    return [MatchResponse.model_validate(match) for match in matches]


@router.get("/mine", response_model=list[MatchResponse])
async def list_my_matches(
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Matches the authenticated user is registered for."""
    matches = await MatchService(db).list_matches_for_user(user_id)
    return [MatchResponse.model_validate(match) for match in matches]


@router.get("/{match_id}", response_model=MatchResponse)
async def get_match(match_id: UUID, db: AsyncSession = Depends(get_db)):
    match = await MatchService(db).get_match(match_id)
    return MatchResponse.model_validate(match)


@router.get("/{match_id}/registrations", response_model=MatchRegistrationsResponse)
async def get_registrations(match_id: UUID, db: AsyncSession = Depends(get_db)):
    match, registrations = await MatchService(db).get_registrations(match_id)
    return build_registrations_response(match, registrations)


@router.post("/{match_id}/join", response_model=JoinMatchResponse, status_code=201)
async def join_match(
    match_id: UUID,
    request: Optional[JoinMatchRequest] = None,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Register for a match, paying the entry fee from the wallet."""
    request = request or JoinMatchRequest()
    result = await MatchService(db).join_match(
        match_id,
        user_id,
        squad_id=request.squad_id,
        squad_name=request.squad_name,
        user_name=request.user_name,
        game_id=request.game_id,
    )
    return JoinMatchResponse(
        match_id=result.match.match_id,
        match_name=result.match.name,
        entry_fee=result.registration.entry_fee_amount,
        new_balance=result.new_balance,
        payment_reference=result.registration.payment_reference,
        registration=RegistrationResponse.model_validate(result.registration),
    )


@router.post("/{match_id}/leave", response_model=LeaveMatchResponse)
async def leave_match(
    match_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Leave a match; a paid entry fee is refunded to the wallet."""
    result = await MatchService(db).leave_match(match_id, user_id)
    return LeaveMatchResponse(
        match_id=result.match.match_id,
        match_name=result.match.name,
        refunded_amount=result.refunded_amount,
    )


@router.get("/{match_id}/results", response_model=MatchResults)
async def get_results(match_id: UUID, db: AsyncSession = Depends(get_db)):
    return await MatchService(db).get_results(match_id)

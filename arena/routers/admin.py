"""Admin API router for match management and wallet moderation."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID
import logging

from arena.database import get_db
from arena.dependencies import require_admin
from arena.models.base import WalletStatus
from arena.routers.matches import build_registrations_response
from arena.schemas.match import (
    AutoUpdateResponse,
    LeaveMatchResponse,
    MatchCreate,
    MatchRegistrationsResponse,
    MatchResponse,
    MatchResults,
    MatchResultsUpload,
    MatchStatusUpdate,
    MatchUpdate,
    RegistrationResponse,
)
from arena.schemas.wallet import WalletAuditResponse, WalletResponse, WalletStatusUpdateRequest
from arena.services import MatchService, WalletService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.post("/matches", response_model=MatchResponse, status_code=201)
async def create_match(request: MatchCreate, db: AsyncSession = Depends(get_db)):
    match = await MatchService(db).create_match(request)
    return MatchResponse.model_validate(match)


@router.post("/matches/auto-update", response_model=AutoUpdateResponse)
async def auto_update_statuses(db: AsyncSession = Depends(get_db)):
    """Advance match statuses by start time. Meant to be called by a scheduler."""
    summary = await MatchService(db).auto_update_statuses()
    return AutoUpdateResponse(started=summary.started, completed=summary.completed, total=summary.total)


@router.patch("/matches/{match_id}", response_model=MatchResponse)
async def update_match(match_id: UUID, request: MatchUpdate, db: AsyncSession = Depends(get_db)):
    match = await MatchService(db).update_match(match_id, request)
    return MatchResponse.model_validate(match)


@router.post("/matches/{match_id}/status", response_model=MatchResponse)
async def set_match_status(match_id: UUID, request: MatchStatusUpdate, db: AsyncSession = Depends(get_db)):
    match = await MatchService(db).set_status(match_id, request.status)
    return MatchResponse.model_validate(match)


@router.post("/matches/{match_id}/cancel", response_model=MatchResponse)
async def cancel_match(match_id: UUID, db: AsyncSession = Depends(get_db)):
    """Cancel a match and refund every paid entry."""
    match = await MatchService(db).cancel_match(match_id)
    return MatchResponse.model_validate(match)


@router.delete("/matches/{match_id}")
async def delete_match(match_id: UUID, db: AsyncSession = Depends(get_db)):
    await MatchService(db).delete_match(match_id)
    return {"success": True, "match_id": str(match_id)}


@router.post("/matches/{match_id}/results", response_model=MatchResults)
async def upload_results(match_id: UUID, request: MatchResultsUpload, db: AsyncSession = Depends(get_db)):
    """Upload final results; prize amounts are derived from the match's distribution."""
    match_service = MatchService(db)
    await match_service.upload_results(match_id, request)
    return await match_service.get_results(match_id)


@router.get("/matches/{match_id}/registrations", response_model=MatchRegistrationsResponse)
async def get_registrations(match_id: UUID, include_cancelled: bool = False, db: AsyncSession = Depends(get_db)):
    match, registrations = await MatchService(db).get_registrations(match_id, include_cancelled=include_cancelled)
    return build_registrations_response(match, registrations)


@router.post("/matches/{match_id}/registrations/{user_id}/confirm", response_model=RegistrationResponse)
async def confirm_registration(match_id: UUID, user_id: UUID, db: AsyncSession = Depends(get_db)):
    registration = await MatchService(db).confirm_registration(match_id, user_id)
    return RegistrationResponse.model_validate(registration)


@router.delete("/matches/{match_id}/registrations/{user_id}", response_model=LeaveMatchResponse)
async def remove_player(match_id: UUID, user_id: UUID, db: AsyncSession = Depends(get_db)):
    result = await MatchService(db).remove_player(match_id, user_id)
    return LeaveMatchResponse(
        match_id=result.match.match_id,
        match_name=result.match.name,
        refunded_amount=result.refunded_amount,
    )


@router.patch("/wallets/{wallet_id}/status", response_model=WalletResponse)
async def set_wallet_status(
    wallet_id: UUID,
    request: WalletStatusUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    wallet = await WalletService(db).set_status(wallet_id, WalletStatus(request.status))
    return WalletResponse.model_validate(wallet)


@router.get("/wallets/{wallet_id}/audit", response_model=WalletAuditResponse)
async def audit_wallet(wallet_id: UUID, db: AsyncSession = Depends(get_db)):
    audit = await WalletService(db).audit_wallet(wallet_id)
    return WalletAuditResponse.model_validate(audit)

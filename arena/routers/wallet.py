"""Wallet API router."""
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID
import logging

from arena.config import get_settings
from arena.database import get_db
from arena.dependencies import get_current_user_id
from arena.schemas.base import Pagination
from arena.schemas.wallet import (
    BalanceResponse,
    CreateWalletRequest,
    DepositRequest,
    DepositResponse,
    PaymentStatusResponse,
    PaymentWebhookPayload,
    TransactionListResponse,
    TransactionResponse,
    WalletAuditResponse,
    WalletResponse,
)
from arena.services import PaymentService, WalletService, verify_webhook_signature
from arena.utils.exceptions import TransactionNotFoundError

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/wallet", tags=["wallet"])

WEBHOOK_SIGNATURE_HEADER = "x-webhook-signature"


@router.post("", response_model=WalletResponse, status_code=201)
async def create_wallet(
    request: CreateWalletRequest,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Create the authenticated user's wallet."""
    wallet = await WalletService(db).create_wallet(user_id, request.user_name, request.user_email)
    return WalletResponse.model_validate(wallet)


@router.get("", response_model=WalletResponse)
async def get_wallet(
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    wallet = await WalletService(db).get_wallet_by_user(user_id)
    return WalletResponse.model_validate(wallet)


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Balance of the user's wallet; zero with a create hint when there is none."""
    wallet = await WalletService(db).find_wallet_by_user(user_id)
    if not wallet:
        return BalanceResponse(balance=0, can_create_wallet=True)
    return BalanceResponse(balance=wallet.balance, can_create_wallet=False, wallet_id=wallet.wallet_id)


@router.get("/transactions", response_model=TransactionListResponse)
async def list_transactions(
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Transaction history, newest first."""
    wallet_service = WalletService(db)
    wallet = await wallet_service.get_wallet_by_user(user_id)
    transactions, total, limit = await wallet_service.list_transactions(wallet.wallet_id, page=page, limit=limit)

    return TransactionListResponse(
        transactions=[TransactionResponse.model_validate(item) for item in transactions],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            pages=WalletService.page_count(total, limit),
        ),
    )


@router.get("/audit", response_model=WalletAuditResponse)
async def audit_wallet(
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Recompute the wallet counters from the ledger."""
    wallet_service = WalletService(db)
    wallet = await wallet_service.get_wallet_by_user(user_id)
    audit = await wallet_service.audit_wallet(wallet.wallet_id)
    return WalletAuditResponse.model_validate(audit)


@router.post("/deposits", response_model=DepositResponse, status_code=201)
async def initiate_deposit(
    request: DepositRequest,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Record a pending deposit for the payment gateway to settle."""
    wallet = await WalletService(db).get_wallet_by_user(user_id)
    payment_service = PaymentService(db)
    transaction = await payment_service.initiate_deposit(wallet.wallet_id, user_id, request.amount)

    return DepositResponse(
        order_id=transaction.reference_id,
        amount=transaction.amount,
        status=transaction.status,
        payment_url=payment_service.payment_url(transaction),
    )


@router.get("/deposits/{order_id}", response_model=PaymentStatusResponse)
async def get_deposit_status(
    order_id: str,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    wallet = await WalletService(db).get_wallet_by_user(user_id)
    transaction = await PaymentService(db).get_payment_status(order_id)
    if transaction.wallet_id != wallet.wallet_id:
        # Do not reveal other users' orders
        raise TransactionNotFoundError()

    return PaymentStatusResponse(
        order_id=transaction.reference_id,
        status=transaction.status,
        amount=transaction.amount,
        description=transaction.description,
        created_at=transaction.created_at,
    )


@router.post("/webhook")
async def payment_webhook(request: Request, db: AsyncSession = Depends(get_db)):
    """Payment gateway status callback, authenticated by an HMAC signature over the body."""
    body = await request.body()
    signature = request.headers.get(WEBHOOK_SIGNATURE_HEADER)
    if not verify_webhook_signature(body, signature, settings.payment_webhook_secret):
        logger.warning("Rejected payment webhook with invalid signature")
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    try:
        payload = PaymentWebhookPayload.model_validate_json(body)
    except ValidationError as e:
        logger.warning(f"Malformed payment webhook: {e}")
        raise HTTPException(status_code=400, detail="Malformed webhook payload")

    transaction = await PaymentService(db).apply_payment_status(
        payload.order_id,
        payload.order_status,
        amount=payload.order_amount,
    )
    return {"success": True, "order_id": transaction.reference_id, "status": transaction.status}

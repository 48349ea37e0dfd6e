"""Wallet-related schemas."""
from datetime import datetime
from typing import Any, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, constr

from arena.schemas.base import BaseSchema, Pagination


class CreateWalletRequest(BaseModel):
    """Create wallet request; the owner is the authenticated user."""
    user_name: constr(strip_whitespace=True, min_length=1, max_length=100)
    user_email: constr(strip_whitespace=True, min_length=3, max_length=255)


class WalletResponse(BaseSchema):
    """Wallet details."""
    wallet_id: UUID
    user_id: UUID
    user_name: str
    user_email: str
    balance: int
    total_deposits: int
    total_withdrawals: int
    status: str
    last_transaction_at: Optional[datetime] = None
    created_at: datetime


class BalanceResponse(BaseSchema):
    """Wallet balance; users without a wallet see zero and may create one."""
    balance: int
    can_create_wallet: bool
    wallet_id: Optional[UUID] = None


class TransactionResponse(BaseSchema):
    """Single ledger entry."""
    transaction_id: UUID
    wallet_id: UUID
    type: str
    amount: int
    description: str
    reference_id: str
    status: str
    payment_method: str
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="transaction_metadata")
    balance_after: Optional[int] = None
    created_at: datetime


class TransactionListResponse(BaseSchema):
    """Paginated transaction history, newest first."""
    transactions: list[TransactionResponse]
    pagination: Pagination


class WalletAuditResponse(BaseSchema):
    """Comparison of cached wallet counters against the ledger."""
    wallet_id: UUID
    balance: int
    ledger_balance: int
    total_deposits: int
    ledger_deposits: int
    total_withdrawals: int
    ledger_withdrawals: int
    pending_credits: int
    is_consistent: bool


class WalletStatusUpdateRequest(BaseModel):
    """Admin wallet status change."""
    status: Literal["active", "suspended", "closed"]


class DepositRequest(BaseModel):
    """Start a gateway deposit."""
    amount: int = Field(..., gt=0)


class DepositResponse(BaseSchema):
    """Pending deposit created for the gateway."""
    order_id: str
    amount: int
    status: str
    payment_url: str


class PaymentWebhookPayload(BaseModel):
    """Gateway status callback body."""
    order_id: str
    order_amount: Optional[int] = None
    order_status: str
    payment_mode: Optional[str] = None


class PaymentStatusResponse(BaseSchema):
    """Status of a gateway deposit."""
    order_id: str
    status: str
    amount: int
    description: str
    created_at: datetime

"""Two-phase gateway deposits: pending credit first, balance change on confirmation."""
from uuid import UUID
import hashlib
import hmac
import logging
import secrets
import time

from sqlalchemy.ext.asyncio import AsyncSession

from arena.config import get_settings
from arena.models.base import TransactionStatus, TransactionType
from arena.models.transaction import WalletTransaction
from arena.services.wallet_service import WalletService
from arena.utils.exceptions import (
    ArenaValidationError,
    PaymentAmountMismatchError,
    TransactionNotFoundError,
    WalletAccessDeniedError,
)

logger = logging.getLogger(__name__)

GATEWAY_PAYMENT_METHOD = "gateway"
PAID_STATUSES = frozenset({"PAID", "SUCCESS"})
FAILED_STATUSES = frozenset({"FAILED", "CANCELLED", "USER_DROPPED", "EXPIRED"})


def generate_order_id() -> str:
    """Order id in the gateway's WALLET_<millis>_<random> format."""
    return f"WALLET_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


def verify_webhook_signature(payload: bytes, signature: str | None, secret: str) -> bool:
    """Check an HMAC-SHA256 hex signature over the raw webhook body."""
    if not signature:
        return False
    expected = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)


class PaymentService:
    """Records gateway deposits and applies their eventual outcome.

    No request is made to the gateway from here; order creation on the
    gateway side belongs to the caller.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.settings = get_settings()
        self.wallet_service = WalletService(db)

    async def initiate_deposit(self, wallet_id: UUID, user_id: UUID, amount: int) -> WalletTransaction:
        """
        Create a pending deposit for the gateway to settle later.

        Raises:
            ArenaValidationError: If amount is outside the configured limits
            WalletNotFoundError: If the wallet does not exist
            WalletAccessDeniedError: If the user does not own the wallet
        """
        if amount < self.settings.min_deposit_amount or amount > self.settings.max_deposit_amount:
            raise ArenaValidationError(
                f"Amount must be between {self.settings.min_deposit_amount} "
                f"and {self.settings.max_deposit_amount}"
            )

        wallet = await self.wallet_service.get_wallet(wallet_id)
        if wallet.user_id != user_id:
            logger.warning(f"User {user_id} attempted deposit into wallet {wallet_id} owned by {wallet.user_id}")
            raise WalletAccessDeniedError()

        order_id = generate_order_id()
        transaction = await self.wallet_service.record_pending_credit(
            wallet_id,
            amount,
            description=f"Add money to wallet - Order: {order_id}",
            reference_id=order_id,
            payment_method=GATEWAY_PAYMENT_METHOD,
            metadata={"order_id": order_id, "payment_type": "wallet_recharge"},
        )
        logger.info(f"Deposit initiated: wallet={wallet_id}, order={order_id}, amount={amount}")
        return transaction

    def payment_url(self, transaction: WalletTransaction) -> str:
        return f"{self.settings.frontend_url}/wallet?order_id={transaction.reference_id}"

    async def get_payment_status(self, order_id: str) -> WalletTransaction:
        transaction = await self.wallet_service.find_transaction_by_reference(order_id)
        if not transaction or transaction.type != TransactionType.CREDIT.value:
            raise TransactionNotFoundError()
        return transaction

    async def apply_payment_status(
        self,
        order_id: str,
        order_status: str,
        amount: int | None = None,
    ) -> WalletTransaction:
        """
        Apply a gateway status callback to a pending deposit.

        Unknown intermediate statuses leave the deposit pending. Repeated
        callbacks for an order that is already settled change nothing.

        Raises:
            TransactionNotFoundError: If no deposit has this order id
            PaymentAmountMismatchError: If the reported amount differs from the order
            WalletInactiveError: If a paid order targets a closed wallet
        """
        transaction = await self.get_payment_status(order_id)
        normalized = order_status.strip().upper()

        if transaction.status != TransactionStatus.PENDING.value:
            logger.info(f"Payment callback for settled order {order_id} ({transaction.status}), ignoring")
            return transaction

        if amount is not None and amount != transaction.amount:
            logger.error(f"Payment amount mismatch for order {order_id}: expected {transaction.amount}, got {amount}")
            raise PaymentAmountMismatchError(
                f"Order {order_id} is for {transaction.amount}, gateway reported {amount}"
            )

        if normalized in PAID_STATUSES:
            return await self.wallet_service.settle_pending_credit(transaction, succeeded=True)
        if normalized in FAILED_STATUSES:
            return await self.wallet_service.settle_pending_credit(transaction, succeeded=False)

        logger.info(f"Payment callback for order {order_id} with non-final status {normalized}")
        return transaction

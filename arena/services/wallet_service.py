"""Wallet ledger service for atomic balance updates."""
from dataclasses import dataclass
from typing import Any
from uuid import UUID
import logging
import math
import uuid

from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from arena.config import get_settings
from arena.models.base import TransactionStatus, TransactionType, WalletStatus
from arena.models.transaction import WalletTransaction
from arena.models.wallet import Wallet
from arena.utils import utc_now
from arena.utils.exceptions import (
    DuplicateReferenceError,
    InsufficientBalanceError,
    InvalidAmountError,
    WalletAlreadyExistsError,
    WalletInactiveError,
    WalletNotFoundError,
)

logger = logging.getLogger(__name__)

OPENING_BALANCE_METHOD = "opening_balance"


@dataclass(frozen=True)
class WalletAudit:
    """Cached wallet counters next to the values recomputed from the ledger."""
    wallet_id: UUID
    balance: int
    ledger_balance: int
    total_deposits: int
    ledger_deposits: int
    total_withdrawals: int
    ledger_withdrawals: int
    pending_credits: int

    @property
    def is_consistent(self) -> bool:
        return (
            self.balance == self.ledger_balance
            and self.total_deposits == self.ledger_deposits
            and self.total_withdrawals == self.ledger_withdrawals
        )


class WalletService:
    """Service for managing wallets and their transaction ledger.

    Balance changes are single conditional UPDATE statements, so concurrent
    debits on one wallet can never overdraw it: the database re-checks
    ``balance >= amount`` at write time instead of trusting an earlier read.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.settings = get_settings()

    async def create_wallet(
        self,
        user_id: UUID,
        user_name: str,
        user_email: str,
        initial_balance: int = 0,
    ) -> Wallet:
        """
        Create the wallet for a user.

        A non-zero ``initial_balance`` is booked as an opening credit so the
        ledger alone explains the balance.

        Raises:
            WalletAlreadyExistsError: If the user already has a wallet
            InvalidAmountError: If initial_balance is negative
        """
        if initial_balance < 0:
            raise InvalidAmountError("Initial balance cannot be negative")

        existing = await self.find_wallet_by_user(user_id)
        if existing:
            raise WalletAlreadyExistsError()

        wallet = Wallet(
            wallet_id=uuid.uuid4(),
            user_id=user_id,
            user_name=user_name,
            user_email=user_email,
            balance=0,
            total_deposits=0,
            total_withdrawals=0,
            status=WalletStatus.ACTIVE.value,
        )
        self.db.add(wallet)
        try:
            await self.db.flush()
        except IntegrityError as exc:
            await self.db.rollback()
            raise WalletAlreadyExistsError() from exc

        if initial_balance > 0:
            wallet = await self.credit(
                wallet.wallet_id,
                initial_balance,
                description="Opening balance",
                reference_id=f"OPENING_{wallet.wallet_id.hex}",
                payment_method=OPENING_BALANCE_METHOD,
                auto_commit=False,
            )

        await self.db.commit()
        await self.db.refresh(wallet)

        logger.info(f"Wallet created: wallet={wallet.wallet_id}, user={user_id}, balance={wallet.balance}")
        return wallet

    async def get_wallet(self, wallet_id: UUID) -> Wallet:
        """Get wallet by id, raising WalletNotFoundError when missing."""
        wallet = await self._load_wallet(wallet_id)
        if not wallet:
            raise WalletNotFoundError()
        return wallet

    async def find_wallet_by_user(self, user_id: UUID) -> Wallet | None:
        result = await self.db.execute(
            select(Wallet).where(Wallet.user_id == user_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_wallet_by_user(self, user_id: UUID) -> Wallet:
        """Get a user's wallet, raising WalletNotFoundError when missing."""
        wallet = await self.find_wallet_by_user(user_id)
        if not wallet:
            raise WalletNotFoundError()
        return wallet

    async def get_balance(self, user_id: UUID) -> int:
        wallet = await self.get_wallet_by_user(user_id)
        return wallet.balance

    async def can_afford(self, wallet_id: UUID, amount: int) -> bool:
        """Optimistic pre-check; ``debit`` performs the authoritative check."""
        wallet = await self.get_wallet(wallet_id)
        return wallet.can_afford(amount)

    async def credit(
        self,
        wallet_id: UUID,
        amount: int,
        description: str,
        reference_id: str,
        payment_method: str = "system",
        metadata: dict[str, Any] | None = None,
        auto_commit: bool = True,
        require_active: bool = True,
    ) -> Wallet:
        """
        Add money to a wallet and record a successful credit.

        Args:
            wallet_id: Wallet UUID
            amount: Positive amount to add
            description: Human-readable ledger description
            reference_id: Audit token, unique across the ledger
            payment_method: Source of the funds
            metadata: Free-form data stored with the ledger entry
            auto_commit: If True, commits immediately. If False, caller must commit.
            require_active: If False, suspended wallets are credited too (refunds)

        Returns:
            The updated wallet

        Raises:
            InvalidAmountError: If amount <= 0
            WalletNotFoundError / WalletInactiveError: If the wallet cannot be credited
            DuplicateReferenceError: If reference_id was already used
        """
        self._require_positive(amount)
        now = utc_now()

        conditions = [Wallet.wallet_id == wallet_id]
        if require_active:
            conditions.append(Wallet.status == WalletStatus.ACTIVE.value)
        else:
            conditions.append(Wallet.status != WalletStatus.CLOSED.value)

        result = await self.db.execute(
            update(Wallet)
            .where(*conditions)
            .values(
                balance=Wallet.balance + amount,
                total_deposits=Wallet.total_deposits + amount,
                last_transaction_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self._raise_unavailable(wallet_id, auto_commit)

        wallet = await self._load_wallet(wallet_id)
        await self._record_transaction(
            wallet,
            trans_type=TransactionType.CREDIT,
            amount=amount,
            description=description,
            reference_id=reference_id,
            payment_method=payment_method,
            metadata=metadata,
            auto_commit=auto_commit,
        )

        logger.info(
            f"Wallet credited: wallet={wallet_id}, amount={amount}, reference={reference_id}, "
            f"new_balance={wallet.balance}, auto_commit={auto_commit}"
        )
        return wallet

    async def debit(
        self,
        wallet_id: UUID,
        amount: int,
        description: str,
        reference_id: str,
        payment_method: str = "system",
        metadata: dict[str, Any] | None = None,
        auto_commit: bool = True,
    ) -> Wallet:
        """
        Take money from an active wallet and record a successful debit.

        The sufficiency check and the decrement are one statement; on any
        failure the wallet is left untouched.

        Raises:
            InvalidAmountError: If amount <= 0
            InsufficientBalanceError: If balance < amount
            WalletNotFoundError / WalletInactiveError: If the wallet cannot be debited
            DuplicateReferenceError: If reference_id was already used
        """
        self._require_positive(amount)
        now = utc_now()

        result = await self.db.execute(
            update(Wallet)
            .where(
                Wallet.wallet_id == wallet_id,
                Wallet.status == WalletStatus.ACTIVE.value,
                Wallet.balance >= amount,
            )
            .values(
                balance=Wallet.balance - amount,
                total_withdrawals=Wallet.total_withdrawals + amount,
                last_transaction_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self._raise_unavailable(wallet_id, auto_commit, required=amount)

        wallet = await self._load_wallet(wallet_id)
        await self._record_transaction(
            wallet,
            trans_type=TransactionType.DEBIT,
            amount=amount,
            description=description,
            reference_id=reference_id,
            payment_method=payment_method,
            metadata=metadata,
            auto_commit=auto_commit,
        )

        logger.info(
            f"Wallet debited: wallet={wallet_id}, amount={amount}, reference={reference_id}, "
            f"new_balance={wallet.balance}, auto_commit={auto_commit}"
        )
        return wallet

    async def record_pending_credit(
        self,
        wallet_id: UUID,
        amount: int,
        description: str,
        reference_id: str,
        payment_method: str,
        metadata: dict[str, Any] | None = None,
    ) -> WalletTransaction:
        """Record a credit awaiting external confirmation. The balance is not touched."""
        self._require_positive(amount)
        wallet = await self.get_wallet(wallet_id)
        if not wallet.is_active:
            raise WalletInactiveError()

        transaction = WalletTransaction(
            transaction_id=uuid.uuid4(),
            wallet_id=wallet_id,
            type=TransactionType.CREDIT.value,
            amount=amount,
            description=description,
            reference_id=reference_id,
            status=TransactionStatus.PENDING.value,
            payment_method=payment_method,
            transaction_metadata=metadata or {},
        )
        self.db.add(transaction)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise DuplicateReferenceError() from exc
        await self.db.refresh(transaction)

        logger.info(f"Pending credit recorded: wallet={wallet_id}, amount={amount}, reference={reference_id}")
        return transaction

    async def settle_pending_credit(self, transaction: WalletTransaction, succeeded: bool) -> WalletTransaction:
        """
        Resolve a pending credit exactly once.

        The status flip is conditional on the entry still being pending, so a
        redelivered confirmation cannot credit the wallet twice. Funds the
        gateway has already captured are credited even if the wallet was
        suspended in the meantime; a closed wallet refuses them and the entry
        stays pending.

        Raises:
            WalletInactiveError: If a successful payment targets a closed wallet
        """
        now = utc_now()
        new_status = TransactionStatus.SUCCESS if succeeded else TransactionStatus.FAILED
        transaction_id = transaction.transaction_id
        reference_id = transaction.reference_id
        wallet_id = transaction.wallet_id
        amount = transaction.amount

        result = await self.db.execute(
            update(WalletTransaction)
            .where(
                WalletTransaction.transaction_id == transaction_id,
                WalletTransaction.status == TransactionStatus.PENDING.value,
            )
            .values(status=new_status.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            logger.info(f"Pending credit {reference_id} already settled, ignoring")
            return await self._load_transaction(transaction_id)

        if succeeded:
            result = await self.db.execute(
                update(Wallet)
                .where(Wallet.wallet_id == wallet_id, Wallet.status != WalletStatus.CLOSED.value)
                .values(
                    balance=Wallet.balance + amount,
                    total_deposits=Wallet.total_deposits + amount,
                    last_transaction_at=now,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await self.db.rollback()
                logger.error(
                    f"Paid deposit {reference_id} for {amount} targets closed or missing wallet {wallet_id}; "
                    f"left pending"
                )
                raise WalletInactiveError("Wallet is closed")

            wallet = await self._load_wallet(wallet_id)
            await self.db.execute(
                update(WalletTransaction)
                .where(WalletTransaction.transaction_id == transaction_id)
                .values(balance_after=wallet.balance)
                .execution_options(synchronize_session=False)
            )

        await self.db.commit()
        settled = await self._load_transaction(transaction_id)
        logger.info(f"Pending credit settled: reference={reference_id}, status={new_status.value}, amount={amount}")
        return settled

    async def find_transaction_by_reference(self, reference_id: str) -> WalletTransaction | None:
        result = await self.db.execute(
            select(WalletTransaction)
            .where(WalletTransaction.reference_id == reference_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_transactions(
        self,
        wallet_id: UUID,
        page: int = 1,
        limit: int | None = None,
    ) -> tuple[list[WalletTransaction], int, int]:
        """
        Get wallet transaction history, newest first.

        Returns:
            Tuple of (transactions on the page, total transaction count, effective limit)
        """
        await self.get_wallet(wallet_id)

        limit = limit or self.settings.transactions_page_size
        limit = max(1, min(limit, self.settings.max_page_size))
        page = max(1, page)

        total = await self.db.scalar(
            select(func.count(WalletTransaction.transaction_id)).where(WalletTransaction.wallet_id == wallet_id)
        )
        result = await self.db.execute(
            select(WalletTransaction)
            .where(WalletTransaction.wallet_id == wallet_id)
            .order_by(WalletTransaction.created_at.desc())
            .limit(limit)
            .offset((page - 1) * limit)
        )
        return list(result.scalars().all()), int(total or 0), limit

    @staticmethod
    def page_count(total: int, limit: int) -> int:
        return math.ceil(total / limit) if limit else 0

    async def audit_wallet(self, wallet_id: UUID) -> WalletAudit:
        """Recompute balance and totals from successful ledger entries."""
        wallet = await self.get_wallet(wallet_id)

        success = WalletTransaction.status == TransactionStatus.SUCCESS.value
        credits = func.coalesce(func.sum(case(
            (success & (WalletTransaction.type == TransactionType.CREDIT.value), WalletTransaction.amount),
            else_=0,
        )), 0)
        debits = func.coalesce(func.sum(case(
            (success & (WalletTransaction.type == TransactionType.DEBIT.value), WalletTransaction.amount),
            else_=0,
        )), 0)
        pending = func.coalesce(func.sum(case(
            (
                (WalletTransaction.status == TransactionStatus.PENDING.value)
                & (WalletTransaction.type == TransactionType.CREDIT.value),
                WalletTransaction.amount,
            ),
            else_=0,
        )), 0)

        row = (await self.db.execute(
            select(credits, debits, pending).where(WalletTransaction.wallet_id == wallet_id)
        )).one()
        ledger_deposits, ledger_withdrawals, pending_credits = (int(value) for value in row)

        audit = WalletAudit(
            wallet_id=wallet.wallet_id,
            balance=wallet.balance,
            ledger_balance=ledger_deposits - ledger_withdrawals,
            total_deposits=wallet.total_deposits,
            ledger_deposits=ledger_deposits,
            total_withdrawals=wallet.total_withdrawals,
            ledger_withdrawals=ledger_withdrawals,
            pending_credits=pending_credits,
        )
        if not audit.is_consistent:
            logger.error(f"Wallet audit mismatch: {audit}")
        return audit

    async def set_status(self, wallet_id: UUID, status: WalletStatus) -> Wallet:
        """Suspend, close or reactivate a wallet."""
        wallet = await self.get_wallet(wallet_id)
        wallet.status = WalletStatus(status).value
        await self.db.commit()
        await self.db.refresh(wallet)
        logger.info(f"Wallet {wallet_id} status set to {wallet.status}")
        return wallet

    @staticmethod
    def _require_positive(amount: int) -> None:
        if amount is None or amount <= 0:
            raise InvalidAmountError(f"Amount must be greater than zero, got {amount}")

    async def _load_wallet(self, wallet_id: UUID) -> Wallet | None:
        result = await self.db.execute(
            select(Wallet).where(Wallet.wallet_id == wallet_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _load_transaction(self, transaction_id: UUID) -> WalletTransaction:
        result = await self.db.execute(
            select(WalletTransaction)
            .where(WalletTransaction.transaction_id == transaction_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def _raise_unavailable(self, wallet_id: UUID, auto_commit: bool, required: int | None = None) -> None:
        """Work out why a conditional wallet update matched no row and raise accordingly."""
        wallet = await self._load_wallet(wallet_id)
        # Read before rolling back; rollback expires loaded instances
        status = wallet.status if wallet else None
        available = wallet.balance if wallet else 0
        if auto_commit:
            await self.db.rollback()

        if status is None:
            raise WalletNotFoundError()
        if status != WalletStatus.ACTIVE.value:
            raise WalletInactiveError(f"Wallet is {status}")
        if required is not None:
            logger.warning(
                f"Insufficient balance: wallet={wallet_id}, required={required}, available={available}"
            )
            raise InsufficientBalanceError(
                f"Insufficient balance: required {required}, available {available}",
                required=required,
                available=available,
            )
        raise WalletNotFoundError()

    async def _record_transaction(
        self,
        wallet: Wallet,
        trans_type: TransactionType,
        amount: int,
        description: str,
        reference_id: str,
        payment_method: str,
        metadata: dict[str, Any] | None,
        auto_commit: bool,
    ) -> WalletTransaction:
        transaction = WalletTransaction(
            transaction_id=uuid.uuid4(),
            wallet_id=wallet.wallet_id,
            type=trans_type.value,
            amount=amount,
            description=description,
            reference_id=reference_id,
            status=TransactionStatus.SUCCESS.value,
            payment_method=payment_method,
            transaction_metadata=metadata or {},
            balance_after=wallet.balance,
        )
        self.db.add(transaction)
        try:
            await self.db.flush()
        except IntegrityError as exc:
            await self.db.rollback()
            raise DuplicateReferenceError(f"Transaction reference already used: {reference_id}") from exc

        if auto_commit:
            await self.db.commit()
            await self.db.refresh(wallet)
        return transaction

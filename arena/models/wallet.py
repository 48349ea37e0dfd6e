"""Wallet model."""
from sqlalchemy import Column, String, Integer, DateTime, CheckConstraint, Index
import uuid
from datetime import datetime, UTC
from arena.database import Base
from arena.models.base import get_uuid_column, WalletStatus


class Wallet(Base):
    """Per-user wallet holding the authoritative balance.

    ``total_deposits`` and ``total_withdrawals`` are cached aggregates of the
    successful ledger entries; ``WalletService.audit_wallet`` recomputes them.
    """
    __tablename__ = "wallets"

    wallet_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    user_id = get_uuid_column(nullable=False)
    user_name = Column(String(100), nullable=False)
    user_email = Column(String(255), nullable=False, index=True)
    balance = Column(Integer, default=0, nullable=False)
    total_deposits = Column(Integer, default=0, nullable=False)
    total_withdrawals = Column(Integer, default=0, nullable=False)
    status = Column(String(20), default=WalletStatus.ACTIVE.value, nullable=False, index=True)
    last_transaction_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_wallets_balance_non_negative"),
        CheckConstraint("total_deposits >= 0", name="ck_wallets_total_deposits_non_negative"),
        CheckConstraint("total_withdrawals >= 0", name="ck_wallets_total_withdrawals_non_negative"),
        Index("ix_wallets_user_id", "user_id", unique=True),
    )

    @property
    def is_active(self) -> bool:
        return self.status == WalletStatus.ACTIVE.value

    def can_afford(self, amount: int) -> bool:
        """Optimistic check only; ``WalletService.debit`` is authoritative."""
        return self.balance >= amount

    def __repr__(self):
        return (f"<Wallet(wallet_id={self.wallet_id}, user_id={self.user_id}, "
                f"balance={self.balance}, status={self.status})>")

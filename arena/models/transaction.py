"""Wallet transaction ledger model."""
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Index, JSON, CheckConstraint
import uuid
from datetime import datetime, UTC
from arena.database import Base
from arena.models.base import get_uuid_column, TransactionStatus


class WalletTransaction(Base):
    """Append-only ledger entry.

    Rows are never deleted or edited, except that ``status`` moves from
    ``pending`` to ``success``/``failed`` when a gateway deposit settles.
    """
    __tablename__ = "wallet_transactions"

    transaction_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    wallet_id = get_uuid_column(ForeignKey("wallets.wallet_id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(10), nullable=False)  # credit / debit
    amount = Column(Integer, nullable=False)  # Always positive; direction is carried by type
    description = Column(String(255), nullable=False)
    # Caller supplied audit token: MATCH_<id>_<n>, REFUND_<ref>, WALLET_<ts>_<rand>, ...
    reference_id = Column(String(128), nullable=False, unique=True)
    status = Column(String(10), default=TransactionStatus.PENDING.value, nullable=False, index=True)
    payment_method = Column(String(30), default="system", nullable=False)
    transaction_metadata = Column("metadata", JSON, default=dict, nullable=False)
    balance_after = Column(Integer, nullable=True)  # For audit trail, set once the entry succeeds
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False, index=True)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_wallet_transactions_amount_positive"),
        Index("ix_wallet_transactions_wallet_created", "wallet_id", "created_at"),
    )

    def __repr__(self):
        return (f"<WalletTransaction(transaction_id={self.transaction_id}, type={self.type}, "
                f"amount={self.amount}, status={self.status})>")

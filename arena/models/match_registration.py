"""Match registration model."""
from sqlalchemy import Column, String, Integer, DateTime, Boolean, ForeignKey, UniqueConstraint, Index
from datetime import datetime, UTC
import uuid

from arena.database import Base
from arena.models.base import get_uuid_column, RegistrationStatus, ACTIVE_REGISTRATION_STATUSES


class MatchRegistration(Base):
    """A player's entry in a match.

    One row per (match, user). Leaving cancels the row; joining again
    reactivates it.
    """
    __tablename__ = "match_registrations"

    registration_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    match_id = get_uuid_column(ForeignKey("matches.match_id", ondelete="CASCADE"), nullable=False)
    user_id = get_uuid_column(nullable=False, index=True)
    user_name = Column(String(100), nullable=True)
    game_id = Column(String(64), nullable=True)  # In-game player id, used to match result rows
    squad_id = get_uuid_column(nullable=True)
    squad_name = Column(String(100), nullable=True)
    registered_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))
    entry_fee_paid = Column(Boolean, nullable=False, default=False)
    entry_fee_amount = Column(Integer, nullable=False, default=0)  # Amount actually debited, refunded on cancel
    payment_reference = Column(String(128), nullable=True)
    refund_reference = Column(String(128), nullable=True)
    status = Column(String(20), nullable=False, default=RegistrationStatus.REGISTERED.value)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("match_id", "user_id", name="uq_match_registrations_match_user"),
        Index("ix_match_registrations_match_status", "match_id", "status"),
    )

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_REGISTRATION_STATUSES

    def __repr__(self):
        return (f"<MatchRegistration(match_id={self.match_id}, user_id={self.user_id}, "
                f"status={self.status})>")

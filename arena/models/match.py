"""Match model."""
from sqlalchemy import Column, String, Integer, DateTime, Boolean, JSON, CheckConstraint, Index
import uuid
from datetime import datetime, UTC
from arena.database import Base
from arena.models.base import get_uuid_column, MatchStatus, MatchMap


class Match(Base):
    """Tournament match.

    ``prize_distribution`` holds the rank/kill/custom reward breakdown and is
    reconciled against ``prize_pool`` before every insert and update.
    ``active_registrations`` counts non-cancelled registrations and is the
    capacity counter joins reserve against.
    """
    __tablename__ = "matches"

    match_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    name = Column(String(120), nullable=False)
    entry_fee = Column(Integer, nullable=False, default=0)
    prize_pool = Column(Integer, nullable=False, default=0)
    max_players = Column(Integer, nullable=False)
    map = Column(String(20), nullable=False, default=MatchMap.ERANGEL.value)
    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=MatchStatus.UPCOMING.value, index=True)
    prize_distribution = Column(JSON, nullable=False)
    active_registrations = Column(Integer, nullable=False, default=0)

    # Results are written once, when the match completes
    results = Column(JSON, nullable=True)
    results_completed = Column(Boolean, nullable=False, default=False)
    results_completed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("entry_fee >= 0", name="ck_matches_entry_fee_non_negative"),
        CheckConstraint("prize_pool >= 0", name="ck_matches_prize_pool_non_negative"),
        CheckConstraint("max_players >= 1 AND max_players <= 100", name="ck_matches_max_players_range"),
        CheckConstraint(
            "active_registrations >= 0 AND active_registrations <= max_players",
            name="ck_matches_active_registrations_capacity",
        ),
        Index("ix_matches_status_start_time", "status", "start_time"),
    )

    @property
    def available_slots(self) -> int:
        return max(0, self.max_players - self.active_registrations)

    def __repr__(self):
        return f"<Match(match_id={self.match_id}, name={self.name}, status={self.status})>"

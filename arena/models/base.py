"""Base utilities for SQLAlchemy models."""
from enum import Enum
import uuid
from sqlalchemy import Column, String
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.sql import sqltypes


class WalletStatus(str, Enum):
    """Wallet status enumeration for type safety."""
    ACTIVE = "active"
    SUSPENDED = "suspended"
    CLOSED = "closed"


class TransactionType(str, Enum):
    """Ledger entry direction."""
    CREDIT = "credit"
    DEBIT = "debit"


class TransactionStatus(str, Enum):
    """Ledger entry status. Only ``success`` entries count toward the balance."""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"


class MatchStatus(str, Enum):
    """Match lifecycle status."""
    UPCOMING = "upcoming"
    LIVE = "live"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RegistrationStatus(str, Enum):
    """Per-player registration status."""
    REGISTERED = "registered"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class MatchMap(str, Enum):
    """Venues a match can be played on."""
    ERANGEL = "Erangel"
    SANHOK = "Sanhok"
    MIRAMAR = "Miramar"
    VIKENDI = "Vikendi"


TERMINAL_MATCH_STATUSES = frozenset({MatchStatus.COMPLETED.value, MatchStatus.CANCELLED.value})
ACTIVE_REGISTRATION_STATUSES = (RegistrationStatus.REGISTERED.value, RegistrationStatus.CONFIRMED.value)


class AdaptiveUUID(sqltypes.TypeDecorator):
    """UUID stored natively on PostgreSQL and as 32-char hex elsewhere."""

    impl = sqltypes.String
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PGUUID(as_uuid=True))
        return dialect.type_descriptor(String(36))

    @staticmethod
    def _coerce_uuid(value):
        if value is None or isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(str(value))

    def process_bind_param(self, value, dialect):
        value = self._coerce_uuid(value)
        if value is None:
            return None
        if dialect.name == "postgresql":
            return value
        return value.hex

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return self._coerce_uuid(value)


def get_uuid_column(*args, **kwargs):
    """Get UUID column type based on database dialect.

    Example:
        wallet_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
        match_id = get_uuid_column(ForeignKey("matches.match_id"), nullable=False)
    """
    return Column(
        AdaptiveUUID(),
        *args,
        **kwargs
    )

"""Match service: lifecycle, registrations and results."""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional
from uuid import UUID
import logging
import uuid

from pydantic import BaseModel, ValidationError
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from arena.config import get_settings
from arena.models.base import (
    ACTIVE_REGISTRATION_STATUSES,
    TERMINAL_MATCH_STATUSES,
    MatchStatus,
    RegistrationStatus,
)
from arena.models.match import Match
from arena.models.match_registration import MatchRegistration
from arena.models.wallet import Wallet
from arena.schemas.match import MatchCreate, MatchResults, MatchResultsUpload, MatchUpdate
from arena.services.prize_distribution import (
    compute_match_results,
    parse_prize_distribution,
    validate_prize_distribution,
)
from arena.services.wallet_service import WalletService
from arena.utils import ensure_utc, lock_client, utc_now
from arena.utils.exceptions import (
    AlreadyRegisteredError,
    InsufficientBalanceError,
    InvalidMatchStateError,
    MatchFullError,
    MatchNotFoundError,
    MatchValidationError,
    NotRegisteredError,
    PrizeDistributionInvalidError,
    ResultsNotAvailableError,
    ResultsPayloadInvalidError,
    WalletInactiveError,
    WalletNotFoundError,
)

logger = logging.getLogger(__name__)

# Admin status transitions; terminal states have no way out
ALLOWED_STATUS_TRANSITIONS = {
    MatchStatus.UPCOMING.value: {MatchStatus.LIVE.value, MatchStatus.CANCELLED.value},
    MatchStatus.LIVE.value: {MatchStatus.COMPLETED.value, MatchStatus.CANCELLED.value},
    MatchStatus.COMPLETED.value: set(),
    MatchStatus.CANCELLED.value: set(),
}
OPEN_MATCH_STATUSES = (MatchStatus.UPCOMING.value, MatchStatus.LIVE.value)
RESULTS_UPLOAD_STATUSES = (MatchStatus.LIVE.value, MatchStatus.COMPLETED.value)
# Marks a refund that could not be credited and is still owed to the player
OWED_REFUND_PREFIX = "OWED_REFUND_"


@dataclass(frozen=True)
class JoinResult:
    match: Match
    registration: MatchRegistration
    wallet: Optional[Wallet]

    @property
    def new_balance(self) -> int:
        return self.wallet.balance if self.wallet else 0


@dataclass(frozen=True)
class LeaveResult:
    match: Match
    registration: MatchRegistration
    refunded_amount: int


@dataclass(frozen=True)
class StatusUpdateSummary:
    started: int
    completed: int

    @property
    def total(self) -> int:
        return self.started + self.completed


class MatchService:
    """Service for match lifecycle and player registration.

    The registration count on the match row is the capacity counter. Joins
    reserve a slot with a conditional UPDATE, so two players racing for the
    last slot cannot both get it, and the entry fee debit commits together
    with the registration or not at all.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.settings = get_settings()
        self.wallet_service = WalletService(db)

    # --- Match lifecycle ---------------------------------------------------

    async def create_match(self, data: MatchCreate | dict[str, Any]) -> Match:
        """
        Create an upcoming match.

        Raises:
            MatchValidationError: If the match data is malformed
            PrizeDistributionInvalidError: If the prize distribution does not reconcile
        """
        payload = self._parse(MatchCreate, data)
        validate_prize_distribution(payload.prize_distribution, payload.prize_pool)

        match = Match(
            match_id=uuid.uuid4(),
            name=payload.name,
            entry_fee=payload.entry_fee,
            prize_pool=payload.prize_pool,
            max_players=payload.max_players,
            map=payload.map.value,
            start_time=ensure_utc(payload.start_time),
            status=MatchStatus.UPCOMING.value,
            prize_distribution=payload.prize_distribution.model_dump(mode="json"),
            active_registrations=0,
            results_completed=False,
        )
        self.db.add(match)
        await self._commit()
        await self.db.refresh(match)

        logger.info(
            f"Match created: match={match.match_id}, name={match.name}, fee={match.entry_fee}, "
            f"pool={match.prize_pool}, max_players={match.max_players}"
        )
        return match

    async def update_match(self, match_id: UUID, changes: MatchUpdate | dict[str, Any]) -> Match:
        """
        Update an upcoming match. Omitted fields keep their value.

        Raises:
            MatchNotFoundError: If the match does not exist
            InvalidMatchStateError: If the match is live, completed or cancelled
            MatchValidationError: If max_players would drop below the registrations
            PrizeDistributionInvalidError: If the merged distribution does not reconcile
        """
        patch = self._parse(MatchUpdate, changes)
        match = await self.get_match(match_id)

        if match.status != MatchStatus.UPCOMING.value:
            raise InvalidMatchStateError(f"Cannot update a {match.status} match")

        fields = patch.model_dump(exclude_unset=True)
        if "prize_distribution" in fields and patch.prize_distribution is None:
            raise MatchValidationError("prize_distribution cannot be null")

        distribution = patch.prize_distribution or parse_prize_distribution(match.prize_distribution)
        prize_pool = patch.prize_pool if patch.prize_pool is not None else match.prize_pool
        validate_prize_distribution(distribution, prize_pool)

        if patch.max_players is not None and patch.max_players < match.active_registrations:
            raise MatchValidationError(
                f"max_players cannot be lower than the {match.active_registrations} registered players"
            )

        for field, value in fields.items():
            if value is None:
                continue
            if field == "prize_distribution":
                value = distribution.model_dump(mode="json")
            elif field == "map":
                value = patch.map.value
            elif field == "start_time":
                value = ensure_utc(patch.start_time)
            setattr(match, field, value)

        try:
            await self._commit()
        except IntegrityError as exc:
            # A join landed between the registration check and this write
            await self.db.rollback()
            logger.warning(f"Match update lost a race with a join: match={match_id}")
            raise MatchValidationError("max_players cannot be lower than the registered players") from exc
        match = await self._load_match(match_id)
        logger.info(f"Match updated: match={match_id}, fields={sorted(fields)}")
        return match

    async def set_status(self, match_id: UUID, status: MatchStatus | str) -> Match:
        """
        Move a match along its lifecycle.

        Cancelling goes through ``cancel_match`` so that paid entries are
        refunded. Setting the current status again is a no-op.

        Raises:
            MatchNotFoundError: If the match does not exist
            InvalidMatchStateError: If the transition is not allowed
        """
        new_status = MatchStatus(status).value
        match = await self.get_match(match_id)
        current = match.status

        if new_status == current:
            return match
        if new_status not in ALLOWED_STATUS_TRANSITIONS.get(current, set()):
            logger.warning(f"Rejected status change for match {match_id}: {current} -> {new_status}")
            raise InvalidMatchStateError(f"Cannot change match status from {current} to {new_status}")
        if new_status == MatchStatus.CANCELLED.value:
            return await self.cancel_match(match_id)

        result = await self.db.execute(
            update(Match)
            .where(Match.match_id == match_id, Match.status == current)
            .values(status=new_status, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise InvalidMatchStateError("Match status changed concurrently, please retry")
        await self.db.commit()

        logger.info(f"Match status changed: match={match_id}, {current} -> {new_status}")
        return await self._load_match(match_id)

    async def cancel_match(self, match_id: UUID) -> Match:
        """
        Cancel a match and refund every active paid registration.

        Raises:
            MatchNotFoundError: If the match does not exist
            InvalidMatchStateError: If the match is already completed or cancelled
        """
        match = await self.get_match(match_id)
        if match.status in TERMINAL_MATCH_STATUSES:
            raise InvalidMatchStateError(f"Cannot cancel a {match.status} match")

        refunded_total = 0
        try:
            result = await self.db.execute(
                update(Match)
                .where(Match.match_id == match_id, Match.status == match.status)
                .values(status=MatchStatus.CANCELLED.value, updated_at=utc_now())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise InvalidMatchStateError("Match status changed concurrently, please retry")

            registrations = await self._active_registrations(match_id)
            for registration in registrations:
                refunded_total += await self._cancel_registration(match, registration)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            f"Match cancelled: match={match_id}, registrations_cancelled={len(registrations)}, "
            f"refunded={refunded_total}"
        )
        return await self._load_match(match_id)

    async def delete_match(self, match_id: UUID) -> None:
        """
        Delete an upcoming or cancelled match that nobody is registered for.

        Raises:
            MatchNotFoundError: If the match does not exist
            InvalidMatchStateError: If the match has started or has active registrations
        """
        match = await self.get_match(match_id)
        if match.status not in (MatchStatus.UPCOMING.value, MatchStatus.CANCELLED.value):
            raise InvalidMatchStateError(f"Cannot delete a {match.status} match")
        if match.active_registrations > 0:
            raise InvalidMatchStateError("Cannot delete a match with active registrations")

        await self.db.execute(delete(MatchRegistration).where(MatchRegistration.match_id == match_id))
        await self.db.execute(delete(Match).where(Match.match_id == match_id))
        await self.db.commit()
        logger.info(f"Match deleted: match={match_id}")

    async def auto_update_statuses(self, now: datetime | None = None) -> StatusUpdateSummary:
        """Start matches whose start time has passed and complete long-running ones.

        Statuses only ever move forward. ``now`` defaults to the current time.
        """
        now = ensure_utc(now) if now else utc_now()
        cutoff = now - timedelta(hours=self.settings.match_auto_complete_hours)

        # Complete first so a match is never started and completed in one pass
        completed = await self.db.execute(
            update(Match)
            .where(Match.status == MatchStatus.LIVE.value, Match.start_time <= cutoff)
            .values(status=MatchStatus.COMPLETED.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        started = await self.db.execute(
            update(Match)
            .where(Match.status == MatchStatus.UPCOMING.value, Match.start_time <= now)
            .values(status=MatchStatus.LIVE.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        summary = StatusUpdateSummary(started=started.rowcount, completed=completed.rowcount)
        if summary.total:
            logger.info(f"Auto status update: started={summary.started}, completed={summary.completed}")
        return summary

    # --- Registrations -----------------------------------------------------

    async def join_match(
        self,
        match_id: UUID,
        user_id: UUID,
        squad_id: UUID | None = None,
        squad_name: str | None = None,
        user_name: str | None = None,
        game_id: str | None = None,
    ) -> JoinResult:
        """
        Register a player and charge the entry fee.

        Raises:
            MatchNotFoundError: If the match does not exist
            InvalidMatchStateError: If the match is not upcoming
            AlreadyRegisteredError: If the player already holds an active entry
            MatchFullError: If no slot is left
            WalletNotFoundError: If the match is paid and the player has no wallet
            InsufficientBalanceError: If the wallet cannot cover the entry fee
        """
        async with lock_client.lock(
            f"match_registration:{match_id}:{user_id}",
            timeout=self.settings.lock_timeout_seconds,
        ):
            return await self._join_match(match_id, user_id, squad_id, squad_name, user_name, game_id)

    async def _join_match(
        self,
        match_id: UUID,
        user_id: UUID,
        squad_id: UUID | None,
        squad_name: str | None,
        user_name: str | None,
        game_id: str | None,
    ) -> JoinResult:
        match = await self.get_match(match_id)
        if match.status != MatchStatus.UPCOMING.value:
            raise InvalidMatchStateError(f"Cannot join a {match.status} match")

        registration = await self._find_registration(match_id, user_id)
        if registration and registration.is_active:
            raise AlreadyRegisteredError()

        entry_fee = match.entry_fee
        wallet = None
        if entry_fee > 0:
            wallet = await self.wallet_service.get_wallet_by_user(user_id)
            if not wallet.can_afford(entry_fee):
                logger.warning(
                    f"Join rejected, insufficient balance: match={match_id}, user={user_id}, "
                    f"required={entry_fee}, available={wallet.balance}"
                )
                raise InsufficientBalanceError(
                    f"Insufficient balance: required {entry_fee}, available {wallet.balance}",
                    required=entry_fee,
                    available=wallet.balance,
                )

        try:
            await self._reserve_slot(match_id)

            payment_reference = None
            if entry_fee > 0:
                payment_reference = f"MATCH_{match_id.hex}_{uuid.uuid4().hex[:12]}"
                wallet = await self.wallet_service.debit(
                    wallet.wallet_id,
                    entry_fee,
                    description=f"Match entry fee - {match.name}",
                    reference_id=payment_reference,
                    metadata={"match_id": str(match_id), "match_name": match.name},
                    auto_commit=False,
                )

            paid = entry_fee > 0
            status = RegistrationStatus.CONFIRMED.value if paid else RegistrationStatus.REGISTERED.value
            values = dict(
                user_name=user_name,
                game_id=game_id,
                squad_id=squad_id,
                squad_name=squad_name,
                registered_at=utc_now(),
                entry_fee_paid=paid,
                entry_fee_amount=entry_fee,
                payment_reference=payment_reference,
                refund_reference=None,
                status=status,
                cancelled_at=None,
            )
            if registration:
                # Rejoining after leaving reuses the (match, user) row
                for field, value in values.items():
                    setattr(registration, field, value)
            else:
                registration = MatchRegistration(
                    registration_id=uuid.uuid4(),
                    match_id=match_id,
                    user_id=user_id,
                    **values,
                )
                self.db.add(registration)

            await self.db.flush()
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            logger.warning(f"Concurrent duplicate join: match={match_id}, user={user_id}")
            raise AlreadyRegisteredError() from exc
        except Exception:
            await self.db.rollback()
            raise

        await self.db.refresh(registration)
        match = await self._load_match(match_id)
        if wallet:
            wallet = await self.wallet_service.get_wallet(wallet.wallet_id)

        logger.info(
            f"Player joined match: match={match_id}, user={user_id}, fee={entry_fee}, "
            f"reference={payment_reference}, players={match.active_registrations}/{match.max_players}"
        )
        return JoinResult(match=match, registration=registration, wallet=wallet)

    async def leave_match(self, match_id: UUID, user_id: UUID) -> LeaveResult:
        """
        Withdraw a player from an upcoming or live match and refund a paid entry.

        Raises:
            MatchNotFoundError: If the match does not exist
            InvalidMatchStateError: If the match is completed or cancelled
            NotRegisteredError: If the player holds no active entry
        """
        return await self._withdraw(match_id, user_id, actor="player")

    async def remove_player(self, match_id: UUID, user_id: UUID) -> LeaveResult:
        """Admin removal; same effect as the player leaving."""
        return await self._withdraw(match_id, user_id, actor="admin")

    async def _withdraw(self, match_id: UUID, user_id: UUID, actor: str) -> LeaveResult:
        async with lock_client.lock(
            f"match_registration:{match_id}:{user_id}",
            timeout=self.settings.lock_timeout_seconds,
        ):
            match = await self.get_match(match_id)
            if match.status not in OPEN_MATCH_STATUSES:
                raise InvalidMatchStateError(f"Cannot leave a {match.status} match")

            registration = await self._find_registration(match_id, user_id)
            if not registration or not registration.is_active:
                raise NotRegisteredError()

            try:
                refunded = await self._cancel_registration(match, registration)
                await self.db.commit()
            except Exception:
                await self.db.rollback()
                raise

        registration = await self._load_registration(registration.registration_id)
        match = await self._load_match(match_id)
        logger.info(
            f"Registration cancelled by {actor}: match={match_id}, user={user_id}, refunded={refunded}, "
            f"players={match.active_registrations}/{match.max_players}"
        )
        return LeaveResult(match=match, registration=registration, refunded_amount=refunded)

    async def confirm_registration(self, match_id: UUID, user_id: UUID) -> MatchRegistration:
        """
        Confirm a registered player. Confirming twice is a no-op.

        Raises:
            MatchNotFoundError: If the match does not exist
            InvalidMatchStateError: If the match is completed or cancelled
            NotRegisteredError: If the player holds no active entry
        """
        match = await self.get_match(match_id)
        if match.status in TERMINAL_MATCH_STATUSES:
            raise InvalidMatchStateError(f"Cannot confirm registrations for a {match.status} match")

        registration = await self._find_registration(match_id, user_id)
        if not registration or not registration.is_active:
            raise NotRegisteredError()
        if registration.status == RegistrationStatus.CONFIRMED.value:
            return registration

        registration.status = RegistrationStatus.CONFIRMED.value
        await self.db.commit()
        await self.db.refresh(registration)
        logger.info(f"Registration confirmed: match={match_id}, user={user_id}")
        return registration

    async def _cancel_registration(self, match: Match, registration: MatchRegistration) -> int:
        """Cancel one active entry, release its slot and refund a paid fee.

        Runs inside the caller's transaction. Returns the refunded amount. When the
        wallet is closed or gone the entry is still cancelled and the refund is
        recorded as owed on the registration.
        """
        now = utc_now()
        refund_amount = registration.entry_fee_amount if registration.entry_fee_paid else 0
        refund_reference = None
        if refund_amount > 0 and registration.payment_reference:
            refund_reference = f"REFUND_{registration.payment_reference}"

        result = await self.db.execute(
            update(MatchRegistration)
            .where(
                MatchRegistration.registration_id == registration.registration_id,
                MatchRegistration.status.in_(ACTIVE_REGISTRATION_STATUSES),
            )
            .values(
                status=RegistrationStatus.CANCELLED.value,
                cancelled_at=now,
                refund_reference=refund_reference,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotRegisteredError()

        await self.db.execute(
            update(Match)
            .where(Match.match_id == match.match_id, Match.active_registrations > 0)
            .values(active_registrations=Match.active_registrations - 1, updated_at=now)
            .execution_options(synchronize_session=False)
        )

        if refund_reference:
            try:
                wallet = await self.wallet_service.get_wallet_by_user(registration.user_id)
                await self.wallet_service.credit(
                    wallet.wallet_id,
                    refund_amount,
                    description=f"Match entry fee refund - {match.name}",
                    reference_id=refund_reference,
                    payment_method="refund",
                    metadata={"match_id": str(match.match_id), "original_reference": registration.payment_reference},
                    auto_commit=False,
                    require_active=False,
                )
            except (WalletInactiveError, WalletNotFoundError) as exc:
                # The credit matched no row, so the transaction is still clean
                owed_reference = f"{OWED_REFUND_PREFIX}{registration.payment_reference}"
                logger.warning(
                    f"Refund owed, wallet unavailable: match={match.match_id}, user={registration.user_id}, "
                    f"amount={refund_amount}, reference={owed_reference}, reason={exc.message}"
                )
                await self.db.execute(
                    update(MatchRegistration)
                    .where(MatchRegistration.registration_id == registration.registration_id)
                    .values(refund_reference=owed_reference)
                    .execution_options(synchronize_session=False)
                )
                return 0
            return refund_amount
        return 0

    async def _reserve_slot(self, match_id: UUID) -> None:
        """Take one slot with a single conditional UPDATE."""
        result = await self.db.execute(
            update(Match)
            .where(
                Match.match_id == match_id,
                Match.status == MatchStatus.UPCOMING.value,
                Match.active_registrations < Match.max_players,
            )
            .values(active_registrations=Match.active_registrations + 1, updated_at=utc_now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount:
            return

        current = await self._load_match(match_id)
        if current is None:
            raise MatchNotFoundError()
        if current.status != MatchStatus.UPCOMING.value:
            raise InvalidMatchStateError(f"Cannot join a {current.status} match")
        logger.warning(f"Join rejected, match full: match={match_id}, max_players={current.max_players}")
        raise MatchFullError(f"Match is full ({current.max_players} players)")

    # --- Results -----------------------------------------------------------

    async def upload_results(self, match_id: UUID, data: MatchResultsUpload | dict[str, Any]) -> Match:
        """
        Store final results and complete the match. Results are written once.

        Raises:
            MatchNotFoundError: If the match does not exist
            InvalidMatchStateError: If the match is not live/completed or already has results
            ResultsPayloadInvalidError: If the payload is invalid or overpays the pool
        """
        payload = self._parse(MatchResultsUpload, data, error=ResultsPayloadInvalidError)
        match = await self.get_match(match_id)

        if match.results_completed:
            raise InvalidMatchStateError("Results have already been uploaded for this match")
        if match.status not in RESULTS_UPLOAD_STATUSES:
            raise InvalidMatchStateError(f"Cannot upload results for a {match.status} match")

        now = utc_now()
        distribution = parse_prize_distribution(match.prize_distribution)
        results = compute_match_results(distribution, match.prize_pool, payload, now)

        result = await self.db.execute(
            update(Match)
            .where(
                Match.match_id == match_id,
                Match.status.in_(RESULTS_UPLOAD_STATUSES),
                Match.results_completed.is_(False),
            )
            .values(
                status=MatchStatus.COMPLETED.value,
                results=results.model_dump(mode="json"),
                results_completed=True,
                results_completed_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise InvalidMatchStateError("Results have already been uploaded for this match")
        await self.db.commit()

        logger.info(
            f"Results uploaded: match={match_id}, squads={len(results.squad_rankings)}, "
            f"distributed={results.prize_summary.total_distributed}"
        )
        return await self._load_match(match_id)

    async def get_results(self, match_id: UUID) -> MatchResults:
        match = await self.get_match(match_id)
        if not match.results_completed or not match.results:
            raise ResultsNotAvailableError()
        return MatchResults.model_validate(match.results)

    # --- Reads -------------------------------------------------------------

    async def get_match(self, match_id: UUID) -> Match:
        match = await self._load_match(match_id)
        if not match:
            raise MatchNotFoundError()
        return match

    async def list_matches(self, status: MatchStatus | str | None = None) -> list[Match]:
        """List matches, newest start time first, optionally filtered by status."""
        query = select(Match).order_by(Match.start_time.desc())
        if status:
            query = query.where(Match.status == MatchStatus(status).value)
        result = await self.db.execute(query.execution_options(populate_existing=True))
        return list(result.scalars().all())

    async def list_matches_for_user(self, user_id: UUID) -> list[Match]:
        """Matches the user currently holds an active entry in."""
        result = await self.db.execute(
            select(Match)
            .join(MatchRegistration, MatchRegistration.match_id == Match.match_id)
            .where(
                MatchRegistration.user_id == user_id,
                MatchRegistration.status.in_(ACTIVE_REGISTRATION_STATUSES),
            )
            .order_by(Match.start_time.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def get_registrations(
        self,
        match_id: UUID,
        include_cancelled: bool = False,
    ) -> tuple[Match, list[MatchRegistration]]:
        match = await self.get_match(match_id)
        query = (
            select(MatchRegistration)
            .where(MatchRegistration.match_id == match_id)
            .order_by(MatchRegistration.registered_at)
        )
        if not include_cancelled:
            query = query.where(MatchRegistration.status.in_(ACTIVE_REGISTRATION_STATUSES))
        result = await self.db.execute(query.execution_options(populate_existing=True))
        return match, list(result.scalars().all())

    # --- Helpers -----------------------------------------------------------

    @staticmethod
    def _parse(model: type[BaseModel], data, error=MatchValidationError):
        if isinstance(data, model):
            return data
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise error(f"Invalid {model.__name__} data: {exc}") from exc

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except PrizeDistributionInvalidError:
            await self.db.rollback()
            raise

    async def _load_match(self, match_id: UUID) -> Match | None:
        result = await self.db.execute(
            select(Match).where(Match.match_id == match_id).execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _load_registration(self, registration_id: UUID) -> MatchRegistration:
        result = await self.db.execute(
            select(MatchRegistration)
            .where(MatchRegistration.registration_id == registration_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def _find_registration(self, match_id: UUID, user_id: UUID) -> MatchRegistration | None:
        result = await self.db.execute(
            select(MatchRegistration)
            .where(MatchRegistration.match_id == match_id, MatchRegistration.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _active_registrations(self, match_id: UUID) -> list[MatchRegistration]:
        result = await self.db.execute(
            select(MatchRegistration)
            .where(
                MatchRegistration.match_id == match_id,
                MatchRegistration.status.in_(ACTIVE_REGISTRATION_STATUSES),
            )
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

"""Match-related schemas."""
from datetime import datetime
from typing import Any, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, constr, field_validator

from arena.models.base import MatchMap
from arena.schemas.base import BaseSchema

RANK_NAMES = ("1st Place", "2nd Place", "3rd Place", "4th Place", "5th Place")
RankName = Literal["1st Place", "2nd Place", "3rd Place", "4th Place", "5th Place"]


# --- Prize distribution ----------------------------------------------------

class RankReward(BaseModel):
    rank: RankName
    amount: int = Field(..., ge=0)


class RankRewards(BaseModel):
    total: int = Field(..., ge=0)
    ranks: list[RankReward] = Field(default_factory=list)

    @field_validator("ranks")
    @classmethod
    def ranks_unique(cls, value: list[RankReward]) -> list[RankReward]:
        names = [entry.rank for entry in value]
        if len(names) != len(set(names)):
            raise ValueError("each rank may only appear once")
        return value

    def amount_for_position(self, position: int) -> int:
        """Reward for finishing position ``position`` (1-based); zero when unpaid."""
        if position < 1 or position > len(RANK_NAMES):
            return 0
        name = RANK_NAMES[position - 1]
        for entry in self.ranks:
            if entry.rank == name:
                return entry.amount
        return 0


class KillRewards(BaseModel):
    total: int = Field(..., ge=0)
    per_kill: int = Field(..., ge=0)
    max_kills: int = Field(..., ge=0)


class CustomReward(BaseModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=100)
    amount: int = Field(..., ge=0)


class PrizeSummary(BaseModel):
    total_distributed: int = Field(..., ge=0)
    rank_rewards_total: int = Field(..., ge=0)
    kill_rewards_total: int = Field(..., ge=0)
    custom_rewards_total: int = Field(..., ge=0)


class PrizeDistribution(BaseModel):
    rank_rewards: RankRewards
    kill_rewards: KillRewards
    custom_rewards: list[CustomReward] = Field(default_factory=list)
    summary: PrizeSummary


# --- Match create / update -------------------------------------------------

class MatchCreate(BaseModel):
    """Admin match creation request."""
    name: constr(strip_whitespace=True, min_length=1, max_length=120)
    entry_fee: int = Field(..., ge=0)
    prize_pool: int = Field(..., ge=0)
    max_players: int = Field(..., ge=1, le=100)
    map: MatchMap
    start_time: datetime
    prize_distribution: PrizeDistribution


class MatchUpdate(BaseModel):
    """Admin match update request; omitted fields keep their value."""
    name: Optional[constr(strip_whitespace=True, min_length=1, max_length=120)] = None
    entry_fee: Optional[int] = Field(default=None, ge=0)
    prize_pool: Optional[int] = Field(default=None, ge=0)
    max_players: Optional[int] = Field(default=None, ge=1, le=100)
    map: Optional[MatchMap] = None
    start_time: Optional[datetime] = None
    prize_distribution: Optional[PrizeDistribution] = None


class MatchStatusUpdate(BaseModel):
    status: Literal["upcoming", "live", "completed", "cancelled"]


class MatchResponse(BaseSchema):
    """Match details with live registration counts."""
    match_id: UUID
    name: str
    entry_fee: int
    prize_pool: int
    max_players: int
    map: str
    start_time: datetime
    status: str
    prize_distribution: dict[str, Any]
    players_joined: int = Field(validation_alias="active_registrations")
    available_slots: int
    results_completed: bool
    created_at: datetime
    updated_at: datetime


# --- Registrations ---------------------------------------------------------

class JoinMatchRequest(BaseModel):
    squad_id: Optional[UUID] = None
    squad_name: Optional[constr(strip_whitespace=True, max_length=100)] = None
    user_name: Optional[constr(strip_whitespace=True, max_length=100)] = None
    game_id: Optional[constr(strip_whitespace=True, max_length=64)] = None


class RegistrationResponse(BaseSchema):
    registration_id: UUID
    match_id: UUID
    user_id: UUID
    user_name: Optional[str] = None
    game_id: Optional[str] = None
    squad_id: Optional[UUID] = None
    squad_name: Optional[str] = None
    registered_at: datetime
    entry_fee_paid: bool
    entry_fee_amount: int = 0
    payment_reference: Optional[str] = None
    refund_reference: Optional[str] = None
    status: str
    cancelled_at: Optional[datetime] = None


class JoinMatchResponse(BaseSchema):
    match_id: UUID
    match_name: str
    entry_fee: int
    new_balance: int
    payment_reference: Optional[str] = None
    registration: RegistrationResponse


class LeaveMatchResponse(BaseSchema):
    match_id: UUID
    match_name: str
    refunded_amount: int


class MatchRegistrationsResponse(BaseSchema):
    match_id: UUID
    match_name: str
    max_players: int
    total_registered: int
    available_slots: int
    registered_players: list[RegistrationResponse]


# --- Results ---------------------------------------------------------------

class PlayerResult(BaseModel):
    game_id: constr(strip_whitespace=True, min_length=1, max_length=64)
    kills: Optional[int] = Field(default=None, ge=0)
    damage: Optional[int] = Field(default=None, ge=0)
    survival_time: Optional[int] = Field(default=None, ge=0)  # seconds


class SquadRanking(BaseModel):
    rank: int = Field(..., ge=1, le=100)
    squad_name: constr(strip_whitespace=True, min_length=1, max_length=100)
    kills: int = Field(..., ge=0)
    damage: Optional[int] = Field(default=None, ge=0)
    survival_time: Optional[int] = Field(default=None, ge=0)  # seconds
    players: list[PlayerResult] = Field(default_factory=list)


class SpecialAward(BaseModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=100)
    recipient: constr(strip_whitespace=True, min_length=1, max_length=100)


class MatchResultsUpload(BaseModel):
    """Admin results payload."""
    squad_rankings: list[SquadRanking]
    total_participants: Optional[int] = Field(default=None, ge=0)
    match_duration: Optional[int] = Field(default=None, ge=0)  # seconds
    special_awards: list[SpecialAward] = Field(default_factory=list)
    notes: Optional[constr(strip_whitespace=True, max_length=1000)] = None


class PlayerPrize(BaseModel):
    game_id: str
    kills: Optional[int] = None
    damage: Optional[int] = None
    survival_time: Optional[int] = None
    individual_prize: int


class SquadResult(BaseModel):
    rank: int
    squad_name: str
    kills: int
    damage: Optional[int] = None
    survival_time: Optional[int] = None
    rank_prize: int
    kill_prize: int
    prize_amount: int
    players: list[PlayerPrize] = Field(default_factory=list)


class AwardedSpecial(BaseModel):
    name: str
    recipient: str
    amount: int


class MatchResults(BaseSchema):
    """Stored, immutable match results."""
    is_completed: bool
    completed_at: datetime
    squad_rankings: list[SquadResult]
    total_participants: Optional[int] = None
    match_duration: Optional[int] = None
    special_awards: list[AwardedSpecial] = Field(default_factory=list)
    notes: Optional[str] = None
    prize_summary: PrizeSummary


class AutoUpdateResponse(BaseSchema):
    started: int
    completed: int
    total: int

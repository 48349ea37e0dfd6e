"""Prize distribution validation and results prize derivation.

Both functions are pure: they accept parsed schemas and either return a
value or raise. ``validate_prize_distribution`` is also wired into the
``Match`` mapper so that no insert or update can persist an unreconciled
distribution.
"""
from datetime import datetime
import logging

from pydantic import ValidationError
from sqlalchemy import event

from arena.models.match import Match
from arena.schemas.match import (
    AwardedSpecial,
    MatchResults,
    MatchResultsUpload,
    PlayerPrize,
    PrizeDistribution,
    PrizeSummary,
    SquadResult,
)
from arena.utils.exceptions import PrizeDistributionInvalidError, ResultsPayloadInvalidError

logger = logging.getLogger(__name__)

CHECK_RANK_TOTAL = "rank_rewards_total"
CHECK_CUSTOM_TOTAL = "custom_rewards_total"
CHECK_TOTAL_DISTRIBUTED = "total_distributed"
CHECK_PRIZE_POOL = "prize_pool"
CHECK_SCHEMA = "schema"


def validate_prize_distribution(distribution: PrizeDistribution, prize_pool: int) -> int:
    """Reconcile declared reward totals against the individual rewards.

    The kill reward total is taken as declared; ``per_kill * max_kills`` is not
    cross-checked against it.

    Returns:
        The grand total distributed.

    Raises:
        PrizeDistributionInvalidError: naming the first check that failed
    """
    rank_total = sum(entry.amount for entry in distribution.rank_rewards.ranks)
    if rank_total != distribution.rank_rewards.total:
        raise PrizeDistributionInvalidError(
            CHECK_RANK_TOTAL,
            f"Rank rewards total mismatch: ranks sum to {rank_total}, "
            f"declared {distribution.rank_rewards.total}",
        )

    custom_total = sum(reward.amount for reward in distribution.custom_rewards)
    if custom_total != distribution.summary.custom_rewards_total:
        raise PrizeDistributionInvalidError(
            CHECK_CUSTOM_TOTAL,
            f"Custom rewards total mismatch: rewards sum to {custom_total}, "
            f"declared {distribution.summary.custom_rewards_total}",
        )

    kill_total = distribution.kill_rewards.total
    grand_total = rank_total + custom_total + kill_total
    if grand_total != distribution.summary.total_distributed:
        raise PrizeDistributionInvalidError(
            CHECK_TOTAL_DISTRIBUTED,
            f"Total distributed amount mismatch: rewards sum to {grand_total}, "
            f"declared {distribution.summary.total_distributed}",
        )

    if grand_total > prize_pool:
        raise PrizeDistributionInvalidError(
            CHECK_PRIZE_POOL,
            f"Total distributed amount {grand_total} exceeds prize pool {prize_pool}",
        )

    return grand_total


def parse_prize_distribution(raw) -> PrizeDistribution:
    """Parse a stored or submitted distribution, mapping schema errors to validation errors."""
    if isinstance(raw, PrizeDistribution):
        return raw
    try:
        return PrizeDistribution.model_validate(raw)
    except ValidationError as exc:
        raise PrizeDistributionInvalidError(CHECK_SCHEMA, f"Invalid prize distribution: {exc}") from exc


def _split_evenly(amount: int, shares: int) -> list[int]:
    """Split ``amount`` into ``shares`` integer parts; the remainder goes to the first parts."""
    base, remainder = divmod(amount, shares)
    return [base + (1 if index < remainder else 0) for index in range(shares)]


def compute_match_results(
    distribution: PrizeDistribution,
    prize_pool: int,
    payload: MatchResultsUpload,
    completed_at: datetime,
) -> MatchResults:
    """Derive prize amounts for an uploaded results payload.

    Rank prizes come from the configured "Nth Place" rewards, kill prizes are
    ``min(kills, max_kills) * per_kill``, and custom rewards are paid to the
    special award recipients by name. A squad's prize is split evenly across
    its listed players.

    Raises:
        ResultsPayloadInvalidError: If the payload is inconsistent or the
            derived payouts exceed what the distribution allows
    """
    if not payload.squad_rankings:
        raise ResultsPayloadInvalidError("Results must include at least one squad ranking")

    ranks = [ranking.rank for ranking in payload.squad_rankings]
    if len(ranks) != len(set(ranks)):
        raise ResultsPayloadInvalidError("Squad ranks must be unique")

    squad_names = [ranking.squad_name.lower() for ranking in payload.squad_rankings]
    if len(squad_names) != len(set(squad_names)):
        raise ResultsPayloadInvalidError("Squad names must be unique")

    kill_rewards = distribution.kill_rewards
    squads: list[SquadResult] = []
    for ranking in sorted(payload.squad_rankings, key=lambda item: item.rank):
        rank_prize = distribution.rank_rewards.amount_for_position(ranking.rank)
        kill_prize = min(ranking.kills, kill_rewards.max_kills) * kill_rewards.per_kill
        prize_amount = rank_prize + kill_prize

        players: list[PlayerPrize] = []
        if ranking.players:
            game_ids = [player.game_id for player in ranking.players]
            if len(game_ids) != len(set(game_ids)):
                raise ResultsPayloadInvalidError(f"Duplicate player in squad {ranking.squad_name}")
            shares = _split_evenly(prize_amount, len(ranking.players))
            players = [
                PlayerPrize(
                    game_id=player.game_id,
                    kills=player.kills,
                    damage=player.damage,
                    survival_time=player.survival_time,
                    individual_prize=share,
                )
                for player, share in zip(ranking.players, shares)
            ]

        squads.append(
            SquadResult(
                rank=ranking.rank,
                squad_name=ranking.squad_name,
                kills=ranking.kills,
                damage=ranking.damage,
                survival_time=ranking.survival_time,
                rank_prize=rank_prize,
                kill_prize=kill_prize,
                prize_amount=prize_amount,
                players=players,
            )
        )

    custom_amounts = {reward.name: reward.amount for reward in distribution.custom_rewards}
    awards: list[AwardedSpecial] = []
    for award in payload.special_awards:
        if award.name not in custom_amounts:
            raise ResultsPayloadInvalidError(f"Unknown special award: {award.name}")
        awards.append(AwardedSpecial(name=award.name, recipient=award.recipient, amount=custom_amounts[award.name]))

    awarded_names = [award.name for award in awards]
    if len(awarded_names) != len(set(awarded_names)):
        raise ResultsPayloadInvalidError("Each special award may only be given once")

    rank_total = sum(squad.rank_prize for squad in squads)
    kill_total = sum(squad.kill_prize for squad in squads)
    custom_total = sum(award.amount for award in awards)
    total_distributed = rank_total + kill_total + custom_total

    if kill_total > kill_rewards.total:
        raise ResultsPayloadInvalidError(
            f"Kill rewards {kill_total} exceed declared kill rewards total {kill_rewards.total}"
        )
    if total_distributed > prize_pool:
        raise ResultsPayloadInvalidError(
            f"Derived payouts {total_distributed} exceed prize pool {prize_pool}"
        )

    return MatchResults(
        is_completed=True,
        completed_at=completed_at,
        squad_rankings=squads,
        total_participants=payload.total_participants,
        match_duration=payload.match_duration,
        special_awards=awards,
        notes=payload.notes,
        prize_summary=PrizeSummary(
            total_distributed=total_distributed,
            rank_rewards_total=rank_total,
            kill_rewards_total=kill_total,
            custom_rewards_total=custom_total,
        ),
    )


@event.listens_for(Match, "before_insert")
@event.listens_for(Match, "before_update")
def _validate_match_prize_distribution(mapper, connection, target: Match):
    """Refuse to persist a match whose distribution does not reconcile."""
    distribution = parse_prize_distribution(target.prize_distribution)
    try:
        validate_prize_distribution(distribution, target.prize_pool or 0)
    except PrizeDistributionInvalidError as exc:
        logger.warning(f"Blocked write of match {target.match_id}: {exc.message}")
        raise

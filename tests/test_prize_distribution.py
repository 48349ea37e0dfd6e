"""Tests for prize distribution reconciliation and results prize derivation."""
from datetime import datetime, UTC

import pytest

from arena.schemas.match import MatchResultsUpload
from arena.services.prize_distribution import (
    CHECK_CUSTOM_TOTAL,
    CHECK_PRIZE_POOL,
    CHECK_RANK_TOTAL,
    CHECK_SCHEMA,
    CHECK_TOTAL_DISTRIBUTED,
    _split_evenly,
    compute_match_results,
    parse_prize_distribution,
    validate_prize_distribution,
)
from arena.utils.exceptions import PrizeDistributionInvalidError, ResultsPayloadInvalidError
from tests.helpers import sample_distribution

COMPLETED_AT = datetime(2026, 1, 1, 18, 0, tzinfo=UTC)


def _results(*rankings, awards=()):
    return MatchResultsUpload.model_validate({
        "squad_rankings": list(rankings),
        "total_participants": 16,
        "match_duration": 1800,
        "special_awards": list(awards),
    })


class TestValidatePrizeDistribution:
    """Reconciliation of declared totals."""

    def test_reconciled_distribution_accepted(self):
        distribution = parse_prize_distribution(sample_distribution())

        assert validate_prize_distribution(distribution, prize_pool=10000) == 10000

    def test_distribution_below_pool_accepted(self):
        distribution = parse_prize_distribution(sample_distribution())

        assert validate_prize_distribution(distribution, prize_pool=12000) == 10000

    def test_changed_rank_amount_rejected(self):
        distribution = parse_prize_distribution(
            sample_distribution(ranks=(2600, 1500, 1000, 0, 0), rank_total=5000, total_distributed=10000)
        )

        with pytest.raises(PrizeDistributionInvalidError) as exc_info:
            validate_prize_distribution(distribution, prize_pool=10000)
        assert exc_info.value.check == CHECK_RANK_TOTAL
        assert "Rank rewards total mismatch" in exc_info.value.message

    def test_custom_total_mismatch_rejected(self):
        distribution = parse_prize_distribution(sample_distribution(custom_total=900, total_distributed=10000))

        with pytest.raises(PrizeDistributionInvalidError) as exc_info:
            validate_prize_distribution(distribution, prize_pool=10000)
        assert exc_info.value.check == CHECK_CUSTOM_TOTAL

    def test_grand_total_mismatch_rejected(self):
        distribution = parse_prize_distribution(sample_distribution(total_distributed=9000))

        with pytest.raises(PrizeDistributionInvalidError) as exc_info:
            validate_prize_distribution(distribution, prize_pool=10000)
        assert exc_info.value.check == CHECK_TOTAL_DISTRIBUTED

    def test_total_above_pool_rejected(self):
        distribution = parse_prize_distribution(sample_distribution())

        with pytest.raises(PrizeDistributionInvalidError) as exc_info:
            validate_prize_distribution(distribution, prize_pool=9999)
        assert exc_info.value.check == CHECK_PRIZE_POOL

    def test_kill_total_not_cross_checked(self):
        """per_kill * max_kills may differ from the declared kill total."""
        distribution = parse_prize_distribution(sample_distribution(per_kill=1000, max_kills=50))

        assert validate_prize_distribution(distribution, prize_pool=10000) == 10000

    def test_unknown_rank_name_is_schema_error(self):
        raw = sample_distribution()
        raw["rank_rewards"]["ranks"][0]["rank"] = "6th Place"

        with pytest.raises(PrizeDistributionInvalidError) as exc_info:
            parse_prize_distribution(raw)
        assert exc_info.value.check == CHECK_SCHEMA

    def test_duplicate_rank_is_schema_error(self):
        raw = sample_distribution()
        raw["rank_rewards"]["ranks"][1]["rank"] = "1st Place"

        with pytest.raises(PrizeDistributionInvalidError):
            parse_prize_distribution(raw)

    def test_negative_amount_is_schema_error(self):
        raw = sample_distribution()
        raw["custom_rewards"][0]["amount"] = -1

        with pytest.raises(PrizeDistributionInvalidError):
            parse_prize_distribution(raw)


class TestSplitEvenly:

    def test_remainder_goes_to_first_shares(self):
        assert _split_evenly(1001, 4) == [251, 250, 250, 250]
        assert _split_evenly(7, 3) == [3, 2, 2]
        assert sum(_split_evenly(2500, 3)) == 2500


class TestComputeMatchResults:
    """Prize derivation from uploaded rankings."""

    def test_rank_kill_and_custom_prizes(self):
        distribution = parse_prize_distribution(sample_distribution())
        payload = _results(
            {"rank": 2, "squad_name": "Bravo", "kills": 4, "players": [{"game_id": "b1"}, {"game_id": "b2"}]},
            {"rank": 1, "squad_name": "Alpha", "kills": 12, "players": [
                {"game_id": "a1", "kills": 7},
                {"game_id": "a2", "kills": 5},
                {"game_id": "a3"},
            ]},
            {"rank": 9, "squad_name": "Charlie", "kills": 0},
            awards=[{"name": "MVP", "recipient": "a1"}],
        )

        results = compute_match_results(distribution, 10000, payload, COMPLETED_AT)

        alpha, bravo, charlie = results.squad_rankings
        assert [squad.squad_name for squad in results.squad_rankings] == ["Alpha", "Bravo", "Charlie"]

        # Kills are capped at max_kills (10) and paid at 100 each
        assert alpha.rank_prize == 2500
        assert alpha.kill_prize == 1000
        assert alpha.prize_amount == 3500
        assert [player.individual_prize for player in alpha.players] == [1167, 1167, 1166]

        assert bravo.rank_prize == 1500
        assert bravo.kill_prize == 400
        assert [player.individual_prize for player in bravo.players] == [950, 950]

        assert charlie.prize_amount == 0
        assert charlie.players == []

        assert results.special_awards[0].amount == 1000
        assert results.prize_summary.rank_rewards_total == 4000
        assert results.prize_summary.kill_rewards_total == 1400
        assert results.prize_summary.custom_rewards_total == 1000
        assert results.prize_summary.total_distributed == 6400
        assert results.is_completed is True
        assert results.completed_at == COMPLETED_AT

    def test_empty_rankings_rejected(self):
        distribution = parse_prize_distribution(sample_distribution())

        with pytest.raises(ResultsPayloadInvalidError):
            compute_match_results(distribution, 10000, _results(), COMPLETED_AT)

    def test_duplicate_ranks_rejected(self):
        distribution = parse_prize_distribution(sample_distribution())
        payload = _results(
            {"rank": 1, "squad_name": "Alpha", "kills": 1},
            {"rank": 1, "squad_name": "Bravo", "kills": 1},
        )

        with pytest.raises(ResultsPayloadInvalidError):
            compute_match_results(distribution, 10000, payload, COMPLETED_AT)

    def test_duplicate_squad_names_rejected(self):
        distribution = parse_prize_distribution(sample_distribution())
        payload = _results(
            {"rank": 1, "squad_name": "Alpha", "kills": 1},
            {"rank": 2, "squad_name": "ALPHA", "kills": 1},
        )

        with pytest.raises(ResultsPayloadInvalidError):
            compute_match_results(distribution, 10000, payload, COMPLETED_AT)

    def test_unknown_special_award_rejected(self):
        distribution = parse_prize_distribution(sample_distribution())
        payload = _results(
            {"rank": 1, "squad_name": "Alpha", "kills": 1},
            awards=[{"name": "Best Dressed", "recipient": "a1"}],
        )

        with pytest.raises(ResultsPayloadInvalidError):
            compute_match_results(distribution, 10000, payload, COMPLETED_AT)

    def test_kill_payouts_above_declared_total_rejected(self):
        distribution = parse_prize_distribution(
            sample_distribution(kill_total=500, per_kill=100, max_kills=10)
        )
        payload = _results(
            {"rank": 1, "squad_name": "Alpha", "kills": 4},
            {"rank": 2, "squad_name": "Bravo", "kills": 4},
        )

        with pytest.raises(ResultsPayloadInvalidError):
            compute_match_results(distribution, 10000, payload, COMPLETED_AT)

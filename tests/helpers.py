"""Shared test payload builders."""
from datetime import timedelta
import uuid

from arena.utils import utc_now

ADMIN_HEADERS = {"X-Admin-Key": "test-admin-key"}


def sample_distribution(
    ranks: tuple[int, ...] = (2500, 1500, 1000, 0, 0),
    rank_total: int | None = None,
    kill_total: int = 4000,
    per_kill: int = 100,
    max_kills: int = 10,
    custom: tuple[tuple[str, int], ...] = (("MVP", 1000),),
    custom_total: int | None = None,
    total_distributed: int | None = None,
) -> dict:
    """Prize distribution payload; declared totals default to the reconciled values."""
    rank_names = ["1st Place", "2nd Place", "3rd Place", "4th Place", "5th Place"]
    rank_sum = sum(ranks)
    custom_sum = sum(amount for _, amount in custom)
    rank_total = rank_sum if rank_total is None else rank_total
    custom_total = custom_sum if custom_total is None else custom_total
    if total_distributed is None:
        total_distributed = rank_total + kill_total + custom_total

    return {
        "rank_rewards": {
            "total": rank_total,
            "ranks": [{"rank": name, "amount": amount} for name, amount in zip(rank_names, ranks)],
        },
        "kill_rewards": {"total": kill_total, "per_kill": per_kill, "max_kills": max_kills},
        "custom_rewards": [{"name": name, "amount": amount} for name, amount in custom],
        "summary": {
            "total_distributed": total_distributed,
            "rank_rewards_total": rank_total,
            "kill_rewards_total": kill_total,
            "custom_rewards_total": custom_total,
        },
    }


def sample_match_data(**overrides) -> dict:
    data = {
        "name": f"Scrim {uuid.uuid4().hex[:6]}",
        "entry_fee": 100,
        "prize_pool": 10000,
        "max_players": 4,
        "map": "Erangel",
        "start_time": (utc_now() + timedelta(days=1)).isoformat(),
        "prize_distribution": sample_distribution(),
    }
    data.update(overrides)
    return data

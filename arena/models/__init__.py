"""Database models."""
from arena.models.wallet import Wallet
from arena.models.transaction import WalletTransaction
from arena.models.match import Match
from arena.models.match_registration import MatchRegistration

__all__ = [
    "Wallet",
    "WalletTransaction",
    "Match",
    "MatchRegistration",
]

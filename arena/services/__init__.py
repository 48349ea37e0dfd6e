"""Business logic services."""
from arena.services.prize_distribution import (
    compute_match_results,
    parse_prize_distribution,
    validate_prize_distribution,
)
from arena.services.wallet_service import WalletService, WalletAudit
from arena.services.payment_service import PaymentService, verify_webhook_signature
from arena.services.match_service import MatchService, JoinResult, LeaveResult, StatusUpdateSummary

__all__ = [
    "WalletService",
    "WalletAudit",
    "PaymentService",
    "verify_webhook_signature",
    "MatchService",
    "JoinResult",
    "LeaveResult",
    "StatusUpdateSummary",
    "compute_match_results",
    "parse_prize_distribution",
    "validate_prize_distribution",
]

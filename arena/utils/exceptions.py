"""Domain exceptions.

Every exception carries a machine-readable ``code`` alongside its message so
API clients can react to specific failures (e.g. prompt a wallet top-up on
``insufficient_balance``).
"""


class ArenaException(Exception):
    """Base exception for all arena business errors."""

    code = "arena_error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__


# --- Validation errors -----------------------------------------------------

class ArenaValidationError(ArenaException):
    """Input is malformed or internally inconsistent."""
    code = "validation_error"


class InvalidAmountError(ArenaValidationError):
    """Amount must be greater than zero."""
    code = "invalid_amount"


class PrizeDistributionInvalidError(ArenaValidationError):
    """Prize distribution totals do not reconcile."""
    code = "prize_distribution_invalid"

    def __init__(self, check: str, message: str):
        super().__init__(message)
        self.check = check


class ResultsPayloadInvalidError(ArenaValidationError):
    """Match results payload is invalid."""
    code = "results_payload_invalid"


class MatchValidationError(ArenaValidationError):
    """Match data is invalid."""
    code = "match_invalid"


class PaymentAmountMismatchError(ArenaValidationError):
    """Reported payment amount does not match the pending order."""
    code = "payment_amount_mismatch"


# --- Business rule errors --------------------------------------------------

class BusinessRuleError(ArenaException):
    """Operation is not allowed in the current state."""
    code = "business_rule_violation"


class InsufficientBalanceError(BusinessRuleError):
    """Insufficient balance."""
    code = "insufficient_balance"

    def __init__(self, message: str | None = None, required: int | None = None, available: int | None = None):
        super().__init__(message)
        self.required = required
        self.available = available


class WalletInactiveError(BusinessRuleError):
    """Wallet is not active."""
    code = "wallet_inactive"


class WalletAlreadyExistsError(BusinessRuleError):
    """Wallet already exists for this user."""
    code = "wallet_already_exists"


class DuplicateReferenceError(BusinessRuleError):
    """A transaction with this reference already exists."""
    code = "duplicate_reference"


class MatchFullError(BusinessRuleError):
    """Match is full."""
    code = "match_full"


class AlreadyRegisteredError(BusinessRuleError):
    """You are already registered for this match."""
    code = "already_registered"


class NotRegisteredError(BusinessRuleError):
    """You are not registered for this match."""
    code = "not_registered"


class InvalidMatchStateError(BusinessRuleError):
    """Operation is not allowed for the current match status."""
    code = "invalid_match_state"


class ResultsNotAvailableError(BusinessRuleError):
    """Match results not yet uploaded."""
    code = "results_not_available"


# --- Not found errors ------------------------------------------------------

class NotFoundError(ArenaException):
    """Resource not found."""
    code = "not_found"


class WalletNotFoundError(NotFoundError):
    """Wallet not found."""
    code = "wallet_not_found"


class MatchNotFoundError(NotFoundError):
    """Match not found."""
    code = "match_not_found"


class TransactionNotFoundError(NotFoundError):
    """Transaction not found."""
    code = "transaction_not_found"


# --- Access errors ---------------------------------------------------------

class AccessDeniedError(ArenaException):
    """Access denied."""
    code = "access_denied"


class WalletAccessDeniedError(AccessDeniedError):
    """Not authorized to access this wallet."""
    code = "wallet_access_denied"

"""Domain exceptions for the settlement service."""


class SettlementServiceError(Exception):
    """Base exception for all settlement service errors."""

    code = "SETTLEMENT_ERROR"
    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(SettlementServiceError):
    """Raised when expense or share input is invalid."""

    code = "VALIDATION_ERROR"
    status_code = 400


class NotFoundError(SettlementServiceError):
    """Raised when a trip, expense or settlement does not exist."""

    code = "NOT_FOUND"
    status_code = 404


class AuthorizationError(SettlementServiceError):
    """Raised by the access-control collaborator when a caller is not allowed to act."""

    code = "FORBIDDEN"
    status_code = 403


class BalanceDriftError(SettlementServiceError):
    """Raised when net balances drift from zero by more than the rounding bound."""

    code = "BALANCE_DRIFT"

    def __init__(self, total: int, tolerance: int):
        self.total = total
        self.tolerance = tolerance
        super().__init__(
            f"Balances not zero-sum: total={total}, tolerance={tolerance}. "
            f"This indicates unbalanced expense data."
        )

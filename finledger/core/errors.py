class LedgerError(Exception):
    """Base class for recoverable domain failures.

    Each subclass carries the HTTP status and the short ``kind`` label that the
    API exception handler puts in the response body.
    """

    status_code = 400
    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(LedgerError):
    # Also raised for ids owned by another user.
    status_code = 404
    kind = "not_found"


class ValidationError(LedgerError):
    status_code = 400
    kind = "validation"


class InsufficientBalanceError(LedgerError):
    status_code = 400
    kind = "insufficient_balance"

    def __init__(self, message: str = "Insufficient balance in the selected account"):
        super().__init__(message)


class InvalidStateError(LedgerError):
    status_code = 409
    kind = "invalid_state"

"""Domain errors raised by the ledger services."""


class LedgerError(Exception):
    pass


class ValidationError(LedgerError):
    """Input rejected before any mutation."""


class InsufficientFundsError(LedgerError):

    def __init__(self, wallet_id, available, required):
        self.wallet_id = wallet_id
        self.available = available
        self.required = required
        super().__init__(
            f"Insufficient wallet balance: available {available}, required {required}"
        )


class NotFoundError(LedgerError):
    pass


class ConflictError(LedgerError):
    pass

"""Domain layer - Pure Python business logic."""

from salon_ledger.domain.entities import (
    BalanceSheetLine,
    BalanceSheetSection,
    JournalEntryDraft,
    PayComputation,
)
from salon_ledger.domain.exceptions import (
    ConflictError,
    InsufficientFundsError,
    LedgerError,
    NotFoundError,
    ValidationError,
)
from salon_ledger.domain.result import Err, Ok, Result, attempt
from salon_ledger.domain.services import (
    ICommissionNotifier,
    IJournalPoster,
    compute_commission_amount,
    compute_pay,
    day_window,
    prorate_base_salary,
    reconcile_balance_sheet,
)
from salon_ledger.domain.value_objects import (
    AccountType,
    JournalEntryStatus,
    JournalLine,
    PaymentDetails,
    PaymentMethod,
    TransferReference,
    WalletTransactionType,
)

"""Infrastructure layer."""

from salon_ledger.infrastructure.database import SessionLocal, atomic, get_db, init_db
from salon_ledger.infrastructure.database.models import (
    Account,
    Appointment,
    Commission,
    Expense,
    JournalEntry,
    JournalEntryLine,
    PayrollItem,
    PayrollRun,
    Sale,
    SaleItem,
    Salon,
    SalonEmployee,
    Wallet,
    WalletTransaction,
)

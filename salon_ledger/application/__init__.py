"""Application layer - Use cases and DTOs."""

from salon_ledger.application.dto.accounting_dto import (
    AccountCreateDTO,
    AccountResponseDTO,
    AppointmentCompletedEvent,
    ExpenseCreateDTO,
    JournalEntryCreateDTO,
    JournalEntryResponseDTO,
    SaleCompletedEvent,
)
from salon_ledger.application.dto.commission_dto import (
    CommissionResponseDTO,
    CommissionSummaryDTO,
    PaymentDetailsDTO,
)
from salon_ledger.application.dto.payroll_dto import PayrollRunResponseDTO, PayrollSummaryDTO
from salon_ledger.application.dto.reporting_dto import (
    BalanceSheetDTO,
    ExpenseSummaryDTO,
    FinancialSummaryDTO,
    ProfitAndLossDTO,
)

"""
Domain Entities - in-memory shapes validated before anything is persisted.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from .exceptions import ValidationError
from .value_objects import ZERO, JournalEntryStatus, JournalLine, to_money


@dataclass
class JournalEntryDraft:
    """
    Entity - a journal entry before it is written.
    Double entry: total debit must equal total credit.
    """
    salon_id: UUID
    entry_number: str
    description: str
    entry_date: datetime | None = None
    status: JournalEntryStatus = JournalEntryStatus.POSTED
    created_by_id: UUID | None = None
    lines: list[JournalLine] = field(default_factory=list)

    @property
    def total_debit(self) -> Decimal:
        return sum((to_money(line.debit_amount) for line in self.lines), ZERO)

    @property
    def total_credit(self) -> Decimal:
        return sum((to_money(line.credit_amount) for line in self.lines), ZERO)

    @property
    def difference(self) -> Decimal:
        return self.total_debit - self.total_credit

    def is_balanced(self) -> bool:
        return bool(self.lines) and self.difference == ZERO

    def validate(self) -> "JournalEntryDraft":
        if not self.lines:
            raise ValidationError("Journal entry must have at least one line")

        for idx, line in enumerate(self.lines, start=1):
            debit = to_money(line.debit_amount)
            credit = to_money(line.credit_amount)
            if debit < ZERO or credit < ZERO:
                raise ValidationError(f"Line {idx}: amounts must not be negative")
            if debit == ZERO and credit == ZERO:
                raise ValidationError(f"Line {idx}: a debit or a credit amount is required")

        if not self.is_balanced():
            raise ValidationError(
                f"Unbalanced journal entry {self.entry_number}: "
                f"debit {self.total_debit} != credit {self.total_credit}"
            )
        return self


@dataclass(frozen=True, slots=True)
class PayComputation:
    """Gross-to-net pay for one employee over one period."""
    base_salary: Decimal
    commission_amount: Decimal
    overtime_amount: Decimal = ZERO
    deductions: Decimal = ZERO

    @property
    def gross_pay(self) -> Decimal:
        return self.base_salary + self.commission_amount + self.overtime_amount

    @property
    def net_pay(self) -> Decimal:
        return self.gross_pay - self.deductions


@dataclass
class BalanceSheetLine:
    id: str
    code: str
    name: str
    balance: Decimal
    is_system: bool = False


@dataclass
class BalanceSheetSection:
    lines: list[BalanceSheetLine] = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return sum((line.balance for line in self.lines), ZERO)

    def add(self, line: BalanceSheetLine) -> None:
        self.lines.append(line)

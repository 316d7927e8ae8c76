"""
Domain Services - ports and pure business rules shared by the ledger components.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from .entities import BalanceSheetLine, BalanceSheetSection, PayComputation
from .exceptions import ValidationError
from .value_objects import (
    BANK,
    CASH,
    CENT,
    MOBILE_MONEY,
    ZERO,
    AccountType,
    PayFrequency,
    PaymentMethod,
    SalaryType,
    StandardAccount,
    to_money,
)

RETAINED_EARNINGS_ID = "retained-earnings"
IMPLIED_CASH_ID = "implied-cash"
UNRECONCILED_ID = "unreconciled-difference"

PAY_FREQUENCY_DIVISORS: dict[str, Decimal] = {
    PayFrequency.DAILY.value: Decimal("1"),
    PayFrequency.WEEKLY.value: Decimal("7"),
    PayFrequency.BIWEEKLY.value: Decimal("14"),
    PayFrequency.MONTHLY.value: Decimal("30"),
}
DEFAULT_PAY_DIVISOR = PAY_FREQUENCY_DIVISORS[PayFrequency.MONTHLY.value]


class IJournalPoster(ABC):
    """Port used by the commission ledger and payroll to book their movements."""

    @abstractmethod
    def post_commission_payment(self, commission: Any, salon_id: Any) -> Any:
        ...

    @abstractmethod
    def post_payroll_payment(self, payroll_run: Any, payment_method: str | None = None) -> Any:
        ...


class ICommissionNotifier(ABC):

    @abstractmethod
    def commission_paid(self, commission: Any, employee: Any) -> None:
        ...


def compute_commission_amount(sale_amount: Decimal, commission_rate: Decimal) -> Decimal:
    """amount = sale_amount * rate / 100, rounded to cents."""
    if sale_amount is None:
        raise ValidationError("Sale amount is required")
    sale_amount = Decimal(str(sale_amount))
    if sale_amount < ZERO:
        raise ValidationError("Sale amount must not be negative")
    rate = Decimal(str(commission_rate or 0))
    if rate < ZERO:
        raise ValidationError("Commission rate must not be negative")
    return (sale_amount * rate / Decimal("100")).quantize(CENT, rounding=ROUND_HALF_UP)


def period_day_count(period_start: date, period_end: date) -> int:
    """Inclusive number of calendar days covered by a payroll period."""
    if period_end < period_start:
        raise ValidationError("Period end must not be before period start")
    return (period_end - period_start).days + 1


def prorate_base_salary(
    base_salary: Decimal | None,
    pay_frequency: str | None,
    salary_type: str | None,
    day_count: int,
) -> Decimal:
    """
    Base pay for a period of ``day_count`` days.

    The stored base salary is the rate for the employee's pay frequency.
    Divisors are fixed (7, 14, 30); unknown or missing frequency is monthly.
    """
    if not base_salary or salary_type == SalaryType.COMMISSION_ONLY.value:
        return to_money(ZERO)
    divisor = PAY_FREQUENCY_DIVISORS.get(pay_frequency or "", DEFAULT_PAY_DIVISOR)
    return to_money(Decimal(str(base_salary)) * Decimal(day_count) / divisor)


def compute_pay(
    base_salary: Decimal | None,
    pay_frequency: str | None,
    salary_type: str | None,
    day_count: int,
    unpaid_commissions: list[Decimal],
) -> PayComputation:
    commission_amount = ZERO
    if salary_type != SalaryType.SALARY_ONLY.value:
        commission_amount = sum((to_money(a) for a in unpaid_commissions), ZERO)
    return PayComputation(
        base_salary=prorate_base_salary(base_salary, pay_frequency, salary_type, day_count),
        commission_amount=to_money(commission_amount),
    )


def payment_account_for(payment_method: str | None) -> StandardAccount:
    """Asset account the money leaves from (or arrives in) for a payment method."""
    if payment_method == PaymentMethod.BANK_TRANSFER.value:
        return BANK
    if payment_method == PaymentMethod.MOBILE_MONEY.value:
        return MOBILE_MONEY
    return CASH


def account_balance(account_type: str, debit: Decimal, credit: Decimal) -> Decimal:
    """Assets are debit-normal; liabilities and equity are credit-normal."""
    if account_type == AccountType.ASSET.value:
        return to_money(debit) - to_money(credit)
    return to_money(credit) - to_money(debit)


def reconcile_balance_sheet(
    assets: BalanceSheetSection,
    liabilities: BalanceSheetSection,
    equity: BalanceSheetSection,
) -> Decimal:
    """
    Force assets == liabilities + equity and return the discrepancy found.

    A positive discrepancy is presumed to be untracked cash (POS takings with
    no asset-side posting); a negative one is parked in equity.
    """
    discrepancy = (liabilities.total + equity.total) - assets.total
    if discrepancy > ZERO:
        assets.add(BalanceSheetLine(
            id=IMPLIED_CASH_ID,
            code="ASSET-CASH-AUTO",
            name="Cash on Hand (Calculated)",
            balance=discrepancy,
            is_system=True,
        ))
    elif discrepancy < ZERO:
        equity.add(BalanceSheetLine(
            id=UNRECONCILED_ID,
            code="EQUITY-UNRECONCILED",
            name="Unreconciled Difference",
            balance=-discrepancy,
            is_system=True,
        ))
    return discrepancy


def make_entry_number(prefix: str, reference_id: Any, now: datetime) -> str:
    return f"{prefix}-{str(reference_id)[:8].upper()}-{int(now.timestamp() * 1000)}"


def day_window(
    start_date: date | None, end_date: date | None
) -> tuple[datetime | None, datetime | None]:
    """Inclusive calendar-day bounds: start 00:00 through end 23:59:59.999999."""
    start = datetime.combine(start_date, time.min) if start_date else None
    end = datetime.combine(end_date, time.max) if end_date else None
    return start, end

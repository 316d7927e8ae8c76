"""
Journal Poster - books settled commissions, payroll, expenses and sales.

Each posting is a separate journal transaction that runs after the business
transaction it describes has committed.
"""

import logging
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from salon_ledger.application.services.account_registry import AccountRegistry
from salon_ledger.application.services.journal_engine import JournalEngine
from salon_ledger.domain.entities import JournalEntryDraft
from salon_ledger.domain.services import ICommissionNotifier, IJournalPoster, make_entry_number, payment_account_for
from salon_ledger.domain.value_objects import (
    CASH,
    COMMISSION_EXPENSE,
    MISC_EXPENSE,
    SALES_DISCOUNTS,
    SALES_REVENUE,
    WAGES,
    ZERO,
    JournalLine,
    ReferenceType,
    to_money,
)
from salon_ledger.infrastructure.database.models import (
    Account,
    Commission,
    Expense,
    JournalEntry,
    PayrollRun,
    SalonEmployee,
    utcnow,
)

logger = logging.getLogger(__name__)


class JournalPoster(IJournalPoster):

    def __init__(self, db: Session):
        self.db = db
        self.accounts = AccountRegistry(db)
        self.engine = JournalEngine(db)

    def post_commission_payment(self, commission: Commission, salon_id: UUID) -> JournalEntry | None:
        """Dr 6020 Commission Expense / Cr payment account."""
        amount = to_money(commission.amount)
        if amount == ZERO:
            return None
        if commission.payroll_item_id is not None:
            # booked as wages by the payroll entry
            return None

        expense_account = self.accounts.get_standard_account(salon_id, COMMISSION_EXPENSE)
        payment_account = self.accounts.get_standard_account(
            salon_id, payment_account_for(commission.payment_method)
        )
        reference = (ReferenceType.COMMISSION.value, str(commission.id))
        draft = JournalEntryDraft(
            salon_id=salon_id,
            entry_number=make_entry_number("COMM", commission.id, utcnow()),
            description=f"Commission payment {str(commission.id)[:8]}",
            entry_date=commission.paid_at,
            created_by_id=commission.paid_by_id,
            lines=[
                JournalLine(expense_account.id, debit_amount=amount,
                            description="Commission expense",
                            reference_type=reference[0], reference_id=reference[1]),
                JournalLine(payment_account.id, credit_amount=amount,
                            description="Commission paid",
                            reference_type=reference[0], reference_id=reference[1]),
            ],
        )
        return self.engine.create_journal_entry(draft)

    def post_payroll_payment(
        self, payroll_run: PayrollRun, payment_method: str | None = None
    ) -> JournalEntry | None:
        """Dr 6010 Wages & Salaries / Cr payment account, for the run's total."""
        amount = to_money(payroll_run.total_amount)
        if amount == ZERO:
            return None
        if payment_method is None and payroll_run.items:
            payment_method = payroll_run.items[0].payment_method

        wages_account = self.accounts.get_standard_account(payroll_run.salon_id, WAGES)
        payment_account = self.accounts.get_standard_account(
            payroll_run.salon_id, payment_account_for(payment_method)
        )
        period = f"{payroll_run.period_start.isoformat()} - {payroll_run.period_end.isoformat()}"
        reference = (ReferenceType.PAYROLL.value, str(payroll_run.id))
        draft = JournalEntryDraft(
            salon_id=payroll_run.salon_id,
            entry_number=make_entry_number("PAY", payroll_run.id, utcnow()),
            description=f"Payroll {period}",
            entry_date=payroll_run.processed_at,
            created_by_id=payroll_run.processed_by_id,
            lines=[
                JournalLine(wages_account.id, debit_amount=amount,
                            description=f"Wages for {period}",
                            reference_type=reference[0], reference_id=reference[1]),
                JournalLine(payment_account.id, credit_amount=amount,
                            description="Payroll paid",
                            reference_type=reference[0], reference_id=reference[1]),
            ],
        )
        return self.engine.create_journal_entry(draft)

    def post_expense(self, expense: Expense) -> JournalEntry | None:
        """Dr category account (6999 when uncategorised) / Cr payment account."""
        amount = to_money(expense.amount)
        if amount == ZERO:
            return None

        category = self.db.get(Account, expense.category_id) if expense.category_id else None
        if category is None:
            category = self.accounts.get_standard_account(expense.salon_id, MISC_EXPENSE)
        payment_account = self.accounts.get_standard_account(
            expense.salon_id, payment_account_for(expense.payment_method)
        )
        description = expense.description or category.name
        reference = (ReferenceType.EXPENSE.value, str(expense.id))
        draft = JournalEntryDraft(
            salon_id=expense.salon_id,
            entry_number=make_entry_number("EXP", expense.id, utcnow()),
            description=f"Expense: {description}",
            entry_date=expense.expense_date,
            created_by_id=expense.created_by_id,
            lines=[
                JournalLine(category.id, debit_amount=amount, description=description,
                            reference_type=reference[0], reference_id=reference[1]),
                JournalLine(payment_account.id, credit_amount=amount,
                            description=f"Paid via {expense.payment_method}",
                            reference_type=reference[0], reference_id=reference[1]),
            ],
        )
        return self.engine.create_journal_entry(draft)

    def post_sale(
        self,
        salon_id: UUID,
        sale_id: UUID,
        total_amount: Decimal,
        discounts: list[Decimal] | None = None,
        created_by_id: UUID | None = None,
        entry_date: datetime | None = None,
    ) -> JournalEntry | None:
        """
        Dr 1010 Cash (total) and Dr 4100 Sales Discounts (discounts),
        Cr 4000 Sales Revenue (total + discounts).

        A sale that is already booked returns its existing entry.
        """
        existing = self.engine.find_by_reference(ReferenceType.SALE.value, str(sale_id))
        if existing:
            return existing[0]

        total = to_money(total_amount)
        discount = sum((to_money(d) for d in discounts or []), ZERO)
        gross = total + discount
        if gross == ZERO:
            return None

        cash = self.accounts.get_standard_account(salon_id, CASH)
        revenue = self.accounts.get_standard_account(salon_id, SALES_REVENUE)
        reference = (ReferenceType.SALE.value, str(sale_id))

        lines = []
        if total > ZERO:
            lines.append(JournalLine(cash.id, debit_amount=total, description="Sale receipt",
                                     reference_type=reference[0], reference_id=reference[1]))
        if discount > ZERO:
            discounts_account = self.accounts.get_standard_account(salon_id, SALES_DISCOUNTS)
            lines.append(JournalLine(discounts_account.id, debit_amount=discount,
                                     description="Sale discounts",
                                     reference_type=reference[0], reference_id=reference[1]))
        lines.append(JournalLine(revenue.id, credit_amount=gross, description="Sales revenue",
                                 reference_type=reference[0], reference_id=reference[1]))

        draft = JournalEntryDraft(
            salon_id=salon_id,
            entry_number=make_entry_number("SALE", sale_id, utcnow()),
            description=f"Sale #{str(sale_id)[:8]}",
            entry_date=entry_date,
            created_by_id=created_by_id,
            lines=lines,
        )
        return self.engine.create_journal_entry(draft)


class LoggingCommissionNotifier(ICommissionNotifier):
    """Writes commission-paid notices to the log."""

    def commission_paid(self, commission: Commission, employee: SalonEmployee | None) -> None:
        logger.info(
            "Commission %s of %s paid to %s",
            commission.id,
            to_money(commission.amount),
            employee.full_name if employee and employee.full_name else commission.salon_employee_id,
            extra={
                "commission_id": str(commission.id),
                "employee_id": str(commission.salon_employee_id),
                "payment_method": commission.payment_method,
            },
        )

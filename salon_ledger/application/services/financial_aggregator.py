"""
Financial Aggregator - read-only reports across sales, manual expenses,
commissions, journal lines, payroll runs and wallet fees.

Every source is read as a list of ``SourceRow`` and the reports fold those
rows; all windows cover whole calendar days.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from salon_ledger.application.dto.reporting_dto import (
    BalanceSheetDTO,
    BalanceSheetLineDTO,
    CategoryTotalDTO,
    DailyFinancialDTO,
    ExpenseSummaryDTO,
    FinancialSummaryDTO,
    LedgerRowDTO,
    PaymentMethodTotalDTO,
    ProfitAndLossDTO,
    ProfitAndLossLineDTO,
)
from salon_ledger.domain.entities import BalanceSheetLine, BalanceSheetSection
from salon_ledger.domain.exceptions import ValidationError
from salon_ledger.domain.services import (
    RETAINED_EARNINGS_ID,
    account_balance,
    day_window,
    reconcile_balance_sheet,
)
from salon_ledger.domain.value_objects import (
    ZERO,
    AccountType,
    ExpenseStatus,
    JournalEntryStatus,
    PayrollStatus,
    ReferenceType,
    SaleStatus,
    WalletTransactionStatus,
    WalletTransactionType,
    to_money,
)
from salon_ledger.infrastructure.database.models import (
    Account,
    Commission,
    Expense,
    JournalEntry,
    JournalEntryLine,
    PayrollRun,
    Sale,
    SalonEmployee,
    Wallet,
    WalletTransaction,
)

logger = logging.getLogger(__name__)

INCOME = "income"
EXPENSE = "expense"

# Journal lines generated from these sources are already counted from the
# source tables themselves.
SOURCE_REFERENCE_TYPES = (
    ReferenceType.EXPENSE.value,
    ReferenceType.COMMISSION.value,
    ReferenceType.PAYROLL.value,
)


@dataclass(frozen=True, slots=True)
class SourceRow:
    occurred_at: datetime
    amount: Decimal
    category: str | None = None
    method: str | None = None
    description: str | None = None
    source_id: str = ""


def _check_type(type_: str | None) -> None:
    if type_ not in (None, INCOME, EXPENSE):
        raise ValidationError(f"Unknown report type {type_!r}; expected 'income' or 'expense'")


def _sorted_totals(totals: dict[str, Decimal]) -> list[tuple[str, Decimal]]:
    return sorted(totals.items(), key=lambda kv: kv[1], reverse=True)


class FinancialAggregator:

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Sources
    # ------------------------------------------------------------------

    def _sales(self, salon_id, start, end) -> list[SourceRow]:
        query = self.db.query(Sale).filter(
            Sale.salon_id == salon_id, Sale.status == SaleStatus.COMPLETED.value
        )
        if start:
            query = query.filter(Sale.created_at >= start)
        if end:
            query = query.filter(Sale.created_at <= end)
        return [
            SourceRow(s.created_at, to_money(s.total_amount), "Sale", s.payment_method,
                      f"Sale #{str(s.id)[:8]}", str(s.id))
            for s in query.all()
        ]

    def _journal_lines(self, salon_id, account_type: AccountType, start, end):
        query = (
            self.db.query(JournalEntryLine, JournalEntry.entry_date, Account.name)
            .join(JournalEntry, JournalEntry.id == JournalEntryLine.journal_entry_id)
            .join(Account, Account.id == JournalEntryLine.account_id)
            .filter(
                JournalEntry.salon_id == salon_id,
                JournalEntry.status == JournalEntryStatus.POSTED.value,
                Account.account_type == account_type.value,
            )
        )
        if start:
            query = query.filter(JournalEntry.entry_date >= start)
        if end:
            query = query.filter(JournalEntry.entry_date <= end)
        return query

    def _other_revenue(self, salon_id, start, end) -> list[SourceRow]:
        query = self._journal_lines(salon_id, AccountType.REVENUE, start, end).filter(
            or_(
                JournalEntryLine.reference_type.is_(None),
                JournalEntryLine.reference_type != ReferenceType.SALE.value,
            )
        )
        return [
            SourceRow(entry_date, to_money(line.credit_amount) - to_money(line.debit_amount),
                      account_name, "journal_entry", line.description, str(line.id))
            for line, entry_date, account_name in query.all()
        ]

    def _journal_expenses(self, salon_id, start, end, category_id=None) -> list[SourceRow]:
        query = self._journal_lines(salon_id, AccountType.EXPENSE, start, end).filter(
            or_(
                JournalEntryLine.reference_type.is_(None),
                JournalEntryLine.reference_type.notin_(SOURCE_REFERENCE_TYPES),
            )
        )
        if category_id:
            query = query.filter(Account.id == category_id)
        return [
            SourceRow(entry_date, to_money(line.debit_amount) - to_money(line.credit_amount),
                      account_name or "Journal Adjustment", "journal_entry",
                      line.description, str(line.id))
            for line, entry_date, account_name in query.all()
        ]

    def _manual_expenses(self, salon_id, start, end, category_id=None) -> list[SourceRow]:
        query = (
            self.db.query(Expense, Account.name)
            .outerjoin(Account, Account.id == Expense.category_id)
            .filter(Expense.salon_id == salon_id, Expense.status == ExpenseStatus.APPROVED.value)
        )
        if category_id:
            query = query.filter(Expense.category_id == category_id)
        if start:
            query = query.filter(Expense.expense_date >= start)
        if end:
            query = query.filter(Expense.expense_date <= end)
        return [
            SourceRow(e.expense_date, to_money(e.amount), category_name, e.payment_method,
                      e.description, str(e.id))
            for e, category_name in query.all()
        ]

    def _commissions(self, salon_id, start, end) -> list[SourceRow]:
        query = (
            self.db.query(Commission)
            .join(SalonEmployee, SalonEmployee.id == Commission.salon_employee_id)
            .filter(SalonEmployee.salon_id == salon_id)
        )
        if start:
            query = query.filter(Commission.created_at >= start)
        if end:
            query = query.filter(Commission.created_at <= end)
        return [
            SourceRow(c.created_at, to_money(c.amount), "Commissions", "system_accrual",
                      "Staff Commission Payout", str(c.id))
            for c in query.all()
        ]

    def _payroll(self, salon_id, start, end) -> list[SourceRow]:
        query = self.db.query(PayrollRun).filter(
            PayrollRun.salon_id == salon_id, PayrollRun.status == PayrollStatus.PAID.value
        )
        if start:
            query = query.filter(PayrollRun.created_at >= start)
        if end:
            query = query.filter(PayrollRun.created_at <= end)
        return [
            SourceRow(r.created_at, to_money(r.total_amount), "Payroll", "wage_payment",
                      "Payroll Run Payout", str(r.id))
            for r in query.all()
        ]

    def _fees(self, salon_id, start, end) -> list[SourceRow]:
        query = (
            self.db.query(WalletTransaction)
            .join(Wallet, Wallet.id == WalletTransaction.wallet_id)
            .filter(
                Wallet.salon_id == salon_id,
                WalletTransaction.transaction_type == WalletTransactionType.FEE.value,
                WalletTransaction.status == WalletTransactionStatus.COMPLETED.value,
            )
        )
        if start:
            query = query.filter(WalletTransaction.created_at >= start)
        if end:
            query = query.filter(WalletTransaction.created_at <= end)
        return [
            SourceRow(tx.created_at, to_money(tx.amount), "System Fees", "system_fee",
                      tx.description or "Transaction Fee", str(tx.id))
            for tx in query.all()
        ]

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def get_expense_summary(
        self,
        salon_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
        category_id: UUID | None = None,
    ) -> ExpenseSummaryDTO:
        """
        Expenses from every source, by category and by payment method.

        A category filter keeps manual expenses and journal lines only;
        commissions, payroll and fees are salon-wide.
        """
        start, end = day_window(start_date, end_date)
        by_category: dict[str, Decimal] = defaultdict(lambda: ZERO)
        by_method: dict[str, Decimal] = defaultdict(lambda: ZERO)
        total = ZERO
        count = 0

        for row in self._manual_expenses(salon_id, start, end, category_id):
            by_category[row.category or "Uncategorized"] += row.amount
            by_method[row.method or "other"] += row.amount
            total += row.amount
            count += 1

        sources = [self._journal_expenses(salon_id, start, end, category_id)]
        if category_id is None:
            sources += [
                self._commissions(salon_id, start, end),
                self._payroll(salon_id, start, end),
                self._fees(salon_id, start, end),
            ]
        for rows in sources:
            for row in rows:
                total += row.amount
                count += 1
                if row.amount:
                    by_category[row.category] += row.amount
                    by_method[row.method] += row.amount

        return ExpenseSummaryDTO(
            total_expenses=total,
            expense_count=count,
            by_category=[
                CategoryTotalDTO(category_name=name, total=value)
                for name, value in _sorted_totals(by_category)
            ],
            by_payment_method=[
                PaymentMethodTotalDTO(method=name, total=value)
                for name, value in _sorted_totals(by_method)
            ],
        )

    def get_financial_summary(
        self,
        salon_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
        type_: str | None = None,
        category_id: UUID | None = None,
    ) -> FinancialSummaryDTO:
        _check_type(type_)
        include_income = type_ in (None, INCOME) and category_id is None
        include_expense = type_ in (None, EXPENSE)

        total_revenue = ZERO
        sales_count = 0
        if include_income:
            start, end = day_window(start_date, end_date)
            sales = self._sales(salon_id, start, end)
            sales_count = len(sales)
            total_revenue = sum((s.amount for s in sales), ZERO)
            total_revenue += sum((r.amount for r in self._other_revenue(salon_id, start, end)), ZERO)

        total_expenses = ZERO
        expense_count = 0
        if include_expense:
            summary = self.get_expense_summary(salon_id, start_date, end_date, category_id)
            total_expenses = summary.total_expenses
            expense_count = summary.expense_count

        return FinancialSummaryDTO(
            total_revenue=total_revenue,
            total_expenses=total_expenses,
            net_income=total_revenue - total_expenses,
            sales_count=sales_count,
            expense_count=expense_count,
        )

    def get_daily_financials(
        self, salon_id: UUID, start_date: date, end_date: date
    ) -> list[DailyFinancialDTO]:
        """Revenue and expenses per calendar day; days without activity are absent."""
        start, end = day_window(start_date, end_date)
        revenue: dict[str, Decimal] = defaultdict(lambda: ZERO)
        expenses: dict[str, Decimal] = defaultdict(lambda: ZERO)

        for rows in (self._sales(salon_id, start, end), self._other_revenue(salon_id, start, end)):
            for row in rows:
                revenue[row.occurred_at.date().isoformat()] += row.amount
        for rows in (
            self._manual_expenses(salon_id, start, end),
            self._commissions(salon_id, start, end),
            self._journal_expenses(salon_id, start, end),
            self._payroll(salon_id, start, end),
            self._fees(salon_id, start, end),
        ):
            for row in rows:
                expenses[row.occurred_at.date().isoformat()] += row.amount

        return [
            DailyFinancialDTO(
                date=day,
                revenue=revenue.get(day, ZERO),
                expenses=expenses.get(day, ZERO),
                net_income=revenue.get(day, ZERO) - expenses.get(day, ZERO),
            )
            for day in sorted(set(revenue) | set(expenses))
        ]

    def get_accounting_ledger(
        self,
        salon_id: UUID,
        start_date: date,
        end_date: date,
        type_: str | None = None,
        category_id: UUID | None = None,
    ) -> list[LedgerRowDTO]:
        _check_type(type_)
        start, end = day_window(start_date, end_date)
        rows: list[LedgerRowDTO] = []

        if type_ in (None, INCOME) and category_id is None:
            rows += [
                LedgerRowDTO(date=s.occurred_at, type="Income", category="Sale",
                             description=s.description, amount=s.amount, is_outflow=False)
                for s in self._sales(salon_id, start, end)
            ]

        if type_ in (None, EXPENSE):
            rows += [
                LedgerRowDTO(date=e.occurred_at, type="Expense", category=e.category or "General",
                             description=e.description or "Manual Expense", amount=e.amount,
                             is_outflow=True)
                for e in self._manual_expenses(salon_id, start, end, category_id)
            ]
            if category_id is None:
                labelled = (
                    ("Commission", self._commissions(salon_id, start, end)),
                    ("Payroll", self._payroll(salon_id, start, end)),
                    ("System Fees", self._fees(salon_id, start, end)),
                )
                for category, source in labelled:
                    rows += [
                        LedgerRowDTO(date=r.occurred_at, type="Expense", category=category,
                                     description=r.description, amount=r.amount, is_outflow=True)
                        for r in source
                    ]

        rows.sort(key=lambda r: r.date, reverse=True)
        return rows

    def get_balance_sheet_report(self, salon_id: UUID, as_of_date: date) -> BalanceSheetDTO:
        """
        Posted balances of asset, liability and equity accounts up to the end
        of ``as_of_date``, with full-history net income as retained earnings.

        The difference left after that is reported as ``discrepancy`` and
        plugged so that assets always equal liabilities plus equity.
        """
        _, as_of = day_window(None, as_of_date)
        accounts = (
            self.db.query(Account)
            .filter(
                Account.salon_id == salon_id,
                Account.account_type.in_([
                    AccountType.ASSET.value, AccountType.LIABILITY.value, AccountType.EQUITY.value,
                ]),
            )
            .order_by(Account.code)
            .all()
        )

        sums: dict[UUID, list[Decimal]] = defaultdict(lambda: [ZERO, ZERO])
        lines = (
            self.db.query(JournalEntryLine.account_id, JournalEntryLine.debit_amount,
                          JournalEntryLine.credit_amount)
            .join(JournalEntry, JournalEntry.id == JournalEntryLine.journal_entry_id)
            .filter(
                JournalEntry.salon_id == salon_id,
                JournalEntry.status == JournalEntryStatus.POSTED.value,
                JournalEntry.entry_date <= as_of,
            )
            .all()
        )
        for account_id, debit, credit in lines:
            sums[account_id][0] += to_money(debit)
            sums[account_id][1] += to_money(credit)

        sections = {
            AccountType.ASSET.value: BalanceSheetSection(),
            AccountType.LIABILITY.value: BalanceSheetSection(),
            AccountType.EQUITY.value: BalanceSheetSection(),
        }
        for account in accounts:
            debit, credit = sums.get(account.id, (ZERO, ZERO))
            sections[account.account_type].add(BalanceSheetLine(
                id=str(account.id),
                code=account.code,
                name=account.name,
                balance=account_balance(account.account_type, debit, credit),
            ))

        net_income = self.get_financial_summary(salon_id, None, as_of_date).net_income
        assets = sections[AccountType.ASSET.value]
        liabilities = sections[AccountType.LIABILITY.value]
        equity = sections[AccountType.EQUITY.value]
        equity.add(BalanceSheetLine(
            id=RETAINED_EARNINGS_ID,
            code="EQUITY-RET",
            name="Net Income (Retained Earnings)",
            balance=net_income,
        ))

        discrepancy = reconcile_balance_sheet(assets, liabilities, equity)
        if discrepancy:
            logger.info(
                "Balance sheet for salon %s as of %s plugged by %s", salon_id, as_of_date, discrepancy,
                extra={"salon_id": str(salon_id), "discrepancy": str(discrepancy)},
            )

        def to_dto(section: BalanceSheetSection) -> list[BalanceSheetLineDTO]:
            return [
                BalanceSheetLineDTO(id=line.id, code=line.code, name=line.name,
                                    balance=line.balance, is_system=line.is_system)
                for line in section.lines
            ]

        return BalanceSheetDTO(
            as_of_date=as_of_date,
            assets=to_dto(assets),
            liabilities=to_dto(liabilities),
            equity=to_dto(equity),
            total_assets=assets.total,
            total_liabilities=liabilities.total,
            total_equity=equity.total,
            discrepancy=discrepancy,
        )

    def get_profit_and_loss(self, salon_id: UUID, start_date: date, end_date: date) -> ProfitAndLossDTO:
        start, end = day_window(start_date, end_date)
        balances: dict[str, Decimal] = defaultdict(lambda: ZERO)
        accounts = (
            self.db.query(Account)
            .filter(Account.salon_id == salon_id, Account.account_type == AccountType.REVENUE.value)
            .order_by(Account.code)
            .all()
        )
        for line, _entry_date, _name in self._journal_lines(salon_id, AccountType.REVENUE, start, end).all():
            balances[line.account_id] += to_money(line.credit_amount) - to_money(line.debit_amount)

        revenue = [
            ProfitAndLossLineDTO(name=account.name, balance=balances[account.id])
            for account in accounts
            if balances.get(account.id, ZERO) != ZERO
        ]
        total_revenue = sum((line.balance for line in revenue), ZERO)

        summary_revenue = self.get_financial_summary(salon_id, start_date, end_date, INCOME).total_revenue
        if total_revenue < summary_revenue:
            revenue.append(ProfitAndLossLineDTO(
                name="Sales Revenue (POS)", balance=summary_revenue - total_revenue,
            ))
            total_revenue = summary_revenue

        expense_summary = self.get_expense_summary(salon_id, start_date, end_date)
        expenses = [
            ProfitAndLossLineDTO(name=c.category_name, balance=c.total)
            for c in expense_summary.by_category
        ]
        return ProfitAndLossDTO(
            start_date=start_date,
            end_date=end_date,
            revenue=revenue,
            expenses=expenses,
            total_revenue=total_revenue,
            total_expenses=expense_summary.total_expenses,
            net_income=total_revenue - expense_summary.total_expenses,
        )

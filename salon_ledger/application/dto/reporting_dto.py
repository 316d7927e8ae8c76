"""
DTOs - financial reports consumed by exporters and renderers.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel


class CategoryTotalDTO(BaseModel):
    category_name: str
    total: Decimal


class PaymentMethodTotalDTO(BaseModel):
    method: str
    total: Decimal


class ExpenseSummaryDTO(BaseModel):
    total_expenses: Decimal
    expense_count: int
    by_category: list[CategoryTotalDTO]
    by_payment_method: list[PaymentMethodTotalDTO]


class FinancialSummaryDTO(BaseModel):
    total_revenue: Decimal
    total_expenses: Decimal
    net_income: Decimal
    sales_count: int
    expense_count: int


class DailyFinancialDTO(BaseModel):
    date: str  # YYYY-MM-DD
    revenue: Decimal
    expenses: Decimal
    net_income: Decimal


class LedgerRowDTO(BaseModel):
    """One row of the accounting ledger export."""
    date: datetime
    type: str  # Income, Expense
    category: str
    description: str
    amount: Decimal
    is_outflow: bool


class BalanceSheetLineDTO(BaseModel):
    id: str
    code: str
    name: str
    balance: Decimal
    is_system: bool = False


class BalanceSheetDTO(BaseModel):
    as_of_date: date
    assets: list[BalanceSheetLineDTO]
    liabilities: list[BalanceSheetLineDTO]
    equity: list[BalanceSheetLineDTO]
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    discrepancy: Decimal


class ProfitAndLossLineDTO(BaseModel):
    name: str
    balance: Decimal


class ProfitAndLossDTO(BaseModel):
    start_date: date
    end_date: date
    revenue: list[ProfitAndLossLineDTO]
    expenses: list[ProfitAndLossLineDTO]
    total_revenue: Decimal
    total_expenses: Decimal
    net_income: Decimal

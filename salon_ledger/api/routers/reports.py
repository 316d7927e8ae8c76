"""
API Routers - financial reports.
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from salon_ledger.application.dto.reporting_dto import (
    BalanceSheetDTO,
    DailyFinancialDTO,
    ExpenseSummaryDTO,
    FinancialSummaryDTO,
    LedgerRowDTO,
    ProfitAndLossDTO,
)
from salon_ledger.application.services.financial_aggregator import FinancialAggregator
from salon_ledger.infrastructure.database import get_db

router = APIRouter(prefix="/api/v1/reports", tags=["Reports"])


@router.get("/expense-summary", response_model=ExpenseSummaryDTO)
def expense_summary(
    salon_id: UUID,
    start_date: date | None = None,
    end_date: date | None = None,
    category_id: UUID | None = None,
    db: Session = Depends(get_db),
):
    return FinancialAggregator(db).get_expense_summary(salon_id, start_date, end_date, category_id)


@router.get("/financial-summary", response_model=FinancialSummaryDTO)
def financial_summary(
    salon_id: UUID,
    start_date: date | None = None,
    end_date: date | None = None,
    type_: str | None = Query(None, alias="type", description="income or expense"),
    category_id: UUID | None = None,
    db: Session = Depends(get_db),
):
    return FinancialAggregator(db).get_financial_summary(
        salon_id, start_date, end_date, type_, category_id
    )


@router.get("/daily", response_model=list[DailyFinancialDTO])
def daily_financials(
    salon_id: UUID,
    start_date: date,
    end_date: date,
    db: Session = Depends(get_db),
):
    return FinancialAggregator(db).get_daily_financials(salon_id, start_date, end_date)


@router.get("/ledger", response_model=list[LedgerRowDTO])
def accounting_ledger(
    salon_id: UUID,
    start_date: date,
    end_date: date,
    type_: str | None = Query(None, alias="type", description="income or expense"),
    category_id: UUID | None = None,
    db: Session = Depends(get_db),
):
    """Flat, newest-first rows for CSV/PDF export."""
    return FinancialAggregator(db).get_accounting_ledger(
        salon_id, start_date, end_date, type_, category_id
    )


@router.get("/balance-sheet", response_model=BalanceSheetDTO)
def balance_sheet(
    salon_id: UUID,
    as_of_date: date = Query(..., description="Report date (inclusive)"),
    db: Session = Depends(get_db),
):
    return FinancialAggregator(db).get_balance_sheet_report(salon_id, as_of_date)


@router.get("/profit-and-loss", response_model=ProfitAndLossDTO)
def profit_and_loss(
    salon_id: UUID,
    start_date: date,
    end_date: date,
    db: Session = Depends(get_db),
):
    return FinancialAggregator(db).get_profit_and_loss(salon_id, start_date, end_date)

"""
API Routers - payroll runs.
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from salon_ledger.application.dto.payroll_dto import (
    PayrollCalculateDTO,
    PayrollPayDTO,
    PayrollRunResponseDTO,
    PayrollSummaryDTO,
)
from salon_ledger.application.services.payroll_calculator import PayrollCalculator
from salon_ledger.infrastructure.database import get_db

router = APIRouter(prefix="/api/v1/payroll", tags=["Payroll"])


@router.post("/calculate", response_model=PayrollRunResponseDTO, status_code=status.HTTP_201_CREATED)
def calculate_payroll(dto: PayrollCalculateDTO, db: Session = Depends(get_db)):
    return PayrollCalculator(db).calculate_payroll(
        dto.salon_id, dto.period_start, dto.period_end, dto.processed_by_id
    )


@router.get("/history", response_model=list[PayrollRunResponseDTO])
def payroll_history(salon_id: UUID, db: Session = Depends(get_db)):
    return PayrollCalculator(db).get_payroll_history(salon_id)


@router.get("/summary", response_model=PayrollSummaryDTO)
def payroll_summary(
    salon_id: UUID,
    period_start: date,
    period_end: date,
    db: Session = Depends(get_db),
):
    return PayrollCalculator(db).get_payroll_summary(salon_id, period_start, period_end)


@router.get("/{payroll_run_id}", response_model=PayrollRunResponseDTO)
def get_payroll_run(payroll_run_id: UUID, db: Session = Depends(get_db)):
    return PayrollCalculator(db).find_one(payroll_run_id)


@router.post("/{payroll_run_id}/pay", response_model=PayrollRunResponseDTO)
def pay_payroll(payroll_run_id: UUID, dto: PayrollPayDTO, db: Session = Depends(get_db)):
    return PayrollCalculator(db).mark_payroll_as_paid(
        payroll_run_id, dto.payment_method, dto.payment_reference, dto.paid_by_id
    )

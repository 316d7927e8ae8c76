"""
DTOs - payroll runs.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class PayrollCalculateDTO(BaseModel):
    salon_id: UUID
    period_start: date
    period_end: date
    processed_by_id: UUID | None = None


class PayrollPayDTO(BaseModel):
    payment_method: str = Field("cash")
    payment_reference: str | None = None
    paid_by_id: UUID | None = None


class PayrollItemResponseDTO(BaseModel):
    id: UUID
    salon_employee_id: UUID
    base_salary: Decimal
    commission_amount: Decimal
    overtime_amount: Decimal
    gross_pay: Decimal
    deductions: Decimal
    net_pay: Decimal
    paid: bool
    paid_at: datetime | None
    payment_method: str | None
    meta: dict = {}

    model_config = ConfigDict(from_attributes=True)


class PayrollRunResponseDTO(BaseModel):
    id: UUID
    salon_id: UUID
    period_start: date
    period_end: date
    status: str
    total_amount: Decimal
    processed_at: datetime | None
    processed_by_id: UUID | None
    items: list[PayrollItemResponseDTO] = []

    model_config = ConfigDict(from_attributes=True)


class PayrollSummaryDTO(BaseModel):
    period_start: date
    period_end: date
    total_runs: int
    total_gross_pay: Decimal
    total_deductions: Decimal
    total_net_pay: Decimal
    employee_count: int

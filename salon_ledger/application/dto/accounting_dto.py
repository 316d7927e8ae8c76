"""
DTOs - chart of accounts, journal entries, expenses and completion events.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from salon_ledger.domain.value_objects import AccountType, JournalEntryStatus


class AccountCreateDTO(BaseModel):
    salon_id: UUID
    code: str = Field(..., min_length=1, max_length=32)
    name: str = Field(..., min_length=1, max_length=255)
    account_type: AccountType
    parent_id: UUID | None = None


class AccountUpdateDTO(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    is_active: bool | None = None
    parent_id: UUID | None = None


class AccountResponseDTO(BaseModel):
    id: UUID
    salon_id: UUID
    code: str
    name: str
    account_type: str
    parent_id: UUID | None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class JournalLineCreateDTO(BaseModel):
    account_id: UUID
    debit_amount: Decimal = Field(Decimal("0"), ge=0, description="Debit amount")
    credit_amount: Decimal = Field(Decimal("0"), ge=0, description="Credit amount")
    description: str = ""
    reference_type: str | None = None
    reference_id: str | None = None


class JournalEntryCreateDTO(BaseModel):
    salon_id: UUID
    entry_number: str | None = Field(None, description="Generated when omitted")
    entry_date: datetime | None = None
    description: str = Field(..., max_length=500)
    status: JournalEntryStatus = JournalEntryStatus.POSTED
    created_by_id: UUID | None = None
    lines: list[JournalLineCreateDTO] = Field(..., min_length=1)

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "salon_id": "00000000-0000-0000-0000-000000000001",
            "description": "Owner capital injection",
            "lines": [
                {"account_id": "…cash…", "debit_amount": 100000},
                {"account_id": "…equity…", "credit_amount": 100000},
            ],
        }
    })


class JournalLineResponseDTO(BaseModel):
    id: UUID
    line_number: int
    account_id: UUID
    debit_amount: Decimal
    credit_amount: Decimal
    description: str | None
    reference_type: str | None
    reference_id: str | None

    model_config = ConfigDict(from_attributes=True)


class JournalEntryResponseDTO(BaseModel):
    id: UUID
    salon_id: UUID
    entry_number: str
    entry_date: datetime
    description: str
    status: str
    created_by_id: UUID | None
    lines: list[JournalLineResponseDTO] = []

    model_config = ConfigDict(from_attributes=True)


class JournalEntryPageDTO(BaseModel):
    data: list[JournalEntryResponseDTO]
    total: int
    page: int
    limit: int


class ExpenseCreateDTO(BaseModel):
    salon_id: UUID
    amount: Decimal = Field(..., gt=0)
    description: str | None = None
    expense_date: date
    category_id: UUID | None = None
    payment_method: str = "cash"
    vendor_name: str | None = None
    created_by_id: UUID | None = None


class ExpenseResponseDTO(BaseModel):
    id: UUID
    salon_id: UUID
    category_id: UUID | None
    amount: Decimal
    description: str | None
    expense_date: datetime
    payment_method: str
    vendor_name: str | None
    status: str

    model_config = ConfigDict(from_attributes=True)


class SaleItemEvent(BaseModel):
    sale_item_id: UUID
    employee_id: UUID | None = None
    line_total: Decimal = Field(..., ge=0)


class SaleCompletedEvent(BaseModel):
    """Emitted by the sales module when a sale is completed."""
    salon_id: UUID
    sale_id: UUID
    total_amount: Decimal = Field(..., ge=0)
    payment_method: str | None = "cash"
    discounts: list[Decimal] = []
    created_by_id: UUID | None = None
    completed_at: datetime | None = None
    items: list[SaleItemEvent] = []


class AppointmentCompletedEvent(BaseModel):
    salon_id: UUID
    employee_id: UUID
    appointment_id: UUID
    service_amount: Decimal = Field(..., ge=0)

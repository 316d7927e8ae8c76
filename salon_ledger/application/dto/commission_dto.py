"""
DTOs - commissions and wallets.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from salon_ledger.domain.value_objects import PaymentDetails


class PaymentDetailsDTO(BaseModel):
    payment_method: str | None = Field(None, description="cash, bank_transfer, mobile_money, payroll…")
    payment_reference: str | None = None
    paid_by_id: UUID | None = None

    def to_domain(self) -> PaymentDetails:
        return PaymentDetails(
            payment_method=self.payment_method,
            payment_reference=self.payment_reference,
            paid_by_id=self.paid_by_id,
        )


class BatchPaymentDTO(PaymentDetailsDTO):
    commission_ids: list[UUID] = Field(..., min_length=1)


class VerifyPaymentDTO(BaseModel):
    verified_by_id: UUID


class CommissionResponseDTO(BaseModel):
    id: UUID
    salon_employee_id: UUID
    sale_item_id: UUID | None
    appointment_id: UUID | None
    amount: Decimal
    commission_rate: Decimal
    sale_amount: Decimal
    paid: bool
    paid_at: datetime | None
    payment_method: str | None
    payment_reference: str | None
    payroll_item_id: UUID | None
    meta: dict = {}
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CommissionSummaryDTO(BaseModel):
    total_commissions: Decimal
    paid_commissions: Decimal
    unpaid_commissions: Decimal
    total_sales: Decimal
    count: int


class WalletResponseDTO(BaseModel):
    id: UUID
    user_id: UUID
    salon_id: UUID | None
    balance: Decimal
    currency: str
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class WalletTransactionResponseDTO(BaseModel):
    id: UUID
    wallet_id: UUID
    transaction_type: str
    amount: Decimal
    balance_before: Decimal
    balance_after: Decimal
    status: str
    description: str | None
    reference_type: str | None
    reference_id: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class WalletSummaryDTO(BaseModel):
    balance: Decimal
    total_received: Decimal
    total_sent: Decimal
    transaction_count: int

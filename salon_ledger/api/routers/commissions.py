"""
API Routers - commission accrual queries, settlement and wallets.
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.orm import Session

from salon_ledger.application.dto.commission_dto import (
    BatchPaymentDTO,
    CommissionResponseDTO,
    CommissionSummaryDTO,
    PaymentDetailsDTO,
    VerifyPaymentDTO,
    WalletResponseDTO,
    WalletSummaryDTO,
    WalletTransactionResponseDTO,
)
from salon_ledger.application.services.commission_ledger import CommissionLedger
from salon_ledger.application.services.wallet_transfer import WalletTransferEngine
from salon_ledger.infrastructure.database import get_db

router = APIRouter(prefix="/api/v1/commissions", tags=["Commissions"])
wallet_router = APIRouter(prefix="/api/v1/wallets", tags=["Wallets"])


@router.get("", response_model=list[CommissionResponseDTO])
def list_commissions(
    salon_id: UUID | None = None,
    salon_employee_id: UUID | None = None,
    paid: bool | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    db: Session = Depends(get_db),
):
    return CommissionLedger(db).find_all(
        salon_employee_id=salon_employee_id,
        salon_id=salon_id,
        paid=paid,
        start_date=start_date,
        end_date=end_date,
    )


@router.get("/employees/{salon_employee_id}/summary", response_model=CommissionSummaryDTO)
def employee_summary(
    salon_employee_id: UUID,
    start_date: date | None = None,
    end_date: date | None = None,
    db: Session = Depends(get_db),
):
    return CommissionLedger(db).get_employee_commission_summary(salon_employee_id, start_date, end_date)


@router.post("/pay-batch", response_model=list[CommissionResponseDTO])
def pay_batch(dto: BatchPaymentDTO, db: Session = Depends(get_db)):
    """Settle several commissions of one salon in a single transaction."""
    return CommissionLedger(db).mark_multiple_as_paid(dto.commission_ids, dto.to_domain())


@router.get("/{commission_id}", response_model=CommissionResponseDTO)
def get_commission(commission_id: UUID, db: Session = Depends(get_db)):
    return CommissionLedger(db).get_commission(commission_id)


@router.post("/{commission_id}/pay", response_model=CommissionResponseDTO)
def pay_commission(
    commission_id: UUID,
    dto: PaymentDetailsDTO | None = Body(None),
    db: Session = Depends(get_db),
):
    """
    Settle a commission: owner wallet -> employee wallet.

    Paying an already-paid commission returns it unchanged.
    """
    details = dto.to_domain() if dto else None
    return CommissionLedger(db).mark_as_paid(commission_id, details)


@router.post("/{commission_id}/verify", response_model=CommissionResponseDTO)
def verify_commission(commission_id: UUID, dto: VerifyPaymentDTO, db: Session = Depends(get_db)):
    return CommissionLedger(db).verify_payment(commission_id, dto.verified_by_id)


@wallet_router.get("/{wallet_id}", response_model=WalletResponseDTO)
def get_wallet(wallet_id: UUID, db: Session = Depends(get_db)):
    return WalletTransferEngine(db).get_wallet(wallet_id)


@wallet_router.get("/{wallet_id}/summary", response_model=WalletSummaryDTO)
def wallet_summary(wallet_id: UUID, db: Session = Depends(get_db)):
    return WalletTransferEngine(db).get_wallet_summary(wallet_id)


@wallet_router.get("/{wallet_id}/transactions", response_model=list[WalletTransactionResponseDTO])
def wallet_transactions(
    wallet_id: UUID,
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
):
    return WalletTransferEngine(db).get_wallet_transactions(wallet_id, limit)

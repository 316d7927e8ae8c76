"""
API Routers - chart of accounts, journal entries, expenses and completion events.
"""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from salon_ledger.application.dto.accounting_dto import (
    AccountCreateDTO,
    AccountResponseDTO,
    AccountUpdateDTO,
    AppointmentCompletedEvent,
    ExpenseCreateDTO,
    ExpenseResponseDTO,
    JournalEntryCreateDTO,
    JournalEntryPageDTO,
    JournalEntryResponseDTO,
    SaleCompletedEvent,
)
from salon_ledger.application.dto.commission_dto import CommissionResponseDTO
from salon_ledger.application.services.account_registry import AccountRegistry
from salon_ledger.application.services.event_handlers import (
    ExpenseService,
    handle_appointment_completed,
    handle_sale_completed,
)
from salon_ledger.application.services.journal_engine import JournalEngine, draft_from_dto
from salon_ledger.domain.value_objects import AccountType
from salon_ledger.infrastructure.database import atomic, get_db

router = APIRouter(prefix="/api/v1/accounting", tags=["Accounting"])


@router.get("/accounts", response_model=list[AccountResponseDTO])
def list_accounts(
    salon_id: UUID,
    account_type: AccountType | None = None,
    db: Session = Depends(get_db),
):
    return AccountRegistry(db).get_accounts(salon_id, account_type)


@router.post("/accounts", response_model=AccountResponseDTO, status_code=status.HTTP_201_CREATED)
def create_account(dto: AccountCreateDTO, db: Session = Depends(get_db)):
    with atomic(db):
        account = AccountRegistry(db).create_account(
            dto.salon_id, dto.code, dto.name, dto.account_type, dto.parent_id
        )
    return account


@router.patch("/accounts/{account_id}", response_model=AccountResponseDTO)
def update_account(account_id: UUID, dto: AccountUpdateDTO, db: Session = Depends(get_db)):
    with atomic(db):
        account = AccountRegistry(db).update_account(
            account_id, name=dto.name, is_active=dto.is_active, parent_id=dto.parent_id
        )
    return account


@router.post("/accounts/seed", response_model=list[AccountResponseDTO])
def seed_accounts(salon_id: UUID, db: Session = Depends(get_db)):
    """Provision the standard chart of accounts for a salon."""
    with atomic(db):
        accounts = AccountRegistry(db).seed_default_accounts(salon_id)
    return accounts


@router.get("/expense-categories", response_model=list[AccountResponseDTO])
def list_expense_categories(salon_id: UUID, db: Session = Depends(get_db)):
    with atomic(db):
        categories = AccountRegistry(db).get_expense_categories(salon_id)
    return categories


@router.post(
    "/journal-entries",
    response_model=JournalEntryResponseDTO,
    status_code=status.HTTP_201_CREATED,
)
def create_journal_entry(dto: JournalEntryCreateDTO, db: Session = Depends(get_db)):
    """
    Post a manual journal entry.

    Rejected with 400 unless total debit equals total credit.
    """
    return JournalEngine(db).create_journal_entry(draft_from_dto(dto))


@router.get("/journal-entries", response_model=JournalEntryPageDTO)
def list_journal_entries(
    salon_id: UUID,
    start_date: date | None = None,
    end_date: date | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
):
    entries, total = JournalEngine(db).get_journal_entries(salon_id, start_date, end_date, page, limit)
    return JournalEntryPageDTO(
        data=[JournalEntryResponseDTO.model_validate(e) for e in entries],
        total=total,
        page=page,
        limit=limit,
    )


@router.get(
    "/journal-entries/by-reference/{reference_type}/{reference_id}",
    response_model=list[JournalEntryResponseDTO],
)
def journal_entries_by_reference(reference_type: str, reference_id: str, db: Session = Depends(get_db)):
    return JournalEngine(db).find_by_reference(reference_type, reference_id)


@router.get("/journal-entries/{entry_id}", response_model=JournalEntryResponseDTO)
def get_journal_entry(entry_id: UUID, db: Session = Depends(get_db)):
    return JournalEngine(db).get_journal_entry(entry_id)


@router.post("/expenses", response_model=ExpenseResponseDTO, status_code=status.HTTP_201_CREATED)
def create_expense(dto: ExpenseCreateDTO, db: Session = Depends(get_db)):
    expense, _ = ExpenseService(db).create_expense(dto)
    return expense


@router.get("/expenses", response_model=list[ExpenseResponseDTO])
def list_expenses(
    salon_id: UUID,
    start_date: date | None = None,
    end_date: date | None = None,
    category_id: UUID | None = None,
    db: Session = Depends(get_db),
):
    return ExpenseService(db).get_expenses(salon_id, start_date, end_date, category_id)


@router.post("/events/sale-completed", response_model=list[CommissionResponseDTO])
def sale_completed(event: SaleCompletedEvent, db: Session = Depends(get_db)):
    return handle_sale_completed(db, event)


@router.post("/events/appointment-completed", response_model=CommissionResponseDTO)
def appointment_completed(event: AppointmentCompletedEvent, db: Session = Depends(get_db)):
    return handle_appointment_completed(db, event)

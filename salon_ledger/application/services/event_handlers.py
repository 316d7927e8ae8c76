"""
Completion-event handlers and manual expense recording.

The sales and scheduling modules publish completion events; these handlers
accrue commissions and book the sale. Source rows the event refers to are
recorded when they are not already present.
"""

import logging
from datetime import date, datetime, time
from uuid import UUID

from sqlalchemy.orm import Session

from salon_ledger.application.dto.accounting_dto import (
    AppointmentCompletedEvent,
    ExpenseCreateDTO,
    SaleCompletedEvent,
)
from salon_ledger.application.services.commission_ledger import CommissionLedger
from salon_ledger.application.services.journal_poster import JournalPoster
from salon_ledger.domain.exceptions import NotFoundError, ValidationError
from salon_ledger.domain.result import attempt, log_if_failed
from salon_ledger.domain.services import day_window
from salon_ledger.domain.value_objects import AccountType, ExpenseStatus, SaleStatus, to_money
from salon_ledger.infrastructure.database import atomic
from salon_ledger.infrastructure.database.models import (
    Account,
    Appointment,
    Commission,
    Expense,
    JournalEntry,
    Sale,
    SaleItem,
    utcnow,
)

logger = logging.getLogger(__name__)


def _record_sale(db: Session, event: SaleCompletedEvent) -> None:
    with atomic(db):
        if db.get(Sale, event.sale_id) is None:
            db.add(Sale(
                id=event.sale_id,
                salon_id=event.salon_id,
                total_amount=to_money(event.total_amount),
                payment_method=event.payment_method,
                status=SaleStatus.COMPLETED.value,
                created_by_id=event.created_by_id,
                created_at=event.completed_at or utcnow(),
            ))
            db.flush()
        for item in event.items:
            if db.get(SaleItem, item.sale_item_id) is None:
                db.add(SaleItem(
                    id=item.sale_item_id,
                    sale_id=event.sale_id,
                    salon_employee_id=item.employee_id,
                    unit_price=to_money(item.line_total),
                    line_total=to_money(item.line_total),
                ))


def handle_sale_completed(
    db: Session,
    event: SaleCompletedEvent,
    commission_ledger: CommissionLedger | None = None,
    journal_poster: JournalPoster | None = None,
) -> list[Commission]:
    """One commission per item served by an employee, then the sale entry."""
    journal_poster = journal_poster or JournalPoster(db)
    commission_ledger = commission_ledger or CommissionLedger(db, journal_poster=journal_poster)

    _record_sale(db, event)

    commissions = [
        commission_ledger.create_commission(
            item.employee_id,
            item.sale_item_id,
            item.line_total,
            metadata={"sale_id": str(event.sale_id)},
        )
        for item in event.items
        if item.employee_id is not None
    ]

    log_if_failed(
        attempt(
            "sale journal posting",
            journal_poster.post_sale,
            event.salon_id,
            event.sale_id,
            event.total_amount,
            event.discounts,
            event.created_by_id,
            event.completed_at,
        ),
        logger, sale_id=str(event.sale_id),
    )
    return commissions


def handle_appointment_completed(
    db: Session,
    event: AppointmentCompletedEvent,
    commission_ledger: CommissionLedger | None = None,
) -> Commission:
    commission_ledger = commission_ledger or CommissionLedger(db)

    with atomic(db):
        if db.get(Appointment, event.appointment_id) is None:
            db.add(Appointment(
                id=event.appointment_id,
                salon_id=event.salon_id,
                salon_employee_id=event.employee_id,
                service_amount=to_money(event.service_amount),
            ))

    return commission_ledger.create_commission(
        event.employee_id,
        None,
        event.service_amount,
        appointment_id=event.appointment_id,
        metadata={"source": "appointment"},
    )


class ExpenseService:

    def __init__(self, db: Session, journal_poster: JournalPoster | None = None):
        self.db = db
        self.journal_poster = journal_poster or JournalPoster(db)

    def create_expense(self, dto: ExpenseCreateDTO) -> tuple[Expense, JournalEntry | None]:
        """Record an approved expense and book it; the booking is best-effort."""
        if dto.category_id is not None:
            category = self.db.get(Account, dto.category_id)
            if category is None:
                raise NotFoundError(f"Expense category {dto.category_id} not found")
            if category.salon_id != dto.salon_id or category.account_type != AccountType.EXPENSE.value:
                raise ValidationError("Expense category must be an expense account of the same salon")

        expense_date = dto.expense_date
        if not isinstance(expense_date, datetime):
            expense_date = datetime.combine(expense_date, time.min)

        with atomic(self.db):
            expense = Expense(
                salon_id=dto.salon_id,
                category_id=dto.category_id,
                amount=to_money(dto.amount),
                description=dto.description,
                expense_date=expense_date,
                payment_method=dto.payment_method,
                vendor_name=dto.vendor_name,
                status=ExpenseStatus.APPROVED.value,
                created_by_id=dto.created_by_id,
            )
            self.db.add(expense)

        result = log_if_failed(
            attempt("expense journal posting", self.journal_poster.post_expense, expense),
            logger, expense_id=str(expense.id),
        )
        logger.info(
            "Expense %s of %s recorded", expense.id, expense.amount,
            extra={"salon_id": str(expense.salon_id), "expense_id": str(expense.id)},
        )
        return expense, result.value if result.ok else None

    def get_expense(self, expense_id: UUID) -> Expense:
        expense = self.db.get(Expense, expense_id)
        if expense is None:
            raise NotFoundError(f"Expense {expense_id} not found")
        return expense

    def get_expenses(
        self,
        salon_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
        category_id: UUID | None = None,
    ) -> list[Expense]:
        query = self.db.query(Expense).filter(Expense.salon_id == salon_id)
        if category_id:
            query = query.filter(Expense.category_id == category_id)
        start, end = day_window(start_date, end_date)
        if start:
            query = query.filter(Expense.expense_date >= start)
        if end:
            query = query.filter(Expense.expense_date <= end)
        return query.order_by(Expense.expense_date.desc()).all()

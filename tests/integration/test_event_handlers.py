"""
Integration tests - completion events and manual expenses.
"""

import logging
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from salon_ledger.application.dto.accounting_dto import (
    AppointmentCompletedEvent,
    ExpenseCreateDTO,
    SaleCompletedEvent,
    SaleItemEvent,
)
from salon_ledger.application.services.account_registry import AccountRegistry
from salon_ledger.application.services.event_handlers import (
    ExpenseService,
    handle_appointment_completed,
    handle_sale_completed,
)
from salon_ledger.application.services.journal_engine import JournalEngine
from salon_ledger.application.services.journal_poster import JournalPoster
from salon_ledger.domain.exceptions import NotFoundError, ValidationError
from salon_ledger.domain.value_objects import CASH
from salon_ledger.infrastructure.database.models import (
    Appointment,
    Commission,
    JournalEntry,
    Sale,
    SaleItem,
    Salon,
)


class BrokenPoster(JournalPoster):

    def post_sale(self, *args, **kwargs):
        raise RuntimeError("ledger offline")

    def post_expense(self, expense):
        raise RuntimeError("ledger offline")


@pytest.fixture
def sale_event(salon, employee):
    return SaleCompletedEvent(
        salon_id=salon.id,
        sale_id=uuid4(),
        total_amount=Decimal("9500"),
        discounts=[Decimal("500")],
        items=[
            SaleItemEvent(sale_item_id=uuid4(), employee_id=employee.id, line_total=Decimal("6000")),
            SaleItemEvent(sale_item_id=uuid4(), line_total=Decimal("3500")),
        ],
    )


class TestSaleCompleted:

    def test_commission_per_served_item_and_sale_entry(self, db, salon, sale_event):
        commissions = handle_sale_completed(db, sale_event)

        assert len(commissions) == 1
        assert commissions[0].amount == Decimal("600")
        assert commissions[0].meta["sale_id"] == str(sale_event.sale_id)
        assert db.get(Sale, sale_event.sale_id) is not None
        assert db.query(SaleItem).filter(SaleItem.sale_id == sale_event.sale_id).count() == 2

        entries = JournalEngine(db).find_by_reference("sale", str(sale_event.sale_id))
        assert len(entries) == 1
        lines = {line.account.code: line for line in entries[0].lines}
        assert lines["1010"].debit_amount == Decimal("9500")
        assert lines["4100"].debit_amount == Decimal("500")
        assert lines["4000"].credit_amount == Decimal("10000")

    def test_redelivered_event_is_harmless(self, db, salon, sale_event):
        first = handle_sale_completed(db, sale_event)
        second = handle_sale_completed(db, sale_event)

        assert [c.id for c in second] == [c.id for c in first]
        assert db.query(Commission).count() == 1
        assert db.query(Sale).count() == 1
        assert db.query(JournalEntry).count() == 1

    def test_posting_failure_keeps_commissions(self, db, salon, sale_event, caplog):
        with caplog.at_level(logging.WARNING, logger="salon_ledger"):
            commissions = handle_sale_completed(db, sale_event, journal_poster=BrokenPoster(db))

        assert len(commissions) == 1
        assert db.query(JournalEntry).count() == 0
        assert any("sale journal posting failed" in r.getMessage() for r in caplog.records)


class TestAppointmentCompleted:

    def test_one_commission_per_appointment(self, db, salon, employee):
        event = AppointmentCompletedEvent(
            salon_id=salon.id, employee_id=employee.id,
            appointment_id=uuid4(), service_amount=Decimal("8000"),
        )
        first = handle_appointment_completed(db, event)
        second = handle_appointment_completed(db, event)

        assert first.id == second.id
        assert first.amount == Decimal("800")
        assert first.appointment_id == event.appointment_id
        assert first.sale_item_id is None
        assert db.query(Appointment).count() == 1
        assert db.query(Commission).count() == 1


class TestExpenseService:

    def _dto(self, salon, **kwargs):
        values = dict(salon_id=salon.id, amount=Decimal("1200"), expense_date=date(2025, 3, 4))
        values.update(kwargs)
        return ExpenseCreateDTO(**values)

    def test_bank_expense_credits_bank(self, db, salon):
        categories = {c.name: c for c in AccountRegistry(db).get_expense_categories(salon.id)}
        db.commit()

        expense, entry = ExpenseService(db).create_expense(self._dto(
            salon, category_id=categories["Utilities"].id, payment_method="bank_transfer",
            description="Water bill",
        ))

        assert expense.status == "approved"
        assert expense.expense_date.date() == date(2025, 3, 4)
        lines = {line.account.code: line for line in entry.lines}
        assert lines["EXP-UTIL"].debit_amount == Decimal("1200")
        assert lines["1030"].credit_amount == Decimal("1200")
        assert entry.entry_date.date() == date(2025, 3, 4)

    def test_uncategorised_expense_books_to_misc(self, db, salon):
        _, entry = ExpenseService(db).create_expense(self._dto(salon))
        assert {line.account.code for line in entry.lines} == {"6999", "1010"}

    def test_category_must_be_expense_account_of_salon(self, db, salon):
        cash = AccountRegistry(db).get_standard_account(salon.id, CASH)
        db.commit()
        with pytest.raises(ValidationError):
            ExpenseService(db).create_expense(self._dto(salon, category_id=cash.id))

        other = Salon(name="Other", owner_id=uuid4())
        db.add(other)
        db.commit()
        foreign = AccountRegistry(db).get_expense_categories(other.id)[0]
        db.commit()
        with pytest.raises(ValidationError):
            ExpenseService(db).create_expense(self._dto(salon, category_id=foreign.id))

    def test_unknown_category(self, db, salon):
        with pytest.raises(NotFoundError):
            ExpenseService(db).create_expense(self._dto(salon, category_id=uuid4()))

    def test_posting_failure_keeps_expense(self, db, salon):
        expense, entry = ExpenseService(db, journal_poster=BrokenPoster(db)).create_expense(
            self._dto(salon)
        )
        assert entry is None
        assert ExpenseService(db).get_expense(expense.id).amount == Decimal("1200")

    def test_listing_filters_by_window(self, db, salon):
        service = ExpenseService(db)
        service.create_expense(self._dto(salon, expense_date=date(2025, 3, 1)))
        service.create_expense(self._dto(salon, expense_date=date(2025, 3, 20)))

        march_first_week = service.get_expenses(salon.id, date(2025, 3, 1), date(2025, 3, 7))
        assert len(march_first_week) == 1
        assert len(service.get_expenses(salon.id)) == 2

"""
Integration tests - payroll runs.
"""

import inspect
import logging
from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import update

from salon_ledger.application.services.commission_ledger import CommissionLedger
from salon_ledger.application.services.journal_engine import JournalEngine
from salon_ledger.application.services.payroll_calculator import PayrollCalculator
from salon_ledger.domain.exceptions import NotFoundError, ValidationError
from salon_ledger.domain.services import IJournalPoster
from salon_ledger.infrastructure.database.models import PayrollRun, Salon, SalonEmployee, Wallet, utcnow


class RecordingPoster(IJournalPoster):

    def __init__(self):
        self.payroll_calls = []

    def post_commission_payment(self, commission, salon_id):
        return None

    def post_payroll_payment(self, payroll_run, payment_method=None):
        self.payroll_calls.append((payroll_run.id, payment_method))


@pytest.fixture
def period():
    today = utcnow().date()
    return today - timedelta(days=29), today


@pytest.fixture
def commission(db, employee, make_sale_item):
    item = make_sale_item(employee, Decimal("10000"))
    return CommissionLedger(db).create_commission(employee.id, item.id, Decimal("10000"))


class TestCalculatePayroll:

    def test_base_plus_unpaid_commissions(self, db, salon, employee, commission, period):
        run = PayrollCalculator(db).calculate_payroll(salon.id, *period)

        assert run.status == "processed"
        assert run.processed_at is not None
        assert len(run.items) == 1
        item = run.items[0]
        assert item.base_salary == Decimal("30000")
        assert item.commission_amount == Decimal("1000")
        assert item.gross_pay == Decimal("31000")
        assert item.deductions == Decimal("0")
        assert item.net_pay == Decimal("31000")
        assert item.meta["commission_ids"] == [str(commission.id)]
        assert item.meta["day_count"] == 30
        assert run.total_amount == Decimal("31000")

    def test_salary_types(self, db, salon, make_sale_item, period):
        commission_only = SalonEmployee(
            salon_id=salon.id, user_id=uuid4(), commission_rate=Decimal("20"),
            base_salary=Decimal("30000"), salary_type="COMMISSION_ONLY", pay_frequency="MONTHLY",
        )
        salary_only = SalonEmployee(
            salon_id=salon.id, user_id=uuid4(), commission_rate=Decimal("20"),
            base_salary=Decimal("7000"), salary_type="SALARY_ONLY", pay_frequency="WEEKLY",
        )
        db.add_all([commission_only, salary_only])
        db.commit()
        ledger = CommissionLedger(db)
        ledger.create_commission(commission_only.id, make_sale_item(commission_only).id, Decimal("10000"))
        ledger.create_commission(salary_only.id, make_sale_item(salary_only).id, Decimal("10000"))

        run = PayrollCalculator(db).calculate_payroll(salon.id, *period)
        items = {item.salon_employee_id: item for item in run.items}

        assert items[commission_only.id].base_salary == Decimal("0")
        assert items[commission_only.id].net_pay == Decimal("2000")
        assert items[salary_only.id].commission_amount == Decimal("0")
        assert items[salary_only.id].meta["commission_ids"] == []
        # 7000 per week over 30 days
        assert items[salary_only.id].net_pay == Decimal("30000")

    def test_out_of_period_commissions_excluded(
        self, db, salon, employee, commission, period
    ):
        commission.created_at = utcnow() - timedelta(days=60)
        db.commit()

        run = PayrollCalculator(db).calculate_payroll(salon.id, *period)
        assert run.items[0].commission_amount == Decimal("0")

    def test_inactive_employees_skipped(self, db, salon, employee, period):
        employee.is_active = False
        db.commit()
        with pytest.raises(ValidationError, match="No active employees"):
            PayrollCalculator(db).calculate_payroll(salon.id, *period)

    def test_inverted_period_rejected(self, db, salon, employee, period):
        start, end = period
        with pytest.raises(ValidationError):
            PayrollCalculator(db).calculate_payroll(salon.id, end, start)


class TestPayPayroll:

    def test_marks_items_and_commissions_paid(
        self, db, salon, owner_id, employee, commission, period, fund_wallet
    ):
        owner_wallet = fund_wallet(owner_id, Decimal("5000"), salon.id)
        calculator = PayrollCalculator(db)
        run = calculator.calculate_payroll(salon.id, *period)

        paid = calculator.mark_payroll_as_paid(run.id, "bank_transfer", "BATCH-7", uuid4())

        assert paid.status == "paid"
        assert all(item.paid and item.payment_method == "bank_transfer" for item in paid.items)
        db.refresh(commission)
        assert commission.paid is True
        assert commission.payment_method == "payroll"
        assert commission.payroll_item_id == paid.items[0].id
        db.refresh(owner_wallet)
        assert owner_wallet.balance == Decimal("4000")

        journal = JournalEngine(db)
        payroll_entries = journal.find_by_reference("payroll", str(run.id))
        assert len(payroll_entries) == 1
        lines = {line.account.code: line for line in payroll_entries[0].lines}
        assert lines["6010"].debit_amount == Decimal("31000")
        assert lines["1030"].credit_amount == Decimal("31000")
        # booked as wages, not a second time as commission expense
        assert journal.find_by_reference("commission", str(commission.id)) == []

    def test_commission_failure_is_skipped(
        self, db, salon, owner_id, commission, period, caplog
    ):
        calculator = PayrollCalculator(db)
        run = calculator.calculate_payroll(salon.id, *period)

        with caplog.at_level(logging.WARNING, logger="salon_ledger"):
            paid = calculator.mark_payroll_as_paid(run.id)

        assert paid.status == "paid"
        db.refresh(commission)
        assert commission.paid is False
        assert any("payroll commission settlement failed" in r.getMessage() for r in caplog.records)
        owner_wallet = db.query(Wallet).filter(Wallet.user_id == owner_id).first()
        assert owner_wallet is None or owner_wallet.balance == Decimal("0")

    def test_already_paid_rejected(self, db, salon, employee, period):
        calculator = PayrollCalculator(db)
        run = calculator.calculate_payroll(salon.id, *period)
        calculator.mark_payroll_as_paid(run.id)
        with pytest.raises(ValidationError, match="already paid"):
            calculator.mark_payroll_as_paid(run.id)

    def test_run_paid_after_it_was_read_is_not_paid_again(self, db, salon, employee, period):
        calculator = PayrollCalculator(db)
        run = calculator.calculate_payroll(salon.id, *period)
        # Another request pays the run; this session still holds status "processed".
        db.execute(
            update(PayrollRun)
            .where(PayrollRun.id == run.id)
            .values(status="paid")
            .execution_options(synchronize_session=False)
        )
        assert run.status == "processed"

        with pytest.raises(ValidationError, match="already paid"):
            calculator.mark_payroll_as_paid(run.id)
        assert JournalEngine(db).find_by_reference("payroll", str(run.id)) == []

    def test_poster_port_receives_payment_method(self, db, salon, employee, period):
        assert "payment_method" in inspect.signature(IJournalPoster.post_payroll_payment).parameters
        poster = RecordingPoster()
        calculator = PayrollCalculator(db, journal_poster=poster)
        run = calculator.calculate_payroll(salon.id, *period)

        calculator.mark_payroll_as_paid(run.id, "bank_transfer")

        assert poster.payroll_calls == [(run.id, "bank_transfer")]

    def test_unknown_run(self, db):
        with pytest.raises(NotFoundError):
            PayrollCalculator(db).mark_payroll_as_paid(uuid4())


class TestPayrollQueries:

    def test_history_and_summary(self, db, salon, employee, period):
        calculator = PayrollCalculator(db)
        start, end = period
        first = calculator.calculate_payroll(salon.id, start, start + timedelta(days=14))
        second = calculator.calculate_payroll(salon.id, start + timedelta(days=15), end)

        history = calculator.get_payroll_history(salon.id)
        assert [r.id for r in history] == [second.id, first.id]

        summary = calculator.get_payroll_summary(salon.id, start, end)
        assert summary["total_runs"] == 2
        assert summary["employee_count"] == 1
        # 15 days each at 30000/30 per day
        assert summary["total_net_pay"] == Decimal("30000.00")
        assert summary["total_gross_pay"] == summary["total_net_pay"]

    def test_history_scoped_to_salon(self, db, salon, employee, period):
        other = Salon(name="Other", owner_id=uuid4())
        db.add(other)
        db.commit()
        PayrollCalculator(db).calculate_payroll(salon.id, *period)
        assert PayrollCalculator(db).get_payroll_history(other.id) == []

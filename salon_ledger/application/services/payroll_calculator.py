"""
Payroll Calculator - periodic gross-to-net pay runs.
"""

import logging
from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session, selectinload

from salon_ledger.application.services.commission_ledger import CommissionLedger
from salon_ledger.application.services.journal_poster import JournalPoster
from salon_ledger.domain.exceptions import NotFoundError, ValidationError
from salon_ledger.domain.result import attempt, log_if_failed
from salon_ledger.domain.services import IJournalPoster, compute_pay, day_window, period_day_count
from salon_ledger.domain.value_objects import (
    ZERO,
    PaymentDetails,
    PaymentMethod,
    PayrollStatus,
    SalaryType,
    to_money,
)
from salon_ledger.infrastructure.database import atomic
from salon_ledger.infrastructure.database.models import (
    Commission,
    PayrollItem,
    PayrollRun,
    SalonEmployee,
    utcnow,
)

logger = logging.getLogger(__name__)


class PayrollCalculator:

    def __init__(
        self,
        db: Session,
        commission_ledger: CommissionLedger | None = None,
        journal_poster: IJournalPoster | None = None,
    ):
        self.db = db
        self.journal_poster = journal_poster or JournalPoster(db)
        self.commission_ledger = commission_ledger or CommissionLedger(db, journal_poster=self.journal_poster)

    def calculate_payroll(
        self,
        salon_id: UUID,
        period_start: date,
        period_end: date,
        processed_by_id: UUID | None = None,
    ) -> PayrollRun:
        """
        Build a processed run with one item per active employee.

        Unpaid commissions created inside the period are counted toward the
        item and their ids kept in ``item.meta["commission_ids"]`` so paying
        the run settles exactly those.
        """
        day_count = period_day_count(period_start, period_end)
        employees = (
            self.db.query(SalonEmployee)
            .filter(SalonEmployee.salon_id == salon_id, SalonEmployee.is_active.is_(True))
            .order_by(SalonEmployee.created_at)
            .all()
        )
        if not employees:
            raise ValidationError("No active employees found for this salon")

        window_start, window_end = day_window(period_start, period_end)

        with atomic(self.db):
            run = PayrollRun(
                salon_id=salon_id,
                period_start=period_start,
                period_end=period_end,
                status=PayrollStatus.PROCESSED.value,
                processed_at=utcnow(),
                processed_by_id=processed_by_id,
            )
            self.db.add(run)
            self.db.flush()

            total = ZERO
            for employee in employees:
                commissions = (
                    self.db.query(Commission)
                    .filter(
                        Commission.salon_employee_id == employee.id,
                        Commission.paid.is_(False),
                        Commission.created_at >= window_start,
                        Commission.created_at <= window_end,
                    )
                    .order_by(Commission.created_at)
                    .all()
                )
                counted = [] if employee.salary_type == SalaryType.SALARY_ONLY.value else commissions
                pay = compute_pay(
                    employee.base_salary,
                    employee.pay_frequency,
                    employee.salary_type,
                    day_count,
                    [c.amount for c in counted],
                )
                self.db.add(PayrollItem(
                    payroll_run_id=run.id,
                    salon_employee_id=employee.id,
                    base_salary=pay.base_salary,
                    commission_amount=pay.commission_amount,
                    overtime_amount=pay.overtime_amount,
                    gross_pay=pay.gross_pay,
                    deductions=pay.deductions,
                    net_pay=pay.net_pay,
                    meta={
                        "commission_ids": [str(c.id) for c in counted],
                        "day_count": day_count,
                        "salary_type": employee.salary_type,
                        "pay_frequency": employee.pay_frequency,
                    },
                ))
                total += pay.net_pay

            run.total_amount = to_money(total)
            run_id = run.id

        logger.info(
            "Payroll run %s processed for %d employees: %s", run_id, len(employees), total,
            extra={"salon_id": str(salon_id), "payroll_run_id": str(run_id)},
        )
        return self.find_one(run_id)

    def mark_payroll_as_paid(
        self,
        payroll_run_id: UUID,
        payment_method: str = PaymentMethod.CASH.value,
        payment_reference: str | None = None,
        paid_by_id: UUID | None = None,
    ) -> PayrollRun:
        with atomic(self.db):
            run = self._lock_run(payroll_run_id)
            if run.status == PayrollStatus.PAID.value:
                raise ValidationError("Payroll run is already paid")

            paid_at = utcnow()
            for item in run.items:
                item.paid = True
                item.paid_at = paid_at
                item.paid_by_id = paid_by_id
                item.payment_method = payment_method
                item.payment_reference = payment_reference
            run.status = PayrollStatus.PAID.value
            items = [(item.id, list((item.meta or {}).get("commission_ids", []))) for item in run.items]

        skipped = 0
        for item_id, commission_ids in items:
            details = PaymentDetails(
                payment_method=PaymentMethod.PAYROLL.value,
                payment_reference=payment_reference,
                paid_by_id=paid_by_id,
                payroll_item_id=item_id,
            )
            for commission_id in commission_ids:
                result = log_if_failed(
                    attempt("payroll commission settlement",
                            self.commission_ledger.mark_as_paid, UUID(commission_id), details),
                    logger, payroll_run_id=str(payroll_run_id), commission_id=commission_id,
                )
                if not result.ok:
                    skipped += 1

        run = self.find_one(payroll_run_id)
        log_if_failed(
            attempt("payroll journal posting", self.journal_poster.post_payroll_payment, run, payment_method),
            logger, payroll_run_id=str(payroll_run_id),
        )
        logger.info(
            "Payroll run %s paid (%s), %d commission(s) skipped", run.id, run.total_amount, skipped,
            extra={"salon_id": str(run.salon_id), "payroll_run_id": str(run.id)},
        )
        return run

    def find_one(self, payroll_run_id: UUID) -> PayrollRun:
        run = (
            self.db.query(PayrollRun)
            .options(selectinload(PayrollRun.items))
            .filter(PayrollRun.id == payroll_run_id)
            .first()
        )
        if run is None:
            raise NotFoundError(f"Payroll run {payroll_run_id} not found")
        return run

    def _lock_run(self, payroll_run_id: UUID) -> PayrollRun:
        """SELECT ... FOR UPDATE the run, re-reading its status."""
        run = (
            self.db.query(PayrollRun)
            .filter(PayrollRun.id == payroll_run_id)
            .with_for_update()
            .populate_existing()
            .one_or_none()
        )
        if run is None:
            raise NotFoundError(f"Payroll run {payroll_run_id} not found")
        return run

    def get_payroll_history(self, salon_id: UUID) -> list[PayrollRun]:
        return (
            self.db.query(PayrollRun)
            .options(selectinload(PayrollRun.items))
            .filter(PayrollRun.salon_id == salon_id)
            .order_by(PayrollRun.period_end.desc(), PayrollRun.created_at.desc())
            .all()
        )

    def get_payroll_summary(self, salon_id: UUID, period_start: date, period_end: date) -> dict:
        runs = (
            self.db.query(PayrollRun)
            .options(selectinload(PayrollRun.items))
            .filter(
                PayrollRun.salon_id == salon_id,
                PayrollRun.period_start >= period_start,
                PayrollRun.period_end <= period_end,
            )
            .all()
        )
        items = [item for run in runs for item in run.items]
        return {
            "period_start": period_start,
            "period_end": period_end,
            "total_runs": len(runs),
            "total_gross_pay": sum((to_money(i.gross_pay) for i in items), ZERO),
            "total_deductions": sum((to_money(i.deductions) for i in items), ZERO),
            "total_net_pay": sum((to_money(i.net_pay) for i in items), ZERO),
            "employee_count": len({i.salon_employee_id for i in items}),
        }

"""
Commission Ledger - commission accrual and settlement.

Settlement moves money owner wallet -> employee wallet inside one database
transaction; journal posting and notification follow the commit and are
best-effort.
"""

import logging
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from salon_ledger.application.services.journal_poster import JournalPoster, LoggingCommissionNotifier
from salon_ledger.application.services.wallet_transfer import WalletTransferEngine
from salon_ledger.core.config import settings
from salon_ledger.domain.exceptions import ConflictError, InsufficientFundsError, NotFoundError, ValidationError
from salon_ledger.domain.result import attempt, log_if_failed
from salon_ledger.domain.services import (
    ICommissionNotifier,
    IJournalPoster,
    compute_commission_amount,
    day_window,
)
from salon_ledger.domain.value_objects import (
    ZERO,
    PaymentDetails,
    ReferenceType,
    TransferReference,
    to_money,
)
from salon_ledger.infrastructure.database import atomic
from salon_ledger.infrastructure.database.models import (
    Appointment,
    Commission,
    SaleItem,
    Salon,
    SalonEmployee,
    Wallet,
    utcnow,
)

logger = logging.getLogger(__name__)


class CommissionLedger:

    def __init__(
        self,
        db: Session,
        journal_poster: IJournalPoster | None = None,
        notifier: ICommissionNotifier | None = None,
        external_payment_methods: frozenset[str] | None = None,
    ):
        self.db = db
        self.wallets = WalletTransferEngine(db)
        self.journal_poster = journal_poster or JournalPoster(db)
        self.notifier = notifier or LoggingCommissionNotifier()
        if external_payment_methods is None:
            external_payment_methods = settings.external_payment_methods
        self.external_payment_methods = frozenset(external_payment_methods)

    # ------------------------------------------------------------------
    # Accrual
    # ------------------------------------------------------------------

    def create_commission(
        self,
        salon_employee_id: UUID,
        sale_item_id: UUID | None,
        sale_amount: Decimal,
        appointment_id: UUID | None = None,
        metadata: dict | None = None,
    ) -> Commission:
        """
        Accrue a commission, at most once per sale item and once per
        (employee, appointment). A repeated call returns the existing row.
        """
        metadata = dict(metadata or {})
        if appointment_id is None and metadata.get("appointment_id"):
            appointment_id = UUID(str(metadata["appointment_id"]))
        metadata.pop("appointment_id", None)

        existing = self._find_existing(salon_employee_id, sale_item_id, appointment_id)
        if existing is not None:
            return existing

        employee = self.db.get(SalonEmployee, salon_employee_id)
        if employee is None:
            raise NotFoundError(f"Salon employee {salon_employee_id} not found")
        if sale_item_id is not None and self.db.get(SaleItem, sale_item_id) is None:
            raise NotFoundError(f"Sale item {sale_item_id} not found")
        if appointment_id is not None and self.db.get(Appointment, appointment_id) is None:
            raise NotFoundError(f"Appointment {appointment_id} not found")

        rate = Decimal(str(employee.commission_rate or 0))
        amount = compute_commission_amount(sale_amount, rate)
        if rate == ZERO:
            logger.warning(
                "Employee %s has a 0%% commission rate; recording a zero commission",
                salon_employee_id,
                extra={"employee_id": str(salon_employee_id), "sale_item_id": str(sale_item_id)},
            )

        commission = Commission(
            salon_employee_id=salon_employee_id,
            sale_item_id=sale_item_id,
            appointment_id=appointment_id,
            amount=amount,
            commission_rate=rate,
            sale_amount=to_money(sale_amount),
            meta=metadata,
        )
        with atomic(self.db):
            try:
                with self.db.begin_nested():
                    self.db.add(commission)
                    self.db.flush()
            except IntegrityError:
                existing = self._find_existing(salon_employee_id, sale_item_id, appointment_id)
                if existing is None:
                    raise ConflictError("Commission already recorded for this source")
                logger.info(
                    "Commission for employee %s created concurrently", salon_employee_id,
                    extra={"employee_id": str(salon_employee_id)},
                )
                return existing

        logger.info(
            "Commission %s accrued for employee %s: %s", commission.id, salon_employee_id, amount,
            extra={"commission_id": str(commission.id), "employee_id": str(salon_employee_id)},
        )
        return commission

    def _find_existing(
        self,
        salon_employee_id: UUID,
        sale_item_id: UUID | None,
        appointment_id: UUID | None,
    ) -> Commission | None:
        if sale_item_id is not None:
            found = (
                self.db.query(Commission)
                .filter(
                    Commission.sale_item_id == sale_item_id,
                    Commission.salon_employee_id == salon_employee_id,
                )
                .first()
            )
            if found is not None:
                return found
        if appointment_id is not None:
            return (
                self.db.query(Commission)
                .filter(
                    Commission.salon_employee_id == salon_employee_id,
                    Commission.appointment_id == appointment_id,
                )
                .first()
            )
        return None

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    def mark_as_paid(
        self, commission_id: UUID, payment_details: PaymentDetails | None = None
    ) -> Commission:
        details = payment_details or PaymentDetails()

        with atomic(self.db):
            commission = self._lock_commissions([commission_id])[0]
            if commission.paid:
                return commission

            employee = self._get_employee(commission)
            owner_id, salon_id = self._resolve_owner(employee)
            payer, payee = self._resolve_wallets(owner_id, salon_id, employee, details)

            self._pay_out(payer, payee, commission, details)
            self._flip_to_paid(commission, details)

        logger.info(
            "Commission %s settled (%s via %s)", commission.id, commission.amount,
            commission.payment_method or "wallet",
            extra={"commission_id": str(commission.id), "salon_id": str(salon_id)},
        )
        self._after_payment(commission, employee, salon_id)
        return commission

    def mark_multiple_as_paid(
        self, commission_ids: list[UUID], payment_details: PaymentDetails | None = None
    ) -> list[Commission]:
        """
        Settle a batch in one transaction. The payer's balance is checked
        against the batch total before any wallet is touched.
        """
        details = payment_details or PaymentDetails()
        settled: list[tuple[Commission, SalonEmployee]] = []

        with atomic(self.db):
            commissions = self._lock_commissions(commission_ids)
            unpaid = [c for c in commissions if not c.paid]
            if not unpaid:
                return commissions

            employees = {c.id: self._get_employee(c) for c in unpaid}
            owners = {self._resolve_owner(e) for e in employees.values()}
            if len(owners) > 1:
                raise ValidationError("All commissions in a batch must be paid by the same salon owner")
            owner_id, salon_id = owners.pop()

            payer = None
            if not self._is_external(details.payment_method):
                payer = self.wallets.get_or_create_wallet(owner_id, salon_id)
            payees = {
                c.id: self._payee_wallet(employees[c.id]) for c in unpaid
            }
            locked = self.wallets.lock_wallets(
                [payer.id if payer else None] + [w.id for w in payees.values()]
            )

            total = sum(
                (to_money(c.amount) for c in unpaid
                 if payer is None or payees[c.id].id != payer.id),
                ZERO,
            )
            if payer is not None:
                available = to_money(locked[payer.id].balance)
                if available < total:
                    raise InsufficientFundsError(payer.id, available, total)

            for commission in unpaid:
                self._pay_out(payer, payees[commission.id], commission, details)
                self._flip_to_paid(commission, details)
                settled.append((commission, employees[commission.id]))

        logger.info(
            "Settled %d commissions totalling %s", len(settled), total,
            extra={"salon_id": str(salon_id), "count": len(settled)},
        )
        for commission, employee in settled:
            self._after_payment(commission, employee, salon_id)
        return commissions

    def verify_payment(self, commission_id: UUID, verified_by_id: UUID) -> Commission:
        with atomic(self.db):
            commission = self.get_commission(commission_id)
            if not commission.paid:
                raise ValidationError("Only paid commissions can be verified")
            commission.meta = {
                **(commission.meta or {}),
                "verified_by_id": str(verified_by_id),
                "verified_at": utcnow().isoformat(),
            }
            self.db.add(commission)
        return commission

    def _lock_commissions(self, commission_ids: list[UUID]) -> list[Commission]:
        ids = sorted(set(commission_ids))
        commissions = (
            self.db.query(Commission)
            .filter(Commission.id.in_(ids))
            .order_by(Commission.id)
            .with_for_update()
            .populate_existing()
            .all()
        )
        missing = set(ids) - {c.id for c in commissions}
        if missing:
            raise NotFoundError(f"Commission(s) not found: {', '.join(sorted(str(m) for m in missing))}")
        return commissions

    def _get_employee(self, commission: Commission) -> SalonEmployee:
        employee = self.db.get(SalonEmployee, commission.salon_employee_id)
        if employee is None:
            raise NotFoundError(f"Salon employee {commission.salon_employee_id} not found")
        return employee

    def _resolve_owner(self, employee: SalonEmployee) -> tuple[UUID, UUID]:
        salon = self.db.get(Salon, employee.salon_id)
        if salon is None or salon.owner_id is None:
            raise ValidationError("Salon owner not found for commission payment")
        return salon.owner_id, salon.id

    def _payee_wallet(self, employee: SalonEmployee) -> Wallet:
        if employee.user_id is None:
            raise ValidationError(f"Employee {employee.id} has no user account to pay into")
        return self.wallets.get_or_create_wallet(employee.user_id, employee.salon_id)

    def _resolve_wallets(
        self,
        owner_id: UUID,
        salon_id: UUID,
        employee: SalonEmployee,
        details: PaymentDetails,
    ) -> tuple[Wallet | None, Wallet]:
        payer = None
        if not self._is_external(details.payment_method):
            payer = self.wallets.get_or_create_wallet(owner_id, salon_id)
        return payer, self._payee_wallet(employee)

    def _is_external(self, payment_method: str | None) -> bool:
        return payment_method in self.external_payment_methods

    def _pay_out(
        self,
        payer: Wallet | None,
        payee: Wallet,
        commission: Commission,
        details: PaymentDetails,
    ) -> None:
        # An owner who also works the floor pays themselves: no net movement.
        if payer is not None and payer.id == payee.id:
            logger.info(
                "Commission %s is owed to the salon owner; settled without a wallet movement",
                commission.id, extra={"commission_id": str(commission.id)},
            )
            return
        self.wallets.transfer(
            payer.id if payer else None, payee.id, to_money(commission.amount),
            self._reference(commission, details),
        )

    @staticmethod
    def _reference(commission: Commission, details: PaymentDetails) -> TransferReference:
        return TransferReference(
            reference_type=ReferenceType.COMMISSION.value,
            reference_id=str(commission.id),
            description=f"Commission payment {str(commission.id)[:8]}",
            metadata={
                "payment_method": details.payment_method,
                "payment_reference": details.payment_reference,
            },
        )

    @staticmethod
    def _flip_to_paid(commission: Commission, details: PaymentDetails) -> None:
        commission.paid = True
        commission.paid_at = utcnow()
        commission.payment_method = details.payment_method
        commission.payment_reference = details.payment_reference
        commission.paid_by_id = details.paid_by_id
        commission.payroll_item_id = details.payroll_item_id

    def _after_payment(self, commission: Commission, employee: SalonEmployee, salon_id: UUID) -> None:
        log_if_failed(
            attempt("commission journal posting",
                    self.journal_poster.post_commission_payment, commission, salon_id),
            logger, commission_id=str(commission.id),
        )
        log_if_failed(
            attempt("commission paid notification", self.notifier.commission_paid, commission, employee),
            logger, commission_id=str(commission.id),
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_commission(self, commission_id: UUID) -> Commission:
        commission = self.db.get(Commission, commission_id)
        if commission is None:
            raise NotFoundError(f"Commission {commission_id} not found")
        return commission

    def find_all(
        self,
        salon_employee_id: UUID | None = None,
        salon_id: UUID | None = None,
        paid: bool | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[Commission]:
        query = self.db.query(Commission)
        if salon_employee_id:
            query = query.filter(Commission.salon_employee_id == salon_employee_id)
        if salon_id:
            query = query.join(SalonEmployee, SalonEmployee.id == Commission.salon_employee_id).filter(
                SalonEmployee.salon_id == salon_id
            )
        if paid is not None:
            query = query.filter(Commission.paid.is_(paid))
        start, end = day_window(start_date, end_date)
        if start:
            query = query.filter(Commission.created_at >= start)
        if end:
            query = query.filter(Commission.created_at <= end)
        return query.order_by(Commission.created_at.desc()).all()

    def find_by_ids(self, commission_ids: list[UUID]) -> list[Commission]:
        if not commission_ids:
            return []
        return self.db.query(Commission).filter(Commission.id.in_(commission_ids)).all()

    def find_by_sale_item_ids(self, sale_item_ids: list[UUID]) -> list[Commission]:
        if not sale_item_ids:
            return []
        return self.db.query(Commission).filter(Commission.sale_item_id.in_(sale_item_ids)).all()

    def get_employee_commission_summary(
        self,
        salon_employee_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> dict:
        commissions = self.find_all(
            salon_employee_id=salon_employee_id, start_date=start_date, end_date=end_date
        )
        total = sum((to_money(c.amount) for c in commissions), ZERO)
        paid = sum((to_money(c.amount) for c in commissions if c.paid), ZERO)
        return {
            "total_commissions": total,
            "paid_commissions": paid,
            "unpaid_commissions": total - paid,
            "total_sales": sum((to_money(c.sale_amount) for c in commissions), ZERO),
            "count": len(commissions),
        }

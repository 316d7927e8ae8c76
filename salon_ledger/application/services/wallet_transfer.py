"""
Wallet Transfer Engine - locked, transactional balance mutation.

Nothing here commits: every method runs inside the caller's transaction and
the row locks taken by ``lock_wallets`` are held until that transaction ends.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from salon_ledger.core.config import settings
from salon_ledger.domain.exceptions import InsufficientFundsError, NotFoundError, ValidationError
from salon_ledger.domain.value_objects import (
    CREDIT_TRANSACTION_TYPES,
    OUTGOING_TRANSACTION_TYPES,
    ZERO,
    TransferReference,
    WalletTransactionStatus,
    WalletTransactionType,
    to_money,
)
from salon_ledger.infrastructure.database import atomic
from salon_ledger.infrastructure.database.models import Wallet, WalletTransaction, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransferResult:
    payer_transaction: WalletTransaction | None
    payee_transaction: WalletTransaction


class WalletTransferEngine:

    def __init__(self, db: Session, currency: str | None = None):
        self.db = db
        self.currency = currency or settings.currency

    def get_wallet(self, wallet_id: UUID) -> Wallet:
        wallet = self.db.get(Wallet, wallet_id)
        if wallet is None:
            raise NotFoundError(f"Wallet {wallet_id} not found")
        return wallet

    def find_wallet_by_user(self, user_id: UUID) -> Wallet | None:
        return self.db.query(Wallet).filter(Wallet.user_id == user_id).first()

    def get_or_create_wallet(self, user_id: UUID, salon_id: UUID | None = None) -> Wallet:
        wallet = self.find_wallet_by_user(user_id)
        if wallet is not None:
            if salon_id is not None and wallet.salon_id is None:
                wallet.salon_id = salon_id
                self.db.flush()
            return wallet

        wallet = Wallet(user_id=user_id, salon_id=salon_id, currency=self.currency)
        try:
            with self.db.begin_nested():
                self.db.add(wallet)
                self.db.flush()
        except IntegrityError:
            existing = self.find_wallet_by_user(user_id)
            if existing is None:
                raise
            return existing
        return wallet

    def lock_wallets(self, wallet_ids) -> dict[UUID, Wallet]:
        """
        SELECT ... FOR UPDATE every wallet, one at a time in ascending id
        order, and return them with freshly read balances.
        """
        locked: dict[UUID, Wallet] = {}
        for wallet_id in sorted({wid for wid in wallet_ids if wid is not None}):
            wallet = (
                self.db.query(Wallet)
                .filter(Wallet.id == wallet_id)
                .with_for_update()
                .populate_existing()
                .one_or_none()
            )
            if wallet is None:
                raise NotFoundError(f"Wallet {wallet_id} not found")
            locked[wallet_id] = wallet
        return locked

    def transfer(
        self,
        payer_wallet_id: UUID | None,
        payee_wallet_id: UUID,
        amount: Decimal,
        reference: TransferReference,
    ) -> TransferResult:
        """
        Move ``amount`` from payer to payee.

        ``payer_wallet_id=None`` is an externally funded settlement: the
        payee is credited and nothing is debited.
        """
        amount = to_money(amount)
        if amount < ZERO:
            raise ValidationError("Transfer amount must not be negative")
        if payer_wallet_id is not None and payer_wallet_id == payee_wallet_id:
            raise ValidationError("Payer and payee wallets must differ")

        wallets = self.lock_wallets([payer_wallet_id, payee_wallet_id])

        payer_tx = None
        if payer_wallet_id is not None:
            payer_tx = self._apply(
                wallets[payer_wallet_id], WalletTransactionType.TRANSFER, amount, reference,
                counterparty=payee_wallet_id,
            )
        payee_tx = self._apply(
            wallets[payee_wallet_id], WalletTransactionType.COMMISSION, amount, reference,
            counterparty=payer_wallet_id,
        )
        self.db.flush()
        return TransferResult(payer_transaction=payer_tx, payee_transaction=payee_tx)

    def record_transaction(
        self,
        wallet_id: UUID,
        transaction_type: WalletTransactionType | str,
        amount: Decimal,
        description: str | None = None,
        reference_type: str | None = None,
        reference_id: str | None = None,
        metadata: dict | None = None,
        status: WalletTransactionStatus = WalletTransactionStatus.COMPLETED,
    ) -> WalletTransaction:
        """Single-sided movement (deposit, fee, withdrawal...) under lock."""
        amount = to_money(amount)
        if amount < ZERO:
            raise ValidationError("Transaction amount must not be negative")

        wallet = self.lock_wallets([wallet_id])[wallet_id]
        reference = TransferReference(
            reference_type=reference_type or "",
            reference_id=reference_id or "",
            description=description or "",
            metadata=metadata or {},
        )
        tx = self._apply(
            wallet, WalletTransactionType(transaction_type), amount, reference, status=status,
        )
        self.db.flush()
        return tx

    def deposit(self, wallet_id: UUID, amount: Decimal, description: str = "Deposit") -> WalletTransaction:
        with atomic(self.db):
            tx = self.record_transaction(
                wallet_id, WalletTransactionType.DEPOSIT, amount, description=description,
            )
        return tx

    def charge_fee(
        self,
        wallet_id: UUID,
        amount: Decimal,
        description: str = "Transaction Fee",
        reference_type: str | None = None,
        reference_id: str | None = None,
    ) -> WalletTransaction:
        with atomic(self.db):
            tx = self.record_transaction(
                wallet_id,
                WalletTransactionType.FEE,
                amount,
                description=description,
                reference_type=reference_type,
                reference_id=reference_id,
            )
        return tx

    def _apply(
        self,
        wallet: Wallet,
        transaction_type: WalletTransactionType,
        amount: Decimal,
        reference: TransferReference,
        counterparty: UUID | None = None,
        status: WalletTransactionStatus = WalletTransactionStatus.COMPLETED,
    ) -> WalletTransaction:
        if not wallet.is_active and transaction_type in OUTGOING_TRANSACTION_TYPES:
            raise ValidationError("Wallet is blocked. Outgoing transactions are not allowed.")

        balance_before = to_money(wallet.balance)
        if transaction_type in CREDIT_TRANSACTION_TYPES:
            balance_after = balance_before + amount
        else:
            balance_after = balance_before - amount
        if balance_after < ZERO:
            raise InsufficientFundsError(wallet.id, balance_before, amount)

        wallet.balance = balance_after
        wallet.updated_at = utcnow()

        metadata = dict(reference.metadata)
        if counterparty is not None:
            metadata["counterparty_wallet_id"] = str(counterparty)

        tx = WalletTransaction(
            wallet_id=wallet.id,
            transaction_type=transaction_type.value,
            amount=amount,
            balance_before=balance_before,
            balance_after=balance_after,
            status=WalletTransactionStatus(status).value,
            description=reference.description or None,
            reference_type=reference.reference_type or None,
            reference_id=reference.reference_id or None,
            meta=metadata,
        )
        self.db.add(tx)
        return tx

    def get_wallet_transactions(self, wallet_id: UUID, limit: int = 100) -> list[WalletTransaction]:
        self.get_wallet(wallet_id)
        return (
            self.db.query(WalletTransaction)
            .filter(WalletTransaction.wallet_id == wallet_id)
            .order_by(WalletTransaction.created_at.desc())
            .limit(limit)
            .all()
        )

    def get_wallet_summary(self, wallet_id: UUID) -> dict:
        wallet = self.get_wallet(wallet_id)
        transactions = (
            self.db.query(WalletTransaction)
            .filter(
                WalletTransaction.wallet_id == wallet_id,
                WalletTransaction.status == WalletTransactionStatus.COMPLETED.value,
            )
            .all()
        )
        credit_types = {t.value for t in CREDIT_TRANSACTION_TYPES}
        received = sum(
            (to_money(tx.amount) for tx in transactions if tx.transaction_type in credit_types), ZERO
        )
        sent = sum(
            (to_money(tx.amount) for tx in transactions if tx.transaction_type not in credit_types), ZERO
        )
        return {
            "balance": to_money(wallet.balance),
            "total_received": received,
            "total_sent": sent,
            "transaction_count": len(transactions),
        }

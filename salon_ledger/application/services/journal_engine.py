"""
Journal Engine - balanced, all-or-nothing journal entries.
"""

import logging
from datetime import date, datetime, time
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from salon_ledger.application.dto.accounting_dto import JournalEntryCreateDTO
from salon_ledger.domain.entities import JournalEntryDraft
from salon_ledger.domain.exceptions import NotFoundError, ValidationError
from salon_ledger.domain.services import make_entry_number
from salon_ledger.domain.value_objects import JournalEntryStatus, JournalLine, to_money
from salon_ledger.infrastructure.database import atomic
from salon_ledger.infrastructure.database.models import (
    Account,
    JournalEntry,
    JournalEntryLine,
    utcnow,
)

logger = logging.getLogger(__name__)


def draft_from_dto(dto: JournalEntryCreateDTO) -> JournalEntryDraft:
    return JournalEntryDraft(
        salon_id=dto.salon_id,
        entry_number=dto.entry_number or make_entry_number("JE", uuid4(), utcnow()),
        description=dto.description,
        entry_date=dto.entry_date,
        status=dto.status,
        created_by_id=dto.created_by_id,
        lines=[
            JournalLine(
                account_id=line.account_id,
                debit_amount=line.debit_amount,
                credit_amount=line.credit_amount,
                description=line.description,
                reference_type=line.reference_type,
                reference_id=line.reference_id,
            )
            for line in dto.lines
        ],
    )


class JournalEngine:

    def __init__(self, db: Session):
        self.db = db

    def create_journal_entry(self, draft: JournalEntryDraft) -> JournalEntry:
        """
        Write the header and every line in one transaction, then re-read the
        entry with its lines and accounts.

        Rejects unbalanced or empty entries and lines pointing at accounts of
        another salon before anything is written.
        """
        with atomic(self.db):
            draft.validate()
            self._check_accounts(draft)

            entry = JournalEntry(
                salon_id=draft.salon_id,
                entry_number=draft.entry_number,
                entry_date=draft.entry_date or utcnow(),
                description=draft.description,
                status=JournalEntryStatus(draft.status).value,
                created_by_id=draft.created_by_id,
            )
            self.db.add(entry)
            self.db.flush()

            for line_number, line in enumerate(draft.lines, start=1):
                self.db.add(JournalEntryLine(
                    journal_entry_id=entry.id,
                    account_id=line.account_id,
                    line_number=line_number,
                    debit_amount=to_money(line.debit_amount),
                    credit_amount=to_money(line.credit_amount),
                    description=line.description,
                    reference_type=line.reference_type,
                    reference_id=line.reference_id,
                ))
            self.db.flush()
            entry_id = entry.id

        logger.info(
            "Journal entry %s created (%s)", draft.entry_number, draft.total_debit,
            extra={"salon_id": str(draft.salon_id), "entry_id": str(entry_id)},
        )
        return self.get_journal_entry(entry_id)

    def _check_accounts(self, draft: JournalEntryDraft) -> None:
        account_ids = {line.account_id for line in draft.lines}
        found = {
            account.id: account
            for account in self.db.query(Account).filter(Account.id.in_(account_ids)).all()
        }
        for account_id in account_ids:
            account = found.get(account_id)
            if account is None:
                raise NotFoundError(f"Account {account_id} not found")
            if account.salon_id != draft.salon_id:
                raise ValidationError(f"Account {account.code} belongs to another salon")

    def get_journal_entry(self, entry_id: UUID) -> JournalEntry:
        entry = (
            self.db.query(JournalEntry)
            .options(selectinload(JournalEntry.lines).selectinload(JournalEntryLine.account))
            .filter(JournalEntry.id == entry_id)
            .first()
        )
        if entry is None:
            raise NotFoundError(f"Journal entry {entry_id} not found")
        return entry

    def find_by_reference(self, reference_type: str, reference_id: str) -> list[JournalEntry]:
        entry_ids = select(JournalEntryLine.journal_entry_id).where(
            JournalEntryLine.reference_type == reference_type,
            JournalEntryLine.reference_id == str(reference_id),
        )
        return (
            self.db.query(JournalEntry)
            .options(selectinload(JournalEntry.lines))
            .filter(JournalEntry.id.in_(entry_ids))
            .order_by(JournalEntry.entry_date)
            .all()
        )

    def get_journal_entries(
        self,
        salon_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[JournalEntry], int]:
        query = self.db.query(JournalEntry).filter(JournalEntry.salon_id == salon_id)
        if start_date:
            query = query.filter(JournalEntry.entry_date >= datetime.combine(start_date, time.min))
        if end_date:
            query = query.filter(JournalEntry.entry_date <= datetime.combine(end_date, time.max))

        total = query.count()
        entries = (
            query.options(selectinload(JournalEntry.lines))
            .order_by(JournalEntry.entry_date.desc(), JournalEntry.created_at.desc())
            .offset((max(page, 1) - 1) * limit)
            .limit(limit)
            .all()
        )
        return entries, total

"""
Integration tests - chart of accounts and journal engine on SQLite.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from salon_ledger.application.services.account_registry import AccountRegistry
from salon_ledger.application.services.journal_engine import JournalEngine
from salon_ledger.domain.entities import JournalEntryDraft
from salon_ledger.domain.exceptions import ConflictError, NotFoundError, ValidationError
from salon_ledger.domain.value_objects import CASH, OWNER_EQUITY, AccountType, JournalLine
from salon_ledger.infrastructure.database.models import Account, JournalEntry, JournalEntryLine, Salon


class TestAccountRegistry:

    def test_get_or_create_is_idempotent(self, db, salon):
        registry = AccountRegistry(db)
        first = registry.get_or_create_account(salon.id, "1010", "Cash", AccountType.ASSET)
        second = registry.get_or_create_account(salon.id, "1010", "Cash", AccountType.ASSET)
        db.commit()
        assert first.id == second.id
        assert db.query(Account).filter(Account.salon_id == salon.id).count() == 1

    def test_lost_insert_race_returns_winner(self, db, salon, monkeypatch):
        """Both callers miss the lookup; the loser re-reads the winner's row."""
        registry = AccountRegistry(db)
        winner = registry.get_or_create_account(salon.id, "1010", "Cash", AccountType.ASSET)
        db.commit()

        real_find = registry.find_account_by_code
        calls = {"n": 0}

        def stale_find(code, salon_id):
            calls["n"] += 1
            return None if calls["n"] == 1 else real_find(code, salon_id)

        monkeypatch.setattr(registry, "find_account_by_code", stale_find)
        loser = registry.get_or_create_account(salon.id, "1010", "Cash", AccountType.ASSET)
        db.commit()

        assert loser.id == winner.id
        assert db.query(Account).filter(Account.code == "1010").count() == 1

    def test_same_code_in_two_salons(self, db, salon):
        other = Salon(name="Other", owner_id=uuid4())
        db.add(other)
        db.commit()
        registry = AccountRegistry(db)
        a = registry.get_standard_account(salon.id, CASH)
        b = registry.get_standard_account(other.id, CASH)
        assert a.id != b.id

    def test_create_duplicate_code_conflicts(self, db, salon):
        registry = AccountRegistry(db)
        registry.create_account(salon.id, "7000", "Tips", AccountType.REVENUE)
        with pytest.raises(ConflictError):
            registry.create_account(salon.id, "7000", "Tips again", AccountType.REVENUE)

    def test_accounts_ordered_by_type_then_code(self, db, salon):
        registry = AccountRegistry(db)
        registry.seed_default_accounts(salon.id)
        db.commit()
        accounts = registry.get_accounts(salon.id)
        keys = [(a.account_type, a.code) for a in accounts]
        assert keys == sorted(keys)
        assert [a.code for a in registry.get_accounts(salon.id, "revenue")] == ["4000", "4100"]

    def test_deactivated_accounts_hidden(self, db, salon):
        registry = AccountRegistry(db)
        account = registry.get_standard_account(salon.id, CASH)
        registry.update_account(account.id, is_active=False)
        db.commit()
        assert registry.get_accounts(salon.id) == []

    def test_expense_categories_seeded(self, db, salon):
        categories = AccountRegistry(db).get_expense_categories(salon.id)
        names = [c.name for c in categories]
        assert "Rent" in names and "Utilities" in names
        assert all(c.account_type == "expense" for c in categories)


class TestJournalEngine:

    @pytest.fixture
    def accounts(self, db, salon):
        registry = AccountRegistry(db)
        cash = registry.get_standard_account(salon.id, CASH)
        equity = registry.get_standard_account(salon.id, OWNER_EQUITY)
        db.commit()
        return cash, equity

    def _draft(self, salon, cash, equity, debit="100000", credit="100000", **kwargs):
        return JournalEntryDraft(
            salon_id=salon.id,
            entry_number=kwargs.pop("entry_number", f"JE-{uuid4().hex[:8]}"),
            description="Owner capital",
            lines=[
                JournalLine(cash.id, debit_amount=Decimal(debit), reference_type="adjustment",
                            reference_id="cap-1"),
                JournalLine(equity.id, credit_amount=Decimal(credit), reference_type="adjustment",
                            reference_id="cap-1"),
            ],
            **kwargs,
        )

    def test_creates_entry_with_ordered_lines(self, db, salon, accounts):
        cash, equity = accounts
        entry = JournalEngine(db).create_journal_entry(self._draft(salon, cash, equity))

        assert entry.status == "posted"
        assert [line.line_number for line in entry.lines] == [1, 2]
        assert entry.lines[0].account.code == "1010"
        assert sum(line.debit_amount for line in entry.lines) == sum(
            line.credit_amount for line in entry.lines
        )

    def test_unbalanced_entry_writes_nothing(self, db, salon, accounts):
        cash, equity = accounts
        with pytest.raises(ValidationError):
            JournalEngine(db).create_journal_entry(
                self._draft(salon, cash, equity, debit="100000", credit="90000")
            )
        assert db.query(JournalEntry).count() == 0
        assert db.query(JournalEntryLine).count() == 0

    def test_account_of_another_salon_rejected(self, db, salon, accounts):
        cash, _ = accounts
        other = Salon(name="Other", owner_id=uuid4())
        db.add(other)
        db.commit()
        foreign_equity = AccountRegistry(db).get_standard_account(other.id, OWNER_EQUITY)
        db.commit()

        with pytest.raises(ValidationError, match="another salon"):
            JournalEngine(db).create_journal_entry(self._draft(salon, cash, foreign_equity))
        assert db.query(JournalEntry).count() == 0

    def test_unknown_account_not_found(self, db, salon, accounts):
        cash, _ = accounts
        ghost = Account(id=uuid4(), salon_id=salon.id, code="9999", name="Ghost", account_type="equity")
        with pytest.raises(NotFoundError):
            JournalEngine(db).create_journal_entry(self._draft(salon, cash, ghost))

    def test_find_by_reference(self, db, salon, accounts):
        cash, equity = accounts
        engine = JournalEngine(db)
        created = engine.create_journal_entry(self._draft(salon, cash, equity))

        found = engine.find_by_reference("adjustment", "cap-1")
        assert [e.id for e in found] == [created.id]
        assert engine.find_by_reference("adjustment", "nothing") == []

    def test_pagination_newest_first(self, db, salon, accounts):
        cash, equity = accounts
        engine = JournalEngine(db)
        base = datetime(2025, 1, 1, 9, 0)
        for days in range(3):
            engine.create_journal_entry(
                self._draft(salon, cash, equity, entry_date=base + timedelta(days=days))
            )

        page, total = engine.get_journal_entries(salon.id, page=1, limit=2)
        assert total == 3
        assert len(page) == 2
        assert page[0].entry_date > page[1].entry_date

        window, total = engine.get_journal_entries(
            salon.id, start_date=base.date(), end_date=base.date()
        )
        assert total == 1 and window[0].entry_date == base

    def test_get_missing_entry(self, db):
        with pytest.raises(NotFoundError):
            JournalEngine(db).get_journal_entry(uuid4())

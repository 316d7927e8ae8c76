"""
Pytest configuration and fixtures.

Every test gets a fresh in-memory SQLite database.
"""

from decimal import Decimal
from uuid import UUID, uuid4

import pytest
from sqlalchemy.orm import sessionmaker

from salon_ledger.application.services.wallet_transfer import WalletTransferEngine
from salon_ledger.domain.value_objects import PayFrequency, SalaryType
from salon_ledger.infrastructure.database import create_db_engine, init_db
from salon_ledger.infrastructure.database.models import Sale, SaleItem, Salon, SalonEmployee


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def owner_id() -> UUID:
    return uuid4()


@pytest.fixture
def salon(db, owner_id) -> Salon:
    salon = Salon(name="Salon Test", owner_id=owner_id)
    db.add(salon)
    db.commit()
    return salon


@pytest.fixture
def employee(db, salon) -> SalonEmployee:
    employee = SalonEmployee(
        salon_id=salon.id,
        user_id=uuid4(),
        full_name="Aline Uwase",
        role_title="Stylist",
        commission_rate=Decimal("10"),
        base_salary=Decimal("30000"),
        salary_type=SalaryType.SALARY_PLUS_COMMISSION.value,
        pay_frequency=PayFrequency.MONTHLY.value,
    )
    db.add(employee)
    db.commit()
    return employee


@pytest.fixture
def make_sale_item(db, salon):
    """Factory: a completed sale with one item served by ``employee``."""

    def _make(employee: SalonEmployee, line_total: Decimal = Decimal("10000")) -> SaleItem:
        sale = Sale(salon_id=salon.id, total_amount=line_total, payment_method="cash")
        db.add(sale)
        db.flush()
        item = SaleItem(
            sale_id=sale.id,
            salon_employee_id=employee.id,
            unit_price=line_total,
            line_total=line_total,
        )
        db.add(item)
        db.commit()
        return item

    return _make


@pytest.fixture
def fund_wallet(db):
    """Factory: give a user's wallet a starting balance and return the wallet."""

    def _fund(user_id: UUID, amount: Decimal, salon_id: UUID | None = None):
        wallets = WalletTransferEngine(db)
        wallet = wallets.get_or_create_wallet(user_id, salon_id)
        db.commit()
        if amount:
            wallets.deposit(wallet.id, amount)
        db.refresh(wallet)
        return wallet

    return _fund

"""
Infrastructure - SQLModel database models.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import JSON, Column, DateTime, Index, UniqueConstraint, text
from sqlmodel import Field, Relationship, SQLModel


def utcnow() -> datetime:
    """Timezone-naive UTC timestamp; all stored datetimes are naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Salon(SQLModel, table=True):
    """Tenant."""

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str
    owner_id: UUID | None = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime())

    employees: list["SalonEmployee"] = Relationship(back_populates="salon")


class SalonEmployee(SQLModel, table=True):
    """Staff member; commission_rate is a percentage."""

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    salon_id: UUID = Field(foreign_key="salon.id", index=True)
    user_id: UUID | None = Field(default=None, index=True)
    full_name: str | None = None
    role_title: str | None = None
    is_active: bool = True
    commission_rate: Decimal = Field(default=Decimal("0"), max_digits=5, decimal_places=2)
    base_salary: Decimal | None = Field(default=None, max_digits=14, decimal_places=2)
    salary_type: str | None = None  # COMMISSION_ONLY, SALARY_ONLY, SALARY_PLUS_COMMISSION
    pay_frequency: str | None = None  # DAILY, WEEKLY, BIWEEKLY, MONTHLY
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime())

    salon: "Salon" = Relationship(back_populates="employees")


class Account(SQLModel, table=True):
    """Chart of accounts entry, unique by (salon_id, code)."""

    __table_args__ = (UniqueConstraint("salon_id", "code", name="uq_account_salon_code"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    salon_id: UUID = Field(foreign_key="salon.id", index=True)
    code: str = Field(index=True)
    name: str
    account_type: str  # asset, liability, equity, revenue, expense
    parent_id: UUID | None = Field(default=None, foreign_key="account.id")
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime())
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime())

    journal_lines: list["JournalEntryLine"] = Relationship(back_populates="account")


class JournalEntry(SQLModel, table=True):
    """Journal entry header. Append-only."""

    __table_args__ = (
        UniqueConstraint("salon_id", "entry_number", name="uq_journal_entry_number"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    salon_id: UUID = Field(foreign_key="salon.id", index=True)
    entry_number: str = Field(index=True)
    entry_date: datetime = Field(default_factory=utcnow, sa_type=DateTime(), index=True)
    description: str
    status: str = "posted"  # draft, posted
    created_by_id: UUID | None = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime())

    lines: list["JournalEntryLine"] = Relationship(
        back_populates="journal_entry",
        sa_relationship_kwargs={"order_by": "JournalEntryLine.line_number"},
    )


class JournalEntryLine(SQLModel, table=True):

    __table_args__ = (
        Index("ix_journal_line_reference", "reference_type", "reference_id"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    journal_entry_id: UUID = Field(foreign_key="journalentry.id", index=True)
    account_id: UUID = Field(foreign_key="account.id", index=True)
    line_number: int
    debit_amount: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=2)
    credit_amount: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=2)
    description: str | None = None
    reference_type: str | None = None
    reference_id: str | None = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime())

    journal_entry: "JournalEntry" = Relationship(back_populates="lines")
    account: "Account" = Relationship(back_populates="journal_lines")


class Sale(SQLModel, table=True):
    """Point-of-sale ticket, written by the sales collaborator."""

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    salon_id: UUID = Field(foreign_key="salon.id", index=True)
    total_amount: Decimal = Field(max_digits=14, decimal_places=2)
    currency: str = "RWF"
    payment_method: str | None = None
    status: str = "completed"
    created_by_id: UUID | None = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(), index=True)

    items: list["SaleItem"] = Relationship(back_populates="sale")


class SaleItem(SQLModel, table=True):

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    sale_id: UUID = Field(foreign_key="sale.id", index=True)
    salon_employee_id: UUID | None = Field(default=None, foreign_key="salonemployee.id")
    unit_price: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    quantity: Decimal = Field(default=Decimal("1"), max_digits=12, decimal_places=3)
    discount_amount: Decimal = Field(default=Decimal("0"), max_digits=12, decimal_places=2)
    line_total: Decimal = Field(max_digits=14, decimal_places=2)
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime())

    sale: "Sale" = Relationship(back_populates="items")


class Appointment(SQLModel, table=True):
    """Completed appointments, written by the scheduling collaborator."""

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    salon_id: UUID = Field(foreign_key="salon.id", index=True)
    salon_employee_id: UUID | None = Field(default=None, foreign_key="salonemployee.id")
    service_amount: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=2)
    status: str = "completed"
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime())


class Commission(SQLModel, table=True):
    """
    Commission owed to an employee for a sale item or an appointment.

    Deduplicated by sale_item_id, or by (salon_employee_id, appointment_id)
    when the commission comes from an appointment.
    """

    __table_args__ = (
        Index("uq_commission_sale_item", "sale_item_id", unique=True),
        Index(
            "uq_commission_employee_appointment",
            "salon_employee_id",
            "appointment_id",
            unique=True,
            sqlite_where=text("appointment_id IS NOT NULL"),
            postgresql_where=text("appointment_id IS NOT NULL"),
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    salon_employee_id: UUID = Field(foreign_key="salonemployee.id", index=True)
    sale_item_id: UUID | None = Field(default=None, foreign_key="saleitem.id")
    appointment_id: UUID | None = Field(default=None, foreign_key="appointment.id")
    amount: Decimal = Field(max_digits=12, decimal_places=2)
    commission_rate: Decimal = Field(default=Decimal("0"), max_digits=5, decimal_places=2)
    sale_amount: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=2)
    paid: bool = Field(default=False, index=True)
    paid_at: datetime | None = Field(default=None, sa_type=DateTime())
    payment_method: str | None = None
    payment_reference: str | None = None
    paid_by_id: UUID | None = None
    payroll_item_id: UUID | None = Field(default=None, foreign_key="payrollitem.id")
    meta: dict = Field(default_factory=dict, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(), index=True)

    salon_employee: "SalonEmployee" = Relationship()


class Wallet(SQLModel, table=True):
    """One stored balance per user."""

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(unique=True, index=True)
    salon_id: UUID | None = Field(default=None, index=True)
    balance: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=2)
    currency: str = "RWF"
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime())
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime())

    transactions: list["WalletTransaction"] = Relationship(back_populates="wallet")


class WalletTransaction(SQLModel, table=True):
    """Append-only wallet movement; balance_after = balance_before ± amount."""

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    wallet_id: UUID = Field(foreign_key="wallet.id", index=True)
    transaction_type: str = Field(index=True)
    amount: Decimal = Field(max_digits=14, decimal_places=2)
    balance_before: Decimal = Field(max_digits=14, decimal_places=2)
    balance_after: Decimal = Field(max_digits=14, decimal_places=2)
    status: str = "completed"
    description: str | None = None
    reference_type: str | None = None
    reference_id: str | None = None
    meta: dict = Field(default_factory=dict, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(), index=True)

    wallet: "Wallet" = Relationship(back_populates="transactions")


class Expense(SQLModel, table=True):
    """Manually recorded expense; category_id points at an expense account."""

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    salon_id: UUID = Field(foreign_key="salon.id", index=True)
    category_id: UUID | None = Field(default=None, foreign_key="account.id")
    amount: Decimal = Field(max_digits=14, decimal_places=2)
    description: str | None = None
    expense_date: datetime = Field(default_factory=utcnow, sa_type=DateTime(), index=True)
    payment_method: str = "cash"
    vendor_name: str | None = None
    status: str = "approved"  # pending, approved, rejected
    created_by_id: UUID | None = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime())

    category: "Account" = Relationship()


class PayrollRun(SQLModel, table=True):

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    salon_id: UUID = Field(foreign_key="salon.id", index=True)
    period_start: date
    period_end: date
    status: str = "draft"  # draft, processed, paid
    total_amount: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=2)
    processed_at: datetime | None = Field(default=None, sa_type=DateTime())
    processed_by_id: UUID | None = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(), index=True)

    items: list["PayrollItem"] = Relationship(back_populates="payroll_run")


class PayrollItem(SQLModel, table=True):

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    payroll_run_id: UUID = Field(foreign_key="payrollrun.id", index=True)
    salon_employee_id: UUID = Field(foreign_key="salonemployee.id", index=True)
    base_salary: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=2)
    commission_amount: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=2)
    overtime_amount: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=2)
    gross_pay: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=2)
    deductions: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=2)
    net_pay: Decimal = Field(default=Decimal("0"), max_digits=14, decimal_places=2)
    paid: bool = False
    paid_at: datetime | None = Field(default=None, sa_type=DateTime())
    paid_by_id: UUID | None = None
    payment_method: str | None = None
    payment_reference: str | None = None
    meta: dict = Field(default_factory=dict, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime())

    payroll_run: "PayrollRun" = Relationship(back_populates="items")

"""
Domain Layer - Pure Python value objects for the salon ledger.
"""

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, NewType
from uuid import UUID

AccountCode = NewType("AccountCode", str)

ZERO = Decimal("0")
CENT = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    """Coerce DB/float/None values to a Decimal rounded to cents."""
    if value is None:
        return ZERO.quantize(CENT)
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class AccountType(str, Enum):
    """Chart of accounts classification."""
    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"


class JournalEntryStatus(str, Enum):
    DRAFT = "draft"
    POSTED = "posted"


class ReferenceType(str, Enum):
    """Source document a journal line points back to."""
    SALE = "sale"
    EXPENSE = "expense"
    COMMISSION = "commission"
    PAYROLL = "payroll"
    ADJUSTMENT = "adjustment"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    MOBILE_MONEY = "mobile_money"
    BANK_TRANSFER = "bank_transfer"
    PAYROLL = "payroll"
    WALLET = "wallet"
    OTHER = "other"


class WalletTransactionType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRANSFER = "transfer"
    COMMISSION = "commission"
    REFUND = "refund"
    FEE = "fee"
    LOAN_DISBURSEMENT = "loan_disbursement"
    LOAN_REPAYMENT = "loan_repayment"


CREDIT_TRANSACTION_TYPES = frozenset({
    WalletTransactionType.DEPOSIT,
    WalletTransactionType.COMMISSION,
    WalletTransactionType.REFUND,
    WalletTransactionType.LOAN_DISBURSEMENT,
})

OUTGOING_TRANSACTION_TYPES = frozenset({
    WalletTransactionType.WITHDRAWAL,
    WalletTransactionType.TRANSFER,
    WalletTransactionType.FEE,
    WalletTransactionType.LOAN_REPAYMENT,
})


class WalletTransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class PayrollStatus(str, Enum):
    DRAFT = "draft"
    PROCESSED = "processed"
    PAID = "paid"


class SalaryType(str, Enum):
    COMMISSION_ONLY = "COMMISSION_ONLY"
    SALARY_ONLY = "SALARY_ONLY"
    SALARY_PLUS_COMMISSION = "SALARY_PLUS_COMMISSION"


class PayFrequency(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"


class ExpenseStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class SaleStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class StandardAccount:
    """A chart-of-accounts slot provisioned on first use."""
    code: AccountCode
    name: str
    account_type: AccountType


CASH = StandardAccount(AccountCode("1010"), "Cash", AccountType.ASSET)
ACCOUNTS_RECEIVABLE = StandardAccount(AccountCode("1020"), "Accounts Receivable", AccountType.ASSET)
BANK = StandardAccount(AccountCode("1030"), "Bank", AccountType.ASSET)
MOBILE_MONEY = StandardAccount(AccountCode("1040"), "Mobile Money", AccountType.ASSET)
INVENTORY = StandardAccount(AccountCode("1200"), "Inventory", AccountType.ASSET)
OWNER_EQUITY = StandardAccount(AccountCode("3000"), "Owner's Equity", AccountType.EQUITY)
SALES_REVENUE = StandardAccount(AccountCode("4000"), "Sales Revenue", AccountType.REVENUE)
SALES_DISCOUNTS = StandardAccount(AccountCode("4100"), "Sales Discounts", AccountType.REVENUE)
COST_OF_GOODS_SOLD = StandardAccount(AccountCode("5000"), "Cost of Goods Sold", AccountType.EXPENSE)
WAGES = StandardAccount(AccountCode("6010"), "Wages & Salaries", AccountType.EXPENSE)
COMMISSION_EXPENSE = StandardAccount(AccountCode("6020"), "Commission Expense", AccountType.EXPENSE)
MISC_EXPENSE = StandardAccount(AccountCode("6999"), "Miscellaneous Expense", AccountType.EXPENSE)

DEFAULT_CHART = (
    CASH,
    ACCOUNTS_RECEIVABLE,
    BANK,
    MOBILE_MONEY,
    INVENTORY,
    OWNER_EQUITY,
    SALES_REVENUE,
    SALES_DISCOUNTS,
    COST_OF_GOODS_SOLD,
    WAGES,
    COMMISSION_EXPENSE,
    MISC_EXPENSE,
)

DEFAULT_EXPENSE_CATEGORIES = (
    ("EXP-RENT", "Rent"),
    ("EXP-UTIL", "Utilities"),
    ("EXP-SUPP", "Supplies"),
    ("EXP-PROD", "Products"),
    ("EXP-EQUIP", "Equipment"),
    ("EXP-MKTG", "Marketing"),
    ("EXP-WAGES", "Wages"),
    ("EXP-OTHER", "Other"),
)


@dataclass(frozen=True, slots=True)
class JournalLine:
    """One debit or credit line of a journal entry."""
    account_id: UUID
    debit_amount: Decimal = ZERO
    credit_amount: Decimal = ZERO
    description: str = ""
    reference_type: str | None = None
    reference_id: str | None = None


@dataclass(frozen=True, slots=True)
class PaymentDetails:
    """How a commission was (or is being) paid."""
    payment_method: str | None = None
    payment_reference: str | None = None
    paid_by_id: UUID | None = None
    payroll_item_id: UUID | None = None


@dataclass(frozen=True, slots=True)
class TransferReference:
    """What a wallet transfer settles; copied onto both transaction rows."""
    reference_type: str
    reference_id: str
    description: str = ""
    metadata: dict = field(default_factory=dict)

"""Closed value sets for the enumerated columns.

Columns store the ``.value`` string; services coerce through these enums so an
unknown value never reaches the database.
"""
from enum import Enum


class PackageStatus(str, Enum):
    QUOTE = "quote"
    ACTIVE = "active"
    COMPLETED = "completed"


# Forward-only lifecycle: a package may move to any later stage, never back
PACKAGE_STATUS_ORDER = {
    PackageStatus.QUOTE: 0,
    PackageStatus.ACTIVE: 1,
    PackageStatus.COMPLETED: 2,
}


class InvoiceType(str, Enum):
    EXPENSE = "expense"
    INCOME = "income"


class InvoiceCategory(str, Enum):
    AIRLINE = "airline"
    HOTEL = "hotel"
    TOLLS = "tolls"
    TRANSPORT = "transport"
    ACTIVITY = "activity"
    OTHER = "other"


class PaymentStatus(str, Enum):
    PAID = "paid"
    PENDING = "pending"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    MATCHED = "matched"
    IGNORED = "ignored"


class MatchStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


class MatchedBy(str, Enum):
    USER = "user"
    ENGINE = "engine"

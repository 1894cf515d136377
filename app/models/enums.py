"""
Enumerations stored as plain strings in the database.
Columns keep the `.value`; comparisons work against either form.
"""
from enum import Enum


class SubscriptionStatus(str, Enum):
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    SUSPENDED = "SUSPENDED"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CHEQUE = "CHEQUE"
    CARD = "CARD"
    TRANSFER = "TRANSFER"


class AccessResult(str, Enum):
    GRANTED = "GRANTED"
    DENIED_EXPIRED = "DENIED_EXPIRED"
    DENIED_UNPAID = "DENIED_UNPAID"
    DENIED_NO_SUBSCRIPTION = "DENIED_NO_SUBSCRIPTION"
    DENIED_SUSPENDED = "DENIED_SUSPENDED"
    DENIED_CANCELLED = "DENIED_CANCELLED"
    DENIED_NOT_STARTED = "DENIED_NOT_STARTED"
    # Device could not read or match the fingerprint
    DENIED_FINGERPRINT_ERROR = "DENIED_FINGERPRINT_ERROR"


class Gender(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"


class StaffRole(str, Enum):
    ADMIN = "ADMIN"
    STAFF = "STAFF"


def sql_in(enum_cls) -> str:
    """Render enum values for a CHECK ... IN (...) constraint."""
    return ",".join(f"'{member.value}'" for member in enum_cls)

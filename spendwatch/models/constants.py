"""Closed domain enumerations.

Thresholds form an explicit ordered set; evaluation walks THRESHOLDS in
ascending order.
"""

from enum import Enum, IntEnum
from typing import Tuple


class BudgetScope(str, Enum):
    INDIVIDUAL = "INDIVIDUAL"
    GROUP = "GROUP"


class MemberRole(str, Enum):
    OWNER = "OWNER"
    MEMBER = "MEMBER"
    VIEWER = "VIEWER"


class Channel(str, Enum):
    EMAIL = "EMAIL"
    SMS = "SMS"


class AlertStatus(str, Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


class Threshold(IntEnum):
    SEVENTY = 70
    NINETY = 90
    HUNDRED = 100


THRESHOLDS: Tuple[Threshold, ...] = tuple(sorted(Threshold))

# Ledger-side vocabulary for the external transaction store
TRANSACTION_TYPES = {"EXPENSE", "INCOME"}
TRANSACTION_STATUSES = {"PENDING", "COMPLETED", "CANCELLED"}

"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - SubscriptionId wraps the store-assigned sequence integer (1..MAX_SUBSCRIPTION_ID)
    - All valid subscription states encoded as an Enum — no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

SubscriptionId = NewType("SubscriptionId", int)
BucketName = NewType("BucketName", str)

DEFAULT_BUCKET = BucketName("subscriptions")

# Largest key a SQLite INTEGER column can hold
MAX_SUBSCRIPTION_ID = 2**63 - 1


# ─── Enums ───────────────────────────────────────────────────────

class SubscriptionStatus(str, Enum):
    """Subscription lifecycle states. DELETED is terminal and never stored."""
    UNVALIDATED = "unvalidated"
    VALIDATED = "validated"
    DELETED = "deleted"

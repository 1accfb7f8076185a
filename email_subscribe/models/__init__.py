"""ORM Models — table definitions for the embedded record store.

Invariants:
    - All models inherit from Base (db/base.py)
    - Importing this package registers every table on Base.metadata

Design Decisions:
    - One file per table for locality
"""

from email_subscribe.models.record import Record  # noqa: F401
from email_subscribe.models.sequence import BucketSequence  # noqa: F401

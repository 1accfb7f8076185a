"""Sequence ORM — per-bucket monotonically increasing counter.

Invariants:
    - One row per bucket, created when the bucket is created
    - value only ever grows (reset_bucket recreates the bucket from zero)
    - Deleting records never decrements value: issued ids are not reused
"""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from email_subscribe.db.base import Base


class BucketSequence(Base):
    """Last id issued for a bucket."""
    __tablename__ = "sequences"

    bucket: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

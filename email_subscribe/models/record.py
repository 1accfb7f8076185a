"""Record ORM — the bucketed key-value table holding serialized subscriptions.

Invariants:
    - (bucket, key) is the primary key; key is the sequence-assigned id
    - value is the canonical JSON encoding (core/record_codec.py), never parsed by SQL
    - Rows are only written inside the store's write transaction
"""

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from email_subscribe.db.base import Base


class Record(Base):
    """One key/value pair inside a bucket."""
    __tablename__ = "records"

    bucket: Mapped[str] = mapped_column(String(64), primary_key=True)
    key: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)

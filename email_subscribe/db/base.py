"""SQLAlchemy Declarative Base — shared base class for the store's tables.

Invariants:
    - All table models inherit from Base
    - Base.metadata is the single source of truth for the store's schema
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all email-subscribe ORM models."""
    pass

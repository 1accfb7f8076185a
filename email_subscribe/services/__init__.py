"""Services Layer — orchestrates core rules around record store transactions.

Invariants:
    - Services never touch SQLAlchemy directly; only RecordStore transactions
"""

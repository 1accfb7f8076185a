"""Database Schema — SQLAlchemy Base shared by the record store tables.

Invariants:
    - One SQLite file per store; the schema is created on open (no migrations)
"""

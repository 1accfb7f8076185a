"""Pydantic Schemas — request validation for API endpoints.

Invariants:
    - Schemas validate shape at the system boundary; email syntax is a core rule
"""

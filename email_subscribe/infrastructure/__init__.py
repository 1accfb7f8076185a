"""Infrastructure Layer — storage, DNS and logging: everything that does IO.

Invariants:
    - Infrastructure never imports from services/ or api/
    - Every driver or network failure is mapped to a core/errors.py type
"""

"""Email Subscribe — subscription collection service over an embedded transactional store.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""

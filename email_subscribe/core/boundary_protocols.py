"""Boundary Protocols — contracts between the service layer and the IO shell.

Invariants:
    - Services depend on these Protocols, never on concrete network clients
    - Implementations provided by the shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, test fakes need no inheritance
"""

from typing import Protocol


class MailDomainChecker(Protocol):
    """Contract for mail-exchange reachability checks — implemented by shell."""
    async def ensure_accepts_mail(self, email: str) -> None:
        """Return normally if the address's domain accepts mail.

        Raises UnreachableDomainError otherwise.
        """
        ...

"""Mail Exchange Checker — bounded-time deliverability lookup for email domains.

Invariants:
    - The blocking DNS lookup runs in a worker thread, never on the event loop
    - Total wall-clock time is bounded by timeout_seconds (+ a small grace period)
    - Every failure surfaces as UnreachableDomainError (or InvalidFormatError)

Design Decisions:
    - email-validator's deliverability check (MX, then A/AAAA fallback, null-MX aware)
      over hand-rolled dnspython queries
    - One caching resolver per checker, built on first use: repeated subscribes
      from a domain hit the cache, and startup never depends on resolv.conf
"""

import asyncio
import logging

import dns.exception
from email_validator import (
    EmailSyntaxError, EmailUndeliverableError, caching_resolver, validate_email,
)

from email_subscribe.core.email_rules import email_domain
from email_subscribe.core.errors import InvalidFormatError, UnreachableDomainError

logger = logging.getLogger(__name__)

_GRACE_SECONDS = 1.0


class MailExchangeChecker:
    """Checks that an address's domain accepts mail. Implements MailDomainChecker."""

    def __init__(self, timeout_seconds: float = 3.0):
        self.timeout_seconds = timeout_seconds
        self._resolver = None

    async def ensure_accepts_mail(self, email: str) -> None:
        domain = email_domain(email)
        try:
            await asyncio.wait_for(
                asyncio.to_thread(self._lookup, email),
                timeout=self.timeout_seconds + _GRACE_SECONDS,
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Mail exchange lookup for {domain} timed out",
                extra={"operation": "mx_lookup"},
            )
            raise UnreachableDomainError(domain, "lookup timed out")

    def _get_resolver(self):
        if self._resolver is None:
            self._resolver = caching_resolver(timeout=self.timeout_seconds)
        return self._resolver

    def _lookup(self, email: str) -> None:
        domain = email_domain(email)
        try:
            validate_email(
                email, check_deliverability=True, dns_resolver=self._get_resolver(),
            )
        except EmailUndeliverableError as e:
            logger.info(
                f"Domain {domain} rejected: {e}", extra={"operation": "mx_lookup"},
            )
            raise UnreachableDomainError(domain, str(e)) from e
        except EmailSyntaxError as e:
            raise InvalidFormatError(str(e)) from e
        except dns.exception.DNSException as e:
            logger.error(
                f"DNS resolver unavailable: {e}", extra={"operation": "mx_lookup"},
            )
            raise UnreachableDomainError(domain, "lookup failed") from e

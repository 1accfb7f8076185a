"""Subscription Service — domain operations mapped onto record store transactions.

Invariants:
    - Syntax and domain checks run before any write transaction is opened
      (no id is allocated for an address that is then rejected)
    - subscribe: next id + record are taken in ONE write transaction
    - confirm: read-modify-write in ONE write transaction (no lost updates)
    - Ids outside 1..MAX_SUBSCRIPTION_ID are SubscriptionNotFoundError without
      touching the store
    - remove: unknown id -> SubscriptionNotFoundError; an id that was issued and
      already removed is accepted silently (ids are never reissued, so the
      second remove can only refer to the same, already deleted, record)
    - No internal retries: storage errors propagate to the caller

Design Decisions:
    - The store and the domain checker are injected; domain_checker=None means
      the deliverability step is skipped (skip_domain_check setting)
    - clock injectable so signup timestamps are deterministic in tests
"""

import logging
from datetime import datetime, timezone
from typing import Callable

from email_subscribe.core.boundary_protocols import MailDomainChecker
from email_subscribe.core.domain_types import MAX_SUBSCRIPTION_ID, SubscriptionStatus
from email_subscribe.core.email_rules import normalize_email
from email_subscribe.core.errors import SubscriptionNotFoundError
from email_subscribe.core.subscription import (
    Subscription, confirm_subscription, new_subscription,
)
from email_subscribe.infrastructure.record_store import RecordStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _require_storable_id(subscription_id: int) -> None:
    """Ids outside the key range can never have been issued."""
    if not 1 <= subscription_id <= MAX_SUBSCRIPTION_ID:
        raise SubscriptionNotFoundError(subscription_id)


class SubscriptionService:
    """Subscribe, list, confirm and remove email subscriptions."""

    def __init__(
        self,
        store: RecordStore,
        domain_checker: MailDomainChecker | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.domain_checker = domain_checker
        self._clock = clock

    async def subscribe(self, name: str | None, email: str) -> Subscription:
        """Validate the address, then assign an id and persist atomically."""
        address = normalize_email(email)
        if self.domain_checker is not None:
            await self.domain_checker.ensure_accepts_mail(address)

        display_name = name.strip() if name else None
        async with self.store.write() as txn:
            subscription_id = await txn.next_sequence()
            subscription = new_subscription(
                subscription_id, display_name or None, address, self._clock(),
            )
            await txn.put(subscription_id, subscription)

        logger.info(
            f"Subscribed {subscription.domain} as {subscription_id}",
            extra={"subscription_id": subscription_id, "operation": "subscribe"},
        )
        return subscription

    async def list_subscriptions(self) -> list[Subscription]:
        """All subscriptions, ascending by id, from a single snapshot."""
        async with self.store.read() as txn:
            return [subscription async for _, subscription in txn.scan()]

    async def get(self, subscription_id: int) -> Subscription:
        _require_storable_id(subscription_id)
        return await self.store.get(subscription_id)

    async def confirm(self, subscription_id: int) -> Subscription:
        """Mark a subscription validated. Idempotent."""
        _require_storable_id(subscription_id)
        async with self.store.write() as txn:
            current = await txn.get(subscription_id)
            if current is None:
                raise SubscriptionNotFoundError(subscription_id)
            confirmed = confirm_subscription(current)
            if confirmed is not current:
                await txn.put(subscription_id, confirmed)

        logger.info(
            f"Subscription {subscription_id} is {confirmed.status.value}",
            extra={"subscription_id": subscription_id, "operation": "confirm"},
        )
        return confirmed

    async def remove(self, subscription_id: int) -> None:
        """Delete a subscription. The id slot is never reclaimed."""
        _require_storable_id(subscription_id)
        async with self.store.write() as txn:
            removed = await txn.delete(subscription_id)
            if not removed:
                last_issued = await txn.current_sequence()
                if not 1 <= subscription_id <= last_issued:
                    raise SubscriptionNotFoundError(subscription_id)

        if removed:
            logger.info(
                f"Subscription {subscription_id} {SubscriptionStatus.DELETED.value}",
                extra={"subscription_id": subscription_id, "operation": "remove"},
            )

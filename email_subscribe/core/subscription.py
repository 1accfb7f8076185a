"""Subscription — the persisted entity and its state transitions. Pure, no IO.

Invariants:
    - id, email, name and signup_date never change after creation
    - validated only moves false -> true (confirm); nothing reverses it
    - confirm is idempotent: confirming a validated subscription returns it unchanged
"""

from dataclasses import dataclass, replace
from datetime import datetime, timezone

from email_subscribe.core.domain_types import SubscriptionId, SubscriptionStatus


@dataclass(frozen=True)
class Subscription:
    """A single email subscription as stored under its sequence id."""
    id: SubscriptionId
    name: str | None
    email: str
    signup_date: datetime
    validated: bool = False

    @property
    def status(self) -> SubscriptionStatus:
        if self.validated:
            return SubscriptionStatus.VALIDATED
        return SubscriptionStatus.UNVALIDATED

    @property
    def domain(self) -> str:
        return self.email.rpartition("@")[2]


def new_subscription(
    subscription_id: int,
    name: str | None,
    email: str,
    now: datetime | None = None,
) -> Subscription:
    """Build a freshly created (unvalidated) subscription."""
    return Subscription(
        id=SubscriptionId(subscription_id),
        name=name,
        email=email,
        signup_date=now or datetime.now(timezone.utc),
        validated=False,
    )


def confirm_subscription(subscription: Subscription) -> Subscription:
    """Return the validated version of a subscription (same object if already validated)."""
    if subscription.validated:
        return subscription
    return replace(subscription, validated=True)

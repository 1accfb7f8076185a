"""Domain Types — verifies identity wrappers and lifecycle enum values."""

from email_subscribe.core.domain_types import (
    DEFAULT_BUCKET, BucketName, SubscriptionId, SubscriptionStatus,
)


def test_identity_types_wrap_primitives():
    assert SubscriptionId(7) == 7
    assert BucketName("emails") == "emails"


def test_default_bucket_is_subscriptions():
    assert DEFAULT_BUCKET == "subscriptions"


def test_subscription_status_has_three_states():
    assert {s.value for s in SubscriptionStatus} == {
        "unvalidated", "validated", "deleted",
    }

"""Record Codec — canonical durable encoding of a Subscription. Pure, no IO.

Invariants:
    - Encoded value is compact UTF-8 JSON with keys id, name, email, signup, validated
    - signup is an ISO-8601 timestamp with an explicit UTC offset
    - decode_record never raises anything but CorruptRecordError
    - The id embedded in the value must match the key it is stored under

Design Decisions:
    - The same dict shape is the HTTP wire format (record_to_dict), so the stored
      value and the API payload cannot drift apart
"""

import json
from datetime import datetime, timezone

from email_subscribe.core.domain_types import SubscriptionId
from email_subscribe.core.errors import CorruptRecordError
from email_subscribe.core.subscription import Subscription

_FIELDS = ("id", "name", "email", "signup", "validated")


def record_to_dict(subscription: Subscription) -> dict:
    """JSON-safe dict in canonical key order."""
    return {
        "id": subscription.id,
        "name": subscription.name,
        "email": subscription.email,
        "signup": subscription.signup_date.isoformat(),
        "validated": subscription.validated,
    }


def encode_record(subscription: Subscription) -> str:
    return json.dumps(
        record_to_dict(subscription), ensure_ascii=False, separators=(",", ":"),
    )


def decode_record(key: int, raw: str | bytes) -> Subscription:
    """Decode a stored value. Raises CorruptRecordError on any malformed input."""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise CorruptRecordError(key, f"not JSON ({e.__class__.__name__})") from e
    if not isinstance(data, dict):
        raise CorruptRecordError(key, "value is not an object")

    missing = [f for f in _FIELDS if f not in data]
    if missing:
        raise CorruptRecordError(key, f"missing fields: {', '.join(missing)}")

    record_id = data["id"]
    if isinstance(record_id, bool) or not isinstance(record_id, int):
        raise CorruptRecordError(key, "id is not an integer")
    if record_id != key:
        raise CorruptRecordError(key, f"embedded id {record_id} does not match key")

    name, email, validated = data["name"], data["email"], data["validated"]
    if name is not None and not isinstance(name, str):
        raise CorruptRecordError(key, "name is not a string")
    if not isinstance(email, str) or "@" not in email:
        raise CorruptRecordError(key, "email is not an address")
    if not isinstance(validated, bool):
        raise CorruptRecordError(key, "validated is not a boolean")

    return Subscription(
        id=SubscriptionId(record_id),
        name=name,
        email=email,
        signup_date=_parse_signup(key, data["signup"]),
        validated=validated,
    )


def _parse_signup(key: int, value: object) -> datetime:
    if not isinstance(value, str):
        raise CorruptRecordError(key, "signup is not a timestamp")
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as e:
        raise CorruptRecordError(key, "signup is not ISO-8601") from e
    if parsed.tzinfo is None:
        # Naive timestamps are only ever written as UTC
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed

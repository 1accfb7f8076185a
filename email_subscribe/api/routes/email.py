"""Email Routes — HTTP surface of the subscription service.

Invariants:
    - GET    /email        -> 200, every record ascending by id
    - POST   /email        -> 200, created record (400 invalid/unreachable address)
    - GET    /email/{id}   -> 200, one record (404 unknown id)
    - PATCH  /email/{id}   -> 200, confirmed record (404 unknown id)
    - DELETE /email/{id}   -> 200 (404 unknown id)
    - Response bodies use the stored record shape (core/record_codec.py)
    - Errors are raised as SubscribeError and rendered by the global handlers
"""

import logging

from fastapi import APIRouter, Depends, status

from email_subscribe.api.deps import get_subscription_service
from email_subscribe.core.record_codec import record_to_dict
from email_subscribe.schemas.subscription import SubscribeRequest
from email_subscribe.services.subscription_service import SubscriptionService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/email", tags=["email"])


@router.get("", status_code=status.HTTP_200_OK)
async def list_emails(
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Return all emails currently held in the store."""
    subscriptions = await service.list_subscriptions()
    return [record_to_dict(s) for s in subscriptions]


@router.post("", status_code=status.HTTP_200_OK)
async def post_email(
    body: SubscribeRequest,
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Submit a new email to the store."""
    subscription = await service.subscribe(body.name, body.email)
    return record_to_dict(subscription)


@router.get("/{subscription_id}")
async def get_email(
    subscription_id: int,
    service: SubscriptionService = Depends(get_subscription_service),
):
    subscription = await service.get(subscription_id)
    return record_to_dict(subscription)


@router.patch("/{subscription_id}")
async def patch_email(
    subscription_id: int,
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Confirm (validate) a submitted email address."""
    subscription = await service.confirm(subscription_id)
    return record_to_dict(subscription)


@router.delete("/{subscription_id}")
async def delete_email(
    subscription_id: int,
    service: SubscriptionService = Depends(get_subscription_service),
):
    await service.remove(subscription_id)
    return {"id": subscription_id, "deleted": True}

"""FastAPI dependencies — hand the app-owned service to route handlers."""

from fastapi import Request

from email_subscribe.core.errors import StorageUnavailableError
from email_subscribe.services.subscription_service import SubscriptionService


def get_subscription_service(request: Request) -> SubscriptionService:
    """Service built in the lifespan and kept on app.state."""
    service = getattr(request.app.state, "subscription_service", None)
    if service is None:
        raise StorageUnavailableError("store not initialized", "lookup")
    return service

"""Service test fixtures — subscription service over a temp store + FastAPI client.

Invariants:
    - Every test gets a fresh SQLite file (tmp_path)
    - The mail-exchange step is a fake: no DNS traffic in tests
    - The app's lifespan is bypassed; the service is placed on app.state directly
"""

import pytest
from httpx import ASGITransport, AsyncClient

from email_subscribe.config import Settings
from email_subscribe.core.email_rules import email_domain
from email_subscribe.core.errors import UnreachableDomainError
from email_subscribe.main import create_app
from email_subscribe.services.subscription_service import SubscriptionService


class FakeDomainChecker:
    """MailDomainChecker that rejects a configurable set of domains."""

    def __init__(self, unreachable: set[str] | None = None):
        self.unreachable = unreachable or set()
        self.checked: list[str] = []

    async def ensure_accepts_mail(self, email: str) -> None:
        self.checked.append(email)
        domain = email_domain(email)
        if domain in self.unreachable:
            raise UnreachableDomainError(domain, "no mail exchange")


@pytest.fixture
def domain_checker():
    return FakeDomainChecker(unreachable={"closed-domain.io"})


@pytest.fixture
def service(store, domain_checker, fixed_now):
    return SubscriptionService(
        store, domain_checker=domain_checker, clock=lambda: fixed_now,
    )


@pytest.fixture
async def client(service):
    """FastAPI test client wired to the temp-store service."""
    app = create_app(Settings(skip_domain_check=True, log_format="text"))
    app.state.subscription_service = service
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

"""Subscribe request validation — body shape for POST /email.

Invariants:
    - email is required and non-empty
    - name is optional; blank names collapse to None
    - email syntax is NOT checked here (the service owns INVALID_FORMAT)
"""

import pytest
from pydantic import ValidationError

from email_subscribe.schemas.subscription import SubscribeRequest


def test_accepts_name_and_email():
    req = SubscribeRequest(name="Ada", email="ada@newsletter.io")
    assert req.name == "Ada"
    assert req.email == "ada@newsletter.io"


def test_name_defaults_to_none():
    assert SubscribeRequest(email="ada@newsletter.io").name is None


@pytest.mark.parametrize("blank", ["", "   ", "\t"])
def test_blank_name_becomes_none(blank):
    assert SubscribeRequest(name=blank, email="ada@newsletter.io").name is None


def test_name_is_stripped():
    assert SubscribeRequest(name="  Ada  ", email="ada@newsletter.io").name == "Ada"


def test_email_required():
    with pytest.raises(ValidationError):
        SubscribeRequest(name="Ada")


def test_empty_email_rejected():
    with pytest.raises(ValidationError):
        SubscribeRequest(email="")


def test_name_max_length_enforced():
    with pytest.raises(ValidationError):
        SubscribeRequest(name="x" * 201, email="ada@newsletter.io")


def test_malformed_email_passes_schema():
    assert SubscribeRequest(email="not-an-email").email == "not-an-email"

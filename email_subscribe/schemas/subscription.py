"""Subscription Schemas — request body for POST /email.

Invariants:
    - email is required and non-empty; its syntax is checked by the service
      so that every caller gets the same INVALID_FORMAT error
    - name is optional; blank names are treated as absent
"""

from pydantic import BaseModel, Field, field_validator


class SubscribeRequest(BaseModel):
    """Subscribe body — {name, email}."""
    name: str | None = Field(None, max_length=200)
    email: str = Field(min_length=1, max_length=320)

    @field_validator("name")
    @classmethod
    def blank_name_is_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None

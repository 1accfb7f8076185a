"""Email Rules — offline syntax validation and normalization of addresses.

Invariants:
    - normalize_email performs no network IO (deliverability is checked elsewhere)
    - Malformed addresses raise InvalidFormatError
    - Addresses under IANA special-use names (.invalid, .test, .localhost, ...)
      raise UnreachableDomainError: those domains can never receive mail
    - A malformed local part is InvalidFormatError whatever the domain is
"""

import email_validator
from email_validator import EmailSyntaxError, validate_email

from email_subscribe.core.errors import InvalidFormatError, UnreachableDomainError

_STAND_IN_DOMAIN = "example.com"


def email_domain(address: str) -> str:
    """Domain part of an address, lower-cased, without a trailing dot."""
    return address.rpartition("@")[2].strip().rstrip(".").lower()


def is_special_use_domain(domain: str) -> bool:
    return any(
        domain == name or domain.endswith("." + name)
        for name in email_validator.SPECIAL_USE_DOMAIN_NAMES
    )


def normalize_email(address: str) -> str:
    """Validate syntax and return the normalized address."""
    candidate = address.strip()
    try:
        result = validate_email(candidate, check_deliverability=False)
    except EmailSyntaxError as e:
        domain = email_domain(candidate)
        if "@" in candidate and domain and is_special_use_domain(domain):
            _ensure_valid_local_part(candidate)
            raise UnreachableDomainError(domain, "special-use domain name") from e
        raise InvalidFormatError(str(e)) from e
    return result.normalized


def _ensure_valid_local_part(address: str) -> None:
    """Check the part before the @-sign against a domain that always passes syntax."""
    local = address.rpartition("@")[0]
    try:
        validate_email(f"{local}@{_STAND_IN_DOMAIN}", check_deliverability=False)
    except EmailSyntaxError as e:
        raise InvalidFormatError(str(e)) from e

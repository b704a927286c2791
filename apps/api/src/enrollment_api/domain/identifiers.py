"""Boundary normalisation of caller-supplied identifiers.

Raw ids arrive as strings, ints, floats or UUIDs depending on the caller. They
are converted here, once, into the typed values the services and queries use,
so no query ever compares an integer column against text.
"""

from __future__ import annotations

import math
import re
from typing import Any, NewType
from uuid import UUID

from enrollment_api.domain.exceptions import InvalidIdentifier

CustomerId = NewType("CustomerId", int)
BusinessId = NewType("BusinessId", int)
ProgramId = NewType("ProgramId", UUID)
InvitationId = NewType("InvitationId", UUID)
NotificationId = NewType("NotificationId", UUID)

# Upper bound of a signed BIGINT column.
MAX_NUMERIC_ID = 2**63 - 1
_MAX_NUMERIC_DIGITS = len(str(MAX_NUMERIC_ID))

_DIGITS = re.compile(r"\+?[0-9]+")


def _positive_int(field: str, raw: Any) -> int:
    # bool is an int subclass; True must not become customer 1.
    if isinstance(raw, bool):
        raise InvalidIdentifier(field, raw)
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, float):
        if not math.isfinite(raw) or not raw.is_integer():
            raise InvalidIdentifier(field, raw)
        value = int(raw)
    elif isinstance(raw, str):
        candidate = raw.strip()
        if not _DIGITS.fullmatch(candidate):
            raise InvalidIdentifier(field, raw)
        digits = candidate.lstrip("+").lstrip("0")
        # int() rejects very long digit strings with ValueError.
        if len(digits) > _MAX_NUMERIC_DIGITS:
            raise InvalidIdentifier(field, raw)
        value = int(digits) if digits else 0
    else:
        raise InvalidIdentifier(field, raw)

    if value <= 0 or value > MAX_NUMERIC_ID:
        raise InvalidIdentifier(field, raw)
    return value


def _uuid(field: str, raw: Any) -> UUID:
    if isinstance(raw, UUID):
        return raw
    if not isinstance(raw, str):
        raise InvalidIdentifier(field, raw)
    candidate = raw.strip()
    if not candidate:
        raise InvalidIdentifier(field, raw)
    try:
        return UUID(candidate)
    except ValueError as error:
        raise InvalidIdentifier(field, raw) from error


def normalize_customer_id(raw: Any) -> CustomerId:
    return CustomerId(_positive_int("customer_id", raw))


def normalize_business_id(raw: Any) -> BusinessId:
    return BusinessId(_positive_int("business_id", raw))


def normalize_program_id(raw: Any) -> ProgramId:
    return ProgramId(_uuid("program_id", raw))


def normalize_invitation_id(raw: Any) -> InvitationId:
    return InvitationId(_uuid("invitation_id", raw))


def normalize_notification_id(raw: Any) -> NotificationId:
    return NotificationId(_uuid("notification_id", raw))


__all__ = [
    "BusinessId",
    "CustomerId",
    "InvitationId",
    "MAX_NUMERIC_ID",
    "NotificationId",
    "ProgramId",
    "normalize_business_id",
    "normalize_customer_id",
    "normalize_invitation_id",
    "normalize_notification_id",
    "normalize_program_id",
]

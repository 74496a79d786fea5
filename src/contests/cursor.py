"""
Opaque keyset pagination cursors.

A cursor carries the sort key of the first row *not* yet returned plus a
tie-breaker id. The token is ``base64url("<kind>|<iso-8601>|<tie-breaker>")``
without padding. ``kind`` tags which query family issued the cursor so a token
from one family is rejected by another instead of being misread.
"""

import base64
import binascii
from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import NoReturn

from core.db.models import ensure_utc
from core.errors import InputInvalidError
from core.log import get_logger

logger = get_logger(__name__)

SEPARATOR = "|"


class CursorKind(StrEnum):
    CONTEST = "contest"  # (time_window_end, contest id)
    ACTIVITY = "activity"  # (last activity, contest id)
    CREATOR = "creator"  # (request created_at, request id)


@dataclass(frozen=True)
class CursorPayload:
    sort_key: datetime
    tie_breaker: str


def encode_cursor(kind: CursorKind, sort_key: datetime, tie_breaker: str) -> str:
    """Encode a cursor token for ``kind``."""
    if not tie_breaker:
        raise ValueError("Cursor tie-breaker must be a non-empty string")
    iso = ensure_utc(sort_key).isoformat()
    raw = SEPARATOR.join((CursorKind(kind).value, iso, tie_breaker))
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii").rstrip("=")


def decode_cursor(token: str, kind: CursorKind) -> CursorPayload:
    """Decode ``token`` and check it was issued for ``kind``.

    Raises
    ------
    InputInvalidError
        For anything other than a well-formed cursor of the expected kind.
    """
    raw = _b64decode(token)

    parts = raw.split(SEPARATOR, 2)
    if len(parts) != 3 or not all(parts):
        _reject(token, "cursor_shape_invalid", "Pagination cursor is missing fields")

    tag, iso, tie_breaker = parts
    if tag != CursorKind(kind).value:
        _reject(
            token,
            "cursor_kind_mismatch",
            f"Pagination cursor was not issued for {CursorKind(kind).value} queries",
        )

    try:
        sort_key = datetime.fromisoformat(iso)
    except ValueError:
        _reject(token, "cursor_timestamp_invalid", "Pagination cursor timestamp is invalid")

    return CursorPayload(sort_key=ensure_utc(sort_key), tie_breaker=tie_breaker)


def _b64decode(token: str) -> str:
    if not isinstance(token, str) or not token:
        _reject(token, "cursor_encoding_invalid", "Pagination cursor is empty")

    padded = token + "=" * (-len(token) % 4)
    try:
        decoded = base64.urlsafe_b64decode(padded.encode("ascii"))
        # urlsafe_b64decode silently drops characters outside the alphabet
        if base64.urlsafe_b64encode(decoded).decode("ascii").rstrip("=") != token:
            raise binascii.Error("non-canonical base64url")
        return decoded.decode("utf-8")
    except (UnicodeError, binascii.Error, ValueError):
        _reject(token, "cursor_encoding_invalid", "Pagination cursor encoding is invalid")


def _reject(token, reason: str, message: str) -> NoReturn:
    logger.trace(f"Rejected pagination cursor {token!r}: {reason}")
    raise InputInvalidError(message, reason=reason, context={"cursor": token})

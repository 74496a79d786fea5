"""
Unit tests for the pagination cursor codec.
"""

import base64
from datetime import datetime, timedelta, timezone

import pytest

from contests.cursor import CursorKind, decode_cursor, encode_cursor
from core.errors import InputInvalidError


def _raw_token(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


class TestCursorCodec:
    """Encoding, decoding and rejection of cursor tokens."""

    @pytest.mark.parametrize("kind", list(CursorKind))
    def test_round_trip(self, kind):
        """Decoding an encoded cursor yields the same sort key and tie-breaker."""
        sort_key = datetime(2024, 5, 17, 12, 30, 45, 123456, tzinfo=timezone.utc)
        token = encode_cursor(kind, sort_key, "00000000-0000-4000-8000-000000000042")

        payload = decode_cursor(token, kind)

        assert payload.sort_key == sort_key
        assert payload.tie_breaker == "00000000-0000-4000-8000-000000000042"

    def test_token_is_unpadded_base64url(self):
        token = encode_cursor(CursorKind.CONTEST, datetime.now(timezone.utc), "abc?>~")
        assert "=" not in token
        assert "+" not in token and "/" not in token

    def test_non_utc_sort_key_is_normalized(self):
        """Offsets are converted to UTC, the instant stays the same."""
        local = datetime(2024, 1, 1, 9, 0, tzinfo=timezone(timedelta(hours=9)))
        payload = decode_cursor(
            encode_cursor(CursorKind.CONTEST, local, "x"), CursorKind.CONTEST
        )
        assert payload.sort_key == local
        assert payload.sort_key.utcoffset() == timedelta(0)

    def test_tie_breaker_may_contain_separator(self):
        sort_key = datetime(2024, 1, 1, tzinfo=timezone.utc)
        token = encode_cursor(CursorKind.CREATOR, sort_key, "req|with|pipes")
        assert decode_cursor(token, CursorKind.CREATOR).tie_breaker == "req|with|pipes"

    def test_rejects_invalid_base64(self):
        with pytest.raises(InputInvalidError) as exc_info:
            decode_cursor("not-base64!!", CursorKind.CONTEST)
        assert exc_info.value.reason == "cursor_encoding_invalid"
        assert exc_info.value.context["cursor"] == "not-base64!!"

    def test_rejects_missing_field(self):
        token = _raw_token("contest|2024-01-01T00:00:00+00:00")
        with pytest.raises(InputInvalidError) as exc_info:
            decode_cursor(token, CursorKind.CONTEST)
        assert exc_info.value.reason == "cursor_shape_invalid"

    def test_rejects_empty_tie_breaker(self):
        token = _raw_token("contest|2024-01-01T00:00:00+00:00|")
        with pytest.raises(InputInvalidError):
            decode_cursor(token, CursorKind.CONTEST)

    def test_rejects_unparseable_timestamp(self):
        token = _raw_token("contest|yesterday|abc")
        with pytest.raises(InputInvalidError) as exc_info:
            decode_cursor(token, CursorKind.CONTEST)
        assert exc_info.value.reason == "cursor_timestamp_invalid"

    def test_rejects_cursor_from_other_query_family(self):
        """A creator-request cursor must not be accepted by the contest listing."""
        token = encode_cursor(
            CursorKind.CREATOR, datetime(2024, 1, 1, tzinfo=timezone.utc), "req-1"
        )
        with pytest.raises(InputInvalidError) as exc_info:
            decode_cursor(token, CursorKind.CONTEST)
        assert exc_info.value.reason == "cursor_kind_mismatch"

    def test_rejects_empty_token(self):
        with pytest.raises(InputInvalidError):
            decode_cursor("", CursorKind.ACTIVITY)

    def test_encode_requires_tie_breaker(self):
        with pytest.raises(ValueError):
            encode_cursor(CursorKind.CONTEST, datetime.now(timezone.utc), "")

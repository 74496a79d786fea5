from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from sqlalchemy import DateTime as SADateTime
from sqlalchemy import Numeric, String, text
from sqlalchemy.engine import Dialect
from sqlalchemy.sql import func
from sqlalchemy.types import TypeDecorator
from sqlmodel import Field as SQLModelField
from sqlmodel import SQLModel


class TokenAmount(TypeDecorator):
    """Non-negative integer token quantity, surfaced to Python as a decimal string.

    PostgreSQL stores ``NUMERIC(78, 0)`` (enough for any uint256). Dialects
    without a native decimal type store the digits as text so that 10**18-scale
    values never pass through a float.
    """

    impl = Numeric(78, 0)
    cache_ok = True

    def load_dialect_impl(self, dialect: Dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(Numeric(78, 0))
        return dialect.type_descriptor(String(78))

    def process_bind_param(self, value: Any, dialect: Dialect):
        if value is None:
            return None
        amount = int(value)
        if amount < 0:
            raise ValueError(f"Token amount must be non-negative, got {value!r}")
        if dialect.name == "postgresql":
            return Decimal(amount)
        return str(amount)

    def process_result_value(self, value: Any, dialect: Dialect) -> Optional[str]:
        if value is None:
            return None
        try:
            return str(int(Decimal(str(value))))
        except (InvalidOperation, ValueError) as exc:
            raise ValueError(f"Stored token amount is not an integer: {value!r}") from exc


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo) and convert aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class TimestampMixin(SQLModel):
    """Mixin for created/updated timestamps."""

    created_at: datetime = SQLModelField(
        default=None,
        nullable=False,
        sa_type=SADateTime(timezone=True),
        sa_column_kwargs={"server_default": text("CURRENT_TIMESTAMP"), "index": True},
    )
    updated_at: datetime = SQLModelField(
        default=None,
        nullable=False,
        sa_type=SADateTime(timezone=True),
        sa_column_kwargs={
            "server_default": text("CURRENT_TIMESTAMP"),
            "onupdate": func.now(),
        },
    )

"""
Identity and wallet-binding lookups.
"""

from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.constants import UNKNOWN_USER_ID
from core.db.models import ensure_utc
from core.errors import InputInvalidError

from .models import UserIdentity, WalletBinding
from .schemas import WalletBindingRecord


def normalize_user_id(value: Optional[str]) -> Optional[str]:
    """Trimmed user id, or None for blanks and the ``unknown`` placeholder."""
    if not value:
        return None
    trimmed = value.strip()
    if not trimmed or trimmed.lower() == UNKNOWN_USER_ID:
        return None
    return trimmed


def normalize_wallet(value: Optional[str]) -> Optional[str]:
    normalized = normalize_user_id(value)
    return normalized.lower() if normalized else None


async def resolve_identity(
    session: AsyncSession, user_id: Optional[str]
) -> Optional[UserIdentity]:
    external_id = normalize_user_id(user_id)
    if external_id is None:
        return None
    result = await session.execute(
        select(UserIdentity).where(UserIdentity.external_id == external_id)
    )
    return result.scalars().first()


async def load_active_wallets(session: AsyncSession, identity_id: str) -> List[str]:
    """Lowercased addresses of every wallet currently bound to the identity."""
    result = await session.execute(
        select(WalletBinding.wallet_address)
        .where(
            WalletBinding.user_id == identity_id,
            WalletBinding.unbound_at.is_(None),
        )
        .order_by(WalletBinding.bound_at.asc())
    )
    return list(dict.fromkeys(address.lower() for address in result.scalars()))


async def lookup_user_wallets(
    session: AsyncSession,
    user_id: Optional[str] = None,
    wallet_address: Optional[str] = None,
) -> List[WalletBindingRecord]:
    """Active bindings matching a user id, a wallet address, or both."""
    user_filter = normalize_user_id(user_id)
    wallet_filter = normalize_wallet(wallet_address)

    if not user_filter and not wallet_filter:
        raise InputInvalidError(
            "Wallet lookup requires at least one identifier",
            reason="wallet_lookup_identifier_missing",
        )

    stmt = (
        select(WalletBinding, UserIdentity)
        .join(UserIdentity, WalletBinding.user_id == UserIdentity.id)
        .where(WalletBinding.unbound_at.is_(None))
    )
    if user_filter:
        stmt = stmt.where(UserIdentity.external_id == user_filter)
    if wallet_filter:
        stmt = stmt.where(func.lower(WalletBinding.wallet_address) == wallet_filter)
    stmt = stmt.order_by(WalletBinding.bound_at.asc(), WalletBinding.wallet_address.asc())

    rows = await session.execute(stmt)
    return [
        WalletBindingRecord(
            identity_id=identity.id,
            user_id=identity.external_id,
            user_status=identity.status,
            wallet_address=binding.wallet_address.lower(),
            wallet_address_checksum=binding.wallet_address_checksum,
            source=binding.source,
            bound_at=ensure_utc(binding.bound_at),
        )
        for binding, identity in rows.all()
    ]

"""
Batched loaders that attach related rows to a page of contests.

Every loader issues a single query keyed by the whole set of contest ids
(``IN`` clause) and groups the rows in memory.
"""

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.db.models import ensure_utc
from core.errors import InputInvalidError

from .models import Participant, RewardClaim
from .schemas import (
    ContestRecord,
    CreatorMetadata,
    CreatorSummaryRecord,
    ParticipantRecord,
    RewardClaimRecord,
)


async def load_participants(
    session: AsyncSession,
    contest_ids: Sequence[str],
    wallets: Optional[Sequence[str]] = None,
) -> Dict[str, List[ParticipantRecord]]:
    """Participation events per contest, oldest first.

    When ``wallets`` is given only events from those (lowercased) addresses
    are returned.
    """
    if not contest_ids:
        return {}

    stmt = select(Participant).where(Participant.contest_id.in_(list(contest_ids)))
    if wallets is not None:
        stmt = stmt.where(Participant.wallet_address.in_(list(wallets)))
    stmt = stmt.order_by(Participant.occurred_at.asc(), Participant.id.asc())

    grouped: Dict[str, List[ParticipantRecord]] = defaultdict(list)
    for row in (await session.execute(stmt)).scalars():
        grouped[row.contest_id].append(
            ParticipantRecord(
                contest_id=row.contest_id,
                wallet_address=row.wallet_address.lower(),
                vault_reference=row.vault_reference,
                amount=row.amount_wei,
                occurred_at=ensure_utc(row.occurred_at),
            )
        )
    return dict(grouped)


async def load_reward_claims(
    session: AsyncSession,
    contest_ids: Sequence[str],
    wallets: Optional[Sequence[str]] = None,
) -> Dict[str, List[RewardClaimRecord]]:
    """Reward claims per contest, oldest first, optionally restricted to ``wallets``."""
    if not contest_ids:
        return {}

    stmt = select(RewardClaim).where(RewardClaim.contest_id.in_(list(contest_ids)))
    if wallets is not None:
        stmt = stmt.where(RewardClaim.wallet_address.in_(list(wallets)))
    stmt = stmt.order_by(RewardClaim.claimed_at.asc(), RewardClaim.id.asc())

    grouped: Dict[str, List[RewardClaimRecord]] = defaultdict(list)
    for row in (await session.execute(stmt)).scalars():
        grouped[row.contest_id].append(
            RewardClaimRecord(
                contest_id=row.contest_id,
                wallet_address=row.wallet_address.lower(),
                amount=row.amount_wei,
                claimed_at=ensure_utc(row.claimed_at),
            )
        )
    return dict(grouped)


def sum_amounts(amounts: Iterable[str]) -> str:
    """Exact sum of non-negative integer token amounts given as decimal strings."""
    total = 0
    for amount in amounts:
        text = str(amount).strip()
        if not (text.isascii() and text.isdigit()):
            raise InputInvalidError(
                "Token amount must be a non-negative integer",
                reason="amount_invalid",
                context={"amount": str(amount)},
            )
        total += int(text)
    return str(total)


def build_creator_summary(
    contest: ContestRecord,
    rewards: Optional[List[RewardClaimRecord]],
) -> CreatorSummaryRecord:
    """Creator details from contest metadata.

    ``total_rewards`` is computed from hydrated claims when there are any,
    otherwise it falls back to the total recorded in metadata.
    """
    metadata = CreatorMetadata.from_metadata(contest.metadata)

    if rewards:
        total_rewards = sum_amounts(reward.amount for reward in rewards)
    elif metadata.total_rewards is not None:
        total_rewards = metadata.total_rewards
    else:
        total_rewards = "0"

    return CreatorSummaryRecord(
        contest_id=contest.contest_id,
        creator_wallet=metadata.creator_wallet,
        contests_hosted=metadata.contests_hosted,
        total_rewards=total_rewards,
    )

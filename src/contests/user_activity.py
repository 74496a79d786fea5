"""
Contests a platform user touched through any of their active wallets.
"""

from datetime import datetime
from typing import AbstractSet, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.constants import DEFAULT_SUPPORTED_CHAIN_IDS
from core.db.models import ensure_utc
from core.log import get_logger

from .cursor import CursorKind, decode_cursor, encode_cursor
from .filters import compile_contest_filter
from .hydrators import load_participants, load_reward_claims
from .models import Contest, Participant, RewardClaim
from .queries import normalize_pagination
from .schemas import (
    ContestRecord,
    Pagination,
    UserContestEntry,
    UserContestFilters,
    UserContestQueryResult,
)
from .wallets import load_active_wallets, normalize_user_id, resolve_identity

logger = get_logger(__name__)


async def load_last_activity(
    session: AsyncSession, wallets: List[str]
) -> Dict[str, datetime]:
    """Latest participation or reward claim per contest for ``wallets``.

    Contests where none of the wallets did anything are absent.
    """
    participations = await session.execute(
        select(Participant.contest_id, func.max(Participant.occurred_at))
        .where(Participant.wallet_address.in_(wallets))
        .group_by(Participant.contest_id)
    )
    claims = await session.execute(
        select(RewardClaim.contest_id, func.max(RewardClaim.claimed_at))
        .where(RewardClaim.wallet_address.in_(wallets))
        .group_by(RewardClaim.contest_id)
    )

    last_activity: Dict[str, datetime] = {}
    for contest_id, occurred in [*participations.all(), *claims.all()]:
        if occurred is None:
            continue
        occurred = ensure_utc(occurred)
        current = last_activity.get(contest_id)
        if current is None or occurred > current:
            last_activity[contest_id] = occurred
    return last_activity


async def query_user_contests(
    session: AsyncSession,
    user_id: Optional[str],
    filters: Optional[UserContestFilters] = None,
    pagination: Optional[Pagination] = None,
    supported_chain_ids: AbstractSet[int] = DEFAULT_SUPPORTED_CHAIN_IDS,
) -> UserContestQueryResult:
    """Page through the contests a user participated in or claimed rewards from.

    Ordered by last activity, newest first, ties broken by contest id
    descending. Candidates are gathered in full and paginated in memory.
    """
    filters = filters or UserContestFilters()
    page_size, cursor_token = normalize_pagination(pagination)
    cursor = decode_cursor(cursor_token, CursorKind.ACTIVITY) if cursor_token else None

    conditions = compile_contest_filter(
        filters.chain_ids,
        filters.statuses,
        filters.time_range,
        supported_chain_ids,
        reason_prefix="user_contest",
    )

    if normalize_user_id(user_id) is None:
        return UserContestQueryResult(items=[])

    identity = await resolve_identity(session, user_id)
    if identity is None:
        logger.debug(f"No identity for user {user_id!r}")
        return UserContestQueryResult(items=[])

    wallets = await load_active_wallets(session, identity.id)
    if not wallets:
        return UserContestQueryResult(items=[])

    last_activity = await load_last_activity(session, wallets)
    if filters.contest_ids:
        allowed = {contest_id.lower() for contest_id in filters.contest_ids}
        last_activity = {
            contest_id: occurred
            for contest_id, occurred in last_activity.items()
            if contest_id.lower() in allowed
        }
    if not last_activity:
        return UserContestQueryResult(items=[])

    rows = await session.execute(
        select(Contest).where(Contest.id.in_(list(last_activity)), *conditions)
    )
    candidates = sorted(
        ((last_activity[row.id], ContestRecord.from_row(row)) for row in rows.scalars()),
        key=lambda pair: (pair[0], pair[1].contest_id),
        reverse=True,
    )

    if cursor is not None:
        boundary = (cursor.sort_key, cursor.tie_breaker)
        candidates = [
            pair for pair in candidates if (pair[0], pair[1].contest_id) <= boundary
        ]

    next_cursor = None
    if len(candidates) > page_size:
        occurred, contest = candidates[page_size]
        next_cursor = encode_cursor(CursorKind.ACTIVITY, occurred, contest.contest_id)
        candidates = candidates[:page_size]

    contest_ids = [contest.contest_id for _, contest in candidates]
    participations = await load_participants(session, contest_ids, wallets)
    claims = await load_reward_claims(session, contest_ids, wallets)

    items = [
        UserContestEntry(
            contest=contest,
            participations=participations.get(contest.contest_id, []),
            reward_claims=claims.get(contest.contest_id, []),
            last_activity=occurred,
        )
        for occurred, contest in candidates
    ]
    logger.debug(
        f"User {identity.external_id} has {len(last_activity)} active contests, "
        f"returning {len(items)}"
    )
    return UserContestQueryResult(items=items, next_cursor=next_cursor)

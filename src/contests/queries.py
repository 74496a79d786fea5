"""
Contest aggregator: keyset-paginated contest listing with optional hydration.
"""

from typing import AbstractSet, Dict, List, Optional, Tuple

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.constants import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_SUPPORTED_CHAIN_IDS,
    MAX_PAGE_SIZE,
    MIN_PAGE_SIZE,
)
from core.log import get_logger

from .cursor import CursorKind, decode_cursor, encode_cursor
from .filters import compile_selector
from .hydrators import build_creator_summary, load_participants, load_reward_claims
from .leaderboard import resolve_leaderboards, resolve_version_number
from .models import Contest
from .schemas import (
    ContestAggregate,
    ContestIncludes,
    ContestQueryResult,
    ContestRecord,
    ContestSelector,
    Pagination,
)

logger = get_logger(__name__)


def normalize_pagination(pagination: Optional[Pagination]) -> Tuple[int, Optional[str]]:
    """Clamp the page size into range and blank out empty cursors."""
    if pagination is None:
        return DEFAULT_PAGE_SIZE, None

    page_size = pagination.page_size
    if page_size is None:
        page_size = DEFAULT_PAGE_SIZE
    page_size = max(MIN_PAGE_SIZE, min(MAX_PAGE_SIZE, page_size))

    cursor = (pagination.cursor or "").strip() or None
    return page_size, cursor


async def query_contests(
    session: AsyncSession,
    selector: ContestSelector,
    includes: Optional[ContestIncludes] = None,
    pagination: Optional[Pagination] = None,
    supported_chain_ids: AbstractSet[int] = DEFAULT_SUPPORTED_CHAIN_IDS,
) -> ContestQueryResult:
    """List contests matching ``selector`` newest window first.

    Rows are ordered by ``(time_window_end, id)`` descending; the cursor holds
    the key of the first row left off the page.
    """
    includes = includes or ContestIncludes()
    page_size, cursor_token = normalize_pagination(pagination)

    conditions = compile_selector(selector, supported_chain_ids)
    if includes.leaderboard is not None:
        # Fail on a bad version before touching the store
        resolve_version_number(includes.leaderboard)

    if cursor_token:
        cursor = decode_cursor(cursor_token, CursorKind.CONTEST)
        conditions.append(
            or_(
                Contest.time_window_end < cursor.sort_key,
                and_(
                    Contest.time_window_end == cursor.sort_key,
                    Contest.id <= cursor.tie_breaker,
                ),
            )
        )

    stmt = (
        select(Contest)
        .where(*conditions)
        .order_by(Contest.time_window_end.desc(), Contest.id.desc())
        .limit(page_size + 1)
    )
    rows = list((await session.execute(stmt)).scalars())

    next_cursor = None
    if len(rows) > page_size:
        boundary = ContestRecord.from_row(rows[page_size])
        next_cursor = encode_cursor(
            CursorKind.CONTEST, boundary.time_window_end, boundary.contest_id
        )
        rows = rows[:page_size]

    contests = [ContestRecord.from_row(row) for row in rows]
    items = await _hydrate(session, contests, includes)

    logger.debug(
        f"Contest query returned {len(items)} contests (more={next_cursor is not None})"
    )
    return ContestQueryResult(items=items, next_cursor=next_cursor)


async def _hydrate(
    session: AsyncSession,
    contests: List[ContestRecord],
    includes: ContestIncludes,
) -> List[ContestAggregate]:
    contest_ids = [contest.contest_id for contest in contests]

    participants: Dict[str, list] = {}
    rewards: Dict[str, list] = {}
    leaderboards: Dict[str, object] = {}

    if includes.participants:
        participants = await load_participants(session, contest_ids)
    if includes.rewards:
        rewards = await load_reward_claims(session, contest_ids)
    if includes.leaderboard is not None:
        leaderboards = await resolve_leaderboards(
            session, contest_ids, includes.leaderboard
        )

    aggregates: List[ContestAggregate] = []
    for contest in contests:
        contest_rewards = rewards.get(contest.contest_id, []) if includes.rewards else None
        aggregates.append(
            ContestAggregate(
                contest=contest,
                participants=(
                    participants.get(contest.contest_id, [])
                    if includes.participants
                    else None
                ),
                rewards=contest_rewards,
                leaderboard=leaderboards.get(contest.contest_id),
                creator_summary=(
                    build_creator_summary(contest, contest_rewards)
                    if includes.creator_summary
                    else None
                ),
            )
        )
    return aggregates

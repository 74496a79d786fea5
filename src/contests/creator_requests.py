"""
Creation requests submitted by an organizer, joined with their deployment outcome.
"""

from typing import AbstractSet, Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.constants import DEFAULT_SUPPORTED_CHAIN_IDS, CreationRequestStatus
from core.log import get_logger

from .cursor import CursorKind, decode_cursor, encode_cursor
from .filters import ensure_supported_chains
from .models import Contest, ContestCreationRequest, ContestDeploymentArtifact
from .queries import normalize_pagination
from .schemas import (
    ContestRecord,
    CreationRequestRecord,
    CreatorContestFilters,
    CreatorContestQueryResult,
    CreatorContestRecord,
    DeploymentArtifactRecord,
    Pagination,
)

logger = get_logger(__name__)


def _base_query():
    return (
        select(ContestCreationRequest, ContestDeploymentArtifact, Contest)
        .outerjoin(
            ContestDeploymentArtifact,
            ContestDeploymentArtifact.request_id == ContestCreationRequest.id,
        )
        .outerjoin(Contest, Contest.id == ContestDeploymentArtifact.contest_id)
    )


def build_creator_record(
    request: ContestCreationRequest,
    artifact: Optional[ContestDeploymentArtifact],
    contest: Optional[Contest],
) -> CreatorContestRecord:
    """A request counts as deployed once its artifact points at a contest."""
    artifact_record = DeploymentArtifactRecord.from_row(artifact) if artifact else None
    deployed = artifact_record is not None and artifact_record.contest_id is not None
    return CreatorContestRecord(
        request=CreationRequestRecord.from_row(request),
        artifact=artifact_record,
        status=CreationRequestStatus.DEPLOYED if deployed else CreationRequestStatus.ACCEPTED,
        contest=ContestRecord.from_row(contest) if contest else None,
    )


async def query_creator_contests(
    session: AsyncSession,
    user_id: Optional[str],
    filters: Optional[CreatorContestFilters] = None,
    pagination: Optional[Pagination] = None,
    supported_chain_ids: AbstractSet[int] = DEFAULT_SUPPORTED_CHAIN_IDS,
) -> CreatorContestQueryResult:
    """Newest creation requests of ``user_id`` first, keyset-paginated on (created_at, id)."""
    filters = filters or CreatorContestFilters()
    page_size, cursor_token = normalize_pagination(pagination)

    conditions = []
    if filters.network_ids:
        ensure_supported_chains(filters.network_ids, supported_chain_ids)
        conditions.append(ContestCreationRequest.network_id.in_(filters.network_ids))

    if cursor_token:
        cursor = decode_cursor(cursor_token, CursorKind.CREATOR)
        conditions.append(
            or_(
                ContestCreationRequest.created_at < cursor.sort_key,
                and_(
                    ContestCreationRequest.created_at == cursor.sort_key,
                    ContestCreationRequest.id <= cursor.tie_breaker,
                ),
            )
        )

    user = (user_id or "").strip()
    if not user:
        return CreatorContestQueryResult(items=[])

    stmt = (
        _base_query()
        .where(ContestCreationRequest.user_id == user, *conditions)
        .order_by(
            ContestCreationRequest.created_at.desc(), ContestCreationRequest.id.desc()
        )
        .limit(page_size + 1)
    )
    rows = (await session.execute(stmt)).all()

    next_cursor = None
    if len(rows) > page_size:
        boundary = CreationRequestRecord.from_row(rows[page_size][0])
        next_cursor = encode_cursor(
            CursorKind.CREATOR, boundary.created_at, boundary.request_id
        )
        rows = rows[:page_size]

    items = [build_creator_record(*row) for row in rows]
    logger.debug(f"Creator {user} query returned {len(items)} requests")
    return CreatorContestQueryResult(items=items, next_cursor=next_cursor)


async def get_creator_request(
    session: AsyncSession, request_id: str
) -> Optional[CreatorContestRecord]:
    """Single request with its artifact and contest, or None when unknown."""
    request_id = (request_id or "").strip()
    if not request_id:
        return None

    row = (
        await session.execute(
            _base_query().where(ContestCreationRequest.id == request_id)
        )
    ).first()
    if row is None:
        return None
    return build_creator_record(*row)

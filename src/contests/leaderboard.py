"""
Leaderboard snapshot retrieval.

Leaderboards are computed elsewhere and written as immutable, versioned rows.
This module only picks the right version per contest and normalizes the raw
entries the scorer wrote.
"""

import math
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.db.models import ensure_utc
from core.errors import InputInvalidError, NotFoundError
from core.log import get_logger

from .models import LeaderboardVersion
from .schemas import LeaderboardEntry, LeaderboardInclude, LeaderboardRecord

logger = get_logger(__name__)


def resolve_version_number(include: LeaderboardInclude) -> Optional[int]:
    """Return the requested version for ``version`` mode, ``None`` for ``latest``."""
    if include.mode == "latest":
        return None

    if include.version is None:
        raise InputInvalidError(
            "Leaderboard include requires a version number",
            reason="leaderboard_version_missing",
        )

    try:
        version = int(str(include.version).strip())
    except ValueError:
        version = None
    if version is None or version <= 0:
        raise InputInvalidError(
            "Leaderboard version must be a positive integer",
            reason="leaderboard_version_invalid",
            context={"version": str(include.version)},
        )
    return version


def normalize_entries(raw: Any) -> List[LeaderboardEntry]:
    """Drop unusable entries, coerce score to text, lowercase wallets, sort by rank.

    Entries sharing a rank keep their stored relative order.
    """
    if not isinstance(raw, list):
        return []

    entries: List[LeaderboardEntry] = []
    for item in raw:
        if not isinstance(item, dict):
            continue

        rank = _finite_rank(item.get("rank"))
        wallet = item.get("walletAddress")
        wallet = "" if wallet is None else str(wallet).strip()
        if rank is None or not wallet:
            continue

        score = item.get("score")
        if isinstance(score, bool) or not isinstance(score, (str, int, float)):
            score = None
        elif isinstance(score, float) and not math.isfinite(score):
            score = None

        entries.append(
            LeaderboardEntry(
                rank=rank,
                wallet_address=wallet.lower(),
                score=None if score is None else _score_text(score),
            )
        )

    entries.sort(key=lambda entry: entry.rank)
    return entries


async def resolve_leaderboards(
    session: AsyncSession,
    contest_ids: Sequence[str],
    include: LeaderboardInclude,
) -> Dict[str, Optional[LeaderboardRecord]]:
    """Map every contest id to its selected leaderboard snapshot.

    ``latest`` maps contests without any snapshot to ``None``. A specific
    version must exist for every contest, otherwise NotFoundError lists all the
    contests that lack it.
    """
    version = resolve_version_number(include)
    if not contest_ids:
        return {}

    ids = list(dict.fromkeys(contest_ids))
    resolved: Dict[str, Optional[LeaderboardRecord]] = {cid: None for cid in ids}

    if version is None:
        rows = await session.execute(
            select(LeaderboardVersion)
            .where(LeaderboardVersion.contest_id.in_(ids))
            .order_by(
                LeaderboardVersion.contest_id.desc(),
                LeaderboardVersion.version.desc(),
            )
        )
        for row in rows.scalars():
            if resolved.get(row.contest_id) is None:
                resolved[row.contest_id] = _to_record(row)
        return resolved

    rows = await session.execute(
        select(LeaderboardVersion).where(
            LeaderboardVersion.contest_id.in_(ids),
            LeaderboardVersion.version == version,
        )
    )
    for row in rows.scalars():
        resolved[row.contest_id] = _to_record(row)

    missing = [cid for cid in ids if resolved[cid] is None]
    if missing:
        logger.debug(f"Leaderboard version {version} missing for contests {missing}")
        raise NotFoundError(
            "Requested leaderboard version not found for contest",
            reason="leaderboard_version_not_found",
            context={"contest_ids": missing, "version": str(version)},
        )

    return resolved


def _to_record(row: LeaderboardVersion) -> LeaderboardRecord:
    return LeaderboardRecord(
        contest_id=row.contest_id,
        version=str(row.version),
        entries=normalize_entries(row.entries),
        as_of=ensure_utc(row.written_at),
    )


def _finite_rank(value: Any):
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = value
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    if isinstance(number, float) and number.is_integer():
        return int(number)
    return number


def _score_text(score) -> str:
    if isinstance(score, float) and score.is_integer():
        return str(int(score))
    return str(score)

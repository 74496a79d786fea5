"""
Compile contest selectors and filters into SQLAlchemy predicates.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import AbstractSet, Iterable, List, Optional, Sequence

from sqlalchemy import and_, or_
from sqlalchemy.sql.elements import ColumnElement

from core.constants import DEFAULT_SUPPORTED_CHAIN_IDS, ContestStatus
from core.db.models import ensure_utc
from core.errors import InputInvalidError, ResourceUnsupportedError

from .models import Contest
from .schemas import ContestFilter, ContestSelector, TimeBound, TimeRange

UUID_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}$"
)

_KNOWN_STATUSES = {status.value for status in ContestStatus}


@dataclass(frozen=True)
class ResolvedTimeRange:
    start: datetime
    end: datetime


def ensure_supported_chains(
    chain_ids: Iterable[int],
    supported_chain_ids: AbstractSet[int] = DEFAULT_SUPPORTED_CHAIN_IDS,
) -> None:
    """Raise ResourceUnsupportedError naming every chain id outside the allow-list."""
    unsupported = [chain_id for chain_id in chain_ids if chain_id not in supported_chain_ids]
    if unsupported:
        raise ResourceUnsupportedError(
            "Unsupported chain in contest query",
            reason="unsupported_chain",
            context={"chain_ids": unsupported},
        )


def normalize_statuses(statuses: Sequence[str], reason: str) -> List[str]:
    """Keep the known statuses; fail when none of the requested values is known."""
    normalized = [status for status in statuses if status in _KNOWN_STATUSES]
    if not normalized:
        raise InputInvalidError(
            "Invalid contest status provided",
            reason=reason,
            context={"statuses": list(statuses)},
        )
    return normalized


def resolve_time_range(time_range: TimeRange, reason: str) -> ResolvedTimeRange:
    start = _parse_bound(time_range.from_)
    end = _parse_bound(time_range.to)
    if start is None or end is None or start > end:
        raise InputInvalidError(
            "Invalid time range provided for contest filter",
            reason=reason,
            context={"from": _describe(time_range.from_), "to": _describe(time_range.to)},
        )
    return ResolvedTimeRange(start=start, end=end)


def window_overlaps(time_range: ResolvedTimeRange) -> ColumnElement[bool]:
    """Contests whose [start, end] window intersects the inclusive range."""
    return and_(
        Contest.time_window_end >= time_range.start,
        Contest.time_window_start <= time_range.end,
    )


def compile_contest_filter(
    chain_ids: Optional[Sequence[int]],
    statuses: Optional[Sequence[str]],
    time_range: Optional[TimeRange],
    supported_chain_ids: AbstractSet[int] = DEFAULT_SUPPORTED_CHAIN_IDS,
    reason_prefix: str = "contest",
) -> List[ColumnElement[bool]]:
    """Chain/status/time-range predicates shared by contest and user-activity queries."""
    conditions: List[ColumnElement[bool]] = []

    if chain_ids:
        ensure_supported_chains(chain_ids, supported_chain_ids)
        conditions.append(Contest.chain_id.in_(list(chain_ids)))

    if statuses:
        normalized = normalize_statuses(
            statuses, reason=f"{reason_prefix}_filter_status_invalid"
        )
        conditions.append(Contest.status.in_(normalized))

    if time_range is not None:
        resolved = resolve_time_range(
            time_range, reason=f"{reason_prefix}_time_range_invalid"
        )
        conditions.append(window_overlaps(resolved))

    return conditions


def compile_selector(
    selector: ContestSelector,
    supported_chain_ids: AbstractSet[int] = DEFAULT_SUPPORTED_CHAIN_IDS,
) -> List[ColumnElement[bool]]:
    """Turn a selector into a list of predicates to AND together.

    Explicit items are OR-combined into one predicate; the filter half adds one
    predicate per populated field.
    """
    conditions: List[ColumnElement[bool]] = []

    if selector.items:
        item_conditions = [
            _compile_item(item, supported_chain_ids) for item in selector.items
        ]
        conditions.append(
            item_conditions[0] if len(item_conditions) == 1 else or_(*item_conditions)
        )

    if selector.filter is not None:
        conditions.extend(_compile_filter(selector.filter, supported_chain_ids))

    return conditions


def _compile_filter(
    contest_filter: ContestFilter, supported_chain_ids: AbstractSet[int]
) -> List[ColumnElement[bool]]:
    conditions = compile_contest_filter(
        contest_filter.chain_ids,
        contest_filter.statuses,
        contest_filter.time_range,
        supported_chain_ids,
    )

    keyword = (contest_filter.keyword or "").strip()
    if keyword:
        pattern = f"%{_escape_like(keyword)}%"
        conditions.append(
            or_(
                Contest.contract_address.ilike(pattern, escape="\\"),
                Contest.internal_key.ilike(pattern, escape="\\"),
            )
        )

    return conditions


def _compile_item(item, supported_chain_ids: AbstractSet[int]) -> ColumnElement[bool]:
    if item.contest_id:
        if not UUID_PATTERN.match(item.contest_id):
            raise InputInvalidError(
                "Invalid contest selector item",
                reason="contest_id_invalid",
                context={"contest_id": item.contest_id},
            )
        return Contest.id == item.contest_id.lower()

    if item.internal_id:
        return Contest.internal_key == item.internal_id

    if item.chain_id is not None and item.contract_address:
        ensure_supported_chains([item.chain_id], supported_chain_ids)
        return and_(
            Contest.chain_id == item.chain_id,
            Contest.contract_address == item.contract_address.strip().lower(),
        )

    raise InputInvalidError(
        "Invalid contest selector item",
        reason="selector_item_invalid",
        context={"item": item.model_dump(exclude_none=True)},
    )


def _parse_bound(value: TimeBound) -> Optional[datetime]:
    if isinstance(value, datetime):
        return ensure_utc(value)
    try:
        return ensure_utc(datetime.fromisoformat(str(value).strip()))
    except ValueError:
        return None


def _describe(value: TimeBound) -> str:
    return value.isoformat() if isinstance(value, datetime) else str(value)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")

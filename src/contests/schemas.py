"""
Request and response models for the contest query entry points.

Requests accept snake_case or camelCase keys; responses serialize with camelCase
aliases (``model_dump(by_alias=True)``) to match what API clients expect.
"""

from datetime import datetime
from typing import Any, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_serializer,
    field_validator,
)
from pydantic.alias_generators import to_camel

from core.constants import CreationRequestStatus
from core.db.models import ensure_utc
from core.errors import InputInvalidError

from .models import Contest, ContestCreationRequest, ContestDeploymentArtifact

TimeBound = Union[datetime, str]


class QueryModel(BaseModel):
    """Base for caller-supplied query arguments."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class ContestItemSelector(QueryModel):
    """One explicit contest matcher: by id, by internal key, or by chain + contract."""

    contest_id: Optional[str] = None
    internal_id: Optional[str] = None
    chain_id: Optional[int] = None
    contract_address: Optional[str] = None


class TimeRange(QueryModel):
    from_: TimeBound = Field(alias="from")
    to: TimeBound


class ContestFilter(QueryModel):
    chain_ids: Optional[List[int]] = None
    statuses: Optional[List[str]] = None
    time_range: Optional[TimeRange] = None
    keyword: Optional[str] = None


class ContestSelector(QueryModel):
    items: Optional[List[ContestItemSelector]] = None
    filter: Optional[ContestFilter] = None


class LeaderboardInclude(QueryModel):
    mode: Literal["latest", "version"] = "latest"
    version: Optional[Union[int, str]] = None


class ContestIncludes(QueryModel):
    participants: bool = False
    rewards: bool = False
    leaderboard: Optional[LeaderboardInclude] = None
    creator_summary: bool = False


class Pagination(QueryModel):
    # Out-of-range sizes are clamped by the query layer, not rejected here
    page_size: Optional[int] = None
    cursor: Optional[str] = None


class UserContestFilters(QueryModel):
    chain_ids: Optional[List[int]] = None
    statuses: Optional[List[str]] = None
    time_range: Optional[TimeRange] = None
    contest_ids: Optional[List[str]] = None


class CreatorContestFilters(QueryModel):
    network_ids: Optional[List[int]] = None


def parse_query_model(model: type[QueryModel], value: Any, context: str):
    """Validate a dict (or pass through a model instance) into ``model``.

    Shape errors surface as :class:`InputInvalidError` rather than pydantic's
    ``ValidationError`` so callers deal with a single error taxonomy.
    """
    if value is None or isinstance(value, model):
        return value
    try:
        return model.model_validate(value)
    except ValidationError as exc:
        raise InputInvalidError(
            f"Invalid {context}",
            reason=f"{context}_invalid",
            context={"errors": exc.errors(include_url=False, include_input=False)},
        ) from exc


# Responses


class RecordModel(BaseModel):
    """Base for records returned to callers."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    @field_serializer("*", mode="wrap")
    def serialize_datetime_fields(self, value, serializer, info):
        """Serialize datetimes as ISO-8601 strings."""
        if isinstance(value, datetime):
            return value.isoformat()
        return serializer(value)


class ContestRecord(RecordModel):
    contest_id: str
    chain_id: int
    contract_address: str
    internal_key: Optional[str]
    status: str
    time_window_start: datetime
    time_window_end: datetime
    origin_tag: str
    sealed_at: Optional[datetime]
    metadata: dict
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: Contest) -> "ContestRecord":
        return cls(
            contest_id=row.id,
            chain_id=row.chain_id,
            contract_address=row.contract_address.lower(),
            internal_key=row.internal_key,
            status=row.status,
            time_window_start=ensure_utc(row.time_window_start),
            time_window_end=ensure_utc(row.time_window_end),
            origin_tag=row.origin_tag,
            sealed_at=ensure_utc(row.sealed_at) if row.sealed_at else None,
            metadata=dict(row.contest_metadata or {}),
            created_at=ensure_utc(row.created_at),
            updated_at=ensure_utc(row.updated_at),
        )


class ParticipantRecord(RecordModel):
    contest_id: str
    wallet_address: str
    vault_reference: Optional[str]
    amount: str
    occurred_at: datetime


class RewardClaimRecord(RecordModel):
    contest_id: str
    wallet_address: str
    amount: str
    claimed_at: datetime


class LeaderboardEntry(RecordModel):
    rank: Union[int, float]
    wallet_address: str
    score: Optional[str] = None


class LeaderboardRecord(RecordModel):
    contest_id: str
    version: str
    entries: List[LeaderboardEntry]
    as_of: datetime


class CreatorSummaryRecord(RecordModel):
    contest_id: str
    creator_wallet: Optional[str]
    contests_hosted: int
    total_rewards: str


class ContestAggregate(RecordModel):
    """A contest plus whichever sub-aggregates were requested.

    Fields left as ``None`` were not requested, except ``leaderboard`` which is
    also ``None`` when requested but absent for the contest.
    """

    contest: ContestRecord
    participants: Optional[List[ParticipantRecord]] = None
    rewards: Optional[List[RewardClaimRecord]] = None
    leaderboard: Optional[LeaderboardRecord] = None
    creator_summary: Optional[CreatorSummaryRecord] = None


class ContestQueryResult(RecordModel):
    items: List[ContestAggregate]
    next_cursor: Optional[str] = None


class UserContestEntry(RecordModel):
    contest: ContestRecord
    participations: List[ParticipantRecord]
    reward_claims: List[RewardClaimRecord]
    last_activity: Optional[datetime]


class UserContestQueryResult(RecordModel):
    items: List[UserContestEntry]
    next_cursor: Optional[str] = None


class CreationRequestRecord(RecordModel):
    request_id: str
    user_id: str
    network_id: int
    payload: dict
    status: str
    transaction_hash: Optional[str]
    confirmed_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: ContestCreationRequest) -> "CreationRequestRecord":
        return cls(
            request_id=row.id,
            user_id=row.user_id.strip(),
            network_id=row.network_id,
            payload=dict(row.payload or {}),
            status=row.status,
            transaction_hash=_lower_or_none(row.transaction_hash),
            confirmed_at=ensure_utc(row.confirmed_at) if row.confirmed_at else None,
            created_at=ensure_utc(row.created_at),
            updated_at=ensure_utc(row.updated_at),
        )


class DeploymentArtifactRecord(RecordModel):
    artifact_id: str
    request_id: str
    contest_id: Optional[str]
    network_id: int
    contest_address: Optional[str]
    vault_factory_address: Optional[str]
    registrar_address: Optional[str]
    treasury_address: Optional[str]
    settlement_address: Optional[str]
    rewards_address: Optional[str]
    transaction_hash: Optional[str]
    confirmed_at: Optional[datetime]
    metadata: dict

    @classmethod
    def from_row(cls, row: ContestDeploymentArtifact) -> "DeploymentArtifactRecord":
        return cls(
            artifact_id=row.id,
            request_id=row.request_id,
            contest_id=row.contest_id,
            network_id=row.network_id,
            contest_address=_lower_or_none(row.contest_address),
            vault_factory_address=_lower_or_none(row.vault_factory_address),
            registrar_address=_lower_or_none(row.registrar_address),
            treasury_address=_lower_or_none(row.treasury_address),
            settlement_address=_lower_or_none(row.settlement_address),
            rewards_address=_lower_or_none(row.rewards_address),
            transaction_hash=_lower_or_none(row.transaction_hash),
            confirmed_at=ensure_utc(row.confirmed_at) if row.confirmed_at else None,
            metadata=dict(row.artifact_metadata or {}),
        )


class CreatorContestRecord(RecordModel):
    request: CreationRequestRecord
    artifact: Optional[DeploymentArtifactRecord]
    status: CreationRequestStatus
    contest: Optional[ContestRecord]


class CreatorContestQueryResult(RecordModel):
    items: List[CreatorContestRecord]
    next_cursor: Optional[str] = None


class WalletBindingRecord(RecordModel):
    identity_id: str
    user_id: str
    user_status: str
    wallet_address: str
    wallet_address_checksum: str
    source: str
    bound_at: datetime


class CreatorMetadata(BaseModel):
    """Typed view over the creator-related keys of ``Contest.metadata``.

    The bag is written by several producers, so values are coerced leniently:
    anything unusable falls back to the default instead of failing the query.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    creator_wallet: Optional[str] = Field(default=None, alias="creatorWallet")
    contests_hosted: int = Field(default=0, alias="contestsHosted")
    total_rewards: Optional[str] = Field(default=None, alias="totalRewards")

    @classmethod
    def from_metadata(cls, metadata: Optional[dict]) -> "CreatorMetadata":
        metadata = dict(metadata or {})
        if "contestsHosted" not in metadata and "creatorContests" in metadata:
            metadata["contestsHosted"] = metadata["creatorContests"]
        return cls.model_validate(metadata)

    @field_validator("creator_wallet", mode="before")
    @classmethod
    def _wallet_must_be_text(cls, value):
        return value if isinstance(value, str) else None

    @field_validator("contests_hosted", mode="before")
    @classmethod
    def _coerce_hosted(cls, value):
        if isinstance(value, bool):
            return 0
        if isinstance(value, int):
            return value
        if isinstance(value, float):
            return int(value) if value == value and abs(value) != float("inf") else 0
        try:
            return int(str(value).strip())
        except (TypeError, ValueError):
            return 0

    @field_validator("total_rewards", mode="before")
    @classmethod
    def _coerce_total(cls, value):
        if isinstance(value, bool):
            return None
        if isinstance(value, str):
            return value
        if isinstance(value, int):
            return str(value)
        # JSON numbers may come back as floats; only whole amounts are kept
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return None


def _lower_or_none(value: Optional[str]) -> Optional[str]:
    return value.strip().lower() if value else None

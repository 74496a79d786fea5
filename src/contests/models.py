"""
SQLModel table models for the contest domain.

The engine only reads these tables; the write path and migrations that own
them live elsewhere. Column names follow the persisted layout.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import BigInteger, CheckConstraint, Index, UniqueConstraint
from sqlalchemy import DateTime as SADateTime
from sqlalchemy import String as SAString
from sqlmodel import JSON, Column, Field, SQLModel

from core.constants import (
    ContestOrigin,
    ContestStatus,
    IdentityStatus,
    WalletBindingSource,
)
from core.db.models import TimestampMixin, TokenAmount

# Type aliases for consistency
Uuid = str  # UUID string
WalletAddress = str  # 0x-prefixed, 40 hex chars


class Contest(TimestampMixin, SQLModel, table=True):
    """On-chain contest registered with the platform."""

    __tablename__ = "contests"

    id: Uuid = Field(primary_key=True, max_length=36)
    chain_id: int = Field(nullable=False)
    contract_address: WalletAddress = Field(max_length=42, nullable=False)
    internal_key: Optional[str] = Field(default=None, nullable=True)
    status: str = Field(
        default=ContestStatus.REGISTERED.value, max_length=16, nullable=False
    )
    time_window_start: datetime = Field(
        sa_column=Column(SADateTime(timezone=True), nullable=False)
    )
    time_window_end: datetime = Field(
        sa_column=Column(SADateTime(timezone=True), nullable=False)
    )
    origin_tag: str = Field(
        default=ContestOrigin.FACTORY.value, max_length=16, nullable=False
    )
    sealed_at: Optional[datetime] = Field(
        default=None, sa_column=Column(SADateTime(timezone=True), nullable=True)
    )
    # Free-form bag; read through schemas.CreatorMetadata
    contest_metadata: dict = Field(
        default_factory=dict, sa_column=Column("metadata", JSON, nullable=False)
    )

    __table_args__ = (
        CheckConstraint(
            "time_window_start <= time_window_end", name="contests_time_window_order"
        ),
        UniqueConstraint(
            "chain_id", "contract_address", name="contests_chain_contract_unique"
        ),
        UniqueConstraint("internal_key", name="contests_internal_key_unique"),
        Index("contests_status_window_idx", "status", "time_window_start", "time_window_end"),
        Index("contests_window_end_id_idx", "time_window_end", "id"),
    )


class Participant(TimestampMixin, SQLModel, table=True):
    """Registration (deposit) event for a wallet in a contest."""

    __tablename__ = "participants"

    id: Uuid = Field(primary_key=True, max_length=36)
    contest_id: Uuid = Field(foreign_key="contests.id", max_length=36, nullable=False)
    wallet_address: WalletAddress = Field(max_length=42, nullable=False, index=True)
    vault_reference: Optional[str] = Field(default=None, nullable=True)
    amount_wei: str = Field(
        default="0", sa_column=Column(TokenAmount(), nullable=False)
    )
    occurred_at: datetime = Field(
        sa_column=Column(SADateTime(timezone=True), nullable=False)
    )

    __table_args__ = (
        Index("participants_contest_time_idx", "contest_id", "occurred_at"),
    )


class RewardClaim(TimestampMixin, SQLModel, table=True):
    """Reward payout claimed by a wallet."""

    __tablename__ = "reward_claims"

    id: Uuid = Field(primary_key=True, max_length=36)
    contest_id: Uuid = Field(foreign_key="contests.id", max_length=36, nullable=False)
    wallet_address: WalletAddress = Field(max_length=42, nullable=False, index=True)
    amount_wei: str = Field(
        default="0", sa_column=Column(TokenAmount(), nullable=False)
    )
    claimed_at: datetime = Field(
        sa_column=Column(SADateTime(timezone=True), nullable=False)
    )

    __table_args__ = (
        Index("reward_claims_claimed_idx", "contest_id", "claimed_at"),
    )


class LeaderboardVersion(TimestampMixin, SQLModel, table=True):
    """Immutable ranked snapshot of a contest leaderboard."""

    __tablename__ = "leaderboard_versions"

    id: Uuid = Field(primary_key=True, max_length=36)
    contest_id: Uuid = Field(foreign_key="contests.id", max_length=36, nullable=False)
    version: int = Field(sa_column=Column(BigInteger, nullable=False))
    # Raw entries as written by the scorer: [{rank, walletAddress, score?}, ...]
    entries: list = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    written_at: datetime = Field(
        sa_column=Column(SADateTime(timezone=True), nullable=False)
    )

    __table_args__ = (
        UniqueConstraint("contest_id", "version", name="leaderboard_versions_unique"),
    )


class UserIdentity(TimestampMixin, SQLModel, table=True):
    """Platform user, keyed by the id of the external auth provider."""

    __tablename__ = "user_identities"

    id: Uuid = Field(primary_key=True, max_length=36)
    external_id: str = Field(nullable=False, unique=True)
    status: str = Field(
        default=IdentityStatus.ACTIVE.value, max_length=16, nullable=False
    )


class WalletBinding(TimestampMixin, SQLModel, table=True):
    """Association between an identity and a wallet; active while unbound_at is NULL."""

    __tablename__ = "wallet_bindings"

    id: Uuid = Field(primary_key=True, max_length=36)
    user_id: Uuid = Field(
        foreign_key="user_identities.id", max_length=36, nullable=False, index=True
    )
    wallet_address: WalletAddress = Field(max_length=42, nullable=False, index=True)
    wallet_address_checksum: str = Field(max_length=42, nullable=False)
    source: str = Field(
        default=WalletBindingSource.MANUAL.value, max_length=16, nullable=False
    )
    bound_at: datetime = Field(
        sa_column=Column(SADateTime(timezone=True), nullable=False)
    )
    unbound_at: Optional[datetime] = Field(
        default=None, sa_column=Column(SADateTime(timezone=True), nullable=True)
    )


class ContestCreationRequest(TimestampMixin, SQLModel, table=True):
    """Organizer request to deploy a new contest."""

    __tablename__ = "contest_creation_requests"

    id: Uuid = Field(primary_key=True, max_length=36)
    user_id: str = Field(nullable=False, index=True)
    network_id: int = Field(nullable=False, index=True)
    payload: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))
    status: str = Field(default="accepted", max_length=16, nullable=False)
    transaction_hash: Optional[str] = Field(
        default=None, sa_column=Column(SAString(66), nullable=True)
    )
    confirmed_at: Optional[datetime] = Field(
        default=None, sa_column=Column(SADateTime(timezone=True), nullable=True)
    )

    __table_args__ = (
        CheckConstraint(
            "network_id > 0", name="contest_creation_requests_network_positive"
        ),
        Index("contest_creation_requests_created_at_idx", "created_at", "id"),
    )


class ContestDeploymentArtifact(TimestampMixin, SQLModel, table=True):
    """Addresses produced by deploying a creation request; optionally linked to a contest."""

    __tablename__ = "contest_deployment_artifacts"

    id: Uuid = Field(primary_key=True, max_length=36)
    request_id: Uuid = Field(
        foreign_key="contest_creation_requests.id",
        max_length=36,
        nullable=False,
        unique=True,
    )
    contest_id: Optional[Uuid] = Field(
        default=None, foreign_key="contests.id", max_length=36, nullable=True
    )
    network_id: int = Field(nullable=False)
    contest_address: Optional[str] = Field(default=None, max_length=42)
    vault_factory_address: Optional[str] = Field(default=None, max_length=42)
    registrar_address: Optional[str] = Field(default=None, max_length=42)
    treasury_address: Optional[str] = Field(default=None, max_length=42)
    settlement_address: Optional[str] = Field(default=None, max_length=42)
    rewards_address: Optional[str] = Field(default=None, max_length=42)
    transaction_hash: Optional[str] = Field(default=None, max_length=66)
    confirmed_at: Optional[datetime] = Field(
        default=None, sa_column=Column(SADateTime(timezone=True), nullable=True)
    )
    artifact_metadata: dict = Field(
        default_factory=dict, sa_column=Column("metadata", JSON, nullable=False)
    )

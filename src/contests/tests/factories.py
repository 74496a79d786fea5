"""
Row factories for seeding the contest tables in tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from contests.models import (
    Contest,
    ContestCreationRequest,
    ContestDeploymentArtifact,
    LeaderboardVersion,
    Participant,
    RewardClaim,
    UserIdentity,
    WalletBinding,
)

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)

WALLET_1 = "0x" + "a1" * 20
WALLET_2 = "0x" + "b2" * 20
WALLET_3 = "0x" + "c3" * 20


def contest_id(index: int) -> str:
    return f"00000000-0000-4000-8000-{index:012d}"


def make_contest(index: int, **overrides) -> Contest:
    """Contest whose window ends ``index`` days after BASE_TIME."""
    values = dict(
        id=contest_id(index),
        chain_id=1,
        contract_address=f"0x{index:040x}",
        internal_key=f"contest-{index}",
        status="active",
        time_window_start=BASE_TIME,
        time_window_end=BASE_TIME + timedelta(days=index),
        origin_tag="factory",
        contest_metadata={},
        created_at=BASE_TIME,
        updated_at=BASE_TIME,
    )
    values.update(overrides)
    return Contest(**values)


def make_participant(
    contest: str, wallet: str, occurred_at: datetime, amount: str = "1000", **overrides
) -> Participant:
    values = dict(
        id=f"p-{contest[-4:]}-{wallet[-4:]}-{occurred_at.timestamp():.0f}",
        contest_id=contest,
        wallet_address=wallet,
        amount_wei=amount,
        occurred_at=occurred_at,
        created_at=occurred_at,
        updated_at=occurred_at,
    )
    values.update(overrides)
    return Participant(**values)


def make_claim(
    contest: str, wallet: str, claimed_at: datetime, amount: str = "1000", **overrides
) -> RewardClaim:
    values = dict(
        id=f"r-{contest[-4:]}-{wallet[-4:]}-{claimed_at.timestamp():.0f}",
        contest_id=contest,
        wallet_address=wallet,
        amount_wei=amount,
        claimed_at=claimed_at,
        created_at=claimed_at,
        updated_at=claimed_at,
    )
    values.update(overrides)
    return RewardClaim(**values)


def make_leaderboard(contest: str, version: int, entries: list) -> LeaderboardVersion:
    written_at = BASE_TIME + timedelta(hours=version)
    return LeaderboardVersion(
        id=f"lb-{contest[-4:]}-{version}",
        contest_id=contest,
        version=version,
        entries=entries,
        written_at=written_at,
        created_at=written_at,
        updated_at=written_at,
    )


def make_identity(identity_id: str, external_id: str, status: str = "active") -> UserIdentity:
    return UserIdentity(
        id=identity_id,
        external_id=external_id,
        status=status,
        created_at=BASE_TIME,
        updated_at=BASE_TIME,
    )


def make_binding(
    identity_id: str,
    wallet: str,
    bound_at: datetime = BASE_TIME,
    unbound_at: Optional[datetime] = None,
) -> WalletBinding:
    return WalletBinding(
        id=f"wb-{identity_id}-{wallet[-4:]}",
        user_id=identity_id,
        wallet_address=wallet,
        wallet_address_checksum=wallet.upper().replace("0X", "0x"),
        source="manual",
        bound_at=bound_at,
        unbound_at=unbound_at,
        created_at=bound_at,
        updated_at=bound_at,
    )


def make_request(
    request_id: str,
    user_id: str,
    created_at: datetime,
    network_id: int = 1,
    payload: Optional[dict] = None,
) -> ContestCreationRequest:
    return ContestCreationRequest(
        id=request_id,
        user_id=user_id,
        network_id=network_id,
        payload=payload if payload is not None else {"name": request_id},
        status="accepted",
        created_at=created_at,
        updated_at=created_at,
    )


def make_artifact(
    request_id: str, contest: Optional[str] = None, network_id: int = 1, **overrides
) -> ContestDeploymentArtifact:
    values = dict(
        id=f"art-{request_id}",
        request_id=request_id,
        contest_id=contest,
        network_id=network_id,
        contest_address="0x" + "DE" * 20,
        transaction_hash="0x" + "AB" * 32,
        artifact_metadata={},
        created_at=BASE_TIME,
        updated_at=BASE_TIME,
    )
    values.update(overrides)
    return ContestDeploymentArtifact(**values)

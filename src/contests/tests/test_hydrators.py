"""
Tests for batched participant/reward loading and reward aggregation.
"""

from datetime import timedelta

import pytest

from contests.hydrators import (
    build_creator_summary,
    load_participants,
    load_reward_claims,
    sum_amounts,
)
from contests.schemas import ContestRecord, RewardClaimRecord
from core.errors import InputInvalidError

from .factories import (
    BASE_TIME,
    WALLET_1,
    WALLET_2,
    contest_id,
    make_claim,
    make_contest,
    make_participant,
)


class TestSumAmounts:
    def test_sum_is_exact_at_wei_scale(self):
        assert sum_amounts(["500000000000000000", "1500000000000000000"]) == (
            "2000000000000000000"
        )

    def test_sum_beyond_uint128(self):
        big = str(2**200)
        assert sum_amounts([big, big, "1"]) == str(2**201 + 1)

    def test_empty_sum_is_zero(self):
        assert sum_amounts([]) == "0"

    @pytest.mark.parametrize("amount", ["-5", "1.5", "1e18", "", "abc", "１２"])
    def test_rejects_non_integer_amounts(self, amount):
        with pytest.raises(InputInvalidError) as exc_info:
            sum_amounts(["1", amount])
        assert exc_info.value.reason == "amount_invalid"


class TestCreatorSummary:
    @staticmethod
    def _contest(metadata):
        return ContestRecord.from_row(make_contest(1, contest_metadata=metadata))

    def test_hydrated_rewards_win_over_metadata(self):
        contest = self._contest({"creatorWallet": "0xabc", "totalRewards": "999"})
        records = [
            RewardClaimRecord(
                contest_id=contest.contest_id,
                wallet_address=wallet,
                amount=amount,
                claimed_at=BASE_TIME,
            )
            for wallet, amount in [
                (WALLET_1, "700000000000000000"),
                (WALLET_2, "300000000000000000"),
            ]
        ]

        summary = build_creator_summary(contest, records)

        assert summary.total_rewards == "1000000000000000000"
        assert summary.creator_wallet == "0xabc"

    def test_metadata_total_used_without_rewards(self):
        contest = self._contest({"totalRewards": 42, "creatorContests": "3"})
        summary = build_creator_summary(contest, None)
        assert summary.total_rewards == "42"
        assert summary.contests_hosted == 3

    def test_defaults_when_metadata_is_empty(self):
        summary = build_creator_summary(self._contest({}), [])
        assert summary.total_rewards == "0"
        assert summary.contests_hosted == 0
        assert summary.creator_wallet is None

    def test_unusable_metadata_values_fall_back(self):
        contest = self._contest(
            {"creatorWallet": 12, "contestsHosted": "many", "totalRewards": True}
        )
        summary = build_creator_summary(contest, None)
        assert summary.creator_wallet is None
        assert summary.contests_hosted == 0
        assert summary.total_rewards == "0"


class TestBatchLoaders:
    @pytest.mark.asyncio
    async def test_participants_grouped_and_ordered(self, seed, session):
        first, second = contest_id(1), contest_id(2)
        await seed(
            make_contest(1),
            make_contest(2),
            make_participant(first, WALLET_1, BASE_TIME + timedelta(hours=2)),
            make_participant(first, WALLET_2, BASE_TIME + timedelta(hours=1)),
            make_participant(second, WALLET_1, BASE_TIME, amount="123456789012345678901234"),
        )

        grouped = await load_participants(session, [first, second])

        assert [p.wallet_address for p in grouped[first]] == [WALLET_2, WALLET_1]
        assert grouped[second][0].amount == "123456789012345678901234"

    @pytest.mark.asyncio
    async def test_wallet_restriction(self, seed, session):
        first = contest_id(1)
        await seed(
            make_contest(1),
            make_claim(first, WALLET_1, BASE_TIME),
            make_claim(first, WALLET_2, BASE_TIME + timedelta(hours=1)),
        )

        grouped = await load_reward_claims(session, [first], wallets=[WALLET_2])

        assert [c.wallet_address for c in grouped[first]] == [WALLET_2]

    @pytest.mark.asyncio
    async def test_contests_without_rows_are_absent(self, seed, session):
        await seed(make_contest(1))
        assert await load_participants(session, [contest_id(1)]) == {}
        assert await load_reward_claims(session, []) == {}

"""
Tests for the organizer's creation-request listing.
"""

from datetime import timedelta

import pytest

from contests.creator_requests import get_creator_request, query_creator_contests
from contests.schemas import CreatorContestFilters, Pagination
from core.constants import CreationRequestStatus
from core.errors import ResourceUnsupportedError

from .factories import (
    BASE_TIME,
    contest_id,
    make_artifact,
    make_contest,
    make_request,
)


@pytest.fixture
def creator_rows():
    """Three requests by ``creator-1``: deployed, artifact pending a contest, bare."""
    return [
        make_contest(1),
        make_request("req-a", "creator-1", BASE_TIME + timedelta(hours=1)),
        make_request("req-b", "creator-1", BASE_TIME + timedelta(hours=2), network_id=10),
        make_request("req-c", "creator-1", BASE_TIME + timedelta(hours=3), payload={}),
        make_request("req-x", "someone-else", BASE_TIME + timedelta(hours=4)),
        make_artifact("req-a", contest=contest_id(1)),
        make_artifact("req-b", network_id=10),
    ]


class TestCreatorContests:
    @pytest.mark.asyncio
    async def test_requests_joined_with_artifacts_and_contests(self, seed, session, creator_rows):
        await seed(*creator_rows)

        result = await query_creator_contests(session, " creator-1 ")

        assert [r.request.request_id for r in result.items] == ["req-c", "req-b", "req-a"]
        bare, pending, deployed = result.items

        assert bare.artifact is None
        assert bare.contest is None
        assert bare.status == CreationRequestStatus.ACCEPTED
        assert bare.request.payload == {}

        assert pending.artifact is not None
        assert pending.artifact.contest_id is None
        assert pending.status == CreationRequestStatus.ACCEPTED

        assert deployed.status == CreationRequestStatus.DEPLOYED
        assert deployed.contest.contest_id == contest_id(1)
        assert deployed.artifact.contest_address == "0x" + "de" * 20
        assert deployed.artifact.transaction_hash == "0x" + "ab" * 32

    @pytest.mark.asyncio
    async def test_pagination_by_creation_time(self, seed, session, creator_rows):
        # Same creation time as req-b; the higher id sorts first
        await seed(
            *creator_rows,
            make_request("req-bb", "creator-1", BASE_TIME + timedelta(hours=2)),
        )

        seen = []
        cursor = None
        while True:
            result = await query_creator_contests(
                session, "creator-1", pagination=Pagination(page_size=1, cursor=cursor)
            )
            seen.extend(r.request.request_id for r in result.items)
            cursor = result.next_cursor
            if cursor is None:
                break

        assert seen == ["req-c", "req-bb", "req-b", "req-a"]

    @pytest.mark.asyncio
    async def test_network_filter(self, seed, session, creator_rows):
        await seed(*creator_rows)
        result = await query_creator_contests(
            session, "creator-1", CreatorContestFilters(network_ids=[10])
        )
        assert [r.request.request_id for r in result.items] == ["req-b"]

    @pytest.mark.asyncio
    async def test_unsupported_network_filter(self, session):
        with pytest.raises(ResourceUnsupportedError) as exc_info:
            await query_creator_contests(
                session, "creator-1", CreatorContestFilters(network_ids=[999999])
            )
        assert exc_info.value.context["chain_ids"] == [999999]

    @pytest.mark.asyncio
    async def test_blank_user_gets_empty_page(self, seed, session, creator_rows):
        await seed(*creator_rows)
        result = await query_creator_contests(session, "   ")
        assert result.items == []
        assert result.next_cursor is None


class TestGetCreatorRequest:
    @pytest.mark.asyncio
    async def test_single_request(self, seed, session, creator_rows):
        await seed(*creator_rows)

        record = await get_creator_request(session, "req-a")

        assert record.status == CreationRequestStatus.DEPLOYED
        assert record.request.user_id == "creator-1"

    @pytest.mark.asyncio
    async def test_unknown_request(self, session):
        assert await get_creator_request(session, "missing") is None
        assert await get_creator_request(session, "") is None

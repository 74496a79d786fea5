"""
Tests for the service entry points: input validation, error logging and configuration.
"""

import logging

import pytest

from contests.config import ContestQueryConfig, parse_chain_ids
from contests.service import ContestQueryService
from core.errors import ConfigurationError, InputInvalidError, ResourceUnsupportedError

from .factories import (
    BASE_TIME,
    WALLET_1,
    contest_id,
    make_binding,
    make_contest,
    make_identity,
    make_participant,
    make_request,
)


class TestContestQueryService:
    @pytest.mark.asyncio
    async def test_accepts_camel_case_dicts(self, seed, service):
        await seed(make_contest(1), make_contest(2, chain_id=10))

        result = await service.query_contests(
            {"filter": {"chainIds": [10]}},
            {"participants": True},
            {"pageSize": 5},
        )

        assert [item.contest.contest_id for item in result.items] == [contest_id(2)]
        assert result.items[0].participants == []

    @pytest.mark.asyncio
    async def test_unknown_request_fields_are_input_errors(self, service):
        with pytest.raises(InputInvalidError) as exc_info:
            await service.query_contests({"filters": {}})
        assert exc_info.value.reason == "contest_selector_invalid"

        with pytest.raises(InputInvalidError):
            await service.query_contests({}, pagination={"pageSize": "lots"})

    @pytest.mark.asyncio
    async def test_query_errors_are_logged_and_reraised(self, service, caplog):
        with caplog.at_level(logging.WARNING, logger="contests.service"):
            with pytest.raises(ResourceUnsupportedError):
                await service.query_contests({"filter": {"chainIds": [999999]}})

        assert any(
            "query_contests rejected" in record.getMessage() for record in caplog.records
        )

    @pytest.mark.asyncio
    async def test_custom_supported_chains(self, engine, seed):
        await seed(make_contest(1, chain_id=777))
        service = ContestQueryService(engine=engine, supported_chain_ids={777})

        result = await service.query_contests({"filter": {"chainIds": [777]}})
        assert len(result.items) == 1

        with pytest.raises(ResourceUnsupportedError):
            await service.query_contests({"filter": {"chainIds": [1]}})

    @pytest.mark.asyncio
    async def test_user_and_creator_entry_points(self, seed, service):
        await seed(
            make_identity("identity-1", "user-1"),
            make_binding("identity-1", WALLET_1),
            make_contest(1),
            make_participant(contest_id(1), WALLET_1, BASE_TIME),
            make_request("req-1", "user-1", BASE_TIME),
        )

        activity = await service.query_user_contests("user-1", {"contestIds": [contest_id(1)]})
        creator = await service.query_creator_contests("user-1", {"networkIds": [1]})
        single = await service.get_creator_request("req-1")
        wallets = await service.lookup_user_wallets(user_id="user-1")

        assert [entry.contest.contest_id for entry in activity.items] == [contest_id(1)]
        assert [record.request.request_id for record in creator.items] == ["req-1"]
        assert single.request.request_id == "req-1"
        assert [binding.wallet_address for binding in wallets] == [WALLET_1]


class TestContestQueryConfig:
    def test_defaults(self):
        config = ContestQueryConfig([])
        assert config.settings.get("database_url").startswith("postgresql+asyncpg://")
        assert 1 in config.supported_chain_ids
        assert config.settings.get("pool_size") is None

    def test_command_line_overrides(self):
        config = ContestQueryConfig(
            [
                "--database-url",
                "sqlite+aiosqlite:///contests.db",
                "--supported-chain-ids",
                "1, 8453",
                "--pool-size",
                "4",
            ]
        )
        assert config.settings.get("database_url") == "sqlite+aiosqlite:///contests.db"
        assert config.supported_chain_ids == frozenset({1, 8453})
        assert config.settings.get("pool_size") == 4

    def test_rejects_non_positive_pool_size(self):
        with pytest.raises(ConfigurationError):
            ContestQueryConfig(["--pool-size", "0"])

    def test_missing_config_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            ContestQueryConfig(["--config", str(tmp_path / "missing.toml")])

    def test_config_file_values(self, tmp_path):
        config_file = tmp_path / "contests.toml"
        config_file.write_text('database_url = "sqlite+aiosqlite:///from-file.db"\n')

        config = ContestQueryConfig(["--config", str(config_file)])

        assert config.settings.get("database_url") == "sqlite+aiosqlite:///from-file.db"

    def test_parse_chain_ids(self):
        assert parse_chain_ids("1,10") == frozenset({1, 10})
        assert parse_chain_ids([5, "11155111"]) == frozenset({5, 11155111})
        with pytest.raises(ConfigurationError):
            parse_chain_ids("1,mainnet")

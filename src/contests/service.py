"""
Contest query service.

Owns the database engine and exposes the read-only query entry points:

- Contest listing with participants, rewards, leaderboards and creator summaries
- Contests a user touched through their wallets
- Creation requests of an organizer
- Wallet binding lookup
"""

from contextlib import asynccontextmanager
from typing import AbstractSet, Any, AsyncIterator, List, Optional

import dotenv
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from core.constants import DEFAULT_DATABASE_URL, DEFAULT_SUPPORTED_CHAIN_IDS
from core.errors import QueryError
from core.log import get_logger, log_duration

from . import creator_requests, queries, user_activity, wallets
from .schemas import (
    ContestIncludes,
    ContestQueryResult,
    ContestSelector,
    CreatorContestFilters,
    CreatorContestQueryResult,
    CreatorContestRecord,
    Pagination,
    UserContestFilters,
    UserContestQueryResult,
    WalletBindingRecord,
    parse_query_model,
)

dotenv.load_dotenv()

logger = get_logger(__name__)


class ContestQueryService:
    """Read-only access to contests and related activity.

    Safe to share between concurrent callers: each entry point opens its own
    session from the pooled engine.
    """

    def __init__(
        self,
        database_url: str = DEFAULT_DATABASE_URL,
        echo: bool = False,
        pool_size: Optional[int] = None,
        supported_chain_ids: Optional[AbstractSet[int]] = None,
        engine: Optional[AsyncEngine] = None,
    ):
        self.db_url = database_url
        self.echo = echo
        self.pool_size = pool_size
        self.supported_chain_ids = frozenset(
            supported_chain_ids or DEFAULT_SUPPORTED_CHAIN_IDS
        )
        self.engine: Optional[AsyncEngine] = engine
        self.async_session: Optional[async_sessionmaker[AsyncSession]] = None
        if engine is not None:
            self.async_session = async_sessionmaker(
                engine, class_=AsyncSession, expire_on_commit=False
            )

    @classmethod
    def from_config(cls, config) -> "ContestQueryService":
        return cls(
            database_url=config.settings.get("database_url"),
            echo=bool(config.settings.get("db_echo")),
            pool_size=config.settings.get("pool_size"),
            supported_chain_ids=config.supported_chain_ids,
        )

    async def startup(self) -> None:
        """Create the engine unless one was injected."""
        if self.async_session is not None:
            return

        engine_kwargs: dict[str, Any] = {"echo": self.echo, "pool_pre_ping": True}
        if self.pool_size is not None:
            engine_kwargs["pool_size"] = self.pool_size
        self.engine = create_async_engine(self.db_url, **engine_kwargs)
        self.async_session = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )
        logger.info("Database connection initialized")

    async def shutdown(self) -> None:
        if self.engine is not None:
            await self.engine.dispose()
            logger.info("Database connection closed")
        self.engine = None
        self.async_session = None

    async def __aenter__(self) -> "ContestQueryService":
        await self.startup()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        if self.async_session is None:
            await self.startup()

        with log_duration(logger, operation):
            try:
                async with self.async_session() as session:
                    yield session
            except QueryError as e:
                logger.warning(f"{operation} rejected: {e}")
                raise
            except SQLAlchemyError as e:
                logger.error(f"{operation} failed in the store: {e}")
                raise

    async def query_contests(
        self,
        selector: ContestSelector | dict,
        includes: Optional[ContestIncludes | dict] = None,
        pagination: Optional[Pagination | dict] = None,
    ) -> ContestQueryResult:
        async with self._session("query_contests") as session:
            selector = parse_query_model(ContestSelector, selector or {}, "contest_selector")
            includes = parse_query_model(ContestIncludes, includes, "contest_includes")
            pagination = parse_query_model(Pagination, pagination, "pagination")
            result = await queries.query_contests(
                session, selector, includes, pagination, self.supported_chain_ids
            )
            logger.debug(f"query_contests returned {len(result.items)} items")
            return result

    async def query_user_contests(
        self,
        user_id: Optional[str],
        filters: Optional[UserContestFilters | dict] = None,
        pagination: Optional[Pagination | dict] = None,
    ) -> UserContestQueryResult:
        async with self._session("query_user_contests") as session:
            filters = parse_query_model(UserContestFilters, filters, "user_contest_filters")
            pagination = parse_query_model(Pagination, pagination, "pagination")
            result = await user_activity.query_user_contests(
                session, user_id, filters, pagination, self.supported_chain_ids
            )
            logger.debug(f"query_user_contests returned {len(result.items)} items")
            return result

    async def query_creator_contests(
        self,
        user_id: Optional[str],
        filters: Optional[CreatorContestFilters | dict] = None,
        pagination: Optional[Pagination | dict] = None,
    ) -> CreatorContestQueryResult:
        async with self._session("query_creator_contests") as session:
            filters = parse_query_model(
                CreatorContestFilters, filters, "creator_contest_filters"
            )
            pagination = parse_query_model(Pagination, pagination, "pagination")
            result = await creator_requests.query_creator_contests(
                session, user_id, filters, pagination, self.supported_chain_ids
            )
            logger.debug(f"query_creator_contests returned {len(result.items)} items")
            return result

    async def get_creator_request(self, request_id: str) -> Optional[CreatorContestRecord]:
        async with self._session("get_creator_request") as session:
            return await creator_requests.get_creator_request(session, request_id)

    async def lookup_user_wallets(
        self,
        user_id: Optional[str] = None,
        wallet_address: Optional[str] = None,
    ) -> List[WalletBindingRecord]:
        async with self._session("lookup_user_wallets") as session:
            return await wallets.lookup_user_wallets(session, user_id, wallet_address)

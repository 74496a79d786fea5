from argparse import Namespace
from typing import FrozenSet, Optional, Sequence

from core.config import Config, ConfigOpts
from core.constants import DEFAULT_DATABASE_URL, DEFAULT_SUPPORTED_CHAIN_IDS
from core.errors import ConfigurationError


def parse_chain_ids(value) -> FrozenSet[int]:
    """Accept ``"1,10,42161"`` from the command line or a list from TOML."""
    if isinstance(value, str):
        parts = [part.strip() for part in value.split(",") if part.strip()]
    else:
        parts = list(value)
    try:
        return frozenset(int(part) for part in parts)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid supported chain ids: {value!r}") from exc


class ContestQueryConfig(Config):
    def __init__(self, argv: Optional[Sequence[str]] = None):
        opts = ConfigOpts(
            app_name="contests",
            settings_files=["contests.toml"],
        )
        super().__init__(opts, argv)
        self.supported_chain_ids = parse_chain_ids(self.settings.get("supported_chain_ids"))

    def add_args(self):
        """Add command line arguments"""
        super().add_args()

        # database configuration
        self._parser.add_argument(
            "--database-url",
            type=str,
            help="Database URL for the contest store",
            default=self.settings.get("database_url", DEFAULT_DATABASE_URL),
        )

        self._parser.add_argument(
            "--db-echo",
            action="store_true",
            help="Log every SQL statement issued",
            default=self.settings.get("db_echo", False),
        )

        self._parser.add_argument(
            "--pool-size",
            type=int,
            help="Connection pool size (driver default when omitted)",
            default=self.settings.get("pool_size"),
        )

        self._parser.add_argument(
            "--supported-chain-ids",
            type=str,
            help="Comma separated chain ids accepted in filters",
            default=self.settings.get(
                "supported_chain_ids",
                ",".join(str(chain_id) for chain_id in sorted(DEFAULT_SUPPORTED_CHAIN_IDS)),
            ),
        )

    def validate(self, options: Namespace) -> None:
        if options.pool_size is not None and options.pool_size <= 0:
            raise ConfigurationError("--pool-size must be a positive integer")
        if not parse_chain_ids(options.supported_chain_ids):
            raise ConfigurationError("--supported-chain-ids must name at least one chain")

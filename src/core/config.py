"""
Configuration options for the contest query engine
"""

from argparse import ArgumentParser, Namespace
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from dynaconf import Dynaconf, Validator

from .errors import ConfigurationError
from .log import get_logger

logger = get_logger(__name__)

BASE_SETTINGS_FILES = ("settings.toml", ".secrets.toml")


@dataclass
class ConfigOpts:
    app_name: str = "contests"
    settings_files: list[str] = field(default_factory=list)


class Config:
    """Settings from TOML files and ``<APP_NAME>_*`` environment variables,
    overridden by command line flags.

    Subclasses register their flags in :meth:`add_args` (using the loaded
    settings as defaults) and may reject combinations in :meth:`validate`.
    """

    def __init__(self, opts: ConfigOpts, argv: Optional[Sequence[str]] = None):
        self.app_name = opts.app_name
        self._parser = ArgumentParser(prog=opts.app_name)
        self._parser.add_argument(
            "--config",
            "-c",
            type=str,
            default=None,
            help="Path to a TOML file replacing the default settings files",
        )

        # --config decides which files are loaded, so it is read first
        early, _ = self._parser.parse_known_args(argv)
        self.settings: Dynaconf = Dynaconf(
            envvar_prefix=opts.app_name.upper(),
            settings_files=self._settings_files(opts, early.config),
            load_dotenv=True,
            validators=[Validator("log_level", default="INFO")],
        )

        self.add_args()
        options = self._parser.parse_args(argv)
        self.validate(options)
        logger.debug(f"Resolved {self.app_name} options: {vars(options)}")
        self.settings.update(vars(options))

    @staticmethod
    def _settings_files(opts: ConfigOpts, override: Optional[str]) -> list[str]:
        if override is None:
            return [*BASE_SETTINGS_FILES, *opts.settings_files]
        if not Path(override).is_file():
            raise ConfigurationError(f"Config file not found: {override}")
        logger.info(f"Using custom config file: {override}")
        return [override]

    def add_args(self):
        self._parser.add_argument(
            "--log-file",
            type=str,
            default=self.settings.get("log_file"),
            help="Also write logs to this file; stdout only when unset",
        )

    def validate(self, options: Namespace) -> None:
        """Hook for subclasses to reject inconsistent option combinations."""
        return None

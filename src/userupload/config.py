"""Resolve database connection parameters from the CLI or an env file."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from dotenv import dotenv_values

from userupload.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_NAME = "catalyst"
DEFAULT_PORT = 5432
DEFAULT_ENV_FILE = ".env"

HELP_HINT = "Run with --help to see how to supply the database credentials."

# CLI option name -> env file key
_CLI_ENV_KEYS = {
    "host": "DB_HOST",
    "user": "DB_USER",
    "password": "DB_PASSWORD",
}


@dataclass(frozen=True)
class ConnectionConfig:
    host: str
    user: str
    password: str = field(repr=False)
    database_name: str = DEFAULT_DATABASE_NAME
    port: int = DEFAULT_PORT

    def __post_init__(self) -> None:
        missing = [
            name
            for name in ("host", "user", "password", "database_name")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigurationError(
                f"Incomplete database configuration, missing: {', '.join(missing)}. {HELP_HINT}"
            )

    def describe(self) -> str:
        """Human-readable target without the password."""
        return f"{self.user}@{self.host}:{self.port}/{self.database_name}"


class ConfigResolver:
    """Builds one ConnectionConfig per run.

    Command-line credentials win. When they are incomplete the env file is
    read and any command-line value still overrides its entry. The first
    resolved config is cached and returned on every later call.
    """

    def __init__(self, env_file: str | Path = DEFAULT_ENV_FILE):
        self._env_file = Path(env_file)
        self._resolved: ConnectionConfig | None = None

    def resolve(self, options: Mapping[str, str | None]) -> ConnectionConfig:
        if self._resolved is None:
            self._resolved = self._build(options)
        return self._resolved

    def _build(self, options: Mapping[str, str | None]) -> ConnectionConfig:
        cli = {key: options.get(key) for key in _CLI_ENV_KEYS if options.get(key)}

        if len(cli) == len(_CLI_ENV_KEYS):
            logger.info("Using database credentials from the command line")
            return ConnectionConfig(
                host=cli["host"], user=cli["user"], password=cli["password"]
            )

        if not self._env_file.is_file():
            raise ConfigurationError(
                "Database credentials not found: pass -u, -p and -h "
                f"or provide {self._env_file}. {HELP_HINT}"
            )

        logger.info("Reading database credentials from %s", self._env_file)
        env = {k: v for k, v in dotenv_values(self._env_file, encoding="utf-8").items() if v}
        for key, env_key in _CLI_ENV_KEYS.items():
            if key in cli:
                env[env_key] = cli[key]

        missing = [
            key for key in ("DB_HOST", "DB_USER", "DB_PASSWORD", "DB_NAME") if not env.get(key)
        ]
        if missing:
            raise ConfigurationError(
                f"{self._env_file} is missing {', '.join(missing)}. {HELP_HINT}"
            )

        port = env.get("DB_PORT", str(DEFAULT_PORT))
        try:
            port_number = int(port)
        except ValueError as e:
            raise ConfigurationError(f"DB_PORT must be an integer, got {port!r}") from e

        return ConnectionConfig(
            host=env["DB_HOST"],
            user=env["DB_USER"],
            password=env["DB_PASSWORD"],
            database_name=env["DB_NAME"],
            port=port_number,
        )

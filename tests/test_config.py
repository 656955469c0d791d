"""Tests for connection config resolution."""

import pytest

from userupload.config import DEFAULT_DATABASE_NAME, ConfigResolver, ConnectionConfig
from userupload.errors import ConfigurationError


def _env_file(tmp_path, text: str):
    path = tmp_path / ".env"
    path.write_text(text, encoding="utf-8")
    return path


class TestConnectionConfig:
    def test_requires_all_fields(self):
        with pytest.raises(ConfigurationError, match="password"):
            ConnectionConfig(host="db", user="root", password="")

    def test_repr_hides_password(self):
        config = ConnectionConfig(host="db", user="root", password="s3cret")
        assert "s3cret" not in repr(config)
        assert "s3cret" not in config.describe()

    def test_is_immutable(self):
        config = ConnectionConfig(host="db", user="root", password="pw")
        with pytest.raises(AttributeError):
            config.host = "other"


class TestConfigResolver:
    def test_cli_options_complete(self, tmp_path):
        resolver = ConfigResolver(tmp_path / "missing.env")
        config = resolver.resolve({"user": "root", "password": "pw", "host": "db.local"})
        assert config == ConnectionConfig(
            host="db.local", user="root", password="pw", database_name=DEFAULT_DATABASE_NAME
        )

    def test_cli_options_win_over_env_file(self, tmp_path):
        env = _env_file(
            tmp_path, "DB_HOST=envhost\nDB_USER=envuser\nDB_PASSWORD=envpw\nDB_NAME=envdb\n"
        )
        config = ConfigResolver(env).resolve({"user": "root", "password": "pw", "host": "cli"})
        assert config.host == "cli"
        assert config.database_name == DEFAULT_DATABASE_NAME

    def test_env_file_fallback(self, tmp_path):
        env = _env_file(
            tmp_path,
            "# local settings\nDB_HOST=envhost\nDB_USER=envuser\n"
            "DB_PASSWORD='p@ss word'\nDB_NAME=users_db\nDB_PORT=5433\n",
        )
        config = ConfigResolver(env).resolve({})
        assert config.host == "envhost"
        assert config.user == "envuser"
        assert config.password == "p@ss word"
        assert config.database_name == "users_db"
        assert config.port == 5433

    def test_partial_cli_overrides_env_entries(self, tmp_path):
        env = _env_file(
            tmp_path, "DB_HOST=envhost\nDB_USER=envuser\nDB_PASSWORD=envpw\nDB_NAME=envdb\n"
        )
        config = ConfigResolver(env).resolve({"user": "cliuser", "password": None, "host": None})
        assert config.user == "cliuser"
        assert config.password == "envpw"
        assert config.database_name == "envdb"

    def test_no_source_fails_with_help_hint(self, tmp_path):
        resolver = ConfigResolver(tmp_path / "missing.env")
        with pytest.raises(ConfigurationError, match="--help"):
            resolver.resolve({"user": "root"})

    def test_incomplete_env_file(self, tmp_path):
        env = _env_file(tmp_path, "DB_HOST=envhost\nDB_USER=envuser\nDB_PASSWORD=\n")
        with pytest.raises(ConfigurationError, match="DB_PASSWORD, DB_NAME"):
            ConfigResolver(env).resolve({})

    def test_bad_port(self, tmp_path):
        env = _env_file(
            tmp_path, "DB_HOST=h\nDB_USER=u\nDB_PASSWORD=p\nDB_NAME=n\nDB_PORT=abc\n"
        )
        with pytest.raises(ConfigurationError, match="DB_PORT"):
            ConfigResolver(env).resolve({})

    def test_resolved_once(self, tmp_path):
        resolver = ConfigResolver(tmp_path / "missing.env")
        first = resolver.resolve({"user": "root", "password": "pw", "host": "db"})
        second = resolver.resolve({"user": "other", "password": "x", "host": "elsewhere"})
        assert second is first
        assert resolver.resolve({}) is first

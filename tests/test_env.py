# =============================================================================
# tests/test_env.py - Environment Loader & Settings Tests
# =============================================================================
# Env.load() precedence and parsing, Env.required(), and the computed
# properties on Settings.
#
# Run with: pytest tests/test_env.py -v
# =============================================================================

import pydantic
import pytest
from sqlalchemy.engine import make_url

from app.config import Settings
from app.exceptions import ConfigurationError
from lib.env import Env, parse_env_line


@pytest.fixture
def fresh_env():
    """Let a test call Env.load() again, then restore the loaded flag."""
    was_loaded = Env.is_loaded()
    Env.reset()
    yield
    Env.reset()
    if was_loaded:
        Env._loaded = True


class TestEnvLoad:
    """Tests for Env.load()."""

    def test_loads_values_and_skips_comments(self, tmp_path, monkeypatch, fresh_env):
        env_file = tmp_path / ".env"
        env_file.write_text(
            "# storefront\n"
            "\n"
            "SHOP_TEST_HOST=db.internal\n"
            'SHOP_TEST_QUOTED="hello world"\n'
            "SHOP_TEST_SPACED =  padded  \n",
            encoding="utf-8",
        )
        for key in ("SHOP_TEST_HOST", "SHOP_TEST_QUOTED", "SHOP_TEST_SPACED"):
            monkeypatch.delenv(key, raising=False)

        Env.load(env_file)

        assert Env.get("SHOP_TEST_HOST") == "db.internal"
        assert Env.get("SHOP_TEST_QUOTED") == "hello world"
        assert Env.get("SHOP_TEST_SPACED") == "padded"
        for key in ("SHOP_TEST_HOST", "SHOP_TEST_QUOTED", "SHOP_TEST_SPACED"):
            monkeypatch.delenv(key)

    def test_values_are_kept_as_written(self, tmp_path, monkeypatch, fresh_env):
        env_file = tmp_path / ".env"
        env_file.write_text(
            'SHOP_TEST_WINPATH="C:\\new\\table"\n'
            "SHOP_TEST_HASH=abc #123\n"
            'SHOP_TEST_UNMATCHED="half\n'
            "SHOP_TEST_SINGLE='it''s'\n"
            "SHOP_TEST_EQUALS=a=b=c\n",
            encoding="utf-8",
        )
        keys = ("SHOP_TEST_WINPATH", "SHOP_TEST_HASH", "SHOP_TEST_UNMATCHED", "SHOP_TEST_SINGLE", "SHOP_TEST_EQUALS")
        for key in keys:
            monkeypatch.delenv(key, raising=False)

        Env.load(env_file)

        assert Env.get("SHOP_TEST_WINPATH") == "C:\\new\\table"
        assert Env.get("SHOP_TEST_HASH") == "abc #123"
        assert Env.get("SHOP_TEST_UNMATCHED") == '"half'
        assert Env.get("SHOP_TEST_SINGLE") == "it''s"
        assert Env.get("SHOP_TEST_EQUALS") == "a=b=c"
        for key in keys:
            monkeypatch.delenv(key)

    def test_process_environment_wins(self, tmp_path, monkeypatch, fresh_env):
        env_file = tmp_path / ".env"
        env_file.write_text("SHOP_TEST_PORT=3307\n", encoding="utf-8")
        monkeypatch.setenv("SHOP_TEST_PORT", "3306")

        Env.load(env_file)

        assert Env.get("SHOP_TEST_PORT") == "3306"

    def test_missing_file_is_not_an_error(self, tmp_path, fresh_env):
        Env.load(tmp_path / "absent.env")
        assert Env.is_loaded()

    def test_second_load_is_a_noop(self, tmp_path, monkeypatch, fresh_env):
        first = tmp_path / "first.env"
        second = tmp_path / "second.env"
        first.write_text("SHOP_TEST_ONCE=first\n", encoding="utf-8")
        second.write_text("SHOP_TEST_TWICE=second\n", encoding="utf-8")
        monkeypatch.delenv("SHOP_TEST_ONCE", raising=False)
        monkeypatch.delenv("SHOP_TEST_TWICE", raising=False)

        Env.load(first)
        Env.load(second)

        assert Env.get("SHOP_TEST_TWICE") is None
        monkeypatch.delenv("SHOP_TEST_ONCE")


class TestParseEnvLine:
    """Tests for parse_env_line()."""

    @pytest.mark.parametrize("line", ["", "   ", "# comment", "  # indented", "NO_EQUALS_HERE", "=value"])
    def test_skipped_lines(self, line):
        assert parse_env_line(line) is None

    @pytest.mark.parametrize("line, expected", [
        ("KEY=value", ("KEY", "value")),
        ("  KEY = value  ", ("KEY", "value")),
        ('KEY=""', ("KEY", "")),
        ("KEY='single'", ("KEY", "single")),
        ('KEY="mixed\'', ("KEY", '"mixed\'')),
        ('KEY=""double""', ("KEY", '"double"')),
        ("KEY=", ("KEY", "")),
    ])
    def test_pairs(self, line, expected):
        assert parse_env_line(line) == expected


class TestEnvAccess:
    """Tests for Env.get() and Env.required()."""

    def test_get_default(self, monkeypatch):
        monkeypatch.delenv("SHOP_TEST_ABSENT", raising=False)
        assert Env.get("SHOP_TEST_ABSENT", "fallback") == "fallback"

    def test_required_present(self, monkeypatch):
        monkeypatch.setenv("SHOP_TEST_KEY", "abc")
        assert Env.required("SHOP_TEST_KEY") == "abc"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_required_missing_or_blank(self, monkeypatch, value):
        if value is None:
            monkeypatch.delenv("SHOP_TEST_KEY", raising=False)
        else:
            monkeypatch.setenv("SHOP_TEST_KEY", value)

        with pytest.raises(ConfigurationError) as exc:
            Env.required("SHOP_TEST_KEY")
        assert "SHOP_TEST_KEY" in exc.value.message


class TestSettings:
    """Computed properties on Settings."""

    def test_database_url_built_from_parts(self):
        config = Settings(
            DATABASE_URL=None, DB_HOST="db", DB_PORT=3307, DB_NAME="shop", DB_USER="app", DB_PASS="p@ss word+1",
        )
        url = make_url(config.database_url)
        assert url.drivername == "mysql+pymysql"
        assert (url.username, url.password) == ("app", "p@ss word+1")
        assert (url.host, url.port, url.database) == ("db", 3307, "shop")
        assert url.query["charset"] == "utf8mb4"

    def test_database_url_survives_rendering(self):
        config = Settings(DATABASE_URL=None, DB_USER="app", DB_PASS="my pass", DB_NAME="shop")
        rendered = config.database_url.render_as_string(hide_password=False)
        assert make_url(rendered).password == "my pass"

    def test_explicit_database_url_wins(self):
        assert Settings(DATABASE_URL="sqlite:///x.db").database_url == "sqlite:///x.db"

    def test_list_properties(self):
        config = Settings(SUPPORTED_LANGUAGES="en, si ,", CORS_ORIGINS="https://a.test,https://b.test")
        assert config.supported_languages_list == ["en", "si"]
        assert config.cors_origins_list == ["https://a.test", "https://b.test"]

    def test_environment_flags(self):
        assert Settings(ENVIRONMENT="production").is_production
        assert Settings(ENVIRONMENT="development").is_development
        assert not Settings(SMTP_HOST="").mail_enabled

    def test_secret_key_must_be_long_enough(self):
        with pytest.raises(pydantic.ValidationError):
            Settings(SECRET_KEY="change-me")
        with pytest.raises(pydantic.ValidationError):
            Settings(SECRET_KEY="x" * 31)
        assert Settings(SECRET_KEY="x" * 32).SECRET_KEY == "x" * 32

"""Tests for configuration loading, precedence and CSV option resolution."""

import pytest

from rowcsv.core.config import (
    PROFILE_ENV_VAR,
    AppConfig,
    CsvSettings,
    PgProfile,
    load_config,
    parse_dsn,
    resolve_config,
)
from rowcsv.core.exceptions import ConfigError
from rowcsv.core.models import CsvOptions


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in ("PGHOST", "PGPORT", "PGDATABASE", "PGUSER", "PGPASSWORD", PROFILE_ENV_VAR):
        monkeypatch.delenv(var, raising=False)


# ---------------------------------------------------------------------------
# Connection settings
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestParseDsn:
    def test_full_dsn(self):
        result = parse_dsn("postgresql://exporter:pw@dbhost:5433/sales?sslmode=require")
        assert result == {
            "host": "dbhost",
            "port": 5433,
            "dbname": "sales",
            "user": "exporter",
            "password": "pw",  # pragma: allowlist secret
            "sslmode": "require",
        }

    def test_minimal_dsn(self):
        result = parse_dsn("postgres://localhost/sales")
        assert result == {"host": "localhost", "dbname": "sales"}

    def test_query_params(self):
        result = parse_dsn("postgresql://h/db?connect_timeout=5&application_name=nightly")
        assert result["connect_timeout"] == 5
        assert result["application_name"] == "nightly"

    def test_invalid_scheme(self):
        with pytest.raises(ConfigError, match="Invalid DSN"):
            parse_dsn("mysql://localhost/sales")

    def test_key_value_dsn(self):
        result = parse_dsn("host=replica port=6432 dbname=sales sslmode=disable")
        assert result == {"host": "replica", "port": 6432, "dbname": "sales", "sslmode": "disable"}

    def test_unmanaged_params_dropped(self):
        assert parse_dsn("postgresql://h/db?options=-c%20search_path%3Dx") == {
            "host": "h",
            "dbname": "db",
        }


@pytest.mark.unit
class TestPgProfile:
    def test_defaults(self):
        profile = PgProfile()
        assert profile.host == "localhost"
        assert profile.port == 5432
        assert profile.application_name == "rowcsv"

    def test_dsn_fills_missing_fields(self):
        profile = PgProfile(dsn="postgresql://ro@warehouse/sales", dbname="override")
        assert profile.host == "warehouse"
        assert profile.user == "ro"
        assert profile.dbname == "override"

    def test_invalid_sslmode(self):
        with pytest.raises(ValueError, match="sslmode"):
            PgProfile(sslmode="sometimes")

    def test_invalid_port(self):
        with pytest.raises(ValueError, match="port"):
            PgProfile(port=70000)

    def test_unknown_key_rejected(self):
        with pytest.raises(ValueError, match="hostname"):
            PgProfile(hostname="h")

    def test_explicit_settings_skip_defaults_and_dsn(self):
        profile = PgProfile(dsn="postgresql://ro@warehouse/sales", port=6432)
        assert profile.explicit_settings() == {
            "host": "warehouse",
            "user": "ro",
            "dbname": "sales",
            "port": 6432,
        }


@pytest.mark.unit
class TestLoadConfig:
    def test_load_from_file(self, temp_dir):
        config_file = temp_dir / "config.toml"
        config_file.write_text(
            "default_timeout = 60\n"
            'default_profile = "warehouse"\n'
            "\n"
            "[csv]\n"
            'separator = ";"\n'
            'date_format = "YYYY-MM-DD"\n'
            "include_header = true\n"
            "\n"
            "[profiles.warehouse]\n"
            'host = "dw.internal"\n'
            'user = "exporter"\n'
        )
        config = load_config(config_file)
        assert config.default_timeout == 60.0
        assert config.default_profile == "warehouse"
        assert config.csv.separator == ";"
        assert config.csv.include_header is True
        assert config.profiles["warehouse"].host == "dw.internal"

    def test_default_when_no_file(self, temp_dir):
        config = load_config(temp_dir / "nonexistent.toml")
        assert config == AppConfig()
        assert config.csv == CsvSettings()

    def test_malformed_toml(self, temp_dir):
        config_file = temp_dir / "bad.toml"
        config_file.write_text("this is not valid = [toml {")
        with pytest.raises(ConfigError, match="Malformed TOML"):
            load_config(config_file)

    def test_unknown_csv_key_rejected(self, temp_dir):
        config_file = temp_dir / "config.toml"
        config_file.write_text('[csv]\ndelimiter = ";"\n')
        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config(config_file)

    def test_invalid_batch_size_rejected(self, temp_dir):
        config_file = temp_dir / "config.toml"
        config_file.write_text("[csv]\nbatch_size = 0\n")
        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config(config_file)

    def test_unknown_profile_key_rejected(self, temp_dir):
        config_file = temp_dir / "config.toml"
        config_file.write_text('[profiles.dw]\nhostname = "dw.internal"\n')
        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config(config_file)

    def test_invalid_profile_dsn_rejected(self, temp_dir):
        config_file = temp_dir / "config.toml"
        config_file.write_text('[profiles.dw]\ndsn = "mysql://dw/sales"\n')
        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config(config_file)

    def test_unknown_top_level_keys_ignored(self, temp_dir):
        config_file = temp_dir / "config.toml"
        config_file.write_text('unknown_key = "ignored"\n')
        assert load_config(config_file).default_timeout == 30.0


@pytest.mark.unit
class TestResolveConfig:
    def test_defaults_only(self):
        resolved = resolve_config(AppConfig())
        assert resolved.host == "localhost"
        assert resolved.application_name == "rowcsv"
        assert resolved.active_profile is None
        assert resolved.sources["host"] == "default"

    def test_env_overrides_profile(self, monkeypatch):
        monkeypatch.setenv("PGHOST", "envhost")
        config = AppConfig(profiles={"local": PgProfile(host="profilehost", user="u")})
        resolved = resolve_config(config, profile_name="local")
        assert resolved.host == "envhost"
        assert resolved.sources["host"] == "env: PGHOST"
        assert resolved.sources["user"] == "profile: local"

    def test_invalid_pgport(self, monkeypatch):
        monkeypatch.setenv("PGPORT", "five")
        with pytest.raises(ConfigError, match="Invalid PGPORT"):
            resolve_config(AppConfig())

    def test_full_precedence_chain(self, monkeypatch):
        monkeypatch.setenv("PGDATABASE", "envdb")
        monkeypatch.setenv("PGUSER", "envuser")
        config = AppConfig(
            default_timeout=60.0,
            profiles={"staging": PgProfile(host="staging", port=5433, dbname="stagedb")},
        )
        resolved = resolve_config(
            config,
            profile_name="staging",
            dsn="postgresql://dsnuser@dsnhost/dsndb",
            host="clihost",
            timeout=5.0,
        )
        assert resolved.host == "clihost"
        assert resolved.dbname == "dsndb"
        assert resolved.user == "dsnuser"
        assert resolved.port == 5433
        assert resolved.default_timeout == 5.0
        assert resolved.sources["port"] == "profile: staging"
        assert resolved.sources["default_timeout"] == "cli: --timeout"

    def test_profile_from_env(self, monkeypatch):
        monkeypatch.setenv(PROFILE_ENV_VAR, "prod")
        config = AppConfig(
            default_profile="dev",
            profiles={"prod": PgProfile(host="prod"), "dev": PgProfile(host="dev")},
        )
        assert resolve_config(config).active_profile == "prod"
        assert resolve_config(config, profile_name="dev").host == "dev"

    def test_default_profile(self):
        config = AppConfig(default_profile="dev", profiles={"dev": PgProfile(host="devhost")})
        resolved = resolve_config(config)
        assert resolved.host == "devhost"
        assert resolved.active_profile == "dev"

    def test_unknown_profile(self):
        config = AppConfig(profiles={"a": PgProfile(), "b": PgProfile()})
        with pytest.raises(ConfigError, match="Available profiles: a, b"):
            resolve_config(config, profile_name="missing")


# ---------------------------------------------------------------------------
# CSV options
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestResolveCsvSettings:
    def test_defaults(self):
        resolved = resolve_config(AppConfig())
        assert resolved.csv == CsvOptions()
        assert resolved.include_header is False
        assert resolved.sources["separator"] == "default"

    def test_config_table_applies(self):
        config = AppConfig(
            csv=CsvSettings(separator="|", number_format="FM990.00", include_header=True)
        )
        resolved = resolve_config(config)
        assert resolved.csv.separator == "|"
        assert resolved.csv.number_format == "FM990.00"
        assert resolved.include_header is True
        assert resolved.sources["separator"] == "config"
        assert resolved.sources["date_format"] == "default"

    def test_cli_overrides_config(self):
        config = AppConfig(csv=CsvSettings(separator="|", quote_all_strings=True))
        resolved = resolve_config(
            config, separator="\t", quote_all_strings=False, include_header=True
        )
        assert resolved.csv.separator == "\t"
        assert resolved.csv.quote_all_strings is False
        assert resolved.include_header is True
        assert resolved.sources["separator"] == "cli: --separator"
        assert resolved.sources["quote_all_strings"] == "cli: --quote-all"
        assert resolved.sources["include_header"] == "cli: --header"

    def test_none_falls_through(self):
        config = AppConfig(csv=CsvSettings(batch_size=500))
        resolved = resolve_config(config, batch_size=None, separator=None)
        assert resolved.csv.batch_size == 500
        assert resolved.csv.separator == ","
        assert resolved.sources["batch_size"] == "config"

    def test_invalid_cli_value(self):
        with pytest.raises(ConfigError, match="Invalid CSV options"):
            resolve_config(AppConfig(), separator="::")

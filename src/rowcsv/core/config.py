"""Settings for rowcsv: connection profiles and CSV defaults.

Both kinds of settings come from the same layers, lowest first:

* built-in defaults
* the config file (``default_timeout`` and the ``[csv]`` table)
* the named profile (``--profile``, then ROWCSV_PROFILE, then ``default_profile``)
* PG* environment variables
* ``--dsn``
* command line flags

Every resolved value remembers the layer it came from, which is what
``rowcsv config show`` prints.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Literal

import psycopg
from psycopg.conninfo import conninfo_to_dict
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from rowcsv.core.exceptions import ConfigError
from rowcsv.core.models import DEFAULT_BATCH_SIZE, DEFAULT_DATE_FORMAT, CsvOptions

DEFAULT_CONFIG_PATH = Path.home() / ".config" / "rowcsv" / "config.toml"
PROFILE_ENV_VAR = "ROWCSV_PROFILE"
DEFAULT_TIMEOUT = 30.0

SslMode = Literal["disable", "allow", "prefer", "require", "verify-ca", "verify-full"]

_CONNECTION_FIELDS = (
    "host",
    "port",
    "dbname",
    "user",
    "password",
    "sslmode",
    "connect_timeout",
    "application_name",
)
_INT_FIELDS = frozenset({"port", "connect_timeout"})

_ENV_FIELDS = {
    "PGHOST": "host",
    "PGPORT": "port",
    "PGDATABASE": "dbname",
    "PGUSER": "user",
    "PGPASSWORD": "password",  # pragma: allowlist secret
}

# setting name -> command line flag that overrides it
_CLI_FLAGS = {
    "host": "--host",
    "port": "--port",
    "dbname": "--database",
    "user": "--user",
    "password": "--password",  # pragma: allowlist secret
    "default_timeout": "--timeout",
    "separator": "--separator",
    "number_format": "--number-format",
    "date_format": "--date-format",
    "quote_all_strings": "--quote-all",
    "batch_size": "--batch-size",
    "include_header": "--header",
}


def _as_int(field: str, value: Any, origin: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        msg = f"Invalid {origin} value: '{value}'. {field} must be an integer"
        raise ConfigError(msg) from None


def parse_dsn(dsn: str) -> dict[str, Any]:
    """Split a libpq connection string into connection settings.

    Accepts ``postgresql://`` URIs as well as ``key=value`` strings.
    Parameters rowcsv does not manage are dropped.
    """
    try:
        params = conninfo_to_dict(dsn)
    except psycopg.ProgrammingError as e:
        raise ConfigError(f"Invalid DSN: {e}") from e
    fields = {k: v for k, v in params.items() if k in _CONNECTION_FIELDS}
    for key in _INT_FIELDS & fields.keys():
        fields[key] = _as_int(key, fields[key], "DSN")
    return fields


class PgProfile(BaseModel):
    """One ``[profiles.<name>]`` table. A ``dsn`` fills in unset fields."""

    model_config = ConfigDict(extra="forbid")

    dsn: str | None = None
    host: str = "localhost"
    port: int = Field(default=5432, ge=1, le=65535)
    dbname: str = "postgres"
    user: str | None = None
    password: str | None = None
    sslmode: SslMode = "prefer"
    connect_timeout: int = Field(default=10, gt=0)
    application_name: str = "rowcsv"

    @model_validator(mode="before")
    @classmethod
    def expand_dsn(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("dsn"):
            return {**parse_dsn(data["dsn"]), **data}
        return data

    def explicit_settings(self) -> dict[str, Any]:
        return {k: getattr(self, k) for k in self.model_fields_set if k != "dsn"}


class CsvSettings(BaseModel):
    """The ``[csv]`` table: CsvOptions defaults plus ``include_header``."""

    model_config = ConfigDict(extra="forbid")

    separator: str = ","
    number_format: str | None = None
    date_format: str = DEFAULT_DATE_FORMAT
    quote_all_strings: bool = False
    batch_size: int = Field(default=DEFAULT_BATCH_SIZE, gt=0)
    include_header: bool = False


class AppConfig(BaseModel):
    default_timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    default_profile: str | None = None
    csv: CsvSettings = CsvSettings()
    profiles: dict[str, PgProfile] = {}


class ResolvedConfig(BaseModel):
    """Effective settings for one command, with the origin of each value."""

    host: str = "localhost"
    port: int = 5432
    dbname: str = "postgres"
    user: str | None = None
    password: str | None = None
    sslmode: str = "prefer"
    connect_timeout: int = 10
    application_name: str = "rowcsv"
    default_timeout: float = DEFAULT_TIMEOUT
    active_profile: str | None = None
    csv: CsvOptions = CsvOptions()
    include_header: bool = False
    sources: dict[str, str] = {}


def load_config(config_path: Path | None = None) -> AppConfig:
    """Read the TOML config file; a missing file means all defaults.

    Raises ConfigError on malformed TOML or values that fail validation.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    if not path.exists():
        return AppConfig()

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Malformed TOML in {path}: {e}") from e

    try:
        return AppConfig.model_validate(data)
    except (ValidationError, ConfigError) as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e


class _Layers:
    """Accumulates settings; later layers win and record their origin."""

    def __init__(self, defaults: dict[str, Any]) -> None:
        self.values = dict(defaults)
        self.sources = dict.fromkeys(defaults, "default")

    def apply(self, settings: dict[str, Any], source: str) -> None:
        for key, value in settings.items():
            self.values[key] = value
            self.sources[key] = source


def _pick_profile(config: AppConfig, requested: str | None) -> tuple[str, PgProfile] | None:
    name = requested or os.environ.get(PROFILE_ENV_VAR) or config.default_profile
    if not name:
        return None
    if name not in config.profiles:
        available = ", ".join(sorted(config.profiles)) or "none"
        raise ConfigError(f"Unknown profile: '{name}'. Available profiles: {available}")
    return name, config.profiles[name]


def _env_settings() -> dict[str, tuple[str, Any]]:
    found: dict[str, tuple[str, Any]] = {}
    for var, field in _ENV_FIELDS.items():
        value = os.environ.get(var)
        if value is None:
            continue
        if field in _INT_FIELDS:
            value = _as_int(field, value, var)
        found[field] = (var, value)
    return found


def resolve_config(
    config: AppConfig,
    profile_name: str | None = None,
    dsn: str | None = None,
    **cli_overrides: Any,
) -> ResolvedConfig:
    """Merge every settings layer into one ResolvedConfig.

    ``cli_overrides`` uses the setting names of ResolvedConfig and
    CsvSettings (``database`` and ``timeout`` are accepted as aliases);
    None means the flag was not given.  Raises ConfigError for an unknown
    profile, a malformed environment value or invalid CSV options.
    """
    defaults = PgProfile().model_dump(exclude={"dsn"})
    defaults["default_timeout"] = DEFAULT_TIMEOUT
    defaults.update(CsvSettings().model_dump())
    layers = _Layers(defaults)

    explicit = {k: getattr(config, k) for k in config.model_fields_set & {"default_timeout"}}
    explicit.update({k: getattr(config.csv, k) for k in config.csv.model_fields_set})
    layers.apply(explicit, "config")

    picked = _pick_profile(config, profile_name)
    if picked is not None:
        name, profile = picked
        layers.apply(profile.explicit_settings(), f"profile: {name}")

    for field, (var, value) in _env_settings().items():
        layers.apply({field: value}, f"env: {var}")

    if dsn:
        layers.apply(parse_dsn(dsn), "dsn")

    aliases = {"database": "dbname", "timeout": "default_timeout"}
    for key, value in cli_overrides.items():
        if value is None:
            continue
        setting = aliases.get(key, key)
        layers.apply({setting: value}, f"cli: {_CLI_FLAGS.get(setting, '--' + key)}")

    values = layers.values
    try:
        csv = CsvOptions(**{k: values[k] for k in CsvOptions.model_fields})
    except ValidationError as e:
        raise ConfigError(f"Invalid CSV options: {e}") from e

    connection = {k: values[k] for k in _CONNECTION_FIELDS}
    return ResolvedConfig(
        **connection,
        default_timeout=values["default_timeout"],
        active_profile=picked[0] if picked else None,
        csv=csv,
        include_header=values["include_header"],
        sources=layers.sources,
    )

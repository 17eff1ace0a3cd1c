"""Connection configuration for Snowflake.

Settings come from a TOML profile file (by default
`~/.snowflake/connections.toml`, one table per profile) and from `SNOWFLAKE_*`
environment variables, which win over the file. Host payloads use camelCase
keys and are converted with `ConnectionConfig.from_dict`.
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any, Mapping

from pydantic import Field, SecretStr, ValidationError, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from snowops.core.errors import ConfigurationError
from snowops.core.logsink import redact

CONFIG_FILE_ENV = "SNOWOPS_CONFIG_FILE"
MAX_WORKERS_ENV = "SNOWOPS_MAX_WORKERS"
DEFAULT_MAX_WORKERS = 4
DEFAULT_PROFILE = "default"

AUTH_TYPES = frozenset({"snowflake", "keypair", "externalbrowser", "oauth"})

SECRET_FIELDS = ("password", "token", "private_key_passphrase")

_HOST_KEYS = {
    "authType": "auth_type",
    "privateKeyPath": "private_key_path",
    "privateKeyPassphrase": "private_key_passphrase",
    "hiddenKeys": "hidden_keys",
}


def _config_error(exc: ValidationError) -> ConfigurationError:
    """Turn the first pydantic validation error into a ConfigurationError."""
    first = exc.errors()[0]
    field = str(first["loc"][0]) if first.get("loc") else None
    cause = (first.get("ctx") or {}).get("error")
    message = str(cause) if cause else f"Invalid value for {field}: {first['msg']}"
    return ConfigurationError(message, field=field)


class ConnectionConfig(BaseSettings):
    """
    Everything needed to open a Snowflake session.

    Values passed to the constructor win over `SNOWFLAKE_*` environment
    variables. Credentials are held as `SecretStr`.
    """

    model_config = SettingsConfigDict(
        env_prefix="SNOWFLAKE_",
        case_sensitive=False,
        extra="ignore",
    )

    account: str = Field(default="", validate_default=True)
    auth_type: str = "snowflake"
    user: str = Field(default="", validate_default=True)
    password: SecretStr | None = None
    token: SecretStr | None = None
    private_key_path: str | None = None
    private_key_passphrase: SecretStr | None = None
    warehouse: str | None = None
    role: str | None = None
    database: str | None = None
    hidden_keys: tuple[str, ...] = SECRET_FIELDS

    @field_validator("account")
    @classmethod
    def sanitize_account(cls, v: str) -> str:
        account = _sanitize_account(v or "")
        if not account:
            raise ValueError("Snowflake account is required.")
        return account

    @field_validator("auth_type")
    @classmethod
    def check_auth_type(cls, v: str) -> str:
        auth_type = (v or "snowflake").strip().lower()
        if auth_type not in AUTH_TYPES:
            raise ValueError(f"Unsupported auth type '{auth_type}'.")
        return auth_type

    @field_validator("user")
    @classmethod
    def require_user(cls, v: str, info: ValidationInfo) -> str:
        if not v and info.data.get("auth_type") != "oauth":
            raise ValueError("Snowflake user is required.")
        return v

    @field_validator("hidden_keys", mode="before")
    @classmethod
    def normalize_hidden_keys(cls, v: Any) -> tuple[str, ...]:
        # Host keys arrive in camelCase; secrets are always hidden.
        if isinstance(v, str):
            v = [v]
        keys = [_HOST_KEYS.get(str(k), str(k)) for k in (v or ())]
        return tuple(dict.fromkeys([*keys, *SECRET_FIELDS]))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ConnectionConfig:
        """Build a config from a host payload or a TOML profile table."""
        values = {
            _HOST_KEYS.get(key, key): value
            for key, value in data.items()
            if value is not None and _HOST_KEYS.get(key, key) in cls.model_fields
        }
        try:
            return cls(**values)
        except ValidationError as exc:
            raise _config_error(exc) from exc

    def redacted(self) -> dict[str, Any]:
        """Return the config as a dict with hidden keys masked, for logging."""
        return redact(self.model_dump(mode="json"), self.hidden_keys)


class ProfileConnectionConfig(ConnectionConfig):
    """A ConnectionConfig built from a profile table; environment variables win."""

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return env_settings, init_settings


class RuntimeSettings(BaseSettings):
    """Process-wide knobs read from `SNOWOPS_*` environment variables."""

    model_config = SettingsConfigDict(env_prefix="SNOWOPS_", case_sensitive=False, extra="ignore")

    config_file: Path | None = None
    max_workers: int = DEFAULT_MAX_WORKERS

    @field_validator("max_workers")
    @classmethod
    def at_least_one(cls, v: int) -> int:
        return max(v, 1)


def load_runtime_settings() -> RuntimeSettings:
    try:
        return RuntimeSettings()
    except ValidationError as exc:
        raise _config_error(exc) from exc


def _sanitize_account(account: str) -> str:
    """
    Normalize a Snowflake account identifier.

    Accepts a full URL (`https://xy12345.eu-west-1.snowflakecomputing.com/`)
    and returns the bare account locator (`xy12345.eu-west-1`).
    """
    account = account.strip()
    account = account.split("://", 1)[-1]
    account = account.split("/", 1)[0]
    suffix = ".snowflakecomputing.com"
    if account.lower().endswith(suffix):
        account = account[: -len(suffix)]
    return account


def default_config_path() -> Path:
    """Return the profile file path, honoring `SNOWOPS_CONFIG_FILE`."""
    override = load_runtime_settings().config_file
    if override:
        return override.expanduser()
    return Path.home() / ".snowflake" / "connections.toml"


def load_connection_config(
    profile: str | None = None,
    path: Path | None = None,
) -> ConnectionConfig:
    """
    Load a connection profile; `SNOWFLAKE_*` environment variables override it.

    A missing file is not an error as long as the environment supplies the
    required settings.
    """
    path = path or default_config_path()
    name = profile or DEFAULT_PROFILE
    values: dict[str, Any] = {}

    if path.exists():
        try:
            with path.open("rb") as fh:
                document = tomllib.load(fh)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            raise ConfigurationError(f"Could not read {path}: {exc}", field="profile") from exc
        section = document.get(name)
        if section is None and profile:
            raise ConfigurationError(f"Profile '{profile}' not found in {path}.", field="profile")
        values.update(section or {})
    elif profile:
        raise ConfigurationError(f"Config file {path} does not exist.", field="profile")

    return ProfileConnectionConfig.from_dict(values)


def max_workers_from_env() -> int:
    """Return the default worker pool size, honoring `SNOWOPS_MAX_WORKERS`."""
    return load_runtime_settings().max_workers

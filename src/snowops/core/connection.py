"""Snowflake session management.

This module centralizes creation of a Snowflake connection and exposes it to
the core as a `WarehouseSession`. The core never opens or closes sessions
itself; the caller drives `connect` / `disconnect` once per run.
"""

from __future__ import annotations

import logging
import secrets
import socket
from typing import Any

import httpx
import snowflake.connector
from cryptography.hazmat.primitives import serialization
from pydantic import SecretStr
from snowflake.connector import DictCursor
from snowflake.connector.errors import Error as SnowflakeDriverError

from snowops.core.config import ConnectionConfig
from snowops.core.errors import ConfigurationError, SnowflakeConnectionError
from snowops.core.protocols import SsoUrlProvider

logger = logging.getLogger(__name__)

APPLICATION_NAME = "snowops"
LOGIN_TIMEOUT_SECONDS = 60


def load_private_key(path: str, passphrase: str | None = None) -> bytes:
    """Load a PEM private key (encrypted or not) and return it as DER PKCS8 bytes."""
    try:
        with open(path, "rb") as fh:
            key_data = fh.read()
    except OSError as exc:
        raise ConfigurationError(
            f"Private key file not found: {path}", field="private_key_path"
        ) from exc

    try:
        key = serialization.load_pem_private_key(
            key_data,
            password=passphrase.encode() if passphrase else None,
        )
    except (ValueError, TypeError) as exc:
        raise ConfigurationError(
            f"Could not load private key {path}: {exc}", field="private_key_path"
        ) from exc

    return key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def _secret(value: SecretStr | None) -> str | None:
    return value.get_secret_value() if value is not None else None


def build_connect_params(config: ConnectionConfig) -> dict[str, Any]:
    """Translate a ConnectionConfig into `snowflake.connector.connect` kwargs."""
    params: dict[str, Any] = {
        "account": config.account,
        "user": config.user,
        "application": APPLICATION_NAME,
        "login_timeout": LOGIN_TIMEOUT_SECONDS,
    }

    if config.auth_type == "keypair":
        if not config.private_key_path:
            raise ConfigurationError(
                "Key pair authentication requires a private key path.",
                field="private_key_path",
            )
        params["private_key"] = load_private_key(
            config.private_key_path, _secret(config.private_key_passphrase)
        )
    elif config.auth_type == "externalbrowser":
        params["authenticator"] = "externalbrowser"
    elif config.auth_type == "oauth":
        if not config.token:
            raise ConfigurationError("OAuth authentication requires a token.", field="token")
        params["authenticator"] = "oauth"
        params["token"] = _secret(config.token)
    else:
        params["password"] = _secret(config.password)

    for optional in ("warehouse", "role", "database"):
        value = getattr(config, optional)
        if value:
            params[optional] = value
    return params


class SnowflakeSession:
    """A `WarehouseSession` over a live Snowflake connection."""

    def __init__(self, connection: Any) -> None:
        self.connection = connection

    def execute(self, statement: str) -> list[dict[str, Any]]:
        """Run one statement and return all rows as dicts."""
        logger.debug("Executing: %s", statement)
        cursor = self.connection.cursor(DictCursor)
        try:
            cursor.execute(statement)
            return list(cursor.fetchall())
        finally:
            cursor.close()

    def close(self) -> None:
        self.connection.close()


class ExternalBrowserSso:
    """
    Requests the SSO login URL Snowflake hands out for browser-based auth.

    The host opens the returned `ssoUrl` in a browser and listens on
    `redirectPort` for the token, so no browser is launched from here.
    """

    def __init__(self, redirect_port: int | None = None, timeout: float = 30.0) -> None:
        self.redirect_port = redirect_port
        self.timeout = timeout

    def _free_port(self) -> int:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind(("localhost", 0))
            return sock.getsockname()[1]

    def get_sso_url_data(self, config: ConnectionConfig) -> dict[str, Any]:
        port = self.redirect_port or self._free_port()
        proof_key = secrets.token_urlsafe(32)
        body = {
            "data": {
                "ACCOUNT_NAME": config.account.split(".", 1)[0].upper(),
                "LOGIN_NAME": config.user,
                "AUTHENTICATOR": "EXTERNALBROWSER",
                "BROWSER_MODE_REDIRECT_PORT": str(port),
                "PROOF_KEY": proof_key,
            }
        }
        url = f"https://{config.account}.snowflakecomputing.com/session/authenticator-request"
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(url, json=body)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as exc:
            raise SnowflakeConnectionError(
                f"Could not request SSO URL: {exc}", account=config.account
            ) from exc

        if not payload.get("success"):
            raise SnowflakeConnectionError(
                payload.get("message") or "Snowflake rejected the SSO request.",
                account=config.account,
            )
        data = payload.get("data") or {}
        return {
            "ssoUrl": data.get("ssoUrl"),
            "proofKey": data.get("proofKey") or proof_key,
            "redirectPort": port,
        }


class SnowflakeConnectionManager:
    """Opens and closes the single Snowflake session shared by one run."""

    def __init__(
        self,
        sso_provider: SsoUrlProvider | None = None,
        connect_fn: Any = None,
    ) -> None:
        self.sso_provider = sso_provider or ExternalBrowserSso()
        self._connect_fn = connect_fn or snowflake.connector.connect
        self._session: SnowflakeSession | None = None

    @property
    def session(self) -> SnowflakeSession:
        if self._session is None:
            raise SnowflakeConnectionError("Not connected to Snowflake.")
        return self._session

    def _open(self, config: ConnectionConfig) -> SnowflakeSession:
        params = build_connect_params(config)
        try:
            connection = self._connect_fn(**params)
        except SnowflakeDriverError as exc:
            raise SnowflakeConnectionError(
                f"Snowflake connection failed: {exc}", account=config.account
            ) from exc
        return SnowflakeSession(connection)

    def connect(self, config: ConnectionConfig) -> SnowflakeSession:
        """Open the session, reusing an existing one."""
        if self._session is None:
            logger.info("Connecting to Snowflake account %s", config.account)
            self._session = self._open(config)
        return self._session

    def disconnect(self) -> None:
        """Close the session if one is open."""
        if self._session is None:
            return
        session, self._session = self._session, None
        try:
            session.close()
        except SnowflakeDriverError as exc:
            raise SnowflakeConnectionError(f"Snowflake disconnect failed: {exc}") from exc

    def test_connection(self, config: ConnectionConfig) -> dict[str, Any] | None:
        """
        Check the credentials in `config`.

        For `externalbrowser` auth the check is delegated to the SSO provider
        and its URL payload is returned; otherwise a throwaway session is
        opened, probed and closed.
        """
        if config.auth_type == "externalbrowser":
            return self.sso_provider.get_sso_url_data(config)

        session = self._open(config)
        try:
            session.execute("SELECT CURRENT_VERSION() AS VERSION")
        except SnowflakeDriverError as exc:
            raise SnowflakeConnectionError(
                f"Snowflake connection test failed: {exc}", account=config.account
            ) from exc
        finally:
            session.close()
        return None

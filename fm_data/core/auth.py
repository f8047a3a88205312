"""
fm_data.core.auth - Authentication strategies for session creation
===================================================================

A strategy turns (client configuration, database) into the request that
opens a Data API session. Exactly one strategy is used per session:

- BasicAuth: HTTP Basic with an account of the hosted file
- CustomDatasourceAuth: HTTP Basic for the hosted file plus external
  data source credentials in the JSON body
- OAuthAuth: OAuth request id / identifier headers, no Basic
- FMIDAuth: Claris ID token in the Authorization header
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Dict, Optional, Sequence

from fm_data.core.errors import ValidationError
from fm_data.core.request import RequestSpec, api_path

if TYPE_CHECKING:
    from fm_data.core.config import ClientConfig

logger = logging.getLogger("fm_data.auth")

EMPTY_BODY = "{}"


def session_path(version: str, database: str) -> str:
    return api_path(version, "databases", database, "sessions")


def _require_database(database: str) -> None:
    if not database:
        raise ValidationError("database", "database name is required")


class AuthStrategy(ABC):
    """Produces the session-create request for one authentication method."""

    kind: str = ""

    @abstractmethod
    def build(self, config: "ClientConfig", database: str) -> RequestSpec:
        """
        Build the session-create request.

        Parameters
        ----------
        config : ClientConfig
            Snapshot of the client configuration
        database : str
            Hosted file to open a session on

        Raises
        ------
        ValidationError
            When a required input is missing
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class BasicAuth(AuthStrategy):
    """
    HTTP Basic authentication with a FileMaker account.

    Examples
    --------
    >>> client.create_session("Contacts", BasicAuth("admin", "secret"))
    """

    kind = "basic"

    def __init__(self, username: str, password: str) -> None:
        self.username = username
        self.password = password

    def build(self, config: "ClientConfig", database: str) -> RequestSpec:
        _require_database(database)
        if not self.username:
            raise ValidationError("username", "username is required")
        if not self.password:
            raise ValidationError("password", "password is required")
        return RequestSpec(
            method="POST",
            path=session_path(config.version, database),
            body=EMPTY_BODY,
            auth=(self.username, self.password),
        )

    def __repr__(self) -> str:
        return f"BasicAuth(username={self.username!r})"


class CustomDatasourceAuth(AuthStrategy):
    """
    Authenticate the hosted file and an external data source together.

    The hosted-file (master) account always comes from the client's
    configured ``username``/``password``; the external account passed
    here only goes into the ``fmDataSource`` body.
    """

    kind = "datasource"

    def __init__(self, external_username: str, external_password: str) -> None:
        self.external_username = external_username
        self.external_password = external_password

    def build(self, config: "ClientConfig", database: str) -> RequestSpec:
        _require_database(database)
        if not (config.username and config.password):
            raise ValidationError(
                "username",
                "client basic credentials are required for the hosted file",
            )
        if not self.external_username:
            raise ValidationError("external_username", "external data source username is required")

        if (self.external_username, self.external_password) == (config.username, config.password):
            logger.warning(
                "External data source credentials for %s are identical to the hosted-file account",
                database,
            )

        payload = {
            "fmDataSource": [
                {
                    "database": database,
                    "username": self.external_username,
                    "password": self.external_password,
                }
            ]
        }
        return RequestSpec(
            method="POST",
            path=session_path(config.version, database),
            body=payload,
            auth=(config.username, config.password),
        )

    def __repr__(self) -> str:
        return f"CustomDatasourceAuth(external_username={self.external_username!r})"


class OAuthAuth(AuthStrategy):
    """Authenticate with an OAuth identity provider handshake."""

    kind = "oauth"

    REQUEST_ID_HEADER = "X-FM-Data-OAuth-Request-Id"
    IDENTIFIER_HEADER = "X-FM-Data-OAuth-Identifier"

    def __init__(self, request_id: str, identifier: str) -> None:
        self.request_id = request_id
        self.identifier = identifier

    def build(self, config: "ClientConfig", database: str) -> RequestSpec:
        _require_database(database)
        if not self.request_id:
            raise ValidationError("request_id", "OAuth request id is required")
        if not self.identifier:
            raise ValidationError("identifier", "OAuth identifier is required")
        headers: Dict[str, str] = {
            self.REQUEST_ID_HEADER: self.request_id,
            self.IDENTIFIER_HEADER: self.identifier,
        }
        return RequestSpec(
            method="POST",
            path=session_path(config.version, database),
            body=EMPTY_BODY,
            headers=headers,
        )


class FMIDAuth(AuthStrategy):
    """Authenticate with a Claris ID (FMID) token."""

    kind = "fmid"

    def __init__(self, token: str) -> None:
        self.token = token

    def build(self, config: "ClientConfig", database: str) -> RequestSpec:
        _require_database(database)
        if not self.token:
            raise ValidationError("token", "Claris ID token is required")
        return RequestSpec(
            method="POST",
            path=session_path(config.version, database),
            body=EMPTY_BODY,
            headers={"Authorization": f"FMID {self.token}"},
        )


def resolve_auth_strategy(
    explicit: Sequence[Optional[AuthStrategy]],
    default: Optional[AuthStrategy],
) -> AuthStrategy:
    """
    Pick the one strategy to use for a session-create call.

    Parameters
    ----------
    explicit : sequence
        Strategies passed at call time (``None`` entries are ignored)
    default : AuthStrategy, optional
        The client's configured default

    Raises
    ------
    ValidationError
        More than one explicit strategy, or none at all
    """
    given = [a for a in explicit if a is not None]
    if len(given) > 1:
        raise ValidationError("auth", "only one authentication provider allowed")
    if given:
        return given[0]
    if default is None:
        raise ValidationError(
            "auth",
            "authentication provider is required (configure the client with "
            "basic credentials or an auth strategy)",
        )
    return default

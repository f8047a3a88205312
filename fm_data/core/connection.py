"""
fm_data.core.connection - High-level connection management
===========================================================

Env-driven entry point that owns a ``FileMakerClient`` and hands out the
endpoint services.
"""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING, Optional

from fm_data.core.auth import AuthStrategy
from fm_data.core.client import FileMakerClient
from fm_data.core.config import ClientConfig
from fm_data.core.errors import ValidationError
from fm_data.core.metrics import Metrics
from fm_data.core.retry import RetryPolicy

if TYPE_CHECKING:
    from fm_data.data_api.builders import FindBuilder, RecordBuilder, SessionBuilder
    from fm_data.data_api.containers import ContainerService
    from fm_data.data_api.find import SearchService
    from fm_data.data_api.globals import GlobalFieldsService
    from fm_data.data_api.metadata import MetadataService
    from fm_data.data_api.records import RecordService
    from fm_data.data_api.scripts import ScriptService


class ConnectionContext:
    """
    High-level connection manager for a FileMaker Server.

    Arguments left as None fall back to the ``FM_*`` environment
    variables (see ``ClientConfig.from_env``).

    Parameters
    ----------
    base_url : str, optional
        Server URL. Falls back to FM_BASE_URL.
    user : str, optional
        Hosted-file account. Falls back to FM_USER.
    password : str, optional
        Password. Falls back to FM_PASS.
    version : str, optional
        Data API version. Falls back to FM_VERSION, then "vLatest".
    auth : AuthStrategy, optional
        Default session strategy instead of Basic with user/password
    verify : bool, optional
        SSL verification. Falls back to FM_VERIFY_TLS.
    timeout : float, optional
        Read timeout in seconds. Falls back to FM_TIMEOUT.
    retry : RetryPolicy, optional
        Retry policy. FM_MAX_RETRIES sets the attempt budget otherwise.

    Examples
    --------
    >>> # Using explicit credentials
    >>> conn = ConnectionContext(
    ...     base_url="https://fms.example.com",
    ...     user="admin",
    ...     password="secret",
    ... )

    >>> # Using environment variables
    >>> with ConnectionContext() as conn:
    ...     records = conn.records("Contacts", "Web")
    ...     env = records.list(limit=10)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
        version: Optional[str] = None,
        auth: Optional[AuthStrategy] = None,
        verify: Optional[bool] = None,
        timeout: Optional[float] = None,
        retry: Optional[RetryPolicy] = None,
    ) -> None:
        cfg = ClientConfig.from_env(
            base_url=base_url,
            username=user,
            password=password,
            version=version,
            auth=auth,
            retry=retry,
        )
        http = cfg.http
        if verify is not None:
            http = replace(http, verify=verify)
        if timeout is not None:
            http = replace(http, timeout=timeout)
        self._cfg = cfg.evolve(http=http)

        if not self._cfg.base_url:
            raise ValidationError(
                "base_url",
                "Missing base_url. Set FM_BASE_URL environment variable or pass base_url parameter.",
            )
        if self._cfg.default_auth is None:
            raise ValidationError(
                "auth",
                "Missing credentials. Set FM_USER/FM_PASS environment variables, "
                "or pass user/password or an auth strategy.",
            )

        self.metrics = Metrics()
        self._client: Optional[FileMakerClient] = None

    @property
    def client(self) -> FileMakerClient:
        """Get or create the underlying client."""
        if self._client is None:
            self._client = FileMakerClient(self._cfg, metrics=self.metrics)
        return self._client

    @property
    def config(self) -> ClientConfig:
        if self._client is not None:
            return self._client.config
        return self._cfg

    @property
    def base_url(self) -> str:
        return self.config.base_url

    def close(self) -> None:
        """Close the connection."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "ConnectionContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ---------------- services ----------------
    # Imported here to avoid circular imports

    def records(self, database: str, layout: str) -> "RecordService":
        from fm_data.data_api.records import RecordService
        return RecordService(self, database, layout)

    def search(self, database: str, layout: str) -> "SearchService":
        from fm_data.data_api.find import SearchService
        return SearchService(self, database, layout)

    def scripts(self) -> "ScriptService":
        from fm_data.data_api.scripts import ScriptService
        return ScriptService(self)

    def metadata(self) -> "MetadataService":
        from fm_data.data_api.metadata import MetadataService
        return MetadataService(self)

    def containers(self) -> "ContainerService":
        from fm_data.data_api.containers import ContainerService
        return ContainerService(self)

    def globals(self) -> "GlobalFieldsService":
        from fm_data.data_api.globals import GlobalFieldsService
        return GlobalFieldsService(self)

    def record(self, database: str, layout: str) -> "RecordBuilder":
        from fm_data.data_api.builders import RecordBuilder
        return RecordBuilder(self, database, layout)

    def find(self, database: str, layout: str) -> "FindBuilder":
        from fm_data.data_api.builders import FindBuilder
        return FindBuilder(self, database, layout)

    def session_builder(self, database: str) -> "SessionBuilder":
        from fm_data.data_api.builders import SessionBuilder
        return SessionBuilder(self, database)

"""
fm_data.core.config - Client and transport configuration
=========================================================
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Optional, Union

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from fm_data.core.auth import AuthStrategy, BasicAuth
from fm_data.core.retry import RetryPolicy

DEFAULT_VERSION = "vLatest"
DEFAULT_USER_AGENT = "fm-data-sdk/0.1"


@dataclass(frozen=True)
class HTTPClientConfig:
    """
    Transport settings for the underlying ``requests.Session``.

    Parameters
    ----------
    timeout : float
        Read timeout in seconds
    connect_timeout : float
        TCP connect timeout in seconds
    pool_connections : int
        Number of host pools to cache
    pool_maxsize : int
        Connections kept per host pool
    verify : bool or str
        SSL verification (True, False, or path to CA bundle)
    """
    timeout: float = 30.0
    connect_timeout: float = 10.0
    pool_connections: int = 10
    pool_maxsize: int = 100
    verify: Union[bool, str] = True

    def build_session(self) -> requests.Session:
        """
        Create a pooled session with transport-level retries switched off.

        The client's own retry engine decides about retries, so urllib3
        must not retry underneath it.
        """
        sess = requests.Session()
        retry = Retry(total=0, connect=0, read=0, redirect=0, status=0, raise_on_status=False)
        adapter = HTTPAdapter(
            max_retries=retry,
            pool_connections=self.pool_connections,
            pool_maxsize=self.pool_maxsize,
        )
        sess.mount("https://", adapter)
        sess.mount("http://", adapter)
        return sess


@dataclass(frozen=True)
class ClientConfig:
    """
    Connection configuration for a FileMaker Data API host.

    Parameters
    ----------
    base_url : str
        Server URL, e.g. "https://fms.example.com"
    version : str
        Data API version path segment (default: "vLatest")
    username, password : str
        Hosted-file account. Used as the default Basic credentials, for
        the master side of data source authentication, and for the
        metadata endpoints that need no session.
    auth : AuthStrategy, optional
        Default strategy for session creation. When omitted and a
        username/password pair is configured, ``BasicAuth`` of that pair
        is used.
    retry : RetryPolicy
        Retry policy for every request
    http : HTTPClientConfig
        Transport settings
    user_agent : str
        User-Agent header value
    release_grace : float
        Seconds allowed for the best-effort session release

    Examples
    --------
    >>> cfg = ClientConfig(
    ...     base_url="https://fms.example.com",
    ...     username="admin",
    ...     password="secret",
    ... )
    """
    base_url: str = ""
    version: str = DEFAULT_VERSION
    username: str = ""
    password: str = ""
    auth: Optional[AuthStrategy] = None
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    http: HTTPClientConfig = field(default_factory=HTTPClientConfig)
    user_agent: str = DEFAULT_USER_AGENT
    release_grace: float = 5.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "base_url", (self.base_url or "").rstrip("/"))
        object.__setattr__(self, "version", self.version or DEFAULT_VERSION)

    @property
    def default_auth(self) -> Optional[AuthStrategy]:
        if self.auth is not None:
            return self.auth
        if self.username and self.password:
            return BasicAuth(self.username, self.password)
        return None

    @property
    def basic_credentials(self) -> Optional[tuple]:
        if self.username or self.password:
            return (self.username, self.password)
        return None

    def evolve(self, **changes) -> "ClientConfig":
        return replace(self, **changes)

    @classmethod
    def from_env(cls, **overrides) -> "ClientConfig":
        """
        Build a configuration from ``FM_*`` environment variables.

        Reads FM_BASE_URL, FM_USER, FM_PASS, FM_VERSION, FM_VERIFY_TLS,
        FM_TIMEOUT and FM_MAX_RETRIES. Keyword arguments win over the
        environment.
        """
        env = os.environ
        http = HTTPClientConfig(
            timeout=float(env.get("FM_TIMEOUT", "30")),
            verify=env.get("FM_VERIFY_TLS", "true").lower() != "false",
        )
        values = {
            "base_url": env.get("FM_BASE_URL", ""),
            "username": env.get("FM_USER", ""),
            "password": env.get("FM_PASS", ""),
            "version": env.get("FM_VERSION", DEFAULT_VERSION),
            "retry": RetryPolicy(max_attempts=int(env.get("FM_MAX_RETRIES", "3"))),
            "http": http,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def __repr__(self) -> str:
        return (
            f"ClientConfig(base_url={self.base_url!r}, version={self.version!r}, "
            f"username={self.username!r}, auth={self.auth!r})"
        )

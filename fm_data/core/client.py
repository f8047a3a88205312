"""
fm_data.core.client - Request execution core
=============================================

``FileMakerClient`` performs one logical Data API call end to end:

- reads one configuration snapshot under a readers-writer lock
- builds the HTTP request (default headers, Basic or Bearer auth, body)
- sends it through the retry engine
- decodes the ``{response, messages}`` envelope and raises a classified
  error when the envelope or status reports a failure

Transport failures surface as ``NetworkError``/``RequestTimeoutError``
before the retry engine sees them, so retry decisions only ever look at
taxonomy errors.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional, Tuple, TypeVar

import requests
from pydantic import ValidationError as PydanticValidationError
from requests import Response
from requests.exceptions import InvalidHeader, InvalidSchema, InvalidURL, MissingSchema, URLRequired

from fm_data.core.auth import AuthStrategy, resolve_auth_strategy
from fm_data.core.config import ClientConfig
from fm_data.core.context import OperationContext
from fm_data.core.errors import (
    AuthenticationError,
    FileMakerError,
    NetworkError,
    RequestTimeoutError,
    UnknownError,
    ValidationError,
    http_reason,
    parse_envelope_error,
)
from fm_data.core.metrics import Metrics
from fm_data.core.request import JSON_CONTENT_TYPE, RequestSpec, api_path, bearer_header
from fm_data.core.response import ResponseData
from fm_data.core.retry import RetryPolicy, execute_with_retry
from fm_data.core.rwlock import ReadWriteLock
from fm_data.core.session import SessionManager

T = TypeVar("T")

MIN_TIMEOUT = 0.001

# raised while preparing the request, before any I/O
INVALID_URL_ERRORS = (MissingSchema, InvalidSchema, InvalidURL, URLRequired)


def _request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


class FileMakerClient:
    """
    Thread-safe client for the FileMaker Data API.

    One instance can serve many concurrent operations; configuration is
    read under the shared side of a readers-writer lock and only the
    ``set_*`` methods take the exclusive side.

    Parameters
    ----------
    cfg : ClientConfig
        Connection configuration
    http_session : requests.Session, optional
        Transport to use instead of one built from ``cfg.http``
    metrics : Metrics, optional
        Counter sink (a private one is created by default)

    Examples
    --------
    >>> cfg = ClientConfig(base_url="https://fms.example.com",
    ...                    username="admin", password="secret")
    >>> with FileMakerClient(cfg) as client:
    ...     with client.session("Contacts") as token:
    ...         client.execute(RequestSpec("GET", "fmi/data/vLatest/databases/Contacts/layouts")
    ...                        .with_bearer(token))
    """

    def __init__(
        self,
        cfg: ClientConfig,
        *,
        http_session: Optional[requests.Session] = None,
        metrics: Optional[Metrics] = None,
    ) -> None:
        self._lock = ReadWriteLock()
        self._cfg = cfg
        self.logger = logging.getLogger("fm_data.client")
        self.metrics = metrics or Metrics()

        self._owns_http = http_session is None
        self.http = http_session if http_session is not None else cfg.http.build_session()

        self.sessions = SessionManager(self)

    def close(self) -> None:
        """Close the underlying HTTP session if this client created it."""
        if not self._owns_http:
            return
        try:
            self.http.close()
        except Exception:
            self.logger.debug("error closing HTTP session", exc_info=True)

    def __enter__(self) -> "FileMakerClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ---------------- configuration ----------------

    @property
    def config(self) -> ClientConfig:
        """Immutable snapshot of the current configuration."""
        with self._lock.read_locked():
            return self._cfg

    def _update(self, **changes: Any) -> None:
        with self._lock.write_locked():
            self._cfg = self._cfg.evolve(**changes)

    def set_base_url(self, base_url: str) -> None:
        if not base_url:
            raise ValidationError("base_url", "base URL is required")
        self._update(base_url=base_url)

    def set_version(self, version: str) -> None:
        self._update(version=version)

    def set_basic_auth(self, username: str, password: str) -> None:
        """Store hosted-file credentials; they become the default Basic strategy."""
        if not username:
            raise ValidationError("username", "username is required")
        if not password:
            raise ValidationError("password", "password is required")
        self._update(username=username, password=password)

    def set_auth_strategy(self, strategy: AuthStrategy) -> None:
        if strategy is None:
            raise ValidationError("auth", "auth strategy cannot be None")
        self._update(auth=strategy)

    def set_retry_policy(self, policy: Optional[RetryPolicy]) -> None:
        self._update(retry=policy or RetryPolicy())

    # ---------------- request building ----------------

    def _url(self, cfg: ClientConfig, path: str) -> str:
        return f"{cfg.base_url}/{path.lstrip('/')}"

    def _headers(self, cfg: ClientConfig, spec: RequestSpec) -> Dict[str, str]:
        headers: Dict[str, str] = {
            "Accept": "application/json",
            "User-Agent": f"{cfg.user_agent} (fmdata/{cfg.version})",
        }
        if spec.files is None:
            headers["Content-Type"] = spec.content_type or JSON_CONTENT_TYPE
        headers.update(spec.headers)
        return headers

    def _body(self, spec: RequestSpec) -> Optional[Any]:
        if spec.body is None:
            return None
        if isinstance(spec.body, (str, bytes)):
            return spec.body
        return json.dumps(spec.body, separators=(",", ":"))

    def _timeout(self, cfg: ClientConfig, ctx: OperationContext) -> Tuple[Optional[float], Optional[float]]:
        def clamp(t: Optional[float]) -> Optional[float]:
            t = ctx.bound_timeout(t)
            # urllib3 rejects non-positive timeouts
            return None if t is None else max(t, MIN_TIMEOUT)

        return clamp(cfg.http.connect_timeout), clamp(cfg.http.timeout)

    # ---------------- response handling ----------------

    def _decode(self, r: Response) -> ResponseData:
        """
        Decode the envelope from a response body.

        An empty body decodes to an empty envelope. Undecodable bodies
        raise: a FileMakerError keyed off the status for >= 400 (a proxy
        HTML page on 502 stays retryable), UnknownError otherwise.
        """
        raw = r.content or b""
        if not raw.strip():
            return ResponseData()
        try:
            data = json.loads(raw)
            return ResponseData.model_validate(data)
        except (ValueError, PydanticValidationError) as e:
            if r.status_code >= 400:
                raise FileMakerError(
                    message=http_reason(r.status_code),
                    http_status=r.status_code,
                ) from e
            raise UnknownError(f"could not decode response body: {e}") from e

    def _send(
        self,
        cfg: ClientConfig,
        spec: RequestSpec,
        ctx: OperationContext,
        request_id: str,
    ) -> ResponseData:
        url = self._url(cfg, spec.path)
        t0 = time.perf_counter()
        try:
            r = self.http.request(
                method=spec.method,
                url=url,
                params=dict(spec.params) or None,
                headers=self._headers(cfg, spec),
                data=self._body(spec),
                files=spec.files,
                auth=spec.auth,
                timeout=self._timeout(cfg, ctx),
                verify=cfg.http.verify,
            )
        except requests.Timeout as e:
            raise RequestTimeoutError(f"{spec.method} {spec.path} timed out: {e}") from e
        except INVALID_URL_ERRORS as e:
            raise ValidationError("base_url", f"invalid request URL {url!r}: {e}") from e
        except InvalidHeader as e:
            raise ValidationError("headers", f"invalid request header: {e}") from e
        except requests.RequestException as e:
            raise NetworkError(f"{spec.method} {spec.path} failed: {e}") from e

        dt = (time.perf_counter() - t0) * 1000.0
        self.logger.debug(
            "%s %s -> %s %sms [%s]",
            spec.method.upper(),
            spec.path,
            r.status_code,
            round(dt, 1),
            request_id,
        )

        envelope = self._decode(r)
        err = parse_envelope_error(envelope, r.status_code)
        if err is not None:
            raise err
        return envelope

    # ---------------- public ops ----------------

    def execute(
        self,
        spec: RequestSpec,
        ctx: Optional[OperationContext] = None,
        *,
        retry_policy: Optional[RetryPolicy] = None,
        operation: str = "",
    ) -> ResponseData:
        """
        Perform one logical request with retries.

        Parameters
        ----------
        spec : RequestSpec
            What to send
        ctx : OperationContext, optional
            Cancellation handle / deadline
        retry_policy : RetryPolicy, optional
            Override for the configured policy
        operation : str
            Label used in log records

        Returns
        -------
        ResponseData
            Decoded envelope of the successful attempt

        Raises
        ------
        ValidationError
            Base URL or method missing
        DataAPIError
            The classified error of the last attempt; FileMakerErrors
            carry the envelope on ``.response``
        """
        ctx = ctx or OperationContext.background()
        cfg = self.config

        if not cfg.base_url:
            raise ValidationError("base_url", "base URL is required")
        if not spec.method:
            raise ValidationError("method", "HTTP method is required")

        policy = retry_policy or cfg.retry
        user_on_retry = policy.on_retry

        def on_retry(attempt: int, err: BaseException) -> None:
            self.metrics.increment("retries_total")
            if user_on_retry is not None:
                user_on_retry(attempt, err)

        request_id = _request_id()
        name = operation or f"{spec.method} {spec.path}"
        self.metrics.increment("requests_total")
        try:
            envelope = execute_with_retry(
                lambda: self._send(cfg, spec, ctx, request_id),
                policy.with_overrides(on_retry=on_retry),
                ctx,
                name=name,
            )
        except Exception:
            self.metrics.increment("requests_failed")
            raise
        self.metrics.increment("requests_succeeded")
        return envelope

    # ---------------- sessions ----------------

    def create_session(
        self,
        database: str,
        *auth: Optional[AuthStrategy],
        ctx: Optional[OperationContext] = None,
    ) -> ResponseData:
        """
        Open a Data API session.

        Parameters
        ----------
        database : str
            Hosted file name
        *auth : AuthStrategy
            At most one strategy; the client default is used when omitted

        Returns
        -------
        ResponseData
            Envelope whose ``token`` is the session token
        """
        cfg = self.config
        strategy = resolve_auth_strategy(auth, cfg.default_auth)
        spec = strategy.build(cfg, database)
        envelope = self.execute(spec, ctx, operation="create_session")
        if not envelope.token:
            raise AuthenticationError("session token missing from response", response=envelope)
        self.metrics.increment("sessions_created")
        self.logger.debug("session opened for %s via %s", database, strategy.kind or type(strategy).__name__)
        return envelope

    def disconnect(
        self,
        database: str,
        token: str,
        ctx: Optional[OperationContext] = None,
        *,
        retry_policy: Optional[RetryPolicy] = None,
    ) -> ResponseData:
        """Log out of a session."""
        if not database:
            raise ValidationError("database", "database name is required")
        if not token:
            raise ValidationError("token", "session token is required")
        cfg = self.config
        spec = RequestSpec(
            method="DELETE",
            path=api_path(cfg.version, "databases", database, "sessions", token),
        )
        envelope = self.execute(spec, ctx, retry_policy=retry_policy, operation="disconnect")
        self.metrics.increment("sessions_closed")
        return envelope

    def validate_session(
        self,
        token: str,
        ctx: Optional[OperationContext] = None,
    ) -> ResponseData:
        """Check whether a session token is still accepted by the server."""
        if not token:
            raise ValidationError("token", "session token is required")
        cfg = self.config
        spec = RequestSpec(
            method="GET",
            path=api_path(cfg.version, "validateSession"),
            headers=bearer_header(token),
        )
        return self.execute(spec, ctx, operation="validate_session")

    def with_session(
        self,
        database: str,
        fn: Callable[[OperationContext, str], T],
        *,
        auth: Optional[AuthStrategy] = None,
        ctx: Optional[OperationContext] = None,
    ) -> T:
        """Run ``fn(ctx, token)`` inside a freshly created session."""
        return self.sessions.with_session(database, fn, auth=auth, ctx=ctx)

    @contextmanager
    def session(
        self,
        database: str,
        *,
        auth: Optional[AuthStrategy] = None,
        ctx: Optional[OperationContext] = None,
    ) -> Iterator[str]:
        """Context manager yielding a session token, released on exit."""
        with self.sessions.session(database, auth=auth, ctx=ctx) as token:
            yield token

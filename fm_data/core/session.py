"""
fm_data.core.session - Session lifecycle
=========================================

A Data API session is created, used for some work, then released:

    NO_SESSION -> CREATING -> ACTIVE -> RELEASING -> CLOSED
                         \\-> CLOSED  (creation failed)

Release is attempted at most once per created session, whatever the
outcome of the work. It is skipped when the caller's context is already
done, and otherwise runs on a fresh short-lived context with retries off
so a cancelled or expiring caller never blocks on cleanup. Release
failures are logged, never raised over the work's own result or error.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from enum import Enum
from typing import TYPE_CHECKING, Callable, Iterator, Optional, TypeVar

from fm_data.core.auth import AuthStrategy
from fm_data.core.context import OperationContext
from fm_data.core.retry import RetryPolicy
from fm_data.core.validators import require_database

if TYPE_CHECKING:
    from fm_data.core.client import FileMakerClient

logger = logging.getLogger("fm_data.session")

T = TypeVar("T")


class SessionState(str, Enum):
    NO_SESSION = "no_session"
    CREATING = "creating"
    ACTIVE = "active"
    RELEASING = "releasing"
    CLOSED = "closed"


class ManagedSession:
    """
    One session token plus its exactly-once release.

    Parameters
    ----------
    client : FileMakerClient
        Client used for create and disconnect calls
    database : str
        Hosted file the session belongs to
    ctx : OperationContext
        Context of the enclosing operation
    """

    def __init__(self, client: "FileMakerClient", database: str, ctx: OperationContext) -> None:
        self.client = client
        self.database = database
        self.ctx = ctx
        self.token = ""
        self.state = SessionState.NO_SESSION
        self._lock = threading.Lock()

    def open(self, auth: Optional[AuthStrategy] = None) -> str:
        """Create the session; on failure the session ends CLOSED with nothing to release."""
        with self._lock:
            if self.state is not SessionState.NO_SESSION:
                raise RuntimeError(f"session already {self.state.value}")
            self.state = SessionState.CREATING
        try:
            envelope = self.client.create_session(self.database, auth, ctx=self.ctx)
        except Exception:
            self.state = SessionState.CLOSED
            raise
        self.token = envelope.token
        self.state = SessionState.ACTIVE
        return self.token

    def release(self) -> bool:
        """
        Log out of the session.

        Returns
        -------
        bool
            True when the server confirmed the logout. False when the
            session was not active, release was skipped, or it failed.
        """
        with self._lock:
            if self.state is not SessionState.ACTIVE:
                return False
            self.state = SessionState.RELEASING

        try:
            if self.ctx.done():
                logger.warning(
                    "Skipping session release for %s, operation context already done; "
                    "the session will expire server-side",
                    self.database,
                    extra={"database": self.database, "cancelled": self.ctx.cancelled},
                )
                return False

            grace = self.client.config.release_grace
            self.client.disconnect(
                self.database,
                self.token,
                OperationContext(timeout=grace),
                retry_policy=RetryPolicy.disabled(),
            )
            return True
        except Exception as e:
            logger.warning(
                "Session release failed for %s: %s",
                self.database,
                str(e)[:200],
                extra={"database": self.database, "error_type": type(e).__name__},
            )
            return False
        finally:
            self.state = SessionState.CLOSED

    def __repr__(self) -> str:
        return f"ManagedSession(database={self.database!r}, state={self.state.value!r})"


class SessionManager:
    """Creates sessions on behalf of a client and guarantees their release."""

    def __init__(self, client: "FileMakerClient") -> None:
        self.client = client

    def open(
        self,
        database: str,
        auth: Optional[AuthStrategy] = None,
        ctx: Optional[OperationContext] = None,
    ) -> ManagedSession:
        require_database(database)
        managed = ManagedSession(self.client, database, ctx or OperationContext.background())
        managed.open(auth)
        return managed

    def with_session(
        self,
        database: str,
        fn: Callable[[OperationContext, str], T],
        *,
        auth: Optional[AuthStrategy] = None,
        ctx: Optional[OperationContext] = None,
    ) -> T:
        """
        Run ``fn(ctx, token)`` inside a session.

        The work's result or error is what the caller sees; release
        problems only reach the log.

        Raises
        ------
        ValidationError
            Missing database name or auth configuration
        DataAPIError
            Session creation failure (``fn`` is not called) or whatever
            ``fn`` raised
        """
        ctx = ctx or OperationContext.background()
        managed = self.open(database, auth, ctx)
        try:
            return fn(ctx, managed.token)
        finally:
            managed.release()

    @contextmanager
    def session(
        self,
        database: str,
        *,
        auth: Optional[AuthStrategy] = None,
        ctx: Optional[OperationContext] = None,
    ) -> Iterator[str]:
        managed = self.open(database, auth, ctx)
        try:
            yield managed.token
        finally:
            managed.release()

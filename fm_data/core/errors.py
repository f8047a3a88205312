"""
fm_data.core.errors - Error taxonomy for the FileMaker Data API
================================================================

Every failure raised by the client is a ``DataAPIError`` subclass so that
callers can branch on *what kind* of failure happened without parsing
messages:

- ValidationError: caller input is wrong, never retried
- AuthenticationError: credentials or session rejected
- NetworkError: transport failure (refused, DNS, reset)
- RequestTimeoutError: I/O deadline exceeded
- FileMakerError: the Data API envelope reported a non-zero code
- UnknownError: anything that could not be classified
- OperationCancelledError / DeadlineExceededError: the caller's context ended

``is_retryable`` is the single decision point used by the retry engine.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING, Any, Collection, Dict, Optional

if TYPE_CHECKING:
    from fm_data.core.response import ResponseData


SUCCESS_CODE = "0"

# Codes that mean "try again later" even when paired with a 2xx/4xx status
RETRYABLE_CODES = frozenset({
    "952",  # host unavailable / invalid Data API token
    "953",  # too many files open
})

AUTH_CODES = frozenset({
    "212",  # invalid user account and/or password
    "214",  # account has no access privileges
    "952",  # invalid Data API token
})

RETRYABLE_HTTP_STATUSES = frozenset({429, 500, 502, 503, 504})
AUTH_HTTP_STATUSES = frozenset({401, 403})


def http_reason(status: int) -> str:
    """Return the standard reason phrase for an HTTP status (or '')."""
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return ""


class DataAPIError(RuntimeError):
    """
    Base class for all errors raised by fm_data.

    Attributes
    ----------
    message : str
        Human-readable detail (may be empty)
    response : ResponseData, optional
        Decoded envelope, when the server answered with one
    """

    def __init__(self, message: str = "", *, response: Optional["ResponseData"] = None) -> None:
        self.message = message
        self.response = response
        super().__init__(self._format())

    def _format(self) -> str:
        return self.message


class ValidationError(DataAPIError):
    """Caller-supplied input is invalid. Never retried."""

    def __init__(self, field: str = "", message: str = "") -> None:
        self.field = field
        super().__init__(message)

    def _format(self) -> str:
        if self.field:
            return f"validation error on field '{self.field}': {self.message}"
        return f"validation error: {self.message}"


class AuthenticationError(DataAPIError):
    """Credentials or session token were rejected."""

    def _format(self) -> str:
        if self.message:
            return f"authentication error: {self.message}"
        return "authentication error"


class NetworkError(DataAPIError):
    """Transport-level failure before any HTTP response was received."""

    def _format(self) -> str:
        if self.message:
            return f"network error: {self.message}"
        return "network error"


class RequestTimeoutError(DataAPIError):
    """An I/O deadline elapsed while waiting on the server."""

    def _format(self) -> str:
        if self.message:
            return f"timeout error: {self.message}"
        return "timeout error"


class FileMakerError(DataAPIError):
    """
    Error reported by the Data API itself.

    Attributes
    ----------
    code : str
        FileMaker error code, e.g. "212" or "952" ("" when only the HTTP
        status is known)
    http_status : int
        HTTP status of the response carrying the error
    """

    def __init__(
        self,
        code: str = "",
        message: str = "",
        http_status: int = 0,
        *,
        response: Optional["ResponseData"] = None,
    ) -> None:
        self.code = code
        self.http_status = http_status
        super().__init__(message, response=response)

    def _format(self) -> str:
        if self.code and self.message:
            return f"FileMaker error {self.code}: {self.message} (HTTP {self.http_status})"
        if self.message:
            return f"FileMaker error: {self.message} (HTTP {self.http_status})"
        return f"FileMaker error (HTTP {self.http_status})"


class UnknownError(DataAPIError):
    """A failure that fits no other category."""

    def _format(self) -> str:
        if self.message:
            return f"unknown error: {self.message}"
        return "unknown error"


class OperationCancelledError(DataAPIError):
    """The operation's context was cancelled."""

    def _format(self) -> str:
        return self.message or "operation cancelled"


class DeadlineExceededError(OperationCancelledError):
    """The operation's context deadline passed."""

    def _format(self) -> str:
        return self.message or "operation deadline exceeded"


# ---------------- classification ----------------

def is_validation_error(err: Optional[BaseException]) -> bool:
    return isinstance(err, ValidationError)


def is_authentication_error(err: Optional[BaseException]) -> bool:
    return isinstance(err, AuthenticationError)


def is_network_error(err: Optional[BaseException]) -> bool:
    return isinstance(err, NetworkError)


def is_timeout_error(err: Optional[BaseException]) -> bool:
    return isinstance(err, RequestTimeoutError)


def is_filemaker_error(err: Optional[BaseException]) -> bool:
    return isinstance(err, FileMakerError)


def is_retryable(
    err: Optional[BaseException],
    retryable_statuses: Collection[int] = RETRYABLE_HTTP_STATUSES,
) -> bool:
    """
    Decide whether an error is worth another attempt.

    ``None`` means success and is never retryable. FileMaker codes 952/953
    are retryable regardless of HTTP status; otherwise a FileMakerError is
    retryable iff its status is in ``retryable_statuses``. Network and
    timeout errors are always retryable. Everything else, including
    cancellation, validation and authentication errors, is not.
    """
    if err is None:
        return False

    if isinstance(err, FileMakerError):
        if err.code in RETRYABLE_CODES:
            return True
        return err.http_status in retryable_statuses

    return isinstance(err, (NetworkError, RequestTimeoutError))


def is_auth_error(err: Optional[BaseException]) -> bool:
    """
    True for AuthenticationError and for FileMaker errors whose code or
    HTTP status indicates rejected credentials.

    Code 952 is both an auth code and a retryable code; the retry engine
    only consults ``is_retryable`` so retrying wins there.
    """
    if isinstance(err, AuthenticationError):
        return True
    if isinstance(err, FileMakerError):
        if err.code in AUTH_CODES:
            return True
        return err.http_status in AUTH_HTTP_STATUSES
    return False


def parse_envelope_error(
    envelope: Optional["ResponseData"],
    http_status: int,
) -> Optional[FileMakerError]:
    """
    Turn a decoded envelope plus transport status into an error, or None.

    Parameters
    ----------
    envelope : ResponseData or None
        Decoded ``{response, messages}`` body
    http_status : int
        Status code of the HTTP response

    Returns
    -------
    FileMakerError or None
        None when the first message code is "0", or when there are no
        messages and the status is below 400.
    """
    if envelope is None:
        if http_status >= 400:
            return FileMakerError(message=http_reason(http_status), http_status=http_status)
        return FileMakerError(message="no response data", http_status=http_status)

    if envelope.messages:
        first = envelope.messages[0]
        if first.code == SUCCESS_CODE:
            return None
        return FileMakerError(
            code=first.code,
            message=first.message,
            http_status=http_status,
            response=envelope,
        )

    if http_status >= 400:
        return FileMakerError(
            message=http_reason(http_status),
            http_status=http_status,
            response=envelope,
        )
    return None


def describe(err: BaseException) -> Dict[str, Any]:
    """Flatten an error into log-friendly fields."""
    fields: Dict[str, Any] = {
        "error_type": type(err).__name__,
        "error_message": str(err)[:200],
        "retryable": is_retryable(err),
        "auth": is_auth_error(err),
    }
    if isinstance(err, FileMakerError):
        fields["fm_code"] = err.code
        fields["http_status"] = err.http_status
    return fields

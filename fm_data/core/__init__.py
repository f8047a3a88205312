"""
fm_data.core - Core connectivity, errors and request execution
===============================================================

This module provides the foundational classes for talking to the
FileMaker Data API:

- FileMakerClient: request execution with retries and error classification
- ClientConfig / HTTPClientConfig: connection configuration
- Auth strategies: BasicAuth, CustomDatasourceAuth, OAuthAuth, FMIDAuth
- RetryPolicy / execute_with_retry: bounded exponential backoff
- SessionManager: session create / release lifecycle
- OperationContext: cancellation and deadlines
- ConnectionContext: env-driven high-level entry point

"""

from fm_data.core.errors import (
    DataAPIError,
    ValidationError,
    AuthenticationError,
    NetworkError,
    RequestTimeoutError,
    FileMakerError,
    UnknownError,
    OperationCancelledError,
    DeadlineExceededError,
    is_retryable,
    is_auth_error,
    parse_envelope_error,
)
from fm_data.core.context import OperationContext
from fm_data.core.retry import RetryPolicy, execute_with_retry
from fm_data.core.auth import (
    AuthStrategy,
    BasicAuth,
    CustomDatasourceAuth,
    OAuthAuth,
    FMIDAuth,
)
from fm_data.core.request import RequestSpec
from fm_data.core.response import ResponseData
from fm_data.core.config import ClientConfig, HTTPClientConfig
from fm_data.core.metrics import Metrics
from fm_data.core.session import SessionManager, SessionState
from fm_data.core.client import FileMakerClient
from fm_data.core.connection import ConnectionContext

__all__ = [
    "DataAPIError",
    "ValidationError",
    "AuthenticationError",
    "NetworkError",
    "RequestTimeoutError",
    "FileMakerError",
    "UnknownError",
    "OperationCancelledError",
    "DeadlineExceededError",
    "is_retryable",
    "is_auth_error",
    "parse_envelope_error",
    "OperationContext",
    "RetryPolicy",
    "execute_with_retry",
    "AuthStrategy",
    "BasicAuth",
    "CustomDatasourceAuth",
    "OAuthAuth",
    "FMIDAuth",
    "RequestSpec",
    "ResponseData",
    "ClientConfig",
    "HTTPClientConfig",
    "Metrics",
    "SessionManager",
    "SessionState",
    "FileMakerClient",
    "ConnectionContext",
]

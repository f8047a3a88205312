"""
FileMaker Data API Python SDK (fm_data)
=======================================

A Python client for the FileMaker Data API with classified errors,
bounded retries, cancellation and managed sessions.

Usage
-----
>>> from fm_data import ConnectionContext
>>> from fm_data.data_api import FieldOperator
>>>
>>> with ConnectionContext() as conn:
...     # Record CRUD, one session per call
...     records = conn.records("Contacts", "Web")
...     env = records.create({"Name": "Acme"})
...
...     # Find
...     found = conn.find("Contacts", "Web").where("City", FieldOperator.EQUAL, "Oslo").execute()

Subpackages
-----------
- fm_data.core: Client, configuration, auth, retry, sessions, errors
- fm_data.data_api: Records, find, scripts, metadata, containers, globals

"""

__version__ = "0.1.0"

# Core exports - available at package root
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
)
from fm_data.core.context import OperationContext
from fm_data.core.retry import RetryPolicy
from fm_data.core.auth import BasicAuth, CustomDatasourceAuth, OAuthAuth, FMIDAuth
from fm_data.core.config import ClientConfig, HTTPClientConfig
from fm_data.core.client import FileMakerClient
from fm_data.core.connection import ConnectionContext

__all__ = [
    # Version
    "__version__",
    # Errors
    "DataAPIError",
    "ValidationError",
    "AuthenticationError",
    "NetworkError",
    "RequestTimeoutError",
    "FileMakerError",
    "UnknownError",
    "OperationCancelledError",
    "DeadlineExceededError",
    # Core
    "OperationContext",
    "RetryPolicy",
    "BasicAuth",
    "CustomDatasourceAuth",
    "OAuthAuth",
    "FMIDAuth",
    "ClientConfig",
    "HTTPClientConfig",
    "FileMakerClient",
    "ConnectionContext",
]

"""
fm_data.data_api.base - Base class for endpoint services
=========================================================
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Union

from fm_data.core.client import FileMakerClient
from fm_data.core.context import OperationContext
from fm_data.core.request import RequestSpec, api_path
from fm_data.core.response import ResponseData

if TYPE_CHECKING:
    from fm_data.core.connection import ConnectionContext


class DataAPIService:
    """
    Base class for Data API endpoint services.

    Parameters
    ----------
    connection : ConnectionContext or FileMakerClient
        Where requests are sent

    Subclasses build ``RequestSpec`` objects and hand them to
    ``_execute``; the client owns retries, error classification and
    logging.
    """

    def __init__(self, connection: Union["ConnectionContext", FileMakerClient]) -> None:
        from fm_data.core.connection import ConnectionContext

        if isinstance(connection, ConnectionContext):
            self._conn: Optional[ConnectionContext] = connection
            self.client = connection.client
        elif isinstance(connection, FileMakerClient):
            self._conn = None
            self.client = connection
        else:
            raise TypeError(
                f"Expected ConnectionContext or FileMakerClient, got {type(connection)}"
            )

    @property
    def version(self) -> str:
        return self.client.config.version

    def _path(self, *segments: object) -> str:
        return api_path(self.version, *segments)

    def _execute(
        self,
        spec: RequestSpec,
        ctx: Optional[OperationContext],
        operation: str,
    ) -> ResponseData:
        return self.client.execute(spec, ctx, operation=operation)

"""
fm_data.data_api.metadata - Server and solution metadata
=========================================================

Product info and the database list authenticate with the configured
Basic credentials directly; layouts, layout metadata and scripts need a
session token.
"""

from __future__ import annotations

import logging
from typing import Optional

from fm_data.core.context import OperationContext
from fm_data.core.request import RequestSpec
from fm_data.core.response import ResponseData
from fm_data.core.validators import require_database, require_layout, require_token
from fm_data.data_api.base import DataAPIService

logger = logging.getLogger("fm_data.metadata")


class MetadataService(DataAPIService):
    """
    Discover what a server hosts.

    Examples
    --------
    >>> meta = MetadataService(client)
    >>> [db.name for db in meta.get_databases().response.databases]
    ['Contacts', 'Invoices']
    >>> with client.session("Contacts") as token:
    ...     fields = meta.get_layout_metadata("Contacts", "Web", token).response.field_meta_data
    """

    def _basic(self, spec: RequestSpec) -> RequestSpec:
        creds = self.client.config.basic_credentials
        if creds is None:
            logger.debug("no basic credentials configured for %s", spec.path)
            return spec
        return RequestSpec(method=spec.method, path=spec.path, params=spec.params, auth=creds)

    def get_product_info(self, ctx: Optional[OperationContext] = None) -> ResponseData:
        """Server name, version and date/time formats (``response.product_info``)."""
        spec = self._basic(RequestSpec(method="GET", path=self._path("productInfo")))
        return self._execute(spec, ctx, "get_product_info")

    def get_databases(self, ctx: Optional[OperationContext] = None) -> ResponseData:
        """Hosted files visible to the configured account (``response.databases``)."""
        spec = self._basic(RequestSpec(method="GET", path=self._path("databases")))
        return self._execute(spec, ctx, "get_databases")

    def get_layouts(
        self,
        database: str,
        token: str,
        ctx: Optional[OperationContext] = None,
    ) -> ResponseData:
        require_database(database)
        require_token(token)
        spec = RequestSpec(method="GET", path=self._path("databases", database, "layouts"))
        return self._execute(spec.with_bearer(token), ctx, "get_layouts")

    def get_layout_metadata(
        self,
        database: str,
        layout: str,
        token: str,
        ctx: Optional[OperationContext] = None,
    ) -> ResponseData:
        """Field, portal and value list definitions of one layout."""
        require_database(database)
        require_layout(layout)
        require_token(token)
        spec = RequestSpec(method="GET", path=self._path("databases", database, "layouts", layout))
        return self._execute(spec.with_bearer(token), ctx, "get_layout_metadata")

    def get_scripts(
        self,
        database: str,
        token: str,
        ctx: Optional[OperationContext] = None,
    ) -> ResponseData:
        require_database(database)
        require_token(token)
        spec = RequestSpec(method="GET", path=self._path("databases", database, "scripts"))
        return self._execute(spec.with_bearer(token), ctx, "get_scripts")

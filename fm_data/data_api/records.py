"""
fm_data.data_api.records - Record CRUD
=======================================

Every call opens its own session, does one request and releases the
session again, so a ``RecordService`` needs nothing but a database and a
layout name.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from fm_data.core.client import FileMakerClient
from fm_data.core.context import OperationContext
from fm_data.core.request import RequestSpec
from fm_data.core.response import ResponseData
from fm_data.core.validators import require_database, require_layout, require_record_id
from fm_data.data_api.base import DataAPIService
from fm_data.data_api.find import Sorter, sorters_to_json
from fm_data.data_api.scripts import ScriptContext

if TYPE_CHECKING:
    from fm_data.core.connection import ConnectionContext

PortalData = Mapping[str, List[Mapping[str, Any]]]


def build_payload(
    field_data: Optional[Mapping[str, Any]],
    portal_data: Optional[PortalData] = None,
    mod_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Body for create/edit requests.

    >>> build_payload({"Name": "Acme"}, mod_id="3")
    {'fieldData': {'Name': 'Acme'}, 'modId': '3'}
    """
    payload: Dict[str, Any] = {"fieldData": dict(field_data or {})}
    if portal_data:
        payload["portalData"] = {k: list(v) for k, v in portal_data.items()}
    if mod_id:
        payload["modId"] = mod_id
    return payload


class RecordService(DataAPIService):
    """
    Session-managed record operations on one layout.

    Parameters
    ----------
    connection : ConnectionContext or FileMakerClient
        Where requests are sent
    database : str
        Hosted file name
    layout : str
        Layout the records are accessed through

    Examples
    --------
    >>> records = RecordService(client, "Contacts", "Web")
    >>> env = records.create({"Name": "Acme", "City": "Oslo"})
    >>> env.response.record_id
    '17'
    >>> records.list(offset=1, limit=10, sorters=[Sorter("Name")])
    """

    def __init__(self, connection: Union["ConnectionContext", FileMakerClient], database: str, layout: str) -> None:
        super().__init__(connection)
        self.database = database
        self.layout = layout

    def _records_path(self, *extra: str) -> str:
        return self._path("databases", self.database, "layouts", self.layout, "records", *extra)

    def _check(self) -> None:
        require_database(self.database)
        require_layout(self.layout)

    def _in_session(
        self,
        build: Callable[[], RequestSpec],
        ctx: Optional[OperationContext],
        operation: str,
    ) -> ResponseData:
        self._check()
        spec = build()

        def work(op_ctx: OperationContext, token: str) -> ResponseData:
            return self._execute(spec.with_bearer(token), op_ctx, operation)

        return self.client.with_session(self.database, work, ctx=ctx)

    # ---------------- writes ----------------

    def create(
        self,
        field_data: Mapping[str, Any],
        *,
        portal_data: Optional[PortalData] = None,
        scripts: Optional[ScriptContext] = None,
        ctx: Optional[OperationContext] = None,
    ) -> ResponseData:
        """
        Create a record.

        Parameters
        ----------
        field_data : dict
            Field name to value
        portal_data : dict, optional
            Portal name to list of related rows
        scripts : ScriptContext, optional
            Scripts to run around the request

        Returns
        -------
        ResponseData
            ``response.record_id`` / ``response.mod_id`` of the new record
        """
        def build() -> RequestSpec:
            body = build_payload(field_data, portal_data)
            if scripts is not None:
                body.update(scripts.to_params())
            return RequestSpec(method="POST", path=self._records_path(), body=body)

        return self._in_session(build, ctx, "create_record")

    def edit(
        self,
        record_id: str,
        field_data: Mapping[str, Any],
        *,
        portal_data: Optional[PortalData] = None,
        mod_id: Optional[str] = None,
        scripts: Optional[ScriptContext] = None,
        ctx: Optional[OperationContext] = None,
    ) -> ResponseData:
        """
        Update a record. Pass ``mod_id`` to reject the edit when the record
        changed since it was read.
        """
        require_record_id(record_id)

        def build() -> RequestSpec:
            body = build_payload(field_data, portal_data, mod_id)
            if scripts is not None:
                body.update(scripts.to_params())
            return RequestSpec(method="PATCH", path=self._records_path(record_id), body=body)

        return self._in_session(build, ctx, "edit_record")

    def duplicate(
        self,
        record_id: str,
        *,
        scripts: Optional[ScriptContext] = None,
        ctx: Optional[OperationContext] = None,
    ) -> ResponseData:
        require_record_id(record_id)

        def build() -> RequestSpec:
            body = scripts.to_params() if scripts is not None else None
            return RequestSpec(method="POST", path=self._records_path(record_id), body=body)

        return self._in_session(build, ctx, "duplicate_record")

    def delete(
        self,
        record_id: str,
        *,
        delete_related: Optional[str] = None,
        scripts: Optional[ScriptContext] = None,
        ctx: Optional[OperationContext] = None,
    ) -> ResponseData:
        """
        Delete a record.

        Parameters
        ----------
        delete_related : str, optional
            Portal whose related row to delete instead, e.g. "Orders.3"
        """
        require_record_id(record_id)

        def build() -> RequestSpec:
            params: Dict[str, str] = {}
            if delete_related:
                params["deleteRelated"] = delete_related
            if scripts is not None:
                params.update(scripts.to_params())
            return RequestSpec(method="DELETE", path=self._records_path(record_id), params=params)

        return self._in_session(build, ctx, "delete_record")

    # ---------------- reads ----------------

    def get(
        self,
        record_id: str,
        *,
        portals: Optional[Sequence[str]] = None,
        scripts: Optional[ScriptContext] = None,
        ctx: Optional[OperationContext] = None,
    ) -> ResponseData:
        """Fetch one record; the row is ``response.data[0]``."""
        require_record_id(record_id)

        def build() -> RequestSpec:
            params: Dict[str, str] = {}
            if portals:
                params["portal"] = json.dumps(list(portals))
            if scripts is not None:
                params.update(scripts.to_params())
            return RequestSpec(method="GET", path=self._records_path(record_id), params=params)

        return self._in_session(build, ctx, "get_record")

    def list(
        self,
        *,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
        sorters: Sequence[Sorter] = (),
        portals: Optional[Sequence[str]] = None,
        scripts: Optional[ScriptContext] = None,
        ctx: Optional[OperationContext] = None,
    ) -> ResponseData:
        """
        Fetch a range of records.

        Parameters
        ----------
        offset : int, optional
            1-based index of the first record
        limit : int, optional
            Maximum number of records
        sorters : sequence of Sorter
            Sort order, sent as ``_sort``
        """
        def build() -> RequestSpec:
            params: Dict[str, str] = {}
            if offset is not None:
                params["_offset"] = str(offset)
            if limit is not None:
                params["_limit"] = str(limit)
            if sorters:
                params["_sort"] = sorters_to_json(sorters)
            if portals:
                params["portal"] = json.dumps(list(portals))
            if scripts is not None:
                params.update(scripts.to_params())
            return RequestSpec(method="GET", path=self._records_path(), params=params)

        return self._in_session(build, ctx, "list_records")

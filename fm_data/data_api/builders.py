"""
fm_data.data_api.builders - Fluent request builders
====================================================

Chainable front ends over the services:

- RecordBuilder: assemble field/portal data, then create/update/...
- FindBuilder: ``where``/``or_where``/``omit`` then ``execute``
- SessionBuilder: explicit session handling for token-scoped services
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from fm_data.core.auth import AuthStrategy, BasicAuth, CustomDatasourceAuth
from fm_data.core.context import OperationContext
from fm_data.core.errors import ValidationError
from fm_data.core.response import ResponseData
from fm_data.data_api.base import DataAPIService
from fm_data.data_api.find import FieldOperator, PortalConfig, QueryGroup, SearchService, SortOrder, Sorter
from fm_data.data_api.records import RecordService
from fm_data.data_api.scripts import ScriptContext


class RecordBuilder:
    """
    Examples
    --------
    >>> env = (
    ...     RecordBuilder(client, "Contacts", "Web")
    ...     .set_field("Name", "Acme")
    ...     .add_portal_record("Phones", {"Phones::Number": "555-0100"})
    ...     .with_after_script("Notify")
    ...     .create()
    ... )
    """

    def __init__(self, connection, database: str, layout: str) -> None:
        self._service = RecordService(connection, database, layout)
        self._field_data: Dict[str, Any] = {}
        self._portal_data: Dict[str, List[Mapping[str, Any]]] = {}
        self._scripts: Optional[ScriptContext] = None
        self._record_id = ""
        self._mod_id: Optional[str] = None
        self._delete_related: Optional[str] = None
        self._offset: Optional[int] = None
        self._limit: Optional[int] = None
        self._sorters: List[Sorter] = []
        self._ctx: Optional[OperationContext] = None

    def with_context(self, ctx: OperationContext) -> "RecordBuilder":
        self._ctx = ctx
        return self

    def set_field(self, name: str, value: Any) -> "RecordBuilder":
        self._field_data[name] = value
        return self

    def set_fields(self, fields: Mapping[str, Any]) -> "RecordBuilder":
        self._field_data.update(fields)
        return self

    def add_portal_record(self, portal: str, record: Mapping[str, Any]) -> "RecordBuilder":
        self._portal_data.setdefault(portal, []).append(dict(record))
        return self

    def set_portal_records(self, portal: str, records: List[Mapping[str, Any]]) -> "RecordBuilder":
        self._portal_data[portal] = [dict(r) for r in records]
        return self

    def with_scripts(self, scripts: ScriptContext) -> "RecordBuilder":
        self._scripts = scripts
        return self

    def with_prerequest_script(self, script: str, param: str = "") -> "RecordBuilder":
        self._scripts = (self._scripts or ScriptContext()).with_prerequest(script, param)
        return self

    def with_after_script(self, script: str, param: str = "") -> "RecordBuilder":
        self._scripts = (self._scripts or ScriptContext()).with_after(script, param)
        return self

    def for_record(self, record_id: str) -> "RecordBuilder":
        self._record_id = record_id
        return self

    def with_mod_id(self, mod_id: str) -> "RecordBuilder":
        self._mod_id = mod_id
        return self

    def with_delete_related(self, delete_related: str) -> "RecordBuilder":
        self._delete_related = delete_related
        return self

    def offset(self, offset: int) -> "RecordBuilder":
        self._offset = offset
        return self

    def limit(self, limit: int) -> "RecordBuilder":
        self._limit = limit
        return self

    def order_by(self, field_name: str, order: SortOrder = SortOrder.ASCEND) -> "RecordBuilder":
        self._sorters.append(Sorter(field_name, order))
        return self

    def _need_record(self, operation: str) -> str:
        if not self._record_id:
            raise ValidationError("record_id", f"record ID is required for {operation} operations")
        return self._record_id

    # ---------------- terminal operations ----------------

    def create(self, ctx: Optional[OperationContext] = None) -> ResponseData:
        return self._service.create(
            self._field_data,
            portal_data=self._portal_data or None,
            scripts=self._scripts,
            ctx=ctx or self._ctx,
        )

    def update(self, ctx: Optional[OperationContext] = None) -> ResponseData:
        record_id = self._need_record("update")
        return self._service.edit(
            record_id,
            self._field_data,
            portal_data=self._portal_data or None,
            mod_id=self._mod_id,
            scripts=self._scripts,
            ctx=ctx or self._ctx,
        )

    def delete(self, ctx: Optional[OperationContext] = None) -> ResponseData:
        record_id = self._need_record("delete")
        return self._service.delete(
            record_id,
            delete_related=self._delete_related,
            scripts=self._scripts,
            ctx=ctx or self._ctx,
        )

    def get(self, ctx: Optional[OperationContext] = None) -> ResponseData:
        record_id = self._need_record("get")
        return self._service.get(record_id, scripts=self._scripts, ctx=ctx or self._ctx)

    def duplicate(self, ctx: Optional[OperationContext] = None) -> ResponseData:
        record_id = self._need_record("duplicate")
        return self._service.duplicate(record_id, scripts=self._scripts, ctx=ctx or self._ctx)

    def list(self, ctx: Optional[OperationContext] = None) -> ResponseData:
        return self._service.list(
            offset=self._offset,
            limit=self._limit,
            sorters=self._sorters,
            scripts=self._scripts,
            ctx=ctx or self._ctx,
        )


class FindBuilder:
    """
    Examples
    --------
    >>> env = (
    ...     FindBuilder(client, "Contacts", "Web")
    ...     .where("City", FieldOperator.EQUAL, "Oslo")
    ...     .where("Name", FieldOperator.BEGINS_WITH, "A")
    ...     .or_where("City", FieldOperator.EQUAL, "Bergen")
    ...     .omit("Status", FieldOperator.EQUAL, "Closed")
    ...     .order_by("Name")
    ...     .limit(20)
    ...     .execute()
    ... )
    """

    def __init__(self, connection, database: str, layout: str) -> None:
        self._service = SearchService(connection, database, layout)
        self._groups: List[QueryGroup] = []
        self._sorters: List[Sorter] = []
        self._portals: List[PortalConfig] = []
        self._offset: Optional[int] = None
        self._limit: Optional[int] = None
        self._scripts: Optional[ScriptContext] = None
        self._ctx: Optional[OperationContext] = None

    def with_context(self, ctx: OperationContext) -> "FindBuilder":
        self._ctx = ctx
        return self

    def where(self, field_name: str, operator: FieldOperator, value: str) -> "FindBuilder":
        """
        AND a criterion into the last group.

        When there is no group yet, or the last one is an omit group, a
        new find request is started; it is ORed with the earlier ones.
        """
        if not self._groups or self._groups[-1].omit:
            self._groups.append(QueryGroup())
        self._groups[-1].add(field_name, operator, value)
        return self

    def or_where(self, field_name: str, operator: FieldOperator, value: str) -> "FindBuilder":
        self._groups.append(QueryGroup().add(field_name, operator, value))
        return self

    def omit(self, field_name: str, operator: FieldOperator, value: str) -> "FindBuilder":
        self._groups.append(QueryGroup(omit=True).add(field_name, operator, value))
        return self

    def order_by(self, field_name: str, order: SortOrder = SortOrder.ASCEND) -> "FindBuilder":
        self._sorters.append(Sorter(field_name, order))
        return self

    def offset(self, offset: int) -> "FindBuilder":
        self._offset = offset
        return self

    def limit(self, limit: int) -> "FindBuilder":
        self._limit = limit
        return self

    def portal(self, name: str, offset: int = 1, limit: int = 50) -> "FindBuilder":
        self._portals.append(PortalConfig(name, offset, limit))
        return self

    def with_scripts(self, scripts: ScriptContext) -> "FindBuilder":
        self._scripts = scripts
        return self

    def build(self) -> SearchService:
        svc = self._service.query(*self._groups).sort(*self._sorters)
        if self._portals:
            svc.set_portal_configs(*self._portals)
        if self._offset is not None:
            svc.set_offset(self._offset)
        if self._limit is not None:
            svc.set_limit(self._limit)
        if self._scripts is not None:
            svc.set_scripts(self._scripts)
        return svc

    def execute(self, ctx: Optional[OperationContext] = None) -> ResponseData:
        return self.build().execute(ctx or self._ctx)


class SessionBuilder(DataAPIService):
    """
    Explicit session handling.

    Examples
    --------
    >>> sb = SessionBuilder(client, "Contacts").with_credentials("web", "secret")
    >>> sb.connect()
    >>> MetadataService(client).get_layouts("Contacts", sb.token)
    >>> sb.disconnect()
    """

    def __init__(self, connection, database: str) -> None:
        super().__init__(connection)
        self.database = database
        self._username = ""
        self._password = ""
        self._token = ""
        self._ctx: Optional[OperationContext] = None

    def with_context(self, ctx: OperationContext) -> "SessionBuilder":
        self._ctx = ctx
        return self

    def with_credentials(self, username: str, password: str) -> "SessionBuilder":
        self._username = username
        self._password = password
        return self

    def with_token(self, token: str) -> "SessionBuilder":
        self._token = token
        return self

    @property
    def token(self) -> str:
        return self._token

    def create_session(self, auth: Optional[AuthStrategy], ctx: Optional[OperationContext] = None) -> ResponseData:
        envelope = self.client.create_session(self.database, auth, ctx=ctx or self._ctx)
        self._token = envelope.token
        return envelope

    def connect(self, ctx: Optional[OperationContext] = None) -> ResponseData:
        """Basic auth with the builder's credentials, or the client default."""
        auth = BasicAuth(self._username, self._password) if self._username else None
        return self.create_session(auth, ctx)

    def connect_with_datasource(self, ctx: Optional[OperationContext] = None) -> ResponseData:
        """Data source auth with the builder's credentials as the external account."""
        auth = CustomDatasourceAuth(self._username, self._password) if self._username else None
        return self.create_session(auth, ctx)

    def validate(self, ctx: Optional[OperationContext] = None) -> ResponseData:
        if not self._token:
            raise ValidationError("token", "token is required for validation")
        return self.client.validate_session(self._token, ctx or self._ctx)

    def disconnect(self, ctx: Optional[OperationContext] = None) -> ResponseData:
        if not self._token:
            raise ValidationError("token", "token is required for disconnect")
        envelope = self.client.disconnect(self.database, self._token, ctx or self._ctx)
        self._token = ""
        return envelope

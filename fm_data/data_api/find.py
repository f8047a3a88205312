"""
fm_data.data_api.find - Find requests
======================================

Query model for the ``_find`` endpoint:

- ``QueryField``: one field criterion, operator encoded into the value
- ``QueryGroup``: fields ANDed together; groups are ORed; ``omit=True``
  turns a group into an exclusion
- ``Sorter``: field + ascend/descend
- ``PortalConfig``: per-portal paging of related rows
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from fm_data.core.context import OperationContext
from fm_data.core.errors import ValidationError
from fm_data.core.request import RequestSpec
from fm_data.core.response import ResponseData
from fm_data.core.validators import require_database, require_field_name, require_layout
from fm_data.data_api.base import DataAPIService
from fm_data.data_api.scripts import ScriptContext


class FieldOperator(str, Enum):
    EQUAL = "eq"
    CONTAINS = "cn"
    BEGINS_WITH = "bw"
    ENDS_WITH = "ew"
    GREATER_THAN = "gt"
    GREATER_THAN_EQUAL = "gte"
    LESS_THAN = "lt"
    LESS_THAN_EQUAL = "lte"

    def format_value(self, value: str) -> str:
        """
        Render ``value`` in FileMaker find syntax.

        >>> FieldOperator.CONTAINS.format_value("acme")
        '==*acme*'
        """
        return _OPERATOR_FORMATS[self].format(value)


_OPERATOR_FORMATS = {
    FieldOperator.EQUAL: "=={}",
    FieldOperator.CONTAINS: "==*{}*",
    FieldOperator.BEGINS_WITH: "=={}*",
    FieldOperator.ENDS_WITH: "==*{}",
    FieldOperator.GREATER_THAN: ">{}",
    FieldOperator.GREATER_THAN_EQUAL: ">={}",
    FieldOperator.LESS_THAN: "<{}",
    FieldOperator.LESS_THAN_EQUAL: "<={}",
}


class SortOrder(str, Enum):
    ASCEND = "ascend"
    DESCEND = "descend"


@dataclass
class QueryField:
    name: str
    value: str
    operator: Optional[FieldOperator] = FieldOperator.EQUAL

    def encoded(self) -> str:
        # no operator: the value is already in find syntax
        if self.operator is None:
            return str(self.value)
        return FieldOperator(self.operator).format_value(str(self.value))


@dataclass
class QueryGroup:
    """
    One find request: every field must match.

    Examples
    --------
    >>> QueryGroup().add("City", FieldOperator.EQUAL, "Oslo").to_dict()
    {'City': '==Oslo'}
    >>> QueryGroup(omit=True).add("Status", FieldOperator.EQUAL, "Closed").to_dict()
    {'Status': '==Closed', 'omit': 'true'}
    """
    fields: List[QueryField] = field(default_factory=list)
    omit: bool = False

    def add(self, name: str, operator: Optional[FieldOperator], value: str) -> "QueryGroup":
        self.fields.append(QueryField(name, value, operator))
        return self

    def to_dict(self) -> Dict[str, str]:
        out = {f.name: f.encoded() for f in self.fields}
        if self.omit:
            out["omit"] = "true"
        return out


@dataclass
class Sorter:
    field_name: str
    sort_order: SortOrder = SortOrder.ASCEND

    def to_dict(self) -> Dict[str, str]:
        return {"fieldName": self.field_name, "sortOrder": SortOrder(self.sort_order).value}


def sorters_to_json(sorters: Sequence[Sorter]) -> str:
    """
    >>> sorters_to_json([Sorter("Name", SortOrder.DESCEND)])
    '[{"fieldName":"Name","sortOrder":"descend"}]'
    """
    return json.dumps([s.to_dict() for s in sorters], separators=(",", ":"))


@dataclass
class PortalConfig:
    """Paging for one portal's related rows (offset is 1-based)."""
    name: str
    offset: int = 1
    limit: int = 50

    def to_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if self.offset > 0:
            params[f"_offset.{self.name}"] = str(self.offset)
        if self.limit > 0:
            params[f"_limit.{self.name}"] = str(self.limit)
        return params


class SearchService(DataAPIService):
    """
    Find records on one layout.

    Configure the request with the chainable setters, then call
    ``execute``; it runs inside its own session.

    Examples
    --------
    >>> search = SearchService(client, "Contacts", "Web")
    >>> env = (
    ...     search.query(
    ...         QueryGroup().add("City", FieldOperator.EQUAL, "Oslo"),
    ...         QueryGroup().add("City", FieldOperator.EQUAL, "Bergen"),
    ...     )
    ...     .sort(Sorter("Name"))
    ...     .set_limit(20)
    ...     .execute()
    ... )
    >>> env.response.data_info.found_count
    """

    def __init__(self, connection, database: str, layout: str) -> None:
        super().__init__(connection)
        self.database = database
        self.layout = layout
        self.groups: List[QueryGroup] = []
        self.sorters: List[Sorter] = []
        self.portals: List[str] = []
        self.portal_configs: List[PortalConfig] = []
        self.offset: Optional[int] = None
        self.limit: Optional[int] = None
        self.scripts: Optional[ScriptContext] = None

    def query(self, *groups: QueryGroup) -> "SearchService":
        """Replace the find requests; groups are ORed together."""
        self.groups = list(groups)
        return self

    def sort(self, *sorters: Sorter) -> "SearchService":
        self.sorters = list(sorters)
        return self

    def set_offset(self, offset: int) -> "SearchService":
        self.offset = offset
        return self

    def set_limit(self, limit: int) -> "SearchService":
        self.limit = limit
        return self

    def set_portals(self, portals: Sequence[str]) -> "SearchService":
        """Portals to include, without paging; see ``set_portal_configs``."""
        self.portals = list(portals)
        self.portal_configs = []
        return self

    def set_portal_configs(self, *configs: PortalConfig) -> "SearchService":
        self.portal_configs = list(configs)
        self.portals = [c.name for c in configs]
        return self

    def set_scripts(self, scripts: ScriptContext) -> "SearchService":
        self.scripts = scripts
        return self

    def build_body(self) -> Dict[str, Any]:
        if not self.groups:
            raise ValidationError("query", "at least one query group is required")
        for group in self.groups:
            for qf in group.fields:
                require_field_name(qf.name)

        body: Dict[str, Any] = {"query": [g.to_dict() for g in self.groups]}
        if self.sorters:
            body["sort"] = [s.to_dict() for s in self.sorters]
        if self.offset is not None:
            body["offset"] = str(self.offset)
        if self.limit is not None:
            body["limit"] = str(self.limit)
        if self.portals:
            body["portal"] = list(self.portals)
        if self.scripts is not None:
            body.update(self.scripts.to_params())
        return body

    def build_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        for cfg in self.portal_configs:
            params.update(cfg.to_params())
        return params

    def execute(self, ctx: Optional[OperationContext] = None) -> ResponseData:
        """
        Run the find.

        Raises
        ------
        ValidationError
            Missing database/layout or no query group
        FileMakerError
            Code "401" when nothing matched
        """
        require_database(self.database)
        require_layout(self.layout)
        spec = RequestSpec(
            method="POST",
            path=self._path("databases", self.database, "layouts", self.layout, "_find"),
            params=self.build_params(),
            body=self.build_body(),
        )

        def work(op_ctx: OperationContext, token: str) -> ResponseData:
            return self._execute(spec.with_bearer(token), op_ctx, "find")

        return self.client.with_session(self.database, work, ctx=ctx)

"""
fm_data.data_api.globals - Global field values
===============================================
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from fm_data.core.context import OperationContext
from fm_data.core.request import RequestSpec
from fm_data.core.response import ResponseData
from fm_data.core.validators import require_database, require_field_name, require_global_fields, require_token
from fm_data.data_api.base import DataAPIService


class GlobalFieldsBuilder:
    """
    Collects global field values.

    Names must be fully qualified (``Table::Field``); repetitions use
    ``Table::Field(2)``.

    Examples
    --------
    >>> GlobalFieldsBuilder().add("Settings::Region", "EU").build()
    {'Settings::Region': 'EU'}
    """

    def __init__(self) -> None:
        self._fields: Dict[str, Any] = {}

    def add(self, name: str, value: Any) -> "GlobalFieldsBuilder":
        require_field_name(name)
        self._fields[name] = value
        return self

    def add_fields(self, fields: Mapping[str, Any]) -> "GlobalFieldsBuilder":
        for name, value in fields.items():
            self.add(name, value)
        return self

    def clear(self) -> "GlobalFieldsBuilder":
        self._fields = {}
        return self

    def build(self) -> Dict[str, Any]:
        return dict(self._fields)

    def __len__(self) -> int:
        return len(self._fields)


class GlobalFieldsService(DataAPIService):
    """Sets global fields for the lifetime of a session."""

    def set_global_fields(
        self,
        database: str,
        fields: Mapping[str, Any],
        token: str,
        ctx: Optional[OperationContext] = None,
    ) -> ResponseData:
        """
        Set global field values in the session identified by ``token``.

        Parameters
        ----------
        database : str
            Hosted file name
        fields : dict
            Fully qualified field name to value; at least one entry
        token : str
            Session token the values are bound to
        """
        require_database(database)
        require_global_fields(fields)
        require_token(token)
        spec = RequestSpec(
            method="PATCH",
            path=self._path("databases", database, "globals"),
            body={"globalFields": dict(fields)},
        )
        return self._execute(spec.with_bearer(token), ctx, "set_global_fields")

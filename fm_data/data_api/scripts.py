"""
fm_data.data_api.scripts - Script execution
============================================

Scripts run either on their own (``ScriptService.execute``) or attached
to a record request through ``ScriptContext``, which maps to the Data
API's ``script.prerequest``, ``script.presort`` and ``script`` query
parameters.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from fm_data.core.context import OperationContext
from fm_data.core.errors import ValidationError
from fm_data.core.request import RequestSpec
from fm_data.core.response import ResponseData
from fm_data.core.validators import (
    require_action,
    require_database,
    require_layout,
    require_record_id,
    require_script,
    require_token,
)
from fm_data.data_api.base import DataAPIService


@dataclass
class ScriptParameter:
    """A script name with an optional parameter."""
    script: str
    param: str = ""

    def to_params(self, prefix: str) -> Dict[str, str]:
        """
        >>> ScriptParameter("Log", "x").to_params("script.prerequest")
        {'script.prerequest': 'Log', 'script.prerequest.param': 'x'}
        """
        if not self.script:
            return {}
        params = {prefix: self.script}
        if self.param:
            params[f"{prefix}.param"] = self.param
        return params


@dataclass
class ScriptContext:
    """
    Scripts to run around a record request.

    Attributes
    ----------
    prerequest : ScriptParameter, optional
        Runs before the request is processed
    presort : ScriptParameter, optional
        Runs before the found set is sorted
    after : ScriptParameter, optional
        Runs after the request completes

    Examples
    --------
    >>> scripts = ScriptContext().with_prerequest("Validate").with_after("Notify", "new")
    >>> records.create({"Name": "Acme"}, scripts=scripts)
    """
    prerequest: Optional[ScriptParameter] = None
    presort: Optional[ScriptParameter] = None
    after: Optional[ScriptParameter] = None

    def with_prerequest(self, script: str, param: str = "") -> "ScriptContext":
        self.prerequest = ScriptParameter(script, param)
        return self

    def with_presort(self, script: str, param: str = "") -> "ScriptContext":
        self.presort = ScriptParameter(script, param)
        return self

    def with_after(self, script: str, param: str = "") -> "ScriptContext":
        self.after = ScriptParameter(script, param)
        return self

    def to_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        if self.prerequest is not None:
            params.update(self.prerequest.to_params("script.prerequest"))
        if self.presort is not None:
            params.update(self.presort.to_params("script.presort"))
        if self.after is not None:
            params.update(self.after.to_params("script"))
        return params


class ScriptService(DataAPIService):
    """
    Token-scoped script execution.

    The caller owns the session; see ``FileMakerClient.session``.

    Examples
    --------
    >>> with client.session("Contacts") as token:
    ...     env = ScriptService(client).execute("Contacts", "Web", "Recalc", token, param="42")
    ...     env.response.script_result
    """

    def execute(
        self,
        database: str,
        layout: str,
        script: str,
        token: str,
        *,
        param: Optional[str] = None,
        ctx: Optional[OperationContext] = None,
    ) -> ResponseData:
        """Run ``script`` on ``layout``; the result is in ``response.script_result``."""
        require_database(database)
        require_layout(layout)
        require_script(script)
        require_token(token)

        params = {"script.param": param} if param else {}
        spec = RequestSpec(
            method="GET",
            path=self._path("databases", database, "layouts", layout, "script", script),
            params=params,
        ).with_bearer(token)
        return self._execute(spec, ctx, "execute_script")

    def execute_after_action(
        self,
        database: str,
        layout: str,
        record_id: str,
        script: str,
        token: str,
        action: str,
        *,
        param: Optional[str] = None,
        ctx: Optional[OperationContext] = None,
    ) -> ResponseData:
        """
        Perform a record action and run ``script`` after it.

        Parameters
        ----------
        record_id : str
            Target record for "edit"/"delete"; any non-empty value for "create"
        action : str
            One of "create", "edit", "delete"
        """
        require_database(database)
        require_layout(layout)
        require_record_id(record_id)
        require_script(script)
        require_token(token)
        require_action(action)

        records = ("databases", database, "layouts", layout, "records")
        body: Any = None
        if action == "create":
            method, path, body = "POST", self._path(*records), {"fieldData": {}}
        elif action == "edit":
            method, path, body = "PATCH", self._path(*records, record_id), {"fieldData": {}}
        elif action == "delete":
            method, path = "DELETE", self._path(*records, record_id)
        else:
            raise ValidationError("action", "invalid action, must be create, edit, or delete")

        params = ScriptParameter(script, param or "").to_params("script")
        spec = RequestSpec(method=method, path=path, params=params, body=body).with_bearer(token)
        return self._execute(spec, ctx, f"{action}_with_script")

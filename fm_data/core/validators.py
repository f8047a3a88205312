"""
fm_data.core.validators - Required-input checks
================================================

Each helper raises ``ValidationError`` naming the offending field.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from fm_data.core.errors import ValidationError

RECORD_ACTIONS = ("create", "edit", "delete")


def require(field: str, value: Any, message: Optional[str] = None) -> None:
    if value is None or value == "":
        raise ValidationError(field, message or f"{field} is required")


def require_database(database: str) -> None:
    require("database", database, "database name is required")


def require_layout(layout: str) -> None:
    require("layout", layout, "layout name is required")


def require_token(token: str) -> None:
    require("token", token, "session token is required")


def require_record_id(record_id: str) -> None:
    require("record_id", record_id, "record ID is required")


def require_script(script: str) -> None:
    require("script", script, "script name is required")


def require_field_name(field_name: str) -> None:
    require("field_name", field_name, "field name is required")


def require_repetition(repetition: int) -> None:
    if repetition < 1:
        raise ValidationError("repetition", "repetition must be >= 1")


def require_file_data(data: Optional[bytes]) -> None:
    if not data:
        raise ValidationError("data", "file data cannot be empty")


def require_fields(field: str, values: Optional[Mapping[str, Any]], message: str) -> None:
    if not values:
        raise ValidationError(field, message)


def require_action(action: str) -> None:
    if not action:
        raise ValidationError("action", "action is required (create, edit, delete)")
    if action not in RECORD_ACTIONS:
        raise ValidationError("action", "invalid action, must be create, edit, or delete")


def require_file_path(file_path: str) -> None:
    require("file_path", file_path, "file path is required")


def require_filename(filename: str) -> None:
    require("filename", filename, "filename is required")


def require_url(url: str) -> None:
    require("url", url, "url is required")


def require_global_fields(fields: Optional[Mapping[str, Any]]) -> None:
    require_fields("global_fields", fields, "at least one global field must be specified")

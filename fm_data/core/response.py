"""
fm_data.core.response - Pydantic models for the Data API envelope
==================================================================

Every Data API call answers with::

    {"response": {...}, "messages": [{"code": "0", "message": "OK"}]}

The models are permissive (unknown keys are kept) because the payload
differs per endpoint.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Model(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class Message(_Model):
    """One entry of the ``messages`` array."""

    code: str = ""
    message: str = ""

    @field_validator("code", mode="before")
    @classmethod
    def _code_as_str(cls, v: Any) -> str:
        return "" if v is None else str(v)


class DataInfo(_Model):
    database: str = ""
    layout: str = ""
    table: str = ""
    total_record_count: int = Field(default=0, alias="totalRecordCount")
    found_count: int = Field(default=0, alias="foundCount")
    returned_count: int = Field(default=0, alias="returnedCount")


class Datum(_Model):
    """A single record as returned by get/list/find."""

    field_data: Dict[str, Any] = Field(default_factory=dict, alias="fieldData")
    portal_data: Dict[str, List[Any]] = Field(default_factory=dict, alias="portalData")
    record_id: str = Field(default="", alias="recordId")
    mod_id: str = Field(default="", alias="modId")


class ProductInfo(_Model):
    name: str = ""
    build_date: str = Field(default="", alias="buildDate")
    version: str = ""
    date_format: str = Field(default="", alias="dateFormat")
    time_format: str = Field(default="", alias="timeFormat")
    timestamp_format: str = Field(default="", alias="timeStampFormat")


class NamedItem(_Model):
    """Database, layout or script entry from the metadata endpoints."""

    name: str = ""
    is_folder: bool = Field(default=False, alias="isFolder")


class FieldMetaData(_Model):
    name: str = ""
    type: str = ""
    display_type: str = Field(default="", alias="displayType")
    result: str = ""
    global_: bool = Field(default=False, alias="global")
    auto_enter: bool = Field(default=False, alias="autoEnter")
    four_digit_year: bool = Field(default=False, alias="fourDigitYear")
    max_repeat: int = Field(default=0, alias="maxRepeat")
    max_characters: int = Field(default=0, alias="maxCharacters")
    not_empty: bool = Field(default=False, alias="notEmpty")
    numeric: bool = False
    time_of_day: bool = Field(default=False, alias="timeOfDay")
    repetition_start: int = Field(default=0, alias="repetitionStart")
    repetition_end: int = Field(default=0, alias="repetitionEnd")


class ValueListItem(_Model):
    value: str = ""
    display: str = ""


class ValueList(_Model):
    name: str = ""
    type: str = ""
    values: List[ValueListItem] = Field(default_factory=list)


class Response(_Model):
    """Operation-specific payload of the envelope."""

    record_id: str = Field(default="", alias="recordId")
    mod_id: str = Field(default="", alias="modId")
    token: str = ""
    data_info: Optional[DataInfo] = Field(default=None, alias="dataInfo")
    data: List[Datum] = Field(default_factory=list)
    product_info: Optional[ProductInfo] = Field(default=None, alias="productInfo")
    databases: List[NamedItem] = Field(default_factory=list)
    layouts: List[NamedItem] = Field(default_factory=list)
    scripts: List[NamedItem] = Field(default_factory=list)
    script_result: str = Field(default="", alias="scriptResult")
    script_error: str = Field(default="", alias="scriptError")
    field_meta_data: List[FieldMetaData] = Field(default_factory=list, alias="fieldMetaData")
    portal_meta_data: Dict[str, List[FieldMetaData]] = Field(
        default_factory=dict, alias="portalMetaData"
    )
    value_lists: List[ValueList] = Field(default_factory=list, alias="valueLists")


class ResponseData(_Model):
    """
    Decoded Data API envelope.

    Examples
    --------
    >>> env = ResponseData.model_validate(
    ...     {"response": {"token": "abc"}, "messages": [{"code": "0", "message": "OK"}]}
    ... )
    >>> env.token
    'abc'
    >>> env.ok
    True
    """

    response: Response = Field(default_factory=Response)
    messages: List[Message] = Field(default_factory=list)

    @field_validator("response", mode="before")
    @classmethod
    def _none_response(cls, v: Any) -> Any:
        # some endpoints answer "response": null or "response": []
        if v is None or v == [] or v == "":
            return {}
        return v

    @property
    def ok(self) -> bool:
        return bool(self.messages) and self.messages[0].code == "0"

    @property
    def token(self) -> str:
        return self.response.token

    @property
    def first_message(self) -> Optional[Message]:
        return self.messages[0] if self.messages else None

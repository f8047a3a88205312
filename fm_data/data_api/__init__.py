"""
fm_data.data_api - Data API endpoint services
==============================================

- RecordService: session-managed record CRUD
- SearchService + QueryGroup/Sorter/PortalConfig: find requests
- ScriptService + ScriptContext: script execution
- MetadataService: product info, databases, layouts, scripts
- ContainerService: container upload / download
- GlobalFieldsService: global field values
- RecordBuilder / FindBuilder / SessionBuilder: fluent front ends

"""

from fm_data.data_api.scripts import ScriptService, ScriptContext, ScriptParameter
from fm_data.data_api.find import (
    FieldOperator,
    QueryField,
    QueryGroup,
    SortOrder,
    Sorter,
    PortalConfig,
    SearchService,
)
from fm_data.data_api.records import RecordService
from fm_data.data_api.metadata import MetadataService
from fm_data.data_api.containers import ContainerService
from fm_data.data_api.globals import GlobalFieldsService, GlobalFieldsBuilder
from fm_data.data_api.builders import RecordBuilder, FindBuilder, SessionBuilder

__all__ = [
    "ScriptService",
    "ScriptContext",
    "ScriptParameter",
    "FieldOperator",
    "QueryField",
    "QueryGroup",
    "SortOrder",
    "Sorter",
    "PortalConfig",
    "SearchService",
    "RecordService",
    "MetadataService",
    "ContainerService",
    "GlobalFieldsService",
    "GlobalFieldsBuilder",
    "RecordBuilder",
    "FindBuilder",
    "SessionBuilder",
]

"""
Example: Basic FileMaker Data API usage with fm_data
====================================================

This example shows record CRUD, finds, scripts and metadata.
"""

import logging

from fm_data import ClientConfig, FileMakerClient, OperationContext, RetryPolicy
from fm_data.data_api import (
    FieldOperator,
    MetadataService,
    RecordService,
    ScriptContext,
    ScriptService,
    Sorter,
    SortOrder,
)


def example_records():
    """Record CRUD; every call opens and releases its own session."""

    cfg = ClientConfig(
        base_url="https://fms.example.com",
        username="admin",
        password="secret",
        retry=RetryPolicy(max_attempts=3, min_delay=1.0, max_delay=10.0),
    )

    with FileMakerClient(cfg) as client:
        records = RecordService(client, "Contacts", "Web")

        created = records.create(
            {"Name": "Acme", "City": "Oslo"},
            scripts=ScriptContext().with_after("Log Change", "create"),
        )
        record_id = created.response.record_id
        print(f"Created record {record_id}")

        records.edit(record_id, {"City": "Bergen"}, mod_id=created.response.mod_id)

        page = records.list(offset=1, limit=10, sorters=[Sorter("Name", SortOrder.DESCEND)])
        for row in page.response.data:
            print(row.record_id, row.field_data)

        records.delete(record_id)


def example_connection_context():
    """Using ConnectionContext and the fluent builders."""
    from fm_data import ConnectionContext

    # Reads from environment variables: FM_BASE_URL, FM_USER, FM_PASS, FM_VERSION
    with ConnectionContext() as conn:
        found = (
            conn.find("Contacts", "Web")
            .where("City", FieldOperator.EQUAL, "Oslo")
            .omit("Status", FieldOperator.EQUAL, "Closed")
            .order_by("Name")
            .limit(20)
            .execute(OperationContext(timeout=30.0))
        )
        print(f"Found {found.response.data_info.found_count} contacts")


def example_explicit_session():
    """Token-scoped services inside one managed session."""
    cfg = ClientConfig.from_env()

    with FileMakerClient(cfg) as client:
        meta = MetadataService(client)
        print("Server:", meta.get_product_info().response.product_info.version)

        with client.session("Contacts") as token:
            layouts = meta.get_layouts("Contacts", token).response.layouts
            print("Layouts:", [layout.name for layout in layouts])

            result = ScriptService(client).execute("Contacts", "Web", "Recalc Totals", token, param="2024")
            print("Script result:", result.response.script_result)

        print("Metrics:", client.metrics.snapshot())


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    # Uncomment the example you want to run
    # example_records()
    # example_connection_context()
    # example_explicit_session()
    pass

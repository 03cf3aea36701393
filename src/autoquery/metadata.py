from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Protocol

from botocore.exceptions import ClientError

from .aws_errors import map_client_error
from .catalog import TableDescriptor
from .errors import NotFoundError


class TableDescriptionProvider(Protocol):
    def describe(self, table_name: str) -> TableDescriptor: ...


class DynamoDBDescriptionProvider:
    """Describe tables with the DynamoDB ``describe_table`` call."""

    def __init__(self, client: Any) -> None:
        self._client = client

    def describe(self, table_name: str) -> TableDescriptor:
        try:
            resp = self._client.describe_table(TableName=table_name)
        except ClientError as err:
            raise map_client_error(err) from err

        descriptor = TableDescriptor.from_describe_table(resp)
        if not descriptor.table_name:
            return TableDescriptor(
                table_name=table_name,
                item_count=descriptor.item_count,
                key_schema=descriptor.key_schema,
                secondary_indexes=descriptor.secondary_indexes,
            )
        return descriptor


class StaticDescriptionProvider:
    """Serve fixed descriptors, for tables that cannot be described at runtime."""

    def __init__(self, descriptors: Iterable[TableDescriptor] | Mapping[str, TableDescriptor] = ()) -> None:
        if isinstance(descriptors, Mapping):
            self._descriptors = dict(descriptors)
        else:
            self._descriptors = {d.table_name: d for d in descriptors}

    def add(self, descriptor: TableDescriptor) -> None:
        self._descriptors[descriptor.table_name] = descriptor

    def describe(self, table_name: str) -> TableDescriptor:
        descriptor = self._descriptors.get(table_name)
        if descriptor is None:
            raise NotFoundError(f"table not described: {table_name}")
        return descriptor

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from .mocks import ANY, FakeDynamoDBClient


def _key_schema(partition_key: str, sort_key: str | None) -> list[dict[str, str]]:
    out = [{"AttributeName": partition_key, "KeyType": "HASH"}]
    if sort_key is not None:
        out.append({"AttributeName": sort_key, "KeyType": "RANGE"})
    return out


def _index(
    name: str,
    partition_key: str,
    sort_key: str | None,
    *,
    projection: str,
    include: Iterable[str],
    item_count: int,
) -> dict[str, Any]:
    proj: dict[str, Any] = {"ProjectionType": projection}
    non_key = list(include)
    if non_key:
        proj["NonKeyAttributes"] = non_key
    return {
        "IndexName": name,
        "KeySchema": _key_schema(partition_key, sort_key),
        "Projection": proj,
        "ItemCount": item_count,
    }


def gsi(
    name: str,
    partition_key: str,
    sort_key: str | None = None,
    *,
    projection: str = "ALL",
    include: Iterable[str] = (),
    item_count: int = 0,
) -> dict[str, Any]:
    return _index(name, partition_key, sort_key, projection=projection, include=include, item_count=item_count)


def lsi(
    name: str,
    partition_key: str,
    sort_key: str,
    *,
    projection: str = "ALL",
    include: Iterable[str] = (),
    item_count: int = 0,
) -> dict[str, Any]:
    return _index(name, partition_key, sort_key, projection=projection, include=include, item_count=item_count)


def describe_table_response(
    table_name: str,
    partition_key: str,
    sort_key: str | None = None,
    *,
    item_count: int = 0,
    gsis: Iterable[Mapping[str, Any]] = (),
    lsis: Iterable[Mapping[str, Any]] = (),
) -> dict[str, Any]:
    """Build a ``describe_table`` response shaped like the one boto3 returns."""
    table: dict[str, Any] = {
        "TableName": table_name,
        "KeySchema": _key_schema(partition_key, sort_key),
        "ItemCount": item_count,
    }
    gsi_list = [dict(i) for i in gsis]
    if gsi_list:
        table["GlobalSecondaryIndexes"] = gsi_list
    lsi_list = [dict(i) for i in lsis]
    if lsi_list:
        table["LocalSecondaryIndexes"] = lsi_list
    return {"Table": table}


__all__ = [
    "ANY",
    "FakeDynamoDBClient",
    "describe_table_response",
    "gsi",
    "lsi",
]

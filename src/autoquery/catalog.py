from __future__ import annotations

import logging
import sys
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal, cast

from .errors import ValidationError

logger = logging.getLogger(__name__)

# "$" is not allowed in DynamoDB index names, so the sentinel never collides.
PRIMARY_INDEX_NAME = "$primary"

# Every composite secondary index is sparse unless configured otherwise.
DEFAULT_SPARSENESS_THRESHOLD = 1.1

MAX_SPARSITY_MULTIPLIER = sys.float_info.max

type IndexKind = Literal["TABLE", "GSI", "LSI"]


class KeyRole(Enum):
    PARTITION = "HASH"
    SORT = "RANGE"


class IndexDistribution(Enum):
    GLOBAL = "GSI"
    LOCAL = "LSI"


class ProjectionType(Enum):
    ALL = "ALL"
    KEYS_ONLY = "KEYS_ONLY"
    INCLUDE = "INCLUDE"


@dataclass(frozen=True)
class Projection:
    type: ProjectionType
    non_key_attributes: tuple[str, ...] = ()

    @staticmethod
    def all() -> Projection:
        return Projection(type=ProjectionType.ALL)

    @staticmethod
    def keys_only() -> Projection:
        return Projection(type=ProjectionType.KEYS_ONLY)

    @staticmethod
    def include(*attrs: str) -> Projection:
        return Projection(type=ProjectionType.INCLUDE, non_key_attributes=tuple(attrs))


@dataclass(frozen=True)
class KeySchemaElement:
    attribute_name: str
    role: KeyRole


@dataclass(frozen=True)
class SecondaryIndexDescriptor:
    name: str
    distribution: IndexDistribution
    key_schema: tuple[KeySchemaElement, ...]
    projection: Projection = field(default_factory=Projection.all)
    item_count: int = 0


@dataclass(frozen=True)
class TableDescriptor:
    table_name: str
    item_count: int
    key_schema: tuple[KeySchemaElement, ...]
    secondary_indexes: tuple[SecondaryIndexDescriptor, ...] = ()

    @classmethod
    def from_describe_table(cls, resp: Mapping[str, Any]) -> TableDescriptor:
        """Parse a DynamoDB ``describe_table`` response (or its ``Table`` member)."""
        table = resp.get("Table", resp)
        if not isinstance(table, Mapping):
            raise ValidationError("table description must be a map")

        table_name = str(table.get("TableName", ""))
        secondary: list[SecondaryIndexDescriptor] = []
        for raw in table.get("GlobalSecondaryIndexes") or []:
            secondary.append(_parse_secondary_index(raw, IndexDistribution.GLOBAL))
        for raw in table.get("LocalSecondaryIndexes") or []:
            secondary.append(_parse_secondary_index(raw, IndexDistribution.LOCAL))

        return cls(
            table_name=table_name,
            item_count=int(table.get("ItemCount") or 0),
            key_schema=_parse_key_schema(table.get("KeySchema")),
            secondary_indexes=tuple(secondary),
        )


def _parse_key_schema(raw: Any) -> tuple[KeySchemaElement, ...]:
    if not isinstance(raw, Sequence):
        raise ValidationError("KeySchema must be a list")

    out: list[KeySchemaElement] = []
    for element in raw:
        try:
            role = KeyRole(str(element.get("KeyType", "")))
        except ValueError as err:
            raise ValidationError(f"unsupported KeyType: {element.get('KeyType')!r}") from err
        out.append(KeySchemaElement(attribute_name=str(element["AttributeName"]), role=role))
    return tuple(out)


def _parse_projection(raw: Any) -> Projection:
    if not raw:
        return Projection.all()
    try:
        projection_type = ProjectionType(str(raw.get("ProjectionType", "ALL")))
    except ValueError as err:
        raise ValidationError(f"unsupported ProjectionType: {raw.get('ProjectionType')!r}") from err
    return Projection(
        type=projection_type,
        non_key_attributes=tuple(str(a) for a in raw.get("NonKeyAttributes") or ()),
    )


def _parse_secondary_index(raw: Mapping[str, Any], distribution: IndexDistribution) -> SecondaryIndexDescriptor:
    return SecondaryIndexDescriptor(
        name=str(raw["IndexName"]),
        distribution=distribution,
        key_schema=_parse_key_schema(raw.get("KeySchema")),
        projection=_parse_projection(raw.get("Projection")),
        item_count=int(raw.get("ItemCount") or 0),
    )


@dataclass(frozen=True)
class TableIndex:
    name: str
    kind: IndexKind
    partition_key: str
    sort_key: str | None
    size: int
    consistent_readable: bool
    includes_all_attributes: bool
    # Populated only when includes_all_attributes is False.
    attribute_set: frozenset[str] = frozenset()
    is_sparse: bool = False
    sparsity: float = 1.0
    sparsity_multiplier: float = 1.0
    has_max_sparsity_multiplier: bool = False

    @property
    def is_composite(self) -> bool:
        return self.sort_key is not None

    @property
    def is_primary(self) -> bool:
        return self.kind == "TABLE"

    @property
    def keys(self) -> tuple[str, ...]:
        if self.sort_key is None:
            return (self.partition_key,)
        return (self.partition_key, self.sort_key)


@dataclass(frozen=True)
class IndexCatalog:
    table_name: str
    indexes: tuple[TableIndex, ...]

    def __post_init__(self) -> None:
        primaries = [idx for idx in self.indexes if idx.is_primary]
        if len(primaries) != 1 or not self.indexes[0].is_primary:
            raise ValidationError("catalog must start with exactly one primary index")

    def __iter__(self) -> Iterator[TableIndex]:
        return iter(self.indexes)

    def __len__(self) -> int:
        return len(self.indexes)

    @property
    def primary(self) -> TableIndex:
        return self.indexes[0]

    @property
    def secondary(self) -> tuple[TableIndex, ...]:
        return self.indexes[1:]

    def get(self, name: str) -> TableIndex:
        for idx in self.indexes:
            if idx.name == name:
                return idx
        raise ValidationError(f"unknown index: {name}")


def _split_keys(key_schema: Sequence[KeySchemaElement], *, owner: str) -> tuple[str, str | None]:
    partition: str | None = None
    sort: str | None = None
    for element in key_schema:
        if element.role is KeyRole.PARTITION:
            partition = element.attribute_name
        elif element.role is KeyRole.SORT:
            sort = element.attribute_name
    if partition is None:
        raise ValidationError(f"{owner}: key schema has no partition key")
    return partition, sort


def _is_sparse(
    *,
    sort_key: str | None,
    sparsity: float,
    primary: TableIndex,
    threshold: float,
) -> bool:
    if sort_key is None:
        return False
    # table key attributes are present on every item
    if sort_key == primary.partition_key or sort_key == primary.sort_key:
        return False
    if threshold <= 0:
        return False
    if threshold > 1:
        return True
    return sparsity < threshold


def build_index_catalog(
    descriptor: TableDescriptor,
    *,
    sparseness_threshold: float = DEFAULT_SPARSENESS_THRESHOLD,
) -> IndexCatalog:
    """Build the index catalog for a table from its descriptor.

    The primary index comes first, followed by the secondary indexes in
    descriptor order. An index whose sparsity (items in the index divided by
    items in the table) falls below ``sparseness_threshold`` is sparse and is
    only usable when the expression references its sort key.
    """
    pk, sk = _split_keys(descriptor.key_schema, owner=descriptor.table_name or "table")
    table_size = max(0, int(descriptor.item_count))
    primary = TableIndex(
        name=PRIMARY_INDEX_NAME,
        kind="TABLE",
        partition_key=pk,
        sort_key=sk,
        size=table_size,
        consistent_readable=True,
        includes_all_attributes=True,
    )
    table_keys = primary.keys

    indexes: list[TableIndex] = [primary]
    for secondary in descriptor.secondary_indexes:
        idx_pk, idx_sk = _split_keys(secondary.key_schema, owner=secondary.name)
        size = max(0, int(secondary.item_count))

        includes_all = secondary.projection.type is ProjectionType.ALL
        attribute_set: frozenset[str] = frozenset()
        if not includes_all:
            attrs = set(table_keys)
            attrs.add(idx_pk)
            if idx_sk is not None:
                attrs.add(idx_sk)
            if secondary.projection.type is ProjectionType.INCLUDE:
                attrs.update(secondary.projection.non_key_attributes)
            attribute_set = frozenset(attrs)

        sparsity = size / table_size if table_size > 0 else 0.0
        has_max = sparsity <= 0.0
        multiplier = MAX_SPARSITY_MULTIPLIER if has_max else 1.0 / sparsity

        indexes.append(
            TableIndex(
                name=secondary.name,
                kind=cast(IndexKind, secondary.distribution.value),
                partition_key=idx_pk,
                sort_key=idx_sk,
                size=size,
                consistent_readable=secondary.distribution is IndexDistribution.LOCAL,
                includes_all_attributes=includes_all,
                attribute_set=attribute_set,
                is_sparse=_is_sparse(
                    sort_key=idx_sk,
                    sparsity=sparsity,
                    primary=primary,
                    threshold=sparseness_threshold,
                ),
                sparsity=sparsity,
                sparsity_multiplier=multiplier,
                has_max_sparsity_multiplier=has_max,
            )
        )

    catalog = IndexCatalog(table_name=descriptor.table_name, indexes=tuple(indexes))
    logger.debug(
        "built index catalog for %s: %s",
        descriptor.table_name,
        [(idx.name, idx.is_sparse, idx.sparsity) for idx in catalog],
    )
    return catalog

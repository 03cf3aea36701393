from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from boto3.dynamodb.types import TypeSerializer

from .catalog import TableIndex
from .errors import ValidationError
from .expression import Condition, ConditionKind, Expression, FilterCondition, FilterExpression, FilterGroup

_serializer = TypeSerializer()


def to_dynamodb_value(value: Any) -> Any:
    """Serialize a Python value to an attribute value, accepting floats as Decimals."""
    return _serializer.serialize(_normalize(value))


def _normalize(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, Mapping):
        return {k: _normalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    if isinstance(value, (set, frozenset)):
        return {_normalize(v) for v in value}
    return value


@dataclass(frozen=True)
class CompiledQuery:
    table_name: str
    index_name: str | None
    key_condition_expression: str
    expression_attribute_names: Mapping[str, str]
    expression_attribute_values: Mapping[str, Any]
    filter_expression: str | None = None
    projection_expression: str | None = None
    scan_index_forward: bool = True
    consistent_read: bool = False

    def to_request(
        self,
        *,
        exclusive_start_key: Mapping[str, Any] | None = None,
        limit: int | None = None,
    ) -> dict[str, Any]:
        """Render keyword arguments for one ``query`` call."""
        req: dict[str, Any] = {
            "TableName": self.table_name,
            "KeyConditionExpression": self.key_condition_expression,
            "ExpressionAttributeNames": dict(self.expression_attribute_names),
            "ExpressionAttributeValues": dict(self.expression_attribute_values),
            "ScanIndexForward": self.scan_index_forward,
            "ConsistentRead": self.consistent_read,
        }
        if self.index_name is not None:
            req["IndexName"] = self.index_name
        if self.filter_expression:
            req["FilterExpression"] = self.filter_expression
        if self.projection_expression:
            req["ProjectionExpression"] = self.projection_expression
        if limit is not None:
            req["Limit"] = limit
        if exclusive_start_key:
            req["ExclusiveStartKey"] = dict(exclusive_start_key)
        return req


@dataclass
class _Placeholders:
    names: dict[str, str] = field(default_factory=dict)
    values: dict[str, Any] = field(default_factory=dict)
    _name_refs: dict[tuple[str, str], str] = field(default_factory=dict)
    _counters: dict[str, int] = field(default_factory=dict)

    def name(self, prefix: str, attr: str) -> str:
        existing = self._name_refs.get((prefix, attr))
        if existing is not None:
            return existing
        ref = self._next(f"#{prefix}")
        self._name_refs[(prefix, attr)] = ref
        self.names[ref] = attr
        return ref

    def value(self, prefix: str, value: Any) -> str:
        ref = self._next(f":{prefix}")
        self.values[ref] = to_dynamodb_value(value)
        return ref

    def _next(self, stem: str) -> str:
        n = self._counters.get(stem, 0)
        self._counters[stem] = n + 1
        return f"{stem}{n}"


def _comparison(name: str, condition: Condition, value_ref: Callable[[Any], str]) -> str:
    kind = condition.kind
    if kind is ConditionKind.BETWEEN:
        low, high = condition.values
        return f"{name} BETWEEN {value_ref(low)} AND {value_ref(high)}"
    if kind is ConditionKind.BEGINS_WITH:
        return f"begins_with({name}, {value_ref(condition.values[0])})"
    return f"{name} {kind.value} {value_ref(condition.values[0])}"


def compile_query(index: TableIndex, expr: Expression, *, table_name: str) -> CompiledQuery:
    """Compile ``expr`` into a query against ``index`` of ``table_name``.

    The partition key's Equal condition, and for composite indexes any
    condition on the sort key, become the key condition. Every other
    condition is ANDed into the filter together with the expression's extra
    predicates. The index name is left out for the table's primary index.
    """
    if not table_name:
        raise ValidationError("table_name is required")

    partition_condition = expr.condition(index.partition_key)
    if partition_condition is None or partition_condition.kind is not ConditionKind.EQUAL:
        raise ValidationError(f"expression has no Equal condition on partition key: {index.partition_key}")

    refs = _Placeholders()
    refs.names["#pk"] = index.partition_key
    refs.values[":pk"] = to_dynamodb_value(partition_condition.values[0])
    key_expr = "#pk = :pk"
    key_attrs = {index.partition_key}

    sort_condition = expr.condition(index.sort_key) if index.is_composite else None
    if index.sort_key is not None and sort_condition is not None:
        refs.names["#sk"] = index.sort_key
        key_expr += " AND " + _comparison("#sk", sort_condition, lambda v: refs.value("sk", v))
        key_attrs.add(index.sort_key)

    clauses: list[str] = []
    for attr, condition in expr.conditions.items():
        if attr in key_attrs:
            continue
        clauses.append(_comparison(refs.name("f", attr), condition, lambda v: refs.value("f", v)))

    for predicate in expr.predicates:
        built = _build_predicate(predicate, refs)
        if built:
            clauses.append(built)

    projection: str | None = None
    if expr.attributes_specified and expr.attributes:
        projection = ", ".join(refs.name("p", attr) for attr in dict.fromkeys(expr.attributes))

    return CompiledQuery(
        table_name=table_name,
        index_name=None if index.is_primary else index.name,
        key_condition_expression=key_expr,
        expression_attribute_names=refs.names,
        expression_attribute_values=refs.values,
        filter_expression=" AND ".join(clauses) if clauses else None,
        projection_expression=projection,
        scan_index_forward=expr.order_ascending if expr.order_specified else True,
        consistent_read=expr.is_consistent_read,
    )


def _build_predicate(node: FilterExpression, refs: _Placeholders) -> str:
    if isinstance(node, FilterGroup):
        parts = [_build_predicate(f, refs) for f in node.filters]
        parts = [p for p in parts if p]
        if not parts:
            return ""
        return "(" + f" {node.op} ".join(parts) + ")"

    if not isinstance(node, FilterCondition):
        raise ValidationError("invalid filter expression")

    name = refs.name("f", node.field)
    op = node.op.upper()
    vals = node.values

    def value_ref(value: Any) -> str:
        return refs.value("f", value)

    if op in _COMPARISON_SYMBOLS:
        if len(vals) != 1:
            raise ValidationError(f"{node.op} requires one value")
        return f"{name} {_COMPARISON_SYMBOLS[op]} {value_ref(vals[0])}"

    if op == "BETWEEN":
        if len(vals) != 2:
            raise ValidationError("BETWEEN requires two values")
        left = value_ref(vals[0])
        right = value_ref(vals[1])
        return f"{name} BETWEEN {left} AND {right}"

    if op == "IN":
        if len(vals) != 1:
            raise ValidationError("IN requires a single sequence")
        in_values = vals[0]
        if not isinstance(in_values, Sequence) or isinstance(in_values, (str, bytes, bytearray)):
            raise ValidationError("IN requires a sequence of values")
        if not in_values:
            raise ValidationError("IN requires at least one value")
        if len(in_values) > 100:
            raise ValidationError("IN supports maximum 100 values")
        return f"{name} IN (" + ", ".join(value_ref(v) for v in in_values) + ")"

    if op == "BEGINS_WITH":
        if len(vals) != 1:
            raise ValidationError("BEGINS_WITH requires one value")
        return f"begins_with({name}, {value_ref(vals[0])})"

    if op == "CONTAINS":
        if len(vals) != 1:
            raise ValidationError("CONTAINS requires one value")
        return f"contains({name}, {value_ref(vals[0])})"

    if op in {"EXISTS", "ATTRIBUTE_EXISTS"}:
        if vals:
            raise ValidationError("EXISTS does not take a value")
        return f"attribute_exists({name})"

    if op in {"NOT_EXISTS", "ATTRIBUTE_NOT_EXISTS"}:
        if vals:
            raise ValidationError("NOT_EXISTS does not take a value")
        return f"attribute_not_exists({name})"

    raise ValidationError(f"unsupported filter operator: {node.op}")


_COMPARISON_SYMBOLS = {
    "=": "=",
    "EQ": "=",
    "!=": "<>",
    "<>": "<>",
    "NE": "<>",
    "<": "<",
    "LT": "<",
    "<=": "<=",
    "LE": "<=",
    ">": ">",
    "GT": ">",
    ">=": ">=",
    "GE": ">=",
}

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Literal


class ConditionKind(Enum):
    EQUAL = "="
    LESS_THAN = "<"
    GREATER_THAN = ">"
    LESS_THAN_OR_EQUAL = "<="
    GREATER_THAN_OR_EQUAL = ">="
    BETWEEN = "between"
    BEGINS_WITH = "begins_with"


@dataclass(frozen=True)
class Condition:
    kind: ConditionKind
    values: tuple[Any, ...]

    @staticmethod
    def equal(value: Any) -> Condition:
        return Condition(kind=ConditionKind.EQUAL, values=(value,))

    @staticmethod
    def less_than(value: Any) -> Condition:
        return Condition(kind=ConditionKind.LESS_THAN, values=(value,))

    @staticmethod
    def greater_than(value: Any) -> Condition:
        return Condition(kind=ConditionKind.GREATER_THAN, values=(value,))

    @staticmethod
    def less_than_or_equal(value: Any) -> Condition:
        return Condition(kind=ConditionKind.LESS_THAN_OR_EQUAL, values=(value,))

    @staticmethod
    def greater_than_or_equal(value: Any) -> Condition:
        return Condition(kind=ConditionKind.GREATER_THAN_OR_EQUAL, values=(value,))

    @staticmethod
    def between(low: Any, high: Any) -> Condition:
        return Condition(kind=ConditionKind.BETWEEN, values=(low, high))

    @staticmethod
    def begins_with(prefix: Any) -> Condition:
        return Condition(kind=ConditionKind.BEGINS_WITH, values=(prefix,))


type LogicalOp = Literal["AND", "OR"]


@dataclass(frozen=True)
class FilterCondition:
    field: str
    op: str
    values: tuple[Any, ...] = ()

    @staticmethod
    def eq(field: str, value: Any) -> FilterCondition:
        return FilterCondition(field=field, op="=", values=(value,))

    @staticmethod
    def ne(field: str, value: Any) -> FilterCondition:
        return FilterCondition(field=field, op="!=", values=(value,))

    @staticmethod
    def lt(field: str, value: Any) -> FilterCondition:
        return FilterCondition(field=field, op="<", values=(value,))

    @staticmethod
    def lte(field: str, value: Any) -> FilterCondition:
        return FilterCondition(field=field, op="<=", values=(value,))

    @staticmethod
    def gt(field: str, value: Any) -> FilterCondition:
        return FilterCondition(field=field, op=">", values=(value,))

    @staticmethod
    def gte(field: str, value: Any) -> FilterCondition:
        return FilterCondition(field=field, op=">=", values=(value,))

    @staticmethod
    def between(field: str, low: Any, high: Any) -> FilterCondition:
        return FilterCondition(field=field, op="between", values=(low, high))

    @staticmethod
    def begins_with(field: str, prefix: Any) -> FilterCondition:
        return FilterCondition(field=field, op="begins_with", values=(prefix,))

    @staticmethod
    def contains(field: str, value: Any) -> FilterCondition:
        return FilterCondition(field=field, op="contains", values=(value,))

    @staticmethod
    def in_(field: str, values: list[Any]) -> FilterCondition:
        return FilterCondition(field=field, op="in", values=(list(values),))

    @staticmethod
    def exists(field: str) -> FilterCondition:
        return FilterCondition(field=field, op="exists")

    @staticmethod
    def not_exists(field: str) -> FilterCondition:
        return FilterCondition(field=field, op="not_exists")


@dataclass(frozen=True)
class FilterGroup:
    op: LogicalOp
    filters: tuple[FilterExpression, ...]

    @staticmethod
    def and_(*filters: FilterExpression) -> FilterGroup:
        return FilterGroup(op="AND", filters=tuple(filters))

    @staticmethod
    def or_(*filters: FilterExpression) -> FilterGroup:
        return FilterGroup(op="OR", filters=tuple(filters))


type FilterExpression = FilterCondition | FilterGroup


class Expression:
    """Conditions, ordering and projection for an automatically indexed query.

    Every condition method replaces any condition already set on the same
    attribute, so ``equal("a", 1).less_than("a", 2)`` leaves only the
    less-than condition. Nothing is validated here; whether the expression
    can be served is decided when an index is chosen.

    Methods mutate the expression and return it, so calls chain::

        expr = Expression().equal("director", "Clint Eastwood").begins_with("title", "The ")
    """

    def __init__(self) -> None:
        self._conditions: dict[str, Condition] = {}
        self._attributes_specified = False
        self._attributes: list[str] = []
        self._order_attribute: str | None = None
        self._order_ascending = True
        self._consistent_read = False
        self._predicates: list[FilterExpression] = []

    def __repr__(self) -> str:
        return (
            f"Expression(conditions={self._conditions!r}, attributes="
            f"{self._attributes if self._attributes_specified else None!r}, "
            f"order=({self._order_attribute!r}, {self._order_ascending!r}), "
            f"consistent_read={self._consistent_read!r}, predicates={self._predicates!r})"
        )

    def equal(self, attr: str, value: Any) -> Expression:
        return self._set(attr, Condition.equal(value))

    def less_than(self, attr: str, value: Any) -> Expression:
        return self._set(attr, Condition.less_than(value))

    def greater_than(self, attr: str, value: Any) -> Expression:
        return self._set(attr, Condition.greater_than(value))

    def less_than_or_equal(self, attr: str, value: Any) -> Expression:
        return self._set(attr, Condition.less_than_or_equal(value))

    def greater_than_or_equal(self, attr: str, value: Any) -> Expression:
        return self._set(attr, Condition.greater_than_or_equal(value))

    def between(self, attr: str, low: Any, high: Any) -> Expression:
        return self._set(attr, Condition.between(low, high))

    def begins_with(self, attr: str, prefix: Any) -> Expression:
        return self._set(attr, Condition.begins_with(prefix))

    def order_by(self, attr: str, ascending: bool = True) -> Expression:
        """Order results by ``attr``; only indexes sorting on ``attr`` remain viable."""
        self._order_attribute = attr
        self._order_ascending = bool(ascending)
        return self

    def select(self, *attrs: str) -> Expression:
        """Project ``attrs``. Calls accumulate; ``select()`` with no names still counts."""
        self._attributes_specified = True
        self._attributes.extend(attrs)
        return self

    def consistent_read(self, value: bool = True) -> Expression:
        self._consistent_read = bool(value)
        return self

    def filter(self, *predicates: FilterExpression) -> Expression:
        """AND extra predicates into the final filter, whichever index is chosen."""
        self._predicates.extend(predicates)
        return self

    def and_(self, attr: str) -> ConditionKey:
        return ConditionKey(self, attr)

    def _set(self, attr: str, condition: Condition) -> Expression:
        self._conditions[attr] = condition
        return self

    @property
    def conditions(self) -> Mapping[str, Condition]:
        return MappingProxyType(self._conditions)

    def condition(self, attr: str | None) -> Condition | None:
        if attr is None:
            return None
        return self._conditions.get(attr)

    @property
    def attributes_specified(self) -> bool:
        return self._attributes_specified

    @property
    def attributes(self) -> tuple[str, ...]:
        return tuple(self._attributes)

    @property
    def order_specified(self) -> bool:
        return self._order_attribute is not None

    @property
    def order_attribute(self) -> str | None:
        return self._order_attribute

    @property
    def order_ascending(self) -> bool:
        return self._order_ascending

    @property
    def is_consistent_read(self) -> bool:
        return self._consistent_read

    @property
    def predicates(self) -> tuple[FilterExpression, ...]:
        return tuple(self._predicates)


class ConditionKey:
    """The attribute half of a condition; completed by one of the comparison methods."""

    def __init__(self, expr: Expression, attr: str) -> None:
        self._expr = expr
        self._attr = attr

    def equal(self, value: Any) -> Expression:
        return self._expr.equal(self._attr, value)

    def less_than(self, value: Any) -> Expression:
        return self._expr.less_than(self._attr, value)

    def greater_than(self, value: Any) -> Expression:
        return self._expr.greater_than(self._attr, value)

    def less_than_or_equal(self, value: Any) -> Expression:
        return self._expr.less_than_or_equal(self._attr, value)

    def greater_than_or_equal(self, value: Any) -> Expression:
        return self._expr.greater_than_or_equal(self._attr, value)

    def between(self, low: Any, high: Any) -> Expression:
        return self._expr.between(self._attr, low, high)

    def begins_with(self, prefix: Any) -> Expression:
        return self._expr.begins_with(self._attr, prefix)


def key(attr: str) -> ConditionKey:
    """Start a new expression with a condition on ``attr``."""
    return ConditionKey(Expression(), attr)

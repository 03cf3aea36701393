from __future__ import annotations

from collections.abc import Mapping
from dataclasses import MISSING, field, fields, is_dataclass
from decimal import Decimal
from typing import Any, Protocol, cast, get_args, get_origin, get_type_hints

from boto3.dynamodb.types import TypeDeserializer

from .compiler import to_dynamodb_value
from .errors import ValidationError


class ItemCodec[T](Protocol):
    def decode(self, item: Mapping[str, Any]) -> T: ...

    def encode(self, record: T) -> dict[str, Any]: ...


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, bytes, bytearray)) and len(value) == 0:
        return True
    if isinstance(value, (list, dict, set, tuple)) and len(value) == 0:
        return True
    return False


def _coerce_value(value: Any, annotation: Any) -> Any:
    if value is None:
        return None

    if annotation is int and isinstance(value, Decimal):
        return int(value)
    if annotation is float and isinstance(value, Decimal):
        return float(value)

    origin = get_origin(annotation)
    if origin is set and isinstance(value, set):
        (elem_type,) = get_args(annotation) or (Any,)
        return {_coerce_value(v, elem_type) for v in value}
    if origin is list and isinstance(value, list):
        (elem_type,) = get_args(annotation) or (Any,)
        return [_coerce_value(v, elem_type) for v in value]

    return value


class DictCodec:
    """Decode items to plain dicts of Python values (numbers become ``Decimal``)."""

    def __init__(self) -> None:
        self._deserializer = TypeDeserializer()

    def decode(self, item: Mapping[str, Any]) -> dict[str, Any]:
        return {k: self._deserializer.deserialize(v) for k, v in item.items()}

    def encode(self, record: Mapping[str, Any]) -> dict[str, Any]:
        if not isinstance(record, Mapping):
            raise ValidationError("record must be a mapping")
        return {str(k): to_dynamodb_value(v) for k, v in record.items()}


def attribute(
    *,
    name: str | None = None,
    omitempty: bool = False,
    default: Any = MISSING,
    default_factory: Any = MISSING,
) -> Any:
    """Declare how a dataclass field maps to a DynamoDB attribute."""
    if default is not MISSING and default_factory is not MISSING:
        raise ValueError("attribute: cannot set both default and default_factory")

    opts: dict[str, Any] = {"omitempty": omitempty}
    if name is not None:
        opts["name"] = name
    return field(default=default, default_factory=default_factory, metadata={"autoquery": opts})


class DataclassCodec[T]:
    """Map items to and from instances of a dataclass.

    Attribute names default to the field names; use :func:`attribute` to
    rename a field or to leave empty values out of encoded items. Attributes
    missing from an item (for example because the index projects only some
    attributes) fall back to the field's default.
    """

    def __init__(self, model_type: type[T]) -> None:
        if not is_dataclass(model_type):
            raise ValidationError("model_type must be a dataclass")
        self._model_type = model_type
        self._deserializer = TypeDeserializer()
        try:
            hints = get_type_hints(model_type)
        except Exception:
            hints = dict(getattr(model_type, "__annotations__", {}))
        self._fields: list[tuple[str, str, bool, Any]] = []
        for dc_field in fields(cast(Any, model_type)):
            opts = cast(dict[str, Any], dc_field.metadata.get("autoquery", {}))
            self._fields.append(
                (
                    dc_field.name,
                    str(opts.get("name", dc_field.name)),
                    bool(opts.get("omitempty", False)),
                    hints.get(dc_field.name, Any),
                )
            )

    @property
    def model_type(self) -> type[T]:
        return self._model_type

    def attribute_name(self, field_name: str) -> str:
        for name, attr, _, _ in self._fields:
            if name == field_name:
                return attr
        raise ValidationError(f"unknown field: {field_name}")

    def decode(self, item: Mapping[str, Any]) -> T:
        kwargs: dict[str, Any] = {}
        for name, attr, _, annotation in self._fields:
            if attr not in item:
                continue
            raw = self._deserializer.deserialize(item[attr])
            kwargs[name] = _coerce_value(raw, annotation)

        try:
            return self._model_type(**kwargs)
        except TypeError as err:
            raise ValidationError(str(err)) from err

    def encode(self, record: T) -> dict[str, Any]:
        if not isinstance(record, self._model_type):
            raise ValidationError(f"record must be a {self._model_type.__name__} instance")

        out: dict[str, Any] = {}
        for name, attr, omitempty, _ in self._fields:
            value = getattr(record, name)
            if omitempty and _is_empty(value):
                continue
            out[attr] = to_dynamodb_value(value)
        return out

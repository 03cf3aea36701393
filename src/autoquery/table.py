from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from .catalog import IndexCatalog, TableIndex
from .codec import DictCodec, ItemCodec
from .compiler import CompiledQuery
from .cursor import QueryCursor
from .errors import ValidationError
from .expression import Expression
from .selector import IndexEvaluation

if TYPE_CHECKING:
    from .client import Client


class Table[T]:
    """A :class:`Client` bound to one table name and one item codec."""

    def __init__(self, client: Client, name: str, *, codec: ItemCodec[T] | None = None) -> None:
        if not name:
            raise ValidationError("table name is required")
        self._client = client
        self._name = name
        self._codec: ItemCodec[Any] = codec if codec is not None else DictCodec()

    @property
    def name(self) -> str:
        return self._name

    @property
    def codec(self) -> ItemCodec[T]:
        return self._codec

    def index_catalog(self) -> IndexCatalog:
        return self._client.index_catalog(self._name)

    def choose_index(self, expr: Expression) -> TableIndex:
        return self._client.choose_index(self._name, expr)

    def explain(self, expr: Expression) -> list[IndexEvaluation]:
        return self._client.explain(self._name, expr)

    def compile(self, expr: Expression) -> CompiledQuery:
        return self._client.compile(self._name, expr)

    def query(self, expr: Expression) -> QueryCursor[T]:
        return self._client.query(self._name, expr, codec=self._codec)

    def query_all(self, expr: Expression, *, max_pages: int | None = None) -> list[T]:
        """Drain a query into a list, stopping after ``max_pages`` pages if given."""
        cursor = self.query(expr)
        if max_pages is not None:
            cursor.set_max_pagination(max_pages)
        return list(cursor)

    def get(self, key: Mapping[str, Any], *, consistent_read: bool = False) -> T:
        return self._client.get(self._name, key, consistent_read=consistent_read, codec=self._codec)

    def put(self, item: T) -> None:
        self._client.put(self._name, item, codec=self._codec)

    def forget_indexes(self) -> None:
        self._client.forget_table(self._name)

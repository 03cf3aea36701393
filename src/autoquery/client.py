from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from botocore.exceptions import ClientError

from .aws_errors import map_client_error
from .catalog import DEFAULT_SPARSENESS_THRESHOLD, IndexCatalog, TableIndex, build_index_catalog
from .codec import DictCodec, ItemCodec
from .compiler import CompiledQuery, compile_query, to_dynamodb_value
from .cursor import QueryCursor
from .errors import ItemNotFoundError, ValidationError
from .executor import DynamoDBQueryExecutor, QueryExecutor
from .expression import Expression
from .metadata import DynamoDBDescriptionProvider, TableDescriptionProvider
from .runtime import AwsCallMetric, ClientSettings, get_dynamodb_client
from .selector import IndexEvaluation, choose_index, explain_indexes

if TYPE_CHECKING:
    from .table import Table

logger = logging.getLogger(__name__)


class Client:
    """DynamoDB query client that picks the index for each query.

    Index metadata for a table is fetched on its first query and cached for
    the life of the client. The cache is never refreshed on its own: if a
    table's indexes or item counts change, call :meth:`forget_table` (or
    build a new client) to pick the changes up.
    """

    def __init__(
        self,
        client: Any | None = None,
        *,
        metadata_provider: TableDescriptionProvider | None = None,
        executor: QueryExecutor | None = None,
        sparseness_threshold: float = DEFAULT_SPARSENESS_THRESHOLD,
    ) -> None:
        self._client: Any = client or get_dynamodb_client()
        self._metadata_provider = metadata_provider or DynamoDBDescriptionProvider(self._client)
        self._executor = executor or DynamoDBQueryExecutor(self._client)
        self._sparseness_threshold = float(sparseness_threshold)
        self._catalogs: dict[str, IndexCatalog] = {}
        self._catalogs_lock = threading.Lock()
        self._default_codec = DictCodec()

    @classmethod
    def from_settings(
        cls,
        settings: ClientSettings | None = None,
        *,
        session: Any | None = None,
        metrics: Callable[[AwsCallMetric], None] | None = None,
    ) -> Client:
        settings = settings or ClientSettings.from_env()
        client = get_dynamodb_client(settings, session=session, metrics=metrics)
        return cls(client, sparseness_threshold=settings.sparseness_threshold)

    @property
    def sparseness_threshold(self) -> float:
        return self._sparseness_threshold

    def table[T](self, table_name: str, *, codec: ItemCodec[T] | None = None) -> Table[T]:
        from .table import Table

        return Table(self, table_name, codec=codec)

    def index_catalog(self, table_name: str) -> IndexCatalog:
        if not table_name:
            raise ValidationError("table_name is required")

        with self._catalogs_lock:
            cached = self._catalogs.get(table_name)
        if cached is not None:
            return cached

        # Fetch outside the lock; a concurrent duplicate fetch is discarded.
        descriptor = self._metadata_provider.describe(table_name)
        catalog = build_index_catalog(descriptor, sparseness_threshold=self._sparseness_threshold)
        if catalog.table_name != table_name:
            catalog = IndexCatalog(table_name=table_name, indexes=catalog.indexes)

        with self._catalogs_lock:
            stored = self._catalogs.setdefault(table_name, catalog)
        if stored is catalog:
            logger.debug("cached index catalog for %s (%d indexes)", table_name, len(catalog))
        return stored

    def forget_table(self, table_name: str) -> None:
        with self._catalogs_lock:
            dropped = self._catalogs.pop(table_name, None)
        if dropped is not None:
            logger.debug("dropped cached index catalog for %s", table_name)

    def forget_all(self) -> None:
        with self._catalogs_lock:
            self._catalogs.clear()

    def choose_index(self, table_name: str, expr: Expression) -> TableIndex:
        return choose_index(self.index_catalog(table_name), expr)

    def explain(self, table_name: str, expr: Expression) -> list[IndexEvaluation]:
        return explain_indexes(self.index_catalog(table_name), expr)

    def compile(self, table_name: str, expr: Expression) -> CompiledQuery:
        index = self.choose_index(table_name, expr)
        return compile_query(index, expr, table_name=table_name)

    def query[T](
        self,
        table_name: str,
        expr: Expression,
        *,
        codec: ItemCodec[T] | None = None,
    ) -> QueryCursor[T]:
        """Start a query; nothing is fetched until the cursor is first pulled."""
        if not table_name:
            raise ValidationError("table_name is required")
        return QueryCursor(
            planner=lambda: self.compile(table_name, expr),
            executor=self._executor,
            codec=codec if codec is not None else self._default_codec,
        )

    def get[T](
        self,
        table_name: str,
        key: Mapping[str, Any],
        *,
        consistent_read: bool = False,
        codec: ItemCodec[T] | None = None,
    ) -> T:
        if not key:
            raise ValidationError("key is required")

        try:
            resp = self._client.get_item(
                TableName=table_name,
                Key={str(k): to_dynamodb_value(v) for k, v in key.items()},
                ConsistentRead=consistent_read,
            )
        except ClientError as err:
            raise map_client_error(err) from err

        item = resp.get("Item")
        if not item:
            raise ItemNotFoundError()
        return (codec if codec is not None else self._default_codec).decode(item)

    def put[T](self, table_name: str, item: T, *, codec: ItemCodec[T] | None = None) -> None:
        encoded = (codec if codec is not None else self._default_codec).encode(item)
        try:
            self._client.put_item(TableName=table_name, Item=encoded)
        except ClientError as err:
            raise map_client_error(err) from err

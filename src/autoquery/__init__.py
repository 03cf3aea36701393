from __future__ import annotations

import json
import re
from importlib.resources import files
from typing import TYPE_CHECKING, Any

from .catalog import (
    DEFAULT_SPARSENESS_THRESHOLD,
    PRIMARY_INDEX_NAME,
    IndexCatalog,
    IndexDistribution,
    KeyRole,
    KeySchemaElement,
    Projection,
    ProjectionType,
    SecondaryIndexDescriptor,
    TableDescriptor,
    TableIndex,
    build_index_catalog,
)
from .errors import (
    ALL_ITEMS_PARSED,
    MAX_PAGINATION_REACHED,
    AutoqueryError,
    AwsError,
    IndexNotViableError,
    ItemNotFoundError,
    NoViableIndexesError,
    NotFoundError,
    ParsingCompleteError,
    ThrottlingError,
    ValidationError,
)
from .expression import Condition, ConditionKind, ConditionKey, Expression, FilterCondition, FilterGroup, key

if TYPE_CHECKING:
    from .client import Client
    from .codec import DataclassCodec, DictCodec, ItemCodec, attribute
    from .compiler import CompiledQuery, compile_query
    from .cursor import CursorState, QueryCursor
    from .executor import DynamoDBQueryExecutor, QueryExecutor, RawPage
    from .metadata import DynamoDBDescriptionProvider, StaticDescriptionProvider, TableDescriptionProvider
    from .runtime import (
        AwsCallMetric,
        ClientSettings,
        create_boto3_config,
        get_dynamodb_client,
        instrument_boto3_client,
        is_lambda_environment,
    )
    from .selector import IndexEvaluation, choose_index, explain_indexes, list_index_viability_infractions
    from .table import Table


def _read_repo_version() -> str:
    try:
        data = json.loads(files(__package__).joinpath("version.json").read_text(encoding="utf-8"))
    except Exception:
        return "0.0.0"

    version = data.get("version")
    return version if isinstance(version, str) and version else "0.0.0"


def _normalize_repo_version(repo_version: str) -> str:
    match = re.match(r"^(\d+\.\d+\.\d+)-rc\.?([0-9]+)$", repo_version)
    if match:
        return f"{match.group(1)}rc{match.group(2)}"
    return repo_version


__repo_version__ = _read_repo_version()
__version__ = _normalize_repo_version(__repo_version__)


def __getattr__(name: str) -> Any:
    if name == "Client":
        from .client import Client

        return Client
    if name == "Table":
        from .table import Table

        return Table
    if name in {"DataclassCodec", "DictCodec", "ItemCodec", "attribute"}:
        from . import codec

        return getattr(codec, name)
    if name in {"CompiledQuery", "compile_query"}:
        from . import compiler

        return getattr(compiler, name)
    if name in {"CursorState", "QueryCursor"}:
        from . import cursor

        return getattr(cursor, name)
    if name in {"DynamoDBQueryExecutor", "QueryExecutor", "RawPage"}:
        from . import executor

        return getattr(executor, name)
    if name in {"DynamoDBDescriptionProvider", "StaticDescriptionProvider", "TableDescriptionProvider"}:
        from . import metadata

        return getattr(metadata, name)
    if name in {
        "AwsCallMetric",
        "ClientSettings",
        "create_boto3_config",
        "get_dynamodb_client",
        "instrument_boto3_client",
        "is_lambda_environment",
    }:
        from . import runtime

        return getattr(runtime, name)
    if name in {"IndexEvaluation", "choose_index", "explain_indexes", "list_index_viability_infractions"}:
        from . import selector

        return getattr(selector, name)
    raise AttributeError(name)


__all__ = [
    "ALL_ITEMS_PARSED",
    "AutoqueryError",
    "AwsCallMetric",
    "AwsError",
    "build_index_catalog",
    "choose_index",
    "Client",
    "ClientSettings",
    "CompiledQuery",
    "compile_query",
    "Condition",
    "ConditionKey",
    "ConditionKind",
    "create_boto3_config",
    "CursorState",
    "DataclassCodec",
    "DEFAULT_SPARSENESS_THRESHOLD",
    "DictCodec",
    "DynamoDBDescriptionProvider",
    "DynamoDBQueryExecutor",
    "explain_indexes",
    "Expression",
    "FilterCondition",
    "FilterGroup",
    "get_dynamodb_client",
    "IndexCatalog",
    "IndexDistribution",
    "IndexEvaluation",
    "IndexNotViableError",
    "instrument_boto3_client",
    "is_lambda_environment",
    "ItemCodec",
    "ItemNotFoundError",
    "key",
    "KeyRole",
    "KeySchemaElement",
    "list_index_viability_infractions",
    "MAX_PAGINATION_REACHED",
    "NotFoundError",
    "NoViableIndexesError",
    "ParsingCompleteError",
    "PRIMARY_INDEX_NAME",
    "Projection",
    "ProjectionType",
    "QueryCursor",
    "QueryExecutor",
    "RawPage",
    "SecondaryIndexDescriptor",
    "StaticDescriptionProvider",
    "Table",
    "TableDescriptionProvider",
    "TableDescriptor",
    "TableIndex",
    "ThrottlingError",
    "ValidationError",
    "__repo_version__",
    "__version__",
    "attribute",
]

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from botocore.exceptions import ClientError

from .aws_errors import map_client_error


@dataclass(frozen=True)
class RawPage:
    items: list[dict[str, Any]]
    last_evaluated_key: dict[str, Any] | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)


class QueryExecutor(Protocol):
    def execute(self, request: Mapping[str, Any]) -> RawPage: ...


class DynamoDBQueryExecutor:
    """Run one page of a compiled query with the DynamoDB ``query`` call."""

    def __init__(self, client: Any) -> None:
        self._client = client

    def execute(self, request: Mapping[str, Any]) -> RawPage:
        try:
            resp = self._client.query(**request)
        except ClientError as err:
            raise map_client_error(err) from err

        return RawPage(
            items=list(resp.get("Items") or []),
            last_evaluated_key=resp.get("LastEvaluatedKey") or None,
            metadata={k: resp[k] for k in ("Count", "ScannedCount", "ConsumedCapacity") if k in resp},
        )

from __future__ import annotations

import json
from collections.abc import Sequence


class AutoqueryError(Exception):
    pass


class ValidationError(AutoqueryError):
    pass


class NotFoundError(AutoqueryError):
    pass


class ItemNotFoundError(NotFoundError):
    def __init__(self, message: str = "item not found") -> None:
        super().__init__(message)


class AwsError(AutoqueryError):
    def __init__(self, *, code: str, message: str) -> None:
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message


class ThrottlingError(AwsError):
    pass


class IndexNotViableError(AutoqueryError):
    """Raised (or collected) when an index cannot serve an expression.

    ``reasons`` lists every infraction found, in rule order.
    """

    def __init__(self, *, index_name: str, reasons: Sequence[str]) -> None:
        self.index_name = index_name
        self.reasons = tuple(reasons)
        super().__init__(f"index not viable for expression: {json.dumps(self.to_dict())}")

    def to_dict(self) -> dict[str, object]:
        return {"indexName": self.index_name, "notViableReasons": list(self.reasons)}


class NoViableIndexesError(AutoqueryError):
    """No index of the table can serve the expression.

    Carries one :class:`IndexNotViableError` per index, in catalog order.
    """

    def __init__(self, *, index_errors: Sequence[IndexNotViableError]) -> None:
        self.index_errors = tuple(index_errors)
        if not self.index_errors:
            super().__init__("no viable indexes found for expression")
            return
        rendered = json.dumps([err.to_dict() for err in self.index_errors], separators=(",", ":"))
        super().__init__(f"no viable indexes found for expression: {rendered}")

    def reasons_by_index(self) -> dict[str, tuple[str, ...]]:
        return {err.index_name: err.reasons for err in self.index_errors}


ALL_ITEMS_PARSED = "all items parsed"
MAX_PAGINATION_REACHED = "max pagination reached"


class ParsingCompleteError(AutoqueryError):
    """Signals the end of a cursor; not a failure."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"parsing complete: {reason}")
        self.reason = reason

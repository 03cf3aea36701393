from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import assert_never

from .catalog import MAX_SPARSITY_MULTIPLIER, IndexCatalog, TableIndex
from .errors import IndexNotViableError, NoViableIndexesError
from .expression import ConditionKind, Expression

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndexEvaluation:
    index: TableIndex
    infractions: tuple[str, ...]
    score: float

    @property
    def viable(self) -> bool:
        return not self.infractions


def list_index_viability_infractions(index: TableIndex, expr: Expression) -> list[str]:
    reasons: list[str] = []

    partition_condition = expr.condition(index.partition_key)
    if partition_condition is None or partition_condition.kind is not ConditionKind.EQUAL:
        reasons.append(f"missing Equal condition on attribute: {index.partition_key}")

    if expr.is_consistent_read and not index.consistent_readable:
        reasons.append("global secondary index does not support consistent read")

    if expr.order_specified and expr.order_attribute != index.sort_key:
        reasons.append(
            f"expression specifies order, so it requires an index with sort key: {expr.order_attribute}"
        )

    if not index.includes_all_attributes:
        if expr.attributes_specified:
            missing: list[str] = []
            for attr in expr.attributes:
                if attr not in index.attribute_set and attr not in missing:
                    missing.append(attr)
            if missing:
                reasons.append(f"index does not include attributes: {', '.join(missing)}")
        else:
            reasons.append("expression does not select attributes, so it requires an index that projects all")

    # the Equal requirement on the partition key covers the other half of sparseness
    if index.is_sparse and index.sort_key is not None:
        referenced = index.sort_key in expr.conditions or expr.order_attribute == index.sort_key
        if not referenced:
            reasons.append(f"expression does not reference sparse index sort key: {index.sort_key}")

    return reasons


def sort_key_condition_multiplier(kind: ConditionKind | None, *, is_composite: bool) -> float:
    """Preference for the kind of condition on an index's sort key.

    These are heuristics: EQUAL narrows the most, BETWEEN and BEGINS_WITH
    usually narrow more than open ranges, and no sort key condition at all
    is discouraged. Non-composite indexes are neutral.
    """
    if not is_composite:
        return 1.0

    match kind:
        case None:
            return 0.2
        case ConditionKind.EQUAL:
            return 2.5
        case ConditionKind.BETWEEN:
            return 1.8
        case ConditionKind.BEGINS_WITH:
            return 1.5
        case (
            ConditionKind.LESS_THAN
            | ConditionKind.GREATER_THAN
            | ConditionKind.LESS_THAN_OR_EQUAL
            | ConditionKind.GREATER_THAN_OR_EQUAL
        ):
            return 1.0
        case _:
            assert_never(kind)


def score_index(index: TableIndex, expr: Expression) -> float:
    """Score a viable index; higher is better.

    A viable index that currently holds no items means the query has no
    results, so it wins outright. This relies on item counts captured with
    the catalog and goes stale if the index later gains items.
    """
    if index.has_max_sparsity_multiplier:
        return MAX_SPARSITY_MULTIPLIER

    condition = expr.condition(index.sort_key) if index.is_composite else None
    kind = condition.kind if condition is not None else None
    return index.sparsity_multiplier * sort_key_condition_multiplier(kind, is_composite=index.is_composite)


def evaluate_index(index: TableIndex, expr: Expression) -> IndexEvaluation:
    infractions = tuple(list_index_viability_infractions(index, expr))
    score = 0.0 if infractions else score_index(index, expr)
    return IndexEvaluation(index=index, infractions=infractions, score=score)


def explain_indexes(catalog: IndexCatalog, expr: Expression) -> list[IndexEvaluation]:
    return [evaluate_index(index, expr) for index in catalog]


def choose_index(catalog: IndexCatalog, expr: Expression) -> TableIndex:
    best: TableIndex | None = None
    best_score = 0.0
    errors: list[IndexNotViableError] = []

    for evaluation in explain_indexes(catalog, expr):
        if not evaluation.viable:
            errors.append(
                IndexNotViableError(index_name=evaluation.index.name, reasons=evaluation.infractions)
            )
        elif evaluation.score > best_score:
            best = evaluation.index
            best_score = evaluation.score

    if best is None:
        raise NoViableIndexesError(index_errors=errors)

    logger.debug("chose index %s for table %s (score=%s)", best.name, catalog.table_name, best_score)
    return best

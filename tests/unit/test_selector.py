from __future__ import annotations

import pytest

from autoquery import (
    PRIMARY_INDEX_NAME,
    ConditionKind,
    Expression,
    NoViableIndexesError,
    TableDescriptor,
    build_index_catalog,
)
from autoquery.catalog import MAX_SPARSITY_MULTIPLIER, IndexCatalog
from autoquery.selector import (
    choose_index,
    evaluate_index,
    explain_indexes,
    list_index_viability_infractions,
    score_index,
    sort_key_condition_multiplier,
)
from autoquery.testkit import describe_table_response, gsi, lsi


def _catalog(
    partition_key: str,
    sort_key: str | None = None,
    *,
    item_count: int = 100,
    gsis: list[dict] | None = None,
    lsis: list[dict] | None = None,
    sparseness_threshold: float = 1.1,
) -> IndexCatalog:
    desc = TableDescriptor.from_describe_table(
        describe_table_response(
            "tbl",
            partition_key,
            sort_key,
            item_count=item_count,
            gsis=gsis or [],
            lsis=lsis or [],
        )
    )
    return build_index_catalog(desc, sparseness_threshold=sparseness_threshold)


def _movies() -> IndexCatalog:
    return _catalog("director", "title", gsis=[gsi("ratingIndex", "rating", item_count=100)])


def test_movies_expression_uses_primary_index() -> None:
    catalog = _movies()
    expr = Expression().equal("director", "Clint Eastwood").begins_with("title", "The ")

    assert choose_index(catalog, expr).name == PRIMARY_INDEX_NAME

    evaluations = {e.index.name: e for e in explain_indexes(catalog, expr)}
    assert evaluations[PRIMARY_INDEX_NAME].viable is True
    assert evaluations["ratingIndex"].infractions == ("missing Equal condition on attribute: rating",)
    assert evaluations["ratingIndex"].score == 0.0


def test_select_against_keys_only_index() -> None:
    catalog = _catalog(
        "id",
        "year",
        gsis=[
            gsi("keys", "director", projection="KEYS_ONLY", item_count=100),
            gsi("all", "director", item_count=100),
        ],
    )
    expr = Expression().equal("director", "Clint Eastwood").select("title")

    assert list_index_viability_infractions(catalog.get("keys"), expr) == [
        "index does not include attributes: title"
    ]
    assert list_index_viability_infractions(catalog.get("all"), expr) == []


def test_missing_attributes_are_listed_once_in_order() -> None:
    catalog = _catalog("id", gsis=[gsi("inc", "a", projection="INCLUDE", include=["x"], item_count=1)])
    expr = Expression().equal("a", 1).select("z", "x", "y", "z")

    assert list_index_viability_infractions(catalog.get("inc"), expr) == [
        "index does not include attributes: z, y"
    ]


def test_partial_projection_requires_select() -> None:
    catalog = _catalog("id", gsis=[gsi("keys", "a", projection="KEYS_ONLY", item_count=1)])

    assert list_index_viability_infractions(catalog.get("keys"), Expression().equal("a", 1)) == [
        "expression does not select attributes, so it requires an index that projects all"
    ]
    assert list_index_viability_infractions(catalog.get("keys"), Expression().equal("a", 1).select()) == []


def test_partition_key_needs_equal_condition() -> None:
    catalog = _catalog("id")
    expr = Expression().begins_with("id", "x")
    assert list_index_viability_infractions(catalog.primary, expr) == ["missing Equal condition on attribute: id"]


def test_consistent_read_rules_out_global_indexes() -> None:
    catalog = _catalog(
        "user",
        "ts",
        gsis=[gsi("g", "user", item_count=100)],
        lsis=[lsi("l", "user", "ts2", item_count=100)],
        sparseness_threshold=0,
    )
    expr = Expression().equal("user", "u1").consistent_read()

    assert list_index_viability_infractions(catalog.get("g"), expr) == [
        "global secondary index does not support consistent read"
    ]
    assert list_index_viability_infractions(catalog.get("l"), expr) == []
    assert list_index_viability_infractions(catalog.primary, expr) == []


def test_order_requires_matching_sort_key() -> None:
    catalog = _catalog("user", "ts", gsis=[gsi("g", "user", "status", item_count=100)], sparseness_threshold=0)
    expr = Expression().equal("user", "u1").order_by("ts", ascending=False)

    assert list_index_viability_infractions(catalog.get("g"), expr) == [
        "expression specifies order, so it requires an index with sort key: ts"
    ]
    assert choose_index(catalog, expr).name == PRIMARY_INDEX_NAME


def test_sparse_index_needs_its_sort_key_referenced() -> None:
    catalog = _catalog("user", "ts", gsis=[gsi("byStatus", "user", "status", item_count=50)])
    idx = catalog.get("byStatus")
    assert idx.is_sparse is True

    unreferenced = Expression().equal("user", "u1")
    assert list_index_viability_infractions(idx, unreferenced) == [
        "expression does not reference sparse index sort key: status"
    ]
    assert choose_index(catalog, unreferenced).name == PRIMARY_INDEX_NAME

    by_condition = Expression().equal("user", "u1").equal("status", "open")
    assert list_index_viability_infractions(idx, by_condition) == []
    assert choose_index(catalog, by_condition).name == "byStatus"

    by_order = Expression().equal("user", "u1").order_by("status")
    assert list_index_viability_infractions(idx, by_order) == []


def test_infractions_accumulate_in_rule_order() -> None:
    catalog = _catalog("user", "ts", gsis=[gsi("g", "a", "b", projection="KEYS_ONLY", item_count=10)])
    expr = Expression().consistent_read().order_by("c")

    assert list_index_viability_infractions(catalog.get("g"), expr) == [
        "missing Equal condition on attribute: a",
        "global secondary index does not support consistent read",
        "expression specifies order, so it requires an index with sort key: c",
        "expression does not select attributes, so it requires an index that projects all",
        "expression does not reference sparse index sort key: b",
    ]


@pytest.mark.parametrize(
    ("kind", "expected"),
    [
        (ConditionKind.EQUAL, 2.5),
        (ConditionKind.BETWEEN, 1.8),
        (ConditionKind.BEGINS_WITH, 1.5),
        (ConditionKind.LESS_THAN, 1.0),
        (ConditionKind.GREATER_THAN, 1.0),
        (ConditionKind.LESS_THAN_OR_EQUAL, 1.0),
        (ConditionKind.GREATER_THAN_OR_EQUAL, 1.0),
        (None, 0.2),
    ],
)
def test_sort_key_condition_multiplier(kind: ConditionKind | None, expected: float) -> None:
    assert sort_key_condition_multiplier(kind, is_composite=True) == expected
    assert sort_key_condition_multiplier(kind, is_composite=False) == 1.0


def test_score_combines_sparsity_and_sort_key_condition() -> None:
    catalog = _catalog(
        "user",
        "ts",
        gsis=[gsi("g", "user", "status", item_count=25), gsi("h", "user", item_count=50)],
    )

    assert score_index(catalog.primary, Expression().equal("user", 1)) == pytest.approx(0.2)
    assert score_index(catalog.primary, Expression().equal("user", 1).between("ts", 1, 2)) == pytest.approx(1.8)
    assert score_index(catalog.get("g"), Expression().equal("user", 1).equal("status", "x")) == pytest.approx(10.0)
    assert score_index(catalog.get("h"), Expression().equal("user", 1)) == pytest.approx(2.0)


def test_empty_index_scores_maximal_and_wins() -> None:
    catalog = _catalog("user", "ts", gsis=[gsi("empty", "user", item_count=0)])
    expr = Expression().equal("user", "u1").equal("ts", 5)

    assert score_index(catalog.get("empty"), expr) == MAX_SPARSITY_MULTIPLIER
    assert choose_index(catalog, expr).name == "empty"


def test_ties_go_to_the_first_index_in_catalog_order() -> None:
    catalog = _catalog(
        "user",
        "ts",
        gsis=[gsi("first", "user", item_count=100), gsi("second", "user", item_count=100)],
    )
    expr = Expression().equal("user", "u1")

    scores = {e.index.name: e.score for e in explain_indexes(catalog, expr)}
    assert scores["first"] == scores["second"] == 1.0
    assert choose_index(catalog, expr).name == "first"


def test_no_viable_index_reports_every_index() -> None:
    catalog = _movies()
    expr = Expression().equal("title", "Unforgiven")

    with pytest.raises(NoViableIndexesError, match="no viable indexes found for expression") as exc:
        choose_index(catalog, expr)

    assert exc.value.reasons_by_index() == {
        PRIMARY_INDEX_NAME: ("missing Equal condition on attribute: director",),
        "ratingIndex": ("missing Equal condition on attribute: rating",),
    }
    assert [e.index_name for e in exc.value.index_errors] == [PRIMARY_INDEX_NAME, "ratingIndex"]


def test_evaluation_is_pure() -> None:
    catalog = _catalog("user", "ts", gsis=[gsi("g", "user", "status", item_count=30)])
    expr = Expression().equal("user", "u1").begins_with("status", "o").select("user")

    for idx in catalog:
        assert evaluate_index(idx, expr) == evaluate_index(idx, expr)
    assert choose_index(catalog, expr) == choose_index(catalog, expr)


@pytest.mark.parametrize(
    "expr",
    [
        Expression().equal("user", "u1"),
        Expression().equal("user", "u1").equal("ts", 3),
        Expression().equal("user", "u1").begins_with("status", "o"),
        Expression().equal("user", "u1").between("status", "a", "m").select("user", "ts"),
        Expression().equal("org", "o1").order_by("status"),
        Expression().equal("org", "o1").consistent_read(),
        Expression().equal("user", "u1").consistent_read().order_by("ts2", ascending=False),
    ],
)
def test_chosen_index_is_viable_and_best_scored(expr: Expression) -> None:
    catalog = _catalog(
        "user",
        "ts",
        item_count=1000,
        gsis=[
            gsi("byStatus", "user", "status", item_count=400),
            gsi("byOrg", "org", "status", projection="KEYS_ONLY", item_count=900),
            gsi("byOrgAll", "org", item_count=1000),
        ],
        lsis=[lsi("byTs2", "user", "ts2", item_count=100)],
        sparseness_threshold=0.5,
    )

    evaluations = explain_indexes(catalog, expr)
    viable = [e for e in evaluations if e.viable]
    if not viable:
        with pytest.raises(NoViableIndexesError):
            choose_index(catalog, expr)
        return

    chosen = choose_index(catalog, expr)
    chosen_eval = next(e for e in evaluations if e.index.name == chosen.name)
    assert chosen_eval.viable
    assert all(e.score <= chosen_eval.score for e in viable)

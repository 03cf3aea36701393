from __future__ import annotations

from autoquery import Condition, ConditionKind, Expression, FilterCondition, FilterGroup, key


def test_condition_methods_record_kind_and_values() -> None:
    expr = (
        Expression()
        .equal("a", 1)
        .less_than("b", 2)
        .greater_than("c", 3)
        .less_than_or_equal("d", 4)
        .greater_than_or_equal("e", 5)
        .between("f", 6, 7)
        .begins_with("g", "x")
    )

    assert expr.conditions == {
        "a": Condition(kind=ConditionKind.EQUAL, values=(1,)),
        "b": Condition(kind=ConditionKind.LESS_THAN, values=(2,)),
        "c": Condition(kind=ConditionKind.GREATER_THAN, values=(3,)),
        "d": Condition(kind=ConditionKind.LESS_THAN_OR_EQUAL, values=(4,)),
        "e": Condition(kind=ConditionKind.GREATER_THAN_OR_EQUAL, values=(5,)),
        "f": Condition(kind=ConditionKind.BETWEEN, values=(6, 7)),
        "g": Condition(kind=ConditionKind.BEGINS_WITH, values=("x",)),
    }


def test_last_condition_on_an_attribute_wins() -> None:
    expr = Expression().equal("a", 1).less_than("a", 2)

    assert len(expr.conditions) == 1
    assert expr.condition("a") == Condition.less_than(2)


def test_condition_lookup_for_missing_or_none_attribute() -> None:
    expr = Expression().equal("a", 1)
    assert expr.condition("b") is None
    assert expr.condition(None) is None


def test_defaults() -> None:
    expr = Expression()
    assert expr.conditions == {}
    assert expr.attributes_specified is False
    assert expr.attributes == ()
    assert expr.order_specified is False
    assert expr.order_attribute is None
    assert expr.order_ascending is True
    assert expr.is_consistent_read is False
    assert expr.predicates == ()


def test_select_accumulates_and_empty_select_counts() -> None:
    expr = Expression().select()
    assert expr.attributes_specified is True
    assert expr.attributes == ()

    expr.select("a", "b").select("c")
    assert expr.attributes == ("a", "b", "c")


def test_order_and_consistent_read() -> None:
    expr = Expression().order_by("year", ascending=False).consistent_read()
    assert expr.order_specified is True
    assert expr.order_attribute == "year"
    assert expr.order_ascending is False
    assert expr.is_consistent_read is True

    expr.consistent_read(False)
    assert expr.is_consistent_read is False


def test_key_starts_a_chain() -> None:
    expr = key("director").equal("Clint Eastwood").and_("title").begins_with("The ")

    assert expr.condition("director") == Condition.equal("Clint Eastwood")
    assert expr.condition("title") == Condition.begins_with("The ")


def test_filter_predicates_accumulate_in_order() -> None:
    first = FilterCondition.eq("status", "active")
    second = FilterGroup.or_(FilterCondition.exists("tag"), FilterCondition.lt("n", 3))

    expr = Expression().filter(first).filter(second)

    assert expr.predicates == (first, second)
    assert second.op == "OR"


def test_conditions_view_tracks_later_changes() -> None:
    expr = Expression().equal("a", 1)
    view = expr.conditions
    expr.equal("b", 2)
    assert set(view) == {"a", "b"}

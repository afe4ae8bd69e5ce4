"""Unit tests for installment detection and grouping"""

import pytest
from datetime import date
from cashwise_engine.domain.installments import (
    find_plan,
    group_installments,
    installment_start_key,
    match_installment,
)
from cashwise_engine.domain.models import InstallmentMatch

from conftest import txn


@pytest.mark.parametrize(
    "description, expected",
    [
        ("Laptop (1/3)", InstallmentMatch(index=1, total=3, base="Laptop")),
        ("  Sofa   (12/12)  ", InstallmentMatch(index=12, total=12, base="Sofa")),
        ("TV(2/10)", InstallmentMatch(index=2, total=10, base="TV")),
        ("Phone (01/06)", InstallmentMatch(index=1, total=6, base="Phone")),
        ("(1/2)", InstallmentMatch(index=1, total=2, base="")),
    ],
)
def test_match_installment_valid_suffix(description, expected):
    assert match_installment(description) == expected


@pytest.mark.parametrize(
    "description",
    [
        "Groceries",
        "Laptop (4/3)",  # index beyond total
        "Laptop (0/3)",
        "Laptop (1/0)",
        "Laptop (a/3)",
        "Laptop (1/3) extra",  # suffix not trailing
        "Laptop (1-3)",
        "Laptop (-1/3)",
        "",
        None,
    ],
)
def test_match_installment_rejects_everything_else(description):
    assert match_installment(description) is None


def test_group_installments_single_plan(laptop_transactions):
    """Three monthly laptop payments form one plan anchored at the first month"""
    plans = group_installments(laptop_transactions)

    assert len(plans) == 1
    plan = plans[0]
    assert plan.base == "Laptop"
    assert plan.total == 3
    assert plan.currency == "EUR"
    assert plan.start_key == "2024-01-10"
    assert [m.index for m in plan.members] == [1, 2, 3]
    assert [m.transaction.id for m in plan.members] == ["1", "2", "3"]


def test_group_installments_member_order_independent_of_input(laptop_transactions):
    plans = group_installments(list(reversed(laptop_transactions)))
    assert [m.index for m in plans[0].members] == [1, 2, 3]


def test_group_installments_is_idempotent(laptop_transactions):
    extra = [
        txn("10", "Laptop (1/3)", 300, date(2024, 5, 10)),
        txn("11", "Bike (2/4)", 50, date(2024, 2, 1), currency="USD"),
    ]
    first = group_installments(laptop_transactions + extra)
    second = group_installments(laptop_transactions + extra)

    assert [p.key for p in first] == [p.key for p in second]
    assert [[m.transaction.id for m in p.members] for p in first] == [
        [m.transaction.id for m in p.members] for p in second
    ]


def test_group_installments_separates_plans_by_start_anchor():
    """Same description and total but bought months apart stay separate"""
    transactions = [
        txn("a1", "Phone (1/2)", 100, date(2024, 1, 5)),
        txn("a2", "Phone (2/2)", 100, date(2024, 2, 5)),
        txn("b1", "Phone (1/2)", 100, date(2024, 6, 5)),
        txn("b2", "Phone (2/2)", 100, date(2024, 7, 5)),
    ]
    plans = group_installments(transactions)

    assert [p.start_key for p in plans] == ["2024-01-05", "2024-06-05"]
    assert [[m.transaction.id for m in p.members] for p in plans] == [["a1", "a2"], ["b1", "b2"]]


def test_group_installments_separates_by_currency():
    transactions = [
        txn("1", "Course (1/2)", 100, date(2024, 1, 5), currency="EUR"),
        txn("2", "Course (2/2)", 100, date(2024, 2, 5), currency="USD"),
    ]
    assert len(group_installments(transactions)) == 2


def test_group_installments_splits_duplicate_indexes():
    """Two identical purchases on the same day never share an index within a plan"""
    transactions = [
        txn("x1", "Chair (1/2)", 80, date(2024, 3, 1)),
        txn("y1", "Chair (1/2)", 80, date(2024, 3, 1)),
        txn("x2", "Chair (2/2)", 80, date(2024, 4, 1)),
    ]
    plans = group_installments(transactions)

    assert len(plans) == 2
    for plan in plans:
        indexes = [m.index for m in plan.members]
        assert len(indexes) == len(set(indexes))
    assert [m.transaction.id for m in plans[0].members] == ["x1", "x2"]
    assert [m.transaction.id for m in plans[1].members] == ["y1"]
    assert plans[1].key == plans[0].key + "#2"


def test_group_installments_singleton_plan():
    """A lone member still forms a plan; member count may be below total"""
    plans = group_installments([txn("1", "Fridge (3/10)", 90, date(2024, 5, 20))])

    assert len(plans) == 1
    assert plans[0].total == 10
    assert len(plans[0].members) == 1
    assert plans[0].start_key == "2024-03-20"


def test_group_installments_ignores_plain_transactions():
    assert group_installments([txn("1", "Rent", 900, date(2024, 1, 1))]) == []


def test_group_installments_prefers_explicit_group_id():
    transactions = [
        txn("1", "Bike (1/2)", 60, date(2024, 1, 31), group_id="g-1"),
        txn("2", "Bike (2/2)", 60, date(2024, 3, 2), group_id="g-1"),  # irregular spacing
    ]
    plans = group_installments(transactions)

    assert len(plans) == 1
    assert plans[0].key == "group:g-1"
    assert [m.index for m in plans[0].members] == [1, 2]


def test_explicit_group_splits_repeated_indexes():
    transactions = [
        txn("a", "Bike (1/2)", 60, date(2024, 1, 31), group_id="g-1"),
        txn("b", "Bike (1/2)", 60, date(2024, 2, 29), group_id="g-1"),
        txn("c", "Bike (2/2)", 60, date(2024, 3, 31), group_id="g-1"),
    ]
    plans = group_installments(transactions)

    assert [[m.index for m in p.members] for p in plans] == [[1, 2], [1]]
    assert [[m.transaction.id for m in p.members] for p in plans] == [["a", "c"], ["b"]]
    assert [p.key for p in plans] == ["group:g-1", "group:g-1#2"]


def test_installment_start_key_clamps_to_month_end():
    transaction = txn("1", "Desk (2/3)", 100, date(2024, 3, 31))
    match = match_installment(transaction.description)
    assert installment_start_key(transaction, match) == "2024-02-29"


def test_plan_progress(laptop_transactions):
    plan = group_installments(laptop_transactions)[0]
    today = date(2024, 2, 20)

    assert plan.paid_count(today) == 2
    assert plan.remaining_count(today) == 1
    assert plan.next_member(today).index == 3
    assert plan.next_member(date(2024, 4, 1)) is None


def test_find_plan(laptop_transactions):
    plan = find_plan(laptop_transactions[1], laptop_transactions)
    assert plan is not None
    assert plan.base == "Laptop"
    assert find_plan(laptop_transactions[3], laptop_transactions) is None

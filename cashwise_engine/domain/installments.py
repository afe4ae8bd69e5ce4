"""Installment detection and grouping for multi-payment purchases"""

import re
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from cashwise_engine.domain.models import (
    InstallmentMatch,
    InstallmentMember,
    InstallmentPlan,
    Transaction,
)
from cashwise_engine.utils.date_utils import add_months

INSTALLMENT_SUFFIX = re.compile(r"\s*\((\d+)/(\d+)\)$")


def match_installment(description: Optional[str]) -> Optional[InstallmentMatch]:
    """
    Parse a trailing `(index/total)` suffix.

    "Laptop (2/3)" -> InstallmentMatch(index=2, total=3, base="Laptop").
    Anything else, including `(0/3)` or `(4/3)`, is a plain transaction.
    """
    if not description:
        return None
    text = description.strip()
    match = INSTALLMENT_SUFFIX.search(text)
    if not match:
        return None
    index, total = int(match.group(1)), int(match.group(2))
    if index < 1 or total < 1 or index > total:
        return None
    return InstallmentMatch(index=index, total=total, base=text[: match.start()].strip())


def is_installment(transaction: Transaction) -> bool:
    return match_installment(transaction.description) is not None


def installment_start_key(transaction: Transaction, match: InstallmentMatch) -> str:
    """ISO date of the plan's first installment, inferred from one member"""
    return add_months(transaction.date, -(match.index - 1)).isoformat()


def _split_by_position(by_index: Dict[int, List[Transaction]], make_plan) -> List[InstallmentPlan]:
    """Deal repeated indexes out to parallel plans in (date, id) order"""
    copies = max(len(items) for items in by_index.values())
    split = [make_plan(part) for part in range(copies)]
    for index in sorted(by_index):
        ordered = sorted(by_index[index], key=lambda t: (t.date, str(t.id)))
        for position, txn in enumerate(ordered):
            split[position].members.append(InstallmentMember(transaction=txn, index=index))
    return split


def group_installments(transactions: Iterable[Transaction]) -> List[InstallmentPlan]:
    """
    Partition installment transactions into plans.

    Identity is (base, total, currency, start_key). Plans sharing a
    description and total stay apart when their start months differ. If the
    same identity holds the same index twice, the copies are dealt out to
    separate plans in (date, id) order so every plan keeps unique indexes.

    Transactions carrying an explicit group_id are grouped by that id alone,
    with the same split applied to repeated indexes.

    Assumes a monthly cadence between installments; irregular entries may
    land in different plans.
    """
    buckets: Dict[Tuple[str, int, str, str], Dict[int, List[Transaction]]] = defaultdict(
        lambda: defaultdict(list)
    )
    explicit: Dict[str, Dict[int, List[Transaction]]] = defaultdict(lambda: defaultdict(list))
    for txn in transactions:
        match = match_installment(txn.description)
        if match is None:
            continue
        if txn.group_id:
            explicit[txn.group_id][match.index].append(txn)
            continue
        identity = (match.base, match.total, txn.currency, installment_start_key(txn, match))
        buckets[identity][match.index].append(txn)

    plans: List[InstallmentPlan] = []
    for group_id, by_index in explicit.items():
        first = min(by_index[min(by_index)], key=lambda t: (t.date, str(t.id)))
        first_match = match_installment(first.description)
        plans.extend(
            _split_by_position(
                by_index,
                lambda part: InstallmentPlan(
                    base=first_match.base,
                    total=first_match.total,
                    currency=first.currency,
                    start_key=installment_start_key(first, first_match),
                    group_id=group_id,
                    part=part,
                ),
            )
        )

    for identity, by_index in buckets.items():
        base, total, currency, start_key = identity
        plans.extend(
            _split_by_position(
                by_index,
                lambda part: InstallmentPlan(
                    base=base, total=total, currency=currency, start_key=start_key, part=part
                ),
            )
        )

    plans.sort(
        key=lambda p: (p.start_key, p.base, p.total, p.currency, p.group_id or "", p.part)
    )
    return plans


def find_plan(
    transaction: Transaction, transactions: Iterable[Transaction]
) -> Optional[InstallmentPlan]:
    """Plan that contains `transaction`, or None for plain transactions"""
    if not is_installment(transaction):
        return None
    for plan in group_installments(transactions):
        if any(m.transaction.id == transaction.id for m in plan.members):
            return plan
    return None


def installments_between(
    transactions: Iterable[Transaction], start: date, end: date
) -> List[Transaction]:
    """Installment members dated within [start, end]"""
    return [
        txn
        for txn in transactions
        if start <= txn.date <= end and is_installment(txn)
    ]

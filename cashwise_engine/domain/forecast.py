"""Near-term spending forecast in the base currency"""

from datetime import date
from decimal import Decimal
from typing import Awaitable, Callable, Iterable, List, Optional

from cashwise_engine.domain.installments import installments_between
from cashwise_engine.domain.models import (
    Budget,
    ForecastSummary,
    MonthlyForecast,
    Subscription,
    Transaction,
)
from cashwise_engine.domain.recurrence import active_subscriptions, monthly_cost
from cashwise_engine.utils.date_utils import add_months, local_today, month_bounds

# (amount, source currency) -> amount in base currency
Converter = Callable[[Decimal, str], Awaitable[Decimal]]


async def _sum_converted(transactions: Iterable[Transaction], convert: Converter) -> Decimal:
    total = Decimal("0")
    for txn in transactions:
        total += await convert(txn.amount, txn.currency)
    return total


async def monthly_subscriptions_total(
    subscriptions: Iterable[Subscription], convert: Converter
) -> Decimal:
    """Prorated monthly cost of every active subscription"""
    total = Decimal("0")
    for sub in active_subscriptions(subscriptions):
        total += await convert(monthly_cost(sub), sub.currency)
    return total


async def compute_forecast(
    transactions: List[Transaction],
    subscriptions: List[Subscription],
    budgets: Optional[Iterable[Budget]],
    convert: Converter,
    *,
    today: Optional[date] = None,
    incomes: Iterable[Transaction] = (),
) -> ForecastSummary:
    """
    Summarize the current calendar month.

    - spent: every transaction dated this month
    - forecast: installments still open this month (dated today or later)
      plus the monthly cost of active subscriptions
    - budget_total / budget_remaining: None when no budgets exist

    `budgets=None` means the budget source was unavailable and counts as no
    budgets. Conversion failures propagate to the caller; amounts are never
    summed unconverted.
    """
    today = today or local_today()
    month_start, month_end = month_bounds(today)

    this_month = [t for t in transactions if month_start <= t.date <= month_end]
    spent = await _sum_converted(this_month, convert)

    open_installments = installments_between(transactions, today, month_end)
    forecast = await _sum_converted(open_installments, convert)
    forecast += await monthly_subscriptions_total(subscriptions, convert)

    budget_total: Optional[Decimal] = None
    for budget in budgets or ():
        converted = await convert(budget.limit, budget.currency)
        budget_total = converted if budget_total is None else budget_total + converted
    budget_remaining = budget_total - spent if budget_total is not None else None

    earned = await _sum_converted(
        (i for i in incomes if month_start <= i.date <= month_end), convert
    )

    return ForecastSummary(
        spent=spent,
        forecast=forecast,
        budget_total=budget_total,
        budget_remaining=budget_remaining,
        earned=earned,
        balance=earned - spent,
    )


async def forecast_months(
    transactions: List[Transaction],
    subscriptions: List[Subscription],
    convert: Converter,
    *,
    count: int = 3,
    today: Optional[date] = None,
) -> List[MonthlyForecast]:
    """Installments and subscription costs for each of the next `count` months"""
    today = today or local_today()
    subscriptions_total = await monthly_subscriptions_total(subscriptions, convert)

    months = []
    for offset in range(1, count + 1):
        month_start, month_end = month_bounds(add_months(today.replace(day=1), offset))
        installments_total = await _sum_converted(
            installments_between(transactions, month_start, month_end), convert
        )
        months.append(
            MonthlyForecast(
                year=month_start.year,
                month=month_start.month,
                subscriptions_total=subscriptions_total,
                installments_total=installments_total,
            )
        )
    return months

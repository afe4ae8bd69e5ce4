"""GET /v1/forecast - current-month spending summary and outlook"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from cashwise_engine.api.dependencies import get_finance_client, get_fx_client, get_request_id
from cashwise_engine.api.v1.schemas import (
    ForecastResponse,
    MonthlyForecastResponse,
    MonthlyForecastSchema,
)
from cashwise_engine.domain.exceptions import CurrencyConversionError, DataSourceError
from cashwise_engine.domain.forecast import compute_forecast, forecast_months
from cashwise_engine.infrastructure.clients.currency import FxRateClient
from cashwise_engine.infrastructure.clients.finance_api import FinanceApiClient
from cashwise_engine.infrastructure.observability.metrics import data_source_failures_counter

router = APIRouter()


@router.get("/forecast", response_model=ForecastResponse)
async def get_forecast(
    request: Request,
    finance_client: FinanceApiClient = Depends(get_finance_client),
    fx_client: FxRateClient = Depends(get_fx_client),
):
    """
    Monthly summary in the base currency.

    Flow:
    1. Fetch transactions, subscriptions and incomes (failure -> 503)
    2. Fetch budgets (failure -> treated as no budgets)
    3. Convert and aggregate (conversion failure -> 502)
    """
    request_id = get_request_id(request)

    try:
        transactions = await finance_client.list_transactions()
        subscriptions = await finance_client.list_subscriptions()
        incomes = await finance_client.list_incomes()
    except DataSourceError as e:
        data_source_failures_counter.inc()
        logging.error(f"Finance API error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Finance service unavailable")

    try:
        budgets = await finance_client.list_budgets()
    except DataSourceError as e:
        logging.warning(f"Budgets unavailable, continuing without: {e}", extra={"request_id": request_id})
        budgets = None

    try:
        summary = await compute_forecast(
            transactions, subscriptions, budgets, fx_client.convert, incomes=incomes
        )
    except CurrencyConversionError as e:
        logging.error(f"Currency conversion failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=502, detail="Currency conversion unavailable")

    return ForecastResponse(
        currency=fx_client.base_currency,
        spent=summary.spent,
        forecast=summary.forecast,
        budget_total=summary.budget_total,
        budget_remaining=summary.budget_remaining,
        earned=summary.earned,
        balance=summary.balance,
    )


@router.get("/forecast/months", response_model=MonthlyForecastResponse)
async def get_monthly_forecast(
    request: Request,
    count: int = Query(3, ge=1, le=12),
    finance_client: FinanceApiClient = Depends(get_finance_client),
    fx_client: FxRateClient = Depends(get_fx_client),
):
    """Installments and subscriptions for each of the next `count` months"""
    request_id = get_request_id(request)

    try:
        transactions = await finance_client.list_transactions()
        subscriptions = await finance_client.list_subscriptions()
    except DataSourceError as e:
        data_source_failures_counter.inc()
        logging.error(f"Finance API error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Finance service unavailable")

    try:
        months = await forecast_months(transactions, subscriptions, fx_client.convert, count=count)
    except CurrencyConversionError as e:
        logging.error(f"Currency conversion failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=502, detail="Currency conversion unavailable")

    return MonthlyForecastResponse(
        currency=fx_client.base_currency,
        months=[
            MonthlyForecastSchema(
                year=m.year,
                month=m.month,
                subscriptions_total=m.subscriptions_total,
                installments_total=m.installments_total,
                combined_total=m.combined_total,
            )
            for m in months
        ],
    )

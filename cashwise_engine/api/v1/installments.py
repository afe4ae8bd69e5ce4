"""Installment plan listing and lookup, subscription occurrence projection"""

import logging
from datetime import date, timedelta
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from cashwise_engine.api.dependencies import get_finance_client, get_request_id
from cashwise_engine.api.v1.schemas import (
    InstallmentMemberSchema,
    InstallmentPlanSchema,
    InstallmentPlansResponse,
    OccurrenceSchema,
    OccurrencesResponse,
)
from cashwise_engine.domain.exceptions import DataSourceError
from cashwise_engine.domain.installments import find_plan, group_installments
from cashwise_engine.domain.models import InstallmentPlan
from cashwise_engine.domain.recurrence import project_occurrences
from cashwise_engine.infrastructure.clients.finance_api import FinanceApiClient
from cashwise_engine.infrastructure.observability.metrics import data_source_failures_counter
from cashwise_engine.utils.date_utils import local_today

router = APIRouter()


def _plan_schema(plan: InstallmentPlan, today: date) -> InstallmentPlanSchema:
    next_member = plan.next_member(today)
    return InstallmentPlanSchema(
        key=plan.key,
        base=plan.base,
        total=plan.total,
        currency=plan.currency,
        start_key=plan.start_key,
        paid_count=plan.paid_count(today),
        remaining_count=plan.remaining_count(today),
        next_due_date=next_member.transaction.date if next_member else None,
        members=[
            InstallmentMemberSchema(
                transaction_id=m.transaction.id,
                index=m.index,
                date=m.transaction.date,
                amount=m.transaction.amount,
            )
            for m in plan.members
        ],
    )


async def _fetch_transactions(finance_client: FinanceApiClient, request: Request):
    try:
        return await finance_client.list_transactions()
    except DataSourceError as e:
        data_source_failures_counter.inc()
        logging.error(f"Finance API error: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=503, detail="Finance service unavailable")


@router.get("/installments", response_model=InstallmentPlansResponse)
async def list_installment_plans(
    request: Request,
    finance_client: FinanceApiClient = Depends(get_finance_client),
):
    """Installment plans grouped from the current transaction snapshot"""
    transactions = await _fetch_transactions(finance_client, request)
    today = local_today()
    return InstallmentPlansResponse(
        plans=[_plan_schema(plan, today) for plan in group_installments(transactions)]
    )


@router.get("/installments/{transaction_id}", response_model=InstallmentPlanSchema)
async def get_installment_plan(
    transaction_id: str,
    request: Request,
    finance_client: FinanceApiClient = Depends(get_finance_client),
):
    """
    Plan containing one transaction.

    Raises:
        HTTPException: 404 if the transaction is unknown or not an installment
    """
    transactions = await _fetch_transactions(finance_client, request)
    transaction = next((t for t in transactions if t.id == transaction_id), None)
    plan = find_plan(transaction, transactions) if transaction else None
    if plan is None:
        raise HTTPException(status_code=404, detail="Installment plan not found")
    return _plan_schema(plan, local_today())


@router.get("/subscriptions/{subscription_id}/occurrences", response_model=OccurrencesResponse)
async def list_occurrences(
    subscription_id: str,
    request: Request,
    days: int = Query(45, ge=0, le=366),
    finance_client: FinanceApiClient = Depends(get_finance_client),
):
    """Projected due dates of one subscription within the next `days` days"""
    try:
        subscriptions = await finance_client.list_subscriptions()
    except DataSourceError as e:
        data_source_failures_counter.inc()
        logging.error(f"Finance API error: {e}", extra={"request_id": get_request_id(request)})
        raise HTTPException(status_code=503, detail="Finance service unavailable")

    subscription = next((s for s in subscriptions if s.id == subscription_id), None)
    if subscription is None:
        raise HTTPException(status_code=404, detail="Subscription not found")

    today = local_today()
    horizon_end = today + timedelta(days=days)
    occurrences = project_occurrences(subscription, horizon_end, today=today)
    return OccurrencesResponse(
        subscription_id=subscription.id,
        horizon_end=horizon_end,
        occurrences=[
            OccurrenceSchema(due_date=o.due_date, amount=o.amount, currency=o.currency)
            for o in occurrences
        ],
    )

"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field, field_validator
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional


class InstallmentMemberSchema(BaseModel):
    """Single transaction inside an installment plan"""

    transaction_id: str
    index: int
    date: date
    amount: Decimal


class InstallmentPlanSchema(BaseModel):
    """Installment plan derived from the current transactions"""

    key: str
    base: str
    total: int
    currency: str
    start_key: str
    paid_count: int
    remaining_count: int
    next_due_date: Optional[date] = None
    members: List[InstallmentMemberSchema]


class InstallmentPlansResponse(BaseModel):
    """Response for GET /v1/installments"""

    plans: List[InstallmentPlanSchema]


class OccurrenceSchema(BaseModel):
    due_date: date
    amount: Decimal
    currency: str


class OccurrencesResponse(BaseModel):
    """Response for GET /v1/subscriptions/{subscription_id}/occurrences"""

    subscription_id: str
    horizon_end: date
    occurrences: List[OccurrenceSchema]


class ForecastResponse(BaseModel):
    """Response for GET /v1/forecast (amounts in the base currency)"""

    currency: str
    spent: Decimal
    forecast: Decimal
    budget_total: Optional[Decimal] = None
    budget_remaining: Optional[Decimal] = None
    earned: Decimal
    balance: Decimal


class MonthlyForecastSchema(BaseModel):
    year: int
    month: int
    subscriptions_total: Decimal
    installments_total: Decimal
    combined_total: Decimal


class MonthlyForecastResponse(BaseModel):
    """Response for GET /v1/forecast/months"""

    currency: str
    months: List[MonthlyForecastSchema]


class ReminderSettingsSchema(BaseModel):
    """Reminder preferences, request and response body"""

    enabled: bool = False
    time: str = Field("09:00", pattern=r"^\d{1,2}:\d{2}$")
    days_before: List[int] = Field(default_factory=lambda: [0, 1, 2])

    @field_validator("time")
    @classmethod
    def valid_clock_time(cls, value: str) -> str:
        hour, minute = (int(part) for part in value.split(":"))
        if hour > 23 or minute > 59:
            raise ValueError("time must be a valid HH:MM between 00:00 and 23:59")
        return value

    @field_validator("days_before")
    @classmethod
    def non_negative(cls, value: List[int]) -> List[int]:
        if any(day < 0 for day in value):
            raise ValueError("days_before must be non-negative")
        return value


class ReminderPreviewItem(BaseModel):
    dedup_key: str
    trigger_at: datetime
    title: str
    body: str


class ReminderPreviewResponse(BaseModel):
    """Response for GET /v1/reminders/preview"""

    reminders: List[ReminderPreviewItem]
    skipped_duplicates: int


class ScheduledReminderItem(BaseModel):
    id: str
    trigger_at: datetime
    title: str
    body: str


class ScheduledRemindersResponse(BaseModel):
    """Response for GET /v1/reminders/scheduled"""

    reminders: List[ScheduledReminderItem]


class RebuildResponse(BaseModel):
    """Response for POST /v1/reminders/rebuild"""

    status: str
    scheduled: int
    skipped_duplicates: int

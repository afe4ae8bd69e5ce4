"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple


class Frequency(str, Enum):
    MONTHLY = "MONTHLY"
    WEEKLY = "WEEKLY"
    YEARLY = "YEARLY"


@dataclass(frozen=True)
class Transaction:
    """Expense (or income) record fetched from the finance API"""

    id: str
    description: str
    amount: Decimal
    currency: str
    date: date
    category: Optional[str] = None
    group_id: Optional[str] = None  # explicit installment plan id, when the backend set one


@dataclass(frozen=True)
class InstallmentMatch:
    """Parsed `(index/total)` suffix of a transaction description"""

    index: int
    total: int
    base: str


@dataclass(frozen=True)
class InstallmentMember:
    """Transaction tagged with its position inside a plan"""

    transaction: Transaction
    index: int


@dataclass
class InstallmentPlan:
    """Transactions belonging to one installment purchase (derived, never stored)"""

    base: str
    total: int
    currency: str
    start_key: str  # ISO date of the first installment
    members: List[InstallmentMember] = field(default_factory=list)
    group_id: Optional[str] = None
    part: int = 0  # position among plans split off the same identity or group

    @property
    def key(self) -> str:
        if self.group_id:
            key = f"group:{self.group_id}"
        else:
            key = f"{self.base}|{self.total}|{self.currency}|{self.start_key}"
        return f"{key}#{self.part + 1}" if self.part else key

    @property
    def identity(self) -> Tuple[str, int, str, str]:
        return (self.base, self.total, self.currency, self.start_key)

    def paid_count(self, today: date) -> int:
        return sum(1 for m in self.members if m.transaction.date < today)

    def remaining_count(self, today: date) -> int:
        return self.total - self.paid_count(today)

    def next_member(self, today: date) -> Optional[InstallmentMember]:
        for member in self.members:
            if member.transaction.date >= today:
                return member
        return None


@dataclass(frozen=True)
class Subscription:
    """Open-ended recurring charge; next_due_date is owned by the backend"""

    id: str
    description: str
    amount: Decimal
    currency: str
    frequency: Frequency
    next_due_date: date
    category: Optional[str] = None
    day_of_month: Optional[int] = None  # 1..28, None = follow the cursor's day
    active: bool = True


@dataclass(frozen=True)
class Occurrence:
    """Single projected due date of a subscription"""

    subscription_id: str
    due_date: date
    amount: Decimal
    currency: str


@dataclass(frozen=True)
class Budget:
    """Per-category spending ceiling"""

    category: str
    limit: Decimal
    currency: str


DEFAULT_REMINDER_TIME = "09:00"
DEFAULT_DAYS_BEFORE: Tuple[int, ...] = (0, 1, 2)


@dataclass(frozen=True)
class ReminderSettings:
    """User reminder preferences persisted in the settings store"""

    enabled: bool = False
    time: str = DEFAULT_REMINDER_TIME
    days_before: Tuple[int, ...] = DEFAULT_DAYS_BEFORE


@dataclass(frozen=True)
class ScheduledReminder:
    """Reminder computed during a rebuild, before it is handed to the notifier"""

    dedup_key: str
    trigger_at: datetime
    title: str
    body: str


@dataclass
class ForecastSummary:
    """Current-month spending figures in the base currency"""

    spent: Decimal
    forecast: Decimal
    budget_total: Optional[Decimal]
    budget_remaining: Optional[Decimal]
    earned: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")


@dataclass
class MonthlyForecast:
    """Projected obligations for one upcoming calendar month"""

    year: int
    month: int
    subscriptions_total: Decimal
    installments_total: Decimal

    @property
    def combined_total(self) -> Decimal:
        return self.subscriptions_total + self.installments_total


class RebuildStatus(str, Enum):
    DISABLED = "disabled"
    PERMISSION_DENIED = "permission_denied"
    SCHEDULED = "scheduled"


@dataclass
class RebuildResult:
    """Outcome of one reminder rebuild"""

    status: RebuildStatus
    scheduled: int = 0
    skipped_duplicates: int = 0

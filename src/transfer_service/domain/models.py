from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from decimal import Decimal
from typing import NewType

from transfer_service.domain.exceptions import (
    ActivityAlreadyPersistedError,
    CurrencyMismatchError,
    InsufficientFundsError,
    MissingAccountIdError,
)


AccountId = NewType("AccountId", int)
ActivityId = NewType("ActivityId", int)

DEFAULT_CURRENCY = "AUD"


@dataclass(frozen=True)
class Money:
    """Signed amount of minor currency units tagged with an ISO 4217 code."""

    amount: int
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise ValueError("Amount must be an integer number of minor units")
        if len(self.currency) != 3:
            raise ValueError("Currency must be ISO 4217 code (3 characters)")

    @classmethod
    def of(cls, amount: int | Decimal, currency: str = DEFAULT_CURRENCY) -> "Money":
        if isinstance(amount, Decimal):
            if amount != amount.to_integral_value():
                raise ValueError(f"Amount {amount} is not a whole number of minor units")
            amount = int(amount)
        return cls(amount, currency)

    @classmethod
    def zero(cls, currency: str = DEFAULT_CURRENCY) -> "Money":
        return cls(0, currency)

    def _check_currency(self, other: "Money") -> None:
        if self.currency != other.currency:
            raise CurrencyMismatchError(self.currency, other.currency)

    def add(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(self.amount + other.amount, self.currency)

    def subtract(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(self.amount - other.amount, self.currency)

    def negate(self) -> "Money":
        return Money(-self.amount, self.currency)

    def is_zero(self) -> bool:
        return self.amount == 0

    def is_positive(self) -> bool:
        return self.amount > 0

    def is_positive_or_zero(self) -> bool:
        return self.amount >= 0

    def is_negative(self) -> bool:
        return self.amount < 0

    def greater_than(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount > other.amount

    def greater_than_or_equal_to(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount >= other.amount

    def less_than(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.amount < other.amount

    __add__ = add
    __sub__ = subtract
    __neg__ = negate
    __gt__ = greater_than
    __ge__ = greater_than_or_equal_to
    __lt__ = less_than

    def __le__(self, other: "Money") -> bool:
        return not self.greater_than(other)

    def __str__(self) -> str:
        return f"{self.amount} {self.currency}"


@dataclass(frozen=True)
class Activity:
    """A money movement from source to target, as seen from the owning account."""

    owner_account_id: AccountId
    source_account_id: AccountId
    target_account_id: AccountId
    timestamp: datetime
    money: Money
    id: ActivityId | None = None

    @classmethod
    def create(
        cls,
        owner_account_id: AccountId,
        source_account_id: AccountId,
        target_account_id: AccountId,
        money: Money,
        timestamp: datetime | None = None,
    ) -> "Activity":
        return cls(
            owner_account_id=owner_account_id,
            source_account_id=source_account_id,
            target_account_id=target_account_id,
            timestamp=timestamp or datetime.now(UTC),
            money=money,
        )

    @property
    def is_persisted(self) -> bool:
        return self.id is not None

    def with_id(self, activity_id: ActivityId) -> "Activity":
        if self.id is not None:
            raise ActivityAlreadyPersistedError(self.id)
        return replace(self, id=activity_id)


@dataclass
class ActivityWindow:
    """Activities of one account back to some baseline date, in append order."""

    activities: list[Activity] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.activities)

    def __iter__(self) -> Iterator[Activity]:
        return iter(self.activities)

    @property
    def start_timestamp(self) -> datetime | None:
        """Timestamp of the earliest activity, or None for an empty window."""
        return min((activity.timestamp for activity in self.activities), default=None)

    @property
    def end_timestamp(self) -> datetime | None:
        """Timestamp of the latest activity, or None for an empty window."""
        return max((activity.timestamp for activity in self.activities), default=None)

    def calculate_balance(self, account_id: AccountId, currency: str = DEFAULT_CURRENCY) -> Money:
        """Sum of deposits into minus withdrawals from the given account."""
        deposits = Money.zero(currency)
        withdrawals = Money.zero(currency)
        for activity in self.activities:
            if activity.target_account_id == account_id:
                deposits = deposits + activity.money
            if activity.source_account_id == account_id:
                withdrawals = withdrawals + activity.money
        return deposits - withdrawals

    def add_activity(self, activity: Activity) -> None:
        self.activities.append(activity)

    def unpersisted_activities(self) -> list[Activity]:
        return [activity for activity in self.activities if activity.id is None]


@dataclass
class Account:
    """
    An account with a baseline balance and the window of its latest activities.

    The baseline balance is the balance before the first activity in the window.
    """

    id: AccountId | None
    baseline_balance: Money
    activity_window: ActivityWindow = field(default_factory=ActivityWindow)

    @classmethod
    def with_id(
        cls,
        account_id: AccountId,
        baseline_balance: Money,
        activity_window: ActivityWindow | None = None,
    ) -> "Account":
        return cls(account_id, baseline_balance, activity_window if activity_window is not None else ActivityWindow())

    @classmethod
    def without_id(
        cls,
        baseline_balance: Money,
        activity_window: ActivityWindow | None = None,
    ) -> "Account":
        return cls(None, baseline_balance, activity_window if activity_window is not None else ActivityWindow())

    @property
    def currency(self) -> str:
        return self.baseline_balance.currency

    def calculate_balance(self) -> Money:
        if self.id is None:
            window_balance = Money.zero(self.currency)
        else:
            window_balance = self.activity_window.calculate_balance(self.id, self.currency)
        return self.baseline_balance + window_balance

    def withdraw(self, money: Money, target_account_id: AccountId) -> Activity:
        if self.id is None:
            raise MissingAccountIdError("source")

        available = self.calculate_balance()
        if (available - money).is_negative():
            raise InsufficientFundsError(self.id, required=money, available=available)

        activity = Activity.create(
            owner_account_id=self.id,
            source_account_id=self.id,
            target_account_id=target_account_id,
            money=money,
        )
        self.activity_window.add_activity(activity)
        return activity

    def deposit(self, money: Money, source_account_id: AccountId) -> Activity:
        if self.id is None:
            raise MissingAccountIdError("target")

        activity = Activity.create(
            owner_account_id=self.id,
            source_account_id=source_account_id,
            target_account_id=self.id,
            money=money,
        )
        self.activity_window.add_activity(activity)
        return activity

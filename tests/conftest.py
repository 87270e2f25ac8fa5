"""Shared pytest fixtures and in-memory port implementations for transfer service tests."""

from datetime import UTC, datetime, timedelta
from itertools import count

import pytest

from transfer_service.application.services import MoneyTransferProperties
from transfer_service.domain.exceptions import AccountNotFoundError
from transfer_service.domain.models import (
    Account,
    AccountId,
    Activity,
    ActivityId,
    ActivityWindow,
    Money,
)


DEFAULT_START = datetime(2019, 8, 3, tzinfo=UTC)


def create_activity(
    owner_account_id: int = 42,
    source_account_id: int = 42,
    target_account_id: int = 41,
    amount: int = 999,
    timestamp: datetime | None = None,
    activity_id: int | None = None,
    currency: str = "AUD",
) -> Activity:
    """Helper to create an Activity with custom values."""
    return Activity(
        id=ActivityId(activity_id) if activity_id is not None else None,
        owner_account_id=AccountId(owner_account_id),
        source_account_id=AccountId(source_account_id),
        target_account_id=AccountId(target_account_id),
        timestamp=timestamp or DEFAULT_START,
        money=Money(amount, currency),
    )


def create_account(
    account_id: int | None = 42,
    baseline: int = 999,
    activities: list[Activity] | None = None,
    currency: str = "AUD",
) -> Account:
    """Helper to create an Account with custom values."""
    return Account(
        id=AccountId(account_id) if account_id is not None else None,
        baseline_balance=Money(baseline, currency),
        activity_window=ActivityWindow(list(activities or [])),
    )


class InMemoryLoadAccountPort:
    """LoadAccountPort over a dict of accounts; records every call."""

    def __init__(self, accounts: list[Account] | None = None) -> None:
        self.accounts: dict[int | None, Account] = {account.id: account for account in accounts or []}
        self.calls: list[tuple[AccountId, datetime]] = []
        self.failure: Exception | None = None

    async def load_account(self, account_id: AccountId, baseline_date: datetime) -> Account:
        self.calls.append((account_id, baseline_date))
        if self.failure is not None:
            raise self.failure
        try:
            return self.accounts[account_id]
        except KeyError:
            raise AccountNotFoundError(account_id) from None


class InMemoryUpdateAccountStatePort:
    """UpdateAccountStatePort that assigns sequential ids to unpersisted activities."""

    def __init__(self) -> None:
        self.updated_accounts: list[AccountId | None] = []
        self.persisted: list[Activity] = []
        self.fail_for: set[int] = set()
        self._ids = count(1000)

    async def update_activities(self, account: Account) -> list[Activity]:
        if account.id in self.fail_for:
            raise ConnectionError(f"database unavailable for account {account.id}")
        self.updated_accounts.append(account.id)
        saved = [
            activity.with_id(ActivityId(next(self._ids)))
            for activity in account.activity_window.unpersisted_activities()
        ]
        self.persisted.extend(saved)
        return saved


class RecordingAccountLock:
    """AccountLock that records lock/release calls in order."""

    def __init__(self, fail_on_lock: set[int] | None = None) -> None:
        self.events: list[tuple[str, AccountId]] = []
        self.held: set[AccountId] = set()
        self.fail_on_lock = fail_on_lock or set()

    async def lock_account(self, account_id: AccountId) -> None:
        if account_id in self.fail_on_lock:
            raise TimeoutError(f"lock for {account_id} timed out")
        self.events.append(("lock", account_id))
        self.held.add(account_id)

    async def release_account(self, account_id: AccountId) -> None:
        self.events.append(("release", account_id))
        self.held.discard(account_id)

    def locked_ids(self) -> list[AccountId]:
        return [account_id for action, account_id in self.events if action == "lock"]

    def released_ids(self) -> list[AccountId]:
        return [account_id for action, account_id in self.events if action == "release"]


@pytest.fixture
def properties() -> MoneyTransferProperties:
    """Default transfer rules: 1,000,000 AUD ceiling, 10 day lookback."""
    return MoneyTransferProperties(
        maximum_transfer_threshold=Money(1_000_000, "AUD"),
        lookback=timedelta(days=10),
    )


@pytest.fixture
def source_account() -> Account:
    """Source account with a balance of 1000."""
    return create_account(account_id=41, baseline=1000)


@pytest.fixture
def target_account() -> Account:
    """Target account with a balance of 500."""
    return create_account(account_id=42, baseline=500)


@pytest.fixture
def load_account_port(source_account: Account, target_account: Account) -> InMemoryLoadAccountPort:
    return InMemoryLoadAccountPort([source_account, target_account])


@pytest.fixture
def update_account_state_port() -> InMemoryUpdateAccountStatePort:
    return InMemoryUpdateAccountStatePort()


@pytest.fixture
def account_lock() -> RecordingAccountLock:
    return RecordingAccountLock()

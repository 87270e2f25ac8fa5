"""Ports the application core depends on but does not implement."""

from datetime import datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from transfer_service.domain.models import Account, AccountId, Activity, Money


if TYPE_CHECKING:
    from transfer_service.application.services import SendMoneyCommand, SendMoneyResult


@runtime_checkable
class LoadAccountPort(Protocol):
    async def load_account(self, account_id: AccountId, baseline_date: datetime) -> Account:
        """
        Load an account with its activities at or after `baseline_date`.

        The returned baseline balance nets every activity strictly before
        `baseline_date`. Raises AccountNotFoundError for unknown ids.
        """
        ...


@runtime_checkable
class UpdateAccountStatePort(Protocol):
    async def update_activities(self, account: Account) -> list[Activity]:
        """Persist the account's activities that have no id yet and return them with ids."""
        ...


@runtime_checkable
class AccountLock(Protocol):
    """
    Per-account mutual exclusion.

    Every successful `lock_account` must be paired with exactly one
    `release_account` for the same id. Releasing an id that is not held
    is a no-op.
    """

    async def lock_account(self, account_id: AccountId) -> None: ...

    async def release_account(self, account_id: AccountId) -> None: ...


class SendMoneyUseCase(Protocol):
    async def send_money(self, command: "SendMoneyCommand") -> "SendMoneyResult": ...


class GetAccountBalanceQuery(Protocol):
    async def get_account_balance(self, account_id: AccountId) -> Money: ...

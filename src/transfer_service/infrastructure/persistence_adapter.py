from datetime import datetime

import structlog

from transfer_service.domain.exceptions import AccountNotFoundError
from transfer_service.domain.models import Account, AccountId, Activity
from transfer_service.infrastructure.account_mapper import AccountMapper
from transfer_service.infrastructure.database import Database
from transfer_service.infrastructure.repositories import AccountRepository, ActivityRepository


logger = structlog.get_logger()


class AccountPersistenceAdapter:
    """
    PostgreSQL implementation of the load-account and update-account-state ports.

    Each port call runs in its own session. `update_activities` commits before
    returning, so new activities are durable before the caller releases its
    account lock.
    """

    def __init__(self, database: Database, currency: str) -> None:
        self._database = database
        self._mapper = AccountMapper(currency=currency)

    async def load_account(self, account_id: AccountId, baseline_date: datetime) -> Account:
        async with self._database.session() as session:
            accounts = AccountRepository(session)
            activities = ActivityRepository(session)

            if not await accounts.exists(account_id):
                raise AccountNotFoundError(account_id)

            rows = await activities.find_by_owner_since(account_id, baseline_date)
            withdrawal_balance = await activities.get_withdrawal_balance_until(account_id, baseline_date)
            deposit_balance = await activities.get_deposit_balance_until(account_id, baseline_date)

        logger.debug(
            "account_loaded",
            account_id=account_id,
            activities=len(rows),
            baseline_date=baseline_date.isoformat(),
        )
        return self._mapper.to_account(account_id, rows, withdrawal_balance, deposit_balance)

    async def update_activities(self, account: Account) -> list[Activity]:
        pending = account.activity_window.unpersisted_activities()
        if not pending:
            return []

        async with self._database.session() as session:
            activities = ActivityRepository(session)
            saved = [await activities.save(self._mapper.to_row(activity)) for activity in pending]
            await session.commit()

        persisted = [self._mapper.to_activity(row) for row in saved]
        logger.info(
            "activities_saved",
            account_id=account.id,
            activity_ids=[activity.id for activity in persisted],
        )
        return persisted

    async def create_account(self) -> AccountId:
        async with self._database.session() as session:
            account_id = await AccountRepository(session).create()
            await session.commit()
        logger.info("account_created", account_id=account_id)
        return AccountId(account_id)

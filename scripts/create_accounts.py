#!/usr/bin/env python3
"""Create empty accounts and optionally fund them.

Funding is recorded as a real transfer from a dedicated funding account: a
withdrawal owned by the funding account and a deposit owned by the new
account. The funding account has no baseline, so its balance goes negative
by exactly the amount issued and the ledger as a whole sums to zero.

Usage: python scripts/create_accounts.py COUNT [INITIAL_AMOUNT]
"""
import asyncio
import sys

import structlog

from transfer_service.application.ports import UpdateAccountStatePort
from transfer_service.config import settings
from transfer_service.domain.models import Account, AccountId, Activity, Money
from transfer_service.infrastructure.database import Database
from transfer_service.infrastructure.persistence_adapter import AccountPersistenceAdapter
from transfer_service.logging import configure_logging


logger = structlog.get_logger()


async def fund_account(
    port: UpdateAccountStatePort,
    funding_account_id: AccountId,
    account_id: AccountId,
    money: Money,
) -> None:
    funding_account = Account.with_id(funding_account_id, Money.zero(money.currency))
    # Bypasses withdraw(): the funding account is allowed to go negative.
    funding_account.activity_window.add_activity(
        Activity.create(
            owner_account_id=funding_account_id,
            source_account_id=funding_account_id,
            target_account_id=account_id,
            money=money,
        )
    )
    account = Account.with_id(account_id, Money.zero(money.currency))
    account.deposit(money, funding_account_id)

    await port.update_activities(funding_account)
    await port.update_activities(account)


async def main(count: int, initial_amount: int) -> None:
    configure_logging(level=settings.log_level, log_format="console")

    database = Database(settings.database_url)
    adapter = AccountPersistenceAdapter(database, currency=settings.currency)

    try:
        funding_account_id = await adapter.create_account() if initial_amount > 0 else None

        for _ in range(count):
            account_id = await adapter.create_account()
            if funding_account_id is not None:
                await fund_account(adapter, funding_account_id, account_id, Money(initial_amount, settings.currency))
            logger.info("account_ready", account_id=account_id, initial_amount=initial_amount)

        if funding_account_id is not None:
            logger.info("funding_account_ready", account_id=funding_account_id, issued=initial_amount * count)
    finally:
        await database.close()


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(__doc__)
        raise SystemExit(1)

    asyncio.run(main(int(sys.argv[1]), int(sys.argv[2]) if len(sys.argv) > 2 else 0))

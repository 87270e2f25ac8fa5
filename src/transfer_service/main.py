import asyncio
import signal
from typing import NoReturn

import structlog
from fastapi import FastAPI

from transfer_service.api.http_app import create_app
from transfer_service.api.http_server import HttpServer
from transfer_service.application.services import (
    GetAccountBalanceService,
    MoneyTransferProperties,
    SendMoneyService,
)
from transfer_service.config import Settings, settings
from transfer_service.infrastructure.database import Database
from transfer_service.infrastructure.locks import create_account_lock
from transfer_service.infrastructure.persistence_adapter import AccountPersistenceAdapter
from transfer_service.infrastructure.redis_client import RedisClient
from transfer_service.logging import configure_logging


logger = structlog.get_logger()


def build_app(
    config: Settings,
    database: Database,
    redis_client: RedisClient | None = None,
) -> FastAPI:
    persistence_adapter = AccountPersistenceAdapter(database, currency=config.currency)
    account_lock = create_account_lock(config, redis_client)

    send_money_service = SendMoneyService(
        load_account_port=persistence_adapter,
        account_lock=account_lock,
        update_account_state_port=persistence_adapter,
        properties=MoneyTransferProperties.from_settings(config),
    )
    balance_service = GetAccountBalanceService(persistence_adapter)

    health_checks = {"database": database.health_check}
    if redis_client is not None:
        health_checks["redis"] = redis_client.health_check

    return create_app(
        send_money_use_case=send_money_service,
        get_account_balance_query=balance_service,
        currency=config.currency,
        metrics_enabled=config.metrics_enabled,
        health_checks=health_checks,
    )


async def main() -> NoReturn:
    configure_logging(
        level=settings.log_level,
        log_format=settings.log_format,
    )

    logger.info(
        "starting_transfer_service",
        http_port=settings.http_port,
        log_level=settings.log_level,
        lock_backend=settings.lock_backend,
        maximum_transfer_threshold=settings.maximum_transfer_threshold,
        lookback_days=settings.lookback_days,
    )

    database = Database(settings.database_url)

    redis_client: RedisClient | None = None
    if settings.lock_backend == "redis":
        redis_client = RedisClient(settings.redis_url)
        await redis_client.connect()

    server = HttpServer(
        build_app(settings, database, redis_client),
        host=settings.http_host,
        port=settings.http_port,
    )

    loop = asyncio.get_running_loop()

    async def shutdown() -> None:
        logger.info("shutting_down")
        await server.stop()
        if redis_client:
            await redis_client.close()
        await database.close()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: asyncio.create_task(shutdown()),
        )

    await server.start()
    await server.wait_for_termination()

    raise SystemExit(0)


if __name__ == "__main__":
    asyncio.run(main())

"""Application layer - ports, services and use cases."""

from transfer_service.application.ports import (
    AccountLock,
    GetAccountBalanceQuery,
    LoadAccountPort,
    SendMoneyUseCase,
    UpdateAccountStatePort,
)
from transfer_service.application.services import (
    GetAccountBalanceService,
    MoneyTransferProperties,
    SendMoneyCommand,
    SendMoneyResult,
    SendMoneyService,
    TransferStatus,
)


__all__ = [
    "AccountLock",
    "GetAccountBalanceQuery",
    "GetAccountBalanceService",
    "LoadAccountPort",
    "MoneyTransferProperties",
    "SendMoneyCommand",
    "SendMoneyResult",
    "SendMoneyService",
    "SendMoneyUseCase",
    "TransferStatus",
    "UpdateAccountStatePort",
]

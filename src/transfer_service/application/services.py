from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Any

import structlog

from transfer_service.application.ports import (
    AccountLock,
    LoadAccountPort,
    UpdateAccountStatePort,
)
from transfer_service.domain.exceptions import (
    InsufficientFundsError,
    MissingAccountIdError,
    PartialTransferError,
    ThresholdExceededError,
)
from transfer_service.domain.models import (
    DEFAULT_CURRENCY,
    Account,
    AccountId,
    Activity,
    Money,
)
from transfer_service.infrastructure.metrics import (
    TRANSFER_REQUESTS_TOTAL,
    track_transfer_duration,
)


if TYPE_CHECKING:
    from transfer_service.config import Settings

logger = structlog.get_logger()


class TransferStatus(Enum):
    COMPLETED = "COMPLETED"
    DECLINED = "DECLINED"


@dataclass(frozen=True)
class MoneyTransferProperties:
    maximum_transfer_threshold: Money = field(default_factory=lambda: Money(1_000_000, DEFAULT_CURRENCY))
    lookback: timedelta = timedelta(days=10)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "MoneyTransferProperties":
        return cls(
            maximum_transfer_threshold=Money(settings.maximum_transfer_threshold, settings.currency),
            lookback=timedelta(days=settings.lookback_days),
        )


@dataclass(frozen=True)
class SendMoneyCommand:
    source_account_id: AccountId
    target_account_id: AccountId
    money: Money

    def __post_init__(self) -> None:
        if not self.money.is_positive():
            raise ValueError("Amount must be positive")
        if self.source_account_id == self.target_account_id:
            raise ValueError("Cannot transfer to the same account")


@dataclass
class SendMoneyResult:
    status: TransferStatus
    error_code: str | None = None
    error_message: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    source_activity: Activity | None = None
    target_activity: Activity | None = None
    processed_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def succeeded(self) -> bool:
        return self.status == TransferStatus.COMPLETED


class SendMoneyService:
    """
    Moves money between two accounts.

    Source is locked and debited before target is locked and credited.
    Whatever locks were taken are released, target first, on every exit path.
    """

    def __init__(
        self,
        load_account_port: LoadAccountPort,
        account_lock: AccountLock,
        update_account_state_port: UpdateAccountStatePort,
        properties: MoneyTransferProperties,
    ) -> None:
        self._load_account_port = load_account_port
        self._account_lock = account_lock
        self._update_account_state_port = update_account_state_port
        self._properties = properties

    @track_transfer_duration
    async def send_money(self, command: SendMoneyCommand) -> SendMoneyResult:
        try:
            result = await self._send_money(command)
        except Exception as exc:
            TRANSFER_REQUESTS_TOTAL.labels(status="FAILED", error_code=type(exc).__name__).inc()
            raise

        TRANSFER_REQUESTS_TOTAL.labels(
            status=result.status.value,
            error_code=result.error_code or "",
        ).inc()
        return result

    async def _send_money(self, command: SendMoneyCommand) -> SendMoneyResult:
        log = logger.bind(
            source=command.source_account_id,
            target=command.target_account_id,
            amount=command.money.amount,
            currency=command.money.currency,
        )

        try:
            self._check_threshold(command)
        except ThresholdExceededError as exc:
            log.info("transfer_declined", reason="THRESHOLD_EXCEEDED", threshold=exc.threshold.amount)
            return SendMoneyResult(
                status=TransferStatus.DECLINED,
                error_code="THRESHOLD_EXCEEDED",
                error_message=str(exc),
                details=exc.to_details(),
            )

        baseline_date = datetime.now(UTC) - self._properties.lookback
        source_account = await self._load_account_port.load_account(command.source_account_id, baseline_date)
        target_account = await self._load_account_port.load_account(command.target_account_id, baseline_date)
        log.info("accounts_loaded", step="1/4", baseline_date=baseline_date.isoformat())

        source_id = self._require_id(source_account, "source", log)
        target_id = self._require_id(target_account, "target", log)

        await self._account_lock.lock_account(source_id)
        try:
            try:
                source_activity = source_account.withdraw(command.money, target_id)
            except InsufficientFundsError as exc:
                log.info(
                    "transfer_declined",
                    reason="INSUFFICIENT_FUNDS",
                    available=exc.available.amount,
                    required=exc.required.amount,
                )
                return SendMoneyResult(
                    status=TransferStatus.DECLINED,
                    error_code="INSUFFICIENT_FUNDS",
                    error_message=str(exc),
                    details={
                        "account_id": exc.account_id,
                        "required": exc.required.amount,
                        "available": exc.available.amount,
                        "currency": exc.required.currency,
                    },
                )
            log.info("source_debited", step="2/4", balance_after=source_account.calculate_balance().amount)

            await self._account_lock.lock_account(target_id)
            try:
                target_activity = target_account.deposit(command.money, source_id)
                log.info("target_credited", step="3/4", balance_after=target_account.calculate_balance().amount)

                source_activity, target_activity = await self._persist(
                    source_account, target_account, source_id, target_id, log
                )
            finally:
                await self._account_lock.release_account(target_id)
        finally:
            await self._account_lock.release_account(source_id)

        log.info("transfer_completed", step="4/4")
        return SendMoneyResult(
            status=TransferStatus.COMPLETED,
            source_activity=source_activity,
            target_activity=target_activity,
        )

    def _check_threshold(self, command: SendMoneyCommand) -> None:
        threshold = self._properties.maximum_transfer_threshold
        if command.money.greater_than(threshold):
            raise ThresholdExceededError(threshold=threshold, actual=command.money)

    def _require_id(
        self,
        account: Account,
        role: str,
        log: structlog.stdlib.BoundLogger,
    ) -> AccountId:
        if account.id is None:
            log.error("loaded_account_without_id", role=role)
            raise MissingAccountIdError(role)
        return account.id

    async def _persist(
        self,
        source_account: Account,
        target_account: Account,
        source_id: AccountId,
        target_id: AccountId,
        log: structlog.stdlib.BoundLogger,
    ) -> tuple[Activity, Activity]:
        source_persisted = await self._update_account_state_port.update_activities(source_account)
        try:
            target_persisted = await self._update_account_state_port.update_activities(target_account)
        except Exception as exc:
            log.error(
                "transfer_half_applied",
                persisted_source_activities=[activity.id for activity in source_persisted],
                error=str(exc),
            )
            raise PartialTransferError(source_id, target_id, source_persisted) from exc

        log.info(
            "activities_persisted",
            source_activities=[activity.id for activity in source_persisted],
            target_activities=[activity.id for activity in target_persisted],
        )
        # Ports save pending activities in window order; this transfer appended the last one.
        return source_persisted[-1], target_persisted[-1]


class GetAccountBalanceService:
    def __init__(self, load_account_port: LoadAccountPort) -> None:
        self._load_account_port = load_account_port

    async def get_account_balance(self, account_id: AccountId) -> Money:
        account = await self._load_account_port.load_account(account_id, datetime.now(UTC))
        balance = account.calculate_balance()
        logger.info("get_balance", account_id=account_id, balance=balance.amount)
        return balance

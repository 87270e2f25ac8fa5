from datetime import datetime
from typing import Any

from pydantic import BaseModel

from transfer_service.application.services import SendMoneyResult
from transfer_service.domain.models import Activity, Money


class ActivityResponse(BaseModel):
    id: int | None
    owner_account_id: int
    source_account_id: int
    target_account_id: int
    timestamp: datetime
    amount: int
    currency: str

    @classmethod
    def from_activity(cls, activity: Activity) -> "ActivityResponse":
        return cls(
            id=activity.id,
            owner_account_id=activity.owner_account_id,
            source_account_id=activity.source_account_id,
            target_account_id=activity.target_account_id,
            timestamp=activity.timestamp,
            amount=activity.money.amount,
            currency=activity.money.currency,
        )


class SendMoneyResponse(BaseModel):
    status: str
    message: str
    processed_at: datetime
    source_activity: ActivityResponse | None = None
    target_activity: ActivityResponse | None = None

    @classmethod
    def from_result(cls, result: SendMoneyResult) -> "SendMoneyResponse":
        return cls(
            status=result.status.value,
            message="Money Sent!",
            processed_at=result.processed_at,
            source_activity=ActivityResponse.from_activity(result.source_activity)
            if result.source_activity
            else None,
            target_activity=ActivityResponse.from_activity(result.target_activity)
            if result.target_activity
            else None,
        )


class TransferDeclinedResponse(BaseModel):
    status: str
    error_code: str | None
    error_message: str | None
    details: dict[str, Any]
    processed_at: datetime

    @classmethod
    def from_result(cls, result: SendMoneyResult) -> "TransferDeclinedResponse":
        return cls(
            status=result.status.value,
            error_code=result.error_code,
            error_message=result.error_message,
            details=result.details,
            processed_at=result.processed_at,
        )


class BalanceResponse(BaseModel):
    account_id: int
    amount: int
    currency: str

    @classmethod
    def from_money(cls, account_id: int, balance: Money) -> "BalanceResponse":
        return cls(account_id=account_id, amount=balance.amount, currency=balance.currency)

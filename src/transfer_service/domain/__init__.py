"""Domain layer - business entities and rules."""

from transfer_service.domain.exceptions import (
    AccountNotFoundError,
    ActivityAlreadyPersistedError,
    CurrencyMismatchError,
    DomainError,
    InsufficientFundsError,
    LockAcquisitionError,
    MissingAccountIdError,
    PartialTransferError,
    ThresholdExceededError,
)
from transfer_service.domain.models import (
    Account,
    AccountId,
    Activity,
    ActivityId,
    ActivityWindow,
    Money,
)


__all__ = [
    "Account",
    "AccountId",
    "AccountNotFoundError",
    "Activity",
    "ActivityAlreadyPersistedError",
    "ActivityId",
    "ActivityWindow",
    "CurrencyMismatchError",
    "DomainError",
    "InsufficientFundsError",
    "LockAcquisitionError",
    "MissingAccountIdError",
    "Money",
    "PartialTransferError",
    "ThresholdExceededError",
]

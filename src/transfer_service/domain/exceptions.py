from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from transfer_service.domain.models import Activity, Money


class DomainError(Exception):
    """Base exception for domain errors."""


class CurrencyMismatchError(DomainError):
    """Raised when currencies don't match."""

    def __init__(self, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Currency mismatch: expected {expected}, got {actual}")


class InsufficientFundsError(DomainError):
    """Raised when a withdrawal would leave the account with a negative balance."""

    def __init__(self, account_id: int, required: "Money", available: "Money") -> None:
        self.account_id = account_id
        self.required = required
        self.available = available
        super().__init__(
            f"Account {account_id} has insufficient funds: required {required}, available {available}"
        )


class MissingAccountIdError(DomainError):
    """Raised when an account without an id takes part in a transfer."""

    def __init__(self, role: str = "account") -> None:
        self.role = role
        super().__init__(f"Expected {role} account to have an id")


class ThresholdExceededError(DomainError):
    """Raised when a transfer amount is above the configured maximum."""

    def __init__(self, threshold: "Money", actual: "Money") -> None:
        self.threshold = threshold
        self.actual = actual
        super().__init__(
            f"Maximum threshold for transferring money exceeded: "
            f"tried to transfer {actual} but threshold is {threshold}"
        )

    def to_details(self) -> dict[str, Any]:
        return {
            "threshold": self.threshold.amount,
            "actual": self.actual.amount,
            "currency": self.actual.currency,
        }


class AccountNotFoundError(DomainError):
    """Raised when an account cannot be found."""

    def __init__(self, account_id: int) -> None:
        self.account_id = account_id
        super().__init__(f"Account {account_id} not found")


class ActivityAlreadyPersistedError(DomainError):
    """Raised when an activity that already has an id is saved again."""

    def __init__(self, activity_id: int) -> None:
        self.activity_id = activity_id
        super().__init__(f"Activity already has an id {activity_id}, refusing to insert")


class LockAcquisitionError(DomainError):
    """Raised when an account lock cannot be acquired in time."""

    def __init__(self, account_id: int, timeout_seconds: float) -> None:
        self.account_id = account_id
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Could not lock account {account_id} within {timeout_seconds}s")


class PartialTransferError(DomainError):
    """Raised when the source side of a transfer was persisted but the target side was not."""

    def __init__(
        self,
        source_account_id: int,
        target_account_id: int,
        persisted_activities: list["Activity"],
    ) -> None:
        self.source_account_id = source_account_id
        self.target_account_id = target_account_id
        self.persisted_activities = persisted_activities
        super().__init__(
            f"Transfer from {source_account_id} to {target_account_id} is half-applied: "
            f"{len(persisted_activities)} source activities persisted, target persistence failed"
        )

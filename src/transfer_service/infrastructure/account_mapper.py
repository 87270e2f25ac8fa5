from dataclasses import dataclass

from transfer_service.domain.models import (
    Account,
    AccountId,
    Activity,
    ActivityId,
    ActivityWindow,
    Money,
)
from transfer_service.infrastructure.repositories.activity import ActivityRow


@dataclass(frozen=True)
class AccountMapper:
    """Translates between database rows and domain entities."""

    currency: str

    def to_account(
        self,
        account_id: int,
        activities: list[ActivityRow],
        withdrawal_balance: int,
        deposit_balance: int,
    ) -> Account:
        baseline_balance = Money(deposit_balance, self.currency) - Money(withdrawal_balance, self.currency)
        return Account.with_id(
            AccountId(account_id),
            baseline_balance,
            self.to_activity_window(activities),
        )

    def to_activity_window(self, rows: list[ActivityRow]) -> ActivityWindow:
        return ActivityWindow([self.to_activity(row) for row in rows])

    def to_activity(self, row: ActivityRow) -> Activity:
        return Activity(
            id=ActivityId(row.id) if row.id is not None else None,
            owner_account_id=AccountId(row.owner_account_id),
            source_account_id=AccountId(row.source_account_id),
            target_account_id=AccountId(row.target_account_id),
            timestamp=row.timestamp,
            money=Money(row.amount, self.currency),
        )

    def to_row(self, activity: Activity) -> ActivityRow:
        if activity.money.currency != self.currency:
            raise ValueError(
                f"Cannot store {activity.money.currency} activity in a {self.currency} ledger"
            )
        return ActivityRow(
            id=activity.id,
            timestamp=activity.timestamp,
            owner_account_id=activity.owner_account_id,
            source_account_id=activity.source_account_id,
            target_account_id=activity.target_account_id,
            amount=activity.money.amount,
        )

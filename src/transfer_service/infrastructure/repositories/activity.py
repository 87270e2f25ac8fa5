from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import Row, text
from sqlalchemy.ext.asyncio import AsyncSession

from transfer_service.domain.exceptions import ActivityAlreadyPersistedError


@dataclass(frozen=True)
class ActivityRow:
    timestamp: datetime
    owner_account_id: int
    source_account_id: int
    target_account_id: int
    amount: int
    id: int | None = None


def _to_row(row: Row) -> ActivityRow:
    return ActivityRow(
        id=row.id,
        timestamp=row.timestamp,
        owner_account_id=row.owner_account_id,
        source_account_id=row.source_account_id,
        target_account_id=row.target_account_id,
        amount=row.amount,
    )


class ActivityRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def save(self, activity: ActivityRow) -> ActivityRow:
        if activity.id is not None:
            raise ActivityAlreadyPersistedError(activity.id)

        result = await self._session.execute(
            text("""
                INSERT INTO activity
                    (timestamp, owner_account_id, source_account_id, target_account_id, amount)
                VALUES
                    (:timestamp, :owner_account_id, :source_account_id, :target_account_id, :amount)
                RETURNING id, timestamp, owner_account_id, source_account_id, target_account_id, amount
            """),
            {
                "timestamp": activity.timestamp,
                "owner_account_id": activity.owner_account_id,
                "source_account_id": activity.source_account_id,
                "target_account_id": activity.target_account_id,
                "amount": activity.amount,
            },
        )
        return _to_row(result.one())

    async def find_by_owner_since(self, owner_account_id: int, since: datetime) -> list[ActivityRow]:
        result = await self._session.execute(
            text("""
                SELECT id, timestamp, owner_account_id, source_account_id, target_account_id, amount
                FROM activity
                WHERE owner_account_id = :owner_account_id
                  AND timestamp >= :since
                ORDER BY timestamp, id
            """),
            {"owner_account_id": owner_account_id, "since": since},
        )
        return [_to_row(row) for row in result.fetchall()]

    async def find_by_id(self, activity_id: int) -> ActivityRow | None:
        result = await self._session.execute(
            text("""
                SELECT id, timestamp, owner_account_id, source_account_id, target_account_id, amount
                FROM activity
                WHERE id = :id
            """),
            {"id": activity_id},
        )
        row = result.fetchone()
        if not row:
            return None
        return _to_row(row)

    async def get_deposit_balance_until(self, account_id: int, until: datetime) -> int:
        result = await self._session.execute(
            text("""
                SELECT COALESCE(SUM(amount), 0) AS total
                FROM activity
                WHERE target_account_id = :account_id
                  AND owner_account_id = :account_id
                  AND timestamp < :until
            """),
            {"account_id": account_id, "until": until},
        )
        return int(result.scalar_one())

    async def get_withdrawal_balance_until(self, account_id: int, until: datetime) -> int:
        result = await self._session.execute(
            text("""
                SELECT COALESCE(SUM(amount), 0) AS total
                FROM activity
                WHERE source_account_id = :account_id
                  AND owner_account_id = :account_id
                  AND timestamp < :until
            """),
            {"account_id": account_id, "until": until},
        )
        return int(result.scalar_one())

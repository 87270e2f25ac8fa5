from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession


class AccountRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def exists(self, account_id: int) -> bool:
        result = await self._session.execute(
            text("""
                SELECT id
                FROM account
                WHERE id = :id
            """),
            {"id": account_id},
        )
        return result.fetchone() is not None

    async def create(self) -> int:
        result = await self._session.execute(
            text("""
                INSERT INTO account DEFAULT VALUES
                RETURNING id
            """),
        )
        return int(result.scalar_one())

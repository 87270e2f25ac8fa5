"""Repository implementations."""

from transfer_service.infrastructure.repositories.account import AccountRepository
from transfer_service.infrastructure.repositories.activity import ActivityRepository, ActivityRow


__all__ = [
    "AccountRepository",
    "ActivityRepository",
    "ActivityRow",
]

"""Repository layer for database operations.

Repositories encapsulate all database queries, keeping routes thin and focused
on HTTP handling. They flush but never commit; the request-scoped session
dependency owns the transaction.
"""

from repositories.machine_repository import MachineRepository
from repositories.user_repository import UserRepository
from repositories.utils import log_slow_query
from repositories.workout_session_repository import WorkoutSessionRepository

__all__ = [
    "MachineRepository",
    "UserRepository",
    "WorkoutSessionRepository",
    "log_slow_query",
]

"""
Base repository class for database access.

Provides a common abstraction layer for all repositories, encapsulating
Supabase client access and providing shared utilities for data operations.
"""

import logging
from typing import TypeVar, Generic, Any

from postgrest.exceptions import APIError
from supabase import Client

from .exceptions import ConflictError, StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Postgres SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"

# Raised by the guarded SQL functions when a row left the accepted status
GUARD_FAILED = "PT409"


class BaseRepository(Generic[T]):
    """
    Base class for all repositories.

    Provides common functionality for database operations:
    - Supabase client access via self._db
    - Generic type parameter for model type hints
    - _execute() which maps PostgREST failures onto domain errors

    Subclasses should implement domain-specific data access methods
    and handle dict-to-Pydantic model mapping internally.

    Example:
        class DebateRepository(BaseRepository[Debate]):
            def get_debate(self, debate_id: str) -> Optional[Debate]:
                result = self._execute(
                    self._db.table("debates").select("*").eq("id", debate_id)
                )
                if not result.data:
                    return None
                return self._map_to_debate(result.data[0])
    """

    def __init__(self, db: Client) -> None:
        """
        Initialize the repository with a Supabase client.

        Args:
            db: Supabase client instance for database operations.
        """
        self._db = db

    def _execute(self, query: Any, conflict_message: str = "Uniqueness constraint violated") -> Any:
        """
        Execute a PostgREST query builder.

        Args:
            query: Any builder exposing execute().
            conflict_message: Message used when a unique constraint fires.

        Returns:
            The PostgREST response.

        Raises:
            ConflictError: On a unique violation (code CONFLICT) or a failed
                status guard (code STATE_CHANGED, details name the entity).
            StorageError: On any other PostgREST failure.
        """
        try:
            return query.execute()
        except APIError as e:
            if e.code == UNIQUE_VIOLATION:
                raise ConflictError(
                    conflict_message,
                    code="CONFLICT",
                    details={"constraint": e.details or e.message},
                ) from e
            if e.code == GUARD_FAILED:
                raise ConflictError(
                    e.message or "Row changed state concurrently",
                    code="STATE_CHANGED",
                    details={"entity": e.hint},
                ) from e
            logger.warning(f"PostgREST error {e.code}: {e.message}")
            raise StorageError(e.message or "query failed", original_error=e) from e

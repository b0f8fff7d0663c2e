"""
Dependency injection setup for FastAPI.

This module provides the "container" that wires together all module
implementations. Each module exposes its service through an interface,
and this file creates the concrete implementations.

STORAGE_BACKEND selects the repositories: "supabase" (default) or
"memory" for local runs without a database.
"""

from typing import TYPE_CHECKING

from shared.config import Settings, get_settings

# Type checking imports for interfaces (avoids circular imports)
if TYPE_CHECKING:
    from modules.auth.interfaces import IAuthService
    from modules.challenges.interfaces import IChallengeRepository, IChallengeService
    from modules.debates.interfaces import IDebateRepository, IDebateService
    from modules.submissions.interfaces import ISubmissionService
    from shared.clock import Clock


class ServiceContainer:
    """
    Container for all service instances.

    This class manages the lifecycle of service instances and their
    dependencies. Services are created lazily on first access.

    All services are cached as singletons within the container.
    Use reset() to clear all cached services for testing.
    """

    def __init__(self, settings: "Settings | None" = None) -> None:
        self._settings = settings
        self._clock: "Clock | None" = None
        self._auth_service: "IAuthService | None" = None
        self._debate_repository: "IDebateRepository | None" = None
        self._challenge_repository: "IChallengeRepository | None" = None
        self._debate_service: "IDebateService | None" = None
        self._challenge_service: "IChallengeService | None" = None
        self._submission_service: "ISubmissionService | None" = None

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    @property
    def uses_memory_storage(self) -> bool:
        return self.settings.storage_backend.lower() == "memory"

    @property
    def clock(self) -> "Clock":
        if self._clock is None:
            from shared.clock import SystemClock
            self._clock = SystemClock()
        return self._clock

    @property
    def auth(self) -> "IAuthService":
        """Get the auth service instance."""
        if self._auth_service is None:
            from modules.auth.service import AuthService
            if self.uses_memory_storage:
                self._auth_service = AuthService(settings=self.settings)
            else:
                from shared.database import get_supabase_client
                self._auth_service = AuthService.with_supabase(get_supabase_client(), self.settings)
        return self._auth_service

    @property
    def debate_repository(self) -> "IDebateRepository":
        """Get the debate repository instance."""
        if self._debate_repository is None:
            if self.uses_memory_storage:
                from modules.debates.memory import InMemoryDebateRepository
                self._debate_repository = InMemoryDebateRepository()
            else:
                from modules.debates.repository import DebateRepository
                from shared.database import get_supabase_client
                self._debate_repository = DebateRepository(get_supabase_client())
        return self._debate_repository

    @property
    def challenge_repository(self) -> "IChallengeRepository":
        """Get the challenge repository instance."""
        if self._challenge_repository is None:
            if self.uses_memory_storage:
                from modules.challenges.memory import InMemoryChallengeRepository
                self._challenge_repository = InMemoryChallengeRepository()
            else:
                from modules.challenges.repository import ChallengeRepository
                from shared.database import get_supabase_client
                self._challenge_repository = ChallengeRepository(get_supabase_client())
        return self._challenge_repository

    @property
    def debates(self) -> "IDebateService":
        """Get the debate service instance."""
        if self._debate_service is None:
            from modules.debates.models import ArenaPolicy
            from modules.debates.service import DebateService
            self._debate_service = DebateService(
                repository=self.debate_repository,
                policy=ArenaPolicy.from_settings(self.settings),
                default_max_arguments_per_side=self.settings.default_max_arguments_per_side,
            )
        return self._debate_service

    @property
    def challenges(self) -> "IChallengeService":
        """Get the challenge service instance."""
        if self._challenge_service is None:
            from modules.challenges.service import ChallengeService
            self._challenge_service = ChallengeService(
                repository=self.challenge_repository,
                clock=self.clock,
                ttl_seconds=self.settings.challenge_ttl_seconds,
                challenge_rate=self.settings.challenge_rate,
                failure_threshold=self.settings.challenge_failure_threshold,
                require_vote_verification=self.settings.require_vote_verification,
            )
        return self._challenge_service

    @property
    def submissions(self) -> "ISubmissionService":
        """Get the submission service instance."""
        if self._submission_service is None:
            from modules.debates.models import ArenaPolicy
            from modules.submissions.service import SubmissionService
            self._submission_service = SubmissionService(
                debates=self.debate_repository,
                challenges=self.challenges,
                clock=self.clock,
                policy=ArenaPolicy.from_settings(self.settings),
            )
        return self._submission_service

    def reset(self) -> None:
        """
        Reset all cached services.

        This is primarily for testing - allows tests to get fresh
        service instances with different mock dependencies.
        """
        self._clock = None
        self._auth_service = None
        self._debate_repository = None
        self._challenge_repository = None
        self._debate_service = None
        self._challenge_service = None
        self._submission_service = None


# Module-level container singleton
_container: ServiceContainer | None = None


def get_container() -> ServiceContainer:
    """Get the singleton service container."""
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def reset_container() -> None:
    """
    Reset the service container.

    This clears the cached container, so the next call to get_container()
    will create a fresh container with new service instances.

    Primarily used for testing.
    """
    global _container
    _container = None


# FastAPI dependency functions
# These are the functions that should be used in route Depends() calls


def get_auth_service() -> "IAuthService":
    """FastAPI dependency for auth service."""
    return get_container().auth


def get_debate_service() -> "IDebateService":
    """FastAPI dependency for debate service."""
    return get_container().debates


def get_submission_service() -> "ISubmissionService":
    """FastAPI dependency for submission service."""
    return get_container().submissions

"""
TaskHub Session Service — bridge between the external auth provider and members.

The provider owns credentials and tokens; TaskHub only needs the
authenticated email. Flow:

1. Provider signs the user in (password or OAuth code exchange)
2. The session's email resolves to a member (created on first access)
3. Sign-out ends the provider session and clears every cached entry
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, Tuple

from pydantic import BaseModel

from taskhub.engine.errors import TaskHubError, TaskHubSessionError
from taskhub.engine.logging import log, log_system_event
from taskhub.records.member import Member
from taskhub.services.dashboard import DashboardDataManager

logger = logging.getLogger("taskhub.services.auth")


class AuthSession(BaseModel):
    """An authenticated provider session."""

    email: str
    access_token: str
    expires_at: Optional[datetime] = None


class AuthProvider(ABC):
    """External authentication provider. Implementations raise on failure."""

    @abstractmethod
    async def sign_in_with_password(self, email: str, password: str) -> AuthSession:
        ...

    @abstractmethod
    async def exchange_code_for_session(self, code: str) -> AuthSession:
        ...

    @abstractmethod
    async def sign_out(self, session: AuthSession) -> None:
        ...


class SessionService:
    """Signs members in and out through an ``AuthProvider``."""

    def __init__(self, provider: AuthProvider, dashboard: DashboardDataManager):
        self._provider = provider
        self._dashboard = dashboard

    async def sign_in(self, email: str, password: str) -> Tuple[AuthSession, Member]:
        """
        Authenticate with email and password.

        Raises:
            TaskHubSessionError: The provider rejected the credentials or failed.
            MemberLoadError: The member record could not be loaded.
        """
        try:
            session = await self._provider.sign_in_with_password(email, password)
        except TaskHubError:
            raise
        except Exception as e:
            logger.warning(f"Sign-in failed for {email}: {e}")
            raise TaskHubSessionError("Invalid login credentials", email=email) from e

        member = await self.resolve_member(session)
        logger.info(f"Member {member.id} signed in")
        return session, member

    async def complete_oauth(self, code: str) -> Tuple[AuthSession, Member]:
        """Exchange an OAuth callback code for a session."""
        if not code:
            raise TaskHubSessionError("Missing authorization code")
        try:
            session = await self._provider.exchange_code_for_session(code)
        except TaskHubError:
            raise
        except Exception as e:
            logger.warning(f"OAuth code exchange failed: {e}")
            raise TaskHubSessionError("Authentication failed") from e

        member = await self.resolve_member(session)
        return session, member

    async def resolve_member(self, session: AuthSession) -> Member:
        return await self._dashboard.get_current_member(session.email)

    async def sign_out(self, session: AuthSession) -> None:
        """End the provider session and drop all cached dashboard state."""
        try:
            await self._provider.sign_out(session)
        except TaskHubError:
            raise
        except Exception as e:
            logger.warning(f"Sign-out failed for {session.email}: {e}")
            raise TaskHubSessionError("Sign-out failed", email=session.email) from e
        finally:
            self._dashboard.clear_all_cache()

        log(log_system_event("member_signed_out", details={"email": session.email}))

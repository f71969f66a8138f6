"""
FastAPI dependencies for authentication, rate limiting, and per-session storage.

Runtime collaborators (config, auth service, stores, LLM-backed services)
live on ``app.state`` and are set up by ``create_app``; tests can swap
any of them there or through ``app.dependency_overrides``.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.security import OAuth2PasswordBearer

from src.api.auth import AuthService, AuthToken, SessionType
from src.config.settings import AppConfig
from src.services.gamification import StoryGenerator
from src.models.wellness import History
from src.services.history_store import HistoryLocks, HistoryStore
from src.services.mood_analysis import MoodAnalyzer

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/demo", auto_error=False)


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


async def get_current_user_token(
    token: str | None = Depends(oauth2_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> AuthToken:
    """
    Dependency to get the caller's decoded session token.

    Raises HTTPException 401 if the token is missing, invalid, or expired.
    """
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    auth_token = auth_service.decode_token(token)
    if not auth_token or auth_token.is_expired():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return auth_token


async def get_current_user_id(token: AuthToken = Depends(get_current_user_token)) -> str:
    return token.user_id


def get_history_store(
    request: Request,
    token: AuthToken = Depends(get_current_user_token),
) -> HistoryStore:
    """Demo sessions read/write local JSON; account sessions use the database."""
    if token.session_type is SessionType.DEMO:
        return request.app.state.local_store
    return request.app.state.database_store


class UserHistory:
    """
    One user's history as seen by a request handler.

    Store calls run in the threadpool. Hold ``locked()`` across a
    load-modify-save so concurrent requests for the same user apply in turn.
    """

    def __init__(self, store: HistoryStore, user_id: str, locks: HistoryLocks) -> None:
        self.store = store
        self.user_id = user_id
        self._locks = locks

    @asynccontextmanager
    async def locked(self) -> AsyncIterator[None]:
        async with self._locks.hold(self.user_id):
            yield

    async def load(self) -> History:
        return await run_in_threadpool(self.store.load, self.user_id)

    async def save(self, history: History) -> None:
        await run_in_threadpool(self.store.save, self.user_id, history)

    async def clear(self) -> None:
        await run_in_threadpool(self.store.clear, self.user_id)


def get_user_history(
    request: Request,
    token: AuthToken = Depends(get_current_user_token),
    store: HistoryStore = Depends(get_history_store),
) -> UserHistory:
    return UserHistory(store, token.user_id, request.app.state.history_locks)


def get_mood_analyzer(request: Request) -> MoodAnalyzer:
    return request.app.state.mood_analyzer


def get_story_generator(request: Request) -> StoryGenerator:
    return request.app.state.story_generator


class APIRateLimiter:
    """FastAPI dependency applying the AuthService per-user rate limit."""

    async def __call__(
        self,
        user_id: str = Depends(get_current_user_id),
        auth_service: AuthService = Depends(get_auth_service),
    ) -> None:
        if not auth_service.check_rate_limit(user_id):
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Rate limit exceeded. Please try again later.",
            )


rate_limit = APIRateLimiter()

__all__ = [
    "APIRateLimiter",
    "UserHistory",
    "get_auth_service",
    "get_config",
    "get_current_user_id",
    "get_current_user_token",
    "get_history_store",
    "get_mood_analyzer",
    "get_story_generator",
    "get_user_history",
    "oauth2_scheme",
    "rate_limit",
]

"""Tests for FastAPI dependencies (src/api/dependencies.py)."""

from __future__ import annotations

from types import SimpleNamespace

import pytest
from fastapi import HTTPException

from src.api.auth import AuthService, SessionType
from src.api.dependencies import (
    APIRateLimiter,
    UserHistory,
    get_current_user_token,
    get_history_store,
)
from src.models.wellness import History
from src.services.history_store import HistoryLocks, LocalHistoryStore
from tests.factories import build_check_in

SECRET = "test-secret-key-for-jwt-signing-at-least-32-bytes-long"


@pytest.fixture
def auth_service():
    return AuthService(secret_key=SECRET)


def _request(local, database):
    state = SimpleNamespace(local_store=local, database_store=database)
    return SimpleNamespace(app=SimpleNamespace(state=state))


@pytest.mark.asyncio
async def test_missing_token(auth_service):
    with pytest.raises(HTTPException) as exc_info:
        await get_current_user_token(token=None, auth_service=auth_service)
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_invalid_token(auth_service):
    with pytest.raises(HTTPException) as exc_info:
        await get_current_user_token(token="nope", auth_service=auth_service)
    assert exc_info.value.detail == "Invalid or expired token"


@pytest.mark.asyncio
async def test_valid_token(auth_service):
    encoded = auth_service.encode_token(auth_service.generate_token("demo-1", SessionType.DEMO))
    token = await get_current_user_token(token=encoded, auth_service=auth_service)
    assert token.user_id == "demo-1"


@pytest.mark.parametrize(
    ("session_type", "expected"),
    [(SessionType.DEMO, "local"), (SessionType.ACCOUNT, "database")],
)
def test_history_store_follows_session_type(auth_service, session_type, expected):
    token = auth_service.generate_token("u", session_type)
    assert get_history_store(_request("local", "database"), token) == expected


@pytest.mark.asyncio
async def test_rate_limiter(auth_service):
    auth_service.RATE_LIMIT = 1
    limiter = APIRateLimiter()
    await limiter(user_id="u", auth_service=auth_service)
    with pytest.raises(HTTPException) as exc_info:
        await limiter(user_id="u", auth_service=auth_service)
    assert exc_info.value.status_code == 429

@pytest.mark.asyncio
async def test_user_history_goes_through_store(tmp_path):
    store = LocalHistoryStore(tmp_path)
    user_history = UserHistory(store, "demo-1", HistoryLocks())

    async with user_history.locked():
        assert await user_history.load() == History()
        await user_history.save(History(check_ins=(build_check_in(),)))

    assert store.load("demo-1").check_ins == (build_check_in(),)
    await user_history.clear()
    assert store.load("demo-1") == History()

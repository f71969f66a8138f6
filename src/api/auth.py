"""
Authentication for the Burnout Buddy REST API.

Implements:
- JWT session tokens (via PyJWT, HS256) carrying the user id and the
  session type (demo or account)
- In-memory per-user rate limiting
- Startup secrets validation (fail-fast if missing)
"""

from __future__ import annotations

import hashlib
import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Any

import jwt as pyjwt

from src.config.settings import AppConfig, load_config

logger = logging.getLogger(__name__)

TOKEN_ISSUER = "burnout-buddy"
TOKEN_AUDIENCE = "burnout-buddy-api"


class SessionType(StrEnum):
    """Demo sessions persist to local JSON; account sessions to the database."""

    DEMO = "demo"
    ACCOUNT = "account"


def hash_uid(user_id: str) -> str:
    """Short stable hash for logging user ids without exposing them."""
    return hashlib.sha256(user_id.encode("utf-8")).hexdigest()[:12]


@dataclass
class AuthToken:
    """Decoded session token."""

    user_id: str
    session_type: SessionType
    issued_at: datetime
    expires_at: datetime
    token_type: str = "Bearer"
    jti: str = field(default_factory=lambda: str(uuid.uuid4()))

    def is_expired(self) -> bool:
        return datetime.now(UTC) >= self.expires_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "session_type": self.session_type.value,
            "issued_at": self.issued_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "token_type": self.token_type,
        }


@dataclass
class RateLimitInfo:
    """Rate limit window for a user."""

    user_id: str
    requests_made: int
    window_start: datetime
    limit: int = 600
    window_seconds: int = 3600

    def _window_passed(self, now: datetime) -> bool:
        return now >= self.window_start + timedelta(seconds=self.window_seconds)

    def is_exceeded(self) -> bool:
        if self._window_passed(datetime.now(UTC)):
            return False
        return self.requests_made >= self.limit

    def increment(self) -> None:
        now = datetime.now(UTC)
        if self._window_passed(now):
            self.requests_made = 0
            self.window_start = now
        self.requests_made += 1


class AuthService:
    """
    Token issuing/validation and rate limiting.

    Raises:
        ConfigurationError: if no secret key is available
    """

    TOKEN_EXPIRY_DAYS = 30

    RATE_LIMIT = 600
    RATE_LIMIT_WINDOW_SECONDS = 3600

    # When exceeded, the oldest 20% of windows are evicted
    MAX_RATE_LIMIT_ENTRIES = 10000

    def __init__(self, secret_key: str | None = None, config: AppConfig | None = None) -> None:
        self.secret_key: str = secret_key or (config or load_config()).require_secret()
        self._rate_limits: dict[str, RateLimitInfo] = {}

    def _evict_stale_rate_limits(self) -> None:
        if len(self._rate_limits) <= self.MAX_RATE_LIMIT_ENTRIES:
            return

        sorted_entries = sorted(self._rate_limits.items(), key=lambda item: item[1].window_start)
        evict_count = len(sorted_entries) // 5
        for user_id, _ in sorted_entries[:evict_count]:
            del self._rate_limits[user_id]

        logger.info(
            "Rate limit eviction: removed %d entries, %d remaining",
            evict_count,
            len(self._rate_limits),
        )

    def generate_token(self, user_id: str, session_type: SessionType) -> AuthToken:
        now = datetime.now(UTC)
        token = AuthToken(
            user_id=user_id,
            session_type=session_type,
            issued_at=now,
            expires_at=now + timedelta(days=self.TOKEN_EXPIRY_DAYS),
        )
        logger.info("Generated %s token for user_hash=%s", session_type.value, hash_uid(user_id))
        return token

    def encode_token(self, token: AuthToken) -> str:
        payload: dict[str, Any] = {
            "sub": token.user_id,
            "session_type": token.session_type.value,
            "iat": token.issued_at,
            "exp": token.expires_at,
            "type": token.token_type,
            "jti": token.jti,
            "iss": TOKEN_ISSUER,
            "aud": TOKEN_AUDIENCE,
        }
        return pyjwt.encode(payload, self.secret_key, algorithm="HS256")

    def decode_token(self, jwt_token: str) -> AuthToken | None:
        """Decode and verify a JWT. Returns None if invalid or expired."""
        try:
            payload = pyjwt.decode(
                jwt_token,
                self.secret_key,
                algorithms=["HS256"],
                audience=TOKEN_AUDIENCE,
                issuer=TOKEN_ISSUER,
            )
            return AuthToken(
                user_id=str(payload["sub"]),
                session_type=SessionType(payload["session_type"]),
                issued_at=datetime.fromtimestamp(payload["iat"], tz=UTC),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=UTC),
                token_type=payload.get("type", "Bearer"),
                jti=payload.get("jti", ""),
            )
        except pyjwt.ExpiredSignatureError:
            logger.warning("Token expired")
            return None
        except pyjwt.InvalidTokenError as e:
            logger.warning("Token decode error: %s", e)
            return None
        except (KeyError, ValueError) as e:
            logger.warning("Token missing claims: %s", e)
            return None

    def authenticate_request(self, authorization_header: str | None) -> AuthToken | None:
        """Authenticate an ``Authorization: Bearer <token>`` header."""
        if not authorization_header:
            return None

        parts = authorization_header.split()
        if len(parts) != 2 or parts[0].lower() != "bearer":
            logger.warning("Invalid Authorization header format")
            return None
        return self.decode_token(parts[1])

    def check_rate_limit(self, user_id: str) -> bool:
        """True if within limit (and counts the request), False if exceeded."""
        self._evict_stale_rate_limits()

        if user_id not in self._rate_limits:
            self._rate_limits[user_id] = RateLimitInfo(
                user_id=user_id,
                requests_made=0,
                window_start=datetime.now(UTC),
                limit=self.RATE_LIMIT,
                window_seconds=self.RATE_LIMIT_WINDOW_SECONDS,
            )

        rate_limit = self._rate_limits[user_id]
        if rate_limit.is_exceeded():
            logger.warning("Rate limit exceeded for user_hash=%s", hash_uid(user_id))
            return False

        rate_limit.increment()
        return True

    def get_rate_limit_info(self, user_id: str) -> RateLimitInfo | None:
        return self._rate_limits.get(user_id)


def validate_secrets(config: AppConfig | None = None) -> None:
    """
    Validate required secrets at startup (fail-fast).

    Raises:
        ConfigurationError: if BUDDY_API_SECRET_KEY is missing
    """
    config = config or load_config()
    config.require_secret()
    if not config.openai_api_key:
        logger.warning("No LLM API key configured; mood analysis uses the keyword heuristic only")
    logger.info("All required secrets validated successfully.")


__all__ = [
    "AuthService",
    "AuthToken",
    "RateLimitInfo",
    "SessionType",
    "hash_uid",
    "validate_secrets",
]

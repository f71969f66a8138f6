"""
REST API routes for Burnout Buddy.

All responses use the success/error envelope from ``src.api.schemas``.
History goes through ``UserHistory``: store I/O runs in the threadpool,
and read-modify-write handlers hold the per-user lock.
Application exceptions propagate to the handlers registered in
``create_app`` and are mapped to status codes there.

Endpoints (all under /api/v1 prefix):
- /health - Health check
- /auth/demo - Issue a demo session token
- /practices - Practice catalog
- /check-ins - Mood check-in with recommendation, rotate, start timer
- /timer - Complete or skip a timer session
- /insights/weekly - Seven-day summary
- /history - Export or clear history
- /settings - App settings
- /mood/analyze - Free text to mood
- /gamify - Narrator stories
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Any

from fastapi import APIRouter as FastAPIRouter
from fastapi import Body, Depends, Query
from fastapi.responses import Response

from src.api.auth import AuthService, AuthToken, SessionType
from src.api.dependencies import (
    UserHistory,
    get_auth_service,
    get_config,
    get_current_user_token,
    get_mood_analyzer,
    get_story_generator,
    get_user_history,
    rate_limit,
)
from src.api.schemas import (
    CheckInRequest,
    CompleteTimerRequest,
    DemoSessionRequest,
    GamifyRequest,
    MoodAnalyzeRequest,
    RotateRequest,
    SettingsUpdate,
    SkipTimerRequest,
    StartTimerRequest,
    TimerSessionPayload,
    success_response,
)
from src.config.settings import AppConfig
from src.content.practices import PRACTICES, get_practice_by_id
from src.lib.circuit_breaker import get_all_circuit_breakers
from src.lib.exceptions import NotFoundError
from src.models.wellness import RecommendationResult
from src.services.analytics import summarize_history
from src.services.check_in_flow import (
    TimerSession,
    clear_history,
    commit_mood_selection,
    complete_timer,
    rotate_check_in,
    skip_timer,
    start_timer,
)
from src.services.gamification import StoryGenerator, build_gamification_input
from src.services.history_store import export_history
from src.services.mood_analysis import MoodAnalyzer

logger = logging.getLogger(__name__)

router = FastAPIRouter(prefix="/api/v1")

_authenticated = [Depends(rate_limit)]


def _session_from_payload(payload: TimerSessionPayload) -> TimerSession:
    return TimerSession(
        id=payload.id,
        practice_id=payload.practice_id,
        check_in_id=payload.check_in_id,
        started_at=payload.started_at,
        duration_seconds=payload.duration_seconds,
        mood=payload.mood,
        time_available=payload.time_available,
    )


# =============================================================================
# Health & Auth Endpoints
# =============================================================================


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Health check endpoint (unauthenticated). Reports LLM circuit states."""
    circuits = {name: cb.state.value for name, cb in get_all_circuit_breakers().items()}
    return success_response({"status": "ok", "circuits": circuits})


@router.post("/auth/demo")
async def create_demo_session(
    request: DemoSessionRequest | None = Body(default=None),
    auth_service: AuthService = Depends(get_auth_service),
) -> dict[str, Any]:
    """
    Issue a demo session token.

    Demo history lives in the local JSON store; passing back a previous
    ``user_id`` resumes it.
    """
    user_id = request.user_id if request and request.user_id else f"demo-{uuid.uuid4().hex}"
    token = auth_service.generate_token(user_id, SessionType.DEMO)
    return success_response({
        "access_token": auth_service.encode_token(token),
        **token.to_dict(),
    })


# =============================================================================
# Practice catalog
# =============================================================================


@router.get("/practices", dependencies=_authenticated)
async def list_practices() -> dict[str, Any]:
    return success_response([p.to_dict() for p in PRACTICES])


@router.get("/practices/{practice_id}", dependencies=_authenticated)
async def get_practice(practice_id: str) -> dict[str, Any]:
    practice = get_practice_by_id(practice_id)
    if practice is None:
        raise NotFoundError(f"Practice not found: {practice_id}")
    return success_response(practice.to_dict())


# =============================================================================
# Check-in flow
# =============================================================================


@router.post("/check-ins", dependencies=_authenticated)
async def create_check_in(
    request: CheckInRequest,
    user_history: UserHistory = Depends(get_user_history),
    config: AppConfig = Depends(get_config),
) -> dict[str, Any]:
    """Record a mood check-in and return the recommendation made for it."""
    async with user_history.locked():
        history, check_in, recommendation = commit_mood_selection(
            await user_history.load(),
            request.mood,
            request.shift,
            request.time_available,
            tz=config.tzinfo,
        )
        await user_history.save(history)
    return success_response({
        "check_in": check_in.to_document(),
        "recommendation": recommendation.to_dict(),
    })


@router.post("/check-ins/{check_in_id}/rotate", dependencies=_authenticated)
async def rotate_check_in_recommendation(
    check_in_id: str,
    request: RotateRequest | None = Body(default=None),
    user_history: UserHistory = Depends(get_user_history),
    config: AppConfig = Depends(get_config),
) -> dict[str, Any]:
    """Swap the check-in's practice for the next ranked suggestion."""
    current: RecommendationResult | None = None
    if request and request.current_practice_id:
        practice = get_practice_by_id(request.current_practice_id)
        if practice is None:
            raise NotFoundError(f"Practice not found: {request.current_practice_id}")
        current = RecommendationResult(primary=practice, alternatives=(), reason="")

    async with user_history.locked():
        history, recommendation = rotate_check_in(
            await user_history.load(), check_in_id, current, tz=config.tzinfo
        )
        await user_history.save(history)
    return success_response({
        "check_in": history.find_check_in(check_in_id).to_document(),
        "recommendation": recommendation.to_dict(),
    })


@router.post("/check-ins/{check_in_id}/timer", dependencies=_authenticated)
async def start_check_in_timer(
    check_in_id: str,
    request: StartTimerRequest,
    user_history: UserHistory = Depends(get_user_history),
) -> dict[str, Any]:
    """Start the countdown; the returned session is echoed back on complete/skip."""
    async with user_history.locked():
        history, session = start_timer(await user_history.load(), check_in_id, request.practice_id)
        await user_history.save(history)
    return success_response(session.to_dict())


@router.post("/timer/complete", dependencies=_authenticated)
async def complete_check_in_timer(
    request: CompleteTimerRequest,
    user_history: UserHistory = Depends(get_user_history),
) -> dict[str, Any]:
    async with user_history.locked():
        history, reset = complete_timer(
            await user_history.load(),
            _session_from_payload(request.session),
            log_reset=request.log_reset,
            post_mood=request.post_mood,
        )
        await user_history.save(history)
    return success_response({
        "reset": reset.to_document() if reset else None,
        "check_in": history.find_check_in(request.session.check_in_id).to_document(),
    })


@router.post("/timer/skip", dependencies=_authenticated)
async def skip_check_in_timer(
    request: SkipTimerRequest | None = Body(default=None),
    user_history: UserHistory = Depends(get_user_history),
) -> dict[str, Any]:
    """Abandon a timer. Nothing is persisted."""
    session = _session_from_payload(request.session) if request and request.session else None
    skip_timer(await user_history.load(), session)
    return success_response({"skipped": True})


# =============================================================================
# Insights, history, settings
# =============================================================================


@router.get("/insights/weekly", dependencies=_authenticated)
async def weekly_insights(
    user_history: UserHistory = Depends(get_user_history),
    config: AppConfig = Depends(get_config),
) -> dict[str, Any]:
    summary = summarize_history(await user_history.load(), tz=config.tzinfo)
    return success_response(summary.to_dict())


@router.get("/history/export", dependencies=_authenticated)
async def export_user_history(
    user_history: UserHistory = Depends(get_user_history),
) -> Response:
    """Download check-ins, resets and settings as pretty-printed JSON."""
    body = export_history(await user_history.load())
    return Response(
        content=body,
        media_type="application/json",
        headers={"Content-Disposition": 'attachment; filename="burnout-buddy-history.json"'},
    )


@router.delete("/history", dependencies=_authenticated)
async def delete_user_history(
    include_settings: bool = Query(default=False),
    token: AuthToken = Depends(get_current_user_token),
    user_history: UserHistory = Depends(get_user_history),
) -> dict[str, Any]:
    """Clear check-ins and resets; ``include_settings`` wipes settings too."""
    async with user_history.locked():
        if include_settings:
            await user_history.clear()
        else:
            await user_history.save(clear_history(await user_history.load()))
    logger.info("History cleared session_type=%s settings=%s", token.session_type.value, include_settings)
    return success_response({"cleared": True})


@router.put("/settings", dependencies=_authenticated)
async def update_settings(
    request: SettingsUpdate,
    user_history: UserHistory = Depends(get_user_history),
) -> dict[str, Any]:
    updates = request.model_dump(exclude_unset=True)
    if updates.get("reduced_motion") is None:
        updates.pop("reduced_motion", None)
    async with user_history.locked():
        history = await user_history.load()
        settings = replace(history.settings, **updates)
        await user_history.save(replace(history, settings=settings))
    return success_response(settings.to_document())


# =============================================================================
# LLM-backed features
# =============================================================================


@router.post("/mood/analyze", dependencies=_authenticated)
async def analyze_mood(
    request: MoodAnalyzeRequest,
    analyzer: MoodAnalyzer = Depends(get_mood_analyzer),
) -> dict[str, Any]:
    """Suggest a mood from free text. Falls back to the keyword heuristic."""
    result = await analyzer.analyze(request.text)
    return success_response(result.to_dict())


@router.post("/gamify", dependencies=_authenticated)
async def gamify(
    request: GamifyRequest | None = Body(default=None),
    user_history: UserHistory = Depends(get_user_history),
    generator: StoryGenerator = Depends(get_story_generator),
    config: AppConfig = Depends(get_config),
) -> dict[str, Any]:
    """Generate the three narrator stories for the insights card."""
    payload = build_gamification_input(
        await user_history.load(),
        display_name=request.display_name if request else None,
        tz=config.tzinfo,
    )
    stories = await generator.generate(payload)
    return success_response({"stories": stories.to_dict(), "input": payload.to_document()})


__all__ = ["router"]

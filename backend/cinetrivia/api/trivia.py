"""FastAPI routes for the weekly trivia quiz, attempts and leaderboard."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from cinetrivia.domain.trivia import policy
from cinetrivia.domain.trivia.attempts import TriviaAttemptService, build_attempt_service
from cinetrivia.domain.trivia.schemas import (
	AttemptReceipt,
	AttemptSubmission,
	LeaderboardEntrySchema,
	LeaderboardResponse,
	WeeklyTriviaPayload,
)
from cinetrivia.domain.trivia.service import WeeklyTriviaService, build_weekly_service
from cinetrivia.infra.auth import AuthenticatedUser, get_current_user
from cinetrivia.settings import settings

router = APIRouter(prefix="/trivia", tags=["trivia"])


def get_weekly_service() -> WeeklyTriviaService:
	return build_weekly_service()


def get_attempt_service() -> TriviaAttemptService:
	return build_attempt_service()


def _weekly_cache_control() -> str:
	return (
		f"public, max-age={settings.trivia_browser_max_age}, "
		f"s-maxage={settings.trivia_cdn_max_age}, "
		f"stale-while-revalidate={settings.trivia_stale_while_revalidate}"
	)


@router.get("/weekly", response_model=WeeklyTriviaPayload, response_model_by_alias=True)
async def weekly_trivia_endpoint(
	response: Response,
	lang: Optional[str] = Query(default=None, description="Original-language code: en, te, hi or ta"),
	week: Optional[str] = Query(default=None, description="ISO week key such as 2026-W07"),
	service: WeeklyTriviaService = Depends(get_weekly_service),
) -> WeeklyTriviaPayload:
	payload = await service.get_weekly(lang, week)
	response.headers["Cache-Control"] = _weekly_cache_control()
	return payload


@router.post("/attempts", response_model=AttemptReceipt, status_code=status.HTTP_201_CREATED)
async def submit_attempt_endpoint(
	submission: AttemptSubmission,
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: TriviaAttemptService = Depends(get_attempt_service),
) -> AttemptReceipt:
	attempt_id = await service.submit(auth_user, submission)
	return AttemptReceipt(id=attempt_id)


@router.get("/leaderboard", response_model=LeaderboardResponse, response_model_by_alias=True)
async def leaderboard_endpoint(
	response: Response,
	week: Optional[str] = Query(default=None),
	lang: Optional[str] = Query(default=None),
	auth_user: AuthenticatedUser = Depends(get_current_user),
	service: TriviaAttemptService = Depends(get_attempt_service),
) -> LeaderboardResponse:
	week_key = policy.resolve_week_key(week)
	language = policy.normalize_language(lang)
	entries = await service.leaderboard(week_key, language)
	response.headers["Cache-Control"] = "private, no-store"
	return LeaderboardResponse(
		week_key=week_key,
		language=language,
		entries=[
			LeaderboardEntrySchema(
				rank=entry.rank,
				user_id=entry.user_id,
				name=entry.name,
				username=entry.username,
				avatar=entry.avatar,
				score=entry.score,
				duration_ms=entry.duration_ms,
				created_at=entry.created_at,
			)
			for entry in entries
		],
	)

"""httpx client for the trivia HTTP API."""

from __future__ import annotations

from typing import Any, Optional

import httpx

from cinetrivia.domain.trivia.models import QUESTIONS_PER_WEEK
from cinetrivia.domain.trivia.schemas import AttemptSubmission, LeaderboardResponse, WeeklyTriviaPayload


class TriviaApiError(RuntimeError):
	def __init__(self, status_code: int, code: str, message: Optional[str] = None) -> None:
		super().__init__(message or code)
		self.status_code = status_code
		self.code = code
		self.message = message or code


def _error_from(response: httpx.Response) -> TriviaApiError:
	try:
		body: Any = response.json()
	except ValueError:
		body = None
	if isinstance(body, dict):
		code = str(body.get("detail") or "http_error")
		message = str(body.get("error") or code)
	else:
		code = "http_error"
		message = response.text or f"HTTP {response.status_code}"
	return TriviaApiError(response.status_code, code, message)


class TriviaApiClient:
	def __init__(self, http: httpx.AsyncClient, *, access_token: Optional[str] = None) -> None:
		self._http = http
		self._access_token = access_token

	@property
	def authenticated(self) -> bool:
		return bool(self._access_token)

	def _auth_headers(self) -> dict[str, str]:
		if not self._access_token:
			return {}
		return {"Authorization": f"Bearer {self._access_token}"}

	async def fetch_weekly(self, lang: Optional[str] = None, week: Optional[str] = None) -> WeeklyTriviaPayload:
		params = {key: value for key, value in (("lang", lang), ("week", week)) if value}
		response = await self._http.get("/trivia/weekly", params=params)
		if response.status_code != 200:
			raise _error_from(response)
		payload = WeeklyTriviaPayload.model_validate(response.json())
		if len(payload.questions) != QUESTIONS_PER_WEEK:
			raise TriviaApiError(response.status_code, "trivia_not_ready", "quiz payload is incomplete")
		return payload

	async def submit_attempt(self, submission: AttemptSubmission) -> str:
		response = await self._http.post(
			"/trivia/attempts",
			json=submission.model_dump(by_alias=True),
			headers=self._auth_headers(),
		)
		if response.status_code not in (200, 201):
			raise _error_from(response)
		return str(response.json()["id"])

	async def leaderboard(self, week: str, lang: str) -> LeaderboardResponse:
		response = await self._http.get(
			"/trivia/leaderboard",
			params={"week": week, "lang": lang},
			headers=self._auth_headers(),
		)
		if response.status_code != 200:
			raise _error_from(response)
		return LeaderboardResponse.model_validate(response.json())

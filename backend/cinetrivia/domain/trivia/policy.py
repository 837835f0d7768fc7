"""Error taxonomy and guard helpers for the weekly trivia engine."""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Dict, Optional

from cinetrivia.domain.trivia import models
from cinetrivia.domain.trivia.schemas import AttemptSubmission

_WEEK_KEY_RE = re.compile(r"^(\d{4})-W(\d{2})$")

MAX_SCORE = models.QUESTIONS_PER_WEEK
NOT_READY_RETRY_AFTER_SECONDS = 60


class TriviaError(RuntimeError):
	status_code = 500
	code = "trivia_error"

	def __init__(self, message: str | None = None, *, code: str | None = None, status_code: int | None = None) -> None:
		super().__init__(message or code or self.code)
		if code is not None:
			self.code = code
		if status_code is not None:
			self.status_code = status_code
		self.message = message or self.code

	@property
	def headers(self) -> Dict[str, str]:
		return {}


class TriviaConfigurationError(TriviaError):
	status_code = 500
	code = "catalog_not_configured"


class TriviaNotReadyError(TriviaError):
	"""The candidate pool stayed below a full quiz after every relaxation tier."""

	status_code = 503
	code = "trivia_not_ready"

	@property
	def headers(self) -> Dict[str, str]:
		return {"Retry-After": str(NOT_READY_RETRY_AFTER_SECONDS)}


class TriviaValidationError(TriviaError):
	status_code = 422
	code = "validation_error"


class TriviaNotProvisionedError(TriviaError):
	"""The attempts schema is missing; distinct from an empty leaderboard."""

	status_code = 503
	code = "trivia_not_provisioned"


class TriviaStoreUnavailableError(TriviaError):
	status_code = 503
	code = "trivia_store_unavailable"


def normalize_language(value: Optional[str]) -> models.Language:
	"""Map free-form input onto the language enum; unknown values fall back to the default."""
	text = str(value or "").strip().lower()
	try:
		return models.Language(text)
	except ValueError:
		return models.DEFAULT_LANGUAGE


def require_language(value: Optional[str]) -> models.Language:
	text = str(value or "").strip().lower()
	try:
		return models.Language(text)
	except ValueError:
		raise TriviaValidationError("Unsupported language.", code="invalid_language") from None


def current_week_key(now: Optional[datetime] = None) -> str:
	"""ISO-8601 week key in UTC; the week's Thursday decides the year."""
	moment = now or datetime.now(timezone.utc)
	if moment.tzinfo is not None:
		moment = moment.astimezone(timezone.utc)
	iso_year, iso_week, _ = moment.date().isocalendar()
	return f"{iso_year}-W{iso_week:02d}"


def parse_week_key(value: Optional[str]) -> Optional[str]:
	"""Return the canonical week key, or None when it is not a real ISO week."""
	match = _WEEK_KEY_RE.match(str(value or "").strip())
	if not match:
		return None
	year, week = int(match.group(1)), int(match.group(2))
	try:
		date.fromisocalendar(year, week, 1)
	except ValueError:
		return None
	return f"{year:04d}-W{week:02d}"


def resolve_week_key(value: Optional[str], *, now: Optional[datetime] = None) -> str:
	"""Read-path normalisation: missing or malformed weeks mean the current week."""
	return parse_week_key(value) or current_week_key(now)


def require_week_key(value: Optional[str]) -> str:
	week_key = parse_week_key(value)
	if week_key is None:
		raise TriviaValidationError("Week must look like 2026-W07.", code="invalid_week")
	return week_key


def validate_submission(submission: AttemptSubmission, *, max_duration_ms: int) -> tuple[str, models.Language]:
	"""Strict write-path validation; nothing is normalised here."""
	language = require_language(submission.language)
	week_key = require_week_key(submission.week_key)
	if submission.score < 0 or submission.score > MAX_SCORE:
		raise TriviaValidationError(f"Score must be between 0 and {MAX_SCORE}.", code="invalid_score")
	if submission.duration_ms <= 0 or submission.duration_ms >= max_duration_ms:
		raise TriviaValidationError("Duration is out of range.", code="invalid_duration")
	return week_key, language

"""Client-side state machine for one play-through of the weekly quiz.

States move idle -> in_progress -> finished -> submitted. Loading a payload
always resets to idle; there is no resume.
"""

from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import Callable, List, Optional, Protocol

from cinetrivia.domain.trivia.models import QUESTIONS_PER_WEEK
from cinetrivia.domain.trivia.schemas import AttemptSubmission, TriviaQuestion, WeeklyTriviaPayload

logger = logging.getLogger(__name__)

UNANSWERED = -1


def _monotonic_ms() -> int:
	return int(time.monotonic() * 1000)


class SessionState(str, Enum):
	IDLE = "idle"
	IN_PROGRESS = "in_progress"
	FINISHED = "finished"
	SUBMITTED = "submitted"


class QuizSessionError(RuntimeError):
	def __init__(self, code: str, message: Optional[str] = None) -> None:
		super().__init__(message or code)
		self.code = code


class AttemptSubmitter(Protocol):
	@property
	def authenticated(self) -> bool:
		...

	async def submit_attempt(self, submission: AttemptSubmission) -> str:
		...


class QuizSession:
	def __init__(self, *, clock: Callable[[], int] = _monotonic_ms) -> None:
		self._clock = clock
		self._submit_lock = asyncio.Lock()
		self.payload: Optional[WeeklyTriviaPayload] = None
		self._reset()

	def _reset(self) -> None:
		self.state = SessionState.IDLE
		self.current_index = 0
		self.answers: List[int] = []
		self.started_at: Optional[int] = None
		self.finished_at: Optional[int] = None
		self.score: Optional[int] = None
		self.duration_ms: Optional[int] = None
		self.submission_id: Optional[str] = None
		self.submit_error: Optional[str] = None

	@property
	def questions(self) -> List[TriviaQuestion]:
		return self.payload.questions if self.payload else []

	@property
	def current_question(self) -> Optional[TriviaQuestion]:
		if not self.questions:
			return None
		return self.questions[self.current_index]

	@property
	def all_answered(self) -> bool:
		return bool(self.answers) and all(answer != UNANSWERED for answer in self.answers)

	def _require(self, *states: SessionState) -> None:
		if self.state not in states:
			raise QuizSessionError("invalid_state", f"not allowed while {self.state.value}")

	def load(self, payload: WeeklyTriviaPayload) -> None:
		self.payload = payload
		self._reset()

	def start(self) -> None:
		self._require(SessionState.IDLE)
		if len(self.questions) != QUESTIONS_PER_WEEK:
			raise QuizSessionError("not_loaded", "quiz payload is not loaded")
		self.started_at = self._clock()
		self.answers = [UNANSWERED] * len(self.questions)
		self.current_index = 0
		self.state = SessionState.IN_PROGRESS

	def select(self, option_index: int) -> None:
		self._require(SessionState.IN_PROGRESS)
		question = self.current_question
		if question is None:
			raise QuizSessionError("invalid_state", "no current question")
		if not 0 <= option_index < len(question.options):
			raise QuizSessionError("invalid_option")
		self.answers[self.current_index] = option_index

	def go_to(self, index: int) -> None:
		self._require(SessionState.IN_PROGRESS)
		if not 0 <= index < len(self.questions):
			raise QuizSessionError("invalid_question")
		self.current_index = index

	def next(self) -> None:
		self.go_to(min(self.current_index + 1, len(self.questions) - 1))

	def previous(self) -> None:
		self.go_to(max(self.current_index - 1, 0))

	def finish(self) -> int:
		self._require(SessionState.IN_PROGRESS)
		if not self.all_answered:
			raise QuizSessionError("unanswered", "every question needs an answer before finishing")
		if self.started_at is None:
			raise QuizSessionError("invalid_state", "quiz was never started")
		self.finished_at = self._clock()
		self.score = sum(
			1 for answer, question in zip(self.answers, self.questions) if answer == question.correct_index
		)
		self.duration_ms = max(1, self.finished_at - self.started_at)
		self.state = SessionState.FINISHED
		return self.score

	def elapsed_ms(self) -> int:
		if self.started_at is None:
			return 0
		if self.finished_at is not None:
			return max(0, self.finished_at - self.started_at)
		return max(0, self._clock() - self.started_at)

	def to_submission(self) -> AttemptSubmission:
		if self.payload is None or self.score is None or self.duration_ms is None:
			raise QuizSessionError("not_finished")
		return AttemptSubmission(
			week_key=self.payload.week_key,
			language=self.payload.language.value,
			score=self.score,
			duration_ms=self.duration_ms,
		)

	async def submit(self, submitter: AttemptSubmitter) -> Optional[str]:
		"""Send the finished result once. Later calls return the same id without a request."""
		async with self._submit_lock:
			if self.state is SessionState.SUBMITTED:
				return self.submission_id
			self._require(SessionState.FINISHED)
			if not submitter.authenticated:
				raise QuizSessionError("auth_required", "sign in to submit to the leaderboard")
			self.submit_error = None
			try:
				self.submission_id = await submitter.submit_attempt(self.to_submission())
			except Exception as exc:
				# The local score stays visible; only the submission failed.
				self.submit_error = str(exc) or type(exc).__name__
				logger.warning("trivia_submit_failed", extra={"error": self.submit_error})
				return None
			self.state = SessionState.SUBMITTED
			return self.submission_id

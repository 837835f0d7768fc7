"""Attempt persistence and the weekly leaderboard.

Attempts are append-only. The leaderboard keeps each player's best run, so a
worse resubmission never lowers a standing.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Protocol

import asyncpg

from cinetrivia.domain.trivia import models, policy, ranking
from cinetrivia.domain.trivia.schemas import AttemptSubmission
from cinetrivia.infra.auth import AuthenticatedUser
from cinetrivia.infra.postgres import get_pool
from cinetrivia.obs import metrics as obs_metrics
from cinetrivia.settings import settings

logger = logging.getLogger(__name__)


class AttemptStore(Protocol):
	async def record(self, attempt: models.Attempt, identity: models.PlayerIdentity) -> str:
		...

	async def best_attempts(
		self, week_key: str, language: models.Language, limit: int
	) -> tuple[List[models.Attempt], Dict[str, models.PlayerIdentity]]:
		...


class MemoryAttemptStore:
	def __init__(self) -> None:
		self._lock = asyncio.Lock()
		self.attempts: List[models.Attempt] = []
		self.players: Dict[str, models.PlayerIdentity] = {}

	async def reset(self) -> None:
		async with self._lock:
			self.attempts.clear()
			self.players.clear()

	async def record(self, attempt: models.Attempt, identity: models.PlayerIdentity) -> str:
		async with self._lock:
			self.players[attempt.user_id] = identity
			self.attempts.append(attempt)
			return attempt.id

	async def best_attempts(
		self, week_key: str, language: models.Language, limit: int
	) -> tuple[List[models.Attempt], Dict[str, models.PlayerIdentity]]:
		async with self._lock:
			matching = [a for a in self.attempts if a.week_key == week_key and a.language == language]
			players = dict(self.players)
		best = sorted(ranking.best_attempts_per_user(matching), key=ranking.attempt_sort_key)[:limit]
		return best, {a.user_id: players.get(a.user_id, models.PlayerIdentity()) for a in best}


_UPSERT_PLAYER = """
INSERT INTO trivia_players (user_id, name, username, avatar, updated_at)
VALUES ($1, $2, $3, $4, NOW())
ON CONFLICT (user_id) DO UPDATE
SET name = EXCLUDED.name,
	username = EXCLUDED.username,
	avatar = EXCLUDED.avatar,
	updated_at = NOW()
"""

_INSERT_ATTEMPT = """
INSERT INTO trivia_attempts (id, user_id, week_key, language, score, duration_ms, created_at)
VALUES ($1, $2, $3, $4, $5, $6, $7)
RETURNING id
"""

_BEST_ATTEMPTS = """
WITH best AS (
	SELECT DISTINCT ON (a.user_id)
		a.id, a.user_id, a.week_key, a.language, a.score, a.duration_ms, a.created_at
	FROM trivia_attempts a
	WHERE a.week_key = $1 AND a.language = $2
	ORDER BY a.user_id, a.score DESC, a.duration_ms ASC, a.created_at ASC
)
SELECT b.*, COALESCE(p.name, 'User') AS name, p.username, p.avatar
FROM best b
LEFT JOIN trivia_players p ON p.user_id = b.user_id
ORDER BY b.score DESC, b.duration_ms ASC, b.created_at ASC, b.user_id ASC
LIMIT $3
"""


# Connection, auth and timeout failures. UndefinedTableError is caught before this.
_UNAVAILABLE_ERRORS = (OSError, asyncio.TimeoutError, asyncpg.PostgresError, asyncpg.InterfaceError)


class PostgresAttemptStore:
	"""asyncpg-backed store; schema lives in infra/migrations."""

	def __init__(self, pool_getter: Callable = get_pool) -> None:
		self._pool_getter = pool_getter

	async def _pool(self):
		try:
			return await self._pool_getter()
		except _UNAVAILABLE_ERRORS as exc:
			raise policy.TriviaStoreUnavailableError("Attempt store is unavailable.") from exc

	async def record(self, attempt: models.Attempt, identity: models.PlayerIdentity) -> str:
		pool = await self._pool()
		try:
			async with pool.acquire() as conn:
				async with conn.transaction():
					await conn.execute(_UPSERT_PLAYER, attempt.user_id, identity.name, identity.username, identity.avatar)
					row_id = await conn.fetchval(
						_INSERT_ATTEMPT,
						uuid.UUID(attempt.id),
						attempt.user_id,
						attempt.week_key,
						attempt.language.value,
						attempt.score,
						attempt.duration_ms,
						attempt.created_at,
					)
		except asyncpg.UndefinedTableError as exc:
			raise policy.TriviaNotProvisionedError("Trivia attempts are not set up yet.") from exc
		except _UNAVAILABLE_ERRORS as exc:
			raise policy.TriviaStoreUnavailableError("Attempt store is unavailable.") from exc
		return str(row_id)

	async def best_attempts(
		self, week_key: str, language: models.Language, limit: int
	) -> tuple[List[models.Attempt], Dict[str, models.PlayerIdentity]]:
		pool = await self._pool()
		try:
			async with pool.acquire() as conn:
				rows = await conn.fetch(_BEST_ATTEMPTS, week_key, language.value, limit)
		except asyncpg.UndefinedTableError as exc:
			raise policy.TriviaNotProvisionedError("Trivia leaderboard is not set up yet.") from exc
		except _UNAVAILABLE_ERRORS as exc:
			raise policy.TriviaStoreUnavailableError("Attempt store is unavailable.") from exc
		attempts: List[models.Attempt] = []
		identities: Dict[str, models.PlayerIdentity] = {}
		for row in rows:
			user_id = str(row["user_id"])
			attempts.append(
				models.Attempt(
					id=str(row["id"]),
					user_id=user_id,
					week_key=row["week_key"],
					language=models.Language(row["language"]),
					score=int(row["score"]),
					duration_ms=int(row["duration_ms"]),
					created_at=row["created_at"],
				)
			)
			identities[user_id] = models.PlayerIdentity(name=row["name"], username=row["username"], avatar=row["avatar"])
		return attempts, identities


def _identity_for(user: AuthenticatedUser) -> models.PlayerIdentity:
	return models.PlayerIdentity(
		name=user.display_name or user.handle or "User",
		username=user.handle,
		avatar=user.avatar_url,
	)


class TriviaAttemptService:
	def __init__(
		self,
		store: AttemptStore,
		*,
		max_duration_ms: int = 3_600_000,
		leaderboard_limit: int = 50,
		clock: Optional[Callable[[], datetime]] = None,
	) -> None:
		self._store = store
		self._max_duration_ms = max_duration_ms
		self._limit = leaderboard_limit
		self._clock = clock or (lambda: datetime.now(timezone.utc))

	async def submit(self, user: AuthenticatedUser, submission: AttemptSubmission) -> str:
		try:
			week_key, language = policy.validate_submission(submission, max_duration_ms=self._max_duration_ms)
		except policy.TriviaValidationError as exc:
			obs_metrics.inc_trivia_attempt("rejected")
			logger.info("trivia_attempt_rejected", extra={"user_id": user.id, "code": exc.code})
			raise
		attempt = models.Attempt(
			id=str(uuid.uuid4()),
			user_id=user.id,
			week_key=week_key,
			language=language,
			score=submission.score,
			duration_ms=submission.duration_ms,
			created_at=self._clock(),
		)
		try:
			attempt_id = await self._store.record(attempt, _identity_for(user))
		except policy.TriviaError as exc:
			obs_metrics.inc_trivia_attempt("error")
			logger.warning("trivia_attempt_failed", extra={"user_id": user.id, "code": exc.code})
			raise
		obs_metrics.inc_trivia_attempt("recorded")
		logger.info(
			"trivia_attempt_recorded",
			extra={
				"user_id": user.id,
				"attempt_id": attempt_id,
				"week_key": week_key,
				"language": language.value,
				"score": attempt.score,
				"duration_ms": attempt.duration_ms,
			},
		)
		return attempt_id

	async def leaderboard(self, week_key: str, language: models.Language) -> List[models.LeaderboardEntry]:
		try:
			attempts, identities = await self._store.best_attempts(week_key, language, self._limit)
		except policy.TriviaNotProvisionedError:
			logger.warning("trivia_leaderboard_not_provisioned", extra={"week_key": week_key, "language": language.value})
			raise
		return ranking.rank_attempts(attempts, identities, limit=self._limit)


_memory_store = MemoryAttemptStore()


def get_memory_store() -> MemoryAttemptStore:
	return _memory_store


def build_attempt_service() -> TriviaAttemptService:
	store: AttemptStore
	if settings.trivia_attempt_store == "memory":
		store = _memory_store
	else:
		store = PostgresAttemptStore()
	return TriviaAttemptService(
		store,
		max_duration_ms=settings.trivia_max_duration_ms,
		leaderboard_limit=settings.trivia_leaderboard_limit,
	)

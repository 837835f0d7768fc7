import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import asyncpg
import pytest

from cinetrivia.domain.trivia import policy
from cinetrivia.domain.trivia.attempts import MemoryAttemptStore, PostgresAttemptStore, TriviaAttemptService
from cinetrivia.domain.trivia.models import Language
from cinetrivia.domain.trivia.schemas import AttemptSubmission
from cinetrivia.infra.auth import AuthenticatedUser

FIXED_NOW = datetime(2026, 2, 12, 20, 0, tzinfo=timezone.utc)


def _submission(**overrides):
	body = {"weekKey": "2026-W07", "language": "en", "score": 8, "durationMs": 42000}
	body.update(overrides)
	return AttemptSubmission.model_validate(body)


def _service(store=None):
	return TriviaAttemptService(store or MemoryAttemptStore(), max_duration_ms=3_600_000, leaderboard_limit=50, clock=lambda: FIXED_NOW)


class _FailingConn:
	def __init__(self, exc):
		self._exc = exc

	async def fetch(self, *args):
		raise self._exc

	async def fetchval(self, *args):
		raise self._exc

	async def execute(self, *args):
		raise self._exc

	@asynccontextmanager
	async def transaction(self):
		yield


class _FakePool:
	def __init__(self, exc):
		self._conn = _FailingConn(exc)

	@asynccontextmanager
	async def acquire(self):
		yield self._conn


def _pool_getter(exc):
	async def _get():
		return _FakePool(exc)

	return _get


@pytest.mark.asyncio
async def test_submit_records_attempt_and_returns_id():
	store = MemoryAttemptStore()
	user = AuthenticatedUser(id="user-1", handle="asha", display_name="Asha")
	attempt_id = await _service(store).submit(user, _submission())

	assert attempt_id
	assert len(store.attempts) == 1
	stored = store.attempts[0]
	assert (stored.id, stored.language, stored.score, stored.created_at) == (attempt_id, Language.EN, 8, FIXED_NOW)
	assert store.players["user-1"].name == "Asha"


@pytest.mark.asyncio
async def test_invalid_submission_is_not_written():
	store = MemoryAttemptStore()
	with pytest.raises(policy.TriviaValidationError) as exc:
		await _service(store).submit(AuthenticatedUser(id="user-1"), _submission(score=12))
	assert exc.value.code == "invalid_score"
	assert store.attempts == []


@pytest.mark.asyncio
async def test_resubmission_keeps_best_result():
	service = _service()
	user = AuthenticatedUser(id="user-1", handle="asha")
	await service.submit(user, _submission(score=9, durationMs=30000))
	await service.submit(user, _submission(score=5, durationMs=10000))

	entries = await service.leaderboard("2026-W07", Language.EN)
	assert [(e.user_id, e.score, e.duration_ms) for e in entries] == [("user-1", 9, 30000)]
	assert entries[0].name == "asha"


@pytest.mark.asyncio
async def test_leaderboard_is_scoped_to_week_and_language():
	service = _service()
	await service.submit(AuthenticatedUser(id="a"), _submission())
	await service.submit(AuthenticatedUser(id="b"), _submission(language="te"))
	await service.submit(AuthenticatedUser(id="c"), _submission(weekKey="2026-W08"))

	entries = await service.leaderboard("2026-W07", Language.EN)
	assert [e.user_id for e in entries] == ["a"]
	assert await service.leaderboard("2026-W09", Language.EN) == []


@pytest.mark.asyncio
async def test_missing_table_is_distinct_from_empty_board():
	store = PostgresAttemptStore(pool_getter=_pool_getter(asyncpg.UndefinedTableError('relation "trivia_attempts" does not exist')))
	with pytest.raises(policy.TriviaNotProvisionedError) as exc:
		await _service(store).leaderboard("2026-W07", Language.EN)
	assert exc.value.code == "trivia_not_provisioned"
	assert exc.value.status_code == 503


@pytest.mark.asyncio
async def test_missing_table_on_submit():
	store = PostgresAttemptStore(pool_getter=_pool_getter(asyncpg.UndefinedTableError("missing")))
	with pytest.raises(policy.TriviaNotProvisionedError):
		await _service(store).submit(AuthenticatedUser(id="user-1"), _submission())


@pytest.mark.asyncio
async def test_unreachable_database_is_store_unavailable():
	async def _refused():
		raise ConnectionRefusedError("connection refused")

	store = PostgresAttemptStore(pool_getter=_refused)
	with pytest.raises(policy.TriviaStoreUnavailableError):
		await _service(store).leaderboard("2026-W07", Language.EN)


@pytest.mark.asyncio
async def test_rejected_credentials_are_store_unavailable():
	async def _bad_password():
		raise asyncpg.InvalidPasswordError('password authentication failed for user "trivia"')

	store = PostgresAttemptStore(pool_getter=_bad_password)
	with pytest.raises(policy.TriviaStoreUnavailableError):
		await _service(store).submit(AuthenticatedUser(id="user-1"), _submission())


@pytest.mark.asyncio
async def test_query_timeout_is_store_unavailable():
	store = PostgresAttemptStore(pool_getter=_pool_getter(asyncio.TimeoutError()))
	with pytest.raises(policy.TriviaStoreUnavailableError):
		await _service(store).leaderboard("2026-W07", Language.EN)


@pytest.mark.asyncio
async def test_server_error_during_query_is_store_unavailable():
	store = PostgresAttemptStore(pool_getter=_pool_getter(asyncpg.TooManyConnectionsError("too many clients")))
	with pytest.raises(policy.TriviaStoreUnavailableError):
		await _service(store).submit(AuthenticatedUser(id="user-1"), _submission())

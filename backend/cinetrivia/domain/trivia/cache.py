"""Redis-backed cache for computed weekly payloads."""

from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import ValidationError
from redis.exceptions import RedisError

from cinetrivia.domain.trivia.models import PAYLOAD_VERSION
from cinetrivia.domain.trivia.schemas import WeeklyTriviaPayload

logger = logging.getLogger(__name__)


def payload_key(week_key: str, language: str, *, version: int = PAYLOAD_VERSION) -> str:
	return f"trivia:weekly:v{version}:{week_key}:{language}"


class TriviaPayloadCache:
	"""Explicit payload cache; every failure degrades to a miss so generation can proceed."""

	def __init__(self, client: Any, *, ttl_seconds: int) -> None:
		self._client = client
		self._ttl = max(1, int(ttl_seconds))

	async def get(self, week_key: str, language: str) -> Optional[WeeklyTriviaPayload]:
		key = payload_key(week_key, language)
		try:
			raw = await self._client.get(key)
		except RedisError as exc:
			logger.warning("trivia_cache_error", extra={"op": "get", "key": key, "error": str(exc)})
			return None
		if not raw:
			return None
		try:
			return WeeklyTriviaPayload.model_validate_json(raw)
		except ValidationError:
			logger.warning("trivia_cache_error", extra={"op": "decode", "key": key})
			return None

	async def set(self, payload: WeeklyTriviaPayload) -> None:
		key = payload_key(payload.week_key, payload.language.value)
		try:
			await self._client.set(key, payload.model_dump_json(by_alias=True), ex=self._ttl)
		except RedisError as exc:
			logger.warning("trivia_cache_error", extra={"op": "set", "key": key, "error": str(exc)})

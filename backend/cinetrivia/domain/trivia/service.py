"""Weekly trivia payload generation."""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Optional, Sequence

from cinetrivia.domain.trivia import models, policy
from cinetrivia.domain.trivia.cache import TriviaPayloadCache
from cinetrivia.domain.trivia.catalog import CatalogClient, RetryPolicy
from cinetrivia.domain.trivia.pool import CandidatePool, tiers_from_pairs
from cinetrivia.domain.trivia.questions import DistractorGenerator, QuestionBuilder
from cinetrivia.domain.trivia.schemas import WeeklyTriviaPayload
from cinetrivia.domain.trivia.seeded import SeededStream, seed_for
from cinetrivia.infra.http_client import get_client
from cinetrivia.infra.redis import redis_client
from cinetrivia.obs import metrics as obs_metrics
from cinetrivia.settings import settings

logger = logging.getLogger(__name__)


class WeeklyTriviaService:
	"""Computes the quiz for a (week, language) pair.

	Generation is a pure function of its inputs and the catalog snapshot, so the
	cache is optional: a miss recomputes the same payload.
	"""

	def __init__(
		self,
		catalog: CatalogClient,
		*,
		tiers: Sequence[models.RelaxationTier],
		min_year: int,
		max_year: int,
		max_pages: int = 12,
		image_base_url: Optional[str] = None,
		cache: Optional[TriviaPayloadCache] = None,
	) -> None:
		self._catalog = catalog
		self._pool = CandidatePool(catalog, tiers=tiers, min_year=min_year, max_year=max_year, max_pages=max_pages)
		self._builder = QuestionBuilder(
			DistractorGenerator(min_year=min_year, max_year=max_year),
			image_base_url=image_base_url,
		)
		self._cache = cache

	async def get_weekly(
		self,
		language: Optional[str] = None,
		week: Optional[str] = None,
		*,
		now: Optional[datetime] = None,
	) -> WeeklyTriviaPayload:
		lang = policy.normalize_language(language)
		week_key = policy.resolve_week_key(week, now=now)

		if not self._catalog.is_configured:
			obs_metrics.inc_trivia_payload(lang.value, "config_error")
			raise policy.TriviaConfigurationError("Movie catalog credentials are not configured.")

		if self._cache is not None:
			cached = await self._cache.get(week_key, lang.value)
			if cached is not None:
				obs_metrics.inc_trivia_payload(lang.value, "hit")
				return cached

		payload = await self.generate(week_key, lang)
		if self._cache is not None:
			await self._cache.set(payload)
		return payload

	async def generate(self, week_key: str, language: models.Language) -> WeeklyTriviaPayload:
		"""Uncached computation; one seeded stream feeds the pool and then the builder."""
		started = time.perf_counter()
		rng = SeededStream(seed_for(week_key, language.value))
		pool = await self._pool.build(rng, language.value)
		try:
			questions = self._builder.build(rng, pool.items, week_key=week_key, language=language.value)
		except policy.TriviaNotReadyError:
			obs_metrics.inc_trivia_payload(language.value, "not_ready")
			logger.warning(
				"trivia_pool_insufficient",
				extra={"week_key": week_key, "language": language.value, "candidates": len(pool.items)},
			)
			raise
		elapsed = time.perf_counter() - started
		obs_metrics.observe_trivia_generation(elapsed)
		obs_metrics.inc_trivia_payload(language.value, "generated")
		logger.info(
			"trivia_payload_generated",
			extra={
				"week_key": week_key,
				"language": language.value,
				"tier": pool.tier_index,
				"candidates": len(pool.items),
				"elapsed_ms": round(elapsed * 1000, 1),
			},
		)
		return WeeklyTriviaPayload(
			week_key=week_key,
			language=language,
			language_label=language.label,
			questions=questions,
		)


def build_catalog_client() -> CatalogClient:
	return CatalogClient(
		get_client(),
		api_key=settings.tmdb_api_key,
		base_url=settings.tmdb_base_url,
		min_year=settings.trivia_min_year,
		max_year=settings.trivia_max_year,
		timeout_seconds=settings.catalog_timeout_seconds,
		retry=RetryPolicy(
			retries=settings.catalog_retries,
			base_delay_ms=settings.catalog_retry_delay_ms,
			max_delay_ms=settings.catalog_max_delay_ms,
			jitter_ms=settings.catalog_jitter_ms,
			retry_statuses=tuple(settings.catalog_retry_statuses),
		),
	)


def build_weekly_service() -> WeeklyTriviaService:
	cache = None
	if settings.trivia_cache_enabled:
		cache = TriviaPayloadCache(redis_client, ttl_seconds=settings.trivia_cache_ttl_seconds)
	return WeeklyTriviaService(
		build_catalog_client(),
		tiers=tiers_from_pairs(settings.trivia_tiers),
		min_year=settings.trivia_min_year,
		max_year=settings.trivia_max_year,
		max_pages=settings.trivia_max_pages,
		image_base_url=settings.tmdb_image_base_url,
		cache=cache,
	)

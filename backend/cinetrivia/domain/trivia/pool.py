"""Candidate pool construction under relaxation tiers."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Protocol, Sequence

from cinetrivia.domain.trivia import models
from cinetrivia.domain.trivia.seeded import SeededStream
from cinetrivia.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


class DiscoverSource(Protocol):
	async def discover(self, language: str, page: int, min_vote_count: int) -> models.DiscoverPage:
		...


@dataclass(slots=True)
class PoolResult:
	items: List[models.CatalogItem] = field(default_factory=list)
	tier_index: int = -1
	pages: List[int] = field(default_factory=list)

	@property
	def sufficient(self) -> bool:
		return len(self.items) >= models.QUESTIONS_PER_WEEK


def tiers_from_pairs(pairs: Sequence[Sequence[int]]) -> List[models.RelaxationTier]:
	return [models.RelaxationTier(min_vote_count=int(votes), pages_wanted=int(pages)) for votes, pages in pairs]


class CandidatePool:
	"""Collects eligible catalog items, relaxing the vote threshold until ten are available."""

	def __init__(
		self,
		catalog: DiscoverSource,
		*,
		tiers: Sequence[models.RelaxationTier],
		min_year: int,
		max_year: int,
		max_pages: int = 12,
	) -> None:
		if not tiers:
			raise ValueError("at least one relaxation tier is required")
		self._catalog = catalog
		self._tiers = list(tiers)
		self._min_year = min_year
		self._max_year = max_year
		self._max_pages = max(1, max_pages)

	async def build(self, rng: SeededStream, language: str) -> PoolResult:
		result = PoolResult()
		for index, tier in enumerate(self._tiers):
			items, pages = await self._collect_tier(rng, language, tier)
			result = PoolResult(items=items, tier_index=index, pages=pages)
			logger.info(
				"trivia_pool_tier",
				extra={
					"language": language,
					"tier": index,
					"min_vote_count": tier.min_vote_count,
					"pages": pages,
					"candidates": len(items),
				},
			)
			if result.sufficient:
				break
		obs_metrics.inc_trivia_pool_tier(result.tier_index)
		return result

	async def _collect_tier(
		self,
		rng: SeededStream,
		language: str,
		tier: models.RelaxationTier,
	) -> tuple[List[models.CatalogItem], List[int]]:
		first = await self._catalog.discover(language, 1, tier.min_vote_count)
		max_pages = max(1, min(self._max_pages, first.total_pages or 1))

		# RNG order: page pool shuffle, then candidate shuffle.
		page_pool = list(range(2, max_pages + 1))
		rng.shuffle(page_pool)
		extra_pages = page_pool[: max(0, tier.pages_wanted - 1)]

		fetched = await asyncio.gather(
			*(self._catalog.discover(language, page, tier.min_vote_count) for page in extra_pages)
		)
		merged: List[models.CatalogItem] = list(first.items)
		for page in fetched:
			merged.extend(page.items)

		candidates = self._filter_unique(merged)
		rng.shuffle(candidates)
		return candidates, [1, *extra_pages]

	def _filter_unique(self, items: Sequence[models.CatalogItem]) -> List[models.CatalogItem]:
		seen: set[int] = set()
		unique: List[models.CatalogItem] = []
		for item in items:
			if not (self._min_year <= item.release_year <= self._max_year):
				continue
			if item.id in seen:
				continue
			seen.add(item.id)
			unique.append(item)
		return unique

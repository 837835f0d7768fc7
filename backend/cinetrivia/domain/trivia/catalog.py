"""Client for the external movie catalog's "discover" listing.

Upstream failures never propagate past ``discover``: a page that cannot be
fetched after the retry budget is reported as an empty page, and the candidate
pool absorbs the shortfall through relaxation tiers.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

import httpx

from cinetrivia.domain.trivia.models import CatalogItem, DiscoverPage
from cinetrivia.obs import metrics as obs_metrics
from cinetrivia.settings import DEFAULT_RETRY_STATUSES

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RetryPolicy:
	retries: int = 1
	base_delay_ms: int = 300
	max_delay_ms: int = 1500
	jitter_ms: int = 120
	retry_statuses: Sequence[int] = DEFAULT_RETRY_STATUSES

	def delay_seconds(self, attempt: int) -> float:
		exponential = min(self.max_delay_ms, self.base_delay_ms * (2**attempt))
		jitter = random.uniform(0, self.jitter_ms) if self.jitter_ms > 0 else 0.0
		return (exponential + jitter) / 1000.0


def _parse_year(release_date: str) -> Optional[int]:
	head = release_date[:4]
	if len(head) != 4 or not head.isdigit():
		return None
	return int(head)


def normalize_row(row: Any, *, fallback_language: str) -> Optional[CatalogItem]:
	"""Turn one raw result row into a CatalogItem, or None if it is unusable."""
	if not isinstance(row, Mapping):
		return None
	item_id = row.get("id")
	title = row.get("title")
	release_date = row.get("release_date")
	if isinstance(item_id, bool) or not isinstance(item_id, int):
		return None
	if not isinstance(title, str) or not title.strip():
		return None
	if not isinstance(release_date, str):
		return None
	year = _parse_year(release_date)
	if year is None:
		return None
	poster_path = row.get("poster_path")
	original_language = row.get("original_language")
	popularity = row.get("popularity")
	vote_count = row.get("vote_count")
	return CatalogItem(
		id=item_id,
		title=title.strip(),
		release_date=release_date,
		release_year=year,
		original_language=original_language if isinstance(original_language, str) else fallback_language,
		popularity=float(popularity) if isinstance(popularity, (int, float)) and not isinstance(popularity, bool) else 0.0,
		vote_count=int(vote_count) if isinstance(vote_count, int) and not isinstance(vote_count, bool) else 0,
		poster_path=poster_path if isinstance(poster_path, str) and poster_path else None,
	)


def _total_pages(value: Any) -> int:
	try:
		total = int(value)
	except (TypeError, ValueError):
		return 0
	return max(total, 0)


class CatalogClient:
	"""Fetches and normalises discover pages; holds no cache of its own."""

	def __init__(
		self,
		http: httpx.AsyncClient,
		*,
		api_key: Optional[str],
		base_url: str,
		min_year: int,
		max_year: int,
		timeout_seconds: float = 9.0,
		retry: Optional[RetryPolicy] = None,
	) -> None:
		self._http = http
		self._api_key = (api_key or "").strip()
		self._base_url = base_url.rstrip("/")
		self._min_year = min_year
		self._max_year = max_year
		self._timeout = timeout_seconds
		self._retry = retry or RetryPolicy()

	@property
	def is_configured(self) -> bool:
		return bool(self._api_key)

	def _discover_params(self, language: str, page: int, min_vote_count: int) -> dict[str, Any]:
		return {
			"api_key": self._api_key,
			"with_original_language": language,
			"primary_release_date.gte": f"{self._min_year}-01-01",
			"primary_release_date.lte": f"{self._max_year}-12-31",
			"vote_count.gte": min_vote_count,
			"include_adult": "false",
			"sort_by": "popularity.desc",
			"page": page,
		}

	async def _get_with_retry(self, url: str, params: Mapping[str, Any]) -> httpx.Response:
		policy = self._retry
		attempt = 0
		while True:
			try:
				response = await self._http.get(url, params=params, timeout=self._timeout)
			except httpx.TransportError:
				if attempt >= policy.retries:
					raise
				obs_metrics.inc_catalog_request("retry_transport")
			else:
				if response.is_success or response.status_code not in policy.retry_statuses or attempt >= policy.retries:
					return response
				obs_metrics.inc_catalog_request("retry_status")
			await asyncio.sleep(policy.delay_seconds(attempt))
			attempt += 1

	async def discover(self, language: str, page: int, min_vote_count: int) -> DiscoverPage:
		"""Fetch one discover page. Never raises for upstream problems."""
		url = f"{self._base_url}/discover/movie"
		params = self._discover_params(language, page, min_vote_count)
		try:
			response = await self._get_with_retry(url, params)
		except httpx.HTTPError as exc:
			obs_metrics.inc_catalog_request("error")
			logger.warning(
				"trivia_catalog_page_failed",
				extra={"language": language, "page": page, "min_vote_count": min_vote_count, "error": type(exc).__name__},
			)
			return DiscoverPage.empty()

		if not response.is_success:
			obs_metrics.inc_catalog_request("bad_status")
			logger.warning(
				"trivia_catalog_page_failed",
				extra={"language": language, "page": page, "min_vote_count": min_vote_count, "status": response.status_code},
			)
			return DiscoverPage.empty()

		try:
			body = response.json()
		except ValueError:
			obs_metrics.inc_catalog_request("bad_body")
			logger.warning("trivia_catalog_page_failed", extra={"language": language, "page": page, "error": "invalid_json"})
			return DiscoverPage.empty()
		if not isinstance(body, Mapping):
			obs_metrics.inc_catalog_request("bad_body")
			return DiscoverPage.empty()

		raw_rows = body.get("results")
		rows = raw_rows if isinstance(raw_rows, list) else []
		items = [item for item in (normalize_row(row, fallback_language=language) for row in rows) if item is not None]
		obs_metrics.inc_catalog_request("ok")
		return DiscoverPage(items=items, total_pages=_total_pages(body.get("total_pages")))

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Tuple

import pytest
import pytest_asyncio
from fakeredis.aioredis import FakeRedis
from httpx import ASGITransport, AsyncClient

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from cinetrivia.domain.trivia.attempts import get_memory_store
from cinetrivia.domain.trivia.models import CatalogItem, DiscoverPage
from cinetrivia.infra import postgres
from cinetrivia.main import app
from cinetrivia.settings import settings


def make_items(start_id: int, count: int, *, first_year: int = 2001, language: str = "en") -> List[CatalogItem]:
	items = []
	for offset in range(count):
		year = first_year + (offset % 20)
		items.append(
			CatalogItem(
				id=start_id + offset,
				title=f"Movie {start_id + offset}",
				release_date=f"{year}-06-15",
				release_year=year,
				original_language=language,
				vote_count=100,
				poster_path=f"/poster{start_id + offset}.jpg",
			)
		)
	return items


@dataclass
class FakeCatalog:
	"""In-memory discover source keyed by minimum vote count.

	Items for a tier are split into pages of ``page_size`` and served by page number.
	"""

	by_votes: Dict[int, List[CatalogItem]] = field(default_factory=dict)
	page_size: int = 5
	configured: bool = True
	calls: List[Tuple[str, int, int]] = field(default_factory=list)

	@property
	def is_configured(self) -> bool:
		return self.configured

	async def discover(self, language: str, page: int, min_vote_count: int) -> DiscoverPage:
		self.calls.append((language, page, min_vote_count))
		items = self.by_votes.get(min_vote_count, [])
		total_pages = max(1, -(-len(items) // self.page_size)) if items else 0
		start = (page - 1) * self.page_size
		return DiscoverPage(items=items[start : start + self.page_size], total_pages=total_pages)


@pytest.fixture
def fake_catalog_factory():
	return FakeCatalog


@pytest.fixture
def items_factory():
	return make_items


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from cinetrivia.infra.redis import redis_client, set_redis_client

	original = redis_client._client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Dev mode so X-User-* headers authenticate; attempts go to the in-memory store."""
	original_env = settings.environment
	original_store = settings.trivia_attempt_store
	settings.environment = "dev"
	settings.trivia_attempt_store = "memory"
	try:
		yield
	finally:
		settings.environment = original_env
		settings.trivia_attempt_store = original_store


@pytest_asyncio.fixture(autouse=True)
async def reset_attempts():
	store = get_memory_store()
	await store.reset()
	yield store
	await store.reset()


@pytest.fixture(autouse=True)
def clear_dependency_overrides():
	yield
	app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client

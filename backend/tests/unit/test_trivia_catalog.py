import httpx
import pytest

from cinetrivia.domain.trivia.catalog import CatalogClient, RetryPolicy, normalize_row

BASE_URL = "https://catalog.test/3"


def _client(handler, *, retries=1, api_key="key-123"):
	http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
	policy = RetryPolicy(retries=retries, base_delay_ms=0, max_delay_ms=0, jitter_ms=0)
	catalog = CatalogClient(http, api_key=api_key, base_url=BASE_URL, min_year=2000, max_year=2026, retry=policy)
	return http, catalog


def _row(item_id, title="Title", release_date="2012-04-01", **extra):
	row = {"id": item_id, "title": title, "release_date": release_date, "original_language": "te"}
	row.update(extra)
	return row


@pytest.mark.asyncio
async def test_discover_sends_filters_and_normalises_rows():
	seen = []

	def handler(request: httpx.Request) -> httpx.Response:
		seen.append(request)
		return httpx.Response(
			200,
			json={"total_pages": 40, "results": [_row(1, poster_path="/a.jpg", vote_count=321, popularity=9.5)]},
		)

	http, catalog = _client(handler)
	async with http:
		page = await catalog.discover("te", 3, 50)

	assert page.total_pages == 40
	assert [item.id for item in page.items] == [1]
	item = page.items[0]
	assert item.release_year == 2012
	assert item.poster_path == "/a.jpg"
	assert item.vote_count == 321
	params = seen[0].url.params
	assert seen[0].url.path == "/3/discover/movie"
	assert params["with_original_language"] == "te"
	assert params["vote_count.gte"] == "50"
	assert params["page"] == "3"
	assert params["primary_release_date.gte"] == "2000-01-01"
	assert params["primary_release_date.lte"] == "2026-12-31"
	assert params["sort_by"] == "popularity.desc"
	assert params["include_adult"] == "false"


@pytest.mark.asyncio
async def test_discover_retries_retryable_status_then_succeeds():
	calls = {"count": 0}

	def handler(request: httpx.Request) -> httpx.Response:
		calls["count"] += 1
		if calls["count"] == 1:
			return httpx.Response(503, json={"status_message": "busy"})
		return httpx.Response(200, json={"total_pages": 1, "results": [_row(7)]})

	http, catalog = _client(handler)
	async with http:
		page = await catalog.discover("en", 1, 200)

	assert calls["count"] == 2
	assert [item.id for item in page.items] == [7]


@pytest.mark.asyncio
async def test_discover_returns_empty_page_after_retry_budget():
	calls = {"count": 0}

	def handler(request: httpx.Request) -> httpx.Response:
		calls["count"] += 1
		return httpx.Response(500)

	http, catalog = _client(handler, retries=2)
	async with http:
		page = await catalog.discover("hi", 1, 10)

	assert calls["count"] == 3
	assert page.items == []
	assert page.total_pages == 0


@pytest.mark.asyncio
async def test_discover_does_not_retry_client_errors():
	calls = {"count": 0}

	def handler(request: httpx.Request) -> httpx.Response:
		calls["count"] += 1
		return httpx.Response(401, json={"status_message": "Invalid API key"})

	http, catalog = _client(handler)
	async with http:
		page = await catalog.discover("en", 1, 200)

	assert calls["count"] == 1
	assert page.items == []


@pytest.mark.asyncio
async def test_discover_absorbs_transport_errors():
	def handler(request: httpx.Request) -> httpx.Response:
		raise httpx.ConnectError("connection refused", request=request)

	http, catalog = _client(handler)
	async with http:
		page = await catalog.discover("ta", 1, 200)

	assert page.items == []


@pytest.mark.asyncio
async def test_discover_drops_malformed_rows():
	rows = [
		_row(1),
		_row("2"),
		_row(3, title="   "),
		_row(4, release_date=""),
		_row(5, release_date="soon"),
		{"title": "No id", "release_date": "2010-01-01"},
		"garbage",
		_row(6, release_date="2019"),
	]

	def handler(request: httpx.Request) -> httpx.Response:
		return httpx.Response(200, json={"total_pages": "2", "results": rows})

	http, catalog = _client(handler)
	async with http:
		page = await catalog.discover("en", 1, 10)

	assert [item.id for item in page.items] == [1, 6]
	assert page.total_pages == 2


def test_normalize_row_fills_defaults():
	item = normalize_row({"id": 9, "title": " Eega ", "release_date": "2012-07-06"}, fallback_language="te")
	assert item is not None
	assert item.title == "Eega"
	assert item.original_language == "te"
	assert item.poster_path is None
	assert item.vote_count == 0


def test_catalog_without_key_is_not_configured():
	catalog = CatalogClient(httpx.AsyncClient(), api_key="  ", base_url=BASE_URL, min_year=2000, max_year=2026)
	assert catalog.is_configured is False


def test_retry_delay_is_capped():
	policy = RetryPolicy(base_delay_ms=300, max_delay_ms=1500, jitter_ms=0)
	assert policy.delay_seconds(0) == pytest.approx(0.3)
	assert policy.delay_seconds(5) == pytest.approx(1.5)

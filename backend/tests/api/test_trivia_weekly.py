import pytest

from cinetrivia.api import trivia as trivia_api
from cinetrivia.domain.trivia.pool import tiers_from_pairs
from cinetrivia.domain.trivia.service import WeeklyTriviaService
from cinetrivia.main import app


def _override_service(catalog):
	service = WeeklyTriviaService(
		catalog,
		tiers=tiers_from_pairs([(200, 3), (50, 4), (10, 6)]),
		min_year=2000,
		max_year=2026,
		image_base_url="https://image.tmdb.org/t/p/w342",
	)
	app.dependency_overrides[trivia_api.get_weekly_service] = lambda: service
	return service


@pytest.mark.asyncio
async def test_weekly_returns_cacheable_camel_case_payload(api_client, fake_catalog_factory, items_factory):
	_override_service(fake_catalog_factory(by_votes={200: items_factory(1, 40)}))

	response = await api_client.get("/trivia/weekly", params={"lang": "en", "week": "2026-W07"})

	assert response.status_code == 200
	assert response.headers["cache-control"] == "public, max-age=300, s-maxage=3600, stale-while-revalidate=86400"
	assert response.headers.get("x-request-id")
	body = response.json()
	assert body["weekKey"] == "2026-W07"
	assert body["language"] == "en"
	assert body["languageLabel"] == "English"
	assert body["version"] == 1
	assert len(body["questions"]) == 10
	question = body["questions"][0]
	assert set(question) == {"id", "sourceItemId", "title", "year", "poster", "questionText", "options", "correctIndex"}
	assert question["options"][question["correctIndex"]] == str(question["year"])


@pytest.mark.asyncio
async def test_weekly_twice_is_identical(api_client, fake_catalog_factory, items_factory):
	_override_service(fake_catalog_factory(by_votes={200: items_factory(1, 40)}))

	first = await api_client.get("/trivia/weekly?lang=en&week=2026-W07")
	second = await api_client.get("/trivia/weekly?lang=en&week=2026-W07")

	assert first.json()["questions"] == second.json()["questions"]


@pytest.mark.asyncio
async def test_weekly_not_ready_is_retryable(api_client, fake_catalog_factory, items_factory):
	_override_service(fake_catalog_factory(by_votes={10: items_factory(1, 4)}))

	response = await api_client.get("/trivia/weekly?lang=ta&week=2026-W07")

	assert response.status_code == 503
	assert response.headers["retry-after"] == "60"
	assert response.headers["cache-control"] == "no-store"
	body = response.json()
	assert body["detail"] == "trivia_not_ready"
	assert body["error"]
	assert body["request_id"]


@pytest.mark.asyncio
async def test_weekly_without_catalog_key_is_server_error(api_client, fake_catalog_factory):
	_override_service(fake_catalog_factory(configured=False))

	response = await api_client.get("/trivia/weekly?lang=en")

	assert response.status_code == 500
	assert response.json()["detail"] == "catalog_not_configured"


@pytest.mark.asyncio
async def test_weekly_unknown_language_falls_back(api_client, fake_catalog_factory, items_factory):
	_override_service(fake_catalog_factory(by_votes={200: items_factory(1, 40)}))

	response = await api_client.get("/trivia/weekly?lang=zz&week=2026-W07")

	assert response.status_code == 200
	assert response.json()["language"] == "en"


@pytest.mark.asyncio
async def test_ops_endpoints(api_client):
	live = await api_client.get("/health/live")
	assert live.status_code == 200
	assert live.json()["status"] == "ok"

	metrics = await api_client.get("/metrics")
	assert metrics.status_code == 200
	assert "cinetrivia_http_requests_total" in metrics.text

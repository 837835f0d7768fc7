"""Shared outbound httpx client.

One AsyncClient per process keeps connection pooling to the catalog upstream.
Opened in the app lifespan; tests swap it with a MockTransport-backed client.
"""

from __future__ import annotations

from typing import Optional

import httpx

from cinetrivia.settings import settings

_client: Optional[httpx.AsyncClient] = None


def _build_client() -> httpx.AsyncClient:
	return httpx.AsyncClient(
		timeout=httpx.Timeout(settings.catalog_timeout_seconds),
		limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
		headers={"Accept": "application/json", "User-Agent": settings.service_name},
	)


async def init_client() -> httpx.AsyncClient:
	global _client
	if _client is None:
		_client = _build_client()
	return _client


def set_client(client: Optional[httpx.AsyncClient]) -> None:
	global _client
	_client = client


def get_client() -> httpx.AsyncClient:
	global _client
	if _client is None:
		_client = _build_client()
	return _client


async def close_client() -> None:
	global _client
	if _client is not None:
		await _client.aclose()
		_client = None

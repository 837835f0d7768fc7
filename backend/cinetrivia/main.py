"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import asyncpg
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cinetrivia.api import ops, trivia
from cinetrivia.api.errors import install_error_handlers
from cinetrivia.infra import http_client, postgres
from cinetrivia.obs import init as obs_init
from cinetrivia.settings import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
	await http_client.init_client()
	if settings.trivia_attempt_store == "postgres":
		try:
			await postgres.init_pool()
		except (OSError, asyncpg.PostgresError) as exc:
			# Quiz retrieval works without the store; attempts report store_unavailable.
			logger.warning("postgres_unavailable_at_startup", extra={"error": str(exc)})
	if not settings.catalog_configured:
		logger.warning("catalog_not_configured")
	try:
		yield
	finally:
		await http_client.close_client()
		await postgres.close_pool()


app = FastAPI(title="CineTrivia API", lifespan=lifespan)
install_error_handlers(app)

app.add_middleware(
	CORSMiddleware,
	allow_origins=list(settings.cors_allow_origins),
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
	expose_headers=["X-Request-Id", "Retry-After"],
)

obs_init(app)

app.include_router(trivia.router, tags=["trivia"])
app.include_router(ops.router, tags=["ops"])

"""Global error handlers ensuring request_id is included in JSON responses."""

from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from cinetrivia.domain.trivia.policy import TriviaError
from cinetrivia.obs import logging as obs_logging

_NO_STORE = {"Cache-Control": "no-store"}


def get_request_id(request: Request, default: str = "unknown") -> str:
	rid: Optional[str] = getattr(request.state, "request_id", None) or obs_logging.current_request_id()
	return rid or request.headers.get("X-Request-Id") or default


def install_error_handlers(app: FastAPI) -> None:
	@app.exception_handler(TriviaError)
	async def trivia_exc_handler(request: Request, exc: TriviaError):  # type: ignore[override]
		payload = {"error": exc.message, "detail": exc.code, "request_id": get_request_id(request)}
		headers = {**_NO_STORE, **exc.headers}
		return JSONResponse(status_code=exc.status_code, content=payload, headers=headers)

	@app.exception_handler(StarletteHTTPException)
	async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
		payload = {"error": str(exc.detail), "detail": exc.detail, "request_id": get_request_id(request)}
		headers = {**_NO_STORE, **(exc.headers or {})}
		return JSONResponse(status_code=exc.status_code, content=payload, headers=headers)

	@app.exception_handler(RequestValidationError)
	async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
		payload = {
			"error": "Request body or query is invalid.",
			"detail": "validation_error",
			"errors": jsonable_errors(exc),
			"request_id": get_request_id(request),
		}
		return JSONResponse(status_code=422, content=payload, headers=_NO_STORE)


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
	# ctx may carry exception instances that JSONResponse cannot encode.
	return [{key: value for key, value in error.items() if key != "ctx"} for error in exc.errors()]

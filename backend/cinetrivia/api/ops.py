"""Operations endpoints: liveness and Prometheus metrics."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from cinetrivia.settings import settings

router = APIRouter(prefix="", tags=["ops"])


@router.get("/health/live")
async def health_live() -> dict[str, str]:
	return {"status": "ok", "service": settings.service_name, "commit": settings.git_commit or "unknown"}


@router.get("/metrics")
async def prometheus_metrics() -> Response:
	if not settings.obs_metrics_public:
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="forbidden")
	return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

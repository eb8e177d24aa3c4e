"""Liveness, readiness and Prometheus scrape endpoints."""

from __future__ import annotations

import hmac
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from linkedup.domain.common import keys
from linkedup.infra.documents import StoreError
from linkedup.infra.redis import redis_client
from linkedup.infra.store import get_store
from linkedup.settings import settings

router = APIRouter(tags=["ops"])

_READINESS_PROBE = keys.user_path("__readiness__")


async def require_metrics_access(x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token")) -> None:
	"""Private metrics need ``OBS_ADMIN_TOKEN`` configured and echoed back."""
	if settings.obs_metrics_public:
		return
	expected = settings.obs_admin_token
	if not expected or not x_admin_token or not hmac.compare_digest(x_admin_token, expected):
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="forbidden")


@router.get("/health")
async def health_live() -> dict[str, str]:
	return {"status": "ok", "service": settings.service_name, "commit": settings.git_commit}


@router.get("/health/ready")
async def health_ready() -> JSONResponse:
	body = {"status": "ok", "store": settings.store_backend}
	try:
		await get_store().get(_READINESS_PROBE)
		if settings.store_backend == "redis" and not await redis_client.healthy():
			raise StoreError("redis ping failed")
	except StoreError:
		body["status"] = "unavailable"
		return JSONResponse(body, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
	return JSONResponse(body)


@router.get("/metrics")
async def prometheus_metrics(_: None = Depends(require_metrics_access)) -> Response:
	return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

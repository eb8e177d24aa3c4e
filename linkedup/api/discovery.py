"""REST API surface for the one-shot nearby feed."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from linkedup.domain.discovery.schemas import NearbyResponse
from linkedup.domain.discovery.service import DiscoveryFeed
from linkedup.domain.discovery.sockets import view_payload
from linkedup.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["discovery"])
_feed = DiscoveryFeed()


@router.get("/discovery/nearby", response_model=NearbyResponse)
async def nearby(
	radius_km: Optional[float] = Query(default=None, description="Override the saved search radius"),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> NearbyResponse:
	view = await _feed.list_nearby(auth_user.id, radius_km)
	payload = view_payload(view)
	return NearbyResponse(radius_km=payload["radius_km"], candidates=payload["candidates"])

"""Pydantic schemas for the discovery feed."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel


class LocationPayload(BaseModel):
	lat: float
	lng: float


class CandidateOut(BaseModel):
	uid: str
	name: str
	location: LocationPayload
	major: str = ""
	bio: str = ""
	interests: List[str] = []
	classes: List[str] = []
	profile_photo_base64: Optional[str] = None


class NearbyResponse(BaseModel):
	radius_km: Optional[float] = None
	candidates: List[CandidateOut]

"""Pydantic schemas for profiles, preferences and settings."""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class LocationIn(BaseModel):
	lat: float = Field(..., ge=-90.0, le=90.0)
	lng: float = Field(..., ge=-180.0, le=180.0)


class LocationOut(BaseModel):
	lat: float
	lng: float


class ProfileOut(BaseModel):
	uid: str
	name: Optional[str] = None
	email: str = ""
	major: str = ""
	bio: str = ""
	phone_number: str = ""
	location: Optional[LocationOut] = None
	interests: List[str] = []
	classes: List[str] = []
	profile_photo_base64: Optional[str] = None
	notifications_enabled: bool = True
	search_radius: float
	location_visible: bool = True


class ProfileUpdateRequest(BaseModel):
	name: str
	major: str
	bio: str = ""
	phone_number: str


class PreferencesUpdateRequest(BaseModel):
	interests: List[str] = []
	classes: List[str] = []


class SettingsUpdateRequest(BaseModel):
	notifications_enabled: Optional[bool] = None
	search_radius: Optional[float] = None
	location_visible: Optional[bool] = None


class PhotoUploadRequest(BaseModel):
	profile_photo_base64: str


class BootstrapRequest(BaseModel):
	email: Optional[str] = None


class CatalogOut(BaseModel):
	interests: Dict[str, List[str]]
	classes: Dict[str, List[str]]


class DeletionResult(BaseModel):
	uid: str
	relationship_records_removed: int

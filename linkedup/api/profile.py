"""REST API surface for the signed-in user's own profile."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, status

from linkedup.domain.discovery.geo import LatLng
from linkedup.domain.identity import deletion
from linkedup.domain.identity.models import UserProfile
from linkedup.domain.identity.schemas import (
	BootstrapRequest,
	CatalogOut,
	DeletionResult,
	LocationIn,
	LocationOut,
	PhotoUploadRequest,
	PreferencesUpdateRequest,
	ProfileOut,
	ProfileUpdateRequest,
	SettingsUpdateRequest,
)
from linkedup.domain.identity.service import ProfileService
from linkedup.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["profile"])
_profiles = ProfileService()


def _profile_out(profile: UserProfile) -> ProfileOut:
	location = profile.location
	return ProfileOut(
		uid=profile.uid,
		name=profile.name,
		email=profile.email,
		major=profile.major,
		bio=profile.bio,
		phone_number=profile.phone_number,
		location=LocationOut(lat=location.lat, lng=location.lng) if location else None,
		interests=profile.interests,
		classes=profile.classes,
		profile_photo_base64=profile.profile_photo_base64,
		notifications_enabled=profile.notifications_enabled,
		search_radius=profile.search_radius,
		location_visible=profile.location_visible,
	)


@router.post("/me/bootstrap", response_model=ProfileOut)
async def bootstrap(
	payload: Optional[BootstrapRequest] = None,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> ProfileOut:
	email = payload.email if payload else None
	return _profile_out(await _profiles.ensure_profile(auth_user.id, email))


@router.get("/me/profile", response_model=ProfileOut)
async def get_profile(auth_user: AuthenticatedUser = Depends(get_current_user)) -> ProfileOut:
	return _profile_out(await _profiles.get_profile(auth_user.id))


@router.put("/me/profile", response_model=ProfileOut)
async def update_profile(
	payload: ProfileUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> ProfileOut:
	profile = await _profiles.update_profile(
		auth_user.id,
		name=payload.name,
		major=payload.major,
		bio=payload.bio,
		phone_number=payload.phone_number,
	)
	return _profile_out(profile)


@router.put("/me/preferences", response_model=ProfileOut)
async def update_preferences(
	payload: PreferencesUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> ProfileOut:
	profile = await _profiles.update_preferences(
		auth_user.id,
		interests=payload.interests,
		classes=payload.classes,
	)
	return _profile_out(profile)


@router.get("/preferences/catalog", response_model=CatalogOut)
async def preference_catalog() -> CatalogOut:
	catalog = _profiles.catalog()
	return CatalogOut(
		interests={name: list(tags) for name, tags in catalog.interests.items()},
		classes={name: list(tags) for name, tags in catalog.classes.items()},
	)


@router.put("/me/settings", response_model=ProfileOut)
async def update_settings(
	payload: SettingsUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> ProfileOut:
	profile = await _profiles.update_settings(
		auth_user.id,
		notifications_enabled=payload.notifications_enabled,
		search_radius=payload.search_radius,
		location_visible=payload.location_visible,
	)
	return _profile_out(profile)


@router.put("/me/photo", status_code=status.HTTP_204_NO_CONTENT)
async def upload_photo(
	payload: PhotoUploadRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> None:
	await _profiles.set_profile_photo(auth_user.id, payload.profile_photo_base64)


@router.delete("/me/photo", status_code=status.HTTP_204_NO_CONTENT)
async def delete_photo(auth_user: AuthenticatedUser = Depends(get_current_user)) -> None:
	await _profiles.clear_profile_photo(auth_user.id)


@router.put("/me/location", response_model=LocationOut)
async def save_location(
	payload: LocationIn,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> LocationOut:
	await _profiles.save_location(auth_user.id, LatLng(lat=payload.lat, lng=payload.lng))
	return LocationOut(lat=payload.lat, lng=payload.lng)


@router.get("/me/location", response_model=Optional[LocationOut])
async def load_location(auth_user: AuthenticatedUser = Depends(get_current_user)) -> Optional[LocationOut]:
	location = await _profiles.load_location(auth_user.id)
	if location is None:
		return None
	return LocationOut(lat=location.lat, lng=location.lng)


@router.delete("/me", response_model=DeletionResult)
async def delete_me(auth_user: AuthenticatedUser = Depends(get_current_user)) -> DeletionResult:
	removed = await deletion.delete_account(auth_user.id)
	return DeletionResult(uid=auth_user.id, relationship_records_removed=removed)

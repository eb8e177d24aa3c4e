"""Profile service: the signed-in user's own record under ``users/{uid}``."""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, Dict, Iterable, List, Optional

from linkedup.domain.common import keys
from linkedup.domain.common.exceptions import (
	InvalidArgument,
	InvalidPhoto,
	InvalidRadius,
	NotAuthenticated,
	ProfileNotFound,
	UnknownTag,
	translate_store_errors,
)
from linkedup.domain.discovery.geo import LatLng
from linkedup.domain.identity.models import CATALOG, PreferenceCatalog, UserProfile, placeholder_record
from linkedup.infra.documents import DocumentNotFound, DocumentStore
from linkedup.infra.store import get_store
from linkedup.settings import settings

logger = logging.getLogger(__name__)


def _require_actor(actor: Optional[str]) -> str:
	if not actor or not str(actor).strip():
		raise NotAuthenticated()
	return keys.check_uid(actor)


def _required(value: Optional[str], reason: str) -> str:
	text = (value or "").strip()
	if not text:
		raise InvalidArgument(reason)
	return text


def _dedupe(tags: Iterable[str], allowed: frozenset[str]) -> List[str]:
	seen: List[str] = []
	for tag in tags:
		if tag not in allowed:
			raise UnknownTag(tag)
		if tag not in seen:
			seen.append(tag)
	return seen


class ProfileService:
	def __init__(self, store: DocumentStore | None = None) -> None:
		self._store = store

	@property
	def store(self) -> DocumentStore:
		return self._store if self._store is not None else get_store()

	async def _merge(self, uid: str, fields: Dict[str, Any], operation: str) -> None:
		with translate_store_errors(operation):
			await self.store.set(keys.user_path(uid), fields, merge=True)

	async def ensure_profile(self, uid: Optional[str], email: Optional[str] = None) -> UserProfile:
		"""Create the placeholder record on first sign-in; existing records are left untouched."""
		actor = _require_actor(uid)
		with translate_store_errors("ensure_profile"):
			record = await self.store.get(keys.user_path(actor))
			if record is None:
				record = placeholder_record(email)
				await self.store.set(keys.user_path(actor), record)
				logger.info("profile_created", extra={"user": actor})
		return UserProfile.from_record(actor, record)

	async def get_profile(self, uid: Optional[str]) -> UserProfile:
		actor = _require_actor(uid)
		with translate_store_errors("get_profile"):
			record = await self.store.get(keys.user_path(actor))
		if record is None:
			raise ProfileNotFound()
		return UserProfile.from_record(actor, record)

	async def display_name(self, uid: str, fallback: Optional[str] = None) -> str:
		with translate_store_errors("display_name"):
			record = await self.store.get(keys.user_path(uid))
		name = (record or {}).get("name")
		if isinstance(name, str) and name.strip():
			return name
		return fallback or ""

	async def update_profile(
		self,
		uid: Optional[str],
		*,
		name: Optional[str],
		major: Optional[str],
		bio: Optional[str] = "",
		phone_number: Optional[str],
	) -> UserProfile:
		actor = _require_actor(uid)
		fields = {
			"name": _required(name, "name_required"),
			"major": _required(major, "major_required"),
			"phone_number": _required(phone_number, "phone_required"),
			"bio": (bio or "").strip(),
		}
		await self._merge(actor, fields, "update_profile")
		return await self.get_profile(actor)

	async def update_preferences(
		self,
		uid: Optional[str],
		*,
		interests: Iterable[str] = (),
		classes: Iterable[str] = (),
	) -> UserProfile:
		actor = _require_actor(uid)
		fields = {
			"interests": _dedupe(interests, CATALOG.interest_tags()),
			"classes": _dedupe(classes, CATALOG.class_tags()),
		}
		await self._merge(actor, fields, "update_preferences")
		return await self.get_profile(actor)

	@staticmethod
	def catalog() -> PreferenceCatalog:
		return CATALOG

	async def update_settings(
		self,
		uid: Optional[str],
		*,
		notifications_enabled: Optional[bool] = None,
		search_radius: Optional[float] = None,
		location_visible: Optional[bool] = None,
	) -> UserProfile:
		actor = _require_actor(uid)
		fields: Dict[str, Any] = {}
		if notifications_enabled is not None:
			fields["notifications_enabled"] = bool(notifications_enabled)
		if search_radius is not None:
			if not 0 < search_radius <= settings.max_search_radius_km:
				raise InvalidRadius()
			fields["search_radius"] = float(search_radius)
		if location_visible is not None:
			fields["location_visible"] = bool(location_visible)
		if fields:
			await self._merge(actor, fields, "update_settings")
		return await self.get_profile(actor)

	async def set_profile_photo(self, uid: Optional[str], photo_base64: str) -> None:
		actor = _require_actor(uid)
		payload = (photo_base64 or "").strip()
		try:
			raw = base64.b64decode(payload, validate=True)
		except (binascii.Error, ValueError):
			raise InvalidPhoto("invalid_photo_encoding") from None
		if not raw:
			raise InvalidPhoto("empty_photo")
		if len(raw) > settings.profile_photo_max_bytes:
			raise InvalidPhoto("photo_too_large")
		await self._merge(actor, {"profile_photo_base64": payload}, "set_profile_photo")
		logger.info("profile_photo_updated", extra={"user": actor, "size_bytes": len(raw)})

	async def clear_profile_photo(self, uid: Optional[str]) -> None:
		actor = _require_actor(uid)
		with translate_store_errors("clear_profile_photo"):
			try:
				await self.store.update(keys.user_path(actor), {"profile_photo_base64": None})
			except DocumentNotFound:
				raise ProfileNotFound() from None

	async def save_location(self, actor: Optional[str], location: LatLng) -> None:
		"""Upsert the caller's own location; fails with NotAuthenticated without an identity."""
		uid = _require_actor(actor)
		checked = LatLng.from_value(location.to_dict())
		if checked is None:
			raise InvalidArgument("invalid_location")
		await self._merge(uid, {"location": checked.to_dict()}, "save_location")

	async def load_location(self, actor: Optional[str]) -> Optional[LatLng]:
		uid = _require_actor(actor)
		with translate_store_errors("load_location"):
			record = await self.store.get(keys.user_path(uid))
		if record is None:
			return None
		return LatLng.from_value(record.get("location"))

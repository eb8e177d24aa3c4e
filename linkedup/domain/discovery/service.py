"""Discovery feed: live lists of nearby candidates built from the user directory.

Every emission is the complete candidate list recomputed from a full
directory snapshot. The caller's own record is part of that directory, so a
location or radius change on the caller re-evaluates the feed as well.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from linkedup.domain.common import keys
from linkedup.domain.common.exceptions import InvalidRadius, NotAuthenticated, translate_store_errors
from linkedup.domain.discovery.geo import LatLng, filter_by_radius
from linkedup.domain.discovery.models import CandidateProfile, candidates_from_snapshot
from linkedup.infra.documents import DocumentStore, MappedSubscription, Snapshot
from linkedup.infra.store import get_store
from linkedup.obs import metrics as obs_metrics
from linkedup.settings import settings

logger = logging.getLogger(__name__)

FEED_NEARBY = "nearby"
FEED_RADIUS = "radius"


@dataclass(slots=True)
class NearbyView:
	"""One evaluation of the radius feed. ``origin`` is None when the caller has no stored location."""

	origin: Optional[LatLng]
	radius_km: float
	candidates: List[CandidateProfile] = field(default_factory=list)


def validate_radius(radius_km: Optional[float]) -> Optional[float]:
	if radius_km is None:
		return None
	try:
		value = float(radius_km)
	except (TypeError, ValueError):
		raise InvalidRadius() from None
	if not 0 < value <= settings.max_search_radius_km:
		raise InvalidRadius()
	return value


def _caller_radius(doc_radius: object) -> float:
	if isinstance(doc_radius, bool) or not isinstance(doc_radius, (int, float)):
		return settings.default_search_radius_km
	if not 0 < doc_radius <= settings.max_search_radius_km:
		return settings.default_search_radius_km
	return float(doc_radius)


def evaluate_nearby(snapshot: Snapshot, uid: str, radius_km: Optional[float] = None) -> NearbyView:
	"""Apply self-exclusion, visibility and the radius filter to a directory snapshot."""
	candidates = candidates_from_snapshot(snapshot, uid)
	caller = next((doc for doc in snapshot if doc.id == uid), None)
	origin = LatLng.from_value(caller.get("location")) if caller is not None else None
	radius = radius_km if radius_km is not None else _caller_radius(caller.get("search_radius") if caller else None)
	if origin is None:
		return NearbyView(origin=None, radius_km=radius, candidates=candidates)
	return NearbyView(origin=origin, radius_km=radius, candidates=filter_by_radius(candidates, origin, radius))


def _require_uid(uid: Optional[str]) -> str:
	if not uid or not str(uid).strip():
		raise NotAuthenticated()
	return keys.check_uid(uid)


class DiscoveryFeed:
	def __init__(self, store: DocumentStore | None = None) -> None:
		self._store = store

	@property
	def store(self) -> DocumentStore:
		return self._store if self._store is not None else get_store()

	async def _open(self, feed: str, transform) -> MappedSubscription:
		with translate_store_errors("subscribe_users"):
			source = await self.store.subscribe(keys.USERS)
		obs_metrics.subscription_opened(feed)
		return source.map(transform, on_close=lambda: obs_metrics.subscription_closed(feed))

	async def subscribe_nearby(self, exclude_uid: Optional[str]) -> MappedSubscription[List[CandidateProfile]]:
		"""Stream of every showable candidate except ``exclude_uid``; close() releases the listener."""
		uid = _require_uid(exclude_uid)
		logger.debug("nearby_feed_opened", extra={"user": uid})
		return await self._open(FEED_NEARBY, lambda snapshot: candidates_from_snapshot(snapshot, uid))

	async def subscribe_within_radius(
		self,
		uid: Optional[str],
		radius_km: Optional[float] = None,
	) -> MappedSubscription[NearbyView]:
		caller = _require_uid(uid)
		radius = validate_radius(radius_km)
		logger.debug("radius_feed_opened", extra={"user": caller, "radius_km": radius})
		return await self._open(FEED_RADIUS, lambda snapshot: evaluate_nearby(snapshot, caller, radius))

	async def list_nearby(self, uid: Optional[str], radius_km: Optional[float] = None) -> NearbyView:
		caller = _require_uid(uid)
		radius = validate_radius(radius_km)
		with translate_store_errors("list_nearby"):
			snapshot = await self.store.list(keys.USERS)
		return evaluate_nearby(snapshot, caller, radius)

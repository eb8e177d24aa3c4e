"""Great-circle helpers for radius filtering."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Protocol

EARTH_RADIUS_KM = 6371.0088


@dataclass(slots=True, frozen=True)
class LatLng:
	lat: float
	lng: float

	@classmethod
	def from_value(cls, value: Any) -> Optional["LatLng"]:
		"""Decode a stored ``{lat, lng}`` map; anything malformed reads as no location."""
		if not isinstance(value, dict):
			return None
		lat, lng = value.get("lat"), value.get("lng")
		for part in (lat, lng):
			if isinstance(part, bool) or not isinstance(part, (int, float)) or math.isnan(part):
				return None
		if not -90.0 <= lat <= 90.0 or not -180.0 <= lng <= 180.0:
			return None
		return cls(lat=float(lat), lng=float(lng))

	def to_dict(self) -> dict:
		return {"lat": self.lat, "lng": self.lng}


class Located(Protocol):
	location: LatLng


def haversine_km(a: LatLng, b: LatLng) -> float:
	phi1, phi2 = math.radians(a.lat), math.radians(b.lat)
	d_phi = phi2 - phi1
	d_lambda = math.radians(b.lng - a.lng)
	h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
	return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(h)))


def filter_by_radius(candidates: Iterable[Located], origin: LatLng, radius_km: float) -> List[Any]:
	"""Keep candidates whose distance from ``origin`` is at most ``radius_km`` (inclusive)."""
	return [candidate for candidate in candidates if haversine_km(origin, candidate.location) <= radius_km]

"""Profile records and the preference catalog."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from linkedup.domain.discovery.geo import LatLng
from linkedup.settings import settings

INTEREST_CATEGORIES: Dict[str, Tuple[str, ...]] = {
	"STEM": (
		"Java",
		"Data Programming",
		"Graphics",
		"HTML and CSS",
		"Prototyping",
		"Kotlin",
		"AI",
		"Robotics",
	),
	"HUMANITIES": (
		"Philosophy",
		"History",
		"Anthropology",
		"Asian Studies",
		"Communications",
		"Psychology",
	),
	"LEGAL STUDIES": ("Legal Writing", "Criminal Law", "Contracts"),
}

CLASS_GROUPS: Dict[str, Tuple[str, ...]] = {
	"CS": ("CS 300", "CS 400", "CS 407", "CS 571"),
	"ECE": ("ECE 252", "ECE 354", "ECE 352", "ECE 203"),
	"MATH": ("MATH 431", "MATH 222", "MATH 221"),
}


@dataclass(slots=True, frozen=True)
class PreferenceCatalog:
	interests: Dict[str, Tuple[str, ...]]
	classes: Dict[str, Tuple[str, ...]]

	def interest_tags(self) -> frozenset[str]:
		return frozenset(tag for tags in self.interests.values() for tag in tags)

	def class_tags(self) -> frozenset[str]:
		return frozenset(tag for tags in self.classes.values() for tag in tags)


CATALOG = PreferenceCatalog(interests=INTEREST_CATEGORIES, classes=CLASS_GROUPS)


def _text(value: Any) -> str:
	return value if isinstance(value, str) else ""


def _tags(value: Any) -> List[str]:
	if not isinstance(value, (list, tuple)):
		return []
	return [item for item in value if isinstance(item, str)]


def _flag(value: Any, default: bool) -> bool:
	return value if isinstance(value, bool) else default


def _radius(value: Any) -> float:
	if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
		return settings.default_search_radius_km
	return float(value)


@dataclass(slots=True)
class UserProfile:
	"""Typed view of ``users/{uid}``; absent or malformed fields take their defaults."""

	uid: str
	name: Optional[str] = None
	email: str = ""
	major: str = ""
	bio: str = ""
	phone_number: str = ""
	location: Optional[LatLng] = None
	interests: List[str] = field(default_factory=list)
	classes: List[str] = field(default_factory=list)
	profile_photo_base64: Optional[str] = None
	notifications_enabled: bool = True
	search_radius: float = field(default_factory=lambda: settings.default_search_radius_km)
	location_visible: bool = True

	@classmethod
	def from_record(cls, uid: str, record: Mapping[str, Any]) -> "UserProfile":
		name = record.get("name")
		photo = record.get("profile_photo_base64")
		return cls(
			uid=uid,
			name=name if isinstance(name, str) and name.strip() else None,
			email=_text(record.get("email")),
			major=_text(record.get("major")),
			bio=_text(record.get("bio")),
			phone_number=_text(record.get("phone_number")),
			location=LatLng.from_value(record.get("location")),
			interests=_tags(record.get("interests")),
			classes=_tags(record.get("classes")),
			profile_photo_base64=photo if isinstance(photo, str) and photo else None,
			notifications_enabled=_flag(record.get("notifications_enabled"), True),
			search_radius=_radius(record.get("search_radius")),
			location_visible=_flag(record.get("location_visible"), True),
		)


def placeholder_record(email: Optional[str] = None) -> Dict[str, Any]:
	"""Record written on first sign-in: every attribute empty, no location."""
	return {
		"email": email or "",
		"name": "",
		"major": "",
		"bio": "",
		"phone_number": "",
		"interests": [],
		"classes": [],
		"profile_photo_base64": None,
		"notifications_enabled": True,
		"search_radius": settings.default_search_radius_km,
		"location_visible": True,
	}

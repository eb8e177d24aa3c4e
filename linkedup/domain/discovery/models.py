"""Candidate records decoded from the user directory."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from linkedup.domain.discovery.geo import LatLng
from linkedup.infra.documents import Document, Snapshot


def _text(value: Any) -> str:
	return value if isinstance(value, str) else ""


def _tags(value: Any) -> Tuple[str, ...]:
	if not isinstance(value, (list, tuple)):
		return ()
	return tuple(item for item in value if isinstance(item, str))


@dataclass(slots=True, frozen=True)
class CandidateProfile:
	uid: str
	name: str
	location: LatLng
	major: str = ""
	bio: str = ""
	interests: Tuple[str, ...] = ()
	classes: Tuple[str, ...] = ()
	profile_photo_base64: Optional[str] = None

	@classmethod
	def from_document(cls, doc: Document) -> Optional["CandidateProfile"]:
		"""None for records that cannot be shown: no name, no location, or hidden location."""
		name = doc.get("name")
		if not isinstance(name, str) or not name.strip():
			return None
		location = LatLng.from_value(doc.get("location"))
		if location is None or doc.get("location_visible") is False:
			return None
		photo = doc.get("profile_photo_base64")
		return cls(
			uid=doc.id,
			name=name,
			location=location,
			major=_text(doc.get("major")),
			bio=_text(doc.get("bio")),
			interests=_tags(doc.get("interests")),
			classes=_tags(doc.get("classes")),
			profile_photo_base64=photo if isinstance(photo, str) and photo else None,
		)

	def to_payload(self) -> dict:
		return {
			"uid": self.uid,
			"name": self.name,
			"location": self.location.to_dict(),
			"major": self.major,
			"bio": self.bio,
			"interests": list(self.interests),
			"classes": list(self.classes),
			"profile_photo_base64": self.profile_photo_base64,
		}


def candidates_from_snapshot(snapshot: Snapshot, exclude_uid: Optional[str]) -> List[CandidateProfile]:
	candidates: List[CandidateProfile] = []
	for doc in snapshot:
		if doc.id == exclude_uid:
			continue
		candidate = CandidateProfile.from_document(doc)
		if candidate is not None:
			candidates.append(candidate)
	return candidates

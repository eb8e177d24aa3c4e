"""Domain models for interest and match edges."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class MatchOutcome(str, Enum):
	"""Result of expressing interest in another user."""

	ALREADY_MATCHED = "already_matched"
	NEW_MATCH = "new_match"
	ONE_SIDED = "one_sided_interest_recorded"


INTEREST_RECORD = {"liked": True}
MATCH_RECORD = {"matched": True}


@dataclass(slots=True, frozen=True)
class MatchSummary:
	"""A matched peer resolved to their current display name."""

	uid: str
	name: str

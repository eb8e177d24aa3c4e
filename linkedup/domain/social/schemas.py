"""Pydantic schemas for links and matches."""

from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel


class LinkResponse(BaseModel):
	target_id: str
	outcome: Literal["already_matched", "new_match", "one_sided_interest_recorded"]


class MatchRow(BaseModel):
	uid: str
	name: str


class MatchIdsResponse(BaseModel):
	ids: List[str]


class MatchEventPayload(BaseModel):
	peer_id: str

"""REST API surface for links and matches."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from linkedup.domain.social.schemas import LinkResponse, MatchIdsResponse, MatchRow
from linkedup.domain.social.service import RelationshipRepository
from linkedup.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["links"])
_relationships = RelationshipRepository()


@router.post("/links/{target_id}", response_model=LinkResponse)
async def link_up(
	target_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> LinkResponse:
	outcome = await _relationships.express_interest(auth_user.id, target_id)
	return LinkResponse(target_id=target_id, outcome=outcome.value)


@router.delete("/links/{target_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unlink(
	target_id: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> None:
	await _relationships.unlink(auth_user.id, target_id)


@router.get("/matches", response_model=List[MatchRow])
async def list_matches(auth_user: AuthenticatedUser = Depends(get_current_user)) -> List[MatchRow]:
	rows = await _relationships.list_matches(auth_user.id)
	return [MatchRow(uid=row.uid, name=row.name) for row in rows]


@router.get("/matches/ids", response_model=MatchIdsResponse)
async def list_match_ids(auth_user: AuthenticatedUser = Depends(get_current_user)) -> MatchIdsResponse:
	ids = await _relationships.list_match_ids(auth_user.id)
	return MatchIdsResponse(ids=sorted(ids))

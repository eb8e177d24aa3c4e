"""Account deletion workflow."""

from __future__ import annotations

import logging
from typing import Optional

from linkedup.domain.common import keys
from linkedup.domain.common.exceptions import NotAuthenticated, translate_store_errors
from linkedup.domain.social.service import RelationshipRepository
from linkedup.infra.documents import DocumentStore
from linkedup.infra.store import get_store

logger = logging.getLogger(__name__)


async def delete_account(
	actor: Optional[str],
	*,
	relationships: RelationshipRepository | None = None,
	store: DocumentStore | None = None,
) -> int:
	"""Cascade relationship cleanup, then drop ``users/{uid}``.

	The profile record is only removed once every relationship record has been
	cleaned, so a failed sweep can be retried. Returns the removed relationship
	record count.
	"""
	if not actor or not str(actor).strip():
		raise NotAuthenticated()
	uid = keys.check_uid(actor)
	target_store = store if store is not None else get_store()
	repo = relationships or RelationshipRepository(target_store)
	removed = await repo.cascade_delete_user(uid)
	with translate_store_errors("delete_account"):
		await target_store.delete(keys.user_path(uid))
	logger.info("account_deleted", extra={"user": uid, "relationship_records_removed": removed})
	return removed

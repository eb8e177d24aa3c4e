"""Relationship repository: interest edges, reciprocity detection and match edges.

Interest is recorded one-sided under the actor's namespace. The reciprocal
edge is read only after the actor's own write is acknowledged, and both
halves of a match are written in a single batch. Two users linking each other
within the same round trip can both miss the reciprocal edge; the pair then
stays one-sided until either acts again.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Set

from linkedup.domain.common import keys
from linkedup.domain.common.exceptions import (
	NotAuthenticated,
	RepositoryError,
	translate_store_errors,
)
from linkedup.domain.social import sockets
from linkedup.domain.social.exceptions import SelfLinkError
from linkedup.domain.social.models import INTEREST_RECORD, MATCH_RECORD, MatchOutcome, MatchSummary
from linkedup.infra.documents import DocumentStore, StoreError
from linkedup.infra.store import get_store
from linkedup.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


def _require_actor(actor: Optional[str]) -> str:
	if not actor or not str(actor).strip():
		raise NotAuthenticated()
	return keys.check_uid(actor)


def _pair(actor: Optional[str], target: Optional[str]) -> tuple[str, str]:
	actor_id = _require_actor(actor)
	target_id = keys.check_uid(target)
	if actor_id == target_id:
		raise SelfLinkError()
	return actor_id, target_id


class RelationshipRepository:
	"""Owns the interest/match state machine for every user pair."""

	def __init__(self, store: DocumentStore | None = None) -> None:
		self._store = store

	@property
	def store(self) -> DocumentStore:
		return self._store if self._store is not None else get_store()

	async def express_interest(self, actor: Optional[str], target: Optional[str]) -> MatchOutcome:
		actor_id, target_id = _pair(actor, target)
		store = self.store
		with translate_store_errors("express_interest"):
			if await store.get(keys.match_path(actor_id, target_id)) is not None:
				outcome = MatchOutcome.ALREADY_MATCHED
			else:
				await store.set(keys.interest_path(actor_id, target_id), INTEREST_RECORD)
				reciprocal = await store.get(keys.interest_path(target_id, actor_id))
				if reciprocal is not None:
					batch = store.batch()
					batch.set(keys.match_path(actor_id, target_id), MATCH_RECORD)
					batch.set(keys.match_path(target_id, actor_id), MATCH_RECORD)
					await batch.commit()
					outcome = MatchOutcome.NEW_MATCH
				else:
					outcome = MatchOutcome.ONE_SIDED
		obs_metrics.inc_link_request(outcome.value)
		logger.info("link_requested", extra={"actor": actor_id, "target": target_id, "outcome": outcome.value})
		if outcome is MatchOutcome.NEW_MATCH:
			await _notify(sockets.emit_match_new, actor_id, target_id)
		return outcome

	async def list_matches(self, actor: Optional[str]) -> List[MatchSummary]:
		"""Matched peers with their current names; peers without a named profile are skipped."""
		actor_id = _require_actor(actor)
		store = self.store
		rows: List[MatchSummary] = []
		with translate_store_errors("list_matches"):
			edges = await store.list(keys.matches_collection(actor_id))
			for edge in edges:
				profile = await store.get(keys.user_path(edge.id))
				name = (profile or {}).get("name")
				if not isinstance(name, str) or not name.strip():
					continue
				rows.append(MatchSummary(uid=edge.id, name=name))
		return rows

	async def list_match_ids(self, actor: Optional[str]) -> Set[str]:
		actor_id = _require_actor(actor)
		with translate_store_errors("list_match_ids"):
			edges = await self.store.list(keys.matches_collection(actor_id))
		return {edge.id for edge in edges}

	async def is_matched(self, a: Optional[str], b: Optional[str]) -> bool:
		actor_id, target_id = _pair(a, b)
		with translate_store_errors("is_matched"):
			return await self.store.get(keys.match_path(actor_id, target_id)) is not None

	async def unlink(self, actor: Optional[str], target: Optional[str]) -> None:
		"""Remove both interest edges and both match halves in one all-or-nothing batch."""
		actor_id, target_id = _pair(actor, target)
		store = self.store
		with translate_store_errors("unlink"):
			was_matched = await store.get(keys.match_path(actor_id, target_id)) is not None
			batch = store.batch()
			batch.delete(keys.interest_path(actor_id, target_id))
			batch.delete(keys.match_path(actor_id, target_id))
			batch.delete(keys.interest_path(target_id, actor_id))
			batch.delete(keys.match_path(target_id, actor_id))
			await batch.commit()
		obs_metrics.inc_unlink()
		logger.info("unlinked", extra={"actor": actor_id, "target": target_id, "was_matched": was_matched})
		if was_matched:
			await _notify(sockets.emit_match_removed, actor_id, target_id)

	async def cascade_delete_user(self, deleted_uid: Optional[str]) -> int:
		"""Remove every relationship record that references ``deleted_uid``.

		Each counterpart is cleaned in its own batch; the loop across users is not
		atomic. The first failure stops the sweep and is raised as RepositoryError,
		leaving already-cleaned users cleaned. Returns the number of records removed.
		"""
		uid = _require_actor(deleted_uid)
		store = self.store
		with translate_store_errors("cascade_delete_user"):
			directory = await store.list(keys.USERS)
			own_interests = await store.list(keys.interests_collection(uid))
			own_matches = await store.list(keys.matches_collection(uid))
		counterparts = _ordered_unique(
			[doc.id for doc in directory]
			+ [doc.id for doc in own_interests]
			+ [doc.id for doc in own_matches]
		)
		removed = 0
		for other in counterparts:
			if other == uid:
				continue
			try:
				removed += await self._remove_references(store, other, uid)
			except StoreError as exc:
				obs_metrics.inc_cascade_delete("partial", removed)
				obs_metrics.inc_store_error("cascade_delete_user")
				logger.warning(
					"cascade_delete_partial",
					extra={"deleted": uid, "failed_on": other, "removed": removed},
				)
				raise RepositoryError("cascade_delete_user", exc) from exc

		own = [keys.interest_path(uid, doc.id) for doc in own_interests]
		own += [keys.match_path(uid, doc.id) for doc in own_matches]
		if own:
			batch = store.batch()
			for path in own:
				batch.delete(path)
			try:
				await batch.commit()
			except StoreError as exc:
				obs_metrics.inc_cascade_delete("partial", removed)
				obs_metrics.inc_store_error("cascade_delete_user")
				raise RepositoryError("cascade_delete_user", exc) from exc
			removed += len(own)
		obs_metrics.inc_cascade_delete("ok", removed)
		logger.info("cascade_delete_complete", extra={"deleted": uid, "removed": removed})
		return removed

	@staticmethod
	async def _remove_references(store: DocumentStore, owner: str, deleted: str) -> int:
		paths = [keys.match_path(owner, deleted), keys.interest_path(owner, deleted)]
		present = [path for path in paths if await store.get(path) is not None]
		if not present:
			return 0
		batch = store.batch()
		for path in present:
			batch.delete(path)
		await batch.commit()
		return len(present)


def _ordered_unique(values: Iterable[str]) -> List[str]:
	seen: Set[str] = set()
	ordered: List[str] = []
	for value in values:
		if value not in seen:
			seen.add(value)
			ordered.append(value)
	return ordered


async def _notify(emit, actor_id: str, target_id: str) -> None:
	# Delivery is best-effort; the stored relationship state is already final.
	try:
		await emit(actor_id, {"peer_id": target_id})
		await emit(target_id, {"peer_id": actor_id})
	except Exception:
		logger.warning("match_notification_failed", extra={"actor": actor_id, "target": target_id}, exc_info=True)

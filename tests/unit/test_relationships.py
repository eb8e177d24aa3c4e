from unittest.mock import AsyncMock, Mock

import pytest

from linkedup.domain.common.exceptions import InvalidArgument, NotAuthenticated, RepositoryError
from linkedup.domain.social import sockets as social_sockets
from linkedup.domain.social.exceptions import SelfLinkError
from linkedup.domain.social.models import MatchOutcome
from linkedup.domain.social.service import RelationshipRepository
from linkedup.infra.documents import StoreError
from tests.helpers import FlakyStore, seed_user


async def _edges(store, uid):
	interests = {doc.id for doc in await store.list(f"users/{uid}/interests")}
	matches = {doc.id for doc in await store.list(f"users/{uid}/matches")}
	return interests, matches


@pytest.mark.asyncio
async def test_one_sided_interest_is_idempotent(memory_store):
	repo = RelationshipRepository(memory_store)

	assert await repo.express_interest("a", "b") is MatchOutcome.ONE_SIDED
	assert await repo.express_interest("a", "b") is MatchOutcome.ONE_SIDED

	interests = await memory_store.list("users/a/interests")
	assert [doc.id for doc in interests] == ["b"]
	assert interests[0].data == {"liked": True}
	assert await memory_store.list("users/a/matches") == []


@pytest.mark.asyncio
async def test_reciprocal_interest_creates_both_match_halves(memory_store):
	repo = RelationshipRepository(memory_store)
	await memory_store.set("users/b/interests/a", {"liked": True})

	assert await repo.express_interest("a", "b") is MatchOutcome.NEW_MATCH

	assert await memory_store.get("users/a/matches/b") == {"matched": True}
	assert await memory_store.get("users/b/matches/a") == {"matched": True}


@pytest.mark.asyncio
async def test_existing_match_short_circuits_without_writes(memory_store):
	repo = RelationshipRepository(memory_store)
	await memory_store.set("users/a/matches/b", {"matched": True})
	await memory_store.set("users/b/matches/a", {"matched": True})
	memory_store.set = AsyncMock(wraps=memory_store.set)
	memory_store.batch = Mock(wraps=memory_store.batch)

	assert await repo.express_interest("a", "b") is MatchOutcome.ALREADY_MATCHED

	memory_store.set.assert_not_awaited()
	memory_store.batch.assert_not_called()
	assert await memory_store.get("users/a/interests/b") is None


@pytest.mark.asyncio
async def test_self_link_is_rejected_before_any_write(memory_store):
	repo = RelationshipRepository(memory_store)

	with pytest.raises(SelfLinkError):
		await repo.express_interest("a", "a")
	assert await memory_store.list("users/a/interests") == []


@pytest.mark.asyncio
async def test_missing_actor_and_bad_target():
	repo = RelationshipRepository()

	with pytest.raises(NotAuthenticated):
		await repo.express_interest(None, "b")
	with pytest.raises(InvalidArgument):
		await repo.express_interest("a", "x/y")
	with pytest.raises(InvalidArgument):
		await repo.express_interest("a", "  ")


@pytest.mark.asyncio
@pytest.mark.parametrize(
	"existing",
	[
		(),
		("users/a/interests/b",),
		("users/b/interests/a",),
		("users/a/interests/b", "users/b/interests/a", "users/a/matches/b", "users/b/matches/a"),
		("users/a/matches/b",),
	],
)
async def test_unlink_removes_every_record_regardless_of_prior_state(memory_store, existing):
	repo = RelationshipRepository(memory_store)
	for path in existing:
		await memory_store.set(path, {"liked": True} if "interests" in path else {"matched": True})

	await repo.unlink("a", "b")

	assert await _edges(memory_store, "a") == (set(), set())
	assert await _edges(memory_store, "b") == (set(), set())


@pytest.mark.asyncio
async def test_unlink_failure_leaves_state_untouched(memory_store):
	await memory_store.set("users/a/matches/b", {"matched": True})
	await memory_store.set("users/b/matches/a", {"matched": True})
	repo = RelationshipRepository(FlakyStore(memory_store, fail_from_commit=1))

	with pytest.raises(RepositoryError) as excinfo:
		await repo.unlink("a", "b")

	assert isinstance(excinfo.value.__cause__, StoreError)
	assert await memory_store.get("users/a/matches/b") == {"matched": True}
	assert await memory_store.get("users/b/matches/a") == {"matched": True}


@pytest.mark.asyncio
async def test_example_scenario(memory_store):
	repo = RelationshipRepository(memory_store)

	assert await repo.express_interest("u1", "u2") is MatchOutcome.ONE_SIDED
	assert await repo.express_interest("u2", "u1") is MatchOutcome.NEW_MATCH
	assert await repo.list_match_ids("u1") == {"u2"}
	assert await repo.list_match_ids("u2") == {"u1"}
	assert await repo.is_matched("u1", "u2")

	await repo.unlink("u1", "u2")

	assert await repo.list_match_ids("u1") == set()
	assert await repo.list_match_ids("u2") == set()
	assert not await repo.is_matched("u2", "u1")


@pytest.mark.asyncio
async def test_list_matches_resolves_names_and_skips_missing_profiles(memory_store):
	repo = RelationshipRepository(memory_store)
	await seed_user(memory_store, "b", name="Ben")
	await seed_user(memory_store, "c", name="")
	for peer in ("b", "c", "ghost"):
		await memory_store.set(f"users/a/matches/{peer}", {"matched": True})

	rows = await repo.list_matches("a")

	assert [(row.uid, row.name) for row in rows] == [("b", "Ben")]
	assert await repo.list_match_ids("a") == {"b", "c", "ghost"}


@pytest.mark.asyncio
async def test_new_match_notifies_both_parties(memory_store, monkeypatch):
	emitted = AsyncMock()
	monkeypatch.setattr(social_sockets, "emit_match_new", emitted)
	repo = RelationshipRepository(memory_store)
	await repo.express_interest("b", "a")

	await repo.express_interest("a", "b")

	recipients = [call.args[0] for call in emitted.await_args_list]
	assert recipients == ["a", "b"]


@pytest.mark.asyncio
async def test_notification_failure_does_not_change_outcome(memory_store, monkeypatch):
	monkeypatch.setattr(social_sockets, "emit_match_new", AsyncMock(side_effect=RuntimeError("socket down")))
	repo = RelationshipRepository(memory_store)
	await repo.express_interest("b", "a")

	assert await repo.express_interest("a", "b") is MatchOutcome.NEW_MATCH


@pytest.mark.asyncio
async def test_cascade_delete_removes_every_reference(memory_store):
	repo = RelationshipRepository(memory_store)
	for uid in ("x", "u1", "u2", "u3"):
		await seed_user(memory_store, uid, name=uid.upper())
	await repo.express_interest("u1", "x")
	await repo.express_interest("x", "u1")
	await repo.express_interest("u2", "x")
	await repo.express_interest("x", "u3")
	await repo.express_interest("u2", "u3")

	removed = await repo.cascade_delete_user("x")

	for uid in ("u1", "u2", "u3"):
		interests, matches = await _edges(memory_store, uid)
		assert "x" not in interests
		assert "x" not in matches
	assert await _edges(memory_store, "x") == (set(), set())
	# unrelated edges survive
	assert await memory_store.get("users/u2/interests/u3") == {"liked": True}
	# u1: interest + match; u2: interest; x: two interests + one match
	assert removed == 6


@pytest.mark.asyncio
async def test_cascade_delete_reaches_counterparts_without_profiles(memory_store):
	repo = RelationshipRepository(memory_store)
	await repo.express_interest("x", "ghost")
	await repo.express_interest("ghost", "x")

	await repo.cascade_delete_user("x")

	assert await _edges(memory_store, "ghost") == (set(), set())
	assert await _edges(memory_store, "x") == (set(), set())


@pytest.mark.asyncio
async def test_cascade_delete_stops_on_first_failure(memory_store):
	for uid in ("x", "u1", "u2"):
		await seed_user(memory_store, uid, name=uid)
	await memory_store.set("users/u1/interests/x", {"liked": True})
	await memory_store.set("users/u2/interests/x", {"liked": True})
	await memory_store.set("users/x/interests/u1", {"liked": True})
	repo = RelationshipRepository(FlakyStore(memory_store, fail_from_commit=2))

	with pytest.raises(RepositoryError):
		await repo.cascade_delete_user("x")

	# directory order: x, u1, u2 -> u1 cleaned, u2 failed, own records untouched
	assert await memory_store.get("users/u1/interests/x") is None
	assert await memory_store.get("users/u2/interests/x") == {"liked": True}
	assert await memory_store.get("users/x/interests/u1") == {"liked": True}

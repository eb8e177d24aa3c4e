import pytest

from linkedup.domain.common.exceptions import NotAuthenticated, RepositoryError
from linkedup.domain.identity import deletion
from linkedup.domain.social.service import RelationshipRepository
from tests.helpers import FlakyStore, seed_user


@pytest.mark.asyncio
async def test_delete_account_cascades_then_removes_profile(memory_store):
	repo = RelationshipRepository(memory_store)
	await seed_user(memory_store, "x", name="X")
	await seed_user(memory_store, "y", name="Y")
	await repo.express_interest("x", "y")
	await repo.express_interest("y", "x")

	removed = await deletion.delete_account("x", store=memory_store)

	assert removed == 4
	assert await memory_store.get("users/x") is None
	assert await memory_store.get("users/y") == {"name": "Y"}
	assert await repo.list_match_ids("y") == set()


@pytest.mark.asyncio
async def test_delete_account_requires_identity(memory_store):
	with pytest.raises(NotAuthenticated):
		await deletion.delete_account(None, store=memory_store)


@pytest.mark.asyncio
async def test_failed_cascade_keeps_profile_for_retry(memory_store):
	await seed_user(memory_store, "x", name="X")
	await seed_user(memory_store, "y", name="Y")
	await memory_store.set("users/y/interests/x", {"liked": True})

	with pytest.raises(RepositoryError):
		await deletion.delete_account("x", store=FlakyStore(memory_store))

	assert await memory_store.get("users/x") == {"name": "X"}

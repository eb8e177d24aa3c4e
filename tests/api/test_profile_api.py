import base64

import pytest

HEADERS = {"X-User-Id": "u1"}


@pytest.mark.asyncio
async def test_bootstrap_then_profile_lifecycle(api_client):
	resp = await api_client.post("/me/bootstrap", json={"email": "u1@wisc.edu"}, headers=HEADERS)
	assert resp.status_code == 200
	assert resp.json()["name"] is None

	resp = await api_client.put(
		"/me/profile",
		json={"name": "Ana", "major": "CS", "bio": "hi", "phone_number": "555-0100"},
		headers=HEADERS,
	)
	assert resp.status_code == 200
	assert resp.json()["name"] == "Ana"

	resp = await api_client.get("/me/profile", headers=HEADERS)
	body = resp.json()
	assert body["uid"] == "u1"
	assert body["email"] == "u1@wisc.edu"
	assert body["major"] == "CS"


@pytest.mark.asyncio
async def test_profile_update_rejects_blank_fields(api_client):
	resp = await api_client.put(
		"/me/profile",
		json={"name": "", "major": "CS", "phone_number": "1"},
		headers=HEADERS,
	)
	assert resp.status_code == 400
	assert resp.json()["detail"] == "name_required"


@pytest.mark.asyncio
async def test_missing_profile_is_404(api_client):
	resp = await api_client.get("/me/profile", headers=HEADERS)
	assert resp.status_code == 404
	assert resp.json()["detail"] == "profile_not_found"

	resp = await api_client.delete("/me/photo", headers=HEADERS)
	assert resp.status_code == 404
	assert resp.json()["detail"] == "profile_not_found"


@pytest.mark.asyncio
async def test_preferences_and_catalog(api_client):
	resp = await api_client.get("/preferences/catalog")
	assert "AI" in resp.json()["interests"]["STEM"]

	resp = await api_client.put(
		"/me/preferences",
		json={"interests": ["AI", "History"], "classes": ["ECE 252"]},
		headers=HEADERS,
	)
	assert resp.status_code == 200
	assert resp.json()["interests"] == ["AI", "History"]

	resp = await api_client.put("/me/preferences", json={"interests": ["Nope"]}, headers=HEADERS)
	assert resp.status_code == 400
	assert resp.json()["detail"] == "unknown_tag"


@pytest.mark.asyncio
async def test_settings_and_photo(api_client):
	resp = await api_client.put("/me/settings", json={"search_radius": 3.5, "location_visible": False}, headers=HEADERS)
	assert resp.status_code == 200
	assert resp.json()["search_radius"] == 3.5
	assert resp.json()["location_visible"] is False

	resp = await api_client.put("/me/settings", json={"search_radius": 0}, headers=HEADERS)
	assert resp.status_code == 400

	photo = base64.b64encode(b"\xff\xd8\xff\xe0jpeg").decode()
	resp = await api_client.put("/me/photo", json={"profile_photo_base64": photo}, headers=HEADERS)
	assert resp.status_code == 204
	assert (await api_client.get("/me/profile", headers=HEADERS)).json()["profile_photo_base64"] == photo

	resp = await api_client.delete("/me/photo", headers=HEADERS)
	assert resp.status_code == 204
	assert (await api_client.get("/me/profile", headers=HEADERS)).json()["profile_photo_base64"] is None


@pytest.mark.asyncio
async def test_location_roundtrip_and_validation(api_client):
	resp = await api_client.get("/me/location", headers=HEADERS)
	assert resp.json() is None

	resp = await api_client.put("/me/location", json={"lat": 43.07, "lng": -89.4}, headers=HEADERS)
	assert resp.status_code == 200

	resp = await api_client.get("/me/location", headers=HEADERS)
	assert resp.json() == {"lat": 43.07, "lng": -89.4}

	resp = await api_client.put("/me/location", json={"lat": 100, "lng": 0}, headers=HEADERS)
	assert resp.status_code == 422


@pytest.mark.asyncio
async def test_delete_me_cascades(api_client, memory_store):
	await memory_store.set("users/u1", {"name": "Ana"})
	await memory_store.set("users/u2", {"name": "Ben"})
	await api_client.post("/links/u2", headers=HEADERS)
	await api_client.post("/links/u1", headers={"X-User-Id": "u2"})

	resp = await api_client.delete("/me", headers=HEADERS)

	assert resp.status_code == 200
	assert resp.json() == {"uid": "u1", "relationship_records_removed": 4}
	assert await memory_store.get("users/u1") is None
	assert await memory_store.list("users/u2/matches") == []

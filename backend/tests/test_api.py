"""
Jotbox Backend: HTTP API Integration Tests
==========================================

What:  End-to-end requests through the full middleware chain, once per
       storage backend (fakeredis and in-memory SQLite).

What we test:
    ✅ Create → list → update → delete lifecycle
    ✅ Notes are invisible across identity scopes
    ✅ 401 without identity on every API route
    ✅ 400 / 404 / 405 error envelopes and the Allow header
    ✅ Paths outside the prefix reach the health route or the framework 404
    ✅ CORS and request-id headers on API responses
"""

import pytest

NOTES = "/api/notes"
ALICE = {"X-User-Token": "alice"}
BOB = {"X-User-Token": "bob"}
MISSING_ID = "0b5b8f4e-3c2a-4d1e-9f6a-7b8c9d0e1f2a"


class TestNoteLifecycle:

    @pytest.mark.asyncio
    async def test_full_lifecycle(self, test_client, backend):
        response = await test_client.get(NOTES, headers=ALICE)
        assert response.status_code == 200
        assert response.json() == []

        response = await test_client.post(NOTES, headers=ALICE, json={"content": "buy milk"})
        assert response.status_code == 201
        created = response.json()
        assert created["content"] == "buy milk"
        assert isinstance(created["createdAt"], int)
        assert "scope" not in created
        if backend.name == "relational":
            assert created["title"] == "(Untitled)"
            assert "updatedAt" not in created
        else:
            assert "title" not in created
            assert created["updatedAt"] == created["createdAt"]

        response = await test_client.get(NOTES, headers=ALICE)
        assert response.json() == [created]

        response = await test_client.put(
            f"{NOTES}/{created['id']}", headers=ALICE, json={"content": "buy oat milk"}
        )
        assert response.status_code == 200
        updated = response.json()
        assert updated["id"] == created["id"]
        assert updated["content"] == "buy oat milk"
        assert updated["createdAt"] == created["createdAt"]

        response = await test_client.delete(f"{NOTES}/{created['id']}", headers=ALICE)
        assert response.status_code == 200
        assert response.json() == {"success": True}

        response = await test_client.get(NOTES, headers=ALICE)
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_list_newest_first(self, test_client):
        for text in ("first", "second", "third"):
            await test_client.post(NOTES, headers=ALICE, json={"content": text})

        response = await test_client.get(NOTES, headers=ALICE)
        assert [n["content"] for n in response.json()] == ["third", "second", "first"]

    @pytest.mark.asyncio
    async def test_uppercase_id_addresses_same_note(self, test_client):
        created = (await test_client.post(NOTES, headers=ALICE, json={"content": "x"})).json()

        response = await test_client.delete(f"{NOTES}/{created['id'].upper()}", headers=ALICE)
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_delete_twice(self, test_client):
        created = (await test_client.post(NOTES, headers=ALICE, json={"content": "x"})).json()

        first = await test_client.delete(f"{NOTES}/{created['id']}", headers=ALICE)
        second = await test_client.delete(f"{NOTES}/{created['id']}", headers=ALICE)
        assert first.status_code == 200
        assert second.status_code == 404
        assert second.json()["error"] == "not_found"


class TestScopeIsolation:

    @pytest.mark.asyncio
    async def test_other_scope_sees_nothing(self, test_client):
        created = (await test_client.post(NOTES, headers=ALICE, json={"content": "secret"})).json()
        item = f"{NOTES}/{created['id']}"

        assert (await test_client.get(NOTES, headers=BOB)).json() == []

        response = await test_client.put(item, headers=BOB, json={"content": "pwned"})
        assert response.status_code == 404
        response = await test_client.delete(item, headers=BOB)
        assert response.status_code == 404

        [note] = (await test_client.get(NOTES, headers=ALICE)).json()
        assert note["content"] == "secret"

    @pytest.mark.asyncio
    async def test_foreign_and_missing_ids_look_identical(self, test_client):
        created = (await test_client.post(NOTES, headers=ALICE, json={"content": "x"})).json()

        foreign = await test_client.delete(f"{NOTES}/{created['id']}", headers=BOB)
        missing = await test_client.delete(f"{NOTES}/{MISSING_ID}", headers=BOB)
        assert foreign.status_code == missing.status_code == 404
        assert foreign.json()["error"] == missing.json()["error"]


class TestIdentity:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", NOTES),
            ("POST", NOTES),
            ("PUT", f"{NOTES}/{MISSING_ID}"),
            ("DELETE", f"{NOTES}/{MISSING_ID}"),
            ("GET", "/api/unknown"),
        ],
    )
    @pytest.mark.asyncio
    async def test_missing_identity_is_401(self, test_client, method, path):
        response = await test_client.request(method, path, json={"content": "x"})
        assert response.status_code == 401
        body = response.json()
        assert body["error"] == "unauthenticated"
        assert "X-User-Token" in body["message"]

    @pytest.mark.asyncio
    async def test_empty_identity_is_401(self, test_client):
        response = await test_client.get(NOTES, headers={"X-User-Token": ""})
        assert response.status_code == 401


class TestRequestErrors:

    @pytest.mark.asyncio
    async def test_put_on_collection_is_400(self, test_client):
        response = await test_client.put(NOTES, headers=ALICE, json={"content": "x"})
        assert response.status_code == 400
        assert "Missing note ID" in response.json()["message"]

    @pytest.mark.asyncio
    async def test_delete_on_collection_is_400(self, test_client):
        response = await test_client.delete(NOTES, headers=ALICE)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unsupported_verb_is_405_with_allow(self, test_client):
        response = await test_client.patch(NOTES, headers=ALICE, json={})
        assert response.status_code == 405
        assert response.headers["allow"] == "GET, POST"
        assert response.json()["error"] == "method_not_allowed"

        response = await test_client.get(f"{NOTES}/{MISSING_ID}", headers=ALICE)
        assert response.status_code == 405
        assert response.headers["allow"] == "PUT, DELETE"

    @pytest.mark.parametrize("path", ["/api", "/api/users", f"{NOTES}/not-a-uuid"])
    @pytest.mark.asyncio
    async def test_unknown_api_path_is_json_404(self, test_client, path):
        response = await test_client.get(path, headers=ALICE)
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_malformed_json_is_400(self, test_client):
        response = await test_client.post(
            NOTES,
            headers={**ALICE, "Content-Type": "application/json"},
            content=b"{not json",
        )
        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["message"] == "Request body must be valid JSON"

    @pytest.mark.asyncio
    async def test_missing_content_is_400(self, test_client):
        response = await test_client.post(NOTES, headers=ALICE, json={"title": "x"})
        assert response.status_code == 400
        assert response.json()["details"] == {"field": "content"}

    @pytest.mark.asyncio
    async def test_empty_update_is_400(self, test_client):
        created = (await test_client.post(NOTES, headers=ALICE, json={"content": "x"})).json()

        response = await test_client.put(f"{NOTES}/{created['id']}", headers=ALICE, json={})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_update_missing_note_is_404(self, test_client):
        response = await test_client.put(
            f"{NOTES}/{MISSING_ID}", headers=ALICE, json={"content": "x"}
        )
        assert response.status_code == 404


class TestPassThroughAndHeaders:

    @pytest.mark.asyncio
    async def test_health_passes_through(self, test_client, backend):
        response = await test_client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["storage"] == "connected"
        assert body["backend"] == backend.name

    @pytest.mark.asyncio
    async def test_unknown_path_outside_prefix_reaches_framework(self, test_client):
        response = await test_client.get("/no/such/page")
        assert response.status_code == 404
        assert response.json() == {"detail": "Not Found"}

    @pytest.mark.asyncio
    async def test_api_responses_carry_cors_and_request_id(self, test_client):
        response = await test_client.get(NOTES, headers={**ALICE, "X-Request-ID": "abc123"})
        assert response.headers["access-control-allow-origin"] == "*"
        assert response.headers["x-request-id"] == "abc123"

    @pytest.mark.asyncio
    async def test_error_envelope_carries_request_id(self, test_client):
        response = await test_client.get(NOTES, headers={"X-Request-ID": "req-42"})
        assert response.json()["request_id"] == "req-42"
        assert response.headers["access-control-allow-origin"] == "*"

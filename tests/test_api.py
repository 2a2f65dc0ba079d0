import unittest
import uuid
from datetime import datetime, timezone

from fastapi.testclient import TestClient

from src.api.app import create_app
from src.domain.exceptions import NotFoundError, PersistenceError

UNKNOWN_ID = "00000000-0000-4000-8000-000000000000"


class _FakeDatabase:
    """In-memory stand-in honoring soft deletes."""

    def __init__(self) -> None:
        self.rows = {}
        self.calls = 0
        self.fail_with = None

    def _check(self) -> None:
        self.calls += 1
        if self.fail_with is not None:
            raise self.fail_with

    async def ping(self) -> None:
        self._check()

    async def create(self, entity):
        self._check()
        now = datetime.now(timezone.utc)
        created = entity.model_copy(update={"id": str(uuid.uuid4()), "created_at": now, "updated_at": now})
        self.rows[created.id] = created
        return created

    async def get(self, kind, entity_id):
        self._check()
        entity = self.rows.get(entity_id)
        if not isinstance(entity, kind) or entity.is_deleted:
            raise NotFoundError(kind.__name__, entity_id)
        return entity

    async def list_all(self, kind):
        self._check()
        return [e for e in self.rows.values() if isinstance(e, kind) and not e.is_deleted]

    async def update(self, entity):
        await self.get(type(entity), entity.id)
        updated = entity.model_copy(update={"updated_at": datetime.now(timezone.utc)})
        self.rows[entity.id] = updated
        return updated

    async def remove(self, kind, entity_id):
        entity = await self.get(kind, entity_id)
        removed = entity.model_copy(update={"deleted_at": datetime.now(timezone.utc)})
        self.rows[entity_id] = removed
        return removed


class TestGitHubRoutes(unittest.TestCase):
    def setUp(self) -> None:
        self.database = _FakeDatabase()
        self.client = TestClient(create_app(self.database))

    def _create_account(self, name="acme") -> dict:
        response = self.client.post("/api/github/accounts", json={"name": name})
        self.assertEqual(response.status_code, 201)
        return response.json()

    def _create_repo(self, account_id, name="core", **metrics) -> dict:
        response = self.client.post("/api/github/repos", json={"name": name, "account_id": account_id, **metrics})
        self.assertEqual(response.status_code, 201)
        return response.json()

    def test_create_account_lowercases_name(self) -> None:
        account = self._create_account("ICICLE-AI")

        self.assertEqual(account["name"], "icicle-ai")
        self.assertEqual(account["followers"], 0)
        self.assertTrue(account["id"])

    def test_get_account_round_trip(self) -> None:
        created = self._create_account()

        response = self.client.get(f"/api/github/accounts/{created['id']}")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), created)

    def test_malformed_id_is_rejected_before_handler(self) -> None:
        response = self.client.get("/api/github/repos/not-a-uuid")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.database.calls, 0)

    def test_unknown_id_is_not_found(self) -> None:
        response = self.client.get(f"/api/github/accounts/{UNKNOWN_ID}")

        self.assertEqual(response.status_code, 404)
        self.assertIn("error", response.json())

    def test_invalid_body_is_a_client_error(self) -> None:
        response = self.client.post("/api/github/accounts", json={"followers": 3})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Invalid request")

    def test_blank_name_is_a_client_error(self) -> None:
        response = self.client.post("/api/github/accounts", json={"name": "   "})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.database.calls, 0)

    def test_name_is_stored_trimmed(self) -> None:
        account = self._create_account("  Acme  ")

        self.assertEqual(account["name"], "acme")

    def test_malformed_account_id_in_body_is_a_client_error(self) -> None:
        response = self.client.post("/api/github/repos", json={"name": "core", "account_id": "abc"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Invalid request")
        self.assertEqual(self.database.calls, 0)

    def test_deleted_repository_disappears_from_reads(self) -> None:
        account = self._create_account()
        repo = self._create_repo(account["id"])

        deleted = self.client.delete(f"/api/github/repos/{repo['id']}")

        self.assertEqual(deleted.status_code, 200)
        self.assertEqual(self.client.get(f"/api/github/repos/{repo['id']}").status_code, 404)
        self.assertEqual(self.client.get("/api/github/repos").json(), [])
        self.assertEqual(self.client.delete(f"/api/github/repos/{repo['id']}").status_code, 404)

    def test_patch_repository_keeps_unspecified_metrics(self) -> None:
        account = self._create_account()
        repo = self._create_repo(account["id"], stars=4, views=9)

        response = self.client.patch(f"/api/github/repos/{repo['id']}", json={"stars": 11})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["stars"], 11)
        self.assertEqual(body["views"], 9)
        self.assertEqual(body["subscribers"], 0)

    def test_patch_account_followers(self) -> None:
        account = self._create_account()

        response = self.client.patch(f"/api/github/accounts/{account['id']}", json={"followers": 7})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["followers"], 7)

    def test_patch_without_fields_is_rejected(self) -> None:
        account = self._create_account()
        repo = self._create_repo(account["id"])

        response = self.client.patch(f"/api/github/repos/{repo['id']}", json={})

        self.assertEqual(response.status_code, 400)

    def test_storage_failure_is_a_server_error(self) -> None:
        self.database.fail_with = PersistenceError("duplicate key value violates unique constraint")

        response = self.client.post("/api/github/accounts", json={"name": "acme"})

        self.assertEqual(response.status_code, 500)
        self.assertIn("duplicate key", response.json()["error"])


class TestSystemRoutes(unittest.TestCase):
    def setUp(self) -> None:
        self.database = _FakeDatabase()
        self.client = TestClient(create_app(self.database))

    def test_health_reports_connected_database(self) -> None:
        response = self.client.get("/health")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "healthy", "database": "connected"})

    def test_health_reports_unreachable_database(self) -> None:
        self.database.fail_with = PersistenceError("could not connect to server")

        response = self.client.get("/health")

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["status"], "unhealthy")
        self.assertEqual(response.json()["database"], "disconnected")

    def test_routes_lists_endpoints(self) -> None:
        response = self.client.get("/routes")

        self.assertEqual(response.status_code, 200)
        endpoints = {(e["method"], e["path"]) for e in response.json()["endpoints"]}
        self.assertIn(("GET", "/health"), endpoints)
        self.assertIn(("PATCH", "/api/github/repos/{repo_id}"), endpoints)
        self.assertIn(("DELETE", "/api/github/accounts/{account_id}"), endpoints)

"""
HTTP tests for the /api/auth routes and the response envelope.
"""

from fastapi.testclient import TestClient
from pymongo.errors import DuplicateKeyError

from conftest import png_bytes, register
from novanector import database
from novanector.core.config import settings
from novanector.main import app
from novanector.utils.auth_utils import decode_token

MB = 1024 * 1024


def picture_file(name="me.png", content_type="image/png", size=1024):
    return {"profilePicture": (name, png_bytes(size), content_type)}


class TestMeta:
    def test_root(self, client):
        body = client.get("/").json()
        assert body["success"] is True
        assert body["endpoints"]["auth"] == "/api/auth"

    def test_liveness(self, client):
        response = client.get("/api/auth")
        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Auth API is working!"}

    def test_unknown_route(self, client):
        response = client.get("/api/nothing-here")
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Route /api/nothing-here not found"}


class TestRegisterRoute:
    def test_created_without_password(self, client):
        response = register(client)
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "User created successfully."
        assert "password" not in body["user"]
        assert body["user"]["role"] == "student"
        assert body["user"]["profilePicture"] == settings.DEFAULT_PROFILE_PICTURE

    def test_json_body(self, client):
        response = client.post(
            "/api/auth/register",
            json={"username": "annie", "email": "annie@example.com", "password": "supersecret1"},
        )
        assert response.status_code == 201

    def test_missing_fields(self, client):
        response = client.post("/api/auth/register", data={"username": "annie"})
        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "message": "Username, email, and password are required.",
        }

    def test_duplicate_email_and_username(self, client):
        register(client)
        email_clash = register(client, username="other")
        assert email_clash.status_code == 400
        assert "email" in email_clash.json()["message"].lower()

        username_clash = register(client, email="other@example.com")
        assert username_clash.status_code == 400
        assert "username" in username_clash.json()["message"].lower()

    def test_duplicate_key_from_store(self, client, mock_collection, monkeypatch):
        async def find_one(*args, **kwargs):
            return None

        async def insert_one(*args, **kwargs):
            raise DuplicateKeyError("E11000", 11000, {"keyPattern": {"email": 1}})

        monkeypatch.setattr(mock_collection, "find_one", find_one)
        monkeypatch.setattr(mock_collection, "insert_one", insert_one)
        response = register(client)
        assert response.status_code == 400
        assert response.json()["message"] == "email already exists."

    def test_with_picture_is_served(self, client):
        response = client.post(
            "/api/auth/register",
            data={"username": "annie", "email": "annie@example.com", "password": "supersecret1"},
            files=picture_file(size=4 * MB),
        )
        assert response.status_code == 201
        url = response.json()["user"]["profilePicture"]
        assert url.startswith("http://testserver/uploads/profile-pictures/me-")

        served = client.get(url)
        assert served.status_code == 200
        assert len(served.content) == 4 * MB

    def test_pdf_rejected_despite_extension(self, client):
        response = client.post(
            "/api/auth/register",
            data={"username": "annie", "email": "annie@example.com", "password": "supersecret1"},
            files=picture_file(name="me.png", content_type="application/pdf"),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "UPLOAD_ERROR"

    def test_oversized_picture(self, client):
        response = client.post(
            "/api/auth/register",
            data={"username": "annie", "email": "annie@example.com", "password": "supersecret1"},
            files=picture_file(size=6 * MB),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "FILE_TOO_LARGE"

    def test_too_many_files(self, client):
        files = [
            ("profilePicture", ("a.png", png_bytes(), "image/png")),
            ("profilePicture", ("b.png", png_bytes(), "image/png")),
        ]
        response = client.post("/api/auth/register", data={"username": "annie"}, files=files)
        assert response.status_code == 400
        assert response.json()["error"] == "TOO_MANY_FILES"

    def test_unexpected_field(self, client):
        files = {"avatar": ("a.png", png_bytes(), "image/png")}
        response = client.post("/api/auth/register", data={"username": "annie"}, files=files)
        assert response.status_code == 400
        assert response.json()["error"] == "UNEXPECTED_FIELD"


class TestLoginRoute:
    def test_success(self, client):
        user = register(client, role="instructor").json()["user"]
        response = client.post(
            "/api/auth/login", json={"email": "annie@example.com", "password": "supersecret1"}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Login successful."
        assert "password" not in body["user"]
        claims = decode_token(body["token"])
        assert claims["id"] == user["_id"]
        assert claims["role"] == "instructor"

    def test_uniform_failures(self, client):
        register(client)
        wrong_password = client.post(
            "/api/auth/login", json={"email": "annie@example.com", "password": "nottheone1"}
        )
        unknown_email = client.post(
            "/api/auth/login", json={"email": "ghost@example.com", "password": "supersecret1"}
        )
        assert wrong_password.status_code == unknown_email.status_code == 401
        assert wrong_password.json() == unknown_email.json()

    def test_missing_fields(self, client):
        response = client.post("/api/auth/login", json={"email": "annie@example.com"})
        assert response.status_code == 400
        assert response.json()["message"] == "Email and password are required."

    def test_malformed_body(self, client):
        response = client.post(
            "/api/auth/login", content="not json", headers={"content-type": "application/json"}
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Validation error."
        assert response.json()["errors"]


class TestUserRoutes:
    def test_get_single_user(self, client):
        user = register(client).json()["user"]
        response = client.get(f"/api/auth/users/{user['_id']}")
        assert response.status_code == 200
        assert response.json()["user"] == user

    def test_get_missing_user(self, client):
        for user_id in ("65a000000000000000000000", "nope"):
            response = client.get(f"/api/auth/users/{user_id}")
            assert response.status_code == 404
            assert response.json() == {"success": False, "message": "User not found."}

    def test_list_with_role_and_search(self, client):
        register(client, username="anna", email="anna@example.com", role="instructor")
        register(client, username="bob", email="bob@example.com", role="instructor")
        register(client, username="joanne", email="jo@example.com", role="instructor")
        register(client, username="annabel", email="annabel@example.com", role="student")

        response = client.get("/api/auth/users", params={"role": "instructor", "search": "ANN", "limit": 1})
        assert response.status_code == 200
        body = response.json()
        assert [user["username"] for user in body["users"]] == ["joanne"]
        assert body["pagination"] == {
            "currentPage": 1,
            "totalPages": 2,
            "totalUsers": 2,
            "hasNextPage": True,
            "hasPrevPage": False,
        }

    def test_list_rejects_bad_paging(self, client):
        response = client.get("/api/auth/users", params={"page": 0})
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_update_profile_with_json(self, client):
        user = register(client).json()["user"]
        response = client.put(
            f"/api/auth/users/{user['_id']}", json={"username": "annie_b", "role": "admin"}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Profile updated successfully."
        assert body["user"]["username"] == "annie_b"
        assert body["user"]["role"] == "admin"

    def test_update_profile_conflict(self, client):
        user = register(client).json()["user"]
        register(client, username="bob", email="bob@example.com")
        response = client.put(f"/api/auth/users/{user['_id']}", data={"email": "bob@example.com"})
        assert response.status_code == 400
        assert response.json()["message"] == "Email is already taken."

    def test_update_picture(self, client):
        user = register(client).json()["user"]
        response = client.put(f"/api/auth/users/{user['_id']}/picture", files=picture_file("new.jpg", "image/jpeg"))
        assert response.status_code == 200
        url = response.json()["user"]["profilePicture"]
        assert url.endswith(".jpg")
        assert client.get(url).status_code == 200

    def test_update_picture_requires_file(self, client):
        user = register(client).json()["user"]
        response = client.put(f"/api/auth/users/{user['_id']}/picture", data={})
        assert response.status_code == 400
        assert response.json()["error"] == "NO_FILE"

    def test_delete_twice(self, client):
        user = register(client).json()["user"]
        first = client.delete(f"/api/auth/users/{user['_id']}")
        assert first.status_code == 200
        assert first.json() == {"success": True, "message": "User deleted successfully."}
        for _ in range(2):
            again = client.delete(f"/api/auth/users/{user['_id']}")
            assert again.status_code == 404


class TestInternalErrors:
    def _broken_client(self, monkeypatch, mock_collection):
        async def find_one(*args, **kwargs):
            raise RuntimeError("store unavailable")

        monkeypatch.setattr(mock_collection, "find_one", find_one)
        monkeypatch.setattr(database, "user_collection", mock_collection)
        return TestClient(app, raise_server_exceptions=False)

    def test_generic_500(self, monkeypatch, mock_collection):
        with self._broken_client(monkeypatch, mock_collection) as client:
            response = client.get("/api/auth/users/65a000000000000000000000")
        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "Internal server error."}

    def test_detail_in_development(self, monkeypatch, mock_collection):
        monkeypatch.setattr(settings, "ENVIRONMENT", "development")
        with self._broken_client(monkeypatch, mock_collection) as client:
            response = client.get("/api/auth/users/65a000000000000000000000")
        assert response.status_code == 500
        assert "store unavailable" in response.json()["detail"]


class TestTimestamps:
    def test_same_record_serializes_identically(self, client):
        created = register(client).json()["user"]
        fetched = client.get(f"/api/auth/users/{created['_id']}").json()["user"]
        listed = client.get("/api/auth/users").json()["users"][0]
        for field in ("createdAt", "updatedAt"):
            assert created[field] == fetched[field] == listed[field]
            assert created[field].endswith("Z")

    def test_update_response_is_utc(self, client):
        created = register(client).json()["user"]
        updated = client.put(f"/api/auth/users/{created['_id']}", json={"role": "admin"}).json()["user"]
        assert updated["createdAt"] == created["createdAt"]
        assert updated["updatedAt"].endswith("Z")


class TestStartup:
    def test_pings_mongo_once(self, client, mongo_pings):
        assert mongo_pings == ["ping"]

    def test_ping_failure_is_logged_not_raised(self, monkeypatch, mock_collection, caplog):
        async def ping():
            raise RuntimeError("no servers")

        monkeypatch.setattr(database, "ping", ping)
        monkeypatch.setattr(database, "user_collection", mock_collection)
        with TestClient(app) as client:
            assert client.get("/api/auth").status_code == 200
        assert "MongoDB connection failed: no servers" in caplog.text

    def test_warns_about_default_jwt_secret(self, monkeypatch, mock_collection, caplog):
        from novanector.core.config import DEFAULT_JWT_SECRET

        monkeypatch.setattr(settings, "JWT_SECRET_KEY", DEFAULT_JWT_SECRET)
        monkeypatch.setattr(database, "user_collection", mock_collection)
        with TestClient(app):
            pass
        assert "JWT_SECRET_KEY is the built-in default" in caplog.text

    def test_no_warning_in_development(self, monkeypatch, mock_collection, caplog):
        from novanector.core.config import DEFAULT_JWT_SECRET

        monkeypatch.setattr(settings, "JWT_SECRET_KEY", DEFAULT_JWT_SECRET)
        monkeypatch.setattr(settings, "ENVIRONMENT", "development")
        monkeypatch.setattr(database, "user_collection", mock_collection)
        with TestClient(app):
            pass
        assert "JWT_SECRET_KEY is the built-in default" not in caplog.text

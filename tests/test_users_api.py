"""
User Service — /users Endpoint Tests
=====================================

What:  HTTP-level tests for POST /users and GET /users, the error envelope,
       the CORS policy and the request ID header.
How:   HTTPX AsyncClient over ASGITransport; the app is wired with a real
       SQLite-backed UserStore and in-memory blob/queue collaborators.
"""

import logging
from datetime import datetime

import pytest
from httpx import ASGITransport, AsyncClient

from user_service.main import create_app
from user_service.models.user import User

ALLOWED_ORIGIN = "http://localhost:3000"


def photo_form(image: bytes, filename: str = "ada.jpg"):
    return {
        "data": {"name": "Ada", "email": "ada@example.com"},
        "files": {"photo": (filename, image, "image/jpeg")},
    }


class TestCreateUser:

    @pytest.mark.asyncio
    async def test_create_user_success(self, test_client, fake_uploader, fake_publisher, sample_image_bytes):
        response = await test_client.post("/users", **photo_form(sample_image_bytes))

        assert response.status_code == 200
        assert response.json() == {
            "message": "User created successfully",
            "profile_pic_url": "profile-pictures/ada.jpg",
        }
        assert fake_uploader.objects["profile-pictures/ada.jpg"] == sample_image_bytes
        [published] = fake_publisher.messages
        assert (published.name, published.email, published.link) == (
            "Ada", "ada@example.com", "profile-pictures/ada.jpg",
        )

    @pytest.mark.asyncio
    async def test_non_image_upload_is_accepted(self, test_client, fake_uploader):
        """No content-type or extension checks are made."""
        response = await test_client.post(
            "/users",
            data={"name": "Ada", "email": "ada@example.com"},
            files={"photo": ("notes.txt", b"plain text", "text/plain")},
        )

        assert response.status_code == 200
        assert response.json()["profile_pic_url"] == "profile-pictures/notes.txt"

    @pytest.mark.asyncio
    async def test_missing_text_fields_become_empty(self, test_client, fake_publisher, sample_image_bytes):
        response = await test_client.post(
            "/users", files={"photo": ("ada.jpg", sample_image_bytes, "image/jpeg")}
        )

        assert response.status_code == 200
        [published] = fake_publisher.messages
        assert published.name == ""
        assert published.email == ""

    @pytest.mark.asyncio
    async def test_does_not_insert_row(self, test_client, user_store, sample_image_bytes):
        await test_client.post("/users", **photo_form(sample_image_bytes))

        assert await user_store.list_users() == []

    @pytest.mark.asyncio
    async def test_missing_photo_returns_400(self, test_client, fake_uploader, fake_publisher):
        response = await test_client.post(
            "/users", data={"name": "Ada", "email": "ada@example.com"}
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["message"] == "Invalid file upload"
        assert fake_uploader.calls == 0
        assert fake_publisher.calls == 0

    @pytest.mark.asyncio
    async def test_photo_sent_as_text_returns_400(self, test_client, fake_uploader, fake_publisher):
        response = await test_client.post(
            "/users",
            files={"photo": (None, "not-a-file"), "name": (None, "Ada")},
        )

        assert response.status_code == 400
        assert fake_uploader.calls == 0
        assert fake_publisher.calls == 0

    @pytest.mark.asyncio
    async def test_malformed_multipart_returns_400(self, test_client, fake_uploader, fake_publisher):
        response = await test_client.post(
            "/users",
            content=b"this is not multipart",
            headers={"Content-Type": "multipart/form-data"},
        )

        assert response.status_code == 400
        assert fake_uploader.calls == 0
        assert fake_publisher.calls == 0

    @pytest.mark.asyncio
    async def test_upload_failure_returns_500_without_publish(
        self, test_client, fake_uploader, fake_publisher, upload_failure, sample_image_bytes
    ):
        fake_uploader.error = upload_failure

        response = await test_client.post("/users", **photo_form(sample_image_bytes))

        assert response.status_code == 500
        body = response.json()
        assert body["message"] == "Error uploading file"
        # The cause stays in the server log
        assert "connection reset" not in response.text
        assert fake_publisher.calls == 0

    @pytest.mark.asyncio
    async def test_publish_failure_returns_500_and_keeps_blob(
        self, test_client, fake_uploader, fake_publisher, publish_failure, sample_image_bytes
    ):
        fake_publisher.error = publish_failure

        response = await test_client.post("/users", **photo_form(sample_image_bytes))

        assert response.status_code == 500
        assert response.json()["message"] == "Error sending user data"
        assert "queue not found" not in response.text
        # Specified behaviour: the upload is not rolled back
        assert "profile-pictures/ada.jpg" in fake_uploader.objects
        assert fake_publisher.calls == 1


class TestListUsers:

    @pytest.mark.asyncio
    async def test_empty_table_returns_empty_array(self, test_client):
        response = await test_client.get("/users")

        assert response.status_code == 200
        assert response.json() == []

    @pytest.mark.asyncio
    async def test_returns_every_stored_row(self, test_client, user_store):
        rows = [
            {"name": "Ada", "email": "ada@example.com", "link": "profile-pictures/ada.jpg",
             "created_at": datetime(2024, 1, 15, 12, 0, 0)},
            {"name": "Grace", "email": "grace@example.com", "link": "profile-pictures/grace.png",
             "created_at": datetime(2024, 2, 1, 8, 30, 0)},
        ]
        async with user_store._session_factory() as session:
            session.add_all([User(**row) for row in rows])
            await session.commit()

        response = await test_client.get("/users")

        assert response.status_code == 200
        items = response.json()
        assert len(items) == 2
        for item in items:
            assert set(item) == {"id", "name", "email", "link", "createdAt"}
        got = {
            (item["name"], item["email"], item["link"], datetime.fromisoformat(item["createdAt"]))
            for item in items
        }
        expected = {(r["name"], r["email"], r["link"], r["created_at"]) for r in rows}
        assert got == expected

    @pytest.mark.asyncio
    async def test_store_failure_returns_500(self, settings, empty_store, fake_uploader, fake_publisher):
        app = create_app(settings, store=empty_store, uploader=fake_uploader, publisher=fake_publisher)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/users")

        assert response.status_code == 500
        body = response.json()
        assert body == {
            "error": "server_error",
            "message": "Error fetching users",
            "request_id": response.headers["X-Request-ID"],
        }


class TestCors:

    @pytest.mark.asyncio
    async def test_configured_origin_is_allowed(self, test_client):
        response = await test_client.get("/users", headers={"Origin": ALLOWED_ORIGIN})

        assert response.headers["access-control-allow-origin"] == ALLOWED_ORIGIN
        assert response.headers["access-control-allow-credentials"] == "true"

    @pytest.mark.asyncio
    async def test_other_origin_gets_no_allow_origin_header(self, test_client):
        response = await test_client.get("/users", headers={"Origin": "http://evil.example.com"})

        assert "access-control-allow-origin" not in response.headers

    @pytest.mark.asyncio
    async def test_preflight_from_other_origin_is_rejected(self, test_client):
        response = await test_client.options(
            "/users",
            headers={
                "Origin": "http://evil.example.com",
                "Access-Control-Request-Method": "POST",
            },
        )

        assert response.status_code == 400
        assert "access-control-allow-origin" not in response.headers

    @pytest.mark.asyncio
    async def test_preflight_from_configured_origin(self, test_client):
        response = await test_client.options(
            "/users",
            headers={
                "Origin": ALLOWED_ORIGIN,
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Content-Type",
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == ALLOWED_ORIGIN


class TestRequestId:

    @pytest.mark.asyncio
    async def test_generated_when_absent(self, test_client):
        response = await test_client.get("/users")

        assert len(response.headers["X-Request-ID"]) == 8

    @pytest.mark.asyncio
    async def test_client_value_is_echoed(self, test_client):
        response = await test_client.get("/users", headers={"X-Request-ID": "trace-123"})

        assert response.headers["X-Request-ID"] == "trace-123"

    @pytest.mark.asyncio
    async def test_error_body_carries_request_id(self, test_client):
        response = await test_client.post(
            "/users", data={"name": "Ada"}, headers={"X-Request-ID": "trace-400"}
        )

        assert response.status_code == 400
        assert response.json()["request_id"] == "trace-400"

    @pytest.mark.asyncio
    async def test_unexpected_error_keeps_header_and_access_line(
        self, test_client, fake_uploader, fake_publisher, sample_image_bytes, caplog
    ):
        """A non-domain exception still gets the envelope, the header and a log line."""
        fake_uploader.error = RuntimeError("boom")
        caplog.set_level(logging.INFO, logger="user_service.access")

        response = await test_client.post(
            "/users", **photo_form(sample_image_bytes), headers={"X-Request-ID": "trace-x"}
        )

        assert response.status_code == 500
        assert response.headers["X-Request-ID"] == "trace-x"
        assert response.json() == {
            "error": "internal_server_error",
            "message": "An unexpected error occurred.",
            "request_id": "trace-x",
        }
        assert "boom" not in response.text
        assert fake_publisher.calls == 0
        access = [r for r in caplog.records if r.name == "user_service.access"]
        assert [(r.status, r.request_id) for r in access] == [(500, "trace-x")]

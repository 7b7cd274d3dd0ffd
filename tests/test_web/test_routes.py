"""Tests for public listing routes and admin sign-in."""

from typing import Any

from fastapi.testclient import TestClient


class TestHealth:
    def test_health(self, client: TestClient) -> None:
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_security_headers(self, client: TestClient) -> None:
        resp = client.get("/health")
        assert resp.headers["X-Content-Type-Options"] == "nosniff"
        assert resp.headers["X-Frame-Options"] == "DENY"


class TestBrowse:
    def test_empty(self, client: TestClient) -> None:
        resp = client.get("/api/listings")
        assert resp.status_code == 200
        assert resp.json() == {
            "items": [],
            "total": 0,
            "page": 1,
            "per_page": 20,
            "total_pages": 1,
        }

    def test_filters_from_query(self, client: TestClient, create_listing: Any) -> None:
        create_listing(title="Big House", price=650000, property_type="house")
        create_listing(title="Small House", price=120000, property_type="house")
        create_listing(title="Flat", price=700000, property_type="apartment")

        resp = client.get("/api/listings", params={"propertyType": "house", "minPrice": "500000"})

        body = resp.json()
        assert body["total"] == 1
        assert body["items"][0]["title"] == "Big House"

    def test_garbage_filters_ignored(self, client: TestClient, create_listing: Any) -> None:
        create_listing()
        resp = client.get(
            "/api/listings",
            params={"minPrice": "lots", "bedrooms": "2.5", "propertyType": "castle"},
        )
        assert resp.status_code == 200
        assert resp.json()["total"] == 1

    def test_q_alias(self, client: TestClient, create_listing: Any) -> None:
        create_listing(title="Seaside Cottage")
        create_listing(title="Mountain Cabin")
        body = client.get("/api/listings", params={"q": "SEASIDE"}).json()
        assert [item["title"] for item in body["items"]] == ["Seaside Cottage"]

    def test_pagination(self, client: TestClient, create_listing: Any) -> None:
        for i in range(3):
            create_listing(title=f"Listing {i}")
        body = client.get("/api/listings", params={"page": 2, "per_page": 2}).json()
        assert body["total"] == 3
        assert body["total_pages"] == 2
        assert [item["title"] for item in body["items"]] == ["Listing 0"]

    def test_per_page_clamped(self, client: TestClient) -> None:
        body = client.get("/api/listings", params={"per_page": 10000, "page": -3}).json()
        assert body["per_page"] == 100
        assert body["page"] == 1


class TestDetail:
    def test_by_slug(self, client: TestClient, create_listing: Any) -> None:
        created = create_listing(
            images=[{"public_id": "p1", "url": "https://img/p1"}],
        )
        resp = client.get(f"/api/listings/{created['slug']}")
        assert resp.status_code == 200
        body = resp.json()
        assert body["id"] == created["id"]
        assert body["images"][0]["url"] == "https://img/p1"

    def test_missing(self, client: TestClient) -> None:
        resp = client.get("/api/listings/nope")
        assert resp.status_code == 404
        assert resp.json() == {"error": "Listing not found"}


class TestFeatured:
    def test_only_featured(self, admin_client: TestClient, create_listing: Any) -> None:
        created = create_listing(title="Star")
        create_listing(title="Plain")
        admin_client.patch(f"/api/admin/listings/{created['id']}/featured", json={"featured": True})

        body = admin_client.get("/api/listings/featured").json()
        assert [item["title"] for item in body] == ["Star"]


class TestSitemap:
    def test_lists_static_pages_and_listings(
        self, client: TestClient, create_listing: Any
    ) -> None:
        created = create_listing(title="Villa & Garden")

        resp = client.get("/sitemap.xml")

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("application/xml")
        assert "<loc>https://homes.example.com</loc>" in resp.text
        assert "<loc>https://homes.example.com/about</loc>" in resp.text
        assert f"<loc>https://homes.example.com/listings/{created['slug']}</loc>" in resp.text


class TestAuth:
    def test_login_and_session(self, client: TestClient) -> None:
        resp = client.post(
            "/api/auth/login",
            json={"email": "ADMIN@example.com", "password": "correct horse"},
        )
        assert resp.status_code == 200
        assert resp.json()["user"]["role"] == "admin"

        session = client.get("/api/auth/session").json()
        assert session["user"]["email"] == "admin@example.com"

    def test_bad_password(self, client: TestClient) -> None:
        resp = client.post(
            "/api/auth/login", json={"email": "admin@example.com", "password": "wrong"}
        )
        assert resp.status_code == 401
        assert resp.json() == {"error": "Invalid email or password"}

    def test_missing_fields(self, client: TestClient) -> None:
        resp = client.post("/api/auth/login", json={"email": ""})
        assert resp.status_code == 400
        fields = {issue["field"] for issue in resp.json()["issues"]}
        assert fields == {"email", "password"}

    def test_malformed_json(self, client: TestClient) -> None:
        resp = client.post(
            "/api/auth/login",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
        assert resp.status_code == 400
        assert resp.json()["issues"][0]["field"] == "body"

    def test_logout(self, admin_client: TestClient) -> None:
        assert admin_client.post("/api/auth/logout").json() == {"success": True}
        assert admin_client.get("/api/auth/session").json() == {"user": None}
        assert admin_client.get("/api/admin/listings").status_code == 401

    def test_anonymous_session(self, client: TestClient) -> None:
        assert client.get("/api/auth/session").json() == {"user": None}

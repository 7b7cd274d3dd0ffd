"""Tests for admin listing management routes."""

import json
from typing import Any

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from estate_listings.errors import FieldIssue, ValidationError
from estate_listings.web.app import _validation_error_handler
from fakes import FakeAssetGateway


def _images(*public_ids: str) -> list[dict[str, str]]:
    return [{"public_id": pid, "url": f"https://img/{pid}"} for pid in public_ids]


class TestAccessControl:
    @pytest.mark.parametrize(
        ("method", "path"),
        [
            ("get", "/api/admin/listings"),
            ("post", "/api/admin/listings"),
            ("get", "/api/admin/listings/x"),
            ("put", "/api/admin/listings/x"),
            ("delete", "/api/admin/listings/x"),
            ("patch", "/api/admin/listings/x/featured"),
            ("get", "/api/cloudinary/sign"),
        ],
    )
    def test_anonymous_rejected(self, client: TestClient, method: str, path: str) -> None:
        resp = client.request(method, path)
        assert resp.status_code == 401
        assert resp.json() == {"error": "Unauthorized"}

    def test_viewer_rejected(self, viewer_client: TestClient, listing_payload: Any) -> None:
        resp = viewer_client.post("/api/admin/listings", json=listing_payload)
        assert resp.status_code == 401
        assert viewer_client.get("/api/listings").json()["total"] == 0


class TestCreate:
    def test_created(self, admin_client: TestClient, listing_payload: Any) -> None:
        resp = admin_client.post("/api/admin/listings", json=listing_payload)
        assert resp.status_code == 201
        body = resp.json()
        assert body["slug"] == "ocean-view-villa"
        assert body["id"]

    def test_duplicate_titles(self, create_listing: Any) -> None:
        slugs = [create_listing(title="Villa")["slug"] for _ in range(3)]
        assert slugs == ["villa", "villa-1", "villa-2"]

    def test_validation_lists_every_field(
        self, admin_client: TestClient, make_payload: Any
    ) -> None:
        resp = admin_client.post(
            "/api/admin/listings", json=make_payload(title="", bedrooms="three")
        )
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"] == "Validation failed"
        assert {"title", "bedrooms"} <= {issue["field"] for issue in body["issues"]}
        assert admin_client.get("/api/admin/listings").json() == []


class TestReadAndUpdate:
    def test_get_and_list(self, admin_client: TestClient, create_listing: Any) -> None:
        created = create_listing(images=_images("a"))

        listing = admin_client.get(f"/api/admin/listings/{created['id']}").json()
        assert listing["slug"] == created["slug"]
        assert [img["public_id"] for img in listing["images"]] == ["a"]

        table = admin_client.get("/api/admin/listings").json()
        assert [row["id"] for row in table] == [created["id"]]

    def test_get_missing(self, admin_client: TestClient) -> None:
        assert admin_client.get("/api/admin/listings/missing").status_code == 404

    def test_update_reconciles_images(
        self, admin_client: TestClient, create_listing: Any, assets: FakeAssetGateway
    ) -> None:
        created = create_listing(images=_images("a", "b"))

        resp = admin_client.put(
            f"/api/admin/listings/{created['id']}",
            json={"title": "Renamed Villa", "images": _images("b", "c")},
        )

        assert resp.status_code == 200
        assert resp.json() == {"success": True, "slug": "renamed-villa"}
        assert assets.deleted == ["a"]
        listing = admin_client.get(f"/api/admin/listings/{created['id']}").json()
        assert [img["public_id"] for img in listing["images"]] == ["b", "c"]

    def test_update_missing(self, admin_client: TestClient) -> None:
        resp = admin_client.put("/api/admin/listings/missing", json={"price": 1})
        assert resp.status_code == 404

    def test_update_invalid(self, admin_client: TestClient, create_listing: Any) -> None:
        created = create_listing()
        resp = admin_client.put(f"/api/admin/listings/{created['id']}", json={"price": -1})
        assert resp.status_code == 400
        assert resp.json()["issues"][0]["field"] == "price"

    def test_update_remote_failure(
        self, admin_client: TestClient, create_listing: Any, assets: FakeAssetGateway
    ) -> None:
        created = create_listing(images=_images("a"))
        assets.fail_on.add("a")

        resp = admin_client.put(f"/api/admin/listings/{created['id']}", json={"images": []})

        assert resp.status_code == 500
        assert resp.json() == {"error": "Internal Server Error"}
        listing = admin_client.get(f"/api/admin/listings/{created['id']}").json()
        assert [img["public_id"] for img in listing["images"]] == ["a"]


class TestDeleteAndFeatured:
    def test_delete(
        self, admin_client: TestClient, create_listing: Any, assets: FakeAssetGateway
    ) -> None:
        created = create_listing(images=_images("a", "b"))

        resp = admin_client.delete(f"/api/admin/listings/{created['id']}")

        assert resp.status_code == 204
        assert assets.deleted == ["a", "b"]
        assert admin_client.get(f"/api/listings/{created['slug']}").status_code == 404

    def test_delete_missing(self, admin_client: TestClient) -> None:
        assert admin_client.delete("/api/admin/listings/missing").status_code == 404

    def test_set_featured(self, admin_client: TestClient, create_listing: Any) -> None:
        created = create_listing()
        resp = admin_client.patch(
            f"/api/admin/listings/{created['id']}/featured", json={"featured": True}
        )
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "featured": True}

    def test_set_featured_invalid(self, admin_client: TestClient, create_listing: Any) -> None:
        created = create_listing()
        resp = admin_client.patch(
            f"/api/admin/listings/{created['id']}/featured", json={"featured": "yes"}
        )
        assert resp.status_code == 400


class TestSign:
    def test_sign(self, admin_client: TestClient) -> None:
        resp = admin_client.get("/api/cloudinary/sign")
        assert resp.status_code == 200
        assert resp.json() == {
            "timestamp": 1700000000,
            "signature": "fake-signature",
            "folder": "listings",
            "apiKey": "fake-key",
            "cloudName": "fake-cloud",
        }


class TestValidationHandler:
    async def test_renders_every_issue(self) -> None:
        error = ValidationError(
            [FieldIssue("price", "must be a number"), FieldIssue("title", "is required")]
        )
        resp = await _validation_error_handler(Request({"type": "http"}), error)
        assert resp.status_code == 400
        assert json.loads(resp.body) == {
            "error": "Validation failed",
            "issues": [
                {"field": "price", "message": "must be a number"},
                {"field": "title", "message": "is required"},
            ],
        }

"""
test_api_routes.py — HTTP tests through FastAPI's TestClient.

No database: routes that only validate or compute run with ``get_db``
overridden; storage and preview services are swapped via
``app.dependency_overrides``.
"""

import pytest
from fastapi.testclient import TestClient

from nammos.api.deps import get_image_storage, get_preview_service
from nammos.db import get_db
from nammos.main import app
from nammos.services.image_storage import ImageStorage
from nammos.services.preview_client import PreviewService

VIEWPORT = {"left": 0, "top": 0, "width": 200, "height": 100}


async def _no_db():
    yield None


@pytest.fixture
def client():
    app.dependency_overrides[get_db] = _no_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def velvet_json(velvet):
    return velvet.model_dump(mode="json")


@pytest.fixture
def item_json(velvet, make_annotation, make_item):
    return make_item([make_annotation(velvet)], quantity=2).model_dump(mode="json")


class TestHealth:

    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "active"
        assert "ai_preview_enabled" in r.json()

    def test_request_id_header(self, client):
        r = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert r.headers["X-Request-ID"] == "req-123"
        assert r.headers["X-Content-Type-Options"] == "nosniff"


class TestWorkbench:

    def test_config(self, client):
        body = client.get("/api/workbench/config").json()
        assert body["quick_labels"][0] == "Seat"
        assert body["material_type_colors"]["wood"] == "#DEB887"

    def test_place_and_commit_point(self, client, velvet_json):
        r = client.post("/api/workbench/canvas/begin_placement", json={})
        state = r.json()["state"]
        assert state["adding_point"] is True

        r = client.post("/api/workbench/canvas/click",
                        json={"state": state, "viewport": VIEWPORT, "client_x": 50, "client_y": 150})
        state = r.json()["state"]
        assert state["pending_point"] == {"x": 25.0, "y": 100.0}

        r = client.post("/api/workbench/canvas/commit_pending_point",
                        json={"state": state, "label": "Seat", "material": velvet_json})
        body = r.json()
        assert len(body["state"]["annotations"]) == 1
        assert body["markers"][0]["number"] == 1
        assert body["markers"][0]["swatch_image_url"] == "https://cdn.example.com/velvet.png"

    def test_click_requires_viewport(self, client):
        r = client.post("/api/workbench/canvas/click", json={})
        assert r.status_code == 400

    def test_unknown_action(self, client):
        assert client.post("/api/workbench/canvas/explode", json={}).status_code == 422

    def test_builder_select_and_add(self, client, sofa):
        r = client.post("/api/workbench/builder/select_product",
                        json={"product": sofa.model_dump(mode="json")})
        body = r.json()
        assert body["phase"] == "configuring"

        r = client.post("/api/workbench/builder/add_or_update_item", json={"state": body["state"]})
        body = r.json()
        assert body["phase"] == "idle"
        assert body["state"]["items"][0]["unit_price"] == 1000.0

    def test_builder_select_requires_product(self, client):
        assert client.post("/api/workbench/builder/select_product", json={}).status_code == 400

    def test_builder_quantity_filter(self, client):
        r = client.post("/api/workbench/builder/set_quantity", json={"quantity_input": "abc"})
        assert r.json()["state"]["quantity"] == 1

    def test_builder_quantity_rejects_superscript(self, client):
        r = client.post("/api/workbench/builder/set_quantity", json={"quantity_input": "\u00b2"})
        assert r.status_code == 200
        assert r.json()["state"]["quantity"] == 1


class TestQuotations:

    def test_totals_preview(self, client, item_json):
        """unit 1050 x 2 = 2100 -> vat 105 -> total 2205"""
        r = client.post("/api/quotations/totals", json={"customer_name": "Acme", "items": [item_json]})
        body = r.json()
        assert r.status_code == 200
        assert body["subtotal"] == 2100.0
        assert abs(body["vat_amount"] - 105.0) < 1e-9
        assert abs(body["total_amount"] - 2205.0) < 1e-9

    def test_create_requires_customer(self, client, item_json):
        r = client.post("/api/quotations", json={"customer_name": " ", "items": [item_json]})
        assert r.status_code == 400
        assert r.json()["detail"] == "Customer name is required"

    def test_create_requires_items(self, client):
        r = client.post("/api/quotations", json={"customer_name": "Acme", "items": []})
        assert r.status_code == 400

    def test_invalid_quantity_rejected(self, client, item_json):
        item_json["quantity"] = 0
        r = client.post("/api/quotations/totals", json={"customer_name": "Acme", "items": [item_json]})
        assert r.status_code == 422


class TestPreviewRoute:

    def _override(self, service):
        app.dependency_overrides[get_preview_service] = lambda: service

    def test_disabled_is_503(self, client, fake_fetcher):
        self._override(PreviewService(fake_fetcher(), api_key=""))
        r = client.post("/api/generate-preview", json={})
        assert r.status_code == 503
        assert r.json()["success"] is False

    def test_missing_fields_is_400(self, client, fake_fetcher):
        self._override(PreviewService(fake_fetcher(), api_key="k"))
        r = client.post("/api/generate-preview", json={"productName": "Riva Sofa"})
        assert r.status_code == 400

    def test_generation_failure_is_500(self, client, fake_fetcher):
        self._override(PreviewService(fake_fetcher(), api_key="k"))
        r = client.post("/api/generate-preview", json={
            "productImageUrl": "https://cdn.example.com/gone.png",
            "productName": "Riva Sofa",
            "annotations": [{"partName": "Seat", "materialName": "Royal Velvet", "materialType": "fabric"}],
        })
        assert r.status_code == 500
        assert r.json()["error"] == "Failed to fetch product image"


class TestMedia:

    @pytest.fixture
    def storage(self, tmp_path):
        storage = ImageStorage(root=str(tmp_path), base_url="http://testserver/media")
        app.dependency_overrides[get_image_storage] = lambda: storage
        return storage

    def test_upload_and_delete(self, client, storage, png):
        r = client.post("/api/media/products", files={"file": ("front.png", png(), "image/png")})
        assert r.status_code == 201
        url = r.json()["url"]
        assert storage.local_path(url).is_file()

        r = client.delete("/api/media", params={"url": url})
        assert r.json() == {"deleted": True}

    def test_empty_upload(self, client, storage):
        r = client.post("/api/media/materials", files={"file": ("swatch.png", b"", "image/png")})
        assert r.status_code == 400

    def test_bad_extension(self, client, storage):
        r = client.post("/api/media/materials", files={"file": ("swatch.bmp", b"BM", "image/bmp")})
        assert r.status_code == 400

"""
conftest.py — Shared pytest fixtures for the Nammos quotation backend test suite.

No database fixtures are defined here. Engines are exercised as pure
functions; HTTP routes run through FastAPI's TestClient with dependency
overrides; images are generated in memory with Pillow.

Import-path bootstrapping:
    The ``backend/`` directory is inserted into sys.path so that all
    ``nammos.*`` imports resolve correctly regardless of where pytest is invoked.
"""

import io
import sys
import os
import pytest

# ---------------------------------------------------------------------------
# Ensure ``backend/`` is on the import path before any nammos imports occur.
# ---------------------------------------------------------------------------
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)


def make_png(width: int = 200, height: int = 150, color=(180, 40, 40)) -> bytes:
    from PIL import Image
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


class FakeFetcher:
    """Serves canned bytes by URL; unknown URLs fail like a dead link."""

    def __init__(self, images=None):
        self.images = dict(images or {})
        self.requested = []

    async def fetch(self, url):
        self.requested.append(url)
        if not url:
            return None
        return self.images.get(url)


# ---------------------------------------------------------------------------
# Catalog fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def sofa():
    """
    Product with base_price 1000 and cbm 2.5.
    Dimensions use the '×' separator: W 220 x D 95 x H 80 cm.
    """
    from nammos.models.quotation_schema import Product
    return Product(
        id="prod-sofa",
        name="Riva Sofa",
        category="Sofas",
        base_price=1000.0,
        dimensions="220×95×80",
        cbm=2.5,
        image_url="https://cdn.example.com/sofa.png",
    )


@pytest.fixture
def velvet():
    """Fabric with uplift 50."""
    from nammos.models.quotation_schema import Material
    return Material(
        id="mat-velvet",
        name="Royal Velvet",
        code="FAB-101",
        type="fabric",
        swatch_image_url="https://cdn.example.com/velvet.png",
        price_uplift=50.0,
        supplier="Kvadrat",
        tags=["soft", "premium"],
    )


@pytest.fixture
def oak():
    """Wood with uplift 75 and no swatch image."""
    from nammos.models.quotation_schema import Material
    return Material(
        id="mat-oak",
        name="Natural Oak",
        code="WD-7",
        type="wood",
        price_uplift=75.0,
        supplier="Nordic Timber",
        tags=["natural"],
    )


@pytest.fixture
def brass():
    from nammos.models.quotation_schema import Material
    return Material(
        id="mat-brass",
        name="Brushed Brass",
        code="MT-3",
        type="metal",
        price_uplift=0.0,
        availability="limited",
        tags=["premium", "metallic"],
    )


@pytest.fixture
def make_annotation():
    """Factory: annotation for a material at (x, y)."""
    from nammos.models.quotation_schema import Annotation, MaterialSnapshot

    def _make(material, x=50.0, y=50.0, part_name="Seat", ann_id=None):
        snap = MaterialSnapshot.freeze(material)
        return Annotation(
            id=ann_id or f"ann-{part_name.lower()}-{x}-{y}",
            part_id=f"point-{part_name.lower()}",
            part_name=part_name,
            material_id=snap.id,
            material=snap,
            x=x,
            y=y,
        )
    return _make


@pytest.fixture
def make_item(sofa):
    """Factory: priced QuotationItem for the sofa (or a given product)."""
    from nammos.models.quotation_schema import ProductSnapshot, QuotationItem
    from nammos.services.pricing_engine import price_item

    def _make(annotations=(), quantity=1, product=None, item_id="item-1"):
        snap = ProductSnapshot.freeze(product or sofa)
        return price_item(QuotationItem(
            id=item_id,
            product_id=snap.id,
            product=snap,
            quantity=quantity,
            annotations=list(annotations),
        ))
    return _make


# ---------------------------------------------------------------------------
# Image fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def png():
    """Factory: solid-colour PNG bytes of the given size."""
    return make_png


@pytest.fixture
def fake_fetcher():
    """Factory: FakeFetcher preloaded with {url: bytes}."""
    return FakeFetcher

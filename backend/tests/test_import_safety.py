"""
test_import_safety.py — Module import and layering checks.

Verifies that:
  1. Every nammos module imports without a database connection or API key.
  2. The pure engines (pricing, annotation canvas, item builder) stay free of
     persistence and drawing imports, so they run anywhere.
  3. The interactive canvas and the static renderer share one material-type
     colour lookup.

No database, network, or external services are required.
"""

import importlib

import pytest

# Modules that talk to nothing at import time
_MODULES = [
    "nammos.db",
    "nammos.models.orm_models",
    "nammos.models.quotation_schema",
    "nammos.services.material_palette",
    "nammos.services.pricing_engine",
    "nammos.services.annotation_engine",
    "nammos.services.item_builder",
    "nammos.services.composite_renderer",
    "nammos.services.image_fetcher",
    "nammos.services.image_storage",
    "nammos.services.excel_export",
    "nammos.services.quotation_service",
    "nammos.services.catalog_service",
    "nammos.services.preview_client",
    "nammos.services.analytics_engine",
    "nammos.services.logging_config",
    "nammos.services.middleware",
    "nammos.api.deps",
    "nammos.api.catalog_routes",
    "nammos.api.client_routes",
    "nammos.api.quotation_routes",
    "nammos.api.workbench_routes",
    "nammos.api.media_routes",
    "nammos.api.preview_routes",
    "nammos.api.analytics_routes",
]

_PURE_ENGINES = [
    "nammos.services.pricing_engine",
    "nammos.services.annotation_engine",
    "nammos.services.item_builder",
]


class TestModuleImports:

    @pytest.mark.parametrize("module_path", _MODULES)
    def test_module_imports(self, module_path):
        try:
            mod = importlib.import_module(module_path)
        except Exception as e:
            pytest.fail(f"{module_path} raised on import: {type(e).__name__}: {e}")
        assert mod is not None


class TestLayering:

    @pytest.mark.parametrize("module_path", _PURE_ENGINES)
    def test_pure_engine_has_no_io_imports(self, module_path):
        mod = importlib.import_module(module_path)
        for name in ("sqlalchemy", "AsyncSession", "Image", "ImageDraw", "httpx", "litellm"):
            assert name not in vars(mod), f"{module_path} imports {name}"

    def test_canvas_and_renderer_share_colour_lookup(self):
        from nammos.services import annotation_engine, composite_renderer, material_palette
        assert annotation_engine.material_type_color is material_palette.material_type_color
        assert composite_renderer.material_type_color is material_palette.material_type_color

    def test_every_material_type_has_a_colour(self):
        from nammos.models.quotation_schema import MaterialType
        from nammos.services.material_palette import DEFAULT_MATERIAL_COLOR, material_type_color
        for t in MaterialType:
            assert material_type_color(t) != DEFAULT_MATERIAL_COLOR

    def test_unknown_type_uses_default(self):
        from nammos.services.material_palette import DEFAULT_MATERIAL_COLOR, material_type_color
        assert material_type_color("bamboo") == DEFAULT_MATERIAL_COLOR
        assert material_type_color("WOOD") == "#DEB887"

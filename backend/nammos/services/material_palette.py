"""Fallback colours keyed by material type.

Shared by the static renderer and the marker payloads returned to the
workbench so both views colour a swatch-less material the same way.
"""
from typing import Tuple

MATERIAL_TYPE_COLORS = {
    "fabric": "#8B7355",
    "leather": "#654321",
    "wood": "#DEB887",
    "metal": "#C0C0C0",
    "glass": "#E8E8E8",
    "stone": "#808080",
}
DEFAULT_MATERIAL_COLOR = "#D3D3D3"


def material_type_color(material_type) -> str:
    """Hex colour for a material type; unknown types get the neutral grey."""
    key = getattr(material_type, "value", material_type)
    return MATERIAL_TYPE_COLORS.get(str(key or "").lower(), DEFAULT_MATERIAL_COLOR)


def hex_to_rgb(color: str) -> Tuple[int, int, int]:
    color = color.lstrip("#")
    return int(color[0:2], 16), int(color[2:4], 16), int(color[4:6], 16)

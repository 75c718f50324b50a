"""
Static Renderer — one annotated composite image per quotation item.

Canvas layout (px):

    ┌──────────── 300 ────────────┬─20─┬── 70 ──┬─8─┬──── 130 ────┐
    │   product photo, fit x 0.9  │    │ swatch │   │ NAME / code │
    └─────────────────────────────┴────┴────────┴───┴─────────────┘
    height = max(350, n * 85 + 40)

Leader lines run from each annotated point to its legend row; rows follow
the annotations sorted by y so lines read top to bottom. Layout is computed
by ``compute_layout`` without touching any drawing surface; Pillow only
comes in at ``compose_annotated_image``.
"""
import asyncio
import io
import logging
import math
import os
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

from nammos.models.quotation_schema import Annotation
from nammos.services.material_palette import hex_to_rgb, material_type_color

logger = logging.getLogger("nammos-render")

SWATCH_SIZE = 70
LABEL_WIDTH = 130
RIGHT_PANEL_WIDTH = LABEL_WIDTH + SWATCH_SIZE + 40
PRODUCT_AREA_WIDTH = 300
CANVAS_WIDTH = PRODUCT_AREA_WIDTH + RIGHT_PANEL_WIDTH
MIN_CANVAS_HEIGHT = 350
ROW_HEIGHT = SWATCH_SIZE + 15
CANVAS_MARGIN = 40
IMAGE_FIT_FACTOR = 0.9

LEADER_COLOR = "#333333"
LEADER_WIDTH = 2            # 1.5 px stroke, rounded up for Pillow
DOT_RADIUS = 4
SWATCH_BORDER_COLOR = "#CCCCCC"
NAME_COLOR = "#333333"
CODE_COLOR = "#666666"
NAME_FONT_SIZE = 11
CODE_FONT_SIZE = 9
NAME_LINE_HEIGHT = 13
CODE_OFFSET = 16
CURVE_SEGMENTS = 24

FONT_REGULAR = os.getenv("RENDER_FONT", "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf")
FONT_BOLD = os.getenv("RENDER_FONT_BOLD", "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf")


@dataclass
class LegendRow:
    annotation_id: str
    point: Tuple[float, float]          # source dot on the product image
    anchor: Tuple[float, float]         # where the leader meets the swatch
    control_x: float
    swatch_box: Tuple[float, float, float, float]
    text_origin: Tuple[float, float]
    name: str
    code: str
    fallback_color: str


@dataclass
class CompositeLayout:
    width: int
    height: int
    image_box: Tuple[float, float, float, float]    # x, y, w, h
    spacing: float
    rows: List[LegendRow] = field(default_factory=list)


def canvas_height(annotation_count: int) -> int:
    return max(MIN_CANVAS_HEIGHT, annotation_count * ROW_HEIGHT + CANVAS_MARGIN)


def sort_annotations(annotations: Sequence[Annotation]) -> List[Annotation]:
    """Top-to-bottom order; ties keep their original order."""
    return sorted(annotations, key=lambda a: a.y)


def compute_layout(image_width: int, image_height: int,
                   annotations: Sequence[Annotation]) -> CompositeLayout:
    n = len(annotations)
    height = canvas_height(n)

    scale = min(PRODUCT_AREA_WIDTH / image_width, height / image_height) * IMAGE_FIT_FACTOR
    img_w, img_h = image_width * scale, image_height * scale
    image_box = ((PRODUCT_AREA_WIDTH - img_w) / 2, (height - img_h) / 2, img_w, img_h)

    spacing = max(SWATCH_SIZE + 10, (height - CANVAS_MARGIN) / max(1, n))
    start_y = (height - (n - 1) * spacing) / 2

    rows = []
    for i, a in enumerate(sort_annotations(annotations)):
        point = (a.x / 100 * PRODUCT_AREA_WIDTH, a.y / 100 * height)
        right_x = PRODUCT_AREA_WIDTH + 20
        right_y = start_y + i * spacing
        swatch_y = right_y - SWATCH_SIZE / 2
        rows.append(LegendRow(
            annotation_id=a.id,
            point=point,
            anchor=(right_x, right_y),
            control_x=PRODUCT_AREA_WIDTH - 20,
            swatch_box=(right_x, swatch_y, SWATCH_SIZE, SWATCH_SIZE),
            text_origin=(right_x + SWATCH_SIZE + 8, right_y),
            name=a.material.name.upper(),
            code=a.material.code,
            fallback_color=material_type_color(a.material.type),
        ))
    return CompositeLayout(width=CANVAS_WIDTH, height=height, image_box=image_box,
                           spacing=spacing, rows=rows)


def leader_path(row: LegendRow, segments: int = CURVE_SEGMENTS) -> List[Tuple[float, float]]:
    """Quadratic curve from the point to the image edge, then straight to the swatch."""
    (x0, y0), (x2, y2) = row.point, (row.control_x, row.anchor[1])
    cx, cy = row.control_x, y0
    path = []
    for step in range(segments + 1):
        t = step / segments
        u = 1 - t
        path.append((
            u * u * x0 + 2 * u * t * cx + t * t * x2,
            u * u * y0 + 2 * u * t * cy + t * t * y2,
        ))
    path.append(row.anchor)
    return path


def wrap_label(name: str, measure: Callable[[str], float],
               max_width: float = LABEL_WIDTH - 10) -> List[str]:
    """Split a multi-word name onto two lines when it overflows the column."""
    words = name.split(" ")
    if len(words) > 1 and measure(name) > max_width:
        mid = math.ceil(len(words) / 2)
        return [" ".join(words[:mid]), " ".join(words[mid:])]
    return [name]


# ── Drawing ──────────────────────────────────────────────────────────────────

def _load_font(path: str, size: int):
    try:
        return ImageFont.truetype(path, size)
    except OSError:
        return ImageFont.load_default(size=size)


def _open_image(data: Optional[bytes]) -> Optional[Image.Image]:
    if not data:
        return None
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
        return img.convert("RGBA")
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.warning(f"Could not decode image: {e}")
        return None


def _to_png(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG", optimize=True)
    return buf.getvalue()


def _draw_text_middle(canvas: Image.Image, draw: ImageDraw.ImageDraw, x: float, y: float, text: str,
                      font, fill: str, max_width: float = LABEL_WIDTH - 10):
    """Left-aligned text vertically centred on ``y``.

    A line wider than ``max_width`` is rendered whole and squeezed
    horizontally to fit; no characters are dropped.
    """
    if not text:
        return
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    origin_y = y - (top + bottom) / 2
    width = draw.textlength(text, font=font)
    if width <= max_width:
        draw.text((x, origin_y), text, font=font, fill=fill)
        return

    tile = Image.new("RGBA", (max(1, math.ceil(max(right, width))), max(1, math.ceil(bottom))), (0, 0, 0, 0))
    ImageDraw.Draw(tile).text((0, 0), text, font=font, fill=fill)
    squeezed = tile.resize((max(1, int(max_width)), tile.height), Image.Resampling.LANCZOS)
    canvas.paste(squeezed, (int(round(x)), int(round(origin_y))), squeezed)


def _paste_swatch(canvas: Image.Image, swatch: Image.Image, box: Tuple[float, float, float, float]):
    x, y, w, h = (int(round(v)) for v in box)
    tile = swatch.resize((w, h), Image.Resampling.LANCZOS)
    mask = Image.new("L", (w, h), 0)
    r = w / 2 - 2
    ImageDraw.Draw(mask).ellipse((w / 2 - r, h / 2 - r, w / 2 + r, h / 2 + r), fill=255)
    canvas.paste(tile, (x, y), mask)


def compose_annotated_image(product_image: bytes, annotations: Sequence[Annotation],
                            swatches: Optional[Mapping[str, Optional[bytes]]] = None) -> Optional[bytes]:
    """Render the composite as PNG bytes.

    ``swatches`` maps annotation id to swatch bytes; a missing or undecodable
    swatch is drawn as its material-type colour. Returns None when the
    product image itself cannot be decoded.
    """
    product = _open_image(product_image)
    if product is None:
        return None
    if not annotations:
        return _to_png(product)

    swatches = swatches or {}
    layout = compute_layout(product.width, product.height, annotations)

    canvas = Image.new("RGB", (layout.width, layout.height), "#FFFFFF")
    x, y, w, h = layout.image_box
    scaled = product.resize((max(1, int(round(w))), max(1, int(round(h)))), Image.Resampling.LANCZOS)
    canvas.paste(scaled, (int(round(x)), int(round(y))), scaled)

    draw = ImageDraw.Draw(canvas)
    name_font = _load_font(FONT_BOLD, NAME_FONT_SIZE)
    code_font = _load_font(FONT_REGULAR, CODE_FONT_SIZE)

    for row in layout.rows:
        draw.line(leader_path(row), fill=LEADER_COLOR, width=LEADER_WIDTH, joint="curve")
        px, py = row.point
        draw.ellipse((px - DOT_RADIUS, py - DOT_RADIUS, px + DOT_RADIUS, py + DOT_RADIUS), fill=LEADER_COLOR)

        sx, sy, sw, sh = row.swatch_box
        draw.rectangle((sx, sy, sx + sw, sy + sh), outline=SWATCH_BORDER_COLOR, width=1)
        cx, cy = sx + sw / 2, sy + sh / 2
        swatch = _open_image(swatches.get(row.annotation_id))
        if swatch is not None:
            _paste_swatch(canvas, swatch, row.swatch_box)
        else:
            r = sw / 2 - 2
            draw.ellipse((cx - r, cy - r, cx + r, cy + r), fill=hex_to_rgb(row.fallback_color))
        r = sw / 2 - 1
        draw.ellipse((cx - r, cy - r, cx + r, cy + r), outline=LEADER_COLOR, width=1)

        tx, ty = row.text_origin
        lines = wrap_label(row.name, lambda s: draw.textlength(s, font=name_font))
        if len(lines) == 2:
            _draw_text_middle(canvas, draw, tx, ty - NAME_LINE_HEIGHT / 2, lines[0], name_font, NAME_COLOR)
            _draw_text_middle(canvas, draw, tx, ty + NAME_LINE_HEIGHT / 2, lines[1], name_font, NAME_COLOR)
            code_y = ty + CODE_OFFSET + NAME_LINE_HEIGHT / 2
        else:
            _draw_text_middle(canvas, draw, tx, ty, lines[0], name_font, NAME_COLOR)
            code_y = ty + CODE_OFFSET
        if row.code:
            _draw_text_middle(canvas, draw, tx, code_y, row.code, code_font, CODE_COLOR)

    return _to_png(canvas)


async def render_item_image(product_image_url: str, annotations: Sequence[Annotation],
                            fetcher) -> Optional[bytes]:
    """Fetch the photo and swatches for one item, then composite them.

    None means "no image available"; the caller keeps exporting.
    """
    product_bytes = await fetcher.fetch(product_image_url)
    if product_bytes is None:
        logger.warning(f"Product image unavailable: {product_image_url[:120]}")
        return None

    swatches: Dict[str, Optional[bytes]] = {}
    if annotations:
        fetched = await asyncio.gather(
            *(fetcher.fetch(a.material.swatch_image_url) for a in annotations)
        )
        swatches = {a.id: data for a, data in zip(annotations, fetched)}
    return compose_annotated_image(product_bytes, annotations, swatches)

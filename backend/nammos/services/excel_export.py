"""
Quotation spreadsheet export (xlsxwriter).

Sheet layout (0-based rows):
  0  brand title
  1  "<reference> - <customer>"
  2  column headers
  3… one row per item, composite image anchored in column B
  then Subtotal / VAT 5% / TOTAL

Item images are rendered one at a time, each awaited before its row is
written. An item whose image cannot be produced still gets its row.
"""
import io
import logging
import os
from typing import List, Optional

import xlsxwriter
from PIL import Image

from nammos.models.quotation_schema import Quotation, QuotationItem
from nammos.services.composite_renderer import render_item_image
from nammos.services.pricing_engine import VAT_RATE, apply_totals, material_specification

logger = logging.getLogger("nammos-export")

DOWNLOAD_DIR = os.getenv("DOWNLOAD_DIR", "/tmp/downloads")
BRAND_NAME = os.getenv("BRAND_NAME", "Nammos")
XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

TITLE_ROW = 0
REFERENCE_ROW = 1
HEADER_ROW = 2
DATA_START_ROW = 3
LAST_COLUMN = "K"

HEADERS = ["#", "Image", "Item", "Description", "Qty", "Material Specification",
           "CBM", "Total CBM", "Unit Price", "Total Price", ""]
COLUMN_WIDTHS = {
    "A:A": 5, "B:B": 58, "C:C": 24, "D:D": 24, "E:E": 7, "F:F": 38,
    "G:G": 9, "H:H": 10, "I:I": 14, "J:J": 15, "K:K": 3,
}

BASE_ROW_HEIGHT = 260
ROW_HEIGHT_PER_ANNOTATION = 60
EXCEL_MAX_ROW_HEIGHT = 409
IMAGE_WIDTH_PX = 400
BASE_IMAGE_HEIGHT_PX = 250
IMAGE_HEIGHT_PER_ANNOTATION = 55
IMAGE_X_OFFSET_PX = 20


def row_height(annotation_count: int) -> float:
    """Item row height in points, capped at Excel's limit."""
    height = max(BASE_ROW_HEIGHT, annotation_count * ROW_HEIGHT_PER_ANNOTATION + 80)
    return min(height, EXCEL_MAX_ROW_HEIGHT)


def image_box(annotation_count: int) -> tuple:
    """Display size (px) of an item's composite image."""
    return IMAGE_WIDTH_PX, max(BASE_IMAGE_HEIGHT_PX, annotation_count * IMAGE_HEIGHT_PER_ANNOTATION + 60)


def format_dimensions(category: str, dimensions: str) -> str:
    """``"Sofa", "220×95×80"`` -> ``"Sofa\\nW 220 x D 95 x H 80 cm"``."""
    parts = (dimensions or "").split("×")
    if len(parts) == 3:
        dim_text = f"W {parts[0]} x D {parts[1]} x H {parts[2]} cm"
    else:
        dim_text = f"{dimensions} cm"
    return f"{category}\n{dim_text}"


def item_row_values(index: int, item: QuotationItem) -> List:
    """Cell values for one item row, column A onwards (B holds the image)."""
    return [
        index + 1,
        "",
        item.product.name,
        format_dimensions(item.product.category, item.product.dimensions),
        item.quantity,
        material_specification(item.annotations),
        item.cbm,
        item.total_cbm,
        item.unit_price,
        item.total_price,
    ]


def export_filename(quotation: Quotation, brand: str = BRAND_NAME) -> str:
    name = f"{brand}_Quotation_{quotation.customer_name}_{quotation.reference_number}.xlsx"
    return name.replace("/", "-").replace("\\", "-")


async def build_workbook(quotation: Quotation, fetcher, brand: str = BRAND_NAME) -> bytes:
    """Render the quotation workbook in memory and return its bytes."""
    quotation = apply_totals(quotation)
    output = io.BytesIO()
    wb = xlsxwriter.Workbook(output, {"in_memory": True})
    ws = wb.add_worksheet("Quotation")

    title_fmt = wb.add_format({"bold": True, "font_size": 18, "font_color": "#1F1F1F"})
    ref_fmt = wb.add_format({"bold": True, "font_size": 11, "font_color": "#555555"})
    hdr = wb.add_format({"bold": True, "bg_color": "#1F1F1F", "font_color": "#FFFFFF",
                         "border": 1, "font_size": 10, "align": "center", "valign": "vcenter"})
    normal = wb.add_format({"border": 1, "font_size": 10, "valign": "vcenter", "text_wrap": True})
    centered = wb.add_format({"border": 1, "font_size": 10, "align": "center", "valign": "vcenter"})
    cbm_fmt = wb.add_format({"num_format": "0.000", "border": 1, "align": "center", "valign": "vcenter"})
    money = wb.add_format({"num_format": "#,##0.00", "border": 1, "valign": "vcenter"})
    label_fmt = wb.add_format({"bold": True, "font_size": 10, "align": "right"})
    total_fmt = wb.add_format({"bold": True, "bg_color": "#1F1F1F", "font_color": "#FFFFFF",
                               "num_format": "#,##0.00", "border": 1})

    for cols, width in COLUMN_WIDTHS.items():
        ws.set_column(cols, width)

    ws.merge_range(TITLE_ROW, 0, TITLE_ROW, 10, brand.upper(), title_fmt)
    ws.merge_range(REFERENCE_ROW, 0, REFERENCE_ROW, 10,
                   f"{quotation.reference_number} - {quotation.customer_name}", ref_fmt)
    ws.write_row(HEADER_ROW, 0, HEADERS, hdr)

    cell_formats = [centered, normal, normal, normal, centered, normal,
                    cbm_fmt, cbm_fmt, money, money]

    for i, item in enumerate(quotation.items):
        row = DATA_START_ROW + i
        n = len(item.annotations)
        ws.set_row(row, row_height(n))
        for col, (value, fmt) in enumerate(zip(item_row_values(i, item), cell_formats)):
            ws.write(row, col, value, fmt)

        if not item.product.image_url:
            continue
        png = await render_item_image(item.product.image_url, item.annotations, fetcher)
        if png is None:
            logger.warning(f"No image for item {item.id} of {quotation.reference_number}")
            continue
        _insert_item_image(ws, row, png, n)

    summary_row = DATA_START_ROW + len(quotation.items)
    ws.write(summary_row, 8, "Subtotal:", label_fmt)
    ws.write(summary_row, 9, quotation.subtotal, money)
    ws.write(summary_row + 1, 0, f"VAT {round(VAT_RATE * 100)}%", label_fmt)
    ws.write(summary_row + 1, 9, quotation.vat_amount, money)
    ws.write(summary_row + 2, 0, "TOTAL", label_fmt)
    ws.write(summary_row + 2, 9, quotation.total_amount, total_fmt)

    ws.print_area(f"A1:{LAST_COLUMN}{summary_row + 3}")
    ws.fit_to_pages(1, 0)
    ws.set_landscape()

    wb.close()
    return output.getvalue()


def _insert_item_image(ws, row: int, png: bytes, annotation_count: int):
    width, height = image_box(annotation_count)
    with Image.open(io.BytesIO(png)) as img:
        src_w, src_h = img.size
    ws.insert_image(row, 1, f"item_{row}.png", {
        "image_data": io.BytesIO(png),
        "x_offset": IMAGE_X_OFFSET_PX,
        "y_offset": round(row_height(annotation_count) * 4 / 3 * 0.05),
        "x_scale": width / src_w,
        "y_scale": height / src_h,
        "object_position": 1,
    })


async def export_quotation(quotation: Quotation, fetcher, brand: str = BRAND_NAME) -> Optional[str]:
    """Write the workbook into DOWNLOAD_DIR; returns the path or None on failure."""
    try:
        os.makedirs(DOWNLOAD_DIR, exist_ok=True)
        data = await build_workbook(quotation, fetcher, brand=brand)
        path = os.path.join(DOWNLOAD_DIR, export_filename(quotation, brand))
        with open(path, "wb") as f:
            f.write(data)
        logger.info(
            f"Quotation workbook generated: {path}",
            extra={"quotation_id": quotation.id},
        )
        return path
    except Exception as e:
        logger.error(f"Quotation export failed for {quotation.reference_number}: {e}", exc_info=True)
        return None

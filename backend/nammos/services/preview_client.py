"""
AI material preview — re-colours a product photo with the chosen materials.

Two model calls through litellm:
  1. per annotation with a swatch, a vision call names the swatch colour
     ("Cream (#FFFDD0)"); any failure falls back to the material name
  2. one image-generation call with the product photo and an edit prompt

The feature is optional. Without an API key every call raises
``PreviewDisabledError``, which the route reports as 503 so callers can tell
"not configured" apart from "failed".
"""
import base64
import logging
import os
from typing import Callable, List, Optional

import litellm
from pydantic import BaseModel, Field

logger = logging.getLogger("nammos-preview")

PREVIEW_MODEL = os.getenv("PREVIEW_MODEL", "gemini/gemini-2.0-flash-exp")
SWATCH_COLOR_MODEL = os.getenv("SWATCH_COLOR_MODEL", "gemini/gemini-2.0-flash-exp")

litellm.set_verbose = False

SWATCH_COLOR_PROMPT = """Look at this material swatch image. What is the EXACT color?
Respond with ONLY the color name and hex code in this format: "COLOR_NAME (#HEXCODE)"
Examples: "White (#FFFFFF)", "Cream (#FFFDD0)", "Dark Brown (#3E2723)", "Navy Blue (#000080)"
Be precise - if it's off-white, say "Off-White" or "Cream", not just "White"."""


def preview_api_key() -> str:
    return os.getenv("GOOGLE_GENAI_API_KEY") or os.getenv("GEMINI_API_KEY") or ""


class PreviewDisabledError(Exception):
    def __init__(self):
        super().__init__("AI preview feature is not configured. Please set GOOGLE_GENAI_API_KEY.")


class PreviewGenerationError(Exception):
    pass


class MaterialAnnotation(BaseModel):
    partName: str
    materialName: str
    materialType: str
    materialCode: str = ""
    swatchImageUrl: Optional[str] = None


class PreviewRequest(BaseModel):
    productImageUrl: str = ""
    productName: str = ""
    annotations: List[MaterialAnnotation] = Field(default_factory=list)

    def missing_fields(self) -> bool:
        return not self.productImageUrl or not self.productName or not self.annotations


class PartColor(BaseModel):
    partName: str
    materialName: str
    materialType: str
    extractedColor: str


def sniff_mime(data: bytes) -> str:
    return "image/jpeg" if data[:3] == b"\xff\xd8\xff" else "image/png"


def build_prompt(product_name: str, parts: List[PartColor]) -> str:
    parts_list = ", ".join(p.partName.lower() for p in parts)
    changes = "\n".join(
        f"- {p.partName.upper()}: Change to {p.extractedColor} {p.materialType}" for p in parts
    )
    colors = "\n".join(f"  * {p.partName}: {p.extractedColor}" for p in parts)
    return f"""Edit this furniture image ("{product_name}"). Change ONLY the specified parts to the EXACT colors listed.

MATERIAL CHANGES:
{changes}

EXACT COLORS TO USE:
{colors}

RULES:
1. Change ONLY the {parts_list} - leave everything else UNCHANGED
2. Use the EXACT colors specified above (including the hex codes if provided)
3. Keep the furniture shape, angle, lighting, and background identical
4. Make the material look realistic with proper texture and reflections

Generate the edited image."""


def _image_part(data: bytes) -> dict:
    b64 = base64.b64encode(data).decode()
    return {"type": "image_url", "image_url": {"url": f"data:{sniff_mime(data)};base64,{b64}"}}


def _generated_image(response) -> Optional[str]:
    """Pull the first generated image out of a completion as a data URL."""
    message = response.choices[0].message
    for image in getattr(message, "images", None) or []:
        url = image.get("image_url", {}).get("url") if isinstance(image, dict) else None
        if url:
            return url
    content = getattr(message, "content", None)
    if isinstance(content, str) and content.startswith("data:image/"):
        return content
    return None


class PreviewService:
    def __init__(self, fetcher, api_key: Optional[str] = None,
                 completion: Optional[Callable] = None):
        self.fetcher = fetcher
        self.api_key = preview_api_key() if api_key is None else api_key
        self.completion = completion or litellm.acompletion

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def extract_swatch_color(self, swatch: bytes, material_name: str) -> str:
        try:
            response = await self.completion(
                model=SWATCH_COLOR_MODEL,
                api_key=self.api_key,
                messages=[{"role": "user", "content": [
                    {"type": "text", "text": SWATCH_COLOR_PROMPT},
                    _image_part(swatch),
                ]}],
            )
            text = (response.choices[0].message.content or "").strip()
            if text:
                return text
        except Exception as e:
            logger.warning(f"Swatch colour extraction failed for {material_name}: {e}")
        return material_name

    async def part_colors(self, annotations: List[MaterialAnnotation]) -> List[PartColor]:
        parts = []
        for ann in annotations:
            color = ann.materialName
            if ann.swatchImageUrl:
                swatch = await self.fetcher.fetch(ann.swatchImageUrl)
                if swatch is not None:
                    color = await self.extract_swatch_color(swatch, ann.materialName)
                    logger.info(f"Extracted color for {ann.partName}: {color}")
            parts.append(PartColor(
                partName=ann.partName,
                materialName=ann.materialName,
                materialType=ann.materialType,
                extractedColor=color,
            ))
        return parts

    async def generate(self, request: PreviewRequest) -> str:
        """Return the edited image as a ``data:<mime>;base64,...`` URL."""
        if not self.enabled:
            raise PreviewDisabledError()

        product = await self.fetcher.fetch(request.productImageUrl)
        if product is None:
            raise PreviewGenerationError("Failed to fetch product image")

        prompt = build_prompt(request.productName, await self.part_colors(request.annotations))
        try:
            response = await self.completion(
                model=PREVIEW_MODEL,
                api_key=self.api_key,
                modalities=["image", "text"],
                messages=[{"role": "user", "content": [
                    {"type": "text", "text": prompt},
                    _image_part(product),
                ]}],
            )
        except Exception as e:
            logger.error(f"Preview generation failed: {e}")
            raise PreviewGenerationError(str(e)) from e

        if not getattr(response, "choices", None):
            raise PreviewGenerationError("No response from AI model")
        image = _generated_image(response)
        if image is None:
            text = getattr(response.choices[0].message, "content", None)
            raise PreviewGenerationError(text or "No image generated")
        return image

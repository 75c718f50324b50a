"""AI material preview endpoint."""
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from nammos.api.deps import get_preview_service
from nammos.services.preview_client import (
    PreviewDisabledError,
    PreviewGenerationError,
    PreviewRequest,
    PreviewService,
)

router = APIRouter(prefix="/api", tags=["Preview"])
logger = logging.getLogger("nammos-preview")


@router.post("/generate-preview")
async def generate_preview(body: PreviewRequest, service: PreviewService = Depends(get_preview_service)):
    """503 when not configured, 400 on missing fields, 500 when generation fails."""
    if not service.enabled:
        return JSONResponse(status_code=503, content={"success": False, "error": str(PreviewDisabledError())})
    if body.missing_fields():
        return JSONResponse(
            status_code=400,
            content={"success": False,
                     "error": "Missing required fields: productImageUrl, productName, annotations"},
        )
    try:
        image = await service.generate(body)
    except PreviewGenerationError as e:
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})
    except Exception as e:
        logger.error(f"Generate preview failed: {e}", exc_info=True)
        return JSONResponse(status_code=500, content={"success": False, "error": "Failed to generate preview"})
    return {"success": True, "imageBase64": image}

"""Image upload / delete for product photos and material swatches."""
import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from nammos.api.deps import get_image_storage
from nammos.services.image_storage import (
    MATERIAL_FOLDER,
    MAX_UPLOAD_BYTES,
    PRODUCT_FOLDER,
    ImageStorage,
)

router = APIRouter(prefix="/api/media", tags=["Media"])
logger = logging.getLogger("nammos-media")


async def _store(folder: str, file: UploadFile, storage: ImageStorage) -> dict:
    contents = await file.read()
    if not contents:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    if len(contents) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail="File too large (max 10MB)")
    try:
        url = storage.upload(folder, file.filename or "", contents)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except OSError as e:
        logger.error(f"Image upload failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to store image")
    return {"url": url}


@router.post("/products", status_code=201)
async def upload_product_image(file: UploadFile = File(...),
                               storage: ImageStorage = Depends(get_image_storage)):
    return await _store(PRODUCT_FOLDER, file, storage)


@router.post("/materials", status_code=201)
async def upload_material_swatch(file: UploadFile = File(...),
                                 storage: ImageStorage = Depends(get_image_storage)):
    return await _store(MATERIAL_FOLDER, file, storage)


@router.delete("")
async def delete_image(url: str, storage: ImageStorage = Depends(get_image_storage)):
    return {"deleted": storage.delete(url)}

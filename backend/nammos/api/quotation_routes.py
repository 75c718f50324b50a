"""Quotation API routes — CRUD, status, totals and spreadsheet export."""
import logging
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import FileResponse
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from nammos.api.deps import get_image_fetcher
from nammos.db import get_db
from nammos.models.quotation_schema import Quotation, QuotationItem, QuotationStatus
from nammos.services import catalog_service, quotation_service
from nammos.services.excel_export import XLSX_MIME, export_filename, export_quotation
from nammos.services.image_fetcher import ImageFetcher
from nammos.services.pricing_engine import apply_totals
from nammos.services.quotation_service import QuotationValidationError, ReferenceNumberConflictError

router = APIRouter(prefix="/api/quotations", tags=["Quotations"])
logger = logging.getLogger("nammos-api.quotations")


class QuotationBody(BaseModel):
    client_id: Optional[str] = None
    customer_name: str = ""
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    status: QuotationStatus = QuotationStatus.DRAFT
    items: List[QuotationItem] = []
    notes: Optional[str] = None


class StatusBody(BaseModel):
    status: QuotationStatus


async def _to_quotation(body: QuotationBody, db: AsyncSession) -> Quotation:
    quotation = Quotation(**body.model_dump())
    if body.client_id and not body.customer_name.strip():
        client = await catalog_service.get_client(db, body.client_id)
        if client is not None:
            quotation = quotation_service.apply_customer(quotation, client)
    return quotation


@router.get("")
async def list_quotations(search: str = "", status: Optional[QuotationStatus] = None,
                          db: AsyncSession = Depends(get_db)):
    return await quotation_service.list_quotations(db, search=search or None, status=status)


@router.get("/next-reference")
async def next_reference(db: AsyncSession = Depends(get_db)):
    return {"reference_number": await quotation_service.generate_reference_number(db)}


@router.post("/totals")
async def preview_totals(body: QuotationBody):
    """Reprice items and totals without saving."""
    return apply_totals(Quotation(**body.model_dump()))


@router.post("", status_code=201)
async def create_quotation(body: QuotationBody, db: AsyncSession = Depends(get_db)):
    try:
        quotation = await _to_quotation(body, db)
        return await quotation_service.create_quotation(db, quotation)
    except QuotationValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except (SQLAlchemyError, ReferenceNumberConflictError) as e:
        logger.error(f"Quotation create failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to save quotation")


@router.get("/{quotation_id}")
async def get_quotation(quotation_id: str, db: AsyncSession = Depends(get_db)):
    quotation = await quotation_service.load_quotation(db, quotation_id)
    if quotation is None:
        raise HTTPException(status_code=404, detail="Quotation not found")
    return quotation


@router.put("/{quotation_id}")
async def update_quotation(quotation_id: str, body: QuotationBody, db: AsyncSession = Depends(get_db)):
    try:
        quotation = await _to_quotation(body, db)
        updated = await quotation_service.replace_quotation(db, quotation_id, quotation)
    except QuotationValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except SQLAlchemyError as e:
        logger.error(f"Quotation update failed: {e}", exc_info=True, extra={"quotation_id": quotation_id})
        raise HTTPException(status_code=500, detail="Failed to save quotation")
    if updated is None:
        raise HTTPException(status_code=404, detail="Quotation not found")
    return updated


@router.patch("/{quotation_id}/status")
async def change_status(quotation_id: str, body: StatusBody, db: AsyncSession = Depends(get_db)):
    """Any status may follow any other."""
    try:
        updated = await quotation_service.set_status(db, quotation_id, body.status)
    except SQLAlchemyError as e:
        logger.error(f"Status change failed: {e}", exc_info=True, extra={"quotation_id": quotation_id})
        raise HTTPException(status_code=500, detail="Failed to update status")
    if updated is None:
        raise HTTPException(status_code=404, detail="Quotation not found")
    return updated


@router.delete("/{quotation_id}")
async def delete_quotation(quotation_id: str, db: AsyncSession = Depends(get_db)):
    if not await quotation_service.delete_quotation(db, quotation_id):
        raise HTTPException(status_code=404, detail="Quotation not found")
    return {"deleted": True}


@router.get("/{quotation_id}/export")
async def export_xlsx(quotation_id: str, db: AsyncSession = Depends(get_db),
                      fetcher: ImageFetcher = Depends(get_image_fetcher)):
    quotation = await quotation_service.load_quotation(db, quotation_id)
    if quotation is None:
        raise HTTPException(status_code=404, detail="Quotation not found")

    path = await export_quotation(quotation, fetcher)
    if path is None:
        raise HTTPException(status_code=500, detail="Failed to export quotation")
    filename = export_filename(quotation)
    return FileResponse(
        path,
        media_type=XLSX_MIME,
        headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(filename)}"},
    )

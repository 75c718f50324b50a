"""Client records API."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from nammos.db import get_db
from nammos.models import orm_models as orm
from nammos.services import catalog_service

router = APIRouter(prefix="/api/clients", tags=["Clients"])
logger = logging.getLogger("nammos-clients")


class ClientBody(BaseModel):
    name: str = Field(..., min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None


@router.get("")
async def list_clients(search: str = "", db: AsyncSession = Depends(get_db)):
    """Client selector: filters by name, email or company."""
    return catalog_service.search_clients(await catalog_service.list_clients(db), search)


@router.get("/{client_id}")
async def get_client(client_id: str, db: AsyncSession = Depends(get_db)):
    client = await catalog_service.get_client(db, client_id)
    if client is None:
        raise HTTPException(status_code=404, detail="Client not found")
    return client


@router.post("", status_code=201)
async def create_client(body: ClientBody, db: AsyncSession = Depends(get_db)):
    if not body.name.strip():
        raise HTTPException(status_code=400, detail="Client name is required")
    try:
        return await catalog_service.create_client(db, body.model_dump())
    except SQLAlchemyError as e:
        logger.error(f"Client create failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to save client")


@router.put("/{client_id}")
async def update_client(client_id: str, body: ClientBody, db: AsyncSession = Depends(get_db)):
    if not body.name.strip():
        raise HTTPException(status_code=400, detail="Client name is required")
    try:
        client = await catalog_service.update_client(db, client_id, body.model_dump())
    except SQLAlchemyError as e:
        logger.error(f"Client update failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to save client")
    if client is None:
        raise HTTPException(status_code=404, detail="Client not found")
    return client


@router.delete("/{client_id}")
async def delete_client(client_id: str, db: AsyncSession = Depends(get_db)):
    if not await catalog_service.delete_row(db, orm.Client, client_id):
        raise HTTPException(status_code=404, detail="Client not found")
    return {"deleted": True}

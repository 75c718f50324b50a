"""Catalog API routes — products with annotatable parts, materials."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from nammos.db import get_db
from nammos.models import orm_models as orm
from nammos.models.quotation_schema import Availability, MaterialType
from nammos.services import catalog_service

router = APIRouter(prefix="/api/catalog", tags=["Catalog"])
logger = logging.getLogger("nammos-catalog")


class PartCreate(BaseModel):
    name: str = Field(..., min_length=1)
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    allowed_material_types: List[MaterialType] = []


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    base_price: float = Field(..., ge=0)
    dimensions: str = ""
    cbm: float = Field(0.0, ge=0)
    image_url: str = ""
    annotatable_parts: List[PartCreate] = []


class MaterialCreate(BaseModel):
    name: str = Field(..., min_length=1)
    code: str = Field(..., min_length=1)
    type: MaterialType
    swatch_image_url: str = ""
    price_uplift: float = 0.0
    supplier: Optional[str] = None
    availability: Availability = Availability.IN_STOCK
    tags: List[str] = []


# ── Products ─────────────────────────────────────────────────────────────────

@router.get("/products")
async def list_products(search: str = "", db: AsyncSession = Depends(get_db)):
    products = await catalog_service.list_products(db)
    return catalog_service.search_products(products, search)


@router.get("/products/{product_id}")
async def get_product(product_id: str, db: AsyncSession = Depends(get_db)):
    product = await catalog_service.get_product(db, product_id)
    if product is None:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.post("/products", status_code=201)
async def create_product(body: ProductCreate, db: AsyncSession = Depends(get_db)):
    fields = body.model_dump(exclude={"annotatable_parts"})
    parts = [
        {**p.model_dump(), "allowed_material_types": [t.value for t in p.allowed_material_types]}
        for p in body.annotatable_parts
    ]
    try:
        return await catalog_service.create_product(db, fields, parts)
    except SQLAlchemyError as e:
        logger.error(f"Product create failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to save product")


@router.delete("/products/{product_id}")
async def delete_product(product_id: str, db: AsyncSession = Depends(get_db)):
    if not await catalog_service.delete_row(db, orm.Product, product_id):
        raise HTTPException(status_code=404, detail="Product not found")
    return {"deleted": True}


# ── Materials ────────────────────────────────────────────────────────────────

@router.get("/materials")
async def list_materials(
    q: str = "",
    types: List[MaterialType] = Query(default=[]),
    tags: List[str] = Query(default=[]),
    allowed_types: List[MaterialType] = Query(default=[]),
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
):
    """Material picker search: text over name/code/supplier/tags, type and tag chips."""
    materials = await catalog_service.list_materials(db)
    return catalog_service.search_materials(
        materials, query=q, types=types, tags=tags, allowed_types=allowed_types, limit=limit,
    )


@router.get("/materials/tags")
async def material_tags(db: AsyncSession = Depends(get_db)):
    return catalog_service.all_tags(await catalog_service.list_materials(db))


@router.get("/materials/{material_id}")
async def get_material(material_id: str, db: AsyncSession = Depends(get_db)):
    material = await catalog_service.get_material(db, material_id)
    if material is None:
        raise HTTPException(status_code=404, detail="Material not found")
    return material


@router.post("/materials", status_code=201)
async def create_material(body: MaterialCreate, db: AsyncSession = Depends(get_db)):
    fields = body.model_dump()
    fields["type"] = body.type.value
    fields["availability"] = body.availability.value
    try:
        return await catalog_service.create_material(db, fields)
    except SQLAlchemyError as e:
        logger.error(f"Material create failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to save material")


@router.delete("/materials/{material_id}")
async def delete_material(material_id: str, db: AsyncSession = Depends(get_db)):
    if not await catalog_service.delete_row(db, orm.Material, material_id):
        raise HTTPException(status_code=404, detail="Material not found")
    return {"deleted": True}

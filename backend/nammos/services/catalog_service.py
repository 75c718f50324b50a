"""Catalog & client records: search filters and ORM <-> schema mapping."""
import logging
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nammos.models import orm_models as orm
from nammos.models.quotation_schema import (
    AnnotatablePart,
    Availability,
    Client,
    Material,
    MaterialType,
    Product,
)

logger = logging.getLogger("nammos-catalog")


def _contains(value: Optional[str], query: str) -> bool:
    return bool(value) and query in value.lower()


# ── Search (pure) ────────────────────────────────────────────────────────────

def search_materials(
    materials: Sequence[Material],
    query: str = "",
    types: Iterable[MaterialType] = (),
    tags: Iterable[str] = (),
    allowed_types: Iterable[MaterialType] = (),
    limit: Optional[int] = None,
) -> List[Material]:
    """Filter materials the way the material picker does.

    ``allowed_types`` restricts to a part's declared types, ``types`` and
    ``tags`` are the user's chips (tags match if any selected tag is present),
    and ``query`` is a case-insensitive substring over name, code, supplier
    and tags.
    """
    allowed = {MaterialType(t) for t in allowed_types}
    selected = {MaterialType(t) for t in types}
    wanted_tags = set(tags)
    q = query.strip().lower()

    results = []
    for m in materials:
        if allowed and m.type not in allowed:
            continue
        if selected and m.type not in selected:
            continue
        if wanted_tags and not wanted_tags.intersection(m.tags or []):
            continue
        if q and not (
            _contains(m.name, q) or _contains(m.code, q) or _contains(m.supplier, q)
            or any(_contains(tag, q) for tag in m.tags or [])
        ):
            continue
        results.append(m)
        if limit is not None and len(results) >= limit:
            break
    return results


def all_tags(materials: Sequence[Material]) -> List[str]:
    return sorted({tag for m in materials for tag in (m.tags or [])})


def search_products(products: Sequence[Product], query: str = "") -> List[Product]:
    q = query.strip().lower()
    if not q:
        return list(products)
    return [p for p in products if _contains(p.name, q) or _contains(p.category, q)]


def search_clients(clients: Sequence[Client], query: str = "") -> List[Client]:
    q = query.strip().lower()
    if not q:
        return list(clients)
    return [
        c for c in clients
        if _contains(c.name, q) or _contains(c.email, q) or _contains(c.company, q)
    ]


# ── ORM mapping ──────────────────────────────────────────────────────────────

def product_from_row(row: orm.Product) -> Product:
    return Product(
        id=row.id,
        name=row.name,
        category=row.category,
        base_price=row.base_price or 0.0,
        dimensions=row.dimensions or "",
        cbm=row.cbm or 0.0,
        image_url=row.image_url or "",
        annotatable_parts=[
            AnnotatablePart(
                id=p.id, name=p.name, x=p.x, y=p.y, width=p.width, height=p.height,
                allowed_material_types=p.allowed_material_types or [],
            )
            for p in row.parts
        ],
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def material_from_row(row: orm.Material) -> Material:
    return Material(
        id=row.id,
        name=row.name,
        code=row.code,
        type=MaterialType(row.type),
        swatch_image_url=row.swatch_image_url or "",
        price_uplift=row.price_uplift or 0.0,
        supplier=row.supplier,
        availability=Availability(row.availability),
        tags=row.tags or [],
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def client_from_row(row: orm.Client) -> Client:
    return Client(
        id=row.id,
        name=row.name,
        email=row.email,
        phone=row.phone,
        company=row.company,
        address=row.address,
        notes=row.notes,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


# ── Persistence ──────────────────────────────────────────────────────────────

async def list_products(db: AsyncSession) -> List[Product]:
    result = await db.execute(select(orm.Product).order_by(orm.Product.name))
    return [product_from_row(r) for r in result.scalars().all()]


async def get_product(db: AsyncSession, product_id: str) -> Optional[Product]:
    row = await db.get(orm.Product, product_id)
    return product_from_row(row) if row else None


async def create_product(db: AsyncSession, fields: dict, parts: List[dict]) -> Product:
    row = orm.Product(**fields)
    row.parts = [orm.AnnotatablePart(**p) for p in parts]
    db.add(row)
    await db.flush()
    await db.refresh(row)
    logger.info(f"Product created: {row.name}")
    return product_from_row(row)


async def list_materials(db: AsyncSession) -> List[Material]:
    result = await db.execute(select(orm.Material).order_by(orm.Material.name))
    return [material_from_row(r) for r in result.scalars().all()]


async def get_material(db: AsyncSession, material_id: str) -> Optional[Material]:
    row = await db.get(orm.Material, material_id)
    return material_from_row(row) if row else None


async def create_material(db: AsyncSession, fields: dict) -> Material:
    row = orm.Material(**fields)
    db.add(row)
    await db.flush()
    await db.refresh(row)
    logger.info(f"Material created: {row.code} {row.name}")
    return material_from_row(row)


async def list_clients(db: AsyncSession) -> List[Client]:
    result = await db.execute(select(orm.Client).order_by(orm.Client.name))
    return [client_from_row(r) for r in result.scalars().all()]


async def get_client(db: AsyncSession, client_id: str) -> Optional[Client]:
    row = await db.get(orm.Client, client_id)
    return client_from_row(row) if row else None


async def create_client(db: AsyncSession, fields: dict) -> Client:
    row = orm.Client(**fields)
    db.add(row)
    await db.flush()
    await db.refresh(row)
    return client_from_row(row)


async def update_client(db: AsyncSession, client_id: str, fields: dict) -> Optional[Client]:
    row = await db.get(orm.Client, client_id)
    if row is None:
        return None
    for key, value in fields.items():
        setattr(row, key, value)
    await db.flush()
    await db.refresh(row)
    return client_from_row(row)


async def delete_row(db: AsyncSession, model, row_id: str) -> bool:
    row = await db.get(model, row_id)
    if row is None:
        return False
    await db.delete(row)
    await db.flush()
    return True

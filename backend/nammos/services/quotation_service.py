"""
Quotation Aggregate — reference numbers, validation and persistence.

Reference numbers look like ``NQ-2024-0007``: a per-year sequence derived
from the highest existing number for the year. The reference column is
UNIQUE, so two concurrent creations that compute the same number cannot both
commit; the loser retries with a fresh read.

Status changes carry no transition guard: any status may follow any other.
"""
import logging
import re
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import lazyload

from nammos.models import orm_models as orm
from nammos.models.quotation_schema import (
    Annotation,
    Client,
    CustomerSnapshot,
    MaterialSnapshot,
    ProductSnapshot,
    Quotation,
    QuotationItem,
    QuotationStatus,
    QuotationSummary,
)
from nammos.services.pricing_engine import apply_totals

logger = logging.getLogger("nammos-quotation")

REFERENCE_PREFIX = "NQ"
MAX_REFERENCE_ATTEMPTS = 5
REFERENCE_CONSTRAINT = "uq_quotation_reference_number"
_SEQUENCE_RE = re.compile(r"^(\d+)$")


class QuotationValidationError(Exception):
    """Raised before any persistence call when a quotation is incomplete."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class ReferenceNumberConflictError(Exception):
    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Could not allocate a unique reference number after {attempts} attempts")


# ── Pure helpers ─────────────────────────────────────────────────────────────

def reference_prefix(year: int) -> str:
    return f"{REFERENCE_PREFIX}-{year}-"


def next_reference_number(last_reference: Optional[str], year: int) -> str:
    """``NQ-2024-0007`` -> ``NQ-2024-0008``; nothing for the year -> ``NQ-<year>-0001``."""
    prefix = reference_prefix(year)
    sequence = 1
    if last_reference and last_reference.startswith(prefix):
        match = _SEQUENCE_RE.match(last_reference[len(prefix):])
        if match:
            sequence = int(match.group(1)) + 1
    return f"{prefix}{sequence:04d}"


def validate_quotation(quotation: Quotation) -> None:
    if not quotation.customer_name.strip():
        raise QuotationValidationError("customer_name", "Customer name is required")
    if not quotation.items:
        raise QuotationValidationError("items", "At least one item is required")


def apply_customer(quotation: Quotation, client: Client) -> Quotation:
    """Copy the client's contact fields onto the quotation."""
    customer = CustomerSnapshot.from_client(client)
    return quotation.model_copy(update={
        "client_id": customer.client_id,
        "customer_name": customer.name,
        "customer_email": customer.email,
        "customer_phone": customer.phone,
    })


def change_status(quotation: Quotation, status: QuotationStatus) -> Quotation:
    return quotation.model_copy(update={"status": status})


# ── ORM mapping ──────────────────────────────────────────────────────────────

def quotation_from_row(row: orm.Quotation) -> Quotation:
    return Quotation(
        id=row.id,
        reference_number=row.reference_number,
        client_id=row.client_id,
        customer_name=row.customer_name,
        customer_email=row.customer_email,
        customer_phone=row.customer_phone,
        status=QuotationStatus(row.status),
        items=[_item_from_row(i) for i in row.items],
        subtotal=row.subtotal or 0.0,
        vat_amount=row.vat_amount or 0.0,
        total_amount=row.total_amount or 0.0,
        total_cbm=row.total_cbm or 0.0,
        notes=row.notes,
        created_by=row.created_by,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _item_from_row(row: orm.QuotationItem) -> QuotationItem:
    product = ProductSnapshot.model_validate(row.product_snapshot)
    return QuotationItem(
        id=row.id,
        quotation_id=row.quotation_id,
        product_id=row.product_id or product.id,
        product=product,
        quantity=row.quantity,
        annotations=[
            Annotation(
                id=a.id,
                part_id=a.part_id,
                part_name=a.part_name,
                material_id=a.material_id or "",
                material=MaterialSnapshot.model_validate(a.material_snapshot),
                x=a.x,
                y=a.y,
            )
            for a in row.annotations
        ],
        unit_price=row.unit_price,
        cbm=row.cbm or 0.0,
        total_cbm=row.total_cbm or 0.0,
        total_price=row.total_price,
        custom_dimensions=row.custom_dimensions,
        notes=row.notes,
    )


def _item_rows(items: List[QuotationItem]) -> List[orm.QuotationItem]:
    rows = []
    for position, item in enumerate(items):
        rows.append(orm.QuotationItem(
            position=position,
            product_id=item.product_id,
            product_snapshot=item.product.model_dump(mode="json"),
            quantity=item.quantity,
            unit_price=item.unit_price,
            cbm=item.cbm,
            total_cbm=item.total_cbm,
            total_price=item.total_price,
            custom_dimensions=item.custom_dimensions,
            notes=item.notes,
            annotations=[
                orm.Annotation(
                    position=index,
                    part_id=a.part_id,
                    part_name=a.part_name,
                    material_id=a.material_id,
                    material_snapshot=a.material.model_dump(mode="json"),
                    x=a.x,
                    y=a.y,
                )
                for index, a in enumerate(item.annotations)
            ],
        ))
    return rows


def _apply_header(row: orm.Quotation, quotation: Quotation) -> None:
    row.client_id = quotation.client_id
    row.customer_name = quotation.customer_name.strip()
    row.customer_email = quotation.customer_email or None
    row.customer_phone = quotation.customer_phone or None
    row.status = quotation.status.value
    row.subtotal = quotation.subtotal
    row.vat_amount = quotation.vat_amount
    row.total_amount = quotation.total_amount
    row.total_cbm = quotation.total_cbm
    row.notes = quotation.notes


# ── Persistence ──────────────────────────────────────────────────────────────

async def last_reference_number(db: AsyncSession, year: int) -> Optional[str]:
    result = await db.execute(
        select(orm.Quotation.reference_number)
        .where(orm.Quotation.reference_number.like(f"{reference_prefix(year)}%"))
        .order_by(func.length(orm.Quotation.reference_number).desc(),
                  orm.Quotation.reference_number.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def generate_reference_number(db: AsyncSession, year: Optional[int] = None) -> str:
    year = year or datetime.now(timezone.utc).year
    return next_reference_number(await last_reference_number(db, year), year)


async def load_quotation(db: AsyncSession, quotation_id: str) -> Optional[Quotation]:
    row = await db.get(orm.Quotation, quotation_id)
    return quotation_from_row(row) if row else None


async def list_quotations(db: AsyncSession, search: Optional[str] = None,
                          status: Optional[QuotationStatus] = None) -> List[QuotationSummary]:
    counts = (
        select(orm.QuotationItem.quotation_id, func.count().label("items_count"))
        .group_by(orm.QuotationItem.quotation_id)
        .subquery()
    )
    stmt = (
        select(orm.Quotation, func.coalesce(counts.c.items_count, 0))
        .outerjoin(counts, counts.c.quotation_id == orm.Quotation.id)
        .options(lazyload(orm.Quotation.items))
        .order_by(orm.Quotation.created_at.desc())
    )
    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(or_(
            orm.Quotation.reference_number.ilike(pattern),
            orm.Quotation.customer_name.ilike(pattern),
        ))
    if status is not None:
        stmt = stmt.where(orm.Quotation.status == status.value)

    result = await db.execute(stmt)
    return [
        QuotationSummary(
            id=row.id,
            reference_number=row.reference_number,
            client_id=row.client_id,
            customer_name=row.customer_name,
            customer_email=row.customer_email,
            customer_phone=row.customer_phone,
            status=QuotationStatus(row.status),
            items_count=count,
            subtotal=row.subtotal or 0.0,
            vat_amount=row.vat_amount or 0.0,
            total_amount=row.total_amount or 0.0,
            total_cbm=row.total_cbm or 0.0,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
        for row, count in result.all()
    ]


async def create_quotation(db: AsyncSession, quotation: Quotation,
                           created_by: Optional[str] = None) -> Quotation:
    """Validate, price and insert a new quotation with a fresh reference number."""
    validate_quotation(quotation)
    quotation = apply_totals(quotation)

    for attempt in range(1, MAX_REFERENCE_ATTEMPTS + 1):
        reference = await generate_reference_number(db)
        row = orm.Quotation(reference_number=reference, created_by=created_by)
        _apply_header(row, quotation)
        row.items = _item_rows(quotation.items)
        try:
            async with db.begin_nested():
                db.add(row)
                await db.flush()
        except IntegrityError as e:
            if REFERENCE_CONSTRAINT not in str(e.orig):
                raise
            logger.warning(f"Reference number {reference} already taken (attempt {attempt})")
            continue
        await db.refresh(row, ["created_at", "updated_at"])
        logger.info(f"Quotation {reference} created", extra={"quotation_id": row.id})
        return quotation_from_row(row)

    raise ReferenceNumberConflictError(MAX_REFERENCE_ATTEMPTS)


async def replace_quotation(db: AsyncSession, quotation_id: str,
                            quotation: Quotation) -> Optional[Quotation]:
    """Overwrite header fields and replace every item and annotation.

    Runs inside the request's session transaction: the delete and the
    re-insert commit together or not at all.
    """
    validate_quotation(quotation)
    row = await db.get(orm.Quotation, quotation_id)
    if row is None:
        return None

    quotation = apply_totals(quotation)
    _apply_header(row, quotation)
    row.items.clear()
    await db.flush()
    row.items.extend(_item_rows(quotation.items))
    row.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info(f"Quotation {row.reference_number} updated", extra={"quotation_id": row.id})
    return quotation_from_row(row)


async def set_status(db: AsyncSession, quotation_id: str,
                     status: QuotationStatus) -> Optional[Quotation]:
    row = await db.get(orm.Quotation, quotation_id)
    if row is None:
        return None
    row.status = status.value
    row.updated_at = datetime.now(timezone.utc)
    await db.flush()
    return quotation_from_row(row)


async def delete_quotation(db: AsyncSession, quotation_id: str) -> bool:
    result = await db.execute(delete(orm.Quotation).where(orm.Quotation.id == quotation_id))
    return result.rowcount > 0

"""ORM Models for the Nammos quotation backend — SQLAlchemy 2.0"""
import uuid
from datetime import datetime
from typing import Optional
from sqlalchemy import (
    String, Text, Integer, Float, DateTime, ForeignKey, UniqueConstraint
)
from sqlalchemy.dialects.postgresql import UUID, JSONB, ARRAY
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func
from nammos.db import Base


def gen_uuid():
    return str(uuid.uuid4())


# ── CATALOG ───────────────────────────────────────────────────────────────────
class Product(Base):
    __tablename__ = "products"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    base_price: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    dimensions: Mapped[Optional[str]] = mapped_column(String(100))   # "W×D×H"
    cbm: Mapped[Optional[float]] = mapped_column(Float)
    image_url: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    parts: Mapped[list["AnnotatablePart"]] = relationship(
        "AnnotatablePart", back_populates="product", cascade="all, delete-orphan", lazy="selectin"
    )


class AnnotatablePart(Base):
    __tablename__ = "annotatable_parts"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    product_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("products.id", ondelete="CASCADE"), index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    x: Mapped[float] = mapped_column(Float, default=0)
    y: Mapped[float] = mapped_column(Float, default=0)
    width: Mapped[float] = mapped_column(Float, default=0)
    height: Mapped[float] = mapped_column(Float, default=0)
    # Declared only; selection does not enforce it
    allowed_material_types: Mapped[list] = mapped_column(ARRAY(String(20)), default=list)
    product: Mapped["Product"] = relationship("Product", back_populates="parts")


class Material(Base):
    __tablename__ = "materials"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str] = mapped_column(String(100), nullable=False)  # supplier SKU, not unique
    # fabric | leather | wood | metal | glass | stone
    type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    swatch_image_url: Mapped[Optional[str]] = mapped_column(Text)
    price_uplift: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    supplier: Mapped[Optional[str]] = mapped_column(String(255))
    # in_stock | limited | out_of_stock
    availability: Mapped[str] = mapped_column(String(20), nullable=False, default="in_stock")
    tags: Mapped[list] = mapped_column(ARRAY(String(100)), default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


# ── CLIENTS ───────────────────────────────────────────────────────────────────
class Client(Base):
    __tablename__ = "clients"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255))
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    company: Mapped[Optional[str]] = mapped_column(String(255))
    address: Mapped[Optional[str]] = mapped_column(Text)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


# ── QUOTATIONS ────────────────────────────────────────────────────────────────
class Quotation(Base):
    __tablename__ = "quotations"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    reference_number: Mapped[str] = mapped_column(String(20), nullable=False)
    client_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False), ForeignKey("clients.id", ondelete="SET NULL")
    )
    # Copied from the client at selection time, never live-bound
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_email: Mapped[Optional[str]] = mapped_column(String(255))
    customer_phone: Mapped[Optional[str]] = mapped_column(String(50))
    # draft | sent | approved | rejected; no transition guard
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft", index=True)
    subtotal: Mapped[float] = mapped_column(Float, default=0)
    vat_amount: Mapped[float] = mapped_column(Float, default=0)
    total_amount: Mapped[float] = mapped_column(Float, default=0)
    total_cbm: Mapped[Optional[float]] = mapped_column(Float, default=0)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_by: Mapped[Optional[str]] = mapped_column(UUID(as_uuid=False))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    items: Mapped[list["QuotationItem"]] = relationship(
        "QuotationItem",
        back_populates="quotation",
        cascade="all, delete-orphan",
        order_by="QuotationItem.position",
        lazy="selectin",
    )
    __table_args__ = (UniqueConstraint("reference_number", name="uq_quotation_reference_number"),)


class QuotationItem(Base):
    __tablename__ = "quotation_items"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    quotation_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("quotations.id", ondelete="CASCADE"), index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    product_id: Mapped[Optional[str]] = mapped_column(String(64))   # catalog id at snapshot time
    product_snapshot: Mapped[dict] = mapped_column(JSONB, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    unit_price: Mapped[float] = mapped_column(Float, nullable=False)
    cbm: Mapped[Optional[float]] = mapped_column(Float, default=0)
    total_cbm: Mapped[Optional[float]] = mapped_column(Float, default=0)
    total_price: Mapped[float] = mapped_column(Float, nullable=False)
    custom_dimensions: Mapped[Optional[str]] = mapped_column(String(100))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    quotation: Mapped["Quotation"] = relationship("Quotation", back_populates="items")
    annotations: Mapped[list["Annotation"]] = relationship(
        "Annotation",
        back_populates="item",
        cascade="all, delete-orphan",
        order_by="Annotation.position",
        lazy="selectin",
    )


class Annotation(Base):
    __tablename__ = "annotations"
    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=gen_uuid)
    quotation_item_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False), ForeignKey("quotation_items.id", ondelete="CASCADE"), index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    part_id: Mapped[str] = mapped_column(String(100), nullable=False)
    part_name: Mapped[str] = mapped_column(String(255), nullable=False)
    material_id: Mapped[Optional[str]] = mapped_column(String(64))
    material_snapshot: Mapped[dict] = mapped_column(JSONB, nullable=False)
    x: Mapped[float] = mapped_column(Float, nullable=False)
    y: Mapped[float] = mapped_column(Float, nullable=False)
    item: Mapped["QuotationItem"] = relationship("QuotationItem", back_populates="annotations")

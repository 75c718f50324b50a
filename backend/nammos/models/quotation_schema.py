"""
Domain schemas for catalog records, quotations and their frozen copies.

Two families of types live here:
  - live catalog records (Product, Material, Client) that catalog management
    edits freely;
  - frozen copies (ProductSnapshot, MaterialSnapshot, CustomerSnapshot) taken
    when a record is attached to a quotation. Later catalog edits never reach
    a snapshot, so saved quotations keep the prices and names they were
    quoted with.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class MaterialType(str, Enum):
    FABRIC = "fabric"
    LEATHER = "leather"
    WOOD = "wood"
    METAL = "metal"
    GLASS = "glass"
    STONE = "stone"


class Availability(str, Enum):
    IN_STOCK = "in_stock"
    LIMITED = "limited"
    OUT_OF_STOCK = "out_of_stock"


class QuotationStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    APPROVED = "approved"
    REJECTED = "rejected"


# ── Catalog ──────────────────────────────────────────────────────────────────

class AnnotatablePart(BaseModel):
    id: str
    name: str
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    allowed_material_types: List[MaterialType] = []


class _ProductFields(BaseModel):
    id: str
    name: str
    category: str
    base_price: float = Field(..., ge=0)
    dimensions: str = ""            # "W×D×H", free text
    cbm: float = Field(0.0, ge=0)
    image_url: str = ""
    annotatable_parts: List[AnnotatablePart] = []


class Product(_ProductFields):
    """Live catalog product."""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProductSnapshot(_ProductFields):
    """Product as it was when the quotation item was built."""
    model_config = ConfigDict(frozen=True)

    @classmethod
    def freeze(cls, product: _ProductFields) -> "ProductSnapshot":
        if isinstance(product, ProductSnapshot):
            return product
        return cls.model_validate(product.model_dump(include=set(_ProductFields.model_fields)))


class _MaterialFields(BaseModel):
    id: str
    name: str
    code: str = ""
    type: MaterialType
    swatch_image_url: str = ""
    price_uplift: float = 0.0
    supplier: Optional[str] = None
    availability: Availability = Availability.IN_STOCK
    tags: List[str] = []


class Material(_MaterialFields):
    """Live catalog material."""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MaterialSnapshot(_MaterialFields):
    """Material as it was when it was attached to an annotation."""
    model_config = ConfigDict(frozen=True)

    @classmethod
    def freeze(cls, material: _MaterialFields) -> "MaterialSnapshot":
        if isinstance(material, MaterialSnapshot):
            return material
        return cls.model_validate(material.model_dump(include=set(_MaterialFields.model_fields)))


# ── Clients ──────────────────────────────────────────────────────────────────

class Client(BaseModel):
    id: str
    name: str = Field(..., min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CustomerSnapshot(BaseModel):
    """Customer contact fields copied onto a quotation."""
    model_config = ConfigDict(frozen=True)

    client_id: Optional[str] = None
    name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None

    @classmethod
    def from_client(cls, client: Client) -> "CustomerSnapshot":
        return cls(
            client_id=client.id,
            name=client.name,
            email=client.email or None,
            phone=client.phone or None,
        )


# ── Quotations ───────────────────────────────────────────────────────────────

class Annotation(BaseModel):
    id: str
    part_id: str
    part_name: str
    material_id: str
    material: MaterialSnapshot
    x: float = Field(..., ge=0, le=100)   # % of viewport width
    y: float = Field(..., ge=0, le=100)   # % of viewport height


class QuotationItem(BaseModel):
    id: str
    quotation_id: Optional[str] = None
    product_id: str
    product: ProductSnapshot
    quantity: int = Field(1, ge=1)
    annotations: List[Annotation] = []
    unit_price: float = 0.0
    cbm: float = 0.0
    total_cbm: float = 0.0
    total_price: float = 0.0
    custom_dimensions: Optional[str] = None
    notes: Optional[str] = None


class Quotation(BaseModel):
    id: Optional[str] = None
    reference_number: str = ""
    client_id: Optional[str] = None
    customer_name: str = ""
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    status: QuotationStatus = QuotationStatus.DRAFT
    items: List[QuotationItem] = []
    subtotal: float = 0.0
    vat_amount: float = 0.0
    total_amount: float = 0.0
    total_cbm: float = 0.0
    notes: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def customer(self) -> CustomerSnapshot:
        return CustomerSnapshot(
            client_id=self.client_id,
            name=self.customer_name,
            email=self.customer_email,
            phone=self.customer_phone,
        )


class QuotationSummary(BaseModel):
    """Listing row: header fields plus an item count, no items."""
    id: str
    reference_number: str
    client_id: Optional[str] = None
    customer_name: str
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    status: QuotationStatus
    items_count: int = 0
    subtotal: float = 0.0
    vat_amount: float = 0.0
    total_amount: float = 0.0
    total_cbm: float = 0.0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

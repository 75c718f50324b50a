"""
Analytics Engine — dashboard figures derived from saved quotations.

Revenue counts approved quotations only (total_amount incl. VAT). Month
comparisons are this calendar month vs the previous one, by created_at.
Percent changes use 100 when the previous month is zero and this month is
not, and 0 when both are zero.
"""
import calendar
import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nammos.models import orm_models as orm

logger = logging.getLogger("nammos-analytics")

TOP_N = 5
TREND_MONTHS = 6


@dataclass
class QuotationFact:
    status: str
    total_amount: float
    total_cbm: float
    customer_name: str
    created_at: datetime


@dataclass
class ItemFact:
    product_name: str
    quantity: int


@dataclass
class AnnotationFact:
    material_name: str
    material_type: str


class TrendPoint(BaseModel):
    date: str
    revenue: float


class StatusCount(BaseModel):
    status: str
    count: int


class ProductCount(BaseModel):
    name: str
    count: int


class MaterialCount(BaseModel):
    name: str
    type: str
    count: int


class CustomerStats(BaseModel):
    name: str
    quotations: int
    revenue: float


class AnalyticsReport(BaseModel):
    total_revenue: float = 0.0
    total_quotations: int = 0
    approved_quotations: int = 0
    pending_quotations: int = 0
    revenue_change: float = 0.0
    quotations_change: float = 0.0
    conversion_change: float = 0.0
    aov_change: float = 0.0
    total_cbm: float = 0.0
    avg_cbm_per_quotation: float = 0.0
    total_items: int = 0
    sent_this_month: int = 0
    approved_this_month: int = 0
    rejection_rate: float = 0.0
    revenue_trend: List[TrendPoint] = []
    status_breakdown: List[StatusCount] = []
    top_products: List[ProductCount] = []
    popular_materials: List[MaterialCount] = []
    top_customers: List[CustomerStats] = []


def _shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def _in_month(q: QuotationFact, year: int, month: int) -> bool:
    return q.created_at.year == year and q.created_at.month == month


def _pct_change(current: float, previous: float) -> float:
    if previous > 0:
        return (current - previous) / previous * 100
    return 100.0 if current > 0 else 0.0


def _revenue(quotations: Sequence[QuotationFact]) -> float:
    return sum(q.total_amount for q in quotations if q.status == "approved")


def compute_analytics(
    quotations: Sequence[QuotationFact],
    items: Sequence[ItemFact],
    annotations: Sequence[AnnotationFact],
    now: Optional[datetime] = None,
) -> AnalyticsReport:
    now = now or datetime.now(timezone.utc)
    approved = [q for q in quotations if q.status == "approved"]
    total = len(quotations)
    by_status = defaultdict(int)
    for q in quotations:
        by_status[q.status] += 1

    last_year, last_month = _shift_month(now.year, now.month, -1)
    this_month_qs = [q for q in quotations if _in_month(q, now.year, now.month)]
    last_month_qs = [q for q in quotations if _in_month(q, last_year, last_month)]

    this_revenue, last_revenue = _revenue(this_month_qs), _revenue(last_month_qs)
    this_approved = sum(1 for q in this_month_qs if q.status == "approved")
    last_approved = sum(1 for q in last_month_qs if q.status == "approved")

    this_conversion = this_approved / len(this_month_qs) * 100 if this_month_qs else 0.0
    last_conversion = last_approved / len(last_month_qs) * 100 if last_month_qs else 0.0
    conversion_change = this_conversion - last_conversion if last_conversion > 0 else this_conversion

    this_aov = this_revenue / this_approved if this_approved else 0.0
    last_aov = last_revenue / last_approved if last_approved else 0.0

    total_cbm = sum(q.total_cbm or 0.0 for q in quotations)

    trend = []
    for back in range(TREND_MONTHS - 1, -1, -1):
        year, month = _shift_month(now.year, now.month, -back)
        trend.append(TrendPoint(
            date=calendar.month_abbr[month],
            revenue=_revenue([q for q in quotations if _in_month(q, year, month)]),
        ))

    product_counts: Dict[str, int] = defaultdict(int)
    for item in items:
        product_counts[item.product_name or "Unknown"] += item.quantity

    material_counts: Dict[str, MaterialCount] = {}
    for ann in annotations:
        name = ann.material_name or "Unknown"
        if name not in material_counts:
            material_counts[name] = MaterialCount(name=name, type=ann.material_type or "fabric", count=0)
        material_counts[name].count += 1

    customers: Dict[str, CustomerStats] = {}
    for q in quotations:
        stats = customers.setdefault(q.customer_name, CustomerStats(name=q.customer_name, quotations=0, revenue=0.0))
        stats.quotations += 1
        if q.status == "approved":
            stats.revenue += q.total_amount

    return AnalyticsReport(
        total_revenue=_revenue(approved),
        total_quotations=total,
        approved_quotations=len(approved),
        pending_quotations=by_status["draft"],
        revenue_change=_pct_change(this_revenue, last_revenue),
        quotations_change=_pct_change(len(this_month_qs), len(last_month_qs)),
        conversion_change=conversion_change,
        aov_change=_pct_change(this_aov, last_aov),
        total_cbm=total_cbm,
        avg_cbm_per_quotation=total_cbm / total if total else 0.0,
        total_items=len(items),
        sent_this_month=sum(1 for q in this_month_qs if q.status == "sent"),
        approved_this_month=this_approved,
        rejection_rate=by_status["rejected"] / total * 100 if total else 0.0,
        revenue_trend=trend,
        status_breakdown=[
            StatusCount(status=s, count=by_status[s]) for s in ("draft", "sent", "approved", "rejected")
        ],
        top_products=[
            ProductCount(name=name, count=count)
            for name, count in sorted(product_counts.items(), key=lambda kv: kv[1], reverse=True)[:TOP_N]
        ],
        popular_materials=sorted(material_counts.values(), key=lambda m: m.count, reverse=True)[:TOP_N],
        top_customers=sorted(customers.values(), key=lambda c: c.revenue, reverse=True)[:TOP_N],
    )


async def load_analytics(db: AsyncSession, now: Optional[datetime] = None) -> AnalyticsReport:
    q_rows = await db.execute(select(
        orm.Quotation.status, orm.Quotation.total_amount, orm.Quotation.total_cbm,
        orm.Quotation.customer_name, orm.Quotation.created_at,
    ))
    i_rows = await db.execute(select(orm.QuotationItem.product_snapshot, orm.QuotationItem.quantity))
    a_rows = await db.execute(select(orm.Annotation.material_snapshot))

    quotations = [
        QuotationFact(status=s, total_amount=amount or 0.0, total_cbm=cbm or 0.0,
                      customer_name=name, created_at=created)
        for s, amount, cbm, name, created in q_rows.all()
    ]
    items = [ItemFact(product_name=(snap or {}).get("name", ""), quantity=qty) for snap, qty in i_rows.all()]
    annotations = [
        AnnotationFact(material_name=(snap or {}).get("name", ""), material_type=(snap or {}).get("type", ""))
        for (snap,) in a_rows.all()
    ]
    return compute_analytics(quotations, items, annotations, now=now)

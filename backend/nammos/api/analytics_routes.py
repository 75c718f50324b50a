"""Dashboard analytics."""
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from nammos.db import get_db
from nammos.services.analytics_engine import AnalyticsReport, load_analytics

router = APIRouter(prefix="/api/analytics", tags=["Analytics"])
logger = logging.getLogger("nammos-analytics")


@router.get("", response_model=AnalyticsReport)
async def get_analytics(db: AsyncSession = Depends(get_db)):
    try:
        return await load_analytics(db)
    except SQLAlchemyError as e:
        logger.error(f"Analytics query failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to compute analytics")

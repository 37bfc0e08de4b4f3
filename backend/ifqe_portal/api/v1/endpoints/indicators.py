from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from ifqe_portal.core.database import get_db
from ifqe_portal.models.user import User
from ifqe_portal.modules.auth.dependencies import get_current_user
from ifqe_portal.schemas.indicator import CriterionConfigResponse, IndicatorResponse
from ifqe_portal.services import indicator_catalog

router = APIRouter()


@router.get("", response_model=List[IndicatorResponse])
async def list_indicators(
    criterion_code: Optional[str] = Query(None),
    sub_criterion_code: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """All catalog indicators, sorted by code"""
    return await indicator_catalog.list_indicators(db, criterion_code, sub_criterion_code)


@router.get("/criteria", response_model=List[CriterionConfigResponse])
async def list_criteria(current_user: User = Depends(get_current_user)):
    """Criteria weightage and maximum marks"""
    return indicator_catalog.list_criteria()


@router.get("/{indicator_code}", response_model=IndicatorResponse)
async def get_indicator(
    indicator_code: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await indicator_catalog.get_indicator(db, indicator_code)

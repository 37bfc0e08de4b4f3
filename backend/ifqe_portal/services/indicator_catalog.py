from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ifqe_portal.core.exceptions import IndicatorNotFoundError
from ifqe_portal.models.indicator import Indicator, CRITERIA_CONFIG


async def list_indicators(
    db: AsyncSession,
    criterion_code: Optional[str] = None,
    sub_criterion_code: Optional[str] = None,
) -> List[Indicator]:
    query = select(Indicator).order_by(Indicator.indicator_code)
    if criterion_code:
        query = query.where(Indicator.criterion_code == criterion_code)
    if sub_criterion_code:
        query = query.where(Indicator.sub_criterion_code == sub_criterion_code)
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_indicator(db: AsyncSession, indicator_code: str) -> Indicator:
    result = await db.execute(select(Indicator).where(Indicator.indicator_code == indicator_code))
    indicator = result.scalar_one_or_none()
    if indicator is None:
        raise IndicatorNotFoundError(indicator_code)
    return indicator


def list_criteria() -> List[dict]:
    return [CRITERIA_CONFIG[code] for code in sorted(CRITERIA_CONFIG)]

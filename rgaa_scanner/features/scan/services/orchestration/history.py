import logging
from typing import List, Optional

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from rgaa_scanner.features.scan.models.scan_run import ScanRun

logger = logging.getLogger(__name__)


async def get_user_scan_history(
    db: AsyncSession,
    user_id: str,
    limit: int = 50,
    site_id: Optional[str] = None,
) -> List[ScanRun]:
    """Scan runs of a user, most recently started first."""
    query = (
        select(ScanRun)
        .where(ScanRun.user_id == user_id)
        .options(selectinload(ScanRun.site))
        .order_by(desc(ScanRun.started_at), desc(ScanRun.id))
        .limit(limit)
    )
    if site_id:
        query = query.where(ScanRun.site_id == site_id)

    result = await db.execute(query)
    scans = list(result.scalars().all())
    logger.info(f"Found {len(scans)} scans for user {user_id}")
    return scans

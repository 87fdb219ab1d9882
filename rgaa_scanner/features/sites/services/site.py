from typing import Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from rgaa_scanner.features.sites.models.site import Site
from rgaa_scanner.platform.db.base import utcnow


# ─────────────────────────────────────────────────────────────
# Read access used by the scan core. Sites are owned elsewhere.
# ─────────────────────────────────────────────────────────────

async def get_site(db: AsyncSession, site_id: str) -> Optional[Site]:
    result = await db.execute(select(Site).where(Site.id == site_id))
    return result.scalar_one_or_none()


async def mark_site_scanned(db: AsyncSession, site_id: str) -> None:
    """
    Record a completed scan on the site (last_scanned_at, total_scans + 1).
    Does not commit: the caller commits along with the scan results.
    """
    await db.execute(
        update(Site)
        .where(Site.id == site_id)
        .values(last_scanned_at=utcnow(), total_scans=Site.total_scans + 1)
        .execution_options(synchronize_session=False)
    )

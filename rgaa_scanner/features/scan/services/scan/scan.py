import logging
import os
from typing import Callable, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from rgaa_scanner.features.scan.models.scan_issue import AccessibilityIssue
from rgaa_scanner.features.scan.models.scan_run import ACTIVE_SCAN_STATUSES, ScanRun, ScanStatus
from rgaa_scanner.features.scan.services.collaborators import (
    AllowAllQuotaPolicy,
    QuotaPolicy,
    ReportGenerator,
)
from rgaa_scanner.features.scan.services.orchestration.history import get_user_scan_history
from rgaa_scanner.features.sites.services.site import get_site
from rgaa_scanner.platform.config import settings
from rgaa_scanner.platform.exceptions import (
    InactiveSiteError,
    NotFoundError,
    ScanLimitError,
    ScannerError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)

ScanLauncher = Callable[[str], object]


class ScanService:
    """
    Entry points of the scan core used by the API.

    Starting a scan only creates the pending run and hands its id to the
    launcher; the heavy lifting happens in ScanExecutor, outside the request.
    """

    def __init__(
        self,
        db: AsyncSession,
        launcher: Optional[ScanLauncher] = None,
        quota_policy: Optional[QuotaPolicy] = None,
        report_generator: Optional[ReportGenerator] = None,
        max_concurrent_scans: int = settings.SCAN_MAX_CONCURRENT_PER_USER,
    ):
        self.db = db
        self.launcher = launcher
        self.quota_policy = quota_policy or AllowAllQuotaPolicy()
        self.report_generator = report_generator
        self.max_concurrent_scans = max_concurrent_scans

    async def start_scan(self, site_id: str, user_id: str) -> ScanRun:
        """
        Create a pending scan run for a site owned by user_id and launch it.

        Raises:
            NotFoundError: the site does not exist
            UnauthorizedError: the site belongs to another user
            InactiveSiteError: the site is archived or deleted
            ScanLimitError: concurrent requests pushed the user over the limit
        """
        site = await get_site(self.db, site_id)
        if site is None:
            raise NotFoundError("Site not found")
        if site.user_id != user_id:
            raise UnauthorizedError("Not authorized to scan this site")
        if not site.is_active:
            raise InactiveSiteError("Site is not active")

        run = ScanRun(site_id=site.id, user_id=user_id, status=ScanStatus.pending)
        self.db.add(run)
        await self.db.commit()
        await self.db.refresh(run)

        # The gate in can_user_start_scan is a separate read, so two requests
        # can both pass it. Ids are uuid7, so the earliest runs keep their slot.
        ahead = await self.count_active_scans(user_id, up_to_id=run.id)
        if ahead > self.max_concurrent_scans:
            logger.warning(f"Scan {run.id} dropped, user {user_id} over the concurrent scan limit")
            await self.db.delete(run)
            await self.db.commit()
            raise ScanLimitError("Concurrent scan limit reached")

        logger.info(f"Scan {run.id} created for site {site_id}")

        if self.launcher is not None:
            self.launcher(run.id)
        return run

    async def count_active_scans(self, user_id: str, up_to_id: Optional[str] = None) -> int:
        query = (
            select(func.count())
            .select_from(ScanRun)
            .where(ScanRun.user_id == user_id, ScanRun.status.in_(ACTIVE_SCAN_STATUSES))
        )
        if up_to_id is not None:
            query = query.where(ScanRun.id <= up_to_id)
        return await self.db.scalar(query) or 0

    async def can_user_start_scan(self, user_id: str) -> bool:
        """Local concurrency gate composed with the external quota policy."""
        active = await self.count_active_scans(user_id)
        if active >= self.max_concurrent_scans:
            logger.warning(f"User {user_id} reached the concurrent scan limit ({active}/{self.max_concurrent_scans})")
            return False
        return await self.quota_policy.can_start_scan(user_id)

    async def get_scan_result(self, scan_id: str, user_id: Optional[str] = None) -> Optional[ScanRun]:
        """The scan run, or None if it does not exist or belongs to someone else."""
        run = await self.db.get(ScanRun, scan_id)
        if run is None or (user_id is not None and run.user_id != user_id):
            return None
        return run

    async def get_user_scan_history(
        self,
        user_id: str,
        limit: int = 10,
        site_id: Optional[str] = None,
    ) -> List[ScanRun]:
        return await get_user_scan_history(self.db, user_id, limit=limit, site_id=site_id)

    async def _get_owned_scan(self, scan_id: str, user_id: str) -> ScanRun:
        run = await self.get_scan_result(scan_id, user_id)
        if run is None:
            raise NotFoundError("Scan not found")
        return run

    async def generate_report(self, scan_id: str, user_id: str) -> str:
        """
        Path of the report of a completed scan, generated on first request
        and regenerated if the file went missing from storage.
        """
        if self.report_generator is None:
            raise ScannerError("No report generator configured")

        run = await self._get_owned_scan(scan_id, user_id)
        if run.status != ScanStatus.completed:
            raise NotFoundError("Report is only available for completed scans")

        if run.report_path and self.report_generator.exists(run.report_path):
            return run.report_path

        site = await get_site(self.db, run.site_id)
        result = await self.db.execute(
            select(AccessibilityIssue)
            .where(AccessibilityIssue.scan_run_id == run.id)
            .order_by(AccessibilityIssue.detected_at)
        )
        findings = list(result.scalars().all())

        run.report_path = self.report_generator.generate(run, site, findings)
        await self.db.commit()
        return run.report_path

    async def get_report_bytes(self, scan_id: str, user_id: str) -> Tuple[str, bytes]:
        path = await self.generate_report(scan_id, user_id)
        return os.path.basename(path), self.report_generator.read(path)

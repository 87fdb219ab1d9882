"""
Scan execution: crawl -> analyze -> score -> persist.

The executor opens its own database sessions from a session factory, so it
never borrows a request-scoped session that may be closed by the time the
background task runs. A single wall-clock timeout governs the whole run; it is
enforced by `asyncio.wait_for` and polled at every crawl and analysis
iteration so a slow site stops at the next page boundary.
"""
import asyncio
import logging
from typing import Callable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rgaa_scanner.features.scan.models.scan_run import ScanRun, ScanStatus
from rgaa_scanner.features.scan.models.scan_issue import IssueSeverity
from rgaa_scanner.features.scan.schemas.finding import Finding
from rgaa_scanner.features.scan.services.analysis.page_analyzer import AccessibilityAnalyzer
from rgaa_scanner.features.scan.services.analysis.scoring import count_by_severity
from rgaa_scanner.features.scan.services.discovery.page_discovery import CrawlerService
from rgaa_scanner.features.sites.services.site import get_site, mark_site_scanned
from rgaa_scanner.platform.config import settings
from rgaa_scanner.platform.db.base import utcnow
from rgaa_scanner.platform.db.session import SessionLocal
from rgaa_scanner.platform.exceptions import ScanTimeoutError

logger = logging.getLogger(__name__)

NO_PAGES_MESSAGE = "No accessible pages found"
CANCELLED_MESSAGE = "Scan cancelled"


class ScanExecutor:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] = SessionLocal,
        crawler_factory: Callable[[], CrawlerService] = CrawlerService,
        analyzer: Optional[AccessibilityAnalyzer] = None,
        timeout_seconds: float = settings.SCAN_TIMEOUT_SECONDS,
        max_pages: int = settings.SCAN_MAX_PAGES,
        progress_flush_interval: int = settings.SCAN_PROGRESS_FLUSH_INTERVAL,
    ):
        self.session_factory = session_factory
        self.crawler_factory = crawler_factory
        self.analyzer = analyzer or AccessibilityAnalyzer()
        self.timeout_seconds = timeout_seconds
        self.max_pages = max_pages
        self.progress_flush_interval = max(1, progress_flush_interval)

    async def execute(self, scan_id: str) -> None:
        """
        Run one scan to a terminal state. Every failure ends up as
        status=failed with error_message on the scan run, or in the logs when
        even that cannot be written. Cancellation is recorded the same way,
        then re-raised.
        """
        deadline = asyncio.get_running_loop().time() + self.timeout_seconds
        try:
            await asyncio.wait_for(self._run(scan_id, deadline), timeout=self.timeout_seconds)
        except (asyncio.TimeoutError, ScanTimeoutError):
            logger.error(f"Scan {scan_id} timed out after {self.timeout_seconds}s")
            await self._record_failure(scan_id, f"Scan timed out after {self.timeout_seconds:g} seconds")
        except asyncio.CancelledError:
            # e.g. API shutdown with inline dispatch
            logger.warning(f"Scan {scan_id} was cancelled")
            await asyncio.shield(self._record_failure(scan_id, CANCELLED_MESSAGE))
            raise
        except Exception as e:
            logger.exception(f"Scan {scan_id} failed: {e}")
            await self._record_failure(scan_id, f"Internal error: {e}")

    # ── Phases ──────────────────────────────────

    async def _run(self, scan_id: str, deadline: float) -> None:
        async with self.session_factory() as db:
            run = await db.get(ScanRun, scan_id)
            if run is None:
                logger.error(f"Scan run {scan_id} not found")
                return
            if run.status != ScanStatus.pending:
                logger.warning(f"Scan {scan_id} is already {run.status.value}, skipping")
                return

            site = await get_site(db, run.site_id)
            if site is None:
                await self._fail(db, run, "Site not found")
                return
            if not site.is_active:
                await self._fail(db, run, "Site is not active")
                return

            logger.info(f"Starting scan {scan_id} for {site.root_url}")
            run.status = ScanStatus.running
            await db.commit()

            async with self.crawler_factory() as crawler:
                logger.info(f"Scan {scan_id} phase 1: crawling {site.root_url}")
                try:
                    urls = await crawler.crawl(
                        site.root_url,
                        max_depth=site.max_depth,
                        include_subdomains=site.include_subdomains,
                        should_stop=lambda: _deadline_passed(deadline),
                    )
                except Exception as e:
                    logger.exception(f"Crawl failed for scan {scan_id}")
                    await self._fail(db, run, f"Crawl failed: {e}")
                    return

                _check_deadline(deadline)
                if not urls:
                    await self._fail(db, run, NO_PAGES_MESSAGE)
                    return

                logger.info(f"Scan {scan_id} phase 2: analyzing {min(len(urls), self.max_pages)} of {len(urls)} pages")
                findings, pages_scanned = await self._analyze_pages(db, run, crawler, urls, deadline)

            logger.info(f"Scan {scan_id} phase 3: scoring")
            await self._finalize(db, run, findings, pages_scanned)

    async def _analyze_pages(
        self,
        db: AsyncSession,
        run: ScanRun,
        crawler: CrawlerService,
        urls: List[str],
        deadline: float,
    ):
        findings: List[Finding] = []
        pages_scanned = 0

        # Discovery order decides which pages make the cut
        for url in urls[: self.max_pages]:
            _check_deadline(deadline)
            try:
                content = await crawler.fetch_content(url)
                if content and content.strip():
                    page_findings = await asyncio.to_thread(self.analyzer.analyze, url, content)
                    findings.extend(finding.with_scan_run(run.id) for finding in page_findings)
                    logger.debug(f"Page analyzed: {url} - {len(page_findings)} issues")
                else:
                    logger.debug(f"Page {url} returned no content")
            except Exception as e:
                logger.warning(f"Error analyzing {url}: {e}")
                continue

            pages_scanned += 1
            if pages_scanned % self.progress_flush_interval == 0:
                run.pages_scanned = pages_scanned
                await db.commit()

        return findings, pages_scanned

    async def _finalize(self, db: AsyncSession, run: ScanRun, findings: List[Finding], pages_scanned: int) -> None:
        score = self.analyzer.score(findings, pages_scanned)
        grade = self.analyzer.grade(score)
        counts = count_by_severity(findings)

        db.add_all([finding.to_record() for finding in findings])

        run.pages_scanned = pages_scanned
        run.score = score
        run.grade = grade
        run.critical_issues = counts[IssueSeverity.critical]
        run.warning_issues = counts[IssueSeverity.warning]
        run.info_issues = counts[IssueSeverity.info]
        run.total_issues = sum(counts.values())
        run.status = ScanStatus.completed
        run.completed_at = utcnow()

        await mark_site_scanned(db, run.site_id)
        await db.commit()

        logger.info(
            f"Scan {run.id} completed: score {score}/100, grade {grade.value}, "
            f"{run.total_issues} issues on {pages_scanned} pages"
        )

    # ── Failure handling ────────────────────────

    async def _fail(self, db: AsyncSession, run: ScanRun, message: str) -> None:
        logger.error(f"Scan {run.id} failed: {message}")
        run.status = ScanStatus.failed
        run.error_message = message
        run.completed_at = utcnow()
        await db.commit()

    async def _record_failure(self, scan_id: str, message: str) -> None:
        """Mark the run failed from a fresh session; if that fails too, only log."""
        try:
            async with self.session_factory() as db:
                run = await db.get(ScanRun, scan_id)
                if run is None or run.is_terminal:
                    return
                await self._fail(db, run, message)
        except Exception:
            logger.exception(f"Could not record failure of scan {scan_id}")


def _deadline_passed(deadline: float) -> bool:
    return asyncio.get_running_loop().time() >= deadline


def _check_deadline(deadline: float) -> None:
    if _deadline_passed(deadline):
        raise ScanTimeoutError("Scan timed out")

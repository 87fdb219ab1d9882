import asyncio

import httpx
import pytest
from sqlalchemy import select

from rgaa_scanner.features.scan.models.scan_issue import AccessibilityIssue, IssueSeverity
from rgaa_scanner.features.scan.models.scan_run import AccessibilityGrade, ScanRun, ScanStatus
from rgaa_scanner.features.scan.services.discovery.page_discovery import CrawlerService
from rgaa_scanner.features.scan.services.orchestration.executor import (
    CANCELLED_MESSAGE,
    NO_PAGES_MESSAGE,
    ScanExecutor,
)
from rgaa_scanner.features.scan.services.scan.scan import ScanService
from rgaa_scanner.features.sites.models.site import Site, SiteStatus


def untitled_page(*hrefs: str) -> str:
    """Has lang and main, but no <title> and one image without alt."""
    links = "".join(f'<a href="{href}">Go to {href.strip("/")} page</a>' for href in hrefs)
    return f'<html lang="en"><head></head><body><main><img src="/photo.jpg">{links}</main></body></html>'


THREE_PAGE_SITE = {
    "https://example.com/": untitled_page("/about", "/contact"),
    "https://example.com/about": untitled_page("/"),
    "https://example.com/contact": untitled_page("/about"),
}


@pytest.fixture
def executor_for(session_factory):
    def _executor_for(transport: httpx.MockTransport, **kwargs) -> ScanExecutor:
        return ScanExecutor(
            session_factory=session_factory,
            crawler_factory=lambda: CrawlerService(client=httpx.AsyncClient(transport=transport)),
            **kwargs,
        )

    return _executor_for


@pytest.fixture
async def pending_run(db, make_site):
    async def _pending_run(**site_kwargs) -> ScanRun:
        site = await make_site(**site_kwargs)
        run = ScanRun(site_id=site.id, user_id=site.user_id, status=ScanStatus.pending)
        db.add(run)
        await db.commit()
        return run

    return _pending_run


async def reload_run(session_factory, scan_id: str) -> ScanRun:
    async with session_factory() as session:
        return await session.get(ScanRun, scan_id)


@pytest.mark.asyncio
async def test_end_to_end_scan_of_three_pages(session_factory, executor_for, pending_run, site_transport):
    run = await pending_run()

    await executor_for(site_transport(THREE_PAGE_SITE)).execute(run.id)

    result = await reload_run(session_factory, run.id)
    assert result.status == ScanStatus.completed
    assert result.error_message is None
    assert result.completed_at is not None
    assert result.pages_scanned == 3
    assert result.total_issues == 6
    assert result.critical_issues == 6
    assert result.warning_issues == 0
    assert result.info_issues == 0
    assert result.total_issues == result.critical_issues + result.warning_issues + result.info_issues
    assert result.score < 100
    assert result.score == 60
    assert result.grade == AccessibilityGrade.D

    async with session_factory() as session:
        issues = (await session.execute(
            select(AccessibilityIssue).where(AccessibilityIssue.scan_run_id == run.id)
        )).scalars().all()
        site = await session.get(Site, result.site_id)

    assert sorted(issue.rule_id for issue in issues) == ["RGAA_1_1"] * 3 + ["RGAA_8_5"] * 3
    assert all(issue.severity == IssueSeverity.critical for issue in issues)
    assert {issue.page_url for issue in issues} == set(THREE_PAGE_SITE)
    assert site.total_scans == 1
    assert site.last_scanned_at is not None


@pytest.mark.asyncio
async def test_empty_crawl_fails_the_scan(session_factory, executor_for, pending_run, site_transport):
    run = await pending_run()

    await executor_for(site_transport({})).execute(run.id)

    result = await reload_run(session_factory, run.id)
    assert result.status == ScanStatus.failed
    assert result.error_message == NO_PAGES_MESSAGE
    assert result.completed_at is not None


@pytest.mark.asyncio
async def test_inactive_site_fails_the_scan(session_factory, executor_for, pending_run, site_transport):
    run = await pending_run(status=SiteStatus.archived)

    await executor_for(site_transport(THREE_PAGE_SITE)).execute(run.id)

    result = await reload_run(session_factory, run.id)
    assert result.status == ScanStatus.failed
    assert result.error_message
    assert result.completed_at is not None


@pytest.mark.asyncio
async def test_pages_that_fail_during_analysis_are_skipped(session_factory, executor_for, pending_run):
    gets = {}

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if request.method == "HEAD":
            return httpx.Response(200)
        gets[path] = gets.get(path, 0) + 1
        # /flaky answers the crawl, then breaks when it is fetched for analysis
        if path == "/flaky" and gets[path] > 1:
            return httpx.Response(503)
        if path == "/":
            return httpx.Response(200, text=untitled_page("/flaky", "/ok"))
        return httpx.Response(200, text=untitled_page())

    run = await pending_run()
    await executor_for(httpx.MockTransport(handler)).execute(run.id)

    result = await reload_run(session_factory, run.id)
    assert result.status == ScanStatus.completed
    assert result.pages_scanned == 2
    assert result.total_issues == 4


@pytest.mark.asyncio
async def test_empty_pages_count_as_scanned_without_findings(session_factory, executor_for, pending_run):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "HEAD":
            return httpx.Response(200)
        if request.url.path == "/":
            return httpx.Response(200, text=untitled_page("/blank"))
        return httpx.Response(200, text="   ")

    run = await pending_run()
    await executor_for(httpx.MockTransport(handler)).execute(run.id)

    result = await reload_run(session_factory, run.id)
    assert result.status == ScanStatus.completed
    assert result.pages_scanned == 2
    assert result.total_issues == 2


@pytest.mark.asyncio
async def test_analysis_is_capped_at_max_pages(session_factory, executor_for, pending_run, site_transport):
    pages = {"https://example.com/": untitled_page(*(f"/p{i}" for i in range(8)))}
    pages.update({f"https://example.com/p{i}": untitled_page() for i in range(8)})
    run = await pending_run()

    await executor_for(site_transport(pages), max_pages=4, progress_flush_interval=2).execute(run.id)

    result = await reload_run(session_factory, run.id)
    assert result.status == ScanStatus.completed
    assert result.pages_scanned == 4
    assert result.total_issues == 8


@pytest.mark.asyncio
async def test_scan_times_out(session_factory, executor_for, pending_run):
    async def handler(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(5)
        return httpx.Response(200, text=untitled_page())

    run = await pending_run()
    await executor_for(httpx.MockTransport(handler), timeout_seconds=0.2).execute(run.id)

    result = await reload_run(session_factory, run.id)
    assert result.status == ScanStatus.failed
    assert "timed out" in result.error_message
    assert result.completed_at is not None


@pytest.mark.asyncio
async def test_unexpected_errors_are_recorded_on_the_run(session_factory, pending_run):
    class ExplodingCrawler:
        async def __aenter__(self):
            raise RuntimeError("boom")

        async def __aexit__(self, *exc):
            return False

    run = await pending_run()
    await ScanExecutor(session_factory=session_factory, crawler_factory=ExplodingCrawler).execute(run.id)

    result = await reload_run(session_factory, run.id)
    assert result.status == ScanStatus.failed
    assert "boom" in result.error_message
    assert result.completed_at is not None


@pytest.mark.asyncio
async def test_terminal_runs_are_not_executed_again(session_factory, executor_for, pending_run, site_transport, db):
    run = await pending_run()
    run.status = ScanStatus.failed
    run.error_message = "Earlier failure"
    await db.commit()

    await executor_for(site_transport(THREE_PAGE_SITE)).execute(run.id)

    result = await reload_run(session_factory, run.id)
    assert result.status == ScanStatus.failed
    assert result.error_message == "Earlier failure"


@pytest.mark.asyncio
async def test_missing_run_is_logged_not_raised(executor_for, site_transport, session_factory):
    await executor_for(site_transport({})).execute("does-not-exist")


@pytest.mark.asyncio
async def test_progress_is_visible_while_the_scan_runs(session_factory, executor_for, pending_run):
    paused = asyncio.Event()
    release = asyncio.Event()
    gets = {}

    async def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "HEAD":
            return httpx.Response(200)
        path = request.url.path
        gets[path] = gets.get(path, 0) + 1
        # Hold the analysis fetch of the third page
        if path == "/p1" and gets[path] == 2:
            paused.set()
            await release.wait()
        if path == "/":
            return httpx.Response(200, text=untitled_page("/p0", "/p1", "/p2", "/p3"))
        return httpx.Response(200, text=untitled_page())

    run = await pending_run()
    executor = executor_for(httpx.MockTransport(handler), progress_flush_interval=2)
    task = asyncio.create_task(executor.execute(run.id))

    await asyncio.wait_for(paused.wait(), timeout=5)
    in_flight = await reload_run(session_factory, run.id)
    release.set()
    await task

    assert in_flight.status == ScanStatus.running
    assert in_flight.pages_scanned == 2
    assert in_flight.completed_at is None

    result = await reload_run(session_factory, run.id)
    assert result.status == ScanStatus.completed
    assert result.pages_scanned == 5


@pytest.mark.asyncio
async def test_cancelled_scan_is_recorded_as_failed(session_factory, executor_for, pending_run, db):
    started = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        started.set()
        await asyncio.sleep(30)
        return httpx.Response(200, text=untitled_page())

    run = await pending_run()
    task = asyncio.create_task(executor_for(httpx.MockTransport(handler)).execute(run.id))

    await asyncio.wait_for(started.wait(), timeout=5)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    result = await reload_run(session_factory, run.id)
    assert result.status == ScanStatus.failed
    assert result.error_message == CANCELLED_MESSAGE
    assert result.completed_at is not None

    service = ScanService(db, max_concurrent_scans=1)
    assert await service.can_user_start_scan(result.user_id) is True

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from rgaa_scanner.features.scan.models.scan_issue import IssueSeverity
from rgaa_scanner.features.scan.models.scan_run import ScanRun, ScanStatus
from rgaa_scanner.features.scan.schemas.issue import IssueItem, IssueSummaryResponse
from rgaa_scanner.features.scan.schemas.scan import (
    ScanHistoryItem,
    ScanHistoryResponse,
    ScanRunResponse,
    ScanStartRequest,
    ScanStatusResponse,
    SiteSummary,
)
from rgaa_scanner.features.scan.services.collaborators import AllowAllQuotaPolicy, QuotaPolicy
from rgaa_scanner.features.scan.services.issue.issue_service import (
    format_finding,
    get_findings_for_scan,
    summarize_findings,
)
from rgaa_scanner.features.scan.services.orchestration.progress import calculate_progress
from rgaa_scanner.features.scan.services.report.report_generator import TextReportGenerator
from rgaa_scanner.features.scan.services.scan.scan import ScanService
from rgaa_scanner.features.scan.workers.tasks import launch_scan
from rgaa_scanner.platform.db.session import get_db
from rgaa_scanner.platform.exceptions import NotFoundError, ScanLimitError
from rgaa_scanner.platform.identity import get_current_user_id
from rgaa_scanner.platform.logger import get_logger
from rgaa_scanner.platform.response import api_response, paginated_response

logger = get_logger(__name__)

router = APIRouter(prefix="/scans", tags=["scans"])


def get_quota_policy() -> QuotaPolicy:
    return AllowAllQuotaPolicy()


def get_scan_service(
    db: AsyncSession = Depends(get_db),
    quota_policy: QuotaPolicy = Depends(get_quota_policy),
) -> ScanService:
    return ScanService(
        db,
        launcher=launch_scan,
        quota_policy=quota_policy,
        report_generator=TextReportGenerator(),
    )


def _run_response(run: ScanRun) -> ScanRunResponse:
    completed = run.status == ScanStatus.completed
    return ScanRunResponse(
        scan_id=run.id,
        site_id=run.site_id,
        status=run.status.value,
        started_at=run.started_at,
        completed_at=run.completed_at,
        pages_scanned=run.pages_scanned,
        score=run.score if completed else None,
        grade=run.grade.value if run.grade else None,
        total_issues=run.total_issues,
        critical_issues=run.critical_issues,
        warning_issues=run.warning_issues,
        info_issues=run.info_issues,
        error_message=run.error_message,
        has_report=bool(run.report_path),
    )


async def _owned_scan(service: ScanService, scan_id: str, user_id: str) -> ScanRun:
    run = await service.get_scan_result(scan_id, user_id)
    if run is None:
        raise NotFoundError("Scan not found")
    return run


@router.post("/start")
async def start_scan(
    payload: ScanStartRequest,
    user_id: str = Depends(get_current_user_id),
    service: ScanService = Depends(get_scan_service),
):
    if not await service.can_user_start_scan(user_id):
        raise ScanLimitError("Concurrent scan limit reached or scan quota exhausted")

    run = await service.start_scan(payload.site_id, user_id)
    logger.info(f"User {user_id} started scan {run.id} on site {payload.site_id}")

    return api_response(
        data=_run_response(run),
        message="Scan started",
        status_code=status.HTTP_202_ACCEPTED,
    )


@router.get("")
async def get_scan_history(
    limit: int = Query(10, ge=1, le=100),
    site_id: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
    service: ScanService = Depends(get_scan_service),
):
    runs = await service.get_user_scan_history(user_id, limit=limit, site_id=site_id)
    items = [
        ScanHistoryItem(
            scan_id=run.id,
            status=run.status.value,
            score=run.score if run.status == ScanStatus.completed else None,
            grade=run.grade.value if run.grade else None,
            pages_scanned=run.pages_scanned,
            started_at=run.started_at,
            completed_at=run.completed_at,
            site=SiteSummary(id=run.site.id, root_url=run.site.root_url) if run.site else None,
        )
        for run in runs
    ]
    return api_response(
        data=ScanHistoryResponse(scans=items, count=len(items)),
        message="Scan history retrieved",
    )


@router.get("/{scan_id}/status")
async def get_scan_status(
    scan_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ScanService = Depends(get_scan_service),
):
    run = await _owned_scan(service, scan_id, user_id)
    return api_response(
        data=ScanStatusResponse(
            scan_id=run.id,
            status=run.status.value,
            pages_scanned=run.pages_scanned,
            progress=calculate_progress(run),
            error_message=run.error_message,
            started_at=run.started_at,
            completed_at=run.completed_at,
        ),
        message="Scan status retrieved",
    )


@router.get("/{scan_id}")
async def get_scan(
    scan_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ScanService = Depends(get_scan_service),
):
    run = await _owned_scan(service, scan_id, user_id)
    return api_response(data=_run_response(run), message="Scan retrieved")


@router.get("/{scan_id}/issues")
async def get_scan_issues(
    scan_id: str,
    severity: Optional[IssueSeverity] = None,
    rule: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    service: ScanService = Depends(get_scan_service),
):
    run = await _owned_scan(service, scan_id, user_id)
    items, total = await get_findings_for_scan(
        service.db, run.id, severity=severity, rule=rule, page=page, page_size=page_size
    )
    return paginated_response(
        items=[IssueItem(**format_finding(item)) for item in items],
        total_count=total,
        page=page,
        page_size=page_size,
        message="Scan issues retrieved",
    )


@router.get("/{scan_id}/summary")
async def get_scan_summary(
    scan_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ScanService = Depends(get_scan_service),
):
    run = await _owned_scan(service, scan_id, user_id)
    summary = await summarize_findings(service.db, run.id)
    return api_response(
        data=IssueSummaryResponse(scan_id=run.id, **summary),
        message="Scan summary retrieved",
    )


@router.get("/{scan_id}/report")
async def download_report(
    scan_id: str,
    user_id: str = Depends(get_current_user_id),
    service: ScanService = Depends(get_scan_service),
):
    file_name, content = await service.get_report_bytes(scan_id, user_id)
    return Response(
        content=content,
        media_type="text/plain; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
    )

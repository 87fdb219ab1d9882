from rgaa_scanner.features.scan.models.scan_run import ScanRun, ScanStatus
from rgaa_scanner.platform.config import settings

PENDING_PROGRESS = 5
RUNNING_CRAWL_PROGRESS = 15
ANALYSIS_BASE_PROGRESS = 40
ANALYSIS_SPAN = 50
MAX_RUNNING_PROGRESS = 95


def calculate_progress(run: ScanRun, max_pages: int = settings.SCAN_MAX_PAGES) -> int:
    """
    Rough completion percentage for status polling.

    A running scan with no analyzed page is still crawling; afterwards progress
    moves from 40 to 90 with the pages analyzed, capped at 95 until completion.
    """
    if run.status == ScanStatus.pending:
        return PENDING_PROGRESS
    if run.status == ScanStatus.completed:
        return 100
    if run.status == ScanStatus.failed:
        return 0

    pages = run.pages_scanned or 0
    if pages <= 0:
        return RUNNING_CRAWL_PROGRESS
    pages = min(pages, max_pages)
    return min(MAX_RUNNING_PROGRESS, ANALYSIS_BASE_PROGRESS + pages * ANALYSIS_SPAN // max_pages)

import pytest

from rgaa_scanner.features.scan.models.scan_run import ScanRun, ScanStatus
from rgaa_scanner.features.scan.services.orchestration.progress import calculate_progress


@pytest.mark.parametrize("status,pages,expected", [
    (ScanStatus.pending, 0, 5),
    (ScanStatus.running, 0, 15),
    (ScanStatus.running, 1, 41),
    (ScanStatus.running, 25, 65),
    (ScanStatus.running, 50, 90),
    (ScanStatus.running, 500, 90),
    (ScanStatus.completed, 12, 100),
    (ScanStatus.failed, 12, 0),
])
def test_calculate_progress(status, pages, expected):
    run = ScanRun(status=status, pages_scanned=pages)
    assert calculate_progress(run, max_pages=50) == expected


def test_progress_never_reaches_100_while_running():
    run = ScanRun(status=ScanStatus.running, pages_scanned=4)
    assert calculate_progress(run, max_pages=4) == 90
    assert calculate_progress(run, max_pages=1) <= 95

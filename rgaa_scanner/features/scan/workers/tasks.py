"""
Background dispatch of scan runs.

`launch_scan` is what the API hands to ScanService: depending on
SCAN_DISPATCH it either schedules the executor on the running event loop or
enqueues `run_scan_pipeline` on the Celery worker.
"""
import asyncio
import logging
from typing import Callable, Optional, Set

from rgaa_scanner.features.scan.services.orchestration.executor import ScanExecutor
from rgaa_scanner.platform.celery_app import celery_app
from rgaa_scanner.platform.config import settings
from rgaa_scanner.platform.db.session import create_session_factory

logger = logging.getLogger(__name__)

# Strong references to in-flight inline scans, the loop only keeps weak ones
_background_tasks: Set[asyncio.Task] = set()


def launch_inline(scan_id: str, executor: Optional[ScanExecutor] = None) -> asyncio.Task:
    executor = executor or ScanExecutor()
    task = asyncio.get_running_loop().create_task(executor.execute(scan_id), name=f"scan-{scan_id}")
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    logger.info(f"Scan {scan_id} scheduled in-process")
    return task


def launch_celery(scan_id: str):
    result = run_scan_pipeline.apply_async(args=[scan_id])
    logger.info(f"Scan {scan_id} enqueued as celery task {result.id}")
    return result


def get_scan_launcher(dispatch: Optional[str] = None) -> Callable[[str], object]:
    dispatch = dispatch or settings.SCAN_DISPATCH
    if dispatch == "celery":
        return launch_celery
    return launch_inline


def launch_scan(scan_id: str):
    return get_scan_launcher()(scan_id)


async def _execute_in_worker(scan_id: str) -> None:
    # Each task runs in its own event loop, so it gets its own engine
    executor = ScanExecutor(session_factory=create_session_factory(settings.DATABASE_URL))
    await executor.execute(scan_id)


@celery_app.task(
    name="rgaa_scanner.features.scan.workers.tasks.run_scan_pipeline",
    bind=True,
)
def run_scan_pipeline(self, scan_id: str):
    """Celery entry point: run one scan to a terminal state."""
    logger.info(f"Celery task {self.request.id} running scan {scan_id}")
    asyncio.run(_execute_in_worker(scan_id))
    return {"scan_id": scan_id}

"""Plain-text audit report written to local storage."""
import logging
import os
from typing import Optional, Sequence

from jinja2 import Environment, FileSystemLoader

from rgaa_scanner.features.scan.models.scan_issue import AccessibilityIssue
from rgaa_scanner.features.scan.models.scan_run import ScanRun
from rgaa_scanner.features.scan.services.issue.issue_service import rule_stats_from_findings
from rgaa_scanner.features.sites.models.site import Site
from rgaa_scanner.platform.config import settings
from rgaa_scanner.platform.db.base import utcnow

logger = logging.getLogger(__name__)

current_dir = os.path.dirname(os.path.abspath(__file__))
template_dir = os.path.join(current_dir, "../../template")

env = Environment(loader=FileSystemLoader(template_dir), keep_trailing_newline=True)

REPORT_TEMPLATE = "report.txt.j2"


class TextReportGenerator:
    def __init__(self, storage_path: Optional[str] = None):
        self.storage_path = storage_path or settings.REPORTS_STORAGE_PATH

    def render(self, run: ScanRun, site: Optional[Site], findings: Sequence[AccessibilityIssue]) -> str:
        template = env.get_template(REPORT_TEMPLATE)
        return template.render(
            run=run,
            site=site,
            findings=findings,
            rule_stats=rule_stats_from_findings(findings),
            app_name=settings.APP_NAME,
        )

    def generate(self, run: ScanRun, site: Optional[Site], findings: Sequence[AccessibilityIssue]) -> str:
        os.makedirs(self.storage_path, exist_ok=True)
        file_name = f"rgaa-report-{run.id}-{utcnow().strftime('%Y%m%d%H%M%S')}.txt"
        file_path = os.path.join(self.storage_path, file_name)

        content = self.render(run, site, findings)
        with open(file_path, "w", encoding="utf-8") as f:
            f.write(content)

        logger.info(f"Report generated for scan {run.id}: {file_path}")
        return file_path

    def exists(self, path: Optional[str]) -> bool:
        return bool(path) and os.path.isfile(path)

    def read(self, path: str) -> bytes:
        if not self.exists(path):
            raise FileNotFoundError(f"Report {path} does not exist")
        with open(path, "rb") as f:
            return f.read()

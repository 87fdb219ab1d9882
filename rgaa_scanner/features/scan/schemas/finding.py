"""
Finding value object produced by the accessibility analyzer.

Findings are immutable. The orchestrator tags them with the owning scan run
(`with_scan_run`) and converts them to ORM rows only when the run completes.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from rgaa_scanner.features.scan.models.scan_issue import AccessibilityIssue, IssueSeverity
from rgaa_scanner.platform.db.base import utcnow


class Finding(BaseModel):
    model_config = ConfigDict(frozen=True)

    rule_id: str
    title: str
    description: str
    severity: IssueSeverity
    page_url: str
    element_selector: Optional[str] = None
    element_html: Optional[str] = None
    fix_suggestion: Optional[str] = None
    code_example: Optional[str] = None
    detected_at: datetime = Field(default_factory=utcnow)
    scan_run_id: Optional[str] = None

    def with_scan_run(self, scan_run_id: str) -> "Finding":
        return self.model_copy(update={"scan_run_id": scan_run_id})

    def to_record(self) -> AccessibilityIssue:
        if self.scan_run_id is None:
            raise ValueError("Finding must be tagged with a scan run before it is persisted")
        return AccessibilityIssue(
            scan_run_id=self.scan_run_id,
            rule_id=self.rule_id,
            title=self.title,
            description=self.description,
            severity=self.severity,
            page_url=self.page_url,
            element_selector=self.element_selector,
            element_html=self.element_html,
            fix_suggestion=self.fix_suggestion,
            code_example=self.code_example,
            detected_at=self.detected_at,
        )

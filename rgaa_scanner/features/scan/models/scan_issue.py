from sqlalchemy import Column, String, Text, DateTime, ForeignKey, Index, Enum
from sqlalchemy.orm import relationship
import enum

from rgaa_scanner.platform.db.base import BaseModel, utcnow


class IssueSeverity(enum.Enum):
    """Ordinal impact of a finding, most severe first"""
    critical = "critical"
    warning = "warning"
    info = "info"


class AccessibilityIssue(BaseModel):
    """
    Persisted finding: one rule violation detected on one page of a scan run.

    Rows are written once when the run completes and never updated.
    """
    __tablename__ = "accessibility_issues"

    scan_run_id = Column(String, ForeignKey("scan_runs.id", ondelete="CASCADE"), nullable=False, index=True)

    rule_id = Column(String(32), nullable=False, index=True)  # e.g. RGAA_1_1
    title = Column(String(512), nullable=False)
    description = Column(Text, nullable=False)
    severity = Column(Enum(IssueSeverity), nullable=False, index=True)
    page_url = Column(String(2048), nullable=False)

    # Element context (if applicable)
    element_selector = Column(String(512), nullable=True)
    element_html = Column(Text, nullable=True)

    fix_suggestion = Column(Text, nullable=True)
    code_example = Column(Text, nullable=True)
    detected_at = Column(DateTime, default=utcnow, nullable=False)

    scan_run = relationship("ScanRun", back_populates="findings", lazy="noload")

    __table_args__ = (
        Index("idx_accessibility_issues_run_rule", "scan_run_id", "rule_id"),
    )

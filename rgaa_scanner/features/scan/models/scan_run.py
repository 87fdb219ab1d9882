from sqlalchemy import Column, String, Integer, DateTime, Text, ForeignKey, Index, Enum
from sqlalchemy.orm import relationship
import enum

from rgaa_scanner.platform.db.base import BaseModel, utcnow


class ScanStatus(enum.Enum):
    """Scan run state machine: pending -> running -> completed | failed"""
    pending = "pending"
    running = "running"
    completed = "completed"
    failed = "failed"


ACTIVE_SCAN_STATUSES = (ScanStatus.pending, ScanStatus.running)
TERMINAL_SCAN_STATUSES = (ScanStatus.completed, ScanStatus.failed)


class AccessibilityGrade(enum.Enum):
    """Letter grades, best first. Thresholds live in the scoring module."""
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"
    F = "F"


class ScanRun(BaseModel):
    """
    One execution of the crawl -> analyze -> score pipeline against one site.

    Invariants once completed: total_issues == critical + warning + info.
    completed_at is set iff the run is completed or failed.
    """
    __tablename__ = "scan_runs"

    site_id = Column(String, ForeignKey("sites.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)

    site = relationship("Site", back_populates="scan_runs", lazy="noload")
    findings = relationship(
        "AccessibilityIssue",
        back_populates="scan_run",
        cascade="all, delete-orphan",
        lazy="noload",
    )

    # Job status (state machine)
    status = Column(Enum(ScanStatus), default=ScanStatus.pending, nullable=False, index=True)
    error_message = Column(Text, nullable=True)

    # Progress
    pages_scanned = Column(Integer, default=0, nullable=False)

    # Results (meaningful only when completed)
    score = Column(Integer, default=0, nullable=False)  # 0-100
    grade = Column(Enum(AccessibilityGrade), nullable=True)

    # Issue counts (denormalized)
    total_issues = Column(Integer, default=0, nullable=False)
    critical_issues = Column(Integer, default=0, nullable=False)
    warning_issues = Column(Integer, default=0, nullable=False)
    info_issues = Column(Integer, default=0, nullable=False)

    report_path = Column(String(1024), nullable=True)

    started_at = Column(DateTime, default=utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("idx_scan_runs_user_status", "user_id", "status"),
        Index("idx_scan_runs_user_started", "user_id", "started_at"),
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_SCAN_STATUSES

"""
Scan Schemas

Request and response models for the scan API endpoints.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict


class ScanStartRequest(BaseModel):
    """Request to start a scan of a registered site."""
    site_id: str

    model_config = ConfigDict(
        json_schema_extra={"example": {"site_id": "0190a3c2-7f1e-7c4a-9d1b-5e2f3a4b6c7d"}}
    )


class SiteSummary(BaseModel):
    id: str
    root_url: str


class ScanStatusResponse(BaseModel):
    """Polling view of a scan run."""
    scan_id: str
    status: str
    pages_scanned: int
    progress: int
    error_message: Optional[str] = None
    started_at: datetime
    completed_at: Optional[datetime] = None


class ScanRunResponse(BaseModel):
    """Full record of a scan run."""
    scan_id: str
    site_id: str
    status: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    pages_scanned: int
    score: Optional[int] = None
    grade: Optional[str] = None
    total_issues: int
    critical_issues: int
    warning_issues: int
    info_issues: int
    error_message: Optional[str] = None
    has_report: bool = False


class ScanHistoryItem(BaseModel):
    scan_id: str
    status: str
    score: Optional[int] = None
    grade: Optional[str] = None
    pages_scanned: int
    started_at: datetime
    completed_at: Optional[datetime] = None
    site: Optional[SiteSummary] = None


class ScanHistoryResponse(BaseModel):
    scans: List[ScanHistoryItem]
    count: int

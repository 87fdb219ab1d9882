"""
Issue Schemas

Response models for the findings of a scan.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class IssueItem(BaseModel):
    id: str
    rule_id: str
    rule_name: str
    title: str
    description: str
    severity: str
    page_url: str
    element_selector: Optional[str] = None
    element_html: Optional[str] = None
    fix_suggestion: Optional[str] = None
    code_example: Optional[str] = None
    detected_at: datetime


class RuleStat(BaseModel):
    rule_id: str
    rule_name: str
    count: int
    severity: str


class IssueSummaryResponse(BaseModel):
    scan_id: str
    total: int
    critical: int
    warning: int
    info: int
    by_rule: List[RuleStat]

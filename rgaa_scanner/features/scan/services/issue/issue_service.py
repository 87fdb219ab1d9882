"""
Issue Service

Queries and formatting for the findings persisted with a scan run.
"""
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from rgaa_scanner.features.scan.models.scan_issue import AccessibilityIssue, IssueSeverity
from rgaa_scanner.features.scan.services.analysis.rules import RULE_NAMES

# Most severe first when listing findings
_SEVERITY_ORDER = case(
    (AccessibilityIssue.severity == IssueSeverity.critical, 0),
    (AccessibilityIssue.severity == IssueSeverity.warning, 1),
    else_=2,
)


async def get_findings_for_scan(
    db: AsyncSession,
    scan_id: str,
    severity: Optional[IssueSeverity] = None,
    rule: Optional[str] = None,
    page: int = 1,
    page_size: int = 20,
) -> Tuple[List[AccessibilityIssue], int]:
    """
    One page of the findings of a scan, most severe first.

    Args:
        severity: keep only this severity
        rule: keep only this rule id (case-insensitive, e.g. "rgaa_1_1")
        page: 1-based page number
        page_size: items per page

    Returns:
        (items, total) where total counts every finding matching the filters
    """
    filters = [AccessibilityIssue.scan_run_id == scan_id]
    if severity is not None:
        filters.append(AccessibilityIssue.severity == severity)
    if rule:
        filters.append(func.upper(AccessibilityIssue.rule_id) == rule.strip().upper())

    total = await db.scalar(select(func.count()).select_from(AccessibilityIssue).where(*filters))

    page = max(page, 1)
    query = (
        select(AccessibilityIssue)
        .where(*filters)
        .order_by(_SEVERITY_ORDER, AccessibilityIssue.detected_at, AccessibilityIssue.page_url)
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(query)
    return list(result.scalars().all()), total or 0


def rule_stats_from_findings(findings: Sequence[AccessibilityIssue]) -> List[Dict[str, Any]]:
    """Per-rule counts, most frequent rule first."""
    stats: Dict[str, Dict[str, Any]] = {}
    for finding in findings:
        entry = stats.get(finding.rule_id)
        if entry is None:
            entry = stats[finding.rule_id] = {
                "rule_id": finding.rule_id,
                "rule_name": RULE_NAMES.get(finding.rule_id, finding.rule_id),
                "count": 0,
                "severity": finding.severity.value,
            }
        entry["count"] += 1
    return sorted(stats.values(), key=lambda s: (-s["count"], s["rule_id"]))


async def summarize_findings(db: AsyncSession, scan_id: str) -> Dict[str, Any]:
    query = (
        select(AccessibilityIssue.rule_id, AccessibilityIssue.severity, func.count())
        .where(AccessibilityIssue.scan_run_id == scan_id)
        .group_by(AccessibilityIssue.rule_id, AccessibilityIssue.severity)
    )
    rows = (await db.execute(query)).all()

    by_severity = {severity: 0 for severity in IssueSeverity}
    by_rule: Dict[str, Dict[str, Any]] = {}
    for rule_id, severity, count in rows:
        by_severity[severity] += count
        entry = by_rule.setdefault(rule_id, {
            "rule_id": rule_id,
            "rule_name": RULE_NAMES.get(rule_id, rule_id),
            "count": 0,
            "severity": severity.value,
        })
        entry["count"] += count

    return {
        "total": sum(by_severity.values()),
        "critical": by_severity[IssueSeverity.critical],
        "warning": by_severity[IssueSeverity.warning],
        "info": by_severity[IssueSeverity.info],
        "by_rule": sorted(by_rule.values(), key=lambda s: (-s["count"], s["rule_id"])),
    }


def format_finding(issue: AccessibilityIssue) -> Dict[str, Any]:
    return {
        "id": issue.id,
        "rule_id": issue.rule_id,
        "rule_name": RULE_NAMES.get(issue.rule_id, issue.rule_id),
        "title": issue.title,
        "description": issue.description,
        "severity": issue.severity.value,
        "page_url": issue.page_url,
        "element_selector": issue.element_selector,
        "element_html": issue.element_html,
        "fix_suggestion": issue.fix_suggestion,
        "code_example": issue.code_example,
        "detected_at": issue.detected_at,
    }

from datetime import timedelta

import pytest

from rgaa_scanner.features.scan.models.scan_issue import AccessibilityIssue, IssueSeverity
from rgaa_scanner.features.scan.models.scan_run import ScanRun, ScanStatus
from rgaa_scanner.features.scan.services.issue.issue_service import (
    format_finding,
    get_findings_for_scan,
    rule_stats_from_findings,
    summarize_findings,
)
from rgaa_scanner.platform.db.base import utcnow


@pytest.fixture
async def scan_with_issues(db, make_site):
    site = await make_site()
    run = ScanRun(site_id=site.id, user_id=site.user_id, status=ScanStatus.completed, completed_at=utcnow())
    other_run = ScanRun(site_id=site.id, user_id=site.user_id, status=ScanStatus.completed, completed_at=utcnow())
    db.add_all([run, other_run])
    await db.flush()

    base = utcnow()
    rows = [
        ("RGAA_8_3", IssueSeverity.warning),
        ("RGAA_1_1", IssueSeverity.critical),
        ("RGAA_1_2", IssueSeverity.info),
        ("RGAA_1_1", IssueSeverity.critical),
        ("RGAA_9_1", IssueSeverity.warning),
        ("RGAA_1_1", IssueSeverity.critical),
    ]
    for index, (rule_id, severity) in enumerate(rows):
        db.add(AccessibilityIssue(
            scan_run_id=run.id,
            rule_id=rule_id,
            title=f"Issue {index}",
            description="Description",
            severity=severity,
            page_url=f"https://example.com/page-{index}",
            detected_at=base + timedelta(seconds=index),
        ))
    db.add(AccessibilityIssue(
        scan_run_id=other_run.id,
        rule_id="RGAA_1_1",
        title="Other scan",
        description="Description",
        severity=IssueSeverity.critical,
        page_url="https://example.com/",
    ))
    await db.commit()
    return run


@pytest.mark.asyncio
async def test_findings_are_listed_most_severe_first(db, scan_with_issues):
    items, total = await get_findings_for_scan(db, scan_with_issues.id)

    assert total == 6
    assert [item.severity for item in items] == [
        IssueSeverity.critical, IssueSeverity.critical, IssueSeverity.critical,
        IssueSeverity.warning, IssueSeverity.warning,
        IssueSeverity.info,
    ]
    assert [item.title for item in items[:3]] == ["Issue 1", "Issue 3", "Issue 5"]


@pytest.mark.asyncio
async def test_findings_filters(db, scan_with_issues):
    items, total = await get_findings_for_scan(db, scan_with_issues.id, severity=IssueSeverity.warning)
    assert total == 2
    assert {item.rule_id for item in items} == {"RGAA_8_3", "RGAA_9_1"}

    items, total = await get_findings_for_scan(db, scan_with_issues.id, rule="rgaa_1_1")
    assert total == 3
    assert all(item.rule_id == "RGAA_1_1" for item in items)

    items, total = await get_findings_for_scan(
        db, scan_with_issues.id, severity=IssueSeverity.info, rule="RGAA_1_1"
    )
    assert (items, total) == ([], 0)


@pytest.mark.asyncio
async def test_findings_pagination(db, scan_with_issues):
    first, total = await get_findings_for_scan(db, scan_with_issues.id, page=1, page_size=4)
    second, _ = await get_findings_for_scan(db, scan_with_issues.id, page=2, page_size=4)
    beyond, _ = await get_findings_for_scan(db, scan_with_issues.id, page=3, page_size=4)

    assert total == 6
    assert len(first) == 4
    assert len(second) == 2
    assert beyond == []
    assert not {item.id for item in first} & {item.id for item in second}


@pytest.mark.asyncio
async def test_summary_counts_and_rule_stats(db, scan_with_issues):
    summary = await summarize_findings(db, scan_with_issues.id)

    assert summary["total"] == 6
    assert (summary["critical"], summary["warning"], summary["info"]) == (3, 2, 1)
    assert summary["by_rule"][0] == {
        "rule_id": "RGAA_1_1",
        "rule_name": "Images without text alternative",
        "count": 3,
        "severity": "critical",
    }
    assert [stat["rule_id"] for stat in summary["by_rule"][1:]] == ["RGAA_1_2", "RGAA_8_3", "RGAA_9_1"]


@pytest.mark.asyncio
async def test_summary_of_scan_without_findings(db):
    summary = await summarize_findings(db, "no-such-scan")
    assert summary == {"total": 0, "critical": 0, "warning": 0, "info": 0, "by_rule": []}


@pytest.mark.asyncio
async def test_rule_stats_and_formatting(db, scan_with_issues):
    items, _ = await get_findings_for_scan(db, scan_with_issues.id)

    stats = rule_stats_from_findings(items)
    assert [(stat["rule_id"], stat["count"]) for stat in stats] == [
        ("RGAA_1_1", 3), ("RGAA_1_2", 1), ("RGAA_8_3", 1), ("RGAA_9_1", 1),
    ]

    formatted = format_finding(items[0])
    assert formatted["severity"] == "critical"
    assert formatted["rule_name"] == "Images without text alternative"
    assert formatted["page_url"].startswith("https://example.com/page-")

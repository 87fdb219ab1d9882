import pytest

from rgaa_scanner.features.scan.models.scan_issue import IssueSeverity
from rgaa_scanner.features.scan.models.scan_run import AccessibilityGrade
from rgaa_scanner.features.scan.schemas.finding import Finding
from rgaa_scanner.features.scan.services.analysis.scoring import (
    calculate_score,
    count_by_severity,
    grade_from_score,
)


def findings(critical: int = 0, warning: int = 0, info: int = 0):
    made = []
    for severity, count in (
        (IssueSeverity.critical, critical),
        (IssueSeverity.warning, warning),
        (IssueSeverity.info, info),
    ):
        made.extend(
            Finding(
                rule_id="RGAA_TEST",
                title="Test finding",
                description="Test finding",
                severity=severity,
                page_url="https://example.com/",
            )
            for _ in range(count)
        )
    return made


def test_no_findings_is_the_maximum_score():
    assert calculate_score([], 1) == 100
    assert calculate_score([], 40) == 100


@pytest.mark.parametrize("pages", [0, -1])
def test_zero_pages_returns_the_baseline(pages):
    assert calculate_score(findings(critical=3), pages) == 0
    assert calculate_score([], pages) == 0


def test_penalty_is_weighted_by_severity():
    # 10 + 3 + 1 = 14 points out of a 50 point budget for one page
    assert calculate_score(findings(critical=1, warning=1, info=1), 1) == 72
    # 6 critical on 3 pages: 60 / 150
    assert calculate_score(findings(critical=6), 3) == 60


def test_score_is_bounded():
    assert calculate_score(findings(critical=500), 1) == 0
    for critical in range(0, 30):
        assert 0 <= calculate_score(findings(critical=critical, warning=2, info=5), 2) <= 100


def test_score_never_increases_with_more_critical_findings():
    scores = [calculate_score(findings(critical=n, warning=1), 4) for n in range(40)]
    assert scores == sorted(scores, reverse=True)


@pytest.mark.parametrize("score,grade", [
    (100, AccessibilityGrade.A),
    (90, AccessibilityGrade.A),
    (89, AccessibilityGrade.B),
    (80, AccessibilityGrade.B),
    (79, AccessibilityGrade.C),
    (70, AccessibilityGrade.C),
    (60, AccessibilityGrade.D),
    (50, AccessibilityGrade.E),
    (49, AccessibilityGrade.F),
    (0, AccessibilityGrade.F),
])
def test_grade_thresholds(score, grade):
    assert grade_from_score(score) == grade


def test_grade_is_total_and_monotonic():
    order = list(AccessibilityGrade)  # A first
    grades = [grade_from_score(score) for score in range(0, 101)]
    ranks = [order.index(grade) for grade in grades]
    assert ranks == sorted(ranks, reverse=True)


def test_out_of_range_scores_are_clamped():
    assert grade_from_score(150) == AccessibilityGrade.A
    assert grade_from_score(-20) == AccessibilityGrade.F


def test_count_by_severity():
    counts = count_by_severity(findings(critical=2, info=3))
    assert counts == {IssueSeverity.critical: 2, IssueSeverity.warning: 0, IssueSeverity.info: 3}

from typing import Dict, Iterable, Tuple

from rgaa_scanner.features.scan.models.scan_issue import IssueSeverity
from rgaa_scanner.features.scan.models.scan_run import AccessibilityGrade
from rgaa_scanner.features.scan.schemas.finding import Finding

SEVERITY_PENALTIES: Dict[IssueSeverity, int] = {
    IssueSeverity.critical: 10,
    IssueSeverity.warning: 3,
    IssueSeverity.info: 1,
}

# Penalty budget per analyzed page; reaching it drives the score to 0
MAX_PENALTY_PER_PAGE = 50

MAX_SCORE = 100
MIN_SCORE = 0
ZERO_PAGES_SCORE = 0

# Ordered best first, the first band whose floor is reached wins
GRADE_THRESHOLDS: Tuple[Tuple[int, AccessibilityGrade], ...] = (
    (90, AccessibilityGrade.A),
    (80, AccessibilityGrade.B),
    (70, AccessibilityGrade.C),
    (60, AccessibilityGrade.D),
    (50, AccessibilityGrade.E),
)


def count_by_severity(findings: Iterable[Finding]) -> Dict[IssueSeverity, int]:
    counts = {severity: 0 for severity in IssueSeverity}
    for finding in findings:
        counts[finding.severity] += 1
    return counts


def calculate_score(findings: Iterable[Finding], pages_scanned: int) -> int:
    """
    Linear penalty score in [0, 100].

    penalty = 10 * critical + 3 * warning + 1 * info, normalised against a
    budget of 50 points per page. No pages scanned gives 0, no findings on at
    least one page gives 100.
    """
    if pages_scanned <= 0:
        return ZERO_PAGES_SCORE

    counts = count_by_severity(findings)
    penalty = sum(SEVERITY_PENALTIES[severity] * count for severity, count in counts.items())
    max_penalty = MAX_PENALTY_PER_PAGE * pages_scanned

    score = MAX_SCORE - (penalty * 100) // max_penalty
    return max(MIN_SCORE, min(MAX_SCORE, score))


def grade_from_score(score: int) -> AccessibilityGrade:
    score = max(MIN_SCORE, min(MAX_SCORE, score))
    for floor, grade in GRADE_THRESHOLDS:
        if score >= floor:
            return grade
    return AccessibilityGrade.F

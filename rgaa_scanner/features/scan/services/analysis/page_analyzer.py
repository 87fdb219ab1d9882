import logging
from typing import Iterable, List, Optional, Sequence

from bs4 import BeautifulSoup

from rgaa_scanner.features.scan.models.scan_run import AccessibilityGrade
from rgaa_scanner.features.scan.schemas.finding import Finding
from rgaa_scanner.features.scan.services.analysis.rules import (
    RGAA_CHECKS,
    AnalyzerConfig,
    PageContext,
    RuleCheck,
)
from rgaa_scanner.features.scan.services.analysis.scoring import calculate_score, grade_from_score

logger = logging.getLogger(__name__)


class AccessibilityAnalyzer:
    """
    Runs the RGAA rule checks against the raw HTML of one page.

    Markup is parsed with BeautifulSoup's html.parser, which accepts anything
    without raising: missing elements are simply absent from the tree.
    Findings come back grouped by check, in registry order.
    """

    def __init__(
        self,
        checks: Sequence[RuleCheck] = RGAA_CHECKS,
        config: Optional[AnalyzerConfig] = None,
    ):
        self.checks = tuple(checks)
        self.config = config or AnalyzerConfig()

    def analyze(self, url: str, html_content: str) -> List[Finding]:
        soup = BeautifulSoup(html_content or "", "html.parser")
        context = PageContext(url=url, soup=soup, config=self.config)

        findings: List[Finding] = []
        for rule in self.checks:
            findings.extend(rule.check(context))

        logger.debug(f"Analyzed {url}: {len(findings)} findings")
        return findings

    @staticmethod
    def score(findings: Iterable[Finding], pages_scanned: int) -> int:
        return calculate_score(findings, pages_scanned)

    @staticmethod
    def grade(score: int) -> AccessibilityGrade:
        return grade_from_score(score)

"""
Issue service module.

Provides functions for querying and formatting the findings of a scan.
"""
from rgaa_scanner.features.scan.services.issue.issue_service import (
    get_findings_for_scan,
    summarize_findings,
    rule_stats_from_findings,
    format_finding,
)

__all__ = [
    "get_findings_for_scan",
    "summarize_findings",
    "rule_stats_from_findings",
    "format_finding",
]

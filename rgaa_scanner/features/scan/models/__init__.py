"""
Scan models package.

Site is imported here so that the string-based relationships between
sites, scan runs and issues always resolve, whichever model is imported first.
"""
from rgaa_scanner.features.sites.models.site import Site, SiteStatus
from rgaa_scanner.features.scan.models.scan_run import ScanRun, ScanStatus, AccessibilityGrade
from rgaa_scanner.features.scan.models.scan_issue import AccessibilityIssue, IssueSeverity

__all__ = [
    "Site",
    "SiteStatus",
    "ScanRun",
    "ScanStatus",
    "AccessibilityGrade",
    "AccessibilityIssue",
    "IssueSeverity",
]

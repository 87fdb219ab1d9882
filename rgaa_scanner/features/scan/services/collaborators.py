"""
Boundary contracts consumed by the scan core.

Billing tiers and report rendering live outside the core; the core only talks
to them through these protocols.
"""
from typing import Protocol, Sequence

from rgaa_scanner.features.scan.models.scan_issue import AccessibilityIssue
from rgaa_scanner.features.scan.models.scan_run import ScanRun
from rgaa_scanner.features.sites.models.site import Site


class QuotaPolicy(Protocol):
    """Subscription checks backed by external billing-tier data."""

    async def can_start_scan(self, user_id: str) -> bool: ...

    async def can_add_site(self, user_id: str) -> bool: ...


class AllowAllQuotaPolicy:
    """Default policy when no billing integration is configured."""

    async def can_start_scan(self, user_id: str) -> bool:
        return True

    async def can_add_site(self, user_id: str) -> bool:
        return True


class ReportGenerator(Protocol):
    """Produces a downloadable artifact for a completed scan and returns its storage path."""

    def generate(self, run: ScanRun, site: Site, findings: Sequence[AccessibilityIssue]) -> str: ...

    def exists(self, path: str) -> bool: ...

    def read(self, path: str) -> bytes: ...

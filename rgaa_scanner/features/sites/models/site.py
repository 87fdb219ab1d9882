import enum

from sqlalchemy import Boolean, Column, DateTime, Enum, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from rgaa_scanner.platform.db.base import BaseModel


class SiteStatus(enum.Enum):
    active = "active"
    archived = "archived"
    deleted = "deleted"


class Site(BaseModel):
    """
    Target site of an accessibility audit.

    Sites are registered and managed outside the scan core. The scanner reads the
    crawl policy (root_url, max_depth, include_subdomains) and the status, and only
    writes the scan bookkeeping columns (total_scans, last_scanned_at).
    """
    __tablename__ = "sites"

    user_id = Column(String, index=True, nullable=False)  # opaque key from the identity provider
    root_url = Column(String, index=True, nullable=False)
    display_name = Column(String, nullable=True)
    description = Column(String, nullable=True)
    status = Column(Enum(SiteStatus), default=SiteStatus.active, nullable=False)

    # Crawl policy
    max_depth = Column(Integer, default=3, nullable=False)
    include_subdomains = Column(Boolean, default=False, nullable=False)

    # Scan tracking
    total_scans = Column(Integer, default=0, nullable=False)
    last_scanned_at = Column(DateTime, nullable=True)

    scan_runs = relationship("ScanRun", back_populates="site", cascade="all, delete-orphan", lazy="noload")

    __table_args__ = (
        UniqueConstraint("user_id", "root_url", name="uq_user_site_root_url"),
        Index("ix_sites_root_url_last_scanned", "root_url", "last_scanned_at"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == SiteStatus.active

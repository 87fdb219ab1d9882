from datetime import datetime, timezone

import sqlalchemy
from sqlalchemy import Column, String
from sqlalchemy.orm import declarative_base
from uuid6 import uuid7

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns of the scan tables."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _aware_utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseModel(Base):
    __abstract__ = True
    id = Column(String, primary_key=True, default=lambda: str(uuid7()), index=True)
    # Python-side defaults so the values are loaded without a refresh under AsyncSession
    created_at = Column(
        sqlalchemy.DateTime(timezone=True),
        default=_aware_utcnow,
        server_default=sqlalchemy.func.now(),
        nullable=False,
    )
    updated_at = Column(
        sqlalchemy.DateTime(timezone=True),
        default=_aware_utcnow,
        onupdate=_aware_utcnow,
        server_default=sqlalchemy.func.now(),
        nullable=False,
    )


def import_models() -> None:
    """Register every mapped class on Base.metadata (relationships resolve by name)."""
    from rgaa_scanner.features.sites.models.site import Site  # noqa: F401
    from rgaa_scanner.features.scan.models.scan_run import ScanRun  # noqa: F401
    from rgaa_scanner.features.scan.models.scan_issue import AccessibilityIssue  # noqa: F401

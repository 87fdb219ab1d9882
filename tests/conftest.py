"""
Test configuration and fixtures for the RGAA Scanner API.

DATABASE_URL points at a throwaway SQLite file before any rgaa_scanner module
is imported, so the module-level engine and settings never touch a real database.
"""

import os
import tempfile
from typing import Callable, Dict, Optional, Union

from dotenv import load_dotenv

load_dotenv()

test_db_path = tempfile.mktemp(suffix=".db")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{test_db_path}"
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="rgaa-logs-")
os.environ["REPORTS_STORAGE_PATH"] = tempfile.mkdtemp(prefix="rgaa-reports-")
os.environ["SCAN_DISPATCH"] = "inline"

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from rgaa_scanner.features.sites.models.site import Site, SiteStatus
from rgaa_scanner.platform.db.base import Base, import_models

USER_ID = "user-1"
OTHER_USER_ID = "user-2"


@pytest.fixture(scope="session")
def test_app():
    """Create FastAPI test application."""
    from rgaa_scanner.main import app

    return app


@pytest.fixture(scope="function")
def client(test_app):
    with TestClient(test_app) as test_client:
        yield test_client


@pytest.fixture
async def session_factory():
    """Fresh schema per test on an engine that holds no connection between loops."""
    import_models()
    engine = create_async_engine(os.environ["DATABASE_URL"], poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False, autoflush=False, autocommit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_site(db):
    async def _make_site(
        root_url: str = "https://example.com",
        user_id: str = USER_ID,
        status: SiteStatus = SiteStatus.active,
        max_depth: int = 3,
        include_subdomains: bool = False,
    ) -> Site:
        site = Site(
            user_id=user_id,
            root_url=root_url,
            display_name="Test Site",
            status=status,
            max_depth=max_depth,
            include_subdomains=include_subdomains,
        )
        db.add(site)
        await db.commit()
        return site

    return _make_site


PageMap = Dict[str, Union[str, int]]


def build_site_transport(pages: PageMap, on_request: Optional[Callable[[httpx.Request], None]] = None) -> httpx.MockTransport:
    """
    Fake website keyed by absolute URL (scheme://host/path).
    A str value is served as HTML with 200, an int is served as that status
    with an empty body, unknown URLs are 404.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        if on_request is not None:
            on_request(request)
        key = f"{request.url.scheme}://{request.url.host}{request.url.path}"
        page = pages.get(key, 404)
        if isinstance(page, int):
            return httpx.Response(page)
        if request.method == "HEAD":
            return httpx.Response(200, headers={"content-type": "text/html"})
        return httpx.Response(200, text=page, headers={"content-type": "text/html"})

    return httpx.MockTransport(handler)


@pytest.fixture
def site_transport():
    return build_site_transport

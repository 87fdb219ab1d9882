import logging
import posixpath
from collections import deque
from typing import Callable, Deque, List, Optional, Set, Tuple
from urllib.parse import urljoin, urlparse

import httpx
from bs4 import BeautifulSoup

from rgaa_scanner.platform.config import settings
from rgaa_scanner.platform.exceptions import FetchError

logger = logging.getLogger(__name__)

EXCLUDED_EXTENSIONS: Tuple[str, ...] = (".pdf", ".jpg", ".jpeg", ".png", ".gif", ".css", ".js", ".xml")
ALLOWED_SCHEMES: Tuple[str, ...] = ("http", "https")


def normalize_url(url: str) -> Optional[str]:
    """
    Reduce a URL to scheme://host/path (no query, no fragment).
    Returns None for anything that is not a well-formed http(s) URL.
    """
    try:
        parsed = urlparse(url.strip())
        host = parsed.hostname
        port = parsed.port
    except ValueError:
        return None

    if parsed.scheme.lower() not in ALLOWED_SCHEMES or not host:
        return None

    netloc = host.lower()
    if port is not None:
        netloc = f"{netloc}:{port}"
    return f"{parsed.scheme.lower()}://{netloc}{parsed.path or '/'}"


def _bare_host(host: str) -> str:
    return host[4:] if host.startswith("www.") else host


def is_in_scope(url: str, root_host: str, include_subdomains: bool) -> bool:
    host = (urlparse(url).hostname or "").lower()
    if not include_subdomains:
        return host == root_host
    bare = _bare_host(root_host)
    return host == bare or host.endswith("." + bare)


class CrawlerService:
    """
    Breadth-first discovery of the pages of one site over plain HTTP.

    The crawl frontier (queue and visited set) lives inside `crawl`, so one
    service instance can run concurrent crawls. Pages are fetched as raw HTML,
    no JavaScript is executed.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        max_urls: int = settings.CRAWL_MAX_URLS,
        max_links_per_page: int = settings.CRAWL_MAX_LINKS_PER_PAGE,
        excluded_extensions: Tuple[str, ...] = EXCLUDED_EXTENSIONS,
        request_timeout: float = settings.CRAWL_REQUEST_TIMEOUT_SECONDS,
        user_agent: str = settings.CRAWL_USER_AGENT,
    ):
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=request_timeout,
            follow_redirects=True,
            headers={"User-Agent": user_agent},
        )
        self.max_urls = max_urls
        self.max_links_per_page = max_links_per_page
        self.excluded_extensions = tuple(ext.lower() for ext in excluded_extensions)

    async def __aenter__(self) -> "CrawlerService":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def crawl(
        self,
        root_url: str,
        max_depth: int = 3,
        include_subdomains: bool = False,
        should_stop: Optional[Callable[[], bool]] = None,
    ) -> List[str]:
        """
        Discover in-scope pages starting at root_url, in breadth-first order.

        Never returns more than `max_urls` URLs or follows links past
        `max_depth`. An unreachable root gives an empty list. When
        `should_stop` returns True the crawl ends early with what it has.
        """
        root = normalize_url(root_url)
        if root is None:
            logger.warning(f"Cannot crawl malformed root URL: {root_url}")
            return []

        root_host = urlparse(root).hostname
        discovered: List[str] = []
        visited: Set[str] = set()
        queued: Set[str] = {root}
        frontier: Deque[Tuple[str, int]] = deque([(root, 0)])

        logger.info(f"Starting crawl of {root} (max_depth={max_depth}, subdomains={include_subdomains})")

        while frontier and len(discovered) < self.max_urls:
            if should_stop is not None and should_stop():
                logger.warning(f"Crawl of {root} stopped early after {len(discovered)} URLs")
                break

            url, depth = frontier.popleft()
            queued.discard(url)
            if depth > max_depth or url in visited:
                continue
            visited.add(url)

            if not await self.is_reachable(url):
                logger.warning(f"Skipping unreachable URL: {url}")
                continue

            try:
                content = await self.fetch_content(url)
            except FetchError as e:
                logger.warning(f"Skipping {url}: {e}")
                continue

            discovered.append(url)

            if depth >= max_depth:
                continue

            new_links = [
                link
                for link in self.extract_links(content, url, root_host, include_subdomains)
                if link not in visited and link not in queued
            ]
            for link in new_links[: self.max_links_per_page]:
                queued.add(link)
                frontier.append((link, depth + 1))

        logger.info(f"Crawl of {root} finished: {len(discovered)} URLs discovered")
        return discovered

    async def fetch_content(self, url: str) -> str:
        """GET the page body. Raises FetchError on a non-2xx status or a transport error."""
        try:
            response = await self.client.get(url)
        except httpx.HTTPError as e:
            raise FetchError(url, f"Request failed: {e}") from e

        if not response.is_success:
            raise FetchError(url, f"HTTP {response.status_code}", status_code=response.status_code)
        return response.text

    async def is_reachable(self, url: str) -> bool:
        """HEAD request; any failure, including a non-2xx answer, is False."""
        try:
            response = await self.client.head(url)
            return response.is_success
        except Exception as e:
            logger.debug(f"HEAD {url} failed: {e}")
            return False

    def extract_links(
        self,
        html: str,
        page_url: str,
        root_host: str,
        include_subdomains: bool = False,
    ) -> List[str]:
        """In-scope, normalized, de-duplicated links of a page in document order."""
        soup = BeautifulSoup(html or "", "html.parser")
        links: List[str] = []
        seen: Set[str] = set()

        for anchor in soup.find_all("a", href=True):
            href = anchor["href"].strip()
            if not href:
                continue
            try:
                absolute = urljoin(page_url, href)
            except ValueError:
                continue

            normalized = normalize_url(absolute)
            if normalized is None or normalized in seen:
                continue
            if not is_in_scope(normalized, root_host, include_subdomains):
                continue
            extension = posixpath.splitext(urlparse(normalized).path)[1].lower()
            if extension in self.excluded_extensions:
                continue

            seen.add(normalized)
            links.append(normalized)

        return links

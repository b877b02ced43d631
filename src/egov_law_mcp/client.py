"""
e-Gov Law API (v1, XML) client.
"""

import asyncio
import logging
from typing import Callable, Optional, TypeVar

import httpx

from .errors import FetchError, NotFoundError
from .models import ArticleResult, LawDocument, LawIndex
from .parser import parse_article, parse_law_list, parse_law_text

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BASE_URL = "https://laws.e-gov.go.jp/api/1"
MAX_RETRIES = 3
RETRY_DELAY = 1.0

# lawlists category: 1=全法令, 2=憲法・法律, 3=政令・勅令, 4=府省令
ALL_LAWS_CATEGORY = 1


class EGovLawClient:
    """
    Async client for the e-Gov Law API.

    Every request gets a per-attempt timeout and up to ``max_retries``
    attempts with ``retry_delay * attempt`` seconds between them. Only
    network failures and 5xx responses are retried.
    """

    def __init__(self, base_url: str = DEFAULT_BASE_URL, timeout: float = 30.0,
                 max_retries: int = MAX_RETRIES, retry_delay: float = RETRY_DELAY,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: dict) -> "EGovLawClient":
        """Build a client from the ``api`` section of the configuration."""
        return cls(
            base_url=settings.get("base_url", DEFAULT_BASE_URL),
            timeout=float(settings.get("timeout", 30.0)),
            max_retries=int(settings.get("max_retries", MAX_RETRIES)),
            retry_delay=float(settings.get("retry_delay", RETRY_DELAY)),
        )

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "User-Agent": "egov-law-mcp/1.0",
                "Accept": "application/xml",
            },
            timeout=self.timeout,
            follow_redirects=True,
            transport=self._transport,
        )

    async def _fetch_with_retry(self, path: str, parse: Callable[[str], T]) -> T:
        last_error: Optional[Exception] = None

        async with self._http_client() as client:
            for attempt in range(1, self.max_retries + 1):
                try:
                    response = await client.get(path)
                    if response.status_code == 404:
                        raise NotFoundError("リソースが見つかりませんでした")
                    # Other client errors will not change on retry
                    if 400 <= response.status_code < 500:
                        raise FetchError(f"HTTP {response.status_code}: {path}")
                    response.raise_for_status()
                    return parse(response.text)
                except httpx.HTTPError as e:
                    last_error = e
                    logger.warning(f"Request {path} failed (attempt {attempt}/{self.max_retries}): {e}")
                    if attempt < self.max_retries:
                        await asyncio.sleep(self.retry_delay * attempt)

        raise FetchError(str(last_error) if last_error else "リクエストに失敗しました")

    async def search_laws(self, keyword: str = "", category: Optional[int] = None) -> LawIndex:
        """
        Search laws by name.

        The v1 API only lists laws per category, so the keyword is matched
        against law names and numbers locally.
        """
        index = await self._fetch_with_retry(
            f"/lawlists/{category or ALL_LAWS_CATEGORY}", parse_law_list
        )
        if not keyword:
            return index
        laws = tuple(
            law for law in index.laws
            if keyword in law.law_name or keyword in law.law_number
        )
        logger.info(f"Found {len(laws)} laws matching '{keyword}'")
        return LawIndex(total_count=len(laws), laws=laws)

    async def get_law_by_id(self, law_id: str) -> LawDocument:
        logger.info(f"Fetching law {law_id}")
        return await self._fetch_with_retry(f"/lawdata/{law_id}", parse_law_text)

    async def get_law_by_number(self, law_number: str) -> LawDocument:
        """Resolve a law number (e.g. 平成十五年法律第五十七号) to its ID, then fetch."""
        index = await self.search_laws(keyword=law_number)
        for law in index.laws:
            if law.law_number == law_number:
                return await self.get_law_by_id(law.law_id)
        raise NotFoundError(f"法令番号「{law_number}」に該当する法令が見つかりませんでした")

    async def get_article(self, law_id: str, article: str,
                          paragraph: Optional[int] = None) -> ArticleResult:
        """Fetch a law once and extract a single article from it."""
        def parse(xml: str) -> Optional[ArticleResult]:
            return parse_article(xml, article, paragraph)

        result = await self._fetch_with_retry(f"/lawdata/{law_id}", parse)
        if result is None:
            raise NotFoundError(f"条文「{article}」が見つかりませんでした")
        return result

    async def get_updated_laws(self, date: str) -> LawIndex:
        """Laws updated on ``date`` (yyyyMMdd)."""
        return await self._fetch_with_retry(f"/updatelawlists/{date}", parse_law_list)

    async def find_similar_laws(self, query: str, limit: int = 10) -> LawIndex:
        """Candidate laws for a query that did not resolve, name matches first."""
        index = await self.search_laws(keyword=query)
        ranked = sorted(index.laws, key=lambda law: query in law.law_name, reverse=True)
        laws = tuple(ranked[:limit])
        return LawIndex(total_count=len(laws), laws=laws)

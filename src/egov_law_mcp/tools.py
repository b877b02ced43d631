"""
Tool operations shared by the MCP server and the CLI.

Each tool checks the cache, falls back to the API client on a miss, stores
the fresh result and renders Markdown. Library errors become a failed
``ToolResult`` carrying an error report instead of an exception.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol

from .cache import LAW_LIST, LAW_TEXT, UPDATE_LIST, CacheStats
from .client import EGovLawClient
from .errors import EGovLawError, InvalidParamsError, NotFoundError
from .markdown import (
    article_to_markdown,
    error_to_markdown,
    law_document_to_markdown,
    search_result_to_markdown,
    suggest_similar_laws,
)
from .models import ArticleResult, LawDocument, LawIndex

logger = logging.getLogger(__name__)

LAW_CATEGORIES = {1: "全法令", 2: "憲法・法律", 3: "政令・勅令", 4: "府省令"}

_DATE_PATTERN = re.compile(r"^\d{8}$")


class Cache(Protocol):
    def get(self, category: str, raw_id: str) -> Optional[Any]: ...
    def set(self, category: str, raw_id: str, value: Any) -> None: ...
    def clear(self) -> None: ...
    def stats(self) -> CacheStats: ...


@dataclass
class ToolResult:
    success: bool
    content: str
    data: Optional[dict[str, Any]] = None


def _failure(error: EGovLawError) -> ToolResult:
    return ToolResult(success=False, content=error_to_markdown(error.code, error.message))


async def search_laws(client: EGovLawClient, cache: Cache, keyword: str,
                      category: Optional[int] = None) -> ToolResult:
    """Search laws by name, optionally within one lawlists category (1-4)."""
    try:
        keyword = (keyword or "").strip()
        if not keyword:
            raise InvalidParamsError("キーワードを指定してください")
        if category is not None and category not in LAW_CATEGORIES:
            raise InvalidParamsError(f"カテゴリは1〜4で指定してください: {category}")

        cache_id = f"search_{keyword}_{category or 'all'}"
        cached = cache.get(LAW_LIST, cache_id)
        if cached is not None:
            index = LawIndex.from_dict(cached)
        else:
            index = await client.search_laws(keyword=keyword, category=category)
            cache.set(LAW_LIST, cache_id, index.to_dict())

        return ToolResult(
            success=True,
            content=search_result_to_markdown(index.laws),
            data=index.to_dict(),
        )
    except EGovLawError as e:
        logger.warning(f"search_laws failed: {e.message}")
        return _failure(e)


async def get_law_text(client: EGovLawClient, cache: Cache,
                       law_id: Optional[str] = None,
                       law_number: Optional[str] = None,
                       known_laws: Optional[Mapping[str, str]] = None) -> ToolResult:
    """
    Full text of a law, by ID or by law number.

    A well-known short name (e.g. 民法) passed as ``law_id`` is resolved to
    its ID first. When the law cannot be found, similar laws are suggested.
    """
    query = law_id or law_number
    try:
        if not query:
            raise InvalidParamsError("law_id または law_number を指定してください")

        if law_id and known_laws and law_id in known_laws:
            logger.debug(f"Resolved known law {law_id} -> {known_laws[law_id]}")
            law_id = known_laws[law_id]

        cache_id = law_id or law_number
        cached = cache.get(LAW_TEXT, cache_id)
        if cached is not None:
            doc = LawDocument.from_dict(cached)
        else:
            if law_id:
                doc = await client.get_law_by_id(law_id)
            else:
                doc = await client.get_law_by_number(law_number)
                cache.set(LAW_TEXT, doc.law_id, doc.to_dict())
            cache.set(LAW_TEXT, cache_id, doc.to_dict())

        return ToolResult(
            success=True,
            content=law_document_to_markdown(doc),
            data=doc.to_dict(),
        )
    except NotFoundError as e:
        return await _suggest_or_fail(client, query, e)
    except EGovLawError as e:
        logger.warning(f"get_law_text failed: {e.message}")
        return _failure(e)


async def _suggest_or_fail(client: EGovLawClient, query: str,
                           error: NotFoundError) -> ToolResult:
    try:
        similar = await client.find_similar_laws(query)
    except EGovLawError as e:
        logger.warning(f"Similar law lookup failed: {e.message}")
        return _failure(error)

    if not similar.laws:
        return _failure(error)
    return ToolResult(
        success=False,
        content=suggest_similar_laws(query, similar.laws),
        data=similar.to_dict(),
    )


async def get_article(client: EGovLawClient, cache: Cache, law_id: str,
                      article: str, paragraph: Optional[int] = None) -> ToolResult:
    """One article (optionally one paragraph of it) from a law."""
    try:
        if not law_id:
            raise InvalidParamsError("law_id を指定してください")
        if not article:
            raise InvalidParamsError("article を指定してください")
        if paragraph is not None and paragraph < 1:
            raise InvalidParamsError(f"項番号は1以上で指定してください: {paragraph}")

        cache_id = f"{law_id}_{article}"
        if paragraph is not None:
            cache_id += f"_{paragraph}"

        cached = cache.get(LAW_TEXT, cache_id)
        if cached is not None:
            result = ArticleResult.from_dict(cached)
        else:
            result = await client.get_article(law_id, article, paragraph)
            cache.set(LAW_TEXT, cache_id, result.to_dict())

        return ToolResult(
            success=True,
            content=article_to_markdown(result),
            data=result.to_dict(),
        )
    except EGovLawError as e:
        logger.warning(f"get_article failed: {e.message}")
        return _failure(e)


async def get_updated_laws(client: EGovLawClient, cache: Cache, date: str) -> ToolResult:
    """Laws updated on a given day (yyyyMMdd)."""
    try:
        if not date or not _DATE_PATTERN.match(date):
            raise InvalidParamsError(f"日付はyyyyMMdd形式で指定してください: {date}")

        cached = cache.get(UPDATE_LIST, date)
        if cached is not None:
            index = LawIndex.from_dict(cached)
        else:
            index = await client.get_updated_laws(date)
            cache.set(UPDATE_LIST, date, index.to_dict())

        return ToolResult(
            success=True,
            content=search_result_to_markdown(index.laws),
            data=index.to_dict(),
        )
    except EGovLawError as e:
        logger.warning(f"get_updated_laws failed: {e.message}")
        return _failure(e)


def get_cache_stats(cache: Cache) -> ToolResult:
    stats = cache.stats()
    lines = [
        "## キャッシュ統計",
        "",
        f"- **件数**: {stats.count}",
        f"- **合計サイズ**: {stats.total_bytes} bytes",
    ]
    if stats.oldest:
        lines.append(f"- **最古**: {stats.oldest.isoformat()}")
    if stats.newest:
        lines.append(f"- **最新**: {stats.newest.isoformat()}")
    return ToolResult(success=True, content="\n".join(lines), data=stats.to_dict())


def clear_cache(cache: Cache) -> ToolResult:
    cache.clear()
    logger.info("Cache cleared")
    return ToolResult(success=True, content="キャッシュをクリアしました。")

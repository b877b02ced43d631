"""Tests for the tool layer, the MCP server and the CLI."""

import json

import pytest
from fastmcp import Client, FastMCP
from fastmcp.exceptions import ToolError

from egov_law_mcp import cli, tools
from egov_law_mcp.cache import LAW_LIST, LAW_TEXT, UPDATE_LIST, MemoryCache
from egov_law_mcp.config import ConfigLoader
from egov_law_mcp.errors import FetchError, NotFoundError
from egov_law_mcp.models import (
    ArticleResult,
    LawDocument,
    LawIndex,
    LawSummary,
    ParagraphView,
    TocEntry,
)
from egov_law_mcp.server import create_server

KNOWN_LAWS = {"民法": "129AC0000000089", "個人情報保護法": "415AC0000000057"}

CIVIL_CODE = LawDocument(
    law_id="129AC0000000089",
    law_number="明治二十九年法律第八十九号",
    law_name="民法",
    content="## 本則\n\n**第一条**\n\n私権は、公共の福祉に適合しなければならない。",
    fetched_at="2024-04-01T00:00:00+00:00",
    toc=(TocEntry("第一条", "第一条"),),
)

ARTICLE_ONE = ArticleResult(
    law_id="415AC0000000057",
    article_num="第一条",
    content="**（目的）**\n**第一条**\n\nこの法律は、個人の権利利益を保護することを目的とする。",
    article_title="第一条",
    caption="（目的）",
    paragraphs=(ParagraphView(1, "この法律は、個人の権利利益を保護することを目的とする。"),),
)

LAWS = LawIndex(total_count=2, laws=(
    LawSummary("415AC0000000057", "平成十五年法律第五十七号", "個人情報の保護に関する法律"),
    LawSummary("415CO0000000507", "平成十五年政令第五百七号", "個人情報の保護に関する法律施行令"),
))


class StubClient:
    """Stands in for EGovLawClient, counting calls per method."""

    def __init__(self, error=None, similar=LAWS):
        self.error = error
        self.similar = similar
        self.calls = []

    def _record(self, name, *args):
        self.calls.append((name,) + args)
        if self.error is not None:
            raise self.error

    async def search_laws(self, keyword="", category=None):
        self._record("search_laws", keyword, category)
        return LAWS

    async def get_law_by_id(self, law_id):
        self._record("get_law_by_id", law_id)
        return CIVIL_CODE

    async def get_law_by_number(self, law_number):
        self._record("get_law_by_number", law_number)
        return CIVIL_CODE

    async def get_article(self, law_id, article, paragraph=None):
        self._record("get_article", law_id, article, paragraph)
        return ARTICLE_ONE

    async def get_updated_laws(self, date):
        self._record("get_updated_laws", date)
        return LAWS

    async def find_similar_laws(self, query, limit=10):
        self.calls.append(("find_similar_laws", query))
        return self.similar


class TestSearchLawsTool:
    @pytest.mark.asyncio
    async def test_success_and_cache(self):
        client, cache = StubClient(), MemoryCache()
        result = await tools.search_laws(client, cache, "個人情報")
        assert result.success
        assert result.content.startswith("検索結果: 2件")
        assert result.data["total_count"] == 2
        assert cache.get(LAW_LIST, "search_個人情報_all") is not None

        again = await tools.search_laws(client, cache, "個人情報")
        assert again.content == result.content
        assert len(client.calls) == 1

    @pytest.mark.asyncio
    async def test_category_in_key(self):
        client, cache = StubClient(), MemoryCache()
        await tools.search_laws(client, cache, "個人情報", category=2)
        assert client.calls == [("search_laws", "個人情報", 2)]
        assert cache.get(LAW_LIST, "search_個人情報_2") is not None

    @pytest.mark.asyncio
    async def test_validation(self):
        client = StubClient()
        result = await tools.search_laws(client, MemoryCache(), "  ")
        assert not result.success
        assert "INVALID_PARAMS" in result.content
        result = await tools.search_laws(client, MemoryCache(), "民法", category=9)
        assert not result.success
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_fetch_error(self):
        result = await tools.search_laws(StubClient(error=FetchError("timeout")), MemoryCache(), "民法")
        assert not result.success
        assert "**コード**: FETCH_ERROR" in result.content
        assert "timeout" in result.content


class TestGetLawTextTool:
    @pytest.mark.asyncio
    async def test_by_id(self):
        client, cache = StubClient(), MemoryCache()
        result = await tools.get_law_text(client, cache, law_id="129AC0000000089")
        assert result.success
        assert result.content.startswith("# 民法")
        assert "## 目次" in result.content
        assert cache.get(LAW_TEXT, "129AC0000000089") is not None

    @pytest.mark.asyncio
    async def test_known_name(self):
        client = StubClient()
        result = await tools.get_law_text(client, MemoryCache(), law_id="民法", known_laws=KNOWN_LAWS)
        assert result.success
        assert client.calls == [("get_law_by_id", "129AC0000000089")]

    @pytest.mark.asyncio
    async def test_by_number_caches_under_both_keys(self):
        client, cache = StubClient(), MemoryCache()
        result = await tools.get_law_text(client, cache, law_number="明治二十九年法律第八十九号")
        assert result.success
        assert cache.get(LAW_TEXT, "明治二十九年法律第八十九号") is not None
        assert cache.get(LAW_TEXT, "129AC0000000089") is not None

        await tools.get_law_text(client, cache, law_id="129AC0000000089")
        assert len(client.calls) == 1

    @pytest.mark.asyncio
    async def test_requires_identifier(self):
        client = StubClient()
        result = await tools.get_law_text(client, MemoryCache())
        assert not result.success
        assert "INVALID_PARAMS" in result.content
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_not_found_suggests(self):
        client = StubClient(error=NotFoundError("リソースが見つかりませんでした"))
        result = await tools.get_law_text(client, MemoryCache(), law_id="個人情報")
        assert not result.success
        assert "以下の法令を探していますか？" in result.content
        assert "個人情報の保護に関する法律 (ID: 415AC0000000057)" in result.content

    @pytest.mark.asyncio
    async def test_not_found_without_candidates(self):
        client = StubClient(error=NotFoundError("リソースが見つかりませんでした"),
                            similar=LawIndex(total_count=0, laws=()))
        result = await tools.get_law_text(client, MemoryCache(), law_id="999AC0000000000")
        assert not result.success
        assert "**コード**: NOT_FOUND" in result.content


class TestGetArticleTool:
    @pytest.mark.asyncio
    async def test_cached_by_query(self):
        client, cache = StubClient(), MemoryCache()
        result = await tools.get_article(client, cache, "415AC0000000057", "第一条")
        assert result.success
        assert result.content.startswith("## 第一条")
        assert result.data["caption"] == "（目的）"
        assert cache.get(LAW_TEXT, "415AC0000000057_第一条") is not None

        await tools.get_article(client, cache, "415AC0000000057", "第一条")
        assert len(client.calls) == 1

    @pytest.mark.asyncio
    async def test_paragraph_in_key(self):
        client, cache = StubClient(), MemoryCache()
        await tools.get_article(client, cache, "415AC0000000057", "1", paragraph=2)
        assert client.calls == [("get_article", "415AC0000000057", "1", 2)]
        assert cache.get(LAW_TEXT, "415AC0000000057_1_2") is not None
        assert cache.get(LAW_TEXT, "415AC0000000057_1") is None

    @pytest.mark.asyncio
    async def test_article_not_found(self):
        client = StubClient(error=NotFoundError("条文「第九十九条」が見つかりませんでした"))
        result = await tools.get_article(client, MemoryCache(), "415AC0000000057", "第九十九条")
        assert not result.success
        assert "第九十九条" in result.content

    @pytest.mark.asyncio
    async def test_validation(self):
        result = await tools.get_article(StubClient(), MemoryCache(), "415AC0000000057", "1", paragraph=0)
        assert not result.success
        assert "INVALID_PARAMS" in result.content


class TestUpdatedLawsTool:
    @pytest.mark.asyncio
    async def test_success(self):
        client, cache = StubClient(), MemoryCache()
        result = await tools.get_updated_laws(client, cache, "20240401")
        assert result.success
        assert cache.get(UPDATE_LIST, "20240401") is not None

    @pytest.mark.asyncio
    async def test_bad_date(self):
        client = StubClient()
        result = await tools.get_updated_laws(client, MemoryCache(), "2024-04-01")
        assert not result.success
        assert client.calls == []


class TestCacheTools:
    def test_stats_and_clear(self):
        cache = MemoryCache()
        cache.set(LAW_TEXT, "k", {"v": 1})
        stats = tools.get_cache_stats(cache)
        assert stats.data["count"] == 1
        assert "**件数**: 1" in stats.content

        cleared = tools.clear_cache(cache)
        assert cleared.success
        assert tools.get_cache_stats(cache).data["count"] == 0


class TestServer:
    def test_server_creation(self):
        mcp = create_server(client=StubClient(), cache=MemoryCache())
        assert isinstance(mcp, FastMCP)

    @pytest.mark.asyncio
    async def test_tools_registered(self):
        mcp = create_server(client=StubClient(), cache=MemoryCache())
        async with Client(mcp) as client:
            names = {tool.name for tool in await client.list_tools()}
        assert names == {
            "search_laws", "get_law_text", "get_article",
            "get_updated_laws", "get_cache_stats", "clear_cache",
        }

    @pytest.mark.asyncio
    async def test_get_article(self):
        mcp = create_server(client=StubClient(), cache=MemoryCache())
        async with Client(mcp) as client:
            result = await client.call_tool("get_article", {
                "law_id": "415AC0000000057", "article": "第一条",
            })
        assert "（目的）" in result.content[0].text

    @pytest.mark.asyncio
    async def test_known_law_name(self, tmp_path):
        config_file = tmp_path / "egov_law.yaml"
        config_file.write_text("known_laws:\n  テスト法: 129AC0000000089\n", encoding="utf-8")
        stub = StubClient()
        mcp = create_server(config=ConfigLoader(str(config_file)), client=stub, cache=MemoryCache())
        async with Client(mcp) as client:
            result = await client.call_tool("get_law_text", {"law_id": "テスト法"})
        assert result.content[0].text.startswith("# 民法")
        assert stub.calls == [("get_law_by_id", "129AC0000000089")]

    @pytest.mark.asyncio
    async def test_failure_raises_tool_error(self):
        mcp = create_server(client=StubClient(error=FetchError("timeout")), cache=MemoryCache())
        async with Client(mcp) as client:
            with pytest.raises(ToolError) as exc_info:
                await client.call_tool("search_laws", {"keyword": "民法"})
        assert "FETCH_ERROR" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_cache_stats(self):
        cache = MemoryCache()
        cache.set(LAW_TEXT, "k", {"v": 1})
        mcp = create_server(client=StubClient(), cache=cache)
        async with Client(mcp) as client:
            result = await client.call_tool("get_cache_stats", {})
        assert json.loads(result.content[0].text)["count"] == 1


class TestCli:
    def test_parser(self):
        args = cli.build_parser().parse_args(["article", "--law-id", "415AC0000000057",
                                              "--article", "第一条", "--paragraph", "2"])
        assert args.command == "article"
        assert args.paragraph == 2

    def test_run_command(self, tmp_path):
        config = ConfigLoader(str(tmp_path / "missing.yaml"))
        args = cli.build_parser().parse_args(["search", "--keyword", "個人情報"])
        result = cli.run_command(args, config, StubClient(), MemoryCache())
        assert result.success
        assert result.content.startswith("検索結果: 2件")

    def test_cache_commands(self, tmp_path):
        config = ConfigLoader(str(tmp_path / "missing.yaml"))
        cache = MemoryCache()
        cache.set(LAW_TEXT, "k", {})
        args = cli.build_parser().parse_args(["cache-clear"])
        assert cli.run_command(args, config, StubClient(), cache).success
        assert cache.stats().count == 0

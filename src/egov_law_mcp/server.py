#!/usr/bin/env python3
"""
e-Gov Law MCP Server

Model Context Protocol server exposing Japanese law search and article
lookup over the e-Gov Law API, with TTL caching of API results.
"""

import argparse
import logging
import os
from typing import Optional

from fastmcp import FastMCP, Context
from fastmcp.exceptions import ToolError

from . import tools
from .cache import LawCache
from .client import EGovLawClient
from .config import ConfigLoader

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def create_server(config: Optional[ConfigLoader] = None,
                  client: Optional[EGovLawClient] = None,
                  cache: Optional[tools.Cache] = None) -> FastMCP:
    """
    Build the MCP server.

    Args:
        config: Configuration loader (defaults to the bundled YAML file)
        client: e-Gov API client (built from ``config`` when omitted)
        cache: Result cache (disk cache under the configured directory when omitted)
    """
    config = config or ConfigLoader()
    if client is None:
        client = EGovLawClient.from_settings(config.api)
    if cache is None:
        cache = LawCache(cache_dir=str(config.cache_dir), config=config.cache_config)

    mcp = FastMCP(
        name=os.environ.get("MCP_SERVER_NAME", "e-Gov Law MCP Server"),
        mask_error_details=True,
        on_duplicate_tools="warn",
    )

    def unwrap(result: tools.ToolResult) -> str:
        if not result.success:
            raise ToolError(result.content)
        return result.content

    @mcp.tool
    async def search_laws(keyword: str, category: Optional[int] = None,
                          ctx: Context = None) -> str:
        """
        Search Japanese laws by name.

        Args:
            keyword: Part of a law name or law number (e.g. 個人情報)
            category: 1=全法令, 2=憲法・法律, 3=政令・勅令, 4=府省令 (default: all)
        """
        if ctx:
            await ctx.info(f"Searching laws for '{keyword}'")
        return unwrap(await tools.search_laws(client, cache, keyword, category))

    @mcp.tool
    async def get_law_text(law_id: str = "", law_number: str = "",
                           ctx: Context = None) -> str:
        """
        Get the full text of a law as Markdown with a table of contents.

        Args:
            law_id: Law ID (e.g. 129AC0000000089) or a well-known name (e.g. 民法)
            law_number: Law number (e.g. 明治二十九年法律第八十九号)
        """
        if ctx:
            await ctx.info(f"Getting law text for {law_id or law_number}")
        return unwrap(await tools.get_law_text(
            client, cache,
            law_id=law_id or None,
            law_number=law_number or None,
            known_laws=config.known_laws,
        ))

    @mcp.tool
    async def get_article(law_id: str, article: str, paragraph: Optional[int] = None,
                          ctx: Context = None) -> str:
        """
        Get a single article from a law.

        Args:
            law_id: Law ID (e.g. 415AC0000000057)
            article: Article number, as 第一条, 第20条, 二十 or 20
            paragraph: Only this paragraph (項) of the article
        """
        if ctx:
            await ctx.info(f"Getting article {article} of {law_id}")
        return unwrap(await tools.get_article(client, cache, law_id, article, paragraph))

    @mcp.tool
    async def get_updated_laws(date: str, ctx: Context = None) -> str:
        """
        List laws updated on a given day.

        Args:
            date: Date in yyyyMMdd format (e.g. 20240401)
        """
        if ctx:
            await ctx.info(f"Getting laws updated on {date}")
        return unwrap(await tools.get_updated_laws(client, cache, date))

    @mcp.tool
    async def get_cache_stats(ctx: Context = None) -> dict:
        """Get cache entry count, total size and age range."""
        if ctx:
            await ctx.info("Getting cache statistics...")
        return tools.get_cache_stats(cache).data

    @mcp.tool
    async def clear_cache(ctx: Context = None) -> str:
        """Remove every cached API result."""
        if ctx:
            await ctx.info("Clearing cache...")
        return tools.clear_cache(cache).content

    return mcp


def main():
    """Entry point for direct uvx installation"""
    parser = argparse.ArgumentParser(description="e-Gov Law MCP Server")
    parser.add_argument("--transport", choices=["stdio", "streamable-http"], default="stdio")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--config", default=None, help="Path to YAML config file")
    args = parser.parse_args()

    mcp = create_server(ConfigLoader(args.config))

    if args.transport == "stdio":
        mcp.run()
    else:
        mcp.run(
            transport="streamable-http",
            host=args.host,
            port=args.port
        )


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
CLI wrapper for the e-Gov Law tools.
Allows direct command-line access without needing an MCP client.

Usage:
  egov-law search --keyword 個人情報
  egov-law law-text --law-id 民法
  egov-law article --law-id 415AC0000000057 --article 第一条
  egov-law updated --date 20240401
  egov-law cache-stats
"""

import argparse
import asyncio
import json
import logging
import sys

from . import tools
from .cache import LawCache
from .client import EGovLawClient
from .config import ConfigLoader

logging.basicConfig(level=logging.WARNING)


def run_command(args: argparse.Namespace, config: ConfigLoader,
                client: EGovLawClient, cache: tools.Cache) -> tools.ToolResult:
    if args.command == "search":
        return asyncio.run(tools.search_laws(client, cache, args.keyword, args.category))
    if args.command == "law-text":
        return asyncio.run(tools.get_law_text(
            client, cache,
            law_id=args.law_id,
            law_number=args.law_number,
            known_laws=config.known_laws,
        ))
    if args.command == "article":
        return asyncio.run(tools.get_article(client, cache, args.law_id, args.article, args.paragraph))
    if args.command == "updated":
        return asyncio.run(tools.get_updated_laws(client, cache, args.date))
    if args.command == "cache-stats":
        return tools.get_cache_stats(cache)
    if args.command == "cache-clear":
        return tools.clear_cache(cache)
    raise ValueError(f"Unknown command: {args.command}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="e-Gov Law CLI - Search and retrieve Japanese laws",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Examples:
  egov-law search --keyword 消費者
  egov-law law-text --law-number 明治二十九年法律第八十九号
  egov-law article --law-id 129AC0000000089 --article 192 --paragraph 1"""
    )
    parser.add_argument("--config", default=None, help="Path to YAML config file")
    parser.add_argument("--json", action="store_true", help="Print structured data instead of Markdown")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_search = subparsers.add_parser("search", help="Search laws by name")
    p_search.add_argument("--keyword", required=True, help="Part of a law name or number")
    p_search.add_argument("--category", type=int, default=None, choices=sorted(tools.LAW_CATEGORIES),
                          help="1=全法令, 2=憲法・法律, 3=政令・勅令, 4=府省令")

    p_text = subparsers.add_parser("law-text", help="Get full law text")
    p_text.add_argument("--law-id", default=None, help="Law ID or well-known name (e.g., 民法)")
    p_text.add_argument("--law-number", default=None, help="Law number")

    p_article = subparsers.add_parser("article", help="Get a single article")
    p_article.add_argument("--law-id", required=True, help="Law ID")
    p_article.add_argument("--article", required=True, help="Article number (e.g., 第一条, 20)")
    p_article.add_argument("--paragraph", type=int, default=None, help="Paragraph number (項)")

    p_updated = subparsers.add_parser("updated", help="Laws updated on a date")
    p_updated.add_argument("--date", required=True, help="Date in yyyyMMdd format")

    subparsers.add_parser("cache-stats", help="Show cache statistics")
    subparsers.add_parser("cache-clear", help="Remove all cached results")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    config = ConfigLoader(args.config)
    client = EGovLawClient.from_settings(config.api)
    cache = LawCache(cache_dir=str(config.cache_dir), config=config.cache_config)
    result = run_command(args, config, client, cache)

    if args.json:
        print(json.dumps(result.data, ensure_ascii=False, indent=2))
    else:
        print(result.content)

    if not result.success:
        sys.exit(1)


if __name__ == "__main__":
    main()

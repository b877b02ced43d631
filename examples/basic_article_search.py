#!/usr/bin/env python3
"""
基本的な条文取得の例

get_articleツールで個人情報保護法第一条を、get_law_textツールで
既知の法令名（民法）から全文を取得します。
"""

import asyncio

from fastmcp import Client

from egov_law_mcp.server import create_server


async def fetch_articles():
    print("=== 基本的な条文取得例 ===\n")

    async with Client(create_server()) as client:
        print("個人情報保護法 第一条（目的）を取得中...")
        result = await client.call_tool("get_article", {
            "law_id": "415AC0000000057",
            "article": "第一条",
        })
        print(result.content[0].text)

        print("\n民法 第百九十二条 第一項を取得中...")
        result = await client.call_tool("get_article", {
            "law_id": "129AC0000000089",
            "article": "192",
            "paragraph": 1,
        })
        print(result.content[0].text)

        print("\n「消費者」を含む法令を検索中...")
        result = await client.call_tool("search_laws", {"keyword": "消費者", "category": 2})
        print(result.content[0].text[:1000])


if __name__ == "__main__":
    asyncio.run(fetch_articles())

"""
Markdown formatting for tool output.
"""

from typing import Iterable

from .models import ArticleResult, LawDocument, LawSummary, TocEntry


def law_document_to_markdown(doc: LawDocument) -> str:
    """Whole law: header block, table of contents, then the rendered body."""
    parts = [
        f"# {doc.law_name}",
        "",
        f"**法令番号**: {doc.law_number}",
        f"**法令ID**: {doc.law_id}",
        "",
    ]

    if doc.toc:
        parts.append("## 目次")
        parts.append("")
        parts.append(toc_to_markdown(doc.toc))
        parts.append("")

    parts.append(doc.content)
    return "\n".join(parts)


def toc_to_markdown(toc: Iterable[TocEntry], level: int = 0) -> str:
    indent = "  " * level
    lines = []
    for entry in toc:
        lines.append(f"{indent}- {entry.title} ({entry.ref})")
        if entry.children:
            lines.append(toc_to_markdown(entry.children, level + 1))
    return "\n".join(lines)


def article_to_markdown(article: ArticleResult) -> str:
    parts = []
    title = article.article_title or article.article_num
    parts.append(f"## {title}")
    parts.append("")
    parts.append(article.content)
    parts.append("")

    if article.paragraphs:
        parts.append("### 項の詳細")
        parts.append("")
        for para in article.paragraphs:
            parts.append(f"**第{para.num}項**")
            parts.append("")
            parts.append(para.content)
            parts.append("")
            if para.items:
                for item in para.items:
                    parts.append(f"  - {item.num}. {item.content}")
                parts.append("")

    return "\n".join(parts)


def search_result_to_markdown(laws: Iterable[LawSummary]) -> str:
    laws = list(laws)
    if not laws:
        return "検索結果がありません。"

    parts = [f"検索結果: {len(laws)}件", ""]
    for law in laws:
        parts.append(f"### {law.law_name}")
        parts.append("")
        parts.append(f"- **法令番号**: {law.law_number}")
        parts.append(f"- **法令ID**: {law.law_id}")
        if law.law_type:
            parts.append(f"- **種別**: {law.law_type}")
        if law.promulgation_date:
            parts.append(f"- **公布日**: {law.promulgation_date}")
        parts.append("")
    return "\n".join(parts)


def error_to_markdown(code: str, message: str) -> str:
    return f"""## エラー

**コード**: {code}
**メッセージ**: {message}

### 対処方法

- キーワードや条件を変えて再検索してください
- 法令番号が正しいか確認してください
- しばらく待ってから再試行してください
"""


def suggest_similar_laws(query: str, candidates: Iterable[LawSummary]) -> str:
    candidates = list(candidates)
    parts = [f"「{query}」に該当する法令が見つかりませんでした。"]
    if not candidates:
        return parts[0]

    parts.append("")
    parts.append("以下の法令を探していますか？")
    parts.append("")
    for candidate in candidates[:5]:
        parts.append(f"- {candidate.law_name} (ID: {candidate.law_id})")
    return "\n".join(parts)

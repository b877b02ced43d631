"""
Text rendering for parsed law trees.

Two projections of the same tree: the heading-structured body text and the
table of contents.
"""

from typing import Optional

from .models import LawTree, NodeKind, StructuralNode, TocEntry
from .numerals import format_reference, normalize_article_num

MAX_HEADER_DEPTH = 6
INDENT = "  "
SEPARATOR = "　"


def paragraph_number(node: StructuralNode) -> int:
    """Paragraph ordinal as an int; a missing or odd Num counts as 1."""
    try:
        return int(normalize_article_num(node.num)) or 1
    except ValueError:
        return 1


def _heading(node: StructuralNode) -> str:
    return node.title or format_reference(node.kind.value, node.num) or node.kind.value


def render_item(node: StructuralNode, level: int = 1) -> str:
    """Render an Item or Subitem, indented one step per nesting level."""
    parts = []
    indent = INDENT * level
    if node.sentence is not None:
        label = node.title or node.num
        parts.append(f"{indent}{label}{SEPARATOR}{node.text}")
    for sub in node.children:
        parts.append(render_item(sub, level + 1))
    return "\n".join(parts)


def render_paragraph(node: StructuralNode) -> str:
    parts = []
    if node.sentence is not None:
        # The first paragraph carries no visible number
        prefix = f"{node.num}{SEPARATOR}" if node.num and node.num != "1" else ""
        parts.append(f"{prefix}{node.text}")
    for item in node.children_of(NodeKind.ITEM):
        parts.append(render_item(item, 1))
    return "\n".join(parts)


def render_article(node: StructuralNode, paragraph: Optional[int] = None) -> str:
    """
    Render an Article with its caption, title and paragraphs.

    Args:
        node: Article node
        paragraph: When given, only the paragraph with this number is emitted

    Returns:
        Article text
    """
    parts = []
    if node.caption:
        parts.append(f"**{node.caption}**")
    if node.title or node.num:
        title = node.title or format_reference("Article", node.num)
        parts.append(f"**{title}**\n")

    for para in node.children_of(NodeKind.PARAGRAPH):
        if paragraph is not None and paragraph_number(para) != paragraph:
            continue
        parts.append(render_paragraph(para))
    return "\n".join(parts)


def render_node(node: StructuralNode, depth: int = 1) -> str:
    """Render any structural node; containers become markdown headers."""
    if node.kind == NodeKind.ARTICLE:
        return render_article(node)
    if node.kind == NodeKind.PARAGRAPH:
        return render_paragraph(node)
    if node.kind in (NodeKind.ITEM, NodeKind.SUBITEM):
        return render_item(node)

    parts = []
    if node.is_container:
        marks = "#" * min(depth + 2, MAX_HEADER_DEPTH)
        parts.append(f"{marks} {_heading(node)}\n")
    for c in node.children:
        parts.append(render_node(c, depth + 1))
    return "\n".join(parts)


def render_provision(node: StructuralNode, depth: int = 1) -> str:
    return "\n".join(render_node(c, depth) for c in node.children)


def render_law_body(tree: LawTree) -> str:
    """Render preamble, main provision and supplementary provisions."""
    parts = []

    if tree.preamble is not None:
        parts.append("## 前文\n")
        parts.append(render_provision(tree.preamble))

    if tree.main_provision.children:
        parts.append("## 本則\n")
        parts.append(render_provision(tree.main_provision))

    if tree.supplementary:
        parts.append("## 附則\n")
        for suppl in tree.supplementary:
            if suppl.caption:
                parts.append(f"### {suppl.caption}\n")
            parts.append(render_provision(suppl, depth=2))

    return "\n".join(parts)


def _toc_entry(node: StructuralNode) -> TocEntry:
    children = tuple(
        _toc_entry(c) for c in node.children
        if c.is_container or c.kind == NodeKind.ARTICLE
    )
    return TocEntry(
        title=node.title or node.num,
        ref=format_reference(node.kind.value, node.num),
        children=children,
    )


def build_toc(tree: LawTree) -> tuple:
    """
    Table of contents for the main provision.

    Containers are listed with their nested containers and articles; a law
    without any containers lists its articles flat.
    """
    main = tree.main_provision
    containers = [c for c in main.children if c.is_container]
    if containers:
        return tuple(_toc_entry(c) for c in containers)
    return tuple(_toc_entry(a) for a in main.children_of(NodeKind.ARTICLE))

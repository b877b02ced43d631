"""
e-Gov Law API XML parser.

Builds the structural tree for a law from a ``lawdata`` response, locates
articles in it, and parses ``lawlists`` / ``updatelawlists`` responses.

The response root may wrap the law in any subset of
DataRoot > ApplData > LawFullText > Law, so the layers are probed in order
and a missing layer simply hands its parent on to the next probe.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional, Union

from .errors import ParseError
from .models import (
    CONTAINER_KINDS,
    ArticleResult,
    Fragment,
    ItemView,
    LawDocument,
    LawIndex,
    LawSummary,
    LawTree,
    NodeKind,
    ParagraphView,
    PlainText,
    StructuralNode,
    Wrapped,
    fold_text,
)
from .numerals import normalize_article_num
from .render import build_toc, paragraph_number, render_article, render_law_body
from .shapes import ATTR_PREFIX, TEXT_KEY, attr, child, children, decode_xml

logger = logging.getLogger(__name__)

LAW_DATA_LAYERS = ("DataRoot", "ApplData", "LawFullText", "Law")
LAW_LIST_LAYERS = ("DataRoot", "ApplData")
MAX_SUBITEM_LEVEL = 10

SUPPL_PROVISION_TAGS = ("SupplProvision", "SupplementaryProvisions")
SUPPL_LABEL_TAGS = ("SupplProvisionLabel", "SupplementaryProvisionLabel")


# ---------------------------------------------------------------------------
# Root layers
# ---------------------------------------------------------------------------

def resolve_layers(decoded: dict[str, Any], layers: tuple) -> dict[str, Any]:
    """
    Walk the wrapper layers outer to inner.

    Each probe accepts the named child when present; otherwise the current
    container is carried forward. Returns the container chosen at each stage.
    """
    current: Any = decoded
    resolved = {}
    for tag in layers:
        layer = child(current, tag)
        if isinstance(layer, dict):
            current = layer
        resolved[tag] = current
    return resolved


# ---------------------------------------------------------------------------
# Leaf content
# ---------------------------------------------------------------------------

def to_fragment(value: Any) -> Fragment:
    """Convert a decoded field into PlainText / Wrapped leaf content."""
    if value is None:
        return PlainText("")
    if isinstance(value, str):
        return PlainText(value)
    if isinstance(value, list):
        return Wrapped(tuple(to_fragment(v) for v in value))
    if isinstance(value, dict):
        if TEXT_KEY in value:
            return PlainText(str(value[TEXT_KEY]))
        return Wrapped(tuple(
            to_fragment(v) for k, v in value.items()
            if not k.startswith(ATTR_PREFIX)
        ))
    return PlainText(str(value))


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = fold_text(to_fragment(value)).strip()
    return text or None


def _sentence(raw: dict, tag: str) -> Optional[Fragment]:
    value = child(raw, tag)
    return None if value is None else to_fragment(value)


# ---------------------------------------------------------------------------
# Tree builder
# ---------------------------------------------------------------------------

def _build_subitems(raw: Any, level: int) -> tuple:
    if level > MAX_SUBITEM_LEVEL:
        return ()
    tag = f"Subitem{level}"
    return tuple(
        StructuralNode(
            kind=NodeKind.SUBITEM,
            num=attr(si, "Num"),
            title=_text(child(si, f"{tag}Title")),
            sentence=_sentence(si, f"{tag}Sentence"),
            children=_build_subitems(si, level + 1),
            level=level,
        )
        for si in children(raw, tag)
    )


def _build_item(raw: Any) -> StructuralNode:
    return StructuralNode(
        kind=NodeKind.ITEM,
        num=attr(raw, "Num"),
        title=_text(child(raw, "ItemTitle")),
        sentence=_sentence(raw, "ItemSentence"),
        children=_build_subitems(raw, 1),
    )


def _build_paragraph(raw: Any) -> StructuralNode:
    return StructuralNode(
        kind=NodeKind.PARAGRAPH,
        num=attr(raw, "Num"),
        caption=_text(child(raw, "ParagraphCaption")),
        sentence=_sentence(raw, "ParagraphSentence"),
        children=tuple(_build_item(i) for i in children(raw, "Item")),
    )


def _build_article(raw: Any) -> StructuralNode:
    return StructuralNode(
        kind=NodeKind.ARTICLE,
        num=attr(raw, "Num"),
        caption=_text(child(raw, "ArticleCaption")),
        title=_text(child(raw, "ArticleTitle")),
        children=tuple(_build_paragraph(p) for p in children(raw, "Paragraph")),
    )


def _build_body_children(raw: Any) -> tuple:
    """
    Containers, then articles, then bare paragraphs of one level.

    Document order is kept within each kind only. A level that mixes kinds
    (an Article before a Section in one Chapter) comes out grouped by kind.
    """
    nodes = []
    for kind in CONTAINER_KINDS:
        for c in children(raw, kind.value):
            nodes.append(_build_container(c, kind))
    nodes.extend(_build_article(a) for a in children(raw, "Article"))
    nodes.extend(_build_paragraph(p) for p in children(raw, "Paragraph"))
    return tuple(nodes)


def _build_container(raw: Any, kind: NodeKind) -> StructuralNode:
    return StructuralNode(
        kind=kind,
        num=attr(raw, "Num"),
        title=_text(child(raw, f"{kind.value}Title")),
        children=_build_body_children(raw),
    )


def _build_supplementary(raw: Any) -> StructuralNode:
    label = None
    for tag in SUPPL_LABEL_TAGS:
        label = _text(child(raw, tag))
        if label:
            break
    return StructuralNode(
        kind=NodeKind.SUPPL_PROVISION,
        num=attr(raw, "AmendLawNum"),
        caption=label,
        children=_build_body_children(raw),
    )


def build_law_tree(xml: Union[str, bytes]) -> LawTree:
    """
    Parse a lawdata response into a LawTree.

    Args:
        xml: Raw response XML

    Returns:
        LawTree; a law without a MainProvision gets an empty one

    Raises:
        ParseError: If the XML is malformed or no law data is present
    """
    decoded = decode_xml(xml)
    layers = resolve_layers(decoded, LAW_DATA_LAYERS)
    appl_data = layers["ApplData"]
    law = layers["Law"]

    if not isinstance(law, dict) or ("LawBody" not in law and "LawNum" not in law):
        raise ParseError("No law data found in response")

    law_id = _text(child(appl_data, "LawId")) or attr(law, "LawId")
    law_number = _text(child(law, "LawNum")) or attr(law, "LawNum")

    body = child(law, "LawBody")
    if not isinstance(body, dict):
        body = {}
    law_name = _text(child(body, "LawTitle")) or _text(child(law, "LawTitle")) or ""

    main_raw = child(body, "MainProvision")
    main_provision = StructuralNode(
        kind=NodeKind.MAIN_PROVISION,
        children=_build_body_children(main_raw) if main_raw is not None else (),
    )

    preamble = None
    preamble_raw = child(body, "Preamble")
    if preamble_raw is not None:
        preamble = StructuralNode(
            kind=NodeKind.PREAMBLE,
            children=tuple(_build_paragraph(p) for p in children(preamble_raw, "Paragraph")),
        )

    supplementary = []
    for tag in SUPPL_PROVISION_TAGS:
        supplementary.extend(_build_supplementary(s) for s in children(body, tag))

    if not main_provision.children:
        logger.info(f"No main provision articles in law {law_id or law_number}")

    return LawTree(
        law_id=law_id,
        law_number=law_number,
        law_name=law_name,
        main_provision=main_provision,
        preamble=preamble,
        supplementary=tuple(supplementary),
    )


# ---------------------------------------------------------------------------
# Article locator
# ---------------------------------------------------------------------------

def _find_article_recursive(node: StructuralNode, target: str) -> Optional[StructuralNode]:
    for article in node.children_of(NodeKind.ARTICLE):
        if normalize_article_num(article.num) == target:
            return article

    for c in node.children:
        if c.is_container:
            found = _find_article_recursive(c, target)
            if found is not None:
                return found
    return None


def find_article(node: StructuralNode, designator: str) -> Optional[StructuralNode]:
    """
    Depth-first search for an Article by designator.

    Direct Article children of a container are checked before its nested
    containers, so the first match in document order wins.
    """
    target = normalize_article_num(designator)
    return _find_article_recursive(node, target)


# ---------------------------------------------------------------------------
# Collaborator-facing operations
# ---------------------------------------------------------------------------

def parse_law_text(xml: Union[str, bytes], fetched_at: Optional[str] = None) -> LawDocument:
    """Parse a lawdata response into a rendered LawDocument."""
    tree = build_law_tree(xml)
    return LawDocument(
        law_id=tree.law_id,
        law_number=tree.law_number,
        law_name=tree.law_name,
        content=render_law_body(tree),
        toc=build_toc(tree),
        fetched_at=fetched_at or datetime.now(timezone.utc).isoformat(),
    )


def parse_article(xml: Union[str, bytes], designator: str,
                  paragraph: Optional[int] = None) -> Optional[ArticleResult]:
    """
    Locate one article (optionally one paragraph) in a lawdata response.

    Returns:
        ArticleResult, or None when no article matches
    """
    tree = build_law_tree(xml)
    node = find_article(tree.main_provision, designator)
    if node is None:
        return None

    paragraphs = []
    for para in node.children_of(NodeKind.PARAGRAPH):
        num = paragraph_number(para)
        if paragraph is not None and num != paragraph:
            continue
        items = tuple(ItemView(num=i.num, content=i.text) for i in para.children_of(NodeKind.ITEM))
        paragraphs.append(ParagraphView(num=num, content=para.text, items=items))

    return ArticleResult(
        law_id=tree.law_id,
        article_num=designator,
        article_title=node.title,
        caption=node.caption,
        content=render_article(node, paragraph),
        paragraphs=tuple(paragraphs),
    )


def parse_law_list(xml: Union[str, bytes]) -> LawIndex:
    """Parse a lawlists / updatelawlists response."""
    decoded = decode_xml(xml)
    layers = resolve_layers(decoded, LAW_LIST_LAYERS)
    rows = children(layers["ApplData"], "LawNameListInfo") or \
        children(layers["DataRoot"], "LawNameListInfo")

    laws = tuple(
        LawSummary(
            law_id=_text(child(row, "LawId")) or "",
            law_number=_text(child(row, "LawNo")) or "",
            law_name=_text(child(row, "LawName")) or "",
            law_type=_text(child(row, "LawType")) or _text(child(row, "LawTypeName")) or "",
            law_name_kana=_text(child(row, "LawNameKana")),
            promulgation_date=_text(child(row, "PromulgationDate")),
            enforcement_date=_text(child(row, "EnforcementDate")),
        )
        for row in rows
        if isinstance(row, dict)
    )
    return LawIndex(total_count=len(laws), laws=laws)

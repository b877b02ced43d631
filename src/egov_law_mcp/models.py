"""
Data model for parsed e-Gov law documents.

Trees are built once per parse and never mutated afterwards, so every
structure here is a frozen dataclass holding tuples.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional, Union


class NodeKind(str, Enum):
    PREAMBLE = "Preamble"
    MAIN_PROVISION = "MainProvision"
    SUPPL_PROVISION = "SupplProvision"
    PART = "Part"
    CHAPTER = "Chapter"
    SECTION = "Section"
    SUBSECTION = "Subsection"
    DIVISION = "Division"
    ARTICLE = "Article"
    PARAGRAPH = "Paragraph"
    ITEM = "Item"
    SUBITEM = "Subitem"


# Containers in nesting order; also the order they are searched in.
CONTAINER_KINDS = (
    NodeKind.PART,
    NodeKind.CHAPTER,
    NodeKind.SECTION,
    NodeKind.SUBSECTION,
    NodeKind.DIVISION,
)


@dataclass(frozen=True)
class PlainText:
    text: str


@dataclass(frozen=True)
class Wrapped:
    """Markup-only container whose text lives in its parts."""
    parts: tuple = ()


Fragment = Union[PlainText, Wrapped]


def fold_text(fragment: Optional[Fragment]) -> str:
    """Recover the text of a fragment, concatenating nested parts in order."""
    if fragment is None:
        return ""
    if isinstance(fragment, PlainText):
        return fragment.text
    return "".join(fold_text(part) for part in fragment.parts)


@dataclass(frozen=True)
class StructuralNode:
    kind: NodeKind
    num: str = ""
    caption: Optional[str] = None
    title: Optional[str] = None
    children: tuple = ()
    sentence: Optional[Fragment] = None
    level: int = 0

    @property
    def is_container(self) -> bool:
        return self.kind in CONTAINER_KINDS

    @property
    def text(self) -> str:
        return fold_text(self.sentence)

    def children_of(self, kind: NodeKind) -> list["StructuralNode"]:
        return [c for c in self.children if c.kind == kind]


@dataclass(frozen=True)
class LawTree:
    law_id: str
    law_number: str
    law_name: str
    main_provision: StructuralNode
    preamble: Optional[StructuralNode] = None
    supplementary: tuple = ()


@dataclass(frozen=True)
class TocEntry:
    title: str
    ref: str
    children: tuple = ()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"title": self.title, "ref": self.ref}
        if self.children:
            data["children"] = [c.to_dict() for c in self.children]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TocEntry":
        return cls(
            title=data.get("title", ""),
            ref=data.get("ref", ""),
            children=tuple(cls.from_dict(c) for c in data.get("children", [])),
        )


@dataclass(frozen=True)
class LawDocument:
    law_id: str
    law_number: str
    law_name: str
    content: str
    fetched_at: str
    toc: tuple = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "law_id": self.law_id,
            "law_number": self.law_number,
            "law_name": self.law_name,
            "content": self.content,
            "toc": [entry.to_dict() for entry in self.toc],
            "fetched_at": self.fetched_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LawDocument":
        return cls(
            law_id=data.get("law_id", ""),
            law_number=data.get("law_number", ""),
            law_name=data.get("law_name", ""),
            content=data.get("content", ""),
            fetched_at=data.get("fetched_at", ""),
            toc=tuple(TocEntry.from_dict(e) for e in data.get("toc", [])),
        )


@dataclass(frozen=True)
class ItemView:
    num: str
    content: str


@dataclass(frozen=True)
class ParagraphView:
    num: int
    content: str
    items: tuple = ()


@dataclass(frozen=True)
class ArticleResult:
    law_id: str
    article_num: str
    content: str
    article_title: Optional[str] = None
    caption: Optional[str] = None
    paragraphs: tuple = ()

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ArticleResult":
        paragraphs = tuple(
            ParagraphView(
                num=p["num"],
                content=p["content"],
                items=tuple(ItemView(**i) for i in p.get("items", [])),
            )
            for p in data.get("paragraphs", [])
        )
        return cls(
            law_id=data.get("law_id", ""),
            article_num=data.get("article_num", ""),
            content=data.get("content", ""),
            article_title=data.get("article_title"),
            caption=data.get("caption"),
            paragraphs=paragraphs,
        )


@dataclass(frozen=True)
class LawSummary:
    law_id: str
    law_number: str
    law_name: str
    law_type: str = ""
    law_name_kana: Optional[str] = None
    promulgation_date: Optional[str] = None
    enforcement_date: Optional[str] = None


@dataclass(frozen=True)
class LawIndex:
    total_count: int
    laws: tuple = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LawIndex":
        laws = tuple(LawSummary(**law) for law in data.get("laws", []))
        return cls(total_count=data.get("total_count", len(laws)), laws=laws)

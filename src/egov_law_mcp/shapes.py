"""
XML decoding and shape normalization.

The e-Gov payloads are decoded into plain dicts: repeated child tags become
lists while single ones stay scalar, so the same field can show up as a
string, a dict or a list depending on the document. Everything downstream
reads fields through ``ensure_list`` instead of inspecting those shapes.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Any, Optional, Union

from .errors import ParseError

logger = logging.getLogger(__name__)

ATTR_PREFIX = "@_"
TEXT_KEY = "#text"


def ensure_list(value: Any) -> list:
    """Return ``value`` as a list: absent -> [], single -> [value]."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def attr(node: Any, name: str, default: str = "") -> str:
    """Read an attribute from a decoded element."""
    if isinstance(node, dict):
        value = node.get(f"{ATTR_PREFIX}{name}")
        if value is not None:
            return str(value)
    return default


def child(node: Any, tag: str) -> Optional[Any]:
    """First ``tag`` child of a decoded element, or None."""
    if not isinstance(node, dict):
        return None
    children = ensure_list(node.get(tag))
    return children[0] if children else None


def children(node: Any, tag: str) -> list:
    """All ``tag`` children of a decoded element, in document order."""
    if not isinstance(node, dict):
        return []
    return ensure_list(node.get(tag))


def _has_mixed_text(elem: ET.Element) -> bool:
    if elem.text and elem.text.strip():
        return True
    return any(c.tail and c.tail.strip() for c in elem)


def _decode_element(elem: ET.Element) -> Any:
    attrs = {f"{ATTR_PREFIX}{k}": v for k, v in elem.attrib.items()}
    kids = list(elem)

    if not kids:
        text = (elem.text or "").strip()
        if not attrs:
            return text
        if text:
            attrs[TEXT_KEY] = text
        return attrs

    result: dict[str, Any] = dict(attrs)
    for kid in kids:
        value = _decode_element(kid)
        if kid.tag in result:
            existing = result[kid.tag]
            if isinstance(existing, list):
                existing.append(value)
            else:
                result[kid.tag] = [existing, value]
        else:
            result[kid.tag] = value

    # Inline markup (Ruby, Sup, ...) inside running text: keep the text in order
    if _has_mixed_text(elem):
        result[TEXT_KEY] = "".join(elem.itertext()).strip()
    return result


def decode_xml(xml: Union[str, bytes]) -> dict[str, Any]:
    """
    Decode an XML document into nested dicts keyed by tag.

    Args:
        xml: XML text or bytes

    Returns:
        ``{root_tag: decoded_root}``

    Raises:
        ParseError: If the input is empty or not well-formed XML
    """
    if not xml or (isinstance(xml, str) and not xml.strip()):
        raise ParseError("Empty XML payload")
    try:
        root = ET.fromstring(xml)
    except ET.ParseError as e:
        logger.warning(f"XML decode failed: {e}")
        raise ParseError(f"XML decode failed: {e}") from e
    return {root.tag: _decode_element(root)}

"""
Japanese numeral handling for article and paragraph designators.
"""

import re

_FULLWIDTH_DIGITS = str.maketrans('０１２３４５６７８９', '0123456789')

KANJI_DIGITS = {"一": 1, "二": 2, "三": 3, "四": 4, "五": 5,
                "六": 6, "七": 7, "八": 8, "九": 9}
KANJI_MULTIPLIERS = {"十": 10, "百": 100, "千": 1000}

_DIGIT_RUN = re.compile(r'\d+')
_ARTICLE_WRAPPER = re.compile(r'第(.+?)条')

REFERENCE_SUFFIXES = {
    "Part": "編",
    "Chapter": "章",
    "Section": "節",
    "Subsection": "款",
    "Division": "目",
    "Article": "条",
    "Paragraph": "項",
    "Item": "号",
}


def normalize_number(s: str) -> str:
    """Fold full-width digits to ASCII and strip whitespace."""
    if not s:
        return s
    return s.translate(_FULLWIDTH_DIGITS).strip()


def kanji_to_int(kanji: str) -> int:
    """
    Evaluate a kanji numeral left to right.

    ``pending`` holds the last digit seen; a multiplier folds it into the
    total (a bare multiplier counts as one of itself). Unknown characters
    are skipped.
    """
    total = 0
    pending = 0
    for char in kanji:
        if char in KANJI_MULTIPLIERS:
            unit = KANJI_MULTIPLIERS[char]
            total += unit if pending == 0 else pending * unit
            pending = 0
        elif char in KANJI_DIGITS:
            pending = KANJI_DIGITS[char]
    return total + pending


def normalize_article_num(designator: str) -> str:
    """
    Convert an article designator to its decimal value as a string.

    Examples:
        "第二十条" -> "20", "第百二十三条" -> "123", "20" -> "20",
        "第２０条" -> "20", "6_2" -> "6"

    The first arabic digit run wins when present. Input without any numeral
    is returned unchanged.
    """
    if designator is None:
        return ""
    s = normalize_number(str(designator))

    digits = _DIGIT_RUN.search(s)
    if digits:
        return digits.group(0)

    wrapped = _ARTICLE_WRAPPER.search(s)
    kanji = wrapped.group(1) if wrapped else s
    if not any(c in KANJI_DIGITS or c in KANJI_MULTIPLIERS for c in kanji):
        return s
    return str(kanji_to_int(kanji))


def arabic_to_kanji(num_str: str) -> str:
    """Convert Arabic numbers (0-9999) to Kanji for Japanese legal text."""
    if not num_str.isdigit():
        return num_str

    num = int(num_str)
    if num == 0:
        return '〇'
    if num > 9999:
        return num_str  # Fallback for large numbers

    digits = '一二三四五六七八九'
    result = ''
    for unit, mark in ((1000, '千'), (100, '百'), (10, '十')):
        count = num // unit
        if count:
            result += ('' if count == 1 else digits[count - 1]) + mark
        num %= unit
    if num:
        result += digits[num - 1]
    return result


def format_reference(kind: str, num: str) -> str:
    """
    Human-readable reference for a structural unit.

    "Chapter", "3" -> "第三章"; "Article", "6_2" -> "第六条の二"
    """
    if not num:
        return ""
    suffix = REFERENCE_SUFFIXES.get(kind, "")
    head, *branches = num.split("_")
    ref = f"第{arabic_to_kanji(head)}{suffix}"
    for branch in branches:
        ref += f"の{arabic_to_kanji(branch)}"
    return ref

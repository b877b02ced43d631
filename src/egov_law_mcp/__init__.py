"""
e-Gov Law MCP - Japanese law search and article lookup over the e-Gov Law API.
"""

from .cache import CacheConfig, LawCache, MemoryCache
from .client import EGovLawClient
from .errors import EGovLawError, FetchError, InvalidParamsError, NotFoundError, ParseError
from .parser import parse_article, parse_law_list, parse_law_text

__version__ = "1.0.0"

__all__ = [
    "CacheConfig",
    "EGovLawClient",
    "EGovLawError",
    "FetchError",
    "InvalidParamsError",
    "LawCache",
    "MemoryCache",
    "NotFoundError",
    "ParseError",
    "parse_article",
    "parse_law_list",
    "parse_law_text",
]

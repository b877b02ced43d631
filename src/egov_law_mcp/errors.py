"""
Exception types for the e-Gov Law MCP package.

Parsing failures and upstream failures are raised; a missing article is a
normal outcome at the parser level (``None``) and only becomes
``NotFoundError`` once the client has to report it.
"""


class EGovLawError(Exception):
    """Base class for errors carrying a machine-readable code."""

    code = "ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ParseError(EGovLawError):
    """XML could not be decoded, or no law data was found at any level."""

    code = "PARSE_ERROR"


class NotFoundError(EGovLawError):
    """Requested law or article does not exist upstream."""

    code = "NOT_FOUND"


class FetchError(EGovLawError):
    """Network or HTTP failure that survived every retry."""

    code = "FETCH_ERROR"


class InvalidParamsError(EGovLawError):
    """Tool arguments failed validation before any request was made."""

    code = "INVALID_PARAMS"

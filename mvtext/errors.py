"""Exception types shared by the extraction and reconstruction code."""


class MVTextError(Exception):
    """Base exception for all mvtext errors."""


class DocumentParseError(MVTextError):
    """Raised when a data file cannot be parsed, or has the wrong shape."""


class DocumentSerializeError(MVTextError):
    """Raised when a patched document cannot be written back out."""


class PathSyntaxError(MVTextError, ValueError):
    """Raised for a malformed address string such as ``name[x`` or ``a..b``."""


class PathNotFound(MVTextError, LookupError):
    """Raised when an address does not resolve against a document.

    ``segment`` is the segment (or ``segment[index]`` step) that failed,
    ``path`` the full address being resolved.
    """

    def __init__(self, message: str, segment: str = "", path: str = ""):
        super().__init__(message)
        self.segment = segment
        self.path = path


class TranslationError(MVTextError, ConnectionError):
    """Raised by a translation provider when a text could not be translated."""

"""
1.0 Error Types
Exceptions raised by the sitemap model and the directory scanner.

Nothing here recovers locally: every failure aborts the current
operation and reaches the caller. I/O errors keep the offending path
and chain the original OSError as __cause__.
"""

from typing import Optional


class SitemapError(Exception):
    """Base class for every error raised by dirsitemap."""


# =============================================================================
# 2.0 CONTENT / FIELD VALIDATION
# =============================================================================

class InvalidSitemapContents(SitemapError, TypeError):
    """Sitemap() received something other than a string or a sequence of items."""


class InvalidLastModifiedType(SitemapError, TypeError):
    """last_modified was set to a value that is not a number, string or datetime."""


class InvalidDateFormat(SitemapError, ValueError):
    """A date string does not match any accepted W3C datetime form."""


class InvalidPriority(SitemapError, ValueError):
    """priority was set to a value that cannot be read as a number."""


class ParseError(SitemapError, ValueError):
    """Sitemap XML could not be parsed."""


# =============================================================================
# 3.0 I/O
# =============================================================================

class SitemapIOError(SitemapError):
    """Filesystem operation failed while scanning or reading a sitemap."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class ReadDirError(SitemapIOError):
    """A directory could not be listed."""


class StatError(SitemapIOError):
    """A directory entry could not be stat'ed."""


class FileReadError(SitemapIOError):
    """A sitemap file could not be read."""

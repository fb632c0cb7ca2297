"""
dirsitemap - Static Site Sitemap Generator

Modules:
- dates: W3C datetime parsing/formatting for <lastmod>
- sitemap: SitemapEntry / Sitemap document model, XML parsing and output
- generator: directory scanner with embedded sitemap support
- config: Configuration loading and validation
- data_processor: CSV snapshots and change detection
- main: command-line entry point
"""

__version__ = "1.0.0"

from dirsitemap.errors import (
    FileReadError,
    InvalidDateFormat,
    InvalidLastModifiedType,
    InvalidPriority,
    InvalidSitemapContents,
    ParseError,
    ReadDirError,
    SitemapError,
    StatError,
)
from dirsitemap.generator import SitemapGenerator, generate
from dirsitemap.sitemap import GenerateMarker, Sitemap, SitemapEntry, from_file, parse

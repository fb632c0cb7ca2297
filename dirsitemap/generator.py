"""
1.0 Directory Scanner
Builds a Sitemap from the files of a static site.

Key features:
- Recursive, strictly sequential walk in sorted listing order
- Extension filter (list or predicate) and directory index files
- Literal or callable lastmod/changefreq/priority per entry
- Embedded sitemap.xml files take over their whole directory, with
  relative URLs rebased onto the directory's URL
- Processing instructions inside an embedded sitemap expand into the
  generated entries of that same directory
"""

import inspect
import logging
import os
import posixpath
import re
import stat
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from dirsitemap.errors import ReadDirError, StatError
from dirsitemap.sitemap import GenerateMarker, Sitemap, SitemapEntry, SitemapItem, from_file

logger = logging.getLogger(__name__)

EMBEDDED_SITEMAP = "sitemap.xml"

DEFAULT_OPTIONS: Dict[str, Any] = {
    "ext": [".html", ".htm"],
    "index": ["index.html", "index.htm"],
    "last_modified": True,
    "include_sitemap": True,
    "follow_symlinks": False,
}

# URL already carries a scheme (http:, mailto:, ...)
RE_PROTOCOL = re.compile(r"^\w+:")


def create_url(entry: str, prefix: Optional[str] = None, ensure_final_slash: bool = False) -> str:
    """
    2.0 Turn a path fragment into an absolute URL path under prefix.

    A single leading slash on entry is dropped, the result is joined onto
    prefix and normalized, and always starts with exactly one slash.
    """
    if entry.startswith("/"):
        entry = entry[1:]

    if prefix:
        joined = posixpath.join(prefix, entry)
        entry = posixpath.normpath(joined)
        # normpath drops the trailing slash that directory URLs rely on
        if joined.endswith("/") and not entry.endswith("/"):
            entry += "/"

    if not entry.startswith("/"):
        entry = "/" + entry

    if ensure_final_slash and not entry.endswith("/"):
        entry += "/"

    return entry


def _accepts_options(fn: Callable) -> bool:
    try:
        params = inspect.signature(fn).parameters.values()
    except (TypeError, ValueError):
        return False
    return any(
        p.kind == p.VAR_KEYWORD
        or (p.name == "options" and p.kind in (p.POSITIONAL_OR_KEYWORD, p.KEYWORD_ONLY))
        for p in params
    )


def _call_if_fn(value: Any, args: tuple, options: Dict[str, Any]) -> Any:
    if not callable(value):
        return value
    # (url, stats, filename); options only for callables that ask for it
    if _accepts_options(value):
        return value(*args, options=options)
    return value(*args)


def _extension_filter(ext_filter: Any) -> Callable[[str], bool]:
    if callable(ext_filter):
        return ext_filter
    allowed = list(ext_filter or [])

    def accepts(name: str) -> bool:
        ext = os.path.splitext(name)[1]
        return not ext or ext in allowed

    return accepts


class SitemapGenerator:
    """
    3.0 SitemapGenerator Class
    Scans a directory tree into a Sitemap.
    """

    def __init__(self, options: Optional[Dict[str, Any]] = None):
        """
        3.1 Initialize with scanner options merged over DEFAULT_OPTIONS.

        Args:
            options: Scanner options. Recognized keys:
                - ext: list of extensions to keep, or predicate(filename) -> bool
                - index: filenames that stand for their directory
                - last_modified: True for file mtime, or a literal/callable
                - change_frequency: literal or callable
                - priority: literal or callable
                - include_sitemap: honour embedded sitemap.xml files
                - follow_symlinks: stat through symlinks instead of skipping them
                - prefix: URL prefix for the root directory
              Callables are called as fn(url, stats, filename). A callable that
              declares an `options` parameter (or **kwargs) also gets the
              options dict as options=..., unknown keys included.
        """
        self.options = {**DEFAULT_OPTIONS, **(options or {})}

    def generate(self, directory: str) -> Sitemap:
        """
        3.2 Scan directory and return the resulting Sitemap.

        Raises:
            ReadDirError, StatError: a directory listing or stat call failed.
            FileReadError, ParseError: an embedded sitemap.xml could not be used.
        """
        logger.info(f"Generating sitemap from {directory}")
        items = self._scan_dir(directory, self.options)
        logger.info(f"Generated {len(items)} sitemap items from {directory}")
        return Sitemap(items)

    # =========================================================================
    # 4.0 DIRECTORY WALK
    # =========================================================================

    def _list_dir(self, directory: str) -> List[str]:
        try:
            return sorted(os.listdir(directory))
        except OSError as e:
            raise ReadDirError(f"Cannot read directory {directory}: {e}", path=directory) from e

    def _stat(self, path: str, follow_symlinks: bool) -> os.stat_result:
        try:
            return os.stat(path, follow_symlinks=follow_symlinks)
        except OSError as e:
            raise StatError(f"Cannot stat {path}: {e}", path=path) from e

    def _filter_entries(self, entries: List[str], options: Dict[str, Any],
                        skip_embedded: bool) -> List[str]:
        accepts = _extension_filter(options.get("ext"))
        keep_sitemap = options.get("include_sitemap") and not skip_embedded

        result = []
        for entry in entries:
            if entry == EMBEDDED_SITEMAP:
                if keep_sitemap:
                    result.append(entry)
                    continue
                if skip_embedded:
                    continue
            if accepts(entry):
                result.append(entry)
        return result

    def _scan_dir(self, directory: str, options: Dict[str, Any],
                  skip_embedded: bool = False) -> List[SitemapItem]:
        """
        4.1 Scan one directory, recursing into subdirectories.

        skip_embedded ignores this directory's own sitemap.xml; it is set when
        the scan was requested by that very sitemap.
        """
        logger.debug(f"Scanning dir {directory}")
        entries = self._list_dir(directory)
        logger.debug(f"Entries found: {len(entries)}")

        entries = self._filter_entries(entries, options, skip_embedded)
        logger.debug(f"Entries filtered: {len(entries)}")

        if options.get("include_sitemap") and not skip_embedded and EMBEDDED_SITEMAP in entries:
            # embedded sitemap is authoritative for the whole directory
            return self._embedded_sitemap(directory, options)

        index_files = options.get("index") or []
        follow_symlinks = bool(options.get("follow_symlinks"))
        result: List[SitemapItem] = []

        for entry in entries:
            abs_entry = os.path.join(directory, entry)
            stats = self._stat(abs_entry, follow_symlinks)

            if stat.S_ISREG(stats.st_mode):
                if entry in index_files:
                    logger.debug(f"Save {entry} as index")
                    result.append(self._create_entry("", entry, options, stats, True))
                else:
                    logger.debug(f"Save {entry} as file")
                    result.append(self._create_entry(entry, entry, options, stats))
            elif stat.S_ISDIR(stats.st_mode):
                # fresh options per branch; prefix is never shared between siblings
                child_options = {
                    **options,
                    "prefix": create_url(entry, options.get("prefix"), True),
                }
                result.extend(self._scan_dir(abs_entry, child_options))
            else:
                logger.debug(f"Skip {abs_entry}: not a regular file or directory")

        return result

    def _create_entry(self, path: str, filename: str, options: Dict[str, Any],
                      stats: os.stat_result, is_index: bool = False) -> SitemapEntry:
        """4.2 Build an entry for a file; index files map to their directory URL."""
        entry = SitemapEntry()
        url = create_url(path, options.get("prefix"), is_index)
        args = (url, stats, filename)

        entry.url = url
        entry.change_frequency = _call_if_fn(options.get("change_frequency"), args, options)
        entry.priority = _call_if_fn(options.get("priority"), args, options)

        last_modified = options.get("last_modified")
        if last_modified is True:
            entry.last_modified = datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc)
        elif last_modified is not False:
            entry.last_modified = _call_if_fn(last_modified, args, options)

        return entry

    # =========================================================================
    # 5.0 EMBEDDED SITEMAPS
    # =========================================================================

    def _embedded_sitemap(self, directory: str, options: Dict[str, Any]) -> List[SitemapItem]:
        """
        5.1 Substitute the directory's sitemap.xml for a scan of the directory.

        Relative URLs are rebased onto the directory prefix, absolute URLs
        are kept. Each GenerateMarker is replaced in place by a scan of this
        directory that ignores the sitemap.xml.
        """
        path = os.path.join(directory, EMBEDDED_SITEMAP)
        logger.debug(f"Parsing embedded sitemap {path}")
        embedded = from_file(path)
        logger.debug(f"Parsed embedded sitemap with {len(embedded.items)} items")

        prefix = options.get("prefix")
        result: List[SitemapItem] = []
        for item in embedded.items:
            if isinstance(item, GenerateMarker):
                generated = self._scan_dir(directory, options, skip_embedded=True)
                logger.debug(f"Processing instruction <?{item.target}?> expanded to {len(generated)} items")
                result.extend(generated)
                continue

            if item.url is not None and not RE_PROTOCOL.match(item.url):
                item.url = create_url(item.url, prefix)
            result.append(item)

        return result


def generate(directory: str, options: Optional[Dict[str, Any]] = None) -> Sitemap:
    """Scan directory with the given options and return a Sitemap."""
    return SitemapGenerator(options).generate(directory)

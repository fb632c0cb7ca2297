"""
1.0 Sitemap Document Model
Reads, holds and writes sitemap.xml documents.

Key features:
- SitemapEntry: one <url> element with validated lastmod/priority fields
- GenerateMarker: a processing instruction inside <urlset>, meaning
  "generate entries for this directory here"
- Sitemap: ordered list of entries/markers, parsed from XML or built in memory
"""

import logging
import numbers
import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterable, Iterator, List, Optional, Union
from xml.sax.saxutils import escape

from lxml import etree

from dirsitemap.dates import format_date, from_epoch_millis, parse_date
from dirsitemap.errors import (
    FileReadError,
    InvalidLastModifiedType,
    InvalidPriority,
    InvalidSitemapContents,
    ParseError,
)

logger = logging.getLogger(__name__)

SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"
XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'
DEFAULT_PRIORITY = 0.5


def _format_number(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _inner_text(element: etree._Element) -> str:
    return "".join(element.itertext()).strip()


# =============================================================================
# 2.0 ITEMS
# =============================================================================

@dataclass(frozen=True)
class GenerateMarker:
    """
    2.1 Placeholder left in a parsed sitemap by a processing instruction.

    Any processing instruction directly under <urlset> qualifies, whatever
    its target. The scanner replaces it with entries generated from the
    directory that holds the sitemap.
    """
    target: str = "generate"
    text: str = ""

    def to_xml(self, indent: str = "") -> str:
        body = f"{self.target} {self.text}" if self.text else self.target
        return f"{indent}<?{body}?>"


class SitemapEntry:
    """
    2.2 A single <url> entry.

    Build it empty and assign fields, or pass an lxml <url> element to read
    its <loc>, <lastmod>, <changefreq> and <priority> children.
    """

    def __init__(self, node: Optional[etree._Element] = None):
        self.url: Optional[str] = None
        self.change_frequency: Optional[str] = None
        self._last_modified: Optional[datetime] = None
        self._priority: Any = DEFAULT_PRIORITY

        if node is not None:
            self.read_node(node)

    def __repr__(self) -> str:
        return (
            f"SitemapEntry(url={self.url!r}, last_modified={self._last_modified!r}, "
            f"change_frequency={self.change_frequency!r}, priority={self._priority!r})"
        )

    def read_node(self, node: etree._Element) -> None:
        """Copy known child elements onto this entry. Later duplicates overwrite earlier ones."""
        for child in node:
            if not isinstance(child.tag, str):
                # comments and processing instructions
                continue
            name = etree.QName(child).localname
            if name == "loc":
                self.url = _inner_text(child)
            elif name == "lastmod":
                self.last_modified = _inner_text(child)
            elif name == "changefreq":
                self.change_frequency = _inner_text(child)
            elif name == "priority":
                self.priority = _inner_text(child)

    @property
    def last_modified(self) -> Optional[datetime]:
        return self._last_modified

    @last_modified.setter
    def last_modified(self, value: Union[None, int, float, str, date, datetime]) -> None:
        """
        None leaves the current value. Numbers are epoch milliseconds,
        strings go through parse_date, datetimes are stored as given.
        """
        if value is None:
            return
        if isinstance(value, bool):
            raise InvalidLastModifiedType(
                "Invalid last_modified value type, should be number, string or datetime"
            )

        if isinstance(value, numbers.Real):
            try:
                value = from_epoch_millis(value)
            except (ValueError, OverflowError, OSError) as e:
                raise InvalidLastModifiedType(f"Invalid last_modified timestamp: {value}") from e
        elif isinstance(value, str):
            value = parse_date(value)
        elif isinstance(value, date) and not isinstance(value, datetime):
            value = datetime(value.year, value.month, value.day).astimezone()

        if not isinstance(value, datetime):
            raise InvalidLastModifiedType(
                "Invalid last_modified value type, should be number, string or datetime"
            )
        self._last_modified = value

    @property
    def priority(self) -> Any:
        return self._priority

    @priority.setter
    def priority(self, value: Any) -> None:
        # Falsy values (0 included) never change the current priority.
        if not value:
            return

        if isinstance(value, bool):
            raise InvalidPriority(f"Invalid priority value: {value!r}")
        if not isinstance(value, numbers.Real):
            try:
                value = float(value)
            except (TypeError, ValueError) as e:
                raise InvalidPriority(f"Invalid priority value: {value!r}") from e
            if math.isnan(value):
                raise InvalidPriority(f"Invalid priority value: {value!r}")
        self._priority = value

    def to_xml(self, indent: str = "") -> str:
        inner = indent + "  " if indent else ""

        lines = [f"{indent}<url>", f"{inner}<loc>{escape(str(self.url))}</loc>"]
        if self.change_frequency:
            lines.append(f"{inner}<changefreq>{escape(str(self.change_frequency))}</changefreq>")
        if self.priority and self.priority != DEFAULT_PRIORITY:
            lines.append(f"{inner}<priority>{_format_number(self.priority)}</priority>")
        if self.last_modified:
            lines.append(f"{inner}<lastmod>{format_date(self.last_modified)}</lastmod>")
        lines.append(f"{indent}</url>")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "loc": self.url,
            "lastmod": format_date(self.last_modified) if self.last_modified else None,
            "changefreq": self.change_frequency or None,
            "priority": self.priority,
        }


SitemapItem = Union[SitemapEntry, GenerateMarker]


# =============================================================================
# 3.0 DOCUMENT
# =============================================================================

class Sitemap:
    """
    3.0 Ordered collection of sitemap items.

    Args:
        contents: None or empty for an empty sitemap, a string (or bytes)
            of sitemap XML, or a list/tuple of SitemapEntry/GenerateMarker.

    Raises:
        InvalidSitemapContents: contents is of any other type.
        ParseError: contents is a string that is not well-formed XML.
    """

    def __init__(self, contents: Union[None, str, bytes, Iterable[SitemapItem]] = None):
        items: List[SitemapItem]
        if contents is None:
            items = []
        elif isinstance(contents, (str, bytes)):
            items = parse_sitemap(contents) if contents else []
        elif isinstance(contents, (list, tuple)):
            items = list(contents)
            for item in items:
                if not isinstance(item, (SitemapEntry, GenerateMarker)):
                    raise InvalidSitemapContents(
                        f"Invalid sitemap item {item!r}, expected SitemapEntry or GenerateMarker"
                    )
        else:
            raise InvalidSitemapContents("Invalid sitemap contents, expected list or string")

        self.items = items

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[SitemapItem]:
        return iter(self.items)

    @property
    def entries(self) -> List[SitemapEntry]:
        return [item for item in self.items if isinstance(item, SitemapEntry)]

    def extend(self, items: Iterable[SitemapItem]) -> None:
        self.items.extend(items)

    def to_xml(self) -> str:
        body = "\n".join(item.to_xml("  ") for item in self.items)
        return (
            f"{XML_DECLARATION}\n"
            f'<urlset xmlns="{SITEMAP_NS}">\n'
            f"{body}\n"
            "</urlset>\n"
        )

    def write(self, path: str) -> None:
        with open(path, "w", encoding="utf-8") as f:
            f.write(self.to_xml())
        logger.info(f"Wrote sitemap with {len(self.items)} items to {path}")


# =============================================================================
# 4.0 PARSING
# =============================================================================

def parse_sitemap(contents: Union[str, bytes]) -> List[SitemapItem]:
    """
    4.1 Parse sitemap XML into a flat list of items.

    Every <url> child of a top-level <urlset> becomes a SitemapEntry, every
    processing instruction child becomes a GenerateMarker. Anything else is
    ignored, including documents whose root is not <urlset>.
    """
    # an XML declaration must come first, so drop whitespace before it
    data = contents.lstrip()
    if isinstance(data, str):
        data = data.encode("utf-8")
    parser = etree.XMLParser(remove_blank_text=True, resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(data, parser=parser)
    except etree.XMLSyntaxError as e:
        raise ParseError(f"Malformed sitemap XML: {e}") from e

    items: List[SitemapItem] = []
    if isinstance(root.tag, str) and etree.QName(root).localname == "urlset":
        items.extend(_parse_urlset(root))
    else:
        logger.warning(f"Sitemap root is <{root.tag}>, not <urlset>; no entries read")

    logger.debug(f"Parsed {len(items)} sitemap items")
    return items


def _parse_urlset(node: etree._Element) -> List[SitemapItem]:
    out: List[SitemapItem] = []
    for child in node:
        if child.tag is etree.PI:
            out.append(GenerateMarker(child.target, child.text or ""))
        elif isinstance(child.tag, str) and etree.QName(child).localname == "url":
            out.append(SitemapEntry(child))
    return out


def parse(contents: Union[str, bytes]) -> Sitemap:
    return Sitemap(contents)


def from_file(path: str) -> Sitemap:
    """
    4.2 Read a sitemap.xml file from disk.

    Raises:
        FileReadError: the file cannot be opened or decoded as UTF-8.
        ParseError: the file is not well-formed XML.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            contents = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise FileReadError(f"Cannot read sitemap file {path}: {e}", path=path) from e

    return Sitemap(contents)

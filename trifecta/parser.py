"""Pattern-based RSS2 / Atom extraction.

Feeds are read with targeted regular expressions rather than an XML parser.
Only a few shallow, well-known tags are needed, and this keeps working when the
surrounding document is not well-formed. Unusually nested or namespaced markup
for the fields we read is not supported.
"""
import re
from typing import Dict, List, Optional

from .dates import normalize_date, to_calendar_date
from .entities import clean_text, decode_entities
from .models import RawFeedItem

_ITEM_RE = re.compile(r"<item(?:\s[^>]*)?>([\s\S]*?)</item\s*>", re.IGNORECASE)
_ENTRY_RE = re.compile(r"<entry(?:\s[^>]*)?>([\s\S]*?)</entry\s*>", re.IGNORECASE)
_LINK_TAG_RE = re.compile(r"<link(\s[^>]*)?>", re.IGNORECASE)
_ATTR_RE = re.compile(r"([\w:.-]+)\s*=\s*(?:\"([^\"]*)\"|'([^']*)')")

_tag_cache: Dict[str, "re.Pattern[str]"] = {}


def _tag_re(tag: str) -> "re.Pattern[str]":
    pattern = _tag_cache.get(tag)
    if pattern is None:
        # opening tag that is not self-closing, then the shortest body up to its close
        pattern = re.compile(
            r"<%s(?:\s[^>]*)?(?<!/)>([\s\S]*?)</%s\s*>" % (re.escape(tag), re.escape(tag)),
            re.IGNORECASE,
        )
        _tag_cache[tag] = pattern
    return pattern


def tag_text(block: str, tag: str) -> str:
    match = _tag_re(tag).search(block)
    if not match:
        return ""
    return clean_text(match.group(1))


def _first_tag_text(block: str, *tags: str) -> str:
    for tag in tags:
        value = tag_text(block, tag)
        if value:
            return value
    return ""


def parse_attributes(tag_body: Optional[str]) -> Dict[str, str]:
    attrs: Dict[str, str] = {}
    if not tag_body:
        return attrs
    for name, double_quoted, single_quoted in _ATTR_RE.findall(tag_body):
        attrs[name.lower()] = decode_entities(double_quoted or single_quoted).strip()
    return attrs


def _link_tags(block: str) -> List[Dict[str, str]]:
    return [parse_attributes(m.group(1)) for m in _LINK_TAG_RE.finditer(block)]


def _make_item(title: str, url: str, raw_date: str) -> Optional[RawFeedItem]:
    title = title.strip()
    url = url.strip()
    if not title or not url:
        return None
    instant = normalize_date(raw_date)
    return RawFeedItem(
        title=title,
        url=url,
        published_at_instant=instant,
        published_at_date=to_calendar_date(instant) if instant else None,
    )


def parse_rss_items(xml: str) -> List[RawFeedItem]:
    items: List[RawFeedItem] = []
    for match in _ITEM_RE.finditer(xml or ""):
        block = match.group(1)
        url = tag_text(block, "link")
        if not url:
            # <link href="..."/> style
            for attrs in _link_tags(block):
                if attrs.get("href"):
                    url = attrs["href"]
                    break
        item = _make_item(
            tag_text(block, "title"),
            url,
            _first_tag_text(block, "pubDate", "dc:date"),
        )
        if item is not None:
            items.append(item)
    return items


def select_atom_link(links: List[Dict[str, str]]) -> str:
    """Prefer rel="alternate", otherwise the first link that has an href."""
    for attrs in links:
        if attrs.get("rel", "").lower() == "alternate" and attrs.get("href"):
            return attrs["href"]
    for attrs in links:
        if attrs.get("href"):
            return attrs["href"]
    return ""


def parse_atom_entries(xml: str) -> List[RawFeedItem]:
    items: List[RawFeedItem] = []
    for match in _ENTRY_RE.finditer(xml or ""):
        block = match.group(1)
        item = _make_item(
            tag_text(block, "title"),
            select_atom_link(_link_tags(block)),
            _first_tag_text(block, "updated", "published"),
        )
        if item is not None:
            items.append(item)
    return items


def parse_feed(xml: str) -> List[RawFeedItem]:
    """Extract items from an RSS2 document, falling back to Atom entries."""
    if not xml:
        return []
    items = parse_rss_items(xml)
    if items:
        return items
    return parse_atom_entries(xml)

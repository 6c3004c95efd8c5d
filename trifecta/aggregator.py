"""Fan-out / fan-in aggregation of feeds into viewpoint panels.

For every viewpoint of a topic, one fetch+parse task per configured source runs
concurrently. Failed sources are logged and contribute nothing; the rest are
merged in configured order, deduplicated by URL, ranked newest first,
truncated and padded with placeholders so every panel has the same length.
"""
import asyncio
import logging
import re
import time
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence

import httpx

from .config import Settings
from .dates import to_calendar_date, to_iso, utc_now
from .errors import AggregationError, ConfigurationError, TrifectaError
from .fetcher import fetch_feed_text
from .models import (
    VIEWPOINTS,
    FeedSource,
    ItemSource,
    Limits,
    NormalizedItem,
    Panel,
    PayloadMeta,
    RawFeedItem,
    ResponsePayload,
    Topic,
    TopicDefinition,
    Viewpoint,
)
from .parser import parse_feed

logger = logging.getLogger(__name__)

PLACEHOLDER_TITLE = "No story available (feed error or empty feed)"
PLACEHOLDER_URL = "#"
PLACEHOLDER_SOURCE = "Trifecta"
SLUG_MAX_LENGTH = 40

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_NON_ALNUM_RE = re.compile(r"[^A-Za-z0-9]+")


# ----- Ranking helpers -----
def dedupe_by_url(items: Iterable[RawFeedItem]) -> List[RawFeedItem]:
    """Keep the first item seen for each URL; drop items without one."""
    seen = set()
    unique: List[RawFeedItem] = []
    for item in items:
        url = (item.url or "").strip()
        if not url or url in seen:
            continue
        seen.add(url)
        unique.append(item)
    return unique


def _recency_key(item: RawFeedItem) -> float:
    instant = item.published_at_instant or _EPOCH
    return instant.timestamp()


def sort_by_recency(items: Iterable[RawFeedItem]) -> List[RawFeedItem]:
    # stable, so undated items keep their relative order at the end
    return sorted(items, key=_recency_key, reverse=True)


def url_slug(url: str) -> str:
    slug = _NON_ALNUM_RE.sub("-", url or "")[:SLUG_MAX_LENGTH].strip("-")
    return slug or "item"


def make_item_id(topic_key: str, viewpoint: Viewpoint, url: str, position: int) -> str:
    return f"{topic_key}-{viewpoint.value}-{url_slug(url)}-{position}"


def normalize_items(topic_key: str, viewpoint: Viewpoint, items: Sequence[RawFeedItem]) -> List[NormalizedItem]:
    normalized = []
    for position, item in enumerate(items, start=1):
        instant = item.published_at_instant
        normalized.append(
            NormalizedItem(
                id=make_item_id(topic_key, viewpoint, item.url, position),
                title=item.title,
                url=item.url,
                source=ItemSource(name=item.source_name or ""),
                published_at=item.published_at_date or (to_calendar_date(instant) if instant else ""),
                published_at_iso=to_iso(instant) if instant else None,
            )
        )
    return normalized


def placeholder_item(topic_key: str, viewpoint: Viewpoint, position: int) -> NormalizedItem:
    return NormalizedItem(
        id=f"{topic_key}-{viewpoint.value}-placeholder-{position}",
        title=PLACEHOLDER_TITLE,
        url=PLACEHOLDER_URL,
        source=ItemSource(name=PLACEHOLDER_SOURCE),
        published_at="",
    )


def pad_items(topic_key: str, viewpoint: Viewpoint, items: List[NormalizedItem], size: int) -> List[NormalizedItem]:
    """Append placeholders after the real items until there are ``size`` entries."""
    padded = list(items)
    while len(padded) < size:
        padded.append(placeholder_item(topic_key, viewpoint, len(padded) + 1))
    return padded


# ----- Fetching -----
async def fetch_source_items(
    source: FeedSource,
    client: httpx.AsyncClient,
    settings: Settings,
) -> List[RawFeedItem]:
    xml = await fetch_feed_text(
        source.feed_url,
        client=client,
        timeout=settings.fetch_timeout,
        user_agent=settings.user_agent,
    )
    return parse_feed(xml)


async def collect_viewpoint_items(
    topic_key: str,
    viewpoint: Viewpoint,
    sources: Sequence[FeedSource],
    client: httpx.AsyncClient,
    settings: Settings,
) -> List[RawFeedItem]:
    """Fetch every source concurrently and merge the survivors in configured order."""
    results = await asyncio.gather(
        *(fetch_source_items(source, client, settings) for source in sources),
        return_exceptions=True,
    )

    merged: List[RawFeedItem] = []
    for source, result in zip(sources, results):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                # CancelledError and friends are not per-source failures
                raise result
            logger.warning(
                "Feed failed for %s (%s/%s): %s",
                source.name,
                topic_key,
                viewpoint.value,
                result,
                extra={
                    "topic_key": topic_key,
                    "viewpoint": viewpoint.value,
                    "source_name": source.name,
                    "url": source.feed_url,
                    "error_type": type(result).__name__,
                },
            )
            continue
        merged.extend(item.model_copy(update={"source_name": source.name}) for item in result)
    return merged


async def build_panel(
    topic_key: str,
    viewpoint: Viewpoint,
    sources: Sequence[FeedSource],
    client: httpx.AsyncClient,
    settings: Settings,
) -> Panel:
    started = time.monotonic()
    merged = await collect_viewpoint_items(topic_key, viewpoint, sources, client, settings)
    ranked = sort_by_recency(dedupe_by_url(merged))[: settings.items_per_panel]
    items = normalize_items(topic_key, viewpoint, ranked)
    if settings.pad_panels:
        items = pad_items(topic_key, viewpoint, items, settings.items_per_panel)

    logger.info(
        "Built %s/%s panel with %d real items",
        topic_key,
        viewpoint.value,
        len(ranked),
        extra={
            "topic_key": topic_key,
            "viewpoint": viewpoint.value,
            "item_count": len(ranked),
            "duration_ms": round((time.monotonic() - started) * 1000, 1),
        },
    )
    return Panel(viewpoint=viewpoint, items=items)


async def build_topic(definition: TopicDefinition, client: httpx.AsyncClient, settings: Settings) -> Topic:
    updated_at = to_iso(utc_now())
    panels = await asyncio.gather(
        *(
            build_panel(definition.topic_key, viewpoint, definition.sources_for(viewpoint), client, settings)
            for viewpoint in VIEWPOINTS
        )
    )
    return Topic(
        topic_key=definition.topic_key,
        title=definition.title,
        category=definition.category,
        updated_at=updated_at,
        panels=list(panels),
    )


def select_topics(
    definitions: Dict[str, TopicDefinition],
    topic_keys: Optional[Sequence[str]] = None,
) -> List[TopicDefinition]:
    if not definitions:
        raise ConfigurationError("No topic definitions configured")
    if not topic_keys:
        return list(definitions.values())
    selected = []
    for key in topic_keys:
        definition = definitions.get(key)
        if definition is None:
            raise ConfigurationError(f"Unknown topic: {key}")
        selected.append(definition)
    return selected


async def build_payload(
    definitions: Dict[str, TopicDefinition],
    settings: Settings,
    topic_keys: Optional[Sequence[str]] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> ResponsePayload:
    """Build the home payload for the selected topics (all of them by default)."""
    selected = select_topics(definitions, topic_keys)
    generated_at = to_iso(utc_now())
    try:
        if client is None:
            async with httpx.AsyncClient(follow_redirects=True, timeout=settings.fetch_timeout) as own_client:
                topics = await asyncio.gather(*(build_topic(d, own_client, settings) for d in selected))
        else:
            topics = await asyncio.gather(*(build_topic(d, client, settings) for d in selected))
    except TrifectaError:
        raise
    except Exception as e:
        raise AggregationError(f"Failed to build payload: {e}") from e

    return ResponsePayload(
        meta=PayloadMeta(
            generated_at=generated_at,
            limits=Limits(items_per_panel=settings.items_per_panel),
        ),
        topics=list(topics),
    )

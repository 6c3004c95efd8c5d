"""Static payload served without touching the network.

Useful for frontend work and for smoke-testing a deployment.
"""
from typing import List, Optional
from urllib.parse import quote

from .config import DEFAULT_ITEMS_PER_PANEL
from .dates import to_iso, utc_now
from .models import ItemSource, Limits, NormalizedItem, Panel, PayloadMeta, ResponsePayload, Topic, Viewpoint

SAMPLE_URL_BASE = "https://example.com"

# (topic key, title, headline label, [(viewpoint, id prefix, source name), ...])
SAMPLE_TOPICS = [
    (
        "top-stories",
        "Top Stories",
        "Sample Top Story",
        [
            (Viewpoint.LIBERAL, "ts-l", "CNN"),
            (Viewpoint.LIBERTARIAN, "ts-lib", "Reason"),
            (Viewpoint.CONSERVATIVE, "ts-c", "Fox News"),
        ],
    ),
    (
        "politics",
        "Politics",
        "Sample Politics headline",
        [
            (Viewpoint.LIBERAL, "p-l", "MSNBC"),
            (Viewpoint.LIBERTARIAN, "p-lib", "Cato Institute"),
            (Viewpoint.CONSERVATIVE, "p-c", "The Daily Wire"),
        ],
    ),
]


def make_items(prefix: str, source_name: str, label: str, today: str, count: int) -> List[NormalizedItem]:
    return [
        NormalizedItem(
            id=f"{prefix}-{n}",
            title=f"{label} #{n}",
            url=f"{SAMPLE_URL_BASE}?id={quote(prefix)}-{n}",
            source=ItemSource(name=source_name),
            published_at=today,
        )
        for n in range(1, count + 1)
    ]


def build_sample_payload(items_per_panel: Optional[int] = None) -> ResponsePayload:
    count = items_per_panel or DEFAULT_ITEMS_PER_PANEL
    now = to_iso(utc_now())
    today = now[:10]

    topics = []
    for topic_key, title, label, panels in SAMPLE_TOPICS:
        topics.append(
            Topic(
                topic_key=topic_key,
                title=title,
                category=title,
                updated_at=now,
                panels=[
                    Panel(
                        viewpoint=viewpoint,
                        items=make_items(prefix, source_name, f"{label} ({viewpoint.value.title()})", today, count),
                    )
                    for viewpoint, prefix, source_name in panels
                ],
            )
        )

    return ResponsePayload(
        meta=PayloadMeta(generated_at=now, limits=Limits(items_per_panel=count)),
        topics=topics,
    )

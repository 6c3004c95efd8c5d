from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Viewpoint(str, Enum):
    LIBERAL = "liberal"
    LIBERTARIAN = "libertarian"
    CONSERVATIVE = "conservative"


# Panel order within every topic.
VIEWPOINTS: List[Viewpoint] = [Viewpoint.LIBERAL, Viewpoint.LIBERTARIAN, Viewpoint.CONSERVATIVE]
PANELS_PER_TOPIC = len(VIEWPOINTS)


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ----- Configuration values -----
class FeedSource(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    name: str
    feed_url: str = Field(alias="feedURL")


class TopicDefinition(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    topic_key: str
    title: str
    category: str
    panels: Dict[Viewpoint, List[FeedSource]] = Field(default_factory=dict)

    def sources_for(self, viewpoint: Viewpoint) -> List[FeedSource]:
        return list(self.panels.get(viewpoint, []))


# ----- Parse results -----
class RawFeedItem(CamelModel):
    title: str
    url: str
    published_at_instant: Optional[datetime] = None
    published_at_date: Optional[str] = None
    source_name: Optional[str] = None


# ----- Response payload -----
class ItemSource(CamelModel):
    name: str


class NormalizedItem(CamelModel):
    id: str
    title: str
    url: str
    source: ItemSource
    published_at: str = ""
    published_at_iso: Optional[str] = Field(default=None, alias="publishedAtISO")


class Panel(CamelModel):
    viewpoint: Viewpoint
    items: List[NormalizedItem] = Field(default_factory=list)


class Topic(CamelModel):
    topic_key: str
    title: str
    category: str
    updated_at: str
    panels: List[Panel] = Field(default_factory=list)


class Limits(CamelModel):
    items_per_panel: int
    panels_per_topic: int = PANELS_PER_TOPIC


class PayloadMeta(CamelModel):
    generated_at: str
    limits: Limits


class ResponsePayload(CamelModel):
    meta: PayloadMeta
    topics: List[Topic] = Field(default_factory=list)

    def to_json_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

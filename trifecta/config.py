import logging
import os
from typing import Dict, List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .models import FeedSource, TopicDefinition, Viewpoint

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_ITEMS_PER_PANEL = 10
MAX_ITEMS_PER_PANEL = 50
DEFAULT_FETCH_TIMEOUT = 9.0
DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; TrifectaNewsBot/1.0; +https://trifecta.news)"
ACCEPT_HEADER = (
    "application/rss+xml, application/atom+xml, application/xml;q=0.9, "
    "text/xml;q=0.8, */*;q=0.5"
)

_TRUE = {"1", "true", "yes", "y", "on"}


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in _TRUE


def _env_int(name: str, default: int, low: int, high: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        parsed = int(value)
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer", name, value)
        return default
    if not low <= parsed <= high:
        logger.warning("Ignoring %s=%r: outside %d..%d", name, value, low, high)
        return default
    return parsed


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        parsed = float(value)
    except ValueError:
        logger.warning("Ignoring %s=%r: not a number", name, value)
        return default
    if parsed <= 0:
        logger.warning("Ignoring %s=%r: must be positive", name, value)
        return default
    return parsed


class Settings(BaseModel):
    items_per_panel: int = Field(default=DEFAULT_ITEMS_PER_PANEL, ge=1, le=MAX_ITEMS_PER_PANEL)
    fetch_timeout: float = Field(default=DEFAULT_FETCH_TIMEOUT, gt=0)
    user_agent: str = DEFAULT_USER_AGENT
    pad_panels: bool = True
    log_level: str = "INFO"
    allowed_origin: str = "*"
    sample_data: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            items_per_panel=_env_int(
                "TRIFECTA_ITEMS_PER_PANEL", DEFAULT_ITEMS_PER_PANEL, 1, MAX_ITEMS_PER_PANEL
            ),
            fetch_timeout=_env_float("TRIFECTA_FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT),
            user_agent=os.getenv("TRIFECTA_USER_AGENT") or DEFAULT_USER_AGENT,
            pad_panels=_env_bool("TRIFECTA_PAD_PANELS", True),
            log_level=os.getenv("TRIFECTA_LOG_LEVEL", "INFO"),
            allowed_origin=os.getenv("ALLOWED_ORIGIN", "*"),
            sample_data=_env_bool("TRIFECTA_SAMPLE_DATA", False),
        )

    def with_items_per_panel(self, items_per_panel: Optional[int]) -> "Settings":
        if items_per_panel is None:
            return self
        return self.model_copy(update={"items_per_panel": items_per_panel})


# ----- Default topic definitions -----
def _sources(*pairs) -> List[FeedSource]:
    return [FeedSource(name=name, feed_url=url) for name, url in pairs]


DEFAULT_TOPICS: Dict[str, TopicDefinition] = {
    "top-stories": TopicDefinition(
        topic_key="top-stories",
        title="Top Stories",
        category="Top Stories",
        panels={
            Viewpoint.LIBERAL: _sources(
                ("CNN", "http://rss.cnn.com/rss/cnn_topstories.rss"),
                ("NPR", "https://feeds.npr.org/1001/rss.xml"),
            ),
            Viewpoint.LIBERTARIAN: _sources(
                ("Reason", "https://reason.com/latest/feed/"),
                ("Cato Institute", "https://www.cato.org/rss/recent-opeds"),
            ),
            Viewpoint.CONSERVATIVE: _sources(
                ("Fox News", "https://moxie.foxnews.com/google-publisher/latest.xml"),
                ("Breitbart", "https://feeds.feedburner.com/breitbart"),
            ),
        },
    ),
    "politics": TopicDefinition(
        topic_key="politics",
        title="Politics",
        category="Politics",
        panels={
            Viewpoint.LIBERAL: _sources(
                ("MSNBC", "https://www.msnbc.com/feeds/latest"),
                ("NPR Politics", "https://feeds.npr.org/1014/rss.xml"),
            ),
            Viewpoint.LIBERTARIAN: _sources(
                ("Reason", "https://reason.com/tag/politics/feed/"),
                ("Cato Institute", "https://www.cato.org/rss/commentary"),
            ),
            Viewpoint.CONSERVATIVE: _sources(
                ("Fox News", "https://moxie.foxnews.com/google-publisher/politics.xml"),
                ("The Daily Wire", "https://www.dailywire.com/feeds/rss.xml"),
            ),
        },
    ),
}

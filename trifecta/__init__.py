"""Viewpoint-balanced headline aggregation."""
from .aggregator import build_panel, build_payload, build_topic, dedupe_by_url, sort_by_recency
from .config import DEFAULT_TOPICS, Settings
from .errors import AggregationError, ConfigurationError, FeedTimeoutError, FetchError, TrifectaError
from .models import FeedSource, ResponsePayload, TopicDefinition, Viewpoint
from .parser import parse_feed

__version__ = "1.0.0"

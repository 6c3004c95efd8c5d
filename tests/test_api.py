"""
Tests for the HTTP entrypoints, configuration and the sample payload.
Run with: pytest tests/test_api.py -v
"""
import json
import logging

import httpx
import pytest
from fastapi.testclient import TestClient

import api.index as index
import api.minimal as minimal
from trifecta.aggregator import build_payload
from trifecta.config import DEFAULT_TOPICS, Settings
from trifecta.errors import AggregationError, ConfigurationError
from trifecta.logs import StructuredFormatter, configure_logging
from trifecta.models import VIEWPOINTS, FeedSource, TopicDefinition, Viewpoint
from trifecta.sample import build_sample_payload


@pytest.fixture
def client():
    return TestClient(index.app)


@pytest.fixture
def fake_build(monkeypatch):
    calls = []

    async def fake_build_payload(definitions, settings, topic_keys=None, client=None):
        calls.append({"definitions": definitions, "settings": settings, "topic_keys": topic_keys})
        return build_sample_payload(settings.items_per_panel)

    monkeypatch.setattr(index, "build_payload", fake_build_payload)
    monkeypatch.setattr(minimal, "build_payload", fake_build_payload)
    return calls


class TestFastApiApp:
    """Tests for the Vercel FastAPI app."""

    def test_health(self, client):
        assert client.get("/").json() == {"status": "ok"}
        assert client.get("/health").json() == {"status": "ok"}

    def test_home(self, client, fake_build):
        resp = client.get("/api/v1/home")
        assert resp.status_code == 200
        assert resp.headers["cache-control"] == "no-store"
        data = resp.json()
        assert data["meta"]["limits"] == {"itemsPerPanel": 10, "panelsPerTopic": 3}
        assert fake_build[0]["topic_keys"] is None
        assert fake_build[0]["definitions"] is DEFAULT_TOPICS

    def test_home_short_path_and_params(self, client, fake_build):
        resp = client.get("/v1/home", params=[("topic", "politics"), ("topic", "top-stories"), ("itemsPerPanel", "4")])
        assert resp.status_code == 200
        assert fake_build[0]["topic_keys"] == ["politics", "top-stories"]
        assert fake_build[0]["settings"].items_per_panel == 4
        assert all(len(p["items"]) == 4 for t in resp.json()["topics"] for p in t["panels"])

    def test_items_per_panel_bounds(self, client, fake_build):
        assert client.get("/v1/home", params={"itemsPerPanel": 0}).status_code == 422
        assert client.get("/v1/home", params={"itemsPerPanel": 500}).status_code == 422
        assert fake_build == []

    def test_sample(self, client, fake_build):
        resp = client.get("/v1/home", params={"sample": "true"})
        assert resp.status_code == 200
        assert fake_build == []
        assert [t["topicKey"] for t in resp.json()["topics"]] == ["top-stories", "politics"]

    def test_configuration_error(self, client, monkeypatch):
        async def failing(*args, **kwargs):
            raise ConfigurationError("Unknown topic: sports")

        monkeypatch.setattr(index, "build_payload", failing)
        resp = client.get("/v1/home", params={"topic": "sports"})
        assert resp.status_code == 500
        assert "Unknown topic: sports" in resp.json()["detail"]

    def test_unexpected_error(self, client, monkeypatch):
        async def failing(*args, **kwargs):
            raise AggregationError("Failed to build payload: boom")

        monkeypatch.setattr(index, "build_payload", failing)
        resp = client.get("/v1/home")
        assert resp.status_code == 500
        assert resp.json()["detail"].startswith("Server error")

    def test_numeric_emoji_in_feed_title(self, client, monkeypatch):
        feed = (
            "<rss><channel><item><title>Smile &#55357;&#56832; today</title>"
            "<link>https://feeds.test/story/1</link></item></channel></rss>"
        )
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text=feed))
        topics = {
            "t": TopicDefinition(
                topic_key="t",
                title="T",
                category="T",
                panels={Viewpoint.LIBERAL: [FeedSource(name="Feed", feed_url="https://feeds.test/rss")]},
            )
        }

        async def build_over_mock_network(definitions, settings, topic_keys=None, client=None):
            async with httpx.AsyncClient(transport=transport) as mock_client:
                return await build_payload(definitions, settings, topic_keys=topic_keys, client=mock_client)

        monkeypatch.setattr(index, "TOPICS", topics)
        monkeypatch.setattr(index, "build_payload", build_over_mock_network)

        resp = client.get("/v1/home")
        assert resp.status_code == 200
        item = resp.json()["topics"][0]["panels"][0]["items"][0]
        assert item["title"] == "Smile \U0001F600 today"
        assert item["source"] == {"name": "Feed"}

    def test_defaults(self, client):
        data = client.get("/defaults").json()
        assert set(data) == set(DEFAULT_TOPICS)
        source = data["top-stories"]["panels"]["liberal"][0]
        assert set(source) == {"name", "feedURL"}


class TestLambdaHandler:
    """Tests for the Lambda-style handler."""

    def test_health(self):
        resp = minimal.handler({"path": "/.netlify/functions/api/health", "httpMethod": "GET"}, None)
        assert resp["statusCode"] == 200
        assert json.loads(resp["body"]) == {"status": "ok"}
        assert resp["headers"]["content-type"] == "application/json; charset=utf-8"
        assert resp["headers"]["cache-control"] == "no-store"

    def test_method_not_allowed(self):
        resp = minimal.handler({"path": "/v1/home", "httpMethod": "POST"}, None)
        assert resp["statusCode"] == 405
        assert resp["headers"]["allow"] == "GET"

    def test_not_found(self):
        resp = minimal.handler({"path": "/.netlify/functions/api/nope"}, None)
        assert resp["statusCode"] == 404
        assert json.loads(resp["body"]) == {"error": "Not Found", "path": "/nope"}

    def test_route_path(self):
        assert minimal.route_path({"path": "/.netlify/functions/api"}) == "/"
        assert minimal.route_path({"path": "/.netlify/functions/api/api/v1/home/"}) == "/api/v1/home"
        assert minimal.route_path({}) == "/"

    def test_home(self, fake_build):
        event = {
            "path": "/.netlify/functions/api/api/v1/home/",
            "httpMethod": "GET",
            "queryStringParameters": {"topic": "politics", "itemsPerPanel": "3"},
        }
        resp = minimal.handler(event, None)
        assert resp["statusCode"] == 200
        body = json.loads(resp["body"])
        assert body["meta"]["limits"]["itemsPerPanel"] == 3
        assert fake_build[0]["topic_keys"] == ["politics"]

    def test_home_invalid_items_per_panel_uses_default(self, fake_build):
        event = {"path": "/v1/home", "queryStringParameters": {"itemsPerPanel": "lots"}}
        resp = minimal.handler(event, None)
        assert json.loads(resp["body"])["meta"]["limits"]["itemsPerPanel"] == 10

    def test_home_failure(self, monkeypatch):
        async def failing(*args, **kwargs):
            raise ConfigurationError("Unknown topic: sports")

        monkeypatch.setattr(minimal, "build_payload", failing)
        resp = minimal.handler({"path": "/v1/home"}, None)
        assert resp["statusCode"] == 500
        assert json.loads(resp["body"])["detail"] == "Unknown topic: sports"


class TestSettings:
    """Tests for environment configuration."""

    def test_defaults(self, monkeypatch):
        for name in ("TRIFECTA_ITEMS_PER_PANEL", "TRIFECTA_FETCH_TIMEOUT", "TRIFECTA_PAD_PANELS", "TRIFECTA_SAMPLE_DATA"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings.from_env()
        assert settings.items_per_panel == 10
        assert settings.fetch_timeout == 9.0
        assert settings.pad_panels is True
        assert settings.sample_data is False

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("TRIFECTA_ITEMS_PER_PANEL", "6")
        monkeypatch.setenv("TRIFECTA_FETCH_TIMEOUT", "2.5")
        monkeypatch.setenv("TRIFECTA_PAD_PANELS", "no")
        monkeypatch.setenv("TRIFECTA_SAMPLE_DATA", "1")
        settings = Settings.from_env()
        assert settings.items_per_panel == 6
        assert settings.fetch_timeout == 2.5
        assert settings.pad_panels is False
        assert settings.sample_data is True

    def test_invalid_values_fall_back(self, monkeypatch):
        monkeypatch.setenv("TRIFECTA_ITEMS_PER_PANEL", "ten")
        monkeypatch.setenv("TRIFECTA_FETCH_TIMEOUT", "-1")
        settings = Settings.from_env()
        assert settings.items_per_panel == 10
        assert settings.fetch_timeout == 9.0

    def test_default_topics_cover_every_viewpoint(self):
        for definition in DEFAULT_TOPICS.values():
            for viewpoint in VIEWPOINTS:
                assert definition.sources_for(viewpoint)


class TestSamplePayload:
    """Tests for the static sample payload."""

    def test_shape(self):
        data = build_sample_payload().to_json_dict()
        assert len(data["topics"]) == 2
        for topic in data["topics"]:
            assert [p["viewpoint"] for p in topic["panels"]] == ["liberal", "libertarian", "conservative"]
            assert all(len(p["items"]) == 10 for p in topic["panels"])
        first = data["topics"][0]["panels"][0]["items"][0]
        assert first["id"] == "ts-l-1"
        assert first["url"] == "https://example.com?id=ts-l-1"
        assert first["title"] == "Sample Top Story (Liberal) #1"
        assert first["source"] == {"name": "CNN"}
        assert first["publishedAt"] == data["meta"]["generatedAt"][:10]


class TestLogging:
    """Tests for the JSON log setup."""

    def test_configure_logging_stops_propagation(self):
        configure_logging()
        configure_logging()
        logger = logging.getLogger("trifecta")
        assert logger.propagate is False
        structured = [h for h in logger.handlers if isinstance(h.formatter, StructuredFormatter)]
        assert len(structured) == 1

    def test_formatter_includes_extra_fields(self):
        record = logging.LogRecord("trifecta.aggregator", logging.WARNING, __file__, 1, "Feed failed", None, None)
        record.source_name = "Feed"
        record.viewpoint = "liberal"
        data = json.loads(StructuredFormatter().format(record))
        assert data["level"] == "WARNING"
        assert data["message"] == "Feed failed"
        assert data["source_name"] == "Feed"
        assert data["viewpoint"] == "liberal"

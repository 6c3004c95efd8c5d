"""Lambda-style handler for platforms that invoke ``handler(event, context)``.

Netlify rewrites ``/api/*`` to ``/.netlify/functions/api/<splat>``, so the
function prefix is stripped before matching routes.
"""
import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

from trifecta.aggregator import build_payload
from trifecta.config import DEFAULT_TOPICS, MAX_ITEMS_PER_PANEL, Settings
from trifecta.errors import TrifectaError
from trifecta.logs import configure_logging
from trifecta.sample import build_sample_payload

FUNCTION_PREFIX = "/.netlify/functions/api"
HOME_PATHS = {"/api/v1/home", "/v1/home"}
HEALTH_PATHS = {"/health"}

logger = logging.getLogger("trifecta.api")


def json_response(status_code: int, body: Any, extra_headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    headers = {
        "content-type": "application/json; charset=utf-8",
        "cache-control": "no-store",
    }
    if extra_headers:
        headers.update(extra_headers)
    return {
        "statusCode": status_code,
        "headers": headers,
        "body": json.dumps(body),
    }


def route_path(event: Dict[str, Any]) -> str:
    path = event.get("path") or ""
    if path.startswith(FUNCTION_PREFIX):
        path = path[len(FUNCTION_PREFIX):]
    path = path or "/"
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]
    return path


def _query(event: Dict[str, Any]) -> Dict[str, Any]:
    return event.get("queryStringParameters") or {}


def _topic_keys(event: Dict[str, Any]) -> Optional[List[str]]:
    multi = (event.get("multiValueQueryStringParameters") or {}).get("topic")
    if multi:
        return list(multi)
    single = _query(event).get("topic")
    if single:
        return [key.strip() for key in single.split(",") if key.strip()]
    return None


def _items_per_panel(event: Dict[str, Any]) -> Optional[int]:
    value = _query(event).get("itemsPerPanel")
    if not value:
        return None
    try:
        parsed = int(value)
    except ValueError:
        return None
    if not 1 <= parsed <= MAX_ITEMS_PER_PANEL:
        return None
    return parsed


def home(event: Dict[str, Any], settings: Settings) -> Dict[str, Any]:
    request_settings = settings.with_items_per_panel(_items_per_panel(event))
    wants_sample = str(_query(event).get("sample", "")).lower() in {"1", "true", "yes"}
    if wants_sample or request_settings.sample_data:
        payload = build_sample_payload(request_settings.items_per_panel)
    else:
        payload = asyncio.run(build_payload(DEFAULT_TOPICS, request_settings, topic_keys=_topic_keys(event)))
    return json_response(200, payload.to_json_dict())


def handler(event, context):
    """Lambda handler serving the home payload and a health check"""
    settings = Settings.from_env()
    configure_logging(settings.log_level)

    method = (event.get("httpMethod") or "GET").upper()
    path = route_path(event)

    if method != "GET":
        return json_response(405, {"error": "Method Not Allowed"}, {"allow": "GET"})

    if path in HEALTH_PATHS:
        return json_response(200, {"status": "ok"})

    if path in HOME_PATHS:
        try:
            return home(event, settings)
        except TrifectaError as e:
            logger.exception("Failed to build home payload")
            return json_response(500, {"error": "Failed to build home payload", "detail": str(e)})
        except Exception as e:
            logger.exception("Unexpected error building home payload")
            return json_response(500, {"error": "Internal Server Error", "detail": str(e)})

    return json_response(404, {"error": "Not Found", "path": path})

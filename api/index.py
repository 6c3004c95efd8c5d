import logging
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query, Response
from fastapi.middleware.cors import CORSMiddleware

from trifecta.aggregator import build_payload
from trifecta.config import DEFAULT_TOPICS, MAX_ITEMS_PER_PANEL, Settings
from trifecta.errors import ConfigurationError, TrifectaError
from trifecta.logs import configure_logging
from trifecta.models import ResponsePayload, TopicDefinition
from trifecta.sample import build_sample_payload

settings = Settings.from_env()
configure_logging(settings.log_level)
logger = logging.getLogger("trifecta.api")

# Topic definitions handed to the aggregator on every request
TOPICS: Dict[str, TopicDefinition] = DEFAULT_TOPICS


# ASGI app for Vercel Python function: export `app`
app = FastAPI(title="Trifecta News API", version="1.0.0")

# CORS (same-origin on Vercel, but allow localhost for dev)
allowed_origins = [
    settings.allowed_origin,
    "http://localhost:3000",
    "https://localhost:3000",
    "http://localhost:8888",
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)


@app.get("/")
@app.get("/health")
def root():
    """Health check endpoint"""
    return {"status": "ok"}


@app.get("/defaults", response_model=Dict[str, TopicDefinition])
def get_defaults() -> Dict[str, TopicDefinition]:
    """Get the configured topic definitions and their feed sources"""
    return TOPICS


@app.get("/v1/home", response_model=ResponsePayload)
@app.get("/api/v1/home", response_model=ResponsePayload)
async def home(
    response: Response,
    topic: Optional[List[str]] = Query(default=None),
    items_per_panel: Optional[int] = Query(default=None, alias="itemsPerPanel", ge=1, le=MAX_ITEMS_PER_PANEL),
    sample: bool = False,
) -> ResponsePayload:
    response.headers["cache-control"] = "no-store"
    request_settings = settings.with_items_per_panel(items_per_panel)

    if sample or request_settings.sample_data:
        return build_sample_payload(request_settings.items_per_panel)

    try:
        return await build_payload(TOPICS, request_settings, topic_keys=topic)
    except ConfigurationError as e:
        logger.error("Configuration error: %s", e, extra={"error_type": type(e).__name__})
        raise HTTPException(status_code=500, detail=f"Configuration error: {str(e)}")
    except TrifectaError as e:
        logger.exception("Failed to build home payload")
        raise HTTPException(status_code=500, detail=f"Server error: {str(e)}")
    except Exception as e:
        logger.exception("Unexpected error building home payload")
        raise HTTPException(status_code=500, detail=f"Server error: {str(e)}")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)

import asyncio
from typing import Optional

import httpx

from .config import ACCEPT_HEADER, DEFAULT_FETCH_TIMEOUT, DEFAULT_USER_AGENT
from .errors import FeedTimeoutError, FetchError


def feed_headers(user_agent: str = DEFAULT_USER_AGENT) -> dict:
    return {"Accept": ACCEPT_HEADER, "User-Agent": user_agent}


async def _get_text(client: httpx.AsyncClient, url: str, headers: dict, timeout: float) -> str:
    try:
        resp = await client.get(url, headers=headers)
    except httpx.TimeoutException as e:
        raise FeedTimeoutError(url, timeout) from e
    except httpx.HTTPError as e:
        raise FetchError(url, reason=f"{type(e).__name__}: {e}") from e
    if not resp.is_success:
        raise FetchError(url, status_code=resp.status_code)
    return resp.text


async def fetch_feed_text(
    url: str,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_FETCH_TIMEOUT,
    user_agent: str = DEFAULT_USER_AGENT,
) -> str:
    """GET a feed and return its body as text.

    ``timeout`` bounds the whole call; when it elapses the request is
    cancelled and FeedTimeoutError is raised. Non-2xx responses and transport
    errors raise FetchError.
    """
    headers = feed_headers(user_agent)
    if client is None:
        async with httpx.AsyncClient(follow_redirects=True, timeout=timeout) as own_client:
            return await _with_deadline(_get_text(own_client, url, headers, timeout), url, timeout)
    return await _with_deadline(_get_text(client, url, headers, timeout), url, timeout)


async def _with_deadline(coro, url: str, timeout: float) -> str:
    try:
        return await asyncio.wait_for(coro, timeout=timeout)
    except asyncio.TimeoutError as e:
        raise FeedTimeoutError(url, timeout) from e

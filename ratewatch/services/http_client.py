from __future__ import annotations

"""Async JSON GET helper on top of httpx.

Single attempt per call: callers own pacing and retry policy, so this never
retries on its own. Every failure surfaces as HttpError; status_code is set
when the server answered.
"""
from typing import Any, Dict, Mapping, Optional

import httpx


class HttpError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


async def get_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    params: Optional[Mapping[str, str]] = None,
    timeout: float = 10.0,
) -> Dict[str, Any]:
    try:
        resp = await client.get(url, params=params, timeout=timeout)
    except httpx.HTTPError as e:
        raise HttpError(f"request to {url} failed: {e}") from e
    if resp.status_code >= 400:
        raise HttpError(f"HTTP {resp.status_code} for {url}", resp.status_code)
    try:
        data = resp.json()
    except ValueError as e:  # JSON decode
        raise HttpError(f"invalid JSON from {url}: {e}", resp.status_code) from e
    if not isinstance(data, dict):
        raise HttpError(f"unexpected JSON payload from {url}", resp.status_code)
    return data

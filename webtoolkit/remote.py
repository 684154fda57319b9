from __future__ import annotations

import json
import logging
from typing import Any

import httpx
from fastapi.encoders import jsonable_encoder

logger = logging.getLogger(__name__)

_JSON_HEADERS = {"Content-Type": "application/json"}


def _encode(payload: Any) -> bytes:
    # NaN and Infinity are not JSON; refuse them like JSONResponse does.
    return json.dumps(jsonable_encoder(payload), allow_nan=False).encode("utf-8")


def push_json(uri: str, payload: Any, *, client: httpx.Client | None = None) -> tuple[httpx.Response, int]:
    """POST payload as JSON to uri once and return (response, status_code).

    No retries and no timeout beyond what the client enforces. Without a
    client a default httpx.Client is used for this single call. The response
    body is not interpreted; a caller-supplied client leaves closing it to
    the caller.
    """
    body = _encode(payload)
    logger.info("Pushing %d bytes of JSON to %s", len(body), uri)
    if client is None:
        with httpx.Client() as own_client:
            response = own_client.post(uri, content=body, headers=_JSON_HEADERS)
    else:
        response = client.post(uri, content=body, headers=_JSON_HEADERS)
    return response, response.status_code


async def push_json_async(
    uri: str, payload: Any, *, client: httpx.AsyncClient | None = None
) -> tuple[httpx.Response, int]:
    """push_json() for async handlers, using an httpx.AsyncClient."""
    body = _encode(payload)
    logger.info("Pushing %d bytes of JSON to %s", len(body), uri)
    if client is None:
        async with httpx.AsyncClient() as own_client:
            response = await own_client.post(uri, content=body, headers=_JSON_HEADERS)
    else:
        response = await client.post(uri, content=body, headers=_JSON_HEADERS)
    return response, response.status_code

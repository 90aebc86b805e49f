"""breastcancertrials.org search client.

Sends a translated patient bundle to the trial-search endpoint and validates
the response. Every failure mode surfaces as an APIError whose ``error_type``
tells the caller what went wrong:

    - ``connection``: the request could not be completed (message preserved)
    - ``status``: non-2xx response (carries status code and body)
    - ``parse``: the body is not JSON
    - ``shape``: the JSON is not an array
"""

import json
import logging
from typing import Any, Optional

import httpx

from trial_lookup.domain.ports import APIError, CachePort, NullCache

logger = logging.getLogger(__name__)

FHIR_JSON_CONTENT_TYPE = "application/fhir+json"
DEFAULT_TIMEOUT = 30.0

# Length of response text kept in error messages
MAX_ERROR_BODY = 500


def serialize_query(record: Any, options: Optional[dict] = None) -> str:
    """Build the request body for a patient bundle.

    Per-request options (zip code, travel radius, ...) are appended to the
    bundle as a FHIR Parameters resource entry.

    Parameters:
        record: Translated patient bundle
        options: Per-request search options

    Returns:
        str: JSON request body
    """
    if options:
        record = dict(record)
        entries = list(record.get("entry") or [])
        entries.append({
            "resource": {
                "resourceType": "Parameters",
                "parameter": [
                    {"name": str(name), "valueString": str(value)}
                    for name, value in options.items()
                    if value is not None
                ],
            }
        })
        record["entry"] = entries
    return json.dumps(record)


async def _post(client: httpx.AsyncClient, endpoint: str, body: str) -> httpx.Response:
    try:
        return await client.post(
            endpoint,
            content=body.encode("utf-8"),
            headers={"Content-Type": FHIR_JSON_CONTENT_TYPE},
        )
    except httpx.HTTPError as e:
        logger.error(
            f"Trial search request to {endpoint} failed: {e}",
            extra={"endpoint": endpoint, "error_type": "connection"}
        )
        raise APIError(str(e), error_type="connection") from e


def _parse_response(response: httpx.Response) -> list:
    if not response.is_success:
        text = response.text[:MAX_ERROR_BODY]
        logger.error(
            f"Trial search endpoint returned HTTP {response.status_code}: {text}",
            extra={"error_type": "status"}
        )
        raise APIError(
            f"Server returned {response.status_code}: {text}",
            error_type="status",
            status_code=response.status_code,
            body=response.text,
        )

    try:
        data = response.json()
    except ValueError as e:
        text = response.text[:MAX_ERROR_BODY]
        raise APIError(
            f"Unable to parse response from server as JSON: {text}",
            error_type="parse",
            status_code=response.status_code,
            body=response.text,
        ) from e

    if not isinstance(data, list):
        raise APIError(
            f"Unexpected response from server: expected a JSON array, got {type(data).__name__}",
            error_type="shape",
            status_code=response.status_code,
        )
    return data


async def send_query(
    endpoint: str,
    body: str,
    cache: Optional[CachePort] = None,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> list:
    """Query the trial-search endpoint.

    Parameters:
        endpoint: Endpoint URL
        body: Serialized request body (see ``serialize_query``)
        cache: Read-through cache keyed by ``body``; ``NullCache`` when omitted
        client: Shared HTTP client. A short-lived client is created when omitted.
        timeout: Timeout for the short-lived client

    Returns:
        list: Raw trial summaries, exactly as returned by the endpoint

    Raises:
        APIError: On any transport, status, parse or shape failure
    """
    if cache is None:
        cache = NullCache()

    cached = await cache.get(body)
    if cached is not None:
        logger.debug(
            f"Cache hit for trial search ({len(cached)} summaries)",
            extra={"endpoint": endpoint, "trial_count": len(cached), "cache_hit": True}
        )
        return cached

    logger.debug(f"Querying trial search endpoint {endpoint}")
    if client is not None:
        response = await _post(client, endpoint, body)
    else:
        async with httpx.AsyncClient(timeout=timeout) as short_lived:
            response = await _post(short_lived, endpoint, body)

    summaries = _parse_response(response)
    logger.info(
        f"Trial search endpoint returned {len(summaries)} summaries",
        extra={"endpoint": endpoint, "trial_count": len(summaries), "cache_hit": False}
    )

    await cache.set(body, summaries)
    return summaries

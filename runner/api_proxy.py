"""Passthrough for API test cases (``POST /run-api``)."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

log = logging.getLogger(__name__)

ALLOWED_METHODS = {"GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"}


class ApiRequestError(ValueError):
    """The ``/run-api`` payload is unusable."""


@dataclass(slots=True)
class ApiRequest:
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None
    expected_status: Optional[int] = None
    expected_body: Optional[str] = None

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "ApiRequest":
        method = str(data.get("method") or "GET").strip().upper()
        if method not in ALLOWED_METHODS:
            raise ApiRequestError(f"Unsupported method '{method}'")
        url = str(data.get("url") or "").strip()
        if not url.lower().startswith(("http://", "https://")):
            raise ApiRequestError("url must be an absolute http(s) URL")

        headers: Dict[str, str] = {}
        raw_headers = data.get("headers") or []
        if isinstance(raw_headers, dict):
            headers = {str(k): str(v) for k, v in raw_headers.items() if str(k).strip()}
        elif isinstance(raw_headers, list):
            for item in raw_headers:
                if isinstance(item, dict) and str(item.get("key") or "").strip():
                    headers[str(item["key"]).strip()] = str(item.get("value") or "")
        else:
            raise ApiRequestError("headers must be a list of {key, value} or an object")

        body = data.get("body")
        if body is not None and not isinstance(body, str):
            raise ApiRequestError("body must be a string")

        expected_status = data.get("expectedStatus")
        if expected_status is not None:
            try:
                expected_status = int(expected_status)
            except (TypeError, ValueError) as exc:
                raise ApiRequestError("expectedStatus must be an integer") from exc

        expected_body = data.get("expectedBody") or None
        return cls(
            method=method,
            url=url,
            headers=headers,
            body=body or None,
            expected_status=expected_status,
            expected_body=expected_body,
        )


def evaluate_expectations(request: ApiRequest, status: int, text: str) -> Optional[bool]:
    if request.expected_status is None:
        return None
    if status != request.expected_status:
        return False
    if request.expected_body and request.expected_body not in text:
        return False
    return True


async def send_api_request(
    request: ApiRequest,
    *,
    timeout: float,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Any]:
    started = time.perf_counter()
    async with httpx.AsyncClient(timeout=timeout, transport=transport, follow_redirects=True) as client:
        response = await client.request(
            request.method,
            request.url,
            headers=request.headers,
            content=request.body.encode("utf-8") if request.body is not None else None,
        )
    duration_ms = int((time.perf_counter() - started) * 1000)

    text = response.text
    try:
        body: Any = response.json()
    except ValueError:
        body = text

    payload: Dict[str, Any] = {
        "status": response.status_code,
        "statusText": response.reason_phrase,
        "headers": dict(response.headers),
        "body": body,
        "duration": duration_ms,
    }
    passed = evaluate_expectations(request, response.status_code, text)
    if passed is not None:
        payload["passed"] = passed
    log.info("%s %s -> %s in %d ms", request.method, request.url, response.status_code, duration_ms)
    return payload

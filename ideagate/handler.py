"""Serverless-style HTTP entry points wrapping :class:`IdeaGateway`."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping, Optional

from ideagate.config import GatewaySettings, load_settings
from ideagate.errors import INVALID_REQUEST, GatewayError
from ideagate.models import GatewayOutcome, GenerationRequest, ImageRequest, JsonDict
from ideagate.pipeline import IdeaGateway
from ideagate.upstream import UpstreamInvoker

ROUTE_IDEAS = "ideas"
ROUTE_IMAGE = "image"

CORS_HEADERS: Mapping[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}

_LOGGER = logging.getLogger(__name__)


def json_response(status: int, body: Any) -> Dict[str, Any]:
    headers = {"Content-Type": "application/json; charset=utf-8"}
    headers.update(CORS_HEADERS)
    return {"statusCode": status, "headers": headers, "body": json.dumps(body)}


def build_gateway(settings: GatewaySettings) -> IdeaGateway:
    invoker = UpstreamInvoker(endpoints=settings.endpoints())
    return IdeaGateway(invoker=invoker, log_path=settings.log_path)


def _decode_body(event: Mapping[str, Any]) -> JsonDict:
    raw = event.get("body") or "{}"
    try:
        body = json.loads(raw)
    except (json.JSONDecodeError, RecursionError, TypeError):
        raise GatewayError(INVALID_REQUEST, "Invalid JSON body.") from None
    if not isinstance(body, dict):
        raise GatewayError(INVALID_REQUEST, "Invalid JSON body.")
    return body


def handle_event(
    event: Mapping[str, Any],
    *,
    route: str = ROUTE_IDEAS,
    settings: Optional[GatewaySettings] = None,
    gateway: Optional[IdeaGateway] = None,
) -> Dict[str, Any]:
    """Answer one HTTP event of the form ``{"httpMethod": ..., "body": ...}``."""

    method = str(event.get("httpMethod") or "").upper()
    if method == "OPTIONS":
        if route == ROUTE_IMAGE:
            return {"statusCode": 204, "headers": dict(CORS_HEADERS), "body": ""}
        return json_response(200, {"ok": True})
    if method != "POST":
        return json_response(405, {"error": {"message": "Method not allowed. Use POST."}})

    settings = settings or load_settings()
    gateway = gateway or build_gateway(settings)

    try:
        body = _decode_body(event)
        if route == ROUTE_IMAGE:
            image_request = ImageRequest.from_body(body)
        else:
            request = GenerationRequest.from_body(body)
    except GatewayError as error:
        _LOGGER.info("Rejected %s request: %s", route, error.message)
        return json_response(error.http_status_hint, error.to_body())
    except ValueError as exc:
        error = GatewayError(INVALID_REQUEST, str(exc) or "Invalid request.")
        _LOGGER.info("Rejected %s request: %s", route, error.message)
        return json_response(error.http_status_hint, error.to_body())

    outcome: GatewayOutcome
    if route == ROUTE_IMAGE:
        outcome = gateway.generate_image(
            image_request, settings.api_key, deadline=settings.timeout_seconds
        )
    else:
        outcome = gateway.generate_ideas(request, settings.api_key, deadline=settings.timeout_seconds)
    return json_response(outcome.status, outcome.body)


def ideas_handler(event: Mapping[str, Any], context: Any = None) -> Dict[str, Any]:
    return handle_event(event, route=ROUTE_IDEAS)


def image_handler(event: Mapping[str, Any], context: Any = None) -> Dict[str, Any]:
    return handle_event(event, route=ROUTE_IMAGE)


__all__ = [
    "CORS_HEADERS",
    "ROUTE_IDEAS",
    "ROUTE_IMAGE",
    "build_gateway",
    "handle_event",
    "ideas_handler",
    "image_handler",
    "json_response",
]

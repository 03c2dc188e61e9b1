"""Tests for the serverless-style HTTP handler."""

from __future__ import annotations

import json

import pytest

from ideagate.config import GatewaySettings
from ideagate.handler import CORS_HEADERS, ROUTE_IMAGE, handle_event


@pytest.fixture
def settings() -> GatewaySettings:
    return GatewaySettings(api_key="sk-handler", timeout_seconds=2)


def _body(response) -> dict:
    return json.loads(response["body"])


def test_options_preflight_for_ideas(settings) -> None:
    response = handle_event({"httpMethod": "OPTIONS"}, settings=settings)

    assert response["statusCode"] == 200
    assert _body(response) == {"ok": True}
    for key, value in CORS_HEADERS.items():
        assert response["headers"][key] == value


def test_options_preflight_for_image_is_empty(settings) -> None:
    response = handle_event({"httpMethod": "OPTIONS"}, route=ROUTE_IMAGE, settings=settings)

    assert response["statusCode"] == 204
    assert response["body"] == ""
    assert response["headers"]["Access-Control-Allow-Origin"] == "*"


@pytest.mark.parametrize("method", ["GET", "PUT", None])
def test_other_methods_are_rejected(settings, method) -> None:
    response = handle_event({"httpMethod": method}, settings=settings)

    assert response["statusCode"] == 405
    assert _body(response)["error"]["message"] == "Method not allowed. Use POST."


@pytest.mark.parametrize("raw", ["{not json", "[1, 2]", "\"text\""])
def test_invalid_json_body_is_400(settings, gateway_for, raw) -> None:
    transport, gateway = gateway_for(200, {})

    response = handle_event({"httpMethod": "POST", "body": raw}, settings=settings, gateway=gateway)

    assert response["statusCode"] == 400
    assert _body(response)["error"]["message"] == "Invalid JSON body."
    assert transport.calls == []


def test_bad_field_values_are_400(settings, gateway_for) -> None:
    _, gateway = gateway_for(200, {})
    event = {"httpMethod": "POST", "body": json.dumps({"prompt": "x", "mode": "poetry"})}

    response = handle_event(event, settings=settings, gateway=gateway)

    assert response["statusCode"] == 400
    assert "mode must be one of" in _body(response)["error"]["message"]


def test_missing_prompt_is_400(settings, gateway_for) -> None:
    _, gateway = gateway_for(200, {})

    response = handle_event({"httpMethod": "POST", "body": "{}"}, settings=settings, gateway=gateway)

    assert response["statusCode"] == 400
    assert _body(response) == {"error": {"message": "Missing prompt."}}


def test_post_generates_ideas(settings, gateway_for) -> None:
    ideas = json.dumps({"ideas": [{"title": "A"}, {"title": "B"}]})
    transport, gateway = gateway_for(200, {"output_text": ideas})
    event = {
        "httpMethod": "POST",
        "body": json.dumps(
            {"prompt": "build a campus app", "model": "gpt-4.1", "count": "2", "detailLevel": "Brief"}
        ),
    }

    response = handle_event(event, settings=settings, gateway=gateway)

    assert response["statusCode"] == 200
    assert response["headers"]["Content-Type"].startswith("application/json")
    body = _body(response)
    assert body["modelUsed"] == "gpt-4.1"
    assert len(body["ideasJson"]["ideas"]) == 2
    call = transport.calls[0]
    assert call["headers"]["Authorization"] == "Bearer sk-handler"
    assert call["timeout"] == 2


def test_missing_api_key_is_500(gateway_for) -> None:
    _, gateway = gateway_for(200, {})
    event = {"httpMethod": "POST", "body": json.dumps({"prompt": "x"})}

    response = handle_event(event, settings=GatewaySettings(api_key=""), gateway=gateway)

    assert response["statusCode"] == 500
    assert "OPENAI_API_KEY" in _body(response)["error"]["message"]


def test_post_generates_image(settings, gateway_for) -> None:
    _, gateway = gateway_for(200, {"data": [{"b64_json": "QUJD"}]})
    event = {"httpMethod": "post", "body": json.dumps({"prompt": "a lighthouse", "size": 5})}

    response = handle_event(event, route=ROUTE_IMAGE, settings=settings, gateway=gateway)

    assert response["statusCode"] == 200
    assert _body(response) == {"imageDataUrl": "data:image/png;base64,QUJD"}


def test_deeply_nested_body_is_400(settings, gateway_for) -> None:
    transport, gateway = gateway_for(200, {})
    raw = "{\"prompt\": " + "[" * 100000 + "]" * 100000 + "}"

    response = handle_event({"httpMethod": "POST", "body": raw}, settings=settings, gateway=gateway)

    assert response["statusCode"] == 400
    assert _body(response)["error"]["message"] == "Invalid JSON body."
    assert transport.calls == []

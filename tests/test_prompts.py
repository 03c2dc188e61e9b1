"""Tests for upstream payload construction."""

from __future__ import annotations

import json

import pytest

from ideagate.errors import INVALID_REQUEST, GatewayError
from ideagate.models import (
    MAX_PROMPT_CHARS,
    MODE_FREE_TEXT,
    MODE_STRUCTURED,
    GenerationRequest,
    ImageRequest,
)
from ideagate.prompts import (
    FREE_TEXT_TEMPERATURE,
    MAX_OUTPUT_TOKENS_CEILING,
    STRUCTURED_TEMPERATURE,
    build_image_payload,
    build_payload,
    output_token_cap,
)


def _user_text(payload) -> str:
    body = payload.to_json()
    return body["input"][1]["content"][0]["text"]


def _system_text(payload) -> str:
    return payload.to_json()["input"][0]["content"]


@pytest.mark.parametrize("prompt", ["", "   ", "\n\t"])
def test_blank_prompt_is_rejected(prompt) -> None:
    request = GenerationRequest(raw_prompt=prompt, mode=MODE_FREE_TEXT)

    with pytest.raises(GatewayError) as excinfo:
        build_payload(request, "gpt-4.1-mini")

    assert excinfo.value.kind == INVALID_REQUEST
    assert excinfo.value.http_status_hint == 400


def test_long_prompt_keeps_exact_prefix() -> None:
    prompt = "".join(chr(ord("a") + (index % 26)) for index in range(MAX_PROMPT_CHARS + 500))
    request = GenerationRequest(raw_prompt=prompt)

    payload = build_payload(request, "gpt-4.1-mini")

    assert _user_text(payload) == prompt[:MAX_PROMPT_CHARS]
    assert len(_user_text(payload)) == 12_000


def test_prompt_is_trimmed_before_embedding() -> None:
    request = GenerationRequest(raw_prompt="  build a campus app \n")

    assert _user_text(build_payload(request, "gpt-4.1")) == "build a campus app"


def test_structured_payload_demands_json() -> None:
    request = GenerationRequest(raw_prompt="campus app", mode=MODE_STRUCTURED, count=2)

    payload = build_payload(request, "gpt-4o-mini")
    body = payload.to_json()
    system = _system_text(payload)

    assert body["model"] == "gpt-4o-mini"
    assert payload.model == "gpt-4o-mini"
    assert body["temperature"] == STRUCTURED_TEMPERATURE
    assert "Return JSON ONLY" in system
    assert "No markdown" in system
    assert "trailing commas" in system
    assert '"ideas"' in system
    assert body["input"][1]["content"][0]["type"] == "input_text"


def test_structured_payload_describes_extras_and_projects_shape() -> None:
    request = GenerationRequest(raw_prompt="campus app", include_extras=True, shape="projects")

    system = _system_text(build_payload(request, "gpt-4.1"))

    assert "stretchGoals" in system
    assert '"projects"' in system


def test_free_text_payload_requests_headings() -> None:
    request = GenerationRequest(raw_prompt="campus app", mode=MODE_FREE_TEXT, count=4)

    payload = build_payload(request, "gpt-4.1")
    system = _system_text(payload)

    assert payload.to_json()["temperature"] == FREE_TEXT_TEMPERATURE
    assert "## Idea N" in system
    assert "### Key Features" in system
    assert "Extras" not in system
    assert "Write 4 ideas" in system


def test_output_cap_grows_with_detail_and_stays_under_ceiling() -> None:
    brief = output_token_cap(GenerationRequest(raw_prompt="x", count=3, detail_level="brief"))
    standard = output_token_cap(GenerationRequest(raw_prompt="x", count=3, detail_level="standard"))
    detailed = output_token_cap(GenerationRequest(raw_prompt="x", count=3, detail_level="detailed"))
    huge = output_token_cap(GenerationRequest(raw_prompt="x", count=10, detail_level="detailed"))

    assert brief <= standard < detailed
    assert brief >= 650
    assert huge == MAX_OUTPUT_TOKENS_CEILING

    free_brief = output_token_cap(GenerationRequest(raw_prompt="x", mode=MODE_FREE_TEXT, detail_level="brief"))
    free_detailed = output_token_cap(GenerationRequest(raw_prompt="x", mode=MODE_FREE_TEXT, detail_level="detailed"))
    assert free_brief < free_detailed <= MAX_OUTPUT_TOKENS_CEILING


def test_payload_is_read_only() -> None:
    payload = build_payload(GenerationRequest(raw_prompt="campus app"), "gpt-4.1")

    with pytest.raises(TypeError):
        payload.body["model"] = "other"  # type: ignore[index]

    exported = payload.to_json()
    exported["model"] = "other"
    assert payload.to_json()["model"] == "gpt-4.1"
    json.dumps(exported)


def test_image_payload_defaults_size_and_omits_response_format() -> None:
    payload = build_image_payload(ImageRequest(prompt=" a red bicycle ", size="17x17"))
    body = payload.to_json()

    assert body == {"model": "gpt-image-1", "prompt": "a red bicycle", "size": "1024x1024"}
    assert payload.endpoint_kind == "images"


def test_image_payload_rejects_blank_prompt() -> None:
    with pytest.raises(GatewayError) as excinfo:
        build_image_payload(ImageRequest(prompt="  "))

    assert excinfo.value.kind == INVALID_REQUEST

"""Upstream payload construction for idea and image requests."""

from __future__ import annotations

import json
from typing import List, Mapping

from ideagate.errors import INVALID_REQUEST, GatewayError
from ideagate.models import (
    DETAIL_BRIEF,
    DETAIL_DETAILED,
    DETAIL_STANDARD,
    IMAGE_MODEL,
    MAX_PROMPT_CHARS,
    MODE_STRUCTURED,
    GenerationRequest,
    ImageRequest,
    UpstreamPayload,
    freeze,
)
from ideagate.schema import IdeaShape

MAX_OUTPUT_TOKENS_CEILING = 2500
STRUCTURED_MIN_TOKENS = 650

STRUCTURED_TEMPERATURE = 0.4
FREE_TEXT_TEMPERATURE = 0.85

_STRUCTURED_TOKENS_PER_IDEA: Mapping[str, int] = {
    DETAIL_BRIEF: 220,
    DETAIL_STANDARD: 320,
    DETAIL_DETAILED: 480,
}
_FREE_TEXT_TOKENS: Mapping[str, int] = {
    DETAIL_BRIEF: 1200,
    DETAIL_STANDARD: 1800,
    DETAIL_DETAILED: 2500,
}

_FREE_TEXT_HEADINGS = ("Overview", "Key Features", "Tech Stack", "Challenges")


def clean_prompt(raw_prompt: str) -> str:
    """Trim *raw_prompt* and keep at most the first 12,000 characters."""

    prompt = raw_prompt.strip() if isinstance(raw_prompt, str) else ""
    if not prompt:
        raise GatewayError(INVALID_REQUEST, "Missing prompt.")
    return prompt[:MAX_PROMPT_CHARS]


def output_token_cap(request: GenerationRequest) -> int:
    detail = request.effective_detail
    if request.mode == MODE_STRUCTURED:
        budget = _STRUCTURED_TOKENS_PER_IDEA[detail] * request.effective_count
        return min(MAX_OUTPUT_TOKENS_CEILING, max(STRUCTURED_MIN_TOKENS, budget))
    return min(MAX_OUTPUT_TOKENS_CEILING, _FREE_TEXT_TOKENS[detail])


def structured_instruction(shape: IdeaShape, count: int) -> str:
    schema = json.dumps(shape.document_schema(count), separators=(",", ":"))
    return " ".join(
        [
            "You are an expert senior design project advisor.",
            "Return JSON ONLY. No markdown. No commentary.",
            f"Return exactly {count} entries in \"{shape.collection_key}\".",
            f"The JSON must match this schema: {schema}",
            f"Keep every list to at most {shape.max_list_items} short items.",
            "Do NOT include trailing commas.",
        ]
    )


def free_text_instruction(count: int, *, include_extras: bool = False) -> str:
    headings: List[str] = list(_FREE_TEXT_HEADINGS)
    if include_extras:
        headings.append("Extras")
    layout = ", ".join(f"'### {heading}'" for heading in headings)
    return " ".join(
        [
            "You are an expert innovation consultant and senior project advisor.",
            "Generate detailed, practical, creative ideas that match the provided parameters.",
            "Be technically sound and actionable.",
            f"Write {count} ideas. Start each with a heading '## Idea N: <title>'",
            f"followed by the sub-headings {layout} in that order.",
        ]
    )


def build_payload(request: GenerationRequest, model: str) -> UpstreamPayload:
    """Assemble the Responses API body for *request* against *model*."""

    prompt = clean_prompt(request.raw_prompt)
    count = request.effective_count

    if request.mode == MODE_STRUCTURED:
        shape = IdeaShape.for_request(request.shape, include_extras=request.include_extras)
        system = structured_instruction(shape, count)
        temperature = STRUCTURED_TEMPERATURE
    else:
        system = free_text_instruction(count, include_extras=request.include_extras)
        temperature = FREE_TEXT_TEMPERATURE

    body = {
        "model": model,
        "input": [
            {"role": "system", "content": system},
            {"role": "user", "content": [{"type": "input_text", "text": prompt}]},
        ],
        "temperature": temperature,
        "max_output_tokens": output_token_cap(request),
    }
    return UpstreamPayload(model=model, body=freeze(body))


def build_image_payload(request: ImageRequest) -> UpstreamPayload:
    prompt = request.prompt.strip() if isinstance(request.prompt, str) else ""
    if not prompt:
        raise GatewayError(INVALID_REQUEST, "Missing prompt.")
    body = {
        "model": IMAGE_MODEL,
        "prompt": prompt[:MAX_PROMPT_CHARS],
        "size": request.effective_size,
    }
    return UpstreamPayload(model=IMAGE_MODEL, body=freeze(body), endpoint_kind="images")


__all__ = [
    "FREE_TEXT_TEMPERATURE",
    "MAX_OUTPUT_TOKENS_CEILING",
    "STRUCTURED_TEMPERATURE",
    "build_image_payload",
    "build_payload",
    "clean_prompt",
    "free_text_instruction",
    "output_token_cap",
    "structured_instruction",
]

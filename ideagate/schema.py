"""Structured-output shape and the validator that cleans model JSON."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from jsonschema import Draft202012Validator

from ideagate.errors import INVALID_MODEL_OUTPUT, SCHEMA_MISMATCH, GatewayError
from ideagate.models import SHAPE_IDEAS, JsonDict

MAX_LIST_ITEMS = 6

UNTITLED = "Untitled Project"
NOT_SPECIFIED = "Not specified"

_BASE_STRING_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("title", UNTITLED),
    ("summary", ""),
    ("problem", NOT_SPECIFIED),
    ("targetUsers", NOT_SPECIFIED),
    ("difficulty", NOT_SPECIFIED),
    ("timeline", NOT_SPECIFIED),
)
_BASE_LIST_FIELDS: Tuple[str, ...] = ("features", "techStack", "challenges")

_EXTRA_STRING_FIELDS: Tuple[Tuple[str, str], ...] = (("impact", NOT_SPECIFIED),)
_EXTRA_LIST_FIELDS: Tuple[str, ...] = ("stretchGoals",)

_FENCE_PATTERN = re.compile(r"^```(?:json|JSON)?\s*(.*?)\s*```$", re.DOTALL)

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class IdeaShape:
    """Describes the JSON document the model is asked to produce."""

    collection_key: str = SHAPE_IDEAS
    string_fields: Tuple[Tuple[str, str], ...] = _BASE_STRING_FIELDS
    list_fields: Tuple[str, ...] = _BASE_LIST_FIELDS
    max_list_items: int = MAX_LIST_ITEMS

    @classmethod
    def for_request(cls, collection_key: str = SHAPE_IDEAS, *, include_extras: bool = False) -> "IdeaShape":
        if include_extras:
            return cls(
                collection_key=collection_key,
                string_fields=_BASE_STRING_FIELDS + _EXTRA_STRING_FIELDS,
                list_fields=_BASE_LIST_FIELDS + _EXTRA_LIST_FIELDS,
            )
        return cls(collection_key=collection_key)

    def record_schema(self) -> JsonDict:
        properties: JsonDict = {name: {"type": "string"} for name, _ in self.string_fields}
        for name in self.list_fields:
            properties[name] = {
                "type": "array",
                "items": {"type": "string"},
                "maxItems": self.max_list_items,
            }
        return {
            "type": "object",
            "properties": properties,
            "required": [name for name, _ in self.string_fields] + list(self.list_fields),
        }

    def document_schema(self, count: Optional[int] = None) -> JsonDict:
        """Full JSON Schema embedded in the structured-mode instruction."""

        collection: JsonDict = {"type": "array", "items": self.record_schema()}
        if count is not None:
            collection["maxItems"] = count
        return {
            "type": "object",
            "properties": {self.collection_key: collection},
            "required": [self.collection_key],
        }

    def envelope_schema(self) -> JsonDict:
        """Minimal schema enforced before normalization."""

        return {
            "type": "object",
            "properties": {self.collection_key: {"type": "array"}},
            "required": [self.collection_key],
        }


def parse_model_json(text: str) -> Any:
    """Decode model output, tolerating only a surrounding markdown fence.

    Raises :class:`GatewayError` (``InvalidModelOutput``) when the remaining
    text is not JSON, including JSON wrapped in prose.
    """

    candidate = text.strip()
    fenced = _FENCE_PATTERN.match(candidate)
    if fenced:
        candidate = fenced.group(1)

    try:
        return json.loads(candidate)
    except (json.JSONDecodeError, RecursionError) as exc:
        raise GatewayError(
            INVALID_MODEL_OUTPUT,
            "Model did not return valid JSON. Lower idea count/detail level and try again.",
            details=text,
        ) from exc


def validate_ideas(text: str, shape: Optional[IdeaShape] = None, *, count: Optional[int] = None) -> JsonDict:
    """Parse *text* and return the cleaned structured result.

    Only parsing and the top-level shape check can fail; record
    normalization accepts any JSON.
    """

    shape = shape or IdeaShape()
    document = parse_model_json(text)

    validator = Draft202012Validator(shape.envelope_schema())
    errors = sorted(validator.iter_errors(document), key=lambda err: list(err.absolute_path))
    if errors:
        _LOGGER.warning(
            "Model JSON failed shape check: %s", "; ".join(err.message for err in errors[:3])
        )
        raise GatewayError(
            SCHEMA_MISMATCH,
            f"JSON schema invalid: expected {{ {shape.collection_key}: [...] }}",
            details=document,
        )

    cleaned: JsonDict = dict(document)
    records = document[shape.collection_key]
    if count is not None:
        records = records[: max(count, 0)]
    cleaned[shape.collection_key] = [normalize_record(record, shape) for record in records]
    return cleaned


def normalize_record(record: Any, shape: IdeaShape) -> JsonDict:
    source: Mapping[str, Any] = record if isinstance(record, Mapping) else {}
    normalized: Dict[str, Any] = dict(source)
    for name, fallback in shape.string_fields:
        normalized[name] = _coerce_string(source.get(name), fallback)
    for name in shape.list_fields:
        normalized[name] = _coerce_list(source.get(name), shape.max_list_items)
    return normalized


def _coerce_string(value: Any, fallback: str) -> str:
    if not isinstance(value, str):
        return fallback
    if fallback and not value.strip():
        return fallback
    return value


def _coerce_list(value: Any, limit: int) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)][:limit]


__all__ = [
    "IdeaShape",
    "MAX_LIST_ITEMS",
    "NOT_SPECIFIED",
    "UNTITLED",
    "normalize_record",
    "parse_model_json",
    "validate_ideas",
]

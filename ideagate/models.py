"""Request-scoped data model for the idea and image gateway."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

JsonDict = Dict[str, Any]

MODE_FREE_TEXT = "free-text"
MODE_STRUCTURED = "structured"
MODES = (MODE_FREE_TEXT, MODE_STRUCTURED)

DETAIL_BRIEF = "brief"
DETAIL_STANDARD = "standard"
DETAIL_DETAILED = "detailed"
DETAIL_LEVELS = (DETAIL_BRIEF, DETAIL_STANDARD, DETAIL_DETAILED)

SHAPE_IDEAS = "ideas"
SHAPE_PROJECTS = "projects"
SHAPES = (SHAPE_IDEAS, SHAPE_PROJECTS)

MAX_PROMPT_CHARS = 12_000
DEFAULT_COUNT = 3
MAX_COUNT = 10


@dataclass(frozen=True)
class GenerationRequest:
    """Parsed idea-generation request handed over by the HTTP collaborator."""

    raw_prompt: str
    requested_model: Optional[str] = None
    mode: str = MODE_STRUCTURED
    count: Optional[int] = None
    detail_level: Optional[str] = None
    include_extras: bool = False
    shape: str = SHAPE_IDEAS

    def __post_init__(self) -> None:
        if self.mode not in MODES:
            raise ValueError(f"mode must be one of {', '.join(MODES)}")
        if self.detail_level is not None and self.detail_level not in DETAIL_LEVELS:
            raise ValueError(f"detailLevel must be one of {', '.join(DETAIL_LEVELS)}")
        if self.shape not in SHAPES:
            raise ValueError(f"shape must be one of {', '.join(SHAPES)}")
        if self.count is not None and (isinstance(self.count, bool) or not isinstance(self.count, int)):
            raise ValueError("count must be an integer")

    @property
    def effective_count(self) -> int:
        if self.count is None:
            return DEFAULT_COUNT
        return max(1, min(MAX_COUNT, self.count))

    @property
    def effective_detail(self) -> str:
        return self.detail_level or DETAIL_STANDARD

    @classmethod
    def from_body(cls, body: Mapping[str, Any]) -> "GenerationRequest":
        """Build a request from a decoded client JSON body.

        Field names follow the browser client (``prompt``, ``model``,
        ``detailLevel``, ``includeExtras``). Type errors surface as
        ``ValueError`` so the caller can answer with a 400.
        """

        if not isinstance(body, Mapping):
            raise ValueError("request body must be a JSON object")

        prompt = body.get("prompt")
        model = body.get("model")
        count = body.get("count")
        if isinstance(count, str) and count.strip().isdigit():
            count = int(count.strip())
        detail = body.get("detailLevel")
        if isinstance(detail, str):
            detail = detail.strip().lower() or None

        return cls(
            raw_prompt=prompt if isinstance(prompt, str) else "",
            requested_model=model if isinstance(model, str) else None,
            mode=str(body.get("mode") or MODE_STRUCTURED).strip().lower(),
            count=count,
            detail_level=detail,
            include_extras=_truthy(body.get("includeExtras")),
            shape=str(body.get("shape") or SHAPE_IDEAS).strip().lower(),
        )


IMAGE_MODEL = "gpt-image-1"
DEFAULT_IMAGE_SIZE = "1024x1024"
IMAGE_SIZES = ("1024x1024", "1024x1536", "1536x1024", "auto")


@dataclass(frozen=True)
class ImageRequest:
    """Parsed image-generation request."""

    prompt: str
    size: Optional[str] = None

    @property
    def effective_size(self) -> str:
        if isinstance(self.size, str) and self.size.strip() in IMAGE_SIZES:
            return self.size.strip()
        return DEFAULT_IMAGE_SIZE

    @classmethod
    def from_body(cls, body: Mapping[str, Any]) -> "ImageRequest":
        if not isinstance(body, Mapping):
            raise ValueError("request body must be a JSON object")
        prompt = body.get("prompt")
        size = body.get("size")
        return cls(
            prompt=prompt if isinstance(prompt, str) else "",
            size=size if isinstance(size, str) else None,
        )


@dataclass(frozen=True)
class UpstreamPayload:
    """The exact request body sent upstream, built once per request."""

    model: str
    body: Mapping[str, Any]
    endpoint_kind: str = "responses"

    def to_json(self) -> JsonDict:
        return _thaw(self.body)


@dataclass
class GatewayOutcome:
    """Result-or-error value returned across the core boundary."""

    status: int
    body: JsonDict
    error_kind: Optional[str] = None
    model: Optional[str] = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def freeze(value: Any) -> Any:
    """Return a read-only deep copy of a JSON-like value."""

    if isinstance(value, Mapping):
        return MappingProxyType({key: freeze(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    return value


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _thaw(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [_thaw(item) for item in value]
    return value


__all__ = [
    "DEFAULT_COUNT",
    "DEFAULT_IMAGE_SIZE",
    "DETAIL_BRIEF",
    "DETAIL_DETAILED",
    "DETAIL_LEVELS",
    "DETAIL_STANDARD",
    "GatewayOutcome",
    "GenerationRequest",
    "IMAGE_MODEL",
    "IMAGE_SIZES",
    "ImageRequest",
    "JsonDict",
    "MAX_COUNT",
    "MAX_PROMPT_CHARS",
    "MODES",
    "MODE_FREE_TEXT",
    "MODE_STRUCTURED",
    "SHAPES",
    "SHAPE_IDEAS",
    "SHAPE_PROJECTS",
    "UpstreamPayload",
    "freeze",
]

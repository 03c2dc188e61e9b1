"""Request normalization, bounded upstream call, and result extraction."""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

from ideagate.errors import EMPTY_UPSTREAM_OUTPUT, GatewayError, classify
from ideagate.extract import extract_image_b64, extract_text
from ideagate.logging import log_gateway_event
from ideagate.model_selector import resolve_model
from ideagate.models import (
    MODE_STRUCTURED,
    SHAPE_PROJECTS,
    GatewayOutcome,
    GenerationRequest,
    ImageRequest,
    JsonDict,
)
from ideagate.prompts import build_image_payload, build_payload
from ideagate.schema import IdeaShape, validate_ideas
from ideagate.upstream import DEFAULT_DEADLINE_SECONDS, UpstreamInvoker


class IdeaGateway:
    """Run one idea or image request end to end.

    Every failure, whichever stage raised it, comes back as a
    :class:`GatewayOutcome` carrying the error body and status hint; nothing
    raised inside the pipeline escapes :meth:`generate_ideas` or
    :meth:`generate_image`.

    Parameters
    ----------
    invoker:
        Upstream client; tests inject one built around a fake transport.
    log_path:
        Optional JSONL sink for per-request events.
    """

    def __init__(
        self,
        *,
        invoker: Optional[UpstreamInvoker] = None,
        log_path: Optional[str] = None,
    ) -> None:
        self._invoker = invoker or UpstreamInvoker()
        self.log_path = log_path
        self._logger = logging.getLogger(self.__class__.__name__)

    def generate_ideas(
        self,
        request: GenerationRequest,
        credential: Optional[str],
        *,
        deadline: float = DEFAULT_DEADLINE_SECONDS,
    ) -> GatewayOutcome:
        started = time.monotonic()
        model: Optional[str] = None
        try:
            model = resolve_model(request.requested_model)
            payload = build_payload(request, model)
            envelope = self._invoker.invoke(payload, credential, deadline)
            text = extract_text(envelope)
            if not text:
                raise GatewayError(
                    EMPTY_UPSTREAM_OUTPUT,
                    "OpenAI returned empty text.",
                    details=envelope,
                )
            body = self._ideas_body(request, text, model)
        except Exception as exc:  # boundary: callers only ever see GatewayError bodies
            outcome = self._failure(exc, model)
        else:
            outcome = GatewayOutcome(status=200, body=body, model=model)

        self._record("ideas", request.mode, outcome, started)
        return outcome

    def generate_image(
        self,
        request: ImageRequest,
        credential: Optional[str],
        *,
        deadline: float = DEFAULT_DEADLINE_SECONDS,
    ) -> GatewayOutcome:
        started = time.monotonic()
        model: Optional[str] = None
        try:
            payload = build_image_payload(request)
            model = payload.model
            envelope = self._invoker.invoke(payload, credential, deadline)
            b64 = extract_image_b64(envelope)
            if b64 is None:
                raise GatewayError(EMPTY_UPSTREAM_OUTPUT, "No image returned.", details=envelope)
        except Exception as exc:  # boundary: callers only ever see GatewayError bodies
            outcome = self._failure(exc, model)
        else:
            outcome = GatewayOutcome(
                status=200,
                body={"imageDataUrl": f"data:image/png;base64,{b64}"},
                model=model,
            )

        self._record("image", "image", outcome, started)
        return outcome

    def _ideas_body(self, request: GenerationRequest, text: str, model: str) -> JsonDict:
        if request.mode != MODE_STRUCTURED:
            return {"ideasText": text, "modelUsed": model}

        shape = IdeaShape.for_request(request.shape, include_extras=request.include_extras)
        ideas_json = validate_ideas(text, shape, count=request.effective_count)
        if request.shape == SHAPE_PROJECTS:
            return {"projects": ideas_json[SHAPE_PROJECTS], "modelUsed": model}
        return {"ideasJson": ideas_json, "ideasText": text, "modelUsed": model}

    def _failure(self, exc: BaseException, model: Optional[str]) -> GatewayOutcome:
        error = classify(exc)
        return GatewayOutcome(
            status=error.http_status_hint,
            body=error.to_body(),
            error_kind=error.kind,
            model=model,
        )

    def _record(self, event: str, mode: Any, outcome: GatewayOutcome, started: float) -> None:
        elapsed_ms = int((time.monotonic() - started) * 1000)
        if outcome.ok:
            self._logger.info(
                "%s request served: mode=%s model=%s elapsed_ms=%d",
                event,
                mode,
                outcome.model,
                elapsed_ms,
            )
        else:
            self._logger.warning(
                "%s request failed: mode=%s kind=%s status=%d elapsed_ms=%d",
                event,
                mode,
                outcome.error_kind,
                outcome.status,
                elapsed_ms,
            )
        log_gateway_event(
            {
                "event": event,
                "mode": mode,
                "model": outcome.model,
                "status": outcome.status,
                "error_kind": outcome.error_kind,
                "elapsed_ms": elapsed_ms,
            },
            path=self.log_path,
        )


__all__ = ["IdeaGateway"]

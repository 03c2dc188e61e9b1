"""Idea gateway package exposing the generation pipeline."""

from .errors import GatewayError
from .models import GatewayOutcome, GenerationRequest, ImageRequest
from .pipeline import IdeaGateway

__all__ = ["GatewayError", "GatewayOutcome", "GenerationRequest", "IdeaGateway", "ImageRequest"]

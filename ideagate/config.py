"""Environment-driven settings for the HTTP handler and CLI."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from ideagate.upstream import DEFAULT_DEADLINE_SECONDS, IMAGES_URL, RESPONSES_URL

_LOGGER = logging.getLogger(__name__)

MAX_DEADLINE_SECONDS = 25.0


@dataclass(frozen=True)
class GatewaySettings:
    api_key: str = ""
    endpoint: str = RESPONSES_URL
    image_endpoint: str = IMAGES_URL
    timeout_seconds: float = DEFAULT_DEADLINE_SECONDS
    log_path: Optional[str] = None
    log_level: str = "INFO"

    def endpoints(self) -> Mapping[str, str]:
        return {"responses": self.endpoint, "images": self.image_endpoint}


def _parse_timeout(raw: Optional[str]) -> float:
    if raw is None or not raw.strip():
        return DEFAULT_DEADLINE_SECONDS
    try:
        value = float(raw)
    except ValueError:
        _LOGGER.warning("Invalid IDEAGATE_TIMEOUT_S=%r; using %.1fs", raw, DEFAULT_DEADLINE_SECONDS)
        return DEFAULT_DEADLINE_SECONDS
    if value <= 0 or value > MAX_DEADLINE_SECONDS:
        _LOGGER.warning(
            "IDEAGATE_TIMEOUT_S=%s outside (0, %.0f]; using %.1fs",
            raw,
            MAX_DEADLINE_SECONDS,
            DEFAULT_DEADLINE_SECONDS,
        )
        return DEFAULT_DEADLINE_SECONDS
    return value


def load_settings(env_file: Optional[str] = None, *, environ: Optional[Mapping[str, str]] = None) -> GatewaySettings:
    """Read settings from the process environment, after loading *env_file*.

    Values already present in the environment win over the ``.env`` file.
    """

    if environ is None:
        load_dotenv(dotenv_path=env_file)
        environ = os.environ

    api_key = (environ.get("OPENAI_API_KEY") or environ.get("openai_api_key") or "").strip()
    if not api_key:
        _LOGGER.warning("OPENAI_API_KEY not set; upstream calls will be rejected")

    return GatewaySettings(
        api_key=api_key,
        endpoint=(environ.get("IDEAGATE_ENDPOINT") or RESPONSES_URL).strip(),
        image_endpoint=(environ.get("IDEAGATE_IMAGE_ENDPOINT") or IMAGES_URL).strip(),
        timeout_seconds=_parse_timeout(environ.get("IDEAGATE_TIMEOUT_S")),
        log_path=(environ.get("IDEAGATE_LOG_PATH") or "").strip() or None,
        log_level=(environ.get("IDEAGATE_LOG_LEVEL") or "INFO").strip().upper(),
    )


def configure_logging(settings: GatewaySettings) -> None:
    level = getattr(logging, settings.log_level, logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


__all__ = ["GatewaySettings", "MAX_DEADLINE_SECONDS", "configure_logging", "load_settings"]

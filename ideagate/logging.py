"""JSONL event sink for gateway runs."""

from __future__ import annotations

import datetime as _dt
import json
import pathlib
from typing import Any, Dict, Mapping, Optional, Union

_EVENT_FIELDS = ("event", "mode", "model", "status", "error_kind", "elapsed_ms")


def log_jsonl(path: Union[str, pathlib.Path], record: Mapping[str, Any]) -> None:
    """Append *record* to *path* as one line, creating parent directories."""

    target = pathlib.Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    line = json.dumps(dict(record), sort_keys=True, separators=(",", ":"))
    with target.open("a", encoding="utf-8") as handle:
        handle.write(line + "\n")


def log_gateway_event(record: Mapping[str, Any], *, path: Optional[str]) -> None:
    """Append the whitelisted fields of *record* to the gateway event log.

    Prompts, model output and credentials are never written; unknown keys are
    dropped. A falsy *path* disables the sink.
    """

    if not path:
        return
    payload = {key: record[key] for key in _EVENT_FIELDS if record.get(key) is not None}
    payload["timestamp"] = _dt.datetime.now(tz=_dt.timezone.utc).isoformat()
    log_jsonl(path, payload)


__all__ = ["log_gateway_event", "log_jsonl"]

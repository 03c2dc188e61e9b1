"""Flatten the upstream response envelope into plain text."""

from __future__ import annotations

from typing import Any, Iterator, List, Optional

TEXT_BLOCK_TYPES = frozenset({"output_text", "text"})

# Echoed request content, never model output.
_INPUT_BLOCK_TYPES = frozenset({"input_text"})


def extract_text(envelope: Any) -> str:
    """Return the text carried by *envelope*, or ``""`` when there is none.

    Shapes are tried in order: a flat ``output_text`` string, then the
    ``output[*].content[*]`` blocks. Anything absent or mistyped is skipped.
    """

    if not isinstance(envelope, dict):
        return ""

    flat = envelope.get("output_text")
    if isinstance(flat, str) and flat.strip():
        return flat.strip()

    fragments: List[str] = list(_iter_block_text(envelope.get("output")))
    return "\n".join(fragments).strip()


def _iter_block_text(output: Any) -> Iterator[str]:
    if not isinstance(output, list):
        return
    for item in output:
        if not isinstance(item, dict):
            continue
        content = item.get("content")
        if not isinstance(content, list):
            continue
        for block in content:
            if not isinstance(block, dict):
                continue
            text = block.get("text")
            if not isinstance(text, str):
                continue
            block_type = block.get("type")
            if not isinstance(block_type, str):
                block_type = None
            if block_type in TEXT_BLOCK_TYPES:
                yield text
            elif block_type not in _INPUT_BLOCK_TYPES:
                # schema drift: text without the expected discriminator
                yield text


def extract_image_b64(envelope: Any) -> Optional[str]:
    """Return ``data[0].b64_json`` from an image envelope when present."""

    if not isinstance(envelope, dict):
        return None
    data = envelope.get("data")
    if not isinstance(data, list) or not data:
        return None
    first = data[0]
    if not isinstance(first, dict):
        return None
    b64 = first.get("b64_json")
    if isinstance(b64, str) and b64:
        return b64
    return None


__all__ = ["TEXT_BLOCK_TYPES", "extract_image_b64", "extract_text"]

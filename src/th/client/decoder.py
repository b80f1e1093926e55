"""
Streamed completion decoding.

The completion endpoint answers with server-sent events::

    data: {"choices": [{"delta": {"content": "{\\"comm"}}]}
    data: {"choices": [{"delta": {"content": "and\\": \\"ls\\"}"}}]}
    data: [DONE]

The whole stream is buffered first, the ``delta.content`` pieces are joined,
and the joined text is parsed as a JSON command proposal. Models sometimes
stop mid-object (``max_tokens``) or wrap the object in chatter, so parsing
falls back to closing the object and then to the outermost braces.

Nothing in here raises: anything unusable decodes to ``None``.
"""
from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator, Dict, Optional

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


class CommandProposal(BaseModel):
    """A shell command suggested by the model."""

    model_config = ConfigDict(frozen=True)

    command: str
    explanation: Optional[str] = None
    summary: Optional[str] = None


def _delta_content(event: Any) -> Optional[str]:
    """Get ``choices[0].delta.content`` if the event has that shape."""
    if not isinstance(event, dict):
        return None
    choices = event.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    delta = first.get("delta")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    return content if isinstance(content, str) else None


def accumulate_deltas(stream_text: str) -> str:
    """Join the delta text of every parseable ``data:`` event."""
    parts = []
    # Only "\n" ends an event; raw JSON strings may carry U+2028 and friends
    for line in stream_text.split("\n"):
        line = line.strip(" \t\r")
        if not line.startswith(DATA_PREFIX):
            continue

        data = line[len(DATA_PREFIX):].strip()
        if not data or data == DONE_SENTINEL:
            continue

        try:
            event = json.loads(data)
        except json.JSONDecodeError:
            # keep-alives and other non-JSON noise
            logger.debug(f"Skipping unparseable event: {data[:80]}")
            continue

        content = _delta_content(event)
        if content:
            parts.append(content)

    return "".join(parts)


def _load_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        value = json.loads(text)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None


def extract_json(text: str) -> Optional[Dict[str, Any]]:
    """
    Recover a JSON object from model output.

    Tries, in order:
    1. the trimmed text as-is
    2. the text with one closing brace appended (truncated output)
    3. the span from the first ``{`` to the last ``}`` (surrounding noise)
    """
    trimmed = text.strip()
    if not trimmed:
        return None

    value = _load_object(trimmed)
    if value is not None:
        return value

    value = _load_object(trimmed + "}")
    if value is not None:
        return value

    start = trimmed.find("{")
    end = trimmed.rfind("}")
    if start != -1 and end > start:
        return _load_object(trimmed[start:end + 1])
    return None


def _optional_text(payload: Dict[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    if not isinstance(value, str):
        return None
    return value.strip() or None


def parse_proposal(payload: Optional[Dict[str, Any]]) -> Optional[CommandProposal]:
    """Build a proposal from a decoded object; empty commands yield None."""
    if not payload:
        return None
    command = payload.get("command")
    if not isinstance(command, str) or not command.strip():
        return None
    return CommandProposal(
        command=command.strip(),
        explanation=_optional_text(payload, "explanation"),
        summary=_optional_text(payload, "summary"),
    )


def decode_stream(stream_text: str) -> Optional[CommandProposal]:
    """Decode a fully buffered event stream into a proposal."""
    content = accumulate_deltas(stream_text)
    if not content:
        logger.debug("Stream carried no delta content")
        return None

    proposal = parse_proposal(extract_json(content))
    if proposal is None:
        logger.info(f"No usable command in model output: {content[:200]!r}")
    return proposal


async def read_stream(chunks: AsyncIterator[bytes]) -> Optional[CommandProposal]:
    """Buffer an async byte stream to the end, then decode it."""
    buffer = bytearray()
    async for chunk in chunks:
        buffer.extend(chunk)
    return decode_stream(buffer.decode("utf-8", errors="replace"))

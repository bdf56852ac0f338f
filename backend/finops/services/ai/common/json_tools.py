"""Locate, parse and splice the JSON payload embedded in an LLM reply.

Every helper works on explicit offsets into the original reply so the
corrected payload can be written back without re-searching the text.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

JSON_FENCE_RE = re.compile(r"```[ \t]*json\b", re.IGNORECASE)
FENCE = "```"

# Sequences some models double-encode inside an otherwise valid payload.
_OVER_ESCAPED = (
    ("\\n", "\n"),
    ("\\t", "\t"),
    ('\\"', '"'),
)


@dataclass(frozen=True)
class JsonBlock:
    """A JSON-bearing span of a larger text: ``text[start:end] == raw``.

    ``fenced`` is true when the span is the whole interior of a
    ```` ```json ```` fence.
    """

    start: int
    end: int
    raw: str
    fenced: bool = False


def find_json_block(text: str | None) -> JsonBlock | None:
    """Return the JSON-bearing span of *text*, or ``None``.

    Strategy:
    1. The interior of the first ```` ```json ```` fence that has a closing fence.
    2. Otherwise the span from the first ``{`` to the last ``}``.
    """
    if not text:
        return None

    match = JSON_FENCE_RE.search(text)
    if match:
        start = match.end()
        end = text.find(FENCE, start)
        if end != -1:
            return JsonBlock(start=start, end=end, raw=text[start:end], fenced=True)

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        return JsonBlock(start=start, end=end + 1, raw=text[start : end + 1])

    return None


def unescape_json(raw: str) -> str:
    """Undo the ``\\n``, ``\\t`` and ``\\"`` over-escaping some models emit."""
    for escaped, plain in _OVER_ESCAPED:
        raw = raw.replace(escaped, plain)
    return raw


def _loads_object(candidate: str) -> dict[str, Any] | None:
    try:
        parsed = json.loads(candidate)
    except (json.JSONDecodeError, ValueError, RecursionError):
        # Pathologically nested replies exceed the decoder's recursion limit.
        return None
    return parsed if isinstance(parsed, dict) else None


def parse_json_block(text: str, block: JsonBlock) -> tuple[dict[str, Any], JsonBlock]:
    """Parse *block* into a JSON object, repairing it when possible.

    Attempts, in order: the raw span, the span with over-escaped sequences
    undone, and the first top-level brace-balanced object inside the span
    that parses (which narrows the block). Returns the payload together
    with the block it was read from. Raises ``ValueError`` if no attempt yields an object.
    """
    stripped = block.raw.strip()

    parsed = _loads_object(stripped)
    if parsed is not None:
        return parsed, block

    parsed = _loads_object(unescape_json(stripped))
    if parsed is not None:
        logger.info("Parsed JSON payload after undoing over-escaped sequences")
        return parsed, block

    narrowed = _first_balanced_object(text, block)
    if narrowed is not None:
        parsed, narrowed_block = narrowed
        logger.info("Parsed JSON payload from balanced span %d:%d", narrowed_block.start, narrowed_block.end)
        return parsed, narrowed_block

    raise ValueError("No valid JSON object in reply")


def _first_balanced_object(text: str, block: JsonBlock) -> tuple[dict[str, Any], JsonBlock] | None:
    """First top-level brace-balanced span inside *block* that parses to an object.

    Only sibling spans are candidates: a span that fails to parse is skipped
    as a whole, and an unclosed ``{`` ends the search since every later
    brace is nested inside it. The span covering the whole block is never
    returned; it was already tried by the caller.
    """
    whole = block.raw.strip()
    position = text.find("{", block.start, block.end)
    while position != -1:
        candidate = find_balanced_block(text, position, limit=block.end)
        if candidate is None:
            return None
        if candidate.raw != whole:
            parsed = _loads_object(candidate.raw)
            if parsed is not None:
                return parsed, candidate
        position = text.find("{", candidate.end, block.end)
    return None


def find_balanced_block(text: str, start: int, *, limit: int | None = None) -> JsonBlock | None:
    """Return the brace-balanced ``{...}`` span opening at *start*."""
    if start >= len(text) or text[start] != "{":
        return None

    stop = len(text) if limit is None else min(limit, len(text))
    depth = 0
    in_string = False
    escape = False

    for i in range(start, stop):
        ch = text[i]

        if escape:
            escape = False
            continue

        if ch == "\\":
            if in_string:
                escape = True
            continue

        if ch == '"':
            in_string = not in_string
            continue

        if in_string:
            continue

        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return JsonBlock(start=start, end=i + 1, raw=text[start : i + 1])

    return None


def splice_json_block(text: str, block: JsonBlock, replacement: str) -> str:
    """Replace exactly ``text[block.start:block.end]`` with *replacement*.

    For a fenced block the replacement is wrapped in newlines so the fence
    markers stay on their own lines.
    """
    if block.fenced:
        replacement = f"\n{replacement}\n"
    return text[: block.start] + replacement + text[block.end :]


def dump_json(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2)

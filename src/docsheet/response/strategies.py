"""Parse strategies that turn a model reply into a Dataset.

Each strategy is a plain function from ``ParseInput`` to
``Result[Dataset, str]``; a ``Failure`` carries a short human-readable reason.
Strategies never raise for malformed input.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import json
import re
from typing import Any

from docsheet.constants import JSON_CONTAINER_KEYS, PSV_DELIMITER, STANDARD_COLUMNS
from docsheet.core.types import Dataset, Failure, Record, Result, Success

_DECODER = json.JSONDecoder()

# Closed fenced block, optionally tagged (```json, ```JSON, ```javascript ...)
_FENCE_RE = re.compile(r"```[A-Za-z0-9_-]*[ \t]*\n?(.*?)```", re.DOTALL)
_OPEN_FENCE_RE = re.compile(r"\s*```\s*$")

_ARRAY_OF_OBJECTS_RE = re.compile(r"\[\s*\{")

_HEADER_KEYWORD_RE = re.compile(
    r"\b(?:questions?"
    r"|s\.\s*no\.?|sno\.?"
    r"|sr\.?\s*no\.?"
    r"|serial(?:\s+(?:no\.?|number))?"
    r"|row\s+(?:no\.?|number))(?!\w)",
    re.IGNORECASE,
)
_SEPARATOR_CELL_RE = re.compile(r":?-+:?")


@dataclass(frozen=True, slots=True)
class ParseInput:
    """Read-only view of one reply shared by every strategy.

    ``candidate`` is the JSON candidate located once up front; ``text`` is the
    untouched reply so later strategies still see everything. ``embedded`` is
    set when the candidate was lifted out of surrounding prose.
    """

    text: str
    candidate: str
    embedded: bool = False

    @classmethod
    def from_reply(cls, text: str) -> ParseInput:
        candidate, embedded = _locate(text)
        return cls(text=text, candidate=candidate, embedded=embedded)


@dataclass(frozen=True, slots=True)
class ParseStrategy:
    name: str
    parse: Callable[[ParseInput], Result[Dataset, str]]


# --- JSON candidate location ---


def _find_array_literal(text: str) -> str | None:
    """Return the first array literal, or its unterminated tail.

    An array of objects is preferred over any earlier bracket (such as a
    citation like ``[1]`` in prose). When the literal does not decode, the
    text from its opening bracket to the end is returned so a truncated reply
    keeps its partial content for repair.
    """
    match = _ARRAY_OF_OBJECTS_RE.search(text)
    start = match.start() if match else text.find("[")
    if start == -1:
        return None
    try:
        _, end = _DECODER.raw_decode(text, start)
    except json.JSONDecodeError:
        return _OPEN_FENCE_RE.sub("", text[start:])
    return text[start:end]


def _locate(text: str) -> tuple[str, bool]:
    stripped = text.strip()
    fence = _FENCE_RE.search(stripped)
    if fence:
        return fence.group(1).strip(), False
    if stripped.startswith(("[", "{")):
        return stripped, False
    embedded = _find_array_literal(stripped)
    if embedded is not None:
        return embedded.strip(), True
    return stripped, False


def locate_json_candidate(text: str) -> str:
    """Locate the text most likely to hold the reply's JSON value.

    Order: a closed fenced code block; the whole reply when it already starts
    with ``[`` or ``{``; the first array literal embedded in prose; the
    trimmed reply.
    """
    return _locate(text)[0]


# --- Shared JSON-to-Dataset shaping ---


def _as_record(item: Any) -> Record:
    if isinstance(item, dict):
        return item
    return {"value": item}


def dataset_from_json(value: Any) -> Result[Dataset, str]:
    """Shape a parsed JSON value into a Dataset.

    Arrays are taken as-is. Objects yield their first non-empty array-valued
    container property (``questions``, ``data``, ``results``), or themselves
    as a single row.
    """
    if isinstance(value, dict):
        containers = [
            value[key] for key in JSON_CONTAINER_KEYS if isinstance(value.get(key), list)
        ]
        rows: list[Any] | None = next(
            (c for c in containers if c), containers[0] if containers else None
        )
        if rows is None:
            if not value:
                return Failure("JSON object is empty")
            return Success([value])
    elif isinstance(value, list):
        rows = value
    else:
        return Failure(f"JSON value is a {type(value).__name__}, not an array or object")

    if not rows:
        return Failure("JSON array is empty")
    return Success([_as_record(item) for item in rows])


def _loads(candidate: str) -> Result[Any, str]:
    try:
        return Success(json.loads(candidate))
    except json.JSONDecodeError as e:
        return Failure(f"invalid JSON: {e.msg} (char {e.pos})")


# --- Strategy 1: JSON extraction ---


def _shape(view: ParseInput, value: Any) -> Result[Dataset, str]:
    # Brackets lifted from prose ([1], [0, 1]) only count as rows of objects
    if view.embedded and not (
        isinstance(value, list) and value and all(isinstance(v, dict) for v in value)
    ):
        return Failure("embedded array is not an array of objects")
    return dataset_from_json(value)


def parse_json(view: ParseInput) -> Result[Dataset, str]:
    parsed = _loads(view.candidate)
    if isinstance(parsed, Failure):
        return parsed
    return _shape(view, parsed.value)


# --- Strategy 2: truncated-JSON repair ---


def last_complete_element_end(candidate: str) -> int | None:
    """Index of the last ``}`` that closes a top-level array element.

    String-aware: braces inside JSON strings are ignored. Scanning stops if
    the outer array closes.
    """
    depth = 0
    in_string = False
    escaped = False
    last_end: int | None = None

    for index, char in enumerate(candidate):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char in "[{":
            depth += 1
        elif char in "]}":
            depth -= 1
            if char == "}" and depth == 1:
                last_end = index
            if depth <= 0:
                break

    return last_end


def repair_truncated_json(view: ParseInput) -> Result[Dataset, str]:
    candidate = view.candidate
    if not candidate.startswith("["):
        return Failure("candidate is not a JSON array")
    if isinstance(_loads(candidate), Success):
        return Failure("candidate already parses; nothing to repair")

    cut = last_complete_element_end(candidate)
    if cut is None:
        return Failure("no complete element before the truncation point")

    parsed = _loads(candidate[: cut + 1] + "]")
    if isinstance(parsed, Failure):
        return Failure(f"repaired array still invalid: {parsed.error}")
    return _shape(view, parsed.value)


# --- Strategy 3: pipe-delimited table ---


def split_row(line: str) -> list[str]:
    """Split one table line on the delimiter, dropping border pipes."""
    line = line.strip()
    if line.startswith(PSV_DELIMITER):
        line = line[1:]
    if line.endswith(PSV_DELIMITER):
        line = line[:-1]
    return [field.strip() for field in line.split(PSV_DELIMITER)]


def is_header_line(line: str) -> bool:
    return PSV_DELIMITER in line and _HEADER_KEYWORD_RE.search(line) is not None


def _is_separator_row(fields: list[str]) -> bool:
    cells = [f for f in fields if f]
    return bool(cells) and all(_SEPARATOR_CELL_RE.fullmatch(f) for f in cells)


def _unique_columns(names: list[str]) -> list[str]:
    seen: dict[str, int] = {}
    columns = []
    for position, name in enumerate(names, start=1):
        name = name or f"Column {position}"
        count = seen.get(name, 0) + 1
        seen[name] = count
        columns.append(name if count == 1 else f"{name} ({count})")
    return columns


def parse_pipe_table(view: ParseInput) -> Result[Dataset, str]:
    lines = [line.strip() for line in view.text.splitlines() if line.strip()]
    if not lines:
        return Failure("reply has no non-blank lines")
    # A prose preamble ("Here is the table:") may precede the first row
    first_row = next(
        (i for i, line in enumerate(lines) if PSV_DELIMITER in line), None
    )
    if first_row is None:
        return Failure("no pipe-delimited data rows")
    lines = lines[first_row:]

    if is_header_line(lines[0]):
        columns = _unique_columns(split_row(lines[0]))
        body = lines[1:]
    else:
        columns = list(STANDARD_COLUMNS)
        body = lines

    records: Dataset = []
    for line in body:
        if PSV_DELIMITER not in line:
            continue
        fields = split_row(line)
        if _is_separator_row(fields):
            continue
        records.append(
            {
                column: fields[i] if i < len(fields) else ""
                for i, column in enumerate(columns)
            }
        )

    if not records:
        return Failure("no pipe-delimited data rows")
    return Success(records)


def default_strategies() -> tuple[ParseStrategy, ...]:
    return (
        ParseStrategy("json", parse_json),
        ParseStrategy("json_repair", repair_truncated_json),
        ParseStrategy("psv", parse_pipe_table),
    )

"""Vertex AI ``generateContent`` payload construction.

Extraction mode sends one user turn: the optional document followed by the
instruction plus the strict-extraction directive. Chat mode sends the history
as text, optionally preceded by a context exchange, and attaches files to the
final user turn only.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from docsheet.constants import (
    CONTEXT_ACKNOWLEDGEMENT,
    DEFAULT_EXTRACTION_INSTRUCTION,
    STRICT_EXTRACTION_DIRECTIVE,
)
from docsheet.core.types import (
    Attachment,
    ChatTurn,
    GenerationRequest,
    validate_temperature,
)
from docsheet.exceptions import InvalidRequestError

type Part = dict[str, Any]
type Content = dict[str, Any]


def _text_part(text: str) -> Part:
    return {"text": text}


def _content(role: str, parts: list[Part]) -> Content:
    return {"role": role, "parts": parts}


def generation_config(temperature: float, max_output_tokens: int) -> dict[str, Any]:
    if not isinstance(max_output_tokens, int) or max_output_tokens <= 0:
        raise InvalidRequestError(
            f"max_output_tokens: must be a positive int, got {max_output_tokens!r}"
        )
    return {
        "temperature": validate_temperature(temperature),
        "maxOutputTokens": max_output_tokens,
    }


def extraction_prompt(instruction: str) -> str:
    """Instruction text with the strict-extraction directive appended."""
    base = instruction.strip() or DEFAULT_EXTRACTION_INSTRUCTION
    return f"{base}\n\n{STRICT_EXTRACTION_DIRECTIVE}"


def build_extraction_payload(request: GenerationRequest) -> dict[str, Any]:
    parts: list[Part] = []
    if request.document is not None:
        parts.append(request.document.to_part())
    parts.append(_text_part(extraction_prompt(request.instruction)))
    return {
        "contents": [_content("user", parts)],
        "generationConfig": generation_config(
            request.temperature, request.max_output_tokens
        ),
    }


def build_chat_contents(
    history: Sequence[ChatTurn],
    attachments: Iterable[Attachment] = (),
    context: str | None = None,
) -> list[Content]:
    """Render chat history as Vertex AI contents.

    Files travel with the final user turn only: its own attachments first,
    then ``attachments``. Files stored on earlier turns are not re-sent.

    Raises:
        InvalidRequestError: History is empty or does not end with a user turn.
    """
    if not history:
        raise InvalidRequestError("Chat history must contain at least one turn")
    if history[-1].role != "user":
        raise InvalidRequestError(
            f"Chat history must end with a user turn, got {history[-1].role!r}"
        )

    contents: list[Content] = []
    if context and context.strip():
        contents.append(_content("user", [_text_part(f"Context:\n{context.strip()}")]))
        contents.append(_content("model", [_text_part(CONTEXT_ACKNOWLEDGEMENT)]))

    for turn in history[:-1]:
        contents.append(_content(turn.role, [_text_part(turn.content)]))

    final = history[-1]
    final_parts = [a.to_part() for a in (*final.attachments, *attachments)]
    final_parts.append(_text_part(final.content))
    contents.append(_content("user", final_parts))
    return contents


def build_chat_payload(
    history: Sequence[ChatTurn],
    *,
    temperature: float,
    max_output_tokens: int,
    attachments: Iterable[Attachment] = (),
    context: str | None = None,
) -> dict[str, Any]:
    return {
        "contents": build_chat_contents(history, attachments, context),
        "generationConfig": generation_config(temperature, max_output_tokens),
    }

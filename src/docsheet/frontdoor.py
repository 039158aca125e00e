"""Request-level entry points: one document in, one Dataset out.

Each call signs a fresh assertion, exchanges it for a bearer token, issues a
single generation request and (for ``extract``) normalizes the reply. The
token exchange and the generation call run one after the other, never
concurrently, and nothing is retried.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
import logging
from typing import TYPE_CHECKING, Any

import httpx

from docsheet.auth import fetch_access_token, load_service_credential
from docsheet.client import GenerationClient
from docsheet.config import resolve_settings
from docsheet.constants import DEFAULT_DOCUMENT_MIME_TYPE
from docsheet.core.types import (
    Attachment,
    ChatResult,
    ChatTurn,
    ExtractionResult,
    GenerationRequest,
)
from docsheet.response import ResponseNormalizer
from docsheet.telemetry import TelemetryContext
from docsheet.utils import borrowed_client

if TYPE_CHECKING:
    from docsheet.config import DocsheetSettings
    from docsheet.telemetry import TelemetryReporter

log = logging.getLogger(__name__)


def _as_attachment(
    document: bytes | Attachment | None, mime_type: str
) -> Attachment | None:
    if document is None or isinstance(document, Attachment):
        return document
    return Attachment(data=document, mime_type=mime_type)


def _as_turn(turn: ChatTurn | Mapping[str, Any]) -> ChatTurn:
    if isinstance(turn, ChatTurn):
        return turn
    return ChatTurn.from_mapping(turn)


async def extract(
    document: bytes | Attachment | None = None,
    instruction: str = "",
    temperature: float | None = None,
    *,
    mime_type: str = DEFAULT_DOCUMENT_MIME_TYPE,
    max_output_tokens: int | None = None,
    settings: DocsheetSettings | None = None,
    http_client: httpx.AsyncClient | None = None,
    reporters: Sequence[TelemetryReporter] = (),
) -> ExtractionResult:
    """Turn one document into a Dataset plus usage counters.

    Args:
        document: Raw document bytes (or a ready ``Attachment``). Optional.
        instruction: Free-form extraction instruction.
        temperature: Sampling temperature in [0, 1]; defaults to the
            configured extraction temperature (0.0).
        mime_type: MIME type for raw ``document`` bytes.
        max_output_tokens: Output token ceiling; defaults to the configured
            extraction limit.
        settings: Resolved settings; read from the environment when omitted.
        http_client: Optional client to reuse; otherwise one is created.
        reporters: Telemetry reporters (used only when telemetry is enabled).

    Returns:
        ``ExtractionResult`` with at least one record.

    Raises:
        DocsheetError: Any stage failure; see ``docsheet.exceptions``.
    """
    cfg = settings or resolve_settings()
    tele = TelemetryContext(*reporters)
    request = GenerationRequest(
        instruction=instruction,
        document=_as_attachment(document, mime_type),
        temperature=cfg.extraction_temperature if temperature is None else temperature,
        max_output_tokens=cfg.extraction_max_output_tokens
        if max_output_tokens is None
        else max_output_tokens,
    )
    credential = load_service_credential(cfg.credential_secret())
    project = cfg.resolve_project(credential.project_id)

    async with borrowed_client(http_client) as client:
        token = await fetch_access_token(credential, http_client=client, telemetry=tele)
        generator = GenerationClient(cfg, project, http_client=client, telemetry=tele)
        reply = await generator.extract(request, token)
    # The document is no longer needed once the reply is in
    del request

    normalized = ResponseNormalizer(telemetry=tele).normalize(reply.text)
    log.info(
        "Extracted %d rows via '%s' (%d tokens)",
        len(normalized.records),
        normalized.method,
        reply.usage.total_tokens,
    )
    return ExtractionResult(
        records=normalized.records,
        usage=reply.usage,
        method=normalized.method,
    )


async def chat(
    history: Sequence[ChatTurn | Mapping[str, Any]],
    attachments: Iterable[Attachment] = (),
    context: str | None = None,
    *,
    temperature: float | None = None,
    max_output_tokens: int | None = None,
    settings: DocsheetSettings | None = None,
    http_client: httpx.AsyncClient | None = None,
    reporters: Sequence[TelemetryReporter] = (),
) -> ChatResult:
    """Send a conversational follow-up and return the model's reply.

    ``history`` must end with the user's new message. Files go only with
    that final message: its own attachments, then ``attachments``.
    """
    cfg = settings or resolve_settings()
    tele = TelemetryContext(*reporters)
    turns = [_as_turn(turn) for turn in history]
    credential = load_service_credential(cfg.credential_secret())
    project = cfg.resolve_project(credential.project_id)

    async with borrowed_client(http_client) as client:
        generator = GenerationClient(cfg, project, http_client=client, telemetry=tele)
        payload = generator.chat_payload(
            turns,
            attachments=attachments,
            context=context,
            temperature=temperature,
            max_output_tokens=max_output_tokens,
        )
        token = await fetch_access_token(credential, http_client=client, telemetry=tele)
        reply = await generator.generate(payload, token)

    log.info(
        "Chat reply: %d chars (%d tokens)", len(reply.text), reply.usage.total_tokens
    )
    return ChatResult(reply=reply.text, usage=reply.usage)

"""Vertex AI generation client over plain REST.

Issues exactly one ``generateContent`` POST per call with the caller's bearer
token. No retry and no internal timeout; a single large-document call may take
most of the caller's time budget, so it is never run alongside another
blocking call.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
import logging
from typing import TYPE_CHECKING, Any

import httpx

from docsheet.client.request_builder import (
    build_chat_payload,
    build_extraction_payload,
)
from docsheet.core.types import GenerationReply, Usage
from docsheet.exceptions import (
    MalformedResponseError,
    ProviderRequestError,
    excerpt,
)
from docsheet.telemetry import TelemetryContext
from docsheet.utils import borrowed_client

if TYPE_CHECKING:
    from docsheet.config import DocsheetSettings
    from docsheet.core.types import (
        AccessToken,
        Attachment,
        ChatTurn,
        GenerationRequest,
    )
    from docsheet.telemetry import TelemetryContextProtocol

log = logging.getLogger(__name__)


def endpoint_url(project: str, location: str, model: str) -> str:
    """Regional (or global) ``generateContent`` URL for a publisher model."""
    host = (
        "aiplatform.googleapis.com"
        if location == "global"
        else f"{location}-aiplatform.googleapis.com"
    )
    return (
        f"https://{host}/v1/projects/{project}/locations/{location}"
        f"/publishers/google/models/{model}:generateContent"
    )


def _token_count(usage: dict[str, Any], key: str) -> int:
    value = usage.get(key)
    try:
        return int(value) if value is not None else 0
    except (TypeError, ValueError):
        return 0


def extract_usage(body: dict[str, Any]) -> Usage:
    """Map ``usageMetadata`` onto ``Usage``; missing counters read as 0."""
    usage = body.get("usageMetadata")
    if not isinstance(usage, dict):
        return Usage()
    input_tokens = _token_count(usage, "promptTokenCount")
    output_tokens = _token_count(usage, "candidatesTokenCount")
    total_tokens = _token_count(usage, "totalTokenCount") or input_tokens + output_tokens
    return Usage(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        total_tokens=total_tokens,
    )


def parse_generation_response(body: Any) -> GenerationReply:
    """Pull reply text and usage out of a ``generateContent`` response body.

    Raises:
        MalformedResponseError: The body lacks ``candidates[0].content.parts``
            with at least one text part.
    """
    if not isinstance(body, dict):
        raise MalformedResponseError(
            "Generation response is not a JSON object", excerpt=excerpt(repr(body))
        )

    candidates = body.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        feedback = body.get("promptFeedback")
        reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
        message = "Generation response has no candidates"
        if reason:
            message += f" (prompt blocked: {reason})"
        raise MalformedResponseError(message, excerpt=excerpt(str(body)))

    candidate = candidates[0]
    content = candidate.get("content") if isinstance(candidate, dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    texts = [
        part["text"]
        for part in (parts if isinstance(parts, list) else ())
        if isinstance(part, dict) and isinstance(part.get("text"), str)
    ]
    if not texts:
        finish_reason = (
            candidate.get("finishReason") if isinstance(candidate, dict) else None
        )
        raise MalformedResponseError(
            f"Generation candidate has no text content (finishReason={finish_reason})",
            excerpt=excerpt(str(candidate)),
        )

    return GenerationReply(
        text="".join(texts),
        usage=extract_usage(body),
        finish_reason=candidate.get("finishReason"),
        model_version=body.get("modelVersion"),
    )


def _provider_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase or "request failed"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str):
        return error
    return response.reason_phrase or "request failed"


class GenerationClient:
    """Sends extraction and chat requests to one Vertex AI model."""

    def __init__(
        self,
        settings: DocsheetSettings,
        project: str,
        *,
        http_client: httpx.AsyncClient | None = None,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        self.settings = settings
        self.url = endpoint_url(project, settings.location, settings.model)
        self._http_client = http_client
        self._telemetry = telemetry or TelemetryContext()

    async def generate(
        self, payload: dict[str, Any], access_token: AccessToken
    ) -> GenerationReply:
        """POST ``payload`` and return the parsed reply.

        Raises:
            ProviderRequestError: Non-2xx status or transport failure.
            MalformedResponseError: 2xx without the candidate/content shape.
        """
        headers = {"Authorization": access_token.authorization}
        with self._telemetry("generation.request", model=self.settings.model):
            async with borrowed_client(self._http_client) as client:
                try:
                    response = await client.post(self.url, json=payload, headers=headers)
                except httpx.HTTPError as e:
                    raise ProviderRequestError(
                        f"Generation request failed: {e}"
                    ) from e

        if not response.is_success:
            message = _provider_message(response)
            log.warning(
                "Generation request failed (HTTP %s): %s", response.status_code, message
            )
            raise ProviderRequestError(
                f"Provider returned HTTP {response.status_code}: {message}",
                status_code=response.status_code,
                excerpt=excerpt(response.text),
            )

        try:
            body = response.json()
        except ValueError:
            raise MalformedResponseError(
                "Generation response is not valid JSON",
                excerpt=excerpt(response.text),
            ) from None
        # Large bodies: keep only the parsed reply
        del response

        reply = parse_generation_response(body)
        log.debug(
            "Generation finished (%s): %d input / %d output tokens",
            reply.finish_reason,
            reply.usage.input_tokens,
            reply.usage.output_tokens,
        )
        if reply.truncated:
            log.warning("Model output hit the max output token limit; reply truncated")
        return reply

    async def extract(
        self, request: GenerationRequest, access_token: AccessToken
    ) -> GenerationReply:
        """Single-turn extraction over an optional document."""
        log.debug(
            "Extraction request: document=%s bytes, temperature=%s",
            request.document.size if request.document else 0,
            request.temperature,
        )
        return await self.generate(build_extraction_payload(request), access_token)

    async def chat(
        self,
        history: Sequence[ChatTurn],
        access_token: AccessToken,
        *,
        attachments: Iterable[Attachment] = (),
        context: str | None = None,
        temperature: float | None = None,
        max_output_tokens: int | None = None,
    ) -> GenerationReply:
        """Multi-turn chat; attachments ride on the final user turn only."""
        payload = self.chat_payload(
            history,
            attachments=attachments,
            context=context,
            temperature=temperature,
            max_output_tokens=max_output_tokens,
        )
        return await self.generate(payload, access_token)

    def chat_payload(
        self,
        history: Sequence[ChatTurn],
        *,
        attachments: Iterable[Attachment] = (),
        context: str | None = None,
        temperature: float | None = None,
        max_output_tokens: int | None = None,
    ) -> dict[str, Any]:
        """Validated chat payload with the configured defaults filled in."""
        return build_chat_payload(
            history,
            temperature=self.settings.chat_temperature
            if temperature is None
            else temperature,
            max_output_tokens=self.settings.chat_max_output_tokens
            if max_output_tokens is None
            else max_output_tokens,
            attachments=attachments,
            context=context,
        )

"""Vertex AI generation client and request construction."""

from docsheet.client.generation import (
    GenerationClient,
    endpoint_url,
    parse_generation_response,
)
from docsheet.client.request_builder import (
    build_chat_contents,
    build_chat_payload,
    build_extraction_payload,
    extraction_prompt,
)

__all__ = [
    "GenerationClient",
    "build_chat_contents",
    "build_chat_payload",
    "build_extraction_payload",
    "endpoint_url",
    "extraction_prompt",
    "parse_generation_response",
]

"""Immutable value types shared by every stage."""

from docsheet.core.types import (
    AccessToken,
    Attachment,
    ChatResult,
    ChatTurn,
    Dataset,
    ExtractionResult,
    Failure,
    GenerationReply,
    GenerationRequest,
    Record,
    Result,
    ServiceCredential,
    Success,
    Usage,
)

__all__ = [  # noqa: RUF022
    "Result",
    "Success",
    "Failure",
    "Record",
    "Dataset",
    "ServiceCredential",
    "AccessToken",
    "Attachment",
    "ChatTurn",
    "GenerationRequest",
    "GenerationReply",
    "Usage",
    "ExtractionResult",
    "ChatResult",
]

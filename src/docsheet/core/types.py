"""Core data types that flow from credential to Dataset.

Every type here is an immutable value owned by a single request. Nothing in
this module performs I/O.
"""

from __future__ import annotations

import base64
import dataclasses
import math
import typing

from docsheet.constants import EXTRACTION_MAX_OUTPUT_TOKENS, EXTRACTION_TEMPERATURE
from docsheet.exceptions import InvalidRequestError

# --- Minimal guard helpers ---


def _require(
    *,
    condition: bool,
    message: str,
    exc: type[Exception] = ValueError,
    field_name: str | None = None,
) -> None:
    """Centralized validation with optional field context for clearer errors."""
    if not condition:
        if field_name:
            raise exc(f"{field_name}: {message}")
        raise exc(message)


def validate_temperature(value: float, field_name: str = "temperature") -> float:
    """Reject NaN and values outside [0, 1]; nothing is clamped."""
    _require(
        condition=isinstance(value, int | float) and not isinstance(value, bool),
        message=f"must be a number, got {type(value).__name__}",
        exc=InvalidRequestError,
        field_name=field_name,
    )
    _require(
        condition=math.isfinite(value) and 0.0 <= value <= 1.0,
        message=f"must be within [0, 1], got {value!r}",
        exc=InvalidRequestError,
        field_name=field_name,
    )
    return float(value)


# --- Result type for parse strategies ---


@dataclasses.dataclass(frozen=True, slots=True)
class Success[TSuccess]:
    """A successful step, carrying its value."""

    value: TSuccess


@dataclasses.dataclass(frozen=True, slots=True)
class Failure[TFailure]:
    """A failed step, carrying the reason."""

    error: TFailure


type Result[TSuccess, TFailure] = Success[TSuccess] | Failure[TFailure]

# --- Tabular output ---

type Record = dict[str, typing.Any]
type Dataset = list[Record]

# --- Credentials ---


@dataclasses.dataclass(frozen=True, slots=True)
class ServiceCredential:
    """Parsed service-account secret."""

    issuer: str
    private_key: str = dataclasses.field(repr=False)
    token_uri: str
    project_id: str | None = None
    private_key_id: str | None = dataclasses.field(default=None, repr=False)


@dataclasses.dataclass(frozen=True, slots=True)
class AccessToken:
    """Bearer token returned by the OAuth2 exchange."""

    token: str = dataclasses.field(repr=False)
    expires_in: int | None = None
    token_type: str = "Bearer"

    @property
    def authorization(self) -> str:
        return f"Bearer {self.token}"


# --- Generation ---


@dataclasses.dataclass(frozen=True, slots=True)
class Attachment:
    """Binary payload sent inline with a user turn."""

    data: bytes = dataclasses.field(repr=False)
    mime_type: str

    def __post_init__(self) -> None:
        _require(
            condition=isinstance(self.data, bytes | bytearray | memoryview),
            message="must be bytes",
            field_name="data",
            exc=TypeError,
        )
        _require(
            condition=isinstance(self.mime_type, str) and bool(self.mime_type),
            message="must be a non-empty str",
            field_name="mime_type",
            exc=InvalidRequestError,
        )

    @property
    def size(self) -> int:
        return len(self.data)

    def to_part(self) -> dict[str, typing.Any]:
        """Render as a Vertex AI ``inlineData`` part."""
        return {
            "inlineData": {
                "mimeType": self.mime_type,
                "data": base64.b64encode(bytes(self.data)).decode("ascii"),
            }
        }


_ROLE_ALIASES = {"user": "user", "model": "model", "assistant": "model"}


@dataclasses.dataclass(frozen=True, slots=True)
class ChatTurn:
    """A single turn in a chat history."""

    role: str
    content: str
    attachments: tuple[Attachment, ...] = ()

    def __post_init__(self) -> None:
        role = _ROLE_ALIASES.get(str(self.role).lower())
        _require(
            condition=role is not None,
            message=f"must be one of user, model, assistant; got {self.role!r}",
            field_name="role",
            exc=InvalidRequestError,
        )
        object.__setattr__(self, "role", role)
        _require(
            condition=isinstance(self.content, str),
            message="must be str",
            field_name="content",
            exc=TypeError,
        )
        object.__setattr__(self, "attachments", tuple(self.attachments))

    @classmethod
    def from_mapping(cls, data: typing.Mapping[str, typing.Any]) -> ChatTurn:
        """Build a turn from a ``{"role", "content", "attachments"}`` mapping."""
        return cls(
            role=data.get("role", "user"),
            content=data.get("content") or "",
            attachments=tuple(data.get("attachments") or ()),
        )


@dataclasses.dataclass(frozen=True, slots=True)
class GenerationRequest:
    """Single-turn extraction request."""

    instruction: str
    document: Attachment | None = None
    temperature: float = EXTRACTION_TEMPERATURE
    max_output_tokens: int = EXTRACTION_MAX_OUTPUT_TOKENS

    def __post_init__(self) -> None:
        _require(
            condition=isinstance(self.instruction, str),
            message="must be str",
            field_name="instruction",
            exc=TypeError,
        )
        object.__setattr__(self, "temperature", validate_temperature(self.temperature))
        _require(
            condition=isinstance(self.max_output_tokens, int)
            and self.max_output_tokens > 0,
            message="must be a positive int",
            field_name="max_output_tokens",
            exc=InvalidRequestError,
        )


@dataclasses.dataclass(frozen=True, slots=True)
class Usage:
    """Token counters reported by the provider."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    def to_dict(self) -> dict[str, int]:
        return dataclasses.asdict(self)


@dataclasses.dataclass(frozen=True, slots=True)
class GenerationReply:
    """Raw model reply plus usage; consumed immediately by the normalizer."""

    text: str
    usage: Usage = dataclasses.field(default_factory=Usage)
    finish_reason: str | None = None
    model_version: str | None = None

    @property
    def truncated(self) -> bool:
        """True when the provider stopped at the output-token limit."""
        return self.finish_reason == "MAX_TOKENS"


# --- Front door results ---


@dataclasses.dataclass(frozen=True, slots=True)
class ExtractionResult:
    """Dataset recovered from one document, with usage and parse method."""

    records: Dataset
    usage: Usage
    method: str

    @property
    def row_count(self) -> int:
        return len(self.records)


@dataclasses.dataclass(frozen=True, slots=True)
class ChatResult:
    """Reply text for one chat exchange."""

    reply: str
    usage: Usage

"""Document-to-Dataset extraction with Gemini on Vertex AI."""

import importlib.metadata
import logging

from docsheet.auth import CredentialSigner, TokenExchanger, load_service_credential
from docsheet.client import GenerationClient
from docsheet.config import DocsheetSettings, resolve_settings
from docsheet.core.types import (
    AccessToken,
    Attachment,
    ChatResult,
    ChatTurn,
    Dataset,
    ExtractionResult,
    GenerationReply,
    GenerationRequest,
    Record,
    ServiceCredential,
    Usage,
)
from docsheet.exceptions import (
    AuthExchangeError,
    ConfigurationError,
    CredentialFormatError,
    DocsheetError,
    EmptyReplyError,
    InvalidRequestError,
    MalformedResponseError,
    ProviderRequestError,
    UnparsableResponseError,
)
from docsheet.frontdoor import chat, extract
from docsheet.response import (
    ResponseNormalizer,
    dataset_columns,
    dataset_to_json,
    normalize_reply,
)
from docsheet.telemetry import TelemetryContext, TelemetryReporter

try:
    __version__ = importlib.metadata.version("docsheet")
except importlib.metadata.PackageNotFoundError:
    __version__ = "development"

# Set up a null handler for the library's root logger.
# This prevents 'No handler found' errors if the consuming app has no logging configured.
logging.getLogger(__name__).addHandler(logging.NullHandler())

# Public API
__all__ = [  # noqa: RUF022
    # Entry points
    "extract",
    "chat",
    # Building blocks
    "CredentialSigner",
    "TokenExchanger",
    "GenerationClient",
    "ResponseNormalizer",
    "load_service_credential",
    "normalize_reply",
    "dataset_columns",
    "dataset_to_json",
    # Configuration
    "DocsheetSettings",
    "resolve_settings",
    # Telemetry
    "TelemetryContext",
    "TelemetryReporter",
    # Types
    "AccessToken",
    "Attachment",
    "ChatResult",
    "ChatTurn",
    "Dataset",
    "ExtractionResult",
    "GenerationReply",
    "GenerationRequest",
    "Record",
    "ServiceCredential",
    "Usage",
    # Exceptions
    "DocsheetError",
    "ConfigurationError",
    "InvalidRequestError",
    "CredentialFormatError",
    "AuthExchangeError",
    "ProviderRequestError",
    "MalformedResponseError",
    "EmptyReplyError",
    "UnparsableResponseError",
]

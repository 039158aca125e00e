"""Exception taxonomy for docsheet.

Every error is terminal for the request that raised it. Errors that wrap a
provider payload or a model reply keep only a bounded excerpt of it.
"""

from __future__ import annotations

from docsheet.constants import EXCERPT_LIMIT


def excerpt(text: str | bytes | None, limit: int = EXCERPT_LIMIT) -> str:
    """Return at most ``limit`` characters of ``text`` for error payloads."""
    if text is None:
        return ""
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


class DocsheetError(Exception):
    """Base exception for docsheet errors"""  # noqa: D415

    def __init__(self, message: str, *, excerpt: str | None = None) -> None:
        super().__init__(message)
        self.excerpt = excerpt


class ConfigurationError(DocsheetError):
    """Raised when settings cannot be resolved"""  # noqa: D415


class InvalidRequestError(DocsheetError):
    """Raised when caller input fails validation"""  # noqa: D415


class CredentialFormatError(DocsheetError):
    """Raised when the service-account secret is absent or malformed"""  # noqa: D415


class AuthExchangeError(DocsheetError):
    """Raised when the OAuth2 token endpoint refuses the assertion"""  # noqa: D415


class ProviderRequestError(DocsheetError):
    """Raised when the generation endpoint answers with a non-success status"""  # noqa: D415

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        excerpt: str | None = None,
    ) -> None:
        super().__init__(message, excerpt=excerpt)
        self.status_code = status_code


class MalformedResponseError(DocsheetError):
    """Raised when a success response lacks the candidate/content shape"""  # noqa: D415


class EmptyReplyError(DocsheetError):
    """Raised when the model reply is blank"""  # noqa: D415


class UnparsableResponseError(DocsheetError):
    """Raised when no parse strategy recovers a single row"""  # noqa: D415

    def __init__(
        self,
        message: str,
        *,
        excerpt: str | None = None,
        attempts: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message, excerpt=excerpt)
        self.attempts = dict(attempts or {})

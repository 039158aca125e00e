"""Settings schema using Pydantic.

Values come from ``DOCSHEET_*`` environment variables (plus the usual Google
Cloud variable names as fallbacks), an optional ``.env`` file, or keyword
overrides.
"""

from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from docsheet.constants import (
    CHAT_MAX_OUTPUT_TOKENS,
    CHAT_TEMPERATURE,
    DEFAULT_LOCATION,
    DEFAULT_MODEL,
    EXTRACTION_MAX_OUTPUT_TOKENS,
    EXTRACTION_TEMPERATURE,
)
from docsheet.exceptions import ConfigurationError, CredentialFormatError


class DocsheetSettings(BaseSettings):
    """Deployment settings for one docsheet process.

    The service credential is static for the life of the process; every
    request signs its own assertion from it.
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCSHEET_",
        env_file=None,  # Only used when explicitly requested
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
        frozen=True,
    )

    # --- Credential ---

    credentials_json: SecretStr | None = Field(
        default=None,
        description="Service-account key file contents (JSON)",
        validation_alias=AliasChoices(
            "DOCSHEET_CREDENTIALS_JSON",
            "GOOGLE_APPLICATION_CREDENTIALS_JSON",
        ),
    )

    credentials_file: Path | None = Field(
        default=None,
        description="Path to a service-account key file",
        validation_alias=AliasChoices(
            "DOCSHEET_CREDENTIALS_FILE",
            "GOOGLE_APPLICATION_CREDENTIALS",
        ),
    )

    # --- Vertex AI target ---

    project: str | None = Field(
        default=None,
        description="Google Cloud project; defaults to the credential's project_id",
        validation_alias=AliasChoices("DOCSHEET_PROJECT", "GOOGLE_CLOUD_PROJECT"),
    )

    location: str = Field(
        default=DEFAULT_LOCATION,
        min_length=1,
        validation_alias=AliasChoices("DOCSHEET_LOCATION", "GOOGLE_CLOUD_LOCATION"),
    )

    model: str = Field(default=DEFAULT_MODEL, min_length=1)

    # --- Generation defaults ---

    extraction_temperature: float = Field(default=EXTRACTION_TEMPERATURE, ge=0.0, le=1.0)
    extraction_max_output_tokens: int = Field(default=EXTRACTION_MAX_OUTPUT_TOKENS, ge=1)
    chat_temperature: float = Field(default=CHAT_TEMPERATURE, ge=0.0, le=1.0)
    chat_max_output_tokens: int = Field(default=CHAT_MAX_OUTPUT_TOKENS, ge=1)

    @field_validator("project", mode="before")
    @classmethod
    def _blank_project_is_unset(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def credential_secret(self) -> str | None:
        """Return the service-account JSON from the inline value or the file."""
        if self.credentials_json is not None:
            return self.credentials_json.get_secret_value()
        if self.credentials_file is None:
            return None
        try:
            return self.credentials_file.read_text(encoding="utf-8")
        except OSError as e:
            raise CredentialFormatError(
                f"Cannot read service credential file {self.credentials_file}: {e.strerror}"
            ) from e

    def resolve_project(self, credential_project: str | None) -> str:
        project = self.project or credential_project
        if not project:
            raise ConfigurationError(
                "No Google Cloud project configured. Set DOCSHEET_PROJECT or use a "
                "credential that carries project_id."
            )
        return project

    def redacted(self) -> dict[str, Any]:
        """Settings as a plain dict with the credential masked."""
        return {
            "credentials_json": "***" if self.credentials_json is not None else None,
            "credentials_file": str(self.credentials_file)
            if self.credentials_file
            else None,
            "project": self.project,
            "location": self.location,
            "model": self.model,
            "extraction_temperature": self.extraction_temperature,
            "extraction_max_output_tokens": self.extraction_max_output_tokens,
            "chat_temperature": self.chat_temperature,
            "chat_max_output_tokens": self.chat_max_output_tokens,
        }

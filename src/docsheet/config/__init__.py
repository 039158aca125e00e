"""Configuration for docsheet.

Settings are resolved once per call site and then passed explicitly; there is
no ambient configuration state.
"""

from pathlib import Path
from typing import Any

from pydantic import ValidationError

from docsheet.exceptions import ConfigurationError

from .schema import DocsheetSettings


def resolve_settings(
    *, env_file: str | Path | None = None, **overrides: Any
) -> DocsheetSettings:
    """Build settings from the environment, an optional .env file and overrides.

    Keyword overrides take precedence over environment values.

    Raises:
        ConfigurationError: A value fails validation.
    """
    clean = {k: v for k, v in overrides.items() if v is not None}
    try:
        if env_file is not None:
            return DocsheetSettings(_env_file=env_file, **clean)
        return DocsheetSettings(**clean)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise ConfigurationError(f"Invalid docsheet settings: {fields}") from e


__all__ = ["DocsheetSettings", "resolve_settings"]

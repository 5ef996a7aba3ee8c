"""
Runtime settings read from the environment (and a local .env file).
"""

import os
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

load_dotenv()


class Settings(BaseModel):
    """Environment-driven settings."""

    html_backend: Literal["lexbor", "modest"] = Field(
        default="lexbor",
        description="selectolax engine used to build markup documents (modest needs selectolax<1.0)"
    )
    strip_text: bool = Field(
        default=True,
        description="Strip whitespace from default node text"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Log level used by the command line"
    )

    @field_validator("html_backend", "log_level", mode="before")
    @classmethod
    def normalize_case(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v.upper() if v.lower() in ("debug", "info", "warning", "error") else v.lower()
        return v

    @classmethod
    def from_env(cls) -> "Settings":
        values = {
            "html_backend": os.getenv("NIBBLER_HTML_BACKEND"),
            "strip_text": os.getenv("NIBBLER_STRIP_TEXT"),
            "log_level": os.getenv("NIBBLER_LOG_LEVEL"),
        }
        return cls(**{k: v for k, v in values.items() if v not in (None, "")})


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the settings, reading the environment on first use."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None

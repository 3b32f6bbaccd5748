# src/tablemap/core/config.py
"""
Configuration schema and loading for tablemap.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from tablemap.contracts.context import CoercionContext
from tablemap.contracts.enums import DateInterpretation

# Row limit of the current spreadsheet file format; larger tables continue
# on a new table (worksheet).
SPREADSHEET_MAX_ROWS = 1_048_576


class CodecSettings(BaseModel):
    """CSV text codec settings.

    Example YAML:
        codec:
          newline: "\\r\\n"
          encoding: utf-8
    """

    model_config = {"frozen": True, "extra": "forbid"}

    newline: Literal["\n", "\r\n"] | None = Field(
        default=None,
        description="Record separator; None uses the platform newline",
    )
    encoding: str = Field(
        default="utf-8",
        description="Text encoding for file and byte streams (a BOM is tolerated on read)",
    )
    chunk_size: int = Field(
        default=4096,
        gt=0,
        description="Characters read from the source per buffer refill",
    )

    @field_validator("encoding")
    @classmethod
    def validate_encoding(cls, v: str) -> str:
        """Encoding must be one the codecs registry knows."""
        import codecs

        try:
            codecs.lookup(v)
        except LookupError as e:
            raise ValueError(f"unknown encoding: {v!r}") from e
        return v


class CoercionSettings(BaseModel):
    """Value coercion settings.

    Example YAML:
        coercion:
          date_mode: utc
    """

    model_config = {"frozen": True, "extra": "forbid"}

    date_mode: DateInterpretation = Field(
        default=DateInterpretation.UNSPECIFIED,
        description="How ambiguous instants are resolved: unspecified, local, or utc",
    )

    def context(self) -> CoercionContext:
        """Build the per-operation coercion context these settings describe."""
        return CoercionContext(date_mode=self.date_mode)


class LoggingSettings(BaseModel):
    """Logging output settings (applied by configure_logging)."""

    model_config = {"frozen": True, "extra": "forbid"}

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Root log level",
    )
    json_output: bool = Field(
        default=False,
        description="Render JSON lines instead of console output",
    )

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: object) -> object:
        return v.upper() if isinstance(v, str) else v


class TablemapSettings(BaseModel):
    """Top-level tablemap configuration.

    All sections are optional; an empty settings file yields the defaults.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    codec: CodecSettings = Field(default_factory=CodecSettings)
    coercion: CoercionSettings = Field(default_factory=CoercionSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    max_records_per_page: int = Field(
        default=SPREADSHEET_MAX_ROWS - 1,
        gt=0,
        description="Records per table before continuing on a new page (header row excluded)",
    )


def load_settings(config_path: Path) -> TablemapSettings:
    """Load settings from a YAML or TOML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (TABLEMAP_*) - highest priority
    2. Config file
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: TABLEMAP_CODEC__NEWLINE for nested keys.

    Args:
        config_path: Path to configuration file

    Returns:
        Validated TablemapSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="TABLEMAP",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys; Pydantic expects lowercase
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): _lower_keys(v) for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}

    return TablemapSettings(**raw_config)


def _lower_keys(value: object) -> object:
    """Lowercase nested mapping keys (env overrides arrive uppercased)."""
    if isinstance(value, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    return value

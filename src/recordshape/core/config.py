# src/recordshape/core/config.py
"""
Configuration schema and loading for schema enforcement.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field, field_validator


class EnforcerSettings(BaseModel):
    """Behavior switches for IncomingSchemaEnforcer and the coercion table.

    Example YAML:
        default_timezone: "Europe/Paris"   # zone for pattern text without an offset
        index_mode: original               # positional numbering used by set_value_by_index
        allow_numeric_widening: false      # reject int -> float/decimal
    """

    model_config = {"frozen": True, "extra": "forbid"}

    default_timezone: str = Field(
        default="UTC",
        description="IANA zone applied to parsed date text that carries no zone field",
    )
    index_mode: Literal["runtime", "original"] = Field(
        default="runtime",
        description=(
            "Positional numbering for set_value_by_index: 'runtime' follows the runtime "
            "schema layout, 'original' keeps design positions and appends discovered "
            "columns after the fixed ones"
        ),
    )
    allow_numeric_widening: bool = Field(
        default=True,
        description="Accept lossless int -> float/decimal and float -> decimal conversions",
    )

    @field_validator("default_timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Reject zone names the tz database does not know."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone '{v}'") from e
        return v

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.default_timezone)


DEFAULT_SETTINGS = EnforcerSettings()


def load_settings(config_path: Path) -> EnforcerSettings:
    """Load settings from YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (RECORDSHAPE_*) - highest priority
    2. Config file (settings.yaml)
    3. Defaults from Pydantic schema - lowest priority

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated EnforcerSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Explicit check for file existence (Dynaconf silently accepts missing files)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="RECORDSHAPE",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys; convert to lowercase for Pydantic
    # Also filter out internal Dynaconf settings
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}

    return EnforcerSettings(**raw_config)

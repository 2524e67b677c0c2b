"""
Export settings schema and loading.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field

ENVVAR_PREFIX = "BUILDGRAPH"

_DYNACONF_INTERNAL_KEYS = frozenset({"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"})


class ExportSettings(BaseModel):
    """Settings for one export run.

    Example YAML:
        indent: 2
        target_producers: auto   # or "list"
        output: build/graph.json
    """

    model_config = {"frozen": True}

    indent: int = Field(
        default=2,
        ge=0,
        le=8,
        description="Spaces per nesting level in the emitted document",
    )
    target_producers: Literal["auto", "list"] = Field(
        default="auto",
        description=(
            "auto: a target with exactly one true producer gets 'producer_node', "
            "others get 'producer_nodes'; list: always 'producer_nodes'"
        ),
    )
    output: Path | None = Field(
        default=None,
        description="Document destination; stdout when unset",
    )


def load_settings(config_path: Path) -> ExportSettings:
    """Load settings from a YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (BUILDGRAPH_*) - highest priority
    2. Config file
    3. Defaults from Pydantic schema - lowest priority

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated ExportSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Explicit check for file existence (Dynaconf silently accepts missing files)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix=ENVVAR_PREFIX,
        settings_files=[str(config_path)],
        environments=False,  # No [default]/[production] sections
        load_dotenv=False,  # The CLI loads .env itself
        merge_enabled=True,
    )
    return ExportSettings(**_lowercase_settings(dynaconf_settings.as_dict()))


def settings_from_env() -> ExportSettings:
    """Build settings from BUILDGRAPH_* environment variables alone.

    Used when no settings file is given.
    """
    from dynaconf import Dynaconf

    dynaconf_settings = Dynaconf(envvar_prefix=ENVVAR_PREFIX, environments=False, load_dotenv=False)
    return ExportSettings(**_lowercase_settings(dynaconf_settings.as_dict()))


def _lowercase_settings(raw: dict[str, Any]) -> dict[str, Any]:
    """Dynaconf returns uppercase keys; convert to lowercase for Pydantic.

    Also filters out internal Dynaconf settings.
    """
    return {k.lower(): v for k, v in raw.items() if k not in _DYNACONF_INTERNAL_KEYS}

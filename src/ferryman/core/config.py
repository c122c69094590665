# src/ferryman/core/config.py
"""
Configuration schema and loading for Ferryman migrations.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

import os
import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from ferryman.contracts.enums import DurabilityLevel

DEFAULT_KEY_ENV = "FERRYMAN_FIELD_KEY"


class StoreSettings(BaseModel):
    """Connection to one key-value document table."""

    model_config = {"frozen": True}

    url: str = Field(description="SQLAlchemy database URL")
    table: str = Field(default="documents", min_length=1, description="Table holding (doc_id, body) rows")
    page_size: int = Field(default=1000, gt=0, description="Ids fetched per scan page")


class PiiSettings(BaseModel):
    """Which document fields count as PII.

    Example YAML:
        pii:
          keys: [ssn, email, phone]
          key_regex: ".*_pii"
    """

    model_config = {"frozen": True}

    keys: list[str] = Field(default_factory=list, description="Exact field names, matched case-insensitively")
    key_regex: str | None = Field(default=None, description="Full-match pattern on field names (case-insensitive)")

    @field_validator("keys")
    @classmethod
    def normalize_keys(cls, v: list[str]) -> list[str]:
        """Drop blanks and lower-case the rest."""
        return [key.strip().lower() for key in v if key and key.strip()]

    @field_validator("key_regex")
    @classmethod
    def validate_key_regex(cls, v: str | None) -> str | None:
        """Blank means unset; anything else must compile."""
        if v is None or not v.strip():
            return None
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"Invalid pii.key_regex: {e}") from e
        return v

    @model_validator(mode="after")
    def validate_has_matcher(self) -> "PiiSettings":
        if not self.keys and self.key_regex is None:
            raise ValueError("Configure at least one of pii.keys or pii.key_regex")
        return self


class EncryptionSettings(BaseModel):
    """Where the field encryption key comes from. The key itself is never configured here."""

    model_config = {"frozen": True}

    key_id: str = Field(min_length=1, description="Identifier recorded in every envelope")
    key_env: str | None = Field(default=DEFAULT_KEY_ENV, description="Env var holding the base64 key (checked first)")
    key_file: Path | None = Field(default=None, description="File holding the base64 key")

    @field_validator("key_id")
    @classmethod
    def validate_key_id(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("encryption.key_id must be non-blank")
        return v


class RateLimitSettings(BaseModel):
    """Destination write pacing. Zero or negative disables limiting."""

    model_config = {"frozen": True}

    permits_per_second: float = Field(default=0.0, allow_inf_nan=False, description="Maximum writes per second")


class CheckpointSettings(BaseModel):
    """Configuration for crash recovery checkpointing."""

    model_config = {"frozen": True}

    path: Path = Field(default=Path("state/checkpoint.json"), description="Checkpoint file")
    every: int = Field(default=1000, ge=0, description="Save after this many folded documents (0 = final only)")


class QuarantineSettings(BaseModel):
    """Configuration for failure records."""

    model_config = {"frozen": True}

    path: Path = Field(default=Path("state/quarantine"), description="Quarantine directory")
    max_payload_bytes: int = Field(default=64 * 1024, gt=0, description="Record size before truncation")


class KillSwitchSettings(BaseModel):
    """File-based stop signal.

    Example YAML:
        kill_switch:
          enabled: true
          path: /var/run/ferryman/STOP
    """

    model_config = {"frozen": True}

    enabled: bool = Field(default=False, description="Poll the marker file while scanning")
    path: Path = Field(default=Path("state/STOP"), description="Marker file; its existence stops the run")
    poll_every: int = Field(default=1000, gt=0, description="Scan positions between polls")


class MigrationSettings(BaseModel):
    """Run behavior."""

    model_config = {"frozen": True}

    source_writes_frozen: bool = Field(
        description="Operator confirmation that nothing writes to the source during the run",
    )
    dry_run: bool = Field(default=True, description="Scan and encrypt but never write")
    max_in_flight: int = Field(default=32, gt=0, description="Documents processed concurrently")
    durability: DurabilityLevel = Field(default=DurabilityLevel.NONE, description="Durability of destination writes")
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    checkpoint: CheckpointSettings = Field(default_factory=CheckpointSettings)
    quarantine: QuarantineSettings = Field(default_factory=QuarantineSettings)
    kill_switch: KillSwitchSettings = Field(default_factory=KillSwitchSettings)
    audit_dir: Path = Field(default=Path("audit"), description="Directory for run audit records")

    @field_validator("durability", mode="before")
    @classmethod
    def normalize_durability(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("source_writes_frozen")
    @classmethod
    def require_frozen_source(cls, v: bool) -> bool:
        """Resuming by id is only sound while the source keyspace is static."""
        if not v:
            raise ValueError(
                "migration.source_writes_frozen must be true; "
                "freeze writes to the source before running (resume-by-id is unsafe otherwise)"
            )
        return v


class FerrymanSettings(BaseModel):
    """Top-level Ferryman configuration.

    This is the single source of truth for a migration run.
    All settings are validated and frozen after construction.
    """

    model_config = {"frozen": True}

    source: StoreSettings = Field(description="Store documents are read from")
    destination: StoreSettings = Field(description="Store migrated documents are written to")
    pii: PiiSettings = Field(description="PII field selection")
    encryption: EncryptionSettings = Field(description="Field key selection")
    migration: MigrationSettings = Field(description="Run behavior")

    @model_validator(mode="after")
    def validate_distinct_stores(self) -> "FerrymanSettings":
        if self.source.url == self.destination.url and self.source.table == self.destination.table:
            raise ValueError("source and destination must not be the same table")
        return self


# Regex pattern for ${VAR} or ${VAR:-default} syntax
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand ${VAR} and ${VAR:-default} patterns in config values.

    Args:
        config: Configuration dict (may contain nested structures)

    Returns:
        New dict with environment variables expanded
    """

    def replacer(match: re.Match[str]) -> str:
        env_value = os.environ.get(match.group(1))
        if env_value is not None:
            return env_value
        if match.group(2) is not None:
            return match.group(2)
        # No env var and no default - keep original (validation will likely reject it)
        return match.group(0)

    def _expand_value(value: Any) -> Any:
        if isinstance(value, str):
            return _ENV_VAR_PATTERN.sub(replacer, value)
        elif isinstance(value, dict):
            return {k: _expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [_expand_value(item) for item in value]
        else:
            return value

    return {k: _expand_value(v) for k, v in config.items()}


def _lower_keys(value: Any) -> Any:
    """Dynaconf upper-cases keys from env overrides; Pydantic fields are lower-case."""
    if isinstance(value, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_lower_keys(item) for item in value]
    return value


def load_settings(config_path: Path) -> FerrymanSettings:
    """Load settings from YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (FERRYMAN_*) - highest priority
    2. Config file (settings.yaml)
    3. Defaults from Pydantic schema - lowest priority

    Environment variable format: FERRYMAN_MIGRATION__MAX_IN_FLIGHT for nested keys.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated FerrymanSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
    """
    from dynaconf import Dynaconf

    # Explicit check for file existence (Dynaconf silently accepts missing files)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="FERRYMAN",
        settings_files=[str(config_path)],
        environments=False,  # No [default]/[production] sections
        load_dotenv=False,  # .env handled by the CLI
        merge_enabled=True,  # Deep merge nested dicts
    )

    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): _lower_keys(v) for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}
    # The key itself may arrive as FERRYMAN_FIELD_KEY; it is not a setting
    raw_config.pop("field_key", None)

    raw_config = _expand_env_vars(raw_config)

    return FerrymanSettings(**raw_config)


def _sanitize_url(url: str) -> str:
    """Drop any password from a database URL."""
    from sqlalchemy.engine import URL
    from sqlalchemy.engine.url import make_url
    from sqlalchemy.exc import ArgumentError

    try:
        parsed = make_url(url)
    except ArgumentError:
        # Not a valid SQLAlchemy URL - nothing to sanitize
        return url
    if parsed.password is None:
        return url
    sanitized = URL.create(
        drivername=parsed.drivername,
        username=parsed.username,
        password=None,
        host=parsed.host,
        port=parsed.port,
        database=parsed.database,
        query=parsed.query,
    )
    return sanitized.render_as_string(hide_password=False)


def resolve_config(settings: FerrymanSettings) -> dict[str, Any]:
    """Convert validated settings to a dict for audit records.

    Store URLs have passwords removed; key material is never part of the
    settings, so the result is safe to persist.
    """
    config_dict = settings.model_dump(mode="json")
    for store in ("source", "destination"):
        config_dict[store]["url"] = _sanitize_url(config_dict[store]["url"])
    return config_dict

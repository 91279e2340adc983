"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, copectl.toml only contains overrides.
A fresh project needs nothing but a manifest at ``capabilities.yaml``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

DEFAULT_MAX_TURNS = 10
DEFAULT_TIMEOUT = 120.0


class ManifestConfig(BaseModel):
    """[manifest] section."""

    model_config = {"frozen": True}

    path: str = "capabilities.yaml"


class DispatchConfig(BaseModel):
    """[dispatch] section."""

    model_config = {"frozen": True}

    max_concurrency: int = Field(default=4, ge=1)
    request_timeout: float | None = 600.0


class InvokerConfig(BaseModel):
    """[invoker] section."""

    model_config = {"frozen": True}

    default_max_turns: int = Field(default=DEFAULT_MAX_TURNS, ge=1)
    default_timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    # argv used for manifest specialists without a [specialists.<name>] entry.
    # "{specialist}" is replaced with the specialist name.
    default_command: list[str] = Field(default_factory=list)


class CredentialsConfig(BaseModel):
    """[credentials] section."""

    model_config = {"frozen": True}

    path: str = "~/.config/cope-agent/.env"
    required: bool = False


class McpConfig(BaseModel):
    """[mcp] section."""

    model_config = {"frozen": True}

    transport: str = "stdio"


class SpecialistConfig(BaseModel):
    """[specialists.<name>] section."""

    model_config = {"frozen": True}

    command: list[str] = Field(default_factory=list)
    description: str = ""
    max_turns: int | None = Field(default=None, ge=1)
    timeout: float | None = Field(default=None, gt=0)
    requires: list[str] = Field(default_factory=list)

    @field_validator("command")
    @classmethod
    def _command_not_blank(cls, value: list[str]) -> list[str]:
        if any(not part for part in value):
            msg = "command entries must be non-empty strings"
            raise ValueError(msg)
        return value

"""Configuration models for Regenlock."""

from pydantic import BaseModel, Field, HttpUrl
from pathlib import Path
from typing import Optional, Tuple
import yaml
import os
import stat


class GeneratorConfig(BaseModel):
    """Configuration for the external content generator endpoint."""

    endpoint: HttpUrl = Field(
        ...,
        description="Generator API endpoint URL (POST, JSON in / JSON out)"
    )

    api_key: str = Field(
        default="",
        description="Bearer token sent with each request (empty for none)"
    )

    timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Read timeout for one generator call"
    )

    model_config = {"frozen": True}


class ExportConfig(BaseModel):
    """Configuration for bulk export runs."""

    inter_step_delay_ms: int = Field(
        default=200,
        ge=0,
        le=5000,
        description="Pause between export steps to respect downstream rate limits"
    )

    concurrency: int = Field(
        default=1,
        ge=1,
        le=1,
        description="Export worker width (serialized)"
    )

    require_artifact: bool = Field(
        default=False,
        description="Record items without an image_url as failures"
    )

    manifest_prefix: str = Field(
        default="Regenlock_Export",
        min_length=1,
        description="Manifest file name prefix"
    )

    fetch_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for one remote artifact fetch"
    )

    model_config = {"frozen": True}


class DriftConfig(BaseModel):
    """Configuration for fact-lock drift correction."""

    cta_keys: Tuple[str, ...] = Field(
        default=("callToAction", "buttonText", "suggestedCTA", "cta", "primaryCTA"),
        description="Slot keys that carry a call-to-action"
    )

    short_cta_words: int = Field(
        default=6,
        ge=1,
        description="Fields with at most this many words are replaced whole on CTA drift"
    )

    model_config = {"frozen": True}


class Config(BaseModel):
    """Root configuration for Regenlock."""

    generator: Optional[GeneratorConfig] = Field(default=None, description="Generator API settings")
    export: ExportConfig = Field(default_factory=ExportConfig, description="Bulk export settings")
    drift: DriftConfig = Field(default_factory=DriftConfig, description="Drift correction settings")

    @classmethod
    def load(cls, path: Path) -> "Config":
        """
        Load configuration from YAML file.

        Validates file permissions before loading, since the file may hold
        the generator API key.

        Args:
            path: Path to config.yaml file

        Returns:
            Validated Config instance

        Raises:
            PermissionError: If file is group/world readable
            FileNotFoundError: If config file doesn't exist
            ValueError: If YAML is invalid or validation fails
        """
        if not path.exists():
            raise FileNotFoundError(
                f"Configuration file not found at {path}\n\n"
                f"Please create the file with the following format:\n\n"
                f"generator:\n"
                f"  endpoint: https://generator.example.com/v1/generate\n"
                f"  api_key: YOUR_API_KEY_HERE\n\n"
                f"export:\n"
                f"  inter_step_delay_ms: 200\n"
                f"  require_artifact: false\n\n"
                f"drift:\n"
                f"  short_cta_words: 6\n"
            )

        mode = os.stat(path).st_mode
        if mode & (stat.S_IRWXG | stat.S_IRWXO):
            raise PermissionError(
                f"Config file has overly permissive permissions: {oct(mode)}\n"
                f"Run: chmod 600 {path}"
            )

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    model_config = {"frozen": True}

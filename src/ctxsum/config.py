"""Configuration models for ctxsum."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from ctxsum.errors import ConfigError

CONFIG_FILE_NAME = ".ctxsumrc.toml"

TemplatePreference = Literal["concise", "detailed", "technical", "business"]


class ScannerConfig(BaseModel):
    """Scanner configuration."""

    ignore: list[str] = Field(
        default=[
            "node_modules/",
            ".git/",
            ".next/",
            "dist/",
            "build/",
            "coverage/",
            "*.min.js",
            "*.bundle.js",
            "*.lock",
        ],
        description="Glob patterns to ignore during scanning",
    )
    include_hidden: bool = Field(
        default=False,
        description="Include hidden files and directories",
    )
    max_file_size_kb: int = Field(
        default=1000,
        description="Maximum file size to analyze in KB",
    )
    extensions: list[str] = Field(
        default=[".ts", ".tsx", ".js", ".jsx"],
        description="Source file extensions to load",
    )


class CustomPattern(BaseModel):
    """A user-declared pattern the analyzer should recognise."""

    name: str
    matcher: str = Field(default="", description="Substring searched for in file text")
    description: str = ""
    category: str = "general"


class SummaryConfig(BaseModel):
    """Prompt generation configuration."""

    max_prompt_length: int = Field(
        default=1000,
        description="Maximum prompt length in tokens",
    )
    include_code_examples: bool = Field(
        default=False,
        description="Include usage examples in prompts",
    )
    prioritize_business_logic: bool = Field(
        default=True,
        description="Rank business logic sections ahead of structure",
    )
    include_performance_notes: bool = Field(
        default=True,
        description="Include performance notes in technical details",
    )
    template_preference: TemplatePreference = Field(
        default="detailed",
        description="Preferred template style (concise enables moderate compression)",
    )
    custom_patterns: list[CustomPattern] = Field(
        default_factory=list,
        description="Additional patterns; a pattern named like 'test' keeps test files",
    )


class RunConfig(BaseModel):
    """Run options for an analysis."""

    parallel_processing: bool = Field(
        default=True,
        description="Analyze files in concurrent batches",
    )
    max_concurrency: int = Field(
        default=4,
        ge=1,
        description="Batch size for concurrent analysis",
    )
    include_metadata: bool = Field(
        default=True,
        description="Attach per-file size and modification time to results",
    )
    generate_relationships: bool = Field(
        default=True,
        description="Build the cross-file relationship graph",
    )
    optimize_prompts: bool = Field(
        default=True,
        description="Apply compression and redundancy removal to prompts",
    )


class CtxsumConfig(BaseSettings):
    """Main ctxsum configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CTXSUM_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    version: str = Field(default="1.0", description="Config version")
    scanner: ScannerConfig = Field(default_factory=ScannerConfig)
    summary: SummaryConfig = Field(default_factory=SummaryConfig)
    run: RunConfig = Field(default_factory=RunConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment wins over values loaded from a config file
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    @classmethod
    def load(cls, config_path: Path | None = None) -> CtxsumConfig:
        """Load configuration from file and environment.

        Resolution order (highest to lowest priority):
        1. Environment variables
        2. Provided config file path
        3. .ctxsumrc.toml in current directory
        4. .ctxsumrc.toml in home directory
        5. Built-in defaults
        """
        config_data: dict[str, Any] = {}

        locations = []
        if config_path:
            locations.append(config_path)
        locations.extend(
            [
                Path.cwd() / CONFIG_FILE_NAME,
                Path.home() / CONFIG_FILE_NAME,
            ]
        )

        for loc in locations:
            if loc.exists():
                try:
                    with open(loc, "rb") as f:
                        config_data = tomllib.load(f)
                except tomllib.TOMLDecodeError as e:
                    raise ConfigError(f"Invalid TOML in {loc}: {e}", path=str(loc)) from e
                break

        # [ctxsum] table carries top-level keys
        top = config_data.pop("ctxsum", {})
        return cls(**{**top, **config_data})


def get_default_config_toml() -> str:
    """Generate default .ctxsumrc.toml content."""
    return """# ctxsum configuration

[ctxsum]
version = "1.0"

[scanner]
ignore = [
    "node_modules/",
    ".git/",
    ".next/",
    "dist/",
    "build/",
    "coverage/",
    "*.min.js",
    "*.bundle.js",
    "*.lock",
]
include_hidden = false
max_file_size_kb = 1000
extensions = [".ts", ".tsx", ".js", ".jsx"]

[summary]
max_prompt_length = 1000
include_code_examples = false
prioritize_business_logic = true
include_performance_notes = true
template_preference = "detailed"  # concise | detailed | technical | business

# [[summary.custom_patterns]]
# name = "tests"
# matcher = ".test."
# description = "Keep test files in the analysis"
# category = "testing"

[run]
parallel_processing = true
max_concurrency = 4
include_metadata = true
generate_relationships = true
optimize_prompts = true
"""

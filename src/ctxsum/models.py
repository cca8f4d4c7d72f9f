"""Per-file summaries, generated prompts and project-level aggregates.

A ContextualSummary is the durable output for one file: it is cached by the
analyzer and read again by aggregation, re-optimization and export. The
aggregate types are rebuilt from scratch on every aggregation call.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from ctxsum.extraction.models import (
    BusinessLogicContext,
    ComponentContext,
    DependencyContext,
    FunctionContext,
    Record,
    TypeContext,
)

# --- generated prompt -------------------------------------------------------


@dataclass
class TokenEstimate(Record):
    """Character-based token estimate of an assembled prompt."""

    approximate: int = 0
    compression_ratio: float = 1.0
    original_size: int = 0


@dataclass
class PromptSection(Record):
    """One rendered template section."""

    section: str
    content: str
    priority: str = "medium"


@dataclass
class PromptStructure(Record):
    header: str = ""
    key_points: list[str] = field(default_factory=list)
    dependencies: str = ""
    exports: str = ""
    footer: str = ""


@dataclass(frozen=True)
class Personalization:
    """Who a prompt is written for."""

    target_audience: str = "ai-assistant"
    experience_level: str = "intermediate"
    context: str = "general"
    domain: str = "fullstack"

    def to_dict(self) -> dict[str, str]:
        return {
            "target_audience": self.target_audience,
            "experience_level": self.experience_level,
            "context": self.context,
            "domain": self.domain,
        }


DEFAULT_PERSONALIZATION = Personalization()

AUDIENCE_PRESETS: dict[str, Personalization] = {
    "business-analyst": replace(
        DEFAULT_PERSONALIZATION, target_audience="business-analyst", context="documentation"
    ),
    "developer": replace(DEFAULT_PERSONALIZATION, target_audience="developer", context="code-review"),
    "architect": replace(
        DEFAULT_PERSONALIZATION,
        target_audience="architect",
        experience_level="expert",
        context="refactoring",
    ),
}


def personalization_for_audience(audience: str | None) -> Personalization:
    """Preset for a named audience; anything unknown gets the default."""
    return AUDIENCE_PRESETS.get(audience or "", DEFAULT_PERSONALIZATION)


@dataclass
class GeneratedPrompt(Record):
    """The text artifact plus the pieces it was assembled from."""

    summary: str
    structure: PromptStructure = field(default_factory=PromptStructure)
    sections: list[PromptSection] = field(default_factory=list)
    tokens: TokenEstimate = field(default_factory=TokenEstimate)
    personalization: Personalization | None = None
    """Set when the prompt was adapted; adapting again to the same value is a no-op."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.summary,
            "structure": self.structure.to_dict(),
            "sections": [s.to_dict() for s in self.sections],
            "tokens": self.tokens.to_dict(),
            "personalization": self.personalization.to_dict() if self.personalization else None,
        }


# --- contextual summary -----------------------------------------------------


@dataclass
class ExportedSymbol(Record):
    name: str
    kind: str
    """Return type for functions, component type, or declaration kind."""

    detail: str = ""


@dataclass
class ExportContext(Record):
    functions: list[ExportedSymbol] = field(default_factory=list)
    components: list[ExportedSymbol] = field(default_factory=list)
    types: list[ExportedSymbol] = field(default_factory=list)

    @property
    def names(self) -> list[str]:
        return [s.name for s in self.functions + self.components + self.types]


@dataclass
class TechnicalContext(Record):
    architecture: str = "utility"
    quality: dict[str, float] = field(default_factory=dict)
    patterns: list[str] = field(default_factory=list)
    high_risks: int = 0


@dataclass
class UsagePattern(Record):
    """A family of usage patterns (functional, framework, component, custom)."""

    type: str
    patterns: list[str] = field(default_factory=list)


@dataclass
class SummaryMetadata(Record):
    file_size: int = 0
    last_modified: str = ""
    project_name: str = ""


@dataclass
class ContextualSummary(Record):
    """Durable per-file output: identity, profile, retained records and prompt."""

    file_path: str
    file_name: str
    file_type: str
    purpose: str
    complexity: str
    prompt: GeneratedPrompt
    key_features: list[str] = field(default_factory=list)
    dependencies: DependencyContext = field(default_factory=DependencyContext)
    functions: FunctionContext = field(default_factory=FunctionContext)
    types: TypeContext = field(default_factory=TypeContext)
    components: ComponentContext = field(default_factory=ComponentContext)
    business_logic: BusinessLogicContext = field(default_factory=BusinessLogicContext)
    exports: ExportContext = field(default_factory=ExportContext)
    technical_context: TechnicalContext | None = None
    usage_patterns: list[UsagePattern] = field(default_factory=list)
    metadata: SummaryMetadata | None = None

    @property
    def pattern_names(self) -> list[str]:
        return [name for group in self.usage_patterns for name in group.patterns]

    def with_prompt(self, prompt: GeneratedPrompt) -> ContextualSummary:
        """Copy of this summary carrying a different prompt."""
        return replace(self, prompt=prompt)

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_path": self.file_path,
            "file_name": self.file_name,
            "file_type": self.file_type,
            "purpose": self.purpose,
            "complexity": self.complexity,
            "key_features": self.key_features,
            "dependencies": self.dependencies.to_dict(),
            "functions": self.functions.to_dict(),
            "types": self.types.to_dict(),
            "components": self.components.to_dict(),
            "business_logic": self.business_logic.to_dict(),
            "exports": self.exports.to_dict(),
            "technical_context": self.technical_context.to_dict() if self.technical_context else None,
            "usage_patterns": [p.to_dict() for p in self.usage_patterns],
            "metadata": self.metadata.to_dict() if self.metadata else None,
            "prompt": self.prompt.to_dict(),
        }


# --- project aggregates -----------------------------------------------------


@dataclass
class FileRelationship(Record):
    source: str
    target: str
    relationship: str
    """imports, extends or uses."""

    strength: str = "weak"
    context: str = ""

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.source, self.target, self.relationship)


@dataclass
class ModuleInfo(Record):
    name: str
    purpose: str
    files: list[str] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)


@dataclass
class ProjectContext(Record):
    architecture_type: str = "modular"
    project_type: str = "static"
    structure: str = "flat"
    modules: list[ModuleInfo] = field(default_factory=list)
    main_patterns: list[str] = field(default_factory=list)
    technical_stack: list[str] = field(default_factory=list)
    complexity: str = "low"


@dataclass
class TokenReduction(Record):
    original_tokens: int = 0
    reduced_tokens: int = 0
    reduction_percentage: float = 0.0
    average_compression_ratio: float = 1.0


@dataclass
class PatternShare(Record):
    count: int
    percentage: float


@dataclass
class AnalysisStatistics(Record):
    total_files: int = 0
    average_complexity: str = "low"
    token_reduction: TokenReduction = field(default_factory=TokenReduction)
    pattern_distribution: dict[str, PatternShare] = field(default_factory=dict)


@dataclass
class PromptTemplate(Record):
    """A template mined from three or more similar summaries."""

    name: str
    purpose: str
    template: str
    variables: list[str] = field(default_factory=list)
    applicable_file_types: list[str] = field(default_factory=list)


@dataclass
class ResultMetadata(Record):
    analyzed_at: str = ""
    files_analyzed: int = 0
    errors: int = 0
    processing_time: float = 0.0
    """Seconds."""

    average_processing_time: float = 0.0
    project_name: str = ""
    files: dict[str, dict[str, Any]] = field(default_factory=dict)
    """Per-file size and mtime, present only when metadata is requested."""


@dataclass
class ContextualAnalysisResult(Record):
    summaries: list[ContextualSummary] = field(default_factory=list)
    project_context: ProjectContext = field(default_factory=ProjectContext)
    relationships: list[FileRelationship] = field(default_factory=list)
    statistics: AnalysisStatistics = field(default_factory=AnalysisStatistics)
    prompt_templates: list[PromptTemplate] = field(default_factory=list)
    metadata: ResultMetadata = field(default_factory=ResultMetadata)

    def to_dict(self) -> dict[str, Any]:
        return {
            "summaries": [s.to_dict() for s in self.summaries],
            "project_context": self.project_context.to_dict(),
            "relationships": [r.to_dict() for r in self.relationships],
            "statistics": self.statistics.to_dict(),
            "prompt_templates": [t.to_dict() for t in self.prompt_templates],
            "metadata": self.metadata.to_dict(),
        }

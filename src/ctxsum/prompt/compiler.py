"""Prompt Compiler - turn a semantic analysis into a token-budgeted summary.

Usage:
    from ctxsum.prompt import PromptCompiler

    compiler = PromptCompiler(config.summary)
    summary = compiler.build_summary(path, "component", extraction, analysis)
    print(summary.prompt.summary, summary.prompt.tokens.approximate)
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from pathlib import PurePath

from ctxsum.classifier import estimate_token_count
from ctxsum.config import SummaryConfig
from ctxsum.extraction.models import (
    ComponentContext,
    ExtractionContext,
    FunctionContext,
    TypeContext,
)
from ctxsum.models import (
    ContextualSummary,
    ExportContext,
    ExportedSymbol,
    GeneratedPrompt,
    Personalization,
    PromptSection,
    PromptStructure,
    SummaryMetadata,
    TechnicalContext,
    TokenEstimate,
    UsagePattern,
)
from ctxsum.prompt.formatting import (
    adapt_for_audience,
    compress_sections,
    compress_structure,
    compress_text,
    format_section,
    limit_tokens,
    order_by_priority,
    remove_redundant,
)
from ctxsum.prompt.sections import (
    SECTION_BUILDERS,
    SectionInput,
    build_footer,
    build_header,
    build_key_points,
    dependency_line,
    export_line,
    should_include,
)
from ctxsum.prompt.templates import (
    USAGE_EXAMPLES_SECTION,
    SummaryTemplate,
    select_template,
    specialized_template,
)
from ctxsum.semantics.models import SemanticAnalysisResult

logger = logging.getLogger(__name__)

TOKEN_OPTIMIZATION_FACTOR = 0.85

HIGH_QUALITY_SCORE = 8.0
LOW_QUALITY_SCORE = 6.0

JUNIOR_NOTE = "*Note: This is a junior level explanation*"


def token_estimate(text: str) -> TokenEstimate:
    """approximate = ceil(original x 0.85); ratio = approximate / original."""
    original = estimate_token_count(text)
    approximate = math.ceil(original * TOKEN_OPTIMIZATION_FACTOR)
    return TokenEstimate(
        approximate=approximate,
        compression_ratio=approximate / max(original, 1),
        original_size=original,
    )


def assemble(structure: PromptStructure, sections: list[PromptSection]) -> str:
    """Header, key points, sections, dependency line, export line, footer."""
    parts = [structure.header]
    if structure.key_points:
        parts.append("**Key Points:**")
        parts.append("\n".join(f"• {point}" for point in structure.key_points))
    parts.extend(section.content for section in sections)
    parts.extend([structure.dependencies, structure.exports, structure.footer])
    return "\n\n".join(part for part in parts if part and part.strip())


def key_features(analysis: SemanticAnalysisResult) -> list[str]:
    semantics = analysis.file_semantics
    features = []
    if semantics.complexity.overall != "low":
        features.append(f"{semantics.complexity.overall} complexity")
    if semantics.business_value.business_criticality != "low":
        features.append(f"{semantics.business_value.business_criticality} business impact")
    detected = analysis.design_patterns.detected
    if detected:
        features.append(f"{len(detected)} design pattern{'s' if len(detected) > 1 else ''}")
    score = analysis.code_quality.overall_score
    if score > HIGH_QUALITY_SCORE:
        features.append("high quality code")
    elif score < LOW_QUALITY_SCORE:
        features.append("needs improvement")
    return features


def export_context(functions: FunctionContext, components: ComponentContext, types: TypeContext) -> ExportContext:
    return ExportContext(
        functions=[
            ExportedSymbol(
                name=f.name,
                kind=f.signature.return_type,
                detail="async" if f.is_async else "",
            )
            for f in functions.functions
            if f.is_exported
        ],
        components=[
            ExportedSymbol(name=c.name, kind=c.type, detail=c.category)
            for c in components.components
            if c.is_exported
        ],
        types=[ExportedSymbol(name=t.name, kind=t.kind) for t in types.definitions if t.is_exported],
    )


def technical_context(analysis: SemanticAnalysisResult) -> TechnicalContext:
    quality = analysis.code_quality
    return TechnicalContext(
        architecture=analysis.architecture.layer.layer,
        quality={
            "overall": quality.overall_score,
            "maintainability": quality.maintainability.score,
            "performance": quality.performance.score,
            "security": quality.security.score,
        },
        patterns=[p.name for p in analysis.design_patterns.detected],
        high_risks=sum(1 for r in analysis.risks if r.severity in ("high", "critical")),
    )


def usage_patterns(functions: FunctionContext, components: ComponentContext) -> list[UsagePattern]:
    groups = [
        UsagePattern(type="functional", patterns=list(functions.patterns.functional)),
        UsagePattern(type="framework", patterns=list(functions.patterns.framework)),
        UsagePattern(type="component", patterns=list(components.patterns)),
    ]
    return [group for group in groups if group.patterns]


class PromptCompiler:
    """Selects a template, renders sections and compresses them under a budget.

    Compression is ``moderate`` for the concise preference and ``light``
    otherwise; with ``optimize=False`` nothing is compressed or deduplicated.
    """

    def __init__(self, config: SummaryConfig | None = None, optimize: bool = True):
        self.config = config or SummaryConfig()
        self.optimize = optimize
        if not optimize:
            self.compression_level = "none"
        elif self.config.template_preference == "concise":
            self.compression_level = "moderate"
        else:
            self.compression_level = "light"

    def select(self, file_type: str, analysis: SemanticAnalysisResult) -> SummaryTemplate:
        semantics = analysis.file_semantics
        template = select_template(
            file_type,
            semantics.complexity.overall,
            semantics.business_value.business_criticality,
        )
        if self.config.include_code_examples:
            template = template.with_section(USAGE_EXAMPLES_SECTION)
        return template

    def render_sections(self, template: SummaryTemplate, inp: SectionInput) -> list[PromptSection]:
        """Render included sections, drop empty ones, order by priority."""
        sections = []
        for section in template.sections:
            if not should_include(section, inp.analysis):
                continue
            builder, priority = SECTION_BUILDERS[section.id]
            content = format_section(builder(inp), section.format)
            content = limit_tokens(content, section.max_tokens)
            if content.strip():
                sections.append(PromptSection(section=section.id, content=content, priority=priority(inp)))
        return order_by_priority(sections)

    def compile(
        self,
        file_type: str,
        extraction: ExtractionContext,
        analysis: SemanticAnalysisResult,
    ) -> GeneratedPrompt:
        template = self.select(file_type, analysis)
        inp = SectionInput(
            extraction=extraction,
            analysis=analysis,
            include_performance_notes=self.config.include_performance_notes,
            prioritize_business_logic=self.config.prioritize_business_logic,
        )
        structure = PromptStructure(
            header=build_header(template.header, inp, file_type),
            key_points=build_key_points(inp),
            dependencies=dependency_line(inp),
            exports=export_line(inp),
            footer=build_footer(template.footer, inp),
        )
        sections = self.render_sections(template, inp)

        structure = compress_structure(structure, self.compression_level)
        sections = compress_sections(sections, self.compression_level)
        if self.optimize:
            sections = remove_redundant(sections)

        text = assemble(structure, sections)
        ceiling = min(template.max_tokens, self.config.max_prompt_length)
        text = limit_tokens(text, ceiling)
        logger.debug(f"Compiled prompt with template {template.name} ({len(sections)} sections)")
        return GeneratedPrompt(
            summary=text,
            structure=structure,
            sections=sections,
            tokens=token_estimate(text),
        )

    def build_summary(
        self,
        file_path: str,
        file_type: str,
        extraction: ExtractionContext,
        analysis: SemanticAnalysisResult,
        metadata: SummaryMetadata | None = None,
    ) -> ContextualSummary:
        """Assemble the durable per-file summary around a compiled prompt."""
        semantics = analysis.file_semantics
        return ContextualSummary(
            file_path=file_path,
            file_name=PurePath(file_path.replace("\\", "/")).name,
            file_type=file_type,
            purpose=semantics.primary_purpose,
            complexity=semantics.complexity.overall,
            prompt=self.compile(file_type, extraction, analysis),
            key_features=key_features(analysis),
            dependencies=extraction.dependencies,
            functions=extraction.functions,
            types=extraction.types,
            components=extraction.components,
            business_logic=extraction.business_logic,
            exports=export_context(extraction.functions, extraction.components, extraction.types),
            technical_context=technical_context(analysis),
            usage_patterns=usage_patterns(extraction.functions, extraction.components),
            metadata=metadata,
        )

    def generate_adaptive_prompt(
        self,
        summary: ContextualSummary,
        personalization: Personalization,
        max_tokens: int | None = None,
    ) -> GeneratedPrompt:
        """Re-filter and reword an existing prompt for an audience.

        Adapting a prompt that was already adapted to ``personalization`` (and
        already fits ``max_tokens``) returns it unchanged.
        """
        prompt = summary.prompt
        if prompt.personalization == personalization and (
            max_tokens is None or prompt.tokens.approximate <= max_tokens
        ):
            return prompt

        structure = self._adapt_structure(prompt.structure, personalization)
        sections = self._adapt_sections(prompt.sections, personalization)

        if max_tokens is not None:
            structure = compress_structure(structure, "moderate")
            current = estimate_token_count(assemble(structure, sections))
            if current > max_tokens:
                ratio = max_tokens / current
                sections = [replace(s, content=compress_text(s.content, ratio)) for s in sections]

        text = assemble(structure, sections)
        return GeneratedPrompt(
            summary=text,
            structure=structure,
            sections=sections,
            tokens=token_estimate(text),
            personalization=personalization,
        )

    def _adapt_structure(self, structure: PromptStructure, personalization: Personalization) -> PromptStructure:
        audience = personalization.target_audience
        adapted = replace(structure, key_points=list(structure.key_points))
        if audience == "business-analyst":
            adapted.key_points = [
                point for point in adapted.key_points if "technical" not in point and "complexity" not in point
            ]
        elif audience == "developer" and personalization.experience_level == "junior":
            if JUNIOR_NOTE not in adapted.header:
                adapted.header = f"{adapted.header}\n{JUNIOR_NOTE}"
        elif audience == "documentation" and not adapted.header.startswith("# "):
            adapted.header = f"# {adapted.header}"
        return adapted

    def _adapt_sections(
        self, sections: list[PromptSection], personalization: Personalization
    ) -> list[PromptSection]:
        adapted = list(sections)
        if personalization.experience_level == "junior":
            adapted = [s for s in adapted if s.section != "technical-details" or s.priority == "high"]
        return [
            replace(s, content=adapt_for_audience(s.content, personalization.target_audience))
            for s in adapted
        ]

    def create_specialized_prompt(self, summary: ContextualSummary, use_case: str) -> GeneratedPrompt:
        """Re-cut a summary's sections through a use-case template.

        code-review uses detailed-technical, documentation uses
        business-focused, anything else the default template.
        """
        template = specialized_template(use_case)
        ordered = [
            section_id
            for level in ("high", "medium", "low")
            for section_id in template.priorities.get(level, ())
        ]
        rank = {section_id: position for position, section_id in enumerate(ordered)}
        sections = []
        for section in summary.prompt.sections:
            declared = template.section(section.section)
            if declared is None:
                continue
            sections.append(replace(section, content=limit_tokens(section.content, declared.max_tokens)))
        sections.sort(key=lambda s: rank.get(s.section, len(rank)))

        structure = summary.prompt.structure
        text = assemble(structure, sections)
        return GeneratedPrompt(
            summary=text,
            structure=structure,
            sections=sections,
            tokens=token_estimate(text),
        )

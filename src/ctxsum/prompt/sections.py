"""Content builders for prompt sections, header, key points and footer."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from ctxsum.extraction.models import ExtractionContext
from ctxsum.prompt.templates import FooterTemplate, HeaderTemplate, SectionTemplate
from ctxsum.semantics.complexity import is_high
from ctxsum.semantics.models import SemanticAnalysisResult

MAX_KEY_POINTS = 5
INSTABILITY_WARNING = 0.7
QUALITY_NOTE_THRESHOLD = 7.0
PERFORMANCE_NOTE_THRESHOLD = 8.0
SECURITY_NOTE_THRESHOLD = 8.0
AVERAGE_COMPLEXITY_NOTE = 5


@dataclass
class SectionInput:
    """Everything a section builder may read for one file."""

    extraction: ExtractionContext
    analysis: SemanticAnalysisResult
    include_performance_notes: bool = True
    prioritize_business_logic: bool = True


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count > 1 else ''}"


def build_overview(inp: SectionInput) -> str:
    semantics = inp.analysis.file_semantics
    lines = [f"**Purpose:** {semantics.primary_purpose}"]
    if semantics.secondary_purposes:
        lines.append(f"**Secondary Functions:** {', '.join(semantics.secondary_purposes)}")
    lines.append(f"**Complexity:** {semantics.complexity.overall}")
    lines.append(f"**Business Value:** {semantics.business_value.business_criticality}")
    if semantics.domain_concepts:
        concepts = ", ".join(c.name for c in semantics.domain_concepts[:3])
        lines.append(f"**Key Concepts:** {concepts}")
    return "\n".join(lines)


def build_structure(inp: SectionInput) -> str:
    functions = inp.extraction.functions.functions
    components = inp.extraction.components.components
    definitions = inp.extraction.types.definitions
    parts: list[str] = []

    if functions:
        parts.append(f"**Functions ({len(functions)}):**")
        main = [f for f in functions if f.is_exported or f.complexity.level != "low"][:5]
        parts.append(
            "\n".join(
                f"- {f.name}{' (async)' if f.is_async else ''}: {f.signature.return_type}" for f in main
            )
        )

    if components:
        parts.append(f"**Components ({len(components)}):**")
        parts.append("\n".join(f"- {c.name} ({c.type}, {c.category})" for c in components[:3]))

    if definitions:
        parts.append(f"**Types ({len(definitions)}):**")
        exported = [t for t in definitions if t.is_exported][:5]
        parts.append("\n".join(f"- {t.name} ({t.kind})" for t in exported))

    return "\n\n".join(parts)


def build_dependencies(inp: SectionInput) -> str:
    deps = inp.extraction.dependencies
    parts: list[str] = []

    if deps.external:
        parts.append(f"**External Dependencies ({len(deps.external)}):**")
        critical = [d for d in deps.external if d.criticality == "high"][:5]
        parts.append("\n".join(f"- {d.name} ({d.purpose})" for d in critical))

    if deps.internal:
        parts.append(f"**Internal Dependencies ({len(deps.internal)}):**")
        parts.append("\n".join(f"- {d.path} ({d.usage_type})" for d in deps.internal[:5]))

    if deps.framework_specific and deps.framework_specific[0].hooks:
        parts.append(f"**Hooks:** {', '.join(deps.framework_specific[0].hooks[:5])}")

    return "\n\n".join(parts)


def build_exports(inp: SectionInput) -> str:
    lines = []
    functions = [f.name for f in inp.extraction.functions.functions if f.is_exported]
    if functions:
        lines.append(f"**Exported Functions:** {', '.join(functions)}")
    components = [c.name for c in inp.extraction.components.components if c.is_exported]
    if components:
        lines.append(f"**Exported Components:** {', '.join(components)}")
    types = [t.name for t in inp.extraction.types.definitions if t.is_exported]
    if types:
        lines.append(f"**Exported Types:** {', '.join(types)}")
    return "\n".join(lines)


def build_business_logic(inp: SectionInput) -> str:
    business = inp.extraction.business_logic
    if not business.operations:
        return ""

    parts = [
        f"**Domain:** {business.domain}",
        f"**Key Operations ({len(business.operations)}):**",
        "\n".join(f"- {op.name}: {op.purpose} ({op.complexity})" for op in business.operations[:5]),
    ]
    if business.rules:
        parts.append(f"**Business Rules:** {len(business.rules)} rules defined")
    if business.workflows:
        parts.append(f"**Workflows:** {len(business.workflows)} workflow(s)")
    return "\n\n".join(parts)


def build_technical_details(inp: SectionInput) -> str:
    quality = inp.analysis.code_quality
    lines = [f"**Quality Score:** {quality.overall_score:.1f}/10"]

    if inp.include_performance_notes and quality.performance.score < PERFORMANCE_NOTE_THRESHOLD:
        lines.append("**Performance:** Optimization opportunities identified")
    if quality.security.score < SECURITY_NOTE_THRESHOLD:
        lines.append(f"**Security:** {len(quality.security.vulnerabilities)} potential issues")

    detected = inp.analysis.design_patterns.detected
    if detected:
        lines.append(f"**Design Patterns:** {', '.join(p.name for p in detected)}")

    average = inp.extraction.functions.complexity.average_complexity
    if average > AVERAGE_COMPLEXITY_NOTE:
        lines.append(f"**Complexity:** Above average ({average:.1f})")
    return "\n".join(lines)


def build_usage_examples(inp: SectionInput) -> str:
    lines: list[str] = []
    components = inp.extraction.components.components
    if components and components[0].props:
        main = components[0]
        lines.append(f"**{main.name} Usage:**")
        required = ", ".join(f"{p.name}: {p.type}" for p in main.props if p.required)
        if required:
            lines.append(f"Required props: {required}")

    exported = [f for f in inp.extraction.functions.functions if f.is_exported]
    if 0 < len(exported) <= 3:
        lines.append("**Function Signatures:**")
        for func in exported:
            params = ", ".join(f"{p.name}: {p.type}" for p in func.signature.parameters)
            lines.append(f"- {func.name}({params}): {func.signature.return_type}")
    return "\n".join(lines)


def build_relationships(inp: SectionInput) -> str:
    rel = inp.analysis.relationships
    lines = []
    if rel.fan_in > 0:
        lines.append(f"**Dependencies In:** {rel.fan_in}")
    if rel.fan_out > 0:
        lines.append(f"**Dependencies Out:** {rel.fan_out}")
    lines.append(f"**Coupling:** {rel.coupling.coupling}")
    lines.append(f"**Cohesion:** {rel.cohesion.type}")
    if rel.instability > INSTABILITY_WARNING:
        lines.append(f"**Stability:** Unstable ({rel.instability:.2f})")
    return "\n".join(lines)


def _business_priority(inp: SectionInput) -> str:
    if not inp.extraction.business_logic.operations:
        return "low"
    return "high" if inp.prioritize_business_logic else "medium"


SectionBuilder = Callable[[SectionInput], str]

# section id -> (content builder, priority)
SECTION_BUILDERS: dict[str, tuple[SectionBuilder, Callable[[SectionInput], str]]] = {
    "overview": (build_overview, lambda inp: "high"),
    "structure": (build_structure, lambda inp: "high"),
    "dependencies": (build_dependencies, lambda inp: "medium"),
    "exports": (build_exports, lambda inp: "medium"),
    "business-logic": (build_business_logic, _business_priority),
    "technical-details": (build_technical_details, lambda inp: "medium"),
    "usage-examples": (build_usage_examples, lambda inp: "low"),
    "relationships": (build_relationships, lambda inp: "medium"),
}


# Named content predicates for has-content conditions
CONTENT_PREDICATES: dict[str, Callable[[SemanticAnalysisResult], bool]] = {
    "business-operations": lambda a: a.file_semantics.business_value.business_criticality != "low",
    "external-dependencies": lambda a: a.relationships.fan_out > 0,
    "outbound-relationships": lambda a: a.relationships.fan_out > 0,
    "complex-logic": lambda a: is_high(a.file_semantics.complexity.overall),
}


def should_include(section: SectionTemplate, analysis: SemanticAnalysisResult) -> bool:
    """Required sections always render; optional ones need every condition to hold."""
    if section.required:
        return True
    for condition in section.conditions:
        if condition.kind == "complexity-level":
            if analysis.file_semantics.complexity.overall != condition.value:
                return False
        elif condition.kind == "business-domain":
            wanted = condition.value.lower()
            if not any(wanted in c.name.lower() for c in analysis.file_semantics.domain_concepts):
                return False
        elif condition.kind == "has-content":
            predicate = CONTENT_PREDICATES.get(condition.value)
            if predicate is not None and not predicate(analysis):
                return False
    return True


def build_header(template: HeaderTemplate, inp: SectionInput, file_type: str) -> str:
    semantics = inp.analysis.file_semantics
    header = template.format
    if template.include_purpose:
        header = header.replace("{purpose}", semantics.primary_purpose)
    if template.include_complexity:
        header = header.replace("{complexity}", semantics.complexity.overall)
    if template.include_file_info:
        header = header.replace("{file_type}", file_type)
        header = header.replace("{complexity}", semantics.complexity.overall)
        header = header.replace("{business_value}", semantics.business_value.business_criticality)
        domain = (
            semantics.domain_concepts[0].name
            if semantics.domain_concepts
            else inp.extraction.business_logic.domain
        )
        header = header.replace("{domain}", domain)
    return header


def build_key_points(inp: SectionInput) -> list[str]:
    analysis = inp.analysis
    points = []
    overall = analysis.file_semantics.complexity.overall
    if overall != "low":
        points.append(f"{overall} complexity file")

    exported_functions = sum(1 for f in inp.extraction.functions.functions if f.is_exported)
    if exported_functions:
        points.append(f"Exports {_plural(exported_functions, 'function')}")
    exported_components = sum(1 for c in inp.extraction.components.components if c.is_exported)
    if exported_components:
        points.append(f"Exports {_plural(exported_components, 'component')}")

    if analysis.code_quality.overall_score < QUALITY_NOTE_THRESHOLD:
        points.append("Has quality improvement opportunities")

    detected = analysis.design_patterns.detected
    if detected:
        points.append(f"Uses {_plural(len(detected), 'design pattern')}")
    return points[:MAX_KEY_POINTS]


def dependency_line(inp: SectionInput) -> str:
    deps = inp.extraction.dependencies
    parts = []
    if deps.external:
        parts.append(f"**External:** {', '.join(d.name for d in deps.external[:3])}")
    if deps.internal:
        parts.append(f"**Internal:** {_plural(len(deps.internal), 'file')}")
    return " • ".join(parts)


def export_line(inp: SectionInput) -> str:
    parts = []
    functions = [f.name for f in inp.extraction.functions.functions if f.is_exported]
    if functions:
        parts.append(f"Functions: {', '.join(functions[:3])}")
    components = [c.name for c in inp.extraction.components.components if c.is_exported]
    if components:
        parts.append(f"Components: {', '.join(components[:2])}")
    types = [t.name for t in inp.extraction.types.definitions if t.is_exported]
    if types:
        parts.append(f"Types: {', '.join(types[:3])}")
    return " • ".join(parts)


def next_steps(analysis: SemanticAnalysisResult) -> str:
    steps = []
    if analysis.code_quality.overall_score < QUALITY_NOTE_THRESHOLD:
        steps.append("Improve code quality")
    if analysis.optimizations:
        steps.append("Apply performance optimizations")
    if analysis.risks:
        steps.append("Address risk factors")
    return ", ".join(steps) or "Continue development"


def build_footer(template: FooterTemplate, inp: SectionInput) -> str:
    if not template.format:
        return ""
    footer = template.format
    analysis = inp.analysis
    if template.include_recommendations:
        titles = ", ".join(r.title for r in analysis.recommendations[:2])
        footer = footer.replace("{recommendations}", titles or "None")
    if template.include_next_steps:
        footer = footer.replace("{next_steps}", next_steps(analysis))
    return footer.replace(
        "{business_value}", analysis.file_semantics.business_value.business_criticality
    )

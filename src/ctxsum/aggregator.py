"""Project Aggregator - architecture, relationship graph, statistics and mined templates.

Every call recomputes from the full summary list; nothing is updated
incrementally.
"""

from __future__ import annotations

import posixpath
import re
from collections import Counter
from collections.abc import Callable, Iterable

from ctxsum.models import (
    AnalysisStatistics,
    ContextualSummary,
    FileRelationship,
    ModuleInfo,
    PatternShare,
    ProjectContext,
    PromptTemplate,
    TokenReduction,
)

MIN_TEMPLATE_GROUP = 3
MAX_KEY_POINT_PATTERNS = 5
MAX_SIMILAR_PURPOSE_EDGES = 3
MAX_MODULE_DEPENDENCIES = 10
MAX_MAIN_PATTERNS = 10
MAX_TECHNICAL_STACK = 15

ARCHITECTURE_BY_FILE_TYPE: dict[str, str] = {
    "component": "component-based",
    "api-route": "layered",
    "service": "service-oriented",
}

RELATIONSHIP_STRENGTHS: dict[str, str] = {
    "parent-child": "strong",
    "utility-consumer": "medium",
    "type-provider": "medium",
    "service-consumer": "strong",
}

COMPLEXITY_ORDINALS: dict[str, int] = {"very-high": 5, "high": 4, "medium": 3, "low": 2}

# (minimum mean ordinal, level), checked top-down
AVERAGE_COMPLEXITY_THRESHOLDS: tuple[tuple[float, str], ...] = (
    (4.5, "very-high"),
    (3.5, "high"),
    (2.5, "medium"),
)


class ProjectFacts:
    """Presence flags the project-type rules read."""

    def __init__(self, summaries: list[ContextualSummary]):
        self.has_components = any(s.file_type == "component" for s in summaries)
        self.has_routes = any(s.file_type == "api-route" for s in summaries)
        self.has_pages = any("page" in s.purpose.lower() for s in summaries)


# Ordered (predicate, project type); first match wins, fallback is static
PROJECT_TYPE_RULES: list[tuple[Callable[[ProjectFacts], bool], str]] = [
    (lambda f: f.has_components and f.has_routes, "mixed"),
    (lambda f: f.has_components and f.has_pages, "single-page-app"),
    (lambda f: f.has_routes, "api"),
    (lambda f: f.has_components, "library"),
]

# Ordered (predicate over all paths, structure); fallback is mixed
STRUCTURE_RULES: list[tuple[Callable[[list[str]], bool], str]] = [
    (lambda paths: any("/features/" in p or "/modules/" in p for p in paths), "feature-based"),
    (
        lambda paths: any(marker in p for p in paths for marker in ("/atoms/", "/molecules/", "/organisms/")),
        "atomic",
    ),
    (
        lambda paths: all(
            any(marker in p for p in paths) for marker in ("/components/", "/services/", "/utils/")
        ),
        "layer-based",
    ),
]

KEY_POINT_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"(\w+)\s+complexity"), "{complexity} complexity"),
    (re.compile(r"Exports\s+(\d+)"), "Exports {count}"),
    (re.compile(r"Uses\s+(\d+)"), "Uses {count}"),
]


def _posix(path: str) -> str:
    return path.replace("\\", "/")


def most_common(values: Iterable[str], default: str) -> str:
    counts = Counter(values)
    return counts.most_common(1)[0][0] if counts else default


def top_values(values: Iterable[str], limit: int) -> list[str]:
    return [value for value, _ in Counter(values).most_common(limit)]


def average_complexity(levels: list[str]) -> str:
    """Bucket the mean ordinal of complexity levels; empty input is low."""
    if not levels:
        return "low"
    mean = sum(COMPLEXITY_ORDINALS.get(level, 1) for level in levels) / len(levels)
    for bound, level in AVERAGE_COMPLEXITY_THRESHOLDS:
        if mean >= bound:
            return level
    return "low"


def architecture_type(summary: ContextualSummary) -> str:
    return ARCHITECTURE_BY_FILE_TYPE.get(summary.file_type, "modular")


def infer_project_type(summaries: list[ContextualSummary]) -> str:
    facts = ProjectFacts(summaries)
    for matches, project_type in PROJECT_TYPE_RULES:
        if matches(facts):
            return project_type
    return "static"


def infer_structure(summaries: list[ContextualSummary]) -> str:
    paths = [_posix(s.file_path) for s in summaries]
    for matches, structure in STRUCTURE_RULES:
        if matches(paths):
            return structure
    return "mixed"


def common_words(texts: list[str], limit: int = 3) -> list[str]:
    """Words longer than three letters appearing more than once, most frequent first."""
    counts = Counter(word for text in texts for word in text.lower().split() if len(word) > 3)
    return [word for word, count in counts.most_common() if count > 1][:limit]


def identify_modules(summaries: list[ContextualSummary]) -> list[ModuleInfo]:
    groups: dict[str, list[ContextualSummary]] = {}
    for summary in summaries:
        groups.setdefault(posixpath.dirname(_posix(summary.file_path)), []).append(summary)

    modules = []
    for directory, files in groups.items():
        if len(files) <= 1:
            continue
        externals = dict.fromkeys(d.name for f in files for d in f.dependencies.external)
        modules.append(
            ModuleInfo(
                name=posixpath.basename(directory),
                purpose=" ".join(common_words([f.purpose for f in files])) or "General module",
                files=[f.file_path for f in files],
                dependencies=list(externals)[:MAX_MODULE_DEPENDENCIES],
            )
        )
    return modules


def _imports_target(path: str, summary: ContextualSummary) -> bool:
    return path in _posix(summary.file_path) or summary.file_name in path


def deduplicate(relationships: list[FileRelationship]) -> list[FileRelationship]:
    """Drop repeated (source, target, relationship) triples, keeping the first."""
    seen: set[tuple[str, str, str]] = set()
    unique = []
    for rel in relationships:
        if rel.key in seen:
            continue
        seen.add(rel.key)
        unique.append(rel)
    return unique


def build_relationships(summaries: list[ContextualSummary]) -> list[FileRelationship]:
    relationships: list[FileRelationship] = []
    for summary in summaries:
        others = [s for s in summaries if s.file_path != summary.file_path]

        for dep in summary.dependencies.internal:
            target = next((s for s in others if _imports_target(dep.path, s)), None)
            if target is not None:
                relationships.append(
                    FileRelationship(
                        source=summary.file_path,
                        target=target.file_path,
                        relationship="imports",
                        strength=RELATIONSHIP_STRENGTHS.get(dep.relationship, "weak"),
                        context=f"{summary.file_name} imports from {target.file_name}",
                    )
                )

        for importer in others:
            if any(_imports_target(dep.path, summary) for dep in importer.dependencies.internal):
                relationships.append(
                    FileRelationship(
                        source=summary.file_path,
                        target=importer.file_path,
                        relationship="extends",
                        strength="medium",
                        context=f"{summary.file_name} extends functionality from {importer.file_name}",
                    )
                )

        leading = summary.purpose.lower().split(" ")[0]
        if leading:
            similar = [s for s in others if leading in s.purpose.lower()]
            relationships.extend(
                FileRelationship(
                    source=summary.file_path,
                    target=s.file_path,
                    relationship="uses",
                    strength="weak",
                    context=f"{summary.file_name} has similar purpose to {s.file_name}",
                )
                for s in similar[:MAX_SIMILAR_PURPOSE_EDGES]
            )

    return deduplicate(relationships)


def calculate_statistics(summaries: list[ContextualSummary]) -> AnalysisStatistics:
    total = len(summaries)
    original = sum(s.prompt.tokens.original_size for s in summaries)
    reduced = sum(s.prompt.tokens.approximate for s in summaries)
    distribution = {
        file_type: PatternShare(count=count, percentage=count / total * 100)
        for file_type, count in Counter(s.file_type for s in summaries).items()
    }
    return AnalysisStatistics(
        total_files=total,
        average_complexity=average_complexity([s.complexity for s in summaries]),
        token_reduction=TokenReduction(
            original_tokens=original,
            reduced_tokens=reduced,
            reduction_percentage=(original - reduced) / original * 100 if original else 0.0,
            average_compression_ratio=(
                sum(s.prompt.tokens.compression_ratio for s in summaries) / total if total else 1.0
            ),
        ),
        pattern_distribution=distribution,
    )


def _common_prefix(word_lists: list[list[str]]) -> list[str]:
    prefix: list[str] = []
    for words in zip(*word_lists):
        if any(word != words[0] for word in words):
            break
        prefix.append(words[0])
    return prefix


def common_header(headers: list[str]) -> str:
    """Longest shared leading and trailing words, joined around an ellipsis."""
    headers = [h for h in headers if h]
    if not headers:
        return ""
    word_lists = [h.split(" ") for h in headers]
    prefix = _common_prefix(word_lists)
    rests = [words[len(prefix):] for words in word_lists]
    suffix = list(reversed(_common_prefix([list(reversed(words)) for words in rests])))
    return " ".join([*prefix, "...", *suffix])


def key_point_patterns(key_points: list[str]) -> list[str]:
    patterns: dict[str, None] = {}
    for point in key_points:
        for regex, pattern in KEY_POINT_PATTERNS:
            if regex.search(point):
                patterns[pattern] = None
    return list(patterns)[:MAX_KEY_POINT_PATTERNS]


def variable_fields(summaries: list[ContextualSummary]) -> list[str]:
    fields = ["file_name", "purpose", "complexity", "file_type"]
    if any(s.dependencies.external for s in summaries):
        fields.append("external_dependencies")
    if any(s.business_logic.operations for s in summaries):
        fields.append("business_operations")
    if any(s.technical_context for s in summaries):
        fields.append("technical_details")
    return fields


def template_text(header: str, patterns: list[str], variables: list[str]) -> str:
    parts = []
    if header:
        parts.append(header)
    if patterns:
        parts.append("**Key Points:**")
        parts.extend(f"• {pattern}" for pattern in patterns)
    if "business_operations" in variables:
        parts.append("**Business Operations:** {business_operations}")
    if "technical_details" in variables:
        parts.append("**Technical Details:** {technical_details}")
    if "external_dependencies" in variables:
        parts.append("**Dependencies:** {external_dependencies}")
    return "\n\n".join(parts)


def mine_templates(summaries: list[ContextualSummary]) -> list[PromptTemplate]:
    """One template per (file type, complexity) group of three or more summaries."""
    groups: dict[tuple[str, str], list[ContextualSummary]] = {}
    for summary in summaries:
        groups.setdefault((summary.file_type, summary.complexity), []).append(summary)

    templates = []
    for (file_type, complexity), group in groups.items():
        if len(group) < MIN_TEMPLATE_GROUP:
            continue
        structures = [s.prompt.structure for s in group]
        variables = variable_fields(group)
        templates.append(
            PromptTemplate(
                name=f"{file_type}-{complexity}",
                purpose=f"Template for {file_type} files with {complexity} complexity",
                template=template_text(
                    common_header([st.header for st in structures]),
                    key_point_patterns([p for st in structures for p in st.key_points]),
                    variables,
                ),
                variables=variables,
                applicable_file_types=[file_type],
            )
        )
    return templates


class ProjectAggregator:
    """Project-level views over a completed summary collection."""

    def project_context(self, summaries: list[ContextualSummary]) -> ProjectContext:
        if not summaries:
            return ProjectContext()
        return ProjectContext(
            architecture_type=most_common((architecture_type(s) for s in summaries), "modular"),
            project_type=infer_project_type(summaries),
            structure=infer_structure(summaries),
            modules=identify_modules(summaries),
            main_patterns=top_values((p for s in summaries for p in s.pattern_names), MAX_MAIN_PATTERNS),
            technical_stack=top_values(
                (d.name for s in summaries for d in s.dependencies.external), MAX_TECHNICAL_STACK
            ),
            complexity=average_complexity([s.complexity for s in summaries]),
        )

    def relationships(self, summaries: list[ContextualSummary]) -> list[FileRelationship]:
        return build_relationships(summaries)

    def statistics(self, summaries: list[ContextualSummary]) -> AnalysisStatistics:
        return calculate_statistics(summaries)

    def prompt_templates(self, summaries: list[ContextualSummary]) -> list[PromptTemplate]:
        return mine_templates(summaries)

"""Semantic synthesis - purpose, complexity, architecture, quality and patterns.

Turns the five extraction records of one file into a SemanticAnalysisResult:

- File semantics: primary/secondary purpose, domain and technical concepts
- Architecture: layer, separation of concerns, SOLID/DRY/KISS/YAGNI, smells, debt
- Code quality: readability, testability, performance, security, reliability
- Design patterns: detected, missing, misused, suggested evolutions
- Guidance: insights, recommendations, risks and optimizations

Usage:
    from ctxsum.semantics import SemanticSynthesizer

    result = SemanticSynthesizer().analyze(file_type, extraction, path, text)
"""

from ctxsum.semantics.complexity import (
    COMPLEXITY_LEVELS,
    VERY_HIGH_THRESHOLD,
    bucket_complexity,
    complexity_rank,
)
from ctxsum.semantics.models import (
    ArchitecturalAnalysis,
    CodeQualityAnalysis,
    DesignPatternAnalysis,
    FileSemantics,
    Insight,
    Recommendation,
    RelationshipAnalysis,
    SemanticAnalysisResult,
)
from ctxsum.semantics.synthesizer import SemanticSynthesizer

__all__ = [
    "COMPLEXITY_LEVELS",
    "VERY_HIGH_THRESHOLD",
    "ArchitecturalAnalysis",
    "CodeQualityAnalysis",
    "DesignPatternAnalysis",
    "FileSemantics",
    "Insight",
    "Recommendation",
    "RelationshipAnalysis",
    "SemanticAnalysisResult",
    "SemanticSynthesizer",
    "bucket_complexity",
    "complexity_rank",
]

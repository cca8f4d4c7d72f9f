"""Design pattern detection by keyword and structural signatures.

Confidence is a fixed constant per pattern type; nothing here is learned.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from ctxsum.extraction.models import ComponentContext, FunctionContext
from ctxsum.semantics.models import (
    DesignPatternAnalysis,
    DetectedPattern,
    MissingPattern,
    PatternEvolution,
    PatternMisuse,
)


@dataclass(frozen=True)
class TextSignature:
    """A file-level pattern recognised from source text."""

    name: str
    category: str
    confidence: float
    matches: Callable[[str], bool]
    appropriateness: float
    effectiveness: float
    quality: str = "good"


TEXT_SIGNATURES: list[TextSignature] = [
    TextSignature(
        name="Singleton",
        category="creational",
        confidence=0.8,
        matches=lambda text: "getInstance" in text or "instance =" in text,
        appropriateness=0.7,
        effectiveness=0.7,
    ),
    TextSignature(
        name="Observer",
        category="behavioral",
        confidence=0.9,
        matches=lambda text: "subscribe" in text or "addEventListener" in text or "on(" in text,
        appropriateness=0.8,
        effectiveness=0.8,
    ),
    TextSignature(
        name="Factory",
        category="creational",
        confidence=0.7,
        matches=lambda text: "create" in text and "factory" in text,
        appropriateness=0.8,
        effectiveness=0.8,
        quality="adequate",
    ),
]

HOC_PATTERN = "Higher-Order Component"
RENDER_PROPS_PATTERN = "Render Props"


def detect_patterns(components: ComponentContext, text: str) -> list[DetectedPattern]:
    detected = [
        DetectedPattern(
            name=sig.name,
            category=sig.category,
            confidence=sig.confidence,
            appropriateness=sig.appropriateness,
            effectiveness=sig.effectiveness,
            quality=sig.quality,
        )
        for sig in TEXT_SIGNATURES
        if sig.matches(text)
    ]

    for component in components.components:
        if component.is_hoc:
            detected.append(
                DetectedPattern(
                    name=HOC_PATTERN,
                    category="component",
                    confidence=0.9,
                    location=component.name,
                    appropriateness=0.7,
                    effectiveness=0.7,
                )
            )
        if component.is_render_prop:
            detected.append(
                DetectedPattern(
                    name=RENDER_PROPS_PATTERN,
                    category="component",
                    confidence=0.8,
                    location=component.name,
                )
            )
    return detected


def identify_missing_patterns(
    functions: FunctionContext, components: ComponentContext
) -> list[MissingPattern]:
    missing: list[MissingPattern] = []

    if any(
        f.complexity.cyclomatic > 8 and "business-logic" in f.patterns for f in functions.functions
    ):
        missing.append(
            MissingPattern(
                pattern="Strategy Pattern",
                benefit="Reduce complexity and improve maintainability",
                applicability=0.8,
            )
        )

    actions = [
        f
        for f in functions.functions
        if "handle" in f.name.lower()
        or "execute" in f.name.lower()
        or "event-handling" in f.patterns
    ]
    if len(actions) > 3:
        missing.append(
            MissingPattern(
                pattern="Command Pattern",
                benefit="Encapsulate actions and enable undo/redo functionality",
                applicability=0.7,
            )
        )

    if any(len(c.state) > 2 and len(c.hooks) > 3 for c in components.components):
        missing.append(
            MissingPattern(
                pattern="Custom Hook",
                benefit="Extract and reuse stateful logic",
                applicability=0.9,
            )
        )
    return missing


def identify_misuse(detected: list[DetectedPattern], text: str) -> list[PatternMisuse]:
    misuse: list[PatternMisuse] = []
    for pattern in detected:
        if pattern.name == "Singleton" and pattern.appropriateness < 0.5:
            misuse.append(
                PatternMisuse(
                    pattern="Singleton",
                    issue="Overused or inappropriately applied",
                    severity="medium",
                    correction="Consider dependency injection or factory pattern",
                )
            )
        if pattern.name == HOC_PATTERN and pattern.quality == "poor":
            misuse.append(
                PatternMisuse(
                    pattern=HOC_PATTERN,
                    issue="Poor implementation leading to prop conflicts",
                    severity="high",
                    correction="Use custom hooks or render props instead",
                )
            )
        if (
            pattern.name == "Observer"
            and "removeEventListener" not in text
            and "unsubscribe" not in text
        ):
            misuse.append(
                PatternMisuse(
                    pattern="Observer",
                    issue="Missing cleanup in event listeners",
                    severity="high",
                    correction="Remove listeners when the owner is torn down",
                )
            )
    return misuse


def suggest_evolution(detected: list[DetectedPattern]) -> list[PatternEvolution]:
    return [
        PatternEvolution(
            current=HOC_PATTERN,
            suggested="Custom Hook",
            reason="Custom hooks provide better composition and avoid wrapper nesting",
        )
        for pattern in detected
        if pattern.name == HOC_PATTERN and pattern.effectiveness < 0.7
    ]


def analyze_design_patterns(
    functions: FunctionContext, components: ComponentContext, text: str
) -> DesignPatternAnalysis:
    detected = detect_patterns(components, text)
    return DesignPatternAnalysis(
        detected=detected,
        missing=identify_missing_patterns(functions, components),
        misuse=identify_misuse(detected, text),
        evolution=suggest_evolution(detected),
    )

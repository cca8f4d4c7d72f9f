"""Semantic synthesis: turn the five extraction records into a multi-axis analysis.

Usage:
    from ctxsum.semantics import SemanticSynthesizer

    synthesizer = SemanticSynthesizer()
    result = synthesizer.analyze("component", extraction, "src/components/Card.tsx", text)
    print(result.file_semantics.primary_purpose)
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass

from ctxsum.extraction.models import (
    BusinessLogicContext,
    ComponentContext,
    DependencyContext,
    ExtractionContext,
    FunctionContext,
    FunctionDefinition,
    TypeContext,
    TypeDefinition,
    normalize,
)
from ctxsum.semantics.complexity import bucket_complexity
from ctxsum.semantics.models import (
    ArchitecturalAnalysis,
    BusinessValue,
    CodeQualityAnalysis,
    CohesionAnalysis,
    CohesionMetrics,
    CouplingAnalysis,
    CouplingMetrics,
    DependencyStrength,
    DesignPatternAnalysis,
    DomainConcept,
    FileSemantics,
    Insight,
    MaintainabilityMetrics,
    Optimization,
    Recommendation,
    RelationshipAnalysis,
    RiskFactor,
    SemanticAnalysisResult,
    SemanticComplexity,
    TechnicalConcept,
)
from ctxsum.semantics.patterns import analyze_design_patterns
from ctxsum.semantics.principles import analyze_architecture
from ctxsum.semantics.quality import analyze_code_quality

logger = logging.getLogger(__name__)

# Quality thresholds on the 0-10 scale
QUALITY_RISK_THRESHOLD = 6.0
CRITICAL_QUALITY_THRESHOLD = 8.0
PERFORMANCE_RECOMMEND_THRESHOLD = 7.0
SECURITY_RECOMMEND_THRESHOLD = 8.0
ADHERENCE_THRESHOLD = 0.7
MISSING_PATTERN_APPLICABILITY = 0.7

DEBT_RISK_HOURS = 100
SECURITY_RISK_THRESHOLD = 6.0
PERFORMANCE_RISK_THRESHOLD = 5.0
RUNTIME_OPTIMIZE_THRESHOLD = 8.0
MAINTAINABILITY_OPTIMIZE_THRESHOLD = 7.0

DOMAIN_TYPE_INDICATORS = ("User", "Order", "Product", "Customer", "Account", "Payment", "Invoice")


@dataclass
class PurposeInput:
    """What the purpose rules look at."""

    file_type: str
    functions: FunctionContext
    components: ComponentContext
    business: BusinessLogicContext


def _utility_category(functions: list[FunctionDefinition]) -> str:
    categories = []
    for func in functions:
        if "data-transformation" in func.patterns:
            categories.append("data processing")
        elif "validation" in func.patterns:
            categories.append("validation")
        elif "api-integration" in func.patterns:
            categories.append("API integration")
        else:
            categories.append("general utilities")
    return Counter(categories).most_common(1)[0][0]


def _utility_functions(ctx: PurposeInput) -> list[FunctionDefinition]:
    return [
        f
        for f in ctx.functions.functions
        if "utility-function" in f.patterns or "data-transformation" in f.patterns
    ]


def _hook_functions(ctx: PurposeInput) -> list[FunctionDefinition]:
    return [f for f in ctx.functions.functions if f.is_hook]


# Ordered (predicate, phrase builder) rules; first match wins
PURPOSE_RULES: list[tuple[Callable[[PurposeInput], bool], Callable[[PurposeInput], str]]] = [
    (
        lambda c: c.file_type == "component" and bool(c.components.components),
        lambda c: (
            f"Implements {c.components.components[0].name} component for "
            f"{c.components.components[0].category} functionality"
        ),
    ),
    (
        lambda c: c.file_type == "hook" and bool(_hook_functions(c)),
        lambda c: f"Provides custom hook functionality for {_hook_functions(c)[0].name}",
    ),
    (
        lambda c: c.file_type == "utility" and bool(_utility_functions(c)),
        lambda c: f"Provides utility functions for {_utility_category(_utility_functions(c))}",
    ),
    (
        lambda c: bool(c.business.operations),
        lambda c: (
            f"Implements {c.business.domain} business logic with "
            f"{len(c.business.operations)} operations"
        ),
    ),
    (
        lambda c: c.file_type == "type-definition",
        lambda c: "Defines TypeScript types and interfaces for application data structures",
    ),
    (
        lambda c: c.file_type == "service",
        lambda c: "Provides service layer functionality for external integrations",
    ),
    (
        lambda c: c.file_type == "api-route",
        lambda c: "Implements API endpoint handlers for server-side logic",
    ),
]


def determine_primary_purpose(ctx: PurposeInput) -> str:
    for matches, describe in PURPOSE_RULES:
        if matches(ctx):
            return describe(ctx)
    return f"Provides {ctx.file_type.replace('-', ' ', 1)} functionality"


def determine_secondary_purposes(
    functions: FunctionContext, components: ComponentContext, business: BusinessLogicContext
) -> list[str]:
    def any_pattern(pattern: str) -> bool:
        return any(pattern in f.patterns for f in functions.functions)

    purposes = []
    if any_pattern("error-handling"):
        purposes.append("Error handling and recovery")
    if business.validations:
        purposes.append("Data validation and integrity")
    if any(c.memoized for c in components.components):
        purposes.append("Performance optimization")
    if any_pattern("state-management"):
        purposes.append("State management")
    if any_pattern("api-integration"):
        purposes.append("External API integration")
    return purposes


def _is_domain_type(name: str) -> bool:
    return any(indicator in name for indicator in DOMAIN_TYPE_INDICATORS)


def _classify_domain_type(definition: TypeDefinition) -> str:
    lowered = definition.name.lower()
    if "service" in lowered:
        return "service"
    if "repository" in lowered:
        return "repository"
    if definition.kind == "type-alias":
        return "value-object"
    return "entity"


def extract_domain_concepts(business: BusinessLogicContext, types: TypeContext) -> list[DomainConcept]:
    concepts = [
        DomainConcept(name=op.name, type="service", confidence=0.8, context=op.purpose)
        for op in business.operations
    ]
    for definition in types.definitions:
        if not _is_domain_type(definition.name):
            continue
        concepts.append(
            DomainConcept(
                name=definition.name,
                type=_classify_domain_type(definition),
                confidence=0.7,
                context=definition.description or "Domain type definition",
                relationships=[
                    {"type": "inheritance", "target": parent, "strength": "strong"}
                    for parent in definition.extends
                ],
            )
        )
    return concepts


def usage_frequency(pattern: str, text: str) -> str:
    occurrences = len(re.findall(re.escape(pattern), text, re.IGNORECASE))
    if occurrences > 5:
        return "extensive"
    if occurrences > 2:
        return "frequent"
    if occurrences > 0:
        return "occasional"
    return "rare"


def pattern_effectiveness(components: ComponentContext) -> float:
    """Base 0.7 plus up to 0.3 from the 0-100 component quality average."""
    q = components.quality
    average = (
        q.testability + q.accessibility + q.performance + q.maintainability + q.reusability
    ) / 5
    return min(1.0, 0.7 + average / 100 * 0.3)


def extract_technical_concepts(
    functions: FunctionContext, components: ComponentContext, text: str
) -> list[TechnicalConcept]:
    concepts: list[TechnicalConcept] = []
    if components.components:
        effectiveness = pattern_effectiveness(components)
        concepts.extend(
            TechnicalConcept(
                name=pattern,
                usage_frequency=usage_frequency(pattern, text),
                effectiveness=effectiveness,
            )
            for pattern in components.patterns
        )
    concepts.extend(
        TechnicalConcept(name=pattern, usage_frequency=usage_frequency(pattern, text), effectiveness=0.8)
        for pattern in functions.patterns.functional
    )
    return concepts


def assess_business_value(
    file_type: str, business: BusinessLogicContext, components: ComponentContext
) -> BusinessValue:
    value = BusinessValue()
    if file_type == "component" and components.components:
        category = components.components[0].category
        value.user_impact = "high" if category in ("page", "form") else "medium"

    if business.domain in ("payment", "auth"):
        value.business_criticality = "critical"
        value.revenue_impact = "direct"
        value.compliance_relevance = True
    elif business.domain in ("analytics", "workflow"):
        value.business_criticality = "high"
        value.revenue_impact = "indirect"

    if file_type in ("component", "utility"):
        value.frequency_of_use = "frequently"
    elif file_type == "api-route":
        value.frequency_of_use = "constantly"
    return value


def analyze_semantic_complexity(
    functions: FunctionContext, components: ComponentContext, business: BusinessLogicContext
) -> SemanticComplexity:
    complexity = SemanticComplexity(
        conceptual=min(
            10.0,
            len(functions.functions) * 0.5
            + len(components.components) * 1.0
            + len(business.operations) * 1.5,
        ),
        interaction=min(
            10.0,
            len(components.relationships) * 0.5
            + len(business.workflows) * 2.0
            + len(business.dependencies.apis) * 1.0,
        ),
        data=min(
            10.0,
            len(business.transformations) * 1.0
            + len(business.validations) * 0.5
            + len(business.dependencies.databases) * 2.0,
        ),
        algorithmic=min(10.0, functions.complexity.average_complexity),
    )
    complexity.overall = bucket_complexity(complexity.total)
    return complexity


def analyze_maintainability(
    functions: FunctionContext, components: ComponentContext, types: TypeContext
) -> MaintainabilityMetrics:
    funcs = functions.functions
    function_part = sum(10 if f.is_pure else 5 for f in funcs) / len(funcs) if funcs else 10.0
    component_part = components.quality.maintainability / 10 if components.components else 10.0
    definitions = types.definitions
    type_part = (
        sum(1 for t in definitions if t.description) / len(definitions) * 10 if definitions else 10.0
    )
    return MaintainabilityMetrics(
        score=(function_part + component_part + type_part) / 3,
        function_part=function_part,
        component_part=component_part,
        type_part=type_part,
    )


def _largest_share(keys: list[str]) -> float:
    """Fraction of items in the most common group, scaled to 0-10."""
    if not keys:
        return 10.0
    return Counter(keys).most_common(1)[0][1] / len(keys) * 10


def analyze_cohesion(
    functions: FunctionContext, components: ComponentContext, business: BusinessLogicContext
) -> CohesionAnalysis:
    functional = _largest_share([f.patterns[0] if f.patterns else "utility" for f in functions.functions])
    component = _largest_share([c.category for c in components.components])
    if not business.operations:
        business_score = 10.0
    else:
        business_score = 6.0 if business.domain == "general" else 9.0

    if functional > 8:
        kind = "functional"
    elif functional > 6:
        kind = "sequential"
    else:
        kind = "logical"
    return CohesionAnalysis(functional=functional, component=component, business=business_score, type=kind)


def analyze_coupling(functions: FunctionContext, components: ComponentContext) -> CouplingAnalysis:
    funcs = functions.functions
    function_coupling = (
        max(0.0, 10 - sum(len(f.dependencies) for f in funcs) / len(funcs)) if funcs else 10.0
    )
    comps = components.components
    component_coupling = (
        max(0.0, 10 - sum(len(c.internal_components) for c in comps) / len(comps)) if comps else 10.0
    )

    if function_coupling > 8:
        kind = "loose"
    elif function_coupling > 5:
        kind = "medium"
    else:
        kind = "tight"
    return CouplingAnalysis(
        score=(function_coupling + component_coupling) / 2,
        type=kind,
        dependencies=len(functions.call_graph),
    )


# --- relationships ----------------------------------------------------------


def analyze_dependency_strength(dependencies: DependencyContext) -> DependencyStrength:
    result = DependencyStrength()
    for dep in dependencies.internal:
        if dep.relationship in ("parent-child", "utility-consumer"):
            result.strong.append(dep.path)
        else:
            result.weak.append(dep.path)

    paths = [dep.path for dep in dependencies.internal]
    repeated = [path for index, path in enumerate(paths) if paths.index(path) != index]
    if repeated:
        result.cycles.append(repeated)

    result.health = max(0.0, 10.0 - len(result.strong) - 3 * len(result.cycles))
    result.issues = [f"Strong coupling to {path}" for path in result.strong] + [
        f"Circular dependency: {' -> '.join(cycle)}" for cycle in result.cycles
    ]
    return result


def calculate_coupling_metrics(dependencies: DependencyContext) -> CouplingMetrics:
    afferent = len(dependencies.internal)
    efferent = len(dependencies.external)
    total = afferent + efferent
    if total < 5:
        coupling = "loose"
    elif total < 10:
        coupling = "medium"
    else:
        coupling = "tight"
    return CouplingMetrics(
        afferent=afferent,
        efferent=efferent,
        instability=efferent / total if total else 0.0,
        coupling=coupling,
    )


def calculate_cohesion_metrics(functions: FunctionContext) -> CohesionMetrics:
    funcs = functions.functions
    if funcs:
        groups = Counter(f.patterns[0] if f.patterns else "utility" for f in funcs)
        level = groups.most_common(1)[0][1] / len(funcs)
    else:
        level = 1.0

    if level > 0.8:
        kind = "functional"
    elif level > 0.6:
        kind = "sequential"
    else:
        kind = "logical"
    return CohesionMetrics(level=level, type=kind, score=level * 10)


def calculate_abstractness(functions: FunctionContext, components: ComponentContext) -> float:
    total = len(functions.functions) + len(components.components)
    if total == 0:
        return 0.0
    abstract = sum(
        1
        for f in functions.functions
        if "Abstract" in f.name or "interface" in f.signature.return_type
    )
    abstract += sum(1 for c in components.components if c.is_hoc)
    return abstract / total


def analyze_relationships(
    dependencies: DependencyContext, functions: FunctionContext, components: ComponentContext
) -> RelationshipAnalysis:
    fan_in = len(dependencies.internal)
    fan_out = len(dependencies.external)
    instability = fan_out / (fan_in + fan_out + 1)
    abstractness = calculate_abstractness(functions, components)
    return RelationshipAnalysis(
        dependency_strength=analyze_dependency_strength(dependencies),
        coupling=calculate_coupling_metrics(dependencies),
        cohesion=calculate_cohesion_metrics(functions),
        fan_in=fan_in,
        fan_out=fan_out,
        instability=instability,
        abstractness=abstractness,
        distance=abs(abstractness + instability - 1),
    )


# --- guidance ---------------------------------------------------------------


def generate_insights(
    semantics: FileSemantics,
    architecture: ArchitecturalAnalysis,
    quality: CodeQualityAnalysis,
    patterns: DesignPatternAnalysis,
) -> list[Insight]:
    insights: list[Insight] = []

    if quality.overall_score < QUALITY_RISK_THRESHOLD:
        insights.append(
            Insight(
                type="code-quality",
                category="risk",
                priority="high",
                description="Code quality is below acceptable threshold",
                evidence=[f"Overall quality score: {quality.overall_score:.1f}"],
            )
        )

    if semantics.complexity.overall == "very-high":
        insights.append(
            Insight(
                type="maintainability",
                category="warning",
                priority="high",
                description="File has very high semantic complexity",
                evidence=[f"Complexity level: {semantics.complexity.overall}"],
            )
        )

    severe = [smell for smell in architecture.code_smells if smell.severity == "high"]
    if severe:
        insights.append(
            Insight(
                type="architecture",
                category="improvement",
                priority="medium",
                description="Multiple code smells detected that affect architecture",
                evidence=[f"{smell.type}: {smell.description}" for smell in severe],
            )
        )

    applicable = [p for p in patterns.missing if p.applicability > MISSING_PATTERN_APPLICABILITY]
    if applicable:
        insights.append(
            Insight(
                type="design-pattern",
                category="opportunity",
                priority="medium",
                description="Opportunities to apply beneficial design patterns",
                evidence=[f"{p.pattern}: {p.benefit}" for p in applicable],
            )
        )

    if (
        semantics.business_value.business_criticality == "critical"
        and quality.overall_score < CRITICAL_QUALITY_THRESHOLD
    ):
        insights.append(
            Insight(
                type="business-logic",
                category="risk",
                priority="critical",
                description="Critical business logic has suboptimal code quality",
                evidence=[
                    f"Business criticality: {semantics.business_value.business_criticality}",
                    f"Quality score: {quality.overall_score:.1f}",
                ],
            )
        )
    return insights


def generate_recommendations(
    semantics: FileSemantics, architecture: ArchitecturalAnalysis, quality: CodeQualityAnalysis
) -> list[Recommendation]:
    recommendations: list[Recommendation] = []

    if semantics.complexity.overall == "very-high":
        recommendations.append(
            Recommendation(
                type="refactoring",
                priority="high",
                title="Reduce File Complexity",
                description="Break down complex functions and separate concerns to improve maintainability",
                rationale="High complexity reduces code readability and increases bug risk",
                benefits=["Improved maintainability", "Reduced bug risk", "Better testability"],
                steps=[
                    "Identify complex functions with high cyclomatic complexity",
                    "Extract common functionality into utility functions",
                    "Apply single responsibility principle",
                    "Add unit tests for refactored code",
                ],
                effort_hours=16,
            )
        )

    if quality.performance.score < PERFORMANCE_RECOMMEND_THRESHOLD:
        recommendations.append(
            Recommendation(
                type="performance",
                priority="medium",
                title="Optimize Performance",
                description="Implement performance optimizations to improve runtime efficiency",
                rationale="Current performance metrics indicate optimization opportunities",
                benefits=["Faster load times", "Reduced resource consumption"],
                steps=[
                    "Profile current performance bottlenecks",
                    "Implement memoization where appropriate",
                    "Optimize data structures and algorithms",
                    "Add performance monitoring",
                ],
                effort_hours=18,
            )
        )

    if quality.security.score < SECURITY_RECOMMEND_THRESHOLD:
        recommendations.append(
            Recommendation(
                type="security",
                priority="high",
                title="Enhance Security Measures",
                description="Implement security best practices to protect against vulnerabilities",
                rationale="Security analysis identified potential vulnerabilities",
                benefits=["Reduced security risk", "User data protection"],
                steps=[
                    "Conduct security audit",
                    "Implement input validation",
                    "Add authentication checks",
                    "Set up security monitoring",
                ],
                effort_hours=21,
            )
        )

    if architecture.design_principles.overall_adherence < ADHERENCE_THRESHOLD:
        recommendations.append(
            Recommendation(
                type="architecture",
                priority="medium",
                title="Improve Design Principle Adherence",
                description="Refactor code to better follow SOLID and other design principles",
                rationale="Poor adherence to design principles affects long-term maintainability",
                benefits=["Better code organization", "Reduced coupling"],
                steps=[
                    "Review SOLID principle violations",
                    "Refactor to single responsibility",
                    "Apply dependency inversion",
                    "Update documentation",
                ],
                effort_hours=19,
            )
        )
    return recommendations


def identify_risks(
    quality: CodeQualityAnalysis, architecture: ArchitecturalAnalysis, business: BusinessLogicContext
) -> list[RiskFactor]:
    risks: list[RiskFactor] = []

    if architecture.debt.total > DEBT_RISK_HOURS:
        risks.append(
            RiskFactor(
                type="technical-debt",
                severity="high",
                description=f"Accumulated technical debt of {architecture.debt.total:g} hours detected",
                mitigation="Track debt and schedule regular payoff work",
            )
        )
    if quality.security.score < SECURITY_RISK_THRESHOLD:
        risks.append(
            RiskFactor(
                type="security-vulnerability",
                severity="critical",
                description="Low security score indicates potential vulnerabilities",
                mitigation="Add security scanning and review input handling",
            )
        )
    if quality.performance.score < PERFORMANCE_RISK_THRESHOLD:
        risks.append(
            RiskFactor(
                type="performance-bottleneck",
                severity="medium",
                description="Performance metrics indicate potential bottlenecks",
                mitigation="Profile hot paths and add load testing",
            )
        )
    if (
        business.operations
        and business.quality.reliability < 7
        and business.quality.overall_score < 6
    ):
        risks.append(
            RiskFactor(
                type="business-continuity",
                severity="high",
                description="Low reliability in business logic may cause service interruptions",
                mitigation="Add retries, fallbacks and alerting around external calls",
            )
        )
    return risks


def identify_optimizations(
    functions: FunctionContext, components: ComponentContext, quality: CodeQualityAnalysis
) -> list[Optimization]:
    optimizations: list[Optimization] = []

    if any(not c.lazy for c in components.components):
        optimizations.append(
            Optimization(
                type="bundle-size",
                description="Implement lazy loading for components to reduce initial bundle size",
                impact="medium",
                effort="low",
            )
        )

    heavy = [f for f in functions.functions if f.complexity.cyclomatic > 10 and not f.is_component]
    if heavy:
        optimizations.append(
            Optimization(
                type="memory",
                description=f"Optimize memory usage in {len(heavy)} complex functions",
                impact="medium",
                effort="medium",
            )
        )

    if quality.performance.score < RUNTIME_OPTIMIZE_THRESHOLD:
        optimizations.append(
            Optimization(
                type="runtime",
                description=f"Implement runtime performance optimizations (score {quality.performance.score:.1f})",
                impact="high",
                effort="medium",
            )
        )

    if quality.maintainability.score < MAINTAINABILITY_OPTIMIZE_THRESHOLD:
        optimizations.append(
            Optimization(
                type="maintainability",
                description=(
                    "Improve code maintainability through refactoring "
                    f"(score {quality.maintainability.score:.1f})"
                ),
                impact="high",
                effort="high",
            )
        )
    return optimizations


class SemanticSynthesizer:
    """Derives a SemanticAnalysisResult for one file.

    Stateless; one instance can be shared by every file of a run.
    """

    def analyze(
        self,
        file_type: str,
        extraction: ExtractionContext,
        file_path: str,
        text: str,
    ) -> SemanticAnalysisResult:
        functions = normalize(extraction.functions, FunctionContext)
        components = normalize(extraction.components, ComponentContext)
        types = normalize(extraction.types, TypeContext)
        business = normalize(extraction.business_logic, BusinessLogicContext)
        dependencies = normalize(extraction.dependencies, DependencyContext)

        semantics = FileSemantics(
            primary_purpose=determine_primary_purpose(
                PurposeInput(file_type, functions, components, business)
            ),
            secondary_purposes=determine_secondary_purposes(functions, components, business),
            domain_concepts=extract_domain_concepts(business, types),
            technical_concepts=extract_technical_concepts(functions, components, text),
            business_value=assess_business_value(file_type, business, components),
            complexity=analyze_semantic_complexity(functions, components, business),
            maintainability=analyze_maintainability(functions, components, types),
            cohesion=analyze_cohesion(functions, components, business),
            coupling=analyze_coupling(functions, components),
        )
        architecture = analyze_architecture(file_path, functions, components, business)
        quality = analyze_code_quality(functions, components, types, business)
        patterns = analyze_design_patterns(functions, components, text)
        relationships = analyze_relationships(dependencies, functions, components)

        logger.debug(
            f"Synthesized {file_path}: {semantics.complexity.overall} complexity, "
            f"quality {quality.overall_score:.1f}"
        )

        return SemanticAnalysisResult(
            file_semantics=semantics,
            architecture=architecture,
            code_quality=quality,
            design_patterns=patterns,
            relationships=relationships,
            insights=generate_insights(semantics, architecture, quality, patterns),
            recommendations=generate_recommendations(semantics, architecture, quality),
            risks=identify_risks(quality, architecture, business),
            optimizations=identify_optimizations(functions, components, quality),
        )

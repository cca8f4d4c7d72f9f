"""Code quality scores on a 0-10 scale."""

from __future__ import annotations

from ctxsum.extraction.models import (
    BusinessLogicContext,
    ComponentContext,
    FunctionContext,
    TypeContext,
)
from ctxsum.semantics.models import (
    CodeQualityAnalysis,
    MaintainabilityScore,
    QualityMetric,
    ReliabilityMetrics,
    SecurityMetrics,
    SecurityVulnerability,
)

UNCLEAR_NAME_MARKERS = ("temp", "data")
SENSITIVE_DOMAINS = ("auth", "payment")


def _clamp(score: float) -> float:
    return max(0.0, min(10.0, score))


def readability(functions: FunctionContext) -> QualityMetric:
    score = 10.0
    for func in functions.functions:
        if func.complexity.cyclomatic > 10:
            score -= 1.5
        if func.complexity.lines_of_code > 50:
            score -= 1
        if len(func.name) < 3 or any(marker in func.name for marker in UNCLEAR_NAME_MARKERS):
            score -= 0.5
        if func.description:
            score += 0.5
    return QualityMetric(score=_clamp(score))


def testability(functions: FunctionContext, components: ComponentContext) -> QualityMetric:
    score = 10.0
    score -= sum(1 for f in functions.functions if not f.is_pure)
    score -= 1.5 * sum(1 for f in functions.functions if f.side_effects)
    score -= 2 * sum(
        1 for c in components.components if len(c.state) > 5 or len(c.hooks) > 8
    )
    return QualityMetric(score=_clamp(score))


def performance(functions: FunctionContext, components: ComponentContext) -> QualityMetric:
    score = 10.0
    score -= 2 * sum(
        1
        for f in functions.functions
        if f.complexity.cyclomatic > 15 or f.complexity.lines_of_code > 100
    )
    score -= 1.5 * sum(
        1 for c in components.components if not c.memoized and c.markup.complexity_score > 20
    )
    score += sum(1 for c in components.components if c.memoized or c.lazy)
    return QualityMetric(score=_clamp(score))


def security(functions: FunctionContext, business: BusinessLogicContext) -> SecurityMetrics:
    vulnerabilities: list[SecurityVulnerability] = []
    score = 10.0

    for func in functions.functions:
        if any("eval" in dep.name for dep in func.dependencies):
            vulnerabilities.append(
                SecurityVulnerability(
                    type="Code Injection",
                    severity="critical",
                    description=f"Function {func.name} uses eval or similar dangerous function",
                    location=func.name,
                )
            )
            score -= 3
        if "api-integration" in func.patterns and "validation" not in func.patterns:
            vulnerabilities.append(
                SecurityVulnerability(
                    type="Input Validation",
                    severity="medium",
                    description=f"Function {func.name} handles external data without validation",
                    location=func.name,
                )
            )
            score -= 1

    if business.domain in SENSITIVE_DOMAINS and not business.validations:
        vulnerabilities.append(
            SecurityVulnerability(
                type="Business Logic",
                severity="high",
                description="Critical business logic lacks proper validation",
                location="Business logic",
            )
        )
        score -= 2

    if score < 4:
        risk = "critical"
    elif score < 6:
        risk = "high"
    elif score < 8:
        risk = "medium"
    else:
        risk = "low"

    if score > 8:
        compliance = "strict"
    elif score > 6:
        compliance = "standard"
    elif score > 4:
        compliance = "basic"
    else:
        compliance = "none"

    return SecurityMetrics(
        score=max(0.0, score),
        vulnerabilities=vulnerabilities,
        compliance_level=compliance,
        risk_level=risk,
    )


def maintainability(
    functions: FunctionContext, components: ComponentContext, types: TypeContext
) -> MaintainabilityScore:
    result = MaintainabilityScore()
    complex_functions = sum(1 for f in functions.functions if f.complexity.cyclomatic > 10)
    complex_components = sum(
        1 for c in components.components if c.complexity in ("high", "very-high")
    )
    undocumented = sum(1 for t in types.definitions if not t.description)

    result.score -= 1.5 * complex_functions + 2 * complex_components + 0.5 * undocumented
    result.score = max(0.0, result.score)
    result.code_smells = complex_functions + complex_components
    result.technical_debt_hours = 4 * complex_functions + 6 * complex_components + undocumented
    return result


def reliability(functions: FunctionContext, business: BusinessLogicContext) -> ReliabilityMetrics:
    result = ReliabilityMetrics()
    funcs = functions.functions

    handled = [
        f
        for f in funcs
        if "error-handling" in f.patterns or any(e.type == "api-call" for e in f.side_effects)
    ]
    if handled:
        result.error_handling = len(handled) / len(funcs) * 10

    pure = [f for f in funcs if f.is_pure]
    if pure:
        result.test_coverage += len(pure) / len(funcs) * 5

    apis = business.dependencies.apis
    if apis:
        tolerant = [api for api in apis if api.retries > 0 or api.fallback]
        result.fault_tolerance = len(tolerant) / len(apis) * 10 if tolerant else 3.0

    result.score = (result.error_handling + result.test_coverage + result.fault_tolerance) / 3
    return result


def analyze_code_quality(
    functions: FunctionContext,
    components: ComponentContext,
    types: TypeContext,
    business: BusinessLogicContext,
) -> CodeQualityAnalysis:
    analysis = CodeQualityAnalysis(
        readability=readability(functions),
        testability=testability(functions, components),
        performance=performance(functions, components),
        security=security(functions, business),
        maintainability=maintainability(functions, components, types),
        reliability=reliability(functions, business),
    )
    analysis.overall_score = (
        analysis.readability.score
        + analysis.testability.score
        + analysis.performance.score
        + analysis.security.score
        + analysis.maintainability.score
        + analysis.reliability.score
    ) / 6
    return analysis

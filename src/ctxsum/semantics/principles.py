"""Architecture scoring: layer, separation of concerns, design principles,
code smells and architectural debt.

Every scorer is an independent rule set with fixed per-violation penalties,
clamped to 0-10.
"""

from __future__ import annotations

from collections import defaultdict

from ctxsum.extraction.models import (
    BusinessLogicContext,
    Component,
    ComponentContext,
    FunctionContext,
    FunctionDefinition,
)
from ctxsum.semantics.models import (
    ArchitecturalAnalysis,
    ArchitecturalDebt,
    CodeSmell,
    ComplianceScore,
    DebtItem,
    DesignPrincipleAdherence,
    DryAnalysis,
    DuplicatedConcept,
    KissAnalysis,
    LayerInfo,
    SeparationOfConcerns,
    SolidAnalysis,
    Violation,
    YagniAnalysis,
)

# Path substring -> layer, first match wins
LAYER_RULES: list[tuple[tuple[str, ...], str]] = [
    (("/components/", "/ui/"), "presentation"),
    (("/services/", "/api/"), "business"),
    (("/data/", "/repositories/"), "data"),
    (("/utils/", "/helpers/"), "utility"),
    (("/domain/", "/models/"), "domain"),
]

SOC_LEVELS: list[tuple[float, str]] = [(8, "excellent"), (6, "good"), (4, "fair")]


def identify_layer(file_path: str, components: ComponentContext) -> LayerInfo:
    """Infer the architectural layer from the path, then apply purity penalties."""
    path = file_path.replace("\\", "/")
    layer = "utility"
    for markers, name in LAYER_RULES:
        if any(marker in path for marker in markers):
            layer = name
            break

    info = LayerInfo(layer=layer)
    if not components.components:
        return info

    main = components.components[0]
    if layer == "presentation" and main.external_libraries:
        info.purity -= 0.3
        info.violations.append(
            Violation(
                description="Presentation layer directly accessing external services",
                severity="high",
                recommendation="Move service calls to business layer",
            )
        )
    if layer == "domain" and any(c.relationship == "parent" for c in main.internal_components):
        info.purity -= 0.2
        info.violations.append(
            Violation(
                description="Domain layer has UI dependencies",
                severity="medium",
                recommendation="Remove UI dependencies from domain logic",
            )
        )
    info.purity = max(0.0, round(info.purity, 4))
    return info


def function_concerns(func: FunctionDefinition) -> list[str]:
    """Concerns a function touches: business, technical, infrastructure."""
    concerns: list[str] = []
    patterns = set(func.patterns)
    if patterns & {"business-logic", "validation"}:
        concerns.append("business")
    if patterns & {"data-transformation", "utility-function"}:
        concerns.append("technical")
    if "api-integration" in patterns or any(e.type == "api-call" for e in func.side_effects):
        concerns.append("infrastructure")
    return concerns or ["technical"]


def _uses_reducer(component: Component) -> bool:
    return any(h.type == "reducer" for h in component.hooks)


def analyze_separation_of_concerns(
    functions: FunctionContext, components: ComponentContext
) -> SeparationOfConcerns:
    result = SeparationOfConcerns()

    for func in functions.functions:
        concerns = function_concerns(func)
        if len(concerns) > 2:
            result.violations.append(
                Violation(
                    description=f"Function {func.name} mixes {', '.join(concerns)} concerns",
                    severity="medium",
                    recommendation=f"Split {func.name} by concern",
                )
            )

    for component in components.components:
        if _uses_reducer(component) and component.markup.element_count > 0 and component.external_libraries:
            result.violations.append(
                Violation(
                    description=f"Component {component.name} mixes state logic, rendering and data access",
                    severity="high",
                    recommendation="Separate container and presentation responsibilities",
                )
            )
            result.improvements.append(
                f"Split {component.name} into container and presentation components"
            )

    result.score = max(0.0, 10.0 - 2 * len(result.violations))
    result.level = "poor"
    for bound, level in SOC_LEVELS:
        if result.score > bound:
            result.level = level
            break
    return result


# --- SOLID ------------------------------------------------------------------


def analyze_single_responsibility(
    functions: FunctionContext, components: ComponentContext
) -> ComplianceScore:
    violations: list[str] = []
    total = 0.0
    items = 0

    for func in functions.functions:
        items += 1
        if len(func.patterns) > 2:
            total += 3
            violations.append(
                f"Function {func.name} has multiple responsibilities: {', '.join(func.patterns)}"
            )
        else:
            total += 10

    for component in components.components:
        items += 1
        signals = sum(
            [
                _uses_reducer(component),
                component.markup.element_count > 0,
                any(
                    "api" in lib.name.lower() or "fetch" in lib.name.lower()
                    for lib in component.external_libraries
                ),
            ]
        )
        if signals > 2:
            total += 4
            violations.append(f"Component {component.name} handles business logic, UI and data")
        else:
            total += 10

    recommendations: list[str] = []
    if violations:
        recommendations = [
            "Extract separate functions for each responsibility",
            "Move data fetching into dedicated hooks or services",
            "Keep components focused on presentation",
        ]
    return ComplianceScore(
        score=total / items if items else 10.0,
        violations=violations,
        recommendations=recommendations,
    )


def analyze_open_closed(functions: FunctionContext) -> ComplianceScore:
    violations = [
        f"Function {f.name} has high branching ({f.complexity.cyclomatic}) that resists extension"
        for f in functions.functions
        if f.complexity.cyclomatic > 8
    ]
    recommendations = (
        ["Replace conditional chains with strategy maps", "Use composition for variants"]
        if violations
        else []
    )
    return ComplianceScore(
        score=max(0.0, 10.0 - 2 * len(violations)),
        violations=violations,
        recommendations=recommendations,
    )


def analyze_liskov_substitution(
    functions: FunctionContext, components: ComponentContext
) -> ComplianceScore:
    violations: list[str] = []
    for component in components.components:
        if component.is_hoc and component.anti_patterns:
            violations.append(
                f"HOC {component.name} may not be substitutable with base component"
            )
    for func in functions.functions:
        if any(p.type == "any" for p in func.signature.parameters) and func.side_effects:
            violations.append(f"Function {func.name} with 'any' parameters may violate LSP")

    recommendations: list[str] = []
    if violations:
        recommendations = [
            "Ensure all function overrides maintain the same contract",
            "Use precise parameter types instead of any",
            "Test substitutability of components and functions",
        ]
    return ComplianceScore(
        score=max(0.0, 10.0 - 3 * len(violations)),
        violations=violations,
        recommendations=recommendations,
    )


def analyze_interface_segregation(
    functions: FunctionContext, components: ComponentContext
) -> ComplianceScore:
    violations: list[str] = []
    for component in components.components:
        prop_count = len(component.props)
        if prop_count > 15:
            violations.append(
                f"Component {component.name} has {prop_count} props - interface too large"
            )
        used = set(component.main_function_dependencies)
        unused = [p for p in component.props if p.name not in used]
        if len(unused) > prop_count * 0.3:
            violations.append(f"Component {component.name} ignores {len(unused)} of its props")

    for func in functions.functions:
        count = len(func.signature.parameters)
        if count > 7:
            violations.append(
                f"Function {func.name} has {count} parameters - too many dependencies"
            )

    recommendations: list[str] = []
    if violations:
        recommendations = [
            "Break large interfaces into smaller, focused ones",
            "Use object parameters for functions with many arguments",
            "Create specific prop interfaces for different use cases",
        ]
    return ComplianceScore(
        score=max(0.0, 10.0 - 2 * len(violations)),
        violations=violations,
        recommendations=recommendations,
    )


def analyze_dependency_inversion(
    functions: FunctionContext, components: ComponentContext
) -> ComplianceScore:
    violations: list[str] = []
    for func in functions.functions:
        if any(e.type == "api-call" and "fetch" in e.description for e in func.side_effects):
            violations.append(f"Function {func.name} has hard-coded API dependencies")
    for component in components.components:
        if any(
            "service" in lib.name.lower() or "api" in lib.name.lower()
            for lib in component.external_libraries
        ):
            violations.append(f"Component {component.name} directly depends on concrete services")

    recommendations: list[str] = []
    if violations:
        recommendations = [
            "Inject dependencies through props or context",
            "Use abstract interfaces instead of concrete implementations",
            "Implement service abstractions for external dependencies",
        ]
    return ComplianceScore(
        score=max(0.0, 10.0 - 2 * len(violations)),
        violations=violations,
        recommendations=recommendations,
    )


# --- DRY / KISS / YAGNI -----------------------------------------------------


def group_similar_functions(functions: list[FunctionDefinition]) -> dict[str, list[FunctionDefinition]]:
    """Group functions by primary usage pattern; only groups of two or more."""
    groups: dict[str, list[FunctionDefinition]] = defaultdict(list)
    for func in functions:
        groups[func.patterns[0] if func.patterns else "utility"].append(func)
    return {key: members for key, members in groups.items() if len(members) > 1}


def group_similar_components(components: list[Component]) -> dict[str, list[Component]]:
    groups: dict[str, list[Component]] = defaultdict(list)
    for component in components:
        groups[component.category].append(component)
    return {key: members for key, members in groups.items() if len(members) > 1}


def analyze_dry(functions: FunctionContext, components: ComponentContext) -> DryAnalysis:
    result = DryAnalysis()
    for pattern, members in group_similar_functions(functions.functions).items():
        result.duplicated_concepts.append(
            DuplicatedConcept(
                concept=pattern,
                instances=[f.name for f in members],
                similarity=0.8,
                consolidation_complexity="high" if len(members) > 3 else "medium",
            )
        )
        result.consolidation_opportunities.append(
            f"Extract common {pattern} logic into utility function"
        )
    for category, members in group_similar_components(components.components).items():
        result.duplicated_concepts.append(
            DuplicatedConcept(
                concept=f"{category} component pattern",
                instances=[c.name for c in members],
                similarity=0.7,
                consolidation_complexity="medium",
            )
        )
        result.consolidation_opportunities.append(f"Create reusable {category} component")

    result.duplication_level = max(0.0, 10.0 - len(result.duplicated_concepts))
    return result


def analyze_kiss(functions: FunctionContext, components: ComponentContext) -> KissAnalysis:
    result = KissAnalysis()
    for func in functions.functions:
        if func.complexity.cyclomatic > 10:
            result.violations.append(
                f"Function {func.name} is overly complex (complexity: {func.complexity.cyclomatic})"
            )
            result.simplifications.append(f"Break down {func.name} into smaller functions")
        param_count = len(func.signature.parameters)
        if param_count > 5:
            result.violations.append(f"Function {func.name} has too many parameters ({param_count})")
            result.simplifications.append(f"Use object parameter for {func.name}")

    for component in components.components:
        if component.markup.nesting_depth > 6:
            result.violations.append(
                f"Component {component.name} has deep markup nesting ({component.markup.nesting_depth})"
            )
            result.simplifications.append(
                f"Extract nested markup from {component.name} into sub-components"
            )
        if len(component.hooks) > 8:
            result.violations.append(
                f"Component {component.name} uses too many hooks ({len(component.hooks)})"
            )
            result.simplifications.append(
                f"Extract hook logic from {component.name} into custom hooks"
            )

    result.score = max(0.0, 10.0 - len(result.violations))
    return result


def analyze_yagni(
    functions: FunctionContext,
    components: ComponentContext,
    business: BusinessLogicContext,
) -> YagniAnalysis:
    result = YagniAnalysis()
    for func in functions.functions:
        if func.complexity.cyclomatic > 8 and "utility-function" in func.patterns:
            result.over_engineering.append(
                f"Function {func.name} might be over-engineered for utility purpose"
            )
        if len(func.signature.generics) > 3:
            result.over_engineering.append(f"Function {func.name} uses excessive generics")

    for component in components.components:
        if len(component.props) > 20:
            result.over_engineering.append(f"Component {component.name} might be over-configurable")
        if len(component.usage_patterns) > 5:
            result.unnecessary_features.append(
                f"Component {component.name} handles too many different use cases"
            )

    for operation in business.operations:
        if operation.complexity == "high" and len(operation.inputs) > 10:
            result.over_engineering.append(
                f"Operation {operation.name} might be over-parameterized"
            )

    result.score = max(
        0.0, 10.0 - len(result.over_engineering) - len(result.unnecessary_features)
    )
    return result


def analyze_design_principles(
    functions: FunctionContext,
    components: ComponentContext,
    business: BusinessLogicContext,
) -> DesignPrincipleAdherence:
    solid = SolidAnalysis(
        single_responsibility=analyze_single_responsibility(functions, components),
        open_closed=analyze_open_closed(functions),
        liskov_substitution=analyze_liskov_substitution(functions, components),
        interface_segregation=analyze_interface_segregation(functions, components),
        dependency_inversion=analyze_dependency_inversion(functions, components),
    )
    dry = analyze_dry(functions, components)
    kiss = analyze_kiss(functions, components)
    yagni = analyze_yagni(functions, components, business)

    solid_share = sum(solid.scores()) / 5 / 10
    overall = (solid_share + dry.duplication_level / 10 + kiss.score / 10 + yagni.score / 10) / 4
    return DesignPrincipleAdherence(
        solid=solid, dry=dry, kiss=kiss, yagni=yagni, overall_adherence=overall
    )


# --- smells and debt --------------------------------------------------------


def find_duplicate_functions(functions: list[FunctionDefinition]) -> list[FunctionDefinition]:
    """Functions whose pattern list and arity repeat an earlier function's."""
    seen: set[str] = set()
    duplicates = []
    for func in functions:
        signature = f"{','.join(func.patterns)}:{len(func.signature.parameters)}"
        if signature in seen:
            duplicates.append(func)
        else:
            seen.add(signature)
    return duplicates


def identify_code_smells(functions: FunctionContext, components: ComponentContext) -> list[CodeSmell]:
    smells: list[CodeSmell] = []
    for func in functions.functions:
        loc = func.complexity.lines_of_code
        if loc > 50:
            smells.append(
                CodeSmell(
                    type="long-method",
                    severity="high" if loc > 100 else "medium",
                    description=f"Function {func.name} has {loc} lines",
                    location=f"Function {func.name}",
                )
            )

    for component in components.components:
        # the render function itself counts as one method
        methods = 1 + len(component.helper_functions) + len(component.render_methods)
        if methods > 10:
            smells.append(
                CodeSmell(
                    type="large-class",
                    severity="high" if methods > 20 else "medium",
                    description=f"Component {component.name} has {methods} methods",
                    location=f"Component {component.name}",
                )
            )

    duplicates = find_duplicate_functions(functions.functions)
    if duplicates:
        smells.append(
            CodeSmell(
                type="duplicate-code",
                severity="medium",
                description=f"{len(duplicates)} functions with similar logic detected",
                location="Multiple functions",
            )
        )
    return smells


# (type, hours per item, monthly interest rate)
DEBT_RATES: dict[str, tuple[float, float]] = {
    "code-debt": (8, 0.1),
    "design-debt": (12, 0.15),
    "test-debt": (4, 0.2),
}


def calculate_debt(functions: FunctionContext, components: ComponentContext) -> ArchitecturalDebt:
    counts = {
        "code-debt": (
            sum(1 for f in functions.functions if f.complexity.cyclomatic > 10),
            "Complex functions need refactoring",
        ),
        "design-debt": (
            sum(1 for c in components.components if c.anti_patterns),
            "Components carry anti-patterns",
        ),
        "test-debt": (
            sum(1 for f in functions.functions if not f.is_pure),
            "Impure functions are hard to test",
        ),
    }
    debt = ArchitecturalDebt()
    for debt_type, (count, description) in counts.items():
        if count == 0:
            continue
        hours, rate = DEBT_RATES[debt_type]
        principal = count * hours
        interest = principal * rate
        debt.items.append(
            DebtItem(type=debt_type, description=description, principal=principal, interest=interest)
        )
        debt.total += principal + interest
    return debt


def analyze_architecture(
    file_path: str,
    functions: FunctionContext,
    components: ComponentContext,
    business: BusinessLogicContext,
) -> ArchitecturalAnalysis:
    return ArchitecturalAnalysis(
        layer=identify_layer(file_path, components),
        separation_of_concerns=analyze_separation_of_concerns(functions, components),
        design_principles=analyze_design_principles(functions, components, business),
        code_smells=identify_code_smells(functions, components),
        debt=calculate_debt(functions, components),
    )

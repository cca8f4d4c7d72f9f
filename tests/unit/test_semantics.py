"""Tests for semantic synthesis."""

from __future__ import annotations

import pytest

from conftest import make_source
from ctxsum.extraction import ExtractorSuite
from ctxsum.extraction.models import (
    BusinessLogicContext,
    BusinessOperation,
    Component,
    ComponentContext,
    ExtractionContext,
    FunctionComplexity,
    FunctionContext,
    FunctionDefinition,
    FunctionDependency,
    FunctionSignature,
    HookUsage,
    LibraryUse,
    MarkupComplexity,
    Parameter,
    Prop,
    SideEffect,
    TypeContext,
)
from ctxsum.semantics import SemanticSynthesizer
from ctxsum.semantics.complexity import (
    COMPLEXITY_LEVELS,
    VERY_HIGH_THRESHOLD,
    bucket_complexity,
    complexity_rank,
    is_high,
)
from ctxsum.semantics.patterns import HOC_PATTERN, detect_patterns, identify_misuse, identify_missing_patterns
from ctxsum.semantics.principles import (
    analyze_design_principles,
    analyze_dependency_inversion,
    analyze_dry,
    analyze_interface_segregation,
    analyze_kiss,
    analyze_liskov_substitution,
    analyze_open_closed,
    analyze_separation_of_concerns,
    analyze_single_responsibility,
    analyze_yagni,
    calculate_debt,
    identify_code_smells,
    identify_layer,
)
from ctxsum.semantics.quality import analyze_code_quality, security
from ctxsum.semantics.synthesizer import (
    PurposeInput,
    analyze_semantic_complexity,
    determine_primary_purpose,
    determine_secondary_purposes,
    usage_frequency,
)


def purpose_of(file_type: str, functions=None, components=None, business=None) -> str:
    return determine_primary_purpose(
        PurposeInput(
            file_type,
            functions or FunctionContext(),
            components or ComponentContext(),
            business or BusinessLogicContext(),
        )
    )


class TestComplexityScale:
    """Test the shared complexity buckets."""

    @pytest.mark.parametrize(
        "score,expected",
        [
            (0, "low"),
            (5, "low"),
            (5.5, "medium"),
            (10, "medium"),
            (11, "high"),
            (15, "high"),
            (15.01, "very-high"),
            (16, "very-high"),
            (100, "very-high"),
        ],
    )
    def test_bucket_boundaries(self, score, expected):
        """Each threshold is an exclusive lower bound."""
        assert bucket_complexity(score) == expected

    def test_bucketing_is_total_and_monotone(self):
        """Every score maps to a level and levels never decrease as scores grow."""
        scores = [i / 4 for i in range(0, 120)]
        ranks = [complexity_rank(bucket_complexity(s)) for s in scores]
        assert all(rank >= 1 for rank in ranks)
        assert ranks == sorted(ranks)
        assert {bucket_complexity(s) for s in scores} == set(COMPLEXITY_LEVELS)

    def test_above_threshold_is_very_high(self):
        """Anything above the very-high threshold lands in the top bucket."""
        assert bucket_complexity(VERY_HIGH_THRESHOLD + 0.5) == "very-high"

    def test_rank(self):
        """Ranks follow the ordinal scale; unknown levels rank zero."""
        assert [complexity_rank(level) for level in COMPLEXITY_LEVELS] == [1, 2, 3, 4]
        assert complexity_rank("extreme") == 0

    def test_is_high(self):
        """High and very-high count as high."""
        assert is_high("high")
        assert is_high("very-high")
        assert not is_high("medium")


class TestPrimaryPurpose:
    """Test the ordered purpose rules."""

    def test_component(self):
        """A component file names its first component and category."""
        components = ComponentContext(components=[Component(name="Card", category="presentation")])
        assert purpose_of("component", components=components) == (
            "Implements Card component for presentation functionality"
        )

    def test_utility_category(self):
        """A utility file reports its dominant function category."""
        functions = FunctionContext(
            functions=[
                FunctionDefinition(name="toRows", patterns=["data-transformation"]),
                FunctionDefinition(name="toCols", patterns=["data-transformation"]),
            ]
        )
        assert purpose_of("utility", functions=functions) == "Provides utility functions for data processing"

    def test_hook(self):
        """A hook file names its hook."""
        functions = FunctionContext(functions=[FunctionDefinition(name="useCart", is_hook=True)])
        assert purpose_of("hook", functions=functions) == "Provides custom hook functionality for useCart"

    def test_business_operations(self):
        """Business operations win over type-based fallbacks."""
        business = BusinessLogicContext(
            domain="payment",
            operations=[BusinessOperation(name="charge"), BusinessOperation(name="refund")],
        )
        assert purpose_of("service", business=business) == (
            "Implements payment business logic with 2 operations"
        )

    def test_api_route(self):
        """API route files describe endpoint handlers."""
        assert purpose_of("api-route") == "Implements API endpoint handlers for server-side logic"

    def test_fallback(self):
        """Unmatched files get a generic phrase built from the file type."""
        assert purpose_of("config") == "Provides config functionality"
        assert purpose_of("utility") == "Provides utility functionality"

    def test_secondary_purposes(self):
        """Function patterns map to secondary purposes in order."""
        functions = FunctionContext(
            functions=[FunctionDefinition(name="load", patterns=["error-handling", "api-integration"])]
        )
        assert determine_secondary_purposes(functions, ComponentContext(), BusinessLogicContext()) == [
            "Error handling and recovery",
            "External API integration",
        ]


class TestSemanticComplexity:
    """Test the per-axis complexity scores."""

    def test_axes_are_capped(self):
        """Each axis is clamped to ten."""
        functions = FunctionContext(functions=[FunctionDefinition(name=f"f{i}") for i in range(30)])
        complexity = analyze_semantic_complexity(functions, ComponentContext(), BusinessLogicContext())
        assert complexity.conceptual == 10.0
        assert complexity.overall == "medium"

    def test_overall_buckets_the_total(self):
        """The overall level buckets the combined counts."""
        functions = FunctionContext(functions=[FunctionDefinition(name=f"f{i}") for i in range(4)])
        components = ComponentContext(components=[Component(name="A"), Component(name="B")])
        business = BusinessLogicContext(operations=[BusinessOperation(name="x"), BusinessOperation(name="y")])

        complexity = analyze_semantic_complexity(functions, components, business)

        assert complexity.conceptual == pytest.approx(7.0)
        assert complexity.overall == bucket_complexity(complexity.total)

    @pytest.mark.parametrize(
        "text,expected",
        [("", "rare"), ("useState", "occasional"), ("a b a b a", "frequent"), ("x " * 6, "extensive")],
    )
    def test_usage_frequency(self, text, expected):
        """Occurrence counts map to frequency levels."""
        pattern = text.split()[0] if text else "useState"
        assert usage_frequency(pattern, text) == expected


class TestArchitecture:
    """Test layer inference and debt."""

    @pytest.mark.parametrize(
        "path,layer",
        [
            ("/repo/src/components/Card.tsx", "presentation"),
            ("/repo/src/api/users.ts", "business"),
            ("/repo/src/repositories/users.ts", "data"),
            ("/repo/src/helpers/dates.ts", "utility"),
            ("/repo/src/models/User.ts", "domain"),
            ("/repo/src/index.ts", "utility"),
        ],
    )
    def test_layer_from_path(self, path, layer):
        """Path segments decide the layer."""
        assert identify_layer(path, ComponentContext()).layer == layer

    def test_windows_separators(self):
        """Backslash paths are normalized first."""
        assert identify_layer("C:\\repo\\src\\services\\x.ts", ComponentContext()).layer == "business"

    def test_presentation_purity_penalty(self):
        """A presentation component calling external libraries loses purity."""
        components = ComponentContext(
            components=[Component(name="Card", external_libraries=[LibraryUse(name="axios")])]
        )

        info = identify_layer("/repo/src/components/Card.tsx", components)

        assert info.purity == pytest.approx(0.7)
        assert info.violations[0].severity == "high"

    def test_code_debt(self):
        """Complex functions accrue principal plus interest."""
        functions = FunctionContext(
            functions=[
                FunctionDefinition(name=f"f{i}", complexity=FunctionComplexity(cyclomatic=12))
                for i in range(2)
            ]
        )

        debt = calculate_debt(functions, ComponentContext())

        assert [item.type for item in debt.items] == ["code-debt"]
        assert debt.total == pytest.approx(17.6)

    def test_long_method_smell(self):
        """Functions over a hundred lines are a high-severity smell."""
        functions = FunctionContext(
            functions=[FunctionDefinition(name="big", complexity=FunctionComplexity(lines_of_code=120))]
        )
        smells = identify_code_smells(functions, ComponentContext())
        assert smells[0].type == "long-method"
        assert smells[0].severity == "high"


class TestPatterns:
    """Test design pattern detection."""

    def test_observer_without_cleanup(self):
        """Listeners without removal are flagged as misuse."""
        text = "window.addEventListener('resize', update);"

        detected = detect_patterns(ComponentContext(), text)

        assert [p.name for p in detected] == ["Observer"]
        assert identify_misuse(detected, text)[0].issue == "Missing cleanup in event listeners"

    def test_hoc_component(self):
        """HOC components are reported with their location."""
        components = ComponentContext(components=[Component(name="withAuth", is_hoc=True)])
        detected = detect_patterns(components, "")
        assert detected[0].name == HOC_PATTERN
        assert detected[0].location == "withAuth"

    def test_missing_command_pattern(self):
        """Many action handlers suggest the command pattern."""
        functions = FunctionContext(functions=[FunctionDefinition(name=f"handle{i}") for i in range(4)])
        missing = identify_missing_patterns(functions, ComponentContext())
        assert [m.pattern for m in missing] == ["Command Pattern"]

    def test_singleton_instance_accessor(self):
        """A static instance accessor is a Singleton."""
        text = (
            "export class Store {\n"
            "  private static instance: Store;\n"
            "  static getInstance() {\n"
            "    return Store.instance;\n"
            "  }\n"
            "}\n"
        )

        detected = detect_patterns(ComponentContext(), text)

        assert [(p.name, p.category, p.confidence) for p in detected] == [("Singleton", "creational", 0.8)]


class TestQuality:
    """Test 0-10 code quality scoring."""

    def test_scores_stay_in_range(self):
        """Quality scores are clamped to 0-10."""
        functions = FunctionContext(
            functions=[
                FunctionDefinition(
                    name="tmp",
                    is_pure=False,
                    complexity=FunctionComplexity(cyclomatic=30, lines_of_code=200),
                )
                for _ in range(10)
            ]
        )

        quality = analyze_code_quality(functions, ComponentContext(), TypeContext(), BusinessLogicContext())

        for score in (
            quality.readability.score,
            quality.testability.score,
            quality.performance.score,
            quality.maintainability.score,
            quality.overall_score,
        ):
            assert 0.0 <= score <= 10.0
        assert quality.testability.score == 0.0

    def test_eval_is_critical(self):
        """Calling eval is a critical code injection finding."""
        functions = FunctionContext(
            functions=[FunctionDefinition(name="run", dependencies=[FunctionDependency(name="eval")])]
        )

        metrics = security(functions, BusinessLogicContext())

        assert metrics.vulnerabilities[0].type == "Code Injection"
        assert metrics.score == 7.0
        assert metrics.risk_level == "medium"
        assert metrics.compliance_level == "standard"

    def test_sensitive_domain_without_validation(self):
        """A sensitive domain without validation is a high finding."""
        metrics = security(FunctionContext(), BusinessLogicContext(domain="auth"))
        assert metrics.vulnerabilities[0].severity == "high"
        assert metrics.score == 8.0


class TestSynthesizer:
    """Test the full semantic analysis."""

    def test_empty_extraction(self):
        """Empty records still give a complete, neutral analysis."""
        result = SemanticSynthesizer().analyze("utility", ExtractionContext(), "/repo/src/utils/x.ts", "")

        assert result.file_semantics.primary_purpose == "Provides utility functionality"
        assert result.file_semantics.complexity.overall == "low"
        assert result.architecture.layer.layer == "utility"
        assert 0.0 <= result.code_quality.overall_score <= 10.0

    def test_partial_records_are_normalized(self):
        """Missing fields in collaborator output are filled with defaults."""
        extraction = ExtractionContext.from_dict(
            {"functions": {"functions": [{"name": "toRows", "patterns": ["data-transformation"]}]}}
        )

        result = SemanticSynthesizer().analyze("utility", extraction, "/repo/src/utils/rows.ts", "")

        assert result.file_semantics.primary_purpose == "Provides utility functions for data processing"
        assert result.to_dict()["file_semantics"]["primary_purpose"].startswith("Provides")


ORDERS_PANEL = """import React, { useReducer } from 'react';
import { loadOrders } from 'orders-api';

function reducer(state, action) {
  return action.orders || state;
}

export default function OrdersPanel() {
  const [orders, dispatch] = useReducer(reducer, []);
  loadOrders().then((loaded) => dispatch({ orders: loaded }));
  return (
    <div>
      <span>{orders.length}</span>
    </div>
  );
}
"""


def mixed_component(name: str = "OrdersPanel") -> Component:
    """Reducer state, rendered markup and an API library in one component."""
    return Component(
        name=name,
        hooks=[HookUsage(type="reducer", name="useReducer")],
        markup=MarkupComplexity(element_count=2),
        external_libraries=[LibraryUse(name="orders-api")],
    )


def props(*names: str) -> list[Prop]:
    return [Prop(name=n) for n in names]


def params(count: int, type: str = "string") -> FunctionSignature:
    return FunctionSignature(parameters=[Parameter(name=f"p{i}", type=type) for i in range(count)])


class TestSingleResponsibility:
    """Test the SRP scorer."""

    def test_function_with_many_patterns(self):
        """More than two usage patterns scores three."""
        functions = FunctionContext(
            functions=[FunctionDefinition(name="sync", patterns=["validation", "api-integration", "caching"])]
        )

        result = analyze_single_responsibility(functions, ComponentContext())

        assert result.score == 3.0
        assert result.violations == [
            "Function sync has multiple responsibilities: validation, api-integration, caching"
        ]
        assert result.recommendations

    def test_component_mixing_state_markup_and_data(self):
        """A component with all three signals scores four; scores average over items."""
        functions = FunctionContext(functions=[FunctionDefinition(name="format")])
        components = ComponentContext(components=[mixed_component()])

        result = analyze_single_responsibility(functions, components)

        assert result.score == pytest.approx(7.0)
        assert result.violations == ["Component OrdersPanel handles business logic, UI and data"]

    def test_two_signals_are_fine(self):
        """Two of the three signals is not a violation."""
        component = mixed_component()
        component.external_libraries = []
        result = analyze_single_responsibility(FunctionContext(), ComponentContext(components=[component]))
        assert result.score == 10.0

    def test_empty(self):
        """Nothing to score is full compliance."""
        assert analyze_single_responsibility(FunctionContext(), ComponentContext()).score == 10.0


class TestReducerComponent:
    """Test principle scoring on a component read by the real extractors."""

    @pytest.fixture
    def extraction(self):
        path = "/repo/src/components/OrdersPanel.tsx"
        return ExtractorSuite.default(root="/repo").run(make_source(path, ORDERS_PANEL))

    def test_reducer_hook_type(self, extraction):
        """useReducer is typed as a reducer hook."""
        panel = next(c for c in extraction.components.components if c.name == "OrdersPanel")
        assert ("useReducer", "reducer") in [(h.name, h.type) for h in panel.hooks]

    def test_single_responsibility_flags_component(self, extraction):
        """State, markup and an API library together break SRP."""
        result = analyze_single_responsibility(extraction.functions, extraction.components)

        assert "Component OrdersPanel handles business logic, UI and data" in result.violations
        assert result.score < 10.0

    def test_separation_of_concerns_flags_component(self, extraction):
        """The same mix is a high separation-of-concerns violation."""
        result = analyze_separation_of_concerns(extraction.functions, extraction.components)

        assert [v.severity for v in result.violations if "OrdersPanel" in v.description] == ["high"]
        assert result.score <= 8.0


class TestSolidPenalties:
    """Test the open-closed, Liskov, interface segregation and dependency inversion scorers."""

    def test_open_closed(self):
        """Branching above eight costs two points per function."""
        functions = FunctionContext(
            functions=[
                FunctionDefinition(name="route", complexity=FunctionComplexity(cyclomatic=9)),
                FunctionDefinition(name="plain", complexity=FunctionComplexity(cyclomatic=8)),
            ]
        )

        result = analyze_open_closed(functions)

        assert result.score == 8.0
        assert len(result.violations) == 1
        assert "route" in result.violations[0]

    def test_liskov(self):
        """HOCs with anti-patterns and side-effecting any-typed functions cost three each."""
        components = ComponentContext(
            components=[Component(name="withAuth", is_hoc=True, anti_patterns=["inline-styles"])]
        )
        functions = FunctionContext(
            functions=[
                FunctionDefinition(
                    name="save",
                    signature=params(1, type="any"),
                    side_effects=[SideEffect(type="storage", description="localStorage write")],
                )
            ]
        )

        result = analyze_liskov_substitution(functions, components)

        assert result.score == 4.0
        assert result.violations == [
            "HOC withAuth may not be substitutable with base component",
            "Function save with 'any' parameters may violate LSP",
        ]

    def test_liskov_clamps_at_zero(self):
        """The score never drops below zero."""
        components = ComponentContext(
            components=[Component(name=f"with{i}", is_hoc=True, anti_patterns=["x"]) for i in range(4)]
        )
        assert analyze_liskov_substitution(FunctionContext(), components).score == 0.0

    def test_interface_too_large(self):
        """More than fifteen props is a violation even when all are used."""
        names = [f"p{i}" for i in range(16)]
        component = Component(name="Grid", props=props(*names), main_function_dependencies=names)

        result = analyze_interface_segregation(FunctionContext(), ComponentContext(components=[component]))

        assert result.violations == ["Component Grid has 16 props - interface too large"]
        assert result.score == 8.0

    def test_unused_props(self):
        """More than 30% unused props is a violation."""
        component = Component(
            name="Card", props=props("a", "b", "c", "d"), main_function_dependencies=["a", "b"]
        )

        result = analyze_interface_segregation(FunctionContext(), ComponentContext(components=[component]))

        assert result.violations == ["Component Card ignores 2 of its props"]

    def test_too_many_parameters(self):
        """More than seven parameters is a violation."""
        functions = FunctionContext(
            functions=[
                FunctionDefinition(name="build", signature=params(8)),
                FunctionDefinition(name="small", signature=params(7)),
            ]
        )

        result = analyze_interface_segregation(functions, ComponentContext())

        assert result.violations == ["Function build has 8 parameters - too many dependencies"]

    def test_dependency_inversion(self):
        """Hard-coded fetch calls and concrete service libraries cost two each."""
        functions = FunctionContext(
            functions=[
                FunctionDefinition(
                    name="load",
                    side_effects=[SideEffect(type="api-call", description="fetch('/api/users')")],
                )
            ]
        )
        components = ComponentContext(
            components=[Component(name="Users", external_libraries=[LibraryUse(name="user-service")])]
        )

        result = analyze_dependency_inversion(functions, components)

        assert result.score == 6.0
        assert len(result.violations) == 2


class TestDryKissYagni:
    """Test the DRY, KISS and YAGNI scorers."""

    def test_dry_groups_by_primary_pattern(self):
        """Functions sharing a primary pattern are one duplicated concept."""
        functions = FunctionContext(
            functions=[
                FunctionDefinition(name="checkEmail", patterns=["validation"]),
                FunctionDefinition(name="checkPhone", patterns=["validation"]),
                FunctionDefinition(name="toRows", patterns=["data-transformation"]),
            ]
        )

        result = analyze_dry(functions, ComponentContext())

        assert [(d.concept, d.instances) for d in result.duplicated_concepts] == [
            ("validation", ["checkEmail", "checkPhone"])
        ]
        assert result.duplicated_concepts[0].consolidation_complexity == "medium"
        assert result.duplication_level == 9.0

    def test_dry_similar_components(self):
        """Components sharing a category can be consolidated."""
        components = ComponentContext(
            components=[Component(name="A", category="form"), Component(name="B", category="form")]
        )
        result = analyze_dry(FunctionContext(), components)
        assert result.consolidation_opportunities == ["Create reusable form component"]

    def test_dry_clamps_at_zero(self):
        """The duplication level never drops below zero."""
        functions = FunctionContext(
            functions=[
                FunctionDefinition(name=f"f{i}{j}", patterns=[f"pattern-{i}"])
                for i in range(11)
                for j in range(2)
            ]
        )
        assert analyze_dry(functions, ComponentContext()).duplication_level == 0.0

    def test_kiss(self):
        """Complexity above ten and more than five parameters each cost a point."""
        functions = FunctionContext(
            functions=[
                FunctionDefinition(
                    name="parse", complexity=FunctionComplexity(cyclomatic=11), signature=params(6)
                )
            ]
        )
        components = ComponentContext(
            components=[Component(name="Tree", markup=MarkupComplexity(nesting_depth=7))]
        )

        result = analyze_kiss(functions, components)

        assert result.score == 7.0
        assert len(result.violations) == 3
        assert len(result.simplifications) == 3

    def test_kiss_clamps_at_zero(self):
        """The KISS score never drops below zero."""
        functions = FunctionContext(
            functions=[
                FunctionDefinition(
                    name=f"f{i}", complexity=FunctionComplexity(cyclomatic=20), signature=params(6)
                )
                for i in range(6)
            ]
        )
        assert analyze_kiss(functions, ComponentContext()).score == 0.0

    def test_yagni(self):
        """Over-engineering and extra use cases each cost a point."""
        functions = FunctionContext(
            functions=[
                FunctionDefinition(
                    name="pad",
                    patterns=["utility-function"],
                    complexity=FunctionComplexity(cyclomatic=9),
                ),
                FunctionDefinition(
                    name="merge", signature=FunctionSignature(generics=["A", "B", "C", "D"])
                ),
            ]
        )
        components = ComponentContext(
            components=[
                Component(
                    name="Table",
                    props=props(*[f"p{i}" for i in range(21)]),
                    usage_patterns=["a", "b", "c", "d", "e", "f"],
                )
            ]
        )

        result = analyze_yagni(functions, components, BusinessLogicContext())

        assert len(result.over_engineering) == 3
        assert result.unnecessary_features == ["Component Table handles too many different use cases"]
        assert result.score == 6.0

    def test_yagni_clamps_at_zero(self):
        """The YAGNI score never drops below zero."""
        business = BusinessLogicContext(
            operations=[
                BusinessOperation(name=f"op{i}", complexity="high", inputs=[f"in{j}" for j in range(11)])
                for i in range(11)
            ]
        )
        assert analyze_yagni(FunctionContext(), ComponentContext(), business).score == 0.0


class TestDesignPrinciples:
    """Test the combined adherence score."""

    def test_clean_code_adheres_fully(self):
        """No violations anywhere gives full adherence."""
        result = analyze_design_principles(FunctionContext(), ComponentContext(), BusinessLogicContext())
        assert result.overall_adherence == pytest.approx(1.0)

    def test_one_open_closed_violation(self):
        """Only the open-closed score drops, to eight."""
        functions = FunctionContext(
            functions=[FunctionDefinition(name="route", complexity=FunctionComplexity(cyclomatic=9))]
        )

        result = analyze_design_principles(functions, ComponentContext(), BusinessLogicContext())

        assert result.solid.scores() == [10.0, 8.0, 10.0, 10.0, 10.0]
        assert result.overall_adherence == pytest.approx(0.99)

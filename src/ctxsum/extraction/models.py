"""Data models for the five per-file extraction records.

Collaborators may hand back partial records, so every model has a
``from_dict`` constructor that fills absent fields with explicit empty
defaults. Downstream stages can then read any field without guarding.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any

ComplexityLevel = str  # "low" | "medium" | "high" | "very-high"


def _build(cls: type, data: dict[str, Any] | None, nested: dict[str, Any] | None = None) -> Any:
    """Construct ``cls`` from a possibly partial dict.

    ``nested`` maps a field name to either a model class (single record) or a
    one-element list holding a model class (list of records).
    """
    data = data or {}
    nested = nested or {}
    names = {f.name for f in fields(cls)}
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        if key not in names or value is None:
            continue
        spec = nested.get(key)
        if isinstance(spec, list):
            kwargs[key] = [
                item if isinstance(item, spec[0]) else spec[0].from_dict(item)
                for item in value
            ]
        elif spec is not None and not isinstance(value, spec):
            kwargs[key] = spec.from_dict(value)
        else:
            kwargs[key] = value
    return cls(**kwargs)


class Record:
    """Mixin giving dataclass records a dict projection."""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)  # type: ignore[call-overload]


# --- dependencies -----------------------------------------------------------


@dataclass
class ExternalDependency(Record):
    """A third-party package imported by the file."""

    name: str = ""
    purpose: str = "utility"
    criticality: str = "medium"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ExternalDependency:
        return _build(cls, data)


@dataclass
class InternalDependency(Record):
    """A project-local module imported by the file."""

    path: str = ""
    relationship: str = "utility-consumer"
    usage_type: str = "utility"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> InternalDependency:
        return _build(cls, data)


@dataclass
class FrameworkDependency(Record):
    """Framework-specific imports: hooks, components and idioms."""

    hooks: list[str] = field(default_factory=list)
    components: list[str] = field(default_factory=list)
    patterns: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> FrameworkDependency:
        return _build(cls, data)


@dataclass
class DependencyContext(Record):
    """What a file imports."""

    external: list[ExternalDependency] = field(default_factory=list)
    internal: list[InternalDependency] = field(default_factory=list)
    framework_specific: list[FrameworkDependency] = field(default_factory=list)
    utility_imports: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> DependencyContext:
        return _build(
            cls,
            data,
            {
                "external": [ExternalDependency],
                "internal": [InternalDependency],
                "framework_specific": [FrameworkDependency],
            },
        )


# --- functions --------------------------------------------------------------


@dataclass
class Parameter(Record):
    name: str = ""
    type: str = "unknown"
    optional: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Parameter:
        return _build(cls, data)


@dataclass
class FunctionSignature(Record):
    parameters: list[Parameter] = field(default_factory=list)
    return_type: str = "void"
    generics: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> FunctionSignature:
        return _build(cls, data, {"parameters": [Parameter]})


@dataclass
class FunctionComplexity(Record):
    cyclomatic: int = 1
    cognitive: int = 0
    lines_of_code: int = 0
    nesting_depth: int = 0
    level: ComplexityLevel = "low"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> FunctionComplexity:
        return _build(cls, data)


@dataclass
class SideEffect(Record):
    """An observable effect: api-call, dom-manipulation, storage, navigation."""

    type: str = ""
    description: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> SideEffect:
        return _build(cls, data)


@dataclass
class FunctionDependency(Record):
    name: str = ""
    type: str = "function"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> FunctionDependency:
        return _build(cls, data)


@dataclass
class FunctionDefinition(Record):
    """One function, method or arrow function."""

    name: str = ""
    kind: str = "function"
    signature: FunctionSignature = field(default_factory=FunctionSignature)
    complexity: FunctionComplexity = field(default_factory=FunctionComplexity)
    patterns: list[str] = field(default_factory=list)
    """Usage patterns such as data-transformation, validation, event-handling."""
    is_component: bool = False
    is_hook: bool = False
    is_async: bool = False
    is_pure: bool = True
    side_effects: list[SideEffect] = field(default_factory=list)
    dependencies: list[FunctionDependency] = field(default_factory=list)
    is_exported: bool = False
    description: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> FunctionDefinition:
        return _build(
            cls,
            data,
            {
                "signature": FunctionSignature,
                "complexity": FunctionComplexity,
                "side_effects": [SideEffect],
                "dependencies": [FunctionDependency],
            },
        )


@dataclass
class CallEdge(Record):
    caller: str = ""
    callee: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> CallEdge:
        return _build(cls, data)


@dataclass
class FunctionComplexitySummary(Record):
    total_functions: int = 0
    average_complexity: float = 0.0
    high_complexity_count: int = 0
    max_nesting_depth: int = 0
    total_lines_of_code: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> FunctionComplexitySummary:
        return _build(cls, data)


@dataclass
class FunctionPatterns(Record):
    functional: list[str] = field(default_factory=list)
    framework: list[str] = field(default_factory=list)
    async_patterns: list[str] = field(default_factory=list)
    error_handling: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> FunctionPatterns:
        return _build(cls, data)


@dataclass
class FunctionContext(Record):
    """All functions in a file plus call graph and aggregate complexity."""

    functions: list[FunctionDefinition] = field(default_factory=list)
    call_graph: list[CallEdge] = field(default_factory=list)
    complexity: FunctionComplexitySummary = field(default_factory=FunctionComplexitySummary)
    patterns: FunctionPatterns = field(default_factory=FunctionPatterns)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> FunctionContext:
        return _build(
            cls,
            data,
            {
                "functions": [FunctionDefinition],
                "call_graph": [CallEdge],
                "complexity": FunctionComplexitySummary,
                "patterns": FunctionPatterns,
            },
        )


# --- types ------------------------------------------------------------------


@dataclass
class TypeProperty(Record):
    name: str = ""
    type: str = "unknown"
    optional: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> TypeProperty:
        return _build(cls, data)


@dataclass
class TypeDefinition(Record):
    """An interface, type alias, enum or class declaration."""

    name: str = ""
    kind: str = "interface"
    is_exported: bool = False
    description: str = ""
    properties: list[TypeProperty] = field(default_factory=list)
    extends: list[str] = field(default_factory=list)
    generics: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> TypeDefinition:
        return _build(cls, data, {"properties": [TypeProperty]})


@dataclass
class TypeRelationship(Record):
    source: str = ""
    target: str = ""
    kind: str = "extends"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> TypeRelationship:
        return _build(cls, data)


@dataclass
class TypeContext(Record):
    """Declared types, type imports and exports."""

    definitions: list[TypeDefinition] = field(default_factory=list)
    imports: list[str] = field(default_factory=list)
    exports: list[str] = field(default_factory=list)
    relationships: list[TypeRelationship] = field(default_factory=list)
    complexity: ComplexityLevel = "low"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> TypeContext:
        return _build(
            cls,
            data,
            {"definitions": [TypeDefinition], "relationships": [TypeRelationship]},
        )


# --- components -------------------------------------------------------------


@dataclass
class Prop(Record):
    name: str = ""
    type: str = "unknown"
    required: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Prop:
        return _build(cls, data)


@dataclass
class HookUsage(Record):
    type: str = ""
    name: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> HookUsage:
        return _build(cls, data)


@dataclass
class MarkupComplexity(Record):
    element_count: int = 0
    nesting_depth: int = 0
    complexity_score: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> MarkupComplexity:
        return _build(cls, data)


@dataclass
class LibraryUse(Record):
    name: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> LibraryUse:
        return _build(cls, data)


@dataclass
class ChildComponent(Record):
    name: str = ""
    relationship: str = "child"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ChildComponent:
        return _build(cls, data)


@dataclass
class Component(Record):
    """A UI component with its inputs, state and render structure."""

    name: str = ""
    type: str = "functional"
    category: str = "ui"
    is_exported: bool = False
    description: str = ""
    complexity: ComplexityLevel = "low"
    props: list[Prop] = field(default_factory=list)
    hooks: list[HookUsage] = field(default_factory=list)
    state: list[str] = field(default_factory=list)
    markup: MarkupComplexity = field(default_factory=MarkupComplexity)
    is_hoc: bool = False
    is_render_prop: bool = False
    memoized: bool = False
    lazy: bool = False
    external_libraries: list[LibraryUse] = field(default_factory=list)
    internal_components: list[ChildComponent] = field(default_factory=list)
    main_function_dependencies: list[str] = field(default_factory=list)
    """Identifiers the render function reads; unused props are those absent here."""
    helper_functions: list[str] = field(default_factory=list)
    render_methods: list[str] = field(default_factory=list)
    anti_patterns: list[str] = field(default_factory=list)
    usage_patterns: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Component:
        return _build(
            cls,
            data,
            {
                "props": [Prop],
                "hooks": [HookUsage],
                "markup": MarkupComplexity,
                "external_libraries": [LibraryUse],
                "internal_components": [ChildComponent],
            },
        )


@dataclass
class ComponentRelationship(Record):
    source: str = ""
    target: str = ""
    type: str = "renders"

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ComponentRelationship:
        return _build(cls, data)


@dataclass
class ComponentQuality(Record):
    testability: float = 0.0
    accessibility: float = 0.0
    performance: float = 0.0
    maintainability: float = 0.0
    reusability: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ComponentQuality:
        return _build(cls, data)


@dataclass
class ComponentContext(Record):
    components: list[Component] = field(default_factory=list)
    relationships: list[ComponentRelationship] = field(default_factory=list)
    patterns: list[str] = field(default_factory=list)
    architecture: str = "unknown"
    quality: ComponentQuality = field(default_factory=ComponentQuality)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ComponentContext:
        return _build(
            cls,
            data,
            {
                "components": [Component],
                "relationships": [ComponentRelationship],
                "quality": ComponentQuality,
            },
        )


# --- business logic ---------------------------------------------------------


@dataclass
class BusinessOperation(Record):
    name: str = ""
    purpose: str = ""
    complexity: ComplexityLevel = "low"
    inputs: list[str] = field(default_factory=list)
    outputs: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> BusinessOperation:
        return _build(cls, data)


@dataclass
class BusinessRule(Record):
    """A named rule, workflow, validation or transformation signal."""

    name: str = ""
    description: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> BusinessRule:
        return _build(cls, data)


@dataclass
class ApiDependency(Record):
    name: str = ""
    endpoint: str = ""
    retries: int = 0
    fallback: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ApiDependency:
        return _build(cls, data)


@dataclass
class BusinessDependencies(Record):
    external_services: list[str] = field(default_factory=list)
    databases: list[str] = field(default_factory=list)
    apis: list[ApiDependency] = field(default_factory=list)
    libraries: list[str] = field(default_factory=list)
    configurations: list[str] = field(default_factory=list)
    resources: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> BusinessDependencies:
        return _build(cls, data, {"apis": [ApiDependency]})


@dataclass
class BusinessQuality(Record):
    reliability: float = 0.0
    overall_score: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> BusinessQuality:
        return _build(cls, data)


@dataclass
class BusinessLogicContext(Record):
    """Domain signals: operations, rules, workflows and their dependencies."""

    domain: str = "general"
    operations: list[BusinessOperation] = field(default_factory=list)
    rules: list[BusinessRule] = field(default_factory=list)
    workflows: list[BusinessRule] = field(default_factory=list)
    validations: list[BusinessRule] = field(default_factory=list)
    transformations: list[BusinessRule] = field(default_factory=list)
    dependencies: BusinessDependencies = field(default_factory=BusinessDependencies)
    quality: BusinessQuality = field(default_factory=BusinessQuality)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> BusinessLogicContext:
        return _build(
            cls,
            data,
            {
                "operations": [BusinessOperation],
                "rules": [BusinessRule],
                "workflows": [BusinessRule],
                "validations": [BusinessRule],
                "transformations": [BusinessRule],
                "dependencies": BusinessDependencies,
                "quality": BusinessQuality,
            },
        )


@dataclass
class ExtractionContext(Record):
    """The five records produced for one file."""

    dependencies: DependencyContext = field(default_factory=DependencyContext)
    functions: FunctionContext = field(default_factory=FunctionContext)
    types: TypeContext = field(default_factory=TypeContext)
    components: ComponentContext = field(default_factory=ComponentContext)
    business_logic: BusinessLogicContext = field(default_factory=BusinessLogicContext)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> ExtractionContext:
        return _build(
            cls,
            data,
            {
                "dependencies": DependencyContext,
                "functions": FunctionContext,
                "types": TypeContext,
                "components": ComponentContext,
                "business_logic": BusinessLogicContext,
            },
        )


def normalize(record: Any, cls: type) -> Any:
    """Coerce a collaborator's output (record, dict or None) into ``cls``."""
    if isinstance(record, cls):
        return record
    if record is None or isinstance(record, dict):
        return cls.from_dict(record)
    raise TypeError(f"Cannot normalize {type(record).__name__} into {cls.__name__}")

"""UI component extraction: props, hooks, state, markup and quality."""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Callable
from typing import TYPE_CHECKING

from tree_sitter import Node

from ctxsum.extraction.dependencies import iter_imports, package_name
from ctxsum.extraction.functions import (
    COMPONENT_NAME_RE,
    FunctionExtractor,
    FunctionNode,
    leading_doc,
)
from ctxsum.extraction.models import (
    ChildComponent,
    Component,
    ComponentContext,
    ComponentQuality,
    ComponentRelationship,
    HookUsage,
    LibraryUse,
    MarkupComplexity,
    Prop,
    TypeProperty,
)
from ctxsum.extraction.treesitter import (
    MARKUP_NODES,
    cyclomatic_complexity,
    find_child_by_type,
    find_children_by_type,
    get_node_text,
    markup_depth,
    walk,
)
from ctxsum.extraction.types import declared_types, object_members
from ctxsum.semantics.complexity import bucket_complexity, is_high

if TYPE_CHECKING:
    from ctxsum.scanner import SourceFile

HOOK_CALL_RE = re.compile(r"\b(use[A-Z]\w*)\s*\(")
STATE_RE = re.compile(r"const\s*\[\s*([^,\]\s]+)\s*,[^\]]*\]\s*=\s*(?:React\.)?use(?:State|Reducer)\b")
CONTEXT_RE = re.compile(r"useContext\(([^)]+)\)")
HOC_NAME_RE = re.compile(r"^with[A-Z]")
EVENT_HANDLER_RE = re.compile(r"\bon[A-Z]\w*=")
ELEMENT_RE = re.compile(r"<[A-Z]")
IMG_WITHOUT_ALT_RE = re.compile(r"<img\b(?![^>]*\balt=)[^>]*>")
CLICKABLE_DIV_RE = re.compile(r"<(?:div|span)\b[^>]*\bonClick=")

# (substring in hook name, hook type), first match wins
HOOK_TYPES: list[tuple[str, str]] = [
    ("State", "state"),
    ("Effect", "effect"),
    ("Context", "context"),
    ("Ref", "ref"),
    ("Memo", "memo"),
    ("Callback", "callback"),
    ("Reducer", "reducer"),
]

EXPENSIVE_OPERATIONS = (".sort(", ".filter(", ".reduce(", "JSON.parse(", "JSON.stringify(")
LIFECYCLE_METHODS = {
    "constructor",
    "render",
    "componentDidMount",
    "componentDidUpdate",
    "componentWillUnmount",
    "shouldComponentUpdate",
    "getDerivedStateFromProps",
    "getSnapshotBeforeUpdate",
    "componentDidCatch",
}

# (anti-pattern, predicate over the component and its source text)
ANTI_PATTERN_RULES: list[tuple[str, Callable[[Component, str], bool]]] = [
    ("too-many-props", lambda c, text: len(c.props) > 10),
    ("large-component", lambda c, text: c.markup.element_count > 50),
    ("inline-styles", lambda c, text: "style={{" in text),
    ("index-as-key", lambda c, text: bool(re.search(r"key=\{\s*(?:index|idx|i)\s*\}", text))),
    ("direct-dom-access", lambda c, text: "document." in text),
    ("excessive-state", lambda c, text: len(c.state) > 5),
]


def _lower_has(text: str, *words: str) -> bool:
    lowered = text.lower()
    return any(word in lowered for word in words)


# Ordered (predicate over component name, component text, category); first match wins
CATEGORY_RULES: list[tuple[Callable[[Component, str], bool], str]] = [
    (lambda c, text: _lower_has(c.name, "page", "route", "screen"), "page"),
    (lambda c, text: _lower_has(c.name, "layout", "template", "wrapper"), "layout"),
    (lambda c, text: bool(c.state) and c.complexity != "low", "container"),
    (lambda c, text: _lower_has(c.name, "form") or _lower_has(text, "onsubmit", "validation"), "form"),
    (lambda c, text: _lower_has(c.name, "nav", "menu", "tab", "breadcrumb"), "navigation"),
    (lambda c, text: _lower_has(c.name, "provider") or _lower_has(text, "context.provider"), "provider"),
    (lambda c, text: not c.state and c.complexity == "low", "presentation"),
]


def hook_type(name: str) -> str:
    for marker, kind in HOOK_TYPES:
        if marker in name:
            return kind
    return "custom"


def categorize(component: Component, text: str) -> str:
    for matches, category in CATEGORY_RULES:
        if matches(component, text):
            return category
    return "utility"


def _is_logical_and(node: Node) -> bool:
    if node.type != "binary_expression":
        return False
    operator = node.child_by_field_name("operator")
    return operator is not None and operator.type == "&&"


def markup_complexity(body: Node, text: str) -> MarkupComplexity:
    """Markup score: elements + depth x 2 + conditionals x 3 + maps x 2 + dynamic props + handlers."""
    element_count = sum(
        1 for n in walk(body) if n.type in ("jsx_element", "jsx_self_closing_element")
    )
    depth = markup_depth(body)
    conditionals = 0
    dynamic_props = 0
    for n in walk(body):
        if n.type == "jsx_expression":
            conditionals += sum(
                1
                for inner in walk(n)
                if inner.type == "ternary_expression" or _is_logical_and(inner)
            )
        elif n.type == "jsx_attribute" and find_child_by_type(n, "jsx_expression") is not None:
            dynamic_props += 1
    maps = text.count(".map(")
    score = (
        len(ELEMENT_RE.findall(text))
        + depth * 2
        + conditionals * 3
        + maps * 2
        + dynamic_props
        + len(EVENT_HANDLER_RE.findall(text))
    )
    return MarkupComplexity(element_count=element_count, nesting_depth=depth, complexity_score=float(score))


def _contains(outer: Node, inner: Node) -> bool:
    return (
        outer.start_byte <= inner.start_byte
        and inner.end_byte <= outer.end_byte
        and outer.id != inner.id
    )


def _child_components(body: Node, own_name: str) -> list[str]:
    names: list[str] = []
    for n in walk(body):
        if n.type not in ("jsx_opening_element", "jsx_self_closing_element"):
            continue
        tag = n.child_by_field_name("name")
        if tag is None:
            continue
        name = get_node_text(tag)
        if COMPONENT_NAME_RE.match(name) and name != own_name and name not in names:
            names.append(name)
    return names


def _identifiers(body: Node) -> list[str]:
    seen: list[str] = []
    for n in walk(body):
        if n.type in ("identifier", "shorthand_property_identifier", "property_identifier"):
            name = get_node_text(n)
            if name not in seen:
                seen.append(name)
    return seen


def _props_from_type(type_text: str, declared: dict[str, list[TypeProperty]]) -> list[Prop] | None:
    name = type_text.split("<")[0].strip()
    if name in declared:
        return [Prop(name=p.name, type=p.type, required=not p.optional) for p in declared[name]]
    return None


def extract_props(node: Node, declared: dict[str, list[TypeProperty]]) -> list[Prop]:
    """Props from the first parameter: its type when known, else its destructuring."""
    params = node.child_by_field_name("parameters")
    first = params.named_children[0] if params is not None and params.named_children else None
    if first is None:
        return []

    pattern = first.child_by_field_name("pattern") if first.type.endswith("_parameter") else first
    annotation = first.child_by_field_name("type") if first.type.endswith("_parameter") else None

    if annotation is not None:
        type_node = annotation.named_children[0] if annotation.named_children else None
        if type_node is not None and type_node.type == "object_type":
            return [
                Prop(name=p.name, type=p.type, required=not p.optional)
                for p in object_members(type_node)
            ]
        if type_node is not None:
            from_type = _props_from_type(get_node_text(type_node), declared)
            if from_type is not None:
                return from_type

    props: list[Prop] = []
    if pattern is not None and pattern.type == "object_pattern":
        for child in pattern.named_children:
            if child.type == "shorthand_property_identifier_pattern":
                props.append(Prop(name=get_node_text(child), required=True))
            elif child.type == "pair_pattern":
                key = child.child_by_field_name("key")
                props.append(Prop(name=get_node_text(key or child), required=True))
            elif child.type == "object_assignment_pattern":
                left = child.child_by_field_name("left")
                props.append(Prop(name=get_node_text(left or child), required=False))
    return props


class ComponentExtractor:
    """Extract UI components: PascalCase functions returning markup, HOCs and class components."""

    def __init__(self, functions: FunctionExtractor | None = None):
        self.functions = functions or FunctionExtractor()

    def extract(self, source: SourceFile) -> ComponentContext:
        if source.tree is None or source.text is None:
            return ComponentContext()
        root = source.tree.root_node
        text = source.text

        declared = {d.name: d.properties for d in declared_types(root)}
        imports = iter_imports(root)
        external_names = {
            name: package_name(imp.module)
            for imp in imports
            if not imp.is_internal and not imp.module.startswith("react")
            for name in imp.names
        }
        internal_names = {name for imp in imports if imp.is_internal for name in imp.names}

        found = self.functions.collect(source)
        components: list[Component] = []
        for fn in found:
            definition = fn.definition
            candidate = definition.is_component or (
                HOC_NAME_RE.match(definition.name) is not None
                and any(n.type in MARKUP_NODES for n in walk(fn.body))
            )
            if not candidate or any(_contains(c.node, fn.node) for c in found if c.definition.is_component):
                continue
            helpers = [other.definition.name for other in found if _contains(fn.node, other.node)]
            components.append(
                self._functional_component(fn, helpers, declared, external_names, text)
            )

        for node in walk(root):
            if node.type == "class_declaration":
                component = self._class_component(node, declared, external_names, text)
                if component is not None:
                    components.append(component)

        return ComponentContext(
            components=components,
            relationships=component_relationships(components, internal_names),
            patterns=common_patterns(components),
            architecture=architecture(components),
            quality=component_quality(components, text),
        )

    def _finish(self, component: Component, body: Node, raw: float, component_text: str, file_text: str,
                external_names: dict[str, str]) -> Component:
        component.hooks = [
            HookUsage(type=hook_type(name), name=name)
            for name in dict.fromkeys(HOOK_CALL_RE.findall(component_text))
        ]
        component.markup = markup_complexity(body, component_text)
        component.internal_components = [
            ChildComponent(name=name) for name in _child_components(body, component.name)
        ]
        component.main_function_dependencies = _identifiers(body)
        component.external_libraries = [
            LibraryUse(name=package)
            for package in dict.fromkeys(
                package
                for name, package in external_names.items()
                if name in component.main_function_dependencies
            )
        ]
        component.lazy = "lazy(" in file_text
        component.complexity = bucket_complexity(
            raw
            + len(component.props) * 0.5
            + len(component.hooks)
            + len(component.state) * 1.5
            + component.markup.complexity_score / 5
        )
        component.category = categorize(component, component_text)
        component.is_render_prop = (
            "children(" in component_text
            or "render(" in component_text
            or any(p.name == "render" or (p.name == "children" and "=>" in p.type) for p in component.props)
        )
        component.anti_patterns = [
            name for name, matches in ANTI_PATTERN_RULES if matches(component, component_text)
        ]
        component.usage_patterns = usage_patterns(component, component_text)
        return component

    def _functional_component(
        self,
        fn: FunctionNode,
        helpers: list[str],
        declared: dict[str, list[TypeProperty]],
        external_names: dict[str, str],
        file_text: str,
    ) -> Component:
        definition = fn.definition
        component_text = get_node_text(fn.node)
        component = Component(
            name=definition.name,
            type="functional",
            is_exported=definition.is_exported,
            description=definition.description,
            props=extract_props(fn.node, declared),
            state=[s.strip() for s in STATE_RE.findall(component_text)],
            is_hoc=(
                "return function" in component_text
                or "return (props" in component_text
                or HOC_NAME_RE.match(definition.name) is not None
            ),
            memoized=bool(re.search(rf"memo\(\s*{re.escape(definition.name)}\b", file_text))
            or _wrapped_in_memo(fn.node),
            helper_functions=helpers,
            render_methods=[h for h in helpers if h.startswith("render")],
        )
        return self._finish(
            component,
            fn.body,
            definition.complexity.cyclomatic - 1,
            component_text,
            file_text,
            external_names,
        )

    def _class_component(
        self,
        node: Node,
        declared: dict[str, list[TypeProperty]],
        external_names: dict[str, str],
        file_text: str,
    ) -> Component | None:
        name_node = node.child_by_field_name("name")
        heritage = find_child_by_type(node, "class_heritage")
        body = node.child_by_field_name("body")
        if name_node is None or heritage is None or body is None:
            return None
        heritage_text = get_node_text(heritage)
        if "Component" not in heritage_text:
            return None

        methods = [
            get_node_text(m.child_by_field_name("name"))
            for m in find_children_by_type(body, "method_definition")
            if m.child_by_field_name("name") is not None
        ]
        if "render" not in methods:
            return None

        props: list[Prop] = []
        type_args = re.search(r"Component<\s*(\w+)", heritage_text)
        if type_args:
            props = _props_from_type(type_args.group(1), declared) or []

        component_text = get_node_text(node)
        name = get_node_text(name_node)
        statement = node.parent
        component = Component(
            name=name,
            type="class",
            is_exported=statement is not None and statement.type == "export_statement",
            description=leading_doc(node),
            props=props,
            state=["state"] if "this.state" in component_text else [],
            memoized="PureComponent" in heritage_text,
            helper_functions=[m for m in methods if m not in LIFECYCLE_METHODS],
            render_methods=[m for m in methods if m.startswith("render") and m != "render"],
        )
        return self._finish(
            component, body, cyclomatic_complexity(body) - 1, component_text, file_text, external_names
        )


def _wrapped_in_memo(node: Node) -> bool:
    current = node.parent
    for _ in range(2):
        if current is None:
            return False
        if current.type == "call_expression":
            callee = current.child_by_field_name("function")
            return callee is not None and get_node_text(callee) in ("memo", "React.memo")
        current = current.parent
    return False


def usage_patterns(component: Component, text: str) -> list[str]:
    patterns = ["class-component" if component.type == "class" else "functional-component"]
    if component.hooks:
        patterns.append("hooks")
    if component.state:
        patterns.append("local-state")
    if component.is_hoc:
        patterns.append("higher-order-component")
    if component.is_render_prop:
        patterns.append("render-props")
    if component.memoized:
        patterns.append("memoization")
    if component.lazy:
        patterns.append("lazy-loading")
    if ".Provider" in text:
        patterns.append("context-provider")
    if CONTEXT_RE.search(text):
        patterns.append("context-consumer")
    if ".map(" in text:
        patterns.append("list-rendering")
    return patterns


def common_patterns(components: list[Component]) -> list[str]:
    counts = Counter(p for c in components for p in c.usage_patterns)
    return [pattern for pattern, count in counts.items() if count >= 2]


def component_relationships(
    components: list[Component], internal_names: set[str]
) -> list[ComponentRelationship]:
    relationships: list[ComponentRelationship] = []
    for component in components:
        for child in component.internal_components:
            relationships.append(
                ComponentRelationship(source=component.name, target=child.name, type="renders")
            )
            if child.name in internal_names:
                relationships.append(
                    ComponentRelationship(source=component.name, target=child.name, type="imports")
                )
    return relationships


def architecture(components: list[Component]) -> str:
    if not components:
        return "unknown"
    average_nesting = sum(c.markup.nesting_depth for c in components) / len(components)
    if average_nesting > 5:
        return "nested"
    if any(c.category == "page" for c in components):
        return "feature-based"
    if all(c.category == "presentation" for c in components):
        return "atomic"
    return "flat"


def _clamp(score: float) -> float:
    return max(0.0, min(100.0, score))


def component_quality(components: list[Component], text: str) -> ComponentQuality:
    """Quality on a 0-100 scale, averaged over the file's components."""
    if not components:
        return ComponentQuality()
    n = len(components)

    testability = sum(
        _clamp(100 - (15 if "document." in text else 0) - 5 * max(0, len(c.hooks) - 3) - 5 * len(c.state))
        for c in components
    ) / n
    accessibility = _clamp(
        100 - 15 * len(IMG_WITHOUT_ALT_RE.findall(text)) - 10 * len(CLICKABLE_DIV_RE.findall(text))
    )
    expensive = sum(text.count(op) for op in EXPENSIVE_OPERATIONS)
    performance = sum(
        _clamp(100 - 10 * expensive + 10 * c.memoized + 10 * c.lazy) for c in components
    ) / n
    high_share = sum(1 for c in components if is_high(c.complexity)) / n
    maintainability = _clamp(
        100 - high_share * 50 - 5 * sum(len(c.anti_patterns) for c in components)
    )
    reusability = sum(1 for c in components if c.category in ("presentation", "utility")) / n * 100

    return ComponentQuality(
        testability=testability,
        accessibility=accessibility,
        performance=performance,
        maintainability=maintainability,
        reusability=reusability,
    )

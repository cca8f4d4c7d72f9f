"""Function extraction: signatures, complexity, usage patterns and side effects."""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from tree_sitter import Node

from ctxsum.extraction.models import (
    CallEdge,
    FunctionComplexity,
    FunctionComplexitySummary,
    FunctionContext,
    FunctionDefinition,
    FunctionDependency,
    FunctionPatterns,
    FunctionSignature,
    Parameter,
    SideEffect,
)
from ctxsum.extraction.treesitter import (
    MARKUP_NODES,
    cyclomatic_complexity,
    find_children_by_type,
    get_node_text,
    has_node_type,
    nesting_depth,
    walk,
)
from ctxsum.semantics.complexity import bucket_complexity, is_high

if TYPE_CHECKING:
    from ctxsum.scanner import SourceFile

FUNCTION_NODES: dict[str, str] = {
    "function_declaration": "function-declaration",
    "generator_function_declaration": "function-declaration",
    "function_expression": "function-expression",
    "function": "function-expression",
    "generator_function": "function-expression",
    "arrow_function": "arrow-function",
    "method_definition": "method",
}

NESTING_INCREMENTS = {
    "if_statement",
    "for_statement",
    "for_in_statement",
    "while_statement",
    "do_statement",
    "switch_statement",
}
FLAT_INCREMENTS = {"catch_clause", "ternary_expression"}

HOOK_NAME_RE = re.compile(r"^use[A-Z]")
COMPONENT_NAME_RE = re.compile(r"^[A-Z][A-Za-z0-9]*$")
CALL_RE = re.compile(r"\b([A-Za-z_$][\w$]*)\s*\(")

IGNORED_CALLS = {
    "console",
    "setTimeout",
    "setInterval",
    "parseInt",
    "parseFloat",
    "JSON",
    # keywords followed by a parenthesis
    "if",
    "for",
    "while",
    "switch",
    "catch",
    "function",
    "return",
    "typeof",
    "await",
    "async",
}

# Ordered (pattern, predicate) rules; a function collects every match
USAGE_PATTERN_RULES: list[tuple[str, Callable[[str], bool]]] = [
    ("data-transformation", lambda t: any(m in t for m in (".map(", ".filter(", ".reduce(", ".sort("))),
    ("event-handling", lambda t: any(m in t for m in ("addEventListener", "onClick", "onChange", "onSubmit"))),
    ("state-management", lambda t: any(m in t for m in ("useState", "useReducer", "setState", "dispatch"))),
    ("api-integration", lambda t: any(m in t for m in ("fetch(", "axios", "api.", "await "))),
    ("ui-composition", lambda t: "return (" in t and "<" in t),
    ("validation", lambda t: any(m in t for m in ("validate", "schema", "yup.", "joi."))),
    ("error-handling", lambda t: any(m in t for m in ("try", "catch", "throw", "Error("))),
    ("performance-optimization", lambda t: any(m in t for m in ("useMemo", "useCallback", "React.memo", "lazy("))),
]

# (type, description, substrings)
SIDE_EFFECT_RULES: list[tuple[str, str, tuple[str, ...]]] = [
    ("api-call", "Makes HTTP requests", ("fetch(", ".get(", ".post(")),
    ("dom-manipulation", "Directly manipulates DOM", ("document.", "window.", ".getElementById")),
    ("storage", "Accesses browser storage", ("localStorage", "sessionStorage", "indexedDB")),
    ("console", "Logs to console", ("console.",)),
]

# Calls whose first argument keeps the name of the variable it is bound to
WRAPPER_CALLS = {
    "memo",
    "React.memo",
    "forwardRef",
    "React.forwardRef",
    "useCallback",
    "React.useCallback",
    "observer",
}

FUNCTIONAL_PATTERNS = ("data-transformation", "utility-function", "business-logic")


@dataclass
class FunctionNode:
    """A function definition paired with the syntax node it came from."""

    node: Node
    definition: FunctionDefinition

    @property
    def body(self) -> Node:
        return self.node.child_by_field_name("body") or self.node


def cognitive_complexity(node: Node, level: int = 0) -> int:
    """Nesting-weighted complexity: structures add 1 + nesting level."""
    total = 0
    for child in node.children:
        if child.type in NESTING_INCREMENTS:
            total += 1 + level + cognitive_complexity(child, level + 1)
        elif child.type in FLAT_INCREMENTS:
            total += 1 + level + cognitive_complexity(child, level)
        elif child.type == "binary_expression":
            operator = child.child_by_field_name("operator")
            if operator is not None and operator.type in ("&&", "||"):
                total += 1
            total += cognitive_complexity(child, level)
        else:
            total += cognitive_complexity(child, level)
    return total


def usage_patterns(text: str) -> list[str]:
    patterns = [name for name, matches in USAGE_PATTERN_RULES if matches(text)]
    if not patterns and "<" not in text:
        patterns.append("business-logic")
    if len(text) < 100 and "ui-composition" not in patterns:
        patterns.append("utility-function")
    return patterns


def side_effects(text: str) -> list[SideEffect]:
    return [
        SideEffect(type=kind, description=description)
        for kind, description, markers in SIDE_EFFECT_RULES
        if any(marker in text for marker in markers)
    ]


def called_names(text: str, own_name: str) -> list[str]:
    names: list[str] = []
    for match in CALL_RE.finditer(text):
        name = match.group(1)
        if name in IGNORED_CALLS or name == own_name or name in names:
            continue
        names.append(name)
    return names


def annotation_text(node: Node | None) -> str:
    """Type annotation text without the leading colon."""
    if node is None:
        return ""
    return get_node_text(node).lstrip(":").strip()


def extract_parameters(node: Node) -> list[Parameter]:
    params_node = node.child_by_field_name("parameters")
    if params_node is None:
        single = node.child_by_field_name("parameter")
        return [Parameter(name=get_node_text(single))] if single is not None else []

    params: list[Parameter] = []
    for child in params_node.named_children:
        if child.type in ("required_parameter", "optional_parameter"):
            pattern = child.child_by_field_name("pattern")
            value = child.child_by_field_name("value")
            params.append(
                Parameter(
                    name=get_node_text(pattern) if pattern is not None else get_node_text(child),
                    type=annotation_text(child.child_by_field_name("type")) or "unknown",
                    optional=child.type == "optional_parameter" or value is not None,
                )
            )
        elif child.type == "assignment_pattern":
            left = child.child_by_field_name("left")
            params.append(Parameter(name=get_node_text(left or child), optional=True))
        elif child.type in ("identifier", "object_pattern", "array_pattern", "rest_pattern"):
            params.append(Parameter(name=get_node_text(child)))
    return params


def extract_generics(node: Node) -> list[str]:
    type_params = node.child_by_field_name("type_parameters")
    if type_params is None:
        return []
    generics = []
    for param in find_children_by_type(type_params, "type_parameter"):
        name = param.child_by_field_name("name")
        generics.append(get_node_text(name or param))
    return generics


def _declarator_name(node: Node) -> str | None:
    """Name of the variable, property or field a function value is bound to."""
    current = node
    # const Card = memo((props) => ...) binds through call arguments
    for _ in range(3):
        parent = current.parent
        if parent is None:
            return None
        if parent.type == "variable_declarator":
            name = parent.child_by_field_name("name")
            return get_node_text(name) if name is not None else None
        if parent.type == "pair":
            key = parent.child_by_field_name("key")
            return get_node_text(key) if key is not None else None
        if parent.type in ("public_field_definition", "field_definition"):
            name = parent.child_by_field_name("name") or parent.child_by_field_name("property")
            return get_node_text(name) if name is not None else None
        if parent.type == "assignment_expression":
            left = parent.child_by_field_name("left")
            return get_node_text(left) if left is not None else None
        if parent.type == "call_expression":
            callee = parent.child_by_field_name("function")
            if callee is None or get_node_text(callee) not in WRAPPER_CALLS:
                return None
        elif parent.type not in ("arguments", "parenthesized_expression"):
            return None
        current = parent
    return None


def function_name(node: Node) -> str | None:
    if node.type in ("arrow_function", "function_expression", "function", "generator_function"):
        bound = _declarator_name(node)
        if bound:
            return bound
    name = node.child_by_field_name("name")
    return get_node_text(name) if name is not None else None


def function_kind(node: Node, name: str) -> str:
    if node.type == "method_definition":
        if name == "constructor":
            return "constructor"
        for child in node.children:
            if child.type == "get":
                return "getter"
            if child.type == "set":
                return "setter"
    return FUNCTION_NODES[node.type]


def statement_of(node: Node) -> Node:
    """The top-level or class-level statement that contains a node."""
    current = node
    while current.parent is not None and current.parent.type not in ("program", "class_body"):
        current = current.parent
    return current


def leading_doc(node: Node) -> str:
    """First line of the JSDoc block directly above a declaration."""
    statement = statement_of(node)
    previous = statement.prev_named_sibling
    if previous is None or previous.type != "comment":
        return ""
    text = get_node_text(previous)
    if not text.startswith("/**"):
        return ""
    for line in text[3:].rstrip("/").rstrip("*").splitlines():
        cleaned = line.strip().lstrip("*").strip()
        if cleaned and not cleaned.startswith("@"):
            return cleaned
    return ""


def exported_names(root: Node) -> set[str]:
    names: set[str] = set()
    for statement in find_children_by_type(root, "export_statement"):
        for child in statement.named_children:
            name = child.child_by_field_name("name")
            if name is not None:
                names.add(get_node_text(name))
            elif child.type in ("lexical_declaration", "variable_declaration"):
                for decl in find_children_by_type(child, "variable_declarator"):
                    decl_name = decl.child_by_field_name("name")
                    if decl_name is not None:
                        names.add(get_node_text(decl_name))
            elif child.type == "identifier":
                names.add(get_node_text(child))
            elif child.type == "export_clause":
                for spec in find_children_by_type(child, "export_specifier"):
                    spec_name = spec.child_by_field_name("name")
                    if spec_name is not None:
                        names.add(get_node_text(spec_name))
    return names


def is_exported(node: Node, name: str, exports: set[str]) -> bool:
    if node.type == "method_definition":
        return False
    return statement_of(node).type == "export_statement" or name in exports


def return_type(node: Node) -> str:
    annotated = annotation_text(node.child_by_field_name("return_type"))
    if annotated:
        return annotated
    body = node.child_by_field_name("body")
    if body is not None and body.type != "statement_block":
        return "unknown"
    if any(n.type == "return_statement" and n.named_child_count for n in walk(node)):
        return "unknown"
    return "void"


class FunctionExtractor:
    """Extract every named function, method and arrow function in a file."""

    def collect(self, source: SourceFile) -> list[FunctionNode]:
        """Walk the tree and pair each named function node with its definition."""
        if source.tree is None:
            return []
        root = source.tree.root_node
        exports = exported_names(root)

        found: list[FunctionNode] = []
        for node in walk(root):
            if node.type not in FUNCTION_NODES:
                continue
            name = function_name(node)
            # anonymous callbacks are folded into their enclosing function
            if not name:
                continue
            found.append(FunctionNode(node=node, definition=self._extract_function(node, name, exports)))
        return found

    def _extract_function(self, node: Node, name: str, exports: set[str]) -> FunctionDefinition:
        text = get_node_text(node)
        body = node.child_by_field_name("body") or node
        cyclomatic = cyclomatic_complexity(body)
        effects = side_effects(text)
        is_component = bool(COMPONENT_NAME_RE.match(name)) and has_node_type(body, MARKUP_NODES)

        return FunctionDefinition(
            name=name,
            kind=function_kind(node, name),
            signature=FunctionSignature(
                parameters=extract_parameters(node),
                return_type=return_type(node),
                generics=extract_generics(node),
            ),
            complexity=FunctionComplexity(
                cyclomatic=cyclomatic,
                cognitive=cognitive_complexity(body),
                lines_of_code=node.end_point[0] - node.start_point[0] + 1,
                nesting_depth=nesting_depth(body),
                level=bucket_complexity(cyclomatic),
            ),
            patterns=usage_patterns(text),
            is_component=is_component,
            is_hook=bool(HOOK_NAME_RE.match(name)),
            is_async=any(child.type == "async" for child in node.children),
            is_pure=not effects,
            side_effects=effects,
            dependencies=[FunctionDependency(name=n, type="function-call") for n in called_names(text, name)],
            is_exported=is_exported(node, name, exports),
            description=leading_doc(node),
        )

    def extract(self, source: SourceFile) -> FunctionContext:
        definitions = [found.definition for found in self.collect(source)]
        local = {d.name for d in definitions}

        call_graph = [
            CallEdge(caller=d.name, callee=dep.name)
            for d in definitions
            for dep in d.dependencies
            if dep.name in local
        ]
        return FunctionContext(
            functions=definitions,
            call_graph=call_graph,
            complexity=summarize_complexity(definitions),
            patterns=summarize_patterns(definitions),
        )


def summarize_complexity(definitions: list[FunctionDefinition]) -> FunctionComplexitySummary:
    if not definitions:
        return FunctionComplexitySummary()
    return FunctionComplexitySummary(
        total_functions=len(definitions),
        average_complexity=sum(d.complexity.cyclomatic for d in definitions) / len(definitions),
        high_complexity_count=sum(1 for d in definitions if is_high(d.complexity.level)),
        max_nesting_depth=max(d.complexity.nesting_depth for d in definitions),
        total_lines_of_code=sum(d.complexity.lines_of_code for d in definitions),
    )


def summarize_patterns(definitions: list[FunctionDefinition]) -> FunctionPatterns:
    all_patterns = [p for d in definitions for p in d.patterns]
    framework: list[str] = []
    if any(d.is_component for d in definitions):
        framework.append("functional-component")
    if any(d.is_hook for d in definitions):
        framework.append("custom-hooks")
    return FunctionPatterns(
        functional=[p for p in FUNCTIONAL_PATTERNS if p in all_patterns],
        framework=framework,
        async_patterns=["async-await"] if any(d.is_async for d in definitions) else [],
        error_handling=["try-catch"] if "error-handling" in all_patterns else [],
    )

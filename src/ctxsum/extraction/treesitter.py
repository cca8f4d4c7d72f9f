"""Tree-sitter plumbing: grammar loading, parsing and node helpers."""

from __future__ import annotations

import logging
from pathlib import Path

from tree_sitter import Language, Node, Parser, Tree

logger = logging.getLogger(__name__)

EXTENSION_LANGUAGES: dict[str, str] = {
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "jsx",
}

# Decision point node types shared by the JavaScript and TypeScript grammars
DECISION_POINTS: set[str] = {
    "if_statement",
    "for_statement",
    "for_in_statement",
    "while_statement",
    "do_statement",
    "switch_case",
    "catch_clause",
    "ternary_expression",
}

NESTING_NODES: set[str] = {
    "if_statement",
    "for_statement",
    "for_in_statement",
    "while_statement",
    "do_statement",
    "switch_statement",
    "try_statement",
}

MARKUP_NODES: set[str] = {"jsx_element", "jsx_self_closing_element", "jsx_fragment"}

_languages: dict[str, Language] = {}


def language_for(path: str | Path) -> str | None:
    """Map a file path to a grammar name, or None if unsupported."""
    name = str(path).lower()
    if name.endswith(".d.ts"):
        return "typescript"
    return EXTENSION_LANGUAGES.get(Path(name).suffix)


def _get_language(lang: str) -> Language:
    """Get or create the Tree-sitter Language instance for a grammar name."""
    if lang not in _languages:
        if lang in ("typescript", "tsx"):
            import tree_sitter_typescript as tstypescript

            if lang == "typescript":
                _languages[lang] = Language(tstypescript.language_typescript())
            else:
                _languages[lang] = Language(tstypescript.language_tsx())
        elif lang in ("javascript", "jsx"):
            # The JavaScript grammar parses JSX
            import tree_sitter_javascript as tsjavascript

            _languages[lang] = Language(tsjavascript.language())
        else:
            raise ValueError(f"Unsupported grammar: {lang}")
    return _languages[lang]


def parse_source(text: str, path: str | Path) -> Tree | None:
    """Parse source text into a syntax tree; None for unsupported files."""
    lang = language_for(path)
    if lang is None:
        return None
    parser = Parser(_get_language(lang))
    tree = parser.parse(text.encode("utf-8"))
    if tree.root_node.has_error:
        logger.debug(f"Parse errors in {path}")
    return tree


def get_node_text(node: Node) -> str:
    """Decoded source text of a node."""
    return node.text.decode("utf-8", errors="replace") if node.text else ""


def find_child_by_type(node: Node, type_name: str) -> Node | None:
    for child in node.children:
        if child.type == type_name:
            return child
    return None


def find_children_by_type(node: Node, type_name: str) -> list[Node]:
    return [child for child in node.children if child.type == type_name]


def walk(node: Node):
    """Yield a node and all its descendants, depth first."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def has_node_type(node: Node, types: set[str]) -> bool:
    return any(n.type in types for n in walk(node))


def cyclomatic_complexity(node: Node) -> int:
    """1 + decision points, counting && / || / ?? operators."""
    count = 1
    for n in walk(node):
        if n.type in DECISION_POINTS:
            count += 1
        elif n.type == "binary_expression":
            operator = n.child_by_field_name("operator")
            if operator is not None and operator.type in ("&&", "||", "??"):
                count += 1
    return count


def nesting_depth(node: Node, depth: int = 0) -> int:
    """Deepest nesting of control-flow statements under a node."""
    deepest = depth
    for child in node.children:
        child_depth = depth + 1 if child.type in NESTING_NODES else depth
        deepest = max(deepest, nesting_depth(child, child_depth))
    return deepest


def markup_depth(node: Node, depth: int = 0) -> int:
    """Deepest nesting of markup elements under a node."""
    deepest = depth
    for child in node.children:
        child_depth = depth + 1 if child.type in MARKUP_NODES else depth
        deepest = max(deepest, markup_depth(child, child_depth))
    return deepest

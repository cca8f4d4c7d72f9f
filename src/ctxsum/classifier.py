"""File-context classification.

Each file gets exactly one context tag. The tag decides whether the
analyzer processes the file at all and which prompt template it gets.

Usage:
    from ctxsum.classifier import classify_file

    file_type = classify_file(source.path, source.text, source.tree)
"""

from __future__ import annotations

import math
import posixpath
import re
from collections.abc import Callable
from dataclasses import dataclass

from tree_sitter import Node, Tree

FILE_TYPES: tuple[str, ...] = (
    "test",
    "style",
    "config",
    "api-route",
    "middleware",
    "constant",
    "type-definition",
    "component",
    "hook",
    "service",
    "business-logic",
    "utility",
)

STYLE_EXTENSIONS = (".css", ".scss", ".less")
CONFIG_FILE_NAMES = ("next.config.js", "webpack.config.js", "tailwind.config.js")

TYPE_ONLY_NODES = {
    "interface_declaration",
    "type_alias_declaration",
    "enum_declaration",
    "ambient_declaration",
    "import_statement",
    "comment",
}

PASCAL_FILE_RE = re.compile(r"^[A-Z][a-zA-Z]*\.(?:tsx|jsx)$")
MARKUP_TAG_RE = re.compile(r"<[A-Z][a-zA-Z]*")
HOOK_FILE_RE = re.compile(r"^use[A-Z][a-zA-Z]*\.(?:ts|tsx)$")
EXPORTED_HOOK_RE = re.compile(r"export\s+(?:default\s+)?(?:function\s+|const\s+)use[A-Z][a-zA-Z]*")
HOOK_CALL_RE = re.compile(r"use(?:State|Effect|Context|Reducer|Memo|Callback|Ref)")
SOURCE_EXT_RE = re.compile(r"\.(?:tsx?|jsx?)$")


@dataclass
class FileFacts:
    """What the classification rules look at."""

    path: str
    text: str
    tree: Tree | None = None

    @property
    def file_name(self) -> str:
        return posixpath.basename(self.path.replace("\\", "/"))

    @property
    def extension(self) -> str:
        return posixpath.splitext(self.file_name)[1]


def _is_type_only(node: Node) -> bool:
    if node.type in TYPE_ONLY_NODES:
        return True
    if node.type == "export_statement":
        declaration = node.child_by_field_name("declaration")
        return declaration is None or declaration.type in TYPE_ONLY_NODES
    return False


def has_only_type_declarations(tree: Tree | None) -> bool:
    """True when every top-level statement is a type declaration, import or re-export."""
    if tree is None:
        return False
    children = tree.root_node.named_children
    declares = any(child.type != "import_statement" and child.type != "comment" for child in children)
    return declares and all(_is_type_only(child) for child in children)


def component_indicators(facts: FileFacts) -> int:
    text = facts.text
    indicators = [
        bool(PASCAL_FILE_RE.match(facts.file_name)),
        "<" in text and "/>" in text,
        "return (" in text and "<" in text,
        "return <" in text,
        ("import React" in text or "from 'react'" in text)
        and ("export default" in text or "export const" in text or "export function" in text),
        "props:" in text and "React.FC" in text,
        "interface" in text and "Props" in text,
        bool(MARKUP_TAG_RE.search(text)),
        "children" in text and "React" in text,
    ]
    return sum(indicators)


def has_component_export(facts: FileFacts) -> bool:
    name = SOURCE_EXT_RE.sub("", facts.file_name)
    exports = (
        f"export default {name}",
        f"export default function {name}",
        f"export {{ {name} }}",
        f"export {{ default as {name} }}",
    )
    return any(export in facts.text for export in exports)


def is_component(facts: FileFacts) -> bool:
    return component_indicators(facts) >= 2 or has_component_export(facts)


def is_hook(facts: FileFacts) -> bool:
    names_hook = bool(HOOK_FILE_RE.match(facts.file_name)) or bool(EXPORTED_HOOK_RE.search(facts.text))
    return names_hook and bool(HOOK_CALL_RE.search(facts.text)) and not is_component(facts)


def business_indicators(facts: FileFacts) -> int:
    name = facts.file_name.lower()
    text = facts.text
    indicators = [
        "logic" in name,
        "service" in name,
        "controller" in name,
        "handler" in name,
        "processor" in name,
        "manager" in name,
        "business" in text and "logic" in text,
        "calculate" in text and "process" in text,
        "validate" in text and "rules" in text,
    ]
    return sum(indicators)


def _in_api_dir(path: str) -> bool:
    return "/api/" in path or "\\api\\" in path


# Ordered (file type, predicate) rules; first match wins, fallback is utility
CLASSIFICATION_RULES: list[tuple[str, Callable[[FileFacts], bool]]] = [
    (
        "test",
        lambda f: ".test." in f.file_name or ".spec." in f.file_name or "__tests__" in f.path,
    ),
    ("style", lambda f: f.extension in STYLE_EXTENSIONS),
    (
        "config",
        lambda f: "config" in f.file_name or "Config" in f.file_name or f.file_name in CONFIG_FILE_NAMES,
    ),
    ("api-route", lambda f: _in_api_dir(f.path)),
    ("middleware", lambda f: "middleware" in f.file_name or "Middleware" in f.file_name),
    (
        "constant",
        lambda f: "constant" in f.file_name or "Constant" in f.file_name or "enum" in f.file_name.lower(),
    ),
    (
        "type-definition",
        lambda f: ".types." in f.file_name or ".d.ts" in f.file_name or has_only_type_declarations(f.tree),
    ),
    ("component", is_component),
    ("hook", is_hook),
    (
        "service",
        lambda f: "service" in f.file_name
        or "Service" in f.file_name
        or ("api" in f.file_name and not _in_api_dir(f.path)),
    ),
    ("business-logic", lambda f: business_indicators(f) >= 2),
]


def classify_file(path: str, text: str | None, tree: Tree | None = None) -> str:
    """Return the context tag for a file."""
    facts = FileFacts(path=path, text=text or "", tree=tree)
    for file_type, matches in CLASSIFICATION_RULES:
        if matches(facts):
            return file_type
    return "utility"


def estimate_token_count(text: str) -> int:
    """Character-count proxy: four characters per token."""
    return math.ceil(len(text) / 4)

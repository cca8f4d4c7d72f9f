"""Import extraction: external packages, internal modules and framework imports."""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from tree_sitter import Node

from ctxsum.extraction.models import (
    DependencyContext,
    ExternalDependency,
    FrameworkDependency,
    InternalDependency,
)
from ctxsum.extraction.treesitter import (
    find_child_by_type,
    find_children_by_type,
    get_node_text,
    walk,
)

if TYPE_CHECKING:
    from ctxsum.scanner import SourceFile

SOURCE_EXTENSIONS = (".d.ts", ".tsx", ".ts", ".jsx", ".js", ".mjs", ".cjs")

PACKAGE_PURPOSES: dict[str, str] = {
    "@mui/material": "ui-library",
    "antd": "ui-library",
    "react-bootstrap": "ui-library",
    "chakra-ui": "ui-library",
    "redux": "state-management",
    "zustand": "state-management",
    "recoil": "state-management",
    "mobx": "state-management",
    "react-router": "routing",
    "react-router-dom": "routing",
    "@reach/router": "routing",
    "axios": "data-fetching",
    "swr": "data-fetching",
    "react-query": "data-fetching",
    "@tanstack/react-query": "data-fetching",
    "styled-components": "styling",
    "emotion": "styling",
    "tailwindcss": "styling",
    "lodash": "utility",
    "ramda": "utility",
    "uuid": "utility",
    "yup": "validation",
    "joi": "validation",
    "zod": "validation",
    "dayjs": "date-time",
    "moment": "date-time",
    "date-fns": "date-time",
    "framer-motion": "animation",
    "react-spring": "animation",
    "react-hook-form": "form-handling",
    "formik": "form-handling",
}

# Ordered (substrings, purpose) fallbacks; every substring must be present
PURPOSE_FALLBACKS: list[tuple[tuple[str, ...], str]] = [
    (("react", "form"), "form-handling"),
    (("test",), "testing"),
    (("jest",), "testing"),
    (("webpack",), "build-tool"),
    (("babel",), "build-tool"),
    (("style",), "styling"),
    (("css",), "styling"),
]

CORE_PACKAGES = {"react", "react-dom", "next"}
HIGH_CRITICALITY = {"state-management", "routing", "data-fetching"}
MEDIUM_CRITICALITY = {"ui-library", "styling", "form-handling"}
LOW_CRITICALITY = {"utility", "testing", "build-tool"}

# Ordered (import-path substrings, relationship) rules after the directory checks
RELATIONSHIP_RULES: list[tuple[tuple[str, ...], str]] = [
    (("util", "helper"), "utility-consumer"),
    (("type", "interface"), "type-provider"),
    (("service", "api"), "service-consumer"),
    (("config", "constant"), "config-consumer"),
]


@dataclass
class ImportStatement:
    """One static or dynamic import in a file."""

    module: str
    names: list[str] = field(default_factory=list)
    type_only: bool = False
    dynamic: bool = False

    @property
    def is_internal(self) -> bool:
        return self.module.startswith(("./", "../", "/", "@/"))


def _strip_quotes(text: str) -> str:
    return text.strip().strip("'\"`")


def _import_names(clause: Node) -> list[str]:
    names: list[str] = []
    for child in clause.children:
        if child.type == "identifier":
            names.append(get_node_text(child))
        elif child.type == "named_imports":
            for spec in find_children_by_type(child, "import_specifier"):
                alias = spec.child_by_field_name("alias") or spec.child_by_field_name("name")
                if alias is not None:
                    names.append(get_node_text(alias))
        elif child.type == "namespace_import":
            id_node = find_child_by_type(child, "identifier")
            if id_node is not None:
                names.append(get_node_text(id_node))
    return names


def iter_imports(root: Node) -> list[ImportStatement]:
    """Collect static imports plus ``import()`` and ``require()`` calls."""
    imports: list[ImportStatement] = []
    for child in root.children:
        if child.type != "import_statement":
            continue
        source = child.child_by_field_name("source") or find_child_by_type(child, "string")
        if source is None:
            continue
        clause = find_child_by_type(child, "import_clause")
        imports.append(
            ImportStatement(
                module=_strip_quotes(get_node_text(source)),
                names=_import_names(clause) if clause is not None else [],
                type_only=any(c.type == "type" for c in child.children),
            )
        )

    for node in walk(root):
        if node.type != "call_expression":
            continue
        function = node.child_by_field_name("function")
        if function is None:
            continue
        if function.type == "import" or get_node_text(function) == "require":
            arguments = node.child_by_field_name("arguments")
            literal = find_child_by_type(arguments, "string") if arguments is not None else None
            if literal is not None:
                imports.append(
                    ImportStatement(
                        module=_strip_quotes(get_node_text(literal)),
                        dynamic=function.type == "import",
                    )
                )
    return imports


def package_name(module: str) -> str:
    parts = module.split("/")
    if module.startswith("@") and len(parts) >= 2:
        return f"{parts[0]}/{parts[1]}"
    return parts[0]


def dependency_purpose(name: str) -> str:
    if name in PACKAGE_PURPOSES:
        return PACKAGE_PURPOSES[name]
    for markers, purpose in PURPOSE_FALLBACKS:
        if all(marker in name for marker in markers):
            return purpose
    return "utility"


def dependency_criticality(name: str, purpose: str) -> str:
    if name in CORE_PACKAGES or purpose in HIGH_CRITICALITY:
        return "high"
    if purpose in MEDIUM_CRITICALITY:
        return "medium"
    if purpose in LOW_CRITICALITY:
        return "low"
    return "medium"


def strip_source_extension(path: str) -> str:
    for ext in SOURCE_EXTENSIONS:
        if path.endswith(ext):
            return path[: -len(ext)]
    return path


def resolve_internal(module: str, file_rel: str) -> str:
    """Resolve an internal import to a root-relative path without extension."""
    if module.startswith("@/"):
        resolved = posixpath.join("src", module[2:])
    elif module.startswith("/"):
        resolved = module.lstrip("/")
    else:
        resolved = posixpath.normpath(posixpath.join(posixpath.dirname(file_rel), module))
    return strip_source_extension(resolved)


def determine_relationship(module: str, file_rel: str) -> str:
    current_dir = posixpath.dirname(file_rel)
    import_dir = posixpath.dirname(posixpath.normpath(posixpath.join(current_dir, module)))
    if import_dir == current_dir:
        return "sibling"
    if import_dir == posixpath.dirname(current_dir):
        return "parent-child"
    for markers, relationship in RELATIONSHIP_RULES:
        if any(marker in module for marker in markers):
            return relationship
    return "utility-consumer"


def determine_usage_type(resolved: str, names: list[str]) -> str:
    file_name = posixpath.basename(resolved)
    if "type" in file_name or file_name.endswith(".d"):
        return "type"
    if "constant" in file_name or "config" in file_name:
        return "constant"
    if file_name.startswith("use") and len(file_name) > 3 and file_name[3].isupper():
        return "hook"
    if any(name[:1].isupper() for name in names):
        return "component"
    return "utility"


class DependencyExtractor:
    """Extract a DependencyContext from a file's imports.

    Internal paths are resolved relative to the scan root so that the
    project aggregator can match them against other files' paths.
    """

    def __init__(self, root: str | Path | None = None):
        self.root = Path(root) if root is not None else None

    def _relative(self, path: str) -> str:
        if self.root is not None:
            try:
                return Path(path).relative_to(self.root).as_posix()
            except ValueError:
                pass
        return Path(path).as_posix().lstrip("/")

    def extract(self, source: SourceFile) -> DependencyContext:
        context = DependencyContext()
        if source.tree is None:
            return context

        file_rel = self._relative(source.path)
        framework = FrameworkDependency()
        seen_external: set[str] = set()

        for imp in iter_imports(source.tree.root_node):
            if imp.is_internal:
                resolved = resolve_internal(imp.module, file_rel)
                context.internal.append(
                    InternalDependency(
                        path=resolved,
                        relationship=determine_relationship(imp.module, file_rel),
                        usage_type=determine_usage_type(resolved, imp.names),
                    )
                )
                continue

            name = package_name(imp.module)
            purpose = dependency_purpose(name)
            if name == "react" or name.startswith("react-"):
                self._framework_import(name, imp.names, framework)
            if name not in seen_external:
                seen_external.add(name)
                criticality = "medium" if imp.dynamic else dependency_criticality(name, purpose)
                context.external.append(
                    ExternalDependency(name=name, purpose=purpose, criticality=criticality)
                )
            if purpose == "utility":
                context.utility_imports.extend(imp.names)

        if framework.hooks or framework.components or framework.patterns:
            context.framework_specific.append(framework)
        return context

    def _framework_import(self, name: str, names: list[str], framework: FrameworkDependency) -> None:
        for imported in names:
            if imported.startswith("use"):
                framework.hooks.append(imported)
            elif imported[:1].isupper() and imported != "React":
                framework.components.append(imported)
        if name == "react":
            if "createContext" in names:
                framework.patterns.append("context-provider")
            if "Component" in names:
                framework.patterns.append("class-component")

"""Type declaration extraction: interfaces, type aliases, enums and classes."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from tree_sitter import Node

from ctxsum.extraction.dependencies import iter_imports
from ctxsum.extraction.functions import annotation_text, extract_generics, leading_doc
from ctxsum.extraction.models import (
    TypeContext,
    TypeDefinition,
    TypeProperty,
    TypeRelationship,
)
from ctxsum.extraction.treesitter import (
    find_child_by_type,
    find_children_by_type,
    get_node_text,
)
from ctxsum.semantics.complexity import bucket_complexity

if TYPE_CHECKING:
    from ctxsum.scanner import SourceFile

DECLARATION_KINDS: dict[str, str] = {
    "interface_declaration": "interface",
    "type_alias_declaration": "type-alias",
    "enum_declaration": "enum",
    "class_declaration": "class",
    "abstract_class_declaration": "class",
}

MEMBER_NODES = {"property_signature", "method_signature", "public_field_definition"}

IDENTIFIER_RE = re.compile(r"\b[A-Z]\w*\b")


def _member(node: Node) -> TypeProperty | None:
    name = node.child_by_field_name("name")
    if name is None:
        return None
    if node.type == "method_signature":
        kind = "method"
    else:
        kind = annotation_text(node.child_by_field_name("type")) or "unknown"
    return TypeProperty(
        name=get_node_text(name),
        type=kind,
        optional=any(child.type == "?" for child in node.children),
    )


def object_members(body: Node | None) -> list[TypeProperty]:
    """Properties of an interface body, object type or class body."""
    if body is None:
        return []
    members = []
    for child in body.named_children:
        if child.type in MEMBER_NODES:
            member = _member(child)
            if member is not None:
                members.append(member)
    return members


def _enum_members(body: Node | None) -> list[TypeProperty]:
    if body is None:
        return []
    members = []
    for child in body.named_children:
        if child.type == "property_identifier":
            members.append(TypeProperty(name=get_node_text(child), type="enum-member"))
        elif child.type == "enum_assignment":
            name = child.child_by_field_name("name")
            members.append(TypeProperty(name=get_node_text(name or child), type="enum-member"))
    return members


def _heritage(node: Node) -> list[str]:
    """Names a declaration extends; implemented interfaces are not parents."""
    clauses = find_children_by_type(node, "extends_type_clause")
    heritage = find_child_by_type(node, "class_heritage")
    if heritage is not None:
        clauses.extend(find_children_by_type(heritage, "extends_clause"))
    elif find_child_by_type(node, "extends_clause") is not None:
        clauses.extend(find_children_by_type(node, "extends_clause"))

    parents: list[str] = []
    for clause in clauses:
        for parent in clause.named_children:
            if parent.type == "type_arguments":
                continue
            parents.append(get_node_text(parent).split("<")[0].strip())
    return parents


def type_definition(node: Node, exported: bool) -> TypeDefinition | None:
    kind = DECLARATION_KINDS.get(node.type)
    name = node.child_by_field_name("name")
    if kind is None or name is None:
        return None

    body = node.child_by_field_name("body")
    if kind == "type-alias":
        value = node.child_by_field_name("value")
        properties = object_members(value) if value is not None and value.type == "object_type" else []
        if value is not None and value.type == "union_type":
            kind = "union"
    elif kind == "enum":
        properties = _enum_members(body)
    else:
        properties = object_members(body)

    return TypeDefinition(
        name=get_node_text(name),
        kind=kind,
        is_exported=exported,
        description=leading_doc(node),
        properties=properties,
        extends=_heritage(node),
        generics=extract_generics(node),
    )


def declared_types(root: Node) -> list[TypeDefinition]:
    """Top-level type declarations, exported or not."""
    definitions: list[TypeDefinition] = []
    for child in root.children:
        if child.type == "export_statement":
            for inner in child.named_children:
                definition = type_definition(inner, exported=True)
                if definition is not None:
                    definitions.append(definition)
        else:
            definition = type_definition(child, exported=False)
            if definition is not None:
                definitions.append(definition)
    return definitions


class TypeExtractor:
    """Extract declared types, type-only imports and type relationships."""

    def extract(self, source: SourceFile) -> TypeContext:
        if source.tree is None:
            return TypeContext()
        root = source.tree.root_node
        definitions = declared_types(root)

        imports: list[str] = []
        for imp in iter_imports(root):
            if imp.type_only:
                imports.extend(imp.names)
        for statement in find_children_by_type(root, "import_statement"):
            clause = find_child_by_type(statement, "import_clause")
            named = find_child_by_type(clause, "named_imports") if clause is not None else None
            if named is None:
                continue
            for spec in find_children_by_type(named, "import_specifier"):
                if any(c.type == "type" for c in spec.children):
                    name = spec.child_by_field_name("name")
                    if name is not None:
                        imports.append(get_node_text(name))

        return TypeContext(
            definitions=definitions,
            imports=imports,
            exports=[d.name for d in definitions if d.is_exported],
            relationships=type_relationships(definitions),
            complexity=bucket_complexity(type_score(definitions)),
        )


def type_relationships(definitions: list[TypeDefinition]) -> list[TypeRelationship]:
    known = {d.name for d in definitions}
    relationships = [
        TypeRelationship(source=d.name, target=parent, kind="extends")
        for d in definitions
        for parent in d.extends
    ]
    for definition in definitions:
        used: list[str] = []
        for prop in definition.properties:
            for ref in IDENTIFIER_RE.findall(prop.type):
                if ref in known and ref != definition.name and ref not in used:
                    used.append(ref)
        relationships.extend(
            TypeRelationship(source=definition.name, target=ref, kind="uses") for ref in used
        )
    return relationships


def type_score(definitions: list[TypeDefinition]) -> float:
    """Raw score: half a point per member, one per parent or generic."""
    return sum(
        len(d.properties) * 0.5 + len(d.extends) + len(d.generics) for d in definitions
    )

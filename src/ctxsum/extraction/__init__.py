"""Extraction - the five per-file records and the collaborators that produce them.

Records:
    DependencyContext, FunctionContext, TypeContext, ComponentContext and
    BusinessLogicContext, bundled per file as an ExtractionContext. Every
    record has ``from_dict`` for partial collaborator output.

Collaborators walk the tree-sitter syntax tree of a SourceFile:

    from ctxsum.extraction import ExtractorSuite

    suite = ExtractorSuite.default(root=scan.root)
    extraction = suite.run(scan.files[path])
"""

from ctxsum.extraction.business import BusinessLogicExtractor
from ctxsum.extraction.components import ComponentExtractor
from ctxsum.extraction.dependencies import DependencyExtractor
from ctxsum.extraction.functions import FunctionExtractor
from ctxsum.extraction.models import (
    BusinessLogicContext,
    ComponentContext,
    DependencyContext,
    ExtractionContext,
    FunctionContext,
    TypeContext,
    normalize,
)
from ctxsum.extraction.suite import Extractor, ExtractorSuite
from ctxsum.extraction.types import TypeExtractor

__all__ = [
    "BusinessLogicContext",
    "BusinessLogicExtractor",
    "ComponentContext",
    "ComponentExtractor",
    "DependencyContext",
    "DependencyExtractor",
    "ExtractionContext",
    "Extractor",
    "ExtractorSuite",
    "FunctionContext",
    "FunctionExtractor",
    "TypeContext",
    "TypeExtractor",
    "normalize",
]

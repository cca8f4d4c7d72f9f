"""The five extraction collaborators, run in a fixed order per file."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from ctxsum.errors import CtxsumError, ExtractionError
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
from ctxsum.extraction.types import TypeExtractor

if TYPE_CHECKING:
    from ctxsum.scanner import SourceFile

logger = logging.getLogger(__name__)


class Extractor(Protocol):
    """Produces one extraction record (or a partial dict) for a file."""

    def extract(self, source: SourceFile) -> Any: ...


@dataclass
class ExtractorSuite:
    """Holds the five collaborators.

    ``run`` calls them in stage order and normalizes whatever each returns,
    so a collaborator may hand back a partial dict or None.
    """

    dependencies: Extractor
    functions: Extractor
    types: Extractor
    components: Extractor
    business_logic: Extractor

    @classmethod
    def default(cls, root: str | Path | None = None) -> ExtractorSuite:
        """Tree-sitter collaborators; ``root`` anchors internal import paths."""
        functions = FunctionExtractor()
        return cls(
            dependencies=DependencyExtractor(root),
            functions=functions,
            types=TypeExtractor(),
            components=ComponentExtractor(functions),
            business_logic=BusinessLogicExtractor(functions),
        )

    def stages(self) -> list[tuple[str, Extractor, type]]:
        return [
            ("dependency-extraction", self.dependencies, DependencyContext),
            ("function-analysis", self.functions, FunctionContext),
            ("type-analysis", self.types, TypeContext),
            ("component-analysis", self.components, ComponentContext),
            ("business-logic-analysis", self.business_logic, BusinessLogicContext),
        ]

    def run(
        self,
        source: SourceFile,
        on_stage: Callable[[str], None] | None = None,
    ) -> ExtractionContext:
        """Run every stage; a failure is re-raised as ExtractionError naming the stage.

        ``on_stage`` is called with each stage name before that stage runs.
        """
        records: dict[str, Any] = {}
        for stage, extractor, record_type in self.stages():
            if on_stage is not None:
                on_stage(stage)
            try:
                records[stage] = normalize(extractor.extract(source), record_type)
            except CtxsumError:
                raise
            except Exception as e:
                raise ExtractionError(str(e) or e.__class__.__name__, source.path, stage) from e
            logger.debug(f"{stage} extracted for {source.path}")

        return ExtractionContext(
            dependencies=records["dependency-extraction"],
            functions=records["function-analysis"],
            types=records["type-analysis"],
            components=records["component-analysis"],
            business_logic=records["business-logic-analysis"],
        )

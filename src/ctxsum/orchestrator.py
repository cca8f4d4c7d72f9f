"""ctxsum orchestrator - runs one analysis session over a scanned project.

Each file goes through the same pipeline: cache check, classification,
the five extraction stages, semantic synthesis and prompt compilation.
Per-file failures are reported through the error callback and the file is
left out of the results; only a failure outside the per-file loop aborts
the run.

Usage:
    from ctxsum.orchestrator import AnalysisOptions, ContextualSummariesAnalyzer

    analyzer = ContextualSummariesAnalyzer(AnalysisOptions.from_config(config))
    result = await analyzer.analyze(scan_project(root, config))
"""

from __future__ import annotations

import asyncio
import copy
import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any, TypeVar

from ctxsum.aggregator import ProjectAggregator
from ctxsum.cache import AnalysisCache
from ctxsum.classifier import classify_file
from ctxsum.config import CtxsumConfig, RunConfig, SummaryConfig
from ctxsum.errors import (
    AnalysisError,
    AnalysisErrorEvent,
    CtxsumError,
    ErrorSeverity,
    PipelineError,
    SourceNotFoundError,
)
from ctxsum.exporters import export_summaries
from ctxsum.extraction import ExtractorSuite
from ctxsum.metrics import QualityMetrics, calculate_quality_metrics
from ctxsum.models import (
    ContextualAnalysisResult,
    ContextualSummary,
    Personalization,
    ProjectContext,
    ResultMetadata,
    SummaryMetadata,
    UsagePattern,
    personalization_for_audience,
)
from ctxsum.prompt import PromptCompiler
from ctxsum.scanner import ScanResult, SourceFile
from ctxsum.semantics import SemanticSynthesizer

logger = logging.getLogger(__name__)

T = TypeVar("T")

ACCEPTED_FILE_TYPES = frozenset(
    {"component", "hook", "utility", "type-definition", "api-route", "service", "business-logic"}
)

SIGNIFICANT_LINE_THRESHOLD = 5
INSIGNIFICANT_PREFIXES = ("import ", "export ", "//", "/*")
LONE_BRACES = ("{", "}")


@dataclass
class ProgressEvent:
    """One progress report: the stage a file is in and how far the run is."""

    stage: str
    file_name: str
    processed: int
    total: int
    estimated_completion: datetime | None = None


@dataclass
class ProcessingStats:
    """Run counters; averages are updated incrementally per analyzed file."""

    files_analyzed: int = 0
    files_computed: int = 0
    """Files run through the pipeline this run; cache hits are not counted."""

    errors_encountered: int = 0
    average_processing_time: float = 0.0
    total_tokens_generated: int = 0
    compression_ratio: float = 1.0
    quality: QualityMetrics = field(default_factory=QualityMetrics)

    def record(self, summary: ContextualSummary, duration: float) -> None:
        n = self.files_computed
        tokens = summary.prompt.tokens
        self.compression_ratio = (self.compression_ratio * n + tokens.compression_ratio) / (n + 1)
        self.average_processing_time = (self.average_processing_time * n + duration) / (n + 1)
        self.total_tokens_generated += tokens.approximate
        self.files_computed += 1

    def copy(self) -> ProcessingStats:
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "files_analyzed": self.files_analyzed,
            "files_computed": self.files_computed,
            "errors_encountered": self.errors_encountered,
            "average_processing_time": self.average_processing_time,
            "total_tokens_generated": self.total_tokens_generated,
            "compression_ratio": self.compression_ratio,
            "quality": self.quality.to_dict(),
        }


@dataclass
class AnalysisOptions:
    """Configuration for one analyzer plus its run-time callbacks."""

    summary: SummaryConfig = field(default_factory=SummaryConfig)
    run: RunConfig = field(default_factory=RunConfig)
    progress_callback: Callable[[ProgressEvent], None] | None = None
    error_callback: Callable[[AnalysisErrorEvent], None] | None = None

    @classmethod
    def from_config(
        cls,
        config: CtxsumConfig,
        progress_callback: Callable[[ProgressEvent], None] | None = None,
        error_callback: Callable[[AnalysisErrorEvent], None] | None = None,
    ) -> AnalysisOptions:
        return cls(
            summary=config.summary,
            run=config.run,
            progress_callback=progress_callback,
            error_callback=error_callback,
        )

    @property
    def includes_tests(self) -> bool:
        """A custom pattern named after tests keeps test files in the run."""
        return any("test" in pattern.name.lower() for pattern in self.summary.custom_patterns)


def has_significant_content(text: str) -> bool:
    """More than a handful of lines beyond imports, comments and braces."""
    significant = 0
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped in LONE_BRACES or stripped.startswith(INSIGNIFICANT_PREFIXES):
            continue
        significant += 1
    return significant > SIGNIFICANT_LINE_THRESHOLD


def filter_relevant_files(scan_result: ScanResult, options: AnalysisOptions) -> list[str]:
    """Paths worth summarizing, in scan order."""
    relevant = []
    for path, source in scan_result.files.items():
        if source.metadata.is_test and not options.includes_tests:
            continue
        if source.metadata.is_meaningful or has_significant_content(source.text or ""):
            relevant.append(path)
    return relevant


def create_batches(items: Sequence[T], size: int) -> list[list[T]]:
    size = max(size, 1)
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


def project_name(root: str) -> str:
    return Path(root).name if root else ""


class ContextualSummariesAnalyzer:
    """Analysis session owning the cache, stats and pipeline collaborators.

    ``suite`` may be injected; otherwise the default tree-sitter suite is
    built for the root of each scan result.
    """

    def __init__(
        self,
        options: AnalysisOptions | None = None,
        suite: ExtractorSuite | None = None,
        synthesizer: SemanticSynthesizer | None = None,
        compiler: PromptCompiler | None = None,
        aggregator: ProjectAggregator | None = None,
        cache: AnalysisCache | None = None,
    ):
        self.options = options or AnalysisOptions()
        self.synthesizer = synthesizer or SemanticSynthesizer()
        self.compiler = compiler or PromptCompiler(self.options.summary, optimize=self.options.run.optimize_prompts)
        self.aggregator = aggregator or ProjectAggregator()
        self.cache = cache if cache is not None else AnalysisCache()
        self.stats = ProcessingStats()
        self._suite = suite
        self._default_suites: dict[str, ExtractorSuite] = {}
        self._processed = 0

    # -- Progress and errors --------------------------------------------------

    def _report(self, stage: str, file_name: str, processed: int, total: int) -> None:
        callback = self.options.progress_callback
        if callback is None:
            return
        estimate = None
        average = self.stats.average_processing_time
        if processed > 0 and average > 0:
            remaining = max(total - processed, 0)
            estimate = datetime.now(UTC) + timedelta(seconds=remaining * average)
        callback(ProgressEvent(stage, file_name, processed, total, estimate))

    def _handle_file_error(self, path: str, stage: str, error: BaseException) -> None:
        self.stats.errors_encountered += 1
        event = AnalysisErrorEvent.from_exception(path, stage, error)
        logger.warning(f"Failed to analyze {path} during {stage}: {event.message}")
        if self.options.error_callback is not None:
            self.options.error_callback(event)

    def _handle_critical_error(self, error: BaseException) -> None:
        message = str(error) or error.__class__.__name__
        logger.error(f"Analysis failed: {message}")
        if self.options.error_callback is not None:
            self.options.error_callback(
                AnalysisErrorEvent(
                    file_path="unknown",
                    stage="initialization",
                    message=message,
                    severity=ErrorSeverity.CRITICAL,
                    recoverable=False,
                )
            )

    # -- Per-file pipeline ----------------------------------------------------

    def _suite_for(self, scan_result: ScanResult) -> ExtractorSuite:
        if self._suite is not None:
            return self._suite
        if scan_result.root not in self._default_suites:
            self._default_suites[scan_result.root] = ExtractorSuite.default(scan_result.root or None)
        return self._default_suites[scan_result.root]

    def _summary_metadata(self, source: SourceFile, scan_result: ScanResult) -> SummaryMetadata | None:
        if not self.options.run.include_metadata:
            return None
        return SummaryMetadata(
            file_size=len(source.text or ""),
            last_modified=source.metadata.last_modified or datetime.now(UTC).isoformat(),
            project_name=project_name(scan_result.root),
        )

    def _custom_patterns(self, text: str) -> list[UsagePattern]:
        matched = [
            pattern.name
            for pattern in self.options.summary.custom_patterns
            if pattern.matcher and pattern.matcher in text
        ]
        return [UsagePattern(type="custom", patterns=matched)] if matched else []

    def _process_file(self, path: str, scan_result: ScanResult, total: int) -> ContextualSummary | None:
        """Run the pipeline for one file; raises on failure."""
        cached = self.cache.lookup(path, scan_result)
        if cached is not None:
            self.stats.files_analyzed += 1
            return cached

        started = time.perf_counter()
        self._report("file-scanning", Path(path).name, self._processed, total)
        source = scan_result.files.get(path)
        if source is None or source.text is None or source.tree is None:
            raise SourceNotFoundError(path)

        file_type = classify_file(path, source.text, source.tree)
        if file_type not in ACCEPTED_FILE_TYPES:
            logger.debug(f"Skipping {path} ({file_type})")
            return None

        processed = self._processed
        extraction = self._suite_for(scan_result).run(
            source, on_stage=lambda stage: self._report(stage, source.name, processed, total)
        )

        stage = "semantic-analysis"
        try:
            self._report(stage, source.name, processed, total)
            analysis = self.synthesizer.analyze(file_type, extraction, path, source.text)

            stage = "summary-generation"
            self._report(stage, source.name, processed, total)
            summary = self.compiler.build_summary(
                path,
                file_type,
                extraction,
                analysis,
                metadata=self._summary_metadata(source, scan_result),
            )
        except CtxsumError:
            raise
        except Exception as e:
            raise PipelineError(str(e) or e.__class__.__name__, path, stage) from e

        summary.usage_patterns.extend(self._custom_patterns(source.text))

        self.stats.record(summary, time.perf_counter() - started)
        self.cache.store(path, summary, source.metadata.content_hash)
        self.stats.files_analyzed += 1
        return summary

    async def _analyze_file(self, path: str, scan_result: ScanResult, total: int) -> ContextualSummary | None:
        """Contain any failure of one file's pipeline."""
        try:
            return self._process_file(path, scan_result, total)
        except SourceNotFoundError as e:
            self._handle_file_error(path, "file-scanning", e)
        except PipelineError as e:
            self._handle_file_error(path, e.stage, e)
        except Exception as e:
            self._handle_file_error(path, "semantic-analysis", e)
        finally:
            self._processed += 1
        return None

    async def _analyze_files(self, paths: list[str], scan_result: ScanResult) -> list[ContextualSummary]:
        total = len(paths)
        summaries: list[ContextualSummary] = []

        if not self.options.run.parallel_processing:
            for path in paths:
                summary = await self._analyze_file(path, scan_result, total)
                if summary is not None:
                    summaries.append(summary)
            return summaries

        for batch in create_batches(paths, self.options.run.max_concurrency):
            tasks = [self._analyze_file(path, scan_result, total) for path in batch]
            results = await asyncio.gather(*tasks, return_exceptions=True)
            for path, result in zip(batch, results):
                if isinstance(result, Exception):
                    self._handle_file_error(path, "semantic-analysis", result)
                elif isinstance(result, BaseException):
                    raise result
                elif result is not None:
                    summaries.append(result)
        return summaries

    # -- Public operations ----------------------------------------------------

    async def analyze(self, scan_result: ScanResult) -> ContextualAnalysisResult:
        """Analyze every relevant file and aggregate project-level views.

        Raises:
            AnalysisError: A failure outside the per-file loop
        """
        started = time.perf_counter()
        self.stats.files_analyzed = 0
        self.stats.files_computed = 0
        self.stats.errors_encountered = 0
        self._processed = 0

        try:
            self._report("initialization", "", 0, 0)
            paths = filter_relevant_files(scan_result, self.options)
            total = len(paths)
            logger.info(f"Analyzing {total} of {len(scan_result.files)} files")

            if not paths:
                return ContextualAnalysisResult(metadata=self._result_metadata(scan_result, [], started))

            summaries = await self._analyze_files(paths, scan_result)

            self._report("relationship-analysis", "", total, total)
            project_context = self.aggregator.project_context(summaries)
            relationships = []
            if self.options.run.generate_relationships:
                relationships = self.aggregator.relationships(summaries)
                self.cache.store_relationships(scan_result.root, relationships)
            statistics = self.aggregator.statistics(summaries)
            templates = self.aggregator.prompt_templates(summaries)

            self._report("finalization", "", total, total)
            metadata = self._result_metadata(scan_result, summaries, started)
            self.stats.average_processing_time = metadata.average_processing_time
            logger.info(
                f"Analyzed {len(summaries)} files with {self.stats.errors_encountered} errors "
                f"in {metadata.processing_time:.2f}s"
            )
            return ContextualAnalysisResult(
                summaries=summaries,
                project_context=project_context,
                relationships=relationships,
                statistics=statistics,
                prompt_templates=templates,
                metadata=metadata,
            )
        except Exception as e:
            self._handle_critical_error(e)
            if isinstance(e, CtxsumError):
                raise
            raise AnalysisError(f"Analysis failed: {e}") from e

    def _result_metadata(
        self, scan_result: ScanResult, summaries: list[ContextualSummary], started: float
    ) -> ResultMetadata:
        elapsed = time.perf_counter() - started
        files: dict[str, dict[str, Any]] = {}
        if self.options.run.include_metadata:
            for summary in summaries:
                if summary.metadata is not None:
                    files[summary.file_path] = {
                        "size": summary.metadata.file_size,
                        "last_modified": summary.metadata.last_modified,
                    }
        return ResultMetadata(
            analyzed_at=datetime.now(UTC).isoformat(),
            files_analyzed=self.stats.files_analyzed,
            errors=self.stats.errors_encountered,
            processing_time=elapsed,
            average_processing_time=elapsed / len(summaries) if summaries else 0.0,
            project_name=project_name(scan_result.root),
            files=files,
        )

    async def analyze_single_file(self, path: str, scan_result: ScanResult) -> ContextualSummary | None:
        """Summary for one file, or None when it is skipped or fails."""
        return await self._analyze_file(path, scan_result, 1)

    async def analyze_changed_files(self, paths: list[str], scan_result: ScanResult) -> list[ContextualSummary]:
        """Re-analyze a changed subset one file at a time."""
        summaries = []
        for path in paths:
            summary = await self.analyze_single_file(path, scan_result)
            if summary is not None:
                summaries.append(summary)
        return summaries

    def update_project_context(
        self, existing: list[ContextualSummary], new: list[ContextualSummary]
    ) -> ProjectContext:
        """Project context over the merged collection; new summaries replace old ones by path."""
        merged = {s.file_path: s for s in existing}
        merged.update((s.file_path, s) for s in new)
        return self.aggregator.project_context(list(merged.values()))

    async def generate_specialized_summaries(
        self,
        scan_result: ScanResult,
        personalization: Personalization,
        paths: list[str] | None = None,
    ) -> list[ContextualSummary]:
        """Analyze relevant files and adapt each prompt to ``personalization``."""
        if paths is None:
            paths = filter_relevant_files(scan_result, self.options)
        specialized = []
        for path in paths:
            summary = await self.analyze_single_file(path, scan_result)
            if summary is None:
                continue
            prompt = self.compiler.generate_adaptive_prompt(summary, personalization)
            specialized.append(summary.with_prompt(prompt))
        return specialized

    def optimize_summaries(
        self,
        summaries: list[ContextualSummary],
        max_tokens: int | None = None,
        target_audience: str | None = None,
    ) -> list[ContextualSummary]:
        """Regenerate prompts that exceed ``max_tokens`` for the audience preset."""
        if max_tokens is None:
            return list(summaries)
        personalization = personalization_for_audience(target_audience)
        optimized = []
        for summary in summaries:
            if summary.prompt.tokens.approximate > max_tokens:
                prompt = self.compiler.generate_adaptive_prompt(summary, personalization, max_tokens)
                summary = summary.with_prompt(prompt)
            optimized.append(summary)
        return optimized

    def calculate_quality_metrics(self, summaries: list[ContextualSummary]) -> QualityMetrics:
        metrics = calculate_quality_metrics(summaries)
        self.stats.quality = metrics
        return metrics

    def export_summaries(self, summaries: list[ContextualSummary], format: str = "json") -> str:
        return export_summaries(summaries, format)

    def get_statistics(self) -> ProcessingStats:
        return self.stats.copy()

    def clear_cache(self) -> None:
        self.cache.clear()

    @property
    def cache_size(self) -> int:
        return len(self.cache)

"""Tests for the analysis session: filtering, per-file isolation, caching and aggregation."""

from __future__ import annotations

import math
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from ctxsum.config import CtxsumConfig, CustomPattern, RunConfig, SummaryConfig
from ctxsum.errors import AnalysisError, ErrorSeverity
from ctxsum.extraction import ExtractorSuite
from ctxsum.models import personalization_for_audience
from ctxsum.orchestrator import (
    AnalysisOptions,
    ContextualSummariesAnalyzer,
    ProcessingStats,
    create_batches,
    filter_relevant_files,
    has_significant_content,
)
from ctxsum.scanner import scan_project
from ctxsum.semantics import SemanticSynthesizer


class StubExtractor:
    """Returns an empty record and remembers which files it saw."""

    def __init__(self, fail_on: str | None = None):
        self.fail_on = fail_on
        self.calls: list[str] = []

    def extract(self, source):
        self.calls.append(source.path)
        if source.path == self.fail_on:
            raise RuntimeError(f"boom in {source.name}")
        return None


def stub_suite(fail_on: str | None = None) -> tuple[ExtractorSuite, StubExtractor]:
    first = StubExtractor(fail_on)
    suite = ExtractorSuite(
        dependencies=first,
        functions=StubExtractor(),
        types=StubExtractor(),
        components=StubExtractor(),
        business_logic=StubExtractor(),
    )
    return suite, first


def helper_files(helper_text, count: int) -> dict[str, str]:
    return {f"/repo/src/lib/helpers{i}.ts": helper_text(i) for i in range(count)}


def options(parallel: bool = True, concurrency: int = 2, **callbacks) -> AnalysisOptions:
    return AnalysisOptions(
        run=RunConfig(parallel_processing=parallel, max_concurrency=concurrency),
        **callbacks,
    )


class TestRelevanceFilter:
    """Test which files reach the per-file pipeline."""

    def test_significant_content_counts_code_lines_only(self):
        """Imports, exports, comments and lone braces do not count."""
        text = "\n".join(["import a from 'a';", "export { a };", "// note", "/* block */", "{", "}", ""] * 3)
        assert has_significant_content(text) is False

    def test_significant_content_above_threshold(self, helper_text):
        """A helper module with real statements is significant."""
        assert has_significant_content(helper_text(0)) is True

    def test_test_files_excluded_by_default(self, scan_factory, helper_text):
        """Test files are dropped even when meaningful."""
        scan = scan_factory(
            {
                "/repo/src/a.ts": helper_text(0),
                "/repo/src/a.test.ts": helper_text(1),
            }
        )
        assert filter_relevant_files(scan, AnalysisOptions()) == ["/repo/src/a.ts"]

    def test_custom_test_pattern_keeps_test_files(self, scan_factory, helper_text):
        """A custom pattern named after tests keeps them in."""
        scan = scan_factory({"/repo/src/a.test.ts": helper_text(1)})
        opts = AnalysisOptions(
            summary=SummaryConfig(custom_patterns=[CustomPattern(name="unit-tests", matcher=".test.")])
        )
        assert filter_relevant_files(scan, opts) == ["/repo/src/a.test.ts"]

    def test_trivial_files_skipped(self, scan_factory):
        """Short files without markers are not relevant."""
        scan = scan_factory({"/repo/src/index.ts": "export * from './a';\nexport * from './b';\n"})
        assert filter_relevant_files(scan, AnalysisOptions()) == []


class TestBatches:
    """Test batch splitting."""

    def test_fixed_size_batches(self):
        """Items are split in order with a short final batch."""
        assert create_batches([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]

    def test_size_floor(self):
        """A non-positive size still yields single-item batches."""
        assert create_batches(["a", "b"], 0) == [["a"], ["b"]]


class TestProcessingStats:
    """Test incremental run counters."""

    def test_running_average_compression_ratio(self, summary_factory):
        """The ratio is averaged incrementally over analyzed files."""
        stats = ProcessingStats()
        first = summary_factory("/repo/a.ts")
        second = summary_factory("/repo/b.ts", header="A much longer header " * 10)

        stats.record(first, 0.2)
        stats.record(second, 0.4)

        expected = (first.prompt.tokens.compression_ratio + second.prompt.tokens.compression_ratio) / 2
        assert stats.compression_ratio == pytest.approx(expected)
        assert stats.average_processing_time == pytest.approx(0.3)
        assert stats.files_computed == 2
        assert stats.total_tokens_generated == (
            first.prompt.tokens.approximate + second.prompt.tokens.approximate
        )


class TestBatchIsolation:
    """A failing file never takes other files down with it."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("parallel", [True, False])
    async def test_one_failure_yields_n_minus_one(self, parallel, scan_factory, helper_text):
        """Exactly one error callback for the failing file; the rest are summarized in order."""
        files = helper_files(helper_text, 5)
        paths = list(files)
        failing = paths[2]
        suite, _ = stub_suite(fail_on=failing)
        errors = []
        analyzer = ContextualSummariesAnalyzer(
            options(parallel=parallel, error_callback=errors.append), suite=suite
        )

        result = await analyzer.analyze(scan_factory(files))

        assert [s.file_path for s in result.summaries] == [p for p in paths if p != failing]
        assert len(errors) == 1
        assert errors[0].file_path == failing
        assert errors[0].stage == "dependency-extraction"
        assert result.metadata.errors == 1
        assert result.metadata.files_analyzed == 4

    @pytest.mark.asyncio
    async def test_synthesis_failure_reports_stage(self, scan_factory, helper_text):
        """An exception from the synthesizer is attributed to semantic analysis."""
        files = helper_files(helper_text, 3)
        failing = list(files)[0]
        real = SemanticSynthesizer()

        def analyze(file_type, extraction, file_path, text):
            if file_path == failing:
                raise ValueError("synthesis broke")
            return real.analyze(file_type, extraction, file_path, text)

        synthesizer = MagicMock()
        synthesizer.analyze.side_effect = analyze
        suite, _ = stub_suite()
        errors = []
        analyzer = ContextualSummariesAnalyzer(
            options(error_callback=errors.append), suite=suite, synthesizer=synthesizer
        )

        result = await analyzer.analyze(scan_factory(files))

        assert len(result.summaries) == 2
        assert [(e.file_path, e.stage) for e in errors] == [(failing, "semantic-analysis")]

    @pytest.mark.asyncio
    async def test_all_files_failing_is_not_an_exception(self, scan_factory, helper_text):
        """Every file failing gives an empty list and a full error count."""
        files = helper_files(helper_text, 3)
        suite = MagicMock()
        suite.run.side_effect = RuntimeError("extraction unavailable")
        errors = []
        analyzer = ContextualSummariesAnalyzer(options(error_callback=errors.append), suite=suite)

        result = await analyzer.analyze(scan_factory(files))

        assert result.summaries == []
        assert len(errors) == 3
        assert analyzer.get_statistics().errors_encountered == 3


class TestCache:
    """Test summary reuse across calls on one analyzer."""

    @pytest.mark.asyncio
    async def test_cache_hit_skips_extraction(self, scan_factory, helper_text):
        """Re-analyzing an unchanged file returns the cached summary without extracting again."""
        scan = scan_factory(helper_files(helper_text, 2))
        suite, first = stub_suite()
        analyzer = ContextualSummariesAnalyzer(options(), suite=suite)

        result = await analyzer.analyze(scan)
        calls = list(first.calls)
        path = result.summaries[0].file_path

        again = await analyzer.analyze_single_file(path, scan)

        assert again is result.summaries[0]
        assert first.calls == calls
        assert analyzer.cache.stats.hits == 1
        assert analyzer.cache_size == 2

    @pytest.mark.asyncio
    async def test_cache_hits_leave_running_averages_alone(self, scan_factory, helper_text):
        """A cached summary counts as analyzed but not as a new timing sample."""
        scan = scan_factory(helper_files(helper_text, 2))
        suite, _ = stub_suite()
        analyzer = ContextualSummariesAnalyzer(options(), suite=suite)
        result = await analyzer.analyze(scan)
        before = analyzer.get_statistics()

        await analyzer.analyze_single_file(result.summaries[0].file_path, scan)

        after = analyzer.get_statistics()
        assert after.files_computed == before.files_computed == 2
        assert after.files_analyzed == before.files_analyzed + 1
        assert after.compression_ratio == before.compression_ratio

    @pytest.mark.asyncio
    async def test_missing_text_is_a_recoverable_warning(self, scan_factory, helper_text):
        """A path absent from the scan reports a file-scanning warning."""
        scan = scan_factory(helper_files(helper_text, 1))
        suite, _ = stub_suite()
        errors = []
        analyzer = ContextualSummariesAnalyzer(options(error_callback=errors.append), suite=suite)

        summary = await analyzer.analyze_single_file("/repo/src/lib/missing.ts", scan)

        assert summary is None
        assert errors[0].stage == "file-scanning"
        assert errors[0].severity is ErrorSeverity.WARNING
        assert errors[0].recoverable is True

    @pytest.mark.asyncio
    async def test_clear_cache(self, scan_factory, helper_text):
        """Clearing drops every entry."""
        suite, _ = stub_suite()
        analyzer = ContextualSummariesAnalyzer(options(), suite=suite)
        await analyzer.analyze(scan_factory(helper_files(helper_text, 2)))

        analyzer.clear_cache()

        assert analyzer.cache_size == 0


class TestAnalyze:
    """Test whole-run behaviour."""

    @pytest.mark.asyncio
    async def test_empty_relevant_set(self, scan_factory):
        """No relevant files gives a well-formed empty result."""
        analyzer = ContextualSummariesAnalyzer(options())

        result = await analyzer.analyze(scan_factory({"/repo/src/x.test.ts": "it('x', () => {});"}))

        assert result.summaries == []
        assert result.relationships == []
        assert result.project_context.project_type == "static"
        assert result.metadata.files_analyzed == 0

    @pytest.mark.asyncio
    async def test_critical_failure_is_reported_and_raised(self, scan_factory, helper_text):
        """A failure outside the per-file loop is critical and re-raised."""
        suite, _ = stub_suite()
        aggregator = MagicMock()
        aggregator.project_context.side_effect = RuntimeError("aggregation exploded")
        errors = []
        analyzer = ContextualSummariesAnalyzer(
            options(error_callback=errors.append), suite=suite, aggregator=aggregator
        )

        with pytest.raises(AnalysisError):
            await analyzer.analyze(scan_factory(helper_files(helper_text, 1)))

        assert errors[-1].severity is ErrorSeverity.CRITICAL
        assert errors[-1].recoverable is False

    @pytest.mark.asyncio
    async def test_progress_stages(self, scan_factory, helper_text):
        """Progress covers setup, every pipeline stage and aggregation."""
        events = []
        suite, _ = stub_suite()
        analyzer = ContextualSummariesAnalyzer(options(progress_callback=events.append), suite=suite)

        await analyzer.analyze(scan_factory(helper_files(helper_text, 2)))

        stages = [e.stage for e in events]
        assert stages[0] == "initialization"
        assert stages[-1] == "finalization"
        for stage in (
            "file-scanning",
            "dependency-extraction",
            "business-logic-analysis",
            "semantic-analysis",
            "summary-generation",
            "relationship-analysis",
        ):
            assert stage in stages
        assert events[1].estimated_completion is None
        assert events[-1].processed == events[-1].total == 2

    @pytest.mark.asyncio
    async def test_relationships_can_be_disabled(self, scan_factory, helper_text):
        """generate_relationships=False yields no edges."""
        suite, _ = stub_suite()
        opts = AnalysisOptions(run=RunConfig(generate_relationships=False))
        analyzer = ContextualSummariesAnalyzer(opts, suite=suite)

        result = await analyzer.analyze(scan_factory(helper_files(helper_text, 2)))

        assert result.relationships == []

    @pytest.mark.asyncio
    async def test_metadata_per_file(self, scan_factory, helper_text):
        """include_metadata records size per analyzed file and the project name."""
        suite, _ = stub_suite()
        analyzer = ContextualSummariesAnalyzer(options(), suite=suite)

        result = await analyzer.analyze(scan_factory(helper_files(helper_text, 1)))

        assert result.metadata.project_name == "repo"
        entry = result.metadata.files["/repo/src/lib/helpers0.ts"]
        assert entry["size"] == len(helper_text(0))

    @pytest.mark.asyncio
    async def test_custom_pattern_usage(self, scan_factory, helper_text):
        """Matched custom patterns are added as a custom usage group."""
        suite, _ = stub_suite()
        opts = AnalysisOptions(
            summary=SummaryConfig(custom_patterns=[CustomPattern(name="rounding", matcher="Math.round")])
        )
        analyzer = ContextualSummariesAnalyzer(opts, suite=suite)

        result = await analyzer.analyze(scan_factory(helper_files(helper_text, 1)))

        custom = [p for p in result.summaries[0].usage_patterns if p.type == "custom"]
        assert custom[0].patterns == ["rounding"]


class TestScenario:
    """End-to-end run over a small project with the default extractors."""

    @pytest.mark.asyncio
    async def test_component_utility_and_test_file(self, project: Path):
        """Two summaries, one component-to-utility import edge, library project."""
        config = CtxsumConfig()
        scan = scan_project(project, config)
        analyzer = ContextualSummariesAnalyzer(AnalysisOptions.from_config(config))

        result = await analyzer.analyze(scan)

        by_type = {s.file_type: s for s in result.summaries}
        assert len(result.summaries) == 2
        assert set(by_type) == {"component", "utility"}

        component = by_type["component"].file_path
        utility = by_type["utility"].file_path
        imports = [r for r in result.relationships if r.relationship == "imports"]
        assert [(r.source, r.target) for r in imports] == [(component, utility)]
        assert result.project_context.project_type == "library"

    @pytest.mark.asyncio
    async def test_token_bound_holds_for_every_prompt(self, project: Path):
        """approximate == ceil(original x 0.85) and ratio == approximate / original."""
        config = CtxsumConfig()
        analyzer = ContextualSummariesAnalyzer(AnalysisOptions.from_config(config))

        result = await analyzer.analyze(scan_project(project, config))

        for summary in result.summaries:
            tokens = summary.prompt.tokens
            assert tokens.original_size > 0
            assert tokens.approximate == math.ceil(tokens.original_size * 0.85)
            assert tokens.compression_ratio == tokens.approximate / tokens.original_size


class TestDerivedOperations:
    """Test operations over already-produced summaries."""

    def test_update_project_context_merges_by_path(self, summary_factory):
        """New summaries join the existing set before recomputation."""
        analyzer = ContextualSummariesAnalyzer()
        existing = [summary_factory("/repo/src/components/Card.tsx", file_type="component")]
        new = [summary_factory("/repo/src/api/users.ts", file_type="api-route")]

        context = analyzer.update_project_context(existing, new)

        assert context.project_type == "mixed"

    def test_optimize_only_oversized_prompts(self, summary_factory):
        """Prompts within the limit are returned untouched."""
        analyzer = ContextualSummariesAnalyzer()
        small = summary_factory("/repo/a.ts", header="Short header")
        large = summary_factory(
            "/repo/b.ts",
            header="Detailed header sentence. " * 40,
            key_points=["technical detail point"] * 5,
        )
        limit = small.prompt.tokens.approximate

        optimized = analyzer.optimize_summaries([small, large], max_tokens=limit, target_audience="developer")

        assert optimized[0] is small
        assert optimized[1] is not large
        assert optimized[1].prompt.personalization == personalization_for_audience("developer")

    def test_optimize_without_limit_is_identity(self, summary_factory):
        """No max_tokens means nothing is regenerated."""
        analyzer = ContextualSummariesAnalyzer()
        summaries = [summary_factory("/repo/a.ts")]
        assert analyzer.optimize_summaries(summaries) == summaries

    @pytest.mark.asyncio
    async def test_specialized_summaries_are_personalized(self, scan_factory, helper_text):
        """Each regenerated prompt carries the requested personalization."""
        suite, _ = stub_suite()
        analyzer = ContextualSummariesAnalyzer(options(), suite=suite)
        audience = personalization_for_audience("architect")

        summaries = await analyzer.generate_specialized_summaries(
            scan_factory(helper_files(helper_text, 2)), audience
        )

        assert len(summaries) == 2
        assert all(s.prompt.personalization == audience for s in summaries)

    @pytest.mark.asyncio
    async def test_changed_files_are_reanalyzed_sequentially(self, scan_factory, helper_text):
        """Only the given paths are analyzed."""
        files = helper_files(helper_text, 3)
        suite, first = stub_suite()
        analyzer = ContextualSummariesAnalyzer(options(), suite=suite)

        changed = list(files)[1:]
        summaries = await analyzer.analyze_changed_files(changed, scan_factory(files))

        assert [s.file_path for s in summaries] == changed
        assert first.calls == changed

    def test_statistics_are_a_copy(self):
        """Mutating the returned stats leaves the analyzer's untouched."""
        analyzer = ContextualSummariesAnalyzer()
        stats = analyzer.get_statistics()
        stats.files_analyzed = 99
        assert analyzer.get_statistics().files_analyzed == 0

    def test_quality_metrics_recorded(self, summary_factory):
        """Quality metrics are stored on the session stats."""
        analyzer = ContextualSummariesAnalyzer()
        metrics = analyzer.calculate_quality_metrics([summary_factory("/repo/a.ts", header="Header")])
        assert analyzer.get_statistics().quality == metrics
        assert metrics.average_prompt_quality > 0

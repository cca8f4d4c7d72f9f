"""Tests for the prompt compiler, templates and text transforms."""

from __future__ import annotations

import pytest

from ctxsum.classifier import estimate_token_count
from ctxsum.config import SummaryConfig
from ctxsum.extraction.models import (
    DependencyContext,
    ExternalDependency,
    ExtractionContext,
    FunctionContext,
    FunctionDefinition,
    FunctionSignature,
)
from ctxsum.models import GeneratedPrompt, Personalization, PromptSection, personalization_for_audience
from ctxsum.prompt import (
    PromptCompiler,
    compress_text,
    format_section,
    limit_tokens,
    remove_redundant,
    select_template,
    token_estimate,
)
from ctxsum.prompt.compiler import JUNIOR_NOTE
from ctxsum.prompt.formatting import order_by_priority
from ctxsum.prompt.templates import specialized_template
from ctxsum.semantics import SemanticSynthesizer

FORMAT_PATH = "/repo/src/utils/format.ts"


@pytest.fixture
def extraction():
    """Two exported data-transformation helpers importing one package."""
    functions = [
        FunctionDefinition(
            name=name,
            is_exported=True,
            patterns=["data-transformation"],
            signature=FunctionSignature(return_type="string"),
        )
        for name in ("formatName", "formatDate")
    ]
    return ExtractionContext(
        dependencies=DependencyContext(external=[ExternalDependency(name="dayjs")]),
        functions=FunctionContext(functions=functions),
    )


@pytest.fixture
def analysis(extraction):
    return SemanticSynthesizer().analyze("utility", extraction, FORMAT_PATH, "")


def with_sections(summary, *sections):
    return summary.with_prompt(
        GeneratedPrompt(summary="", structure=summary.prompt.structure, sections=list(sections))
    )


class TestTokenEstimate:
    """Test the approximate token counts."""

    def test_estimate(self):
        """approximate is the original count scaled by 0.85, rounded up."""
        estimate = token_estimate("x" * 400)
        assert estimate.original_size == 100
        assert estimate.approximate == 85
        assert estimate.compression_ratio == pytest.approx(0.85)

    def test_empty_text(self):
        """Empty text has no tokens and a zero ratio."""
        estimate = token_estimate("")
        assert estimate.approximate == 0
        assert estimate.compression_ratio == 0.0


class TestLimitTokens:
    """Test token-limited truncation."""

    def test_within_limit_is_unchanged(self):
        """Text within the limit is returned unchanged."""
        assert limit_tokens("short text", 10) == "short text"

    def test_hard_cut(self):
        """Without a usable break the text is cut at the scaled target."""
        assert limit_tokens("a" * 100, 10) == "a" * 36 + "..."

    def test_cut_at_sentence_break(self):
        """A sentence end past half the target is preferred."""
        content = "x" * 40 + ". " + "y" * 40
        assert limit_tokens(content, 15) == "x" * 40 + "...."

    @pytest.mark.parametrize("max_tokens", [8, 20, 50])
    def test_result_fits(self, max_tokens):
        """The truncated text always fits the limit."""
        content = "Sentence number one. " * 30
        assert estimate_token_count(limit_tokens(content, max_tokens)) <= max_tokens


class TestCompressText:
    """Test sentence-preserving compression."""

    TEXT = "Alpha one. Beta two. Gamma three. Delta four."

    def test_ratio_one_is_identity(self):
        """A ratio of one leaves the text alone."""
        assert compress_text(self.TEXT, 1.0) == self.TEXT

    def test_keeps_first_and_last_sentence(self):
        """The first and last sentences survive compression."""
        compressed = compress_text(self.TEXT, 0.9)
        assert compressed.startswith("Alpha one.")
        assert compressed.endswith("Delta four.")
        assert "..." in compressed

    def test_tight_ratio_keeps_first_sentence(self):
        """A tight ratio keeps only the opening sentence."""
        assert compress_text(self.TEXT, 0.3) == "Alpha one..."

    def test_single_sentence(self):
        """Text without sentence breaks is cut by length."""
        assert compress_text("abcdefghij", 0.5) == "abcde..."


class TestSectionTransforms:
    """Test redundancy removal, ordering and display formats."""

    def test_remove_redundant(self):
        """A section whose opening repeats an earlier one is dropped."""
        sections = [
            PromptSection(section="overview", content="Formats names for display"),
            PromptSection(section="structure", content="formats names for display  "),
            PromptSection(section="exports", content="formatName"),
        ]
        assert [s.section for s in remove_redundant(sections)] == ["overview", "exports"]

    def test_order_by_priority_is_stable(self):
        """Sections sort by priority, keeping input order within a level."""
        sections = [
            PromptSection(section="a", content="1", priority="low"),
            PromptSection(section="b", content="2", priority="medium"),
            PromptSection(section="c", content="3", priority="high"),
            PromptSection(section="d", content="4", priority="medium"),
        ]
        assert [s.section for s in order_by_priority(sections)] == ["c", "b", "d", "a"]

    @pytest.mark.parametrize(
        "display_format,content,expected",
        [
            ("bullet-points", "alpha\n- beta", "• alpha\n- beta"),
            ("numbered-list", "alpha\n\nbeta", "1. alpha\n2. beta"),
            ("key-value", "Name: card\nextra", "Name: card\n**extra:**"),
            ("code-snippet", "x = 1", "```\nx = 1\n```"),
            ("paragraph", "as is", "as is"),
            ("table", "only: row", "only: row"),
        ],
    )
    def test_format_section(self, display_format, content, expected):
        """Each display format renders its own layout."""
        assert format_section(content, display_format) == expected

    def test_table_splits_at_first_colon(self):
        """Table rows split at the first colon only."""
        table = format_section("url: http://x\nport: 80", "table")
        assert table.splitlines() == [
            "| Item | Description |",
            "|------|-------------|",
            "| url | http://x |",
            "| port | 80 |",
        ]


class TestTemplateSelection:
    """Test template fallback order."""

    @pytest.mark.parametrize(
        "file_type,complexity,criticality,expected",
        [
            ("utility", "very-high", "critical", "concise"),
            ("component", "low", "low", "detailed-technical"),
            ("service", "low", "critical", "detailed-technical"),
            ("hook", "high", "low", "detailed-technical"),
            ("hook", "low", "critical", "business-focused"),
            ("hook", "medium", "medium", "concise"),
        ],
    )
    def test_select(self, file_type, complexity, criticality, expected):
        """Templates fall back from type to complexity to criticality."""
        assert select_template(file_type, complexity, criticality).name == expected

    def test_specialized(self):
        """Use cases map to their templates."""
        assert specialized_template("code-review").name == "detailed-technical"
        assert specialized_template("documentation").name == "business-focused"
        assert specialized_template("other").name == "concise"


class TestCompile:
    """Test prompt compilation."""

    def test_header_and_tokens(self, extraction, analysis):
        """The concise header leads; tokens describe the final text."""
        prompt = PromptCompiler().compile("utility", extraction, analysis)

        assert prompt.summary.startswith("Provides utility functions for data processing • low")
        assert "Exports 2 functions" in prompt.structure.key_points
        assert prompt.structure.dependencies == "**External:** dayjs"
        assert prompt.tokens == token_estimate(prompt.summary)

    @pytest.mark.parametrize("max_prompt_length", [30, 60, 1000])
    def test_prompt_respects_ceiling(self, extraction, analysis, max_prompt_length):
        """The final text never exceeds min(template limit, configured limit)."""
        compiler = PromptCompiler(SummaryConfig(max_prompt_length=max_prompt_length))

        prompt = compiler.compile("utility", extraction, analysis)

        assert estimate_token_count(prompt.summary) <= min(300, max_prompt_length)

    def test_compression_levels(self):
        """Compression follows the optimize flag and preference."""
        assert PromptCompiler(optimize=False).compression_level == "none"
        assert PromptCompiler(SummaryConfig(template_preference="concise")).compression_level == "moderate"
        assert PromptCompiler().compression_level == "light"

    def test_code_examples_add_section(self, analysis):
        """Enabling code examples adds the usage-examples section."""
        compiler = PromptCompiler(SummaryConfig(include_code_examples=True))
        template = compiler.select("utility", analysis)
        assert template.section("usage-examples") is not None

    def test_build_summary(self, extraction, analysis):
        """The summary carries identity, purpose and exports."""
        summary = PromptCompiler().build_summary(FORMAT_PATH, "utility", extraction, analysis)

        assert summary.file_name == "format.ts"
        assert summary.purpose == "Provides utility functions for data processing"
        assert [s.name for s in summary.exports.functions] == ["formatName", "formatDate"]
        assert summary.to_dict()["prompt"]["summary"] == summary.prompt.summary


class TestAdaptivePrompt:
    """Test audience adaptation."""

    def test_idempotent(self, extraction, analysis):
        """Adapting an adapted prompt to the same audience is a no-op."""
        compiler = PromptCompiler()
        summary = compiler.build_summary(FORMAT_PATH, "utility", extraction, analysis)
        developer = personalization_for_audience("developer")

        first = compiler.generate_adaptive_prompt(summary, developer)
        second = compiler.generate_adaptive_prompt(summary.with_prompt(first), developer)

        assert second is first
        assert first.personalization == developer

    def test_junior_note(self, summary_factory):
        """Junior developers get an explanatory note."""
        junior = Personalization(target_audience="developer", experience_level="junior")
        summary = summary_factory(FORMAT_PATH, header="Formats values")

        prompt = PromptCompiler().generate_adaptive_prompt(summary, junior)

        assert prompt.structure.header == f"Formats values\n{JUNIOR_NOTE}"

    def test_business_analyst_rewrites(self, summary_factory):
        """Technical key points are dropped and section wording softened."""
        summary = summary_factory(FORMAT_PATH, key_points=["high complexity file", "Exports 2 functions"])
        summary = with_sections(summary, PromptSection(section="overview", content="Technical overview"))

        prompt = PromptCompiler().generate_adaptive_prompt(
            summary, personalization_for_audience("business-analyst")
        )

        assert prompt.structure.key_points == ["Exports 2 functions"]
        assert prompt.sections[0].content == "implementation overview"

    def test_max_tokens_compresses(self, summary_factory):
        """A token ceiling compresses long sections."""
        summary = summary_factory(FORMAT_PATH, header="Formats values")
        long_text = "This sentence explains a detail. " * 40
        summary = with_sections(summary, PromptSection(section="overview", content=long_text))

        prompt = PromptCompiler().generate_adaptive_prompt(
            summary, personalization_for_audience("developer"), max_tokens=100
        )

        assert len(prompt.sections[0].content) < len(long_text)


class TestSpecializedPrompt:
    """Test use-case re-cuts of existing sections."""

    @pytest.fixture
    def summary(self, summary_factory):
        return with_sections(
            summary_factory(FORMAT_PATH, header="Formats values"),
            PromptSection(section="dependencies", content="dayjs"),
            PromptSection(section="exports", content="formatName"),
            PromptSection(section="overview", content="Formats values"),
            PromptSection(section="structure", content="Two functions"),
        )

    @pytest.mark.parametrize(
        "use_case,expected",
        [
            ("code-review", ["overview", "structure", "dependencies"]),
            ("documentation", ["overview", "structure", "dependencies"]),
            ("unknown", ["overview", "exports"]),
        ],
    )
    def test_sections_filtered_and_ordered(self, summary, use_case, expected):
        """Use cases keep and order their own sections."""
        prompt = PromptCompiler().create_specialized_prompt(summary, use_case)
        assert [s.section for s in prompt.sections] == expected

    def test_text_is_reassembled(self, summary):
        """The specialized text is rebuilt with fresh tokens."""
        prompt = PromptCompiler().create_specialized_prompt(summary, "code-review")
        assert prompt.summary.startswith("Formats values")
        assert prompt.tokens == token_estimate(prompt.summary)

"""Prompt Compiler - template-driven, token-budgeted text artifacts.

Templates:
    concise (utility, type-definition, constant), detailed-technical
    (component, api-route, service) and business-focused. Files without an
    exact match fall back by complexity tier, then business criticality.

Usage:
    from ctxsum.prompt import PromptCompiler

    compiler = PromptCompiler(config.summary)
    summary = compiler.build_summary(path, file_type, extraction, analysis)
    review = compiler.create_specialized_prompt(summary, "code-review")
"""

from ctxsum.prompt.compiler import PromptCompiler, assemble, token_estimate
from ctxsum.prompt.formatting import (
    COMPRESSION_RATIOS,
    compress_text,
    format_section,
    limit_tokens,
    remove_redundant,
)
from ctxsum.prompt.templates import TEMPLATES, SummaryTemplate, select_template

__all__ = [
    "COMPRESSION_RATIOS",
    "TEMPLATES",
    "PromptCompiler",
    "SummaryTemplate",
    "assemble",
    "compress_text",
    "format_section",
    "limit_tokens",
    "remove_redundant",
    "select_template",
    "token_estimate",
]

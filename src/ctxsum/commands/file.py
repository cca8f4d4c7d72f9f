"""ctxsum file command - summarize a single file."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from ctxsum.cli import CtxsumContext

AUDIENCES = ["ai-assistant", "developer", "business-analyst", "architect"]
USE_CASES = ["code-review", "documentation"]


@click.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--audience",
    "-a",
    type=click.Choice(AUDIENCES),
    default=None,
    help="Rewrite the prompt for this audience",
)
@click.option(
    "--use-case",
    type=click.Choice(USE_CASES),
    default=None,
    help="Re-cut the prompt through a use-case template",
)
@click.option("--max-tokens", type=click.IntRange(min=1), default=None, help="Token ceiling for --audience")
@click.option("--json", "as_json", is_flag=True, help="Print the full summary as JSON")
@click.pass_obj
def file(
    ctx: CtxsumContext,
    path: Path,
    audience: str | None,
    use_case: str | None,
    max_tokens: int | None,
    as_json: bool,
) -> None:
    """Analyze one file and print its generated prompt."""
    import json

    from ctxsum.config import CtxsumConfig
    from ctxsum.errors import AnalysisErrorEvent, ExitCode
    from ctxsum.logging import print_error
    from ctxsum.models import personalization_for_audience
    from ctxsum.orchestrator import AnalysisOptions, ContextualSummariesAnalyzer
    from ctxsum.scanner import load_sources

    config = ctx.config or CtxsumConfig()
    resolved = path.resolve()
    scan_result = load_sources([resolved])

    errors: list[AnalysisErrorEvent] = []
    analyzer = ContextualSummariesAnalyzer(AnalysisOptions.from_config(config, error_callback=errors.append))
    summary = asyncio.run(analyzer.analyze_single_file(str(resolved), scan_result))

    if summary is None:
        reason = errors[0].message if errors else "file type is not summarized"
        print_error(f"Could not summarize {path}: {reason}")
        sys.exit(ExitCode.PARTIAL_SUCCESS)

    if audience is not None:
        prompt = analyzer.compiler.generate_adaptive_prompt(
            summary, personalization_for_audience(audience), max_tokens
        )
        summary = summary.with_prompt(prompt)
    if use_case is not None:
        summary = summary.with_prompt(analyzer.compiler.create_specialized_prompt(summary, use_case))

    if as_json:
        click.echo(json.dumps(summary.to_dict(), indent=2))
    else:
        click.echo(summary.prompt.summary)


__all__ = ["file"]

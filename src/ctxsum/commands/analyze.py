"""ctxsum analyze command - summarize every relevant file in a project."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from ctxsum.cli import CtxsumContext
    from ctxsum.models import ContextualAnalysisResult

FORMATS = ["json", "markdown", "csv", "xml"]


@click.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path), default=".")
@click.option(
    "--format",
    "-f",
    type=click.Choice(FORMATS),
    default="json",
    help="Export format",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    help="Output file (default: stdout)",
)
@click.option("--sequential", is_flag=True, help="Analyze files one at a time")
@click.option("--concurrency", "-c", type=click.IntRange(min=1), default=None, help="Files per batch")
@click.option("--no-relationships", is_flag=True, help="Skip the cross-file relationship graph")
@click.pass_obj
def analyze(
    ctx: CtxsumContext,
    path: Path,
    format: str,
    output: Path | None,
    sequential: bool,
    concurrency: int | None,
    no_relationships: bool,
) -> None:
    """Scan PATH, summarize its files and write the export.

    Files that fail are reported and left out; the exit code is then 2.
    """
    from ctxsum.config import CtxsumConfig
    from ctxsum.errors import AnalysisErrorEvent, ExitCode
    from ctxsum.logging import create_progress, print_success, print_warning, progress_updater
    from ctxsum.orchestrator import AnalysisOptions, ContextualSummariesAnalyzer
    from ctxsum.scanner import scan_project

    config = ctx.config or CtxsumConfig()

    overrides: dict[str, object] = {}
    if sequential:
        overrides["parallel_processing"] = False
    if concurrency is not None:
        overrides["max_concurrency"] = concurrency
    if no_relationships:
        overrides["generate_relationships"] = False
    run = config.run.model_copy(update=overrides)

    scan_result = scan_project(path, config)
    errors: list[AnalysisErrorEvent] = []

    with create_progress() as progress:
        task_id = progress.add_task("Analyzing", total=None)
        options = AnalysisOptions(
            summary=config.summary,
            run=run,
            progress_callback=progress_updater(progress, task_id) if ctx.verbosity != "quiet" else None,
            error_callback=errors.append,
        )
        analyzer = ContextualSummariesAnalyzer(options)
        result = asyncio.run(analyzer.analyze(scan_result))

    output_str = analyzer.export_summaries(result.summaries, format)

    if output:
        output.write_text(output_str)
        print_success(f"Wrote {len(result.summaries)} summaries to {output}")
        if ctx.verbosity != "quiet":
            click.echo(_format_overview(result), err=True)
    else:
        click.echo(output_str)

    if errors:
        print_warning(f"{len(errors)} file(s) could not be summarized")
        for event in errors:
            print_warning(f"  {event.file_path} [{event.stage}]: {event.message}")
        sys.exit(ExitCode.PARTIAL_SUCCESS)


def _format_overview(result: ContextualAnalysisResult) -> str:
    context = result.project_context
    stats = result.statistics
    lines = [
        f"Project: {result.metadata.project_name}",
        f"Type: {context.project_type} ({context.architecture_type}, {context.structure})",
        f"Complexity: {context.complexity}",
        f"Relationships: {len(result.relationships)}",
        f"Mined templates: {len(result.prompt_templates)}",
        f"Token reduction: {stats.token_reduction.reduction_percentage:.1f}%",
    ]
    if context.technical_stack:
        lines.append(f"Stack: {', '.join(context.technical_stack)}")
    return "\n".join(lines)


__all__ = ["analyze"]

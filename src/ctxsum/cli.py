"""ctxsum CLI - contextual summaries for TypeScript and JavaScript codebases."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Literal

from dotenv import load_dotenv

# Load .env before anything reads CTXSUM_* variables
load_dotenv()

import click  # noqa: E402

from ctxsum import __version__  # noqa: E402
from ctxsum.commands.lazy import LazyGroup  # noqa: E402

if TYPE_CHECKING:
    from ctxsum.config import CtxsumConfig

VerbosityLevel = Literal["quiet", "normal", "verbose"]


class CtxsumContext:
    """Shared context for CLI commands."""

    def __init__(self) -> None:
        self.config: CtxsumConfig | None = None
        self.verbosity: VerbosityLevel = "normal"
        self.debug: bool = False


pass_context = click.make_pass_decorator(CtxsumContext, ensure=True)


# name -> (module_path, attribute_name)
LAZY_COMMANDS: dict[str, tuple[str, str]] = {
    "analyze": ("ctxsum.commands.analyze", "analyze"),
    "file": ("ctxsum.commands.file", "file"),
    "templates": ("ctxsum.commands.templates", "templates"),
    "init": ("ctxsum.commands.init_cmd", "init"),
}


@click.group(cls=LazyGroup, lazy_subcommands=LAZY_COMMANDS)
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option("-q", "--quiet", is_flag=True, help="Suppress non-error output")
@click.option("--debug", is_flag=True, help="Show full tracebacks on errors")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file",
)
@click.version_option(version=__version__, prog_name="ctxsum")
@pass_context
def cli(
    ctx: CtxsumContext,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config: Path | None,
) -> None:
    """ctxsum - token-budgeted contextual summaries for codebases.

    \b
    Commands:
      analyze      Summarize every relevant file in a project
      file         Summarize one file and print its prompt
      templates    List the prompt template registry
      init         Write a default .ctxsumrc.toml

    Use 'ctxsum <command> --help' for details.
    Use --debug to show full tracebacks on errors.
    """
    from ctxsum.config import CtxsumConfig
    from ctxsum.logging import print_error, setup_logging

    ctx.debug = debug

    if quiet:
        ctx.verbosity = "quiet"
    elif verbose or debug:
        ctx.verbosity = "verbose"
    else:
        ctx.verbosity = "normal"

    setup_logging(ctx.verbosity)

    try:
        ctx.config = CtxsumConfig.load(config)
    except Exception as e:
        if not quiet:
            print_error(f"Failed to load configuration: {e}")
        # init does not need a config; the rest fall back to defaults


def main() -> None:
    """Entry point for the CLI."""
    import sys

    from ctxsum.errors import CtxsumError, ExitCode

    debug_mode = "--debug" in sys.argv

    try:
        cli()
    except click.ClickException:
        raise
    except KeyboardInterrupt:
        sys.exit(130)
    except Exception as e:
        from ctxsum.logging import print_error, print_info

        print_error(str(e))

        if debug_mode:
            import traceback

            print_info("")
            print_info("Full traceback (--debug mode):")
            traceback.print_exc()
        else:
            print_info("")
            print_info("Run with --debug for full traceback.")

        sys.exit(e.exit_code if isinstance(e, CtxsumError) else ExitCode.FATAL_ERROR)


if __name__ == "__main__":
    main()

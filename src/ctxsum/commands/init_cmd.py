"""ctxsum init command - write a default .ctxsumrc.toml."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from ctxsum.cli import CtxsumContext


@click.command()
@click.option("--force", "-f", is_flag=True, help="Overwrite an existing .ctxsumrc.toml")
@click.pass_obj
def init(ctx: CtxsumContext, force: bool) -> None:
    """Create a configuration file with defaults in the current directory."""
    from ctxsum.config import CONFIG_FILE_NAME, get_default_config_toml
    from ctxsum.errors import ExitCode
    from ctxsum.logging import print_error, print_info, print_success, print_warning

    config_path = Path.cwd() / CONFIG_FILE_NAME

    if config_path.exists() and not force:
        print_warning(f"Configuration file already exists: {config_path}")
        print_info("Use --force to overwrite")
        sys.exit(ExitCode.CONFIG_ERROR)

    try:
        config_path.write_text(get_default_config_toml())
    except PermissionError:
        print_error(f"Permission denied: {config_path}")
        sys.exit(ExitCode.CONFIG_ERROR)
    except OSError as e:
        print_error(f"Failed to create config file: {e}")
        sys.exit(ExitCode.FATAL_ERROR)

    print_success(f"Created {config_path}")
    print_info("\nNext steps:")
    print_info(f"  1. Edit {CONFIG_FILE_NAME} to tune prompt budgets and run options")
    print_info("  2. Run 'ctxsum analyze .' to summarize your codebase")


__all__ = ["init"]

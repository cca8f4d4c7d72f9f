"""ctxsum templates command - list the prompt template registry."""

from __future__ import annotations

import click


@click.command()
def templates() -> None:
    """List prompt templates with their file types and sections."""
    from rich.table import Table

    from ctxsum.logging import console
    from ctxsum.prompt.templates import GENERIC, TEMPLATES

    table = Table(title="Prompt Templates")
    table.add_column("Name", style="cyan")
    table.add_column("File Types")
    table.add_column("Sections")
    table.add_column("Max Tokens", justify="right")

    for template in (*TEMPLATES.values(), GENERIC):
        sections = ", ".join(s.id if s.required else f"{s.id}?" for s in template.sections)
        table.add_row(
            template.name,
            ", ".join(template.file_types) or "-",
            sections,
            str(template.max_tokens),
        )

    console.print(table)


__all__ = ["templates"]

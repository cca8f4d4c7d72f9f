"""Output format exporters for contextual summaries."""

from __future__ import annotations

import csv
import io
import json
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from ctxsum import __version__
from ctxsum.errors import ExportError
from ctxsum.models import ContextualSummary

CSV_HEADER = [
    "FilePath",
    "FileName",
    "Purpose",
    "Complexity",
    "FileType",
    "KeyFeatures",
    "ExternalDeps",
    "TokenCount",
]

# Ampersand first so later entities are not double-escaped
XML_ESCAPES: list[tuple[str, str]] = [
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&#39;"),
]


def escape_xml(text: str) -> str:
    for char, entity in XML_ESCAPES:
        text = text.replace(char, entity)
    return text


def export_json(summaries: list[ContextualSummary], pretty: bool = True) -> str:
    """Export summaries as a structured JSON dump.

    Args:
        summaries: Summaries to export
        pretty: Pretty-print with indentation

    Returns:
        JSON string
    """
    data: dict[str, Any] = {
        "version": "1.0",
        "format": "ctxsum-json",
        "generator": f"ctxsum {__version__}",
        "generated": datetime.now(UTC).isoformat(),
        "count": len(summaries),
        "summaries": [s.to_dict() for s in summaries],
    }
    return json.dumps(data, indent=2 if pretty else None)


def export_markdown(summaries: list[ContextualSummary]) -> str:
    """Export one Markdown section per file."""
    lines: list[str] = []

    for summary in summaries:
        lines.append(f"# {summary.file_name}")
        lines.append("")
        lines.append(f"**Purpose:** {summary.purpose}")
        lines.append(f"**Complexity:** {summary.complexity}")
        lines.append(f"**File Type:** {summary.file_type}")
        lines.append("")

        lines.append("## Key Features")
        lines.extend(f"- {feature}" for feature in summary.key_features)
        lines.append("")

        lines.append("## Dependencies")
        lines.append(f"**External:** {', '.join(d.name for d in summary.dependencies.external)}")
        lines.append(f"**Internal:** {len(summary.dependencies.internal)} files")
        lines.append("")

        lines.append("## Generated Summary")
        lines.append(summary.prompt.summary)
        lines.append("")
        lines.append("---")
        lines.append("")

    return "\n".join(lines)


def export_csv(summaries: list[ContextualSummary]) -> str:
    """Flat table, one row per file; list cells are joined with ';'."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    buffer.write(",".join(CSV_HEADER) + "\n")
    for summary in summaries:
        writer.writerow(
            [
                summary.file_path,
                summary.file_name,
                summary.purpose,
                summary.complexity,
                summary.file_type,
                ";".join(summary.key_features),
                ";".join(d.name for d in summary.dependencies.external),
                summary.prompt.tokens.approximate,
            ]
        )
    return buffer.getvalue().rstrip("\n")


def _xml_summary(summary: ContextualSummary) -> list[str]:
    tokens = summary.prompt.tokens
    lines = [
        "  <summary>",
        f"    <filePath>{escape_xml(summary.file_path)}</filePath>",
        f"    <fileName>{escape_xml(summary.file_name)}</fileName>",
        f"    <purpose>{escape_xml(summary.purpose)}</purpose>",
        f"    <complexity>{escape_xml(summary.complexity)}</complexity>",
        f"    <fileType>{escape_xml(summary.file_type)}</fileType>",
        "    <keyFeatures>",
    ]
    lines.extend(f"      <feature>{escape_xml(f)}</feature>" for f in summary.key_features)
    lines.append("    </keyFeatures>")
    lines.append("    <dependencies>")
    lines.append("      <external>")
    lines.extend(
        f'        <dependency name="{escape_xml(d.name)}" purpose="{escape_xml(d.purpose)}" />'
        for d in summary.dependencies.external
    )
    lines.append("      </external>")
    lines.append(f'      <internal count="{len(summary.dependencies.internal)}" />')
    lines.append("    </dependencies>")
    lines.append("    <tokens>")
    lines.append(f"      <approximate>{tokens.approximate}</approximate>")
    lines.append(f"      <original>{tokens.original_size}</original>")
    lines.append(f"      <compression>{tokens.compression_ratio}</compression>")
    lines.append("    </tokens>")
    lines.append(f"    <generatedSummary>{escape_xml(summary.prompt.summary)}</generatedSummary>")
    lines.append("  </summary>")
    return lines


def export_xml(summaries: list[ContextualSummary]) -> str:
    """Tagged-markup document with ``& < > " '`` escaped."""
    lines = ['<?xml version="1.0" encoding="UTF-8"?>', "<contextualSummaries>"]
    for summary in summaries:
        lines.extend(_xml_summary(summary))
    lines.append("</contextualSummaries>")
    return "\n".join(lines)


EXPORTERS: dict[str, Callable[[list[ContextualSummary]], str]] = {
    "json": export_json,
    "markdown": export_markdown,
    "csv": export_csv,
    "xml": export_xml,
}

EXPORT_FORMATS = tuple(EXPORTERS)


def export_summaries(summaries: list[ContextualSummary], format: str) -> str:
    """Render summaries in one of EXPORT_FORMATS."""
    exporter = EXPORTERS.get(format)
    if exporter is None:
        raise ExportError(
            f"Unknown export format: {format}",
            format=format,
            supported=list(EXPORT_FORMATS),
        )
    return exporter(summaries)

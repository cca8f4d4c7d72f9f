"""Section display formats, token limiting, compression and redundancy removal.

Everything here is a pure string transform; the compiler decides when each
one applies.
"""

from __future__ import annotations

import math
import re
from dataclasses import replace

from ctxsum.classifier import estimate_token_count
from ctxsum.models import PromptSection, PromptStructure

ELLIPSIS = "..."

COMPRESSION_LEVELS: tuple[str, ...] = ("none", "light", "moderate", "aggressive")

# Retention ratio applied to every section
COMPRESSION_RATIOS: dict[str, float] = {
    "none": 1.0,
    "light": 0.9,
    "moderate": 0.7,
    "aggressive": 0.5,
}

# level -> (header/footer/lines ratio, key points kept, key point ratio)
STRUCTURE_COMPRESSION: dict[str, tuple[float, int, float]] = {
    "moderate": (0.8, 4, 0.8),
    "aggressive": (0.6, 3, 0.7),
}

PRIORITY_SCORES = {"high": 3, "medium": 2, "low": 1}

REDUNDANCY_KEY_LENGTH = 50

SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
NUMBERED_RE = re.compile(r"^\d+\.")
BULLET_PREFIXES = ("•", "-", "*")


def _lines(content: str) -> list[str]:
    return [line for line in content.split("\n") if line.strip()]


def _bullets(content: str) -> str:
    return "\n".join(
        line if line.startswith(BULLET_PREFIXES) else f"• {line}" for line in _lines(content)
    )


def _numbered(content: str) -> str:
    return "\n".join(
        line if NUMBERED_RE.match(line) else f"{index}. {line}"
        for index, line in enumerate(_lines(content), start=1)
    )


def _key_value(content: str) -> str:
    return "\n".join(line if ":" in line else f"**{line}:**" for line in _lines(content))


def _code(content: str) -> str:
    return f"```\n{content}\n```"


def _table(content: str) -> str:
    lines = _lines(content)
    if len(lines) <= 1:
        return content
    rows = []
    for line in lines:
        item, _, description = line.partition(":")
        rows.append(f"| {item.strip()} | {description.strip()} |")
    return "| Item | Description |\n|------|-------------|\n" + "\n".join(rows)


SECTION_FORMATTERS = {
    "bullet-points": _bullets,
    "numbered-list": _numbered,
    "key-value": _key_value,
    "code-snippet": _code,
    "table": _table,
}


def format_section(content: str, display_format: str) -> str:
    """Post-process rendered content by its display format; paragraph passes through."""
    formatter = SECTION_FORMATTERS.get(display_format)
    return formatter(content) if formatter else content


def limit_tokens(content: str, max_tokens: int) -> str:
    """Truncate content whose estimate exceeds ``max_tokens``.

    Cuts back to the last sentence or line break when that keeps more than
    half of the target length, otherwise cuts hard. Either way an ellipsis
    marks the cut.
    """
    estimated = estimate_token_count(content)
    if estimated <= max_tokens:
        return content

    target = math.floor(len(content) * (max_tokens / estimated) * 0.9)
    if target >= len(content):
        return content

    truncated = content[:target]
    cut = max(truncated.rfind("."), truncated.rfind("\n"))
    if cut > target * 0.5:
        return truncated[: cut + 1] + ELLIPSIS
    return truncated + ELLIPSIS


def compress_text(text: str, ratio: float) -> str:
    """Shorten text to ``ratio`` of its length, keeping first and last sentence."""
    if ratio >= 1:
        return text
    target = math.floor(len(text) * ratio)
    if target >= len(text):
        return text

    sentences = [s for s in SENTENCE_SPLIT_RE.split(text) if s.strip()]
    if len(sentences) <= 1:
        return text[:target] + ELLIPSIS

    first, last = sentences[0], sentences[-1]
    remaining = target - len(first) - len(last) - 10
    if remaining <= 0:
        return first + ELLIPSIS

    middle = ". ".join(sentences[1:-1])[:remaining]
    return f"{first}. {middle}{ELLIPSIS} {last}."


def compress_structure(structure: PromptStructure, level: str) -> PromptStructure:
    """Sentence-preserving compression of header, key points and footer lines."""
    if level not in STRUCTURE_COMPRESSION:
        return structure
    ratio, keep, point_ratio = STRUCTURE_COMPRESSION[level]
    return PromptStructure(
        header=compress_text(structure.header, ratio),
        key_points=[compress_text(point, point_ratio) for point in structure.key_points[:keep]],
        dependencies=compress_text(structure.dependencies, ratio),
        exports=compress_text(structure.exports, ratio),
        footer=compress_text(structure.footer, ratio) if structure.footer else "",
    )


def compress_sections(sections: list[PromptSection], level: str) -> list[PromptSection]:
    ratio = COMPRESSION_RATIOS.get(level, 1.0)
    return [replace(s, content=compress_text(s.content, ratio)) for s in sections]


def content_key(content: str) -> str:
    return content[:REDUNDANCY_KEY_LENGTH].strip().casefold()


def remove_redundant(sections: list[PromptSection]) -> list[PromptSection]:
    """Drop sections whose opening duplicates an earlier section's."""
    seen: set[str] = set()
    kept = []
    for section in sections:
        key = content_key(section.content)
        if key in seen:
            continue
        seen.add(key)
        kept.append(section)
    return kept


def priority_score(priority: str) -> int:
    return PRIORITY_SCORES.get(priority, 1)


def order_by_priority(sections: list[PromptSection]) -> list[PromptSection]:
    """High before medium before low; ties keep template order."""
    return sorted(sections, key=lambda s: -priority_score(s.priority))


# audience -> ordered (pattern, replacement) rewrites
AUDIENCE_REWRITES: dict[str, list[tuple[re.Pattern[str], str]]] = {
    "business-analyst": [
        (re.compile("technical", re.IGNORECASE), "implementation"),
        (re.compile("complexity", re.IGNORECASE), "sophistication"),
    ],
    "documentation": [
        (re.compile(r"\*\*"), ""),
        (re.compile("•"), "-"),
    ],
}


def adapt_for_audience(content: str, audience: str) -> str:
    for pattern, replacement in AUDIENCE_REWRITES.get(audience, []):
        content = pattern.sub(replacement, content)
    return content

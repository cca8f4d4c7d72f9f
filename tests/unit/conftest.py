"""Shared fixtures for ctxsum unit tests."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from ctxsum.extraction.models import (
    BusinessLogicContext,
    BusinessOperation,
    DependencyContext,
    ExternalDependency,
    InternalDependency,
)
from ctxsum.extraction.treesitter import parse_source
from ctxsum.models import (
    ContextualSummary,
    GeneratedPrompt,
    PromptStructure,
    TechnicalContext,
)
from ctxsum.prompt import token_estimate
from ctxsum.scanner import ScanResult, SourceFile, detect_metadata

USER_CARD = """import React from 'react';
import { formatName } from '../utils/format';

interface UserCardProps {
  first: string;
  last: string;
}

export default function UserCard({ first, last }: UserCardProps) {
  const name = formatName(first, last);
  return (
    <div className="user-card">
      <span>{name}</span>
    </div>
  );
}
"""

FORMAT_UTILS = """const SEPARATOR = " ";

function capitalize(word: string): string {
  const head = word.charAt(0).toUpperCase();
  const tail = word.slice(1).toLowerCase();
  return head + tail;
}

export function formatName(first: string, last: string): string {
  const parts = [first, last].filter(Boolean);
  return parts.map(capitalize).join(SEPARATOR);
}

export function formatDate(date: Date): string {
  const iso = date.toISOString();
  return iso.slice(0, 10);
}
"""

USER_CARD_TEST = """import { render } from '@testing-library/react';
import UserCard from './UserCard';

describe('UserCard', () => {
  it('renders the formatted name', () => {
    const view = render(<UserCard first="ada" last="lovelace" />);
    expect(view.getByText('Ada Lovelace')).toBeTruthy();
  });
});
"""


def helper_module(index: int) -> str:
    """A plain helper module with enough significant lines to be relevant."""
    return f"""const FACTOR_{index} = {index + 2};

function scale{index}(value: number): number {{
  const scaled = value * FACTOR_{index};
  const rounded = Math.round(scaled);
  return rounded;
}}

export function total{index}(values: number[]): number {{
  let sum = 0;
  for (const value of values) {{
    sum += scale{index}(value);
  }}
  return sum;
}}
"""


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Component, the utility it imports, and a test file for the component."""
    components = tmp_path / "src" / "components"
    utils = tmp_path / "src" / "utils"
    components.mkdir(parents=True)
    utils.mkdir(parents=True)
    (components / "UserCard.tsx").write_text(USER_CARD)
    (components / "UserCard.test.tsx").write_text(USER_CARD_TEST)
    (utils / "format.ts").write_text(FORMAT_UTILS)
    return tmp_path


def make_source(path: str, text: str) -> SourceFile:
    return SourceFile(path=path, text=text, tree=parse_source(text, path), metadata=detect_metadata(path, text))


def make_scan(files: dict[str, str], root: str = "/repo") -> ScanResult:
    result = ScanResult(root=root)
    for path, text in files.items():
        result.add(make_source(path, text), "typescript")
    return result


@pytest.fixture
def scan_factory() -> Callable[..., ScanResult]:
    return make_scan


def make_summary(
    file_path: str,
    file_type: str = "utility",
    complexity: str = "low",
    purpose: str = "Provides utility functions for data processing",
    internal: list[str] | None = None,
    external: list[str] | None = None,
    header: str = "",
    key_points: list[str] | None = None,
    operations: list[str] | None = None,
) -> ContextualSummary:
    """A hand-built summary for aggregation tests."""
    structure = PromptStructure(header=header, key_points=list(key_points or []))
    text = "\n\n".join(part for part in [header, *structure.key_points] if part) or purpose
    return ContextualSummary(
        file_path=file_path,
        file_name=Path(file_path).name,
        file_type=file_type,
        purpose=purpose,
        complexity=complexity,
        prompt=GeneratedPrompt(summary=text, structure=structure, tokens=token_estimate(text)),
        dependencies=DependencyContext(
            internal=[InternalDependency(path=p) for p in internal or []],
            external=[ExternalDependency(name=n) for n in external or []],
        ),
        business_logic=BusinessLogicContext(
            operations=[BusinessOperation(name=n) for n in operations or []]
        ),
        technical_context=TechnicalContext(),
    )


@pytest.fixture
def summary_factory() -> Callable[..., ContextualSummary]:
    return make_summary


@pytest.fixture
def helper_text() -> Callable[[int], str]:
    return helper_module

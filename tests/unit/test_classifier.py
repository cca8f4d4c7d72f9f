"""Tests for file-context classification."""

from __future__ import annotations

import pytest

from conftest import FORMAT_UTILS, USER_CARD
from ctxsum.classifier import (
    FILE_TYPES,
    classify_file,
    estimate_token_count,
    has_only_type_declarations,
)
from ctxsum.extraction.treesitter import parse_source

HOOK_TEXT = """import { useState } from 'react';

export function useCart() {
  const [items, setItems] = useState([]);
  return { items, setItems };
}
"""

TYPES_TEXT = """import { Id } from './ids';

/** A drawable shape */
export interface Shape {
  id: Id;
  area: number;
}

export type Color = 'red' | 'blue';

enum Kind {
  Circle,
  Square,
}
"""


def classify(path: str, text: str) -> str:
    return classify_file(path, text, parse_source(text, path))


class TestClassifyFile:
    """Test the ordered classification rules."""

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/repo/src/Button.test.tsx", "test"),
            ("/repo/src/__tests__/format.ts", "test"),
            ("/repo/src/app.scss", "style"),
            ("/repo/next.config.js", "config"),
            ("/repo/src/api/users.ts", "api-route"),
            ("/repo/src/authMiddleware.ts", "middleware"),
            ("/repo/src/constants.ts", "constant"),
            ("/repo/src/statusEnum.ts", "constant"),
            ("/repo/src/user.types.ts", "type-definition"),
            ("/repo/src/global.d.ts", "type-definition"),
            ("/repo/src/userService.ts", "service"),
            ("/repo/src/lib/apiClient.ts", "service"),
        ],
    )
    def test_path_rules(self, path, expected):
        """Path-driven rules need no content."""
        assert classify_file(path, "export const value = 1;") == expected

    def test_first_match_wins(self):
        """A component's test file is a test, not a component."""
        assert classify("/repo/src/components/UserCard.test.tsx", USER_CARD) == "test"

    def test_component(self):
        """Markup plus a UI import makes a component."""
        assert classify("/repo/src/components/UserCard.tsx", USER_CARD) == "component"

    def test_component_by_default_export(self):
        """A default export named after the file is a component."""
        text = "const Panel = () => null;\nexport default Panel;\n"
        assert classify_file("/repo/src/Panel.ts", text) == "component"

    def test_hook(self):
        """An exported use* function calling hooks is a hook."""
        assert classify("/repo/src/hooks/useCart.ts", HOOK_TEXT) == "hook"

    def test_type_only_file(self):
        """A file of nothing but type declarations is a type definition."""
        assert classify("/repo/src/shapes.ts", TYPES_TEXT) == "type-definition"

    def test_business_logic(self):
        """Several business verbs make business logic."""
        text = "export function run(order) { calculate(order); process(order); }"
        assert classify_file("/repo/src/orderManager.ts", text) == "business-logic"

    def test_utility_fallback(self):
        """Plain helpers fall through to utility."""
        assert classify("/repo/src/utils/format.ts", FORMAT_UTILS) == "utility"

    def test_missing_text(self):
        """Missing text falls through to utility."""
        assert classify_file("/repo/src/utils/x.ts", None) == "utility"

    def test_every_result_is_known(self):
        """Classification only returns known file types."""
        assert classify("/repo/src/utils/format.ts", FORMAT_UTILS) in FILE_TYPES


class TestTypeOnly:
    """Test the type-only syntax check."""

    def test_imports_alone_are_not_type_only(self):
        """Imports without declarations are not type-only."""
        text = "import { Id } from './ids';\n"
        assert not has_only_type_declarations(parse_source(text, "/repo/src/a.ts"))

    def test_code_is_not_type_only(self):
        """A value declaration breaks type-only."""
        text = "export interface A { x: number }\nexport const a = 1;\n"
        assert not has_only_type_declarations(parse_source(text, "/repo/src/a.ts"))

    def test_no_tree(self):
        """A missing tree is never type-only."""
        assert not has_only_type_declarations(None)


class TestTokenCount:
    @pytest.mark.parametrize("text,expected", [("", 0), ("abcd", 1), ("abcde", 2)])
    def test_four_characters_per_token(self, text, expected):
        """Tokens are characters over four, rounded up."""
        assert estimate_token_count(text) == expected

"""Tests for the project scanner."""

from __future__ import annotations

from pathlib import Path

import pytest

from conftest import FORMAT_UTILS, USER_CARD
from ctxsum.config import CtxsumConfig, ScannerConfig
from ctxsum.scanner import (
    compute_file_hash,
    detect_metadata,
    is_test_path,
    load_sources,
    scan_project,
    should_ignore,
)


@pytest.fixture
def noisy_project(project: Path) -> Path:
    """The sample project plus files the scanner must not load."""
    (project / "node_modules" / "react").mkdir(parents=True)
    (project / "node_modules" / "react" / "index.js").write_text("module.exports = {};\n")
    (project / ".cache").mkdir()
    (project / ".cache" / "stale.ts").write_text("export const x = 1;\n")
    (project / "src" / "app.css").write_text("body { margin: 0; }\n")
    (project / "src" / "vendor.min.js").write_text("var a=1;\n")
    return project


class TestScanProject:
    """Test directory walking and filtering."""

    def test_loads_source_files(self, noisy_project):
        """Only supported files outside ignored dirs are loaded."""
        result = scan_project(noisy_project, CtxsumConfig())

        names = sorted(Path(p).name for p in result.files)
        assert names == ["UserCard.test.tsx", "UserCard.tsx", "format.ts"]
        assert result.stats.total_files == 3
        assert result.root == str(noisy_project.resolve())

    def test_skipped_reasons(self, noisy_project):
        """Skipped entries record why they were skipped."""
        result = scan_project(noisy_project, CtxsumConfig())

        skipped = {s.path: s.reason for s in result.skipped}
        assert skipped["node_modules"] == "ignore_pattern"
        assert skipped[str(Path("src") / "vendor.min.js")] == "ignore_pattern"
        assert skipped[str(Path("src") / "app.css")] == "unknown_extension"
        assert not any(".cache" in path for path in skipped)

    def test_hidden_included_on_request(self, noisy_project):
        """Hidden directories are scanned when enabled."""
        config = CtxsumConfig(scanner=ScannerConfig(include_hidden=True))
        result = scan_project(noisy_project, config)
        assert any(path.endswith("stale.ts") for path in result.files)

    def test_file_too_large(self, project):
        """Files over the size limit are skipped."""
        (project / "src" / "big.ts").write_text("x" * 2048)
        config = CtxsumConfig(scanner=ScannerConfig(max_file_size_kb=1))

        result = scan_project(project, config)

        assert {s.reason for s in result.skipped if s.path.endswith("big.ts")} == {"file_too_large"}

    def test_sources_carry_text_tree_and_metadata(self, project):
        """Loaded sources carry text, a tree and file metadata."""
        result = scan_project(project, CtxsumConfig())
        path = str((project / "src" / "utils" / "format.ts").resolve())

        source = result.files[path]

        assert result.text_for(path) == FORMAT_UTILS
        assert source.tree is not None
        assert source.metadata.size_bytes == len(FORMAT_UTILS.encode())
        assert source.metadata.last_modified


class TestLoadSources:
    def test_missing_path_is_skipped(self, project):
        """Missing paths are skipped as not found."""
        present = project / "src" / "utils" / "format.ts"
        missing = project / "src" / "utils" / "gone.ts"

        result = load_sources([present, missing])

        assert list(result.files) == [str(present.resolve())]
        assert [(s.path, s.reason) for s in result.skipped] == [(str(missing.resolve()), "not_found")]

    def test_text_for_unknown_path(self, project):
        """Unknown paths have no text."""
        result = load_sources([project / "src" / "utils" / "format.ts"])
        assert result.text_for("/nowhere.ts") is None


class TestMetadata:
    """Test metadata flags."""

    def test_component_flags(self):
        """A component file sets the UI flags."""
        metadata = detect_metadata("/repo/src/components/UserCard.tsx", USER_CARD)

        assert metadata.has_ui_framework_import
        assert metadata.has_markup
        assert metadata.has_type_declarations
        assert not metadata.is_test
        assert metadata.is_meaningful

    def test_plain_module(self):
        """A plain helper module is not meaningful."""
        metadata = detect_metadata("/repo/src/utils/format.ts", FORMAT_UTILS)
        assert not metadata.is_meaningful

    def test_translations(self):
        """Translation calls are detected."""
        metadata = detect_metadata("/repo/src/a.ts", "const label = t('cart.title');")
        assert metadata.has_translations

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/repo/src/a.test.ts", True),
            ("/repo/src/a.spec.tsx", True),
            ("/repo/src/__tests__/a.ts", True),
            ("/repo/src/a.ts", False),
        ],
    )
    def test_is_test_path(self, path, expected):
        """Test files are recognised by name or directory."""
        assert is_test_path(path) is expected

    def test_hash_format(self):
        """Hashes are stable, prefixed and truncated."""
        digest = compute_file_hash("export const a = 1;")
        assert digest.startswith("sha256:")
        assert len(digest) == len("sha256:") + 16
        assert digest == compute_file_hash("export const a = 1;")


class TestShouldIgnore:
    @pytest.mark.parametrize(
        "relative,expected",
        [
            ("node_modules/react/index.js", "ignore_pattern"),
            ("dist", "ignore_pattern"),
            ("src/bundle.min.js", "ignore_pattern"),
            ("src/index.ts", None),
        ],
    )
    def test_default_patterns(self, tmp_path, relative, expected):
        """Directory and file globs both ignore paths."""
        patterns = ScannerConfig().ignore
        assert should_ignore(tmp_path / relative, patterns, tmp_path) == expected

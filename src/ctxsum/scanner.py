"""ctxsum scanner - walk a project and load source text, syntax trees and metadata.

The analyzer reads a ScanResult and never touches the filesystem itself.
"""

from __future__ import annotations

import hashlib
import os
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from fnmatch import fnmatch
from pathlib import Path
from typing import Any

from tree_sitter import Tree

from ctxsum.config import CtxsumConfig
from ctxsum.extraction.treesitter import language_for, parse_source
from ctxsum.logging import get_logger

TEST_MARKERS = (".test.", ".spec.", "__tests__")

UI_IMPORT_RE = re.compile(
    r"""(?:from\s+|require\(\s*)['"](?:react|react-dom|preact|vue|solid-js|svelte)(?:/[^'"]*)?['"]"""
)
MARKUP_RE = re.compile(r"</[A-Za-z][\w.]*>|<[A-Z][\w.]*[\s/>]|<>|/>")
TRANSLATION_RE = re.compile(r"""\bt\(\s*['"`]|useTranslation\b|\bi18n\b|<Trans\b""")
TYPE_DECLARATION_RE = re.compile(r"^\s*(?:export\s+)?(?:declare\s+)?(?:interface|type|enum)\s+\w+", re.M)


@dataclass
class FileMetadata:
    """Flags the relevance filter and classifier read."""

    is_test: bool = False
    has_ui_framework_import: bool = False
    has_markup: bool = False
    has_translations: bool = False
    has_type_declarations: bool = False
    size_bytes: int = 0
    last_modified: str = ""
    content_hash: str = ""

    @property
    def is_meaningful(self) -> bool:
        return (
            self.has_ui_framework_import
            or self.has_markup
            or self.has_translations
            or self.has_type_declarations
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_test": self.is_test,
            "has_ui_framework_import": self.has_ui_framework_import,
            "has_markup": self.has_markup,
            "has_translations": self.has_translations,
            "has_type_declarations": self.has_type_declarations,
            "size_bytes": self.size_bytes,
            "last_modified": self.last_modified,
            "content_hash": self.content_hash,
        }


@dataclass
class SourceFile:
    """One scanned file: raw text, its syntax tree and metadata."""

    path: str
    text: str | None
    tree: Tree | None = None
    metadata: FileMetadata = field(default_factory=FileMetadata)

    @property
    def name(self) -> str:
        return Path(self.path).name


@dataclass
class SkippedItem:
    """Information about a skipped file or directory."""

    path: str
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "reason": self.reason}


@dataclass
class ScanStats:
    """Statistics from a project scan."""

    total_files: int = 0
    total_lines: int = 0
    languages: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_files": self.total_files,
            "total_lines": self.total_lines,
            "languages": self.languages,
        }


@dataclass
class ScanResult:
    """Result of scanning a project, keyed by absolute file path."""

    root: str = ""
    scanned_at: str = ""
    files: dict[str, SourceFile] = field(default_factory=dict)
    stats: ScanStats = field(default_factory=ScanStats)
    skipped: list[SkippedItem] = field(default_factory=list)

    def text_for(self, path: str) -> str | None:
        source = self.files.get(path)
        return source.text if source else None

    def add(self, source: SourceFile, language: str) -> None:
        self.files[source.path] = source
        self.stats.total_files += 1
        self.stats.total_lines += (source.text or "").count("\n") + 1
        self.stats.languages[language] = self.stats.languages.get(language, 0) + 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "root": self.root,
            "scanned_at": self.scanned_at,
            "files": {path: src.metadata.to_dict() for path, src in self.files.items()},
            "stats": self.stats.to_dict(),
            "skipped": [s.to_dict() for s in self.skipped],
        }


def compute_file_hash(text: str) -> str:
    """Compute SHA-256 hash of file content."""
    return f"sha256:{hashlib.sha256(text.encode('utf-8')).hexdigest()[:16]}"


def is_test_path(path: str) -> bool:
    return any(marker in path for marker in TEST_MARKERS)


def detect_metadata(path: str, text: str) -> FileMetadata:
    """Derive metadata flags from a file's path and text."""
    return FileMetadata(
        is_test=is_test_path(path),
        has_ui_framework_import=bool(UI_IMPORT_RE.search(text)),
        has_markup=bool(MARKUP_RE.search(text)),
        has_translations=bool(TRANSLATION_RE.search(text)),
        has_type_declarations=bool(TYPE_DECLARATION_RE.search(text)),
        size_bytes=len(text.encode("utf-8")),
        content_hash=compute_file_hash(text),
    )


def should_ignore(path: Path, ignore_patterns: list[str], root: Path) -> str | None:
    """Check if path should be ignored. Returns reason if ignored, None otherwise."""
    rel_path = str(path.relative_to(root))

    for pattern in ignore_patterns:
        # Directory patterns end with /
        if pattern.endswith("/"):
            dir_pattern = pattern.rstrip("/")
            if any(part == dir_pattern for part in path.relative_to(root).parts):
                return "ignore_pattern"
        elif fnmatch(rel_path, pattern) or fnmatch(path.name, pattern):
            return "ignore_pattern"

    return None


def load_source(file_path: Path) -> SourceFile:
    """Read, parse and describe one file."""
    text = file_path.read_text(encoding="utf-8", errors="replace")
    path = str(file_path)
    metadata = detect_metadata(path, text)
    stat = file_path.stat()
    metadata.size_bytes = stat.st_size
    metadata.last_modified = datetime.fromtimestamp(stat.st_mtime, UTC).isoformat()
    return SourceFile(path=path, text=text, tree=parse_source(text, path), metadata=metadata)


def scan_project(root: Path, config: CtxsumConfig) -> ScanResult:
    """Scan a project directory and load every supported source file.

    Args:
        root: Root directory to scan
        config: ctxsum configuration

    Returns:
        ScanResult keyed by absolute file path
    """
    logger = get_logger()
    root = root.resolve()

    result = ScanResult(root=str(root), scanned_at=datetime.now(UTC).isoformat())

    ignore_patterns = config.scanner.ignore
    max_size = config.scanner.max_file_size_kb * 1024
    include_hidden = config.scanner.include_hidden
    extensions = {ext.lower() for ext in config.scanner.extensions}

    logger.info(f"Scanning {root}")
    logger.debug(f"Ignore patterns: {ignore_patterns}")

    for dirpath, dirnames, filenames in os.walk(root):
        current_dir = Path(dirpath)

        if not include_hidden:
            dirnames[:] = [d for d in dirnames if not d.startswith(".")]

        filtered_dirs = []
        for dirname in dirnames:
            dir_path = current_dir / dirname
            reason = should_ignore(dir_path, ignore_patterns, root)
            if reason:
                result.skipped.append(SkippedItem(path=str(dir_path.relative_to(root)), reason=reason))
            else:
                filtered_dirs.append(dirname)
        dirnames[:] = sorted(filtered_dirs)

        for filename in sorted(filenames):
            file_path = current_dir / filename
            rel = str(file_path.relative_to(root))

            if not include_hidden and filename.startswith("."):
                continue

            reason = should_ignore(file_path, ignore_patterns, root)
            if reason:
                result.skipped.append(SkippedItem(path=rel, reason=reason))
                continue

            if file_path.suffix.lower() not in extensions:
                result.skipped.append(SkippedItem(path=rel, reason="unknown_extension"))
                continue

            try:
                if file_path.stat().st_size > max_size:
                    result.skipped.append(SkippedItem(path=rel, reason="file_too_large"))
                    continue
                source = load_source(file_path)
            except OSError as e:
                logger.warning(f"Could not read {rel}: {e}")
                result.skipped.append(SkippedItem(path=rel, reason="unreadable"))
                continue

            result.add(source, language_for(file_path) or "unknown")

    logger.info(f"Found {result.stats.total_files} files, {result.stats.total_lines} lines")
    return result


def load_sources(paths: Iterable[str | Path], root: Path | None = None) -> ScanResult:
    """Build a ScanResult from explicit file paths.

    Missing or unreadable paths are recorded as skipped rather than raised,
    so the analyzer reports them through its normal per-file error path.
    """
    logger = get_logger()
    resolved = [Path(p).resolve() for p in paths]
    if root is None:
        root = Path(os.path.commonpath([str(p.parent) for p in resolved])) if resolved else Path.cwd()

    result = ScanResult(root=str(root.resolve()), scanned_at=datetime.now(UTC).isoformat())
    for file_path in resolved:
        try:
            source = load_source(file_path)
        except OSError as e:
            logger.warning(f"Could not read {file_path}: {e}")
            result.skipped.append(SkippedItem(path=str(file_path), reason="not_found"))
            continue
        result.add(source, language_for(file_path) or "unknown")
    return result

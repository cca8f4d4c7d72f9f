"""ctxsum cache - in-memory summary cache owned by one analyzer session.

Entries live for the lifetime of the analyzer. Nothing is evicted or
size-bounded; ``clear`` is the only way to drop entries.

Validity is a presence check: an entry is reused when the path is cached
and its text is still in the current scan result. Content hashes are
recorded next to each entry but are not consulted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from ctxsum.models import ContextualSummary, FileRelationship

if TYPE_CHECKING:
    from ctxsum.scanner import ScanResult

logger = logging.getLogger(__name__)


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"hits": self.hits, "misses": self.misses}


@dataclass
class AnalysisCache:
    """Path -> last ContextualSummary, plus file hashes and relationships."""

    summaries: dict[str, ContextualSummary] = field(default_factory=dict)
    file_hashes: dict[str, str] = field(default_factory=dict)
    relationships: dict[str, list[FileRelationship]] = field(default_factory=dict)
    last_analysis_time: str = ""
    stats: CacheStats = field(default_factory=CacheStats)

    def __len__(self) -> int:
        return len(self.summaries)

    def __contains__(self, path: object) -> bool:
        return path in self.summaries

    def is_valid(self, path: str, scan_result: ScanResult) -> bool:
        return path in self.summaries and scan_result.text_for(path) is not None

    def lookup(self, path: str, scan_result: ScanResult) -> ContextualSummary | None:
        """Cached summary for ``path`` if still valid against ``scan_result``."""
        if self.is_valid(path, scan_result):
            self.stats.hits += 1
            logger.debug(f"Cache hit: {path}")
            return self.summaries[path]
        self.stats.misses += 1
        return None

    def store(self, path: str, summary: ContextualSummary, content_hash: str = "") -> None:
        self.summaries[path] = summary
        if content_hash:
            self.file_hashes[path] = content_hash
        self.last_analysis_time = datetime.now(UTC).isoformat()

    def store_relationships(self, key: str, relationships: list[FileRelationship]) -> None:
        self.relationships[key] = list(relationships)

    def clear(self) -> None:
        self.summaries.clear()
        self.file_hashes.clear()
        self.relationships.clear()
        self.last_analysis_time = ""
        self.stats = CacheStats()
        logger.debug("Analysis cache cleared")

    def to_dict(self) -> dict[str, Any]:
        return {
            "entries": len(self.summaries),
            "file_hashes": dict(self.file_hashes),
            "relationship_sets": len(self.relationships),
            "last_analysis_time": self.last_analysis_time,
            "stats": self.stats.to_dict(),
        }

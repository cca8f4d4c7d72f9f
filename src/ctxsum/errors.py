"""Error handling framework for ctxsum."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, IntEnum
from typing import Any


class ExitCode(IntEnum):
    """ctxsum CLI exit codes."""

    SUCCESS = 0
    CONFIG_ERROR = 1  # Configuration error (user fixable)
    PARTIAL_SUCCESS = 2  # Some files failed
    FATAL_ERROR = 3  # Unexpected crash


class ErrorSeverity(str, Enum):
    """Severity attached to an analysis error event."""

    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class CtxsumError(Exception):
    """Base exception for ctxsum errors."""

    exit_code: ExitCode = ExitCode.FATAL_ERROR

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for JSON output."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "exit_code": self.exit_code,
            **self.context,
        }


class ConfigError(CtxsumError):
    """Configuration-related errors."""

    exit_code = ExitCode.CONFIG_ERROR


class ScanError(CtxsumError):
    """Source scanning errors."""

    exit_code = ExitCode.PARTIAL_SUCCESS


class SourceNotFoundError(CtxsumError):
    """Source text or syntax tree missing for a file."""

    exit_code = ExitCode.PARTIAL_SUCCESS

    def __init__(self, file_path: str):
        super().__init__("Source file or content not found", file_path=file_path)
        self.file_path = file_path


class PipelineError(CtxsumError):
    """One stage of the per-file pipeline failed."""

    exit_code = ExitCode.PARTIAL_SUCCESS

    def __init__(self, message: str, file_path: str, stage: str, **context: Any):
        super().__init__(message, file_path=file_path, stage=stage, **context)
        self.file_path = file_path
        self.stage = stage


class ExtractionError(PipelineError):
    """An extraction collaborator failed for one file."""


class AnalysisError(CtxsumError):
    """Run-level failure outside the per-file loop."""

    exit_code = ExitCode.FATAL_ERROR


class ExportError(CtxsumError):
    """Summary export errors."""

    exit_code = ExitCode.CONFIG_ERROR


# Ordered (substrings, severity) pairs; first match wins, default is ERROR.
SEVERITY_RULES: list[tuple[tuple[str, ...], ErrorSeverity]] = [
    (("ENOENT", "not found"), ErrorSeverity.WARNING),
    (("syntax", "parse"), ErrorSeverity.ERROR),
]

UNRECOVERABLE_MARKERS: tuple[str, ...] = ("critical", "fatal", "out of memory")


def classify_severity(message: str) -> ErrorSeverity:
    """Derive a severity from error text using SEVERITY_RULES."""
    for markers, severity in SEVERITY_RULES:
        if any(marker in message for marker in markers):
            return severity
    return ErrorSeverity.ERROR


def is_recoverable(message: str) -> bool:
    """False only when the message names an unrecoverable condition."""
    return not any(marker in message for marker in UNRECOVERABLE_MARKERS)


@dataclass
class AnalysisErrorEvent:
    """An error reported through the analyzer's error callback."""

    file_path: str
    stage: str
    message: str
    severity: ErrorSeverity
    recoverable: bool
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    @classmethod
    def from_exception(cls, file_path: str, stage: str, error: BaseException) -> AnalysisErrorEvent:
        """Build an event, classifying severity from the error message."""
        message = str(error) or error.__class__.__name__
        return cls(
            file_path=file_path,
            stage=stage,
            message=message,
            severity=classify_severity(message),
            recoverable=is_recoverable(message),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_path": self.file_path,
            "stage": self.stage,
            "message": self.message,
            "severity": self.severity.value,
            "recoverable": self.recoverable,
            "timestamp": self.timestamp,
        }

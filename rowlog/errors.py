"""Exception taxonomy for the row logger."""

from __future__ import annotations

from typing import Optional


class RowlogError(RuntimeError):
    """Base class for every error raised by :mod:`rowlog`."""


class ConfigurationError(RowlogError, ValueError):
    """Raised when a call is made with an invalid argument shape."""


class _FileStepError(RowlogError):
    def __init__(
        self,
        message: str,
        *,
        step: str,
        source: Optional[str] = None,
        destination: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.step = step
        self.source = source
        self.destination = destination

    def __str__(self) -> str:
        parts = [super().__str__(), f"step={self.step}"]
        if self.source is not None:
            parts.append(f"source={self.source}")
        if self.destination is not None:
            parts.append(f"destination={self.destination}")
        return " ".join(parts)


class RotateError(_FileStepError):
    """Raised when moving the active log file fails."""


class ArchiveError(_FileStepError):
    """Raised when archiving one of the matched files fails."""


__all__ = [
    "ArchiveError",
    "ConfigurationError",
    "RotateError",
    "RowlogError",
]

"""Error taxonomy for FSHA import and export.

Every failure carries a stable ``code`` and a ``context`` dict with the
offending offsets, sizes or flag sets so callers can log a precise
diagnostic. None of these errors is retried internally.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional

E_FORMAT_MAGIC = "E_FORMAT_MAGIC"
E_FORMAT_VERSION = "E_FORMAT_VERSION"
E_FORMAT_HEADER = "E_FORMAT_HEADER"
E_FORMAT_BOUNDS = "E_FORMAT_BOUNDS"
E_FORMAT_OVERLAP = "E_FORMAT_OVERLAP"
E_FORMAT_TRUNCATED = "E_FORMAT_TRUNCATED"
E_FORMAT_DUPLICATE = "E_FORMAT_DUPLICATE"
E_FORMAT_EMPTY = "E_FORMAT_EMPTY"
E_FORMAT_TAG = "E_FORMAT_TAG"
E_FORMAT_LIMIT = "E_FORMAT_LIMIT"
E_CONSISTENCY = "E_CONSISTENCY"
E_PLATFORM = "E_PLATFORM"
E_VARIANT = "E_VARIANT"
E_IO = "E_IO"


@dataclass
class FshaError(Exception):
    code: str
    message: str
    context: Optional[Dict[str, Any]] = None

    def __str__(self) -> str:
        return f"{self.code}: {self.message}" + (
            f" | ctx={self.context}" if self.context else ""
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context or {},
        }


class FormatError(FshaError):
    """Malformed bytes: bad header, truncated or overlapping sections."""


class ConsistencyError(FshaError):
    """Well-formed bytes whose header and sections contradict each other."""


class PlatformUnsupportedError(FshaError):
    pass


class VariantUnavailableError(FshaError):
    """None of the requested variants exist; callers may substitute a
    fallback asset."""


class FshaIOError(FshaError):
    pass


def format_error(
    code: str, message: str, context: Optional[Dict[str, Any]] = None
) -> FormatError:
    return FormatError(code=code, message=message, context=context)


def io_error(
    message: str, cause: OSError, context: Optional[Dict[str, Any]] = None
) -> FshaIOError:
    ctx = dict(context or {})
    ctx["cause"] = str(cause)
    return FshaIOError(code=E_IO, message=message, context=ctx)


__all__ = [
    "FshaError",
    "FormatError",
    "ConsistencyError",
    "PlatformUnsupportedError",
    "VariantUnavailableError",
    "FshaIOError",
    "format_error",
    "io_error",
    "E_FORMAT_MAGIC",
    "E_FORMAT_VERSION",
    "E_FORMAT_HEADER",
    "E_FORMAT_BOUNDS",
    "E_FORMAT_OVERLAP",
    "E_FORMAT_TRUNCATED",
    "E_FORMAT_DUPLICATE",
    "E_FORMAT_EMPTY",
    "E_FORMAT_TAG",
    "E_FORMAT_LIMIT",
    "E_CONSISTENCY",
    "E_PLATFORM",
    "E_VARIANT",
    "E_IO",
]

"""
bsl_checkers/errors.py
══════════════════════

Error types raised by the bsl-checkers toolchain.

Hierarchy
─────────
  BslCheckersError (base)
  ├── BslParseError        - source text does not match the BSL grammar
  ├── TreeStructureError   - a syntax tree violates its parent-link invariants
  └── ConfigurationError   - a configuration file is unreadable or malformed

Ordinary analysis outcomes (no type name, no enclosing ``If``, no guard
token) are never errors; only defects in the input or in the tree end up
here.
"""

from __future__ import annotations

from typing import Optional


class BslCheckersError(Exception):
    """Base class for all errors raised by bsl-checkers."""


class BslParseError(BslCheckersError):
    """Raised when BSL source text cannot be parsed.

    Carries the position of the failure so the CLI can print a
    ``file:line:column`` prefix like any other diagnostic.
    """

    def __init__(
        self,
        message: str,
        file: str = "<string>",
        line: int = 0,
        column: int = 0,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.file = file
        self.line = line
        self.column = column

    def __str__(self) -> str:
        if self.line:
            return f"{self.file}:{self.line}:{self.column}: {self.message}"
        return f"{self.file}: {self.message}"


class TreeStructureError(BslCheckersError):
    """Raised when an upward walk exceeds the tree depth bound.

    A well-formed tree is finite and acyclic, so hitting the bound means
    the parser produced a broken parent chain.
    """

    def __init__(self, message: str, depth: Optional[int] = None) -> None:
        super().__init__(message)
        self.depth = depth


class ConfigurationError(BslCheckersError):
    """Raised for unreadable or malformed configuration files."""

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.path = path

    def __str__(self) -> str:
        base = super().__str__()
        if self.path:
            return f"{self.path}: {base}"
        return base


__all__ = [
    "BslCheckersError",
    "BslParseError",
    "TreeStructureError",
    "ConfigurationError",
]

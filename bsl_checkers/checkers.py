"""
bsl_checkers/checkers.py
════════════════════════

Checker framework for BSL syntax trees and the built-in diagnostics.

Architecture
────────────

  ┌─────────────────────────────────────────────────────────┐
  │                   CheckerRunner                         │
  │  ┌──────────────────────────────────────────────────┐   │
  │  │  UsingObjectNotAvailableUnixChecker  (visitor)   │   │
  │  └──────────────────────┬───────────────────────────┘   │
  │                         │ add_diagnostic(node, msg)     │
  │  ┌──────────────────────▼───────────────────────────┐   │
  │  │              DiagnosticStorage                   │   │
  │  └──────────────────────┬───────────────────────────┘   │
  │                         │                               │
  │  ┌──────────────────────▼───────────────────────────┐   │
  │  │           SuppressionManager                     │   │
  │  │  // BSLLS:Code-off │  file patterns  │  global   │   │
  │  └──────────────────────┬───────────────────────────┘   │
  │                         │                               │
  │  ┌──────────────────────▼───────────────────────────┐   │
  │  │     CheckerRunResults  →  bsl_checkers.reporter  │   │
  │  └──────────────────────────────────────────────────┘   │
  └─────────────────────────────────────────────────────────┘

Each Checker follows a three-phase lifecycle:

  1. **configure()**  — read per-checker options from the context
  2. **visit_tree()** — depth-first walk, ``visit_<kind>`` per node
  3. **report()**     — return the diagnostics that survive suppressions

A checker instance serves exactly one file run, so checkers need no
locking of their own; the runner may process files on several threads.
"""

from __future__ import annotations

import fnmatch
import json
import logging
import re
import threading
import time
from abc import ABC
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import (
    Any,
    Callable,
    ClassVar,
    Dict,
    FrozenSet,
    Iterable,
    Iterator,
    List,
    Optional,
    Sequence,
    Set,
    Tuple,
    Type,
    Union,
)

from bsl_checkers.config import LinterConfiguration
from bsl_checkers.errors import BslParseError, ConfigurationError
from bsl_checkers.grammar import parse, parse_file
from bsl_checkers.messages import DEFAULT_LANGUAGE, get_message, has_messages
from bsl_checkers.tree import RuleKind, SyntaxNode, SyntaxTree, ancestor_of_kind

_log = logging.getLogger(__name__)

SOURCE_SUFFIXES: Tuple[str, ...] = (".bsl", ".os")


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — DIAGNOSTIC MODEL
# ═════════════════════════════════════════════════════════════════════════

class DiagnosticSeverity(Enum):
    """
    BSL Language Server severity levels.

    Each carries:
      • label       — the string used in text and JSON output
      • color       — termcolor colour name
      • sarif_level — SARIF 2.1.0 ``level`` string
      • rank        — ordering, higher is more severe
    """

    INFO = ("info", "white", "note", 0)
    MINOR = ("minor", "cyan", "note", 1)
    MAJOR = ("major", "yellow", "warning", 2)
    CRITICAL = ("critical", "red", "error", 3)
    BLOCKER = ("blocker", "magenta", "error", 4)

    def __init__(self, label: str, color: str, sarif_level: str, rank: int) -> None:
        self.label = label
        self.color = color
        self.sarif_level = sarif_level
        self.rank = rank

    @classmethod
    def from_string(cls, s: str) -> DiagnosticSeverity:
        """Parse a severity from its label (case-insensitive)."""
        s_low = s.strip().lower()
        for member in cls:
            if member.label == s_low:
                return member
        raise ValueError(f"unknown severity: {s!r}")


class DiagnosticType(Enum):
    ERROR = "ERROR"
    CODE_SMELL = "CODE_SMELL"
    VULNERABILITY = "VULNERABILITY"
    SECURITY_HOTSPOT = "SECURITY_HOTSPOT"


class DiagnosticScope(Enum):
    """Which dialect a checker applies to."""
    ALL = "all"
    BSL = "bsl"
    OS = "os"

    def applies_to(self, language: str) -> bool:
        return self is DiagnosticScope.ALL or self.value == language


@dataclass(frozen=True)
class SourceLocation:
    """A region in a source file (1-based, end-exclusive)."""
    file: str = ""
    line: int = 0
    column: int = 0
    end_line: int = 0
    end_column: int = 0

    def __str__(self) -> str:
        if self.column:
            return f"{self.file}:{self.line}:{self.column}"
        return f"{self.file}:{self.line}"

    @classmethod
    def of_node(cls, file: str, node: SyntaxNode) -> SourceLocation:
        span = node.span
        return cls(file=file, line=span.start_line, column=span.start_column,
                   end_line=span.end_line, end_column=span.end_column)


@dataclass(frozen=True)
class Diagnostic:
    """
    A single finding.

    Attributes
    ----------
    code           : Checker code (e.g. "UsingObjectNotAvailableUnix")
    message        : Human-readable, localized description
    severity       : DiagnosticSeverity
    location       : Primary source location
    diagnostic_type: DiagnosticType
    checker_name   : Localized checker name
    minutes_to_fix : Remediation estimate
    tags           : Checker tags
    """
    code: str
    message: str
    severity: DiagnosticSeverity
    location: SourceLocation
    diagnostic_type: DiagnosticType = DiagnosticType.CODE_SMELL
    checker_name: str = ""
    minutes_to_fix: int = 0
    tags: Tuple[str, ...] = ()

    def to_json_dict(self) -> Dict[str, Any]:
        loc = self.location
        return {
            "file": loc.file,
            "range": {
                "start": {"line": loc.line, "column": loc.column},
                "end": {"line": loc.end_line, "column": loc.end_column},
            },
            "severity": self.severity.label,
            "type": self.diagnostic_type.value,
            "code": self.code,
            "message": self.message,
            "minutesToFix": self.minutes_to_fix,
            "tags": list(self.tags),
        }

    def to_json_str(self) -> str:
        """Single-line JSON string."""
        return json.dumps(self.to_json_dict(), ensure_ascii=False)

    def to_gcc_format(self) -> str:
        """GCC-style diagnostic string: file:line:col: severity: message [code]."""
        return f"{self.location}: {self.severity.label}: {self.message} [{self.code}]"


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — DIAGNOSTIC STORAGE
# ═════════════════════════════════════════════════════════════════════════

class DiagnosticStorage:
    """
    Append-only sink for the findings of one checker over one file.

    Appends are lock-guarded so a storage may also be shared between
    threads; order of insertion is preserved.
    """

    def __init__(self, checker: Checker, file_name: str) -> None:
        self._checker = checker
        self._file_name = file_name
        self._diagnostics: List[Diagnostic] = []
        self._lock = threading.Lock()

    def add_diagnostic(self, node: SyntaxNode, message: str) -> Diagnostic:
        """Record a finding anchored at *node*'s span."""
        checker = self._checker
        diag = Diagnostic(
            code=checker.code,
            message=message,
            severity=checker.severity,
            location=SourceLocation.of_node(self._file_name, node),
            diagnostic_type=checker.diagnostic_type,
            checker_name=checker.name,
            minutes_to_fix=checker.minutes_to_fix,
            tags=tuple(sorted(checker.tags)),
        )
        with self._lock:
            self._diagnostics.append(diag)
        return diag

    @property
    def diagnostics(self) -> List[Diagnostic]:
        with self._lock:
            return list(self._diagnostics)

    def __len__(self) -> int:
        return len(self._diagnostics)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self.diagnostics)


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — SUPPRESSION MANAGER
# ═════════════════════════════════════════════════════════════════════════

_BSLLS_COMMENT = re.compile(r"//\s*BSLLS(?::(\w+))?-(off|on)\b", re.IGNORECASE)


class SuppressionManager:
    """
    Manages diagnostic suppressions from multiple sources.

    Sources:
      1. Inline comments.  ``// BSLLS:Code-off`` after code on a line
         suppresses that line; on a line of its own it opens a region
         closed by ``// BSLLS:Code-on`` (or the end of the file).
         ``// BSLLS-off`` / ``// BSLLS-on`` cover every code.
      2. File-level suppressions (fnmatch patterns)
      3. Global suppressions (command-line or config)

    Usage
    -----
    >>> sm = SuppressionManager()
    >>> sm.add_file_suppression("UsingObjectNotAvailableUnix", "*/Legacy/*")
    >>> sm.add_global_suppression("SomeCode")
    >>> per_file = sm.for_tree(tree)
    >>> kept = per_file.filter_diagnostics(diagnostics)
    """

    def __init__(self) -> None:
        # (file, line) → codes suppressed on that line
        self._inline: Dict[Tuple[str, int], Set[str]] = defaultdict(set)
        # file → [(code, first_line, last_line)]
        self._regions: Dict[str, List[Tuple[str, int, int]]] = defaultdict(list)
        # file pattern → codes
        self._file_level: Dict[str, Set[str]] = defaultdict(set)
        self._global: Set[str] = set()

    def add_file_suppression(self, code: str, file_pattern: str) -> None:
        """Suppress ``code`` in files matching ``file_pattern``."""
        self._file_level[file_pattern].add(code)

    def add_global_suppression(self, code: str) -> None:
        """Globally suppress ``code``."""
        self._global.add(code)

    def load_inline_suppressions(self, tree: SyntaxTree) -> None:
        """Scan the source of *tree* for ``// BSLLS`` comments."""
        file = tree.file_name
        lines = tree.lines
        open_regions: Dict[str, int] = {}

        for lineno, line in enumerate(lines, 1):
            for match in _BSLLS_COMMENT.finditer(line):
                code = match.group(1) or "*"
                switch_off = match.group(2).lower() == "off"
                trailing = bool(line[:match.start()].strip())
                if trailing:
                    if switch_off:
                        self._inline[(file, lineno)].add(code)
                elif switch_off:
                    open_regions.setdefault(code, lineno)
                else:
                    start = open_regions.pop(code, None)
                    if start is not None:
                        self._regions[file].append((code, start, lineno))

        for code, start in open_regions.items():
            self._regions[file].append((code, start, len(lines)))

    def for_tree(self, tree: SyntaxTree) -> SuppressionManager:
        """Copy of the global and file-level rules plus *tree*'s inline ones.

        The copy is confined to one file run, so concurrent runs never
        share mutable suppression state.
        """
        scoped = SuppressionManager()
        scoped._global = set(self._global)
        for pattern, codes in self._file_level.items():
            scoped._file_level[pattern] = set(codes)
        scoped.load_inline_suppressions(tree)
        return scoped

    def is_suppressed(self, diag: Diagnostic) -> bool:
        """Check whether a diagnostic should be suppressed."""
        code = diag.code

        if code in self._global or "*" in self._global:
            return True

        loc = diag.location

        suppressed_codes = self._inline.get((loc.file, loc.line), set())
        if code in suppressed_codes or "*" in suppressed_codes:
            return True

        for region_code, first, last in self._regions.get(loc.file, ()):
            if region_code in (code, "*") and first <= loc.line <= last:
                return True

        for pattern, codes in self._file_level.items():
            if code in codes or "*" in codes:
                if pattern == loc.file or loc.file.endswith(pattern):
                    return True
                if fnmatch.fnmatch(loc.file, pattern):
                    return True

        return False

    def filter_diagnostics(self, diagnostics: Iterable[Diagnostic]) -> List[Diagnostic]:
        """Return only non-suppressed diagnostics."""
        return [d for d in diagnostics if not self.is_suppressed(d)]


# ═════════════════════════════════════════════════════════════════════════
#  PART 4 — CHECKER BASE CLASS
# ═════════════════════════════════════════════════════════════════════════

@dataclass
class CheckerContext:
    """
    Shared context passed to every checker of one file run.

    Attributes
    ----------
    tree         : the parsed file
    suppressions : SuppressionManager scoped to this file
    options      : per-checker options, keyed by checker code
    language     : message language ("en" / "ru")
    """
    tree: SyntaxTree
    suppressions: SuppressionManager = field(default_factory=SuppressionManager)
    options: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    language: str = DEFAULT_LANGUAGE

    def get_options(self, code: str) -> Dict[str, Any]:
        return self.options.get(code, {})


class Checker(ABC):
    """
    Base class for all checkers.

    Lifecycle
    ─────────
      1. ``configure(ctx)``  — read options
      2. ``visit_tree(ctx)`` — depth-first walk of ``ctx.tree``
      3. ``report(ctx)``     — return the unsuppressed findings

    Subclass Contract
    ─────────────────
      - Override the metadata class attributes
      - Define ``visit_<kind>`` methods, where ``<kind>`` is a
        :class:`RuleKind` value (``visit_new_expression``,
        ``visit_if_branch``, ...); every other node is walked through
    """

    # ── Metadata (override in subclasses) ────────────────────────────

    code: ClassVar[str] = "BaseChecker"
    description: ClassVar[str] = ""
    diagnostic_type: ClassVar[DiagnosticType] = DiagnosticType.CODE_SMELL
    default_severity: ClassVar[DiagnosticSeverity] = DiagnosticSeverity.MINOR
    minutes_to_fix: ClassVar[int] = 0
    scope: ClassVar[DiagnosticScope] = DiagnosticScope.ALL
    tags: ClassVar[FrozenSet[str]] = frozenset()

    def __init__(self) -> None:
        self._storage: Optional[DiagnosticStorage] = None
        self._language: str = DEFAULT_LANGUAGE
        self.severity: DiagnosticSeverity = self.default_severity
        self._handlers: Dict[RuleKind, Callable[[SyntaxNode], None]] = {}
        for kind in RuleKind:
            handler = getattr(self, f"visit_{kind.value}", None)
            if handler is not None:
                self._handlers[kind] = handler

    @classmethod
    def display_name(cls, language: str = DEFAULT_LANGUAGE) -> str:
        """Localized checker name; falls back to the description or code."""
        if has_messages(cls.code):
            return get_message(cls.code, "name", language)
        return cls.description or cls.code

    @property
    def name(self) -> str:
        """Checker name in the run's language."""
        return self.display_name(self._language)

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return self._storage.diagnostics if self._storage is not None else []

    def configure(self, ctx: CheckerContext) -> None:
        """
        Called before the walk.

        The base implementation honours a ``severity`` option; override
        to read checker-specific options and call ``super()``.
        """
        self._language = ctx.language
        severity = ctx.get_options(self.code).get("severity")
        if severity is not None:
            try:
                self.severity = DiagnosticSeverity.from_string(str(severity))
            except ValueError as exc:
                raise ConfigurationError(f"{self.code}: {exc}") from exc

    def visit_tree(self, ctx: CheckerContext) -> None:
        self._storage = DiagnosticStorage(self, ctx.tree.file_name)
        if not self._handlers:
            return
        for node in ctx.tree.root.walk():
            handler = self._handlers.get(node.kind)
            if handler is not None:
                handler(node)

    def report(self, ctx: CheckerContext) -> List[Diagnostic]:
        """Return final diagnostics, filtered by suppressions."""
        return ctx.suppressions.filter_diagnostics(self.diagnostics)

    def get_diagnostic_message(self, *args: Any) -> str:
        return get_message(self.code, "message", self._language, *args)

    def add_diagnostic(self, node: SyntaxNode, message: str) -> Diagnostic:
        if self._storage is None:
            raise RuntimeError(f"{self.code}: add_diagnostic() called outside visit_tree()")
        return self._storage.add_diagnostic(node, message)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} '{self.code}'>"


# ═════════════════════════════════════════════════════════════════════════
#  PART 5 — CHECKER REGISTRY
# ═════════════════════════════════════════════════════════════════════════

class CheckerRegistry:
    """
    Registry of available checkers with discovery and filtering.

    Usage
    -----
    >>> registry = CheckerRegistry()
    >>> registry.register(UsingObjectNotAvailableUnixChecker)
    >>> checkers = registry.get_enabled()
    >>> checkers = registry.filter_by_tag("lockinos")
    """

    def __init__(self) -> None:
        self._checkers: Dict[str, Type[Checker]] = {}
        self._disabled: Set[str] = set()

    def register(self, checker_cls: Type[Checker]) -> Type[Checker]:
        """Register a checker class; usable as a class decorator."""
        self._checkers[checker_cls.code] = checker_cls
        return checker_cls

    def unregister(self, code: str) -> None:
        self._checkers.pop(code, None)

    def disable(self, code: str) -> None:
        self._disabled.add(code)

    def enable(self, code: str) -> None:
        self._disabled.discard(code)

    def get_all(self) -> List[Type[Checker]]:
        return list(self._checkers.values())

    def get_enabled(self) -> List[Type[Checker]]:
        return [
            cls for code, cls in self._checkers.items()
            if code not in self._disabled
        ]

    def get_by_code(self, code: str) -> Optional[Type[Checker]]:
        return self._checkers.get(code)

    def filter_by_scope(self, language: str) -> List[Type[Checker]]:
        """Enabled checkers whose scope covers *language* ("bsl" / "os")."""
        return [cls for cls in self.get_enabled() if cls.scope.applies_to(language)]

    def filter_by_tag(self, tag: str) -> List[Type[Checker]]:
        return [cls for cls in self._checkers.values() if tag in cls.tags]

    @property
    def codes(self) -> List[str]:
        return sorted(self._checkers.keys())

    def __contains__(self, code: object) -> bool:
        return code in self._checkers

    def __len__(self) -> int:
        return len(self._checkers)


DEFAULT_REGISTRY = CheckerRegistry()


# ═════════════════════════════════════════════════════════════════════════
#  PART 6 — BUILT-IN CHECKERS
# ═════════════════════════════════════════════════════════════════════════

def _words_pattern(words: Iterable[str]) -> re.Pattern[str]:
    """Case-insensitive alternation of literal *words*; use .match() to anchor."""
    alternatives = "|".join(re.escape(w) for w in words)
    return re.compile(f"(?:{alternatives})", re.IGNORECASE)


def _string_list_option(code: str, key: str, value: Any) -> List[str]:
    """Accept a JSON list of strings or a comma-separated string."""
    if isinstance(value, str):
        items = [part.strip() for part in value.split(",")]
    elif isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        items = [v.strip() for v in value]
    else:
        raise ConfigurationError(f"{code}: option '{key}' must be a list of strings")
    items = [item for item in items if item]
    if not items:
        raise ConfigurationError(f"{code}: option '{key}' must not be empty")
    return items


# ─────────────────────────────────────────────────────────────────────────
#  6.1  Objects not available on Unix
# ─────────────────────────────────────────────────────────────────────────

@DEFAULT_REGISTRY.register
class UsingObjectNotAvailableUnixChecker(Checker):
    """
    Flags ``Новый COMОбъект(...)`` / ``New Mail`` and friends that are not
    inside an ``Если`` branch mentioning the Linux platform type.

    Example::

        Компонента = Новый COMОбъект("System.Text.UTF8Encoding");

    Guard search
    ────────────
    Starting at the instantiation, the nearest enclosing ``If`` branch is
    located and its whole text is searched for a platform token.  Without
    a hit the search moves to the next enclosing ``If`` branch, so an
    outer platform check covers inner unrelated conditions.  ``ElsIf`` and
    ``Else`` branches never count as guards.

    The whole branch text is searched, body included, so a platform token
    anywhere inside the branch (even in an unrelated statement) counts as
    a guard.
    """

    code: ClassVar[str] = "UsingObjectNotAvailableUnix"
    description: ClassVar[str] = "Platform-dependent objects created without a platform check"
    diagnostic_type: ClassVar[DiagnosticType] = DiagnosticType.ERROR
    default_severity: ClassVar[DiagnosticSeverity] = DiagnosticSeverity.CRITICAL
    minutes_to_fix: ClassVar[int] = 30
    scope: ClassVar[DiagnosticScope] = DiagnosticScope.BSL
    tags: ClassVar[FrozenSet[str]] = frozenset({"standard", "lockinos"})

    DISALLOWED_TYPE_PREFIXES: ClassVar[Tuple[str, ...]] = (
        "COMОбъект", "COMObject", "Почта", "Mail",
    )
    PLATFORM_GUARD_TOKENS: ClassVar[Tuple[str, ...]] = ("Linux_x86",)

    _DEFAULT_TYPE_PATTERN: ClassVar[re.Pattern[str]] = _words_pattern(DISALLOWED_TYPE_PREFIXES)
    _DEFAULT_GUARD_PATTERN: ClassVar[re.Pattern[str]] = _words_pattern(PLATFORM_GUARD_TOKENS)

    def __init__(self) -> None:
        super().__init__()
        self._type_pattern = self._DEFAULT_TYPE_PATTERN
        self._guard_pattern = self._DEFAULT_GUARD_PATTERN

    def configure(self, ctx: CheckerContext) -> None:
        super().configure(ctx)
        options = ctx.get_options(self.code)
        if "disallowedTypes" in options:
            prefixes = _string_list_option(self.code, "disallowedTypes",
                                           options["disallowedTypes"])
            self._type_pattern = _words_pattern(prefixes)
        if "guardTokens" in options:
            tokens = _string_list_option(self.code, "guardTokens", options["guardTokens"])
            self._guard_pattern = _words_pattern(tokens)

    # ── type-name matcher ────────────────────────────────────────────

    def matches_type_name(self, type_name: Optional[str]) -> bool:
        """True when *type_name* starts with a disallowed prefix."""
        if not type_name:
            return False
        return self._type_pattern.match(type_name) is not None

    # ── guard resolver ───────────────────────────────────────────────

    def is_guarded(self, node: SyntaxNode) -> bool:
        """True when some enclosing ``If`` branch mentions the platform."""
        branch = ancestor_of_kind(node, RuleKind.IF_BRANCH)
        while branch is not None:
            if self._guard_pattern.search(branch.text):
                return True
            branch = ancestor_of_kind(branch, RuleKind.IF_BRANCH)
        return False

    # ── visitor ──────────────────────────────────────────────────────

    def visit_new_expression(self, node: SyntaxNode) -> None:
        type_name_node = node.child_of_kind(RuleKind.TYPE_NAME)
        if type_name_node is None:
            return
        type_name = type_name_node.text
        if not self.matches_type_name(type_name):
            return
        if self.is_guarded(node):
            _log.debug("%s: %s at %s is platform-guarded",
                       self.code, type_name, node.span)
            return
        self.add_diagnostic(node, self.get_diagnostic_message(type_name))


# ═════════════════════════════════════════════════════════════════════════
#  PART 7 — CHECKER RUNNER
# ═════════════════════════════════════════════════════════════════════════

@dataclass
class CheckerRunResults:
    """
    Aggregate results from running a suite of checkers.

    Attributes
    ----------
    diagnostics            : All diagnostics, in file then visitation order
    diagnostics_by_checker : Diagnostics grouped by checker code
    stats                  : Timing and counting statistics
    checker_codes          : Codes of checkers that were run
    files                  : Files that were analysed
    parse_errors           : Files that could not be parsed
    """
    diagnostics: List[Diagnostic] = field(default_factory=list)
    diagnostics_by_checker: Dict[str, List[Diagnostic]] = field(
        default_factory=lambda: defaultdict(list)
    )
    stats: Dict[str, Any] = field(default_factory=dict)
    checker_codes: List[str] = field(default_factory=list)
    files: List[str] = field(default_factory=list)
    parse_errors: List[BslParseError] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return sum(
            1 for d in self.diagnostics
            if d.diagnostic_type == DiagnosticType.ERROR
        )

    @property
    def total_count(self) -> int:
        return len(self.diagnostics)

    def by_severity(self, severity: DiagnosticSeverity) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == severity]

    def by_file(self, file: str) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.location.file == file]

    def by_code(self, code: str) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.code == code]

    def merge(self, other: CheckerRunResults) -> None:
        self.diagnostics.extend(other.diagnostics)
        for code, diags in other.diagnostics_by_checker.items():
            self.diagnostics_by_checker[code].extend(diags)
        for key, val in other.stats.items():
            if isinstance(val, (int, float)) and key in self.stats:
                self.stats[key] += val
            else:
                self.stats[key] = val
        for code in other.checker_codes:
            if code not in self.checker_codes:
                self.checker_codes.append(code)
        self.files.extend(other.files)
        self.parse_errors.extend(other.parse_errors)

    def to_json_lines(self) -> str:
        return "\n".join(d.to_json_str() for d in self.diagnostics)

    def to_gcc_format(self) -> str:
        return "\n".join(d.to_gcc_format() for d in self.diagnostics)

    def summary(self) -> str:
        """Human-readable summary."""
        lines = [
            f"Checked {len(self.files)} file(s): {self.total_count} diagnostics "
            f"({self.error_count} errors, {len(self.parse_errors)} parse failures)",
        ]
        for code in self.checker_codes:
            count = len(self.diagnostics_by_checker.get(code, []))
            elapsed = self.stats.get(f"{code}_elapsed_ms", 0)
            lines.append(f"  {code}: {count} findings ({elapsed:.1f}ms)")
        return "\n".join(lines)


class CheckerRunner:
    """
    Runs a suite of checkers over parsed BSL files.

    Usage
    -----
    >>> runner = CheckerRunner()
    >>> results = runner.run_source('Новый COMОбъект("X");', "Module.bsl")
    >>> print(results.summary())

    >>> results = runner.run_paths(["src/"], jobs=4)

    Parameters for constructor
    ─────────────────────────
    registry      : CheckerRegistry — source of checker classes
    suppressions  : SuppressionManager — global and file-level rules
    configuration : LinterConfiguration — language, options, disabled codes
    """

    def __init__(
        self,
        registry: Optional[CheckerRegistry] = None,
        suppressions: Optional[SuppressionManager] = None,
        configuration: Optional[LinterConfiguration] = None,
    ) -> None:
        self.registry = registry or DEFAULT_REGISTRY
        self.configuration = configuration or LinterConfiguration()
        self.suppressions = suppressions or SuppressionManager()
        for code in self.configuration.suppress:
            self.suppressions.add_global_suppression(code)

    def _select(
        self,
        language: str,
        checkers: Optional[Sequence[str]],
    ) -> List[Type[Checker]]:
        if checkers is not None:
            selected = []
            for code in checkers:
                cls = self.registry.get_by_code(code)
                if cls is None:
                    _log.warning("unknown checker code: %s", code)
                    continue
                selected.append(cls)
        else:
            selected = [cls for cls in self.registry.get_enabled()
                        if self.configuration.is_enabled(cls.code)]
        return [cls for cls in selected if cls.scope.applies_to(language)]

    def run(
        self,
        tree: SyntaxTree,
        checkers: Optional[Sequence[str]] = None,
    ) -> CheckerRunResults:
        """
        Run checkers against a single parsed file.

        Parameters
        ----------
        tree     : SyntaxTree
        checkers : checker codes to run (None = all enabled)
        """
        results = CheckerRunResults()
        results.files.append(tree.file_name)

        ctx = CheckerContext(
            tree=tree,
            suppressions=self.suppressions.for_tree(tree),
            options=self.configuration.options,
            language=self.configuration.language,
        )

        for cls in self._select(tree.language, checkers):
            checker = cls()
            code = cls.code
            results.checker_codes.append(code)

            t0 = time.monotonic()
            try:
                checker.configure(ctx)
                checker.visit_tree(ctx)
                diags = checker.report(ctx)
            except Exception as exc:
                _log.error("checker %s failed on %s: %s", code, tree.file_name, exc,
                           exc_info=_log.isEnabledFor(logging.DEBUG))
                diags = [Diagnostic(
                    code="checkerInternalError",
                    message=get_message("checkerInternalError", "message",
                                        ctx.language, code, exc),
                    severity=DiagnosticSeverity.INFO,
                    location=SourceLocation(file=tree.file_name),
                    checker_name=code,
                )]
            elapsed_ms = (time.monotonic() - t0) * 1000.0

            results.diagnostics.extend(diags)
            results.diagnostics_by_checker[code] = list(diags)
            results.stats[f"{code}_elapsed_ms"] = elapsed_ms
            _log.debug("%s on %s: %d findings in %.1fms",
                       code, tree.file_name, len(diags), elapsed_ms)

        return results

    def run_source(
        self,
        text: str,
        file_name: str = "<string>.bsl",
        checkers: Optional[Sequence[str]] = None,
    ) -> CheckerRunResults:
        """Parse *text* and run checkers on it; parse errors propagate."""
        return self.run(parse(text, file_name=file_name), checkers=checkers)

    def run_file(
        self,
        path: Union[str, Path],
        checkers: Optional[Sequence[str]] = None,
    ) -> CheckerRunResults:
        """Parse and check one file, recording parse failures in the results."""
        try:
            tree = parse_file(path)
        except BslParseError as exc:
            _log.error("%s", exc)
            results = CheckerRunResults()
            results.files.append(str(path))
            results.parse_errors.append(exc)
            return results
        return self.run(tree, checkers=checkers)

    def run_paths(
        self,
        paths: Sequence[Union[str, Path]],
        checkers: Optional[Sequence[str]] = None,
        jobs: int = 1,
    ) -> CheckerRunResults:
        """
        Check every source file under *paths*.

        Directories are searched recursively for ``*.bsl`` and ``*.os``.
        With ``jobs > 1`` files are checked on a thread pool; results keep
        the sorted file order either way.
        """
        files = list(collect_source_files(paths))
        _log.info("checking %d file(s) with %d job(s)", len(files), jobs)

        def _run_one(path: Path) -> CheckerRunResults:
            return self.run_file(path, checkers=checkers)

        if jobs > 1 and len(files) > 1:
            with ThreadPoolExecutor(max_workers=jobs) as ex:
                partials = list(ex.map(_run_one, files))
        else:
            partials = [_run_one(p) for p in files]

        combined = CheckerRunResults()
        for partial in partials:
            combined.merge(partial)
        return combined


def collect_source_files(paths: Iterable[Union[str, Path]]) -> Iterator[Path]:
    """Expand files and directories into BSL/OneScript source files."""
    for raw in paths:
        p = Path(raw)
        if p.is_dir():
            found = [f for f in p.rglob("*")
                     if f.is_file() and f.suffix.lower() in SOURCE_SUFFIXES]
            yield from sorted(found)
        elif p.is_file():
            yield p
        else:
            raise FileNotFoundError(f"no such file or directory: {p}")


# ═════════════════════════════════════════════════════════════════════════
#  PART 8 — PUBLIC API
# ═════════════════════════════════════════════════════════════════════════

__all__ = [
    # Diagnostic model
    "Diagnostic",
    "DiagnosticSeverity",
    "DiagnosticType",
    "DiagnosticScope",
    "SourceLocation",
    "DiagnosticStorage",
    # Suppression
    "SuppressionManager",
    # Checker framework
    "Checker",
    "CheckerContext",
    "CheckerRegistry",
    "DEFAULT_REGISTRY",
    # Built-in checkers
    "UsingObjectNotAvailableUnixChecker",
    # Runner
    "CheckerRunner",
    "CheckerRunResults",
    "collect_source_files",
]

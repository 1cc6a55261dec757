"""
bsl_checkers
════════════

Static checks for 1C:Enterprise (BSL) and OneScript modules.

    from bsl_checkers import CheckerRunner

    results = CheckerRunner().run_paths(["src/"])
    for diag in results.diagnostics:
        print(diag.to_gcc_format())

Modules
───────
  • grammar   — PEG grammar and parser (parsimonious)
  • tree      — syntax tree with parent links and ancestor search
  • checkers  — diagnostic model, suppressions, checker framework, runner
  • messages  — localized (en / ru) names and message templates
  • config    — ``.bsl-language-server.json`` loading
  • reporter  — text / json / gcc / SARIF / HTML output
"""

from __future__ import annotations

__version__ = "0.3.0"

from bsl_checkers.errors import (
    BslCheckersError,
    BslParseError,
    ConfigurationError,
    TreeStructureError,
)
from bsl_checkers.tree import RuleKind, SourceSpan, SyntaxNode, SyntaxTree, ancestor_of_kind
from bsl_checkers.grammar import parse, parse_file
from bsl_checkers.config import LinterConfiguration, load_configuration
from bsl_checkers.checkers import (
    DEFAULT_REGISTRY,
    Checker,
    CheckerContext,
    CheckerRegistry,
    CheckerRunner,
    CheckerRunResults,
    Diagnostic,
    DiagnosticScope,
    DiagnosticSeverity,
    DiagnosticType,
    SourceLocation,
    SuppressionManager,
    UsingObjectNotAvailableUnixChecker,
)

__all__ = [
    "__version__",
    # errors
    "BslCheckersError",
    "BslParseError",
    "ConfigurationError",
    "TreeStructureError",
    # tree & parsing
    "RuleKind",
    "SourceSpan",
    "SyntaxNode",
    "SyntaxTree",
    "ancestor_of_kind",
    "parse",
    "parse_file",
    # configuration
    "LinterConfiguration",
    "load_configuration",
    # checkers
    "DEFAULT_REGISTRY",
    "Checker",
    "CheckerContext",
    "CheckerRegistry",
    "CheckerRunner",
    "CheckerRunResults",
    "Diagnostic",
    "DiagnosticScope",
    "DiagnosticSeverity",
    "DiagnosticType",
    "SourceLocation",
    "SuppressionManager",
    "UsingObjectNotAvailableUnixChecker",
]

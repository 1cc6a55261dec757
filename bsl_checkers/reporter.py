"""
bsl_checkers/reporter.py
════════════════════════

Diagnostic reporter for BSL check runs.

Output formats
──────────────
  • text  : colourful Rust-style rendering on a TTY, plain lines otherwise
  • json  : one JSON object per line
  • gcc   : ``file:line:col: severity: message [Code]``
  • sarif : SARIF 2.1.0 document, written on finish()
  • html  : self-contained HTML page rendered with Jinja2, written on finish()

Usage
─────
    from bsl_checkers.reporter import Reporter

    with Reporter(fmt="text") as rep:
        for diag in results.diagnostics:
            rep.report(diag)
"""

from __future__ import annotations

import json
import sys
import textwrap
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO, Tuple, Union

import jinja2
from termcolor import colored, cprint

from bsl_checkers.checkers import Diagnostic, DiagnosticSeverity
from bsl_checkers.messages import DEFAULT_LANGUAGE, get_message, has_messages

OUTPUT_FORMATS: Tuple[str, ...] = ("text", "json", "gcc", "sarif", "html")


# ═════════════════════════════════════════════════════════════════════════
#  STATISTICS
# ═════════════════════════════════════════════════════════════════════════

@dataclass
class ReporterStats:
    """Aggregate counts per severity."""
    counts: Dict[DiagnosticSeverity, int] = field(
        default_factory=lambda: {sev: 0 for sev in DiagnosticSeverity}
    )

    def record(self, severity: DiagnosticSeverity) -> None:
        self.counts[severity] += 1

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    @property
    def highest(self) -> Optional[DiagnosticSeverity]:
        present = [sev for sev, n in self.counts.items() if n]
        return max(present, key=lambda sev: sev.rank) if present else None

    def summary_line(self) -> str:
        parts: List[str] = []
        for sev in sorted(DiagnosticSeverity, key=lambda s: s.rank, reverse=True):
            n = self.counts[sev]
            if n:
                parts.append(f"{n} {sev.label}")
        if not parts:
            return "no diagnostics emitted"
        return "; ".join(parts) + f" ({self.total} total)"


# ═════════════════════════════════════════════════════════════════════════
#  TERMINAL RENDERER  (Rust-style colourful output)
# ═════════════════════════════════════════════════════════════════════════

class _TerminalRenderer:
    """Render diagnostics to a terminal with colours."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream
        self._source_cache: Dict[str, List[str]] = {}

    def render(self, diag: Diagnostic) -> None:
        lines: List[str] = []

        # ── header: severity[Code]: message ──────────────────────────
        sev_str = colored(f"{diag.severity.label}[{diag.code}]",
                          diag.severity.color, attrs=["bold"])
        lines.append(f"{sev_str}: {colored(diag.message, 'white', attrs=['bold'])}")

        loc = diag.location
        if loc.file:
            arrow = colored("-->", "blue", attrs=["bold"])
            lines.append(f"  {arrow} {loc}")

        if loc.line:
            lines.extend(self._render_span(diag))

        if diag.checker_name:
            prefix = colored("note", "cyan", attrs=["bold"])
            lines.append(f"  = {prefix}: {diag.checker_name}"
                         f" ({diag.diagnostic_type.value}, {diag.minutes_to_fix} min)")

        lines.append("")
        self._stream.write("\n".join(lines) + "\n")
        self._stream.flush()

    def _render_span(self, diag: Diagnostic) -> List[str]:
        loc = diag.location
        source = self._read_source(loc.file)
        if len(source) < loc.line:
            return []

        gutter_w = len(str(loc.line)) + 1
        pipe = colored("|", "blue", attrs=["bold"])
        line_prefix = colored(str(loc.line).rjust(gutter_w), "blue", attrs=["bold"])
        src_text = source[loc.line - 1]

        pad = " " * (loc.column - 1) if loc.column > 0 else ""
        if loc.end_line == loc.line:
            span_len = max(loc.end_column - loc.column, 1)
        else:
            span_len = max(len(src_text) - len(pad), 1)
        marker = colored("^" * span_len, diag.severity.color, attrs=["bold"])
        blank_gutter = " " * (gutter_w + 1)
        return [
            f" {line_prefix} {pipe} {src_text}",
            f" {blank_gutter} {pipe} {pad}{marker}",
        ]

    def _read_source(self, filepath: str) -> List[str]:
        """Source lines of *filepath*; empty when it cannot be read."""
        if filepath not in self._source_cache:
            try:
                text = Path(filepath).read_text(encoding="utf-8-sig", errors="replace")
            except OSError:
                text = ""
            self._source_cache[filepath] = text.splitlines()
        return self._source_cache[filepath]


# ═════════════════════════════════════════════════════════════════════════
#  LINE RENDERERS  (log files / non-TTY / tooling)
# ═════════════════════════════════════════════════════════════════════════

class _PlainRenderer:
    """Non-coloured renderer: one gcc-style line per diagnostic."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def render(self, diag: Diagnostic) -> None:
        self._stream.write(diag.to_gcc_format() + "\n")
        self._stream.flush()


class _JsonLinesRenderer:
    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def render(self, diag: Diagnostic) -> None:
        self._stream.write(diag.to_json_str() + "\n")
        self._stream.flush()


# ═════════════════════════════════════════════════════════════════════════
#  SARIF 2.1.0 BUILDER
# ═════════════════════════════════════════════════════════════════════════

class _SarifBuilder:
    """Accumulates diagnostics and produces a SARIF 2.1.0 JSON document."""

    SARIF_VERSION = "2.1.0"
    SARIF_SCHEMA = (
        "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/master/"
        "Schemata/sarif-schema-2.1.0.json"
    )

    def __init__(self, language: str = DEFAULT_LANGUAGE) -> None:
        self._language = language
        self._results: List[Dict[str, Any]] = []
        self._rules: Dict[str, Dict[str, Any]] = {}  # code → rule obj

    def add(self, diag: Diagnostic) -> None:
        # ── rule ─────────────────────────────────────────────────────
        if diag.code not in self._rules:
            name = diag.checker_name
            if has_messages(diag.code):
                name = get_message(diag.code, "name", self._language)
            self._rules[diag.code] = {
                "id": diag.code,
                "name": diag.code,
                "shortDescription": {"text": name or diag.code},
                "defaultConfiguration": {"level": diag.severity.sarif_level},
                "properties": {
                    "tags": list(diag.tags),
                    "type": diag.diagnostic_type.value,
                    "minutesToFix": diag.minutes_to_fix,
                },
            }

        # ── result ───────────────────────────────────────────────────
        loc = diag.location
        result: Dict[str, Any] = {
            "ruleId": diag.code,
            "level": diag.severity.sarif_level,
            "message": {"text": diag.message},
            "properties": {"severity": diag.severity.label},
        }
        if loc.file:
            region: Dict[str, Any] = {"startLine": max(loc.line, 1)}
            if loc.column:
                region["startColumn"] = loc.column
            if loc.end_line:
                region["endLine"] = loc.end_line
                region["endColumn"] = max(loc.end_column, 1)
            result["locations"] = [{
                "physicalLocation": {
                    "artifactLocation": {"uri": Path(loc.file).as_posix()},
                    "region": region,
                }
            }]

        self._results.append(result)

    def to_dict(self, tool_name: str, version: str) -> Dict[str, Any]:
        return {
            "$schema": self.SARIF_SCHEMA,
            "version": self.SARIF_VERSION,
            "runs": [
                {
                    "tool": {
                        "driver": {
                            "name": tool_name,
                            "version": version,
                            "rules": list(self._rules.values()),
                        }
                    },
                    "results": self._results,
                }
            ],
        }

    def to_json(self, tool_name: str, version: str) -> str:
        return json.dumps(self.to_dict(tool_name, version), indent=2, ensure_ascii=False)


# ═════════════════════════════════════════════════════════════════════════
#  HTML BUILDER
# ═════════════════════════════════════════════════════════════════════════

class _HtmlBuilder:
    """Accumulates diagnostics and renders them to HTML via Jinja2."""

    def __init__(self, template_path: Optional[Union[str, Path]] = None) -> None:
        self._template_path = template_path
        self._diagnostics: List[Dict[str, Any]] = []

    def add(self, diag: Diagnostic) -> None:
        loc = diag.location
        self._diagnostics.append({
            "severity": diag.severity.label,
            "code": diag.code,
            "type": diag.diagnostic_type.value,
            "message": diag.message,
            "checker_name": diag.checker_name,
            "file": loc.file,
            "line": loc.line,
            "column": loc.column,
            "minutes_to_fix": diag.minutes_to_fix,
        })

    def render(self, tool_name: str) -> str:
        if self._template_path:
            template_str = Path(self._template_path).read_text(encoding="utf-8")
        else:
            template_str = _DEFAULT_HTML_TEMPLATE
        env = jinja2.Environment(autoescape=True)
        tmpl = env.from_string(template_str)
        return tmpl.render(
            tool_name=tool_name,
            diagnostics=self._diagnostics,
            total=len(self._diagnostics),
        )


# ═════════════════════════════════════════════════════════════════════════
#  REPORTER  (main entry point)
# ═════════════════════════════════════════════════════════════════════════

class Reporter:
    """
    Central diagnostic dispatcher.

    Use as a context manager::

        with Reporter(stream=sys.stdout, fmt="sarif") as rep:
            rep.report_all(results.diagnostics)
        # finish() is called automatically

    Line formats (text, json, gcc) are written as diagnostics arrive;
    document formats (sarif, html) are written by :meth:`finish`.  The
    summary line always goes to stderr.
    """

    def __init__(
        self,
        stream: TextIO = sys.stdout,
        fmt: str = "text",
        colour: Optional[bool] = None,
        language: str = DEFAULT_LANGUAGE,
        tool_name: str = "bsl-checkers",
        tool_version: str = "0.0.0",
        html_template: Optional[Union[str, Path]] = None,
        summary: bool = True,
    ) -> None:
        if fmt not in OUTPUT_FORMATS:
            raise ValueError(f"unknown output format: {fmt!r}")
        self.fmt = fmt
        self.tool_name = tool_name
        self.tool_version = tool_version
        self.stats = ReporterStats()
        self._stream = stream
        self._summary = summary
        self._finished = False

        self._renderer: Optional[Union[_TerminalRenderer, _PlainRenderer,
                                       _JsonLinesRenderer]] = None
        self._sarif: Optional[_SarifBuilder] = None
        self._html: Optional[_HtmlBuilder] = None

        if fmt == "text":
            use_colour = colour if colour is not None else (
                hasattr(stream, "isatty") and stream.isatty()
            )
            self._colour = use_colour
            self._renderer = _TerminalRenderer(stream) if use_colour else _PlainRenderer(stream)
        else:
            self._colour = False
            if fmt == "gcc":
                self._renderer = _PlainRenderer(stream)
            elif fmt == "json":
                self._renderer = _JsonLinesRenderer(stream)
            elif fmt == "sarif":
                self._sarif = _SarifBuilder(language)
            else:
                self._html = _HtmlBuilder(html_template)

    # ── context manager ──────────────────────────────────────────────

    def __enter__(self) -> Reporter:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if exc_type is None:
            self.finish()

    # ── intake ───────────────────────────────────────────────────────

    def report(self, diag: Diagnostic) -> None:
        """Route a diagnostic to the active output and update stats."""
        self.stats.record(diag.severity)

        if self._renderer is not None:
            self._renderer.render(diag)
        if self._sarif is not None:
            self._sarif.add(diag)
        if self._html is not None:
            self._html.add(diag)

    def report_all(self, diagnostics: List[Diagnostic]) -> None:
        for diag in diagnostics:
            self.report(diag)

    # ── finalisation ─────────────────────────────────────────────────

    def finish(self) -> ReporterStats:
        """
        Write document formats and print the summary line.

        Returns the final :class:`ReporterStats`; calling it again is a no-op.
        """
        if self._finished:
            return self.stats
        self._finished = True

        if self._sarif is not None:
            self._stream.write(self._sarif.to_json(self.tool_name, self.tool_version) + "\n")
        if self._html is not None:
            self._stream.write(self._html.render(self.tool_name))
        self._stream.flush()

        if self._summary:
            summary = self.stats.summary_line()
            if self._colour:
                highest = self.stats.highest
                if highest is None:
                    cprint(f"  ╰─ {summary}", "green", attrs=["bold"], file=sys.stderr)
                else:
                    cprint(f"  ╰─ {summary}", highest.color, attrs=["bold"], file=sys.stderr)
            else:
                print(f"  {summary}", file=sys.stderr)

        return self.stats


# ═════════════════════════════════════════════════════════════════════════
#  DEFAULT HTML TEMPLATE
# ═════════════════════════════════════════════════════════════════════════

_DEFAULT_HTML_TEMPLATE = textwrap.dedent("""\
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>{{ tool_name }} report</title>
  <style>
    :root { --bg: #1e1e2e; --fg: #cdd6f4; --surface: #313244;
            --red: #f38ba8; --yellow: #f9e2af; --cyan: #89dceb;
            --magenta: #cba6f7; --blue: #89b4fa; --border: #45475a; }
    * { box-sizing: border-box; margin: 0; padding: 0; }
    body { font-family: 'Fira Code', 'Cascadia Code', monospace;
           background: var(--bg); color: var(--fg); padding: 2rem; }
    h1 { margin-bottom: 1rem; }
    .card { background: var(--surface); border: 1px solid var(--border);
            border-radius: 8px; padding: 1rem; margin-bottom: 1rem; }
    .sev-blocker  { border-left: 4px solid var(--magenta); }
    .sev-critical { border-left: 4px solid var(--red); }
    .sev-major    { border-left: 4px solid var(--yellow); }
    .sev-minor    { border-left: 4px solid var(--cyan); }
    .sev-info     { border-left: 4px solid var(--fg); }
    .badge { display: inline-block; padding: 2px 8px; border-radius: 4px;
             font-size: 0.85em; font-weight: bold; color: var(--bg); }
    .badge-blocker  { background: var(--magenta); }
    .badge-critical { background: var(--red); }
    .badge-major    { background: var(--yellow); }
    .badge-minor    { background: var(--cyan); }
    .badge-info     { background: var(--fg); }
    .loc { color: var(--blue); font-size: 0.9em; }
    .msg { margin-top: 0.4rem; }
    .note { color: var(--cyan); margin-top: 0.3rem; font-size: 0.9em; }
    .summary { margin-top: 2rem; padding: 1rem; background: var(--surface);
               border-radius: 8px; text-align: center; font-size: 1.1em; }
  </style>
</head>
<body>
  <h1>{{ tool_name }} report</h1>
  {% for d in diagnostics %}
  <div class="card sev-{{ d.severity }}">
    <span class="badge badge-{{ d.severity }}">{{ d.severity }}</span>
    <code>[{{ d.code }}]</code>
    {% if d.file %}
      <span class="loc">{{ d.file }}:{{ d.line }}{% if d.column %}:{{ d.column }}{% endif %}</span>
    {% endif %}
    <div class="msg">{{ d.message }}</div>
    {% if d.checker_name %}
      <div class="note">{{ d.checker_name }} ({{ d.type }}, {{ d.minutes_to_fix }} min)</div>
    {% endif %}
  </div>
  {% endfor %}
  <div class="summary">{{ total }} diagnostic{{ 's' if total != 1 else '' }} emitted.</div>
</body>
</html>
""")


__all__ = [
    "OUTPUT_FORMATS",
    "Reporter",
    "ReporterStats",
]

#!/usr/bin/env python3
"""
cscrub/reporter.py
══════════════════

Rust-style colourful defect reporter.

Output formats
──────────────
  • Terminal : colourful Rust-style rendering (TTY streams)
  • Plain    : one ``[file:line]: (severity) message [Category]`` per record
  • SARIF    : if $REPORT_GENERATE_SARIF is set to a file path
  • HTML     : if $REPORT_GENERATE_HTML is set to a file path
               ($REPORT_HTML_TEMPLATE overrides the built-in template)

Usage
─────
    from cscrub.reporter import Reporter

    with Reporter(filename="demo.c", source=src) as rep:
        rep.report_all(result.defects)
    # finish() prints the summary and writes SARIF / HTML

License: MIT
"""

from __future__ import annotations

import json
import logging
import os
import sys
import textwrap
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, TextIO, Union

import jinja2
from termcolor import colored, cprint

from cscrub.defects import DefectRecord, Severity

_log = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════
#  STATS
# ═════════════════════════════════════════════════════════════════════════

@dataclass
class ReporterStats:
    """Aggregate counts per severity."""
    critical: int = 0
    error: int = 0
    warning: int = 0
    info: int = 0

    def record(self, severity: Severity) -> None:
        """Increment the counter that corresponds to *severity*."""
        attr = severity.label
        setattr(self, attr, getattr(self, attr) + 1)

    @property
    def total(self) -> int:
        return self.critical + self.error + self.warning + self.info

    @property
    def failing(self) -> bool:
        return bool(self.critical or self.error)

    def summary_line(self) -> str:
        parts: List[str] = []
        if self.critical:
            parts.append(f"{self.critical} critical")
        if self.error:
            parts.append(f"{self.error} error{'s' if self.error != 1 else ''}")
        if self.warning:
            parts.append(f"{self.warning} warning{'s' if self.warning != 1 else ''}")
        if self.info:
            parts.append(f"{self.info} info")
        if not parts:
            return "no defects found"
        return "; ".join(parts) + f" ({self.total} total)"


# ═════════════════════════════════════════════════════════════════════════
#  TERMINAL RENDERER  (Rust-style colourful output)
# ═════════════════════════════════════════════════════════════════════════

class _TerminalRenderer:
    """Render records to a terminal with colours."""

    def __init__(self, filename: str, source_lines: List[str], stream: TextIO) -> None:
        self._filename = filename
        self._source_lines = source_lines
        self._stream = stream

    def render(self, record: DefectRecord) -> None:
        lines: List[str] = []
        sev = record.severity

        # ── header: severity[Category]: message ──────────────────────
        sev_str = colored(f"{sev.label}[{record.category.value}]", sev.color, attrs=["bold"])
        lines.append(f"{sev_str}: {colored(record.message, 'white', attrs=['bold'])}")

        arrow = colored("-->", "blue", attrs=["bold"])
        lines.append(f"  {arrow} {self._filename}:{record.line}")

        # ── source line ──────────────────────────────────────────────
        if 0 < record.line <= len(self._source_lines):
            gutter_w = len(str(record.line)) + 1
            pipe = colored("|", "blue", attrs=["bold"])
            number = colored(str(record.line).rjust(gutter_w), "blue", attrs=["bold"])
            text = self._source_lines[record.line - 1]
            lines.append(f" {number} {pipe} {text}")
            stripped = text.lstrip()
            if stripped:
                pad = " " * (len(text) - len(stripped))
                marker = colored("^" * len(stripped.rstrip()), sev.color, attrs=["bold"])
                lines.append(f" {' ' * gutter_w} {pipe} {pad}{marker}")

        if record.suggestion:
            lines.append(f"  = {colored('help', 'green', attrs=['bold'])}: {record.suggestion}")
        if record.rationale:
            lines.append(f"  = {colored('note', 'cyan', attrs=['bold'])}: {record.rationale}")

        # ── classic one-liner ──────────────────────────────────────────
        lines.append(colored(record.one_liner(self._filename), attrs=["dark"]))
        lines.append("")
        self._stream.write("\n".join(lines) + "\n")
        self._stream.flush()


# ═════════════════════════════════════════════════════════════════════════
#  PLAIN RENDERER  (for log files / non-TTY)
# ═════════════════════════════════════════════════════════════════════════

class _PlainRenderer:
    """Non-coloured renderer, one line per record plus its hints."""

    def __init__(self, filename: str, stream: TextIO) -> None:
        self._filename = filename
        self._stream = stream

    def render(self, record: DefectRecord) -> None:
        self._stream.write(record.one_liner(self._filename) + "\n")
        if record.suggestion:
            self._stream.write(f"  help: {record.suggestion}\n")
        self._stream.flush()


# ═════════════════════════════════════════════════════════════════════════
#  SARIF 2.1.0 BUILDER
# ═════════════════════════════════════════════════════════════════════════

class SarifBuilder:
    """Accumulates records and writes a SARIF 2.1.0 JSON document."""

    SARIF_VERSION = "2.1.0"
    SARIF_SCHEMA = (
        "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/master/"
        "Schemata/sarif-schema-2.1.0.json"
    )

    def __init__(self, filename: str = "<input>") -> None:
        self._filename = filename
        self._results: List[Dict[str, Any]] = []
        self._rules: Dict[str, Dict[str, Any]] = {}  # category tag → rule obj

    def add(self, record: DefectRecord) -> None:
        rule_id = record.category.value
        if rule_id not in self._rules:
            self._rules[rule_id] = {
                "id": rule_id,
                "shortDescription": {"text": record.message},
            }

        result: Dict[str, Any] = {
            "ruleId": rule_id,
            "level": record.severity.sarif_level,
            "message": {"text": record.message},
            "locations": [{
                "physicalLocation": {
                    "artifactLocation": {"uri": self._filename},
                    "region": {"startLine": record.line},
                }
            }],
            "properties": {"severity": record.severity.label},
        }
        if record.suggestion:
            result["fixes"] = [{"description": {"text": record.suggestion}}]
        if record.rationale:
            result["properties"]["rationale"] = record.rationale
        self._results.append(result)

    def to_json(self, tool_name: str = "cscrub", version: str = "0.0.0") -> str:
        sarif: Dict[str, Any] = {
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
        return json.dumps(sarif, indent=2)

    def write(self, path: str, tool_name: str = "cscrub", version: str = "0.0.0") -> None:
        Path(path).write_text(self.to_json(tool_name, version), encoding="utf-8")


# ═════════════════════════════════════════════════════════════════════════
#  HTML BUILDER
# ═════════════════════════════════════════════════════════════════════════

class HtmlBuilder:
    """Accumulates records and renders them to HTML via Jinja2."""

    def __init__(self, filename: str = "<input>") -> None:
        self._filename = filename
        self._records: List[Dict[str, Any]] = []

    def add(self, record: DefectRecord) -> None:
        entry = record.to_dict()
        entry["file"] = self._filename
        self._records.append(entry)

    def render(self, template_path: Optional[str] = None) -> str:
        env = jinja2.Environment(autoescape=True)
        tmpl = env.from_string(self._load_template(template_path))
        return tmpl.render(
            defects=self._records,
            total=len(self._records),
            filename=self._filename,
        )

    def write(self, path: str, template_path: Optional[str] = None) -> None:
        Path(path).write_text(self.render(template_path), encoding="utf-8")

    @staticmethod
    def _load_template(template_path: Optional[str]) -> str:
        """Resolve the HTML template: argument, then $REPORT_HTML_TEMPLATE, then built-in."""
        if template_path:
            return Path(template_path).read_text(encoding="utf-8")
        env_tmpl = os.environ.get("REPORT_HTML_TEMPLATE", "")
        if env_tmpl and Path(env_tmpl).is_file():
            return Path(env_tmpl).read_text(encoding="utf-8")
        return _DEFAULT_HTML_TEMPLATE


# ═════════════════════════════════════════════════════════════════════════
#  REPORTER  (main entry point)
# ═════════════════════════════════════════════════════════════════════════

class Reporter:
    """
    Central defect dispatcher.

    Use as a context manager::

        with Reporter(filename="a.c", source=src) as rep:
            rep.report_all(records)
        # finish() is called automatically

    Parameters
    ----------
    filename     : name shown in locations
    source       : program text, used to quote offending lines
    stream       : where records are rendered (stderr by default)
    colour       : force colour on/off; None = colour iff *stream* is a TTY
    """

    def __init__(
        self,
        filename: str = "<input>",
        source: str = "",
        stream: Optional[TextIO] = None,
        colour: Optional[bool] = None,
        tool_name: str = "cscrub",
        tool_version: str = "0.0.0",
    ) -> None:
        self.filename = filename
        self.tool_name = tool_name
        self.tool_version = tool_version
        self.stats = ReporterStats()
        self.records: List[DefectRecord] = []
        self._stream = stream if stream is not None else sys.stderr

        # ── choose renderer ──────────────────────────────────────────
        use_colour = colour if colour is not None else (
            hasattr(self._stream, "isatty") and self._stream.isatty()
        )
        if use_colour:
            self._renderer: Union[_TerminalRenderer, _PlainRenderer] = _TerminalRenderer(
                filename, source.split("\n"), self._stream
            )
        else:
            self._renderer = _PlainRenderer(filename, self._stream)

        # ── optional writers (driven by env vars) ────────────────────
        self._sarif: Optional[SarifBuilder] = None
        self._sarif_path = os.environ.get("REPORT_GENERATE_SARIF", "")
        if self._sarif_path:
            self._sarif = SarifBuilder(filename)

        self._html: Optional[HtmlBuilder] = None
        self._html_path = os.environ.get("REPORT_GENERATE_HTML", "")
        if self._html_path:
            self._html = HtmlBuilder(filename)

    # ── context manager ──────────────────────────────────────────────

    def __enter__(self) -> Reporter:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.finish()

    # ── intake ───────────────────────────────────────────────────────

    def report(self, record: DefectRecord) -> None:
        """Route *record* to every active output."""
        # count first so finish() sees real numbers even if a renderer raises
        self.stats.record(record.severity)
        self.records.append(record)
        self._renderer.render(record)
        if self._sarif is not None:
            self._sarif.add(record)
        if self._html is not None:
            self._html.add(record)

    def report_all(self, records: Iterable[DefectRecord]) -> None:
        for record in records:
            self.report(record)

    # ── finalisation ─────────────────────────────────────────────────

    def finish(self) -> ReporterStats:
        """
        Print the summary line and write SARIF / HTML if configured.

        Returns the final :class:`ReporterStats`.
        """
        summary = self.stats.summary_line()
        if isinstance(self._renderer, _TerminalRenderer):
            if self.stats.failing:
                colour = "red"
            elif self.stats.total:
                colour = "yellow"
            else:
                colour = "green"
            cprint(f"  ╰─ {summary}", colour, attrs=["bold"], file=self._stream)
        else:
            print(f"  {summary}", file=self._stream)

        if self._sarif is not None:
            try:
                self._sarif.write(self._sarif_path, self.tool_name, self.tool_version)
            except OSError as exc:
                _log.error("failed to write SARIF to %s: %s", self._sarif_path, exc)

        if self._html is not None:
            try:
                self._html.write(self._html_path)
            except OSError as exc:
                _log.error("failed to write HTML to %s: %s", self._html_path, exc)

        return self.stats


def render_sarif(records: Iterable[DefectRecord], filename: str = "<input>",
                 tool_version: str = "0.0.0") -> str:
    builder = SarifBuilder(filename)
    for record in records:
        builder.add(record)
    return builder.to_json(version=tool_version)


def render_html(records: Iterable[DefectRecord], filename: str = "<input>",
                template_path: Optional[str] = None) -> str:
    builder = HtmlBuilder(filename)
    for record in records:
        builder.add(record)
    return builder.render(template_path)


# ═════════════════════════════════════════════════════════════════════════
#  DEFAULT HTML TEMPLATE
# ═════════════════════════════════════════════════════════════════════════

_DEFAULT_HTML_TEMPLATE = textwrap.dedent("""\
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>cscrub report: {{ filename }}</title>
  <style>
    :root { --bg: #1e1e2e; --fg: #cdd6f4; --surface: #313244;
            --red: #f38ba8; --yellow: #f9e2af; --cyan: #89dceb;
            --green: #a6e3a1; --blue: #89b4fa; --magenta: #cba6f7;
            --border: #45475a; }
    * { box-sizing: border-box; margin: 0; padding: 0; }
    body { font-family: 'Fira Code', 'Cascadia Code', monospace;
           background: var(--bg); color: var(--fg); padding: 2rem; }
    h1 { margin-bottom: 1rem; }
    .card { background: var(--surface); border: 1px solid var(--border);
            border-radius: 8px; padding: 1rem; margin-bottom: 1rem; }
    .sev-critical { border-left: 4px solid var(--magenta); }
    .sev-error    { border-left: 4px solid var(--red); }
    .sev-warning  { border-left: 4px solid var(--yellow); }
    .sev-info     { border-left: 4px solid var(--cyan); }
    .badge { display: inline-block; padding: 2px 8px; border-radius: 4px;
             font-size: 0.85em; font-weight: bold; color: var(--bg); }
    .badge-critical { background: var(--magenta); }
    .badge-error    { background: var(--red); }
    .badge-warning  { background: var(--yellow); }
    .badge-info     { background: var(--cyan); }
    .loc { color: var(--blue); font-size: 0.9em; }
    .msg { margin-top: 0.4rem; }
    .help { color: var(--green); margin-top: 0.3rem; font-size: 0.9em; }
    .note { color: var(--cyan); margin-top: 0.3rem; font-size: 0.9em; }
    .summary { margin-top: 2rem; padding: 1rem; background: var(--surface);
               border-radius: 8px; text-align: center; font-size: 1.1em; }
  </style>
</head>
<body>
  <h1>cscrub report</h1>
  {% for d in defects %}
  <div class="card sev-{{ d.severity }}">
    <span class="badge badge-{{ d.severity }}">{{ d.severity }}</span>
    <code>[{{ d.category }}]</code>
    <span class="loc">{{ d.file }}:{{ d.line }}</span>
    <div class="msg">{{ d.message }}</div>
    {% if d.suggestion %}<div class="help">help: {{ d.suggestion }}</div>{% endif %}
    {% if d.rationale %}<div class="note">note: {{ d.rationale }}</div>{% endif %}
  </div>
  {% endfor %}
  <div class="summary">{{ total }} defect{{ 's' if total != 1 else '' }} found.</div>
</body>
</html>
""")


__all__ = [
    "Reporter",
    "ReporterStats",
    "SarifBuilder",
    "HtmlBuilder",
    "render_sarif",
    "render_html",
]

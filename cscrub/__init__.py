"""
cscrub — defect detection and automatic clean-up for a C-like dialect
======================================================================

The dialect is analysed line by line, without a parse tree: a symbol
extractor builds the program's declarations, an ordered pipeline of
checkers reports defects into a deduplicating registry, and a
transformation engine rewrites the program using what the checkers found.

Quick start
-----------
>>> from cscrub import analyze, analyze_and_transform
>>> result = analyze("int main(){\\n  return 0\\n}")
>>> [d.category.value for d in result.defects]
['MissingSemicolon']
>>> print(analyze_and_transform("int main(){\\n  return 0\\n}").transformed_source)
int main() {
    return 0;
}

Package layout
--------------
::

    cscrub/
    ├── __init__.py          ← this file
    ├── errors.py            exception hierarchy
    ├── config.py            EngineOptions
    ├── defects.py           Severity, DefectCategory, DefectRecord, DefectRegistry
    ├── lexer.py             line views, masking, tokens
    ├── matchers.py          shared line/regex helpers
    ├── symbols.py           symbol extraction
    ├── context.py           per-call AnalysisContext
    ├── checkers.py          Checker ABC, registry, runner, suppressions
    ├── syntax_checks.py     delimiters, malformed syntax, semicolons
    ├── function_checks.py   undefined / unused / bodiless functions
    ├── flow_checks.py       missing return, unreachable code, empty bodies
    ├── expression_checks.py conditions, variables, expressions, printf/scanf
    ├── bounds_checks.py     array bounds
    ├── loop_checks.py       infinite loops
    ├── naming.py            rename map
    ├── fixers.py            per-line rewrites
    ├── transform.py         transformation state machine
    ├── formatter.py         layout
    ├── engine.py            analyze / analyze_and_transform
    ├── reporter.py          terminal, SARIF and HTML output
    └── cli.py               command line
"""

from __future__ import annotations

__version__ = "0.1.0"

from cscrub.config import EngineOptions
from cscrub.defects import DefectCategory, DefectRecord, Severity
from cscrub.engine import (
    AnalysisResult,
    TransformResult,
    analyze,
    analyze_and_transform,
    default_registry,
)
from cscrub.errors import ConfigurationError, CscrubError, TransformInvariantError
from cscrub.transform import TransformStats

__all__ = [
    "__version__",
    "analyze",
    "analyze_and_transform",
    "default_registry",
    "AnalysisResult",
    "TransformResult",
    "TransformStats",
    "EngineOptions",
    "DefectCategory",
    "DefectRecord",
    "Severity",
    "CscrubError",
    "ConfigurationError",
    "TransformInvariantError",
]

# tests/test_registry.py
"""
Tests for the checker framework: registry, suppressions, runner and the
deduplicating defect registry.
"""

import pytest

from cscrub.checkers import Checker, CheckerRegistry, CheckerRunner, SuppressionManager
from cscrub.config import EngineOptions
from cscrub.defects import DefectCategory, DefectRecord, DefectRegistry, Severity
from cscrub.engine import ALL_CHECKERS, analyze, default_registry
from cscrub.errors import ConfigurationError, ErrorCodes
from cscrub.lexer import split_lines
from cscrub.syntax_checks import MissingSemicolonChecker
from tests.conftest import context_for, tags


def record(line, category=DefectCategory.MISSING_SEMICOLON, message="m", severity=Severity.ERROR):
    return DefectRecord(category=category, severity=severity, line=line, message=message)


class ExplodingChecker(Checker):
    name = "exploding"
    description = "always fails"

    def collect_evidence(self, ctx):
        raise RuntimeError("boom")

    def diagnose(self, ctx):
        pass


class EchoChecker(Checker):
    """Emits the same record twice."""
    name = "echo"
    description = "duplicates"
    categories = frozenset({DefectCategory.UNREACHABLE_CODE})

    def collect_evidence(self, ctx):
        pass

    def diagnose(self, ctx):
        for _ in range(2):
            self._emit(DefectCategory.UNREACHABLE_CODE, 2, "same")


class TestDefectRegistry:
    """Deduplication and ordering."""

    def test_duplicate_dropped(self):
        registry = DefectRegistry()
        assert registry.add(record(1))
        assert not registry.add(record(1))
        assert len(registry) == 1

    def test_checker_name_not_part_of_identity(self):
        registry = DefectRegistry()
        registry.add(DefectRecord(DefectCategory.MISSING_SEMICOLON, Severity.ERROR, 1, "m", checker="a"))
        assert not registry.add(
            DefectRecord(DefectCategory.MISSING_SEMICOLON, Severity.ERROR, 1, "m", checker="b")
        )

    def test_snapshot_sorted_by_line_stable(self):
        registry = DefectRegistry()
        registry.extend([record(5, message="a"), record(2), record(5, message="b"), record(1)])
        snap = registry.snapshot()
        assert [r.line for r in snap] == [1, 2, 5, 5]
        assert [r.message for r in snap if r.line == 5] == ["a", "b"]


class TestCheckerRegistry:
    """Registration order and lookups."""

    def test_default_order(self):
        assert default_registry().names == [
            "bracket-match",
            "paren-match",
            "brace-match",
            "malformed-syntax",
            "missing-semicolon",
            "functions",
            "missing-return",
            "assignment-in-condition",
            "variable-lifecycle",
            "unreachable",
            "expressions",
            "format-calls",
            "array-bounds",
            "infinite-loop",
            "empty-body",
        ]
        assert len(default_registry()) == len(ALL_CHECKERS)

    def test_every_category_has_a_producer(self):
        registry = default_registry()
        for category in DefectCategory:
            if category is DefectCategory.INTERNAL_ERROR:
                continue
            assert registry.filter_by_category(category), category

    def test_disable_unknown(self):
        with pytest.raises(ConfigurationError) as exc:
            CheckerRegistry().disable("nope")
        assert exc.value.code == ErrorCodes.UNKNOWN_CHECKER

    def test_disable_and_enable(self):
        registry = default_registry()
        registry.disable("expressions")
        assert "expressions" not in [c.name for c in registry.get_enabled()]
        registry.enable("expressions")
        assert "expressions" in [c.name for c in registry.get_enabled()]


class TestSuppressionManager:
    """Inline and global suppressions."""

    def test_global_suppression(self):
        sm = SuppressionManager()
        sm.add_global_suppression("MissingSemicolon")
        assert sm.is_suppressed(record(3))
        assert not sm.is_suppressed(record(3, category=DefectCategory.UNREACHABLE_CODE))

    def test_inline_same_line(self):
        sm = SuppressionManager()
        sm.load_inline_suppressions(split_lines("x = 1\nreturn 0 // cscrub-suppress MissingSemicolon"))
        assert sm.is_suppressed(record(2))
        assert not sm.is_suppressed(record(1))

    def test_inline_previous_line_wildcard(self):
        sm = SuppressionManager()
        sm.load_inline_suppressions(split_lines("// cscrub-suppress *\nreturn 0"))
        assert sm.is_suppressed(record(2, category=DefectCategory.UNREACHABLE_CODE))

    def test_inline_list(self):
        sm = SuppressionManager()
        sm.load_inline_suppressions(split_lines("x = x // cscrub-suppress SelfAssignment, MissingSemicolon"))
        assert sm.is_suppressed(record(1))
        assert sm.is_suppressed(record(1, category=DefectCategory.SELF_ASSIGNMENT))

    def test_marker_inside_string_ignored(self):
        sm = SuppressionManager()
        sm.load_inline_suppressions(split_lines('printf("cscrub-suppress MissingSemicolon")'))
        assert not sm.is_suppressed(record(1))


class TestCheckerRunner:
    """Pipeline execution."""

    def test_crashing_checker_becomes_internal_error(self):
        registry = CheckerRegistry()
        registry.register(ExplodingChecker)
        registry.register(MissingSemicolonChecker)
        results = CheckerRunner(registry).run(context_for("int main() {\n    return 0\n}"))
        assert tags(results.defects) == ["InternalError", "MissingSemicolon"]
        internal = results.defects[0]
        assert internal.line == 1
        assert internal.severity is Severity.INFO
        assert internal.message == "Checker 'exploding' failed: boom"

    def test_duplicates_dropped_across_run(self):
        registry = CheckerRegistry()
        registry.register(EchoChecker)
        results = CheckerRunner(registry).run(context_for("a\nb"))
        assert len(results.defects) == 1
        assert len(results.by_checker["echo"]) == 1

    def test_unknown_selected_checker(self):
        with pytest.raises(ConfigurationError):
            CheckerRunner().run(context_for("int x;"), checkers=["nope"])

    def test_unknown_disabled_checker(self):
        options = EngineOptions(disabled_checkers=["nope"])
        with pytest.raises(ConfigurationError):
            CheckerRunner().run(context_for("int x;", options))

    def test_selected_checkers_only(self):
        results = CheckerRunner().run(context_for("int x = 5"), checkers=["missing-semicolon"])
        assert results.checker_names == ["missing-semicolon"]
        assert tags(results.defects) == ["MissingSemicolon"]

    def test_disabled_checker_skipped(self):
        options = EngineOptions(disabled_checkers=["missing-semicolon"])
        results = CheckerRunner().run(context_for("int x = 5", options))
        assert "missing-semicolon" not in results.checker_names
        assert "MissingSemicolon" not in tags(results.defects)

    def test_summary(self):
        results = CheckerRunner().run(context_for("int x = 5"))
        assert results.summary().startswith("Checker run complete: ")
        assert "missing-semicolon" in results.summary()

    def test_inline_suppression_through_analyze(self):
        src = "int main() {\n    return 0 // cscrub-suppress MissingSemicolon\n}"
        assert "MissingSemicolon" not in tags(analyze(src).defects)

    def test_global_suppression_through_options(self):
        options = EngineOptions(suppressed_categories={"MissingSemicolon"})
        assert "MissingSemicolon" not in tags(analyze("int x = 5", options).defects)


class TestEngineOptions:
    """Option validation."""

    @pytest.mark.parametrize("changes", [
        {"bounds_window": 0},
        {"while_true_window": -3},
        {"indent_unit": ""},
        {"indent_unit": "ab"},
        {"suppressed_categories": {"NotACategory"}},
    ])
    def test_invalid(self, changes):
        with pytest.raises(ConfigurationError):
            EngineOptions(**changes)

    def test_suppressing_returns_new_options(self):
        base = EngineOptions()
        derived = base.suppressing(["UnusedVariable"])
        assert derived.suppressed_categories == frozenset({"UnusedVariable"})
        assert base.suppressed_categories == frozenset()

    def test_tab_indent_allowed(self):
        assert EngineOptions(indent_unit="\t").indent_unit == "\t"

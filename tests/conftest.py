# tests/conftest.py
"""
Shared sample programs and helpers for the cscrub test-suite.
"""

from typing import Iterable, List, Optional, Type

from cscrub.checkers import Checker, CheckerRegistry, CheckerRunner
from cscrub.config import EngineOptions
from cscrub.context import AnalysisContext
from cscrub.defects import DefectRecord


# ═══════════════════════════════════════════════════════════════════════
#  SAMPLE PROGRAMS
# ═══════════════════════════════════════════════════════════════════════

CLEAN_PROGRAM = """\
#include <stdio.h>

int add(int left, int right) {
    return left + right;
}

int main() {
    int total = add(2, 3);
    printf("%d\\n", total);
    return 0;
}
"""

PRINTF_PROGRAM = "int main(){\nint x;\nprintf(x);\nreturn 0\n}"

UNUSED_FUNCTION_PROGRAM = "int unused(){ return 1; }\nint main(){ return 0; }"

ARRAY_PROGRAM = """\
int main() {
    int a[3];
    a[3] = 1;
    return 0;
}
"""

LOOP_BOUNDS_PROGRAM = """\
int main() {
    int data[5];
    for (int i = 0; i <= 5; i++) {
        data[i] = i;
    }
    return 0;
}
"""

INFINITE_LOOP_PROGRAM = """\
int main() {
    int x = 0;
    while (1) {
        x++;
    }
    return 0;
}
"""

BREAKING_LOOP_PROGRAM = """\
int main() {
    int x = 0;
    while (1) {
        if (x) break;
    }
    return 0;
}
"""

DEAD_IF_PROGRAM = """\
int main() {
    int value = 0;
    if (0) {
        value = 1;
    } else {
        value = 2;
    }
    return value;
}
"""

UNREACHABLE_PROGRAM = """\
int main() {
    int total = 5;
    return total;
    total = 0;
}
"""

UNDEFINED_CALL_PROGRAM = """\
int main() {
    int total = 1;
    launch(total);
    return total;
}
"""

MESSY_PROGRAM = """\
int helper(x) {
    int y
    if (y = 3) {
        printf(y);
    }
}

int main() {
    int arr[3];
    arr[5] = 1;
    while (1) {
        launch();
    }
    return 0;
    arr[0] = 2 / 0;
}}
"""


# ═══════════════════════════════════════════════════════════════════════
#  HELPERS
# ═══════════════════════════════════════════════════════════════════════

def context_for(source: str, options: Optional[EngineOptions] = None) -> AnalysisContext:
    return AnalysisContext.from_source(source, options)


def run_checker(
    checker_cls: Type[Checker],
    source: str,
    options: Optional[EngineOptions] = None,
) -> List[DefectRecord]:
    """Run a single checker over *source* and return its records."""
    registry = CheckerRegistry()
    registry.register(checker_cls)
    ctx = context_for(source, options)
    return list(CheckerRunner(registry).run(ctx).defects)


def tags(records: Iterable[DefectRecord]) -> List[str]:
    return [r.category.value for r in records]


def messages(records: Iterable[DefectRecord]) -> List[str]:
    return [r.message for r in records]

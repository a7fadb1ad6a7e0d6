"""
Test utilities for the loopkernel test suite.

Kernel builders shared by unit and integration tests.
"""

import sys
from pathlib import Path
from typing import Dict, List

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
from loopkernel.ir.nodes import Domain, Instruction, Kernel, KernelItem
from loopkernel.passes.dependency_analysis import DependencyLayer


def loop(iname: str, lower, upper, *, recurrence=None, dependencies=()) -> Domain:
    """Domain stepping by one unless a recurrence is given"""
    return Domain.from_source(iname, lower, upper, recurrence, dependencies=dependencies)


def inst(iname: str, source: str, dependencies=()) -> Instruction:
    return Instruction.from_source(iname, source, dependencies)


def scaled_copy_kernel() -> Kernel:
    """out[i] = inp[i] * c for i in 0..n-1"""
    return Kernel(
        instructions=[inst("scale", "out[i] = inp[i] * c")],
        domains=[loop("i", 0, "n - 1")],
    )


def accumulate_kernel() -> Kernel:
    """total[0] = 0, then total[0] = total[0] + x[i] for i in 0..n-1"""
    return Kernel(
        instructions=[
            inst("init", "total[0] = 0"),
            inst("acc", "total[0] = total[0] + x[i]"),
        ],
        domains=[loop("i", 0, "n - 1")],
    )


def matrix_add_kernel() -> Kernel:
    """out[i, j] = a[i, j] + b[i, j] over an n x m grid"""
    return Kernel(
        instructions=[inst("add", "out[i, j] = a[i, j] + b[i, j]")],
        domains=[loop("i", 0, "n - 1"), loop("j", 0, "m - 1")],
    )


def row_column_kernel() -> Kernel:
    """
    Row setup, a shared inner statement and row teardown; the j loop must
    end up between the two row statements.
    """
    return Kernel(
        instructions=[
            inst("setup", "row[i] = 0"),
            inst("cell", "out[i, j] = a[i, j] * 2"),
            inst("teardown", "col[i] = 1"),
        ],
        domains=[loop("i", 0, "n - 1"), loop("j", 0, "m - 1")],
    )


def names(items: List[KernelItem]) -> List[str]:
    return [item.iname for item in items]


def positions(order: List[KernelItem]) -> Dict[str, int]:
    return {item.iname: k for k, item in enumerate(order)}


def assert_respects_dependencies(order: List[KernelItem], layer: DependencyLayer) -> None:
    """Every dependency is emitted before its dependent"""
    where = positions(order)
    for item in order:
        for dep in layer.dependencies_of(item):
            assert where[dep] < where[item.iname], f"{dep} must precede {item.iname}"

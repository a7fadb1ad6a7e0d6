"""
Tests for the expression tree helpers and the kernel description.
"""

import pytest

from loopkernel.ir.nodes import (
    Assign, Call, Domain, Generic, Identifier, Instruction, Kernel, Literal,
    assignment_target, occurs,
)
from loopkernel.ir.parse import parse_expression
from loopkernel.shared.errors import KernelDefinitionError, MalformedInstructionError
from tests.test_utils import inst, loop


class TestExpressions:

    def test_expressions_are_immutable_and_hashable(self):
        expr = parse_expression("a[i] + 1")
        with pytest.raises(AttributeError):
            expr.callee = "-"
        assert expr == parse_expression("a[i]+1")
        assert len({expr, parse_expression("a[i] + 1")}) == 1

    def test_occurs_sees_identifiers_and_callees(self):
        expr = parse_expression("y = f(a[k])")
        assert occurs(expr, "k")
        assert occurs(expr, "f")
        assert occurs(expr, "y")
        assert not occurs(expr, "z")
        assert occurs(Identifier("k"), "k")
        assert not occurs(Literal(3), "k")

    def test_assignment_target_descends_indexing(self):
        assert assignment_target(parse_expression("out[i, j] = 1")) == Identifier("out")
        assert assignment_target(parse_expression("a[i][j] += 2")) == Identifier("a")
        assert assignment_target(parse_expression("s = s + y")) == Identifier("s")

    def test_assignment_target_rejects_non_identifier(self):
        with pytest.raises(MalformedInstructionError):
            assignment_target(Assign(Call("f", (Identifier("x"),)), Literal(1)))
        with pytest.raises(MalformedInstructionError):
            assignment_target(Literal(3))
        with pytest.raises(MalformedInstructionError):
            assignment_target(Generic("ref", ()))


class TestKernelDescription:

    def test_domain_defaults_to_unit_step(self):
        domain = loop("i", 0, "n - 1")
        assert domain.recurrence == Generic("+=", (Identifier("i"), Literal(1)))
        assert domain.lowerbound == Literal(0)
        assert domain.upperbound == Call("-", (Identifier("n"), Literal(1)))

    def test_domain_accepts_expression_text(self):
        domain = Domain("k", "1", "n", "k += 2")
        assert domain.recurrence == Generic("+=", (Identifier("k"), Literal(2)))

    def test_duplicate_inames_rejected(self):
        with pytest.raises(KernelDefinitionError):
            Kernel(instructions=[inst("i", "x = 1")], domains=[loop("i", 0, 3)])

    def test_item_lookup(self):
        kernel = Kernel(instructions=[inst("a", "x = 1")], domains=[loop("i", 0, 3)])
        assert kernel.item("i") is kernel.domains[0]
        assert kernel.item("a") is kernel.instructions[0]
        with pytest.raises(KeyError):
            kernel.item("missing")

    def test_instruction_dependencies_are_copied(self):
        deps = ["a"]
        instruction = Instruction("b", parse_expression("y = 1"), deps)
        instruction.dependencies.append("c")
        assert deps == ["a"]

"""
Tests for lowering a schedule to the statement tree.
"""

from loopkernel.ir.nodes import Assign, Call, Generic, Identifier, Literal
from loopkernel.ir.parse import parse_expression
from loopkernel.passes.lowering import construct
from tests.test_utils import inst, loop


class TestConstruct:

    def test_instruction_lowers_to_its_body(self):
        instruction = inst("a", "x = y + 1")
        assert construct(instruction) is instruction.body

    def test_domain_lowers_to_initialised_while_loop(self):
        domain = loop("i", 0, "n - 1")
        body = inst("scale", "out[i] = inp[i] * c")
        domain.instructions.append(body)
        i = Identifier("i")
        assert construct(domain) == Generic("block", (
            Assign(i, Literal(0)),
            Generic("while", (
                Call("<=", (i, parse_expression("n - 1"))),
                Generic("block", (body.body, Generic("+=", (i, Literal(1))))),
            )),
        ))

    def test_sequence_lowers_to_block(self):
        first, second = inst("a", "x = 1"), inst("b", "y = 2")
        assert construct([first, second]) == Generic("block", (first.body, second.body))
        assert construct([]) == Generic("block", ())

    def test_nested_domains(self):
        outer, inner = loop("i", 0, 1), loop("j", 0, 1)
        inner.instructions.append(inst("cell", "out[i, j] = 1"))
        outer.instructions.append(inner)
        lowered = construct(outer)
        loop_body = lowered.args[1].args[1]
        assert loop_body.args[0] == construct(inner)
        assert loop_body.args[-1] == outer.recurrence

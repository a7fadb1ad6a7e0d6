"""
Tests for Python source generation and the Python execution engine.
"""

import numpy as np
import pytest

from loopkernel.backends.python import PythonBackend, PythonSourceGenerator, default_intrinsics
from loopkernel.ir.nodes import Generic, Identifier, Literal
from loopkernel.ir.parse import parse_expression
from loopkernel.passes.lowering import construct
from loopkernel.shared.errors import CodegenError, KernelInvocationError
from tests.test_utils import inst, loop


class TestSourceGeneration:

    def test_single_assignment_returns_target(self):
        source = PythonSourceGenerator().function("k", ["c", "x"], parse_expression("y = x * c"))
        assert source == "def k(*, c, x):\n    y = (x * c)\n    return y\n"

    def test_no_parameters(self):
        source = PythonSourceGenerator().function("k", [], parse_expression("1 + 2"))
        assert source == "def k():\n    return (1 + 2)\n"

    def test_loop_renders_as_while(self):
        domain = loop("i", 0, "n - 1")
        domain.instructions.append(inst("scale", "out[i] = inp[i] * c"))
        source = PythonSourceGenerator().function("k", ["c", "inp", "n", "out"], construct([domain]))
        assert source.splitlines() == [
            "def k(*, c, inp, n, out):",
            "    i = 0",
            "    while (i <= (n - 1)):",
            "        out[i] = (inp[i] * c)",
            "        i += 1",
            "    return None",
        ]

    def test_power_and_negation(self):
        source = PythonSourceGenerator().function("k", ["x"], parse_expression("-x ^ 2"))
        assert "return (-(x ** 2))" in source

    def test_empty_block(self):
        source = PythonSourceGenerator().function("k", [], Generic("block", (Generic("block", ()),)))
        assert source == "def k():\n    pass\n    return None\n"

    def test_invalid_names(self):
        generator = PythonSourceGenerator()
        with pytest.raises(CodegenError):
            generator.function("k", ["lambda"], Identifier("lambda"))
        with pytest.raises(CodegenError):
            generator.function("not a name", [], Literal(1))

    def test_unknown_statement_form(self):
        with pytest.raises(CodegenError) as exc_info:
            PythonSourceGenerator().function("k", [], Generic("block", (Generic("goto", ()), Literal(1))))
        assert exc_info.value.error_code == "E0500"

    def test_assignment_is_not_a_value(self):
        index = Generic("ref", (Identifier("a"), parse_expression("x = 1")))
        with pytest.raises(CodegenError):
            PythonSourceGenerator().function("k", ["a", "x"], index)


class TestPythonBackend:

    def test_register_and_invoke(self, backend):
        handle = backend.register("double", ["x"], parse_expression("y = x * 2"))
        assert "double" in backend
        assert handle.parameters == ("x",)
        assert handle(x=21) == 42
        assert backend.invoke("double", {"x": 1.5}) == 3.0

    def test_intrinsics_use_numpy(self, backend):
        handle = backend.register("root", ["x"], parse_expression("sqrt(x) + max(x, 0)"))
        result = handle(x=np.array([4.0, 9.0]))
        np.testing.assert_allclose(result, [6.0, 12.0])
        assert set(default_intrinsics()) >= {"sqrt", "exp", "min", "max"}

    def test_user_functions_shadow_intrinsics(self):
        backend = PythonBackend(functions={"g": lambda v: v + 100, "sqrt": lambda v: -1})
        handle = backend.register("k", ["y"], parse_expression("g(y) + sqrt(y)"))
        assert handle(y=1) == 100

    def test_arrays_updated_in_place(self, backend):
        handle = backend.register("store", ["a", "v"], parse_expression("a[1] = v"))
        a = np.zeros(3)
        handle(a=a, v=7.0)
        assert a.tolist() == [0.0, 7.0, 0.0]

    def test_wrong_inputs(self, backend):
        handle = backend.register("k", ["a", "b"], parse_expression("a + b"))
        with pytest.raises(KernelInvocationError, match="missing \\['b'\\]"):
            handle(a=1)
        with pytest.raises(KernelInvocationError, match="unexpected \\['c'\\]"):
            handle(a=1, b=2, c=3)

    def test_unknown_kernel(self, backend):
        with pytest.raises(KernelInvocationError):
            backend.invoke("missing", {})

    def test_duplicate_name(self, backend):
        backend.register("k", [], Literal(1))
        with pytest.raises(CodegenError):
            backend.register("k", [], Literal(2))

    def test_handle_keeps_source(self, backend):
        handle = backend.register("k", [], Literal(1))
        assert handle.source == "def k():\n    return 1\n"
        assert backend.registry["k"]() == 1


class TestLiteralRendering:

    def test_numpy_scalars_render_as_python_numbers(self):
        generator = PythonSourceGenerator()
        assert generator.expressions.visit_literal(Literal(np.int64(3))) == "3"
        assert generator.expressions.visit_literal(Literal(np.float32(0.5))) == "0.5"
        assert generator.expressions.visit_literal(Literal(np.bool_(True))) == "True"

    def test_unrenderable_literal(self):
        with pytest.raises(CodegenError):
            PythonSourceGenerator().expressions.visit_literal(Literal(object()))

"""
Python Backend

Renders lowered Expression Trees as Python source, compiles the source and
keeps the resulting functions in a name -> callable table. Generated code
runs against numpy: intrinsics such as `sqrt` map to numpy ufuncs and
array arguments are indexed and updated in place.
"""

import builtins
import keyword
import logging
import numbers
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import numpy as np

from .base import ExecutionEngine, KernelHandle
from ..ir.nodes import (
    Assign, Call, COMPOUND_ASSIGNMENT_TAGS, Expression, ExpressionVisitor, Generic, Identifier, Literal,
)
from ..shared.errors import CodegenError
from ..utils.config import BLOCK_TAG, DEFAULT_INTRINSICS, REF_TAG, WHILE_TAG

logger = logging.getLogger("loopkernel.backends.python")

INDENT = "    "

BINARY_OPERATORS = {
    "+": "+", "-": "-", "*": "*", "/": "/", "%": "%", "^": "**",
    "<": "<", "<=": "<=", ">": ">", ">=": ">=", "==": "==", "!=": "!=",
}
UNARY_OPERATORS = {"-": "-", "+": "+"}

_NUMPY_INTRINSICS: Dict[str, Callable] = {
    "sqrt": np.sqrt, "exp": np.exp, "log": np.log,
    "sin": np.sin, "cos": np.cos, "tan": np.tan,
    "abs": np.abs, "floor": np.floor, "ceil": np.ceil,
    "min": np.minimum, "max": np.maximum,
}


def default_intrinsics() -> Dict[str, Callable]:
    return {name: _NUMPY_INTRINSICS[name] for name in DEFAULT_INTRINSICS}


def _check_name(name: str) -> str:
    if not name.isidentifier() or keyword.iskeyword(name):
        raise CodegenError(f"`{name}` is not a valid Python identifier")
    return name


class PythonExpressionRenderer(ExpressionVisitor[str]):
    """Expression -> Python expression text"""

    def visit_identifier(self, node: Identifier) -> str:
        return _check_name(node.name)

    def visit_literal(self, node: Literal) -> str:
        if isinstance(node.value, np.generic):
            return repr(node.value.item())
        if isinstance(node.value, (numbers.Number, str)):
            return repr(node.value)
        raise CodegenError(f"cannot render literal of type {type(node.value).__name__}")

    def visit_call(self, node: Call) -> str:
        args = [a.accept(self) for a in node.args]
        if len(args) == 2 and node.callee in BINARY_OPERATORS:
            return f"({args[0]} {BINARY_OPERATORS[node.callee]} {args[1]})"
        if len(args) == 1 and node.callee in UNARY_OPERATORS:
            return f"({UNARY_OPERATORS[node.callee]}{args[0]})"
        return f"{_check_name(node.callee)}({', '.join(args)})"

    def visit_assign(self, node: Assign) -> str:
        raise CodegenError(f"assignment `{node}` cannot be used as a value")

    def visit_generic(self, node: Generic) -> str:
        if node.tag == REF_TAG and node.args:
            base, *indices = [a.accept(self) for a in node.args]
            return f"{base}[{', '.join(indices)}]"
        raise CodegenError(f"`{node.tag}` form cannot be used as a value")


class PythonSourceGenerator:
    """Lowered tree -> Python function source"""

    def __init__(self):
        self.expressions = PythonExpressionRenderer()

    def function(self, name: str, parameters: Sequence[str], body: Expression) -> str:
        name = _check_name(name)
        params = ", ".join(_check_name(p) for p in parameters)
        signature = f"def {name}(*, {params}):" if params else f"def {name}():"
        statements = self._flatten(body)
        lines = [signature]
        for stmt in statements[:-1]:
            lines.extend(self.statement(stmt, 1))
        if statements:
            lines.extend(self._final_statement(statements[-1], 1))
        else:
            lines.append(INDENT + "return None")
        return "\n".join(lines) + "\n"

    def statement(self, node: Expression, depth: int) -> List[str]:
        pad = INDENT * depth
        if isinstance(node, Assign):
            return [f"{pad}{self._target(node.target)} = {node.value.accept(self.expressions)}"]
        if isinstance(node, Generic):
            if node.tag == BLOCK_TAG:
                lines: List[str] = []
                for stmt in node.args:
                    lines.extend(self.statement(stmt, depth))
                return lines or [f"{pad}pass"]
            if node.tag == WHILE_TAG:
                if len(node.args) != 2:
                    raise CodegenError(f"`while` expects a condition and a body, got {len(node.args)} parts")
                condition, loop_body = node.args
                return [f"{pad}while {condition.accept(self.expressions)}:",
                        *self.statement(loop_body, depth + 1)]
            if node.tag in COMPOUND_ASSIGNMENT_TAGS:
                if len(node.args) != 2:
                    raise CodegenError(f"`{node.tag}` expects a target and a value")
                target, value = node.args
                return [f"{pad}{self._target(target)} {node.tag} {value.accept(self.expressions)}"]
            if node.tag != REF_TAG:
                raise CodegenError(f"unknown statement form `{node.tag}`")
        return [f"{pad}{node.accept(self.expressions)}"]

    def _final_statement(self, node: Expression, depth: int) -> List[str]:
        """Last top-level statement: its value is the kernel's return value"""
        pad = INDENT * depth
        if isinstance(node, Assign):
            return self.statement(node, depth) + [f"{pad}return {self._target(node.target)}"]
        if isinstance(node, Generic) and node.tag in COMPOUND_ASSIGNMENT_TAGS:
            return self.statement(node, depth) + [f"{pad}return {self._target(node.args[0])}"]
        if isinstance(node, Generic) and node.tag in (BLOCK_TAG, WHILE_TAG):
            return self.statement(node, depth) + [f"{pad}return None"]
        return [f"{pad}return {node.accept(self.expressions)}"]

    def _target(self, target: Expression) -> str:
        if isinstance(target, Identifier) or (isinstance(target, Generic) and target.tag == REF_TAG):
            return target.accept(self.expressions)
        raise CodegenError(f"cannot assign to `{target}`")

    def _flatten(self, body: Expression) -> List[Expression]:
        if isinstance(body, Generic) and body.tag == BLOCK_TAG:
            return list(body.args)
        return [body]


class PythonBackend(ExecutionEngine):
    """
    Execution engine that compiles generated Python source.

    Args:
        functions: extra callables visible to generated code (e.g. for
            kernels that call `g(y)`); they shadow the numpy intrinsics.
    """

    def __init__(self, functions: Optional[Mapping[str, Callable]] = None):
        super().__init__()
        self.namespace: Dict[str, Any] = {"__builtins__": builtins, "np": np}
        self.namespace.update(default_intrinsics())
        if functions:
            self.namespace.update(functions)
        self.registry: Dict[str, Callable] = {}
        self.generator = PythonSourceGenerator()

    def codegen(self, name: str, parameters: Sequence[str], body: Expression) -> str:
        return self.generator.function(name, parameters, body)

    def register(self, name: str, parameters: Sequence[str], body: Expression) -> KernelHandle:
        if name in self.handles:
            raise CodegenError(f"a kernel named `{name}` is already registered")
        source = self.codegen(name, parameters, body)
        logger.debug(f"Generated source for {name}:\n{source}")
        scope: Dict[str, Any] = {}
        exec(compile(source, f"<{name}>", "exec"), self.namespace, scope)
        self.registry[name] = scope[name]
        handle = KernelHandle(name, parameters, source, self)
        self.handles[name] = handle
        return handle

    def _call(self, name: str, inputs: Mapping[str, Any]) -> Any:
        return self.registry[name](**inputs)

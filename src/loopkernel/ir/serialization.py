"""
IR Serialization to S-Expressions
====================================

Converts Expression Trees (and schedules built from them) to canonical
S-expression text for testing and debugging, and reads expression text
back.

Forms::

    x                     Identifier
    3  2.5  "s"           Literal (numbers, strings)
    (literal true)        Literal bool
    (call + a b)          Call
    (= target value)      Assign
    (ref a i)  (+= s y)   Generic (tag first)
    (generic call ...)    Generic whose tag collides with a reserved head

Uses structured sexpr (nested lists + sexpdata.Symbol), then pretty-prints
for readable output.
"""

from typing import Any, List, Sequence, Union

import sexpdata

from .nodes import Assign, Call, Domain, Expression, Generic, Identifier, Instruction, Literal
from ..shared.errors import LoopKernelError

_RESERVED_HEADS = frozenset({"call", "=", "literal", "generic", "nil"})


def _sym(s: str) -> sexpdata.Symbol:
    return sexpdata.Symbol(s)


def _sym_val(x: Any) -> Any:
    return x.value() if isinstance(x, sexpdata.Symbol) else x


def _pretty_dumps(sexpr: Any, indent: int = 0, indent_str: str = "  ", max_line: int = 100) -> str:
    """
    Pretty-print structured sexpr. Keeps short forms on one line; breaks only when needed.
    """
    if isinstance(sexpr, bool):
        return "true" if sexpr else "false"
    if isinstance(sexpr, (int, float)):
        return repr(sexpr)
    # Check Symbol before str (sexpdata.Symbol subclasses str)
    if isinstance(sexpr, sexpdata.Symbol):
        return sexpr.value()
    if isinstance(sexpr, str):
        escaped = sexpr.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    if isinstance(sexpr, list):
        if not sexpr:
            return "()"
        parts = [_pretty_dumps(e, indent + 1, indent_str, max_line) for e in sexpr]
        one_line = "(" + " ".join(parts) + ")"
        if len(one_line) <= max_line and "\n" not in one_line:
            return one_line
        prefix = indent_str * indent
        next_prefix = indent_str * (indent + 1)
        rest = "\n".join(next_prefix + p for p in parts[1:])
        inner = parts[0] + ("\n" + rest if rest else "")
        return f"({inner}\n{prefix})"
    return str(sexpr)


class ExpressionSerializer:
    """Expression / schedule -> structured sexpr (lists and Symbols)"""

    def serialize_to_sexpr(self, node: Any) -> Any:
        method = getattr(self, f"_serialize_{type(node).__name__}", None)
        if method is None:
            raise LoopKernelError(f"cannot serialize {type(node).__name__}")
        return method(node)

    def _serialize_Identifier(self, node: Identifier) -> Any:
        return _sym(node.name)

    def _serialize_Literal(self, node: Literal) -> Any:
        if isinstance(node.value, bool):
            return [_sym("literal"), _sym("true" if node.value else "false")]
        return node.value

    def _serialize_Call(self, node: Call) -> list:
        return [_sym("call"), _sym(node.callee)] + [self.serialize_to_sexpr(a) for a in node.args]

    def _serialize_Assign(self, node: Assign) -> list:
        return [_sym("="), self.serialize_to_sexpr(node.target), self.serialize_to_sexpr(node.value)]

    def _serialize_Generic(self, node: Generic) -> list:
        head = [_sym("generic"), _sym(node.tag)] if node.tag in _RESERVED_HEADS else [_sym(node.tag)]
        return head + [self.serialize_to_sexpr(a) for a in node.args]

    def _serialize_Instruction(self, node: Instruction) -> list:
        out = [_sym("instruction"), node.iname]
        if node.dependencies:
            out.extend([_sym(":deps"), list(node.dependencies)])
        out.append(self.serialize_to_sexpr(node.body))
        return out

    def _serialize_Domain(self, node: Domain) -> list:
        out = [_sym("domain"), node.iname,
               self.serialize_to_sexpr(node.lowerbound),
               self.serialize_to_sexpr(node.upperbound),
               self.serialize_to_sexpr(node.recurrence)]
        if node.dependencies:
            out.extend([_sym(":deps"), list(node.dependencies)])
        out.append([self.serialize_to_sexpr(item) for item in node.instructions])
        return out


class ExpressionDeserializer:
    """Structured sexpr -> Expression"""

    def deserialize(self, sexpr: Any) -> Expression:
        if isinstance(sexpr, sexpdata.Symbol):
            return Identifier(sexpr.value())
        if isinstance(sexpr, bool):
            return Literal(sexpr)
        if isinstance(sexpr, (int, float, str)):
            return Literal(sexpr)
        if isinstance(sexpr, list) and sexpr:
            head = _sym_val(sexpr[0])
            tail = sexpr[1:]
            if head == "literal" and len(tail) == 1:
                return Literal(_sym_val(tail[0]) == "true")
            if head == "call" and tail:
                return Call(_sym_val(tail[0]), tuple(self.deserialize(a) for a in tail[1:]))
            if head == "=" and len(tail) == 2:
                return Assign(self.deserialize(tail[0]), self.deserialize(tail[1]))
            if head == "generic" and tail:
                return Generic(_sym_val(tail[0]), tuple(self.deserialize(a) for a in tail[1:]))
            if isinstance(sexpr[0], sexpdata.Symbol) and head not in _RESERVED_HEADS:
                return Generic(head, tuple(self.deserialize(a) for a in tail))
        raise LoopKernelError(f"malformed expression s-expression: {sexpr!r}")


def serialize_expression(node: Union[Expression, Instruction, Domain], pretty: bool = True) -> str:
    """
    Serialize an expression (or an Instruction/Domain) to S-expression text.

    Args:
        node: node to serialize
        pretty: Use pretty-printed format (default True). Set False for a single line.
    """
    sexpr = ExpressionSerializer().serialize_to_sexpr(node)
    if pretty:
        return _pretty_dumps(sexpr)
    return _pretty_dumps(sexpr, max_line=10 ** 9)


def serialize_schedule(schedule: Sequence[Union[Instruction, Domain]]) -> str:
    """Serialize a Schedule as `(schedule item...)`"""
    serializer = ExpressionSerializer()
    items: List[Any] = [serializer.serialize_to_sexpr(item) for item in schedule]
    return _pretty_dumps([_sym("schedule")] + items)


def deserialize_expression(text: str) -> Expression:
    """Read S-expression text produced by `serialize_expression` back into an Expression"""
    # `t`/`nil` are ordinary names here, not booleans
    parsed = sexpdata.loads(text, nil=None, true=None, false=None)
    return ExpressionDeserializer().deserialize(parsed)

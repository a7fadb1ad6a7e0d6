"""
Expression Parser

Turns expression text (`out[i] = inp[i] * c`, `i += 2`, `n - 1`) into an
Expression Tree. Only single expressions are parsed; kernels are assembled
by the caller from Instruction/Domain/Kernel constructors.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from lark import Lark, Transformer, v_args
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, UnexpectedToken

from .nodes import Assign, Call, Expression, Generic, Identifier, Literal
from ..shared.errors import ExpressionParseError
from ..shared.source_location import SourceLocation
from ..utils.config import DEFAULT_PARSER_CACHE_FILE, EXPRESSION_GRAMMAR_FILE, EXPRESSION_SOURCE_NAME

logger = logging.getLogger("loopkernel.ir.parse")


@v_args(inline=True)
class ExpressionTransformer(Transformer):
    """Lark tree -> Expression Tree"""

    def identifier(self, token):
        return Identifier(str(token))

    def number(self, token):
        text = str(token)
        if any(ch in text for ch in ".eE"):
            return Literal(float(text))
        return Literal(int(text))

    def true(self):
        return Literal(True)

    def false(self):
        return Literal(False)

    def arglist(self, *items):
        return list(items)

    def ref(self, base, indices):
        return Generic("ref", (base, *indices))

    def call(self, name, args=None):
        return Call(str(name), tuple(args or ()))

    def neg(self, operand):
        return Call("-", (operand,))

    def assign(self, target, value):
        return Assign(target, value)

    def add_assign(self, target, value):
        return Generic("+=", (target, value))

    def sub_assign(self, target, value):
        return Generic("-=", (target, value))

    def mul_assign(self, target, value):
        return Generic("*=", (target, value))

    def div_assign(self, target, value):
        return Generic("/=", (target, value))

    # Binary operators become calls to the operator name
    def add(self, left, right):
        return Call("+", (left, right))

    def sub(self, left, right):
        return Call("-", (left, right))

    def mul(self, left, right):
        return Call("*", (left, right))

    def div(self, left, right):
        return Call("/", (left, right))

    def mod(self, left, right):
        return Call("%", (left, right))

    def pow(self, left, right):
        return Call("^", (left, right))

    def lt(self, left, right):
        return Call("<", (left, right))

    def le(self, left, right):
        return Call("<=", (left, right))

    def gt(self, left, right):
        return Call(">", (left, right))

    def ge(self, left, right):
        return Call(">=", (left, right))

    def eq(self, left, right):
        return Call("==", (left, right))

    def ne(self, left, right):
        return Call("!=", (left, right))


class ExpressionParser:
    """
    Parser for expression literals.

    Uses a LALR Lark parser with native caching; the grammar ships next to
    this module.
    """

    def __init__(self, cache_file: Optional[str] = DEFAULT_PARSER_CACHE_FILE):
        grammar_path = Path(__file__).parent / EXPRESSION_GRAMMAR_FILE
        self.parser = Lark.open(
            str(grammar_path),
            start='start',
            parser='lalr',
            cache=cache_file if cache_file else False,
            propagate_positions=True,
            maybe_placeholders=False,
        )
        self.transformer = ExpressionTransformer()

    def parse(self, source: str, source_name: str = EXPRESSION_SOURCE_NAME) -> Expression:
        try:
            tree = self.parser.parse(source)
        except UnexpectedInput as e:
            raise _parse_error(e, source, source_name) from e
        return self.transformer.transform(tree)


def _parse_error(error: UnexpectedInput, source: str, source_name: str) -> ExpressionParseError:
    lines = source.split("\n")
    line = getattr(error, "line", -1)
    column = getattr(error, "column", -1)
    if line is None or line < 1:
        # EOF: point just past the last character
        line = len(lines)
        column = len(lines[-1]) + 1
    location = SourceLocation(file=source_name, line=line, column=column)

    if isinstance(error, UnexpectedEOF):
        message, label = "unexpected end of expression", "expression is incomplete"
    elif isinstance(error, UnexpectedToken):
        message = f"unexpected token `{error.token}`"
        label = _expected_label(sorted(error.expected))
    elif isinstance(error, UnexpectedCharacters):
        message = f"unexpected character `{error.char}`"
        label = None
    else:
        message, label = "invalid expression", None
    logger.debug(f"Parse failure in {source_name}: {message} at {location}")
    return ExpressionParseError(message, source, location, label=label)


def _expected_label(expected: List[str]) -> Optional[str]:
    if not expected:
        return None
    shown = ", ".join(expected[:5])
    more = "" if len(expected) <= 5 else ", ..."
    return f"expected one of {shown}{more}"


@lru_cache(maxsize=1)
def _default_parser() -> ExpressionParser:
    return ExpressionParser()


def parse_expression(source: str, source_name: str = EXPRESSION_SOURCE_NAME) -> Expression:
    """Parse one expression or statement into an Expression Tree"""
    return _default_parser().parse(source, source_name)

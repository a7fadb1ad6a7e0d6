"""
Tests for the expression-literal parser.
"""

import pytest

from loopkernel.ir.nodes import Assign, Call, Generic, Identifier, Literal
from loopkernel.ir.parse import parse_expression
from loopkernel.shared.errors import ExpressionParseError


def ident(name):
    return Identifier(name)


class TestParseExpression:

    def test_indexed_assignment(self):
        expr = parse_expression("out[i] = inp[i] * c")
        assert expr == Assign(
            Generic("ref", (ident("out"), ident("i"))),
            Call("*", (Generic("ref", (ident("inp"), ident("i"))), ident("c"))),
        )

    def test_operator_precedence(self):
        assert parse_expression("a + b * c") == Call("+", (ident("a"), Call("*", (ident("b"), ident("c")))))
        assert parse_expression("(a + b) * c") == Call("*", (Call("+", (ident("a"), ident("b"))), ident("c")))

    def test_unary_minus_binds_looser_than_power(self):
        assert parse_expression("-x^2") == Call("-", (Call("^", (ident("x"), Literal(2))),))

    def test_compound_assignment(self):
        assert parse_expression("i += 1") == Generic("+=", (ident("i"), Literal(1)))
        assert parse_expression("s *= 2") == Generic("*=", (ident("s"), Literal(2)))

    def test_calls(self):
        assert parse_expression("f(x, 2.5)") == Call("f", (ident("x"), Literal(2.5)))
        assert parse_expression("g()") == Call("g", ())

    def test_multi_index_and_chained_index(self):
        assert parse_expression("a[i, j]") == Generic("ref", (ident("a"), ident("i"), ident("j")))
        assert parse_expression("a[i][j]") == Generic("ref", (Generic("ref", (ident("a"), ident("i"))), ident("j")))

    def test_comparison(self):
        assert parse_expression("i <= n - 1") == Call("<=", (ident("i"), Call("-", (ident("n"), Literal(1)))))

    def test_booleans_are_literals(self):
        assert parse_expression("flag = true") == Assign(ident("flag"), Literal(True))
        assert parse_expression("false") == Literal(False)

    def test_names_starting_with_keywords(self):
        assert parse_expression("trueval") == ident("trueval")


class TestParseErrors:

    def test_unexpected_token_location(self):
        with pytest.raises(ExpressionParseError) as exc_info:
            parse_expression("out[i] = = c")
        err = exc_info.value
        assert err.location.line == 1
        assert err.location.column == 10
        text = str(err)
        assert "error[E0400]" in text
        assert "1 | out[i] = = c" in text
        assert "^" in text

    def test_incomplete_expression(self):
        with pytest.raises(ExpressionParseError):
            parse_expression("a +")

    def test_unknown_character(self):
        with pytest.raises(ExpressionParseError) as exc_info:
            parse_expression("x $ y")
        assert exc_info.value.location.column == 3

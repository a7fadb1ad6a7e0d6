"""
IR Nodes

Expression Tree used for loop bounds, recurrences and instruction bodies,
and the kernel description built on top of it (Instruction, Domain, Kernel).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Generic as TypingGeneric, Iterable, List, Optional, Sequence, Tuple, TypeVar, Union

from ..shared.errors import KernelDefinitionError, MalformedInstructionError

T = TypeVar('T')


class Expression:
    """
    Base class for all expression nodes.

    Design: variants are frozen dataclasses; dispatch goes through
    `accept(visitor)` so passes never need isinstance chains.
    """
    __slots__ = ()

    def accept(self, visitor: 'ExpressionVisitor[T]') -> T:
        raise NotImplementedError(f"accept() not implemented for {self.__class__.__name__}")

    def children(self) -> Tuple['Expression', ...]:
        """Direct sub-expressions, in order"""
        return ()


@dataclass(frozen=True)
class Identifier(Expression):
    """Bare name (variable, array, loop iname)"""
    name: str

    def accept(self, visitor: 'ExpressionVisitor[T]') -> T:
        return visitor.visit_identifier(self)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Literal(Expression):
    """Constant value (int, float, bool)"""
    value: Any

    def accept(self, visitor: 'ExpressionVisitor[T]') -> T:
        return visitor.visit_literal(self)

    def __str__(self) -> str:
        return repr(self.value)


@dataclass(frozen=True)
class Call(Expression):
    """
    Function call. Operators are calls too: `a + b` is Call("+", (a, b)).
    The callee is a plain name, never an expression.
    """
    callee: str
    args: Tuple[Expression, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'args', tuple(self.args))

    def accept(self, visitor: 'ExpressionVisitor[T]') -> T:
        return visitor.visit_call(self)

    def children(self) -> Tuple[Expression, ...]:
        return self.args

    def __str__(self) -> str:
        return f"{self.callee}({', '.join(str(a) for a in self.args)})"


@dataclass(frozen=True)
class Assign(Expression):
    """Plain assignment `target = value`"""
    target: Expression
    value: Expression

    def accept(self, visitor: 'ExpressionVisitor[T]') -> T:
        return visitor.visit_assign(self)

    def children(self) -> Tuple[Expression, ...]:
        return (self.target, self.value)

    def __str__(self) -> str:
        return f"{self.target} = {self.value}"


@dataclass(frozen=True)
class Generic(Expression):
    """
    Any other compound form, identified by its tag.

    Tags produced by this package: "ref" (indexing, array first), "+=", "-=",
    "*=", "/=" (compound assignment, target first), "block" and "while"
    (lowered control flow).
    """
    tag: str
    args: Tuple[Expression, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'args', tuple(self.args))

    def accept(self, visitor: 'ExpressionVisitor[T]') -> T:
        return visitor.visit_generic(self)

    def children(self) -> Tuple[Expression, ...]:
        return self.args

    def __str__(self) -> str:
        return f"({self.tag} {' '.join(str(a) for a in self.args)})"


class ExpressionVisitor(ABC, TypingGeneric[T]):
    """Visitor over the five expression variants"""

    @abstractmethod
    def visit_identifier(self, node: Identifier) -> T:
        raise NotImplementedError

    @abstractmethod
    def visit_literal(self, node: Literal) -> T:
        raise NotImplementedError

    @abstractmethod
    def visit_call(self, node: Call) -> T:
        raise NotImplementedError

    @abstractmethod
    def visit_assign(self, node: Assign) -> T:
        raise NotImplementedError

    @abstractmethod
    def visit_generic(self, node: Generic) -> T:
        raise NotImplementedError


COMPOUND_ASSIGNMENT_TAGS = frozenset({"+=", "-=", "*=", "/="})


def occurs(expr: Expression, name: str) -> bool:
    """True if `name` appears anywhere in `expr`, as an identifier or a callee"""
    if isinstance(expr, Identifier):
        return expr.name == name
    if isinstance(expr, Call) and expr.callee == name:
        return True
    return any(occurs(child, name) for child in expr.children())


def assignment_target(body: Expression, iname: Optional[str] = None) -> Identifier:
    """
    Reduce the written location of `body` to a bare identifier.

    Descends through `Assign.target` and the first argument of compound
    forms (`out[i] = ...` -> `out`, `s += ...` -> `s`).
    """
    lhs = body.target if isinstance(body, Assign) else _first_arg(body, iname)
    while not isinstance(lhs, Identifier):
        if isinstance(lhs, Assign):
            lhs = lhs.target
        else:
            lhs = _first_arg(lhs, iname)
    return lhs


def _first_arg(expr: Expression, iname: Optional[str]) -> Expression:
    if isinstance(expr, Generic) and expr.args:
        return expr.args[0]
    raise MalformedInstructionError(
        f"cannot reduce left-hand side `{expr}` to a plain identifier",
        iname=iname,
    )


def as_expression(value: Union[Expression, str, int, float, bool]) -> Expression:
    """Coerce a number to a Literal and source text to a parsed expression"""
    if isinstance(value, Expression):
        return value
    if isinstance(value, str):
        from .parse import parse_expression
        return parse_expression(value)
    return Literal(value)


# ============================================================================
# Kernel description
# ============================================================================

@dataclass(eq=False)
class Instruction:
    """
    One computational statement.

    `dependencies` holds inames that must run first. It is a list so that
    repeated in-place analysis leaves duplicated edges visible.
    """
    iname: str
    body: Expression
    dependencies: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.dependencies = list(self.dependencies)

    @classmethod
    def from_source(cls, iname: str, source: str, dependencies: Iterable[str] = ()) -> 'Instruction':
        from .parse import parse_expression
        return cls(iname, parse_expression(source), list(dependencies))

    def __repr__(self) -> str:
        return f"Instruction({self.iname!r}, {self.body})"


@dataclass(eq=False)
class Domain:
    """
    A loop: `iname` runs from `lowerbound` while <= `upperbound`, updated by
    `recurrence` after each iteration.
    """
    iname: str
    lowerbound: Expression
    upperbound: Expression
    recurrence: Expression
    instructions: List[Union[Instruction, 'Domain']] = field(default_factory=list)
    dependencies: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.lowerbound = as_expression(self.lowerbound)
        self.upperbound = as_expression(self.upperbound)
        self.recurrence = as_expression(self.recurrence)
        self.instructions = list(self.instructions)
        self.dependencies = list(self.dependencies)

    @classmethod
    def from_source(cls, iname: str, lowerbound: Any, upperbound: Any,
                    recurrence: Optional[Any] = None,
                    instructions: Sequence[Union[Instruction, 'Domain']] = (),
                    dependencies: Iterable[str] = ()) -> 'Domain':
        """Build a domain from bound text; the recurrence defaults to `iname += 1`"""
        if recurrence is None:
            recurrence = Generic("+=", (Identifier(iname), Literal(1)))
        return cls(iname, as_expression(lowerbound), as_expression(upperbound),
                   as_expression(recurrence), list(instructions), list(dependencies))

    def __repr__(self) -> str:
        members = ", ".join(item.iname for item in self.instructions)
        return f"Domain({self.iname!r}, {self.lowerbound}..{self.upperbound}, [{members}])"


KernelItem = Union[Instruction, Domain]


@dataclass(eq=False)
class Kernel:
    """The unit of compilation: instructions and loop domains"""
    instructions: List[Instruction] = field(default_factory=list)
    domains: List[Domain] = field(default_factory=list)

    def __post_init__(self):
        self.instructions = list(self.instructions)
        self.domains = list(self.domains)
        seen = set()
        for item in self.items():
            if item.iname in seen:
                raise KernelDefinitionError(f"duplicate iname `{item.iname}` in kernel")
            seen.add(item.iname)

    def items(self) -> List[KernelItem]:
        """All instructions followed by all domains, in declaration order"""
        return [*self.instructions, *self.domains]

    def item(self, iname: str) -> KernelItem:
        for candidate in self.items():
            if candidate.iname == iname:
                return candidate
        raise KeyError(iname)

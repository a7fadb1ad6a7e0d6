"""
Symbol Analysis Pass

Computes the free variables of a kernel: every identifier it uses that is
neither a plain assignment target nor a loop iname. These become the
parameters of the generated program.
"""

import logging
from typing import FrozenSet, List, Set, Tuple

from .base import BasePass, KernelCtxt
from ..ir.nodes import (
    Assign, Call, Domain, Expression, ExpressionVisitor, Generic, Identifier, Instruction, Kernel, Literal,
)

logger = logging.getLogger("loopkernel.passes.symbol_analysis")


class IdentifierCollector(ExpressionVisitor[Set[str]]):
    """Identifiers in an expression; callee names are not identifiers"""

    def visit_identifier(self, node: Identifier) -> Set[str]:
        return {node.name}

    def visit_literal(self, node: Literal) -> Set[str]:
        return set()

    def visit_call(self, node: Call) -> Set[str]:
        return self._union(node.args)

    def visit_assign(self, node: Assign) -> Set[str]:
        return node.target.accept(self) | node.value.accept(self)

    def visit_generic(self, node: Generic) -> Set[str]:
        return self._union(node.args)

    def _union(self, exprs) -> Set[str]:
        names: Set[str] = set()
        for expr in exprs:
            names |= expr.accept(self)
        return names


def collect_identifiers(expr: Expression) -> Set[str]:
    return expr.accept(IdentifierCollector())


def reachable_items(kernel: Kernel) -> Tuple[List[Instruction], List[Domain]]:
    """
    Kernel instructions and domains plus everything declared inside a
    domain body, each listed once.
    """
    instructions: List[Instruction] = []
    domains: List[Domain] = []
    seen: Set[int] = set()
    pending = [*reversed(kernel.domains), *reversed(kernel.instructions)]
    while pending:
        item = pending.pop()
        if id(item) in seen:
            continue
        seen.add(id(item))
        if isinstance(item, Domain):
            domains.append(item)
            pending.extend(reversed(item.instructions))
        else:
            instructions.append(item)
    return instructions, domains


def kernel_identifiers(kernel: Kernel) -> Set[str]:
    """All identifiers of instruction bodies, domain bounds/recurrences and loop inames"""
    instructions, domains = reachable_items(kernel)
    names: Set[str] = set()
    for instruction in instructions:
        names |= collect_identifiers(instruction.body)
    for domain in domains:
        names |= collect_identifiers(domain.recurrence)
        names |= collect_identifiers(domain.lowerbound)
        names |= collect_identifiers(domain.upperbound)
        names.add(domain.iname)
    return names


def defined_identifiers(kernel: Kernel) -> Set[str]:
    """
    Plain-identifier write targets plus loop inames. Indexed targets
    (`out[i] = ...`) do not define `out`.
    """
    instructions, domains = reachable_items(kernel)
    defined: Set[str] = set()
    for instruction in instructions:
        body = instruction.body
        if isinstance(body, Assign):
            lhs = body.target
        elif isinstance(body, Generic) and body.args:
            lhs = body.args[0]
        else:
            continue
        if isinstance(lhs, Identifier):
            defined.add(lhs.name)
    for domain in domains:
        defined.add(domain.iname)
    return defined


def kernel_arguments(kernel: Kernel) -> FrozenSet[str]:
    """Free variables the generated program takes as inputs"""
    return frozenset(kernel_identifiers(kernel) - defined_identifiers(kernel))


class SymbolAnalysisPass(BasePass):
    """Kernel arguments; independent of the scheduling passes"""
    requires = []

    def run(self, kernel: Kernel, ctx: KernelCtxt) -> FrozenSet[str]:
        arguments = kernel_arguments(kernel)
        logger.debug(f"Kernel arguments: {sorted(arguments)}")
        ctx.set_analysis(SymbolAnalysisPass, arguments)
        return arguments

"""
Lowering Pass

Turns a Schedule into one lowered Expression Tree:

    (block
      (= i lower)
      (while (call <= i upper)
        (block body... recurrence)))

Instructions lower to their body unchanged.
"""

import logging
from typing import List, Sequence, Union

from .base import BasePass, KernelCtxt
from .loop_nesting import LoopNestingPass
from ..ir.nodes import Assign, Call, Domain, Expression, Generic, Identifier, Instruction, Kernel, KernelItem
from ..utils.config import BLOCK_TAG, WHILE_TAG

logger = logging.getLogger("loopkernel.passes.lowering")


def construct(node: Union[KernelItem, Sequence[KernelItem]]) -> Expression:
    """Lower a domain, an instruction or a list of them"""
    if isinstance(node, Instruction):
        return node.body
    if isinstance(node, Domain):
        return construct_domain(node)
    return Generic(BLOCK_TAG, tuple(construct(item) for item in node))


def construct_domain(domain: Domain) -> Expression:
    iname = Identifier(domain.iname)
    body: List[Expression] = [construct(item) for item in domain.instructions]
    body.append(domain.recurrence)
    loop = Generic(WHILE_TAG, (
        Call("<=", (iname, domain.upperbound)),
        Generic(BLOCK_TAG, tuple(body)),
    ))
    return Generic(BLOCK_TAG, (Assign(iname, domain.lowerbound), loop))


class LoweringPass(BasePass):
    """Lowered statement tree of the scheduled kernel"""
    requires = [LoopNestingPass]

    def run(self, kernel: Kernel, ctx: KernelCtxt) -> Expression:
        schedule = ctx.get_analysis(LoopNestingPass)
        tree = construct(schedule)
        logger.debug(f"Lowered {len(schedule)} top-level entries")
        ctx.set_analysis(LoweringPass, tree)
        return tree

"""
Topological Scheduling Pass

Linearizes the dependency DAG breadth-first from the root. Edges are
consumed as nodes are emitted, so a DAG can be scheduled only once.
"""

import logging
from collections import deque
from typing import List

from .base import BasePass, KernelCtxt
from .dag import DAGConstructionPass, DependencyDAG
from ..ir.nodes import Kernel, KernelItem

logger = logging.getLogger("loopkernel.passes.scheduling")


def topological_order(dag: DependencyDAG) -> List[KernelItem]:
    """
    Kahn's algorithm over the arena.

    A node becomes ready when its last parent edge is consumed; ready nodes
    are emitted first-in first-out, which keeps declaration order among
    independent items.
    """
    order: List[KernelItem] = []
    sources = deque(dag.root.children)

    while sources:
        node_id = sources.popleft()
        node = dag.nodes[node_id]
        order.append(node.payload)
        while node.children:
            child_id = node.children.pop(0)
            child = dag.nodes[child_id]
            child.parents = [p for p in child.parents if p != node_id]
            if not child.parents:
                sources.append(child_id)

    return order


class TopologicalSchedulePass(BasePass):
    """Flat execution order of every instruction and domain"""
    requires = [DAGConstructionPass]

    def run(self, kernel: Kernel, ctx: KernelCtxt) -> List[KernelItem]:
        dag = ctx.get_analysis(DAGConstructionPass)
        order = topological_order(dag)
        logger.debug(f"Scheduled {len(order)} items: {[item.iname for item in order]}")
        ctx.set_analysis(TopologicalSchedulePass, order)
        return order
